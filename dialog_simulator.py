import json
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from colorama import init, Fore, Style

from condition_parser import USER_RESPONSE_ENTITY, build_bindings, evaluate_condition
from dialog_graph import load_workspace
from workspace_errors import (
    UnreachableButtonError,
    UnsupportedJumpError,
    UnsupportedNextStepError,
    UnsupportedResponseError,
)

# Initialize colorama for colored terminal output
init()

EMPTY_CONTEXT = MappingProxyType({})


@dataclass(frozen=True)
class Button:
    """A user choice offered by an option or suggestion response"""
    text: str
    payload: Optional[str]

    def to_dict(self):
        return {'text': self.text, 'payload': self.payload}


@dataclass(frozen=True)
class StepArgs:
    """Named asserter or user input attached to a conversation step"""
    name: str
    args: Tuple[Any, ...] = ()

    def to_dict(self):
        return {'name': self.name, 'args': list(self.args)}


@dataclass(frozen=True)
class ConvoStep:
    sender: str
    message_text: Optional[str] = None
    asserters: Tuple[StepArgs, ...] = ()
    user_inputs: Tuple[StepArgs, ...] = ()

    def to_dict(self):
        step = {'sender': self.sender}
        if self.message_text is not None:
            step['messageText'] = self.message_text
        if self.asserters:
            step['asserters'] = [a.to_dict() for a in self.asserters]
        if self.user_inputs:
            step['userInputs'] = [u.to_dict() for u in self.user_inputs]
        return step


@dataclass(frozen=True)
class OpenStep:
    """Bot step still being assembled; may collect output from several jumped-through nodes"""
    message_texts: Tuple[str, ...] = ()
    asserters: Tuple[StepArgs, ...] = ()

    def add_texts(self, texts):
        return OpenStep(self.message_texts + tuple(texts), self.asserters)

    def add_asserter(self, asserter):
        return OpenStep(self.message_texts, self.asserters + (asserter,))

    def finish(self, conversation):
        """Append this step to the conversation, unless it carries nothing to assert"""
        if not self.message_texts and not self.asserters:
            return conversation
        message_text = '\n'.join(self.message_texts) if self.message_texts else None
        return conversation + (ConvoStep('bot', message_text, self.asserters),)


@dataclass(frozen=True)
class TraversalState:
    """Everything one path carries while it is being walked.

    All fields are immutable, so a fork only has to hand the same state to
    every branch: nothing a branch does can leak into its siblings.
    """
    context: Mapping[str, Any] = field(default_factory=lambda: EMPTY_CONTEXT)
    visited: Tuple[str, ...] = ()
    pending_buttons: Tuple[Button, ...] = ()
    open_step: Optional[OpenStep] = None
    conversation: Tuple[ConvoStep, ...] = ()
    log: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class ConversationPath:
    conversation: Tuple[ConvoStep, ...]
    log: Tuple[Dict[str, Any], ...]

    def conversation_as_dicts(self):
        return [step.to_dict() for step in self.conversation]


@dataclass
class CoverageReport:
    """Which nodes the enumeration reached, produced alongside the paths"""
    total_nodes: int
    processed: List[str] = field(default_factory=list)
    skipped_at_least_once: List[str] = field(default_factory=list)

    def mark_processed(self, node_id):
        if node_id not in self.processed:
            self.processed.append(node_id)

    def mark_skipped(self, node_id):
        if node_id not in self.skipped_at_least_once:
            self.skipped_at_least_once.append(node_id)

    @property
    def processed_count(self):
        return len(self.processed)

    def skipped_nodes(self, graph):
        return [{'id': node_id, 'title': graph.nodes_by_id[node_id].title}
                for node_id in self.skipped_at_least_once]

    def not_processed(self, graph):
        processed = set(self.processed)
        return [{'id': node_id, 'title': node.title, 'condition': node.conditions}
                for node_id, node in graph.nodes_by_id.items() if node_id not in processed]


def merge_context(context, updates):
    """Return a new read-only context with the node's keys layered on top"""
    if not updates:
        return context
    merged = dict(context)
    merged.update(updates)
    return MappingProxyType(merged)


class DialogSimulator:
    """Enumerates every simple conversation path from the welcome node of a dialog graph"""

    def __init__(self, graph, user_response_entity=USER_RESPONSE_ENTITY, verbose=False):
        self.graph = graph
        self.user_response_entity = user_response_entity
        self.verbose = verbose

    def _log(self, message, color=Fore.WHITE):
        if self.verbose:
            print(f"{color}{message}{Style.RESET_ALL}")

    def simulate_all_paths(self):
        """Walk the graph from the welcome node.

        Returns:
            tuple: (list of ConversationPath, CoverageReport)
        """
        coverage = CoverageReport(total_nodes=len(self.graph))
        self._log(f"Simulating all dialog paths from welcome node {self.graph.welcome_node_id}...", Fore.CYAN)
        paths = self._simulate_paths_from_node(self.graph.welcome_node_id, TraversalState(), coverage)
        self._log(f"Created {len(paths)} conversation paths", Fore.CYAN)
        return paths, coverage

    def search_next_node_id(self, node_id, context, button=None):
        """First child whose condition holds, else the first following sibling whose condition holds"""
        payload = button.payload if button is not None else None
        bindings = build_bindings(context, payload, self.user_response_entity)
        for candidates in (self.graph.children_of(node_id), self.graph.siblings_after(node_id)):
            for candidate_id in candidates:
                candidate = self.graph.get_node(candidate_id)
                # Nodes without a condition are never picked by the search
                if evaluate_condition(candidate.conditions, bindings, node_id=candidate_id):
                    return candidate_id
        return None

    def _aggregate_output(self, node, open_step, conversation, buttons):
        """Fold a node's output items into the open step, finishing steps where the vendor would"""
        last_response_type = None
        for item in node.output or ():
            response_type = item.get('response_type')
            if response_type == 'text':
                # two consecutive text blocks are shown as two bubbles
                if last_response_type == 'text':
                    conversation = open_step.finish(conversation)
                    open_step = OpenStep()
                values = item.get('values') or []
                selection_policy = item.get('selection_policy') or 'sequential'
                if selection_policy != 'sequential' and len(values) > 1:
                    raise UnsupportedResponseError(
                        f"FAILED: node {node.id}, selection_policy '{selection_policy}' with more responses is not supported!",
                        node_id=node.id)
                open_step = open_step.add_texts(value.get('text', '') for value in values)
            elif response_type in ('option', 'suggestion'):
                choices = item.get('options' if response_type == 'option' else 'suggestions') or []
                local_buttons = tuple(
                    Button(choice.get('label'), ((choice.get('value') or {}).get('input') or {}).get('text'))
                    for choice in choices
                )
                open_step = open_step.add_asserter(StepArgs('BUTTONS', tuple(b.text for b in local_buttons)))
                buttons = buttons + local_buttons
                conversation = open_step.finish(conversation)
                open_step = OpenStep()
            elif response_type == 'image':
                open_step = open_step.add_asserter(StepArgs('MEDIA', (item.get('source'),)))
                conversation = open_step.finish(conversation)
                open_step = OpenStep()
            elif response_type == 'pause':
                pass
            else:
                raise UnsupportedResponseError(
                    f"FAILED: node {node.id}, response_type '{response_type}' is not supported!",
                    node_id=node.id)
            last_response_type = response_type
        return open_step, conversation, buttons

    def _simulate_paths_from_node(self, node_id, state, coverage):
        """Recursively enumerate all paths continuing at node_id"""
        node = self.graph.get_node(node_id)
        if node_id in state.visited:
            self._log(f"  Node {node_id} skipped because already found on path {' -> '.join(state.visited)}", Fore.YELLOW)
            coverage.mark_skipped(node_id)
            return []

        self._log(f"Processing node '{node.title}' ({node_id})", Fore.BLUE)
        if not node.has_generic_output:
            raise UnsupportedResponseError(
                f"FAILED: node {node_id}, incorrect structure, node.output.generic is missing!", node_id=node_id)

        open_step = state.open_step or OpenStep()
        open_step, conversation, buttons = self._aggregate_output(
            node, open_step, state.conversation, state.pending_buttons)

        coverage.mark_processed(node_id)
        visited = state.visited + (node_id,)
        log = state.log + ({'processedNode': {'nodeId': node_id, 'nodeTitle': node.title}},)
        context = merge_context(state.context, node.context)
        if node.context:
            self._log(f"  Context {json.dumps(dict(node.context))} added", Fore.GREEN)

        next_step = node.next_step
        if next_step is None:
            return self._wait_for_user(node_id, open_step.finish(conversation), buttons, visited, log, context, coverage)

        if next_step.behavior == 'jump_to':
            if next_step.selector != 'body':
                raise UnsupportedJumpError(
                    f"FAILED: node {node_id}, jump_to selector '{next_step.selector}' is not supported!",
                    node_id=node_id)
            self._log(f"  [Jump from {node_id} to {next_step.dialog_node}, step stays open]", Fore.MAGENTA)
            # a jump keeps collecting into the same bot step and keeps the offered buttons
            return self._simulate_paths_from_node(
                next_step.dialog_node,
                TraversalState(context, visited, buttons, open_step, conversation, log),
                coverage,
            )

        if next_step.behavior == 'skip_user_input':
            next_node_id = self.search_next_node_id(node_id, context)
            if not next_node_id:
                raise UnreachableButtonError(
                    f"FAILED: node {node_id}, no next node found for skip_user_input!", node_id=node_id)
            self._log(f"  [Skip user input from {node_id} to {next_node_id}]", Fore.MAGENTA)
            return self._simulate_paths_from_node(
                next_node_id,
                TraversalState(context, visited, (), None, open_step.finish(conversation), log),
                coverage,
            )

        raise UnsupportedNextStepError(
            f"FAILED: node {node_id}, not supported next_step.behavior '{next_step.behavior}'!", node_id=node_id)

    def _wait_for_user(self, node_id, conversation, buttons, visited, log, context, coverage):
        """Fork one branch per distinct node the offered buttons lead to"""
        if not buttons:
            self._log("  CONVERSATION FINISHED with question", Fore.RED)
            return [ConversationPath(conversation, log)]

        node_to_button = {}
        for button in buttons:
            next_node_id = self.search_next_node_id(node_id, context, button)
            if not next_node_id:
                raise UnreachableButtonError(
                    f"FAILED: node {node_id}, no user response found for user message {json.dumps(button.to_dict())}!",
                    node_id=node_id, button=button)
            if next_node_id in node_to_button:
                self._log(f"  User response {json.dumps(button.to_dict())} is ignored because it leads to the same node as "
                          f"{json.dumps(node_to_button[next_node_id].to_dict())}", Fore.YELLOW)
                continue
            node_to_button[next_node_id] = button

        self._log(f"  Created {len(node_to_button)} branches from {len(buttons)} buttons", Fore.MAGENTA)

        branches = []
        for next_node_id, button in node_to_button.items():
            user_step = ConvoStep('me', '', user_inputs=(StepArgs('BUTTON', (button.payload,)),))
            branch_state = TraversalState(
                context=context,
                visited=visited,
                conversation=conversation + (user_step,),
                log=log + ({'userPushed': {'button': button.to_dict()}},),
            )
            branches.extend(self._simulate_paths_from_node(next_node_id, branch_state, coverage))
        return branches


def main():
    if len(sys.argv) < 2:
        print("Usage: python dialog_simulator.py <workspace.json> [--verbose]")
        sys.exit(1)
    verbose = '--verbose' in sys.argv[2:]
    graph = load_workspace(sys.argv[1], verbose=verbose)
    simulator = DialogSimulator(graph, verbose=verbose)
    paths, coverage = simulator.simulate_all_paths()
    for i, path in enumerate(paths, 1):
        print(f"\n{Fore.YELLOW}Path {i}:{Style.RESET_ALL}")
        for step in path.conversation:
            print(f"  {json.dumps(step.to_dict(), ensure_ascii=False)}")
    print(f"\nTotal conversation paths: {len(paths)}")
    print(f"Processed nodes: {coverage.processed_count}/{coverage.total_nodes}")


if __name__ == "__main__":
    main()
