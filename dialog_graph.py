import json
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Optional, Tuple

from colorama import init, Fore, Style

from workspace_errors import LoadError

# Initialize colorama for colored terminal output
init()

WELCOME_CONDITION = 'welcome'


@dataclass(frozen=True)
class NextStep:
    """Transition declared by a dialog node's next_step field"""
    behavior: str
    selector: Optional[str] = None
    dialog_node: Optional[str] = None


@dataclass(frozen=True)
class DialogNode:
    """One vertex of the dialog tree, as found in the workspace export"""
    id: str
    title: str = ''
    parent_id: Optional[str] = None
    previous_sibling_id: Optional[str] = None
    conditions: Optional[str] = None
    context: Optional[Any] = None
    # None when the node has no output at all, otherwise the raw output.generic list
    output: Optional[Tuple[Dict[str, Any], ...]] = None
    has_generic_output: bool = True
    next_step: Optional[NextStep] = None

    @property
    def label(self):
        return self.title or self.id


def _parse_node(raw):
    """Convert a raw dialog_node record into a DialogNode"""
    node_id = raw.get('dialog_node')
    if not node_id:
        raise LoadError(f"FAILED: dialog node without 'dialog_node' id: {json.dumps(raw)[:120]}")

    output = raw.get('output')
    generic = None
    has_generic = True
    if output is not None:
        generic = output.get('generic') if isinstance(output, dict) else None
        if generic is None:
            has_generic = False
        else:
            generic = tuple(generic)

    next_step = None
    raw_next = raw.get('next_step')
    if raw_next:
        next_step = NextStep(
            behavior=raw_next.get('behavior'),
            selector=raw_next.get('selector'),
            dialog_node=raw_next.get('dialog_node'),
        )

    context = raw.get('context')
    if isinstance(context, dict):
        context = MappingProxyType(dict(context))

    return DialogNode(
        id=node_id,
        title=raw.get('title') or '',
        parent_id=raw.get('parent'),
        previous_sibling_id=raw.get('previous_sibling'),
        conditions=raw.get('conditions'),
        context=context,
        output=generic,
        has_generic_output=has_generic,
        next_step=next_step,
    )


@dataclass
class DialogGraph:
    """Navigable view of a workspace's dialog tree.

    The three lookup tables encode the authored tree: the first child of each
    parent, and the sibling that follows each node. Walking first child and
    then the sibling chain reproduces the authoring order.
    """
    name: str
    welcome_node_id: str
    nodes_by_id: Dict[str, DialogNode] = field(default_factory=dict)
    first_child_by_parent_id: Dict[str, str] = field(default_factory=dict)
    next_sibling_by_previous_id: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_workspace(cls, workspace):
        """Build the graph and its indices from a parsed workspace export"""
        raw_nodes = workspace.get('dialog_nodes')
        if raw_nodes is None:
            raw_nodes = workspace.get('dialogNodes')
        if not raw_nodes:
            raise LoadError("FAILED: no dialog nodes!")

        welcome_ids = []
        nodes_by_id = {}
        first_child = {}
        next_sibling = {}

        for raw in raw_nodes:
            node = _parse_node(raw)
            if node.conditions == WELCOME_CONDITION:
                welcome_ids.append(node.id)

            nodes_by_id[node.id] = node
            if node.parent_id:
                if node.previous_sibling_id:
                    next_sibling[node.previous_sibling_id] = node.id
                else:
                    first_child[node.parent_id] = node.id

        if not welcome_ids:
            raise LoadError("FAILED: no welcome node!")
        if len(welcome_ids) > 1:
            raise LoadError(f"FAILED: more than one welcome node ({', '.join(welcome_ids)})!")

        return cls(
            name=workspace.get('name') or 'workspace',
            welcome_node_id=welcome_ids[0],
            nodes_by_id=nodes_by_id,
            first_child_by_parent_id=first_child,
            next_sibling_by_previous_id=next_sibling,
        )

    def __len__(self):
        return len(self.nodes_by_id)

    def get_node(self, node_id):
        node = self.nodes_by_id.get(node_id)
        if node is None:
            raise LoadError(f"FAILED: node {node_id} referenced but not found!", node_id=node_id)
        return node

    def children_of(self, node_id):
        """Yield the child ids of a node in authoring order"""
        child_id = self.first_child_by_parent_id.get(node_id)
        while child_id:
            yield child_id
            child_id = self.next_sibling_by_previous_id.get(child_id)

    def siblings_after(self, node_id):
        """Yield the ids of the siblings that follow a node"""
        sibling_id = self.next_sibling_by_previous_id.get(node_id)
        while sibling_id:
            yield sibling_id
            sibling_id = self.next_sibling_by_previous_id.get(sibling_id)


def load_workspace(json_file, verbose=False):
    """Read a workspace export from disk and build its dialog graph"""
    try:
        with open(json_file, 'r', encoding='utf-8') as f:
            raw_data = f.read()
    except OSError as e:
        raise LoadError(f"FAILED: cant open file {json_file}: {e}") from e

    try:
        workspace = json.loads(raw_data)
    except json.JSONDecodeError as e:
        raise LoadError(f"FAILED: cant parse JSON in {json_file}: {e}") from e

    if not isinstance(workspace, dict):
        raise LoadError(f"FAILED: {json_file} does not contain a workspace object!")

    graph = DialogGraph.from_workspace(workspace)
    if verbose:
        print(f"Loaded workspace '{graph.name}' with {len(graph)} dialog nodes")
        print(f"{Fore.BLUE}Welcome node found: {graph.welcome_node_id}{Style.RESET_ALL}")
    return graph


def main():
    if len(sys.argv) < 2:
        print("Usage: python dialog_graph.py <workspace.json>")
        sys.exit(1)
    graph = load_workspace(sys.argv[1], verbose=True)
    for node_id, node in graph.nodes_by_id.items():
        children = list(graph.children_of(node_id))
        if children:
            print(f"{Fore.YELLOW}{node.label}{Style.RESET_ALL} -> {', '.join(children)}")


if __name__ == "__main__":
    main()
