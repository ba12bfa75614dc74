"""Parser and evaluator for dialog node conditions.

Supports the subset of the vendor condition language that appears on
choice-driven dialog trees:

    @Options:1A || @Options==1B || $plan:gold || $has_account || true

``@name`` references an entity, ``$name`` a context variable. ``:`` and
``==`` both test equality against a literal, ``||`` combines tests. An unquoted
literal runs up to the next whitespace or ``||``. A bare
reference is true when the variable is bound to a non-empty value.

Expressions are parsed into a small AST and evaluated against a flat
variable binding where entities are named ``E_<entity>`` and context
variables ``C_<key>``.
"""
import re
import sys
from dataclasses import dataclass
from typing import Tuple

from colorama import init, Fore, Style

from workspace_errors import ConditionEvalError, UnsupportedConditionError

init()

# --- Configuration ---
USER_RESPONSE_ENTITY = 'Options'
ENTITY_PREFIX = 'E_'
CONTEXT_PREFIX = 'C_'
# Runtime-event conditions that never hold while walking the tree offline
OFFLINE_FALSE_CONDITIONS = ('welcome', 'anything_else', 'conversation_start')
# --- End Configuration ---

TOKEN_PATTERNS = [
    ('SPACE', r'\s+'),
    ('OR', r'\|\|'),
    ('UNSUPPORTED', r'&&|!=|>=|<=|[!<>()+*/%]|\|'),
    ('EQ', r'=='),
    ('COLON', r':'),
    ('REF', r'[@$][A-Za-z0-9_\-.]+'),
    ('INTENT', r'#\S*'),
    ('STRING', r'"[^"]*"|\'[^\']*\''),
    ('UNTERMINATED', r'["\']'),
    ('WORD', r'[^\s|=:()!<>&"\'+*/%]+'),
    ('OTHER', r'\S'),
]
TOKEN_REGEX = re.compile('|'.join(f'(?P<{name}>{pattern})' for name, pattern in TOKEN_PATTERNS))
BARE_LITERAL_REGEX = re.compile(r'\s*((?:(?!\|\|)[^\s"\'])(?:(?!\|\|)\S)*)')


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


@dataclass(frozen=True)
class VariableRef:
    sigil: str
    name: str

    @property
    def binding_name(self):
        prefix = ENTITY_PREFIX if self.sigil == '@' else CONTEXT_PREFIX
        return prefix + self.name

    def lookup(self, bindings):
        return value_as_text(bindings.get(self.binding_name))


@dataclass(frozen=True)
class Equals:
    ref: VariableRef
    value: str

    def evaluate(self, bindings):
        return self.ref.lookup(bindings) == self.value


@dataclass(frozen=True)
class Present:
    ref: VariableRef

    def evaluate(self, bindings):
        return bool(self.ref.lookup(bindings))


@dataclass(frozen=True)
class Constant:
    value: bool

    def evaluate(self, bindings):
        return self.value


@dataclass(frozen=True)
class AnyOf:
    terms: Tuple

    def evaluate(self, bindings):
        return any(term.evaluate(bindings) for term in self.terms)


def value_as_text(value):
    """Render a bound value the way the vendor compares it against a literal"""
    if value is None:
        return None
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def tokenize(expression, node_id=None):
    tokens = []
    position = 0
    while position < len(expression):
        match = TOKEN_REGEX.match(expression, position)
        kind = match.lastgroup
        text = match.group()
        position = match.end()
        if kind == 'SPACE':
            continue
        if kind == 'UNTERMINATED':
            raise ConditionEvalError(
                f"FAILED: node {node_id}, cant evaluate conditions ({expression}): unterminated quote at {match.start()}",
                node_id=node_id, expression=expression)
        if kind in ('UNSUPPORTED', 'INTENT', 'OTHER'):
            raise UnsupportedConditionError(
                f"FAILED: node {node_id}, condition ({expression}) uses unsupported syntax '{text}'",
                node_id=node_id, expression=expression)
        tokens.append(Token(kind, text, match.start()))
        if kind in ('EQ', 'COLON'):
            # the compared value runs up to whitespace or '||', whatever it contains
            literal = BARE_LITERAL_REGEX.match(expression, position)
            if literal:
                tokens.append(Token('WORD', literal.group(1), literal.start(1)))
                position = literal.end()
    return tokens


class _Parser:
    def __init__(self, expression, node_id):
        self.expression = expression
        self.node_id = node_id
        self.tokens = tokenize(expression, node_id)
        self.index = 0

    def _peek(self):
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _advance(self):
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _malformed(self, detail):
        return ConditionEvalError(
            f"FAILED: node {self.node_id}, cant evaluate conditions ({self.expression}): {detail}",
            node_id=self.node_id, expression=self.expression)

    def _unsupported(self, detail):
        return UnsupportedConditionError(
            f"FAILED: node {self.node_id}, condition ({self.expression}) is not supported: {detail}",
            node_id=self.node_id, expression=self.expression)

    def parse(self):
        if not self.tokens:
            raise self._malformed("empty expression")
        terms = [self._parse_term()]
        while True:
            token = self._peek()
            if token is None:
                break
            if token.kind != 'OR':
                raise self._malformed(f"unexpected '{token.text}' at {token.position}")
            self._advance()
            terms.append(self._parse_term())
        if len(terms) == 1:
            return terms[0]
        return AnyOf(tuple(terms))

    def _parse_term(self):
        token = self._peek()
        if token is None:
            raise self._malformed("expression ends with an operator")
        if token.kind == 'REF':
            self._advance()
            ref = VariableRef(token.text[0], token.text[1:])
            operator = self._peek()
            if operator is None or operator.kind not in ('EQ', 'COLON'):
                return Present(ref)
            self._advance()
            literal = self._peek()
            if literal is None or literal.kind not in ('WORD', 'STRING'):
                raise self._malformed(f"missing value after '{operator.text}' at {operator.position}")
            self._advance()
            value = literal.text[1:-1] if literal.kind == 'STRING' else literal.text
            return Equals(ref, value)
        if token.kind == 'WORD':
            self._advance()
            word = token.text
            if word == 'true':
                return Constant(True)
            if word == 'false' or word in OFFLINE_FALSE_CONDITIONS:
                return Constant(False)
            raise self._unsupported(f"unknown identifier '{word}'")
        if token.kind == 'STRING':
            raise self._unsupported(f"bare literal {token.text}")
        raise self._malformed(f"unexpected '{token.text}' at {token.position}")


def parse_condition(expression, node_id=None):
    """Parse a condition string into an evaluable AST"""
    return _Parser(expression, node_id).parse()


def build_bindings(context=None, button_payload=None, user_response_entity=USER_RESPONSE_ENTITY):
    """Variable binding for one evaluation: the chosen button (if any) plus the path context"""
    bindings = {}
    if button_payload is not None:
        bindings[ENTITY_PREFIX + user_response_entity] = button_payload
    for key, value in (context or {}).items():
        bindings[CONTEXT_PREFIX + key] = value
    return bindings


def evaluate_condition(expression, bindings, node_id=None):
    """Evaluate a node condition.

    Returns None when the node has no condition, so callers can tell
    "no condition present" apart from a condition that evaluated to False.
    """
    if not expression:
        return None
    return parse_condition(expression, node_id).evaluate(bindings)


def main():
    if len(sys.argv) < 2:
        print("Usage: python condition_parser.py '<condition>' [Options value]")
        sys.exit(1)
    expression = sys.argv[1]
    payload = sys.argv[2] if len(sys.argv) > 2 else None
    print(f"{Fore.BLUE}{parse_condition(expression)}{Style.RESET_ALL}")
    result = evaluate_condition(expression, build_bindings(button_payload=payload))
    color = Fore.GREEN if result else Fore.RED
    print(f"{color}{result}{Style.RESET_ALL}")


if __name__ == "__main__":
    main()
