import pytest

from condition_parser import (
    AnyOf,
    Constant,
    Equals,
    Present,
    VariableRef,
    build_bindings,
    evaluate_condition,
    parse_condition,
    value_as_text,
)
from workspace_errors import ConditionEvalError, UnsupportedConditionError


def options(payload):
    return build_bindings(button_payload=payload)


class TestParseCondition:
    def test_disjunction_of_equalities(self):
        assert parse_condition('@Options:1A || $plan==gold') == AnyOf((
            Equals(VariableRef('@', 'Options'), '1A'),
            Equals(VariableRef('$', 'plan'), 'gold'),
        ))

    def test_single_term_is_not_wrapped(self):
        assert parse_condition('@Options:1A') == Equals(VariableRef('@', 'Options'), '1A')

    def test_bare_reference(self):
        assert parse_condition('$has_account') == Present(VariableRef('$', 'has_account'))

    def test_quoted_literal(self):
        assert parse_condition('@Options=="big one"') == Equals(VariableRef('@', 'Options'), 'big one')

    @pytest.mark.parametrize('word,value', [
        ('true', True),
        ('false', False),
        ('welcome', False),
        ('anything_else', False),
        ('conversation_start', False),
    ])
    def test_keywords(self, word, value):
        assert parse_condition(word) == Constant(value)

    def test_binding_names(self):
        assert VariableRef('@', 'Options').binding_name == 'E_Options'
        assert VariableRef('$', 'plan').binding_name == 'C_plan'


class TestEvaluateCondition:
    def test_options_disjunction(self):
        expression = '@Options:1A || @Options:1B'
        assert evaluate_condition(expression, options('1A')) is True
        assert evaluate_condition(expression, options('1B')) is True
        assert evaluate_condition(expression, options('1C')) is False

    def test_double_equals_matches_colon(self):
        assert evaluate_condition('@Options==1A', options('1A')) is True
        assert evaluate_condition('@Options==1A', options('1B')) is False

    def test_no_button_means_unbound(self):
        assert evaluate_condition('@Options:1A', build_bindings()) is False

    def test_other_entities_are_not_bound(self):
        assert evaluate_condition('@city:Paris', options('Paris')) is False

    @pytest.mark.parametrize('payload', [
        'yes!',
        '1/2',
        '(a)',
        '50%',
        'a+b',
        'https://example.com/pay?id=7',
    ])
    def test_unquoted_value_keeps_every_character(self, payload):
        expression = f'@Options:{payload} || @Options=={payload}'
        assert evaluate_condition(expression, options(payload)) is True
        assert evaluate_condition(expression, options('other')) is False

    def test_unquoted_value_stops_at_or(self):
        expression = '@Options:1A||@Options:1B'
        assert parse_condition(expression) == AnyOf((
            Equals(VariableRef('@', 'Options'), '1A'),
            Equals(VariableRef('@', 'Options'), '1B'),
        ))

    def test_space_after_operator(self):
        assert parse_condition('@Options== 1A') == Equals(VariableRef('@', 'Options'), '1A')

    def test_context_variables(self):
        bindings = build_bindings({'plan': 'gold', 'vip': True, 'count': 3.0})
        assert evaluate_condition('$plan:gold', bindings) is True
        assert evaluate_condition('$plan:silver', bindings) is False
        assert evaluate_condition('$vip:true', bindings) is True
        assert evaluate_condition('$count==3', bindings) is True

    def test_presence(self):
        assert evaluate_condition('$name', build_bindings({'name': 'Ann'})) is True
        assert evaluate_condition('$name', build_bindings({'name': ''})) is False
        assert evaluate_condition('$name', build_bindings()) is False

    def test_constants(self):
        assert evaluate_condition('true', {}) is True
        assert evaluate_condition('anything_else', {}) is False

    def test_missing_condition_returns_none(self):
        assert evaluate_condition(None, {}) is None
        assert evaluate_condition('', {}) is None

    @pytest.mark.parametrize('expression', [
        '#order_pizza',
        '@Options:1A && $plan:gold',
        '!$vip',
        '$count > 3',
        '(@Options:1A)',
        '$plan != gold',
        'input.text',
        '"literal"',
    ])
    def test_unsupported_syntax(self, expression):
        with pytest.raises(UnsupportedConditionError) as exc_info:
            evaluate_condition(expression, options('1A'), node_id='n1')
        assert exc_info.value.node_id == 'n1'
        assert exc_info.value.expression == expression

    @pytest.mark.parametrize('expression', [
        '@Options:',
        '@Options:1A ||',
        '|| @Options:1A',
        '@Options=="1A',
        '@Options:1A @Options:1B',
    ])
    def test_malformed(self, expression):
        with pytest.raises(ConditionEvalError) as exc_info:
            evaluate_condition(expression, options('1A'), node_id='n2')
        assert exc_info.value.node_id == 'n2'
        assert 'n2' in str(exc_info.value)


class TestBindings:
    def test_payload_and_context(self):
        assert build_bindings({'plan': 'gold'}, '1A') == {'E_Options': '1A', 'C_plan': 'gold'}

    def test_custom_response_entity(self):
        assert build_bindings(button_payload='x', user_response_entity='Choice') == {'E_Choice': 'x'}

    @pytest.mark.parametrize('value,text', [
        (True, 'true'),
        (False, 'false'),
        (2.0, '2'),
        (2.5, '2.5'),
        (7, '7'),
        (None, None),
    ])
    def test_value_as_text(self, value, text):
        assert value_as_text(value) == text
