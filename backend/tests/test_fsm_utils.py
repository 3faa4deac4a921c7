from pizzeria.utils.fsm import TransitionValidator
from pizzeria.utils.validation import strict_int, require_fields
import pytest
from werkzeug.exceptions import BadRequest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(BadRequest):
        fsm.assert_can_transition('A', 'C')


def test_next_in_follows_flow_and_graph():
    fsm = TransitionValidator({'A': {'B', 'X'}, 'B': {'C'}, 'C': set(), 'X': set()})
    flow = ('A', 'B', 'C')
    assert fsm.next_in(flow, 'A') == 'B'
    assert fsm.next_in(flow, 'C') is None
    assert fsm.next_in(flow, 'X') is None
    assert fsm.is_terminal('C') and not fsm.is_terminal('A')


def test_strict_int_rejects_bool_and_strings():
    assert strict_int(3, 'n', 1, 5) == 3
    for bad in (True, '3', 3.0, None):
        with pytest.raises(BadRequest):
            strict_int(bad, 'n')


def test_require_fields_strips_and_reports_missing():
    assert require_fields({'a': ' x '}, ['a']) == {'a': 'x'}
    with pytest.raises(BadRequest) as exc:
        require_fields({'a': '  '}, ['a', 'b'], label='customer')
    assert exc.value.description == 'customer.a, customer.b required'
