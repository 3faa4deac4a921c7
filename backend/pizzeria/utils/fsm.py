from __future__ import annotations
"""Finite state machine helper enforcing allowed status transitions at the write boundary.

Usage:
    from pizzeria.utils.fsm import TransitionValidator
    ORDER_FSM = TransitionValidator({
        'pending': {'confirmed', 'cancelled'},
        'confirmed': {'preparing', 'cancelled'},
        'completed': set(),
    })
    ORDER_FSM.assert_can_transition(current_status, target_status)

Raises 400 abort if invalid. States mapping to an empty set are terminal.
"""
from typing import Dict, Optional, Set
from flask import abort

class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def is_terminal(self, state: str) -> bool:
        return not self.graph.get(state)

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            abort(400, description=f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def next_in(self, flow, current: str) -> Optional[str]:
        """Following state of ``current`` along an ordered ``flow``, if the graph allows it."""
        if current not in flow:
            return None
        idx = flow.index(current)
        if idx + 1 >= len(flow):
            return None
        candidate = flow[idx + 1]
        return candidate if self.can_transition(current, candidate) else None

__all__ = ['TransitionValidator']
