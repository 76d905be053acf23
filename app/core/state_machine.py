"""Canonical state transition helpers for lifecycle-managed entities."""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from typing import Generic, TypeVar

from app.core.exceptions import InvalidTransitionError

S = TypeVar("S", bound=Hashable)


def _label(state: object) -> str:
    return str(getattr(state, "value", state))


class StateMachine(Generic[S]):
    """Static transition table with lookup helpers.

    The table is plain data; the machine never mutates an entity, so the
    rules can be tested apart from persistence side effects.
    """

    def __init__(self, transitions: Mapping[S, frozenset[S] | set[S]]) -> None:
        self._transitions: dict[S, frozenset[S]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }

    @property
    def states(self) -> frozenset[S]:
        return frozenset(self._transitions)

    def allowed_targets(self, current: S) -> frozenset[S]:
        return self._transitions.get(current, frozenset())

    def can_transition(self, current: S, target: S) -> bool:
        return target in self.allowed_targets(current)

    def is_terminal(self, state: S) -> bool:
        return not self.allowed_targets(state)

    def assert_transition(self, current: S, target: S) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(_label(current), _label(target))
