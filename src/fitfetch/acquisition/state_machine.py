"""
Explicit state machine for one extraction run.

    NOT_STARTED -> TRYING_STRATEGY(0)
    TRYING_STRATEGY(i) -> SUCCEEDED                 (validated bytes)
    TRYING_STRATEGY(i) -> TRYING_STRATEGY(i + 1)    (failure, i + 1 < n)
    TRYING_STRATEGY(n - 1) -> EXHAUSTED             (failure on the last strategy)

SUCCEEDED and EXHAUSTED are terminal. Strategies never race: exactly one is
in flight while the run is in TRYING_STRATEGY.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .models import ExtractionAttempt


class ExtractionState(str, Enum):
    NOT_STARTED = "not_started"
    TRYING_STRATEGY = "trying_strategy"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


TRANSITIONS: Dict[ExtractionState, FrozenSet[ExtractionState]] = {
    ExtractionState.NOT_STARTED: frozenset({ExtractionState.TRYING_STRATEGY}),
    ExtractionState.TRYING_STRATEGY: frozenset(
        {ExtractionState.TRYING_STRATEGY, ExtractionState.SUCCEEDED, ExtractionState.EXHAUSTED}
    ),
    ExtractionState.SUCCEEDED: frozenset(),
    ExtractionState.EXHAUSTED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """Raised when a run is driven through a transition the table forbids."""


@dataclass
class ExtractionRun:
    """Tracks progress through the strategy list and owns the attempt log."""

    strategy_names: Sequence[str]
    state: ExtractionState = ExtractionState.NOT_STARTED
    index: Optional[int] = None
    _attempts: List[ExtractionAttempt] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.strategy_names:
            raise ValueError("An extraction run needs at least one strategy")

    @property
    def attempts(self) -> Tuple[ExtractionAttempt, ...]:
        return tuple(self._attempts)

    @property
    def current_strategy(self) -> str:
        return self.strategy_names[self._position()]

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.state]

    def _move(self, target: ExtractionState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"Cannot move from {self.state.value} to {target.value}")
        self.state = target

    def _position(self) -> int:
        if self.state is not ExtractionState.TRYING_STRATEGY or self.index is None:
            raise InvalidTransitionError(f"No strategy in flight while {self.state.value}")
        return self.index

    def start(self) -> str:
        """Enter TRYING_STRATEGY(0) and return the first strategy name."""
        if self.state is not ExtractionState.NOT_STARTED:
            raise InvalidTransitionError(f"Cannot start a run that is already {self.state.value}")
        self._move(ExtractionState.TRYING_STRATEGY)
        self.index = 0
        return self.current_strategy

    def succeed(self, attempt: ExtractionAttempt) -> None:
        self._record(attempt, succeeded=True)
        self._move(ExtractionState.SUCCEEDED)

    def fail(self, attempt: ExtractionAttempt) -> Optional[str]:
        """Record a failure and advance; returns the next strategy or ``None`` when exhausted."""
        self._record(attempt, succeeded=False)
        position = self._position()
        if position + 1 < len(self.strategy_names):
            self._move(ExtractionState.TRYING_STRATEGY)
            self.index = position + 1
            return self.current_strategy
        self._move(ExtractionState.EXHAUSTED)
        return None

    def _record(self, attempt: ExtractionAttempt, *, succeeded: bool) -> None:
        if attempt.strategy_name != self.current_strategy:
            raise InvalidTransitionError(
                f"Attempt for {attempt.strategy_name} recorded while {self.current_strategy} is in flight"
            )
        if attempt.succeeded is not succeeded:
            raise InvalidTransitionError("Attempt outcome does not match the transition")
        self._attempts.append(attempt)
