"""Step navigation state machine with validation gating."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Sequence

from core.validators import ValidationResult

logger = logging.getLogger(__name__)


@dataclass
class NavigationState:
    """Current step plus per-step visited, completed and error flags."""

    current_step_index: int = 0
    visited_steps: set[int] = field(default_factory=lambda: {0})
    completed_steps: set[int] = field(default_factory=set)
    step_errors: dict[int, list[str]] = field(default_factory=dict)

    def copy(self) -> "NavigationState":
        return NavigationState(
            current_step_index=self.current_step_index,
            visited_steps=set(self.visited_steps),
            completed_steps=set(self.completed_steps),
            step_errors={index: list(errors) for index, errors in self.step_errors.items()},
        )


@dataclass(frozen=True)
class StepOutcome:
    """Validation outcome supplied to :meth:`StepNavigator.next_step`."""

    is_valid: bool
    errors: tuple[str, ...] = ()

    @classmethod
    def from_result(cls, result: ValidationResult) -> "StepOutcome":
        return cls(is_valid=result.is_valid, errors=tuple(result.messages))


StateListener = Callable[[NavigationState], None]


class StepNavigator:
    """Move between steps of a segmented form.

    Backward moves are always allowed. Forward moves require the current step
    to validate, and jumps are limited to accessible steps: the current step,
    any visited step, or the step right after a completed current step.
    Invalid requests are ignored and reported through the boolean return value.
    """

    def __init__(
        self,
        total_steps: int,
        *,
        state: NavigationState | None = None,
        on_change: StateListener | None = None,
    ) -> None:
        if total_steps < 1:
            raise ValueError("A form needs at least one step")
        self._total_steps = total_steps
        self._state = NavigationState()
        self._on_change = on_change
        if state is not None:
            self._state = self._sanitise(state)

    @property
    def state(self) -> NavigationState:
        """Return a copy of the current navigation state."""

        return self._state.copy()

    @property
    def total_steps(self) -> int:
        return self._total_steps

    @property
    def current_step_index(self) -> int:
        return self._state.current_step_index

    @property
    def is_first_step(self) -> bool:
        return self._state.current_step_index == 0

    @property
    def is_last_step(self) -> bool:
        return self._state.current_step_index == self._total_steps - 1

    @property
    def completion_ratio(self) -> float:
        return len(self._state.completed_steps) / self._total_steps

    @property
    def completion_percentage(self) -> float:
        return self.completion_ratio * 100

    def can_access(self, index: int) -> bool:
        state = self._state
        if not 0 <= index < self._total_steps:
            return False
        return (
            index == state.current_step_index
            or index in state.visited_steps
            or (index == state.current_step_index + 1 and state.current_step_index in state.completed_steps)
        )

    def go_to_step(self, index: int) -> bool:
        if not self.can_access(index):
            logger.debug("Ignoring jump to inaccessible step %s", index)
            return False
        if index == self._state.current_step_index:
            return True
        self._state.current_step_index = index
        self._state.visited_steps.add(index)
        self._notify()
        return True

    def next_step(self, outcome: StepOutcome | ValidationResult) -> bool:
        """Apply the current step's validation outcome; return ``True`` on advance.

        A valid outcome marks the current step completed. The index only moves
        when a later step exists, so the caller decides whether a valid last
        step means "submit".
        """

        if isinstance(outcome, ValidationResult):
            outcome = StepOutcome.from_result(outcome)
        state = self._state
        current = state.current_step_index
        if not outcome.is_valid:
            state.step_errors[current] = list(outcome.errors)
            self._notify()
            return False
        state.completed_steps.add(current)
        state.step_errors.pop(current, None)
        advanced = False
        if current < self._total_steps - 1:
            state.current_step_index = current + 1
            state.visited_steps.add(current + 1)
            advanced = True
        self._notify()
        return advanced

    def previous_step(self) -> bool:
        if self._state.current_step_index <= 0:
            return False
        self._state.current_step_index -= 1
        self._state.visited_steps.add(self._state.current_step_index)
        self._notify()
        return True

    def mark_step_completed(self, index: int) -> None:
        if not 0 <= index < self._total_steps:
            return
        self._state.completed_steps.add(index)
        self._state.step_errors.pop(index, None)
        self._notify()

    def set_step_errors(self, index: int, errors: Sequence[str]) -> None:
        if not 0 <= index < self._total_steps:
            return
        self._state.step_errors[index] = list(errors)
        self._notify()

    def is_step_completed(self, index: int) -> bool:
        return index in self._state.completed_steps

    def is_step_visited(self, index: int) -> bool:
        return index in self._state.visited_steps

    def has_step_error(self, index: int) -> bool:
        return index in self._state.step_errors

    def get_step_errors(self, index: int) -> list[str]:
        return list(self._state.step_errors.get(index, ()))

    def restore(self, state: NavigationState) -> None:
        """Replace the whole state, e.g. from a persisted snapshot."""

        self._state = self._sanitise(state)

    def reset(self) -> None:
        self._state = NavigationState()
        self._notify()

    def _sanitise(self, state: NavigationState) -> NavigationState:
        valid = range(self._total_steps)
        current = min(max(state.current_step_index, 0), self._total_steps - 1)
        visited = {index for index in state.visited_steps if index in valid}
        visited.add(current)
        if current != state.current_step_index:
            logger.warning(
                "Restored step index %s out of range; clamped to %s", state.current_step_index, current
            )
        return NavigationState(
            current_step_index=current,
            visited_steps=visited,
            completed_steps={index for index in state.completed_steps if index in valid},
            step_errors=_filter_errors(state.step_errors, valid),
        )

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state)


def _filter_errors(errors: Mapping[int, Iterable[str]], valid: range) -> dict[int, list[str]]:
    return {index: list(messages) for index, messages in errors.items() if index in valid}


__all__ = ["NavigationState", "StepNavigator", "StepOutcome"]
