"""Step navigation for the review form.

The tracker owns a :class:`~reviewform.models.FormProgress` record and only
mutates it through the transitions below. Step validity is supplied by the
caller as a predicate, normally ``FieldValidator.is_step_valid``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from .models import STEP_DEFINITIONS, TOTAL_STEPS, FormProgress, StepStatus

LOGGER = logging.getLogger(__name__)


class ProgressTracker:
    """Tracks the current step, completed steps and navigation permissions.

    Steps run from 1 to ``total_steps``; the last one is terminal and is only
    entered through :meth:`complete` after a successful submission.
    """

    def __init__(self, is_step_valid: Callable[[int], bool], total_steps: int = TOTAL_STEPS) -> None:
        if total_steps < 2:
            raise ValueError("A multi-step form needs at least two steps")
        self._is_step_valid = is_step_valid
        self.total_steps = total_steps
        self._progress = FormProgress(total_steps=total_steps)
        self.refresh()

    @property
    def progress(self) -> FormProgress:
        self.refresh()
        return FormProgress(
            current_step=self._progress.current_step,
            total_steps=self._progress.total_steps,
            completed_steps=set(self._progress.completed_steps),
            can_proceed=self._progress.can_proceed,
            can_go_back=self._progress.can_go_back,
            progress_percentage=self._progress.progress_percentage,
        )

    @property
    def current_step(self) -> int:
        return self._progress.current_step

    @property
    def terminal_step(self) -> int:
        return self.total_steps

    @property
    def last_input_step(self) -> int:
        return self.total_steps - 1

    @property
    def is_terminal(self) -> bool:
        return self._progress.current_step >= self.total_steps

    def refresh(self) -> None:
        """Recompute derived fields from the current step and completed set."""
        progress = self._progress
        current = progress.current_step
        progress.can_go_back = 1 < current < self.total_steps
        progress.can_proceed = current < self.last_input_step and self._is_step_valid(current)
        progress.progress_percentage = len(progress.completed_steps) / self.total_steps * 100

    def next_step(self) -> bool:
        """Advance one step if the current step is valid.

        Returns:
            True when the step changed; False leaves the state untouched
        """
        current = self._progress.current_step
        if current >= self.last_input_step:
            return False
        if not self._is_step_valid(current):
            LOGGER.debug("Step %d is not valid; staying put", current)
            return False
        self._progress.completed_steps.add(current)
        self._progress.current_step = current + 1
        self.refresh()
        return True

    def prev_step(self) -> bool:
        current = self._progress.current_step
        if current <= 1 or self.is_terminal:
            return False
        self._progress.current_step = current - 1
        self.refresh()
        return True

    def go_to_step(self, step: int) -> bool:
        """Jump to ``step``.

        Backward (and same-step) jumps are always allowed; forward jumps need
        every earlier step completed. The terminal step is never a target.
        """
        if step < 1 or step >= self.total_steps or self.is_terminal:
            return False
        current = self._progress.current_step
        if step > current and not all(n in self._progress.completed_steps for n in range(1, step)):
            return False
        self._progress.current_step = step
        self.refresh()
        return True

    def complete(self) -> None:
        """Enter the terminal step after a successful submission."""
        self._progress.completed_steps = set(range(1, self.total_steps + 1))
        self._progress.current_step = self.total_steps
        self.refresh()

    def reset(self) -> None:
        self._progress = FormProgress(total_steps=self.total_steps)
        self.refresh()

    def restore(self, progress: FormProgress) -> None:
        """Rehydrate from a persisted record, dropping anything out of range.

        A restored session never resumes on the terminal step; completed steps
        are kept only as a contiguous run from step 1 so forward jumps stay
        consistent with the navigation rules.
        """
        completed: set[int] = set()
        for step in range(1, self.last_input_step + 1):
            if step not in progress.completed_steps:
                break
            completed.add(step)
        current = progress.current_step
        max_reachable = min(len(completed) + 1, self.last_input_step)
        if current < 1 or current > max_reachable:
            LOGGER.debug("Clamping restored step %d to %d", current, max_reachable)
            current = max(1, min(current, max_reachable))
        self._progress = FormProgress(total_steps=self.total_steps, current_step=current, completed_steps=completed)
        self.refresh()

    def step_statuses(self, step_errors: Mapping[int, bool] | None = None) -> list[StepStatus]:
        errors = step_errors or {}
        return [
            StepStatus(
                number=definition.number,
                title=definition.title,
                description=definition.description,
                is_completed=definition.number in self._progress.completed_steps,
                is_current=definition.number == self._progress.current_step,
                has_error=bool(errors.get(definition.number, False)),
            )
            for definition in STEP_DEFINITIONS[: self.total_steps]
        ]
