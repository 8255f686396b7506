"""Tests for step navigation."""

from __future__ import annotations

import pytest

from reviewform.models import FormProgress
from reviewform.progress import ProgressTracker


class StepValidity:
    """Mutable stand-in for ``FieldValidator.is_step_valid``."""

    def __init__(self, *valid_steps: int) -> None:
        self.valid = set(valid_steps)

    def __call__(self, step: int) -> bool:
        return step in self.valid or step >= 3


@pytest.fixture
def validity() -> StepValidity:
    return StepValidity()


@pytest.fixture
def tracker(validity) -> ProgressTracker:
    return ProgressTracker(validity)


class TestProgressTracker:
    """Tests for ProgressTracker transitions."""

    def test_initial_state(self, tracker) -> None:
        """A new tracker starts on step 1 with nothing completed."""
        progress = tracker.progress
        assert progress.current_step == 1
        assert progress.total_steps == 4
        assert progress.completed_steps == set()
        assert progress.can_go_back is False
        assert progress.can_proceed is False
        assert progress.progress_percentage == 0

    def test_requires_two_steps(self, validity) -> None:
        """Fewer than two steps is rejected."""
        with pytest.raises(ValueError):
            ProgressTracker(validity, total_steps=1)

    def test_next_step_blocked_when_invalid(self, tracker) -> None:
        """Failed advances leave the state untouched, however often repeated."""
        before = tracker.progress
        for _ in range(3):
            assert tracker.next_step() is False
        assert tracker.progress == before

    def test_next_step_completes_current(self, tracker, validity) -> None:
        """Advancing marks the step it leaves as completed."""
        validity.valid.add(1)
        assert tracker.progress.can_proceed is True
        assert tracker.next_step() is True
        progress = tracker.progress
        assert progress.current_step == 2
        assert progress.completed_steps == {1}
        assert progress.can_go_back is True
        assert progress.progress_percentage == 25

    def test_next_step_stops_before_terminal(self, tracker, validity) -> None:
        """The terminal step is only reached through complete()."""
        validity.valid.update({1, 2})
        assert tracker.next_step()
        assert tracker.next_step()
        assert tracker.current_step == 3
        assert tracker.progress.can_proceed is False
        assert tracker.next_step() is False
        assert tracker.current_step == 3

    def test_prev_step(self, tracker, validity) -> None:
        """Going back is allowed except from the first step."""
        assert tracker.prev_step() is False
        validity.valid.add(1)
        tracker.next_step()
        assert tracker.prev_step() is True
        assert tracker.current_step == 1
        assert tracker.progress.completed_steps == {1}

    def test_go_to_step_rules(self, tracker, validity) -> None:
        """Jumps are allowed only to reachable input steps."""
        assert tracker.go_to_step(2) is False
        assert tracker.go_to_step(0) is False
        assert tracker.go_to_step(4) is False

        validity.valid.add(1)
        tracker.next_step()
        assert tracker.go_to_step(1) is True
        assert tracker.go_to_step(2) is True
        assert tracker.go_to_step(3) is False

    def test_complete_and_terminal_lock(self, tracker) -> None:
        """Completing locks the tracker on the terminal step."""
        tracker.complete()
        progress = tracker.progress
        assert progress.current_step == 4
        assert progress.completed_steps == {1, 2, 3, 4}
        assert progress.progress_percentage == 100
        assert progress.can_go_back is False
        assert progress.can_proceed is False
        assert tracker.prev_step() is False
        assert tracker.go_to_step(1) is False

    def test_reset(self, tracker, validity) -> None:
        """Reset returns to step 1 with nothing completed."""
        validity.valid.add(1)
        tracker.next_step()
        tracker.reset()
        assert tracker.progress.current_step == 1
        assert tracker.progress.completed_steps == set()

    def test_progress_returns_copy(self, tracker) -> None:
        """The progress record is a copy."""
        snapshot = tracker.progress
        snapshot.completed_steps.add(1)
        snapshot.current_step = 3
        assert tracker.progress.current_step == 1
        assert tracker.progress.completed_steps == set()


class TestRestore:
    """Tests for rehydrating a persisted progress record."""

    def test_restore_valid_record(self, tracker) -> None:
        """A consistent record is restored as is."""
        tracker.restore(FormProgress(current_step=3, completed_steps={1, 2}))
        assert tracker.current_step == 3
        assert tracker.progress.completed_steps == {1, 2}

    def test_restore_never_lands_on_terminal(self, tracker) -> None:
        """A saved terminal step resumes on verification."""
        tracker.restore(FormProgress(current_step=4, completed_steps={1, 2, 3, 4}))
        assert tracker.current_step == 3
        assert tracker.progress.completed_steps == {1, 2, 3}

    def test_restore_clamps_unreachable_step(self, tracker) -> None:
        """Steps past a gap in completion are clamped."""
        tracker.restore(FormProgress(current_step=3, completed_steps={2}))
        assert tracker.current_step == 1
        assert tracker.progress.completed_steps == set()

    def test_restore_clamps_out_of_range(self, tracker) -> None:
        """Out-of-range steps are clamped into the form."""
        tracker.restore(FormProgress(current_step=-5))
        assert tracker.current_step == 1


def test_step_statuses(tracker, validity) -> None:
    """Statuses report current, completed and error flags."""
    validity.valid.add(1)
    tracker.next_step()
    statuses = tracker.step_statuses({2: True})
    assert [status.number for status in statuses] == [1, 2, 3, 4]
    assert statuses[0].is_completed and not statuses[0].is_current
    assert statuses[1].is_current and statuses[1].has_error
    assert statuses[3].title == "Complete"
