"""
Form orchestration for the testimonial submission flow.

:class:`ReviewForm` is the single source of truth for a form session. It owns
the draft and wires the field validator, progress tracker, auto-save store and
submission controller together. Rendering layers read its state properties and
call its actions; they never mutate the components directly.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
from collections.abc import Callable, Mapping
from typing import Any

from .api.client import ReviewAPIClient
from .config import FormSettings
from .models import (
    FormProgress,
    ReviewSubmissionData,
    StepStatus,
    SubmissionResult,
    SubmissionState,
    ValidationState,
)
from .persistence.autosave import AutoSaveStore, Snapshot
from .persistence.stores import MemoryStore, Store
from .progress import ProgressTracker
from .submission import SubmissionController
from .timing import Clock, Debouncer, utc_now
from .validation import AsyncCheck, FieldValidator

LOGGER = logging.getLogger(__name__)

_SAVE_KEY = "snapshot"


class ReviewForm:
    """A multi-step testimonial form session.

    Actions that change the step, validate, or submit are coroutines and must
    run on the event loop that owns the form. ``set_value`` is synchronous
    but schedules debounced work, so it also needs a running loop.

    State changes are published to callbacks registered with
    :meth:`register_callback` as ``(event_type, data)``.
    """

    def __init__(
        self,
        client: ReviewAPIClient,
        store: Store | None = None,
        *,
        settings: FormSettings | None = None,
        clock: Clock = utc_now,
        async_checks: Mapping[str, AsyncCheck] | None = None,
    ) -> None:
        """Initialize the form.

        Args:
            client: API client used for the submission POST
            store: Snapshot backend; an in-memory store when omitted
            settings: Timing, retry and auto-save settings
            clock: Time source for TTLs and payload timestamps
            async_checks: Optional async field checks, see ``FieldValidator``
        """
        self.settings = settings or FormSettings()
        self._data = ReviewSubmissionData()
        self._clock = clock
        self._update_callbacks: list[Callable[[str, Any], None]] = []
        self._interval_task: asyncio.Task[None] | None = None
        self._mounted = False
        self._closed = False

        autosave_settings = self.settings.autosave
        self.validator = FieldValidator(
            self._current_data,
            async_checks=async_checks,
            debounce_seconds=self.settings.validation_debounce_seconds,
        )
        self.tracker = ProgressTracker(self.validator.is_step_valid)
        self.autosave = AutoSaveStore(
            store if store is not None else MemoryStore(),
            key=autosave_settings.storage_key,
            ttl=autosave_settings.ttl,
            clock=clock,
            enabled=autosave_settings.enabled,
        )
        self.controller = SubmissionController(
            client,
            self.validator,
            self.tracker,
            self.autosave,
            self._current_data,
            clock=clock,
            max_retries=self.settings.max_retries,
        )
        self._save_debouncer = Debouncer(autosave_settings.debounce_seconds)

    async def __aenter__(self) -> ReviewForm:
        await self.mount()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _current_data(self) -> ReviewSubmissionData:
        return self._data

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> bool:
        """Start the session, restoring a saved draft if one is within the TTL.

        Returns:
            True when a saved draft was restored
        """
        if self._mounted or self._closed:
            return False
        self._mounted = True
        restored = self.load_progress() is not None

        interval = self.settings.autosave.interval_seconds
        if self.autosave.enabled and interval > 0:
            self._interval_task = asyncio.get_running_loop().create_task(self._autosave_loop(interval))
        self._notify_update("mounted", {"restored": restored})
        return restored

    async def close(self) -> None:
        """Unmount: cancel pending work and stop in-flight calls from mutating state."""
        if self._closed:
            return
        self._closed = True
        self.controller.detach()
        self.validator.close()
        self._save_debouncer.close()
        if self._interval_task is not None:
            self._interval_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._interval_task
            self._interval_task = None
        self._notify_update("closed", {})

    async def _autosave_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.save_progress()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def data(self) -> ReviewSubmissionData:
        """A copy of the current draft."""
        return self._data.copy()

    @property
    def progress(self) -> FormProgress:
        return self.tracker.progress

    @property
    def submission(self) -> SubmissionState:
        return dataclasses.replace(self.controller.state)

    @property
    def validation(self) -> ValidationState:
        return self.validator.state

    @property
    def steps(self) -> list[StepStatus]:
        return self.tracker.step_statuses(self.validator.step_errors())

    @property
    def is_closed(self) -> bool:
        return self._closed

    def get_value(self, field_name: str) -> Any:
        return self._data.get(field_name)

    def get_field_error(self, field_name: str) -> str | None:
        return self.validator.get_field_error(field_name)

    def get_step_progress(self, step: int) -> int:
        return self.validator.get_step_progress(step)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def set_value(self, field_name: str, value: Any) -> None:
        """Change one field and schedule debounced validation and auto-save.

        Raises:
            KeyError: If ``field_name`` is not a form field
        """
        if self._closed:
            return
        self._data.set(field_name, value)
        self.validator.field_changed(field_name)
        self._schedule_save()
        self._notify_update("value_changed", {"field": field_name, "value": value})

    def update(self, **values: Any) -> None:
        for field_name, value in values.items():
            self.set_value(field_name, value)

    async def blur(self, field_name: str) -> bool:
        """Mark a field touched and validate it immediately."""
        if self._closed:
            return False
        self.validator.mark_touched(field_name)
        valid = await self.validator.validate_field(field_name)
        self._notify_update("validated", {"field": field_name, "valid": valid})
        return valid

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def next_step(self) -> bool:
        """Validate the current step and advance when it passes.

        Every field of the step is touched so its errors become visible.
        """
        if self._closed:
            return False
        await self.validator.drain()
        step = self.tracker.current_step
        await self.validator.validate_step(step)
        if not self.tracker.next_step():
            self._notify_update("step_blocked", {"step": step})
            return False
        self._step_changed(step)
        return True

    def prev_step(self) -> bool:
        if self._closed:
            return False
        step = self.tracker.current_step
        if not self.tracker.prev_step():
            return False
        self._step_changed(step)
        return True

    async def go_to_step(self, step: int) -> bool:
        if self._closed:
            return False
        await self.validator.drain()
        previous = self.tracker.current_step
        if not self.tracker.go_to_step(step):
            return False
        if step != previous:
            self._step_changed(previous)
        return True

    def _step_changed(self, previous: int) -> None:
        current = self.tracker.current_step
        LOGGER.debug("Moved from step %d to step %d", previous, current)
        self.save_progress()
        self._notify_update("step_changed", {"from": previous, "to": current})

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_form(self, **updates: Any) -> SubmissionResult:
        """Submit the draft, applying ``updates`` first.

        On a validation failure the form moves to the first invalid step.
        """
        if self._closed:
            return SubmissionResult(ok=False, ignored=True)
        self.update(**updates)
        await self.validator.drain()
        return await self._run_submission(self.controller.submit)

    async def retry_submission(self, **updates: Any) -> SubmissionResult:
        if self._closed:
            return SubmissionResult(ok=False, ignored=True)
        self.update(**updates)
        await self.validator.drain()
        return await self._run_submission(self.controller.retry)

    async def _run_submission(self, action: Callable[[], Any]) -> SubmissionResult:
        if not self.controller.is_submitting:
            self._notify_update("submitting", {})
        result: SubmissionResult = await action()
        if result.ignored or self._closed:
            return result

        if result.invalid_step is not None:
            if self.tracker.current_step != result.invalid_step:
                previous = self.tracker.current_step
                if self.tracker.go_to_step(result.invalid_step):
                    self._step_changed(previous)
            self._notify_update("submission_invalid", {"step": result.invalid_step})
        elif result.ok:
            self._save_debouncer.cancel_all()
            self._notify_update("submitted", {"review_id": result.review_id, "spam_blocked": result.spam_blocked})
        else:
            self._notify_update("submission_failed", {"error": result.error})
        return result

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def reset_form(self) -> None:
        """Return to a blank draft on step 1 and drop the saved snapshot."""
        self._save_debouncer.cancel_all()
        self._data = ReviewSubmissionData()
        self.validator.reset()
        self.tracker.reset()
        self.controller.reset()
        self.autosave.clear_saved_progress()
        self._notify_update("reset", {})

    def save_progress(self) -> bool:
        """Write a snapshot now. Never writes once the form is complete."""
        if self._closed or self.tracker.is_terminal:
            return False
        snapshot = Snapshot(
            form_data=self._data.to_dict(),
            progress=self.tracker.progress.to_dict(),
            timestamp=self.autosave.now_millis(),
        )
        saved = self.autosave.save_progress(snapshot)
        if saved:
            self._notify_update("saved", {"timestamp": snapshot.timestamp})
        return saved

    def load_progress(self) -> Snapshot | None:
        """Restore the saved snapshot into the form, if one is available."""
        snapshot = self.autosave.load_progress()
        if snapshot is None:
            return None
        try:
            progress = FormProgress.from_dict(snapshot.progress)
            data = ReviewSubmissionData.from_dict(snapshot.form_data)
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Discarding unusable form progress: %s", exc)
            self.autosave.clear_saved_progress()
            return None

        self._data = data
        self.tracker.restore(progress)
        LOGGER.info("Restored saved form progress at step %d", self.tracker.current_step)
        self._notify_update("restored", {"step": self.tracker.current_step})
        return snapshot

    def clear_saved_progress(self) -> None:
        self.autosave.clear_saved_progress()

    def _schedule_save(self) -> None:
        if not self.autosave.enabled:
            return
        self._save_debouncer.schedule(_SAVE_KEY, self._debounced_save)

    async def _debounced_save(self) -> None:
        self.save_progress()

    async def flush(self) -> None:
        """Wait for pending debounced validation and auto-save work."""
        await self.validator.drain()
        await self._save_debouncer.drain()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def register_callback(self, callback: Callable[[str, Any], None]) -> None:
        """Register a callback for state updates.

        Args:
            callback: Function to call with (event_type, data)
        """
        if callback not in self._update_callbacks:
            self._update_callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[str, Any], None]) -> None:
        if callback in self._update_callbacks:
            self._update_callbacks.remove(callback)

    def _notify_update(self, event_type: str, data: Any) -> None:
        for callback in list(self._update_callbacks):
            with contextlib.suppress(Exception):
                callback(event_type, data)
