"""Submission of the completed review form."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .api.client import ReviewAPIClient, ReviewAPIError
from .logging_utils import render_fields_block
from .models import ReviewSubmissionData, SubmissionResult, SubmissionState
from .persistence.autosave import AutoSaveStore
from .progress import ProgressTracker
from .timing import Clock, epoch_millis, utc_now
from .validation import FieldValidator

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
FALLBACK_ERROR = "Submission failed"


class SubmissionController:
    """Runs validation, the honeypot check and the POST for a submission.

    Only one submission is in flight at a time: calls made while
    ``state.is_submitting`` is set return an ``ignored`` result without doing
    anything. Failures are recorded on :attr:`state` and returned as a
    :class:`~reviewform.models.SubmissionResult`; nothing is retried
    automatically.
    """

    def __init__(
        self,
        client: ReviewAPIClient,
        validator: FieldValidator,
        tracker: ProgressTracker,
        autosave: AutoSaveStore,
        data_provider: Callable[[], ReviewSubmissionData],
        *,
        clock: Clock = utc_now,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.client = client
        self.validator = validator
        self.tracker = tracker
        self.autosave = autosave
        self.max_retries = max_retries
        self.state = SubmissionState()
        self._data_provider = data_provider
        self._clock = clock
        self._detached = False
        self._generation = 0

    @property
    def is_submitting(self) -> bool:
        return self.state.is_submitting

    def detach(self) -> None:
        """Stop in-flight calls from touching any state (form unmounted)."""
        self._detached = True

    def reset(self) -> None:
        """Start over with a fresh state; results of in-flight attempts are dropped."""
        self._generation += 1
        self.state = SubmissionState()

    def _is_stale(self, generation: int) -> bool:
        return self._detached or generation != self._generation

    def _rejection(self) -> SubmissionResult | None:
        if self.state.is_submitting:
            LOGGER.debug("Submission already in flight; ignoring duplicate request")
            return SubmissionResult(ok=False, ignored=True)
        if self._detached:
            return SubmissionResult(ok=False, ignored=True)
        if self.state.is_success:
            return SubmissionResult(ok=True, review_id=self.state.review_id, ignored=True)
        return None

    async def submit(self) -> SubmissionResult:
        rejected = self._rejection()
        if rejected is not None:
            return rejected

        # Set before the first await so a second call sees it
        self.state.is_submitting = True
        self.state.error = None
        self.state.last_attempt = self._clock()
        generation = self._generation
        try:
            return await self._submit(generation)
        finally:
            if not self._is_stale(generation):
                self.state.is_submitting = False

    async def retry(self) -> SubmissionResult:
        """Submit again after a failure.

        Exceeding ``max_retries`` only logs a warning; the attempt still runs.
        """
        rejected = self._rejection()
        if rejected is not None:
            return rejected
        self.state.retry_count += 1
        if self.state.retry_count > self.max_retries:
            LOGGER.warning(
                "Submission retried %d times (max %d)",
                self.state.retry_count,
                self.max_retries,
            )
        return await self.submit()

    async def _submit(self, generation: int) -> SubmissionResult:
        invalid_step = await self.validator.validate_all()
        if self._is_stale(generation):
            return SubmissionResult(ok=False, ignored=True)
        if invalid_step is not None:
            LOGGER.debug("Submission blocked: step %d is invalid", invalid_step)
            return SubmissionResult(ok=False, invalid_step=invalid_step)

        data = self._data_provider()
        if data.honeypot:
            # Behave like a success so bots get no signal
            LOGGER.debug("Honeypot field filled; dropping submission")
            self._finish(review_id=None, verification_sent=None)
            return SubmissionResult(ok=True, spam_blocked=True)

        payload = data.to_payload(epoch_millis(self._clock()))
        try:
            response = await self.client.submit_review(payload)
        except ReviewAPIError as exc:
            if self._is_stale(generation):
                return SubmissionResult(ok=False, error=exc.message, ignored=True)
            message = exc.message or FALLBACK_ERROR
            self.state.error = message
            LOGGER.warning("Review submission failed: %s", message)
            return SubmissionResult(ok=False, error=message)

        receipt = response.data
        review_id = receipt.review_id if receipt else None
        if self._is_stale(generation):
            return SubmissionResult(ok=True, review_id=review_id, ignored=True)

        self._finish(review_id=review_id, verification_sent=receipt.verification_sent if receipt else None)
        LOGGER.info(
            render_fields_block(
                "Review submitted",
                {
                    "Review ID": review_id or "(none)",
                    "Reviewer": payload.get("name"),
                    "Rating": payload.get("rating"),
                    "Verification sent": self.state.verification_sent,
                    "Retries": self.state.retry_count,
                },
            )
        )
        return SubmissionResult(ok=True, review_id=review_id)

    def _finish(self, *, review_id: str | None, verification_sent: bool | None) -> None:
        self.state.is_success = True
        self.state.error = None
        self.state.review_id = review_id
        self.state.verification_sent = verification_sent
        self.autosave.clear_saved_progress()
        self.tracker.complete()
