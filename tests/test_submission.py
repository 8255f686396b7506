"""Tests for the SubmissionController."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from reviewform.models import ReviewSubmissionData
from reviewform.persistence import DEFAULT_STORAGE_KEY, AutoSaveStore, MemoryStore
from reviewform.progress import ProgressTracker
from reviewform.submission import SubmissionController
from reviewform.validation import FieldValidator


class Harness:
    """A controller wired to real components over an in-memory store."""

    def __init__(self, api, data: ReviewSubmissionData, clock, *, max_retries: int = 3) -> None:
        self.data = data
        self.store = MemoryStore()
        self.store.set(DEFAULT_STORAGE_KEY, "{}")
        self.validator = FieldValidator(lambda: self.data)
        self.tracker = ProgressTracker(self.validator.is_step_valid)
        self.autosave = AutoSaveStore(self.store, clock=clock)
        self.controller = SubmissionController(
            api.client(),
            self.validator,
            self.tracker,
            self.autosave,
            lambda: self.data,
            clock=clock,
            max_retries=max_retries,
        )


def ok_response(review_id: str = "abc") -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": {"reviewId": review_id, "verificationSent": True}})


@pytest.mark.asyncio
class TestSubmissionController:
    """Tests for submit and retry."""

    async def test_successful_submission(self, api_factory, valid_data, clock) -> None:
        """A success records the receipt, clears the draft and completes the form."""
        api = api_factory(ok_response())
        harness = Harness(api, valid_data, clock)

        result = await harness.controller.submit()

        assert result.ok and result.review_id == "abc"
        state = harness.controller.state
        assert state.is_success is True
        assert state.is_submitting is False
        assert state.review_id == "abc"
        assert state.verification_sent is True
        assert state.last_attempt == clock()
        assert harness.tracker.current_step == 4
        assert DEFAULT_STORAGE_KEY not in harness.store

    async def test_payload_is_canonical(self, api_factory, valid_data, clock) -> None:
        """The POST body holds the trimmed non-empty fields and a timestamp."""
        api = api_factory(ok_response())
        valid_data.organization = "Acme"
        await Harness(api, valid_data, clock).controller.submit()

        body = api.bodies()[0]
        assert body == {
            "name": "John Doe",
            "email": "john@example.com",
            "organization": "Acme",
            "relationship": "colleague",
            "rating": 5,
            "testimonial": valid_data.testimonial,
            "recommendation": True,
            "timestamp": int(clock().timestamp() * 1000),
        }

    async def test_invalid_form_makes_no_request(self, api_factory, valid_data, clock) -> None:
        """Validation failures never reach the network."""
        api = api_factory(ok_response())
        valid_data.testimonial = "Too short"
        harness = Harness(api, valid_data, clock)

        result = await harness.controller.submit()

        assert not result.ok
        assert result.invalid_step == 2
        assert result.error is None
        assert api.requests == []
        assert harness.controller.state.is_submitting is False
        assert harness.validator.get_field_error("testimonial") is not None

    async def test_honeypot_blocks_silently(self, api_factory, valid_data, clock) -> None:
        """A filled honeypot looks like success but never hits the network."""
        api = api_factory(ok_response())
        valid_data.honeypot = "http://spam.example"
        harness = Harness(api, valid_data, clock)

        result = await harness.controller.submit()

        assert result.ok and result.spam_blocked
        assert api.requests == []
        assert harness.controller.state.error is None
        assert harness.controller.state.is_success is True
        assert harness.tracker.is_terminal
        assert DEFAULT_STORAGE_KEY not in harness.store

    async def test_rejection_keeps_form_state(self, api_factory, valid_data, clock) -> None:
        """A rejected POST keeps the step and the saved draft."""
        api = api_factory(httpx.Response(200, json={"success": False, "error": "Network error"}))
        harness = Harness(api, valid_data, clock)
        harness.tracker.next_step()
        harness.tracker.next_step()

        result = await harness.controller.submit()

        assert not result.ok
        assert result.error == "Network error"
        assert harness.controller.state.error == "Network error"
        assert harness.controller.state.is_success is False
        assert harness.tracker.current_step == 3
        assert DEFAULT_STORAGE_KEY in harness.store
        assert len(api.requests) == 1

    async def test_transport_failure_sets_error(self, api_factory, valid_data, clock) -> None:
        """Connection errors are recorded on the state."""
        api = api_factory(httpx.ConnectError("offline"))
        harness = Harness(api, valid_data, clock)
        result = await harness.controller.submit()
        assert result.error == "offline"
        assert harness.controller.state.error == "offline"

    async def test_retry_resends_identical_payload(self, api_factory, valid_data, clock) -> None:
        """A retry posts the same body as the failed attempt."""
        api = api_factory(
            httpx.Response(200, json={"success": False, "error": "Network error"}),
            ok_response("xyz"),
        )
        harness = Harness(api, valid_data, clock)

        await harness.controller.submit()
        result = await harness.controller.retry()

        assert result.ok and result.review_id == "xyz"
        bodies = api.bodies()
        assert len(bodies) == 2
        assert bodies[0] == bodies[1]
        assert harness.controller.state.retry_count == 1
        assert harness.controller.state.error is None

    async def test_retry_beyond_limit_warns_but_submits(self, api_factory, valid_data, clock, caplog) -> None:
        """Going past max_retries logs a warning and still submits."""
        api = api_factory(httpx.Response(503, json={"success": False}))
        harness = Harness(api, valid_data, clock, max_retries=1)

        with caplog.at_level(logging.WARNING, logger="reviewform.submission"):
            await harness.controller.retry()
            await harness.controller.retry()

        assert len(api.requests) == 2
        assert harness.controller.state.retry_count == 2
        assert "retried 2 times" in caplog.text

    async def test_concurrent_submit_sends_one_request(self, api_factory, valid_data, clock) -> None:
        """A second submit during an in-flight one is ignored."""
        api = api_factory(ok_response())
        harness = Harness(api, valid_data, clock)

        first, second = await asyncio.gather(harness.controller.submit(), harness.controller.submit())

        assert len(api.requests) == 1
        assert first.ok
        assert second.ignored

    async def test_submit_after_success_is_ignored(self, api_factory, valid_data, clock) -> None:
        """Once submitted, further submits send nothing."""
        api = api_factory(ok_response())
        harness = Harness(api, valid_data, clock)
        await harness.controller.submit()
        again = await harness.controller.submit()
        assert again.ignored
        assert len(api.requests) == 1

    async def test_detached_controller_leaves_state_alone(self, api_factory, valid_data, clock) -> None:
        """Responses arriving after unmount do not mutate state."""
        release = asyncio.Event()
        api = api_factory(ok_response())

        async def slow_handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return api.handler(request)

        harness = Harness(api, valid_data, clock)
        harness.controller.client._client = httpx.AsyncClient(transport=httpx.MockTransport(slow_handler))

        task = asyncio.create_task(harness.controller.submit())
        await asyncio.sleep(0.01)
        assert harness.controller.is_submitting
        harness.controller.detach()
        release.set()
        await task

        assert harness.controller.state.is_success is False
        assert harness.controller.state.review_id is None
        assert harness.tracker.current_step == 1
        assert DEFAULT_STORAGE_KEY in harness.store

    async def test_reset(self, api_factory, valid_data, clock) -> None:
        """Reset clears the error and the retry count."""
        api = api_factory(httpx.Response(400, json={"success": False, "error": "Invalid"}))
        harness = Harness(api, valid_data, clock)
        await harness.controller.submit()
        harness.controller.reset()
        assert harness.controller.state.error is None
        assert harness.controller.state.retry_count == 0

    async def test_reset_drops_in_flight_result(self, api_factory, valid_data, clock) -> None:
        """A response arriving after reset does not complete the fresh form."""
        release = asyncio.Event()
        api = api_factory(ok_response())

        async def slow_handler(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return api.handler(request)

        harness = Harness(api, valid_data, clock)
        harness.controller.client._client = httpx.AsyncClient(transport=httpx.MockTransport(slow_handler))

        task = asyncio.create_task(harness.controller.submit())
        await asyncio.sleep(0.01)
        harness.controller.reset()
        harness.tracker.reset()
        release.set()
        result = await task

        assert result.ignored
        assert harness.controller.state.is_success is False
        assert harness.controller.state.is_submitting is False
        assert harness.tracker.current_step == 1
        assert DEFAULT_STORAGE_KEY in harness.store

    async def test_ignored_retry_does_not_count(self, api_factory, valid_data, clock) -> None:
        """Retries rejected after success or detach leave retry_count alone."""
        api = api_factory(ok_response())
        harness = Harness(api, valid_data, clock)
        await harness.controller.submit()

        again = await harness.controller.retry()
        assert again.ignored
        assert harness.controller.state.retry_count == 0

        harness.controller.reset()
        harness.controller.detach()
        detached = await harness.controller.retry()
        assert detached.ignored
        assert harness.controller.state.retry_count == 0
        assert len(api.requests) == 1
