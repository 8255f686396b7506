"""Shared fixtures for the reviewform test suite."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from reviewform.api.client import ReviewAPIClient
from reviewform.config import AutoSaveSettings, FormSettings
from reviewform.models import ReviewSubmissionData

TESTIMONIAL = (
    "Working with Jane on the data platform migration was a pleasure. "
    "She was thorough, communicative and delivered ahead of schedule."
)


class FakeClock:
    """Controllable clock; call it to read the time."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingAPI:
    """Collects requests sent through an ``httpx.MockTransport``.

    ``responses`` are served in order; the last one repeats.
    """

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self.responses = list(responses) or [httpx.Response(200, json={"success": True, "data": {}})]
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests) - 1, len(self.responses) - 1)
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return response

    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def client(self, base_url: str = "https://reviews.example.com") -> ReviewAPIClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return ReviewAPIClient(base_url, client=http)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 9, 30, tzinfo=UTC))


@pytest.fixture
def valid_values() -> dict[str, Any]:
    """Attribute values that satisfy every step."""
    return {
        "name": "John Doe",
        "email": "john@example.com",
        "relationship": "colleague",
        "rating": 5,
        "testimonial": TESTIMONIAL,
        "recommendation": True,
    }


@pytest.fixture
def valid_data(valid_values: dict[str, Any]) -> ReviewSubmissionData:
    return ReviewSubmissionData(**valid_values)


@pytest.fixture
def fast_settings() -> FormSettings:
    """Settings without debounce delays or the periodic auto-save task."""
    return FormSettings(
        autosave=AutoSaveSettings(debounce_seconds=0.0, interval_seconds=0.0),
        validation_debounce_seconds=0.0,
    )


@pytest.fixture
def api_factory() -> Callable[..., RecordingAPI]:
    return RecordingAPI

