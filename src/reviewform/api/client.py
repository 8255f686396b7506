"""Async HTTP client for the review intake, moderation and display endpoints."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .models import (
    ApiResponse,
    DisplayPage,
    ModerationAction,
    ModerationRequest,
    SortField,
    SubmissionResponse,
)

LOGGER = logging.getLogger(__name__)

SUBMIT_PATH = "/api/reviews/submit"
ADMIN_PATH = "/api/reviews/admin"
DISPLAY_PATH = "/api/reviews/display"

DEFAULT_TIMEOUT = 30.0
MAX_DISPLAY_LIMIT = 50


class ReviewAPIError(Exception):
    """Base exception for review API errors."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class NetworkError(ReviewAPIError):
    """The request never produced a usable answer (offline, timeout, 5xx, garbage body)."""


class ServerRejectionError(ReviewAPIError):
    """The server answered but reported ``success: false``."""


ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], body: dict[str, Any], failure_message: str) -> ModelT:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise NetworkError(f"{failure_message} (unexpected response)") from exc


class ReviewAPIClient:
    """HTTP client for the review endpoints.

    The client never retries on its own; retry decisions belong to the
    caller. An ``httpx.AsyncClient`` can be injected (tests use one backed by
    ``httpx.MockTransport``); otherwise one is created and owned here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        admin_token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Site root, e.g. ``https://example.com``
            timeout: HTTP timeout in seconds for an owned client
            admin_token: Bearer token for moderation requests
            client: Optional pre-configured async client
        """
        self.base_url = base_url.rstrip("/")
        self.admin_token = admin_token
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> ReviewAPIClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        failure_message: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Send a request and return the decoded JSON envelope.

        Raises:
            NetworkError: Transport failure, 5xx response, or a non-JSON body
            ServerRejectionError: The envelope reports ``success: false``
        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            LOGGER.debug("%s %s failed: %s", method, url, exc)
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

        status = response.status_code
        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError(f"{failure_message} (HTTP {status})", status_code=status) from exc
        if not isinstance(body, dict):
            raise NetworkError(f"{failure_message} (HTTP {status})", status_code=status)

        if response.is_error or body.get("success") is not True:
            code = body.get("error") if isinstance(body.get("error"), str) else None
            message = code or body.get("message") or failure_message
            LOGGER.debug("%s %s rejected (HTTP %s): %s", method, url, status, message)
            if status >= 500:
                raise NetworkError(str(message), status_code=status, code=code)
            raise ServerRejectionError(str(message), status_code=status, code=code)
        return body

    async def submit_review(self, payload: dict[str, Any]) -> SubmissionResponse:
        """POST a testimonial payload to the intake endpoint.

        Args:
            payload: Canonical camelCase submission payload

        Returns:
            The parsed success envelope
        """
        body = await self._request(
            "POST",
            SUBMIT_PATH,
            failure_message="Submission failed",
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        try:
            return SubmissionResponse.model_validate(body)
        except ValidationError as exc:
            # Accepted by the server; only the receipt is unreadable
            LOGGER.warning("Submission accepted but the receipt could not be parsed: %s", exc)
            return SubmissionResponse(success=True)

    async def moderate_review(
        self,
        review_id: str,
        action: ModerationAction,
        *,
        notes: str = "",
        featured: bool = False,
        display_order: int | None = None,
    ) -> ApiResponse[dict[str, Any]]:
        request = ModerationRequest(
            review_id=review_id,
            action=action,
            notes=notes,
            featured=featured,
            display_order=display_order,
        )
        headers = {"Content-Type": "application/json"}
        if self.admin_token:
            headers["Authorization"] = f"Bearer {self.admin_token}"
        body = await self._request(
            "POST",
            ADMIN_PATH,
            failure_message="Moderation failed",
            json=request.to_payload(),
            headers=headers,
        )
        return _parse(ApiResponse[dict[str, Any]], body, "Moderation failed")

    async def fetch_display_reviews(
        self,
        *,
        limit: int = 12,
        offset: int = 0,
        sort_by: SortField = "approvedAt",
        sort_order: str = "desc",
        featured: bool | None = None,
        min_rating: int | None = None,
        relationship: str | None = None,
        search: str | None = None,
    ) -> DisplayPage:
        """Fetch a page of published reviews.

        ``limit`` is clamped to the server maximum of 50.
        """
        params: dict[str, Any] = {
            "limit": max(1, min(limit, MAX_DISPLAY_LIMIT)),
            "offset": max(0, offset),
            "sortBy": sort_by,
            "sortOrder": "asc" if sort_order == "asc" else "desc",
        }
        if featured is not None:
            params["featured"] = "true" if featured else "false"
        if min_rating is not None:
            params["minRating"] = min_rating
        if relationship:
            params["relationship"] = relationship
        if search:
            params["search"] = search

        body = await self._request("GET", DISPLAY_PATH, failure_message="Failed to load reviews", params=params)
        envelope = _parse(ApiResponse[DisplayPage], body, "Failed to load reviews")
        return envelope.data or DisplayPage()
