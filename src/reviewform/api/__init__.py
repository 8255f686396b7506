"""Client for the external review endpoints."""

from .client import (
    ADMIN_PATH,
    DISPLAY_PATH,
    SUBMIT_PATH,
    NetworkError,
    ReviewAPIClient,
    ReviewAPIError,
    ServerRejectionError,
)
from .models import (
    ApiResponse,
    DisplayPage,
    ModerationRequest,
    Pagination,
    PublicReview,
    SubmissionReceipt,
    SubmissionResponse,
)

__all__ = [
    "ADMIN_PATH",
    "DISPLAY_PATH",
    "SUBMIT_PATH",
    "ApiResponse",
    "DisplayPage",
    "ModerationRequest",
    "NetworkError",
    "Pagination",
    "PublicReview",
    "ReviewAPIClient",
    "ReviewAPIError",
    "ServerRejectionError",
    "SubmissionReceipt",
    "SubmissionResponse",
]
