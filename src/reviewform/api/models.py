"""Pydantic models for the review API responses and requests."""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ModerationAction = Literal["approve", "reject"]
SortField = Literal["approvedAt", "rating", "name", "organization"]

T = TypeVar("T")


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class ApiResponse(_ApiModel, Generic[T]):
    """Envelope shared by every review endpoint."""

    success: bool
    data: T | None = None
    error: str | None = None
    message: str | None = None


class SubmissionReceipt(_ApiModel):
    """``data`` of a successful submission."""

    review_id: str | None = None
    verification_sent: bool | None = None
    estimated_approval_time: str | None = None
    message: str | None = None
    next_steps: list[str] = Field(default_factory=list)


SubmissionResponse = ApiResponse[SubmissionReceipt]


class ModerationRequest(_ApiModel):
    review_id: str = Field(min_length=1)
    action: ModerationAction
    notes: str = ""
    featured: bool = False
    display_order: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PublicReviewer(_ApiModel):
    name: str
    title: str = ""
    organization: str = ""
    relationship: str = ""
    linkedin_url: str | None = None
    verified: bool = False


class PublicReviewContent(_ApiModel):
    rating: int
    testimonial: str
    project_association: str | None = None
    skills: list[str] = Field(default_factory=list)
    recommendation: bool | None = None
    highlights: list[str] = Field(default_factory=list)


class PublicReview(_ApiModel):
    id: str
    status: str | None = None
    reviewer: PublicReviewer
    content: PublicReviewContent
    metadata: dict[str, Any] = Field(default_factory=dict)
    admin: dict[str, Any] = Field(default_factory=dict)

    @property
    def featured(self) -> bool:
        return bool(self.admin.get("featured", False))


class Pagination(_ApiModel):
    total: int = 0
    limit: int = 12
    offset: int = 0
    has_more: bool = False
    total_pages: int = 0
    current_page: int = 1


class DisplayPage(_ApiModel):
    """``data`` of the public display listing."""

    reviews: list[PublicReview] = Field(default_factory=list)
    featured: list[PublicReview] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)
