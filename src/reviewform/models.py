"""Data records for the testimonial submission flow.

The records here are plain dataclasses. ``ReviewSubmissionData`` is the
in-progress form draft and deliberately accepts any value: rules are enforced
by :mod:`reviewform.validation`, not on assignment, because the user is
usually mid-edit.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Literal

ReviewerRelationship = Literal["professor", "colleague", "supervisor", "collaborator", "client"]

RELATIONSHIPS: tuple[str, ...] = ("professor", "colleague", "supervisor", "collaborator", "client")

# snake_case attribute -> camelCase wire key
FIELD_ALIASES: dict[str, str] = {
    "linkedin_url": "linkedinUrl",
    "project_association": "projectAssociation",
}
_ALIAS_TO_FIELD = {alias: name for name, alias in FIELD_ALIASES.items()}

# Fields left out of the canonical submission payload
_PAYLOAD_EXCLUDED = {"honeypot"}


def wire_key(field_name: str) -> str:
    return FIELD_ALIASES.get(field_name, field_name)


def field_name_for(key: str) -> str:
    """Map a wire key (or an attribute name) to the dataclass attribute name."""
    return _ALIAS_TO_FIELD.get(key, key)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return not value
    return False


@dataclass
class ReviewSubmissionData:
    """The testimonial form draft.

    Attributes:
        name: Reviewer's full name
        email: Reviewer's email address
        title: Optional job title
        organization: Optional organization
        relationship: One of ``RELATIONSHIPS``
        linkedin_url: Optional LinkedIn profile URL
        rating: Star rating, 1-5
        testimonial: Testimonial text
        project_association: Optional project the review relates to
        skills: Up to ten skill tags
        recommendation: Whether the reviewer recommends the work
        honeypot: Hidden anti-spam field, must stay empty
    """

    name: str = ""
    email: str = ""
    title: str | None = None
    organization: str | None = None
    relationship: ReviewerRelationship | None = None
    linkedin_url: str | None = None
    rating: int = 5
    testimonial: str = ""
    project_association: str | None = None
    skills: list[str] = field(default_factory=list)
    recommendation: bool = True
    honeypot: str = ""

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def get(self, field_name: str) -> Any:
        if field_name not in self.field_names():
            raise KeyError(f"Unknown form field: {field_name}")
        return getattr(self, field_name)

    def set(self, field_name: str, value: Any) -> None:
        if field_name not in self.field_names():
            raise KeyError(f"Unknown form field: {field_name}")
        setattr(self, field_name, value)

    def copy(self) -> ReviewSubmissionData:
        return copy.deepcopy(self)

    def values(self) -> dict[str, Any]:
        """Return attribute name -> value for every field."""
        return {name: copy.deepcopy(getattr(self, name)) for name in self.field_names()}

    def to_dict(self) -> dict[str, Any]:
        """Serialize every field using wire (camelCase) keys."""
        return {wire_key(name): value for name, value in self.values().items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewSubmissionData:
        """Build a draft from wire or attribute keys, ignoring unknown keys and nulls.

        Null values keep the field default, so restoring a partially filled
        snapshot never wipes out defaults such as ``rating=5``.
        """
        known = set(cls.field_names())
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = field_name_for(str(key))
            if name in known and value is not None:
                kwargs[name] = copy.deepcopy(value)
        return cls(**kwargs)

    def to_payload(self, timestamp: int) -> dict[str, Any]:
        """Build the canonical submission payload.

        Args:
            timestamp: Submission time in epoch milliseconds

        Returns:
            camelCase dict without the honeypot, blank optional fields or empty lists
        """
        payload: dict[str, Any] = {}
        for name, value in self.values().items():
            if name in _PAYLOAD_EXCLUDED or _is_blank(value):
                continue
            if isinstance(value, str):
                value = value.strip()
            payload[wire_key(name)] = value
        payload["timestamp"] = int(timestamp)
        return payload


@dataclass(frozen=True)
class StepDefinition:
    number: int
    title: str
    description: str


STEP_DEFINITIONS: tuple[StepDefinition, ...] = (
    StepDefinition(1, "Personal Info", "Your contact information and professional relationship"),
    StepDefinition(2, "Review Content", "Your testimonial, rating, and feedback"),
    StepDefinition(3, "Verification", "Review and submit your testimonial"),
    StepDefinition(4, "Complete", "Confirmation and next steps"),
)

TOTAL_STEPS = len(STEP_DEFINITIONS)
TERMINAL_STEP = TOTAL_STEPS

STEP_FIELDS: dict[int, tuple[str, ...]] = {
    1: ("name", "email", "title", "organization", "relationship", "linkedin_url"),
    2: ("rating", "testimonial", "project_association", "skills", "recommendation"),
    3: (),
}


def step_for_field(field_name: str) -> int | None:
    for step, names in STEP_FIELDS.items():
        if field_name in names:
            return step
    return None


@dataclass(frozen=True)
class StepStatus:
    """A step definition decorated with its current state for progress indicators."""

    number: int
    title: str
    description: str
    is_completed: bool = False
    is_current: bool = False
    has_error: bool = False


@dataclass
class FormProgress:
    current_step: int = 1
    total_steps: int = TOTAL_STEPS
    completed_steps: set[int] = field(default_factory=set)
    can_proceed: bool = False
    can_go_back: bool = False
    progress_percentage: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.current_step >= self.total_steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentStep": self.current_step,
            "totalSteps": self.total_steps,
            "completedSteps": sorted(self.completed_steps),
            "canProceed": self.can_proceed,
            "canGoBack": self.can_go_back,
            "progressPercentage": self.progress_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormProgress:
        """Parse a persisted progress record.

        Raises:
            ValueError: If a field has the wrong type
        """
        try:
            return cls(
                current_step=int(data.get("currentStep", 1)),
                total_steps=int(data.get("totalSteps", TOTAL_STEPS)),
                completed_steps={int(step) for step in data.get("completedSteps", []) or []},
                can_proceed=bool(data.get("canProceed", False)),
                can_go_back=bool(data.get("canGoBack", False)),
                progress_percentage=float(data.get("progressPercentage", 0.0)),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid progress record: {exc}") from exc


@dataclass
class ValidationState:
    is_valid: bool = False
    errors: dict[str, str] = field(default_factory=dict)
    touched: dict[str, bool] = field(default_factory=dict)
    is_validating: bool = False


@dataclass(frozen=True)
class StepValidation:
    step: int
    fields: tuple[str, ...]
    is_valid: bool
    errors: tuple[str, ...] = ()


@dataclass
class SubmissionState:
    """Lifecycle of the submission: idle -> submitting -> success | error.

    Attributes:
        is_submitting: A request is in flight
        is_success: The review was accepted (terminal)
        error: Message of the last failed attempt
        retry_count: Number of explicit retries requested
        review_id: Identifier returned by the server
        verification_sent: Whether the server sent a verification email
        last_attempt: When the last attempt started
    """

    is_submitting: bool = False
    is_success: bool = False
    error: str | None = None
    retry_count: int = 0
    review_id: str | None = None
    verification_sent: bool | None = None
    last_attempt: datetime | None = None


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a submit or retry call.

    ``bool(result)`` is ``result.ok``. ``ignored`` marks a call rejected because
    another submission was in flight; ``invalid_step`` names the first step
    that failed validation; ``spam_blocked`` marks the silent honeypot path.
    """

    ok: bool
    review_id: str | None = None
    error: str | None = None
    invalid_step: int | None = None
    spam_blocked: bool = False
    ignored: bool = False

    def __bool__(self) -> bool:
        return self.ok
