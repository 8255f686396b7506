from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from .models import (
    RELATIONSHIPS,
    STEP_FIELDS,
    ReviewSubmissionData,
    StepValidation,
    ValidationState,
)
from .timing import Debouncer

LOGGER = logging.getLogger(__name__)

MIN_TESTIMONIAL_LENGTH = 50
MAX_TESTIMONIAL_LENGTH = 2000
MIN_RATING = 1
MAX_RATING = 5
MAX_SKILLS = 10
MAX_NAME_LENGTH = 100
MAX_TITLE_LENGTH = 150
MAX_ORGANIZATION_LENGTH = 200

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
LINKEDIN_URL_PATTERN = r"^https://(www\.)?linkedin\.com/in/[a-zA-Z0-9-]+/?$"
NAME_PATTERN = r"^[a-zA-Z\s\-'\.]+$"

# Fields validated while the user types (debounced); the rest wait for blur
REALTIME_FIELDS = frozenset(
    {"name", "email", "relationship", "rating", "testimonial", "recommendation", "title", "organization"}
)

AsyncCheck = Callable[[Any], Awaitable[str | None]]


@dataclass(frozen=True)
class FieldRule:
    """Declarative rule for one form field.

    Attributes:
        schema: JSON schema fragment the value must satisfy
        messages: User-facing message per failing schema keyword
        required: Whether a blank value is an error
        required_message: Message shown for a blank required value
        fallback_message: Message for keywords without an entry in ``messages``
    """

    schema: dict[str, Any]
    messages: dict[str, str] = field(default_factory=dict)
    required: bool = False
    required_message: str = "This field is required"
    fallback_message: str = "Invalid value"


FIELD_RULES: dict[str, FieldRule] = {
    "name": FieldRule(
        schema={"type": "string", "minLength": 2, "maxLength": MAX_NAME_LENGTH, "pattern": NAME_PATTERN},
        messages={
            "minLength": "Name must be at least 2 characters",
            "maxLength": f"Name must not exceed {MAX_NAME_LENGTH} characters",
            "pattern": "Name contains invalid characters",
            "type": "Name must be text",
        },
        required=True,
        required_message="Name is required",
    ),
    "email": FieldRule(
        schema={"type": "string", "minLength": 5, "maxLength": 254, "pattern": EMAIL_PATTERN},
        messages={
            "minLength": "Email must be at least 5 characters",
            "maxLength": "Email must not exceed 254 characters",
            "pattern": "Please enter a valid email address",
            "type": "Please enter a valid email address",
        },
        required=True,
        required_message="Email is required",
    ),
    "title": FieldRule(
        schema={"type": "string", "maxLength": MAX_TITLE_LENGTH},
        messages={"maxLength": f"Title must not exceed {MAX_TITLE_LENGTH} characters"},
    ),
    "organization": FieldRule(
        schema={"type": "string", "maxLength": MAX_ORGANIZATION_LENGTH},
        messages={"maxLength": f"Organization must not exceed {MAX_ORGANIZATION_LENGTH} characters"},
    ),
    "relationship": FieldRule(
        schema={"enum": list(RELATIONSHIPS)},
        messages={"enum": "Please select your relationship"},
        required=True,
        required_message="Please select your relationship",
    ),
    "linkedin_url": FieldRule(
        schema={"type": "string", "pattern": LINKEDIN_URL_PATTERN},
        messages={"pattern": "Please enter a valid LinkedIn profile URL"},
    ),
    "rating": FieldRule(
        schema={"type": "integer", "minimum": MIN_RATING, "maximum": MAX_RATING},
        messages={
            "type": "Rating must be a whole number",
            "minimum": f"Rating must be at least {MIN_RATING}",
            "maximum": f"Rating must not exceed {MAX_RATING}",
        },
        required=True,
        required_message="Please select a rating",
    ),
    "testimonial": FieldRule(
        schema={"type": "string", "minLength": MIN_TESTIMONIAL_LENGTH, "maxLength": MAX_TESTIMONIAL_LENGTH},
        messages={
            "minLength": f"Testimonial must be at least {MIN_TESTIMONIAL_LENGTH} characters",
            "maxLength": f"Testimonial must not exceed {MAX_TESTIMONIAL_LENGTH} characters",
            "type": "Testimonial must be text",
        },
        required=True,
        required_message="Testimonial is required",
    ),
    "project_association": FieldRule(
        schema={"type": "string", "maxLength": 200},
        messages={"maxLength": "Project association must not exceed 200 characters"},
    ),
    "skills": FieldRule(
        schema={"type": "array", "maxItems": MAX_SKILLS, "items": {"type": "string", "maxLength": 50}},
        messages={
            "maxItems": f"Maximum {MAX_SKILLS} skills allowed",
            "maxLength": "Skill name too long",
            "type": "Skills must be a list of names",
        },
    ),
    "recommendation": FieldRule(
        schema={"type": "boolean"},
        messages={"type": "Please tell us whether you recommend this work"},
        required=True,
        required_message="Please tell us whether you recommend this work",
    ),
}

_VALIDATORS: dict[str, Draft7Validator] = {name: Draft7Validator(rule.schema) for name, rule in FIELD_RULES.items()}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_field(field_name: str, value: Any) -> str | None:
    """Run the declarative rule for a field.

    Args:
        field_name: Attribute name on ``ReviewSubmissionData``
        value: Value to check

    Returns:
        The error message, or None when the value is acceptable
    """
    rule = FIELD_RULES.get(field_name)
    if rule is None:
        return None
    if _is_blank(value):
        return rule.required_message if rule.required else None
    # bool is an int subclass in Python but not an integer to JSON schema
    error = best_match(_VALIDATORS[field_name].iter_errors(value))
    if error is not None:
        return rule.messages.get(str(error.validator), rule.fallback_message)
    if field_name == "testimonial" and len(value.strip()) < MIN_TESTIMONIAL_LENGTH:
        return "Testimonial must contain meaningful content"
    return None


def check_step(step: int, values: Mapping[str, Any]) -> dict[str, str]:
    """Return field -> message for every failing field of a step."""
    errors: dict[str, str] = {}
    for name in STEP_FIELDS.get(step, ()):
        message = check_field(name, values.get(name))
        if message:
            errors[name] = message
    return errors


# Content advisories, reported as warnings and never gating a step
TRUSTED_DOMAIN_PATTERNS = (
    re.compile(r"\.edu$"),
    re.compile(r"\.ac\.uk$"),
    re.compile(r"\.edu\.au$"),
    re.compile(r"\.org$"),
)
_SUSPICIOUS_PATTERNS = (
    re.compile(r"(.)\1{10,}"),
    re.compile(r"https?://", re.IGNORECASE),
    re.compile(r"\$\d+"),
    re.compile(r"\b(buy|sell|click|visit)\b", re.IGNORECASE),
)


def is_trusted_domain(email: str) -> bool:
    _, _, domain = email.rpartition("@")
    domain = domain.strip().lower()
    if not domain:
        return False
    return any(pattern.search(domain) for pattern in TRUSTED_DOMAIN_PATTERNS)


def content_warnings(data: ReviewSubmissionData) -> list[str]:
    warnings: list[str] = []
    text = data.testimonial.strip() if isinstance(data.testimonial, str) else ""
    if text and any(pattern.search(text) for pattern in _SUSPICIOUS_PATTERNS):
        warnings.append("Testimonial contains suspicious patterns")
    if isinstance(data.email, str) and data.email.strip() and not is_trusted_domain(data.email):
        warnings.append("Email is not from an institutional or organizational domain")
    return warnings


class FieldValidator:
    """Per-field and per-step validation state for the review form.

    Values are read through ``data_provider`` so the validator never holds a
    stale copy of the draft. Errors are only reported for touched fields.

    Async checks registered in ``async_checks`` run after the declarative rule
    passes. Their result is dropped when the field value changed while the
    check was pending, so a displayed error always belongs to the latest input.
    """

    def __init__(
        self,
        data_provider: Callable[[], ReviewSubmissionData],
        *,
        async_checks: Mapping[str, AsyncCheck] | None = None,
        debounce_seconds: float = 0.3,
    ) -> None:
        self._data_provider = data_provider
        self._async_checks = dict(async_checks or {})
        self._debouncer = Debouncer(debounce_seconds)
        self._errors: dict[str, str] = {}
        self._touched: dict[str, bool] = {}
        self._async_failures: dict[str, tuple[Any, str]] = {}
        self._in_flight = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> ValidationState:
        return ValidationState(
            is_valid=not self._errors and all(self.is_step_valid(step) for step in STEP_FIELDS),
            errors=dict(self._errors),
            touched=dict(self._touched),
            is_validating=self._in_flight > 0,
        )

    def _value(self, field_name: str) -> Any:
        return self._data_provider().get(field_name)

    def _rule_error(self, field_name: str, value: Any) -> str | None:
        message = check_field(field_name, value)
        if message:
            return message
        failure = self._async_failures.get(field_name)
        if failure is not None and failure[0] == value:
            return failure[1]
        return None

    def is_step_valid(self, step: int) -> bool:
        """Whether every field of ``step`` currently satisfies its rules.

        Depends only on the values of the step's fields, not on touched state.
        Steps without fields (verification, complete) are always valid.
        """
        values = self._data_provider()
        return all(self._rule_error(name, values.get(name)) is None for name in STEP_FIELDS.get(step, ()))

    def get_field_error(self, field_name: str) -> str | None:
        if not self._touched.get(field_name):
            return None
        return self._errors.get(field_name) or None

    def is_touched(self, field_name: str) -> bool:
        return bool(self._touched.get(field_name))

    def get_step_progress(self, step: int) -> int:
        """Percentage (0-100) of a step's fields holding a valid, non-blank value."""
        names = STEP_FIELDS.get(step, ())
        if not names:
            return 100
        values = self._data_provider()
        filled = 0
        for name in names:
            value = values.get(name)
            if not _is_blank(value) and self._rule_error(name, value) is None:
                filled += 1
        return round(filled / len(names) * 100)

    def step_validations(self) -> list[StepValidation]:
        result = []
        for step, names in STEP_FIELDS.items():
            messages = tuple(msg for msg in (self.get_field_error(name) for name in names) if msg)
            result.append(StepValidation(step=step, fields=names, is_valid=self.is_step_valid(step), errors=messages))
        return result

    def step_errors(self) -> dict[int, bool]:
        return {item.step: bool(item.errors) for item in self.step_validations()}

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def mark_touched(self, field_name: str) -> None:
        self._touched[field_name] = True

    async def validate_field(self, field_name: str) -> bool:
        """Validate one field and record the outcome.

        Marks the field touched. Returns True when the field is valid, or when
        the result was discarded because the value changed meanwhile (the
        newer value gets its own validation).
        """
        if self._closed:
            return False
        self.mark_touched(field_name)
        value = self._value(field_name)
        message = check_field(field_name, value)

        check = self._async_checks.get(field_name)
        if message is None and check is not None and not _is_blank(value):
            self._in_flight += 1
            try:
                message = await check(value)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("Async check for %s failed: %s", field_name, exc)
                message = "Validation error occurred"
            finally:
                self._in_flight -= 1
            if self._closed:
                return False
            if self._value(field_name) != value:
                LOGGER.debug("Discarding stale validation result for %s", field_name)
                return True
            if message:
                self._async_failures[field_name] = (value, message)
            else:
                self._async_failures.pop(field_name, None)

        if message:
            self._errors[field_name] = message
            return False
        self._errors.pop(field_name, None)
        return True

    async def validate_step(self, step: int) -> bool:
        names = STEP_FIELDS.get(step, ())
        results = [await self.validate_field(name) for name in names]
        return all(results) and self.is_step_valid(step)

    async def validate_all(self) -> int | None:
        """Validate every input step.

        Returns:
            The first step that failed, or None when the whole form is valid
        """
        first_invalid: int | None = None
        for step in sorted(STEP_FIELDS):
            valid = await self.validate_step(step)
            if not valid and first_invalid is None:
                first_invalid = step
        return first_invalid

    def schedule_field_validation(self, field_name: str) -> None:
        """Debounce validation of a field; a newer call replaces a pending one."""
        self._debouncer.schedule(field_name, lambda: self.validate_field(field_name))

    def field_changed(self, field_name: str) -> None:
        """Hook for value changes: debounce validation of real-time fields."""
        if field_name in REALTIME_FIELDS:
            self.schedule_field_validation(field_name)

    async def drain(self) -> None:
        await self._debouncer.drain()

    def reset(self) -> None:
        self._debouncer.cancel_all()
        self._errors.clear()
        self._touched.clear()
        self._async_failures.clear()

    def close(self) -> None:
        self._closed = True
        self._debouncer.close()
