from __future__ import annotations

from collections.abc import Sequence

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .api.models import PublicReview
from .models import ReviewSubmissionData, StepStatus

# Color constants for step states
COMPLETED_COLOR = "green"
CURRENT_COLOR = "cyan"
ERROR_COLOR = "red"
WARNING_COLOR = "yellow"
DIM_COLOR = "dim"

# Symbol indicators for quick scanning
COMPLETED_SYMBOL = "✓"
CURRENT_SYMBOL = "●"
ERROR_SYMBOL = "✗"
PENDING_SYMBOL = "○"
WARNING_SYMBOL = "⚠"
STAR_SYMBOL = "★"
EMPTY_STAR_SYMBOL = "☆"

_RELATIONSHIP_LABELS = {
    "professor": "Professor/Academic Supervisor",
    "colleague": "Colleague",
    "supervisor": "Supervisor/Manager",
    "collaborator": "Research Collaborator",
    "client": "Client",
}


def _step_style(step: StepStatus) -> tuple[str, str]:
    if step.has_error:
        return ERROR_SYMBOL, ERROR_COLOR
    if step.is_current:
        return CURRENT_SYMBOL, CURRENT_COLOR
    if step.is_completed:
        return COMPLETED_SYMBOL, COMPLETED_COLOR
    return PENDING_SYMBOL, DIM_COLOR


def stars(rating: object) -> str:
    try:
        count = max(0, min(int(rating), 5))  # type: ignore[call-overload]
    except (TypeError, ValueError):
        count = 0
    return STAR_SYMBOL * count + EMPTY_STAR_SYMBOL * (5 - count)


def render_progress_indicator(steps: Sequence[StepStatus], percentage: float) -> RenderableType:
    """Build the step list with a completion percentage.

    Args:
        steps: Step statuses, normally ``ReviewForm.steps``
        percentage: Completed share, 0-100

    Returns:
        A Rich renderable
    """
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Symbol", no_wrap=True)
    table.add_column("Step", no_wrap=True)
    table.add_column("Description")

    for step in steps:
        symbol, color = _step_style(step)
        title_style = f"bold {color}" if step.is_current else color
        table.add_row(
            f"[{color}]{symbol}[/{color}]",
            Text(f"{step.number}. {step.title}", style=title_style),
            Text(step.description, style=DIM_COLOR),
        )

    footer = Text(f"{round(percentage)}% complete", style=DIM_COLOR)
    return Group(table, footer)


def render_review_summary(data: ReviewSubmissionData, warnings: Sequence[str] = ()) -> RenderableType:
    """Build the verification-step summary of a draft, plus content warnings."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value", style="white")

    relationship = _RELATIONSHIP_LABELS.get(str(data.relationship), data.relationship or "")
    rows: list[tuple[str, str]] = [
        ("Name", str(data.name or "")),
        ("Email", str(data.email or "")),
        ("Title", data.title or ""),
        ("Organization", data.organization or ""),
        ("Relationship", relationship),
        ("LinkedIn", data.linkedin_url or ""),
        ("Rating", stars(data.rating)),
        ("Recommends", "Yes" if data.recommendation else "No"),
        ("Project", data.project_association or ""),
        ("Skills", ", ".join(str(skill) for skill in data.skills or [])),
    ]
    for key, value in rows:
        if value:
            table.add_row(key, Text(str(value)))

    parts: list[RenderableType] = [table, Text(""), Text(str(data.testimonial or "").strip(), style="italic")]
    for warning in warnings:
        parts.append(Text(f"{WARNING_SYMBOL} {warning}", style=WARNING_COLOR))

    return Panel(Group(*parts), title="Review your testimonial", border_style="blue", expand=False)


def render_reviews_table(reviews: Sequence[PublicReview]) -> RenderableType:
    table = Table(title="Published reviews")
    table.add_column("Reviewer", style="cyan", no_wrap=True)
    table.add_column("Organization")
    table.add_column("Rating", no_wrap=True)
    table.add_column("Testimonial")

    for review in reviews:
        name = Text(review.reviewer.name)
        if review.featured:
            name.append(f" {STAR_SYMBOL}", style=WARNING_COLOR)
        text = review.content.testimonial
        if len(text) > 120:
            text = text[:117].rstrip() + "..."
        table.add_row(name, Text(review.reviewer.organization), stars(review.content.rating), Text(text))
    return table
