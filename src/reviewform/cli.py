"""Command line entry point: terminal wizard, draft management and review listing."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from . import __version__
from .api.client import ReviewAPIClient, ReviewAPIError
from .config import FormSettings, load_settings
from .logging_utils import configure_logging
from .models import RELATIONSHIPS, STEP_FIELDS, ReviewSubmissionData
from .orchestrator import ReviewForm
from .persistence import AutoSaveStore, JsonFileStore
from .render import render_progress_indicator, render_review_summary, render_reviews_table
from .validation import content_warnings

LOGGER = logging.getLogger(__name__)

AskFn = Callable[[str, str], str]

_FIELD_PROMPTS: dict[str, str] = {
    "name": "Full name",
    "email": "Email",
    "title": "Job title (optional)",
    "organization": "Organization (optional)",
    "relationship": f"Relationship ({'/'.join(RELATIONSHIPS)})",
    "linkedin_url": "LinkedIn profile URL (optional)",
    "rating": "Rating (1-5)",
    "testimonial": "Testimonial (50-2000 characters)",
    "project_association": "Related project (optional)",
    "skills": "Skills, comma separated (optional)",
    "recommendation": "Would you recommend this work? (y/n)",
}
_OPTIONAL_FIELDS = frozenset({"title", "organization", "linkedin_url", "project_association"})
_YES = frozenset({"y", "yes", "true", "1"})
_NO = frozenset({"n", "no", "false", "0"})


def _default_ask(prompt: str, default: str) -> str:
    return Prompt.ask(prompt, default=default or None) or ""


def _format_default(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "y" if value else "n"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def parse_answer(field_name: str, text: str) -> Any:
    """Convert a typed answer into the value stored on the draft.

    Unparseable input is passed through unchanged so the validator can
    report it.
    """
    text = text.strip()
    if field_name in _OPTIONAL_FIELDS:
        return text or None
    if field_name == "rating":
        try:
            return int(text)
        except ValueError:
            return text
    if field_name == "skills":
        return [item.strip() for item in text.split(",") if item.strip()]
    if field_name == "recommendation":
        lowered = text.lower()
        if lowered in _YES:
            return True
        if lowered in _NO:
            return False
        return text
    if field_name == "relationship":
        return text.lower() or None
    return text


async def run_wizard(form: ReviewForm, console: Console, ask: AskFn) -> int:
    """Drive ``form`` through its steps with terminal prompts.

    Returns:
        Process exit code: 0 once the review was submitted, 1 when the user quit
    """
    while not form.progress.is_terminal:
        progress = form.progress
        step = progress.current_step
        console.print(render_progress_indicator(form.steps, progress.progress_percentage))

        fields = STEP_FIELDS.get(step, ())
        if fields:
            for field_name in fields:
                answer = ask(_FIELD_PROMPTS[field_name], _format_default(form.get_value(field_name)))
                form.set_value(field_name, parse_answer(field_name, answer))
            if not await form.next_step():
                for field_name in fields:
                    error = form.get_field_error(field_name)
                    if error:
                        console.print(f"[red]✗ {_FIELD_PROMPTS[field_name]}: {escape(error)}[/red]")
            continue

        console.print(render_review_summary(form.data, content_warnings(form.data)))
        choice = ask("Submit? (y = submit, b = back, q = save and quit)", "y").strip().lower()
        if choice.startswith("b"):
            form.prev_step()
            continue
        if choice.startswith("q"):
            form.save_progress()
            console.print("Draft saved.")
            return 1

        result = await form.submit_form()
        while not result.ok and result.error:
            console.print(f"[red]Submission failed: {escape(result.error)}[/red]")
            again = ask("Retry? (y/n)", "y").strip().lower()
            if not again.startswith("y"):
                form.save_progress()
                console.print("Draft saved.")
                return 1
            result = await form.retry_submission()

    submission = form.submission
    console.print("[green]✓ Thank you! Your testimonial was submitted.[/green]")
    if submission.review_id:
        console.print(f"Review ID: {escape(submission.review_id)}")
    if submission.verification_sent:
        console.print("Check your inbox for a verification email.")
    return 0


def _build_client(settings: FormSettings) -> ReviewAPIClient:
    return ReviewAPIClient(
        settings.api.base_url,
        timeout=settings.api.timeout,
        admin_token=settings.api.admin_token,
    )


def _build_autosave(settings: FormSettings) -> AutoSaveStore:
    autosave = settings.autosave
    return AutoSaveStore(
        JsonFileStore(autosave.storage_dir),
        key=autosave.storage_key,
        ttl=autosave.ttl,
        enabled=autosave.enabled,
    )


async def _submit(settings: FormSettings, console: Console, ask: AskFn) -> int:
    async with _build_client(settings) as client:
        form = ReviewForm(client, JsonFileStore(settings.autosave.storage_dir), settings=settings)
        async with form:
            if form.progress.current_step > 1 or form.get_value("name"):
                console.print("Resuming your saved draft.")
            try:
                return await run_wizard(form, console, ask)
            except (EOFError, KeyboardInterrupt):
                form.save_progress()
                console.print("\nDraft saved.")
                return 1


def _draft_show(settings: FormSettings, console: Console) -> int:
    snapshot = _build_autosave(settings).load_progress()
    if snapshot is None:
        console.print("No saved draft.")
        return 0
    data = ReviewSubmissionData.from_dict(snapshot.form_data)
    step = snapshot.progress.get("currentStep", 1)
    console.print(f"Saved draft at step {step}")
    console.print(render_review_summary(data))
    return 0


def _draft_clear(settings: FormSettings, console: Console) -> int:
    _build_autosave(settings).clear_saved_progress()
    console.print("Saved draft cleared.")
    return 0


async def _reviews_list(settings: FormSettings, console: Console, *, limit: int, featured: bool) -> int:
    async with _build_client(settings) as client:
        try:
            page = await client.fetch_display_reviews(limit=limit, featured=True if featured else None)
        except ReviewAPIError as exc:
            LOGGER.error("Failed to load reviews: %s", exc.message)
            return 1
    if not page.reviews:
        console.print("No published reviews.")
        return 0
    console.print(render_reviews_table(page.reviews))
    pagination = page.pagination
    console.print(f"Page {pagination.current_page} of {max(pagination.total_pages, 1)} ({pagination.total} total)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reviewform", description="Submit and browse testimonials.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="Path to a reviewform YAML config")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("submit", help="Fill in and submit a testimonial")

    draft = subparsers.add_parser("draft", help="Inspect or discard the saved draft")
    draft_actions = draft.add_subparsers(dest="draft_command", required=True)
    draft_actions.add_parser("show", help="Show the saved draft")
    draft_actions.add_parser("clear", help="Delete the saved draft")

    reviews = subparsers.add_parser("reviews", help="Published reviews")
    review_actions = reviews.add_subparsers(dest="reviews_command", required=True)
    list_parser = review_actions.add_parser("list", help="List published reviews")
    list_parser.add_argument("--limit", type=int, default=12, help="Number of reviews (max 50)")
    list_parser.add_argument("--featured", action="store_true", help="Only featured reviews")
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    ask: AskFn | None = None,
    console: Console | None = None,
) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    console = console or Console()

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as exc:
        LOGGER.error("Failed to load config: %s", exc)
        return 2

    if args.command == "submit":
        return asyncio.run(_submit(settings, console, ask or _default_ask))
    if args.command == "draft":
        if args.draft_command == "show":
            return _draft_show(settings, console)
        return _draft_clear(settings, console)
    return asyncio.run(_reviews_list(settings, console, limit=args.limit, featured=args.featured))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
