from __future__ import annotations

import logging
from collections.abc import Mapping, MutableSequence, Sequence
from textwrap import wrap
from typing import Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 100
DEFAULT_LABEL_WIDTH = 20
DEFAULT_INDENT = "    "

# Third-party loggers that are noisy at DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def configure_logging(verbose: bool = False, *, console: Console | None = None) -> None:
    """Install a Rich handler on the root logger.

    Args:
        verbose: Log at DEBUG instead of INFO
        console: Console to log to (stderr by default)
    """
    level = logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _coerce_items(fields: FieldMapping) -> list[tuple[str, object]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def render_fields_block(
    title: str,
    fields: FieldMapping,
    *,
    pad_top: bool = True,
    wrap_width: int = DEFAULT_WRAP_WIDTH,
) -> str:
    """Render a titled, aligned ``label: value`` block for multi-line log records."""
    lines: MutableSequence[str] = []
    if pad_top:
        lines.append("")
    lines.append(title)
    lines.append("-" * len(title))

    items = _coerce_items(fields)
    if items:
        label_width = max(min(max(len(str(key)) for key, _ in items), DEFAULT_LABEL_WIDTH), 8)
        value_width = max(wrap_width - len(DEFAULT_INDENT) - label_width - 4, 32)
        for key, value in items:
            wrapped = wrap(_stringify(value), width=value_width) or [""]
            lines.append(f"{DEFAULT_INDENT}{str(key):<{label_width}}: {wrapped[0]}")
            for continuation in wrapped[1:]:
                lines.append(f"{DEFAULT_INDENT}{'':<{label_width}}  {continuation}")
    return "\n".join(lines).rstrip()
