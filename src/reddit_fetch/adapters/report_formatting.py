"""Shared console report formatting helpers.

Keeping formatting here prevents drift between the CLI commands and keeps
summaries consistent regardless of which command printed them.
"""

from __future__ import annotations

from datetime import datetime

from reddit_fetch.core.models import EPOCH, SourceOutcome, WatchedSource


def format_source_label(name: str, source_aliases: dict[str, str]) -> str:
    """Return a human-friendly source label, using configured aliases."""

    alias = source_aliases.get(name) or source_aliases.get(name.lower())
    if not alias:
        return f"r/{name}"
    return f"{alias} (r/{name})"


def _format_time(value: datetime) -> str:
    if value == EPOCH:
        return "never"
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_outcome(outcome: SourceOutcome, source_aliases: dict[str, str]) -> str:
    """One line per source for the end-of-cycle summary."""

    label = format_source_label(outcome.source, source_aliases)
    if not outcome.checked and outcome.error is None:
        return f"{label}: not due yet"

    parts = [
        f"{outcome.accepted} downloaded",
        f"{outcome.rejected} rejected",
        f"{outcome.skipped} already seen",
    ]
    line = f"{label}: " + ", ".join(parts)
    if outcome.error:
        line += f" [error: {outcome.error}]"
    return line


def format_cycle_summary(outcomes: list[SourceOutcome], source_aliases: dict[str, str]) -> str:
    """Return the full multi-line report for one cycle."""

    if not outcomes:
        return "No sources are being watched."

    lines = [format_outcome(outcome, source_aliases) for outcome in outcomes]
    total = sum(outcome.accepted for outcome in outcomes)
    failed = sum(1 for outcome in outcomes if outcome.failed)
    divider = "──────────────"
    lines.extend([divider, f"Downloaded {total} image(s); {failed} source(s) reported errors."])
    return "\n".join(lines)


def format_source_row(source: WatchedSource, source_aliases: dict[str, str]) -> str:
    """Row used by the `list` command."""

    label = format_source_label(source.name, source_aliases)
    return (
        f"{label} | last checked: {_format_time(source.last_check_time)}"
        f" | last post: {_format_time(source.last_post_time)}"
    )
