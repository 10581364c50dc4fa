from __future__ import annotations

from datetime import datetime, timezone

from reddit_fetch.adapters.report_formatting import (
    format_cycle_summary,
    format_outcome,
    format_source_label,
    format_source_row,
)
from reddit_fetch.core.models import SourceOutcome, WatchedSource


def test_format_source_label_with_alias() -> None:
    assert format_source_label("EarthPorn", {"EarthPorn": "Landscapes"}) == "Landscapes (r/EarthPorn)"


def test_format_source_label_without_alias() -> None:
    assert format_source_label("wallpapers", {}) == "r/wallpapers"


def test_format_outcome_for_skipped_source() -> None:
    assert format_outcome(SourceOutcome(source="foo"), {}) == "r/foo: not due yet"


def test_format_outcome_includes_error() -> None:
    outcome = SourceOutcome(source="foo", checked=True, rejected=2, error="fetch failed: timed out")
    line = format_outcome(outcome, {})
    assert line.startswith("r/foo: 0 downloaded, 2 rejected")
    assert "[error: fetch failed: timed out]" in line


def test_cycle_summary_totals() -> None:
    outcomes = [
        SourceOutcome(source="foo", checked=True, accepted=2),
        SourceOutcome(source="bar", checked=True, accepted=1, error="boom"),
    ]
    summary = format_cycle_summary(outcomes, {})
    assert summary.splitlines()[-1] == "Downloaded 3 image(s); 1 source(s) reported errors."


def test_source_row_for_never_checked_source() -> None:
    row = format_source_row(WatchedSource(name="foo"), {})
    assert row == "r/foo | last checked: never | last post: never"


def test_source_row_shows_timestamps() -> None:
    stamp = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    row = format_source_row(WatchedSource(name="foo", last_check_time=stamp, last_post_time=stamp), {})
    assert "never" not in row
