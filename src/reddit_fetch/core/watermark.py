"""Per-source watermark tracking (core domain).

A source is Idle until the throttle interval has elapsed since its last check,
at which point it is Due. A Due source enters Checking through `begin_cycle`;
the returned `WatermarkCycle` collects accepted posts and produces the updated
`WatchedSource` when the cycle finishes. Nothing is written until the caller
persists that result, so an aborted cycle leaves the stored state untouched.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from reddit_fetch.core.models import CandidateImage, WatchedSource


class WatermarkTracker:
    """Throttle and new-post decisions for watched sources."""

    def __init__(self, throttle_interval: timedelta) -> None:
        self._throttle = throttle_interval

    def is_due(self, source: WatchedSource, now: datetime) -> bool:
        return now >= source.last_check_time + self._throttle

    def next_due(self, source: WatchedSource) -> datetime:
        return source.last_check_time + self._throttle

    def begin_cycle(self, source: WatchedSource) -> "WatermarkCycle":
        return WatermarkCycle(source)


class WatermarkCycle:
    """Working watermark for one source during one Checking pass."""

    def __init__(self, source: WatchedSource) -> None:
        self._source = source
        self._accepted: list[datetime] = []

    @property
    def cutoff(self) -> datetime:
        """Posts created at or before this time were already seen."""

        return self._source.last_post_time

    def is_new(self, candidate: CandidateImage) -> bool:
        # Compared against the watermark at cycle start, not the running max,
        # so accepting one post never hides its older siblings in the same list.
        return candidate.created_at > self._source.last_post_time

    def accept(self, candidate: CandidateImage) -> None:
        self._accepted.append(candidate.created_at)

    def stop_before(self, candidate: CandidateImage) -> None:
        """Keep the watermark strictly below a candidate that must be retried.

        Posts sharing its creation time are dropped from the advance too, since
        the cutoff would otherwise hide the retried candidate.
        """

        self._accepted = [stamp for stamp in self._accepted if stamp < candidate.created_at]

    def finish(self, now: datetime) -> WatchedSource:
        """Return the source with refreshed check time and advanced post time."""

        # Both values are monotonic even if the wall clock steps backwards.
        last_check = max(now, self._source.last_check_time)
        last_post = max([self._source.last_post_time, *self._accepted])
        return self._source.with_times(last_check, last_post)
