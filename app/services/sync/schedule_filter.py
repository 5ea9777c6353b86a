"""Time-window filter that lets the live-match poller skip idle periods."""
from datetime import datetime, timedelta
from typing import Iterable, Tuple

DEFAULT_BEFORE = timedelta(hours=2)
DEFAULT_AFTER = timedelta(hours=1)


def window_bounds(
    now: datetime,
    before: timedelta = DEFAULT_BEFORE,
    after: timedelta = DEFAULT_AFTER,
) -> Tuple[datetime, datetime]:
    """
    Kickoff range that can still produce a live match at ``now``.

    A match that kicked off up to ``before`` ago may still be running, and one
    starting within ``after`` is about to go live.
    """
    return now - before, now + after


def is_any_match_in_window(
    now: datetime,
    match_times: Iterable[datetime],
    before: timedelta = DEFAULT_BEFORE,
    after: timedelta = DEFAULT_AFTER,
) -> bool:
    """True if any kickoff time falls within [now - before, now + after]."""
    start, end = window_bounds(now, before, after)
    return any(start <= t <= end for t in match_times if t is not None)
