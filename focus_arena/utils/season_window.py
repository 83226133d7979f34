"""
Season window selection

A submission is tagged with the season that is active at submission time:
is_active is set and start_date <= now <= end_date. When several seasons
overlap, the most recently created one wins (ties on created_at fall to the
higher id), so the result never depends on the order seasons are listed in.
"""

from focus_arena.utils.timezone_utils import ensure_utc, get_utc_time


def covers(season, now):
    """Check whether an active season's window contains `now`"""
    if not season.is_active:
        return False
    now = ensure_utc(now)
    return ensure_utc(season.start_date) <= now <= ensure_utc(season.end_date)


def select_active_season(now, seasons):
    """
    Select the season a submission made at `now` belongs to.

    Args:
        now: Submission time (naive values are treated as UTC), None for now
        seasons: Iterable of Season-like objects

    Returns:
        The selected season, or None if no active season covers `now`
    """
    if now is None:
        now = get_utc_time()

    candidates = [season for season in seasons if covers(season, now)]
    if not candidates:
        return None

    return max(
        candidates,
        key=lambda season: (ensure_utc(season.created_at), season.id or 0),
    )
