from datetime import datetime


def is_within_active_hours(now: datetime, start: int, end: int) -> bool:
    """
    True when ``now``'s hour falls in the half-open window [start, end).

    A window with start > end wraps midnight (22..6 covers 22:00-05:59).
    start == end is an empty window.
    """
    hour = now.hour
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end
