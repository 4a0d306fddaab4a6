import time
from datetime import datetime, timezone


def get_current_timestamp() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''} ago"


def format_relative_time(timestamp: int, now: int | None = None) -> str:
    """Describe a millisecond timestamp relative to 'now' ("3 hours ago").

    Anything older than a week is shown as a plain date.
    """
    now = get_current_timestamp() if now is None else now
    seconds = max(now - timestamp, 0) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    if days > 7:
        return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc).strftime("%Y-%m-%d")
    if days > 0:
        return _plural(days, "day")
    if hours > 0:
        return _plural(hours, "hour")
    if minutes > 0:
        return _plural(minutes, "minute")
    return "Just now"
