"""Self-notification cooldown - Pure functions.

Right after a user drops a report they are usually still standing inside
its alert radius. Alert scanning is suppressed for a short window after
the local user creates a report so they are not alerted about their own
submission.
"""

from datetime import datetime, timedelta


DEFAULT_COOLDOWN = timedelta(seconds=60)


def is_suppressed(
    last_created_at: datetime | None,
    now: datetime,
    window: timedelta = DEFAULT_COOLDOWN,
) -> bool:
    """Check whether alert scanning is suppressed at `now`.

    Pure function.

    Args:
        last_created_at: When the local user last created a report, if ever
        now: Current time
        window: Cooldown window

    Returns:
        True if now - last_created_at < window
    """
    if last_created_at is None:
        return False
    return now - last_created_at < window


def remaining(
    last_created_at: datetime | None,
    now: datetime,
    window: timedelta = DEFAULT_COOLDOWN,
) -> timedelta:
    """Time left before scanning resumes (zero when not suppressed)."""
    if not is_suppressed(last_created_at, now, window):
        return timedelta(0)
    return window - (now - last_created_at)
