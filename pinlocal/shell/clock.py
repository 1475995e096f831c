"""Clock - Imperative Shell.

Time is read through a Clock so stores and engines can be driven by a
fixed clock in tests.
"""

from datetime import datetime, timezone


class Clock:
    """Source of the current time."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
