"""Cooldown gate - persisted self-notification suppression."""

import logging
from datetime import datetime, timedelta

from pinlocal.core import codec
from pinlocal.core.cooldown import DEFAULT_COOLDOWN, is_suppressed, remaining
from pinlocal.shell.clock import Clock, SystemClock
from pinlocal.shell.persistence import LAST_REPORT_TIMESTAMP_KEY, StateWriter


logger = logging.getLogger(__name__)


class CooldownGate:
    """Suppresses alert scanning for a window after the user creates a report.

    The last creation time is stored as a single timestamp so the window
    survives a restart.
    """

    def __init__(
        self,
        writer: StateWriter,
        window: timedelta = DEFAULT_COOLDOWN,
        clock: Clock | None = None,
    ) -> None:
        self.writer = writer
        self.window = window
        self.clock = clock or SystemClock()
        self.last_created_at: datetime | None = None

    def load(self) -> None:
        """Restore the last creation timestamp."""
        self.last_created_at = codec.decode_timestamp(
            self.writer.read(LAST_REPORT_TIMESTAMP_KEY)
        )

    def record_report_created(self, now: datetime | None = None) -> None:
        """Start a new cooldown window at `now`."""
        now = now or self.clock.now()
        self.last_created_at = now
        self.writer.save(LAST_REPORT_TIMESTAMP_KEY, codec.encode_timestamp(now))
        logger.debug("Alert scanning suppressed until %s", now + self.window)

    def is_suppressed(self, now: datetime | None = None) -> bool:
        """True while now - last creation is shorter than the window."""
        return is_suppressed(self.last_created_at, now or self.clock.now(), self.window)

    def remaining(self, now: datetime | None = None) -> timedelta:
        """Time left in the current window."""
        return remaining(self.last_created_at, now or self.clock.now(), self.window)
