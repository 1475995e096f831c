"""Report store - single owner of the live report set.

Reports are created locally or ingested from the backend, expire a fixed
TTL after creation, and are persisted as one blob on every mutation.
"""

import logging
import uuid
from datetime import datetime

from pinlocal.core import codec
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import (
    Report,
    ReportCategory,
    filter_active,
    new_report,
    split_expired,
)
from pinlocal.shell.clock import Clock, SystemClock
from pinlocal.shell.persistence import REPORTS_KEY, StateWriter
from pinlocal.state.cooldown_gate import CooldownGate
from pinlocal.state.listener import EngineListener


logger = logging.getLogger(__name__)


class ReportStore:
    """Owns every active Report.

    Callers only ever receive immutable Report objects and snapshots;
    the underlying collection is never exposed.
    """

    def __init__(
        self,
        writer: StateWriter,
        clock: Clock | None = None,
        cooldown_gate: CooldownGate | None = None,
        listener: EngineListener | None = None,
    ) -> None:
        self.writer = writer
        self.clock = clock or SystemClock()
        self.cooldown_gate = cooldown_gate
        self.listener = listener or EngineListener()
        self._reports: dict[str, Report] = {}
        self.expired_on_load: list[Report] = []

    def __len__(self) -> int:
        return len(self._reports)

    def load(self) -> int:
        """Restore reports, dropping expired and malformed records.

        Reports that expired while stopped are kept in `expired_on_load`
        so state derived from them can be cleaned up.

        Returns:
            Number of reports restored
        """
        result = codec.decode_reports(self.writer.read(REPORTS_KEY))
        for error in result.errors:
            logger.warning("Skipping malformed report record: %s", error)

        now = self.clock.now()
        active, expired = split_expired(result.records, now)

        self._reports = {}
        self.expired_on_load = expired
        for report in active:
            self._reports.setdefault(report.id, report)

        if expired:
            logger.info("Dropped %d reports that expired while stopped", len(expired))
        if result.legacy:
            logger.info("Migrating %d reports from the legacy format", len(self._reports))
        if expired or result.legacy:
            self._persist()

        logger.info("Restored %d active reports", len(self._reports))
        return len(self._reports)

    def serialize(self) -> str:
        """Encode the current report set (photos excluded)."""
        return codec.encode_reports(list(self._reports.values()))

    def _persist(self) -> None:
        self.writer.save(REPORTS_KEY, self.serialize())

    def create_report(
        self,
        location: Coordinate,
        text: str,
        language: str,
        category: ReportCategory | str,
        photo: bytes | None = None,
    ) -> Report:
        """Create a report from the local user.

        Starts the cooldown window so the creator is not alerted about
        their own report.

        Raises:
            InvalidCategory: If category is not a known code
        """
        now = self.clock.now()
        report = new_report(
            report_id=str(uuid.uuid4()),
            location=location,
            text=text,
            language=language,
            category=category,
            now=now,
            photo=photo,
        )

        self._reports[report.id] = report
        self._persist()

        if self.cooldown_gate is not None:
            self.cooldown_gate.record_report_created(now)

        logger.info("Created %s report %s", report.category.code, report.id)
        self.listener.on_report_created(report)
        return report

    def add_report(self, report: Report) -> bool:
        """Ingest a report created elsewhere (e.g. fetched from the backend).

        Returns:
            False if the report is expired or already known
        """
        if report.id in self._reports:
            return False
        if not report.is_active(self.clock.now()):
            return False

        self._reports[report.id] = report
        self._persist()
        return True

    def get(self, report_id: str) -> Report | None:
        return self._reports.get(report_id)

    def active_reports(self, now: datetime | None = None) -> tuple[Report, ...]:
        """Snapshot of reports that have not expired at `now`."""
        now = now or self.clock.now()
        return tuple(filter_active(list(self._reports.values()), now))

    def sweep_expired(self, now: datetime | None = None) -> list[Report]:
        """Remove every report whose expiry is at or before `now`.

        Returns:
            Exactly the removed reports, so derived alerts can be dropped
        """
        now = now or self.clock.now()
        _, expired = split_expired(list(self._reports.values()), now)
        if not expired:
            return []

        for report in expired:
            del self._reports[report.id]
        self._persist()

        logger.info("Swept %d expired reports", len(expired))
        self.listener.on_reports_expired(expired)
        return expired
