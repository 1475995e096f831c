"""Alert engine - user-level proximity alerts.

Each active report moves through Unseen -> Alerted-Unviewed ->
Alerted-Viewed, and its alert is dropped when the report expires.
At most one alert exists per report.
"""

import logging
import uuid
from dataclasses import replace

from pinlocal.core import codec
from pinlocal.core.alert import Alert, find_new_report_matches, has_unviewed, rank_nearby_unviewed
from pinlocal.core.favorite import ALERT_DISTANCE_ZIP_CODE
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import Report
from pinlocal.shell.clock import Clock, SystemClock
from pinlocal.shell.persistence import ALERT_DISTANCE_KEY, VIEWED_ALERTS_KEY, StateWriter
from pinlocal.state.cooldown_gate import CooldownGate
from pinlocal.state.listener import EngineListener
from pinlocal.state.report_store import ReportStore


logger = logging.getLogger(__name__)


class AlertEngine:
    """Matches active reports against the user's position.

    Owns the Alert set and the persisted set of viewed report IDs. The
    viewed set outlives alerts, so a report the user dismissed does not
    alert again after a restart.
    """

    def __init__(
        self,
        report_store: ReportStore,
        cooldown_gate: CooldownGate,
        writer: StateWriter,
        clock: Clock | None = None,
        alert_distance: float = ALERT_DISTANCE_ZIP_CODE,
        listener: EngineListener | None = None,
    ) -> None:
        self.report_store = report_store
        self.cooldown_gate = cooldown_gate
        self.writer = writer
        self.clock = clock or SystemClock()
        self.listener = listener or EngineListener()
        self._alert_distance = alert_distance
        self._alerts: dict[str, Alert] = {}
        self._viewed_ids: set[str] = set()

    def load(self) -> None:
        """Restore the viewed set and the saved alert distance."""
        result = codec.decode_viewed_ids(self.writer.read(VIEWED_ALERTS_KEY))
        for error in result.errors:
            logger.warning("Skipping malformed viewed alert entry: %s", error)
        self._viewed_ids = set(result.records)

        saved_distance = self.writer.read(ALERT_DISTANCE_KEY)
        if saved_distance:
            try:
                distance = float(saved_distance)
            except ValueError:
                logger.warning("Ignoring invalid saved alert distance %r", saved_distance)
            else:
                if distance > 0:
                    self._alert_distance = distance

    @property
    def alert_distance(self) -> float:
        """User alert radius in meters."""
        return self._alert_distance

    def set_alert_distance(self, meters: float) -> None:
        """Change and persist the user alert radius.

        Raises:
            ValueError: If meters is not positive
        """
        if meters <= 0:
            raise ValueError(f"Alert distance must be positive, got {meters}")
        self._alert_distance = float(meters)
        self.writer.save(ALERT_DISTANCE_KEY, repr(self._alert_distance))

    @property
    def viewed_ids(self) -> frozenset[str]:
        return frozenset(self._viewed_ids)

    def alerts(self) -> list[Alert]:
        """Snapshot of alerts whose report has not expired yet."""
        now = self.clock.now()
        return [a for a in self._alerts.values() if a.report.is_active(now)]

    def has_unviewed(self) -> bool:
        return has_unviewed(self.alerts())

    def _emit_updated(self) -> None:
        self.listener.on_alerts_updated(self.has_unviewed())

    def _save_viewed(self) -> None:
        self.writer.save(VIEWED_ALERTS_KEY, codec.encode_viewed_ids(self._viewed_ids))

    def check_for_new_alerts(self, user_location: Coordinate) -> list[Alert]:
        """Create alerts for reports that entered the user's radius.

        Does nothing while the cooldown gate is suppressing scans.

        Args:
            user_location: Current user position

        Returns:
            Newly created alerts that have not been viewed before
        """
        now = self.clock.now()
        if self.cooldown_gate.is_suppressed(now):
            logger.debug("Skipping alert check - recent report created")
            return []

        matches = find_new_report_matches(
            list(self.report_store.active_reports(now)),
            set(self._alerts),
            user_location,
            self._alert_distance,
        )

        new_alerts = []
        for match in matches:
            alert = Alert(
                id=str(uuid.uuid4()),
                report=match.report,
                distance_from_user=match.distance,
                timestamp=now,
                is_viewed=match.report.id in self._viewed_ids,
            )
            self._alerts[alert.report_id] = alert
            new_alerts.append(alert)

        unviewed = [a for a in new_alerts if not a.is_viewed]
        if new_alerts:
            logger.info(
                "Created %d alerts (%d unviewed) within %.0fm",
                len(new_alerts),
                len(unviewed),
                self._alert_distance,
            )

        self._emit_updated()
        if unviewed:
            self.listener.on_new_alerts(unviewed)
        return unviewed

    def mark_viewed(self, report_id: str) -> None:
        """Mark the alert for a report as viewed (idempotent)."""
        self._viewed_ids.add(report_id)
        alert = self._alerts.get(report_id)
        if alert is not None and not alert.is_viewed:
            self._alerts[report_id] = replace(alert, is_viewed=True)
        self._save_viewed()
        self._emit_updated()

    def mark_all_viewed(self) -> None:
        """Mark every current alert as viewed."""
        for report_id, alert in self._alerts.items():
            self._viewed_ids.add(report_id)
            if not alert.is_viewed:
                self._alerts[report_id] = replace(alert, is_viewed=True)
        self._save_viewed()
        self._emit_updated()

    def remove_for_expired_reports(self, expired_reports: list[Report]) -> None:
        """Drop alerts and viewed IDs belonging to expired reports."""
        expired_ids = {r.id for r in expired_reports}
        if not expired_ids:
            return

        for report_id in expired_ids:
            self._alerts.pop(report_id, None)

        if self._viewed_ids & expired_ids:
            self._viewed_ids -= expired_ids
            self._save_viewed()

        self._emit_updated()

    def nearby_unviewed(self, user_location: Coordinate) -> list[Alert]:
        """Unviewed alerts within the radius of the user's current position.

        Read-only: distances are recomputed on copies, nearest first.
        """
        return rank_nearby_unviewed(self.alerts(), user_location, self._alert_distance)
