"""Favorite alert engine - alerts for reports near favorite places.

Mirrors the user-level AlertEngine, but matches every (report, favorite)
pair. Identity and viewed-state are tracked per FavoriteAlertKey, so one
report can alert once for each favorite it is near.
"""

import logging
import uuid
from dataclasses import replace

from pinlocal.core import codec
from pinlocal.core.alert import (
    FavoriteAlert,
    FavoriteAlertKey,
    favorite_still_matches,
    find_new_favorite_matches,
    has_unviewed,
)
from pinlocal.core.favorite import FavoritePlace
from pinlocal.core.geo import distance_between
from pinlocal.core.report import Report
from pinlocal.shell.clock import Clock, SystemClock
from pinlocal.shell.persistence import VIEWED_FAVORITE_ALERTS_KEY, StateWriter
from pinlocal.state.cooldown_gate import CooldownGate
from pinlocal.state.favorite_store import FavoriteStore
from pinlocal.state.listener import EngineListener, FavoriteChangeListener
from pinlocal.state.report_store import ReportStore


logger = logging.getLogger(__name__)


class FavoriteAlertEngine(FavoriteChangeListener):
    """Matches active reports against every favorite place."""

    def __init__(
        self,
        favorite_store: FavoriteStore,
        report_store: ReportStore,
        cooldown_gate: CooldownGate,
        writer: StateWriter,
        clock: Clock | None = None,
        listener: EngineListener | None = None,
    ) -> None:
        self.favorite_store = favorite_store
        self.report_store = report_store
        self.cooldown_gate = cooldown_gate
        self.writer = writer
        self.clock = clock or SystemClock()
        self.listener = listener or EngineListener()
        self._alerts: dict[FavoriteAlertKey, FavoriteAlert] = {}
        self._viewed_keys: set[FavoriteAlertKey] = set()
        favorite_store.add_change_listener(self)

    def load(self) -> None:
        """Restore the viewed key set."""
        result = codec.decode_viewed_keys(self.writer.read(VIEWED_FAVORITE_ALERTS_KEY))
        for error in result.errors:
            logger.warning("Skipping malformed viewed favorite alert entry: %s", error)
        self._viewed_keys = set(result.records)

    @property
    def viewed_keys(self) -> frozenset[FavoriteAlertKey]:
        return frozenset(self._viewed_keys)

    def alerts(self) -> list[FavoriteAlert]:
        """Snapshot of favorite alerts whose report has not expired yet."""
        now = self.clock.now()
        return [a for a in self._alerts.values() if a.report.is_active(now)]

    def alerts_for(self, favorite_id: str) -> list[FavoriteAlert]:
        """Current alerts for one favorite."""
        return [a for a in self.alerts() if a.favorite.id == favorite_id]

    def unviewed_alerts(self) -> list[FavoriteAlert]:
        """Unviewed alerts, nearest to their favorite first."""
        unviewed = [a for a in self.alerts() if not a.is_viewed]
        return sorted(unviewed, key=lambda a: a.distance_from_favorite)

    def has_unviewed(self) -> bool:
        return has_unviewed(self.alerts())

    def _emit_updated(self) -> None:
        self.listener.on_favorite_alerts_updated(self.alerts(), self.has_unviewed())

    def _save_viewed(self) -> None:
        self.writer.save(VIEWED_FAVORITE_ALERTS_KEY, codec.encode_viewed_keys(self._viewed_keys))

    def check_for_favorite_alerts(self) -> list[FavoriteAlert]:
        """Create alerts for reports that fall inside a favorite's radius.

        Does nothing while the cooldown gate is suppressing scans.

        Returns:
            Newly created favorite alerts that have not been viewed before
        """
        now = self.clock.now()
        if self.cooldown_gate.is_suppressed(now):
            logger.debug("Skipping favorite alert check - recent report created")
            return []

        matches = find_new_favorite_matches(
            self.favorite_store.list(),
            list(self.report_store.active_reports(now)),
            set(self._alerts),
        )

        new_alerts = []
        for match in matches:
            alert = FavoriteAlert(
                id=str(uuid.uuid4()),
                favorite=match.favorite,
                report=match.report,
                distance_from_favorite=match.distance,
                timestamp=now,
                is_viewed=match.key in self._viewed_keys,
            )
            self._alerts[alert.key] = alert
            new_alerts.append(alert)

        unviewed = [a for a in new_alerts if not a.is_viewed]
        if new_alerts:
            logger.info(
                "Created %d favorite alerts (%d unviewed)",
                len(new_alerts),
                len(unviewed),
            )

        if unviewed:
            self.listener.on_new_favorite_alerts(unviewed)
        self._emit_updated()
        return unviewed

    def _mark_keys_viewed(self, keys: list[FavoriteAlertKey]) -> None:
        for key in keys:
            self._viewed_keys.add(key)
            alert = self._alerts.get(key)
            if alert is not None and not alert.is_viewed:
                self._alerts[key] = replace(alert, is_viewed=True)
        self._save_viewed()
        self._emit_updated()

    def mark_viewed(self, favorite_id: str) -> None:
        """Mark every alert of one favorite as viewed."""
        self._mark_keys_viewed([a.key for a in self.alerts_for(favorite_id)])

    def mark_alert_viewed(self, report_id: str, favorite_id: str) -> None:
        """Mark a single (report, favorite) alert as viewed (idempotent)."""
        self._mark_keys_viewed([FavoriteAlertKey(report_id, favorite_id)])

    def mark_all_viewed(self) -> None:
        """Mark every favorite alert as viewed."""
        self._mark_keys_viewed(list(self._alerts))

    def remove_for_expired_reports(self, expired_reports: list[Report]) -> None:
        """Drop alerts and viewed keys belonging to expired reports."""
        expired_ids = {r.id for r in expired_reports}
        if not expired_ids:
            return
        self._purge(lambda key: key.report_id in expired_ids)

    def remove_for_deleted_favorite(self, favorite_id: str) -> None:
        """Drop alerts and viewed keys belonging to a deleted favorite."""
        self._purge(lambda key: key.favorite_id == favorite_id)

    def _purge(self, matches) -> None:
        for key in [k for k in self._alerts if matches(k)]:
            del self._alerts[key]

        stale_keys = {k for k in self._viewed_keys if matches(k)}
        if stale_keys:
            self._viewed_keys -= stale_keys
            self._save_viewed()

        self._emit_updated()

    def on_favorite_updated(self, favorite: FavoritePlace) -> None:
        """Re-evaluate a favorite's alerts after an edit.

        Alerts that no longer satisfy the new radius or category filter
        are dropped; the rest point at the edited record. Viewed keys are
        kept so an alert the user dismissed does not return.
        """
        changed = False
        for alert in self.alerts_for(favorite.id):
            if favorite_still_matches(alert, favorite):
                self._alerts[alert.key] = replace(
                    alert,
                    favorite=favorite,
                    distance_from_favorite=distance_between(
                        favorite.location, alert.report.location,
                    ),
                )
            else:
                del self._alerts[alert.key]
            changed = True

        if changed:
            self._emit_updated()

    def on_favorite_removed(self, favorite_id: str) -> None:
        self.remove_for_deleted_favorite(favorite_id)
