"""Orchestrator - Wires Functional Core, Imperative Shell and state owners.

This module coordinates the flow of data between location updates,
the report/favorite stores, both alert engines, persistence and the
optional report backend. It's the "glue" that makes the engine work.

Every public method runs under one lock, so the stores behave as
single owners even when called from several threads (API workers and
the monitor loop).
"""

import logging
import threading
from dataclasses import dataclass, field

from pinlocal.core.alert import Alert, FavoriteAlert
from pinlocal.core.config import Config
from pinlocal.core.favorite import DEFAULT_FAVORITE_ALERT_DISTANCE, FavoritePlace, edit_favorite
from pinlocal.core.formatter import format_alert_summary, format_favorite_alert_summary
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import Report, ReportCategory, parse_category
from pinlocal.shell.backend_client import BackendClient
from pinlocal.shell.clock import Clock, SystemClock
from pinlocal.shell.persistence import PersistenceStore, StateWriter, create_store
from pinlocal.state.alert_engine import AlertEngine
from pinlocal.state.cooldown_gate import CooldownGate
from pinlocal.state.favorite_alert_engine import FavoriteAlertEngine
from pinlocal.state.favorite_store import DEFAULT_CATEGORIES, FavoriteStore
from pinlocal.state.listener import EngineListener
from pinlocal.state.report_store import ReportStore


logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Result of one alert-matching pass.

    Attributes:
        new_alerts: User alerts created and not viewed before
        new_favorite_alerts: Favorite alerts created and not viewed before
        suppressed: True if the cooldown gate skipped matching
    """
    new_alerts: list[Alert] = field(default_factory=list)
    new_favorite_alerts: list[FavoriteAlert] = field(default_factory=list)
    suppressed: bool = False

    @property
    def has_new(self) -> bool:
        return bool(self.new_alerts or self.new_favorite_alerts)

    def notification_texts(self, alert_distance_m: float, language: str = "en") -> list[str]:
        """Texts for the platform notification layer, one per alert kind."""
        texts = []
        if self.new_alerts:
            texts.append(format_alert_summary(self.new_alerts, alert_distance_m, language))
        if self.new_favorite_alerts:
            texts.append(format_favorite_alert_summary(self.new_favorite_alerts, language))
        return texts


@dataclass
class SyncResult:
    """Result of pulling reports from the backend.

    Attributes:
        fetched: Active reports returned by the backend
        added: Reports not known locally before
        check: Matching pass run after ingesting
        error: Error message if the fetch failed
    """
    fetched: int = 0
    added: int = 0
    check: CheckResult = field(default_factory=CheckResult)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def summary(self) -> str:
        """Human-readable summary of the sync."""
        return (
            f"Fetched {self.fetched} reports, "
            f"{self.added} new, "
            f"{len(self.check.new_alerts)} alerts, "
            f"{len(self.check.new_favorite_alerts)} favorite alerts"
        )


class Orchestrator:
    """Coordinates reports, favorites and alert matching.

    This class wires together:
    - StateWriter over the configured persistence store
    - CooldownGate (self-notification suppression)
    - ReportStore and FavoriteStore (record owners)
    - AlertEngine and FavoriteAlertEngine (matching and viewed-state)
    - BackendClient (optional report relay)
    """

    def __init__(
        self,
        config: Config,
        store: PersistenceStore | None = None,
        clock: Clock | None = None,
        listener: EngineListener | None = None,
        backend_client: BackendClient | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            store: Persistence store (created from config if not provided)
            clock: Time source (system clock if not provided)
            listener: Receiver for engine events
            backend_client: Report backend (from config if not provided;
                None when no backend URL is configured)
        """
        self.config = config
        self.clock = clock or SystemClock()
        self.listener = listener or EngineListener()
        self.backend_client = backend_client or BackendClient.from_config(config.backend)
        self.writer = StateWriter(store or create_store(config.persistence))
        self.last_location: Coordinate | None = None
        self._lock = threading.RLock()

        self.cooldown_gate = CooldownGate(self.writer, config.cooldown, self.clock)
        self.report_store = ReportStore(
            self.writer,
            clock=self.clock,
            cooldown_gate=self.cooldown_gate,
            listener=self.listener,
        )
        self.alert_engine = AlertEngine(
            self.report_store,
            self.cooldown_gate,
            self.writer,
            clock=self.clock,
            alert_distance=config.alert_distance_m,
            listener=self.listener,
        )
        self.favorite_store = FavoriteStore(self.writer, clock=self.clock, listener=self.listener)
        self.favorite_alert_engine = FavoriteAlertEngine(
            self.favorite_store,
            self.report_store,
            self.cooldown_gate,
            self.writer,
            clock=self.clock,
            listener=self.listener,
        )

    def load(self) -> None:
        """Restore all persisted state and drop anything that expired meanwhile."""
        with self._lock:
            self.cooldown_gate.load()
            self.report_store.load()
            self.alert_engine.load()
            self.favorite_store.load()
            self.favorite_alert_engine.load()
            self._drop_derived(self.report_store.expired_on_load)
            self._sweep()
            logger.info(
                "Loaded %d reports and %d favorites",
                len(self.report_store),
                len(self.favorite_store),
            )

    def flush(self) -> bool:
        """Retry deferred writes. Returns True if nothing is pending."""
        with self._lock:
            return self.writer.flush()

    # Matching

    def _check(self, location: Coordinate | None) -> CheckResult:
        self._sweep()
        if self.cooldown_gate.is_suppressed():
            logger.debug(
                "Alert matching suppressed for another %s",
                self.cooldown_gate.remaining(),
            )
            return CheckResult(suppressed=True)

        result = CheckResult()
        if location is not None:
            result.new_alerts = self.alert_engine.check_for_new_alerts(location)
        result.new_favorite_alerts = self.favorite_alert_engine.check_for_favorite_alerts()
        return result

    def on_location_update(self, location: Coordinate) -> CheckResult:
        """Record a new position fix and match reports against it."""
        with self._lock:
            self.last_location = location
            return self._check(location)

    def check_alerts(self) -> CheckResult:
        """Periodic matching pass against the last known position."""
        with self._lock:
            return self._check(self.last_location)

    def nearby_unviewed(self, location: Coordinate | None = None) -> list[Alert]:
        """Unviewed alerts near `location` (or the last known position)."""
        with self._lock:
            location = location or self.last_location
            if location is None:
                return []
            return self.alert_engine.nearby_unviewed(location)

    # Reports

    def _drop_derived(self, expired: list[Report]) -> None:
        if expired:
            self.alert_engine.remove_for_expired_reports(expired)
            self.favorite_alert_engine.remove_for_expired_reports(expired)

    def _sweep(self) -> list[Report]:
        expired = self.report_store.sweep_expired()
        self._drop_derived(expired)
        return expired

    def sweep_expired(self) -> list[Report]:
        """Remove expired reports and every alert derived from them."""
        with self._lock:
            return self._sweep()

    def create_report(
        self,
        location: Coordinate,
        text: str,
        category: ReportCategory | str,
        language: str | None = None,
        photo: bytes | None = None,
    ) -> Report:
        """Create a local report and relay it to the backend if configured.

        A failed relay is logged; the report stays in the local store.

        Raises:
            InvalidCategory: If category is not a known code
        """
        with self._lock:
            report = self.report_store.create_report(
                location=location,
                text=text,
                language=language or self.config.language,
                category=parse_category(category),
                photo=photo,
            )

        if self.backend_client is not None:
            response = self.backend_client.submit_report(report)
            if not response.success:
                logger.error("Failed to relay report %s: %s", report.id, response.error)

        return report.without_photo()

    def ingest_reports(self, reports: list[Report]) -> int:
        """Add reports created elsewhere. Returns how many were new."""
        with self._lock:
            return sum(1 for report in reports if self.report_store.add_report(report))

    def active_reports(self) -> list[Report]:
        with self._lock:
            return list(self.report_store.active_reports())

    def sync_reports(self) -> SyncResult:
        """Pull reports from the backend, ingest them and run matching."""
        if self.backend_client is None:
            return SyncResult(error="No backend configured")

        fetched = self.backend_client.fetch_reports(self.clock.now())
        if not fetched.success:
            logger.warning("Report sync failed: %s", fetched.error)
            return SyncResult(error=fetched.error)

        with self._lock:
            added = self.ingest_reports(fetched.reports)
            check = self._check(self.last_location)

        result = SyncResult(fetched=len(fetched.reports), added=added, check=check)
        logger.info(result.summary)
        return result

    def subscribe_location(self, location: Coordinate) -> bool:
        """Ask the backend to push reports near `location`."""
        if self.backend_client is None:
            return False
        response = self.backend_client.subscribe_to_alerts(
            location, self.config.backend.device_token,
        )
        return response.success

    # User alerts

    @property
    def alert_distance(self) -> float:
        return self.alert_engine.alert_distance

    def set_alert_distance(self, meters: float) -> None:
        """Change the user alert radius.

        Raises:
            ValueError: If meters is not positive
        """
        with self._lock:
            self.alert_engine.set_alert_distance(meters)

    def alerts(self) -> list[Alert]:
        with self._lock:
            return self.alert_engine.alerts()

    def mark_alert_viewed(self, report_id: str) -> None:
        with self._lock:
            self.alert_engine.mark_viewed(report_id)

    def mark_all_alerts_viewed(self) -> None:
        with self._lock:
            self.alert_engine.mark_all_viewed()

    # Favorites

    def favorites(self) -> list[FavoritePlace]:
        with self._lock:
            return self.favorite_store.list()

    def get_favorite(self, favorite_id: str) -> FavoritePlace | None:
        with self._lock:
            return self.favorite_store.get(favorite_id)

    def add_favorite(
        self,
        name: str,
        location: Coordinate,
        alert_distance: float = DEFAULT_FAVORITE_ALERT_DISTANCE,
        categories: set[ReportCategory] | frozenset[ReportCategory] = DEFAULT_CATEGORIES,
        description: str = "",
    ) -> FavoritePlace:
        """Create a favorite place with a fresh id."""
        with self._lock:
            return self.favorite_store.create_favorite(
                name=name,
                location=location,
                alert_distance=alert_distance,
                categories=categories,
                description=description,
            )

    def update_favorite(self, favorite_id: str, **changes) -> FavoritePlace | None:
        """Edit a favorite in place; returns None if the id is unknown."""
        with self._lock:
            favorite = self.favorite_store.get(favorite_id)
            if favorite is None:
                return None
            updated = edit_favorite(favorite, **changes)
            self.favorite_store.update(updated)
            return updated

    def remove_favorite(self, favorite_id: str) -> bool:
        """Delete a favorite together with its alerts and viewed keys."""
        with self._lock:
            return self.favorite_store.remove(favorite_id)

    def favorite_alerts(self, favorite_id: str | None = None) -> list[FavoriteAlert]:
        with self._lock:
            if favorite_id is None:
                return self.favorite_alert_engine.alerts()
            return self.favorite_alert_engine.alerts_for(favorite_id)

    def mark_favorite_viewed(self, favorite_id: str) -> None:
        with self._lock:
            self.favorite_alert_engine.mark_viewed(favorite_id)

    def mark_favorite_alert_viewed(self, report_id: str, favorite_id: str) -> None:
        with self._lock:
            self.favorite_alert_engine.mark_alert_viewed(report_id, favorite_id)

    def mark_all_favorite_alerts_viewed(self) -> None:
        with self._lock:
            self.favorite_alert_engine.mark_all_viewed()
