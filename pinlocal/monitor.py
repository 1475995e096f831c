"""Alert monitor - the long-running event loop around the Orchestrator.

Location fixes, the periodic alert check and the periodic cleanup are
turned into events on one queue and applied by a single consumer, so
matching never runs concurrently with itself.
"""

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass

from pinlocal.core.geo import Coordinate
from pinlocal.orchestrator import CheckResult, Orchestrator
from pinlocal.shell.location import LocationSource


logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    LOCATION = "location"
    CHECK = "check"
    CLEANUP = "cleanup"
    STOP = "stop"


@dataclass(frozen=True)
class MonitorEvent:
    kind: EventKind
    location: Coordinate | None = None


def log_notifications(result: CheckResult, orchestrator: Orchestrator) -> None:
    """Default notifier: log the texts a platform would show."""
    texts = result.notification_texts(orchestrator.alert_distance, orchestrator.config.language)
    for text in texts:
        logger.info("Notification: %s", text)


class AlertMonitor:
    """Drives an Orchestrator from a LocationSource and two timers.

    Args:
        orchestrator: Engine to drive
        location_source: Source of position fixes
        notify: Called with every CheckResult that produced new alerts
        check_interval: Seconds between periodic checks (config default)
        cleanup_interval: Seconds between expiry sweeps (config default)
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        location_source: LocationSource,
        notify: Callable[[CheckResult, Orchestrator], None] = log_notifications,
        check_interval: float | None = None,
        cleanup_interval: float | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.location_source = location_source
        self.notify = notify
        self.check_interval = check_interval or orchestrator.config.check_interval_seconds
        self.cleanup_interval = cleanup_interval or orchestrator.config.cleanup_interval_seconds
        self._events: asyncio.Queue[MonitorEvent] = asyncio.Queue()

    def stop(self) -> None:
        """Ask run() to return after the events already queued."""
        self._events.put_nowait(MonitorEvent(EventKind.STOP))

    async def handle(self, event: MonitorEvent) -> CheckResult | None:
        """Apply one event to the orchestrator."""
        result = None
        if event.kind is EventKind.LOCATION and event.location is not None:
            result = await asyncio.to_thread(self.orchestrator.on_location_update, event.location)
        elif event.kind is EventKind.CHECK:
            if self.orchestrator.backend_client is not None:
                sync = await asyncio.to_thread(self.orchestrator.sync_reports)
                result = sync.check
            else:
                result = await asyncio.to_thread(self.orchestrator.check_alerts)
        elif event.kind is EventKind.CLEANUP:
            await asyncio.to_thread(self.orchestrator.sweep_expired)
            await asyncio.to_thread(self.orchestrator.flush)

        if result is not None and result.has_new:
            self.notify(result, self.orchestrator)
        return result

    async def _pump_locations(self) -> None:
        async for location in self.location_source.updates():
            await self._events.put(MonitorEvent(EventKind.LOCATION, location))
        logger.info("Location updates ended")

    async def _tick(self, kind: EventKind, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._events.put(MonitorEvent(kind))

    async def run(self) -> None:
        """Consume events until stop() is called."""
        last_known = await self.location_source.last_known_location()
        if last_known is not None:
            await self._events.put(MonitorEvent(EventKind.LOCATION, last_known))

        producers = [
            asyncio.create_task(self._pump_locations()),
            asyncio.create_task(self._tick(EventKind.CHECK, self.check_interval)),
            asyncio.create_task(self._tick(EventKind.CLEANUP, self.cleanup_interval)),
        ]
        logger.info(
            "Alert monitor started (check every %ss, cleanup every %ss)",
            self.check_interval,
            self.cleanup_interval,
        )

        try:
            while True:
                event = await self._events.get()
                if event.kind is EventKind.STOP:
                    break
                try:
                    await self.handle(event)
                except Exception:
                    logger.exception("Failed to handle %s event", event.kind.value)
        finally:
            for task in producers:
                task.cancel()
            await asyncio.gather(*producers, return_exceptions=True)
            await asyncio.to_thread(self.orchestrator.flush)
            logger.info("Alert monitor stopped")
