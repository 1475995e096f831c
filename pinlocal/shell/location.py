"""Location Sources - Imperative Shell.

Position fixes come from the platform (GPS, fused provider, OwnTracks,
...). Rather than listener callbacks, a LocationSource exposes them as
awaitables and an async iterator, so a single consumer task can apply
every update to the engine in order.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from pinlocal.core.geo import Coordinate, is_valid_coordinate


logger = logging.getLogger(__name__)


class LocationSource:
    """Interface for anything that can report the device position."""

    async def current_location(self) -> Coordinate | None:
        """Request a fresh fix; None when no fix is available."""
        raise NotImplementedError

    async def last_known_location(self) -> Coordinate | None:
        """Return the most recent fix without requesting a new one."""
        raise NotImplementedError

    def updates(self) -> AsyncIterator[Coordinate]:
        """Iterate over position updates as they arrive."""
        raise NotImplementedError


class FixedLocationSource(LocationSource):
    """A source that always reports the same position."""

    def __init__(self, location: Coordinate | None) -> None:
        self.location = location

    async def current_location(self) -> Coordinate | None:
        return self.location

    async def last_known_location(self) -> Coordinate | None:
        return self.location

    async def updates(self) -> AsyncIterator[Coordinate]:
        if self.location is not None:
            yield self.location


class QueueLocationSource(LocationSource):
    """A source fed by a platform adapter through an asyncio queue.

    The adapter calls push() from the event loop thread (or
    push_threadsafe() from any other thread). Invalid coordinates are
    dropped at the boundary. close() ends the updates() iteration.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._last: Coordinate | None = None

    def push(self, location: Coordinate) -> bool:
        """Deliver a position fix. Returns False if it was rejected."""
        if not is_valid_coordinate(location.latitude, location.longitude):
            logger.warning("Dropping invalid position %s", location)
            return False
        self._last = location
        self._queue.put_nowait(location)
        return True

    def push_threadsafe(self, loop: asyncio.AbstractEventLoop, location: Coordinate) -> None:
        """Deliver a position fix from outside the event loop thread."""
        loop.call_soon_threadsafe(self.push, location)

    def close(self) -> None:
        """Stop the updates() iteration once queued fixes are consumed."""
        self._queue.put_nowait(self._CLOSED)

    async def current_location(self) -> Coordinate | None:
        return self._last

    async def last_known_location(self) -> Coordinate | None:
        return self._last

    async def updates(self) -> AsyncIterator[Coordinate]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            yield item
