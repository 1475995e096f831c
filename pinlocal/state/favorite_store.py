"""Favorite store - single owner of the user's favorite places."""

import logging
import uuid

from pinlocal.core import codec
from pinlocal.core.favorite import (
    DEFAULT_FAVORITE_ALERT_DISTANCE,
    FavoritePlace,
    favorite_from_categories,
)
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import ReportCategory
from pinlocal.shell.clock import Clock, SystemClock
from pinlocal.shell.persistence import FAVORITES_KEY, StateWriter
from pinlocal.state.listener import EngineListener, FavoriteChangeListener


logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = frozenset({ReportCategory.SAFETY, ReportCategory.LOST_MISSING})


class FavoriteStore:
    """Owns FavoritePlace records.

    Edits replace a whole record under its stable id. Change listeners
    (the favorite alert engine) are notified before the change is
    reported to the UI, so a removed favorite's alerts are gone by the
    time remove() returns.
    """

    def __init__(
        self,
        writer: StateWriter,
        clock: Clock | None = None,
        listener: EngineListener | None = None,
    ) -> None:
        self.writer = writer
        self.clock = clock or SystemClock()
        self.listener = listener or EngineListener()
        self._favorites: dict[str, FavoritePlace] = {}
        self._change_listeners: list[FavoriteChangeListener] = []

    def __len__(self) -> int:
        return len(self._favorites)

    def add_change_listener(self, listener: FavoriteChangeListener) -> None:
        self._change_listeners.append(listener)

    def load(self) -> int:
        """Restore favorites, skipping malformed records.

        Returns:
            Number of favorites restored
        """
        result = codec.decode_favorites(self.writer.read(FAVORITES_KEY))
        for error in result.errors:
            logger.warning("Skipping malformed favorite record: %s", error)

        self._favorites = {}
        for favorite in result.records:
            self._favorites.setdefault(favorite.id, favorite)

        if result.legacy:
            logger.info("Migrating %d favorites from the legacy format", len(self._favorites))
            self._persist()

        logger.info("Restored %d favorites", len(self._favorites))
        self.listener.on_favorites_updated(self.list())
        return len(self._favorites)

    def serialize(self) -> str:
        return codec.encode_favorites(self.list())

    def _persist(self) -> None:
        self.writer.save(FAVORITES_KEY, self.serialize())

    def _changed(self) -> None:
        self._persist()
        self.listener.on_favorites_updated(self.list())

    def list(self) -> list[FavoritePlace]:
        return list(self._favorites.values())

    def get(self, favorite_id: str) -> FavoritePlace | None:
        return self._favorites.get(favorite_id)

    def create_favorite(
        self,
        name: str,
        location: Coordinate,
        alert_distance: float = DEFAULT_FAVORITE_ALERT_DISTANCE,
        categories: set[ReportCategory] | frozenset[ReportCategory] = DEFAULT_CATEGORIES,
        description: str = "",
    ) -> FavoritePlace:
        """Build a new favorite with a fresh id and add it."""
        favorite = favorite_from_categories(
            favorite_id=str(uuid.uuid4()),
            name=name,
            location=location,
            categories=set(categories),
            alert_distance=alert_distance,
            now=self.clock.now(),
            description=description,
        )
        self.add(favorite)
        return favorite

    def add(self, favorite: FavoritePlace) -> None:
        """Add a favorite.

        Raises:
            ValueError: If a favorite with the same id already exists
        """
        if favorite.id in self._favorites:
            raise ValueError(f"Favorite {favorite.id} already exists")
        self._favorites[favorite.id] = favorite
        logger.info("Added favorite %s (%s)", favorite.id, favorite.name)
        self._changed()

    def update(self, favorite: FavoritePlace) -> bool:
        """Replace the favorite with the same id.

        Returns:
            False (and changes nothing) if the id is unknown
        """
        if favorite.id not in self._favorites:
            return False
        self._favorites[favorite.id] = favorite
        for change_listener in self._change_listeners:
            change_listener.on_favorite_updated(favorite)
        self._changed()
        return True

    def remove(self, favorite_id: str) -> bool:
        """Delete a favorite and, through listeners, everything derived from it.

        Returns:
            False if the id is unknown
        """
        if self._favorites.pop(favorite_id, None) is None:
            return False
        for change_listener in self._change_listeners:
            change_listener.on_favorite_removed(favorite_id)
        logger.info("Removed favorite %s", favorite_id)
        self._changed()
        return True
