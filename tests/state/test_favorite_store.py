"""Tests for the FavoriteStore."""

from unittest.mock import Mock

import pytest

from pinlocal.core import codec
from pinlocal.core.favorite import edit_favorite
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import ReportCategory
from pinlocal.shell.persistence import FAVORITES_KEY, InMemoryStore, StateWriter
from pinlocal.state.favorite_store import FavoriteStore


@pytest.fixture
def listener():
    return Mock()


@pytest.fixture
def store(writer, clock, listener):
    return FavoriteStore(writer, clock=clock, listener=listener)


class TestCreateFavorite:
    def test_defaults(self, store, clock):
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))

        assert favorite.id
        assert favorite.alert_distance == 1609
        assert favorite.enable_safety_alerts
        assert not favorite.enable_fun_alerts
        assert favorite.enable_lost_alerts
        assert favorite.created_at == clock.now()

    def test_categories_map_to_flags(self, store):
        favorite = store.create_favorite(
            "Park", Coordinate(40.0, -74.0), categories={ReportCategory.FUN},
        )
        assert favorite.enabled_categories == (ReportCategory.FUN,)

    def test_persists_and_notifies(self, store, memory_store, listener):
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))

        assert codec.decode_favorites(memory_store.get(FAVORITES_KEY)).records == [favorite]
        listener.on_favorites_updated.assert_called_with([favorite])

    def test_add_duplicate_id_rejected(self, store):
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))
        with pytest.raises(ValueError):
            store.add(favorite)
        assert len(store) == 1


class TestUpdate:
    def test_update_keeps_id_and_creation_time(self, store):
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))
        edited = edit_favorite(favorite, name="Apartment", id="other", created_at=None)

        assert store.update(edited)

        stored = store.get(favorite.id)
        assert stored.name == "Apartment"
        assert stored.id == favorite.id
        assert stored.created_at == favorite.created_at

    def test_update_unknown_returns_false(self, store):
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))
        store.remove(favorite.id)
        assert not store.update(edit_favorite(favorite, name="Ghost"))
        assert store.list() == []

    def test_update_notifies_change_listeners_first(self, store, listener):
        calls = []
        change_listener = Mock()
        change_listener.on_favorite_updated.side_effect = lambda f: calls.append("engine")
        listener.on_favorites_updated.side_effect = lambda f: calls.append("ui")
        store.add_change_listener(change_listener)
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))
        calls.clear()

        store.update(edit_favorite(favorite, alert_distance=3218))

        assert calls == ["engine", "ui"]


class TestRemove:
    def test_remove(self, store, memory_store):
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))

        assert store.remove(favorite.id)
        assert store.get(favorite.id) is None
        assert memory_store.get(FAVORITES_KEY) == "[]"

    def test_remove_unknown(self, store):
        assert not store.remove("missing")

    def test_remove_notifies_change_listeners(self, store):
        change_listener = Mock()
        store.add_change_listener(change_listener)
        favorite = store.create_favorite("Home", Coordinate(40.0, -74.0))

        store.remove(favorite.id)

        change_listener.on_favorite_removed.assert_called_once_with(favorite.id)


class TestLoad:
    def test_round_trip(self, store, writer, clock):
        store.create_favorite("Home", Coordinate(40.0, -74.0))
        store.create_favorite("Work", Coordinate(40.7, -74.0), alert_distance=3218)

        restored = FavoriteStore(writer, clock=clock)

        assert restored.load() == 2
        assert restored.list() == store.list()

    def test_migrates_legacy_format(self, clock, listener):
        created_ms = int(clock.now().timestamp() * 1000)
        backing = InMemoryStore({
            FAVORITES_KEY: f"f1:::Home:::40.0:::-74.0:::1609.0:::true:::false:::true:::{created_ms}",
        })

        restored = FavoriteStore(StateWriter(backing), clock=clock, listener=listener)

        assert restored.load() == 1
        assert backing.get(FAVORITES_KEY).startswith("[")
        listener.on_favorites_updated.assert_called_once_with(restored.list())
