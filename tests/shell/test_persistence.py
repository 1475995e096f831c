"""Tests for persistence stores and the deferred-write StateWriter."""

import json
from unittest.mock import MagicMock, Mock, patch

import pytest

from pinlocal.core.config import PersistenceConfig
from pinlocal.core.errors import StoreUnavailable
from pinlocal.shell.persistence import (
    FirestoreStore,
    InMemoryStore,
    JsonFileStore,
    PersistenceStore,
    StateWriter,
    create_store,
)


class FlakyStore(PersistenceStore):
    """In-memory store whose writes can be switched off."""

    def __init__(self):
        self.data = {}
        self.available = True
        self.puts = []

    def get(self, key):
        if not self.available:
            raise StoreUnavailable(key, "offline")
        return self.data.get(key)

    def put(self, key, value):
        if not self.available:
            raise StoreUnavailable(key, "offline")
        self.puts.append(key)
        self.data[key] = value


class TestInMemoryStore:
    def test_get_missing(self):
        assert InMemoryStore().get("reports") is None

    def test_put_and_get(self):
        store = InMemoryStore()
        store.put("reports", "[]")
        assert store.get("reports") == "[]"

    def test_initial_data_is_copied(self):
        initial = {"reports": "[]"}
        store = InMemoryStore(initial)
        store.put("reports", "changed")
        assert initial == {"reports": "[]"}


class TestJsonFileStore:
    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        assert store.get("reports") is None

    def test_put_writes_whole_file(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        store = JsonFileStore(path)

        store.put("reports", "[]")
        store.put("favorites", '[{"id": "f1"}]')

        assert json.loads(path.read_text(encoding="utf-8")) == {
            "reports": "[]",
            "favorites": '[{"id": "f1"}]',
        }

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "state.json"
        JsonFileStore(path).put("alert_distance", "1609.0")
        assert JsonFileStore(path).get("alert_distance") == "1609.0"

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        store.put("reports", "[]")
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{truncated", encoding="utf-8")
        assert JsonFileStore(path).get("reports") is None

    def test_non_object_file_is_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert JsonFileStore(path).get("reports") is None

    def test_write_failure_raises_store_unavailable(self, tmp_path):
        store = JsonFileStore(tmp_path / "state.json")
        with patch("pinlocal.shell.persistence.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreUnavailable) as exc_info:
                store.put("reports", "[]")
        assert exc_info.value.key == "reports"
        assert not (tmp_path / "state.json").exists()


class TestFirestoreStore:
    @pytest.fixture
    def store(self):
        store = FirestoreStore(PersistenceConfig(
            backend="firestore",
            firestore_collection="pinlocal_state",
            firestore_document="device-1",
        ))
        store._client = MagicMock()
        return store

    def _doc_ref(self, store):
        return store._client.collection.return_value.document.return_value

    def test_get_reads_field(self, store):
        doc = Mock(exists=True)
        doc.to_dict.return_value = {"reports": "[]", "updated_at": object()}
        self._doc_ref(store).get.return_value = doc

        assert store.get("reports") == "[]"
        store._client.collection.assert_called_with("pinlocal_state")
        store._client.collection.return_value.document.assert_called_with("device-1")

    def test_get_missing_document(self, store):
        self._doc_ref(store).get.return_value = Mock(exists=False)
        assert store.get("reports") is None

    def test_put_merges_single_field(self, store):
        store.put("favorites", "[]")

        args, kwargs = self._doc_ref(store).set.call_args
        assert args[0]["favorites"] == "[]"
        assert "updated_at" in args[0]
        assert kwargs == {"merge": True}

    def test_errors_become_store_unavailable(self, store):
        self._doc_ref(store).set.side_effect = Exception("Permission denied")
        with pytest.raises(StoreUnavailable):
            store.put("reports", "[]")

    def test_read_errors_become_store_unavailable(self, store):
        self._doc_ref(store).get.side_effect = Exception("Unavailable")
        with pytest.raises(StoreUnavailable):
            store.get("reports")


class TestCreateStore:
    def test_memory(self):
        assert isinstance(create_store(PersistenceConfig(backend="memory")), InMemoryStore)

    def test_file(self, tmp_path):
        store = create_store(PersistenceConfig(backend="file", path=str(tmp_path / "s.json")))
        assert isinstance(store, JsonFileStore)

    def test_firestore_is_lazy(self):
        with patch("pinlocal.shell.persistence.firestore.Client") as client_cls:
            store = create_store(PersistenceConfig(backend="firestore"))
        assert isinstance(store, FirestoreStore)
        client_cls.assert_not_called()

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_store(PersistenceConfig(backend="redis"))


class TestStateWriter:
    def test_save_writes_through(self):
        store = FlakyStore()
        writer = StateWriter(store)

        assert writer.save("reports", "[]")
        assert store.data == {"reports": "[]"}
        assert writer.pending_keys == []

    def test_failed_write_is_deferred(self):
        store = FlakyStore()
        store.available = False
        writer = StateWriter(store)

        assert not writer.save("reports", "[1]")
        assert writer.pending_keys == ["reports"]

    def test_latest_blob_wins_on_retry(self):
        store = FlakyStore()
        store.available = False
        writer = StateWriter(store)

        writer.save("reports", "old")
        writer.save("favorites", "[]")
        writer.save("reports", "new")

        store.available = True
        assert writer.flush()
        assert store.data == {"reports": "new", "favorites": "[]"}
        assert store.puts == ["favorites", "reports"]

    def test_next_save_retries_pending(self):
        store = FlakyStore()
        writer = StateWriter(store)
        store.available = False
        writer.save("reports", "[]")

        store.available = True
        writer.save("favorites", "[]")

        assert store.data == {"reports": "[]", "favorites": "[]"}
        assert writer.pending_keys == []

    def test_read_failure_returns_none(self):
        store = FlakyStore()
        store.available = False
        assert StateWriter(store).read("reports") is None
