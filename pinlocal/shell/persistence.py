"""Persistence Stores - Imperative Shell.

This module persists engine state as opaque string blobs keyed by logical
name. Every write replaces the whole blob for its key, so a crash between
a mutation and its write loses at most that change and never leaves a
half-written record behind.

Backends:
- InMemoryStore: process-local, for tests and ephemeral runs
- JsonFileStore: one JSON file on disk, replaced atomically
- FirestoreStore: one Google Cloud Firestore document per device

All I/O is contained here; serialization logic is in the core module.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from google.cloud import firestore

from pinlocal.core.config import PersistenceConfig
from pinlocal.core.errors import StoreUnavailable


logger = logging.getLogger(__name__)


# Logical keys, one blob each
REPORTS_KEY = "reports"
FAVORITES_KEY = "favorites"
VIEWED_ALERTS_KEY = "viewed_alerts"
VIEWED_FAVORITE_ALERTS_KEY = "viewed_favorite_alerts"
LAST_REPORT_TIMESTAMP_KEY = "last_report_timestamp"
ALERT_DISTANCE_KEY = "alert_distance"


class PersistenceStore:
    """Key/blob store interface.

    Implementations raise StoreUnavailable when the backend fails.
    """

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def put(self, key: str, value: str) -> None:
        raise NotImplementedError


class InMemoryStore(PersistenceStore):
    """Dictionary-backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def put(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore(PersistenceStore):
    """Store that keeps every key in a single JSON file.

    Writes go to a temporary file in the same directory which then
    replaces the state file, so readers only ever see a complete file.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize file store.

        Args:
            path: Location of the JSON state file
        """
        self.path = Path(path)
        self._cache: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._cache is not None:
            return self._cache

        if not self.path.exists():
            logger.info("No state file at %s, starting empty", self.path)
            self._cache = {}
            return self._cache

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise StoreUnavailable(str(self.path), str(e)) from e
        except ValueError as e:
            logger.error("State file %s is corrupt, starting empty: %s", self.path, e)
            data = {}

        if not isinstance(data, dict):
            logger.error("State file %s is not an object, starting empty", self.path)
            data = {}

        self._cache = {k: v for k, v in data.items() if isinstance(v, str)}
        return self._cache

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def put(self, key: str, value: str) -> None:
        data = dict(self._load())
        data[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StoreUnavailable(key, str(e)) from e

        self._cache = data


class FirestoreStore(PersistenceStore):
    """Store backed by a single Firestore document.

    This is part of the imperative shell - it handles database I/O.

    Document structure:
    {
        "reports": "<blob>",
        "favorites": "<blob>",
        ...
        "updated_at": <timestamp>
    }
    """

    def __init__(self, config: PersistenceConfig | None = None) -> None:
        """Initialize Firestore store.

        Args:
            config: Persistence configuration
        """
        self.config = config or PersistenceConfig(backend="firestore")
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.firestore_database:
                kwargs["database"] = self.config.firestore_database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _get_doc_ref(self) -> Any:
        """Get reference to this device's state document."""
        return (
            self.client
            .collection(self.config.firestore_collection)
            .document(self.config.firestore_document)
        )

    def get(self, key: str) -> str | None:
        """Fetch one blob from the state document.

        This method performs database I/O.
        """
        try:
            doc = self._get_doc_ref().get()
        except Exception as e:
            logger.error("Failed to fetch '%s' from Firestore: %s", key, str(e))
            raise StoreUnavailable(key, str(e)) from e

        if not doc.exists:
            return None

        value = (doc.to_dict() or {}).get(key)
        return value if isinstance(value, str) else None

    def put(self, key: str, value: str) -> None:
        """Replace one blob in the state document.

        This method performs database I/O. A merge write of a single field
        replaces that field atomically and leaves the other keys intact.
        """
        try:
            self._get_doc_ref().set(
                {
                    key: value,
                    "updated_at": datetime.now(timezone.utc),
                },
                merge=True,
            )
        except Exception as e:
            logger.error("Failed to save '%s' to Firestore: %s", key, str(e))
            raise StoreUnavailable(key, str(e)) from e


def create_store(config: PersistenceConfig) -> PersistenceStore:
    """Build the store selected by configuration.

    Raises:
        ValueError: If the backend name is unknown
    """
    if config.backend == "memory":
        return InMemoryStore()
    if config.backend == "file":
        return JsonFileStore(config.path)
    if config.backend == "firestore":
        return FirestoreStore(config)
    raise ValueError(f"Unknown persistence backend: {config.backend}")


class StateWriter:
    """Ordered, failure-tolerant writer in front of a PersistenceStore.

    Writes are applied in call order after the in-memory mutation that
    produced them. When the backend is unavailable the latest blob per key
    is kept and retried on the next save or flush; in-memory state is never
    rolled back.
    """

    def __init__(self, store: PersistenceStore) -> None:
        self.store = store
        self._pending: dict[str, str] = {}

    @property
    def pending_keys(self) -> list[str]:
        """Keys whose latest blob has not reached the store yet."""
        return list(self._pending)

    def read(self, key: str) -> str | None:
        """Read a blob, treating an unavailable backend as missing data."""
        try:
            return self.store.get(key)
        except StoreUnavailable as e:
            logger.error("Could not read '%s', starting without it: %s", key, e)
            return None

    def save(self, key: str, value: str) -> bool:
        """Queue a blob and try to write everything pending.

        Returns:
            True if every pending blob was written
        """
        # A newer blob supersedes an older unwritten one for the same key
        self._pending.pop(key, None)
        self._pending[key] = value
        return self.flush()

    def flush(self) -> bool:
        """Retry pending writes in order, stopping at the first failure.

        Returns:
            True if nothing is left pending
        """
        for key in list(self._pending):
            try:
                self.store.put(key, self._pending[key])
            except StoreUnavailable as e:
                logger.warning(
                    "Deferred write of '%s' (%d pending): %s",
                    key,
                    len(self._pending),
                    e,
                )
                return False
            del self._pending[key]
        return True
