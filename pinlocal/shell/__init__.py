"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- Persistence stores (memory, JSON file, Firestore)
- Report backend client (HTTP)
- Location sources (platform position fixes)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from pinlocal.shell.backend_client import BackendClient
from pinlocal.shell.clock import Clock, SystemClock
from pinlocal.shell.config_loader import load_config, load_config_from_env
from pinlocal.shell.location import FixedLocationSource, LocationSource, QueueLocationSource
from pinlocal.shell.persistence import (
    FirestoreStore,
    InMemoryStore,
    JsonFileStore,
    PersistenceStore,
    StateWriter,
    create_store,
)

__all__ = [
    "BackendClient",
    "Clock",
    "SystemClock",
    "load_config",
    "load_config_from_env",
    "LocationSource",
    "FixedLocationSource",
    "QueueLocationSource",
    "PersistenceStore",
    "InMemoryStore",
    "JsonFileStore",
    "FirestoreStore",
    "StateWriter",
    "create_store",
]
