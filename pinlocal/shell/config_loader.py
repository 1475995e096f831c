"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, PersistenceConfig, BackendConfig) are defined in
pinlocal/core/config.py to avoid information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from pinlocal.core.config import BackendConfig, Config, PersistenceConfig
from pinlocal.core.favorite import ALERT_DISTANCE_ZIP_CODE


logger = logging.getLogger(__name__)


def _resolve_value(value: Any) -> Any:
    """Resolve a ${VAR} placeholder from the environment.

    Non-string values and plain strings are returned unchanged. An unset
    variable leaves the placeholder in place so validation can flag it.
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _parse_persistence(data: dict[str, Any]) -> PersistenceConfig:
    """Parse persistence settings from config data."""
    defaults = PersistenceConfig()
    return PersistenceConfig(
        backend=str(data.get("backend", defaults.backend)),
        path=str(_resolve_value(data.get("path", defaults.path))),
        firestore_database=_resolve_value(data.get("firestore_database")),
        firestore_collection=str(data.get("firestore_collection", defaults.firestore_collection)),
        firestore_document=str(_resolve_value(data.get("firestore_document", defaults.firestore_document))),
    )


def _parse_backend(data: dict[str, Any]) -> BackendConfig:
    """Parse report backend settings from config data."""
    defaults = BackendConfig()
    base_url = _resolve_value(data.get("base_url"))
    device_token = _resolve_value(data.get("device_token"))
    return BackendConfig(
        base_url=base_url or None,
        timeout_seconds=int(data.get("timeout_seconds", defaults.timeout_seconds)),
        max_retries=int(data.get("max_retries", defaults.max_retries)),
        device_token=device_token or None,
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    return Config(
        alert_distance_m=float(data.get("alert_distance_m", ALERT_DISTANCE_ZIP_CODE)),
        cooldown_seconds=int(data.get("cooldown_seconds", 60)),
        check_interval_seconds=int(data.get("check_interval_seconds", 120)),
        cleanup_interval_seconds=int(data.get("cleanup_interval_seconds", 3600)),
        language=str(data.get("language", "en")),
        persistence=_parse_persistence(data.get("persistence") or {}),
        backend=_parse_backend(data.get("backend") or {}),
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: alert distance %.0fm, cooldown %ds, %s persistence",
        config.alert_distance_m,
        config.cooldown_seconds,
        config.persistence.backend,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for container deployments without a YAML file.

    Environment variables:
        ALERT_DISTANCE_M: Default user alert distance in meters
        COOLDOWN_SECONDS: Alert suppression window after creating a report
        LANGUAGE: Notification language ('en' or 'es')
        PERSISTENCE_BACKEND: 'memory', 'file' or 'firestore'
        STATE_PATH: JSON state file for the file backend
        FIRESTORE_DATABASE: Firestore database name
        FIRESTORE_DOCUMENT: Firestore state document ID
        BACKEND_URL: Report backend base URL
        DEVICE_TOKEN: Push token used for alert subscriptions

    Returns:
        Config object from environment
    """
    persistence_defaults = PersistenceConfig()
    persistence = PersistenceConfig(
        backend=os.environ.get("PERSISTENCE_BACKEND", persistence_defaults.backend),
        path=os.environ.get("STATE_PATH", persistence_defaults.path),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        firestore_document=os.environ.get("FIRESTORE_DOCUMENT", persistence_defaults.firestore_document),
    )

    backend = BackendConfig(
        base_url=os.environ.get("BACKEND_URL") or None,
        device_token=os.environ.get("DEVICE_TOKEN") or None,
    )

    return Config(
        alert_distance_m=float(os.environ.get("ALERT_DISTANCE_M", ALERT_DISTANCE_ZIP_CODE)),
        cooldown_seconds=int(os.environ.get("COOLDOWN_SECONDS", "60")),
        language=os.environ.get("LANGUAGE", "en"),
        persistence=persistence,
        backend=backend,
    )
