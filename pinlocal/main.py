"""Entry point for running the alert monitor as a process.

Loads configuration, restores state and drives the orchestrator from a
location source until interrupted.
"""

import asyncio
import logging
import os

from pinlocal.core.config import Config, validate_config
from pinlocal.core.geo import Coordinate
from pinlocal.monitor import AlertMonitor
from pinlocal.orchestrator import Orchestrator
from pinlocal.shell.config_loader import load_config, load_config_from_env
from pinlocal.shell.location import FixedLocationSource


logger = logging.getLogger(__name__)


def get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        config = load_config(config_path)
    elif os.environ.get("PERSISTENCE_BACKEND") or os.environ.get("BACKEND_URL"):
        # Simple env-based config
        config = load_config_from_env()
    else:
        # Try default config path
        config = load_config()

    result = validate_config(config)
    for warning in result.warnings:
        logger.warning("Config %s: %s", warning.field, warning.message)
    if not result.valid:
        messages = "; ".join(f"{e.field}: {e.message}" for e in result.critical_errors)
        raise ValueError(f"Invalid configuration: {messages}")
    return config


def _location_from_env() -> Coordinate | None:
    lat = os.environ.get("LATITUDE")
    lng = os.environ.get("LONGITUDE")
    if not lat or not lng:
        return None
    return Coordinate(latitude=float(lat), longitude=float(lng))


async def run() -> None:
    """Run the monitor with a fixed position from LATITUDE/LONGITUDE."""
    orchestrator = Orchestrator(get_config())
    orchestrator.load()

    location = _location_from_env()
    if location is None:
        logger.warning("LATITUDE/LONGITUDE not set, only favorite alerts will be checked")
    elif orchestrator.subscribe_location(location):
        logger.info("Subscribed to backend alerts near %s", location)

    monitor = AlertMonitor(orchestrator, FixedLocationSource(location))
    await monitor.run()


def main() -> None:
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
