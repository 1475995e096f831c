"""Stateful components - single owners of reports, favorites and alerts.

Each class holds its records in memory, persists through a StateWriter
after every mutation, and reports changes to an EngineListener. All
decisions are delegated to the pure functions in pinlocal.core.
"""

from pinlocal.state.alert_engine import AlertEngine
from pinlocal.state.cooldown_gate import CooldownGate
from pinlocal.state.favorite_alert_engine import FavoriteAlertEngine
from pinlocal.state.favorite_store import FavoriteStore
from pinlocal.state.listener import EngineListener, FavoriteChangeListener
from pinlocal.state.report_store import ReportStore

__all__ = [
    "AlertEngine",
    "CooldownGate",
    "FavoriteAlertEngine",
    "FavoriteStore",
    "EngineListener",
    "FavoriteChangeListener",
    "ReportStore",
]
