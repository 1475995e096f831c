"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Report data models and backend payload parsing
- Geo/distance calculations
- Alert and favorite-alert matching
- Self-notification cooldown rule
- State serialization
- Message formatting

All functions here are deterministic and have no I/O.
"""

from pinlocal.core.alert import (
    Alert,
    FavoriteAlert,
    FavoriteAlertKey,
    find_new_favorite_matches,
    find_new_report_matches,
    rank_nearby_unviewed,
)
from pinlocal.core.errors import InvalidCategory, MalformedRecord, StoreUnavailable
from pinlocal.core.favorite import ALERT_DISTANCE_STEPS, FavoritePlace
from pinlocal.core.geo import Coordinate, calculate_distance, is_within_radius
from pinlocal.core.report import REPORT_TTL, Report, ReportCategory, parse_category

__all__ = [
    # Reports
    "REPORT_TTL",
    "Report",
    "ReportCategory",
    "parse_category",
    # Geo
    "Coordinate",
    "calculate_distance",
    "is_within_radius",
    # Favorites
    "ALERT_DISTANCE_STEPS",
    "FavoritePlace",
    # Alerts
    "Alert",
    "FavoriteAlert",
    "FavoriteAlertKey",
    "find_new_report_matches",
    "find_new_favorite_matches",
    "rank_nearby_unviewed",
    # Errors
    "InvalidCategory",
    "MalformedRecord",
    "StoreUnavailable",
]
