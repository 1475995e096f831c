"""Favorite place model - Pure data structures.

A favorite place is a named, user-saved location with its own alert
radius and per-category alert switches.
"""

from dataclasses import dataclass, replace
from datetime import datetime

from pinlocal.core.geo import Coordinate
from pinlocal.core.report import ReportCategory


# Alert distance step values offered to users, in meters
ALERT_DISTANCE_1_MILE = 1609.0
ALERT_DISTANCE_2_MILES = 3218.0
ALERT_DISTANCE_3_MILES = 4827.0
ALERT_DISTANCE_5_MILES = 8047.0
ALERT_DISTANCE_ZIP_CODE = 8050.0
ALERT_DISTANCE_STATE = 160934.0

ALERT_DISTANCE_STEPS = (
    ALERT_DISTANCE_1_MILE,
    ALERT_DISTANCE_2_MILES,
    ALERT_DISTANCE_3_MILES,
    ALERT_DISTANCE_5_MILES,
    ALERT_DISTANCE_ZIP_CODE,
    ALERT_DISTANCE_STATE,
)

DEFAULT_FAVORITE_ALERT_DISTANCE = ALERT_DISTANCE_1_MILE


@dataclass(frozen=True)
class FavoritePlace:
    """A named location the user wants to be alerted about.

    Attributes:
        id: Stable ID, preserved across edits
        name: Human-readable name (e.g., "Home", "School")
        location: Center of the alert circle
        alert_distance: Alert radius in meters
        description: Optional free-text description
        enable_safety_alerts: Alert on SAFETY reports
        enable_fun_alerts: Alert on FUN reports
        enable_lost_alerts: Alert on LOST_MISSING reports
        created_at: Creation timestamp (UTC)
    """
    id: str
    name: str
    location: Coordinate
    created_at: datetime
    alert_distance: float = DEFAULT_FAVORITE_ALERT_DISTANCE
    description: str = ""
    enable_safety_alerts: bool = True
    enable_fun_alerts: bool = False
    enable_lost_alerts: bool = True

    def category_enabled(self, category: ReportCategory) -> bool:
        """Check if this favorite should alert for a report category."""
        if category is ReportCategory.SAFETY:
            return self.enable_safety_alerts
        if category is ReportCategory.FUN:
            return self.enable_fun_alerts
        if category is ReportCategory.LOST_MISSING:
            return self.enable_lost_alerts
        return False

    @property
    def enabled_categories(self) -> tuple[ReportCategory, ...]:
        """Categories this favorite alerts on, in enum order."""
        return tuple(c for c in ReportCategory if self.category_enabled(c))


def favorite_from_categories(
    favorite_id: str,
    name: str,
    location: Coordinate,
    categories: set[ReportCategory],
    alert_distance: float,
    now: datetime,
    description: str = "",
) -> FavoritePlace:
    """Build a FavoritePlace from a set of enabled categories.

    Pure function.
    """
    return FavoritePlace(
        id=favorite_id,
        name=name,
        description=description,
        location=location,
        alert_distance=alert_distance,
        enable_safety_alerts=ReportCategory.SAFETY in categories,
        enable_fun_alerts=ReportCategory.FUN in categories,
        enable_lost_alerts=ReportCategory.LOST_MISSING in categories,
        created_at=now,
    )


def edit_favorite(favorite: FavoritePlace, **changes) -> FavoritePlace:
    """Return a replacement record with the given fields changed.

    Pure function. The id and created_at cannot be changed.
    """
    changes.pop("id", None)
    changes.pop("created_at", None)
    return replace(favorite, **changes)
