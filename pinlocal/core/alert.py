"""Alert models and matching logic - Pure functions.

This module decides which reports should produce user-level alerts and
favorite-place alerts, and ranks existing alerts. All functions are pure
with no side effects.

Note: Alert state (which alerts exist, which were viewed) is owned by the
engines in pinlocal.state. This module only contains the pure logic.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import NamedTuple

from pinlocal.core.favorite import FavoritePlace
from pinlocal.core.geo import Coordinate, distance_between
from pinlocal.core.report import Report


class FavoriteAlertKey(NamedTuple):
    """Composite identity of a favorite alert: one per (report, favorite)."""

    report_id: str
    favorite_id: str


@dataclass(frozen=True)
class Alert:
    """A report within the user's alert radius.

    Attributes:
        id: Unique alert ID
        report: The report that triggered the alert
        distance_from_user: Distance in meters when the alert was created
        is_viewed: Whether the user has seen this alert
        timestamp: When the alert was created (UTC)
    """
    id: str
    report: Report
    distance_from_user: float
    timestamp: datetime
    is_viewed: bool = False

    @property
    def report_id(self) -> str:
        return self.report.id


@dataclass(frozen=True)
class FavoriteAlert:
    """A report within a favorite place's radius.

    Attributes:
        id: Unique alert ID
        favorite: The favorite place that matched
        report: The report that triggered the alert
        distance_from_favorite: Distance in meters from the favorite's center
        is_viewed: Whether the user has seen this alert
        timestamp: When the alert was created (UTC)
    """
    id: str
    favorite: FavoritePlace
    report: Report
    distance_from_favorite: float
    timestamp: datetime
    is_viewed: bool = False

    @property
    def key(self) -> FavoriteAlertKey:
        return FavoriteAlertKey(self.report.id, self.favorite.id)


@dataclass(frozen=True)
class ReportMatch:
    """A report found within a radius, with its distance in meters."""
    report: Report
    distance: float


@dataclass(frozen=True)
class FavoriteMatch:
    """A (favorite, report) pair found within the favorite's radius."""
    favorite: FavoritePlace
    report: Report
    distance: float

    @property
    def key(self) -> FavoriteAlertKey:
        return FavoriteAlertKey(self.report.id, self.favorite.id)


def find_new_report_matches(
    reports: list[Report],
    alerted_report_ids: set[str],
    center: Coordinate,
    radius_m: float,
) -> list[ReportMatch]:
    """Find reports within radius that do not have an alert yet.

    Pure function.

    Args:
        reports: Active reports to consider
        alerted_report_ids: Report IDs that already have an alert
        center: User position
        radius_m: User alert distance in meters

    Returns:
        Matches for reports not yet alerted, in input order
    """
    matches = []
    seen: set[str] = set()

    for report in reports:
        if report.id in alerted_report_ids or report.id in seen:
            continue
        distance = distance_between(center, report.location)
        if distance <= radius_m:
            matches.append(ReportMatch(report=report, distance=distance))
            seen.add(report.id)

    return matches


def find_new_favorite_matches(
    favorites: list[FavoritePlace],
    reports: list[Report],
    existing_keys: set[FavoriteAlertKey],
) -> list[FavoriteMatch]:
    """Find (favorite, report) pairs that should produce a new favorite alert.

    Pure function.

    A pair matches when the favorite has the report's category enabled,
    the report is within the favorite's alert distance, and no alert
    exists yet for that exact pair.

    Args:
        favorites: All favorite places
        reports: Active reports
        existing_keys: Keys of favorite alerts that already exist

    Returns:
        New matches, grouped by favorite in input order
    """
    matches = []
    seen: set[FavoriteAlertKey] = set()

    for favorite in favorites:
        for report in reports:
            key = FavoriteAlertKey(report.id, favorite.id)
            if key in existing_keys or key in seen:
                continue
            if not favorite.category_enabled(report.category):
                continue

            distance = distance_between(favorite.location, report.location)
            if distance <= favorite.alert_distance:
                matches.append(FavoriteMatch(
                    favorite=favorite,
                    report=report,
                    distance=distance,
                ))
                seen.add(key)

    return matches


def favorite_still_matches(alert: FavoriteAlert, favorite: FavoritePlace) -> bool:
    """Check whether an existing alert still satisfies an edited favorite.

    Pure function.
    """
    if not favorite.category_enabled(alert.report.category):
        return False
    distance = distance_between(favorite.location, alert.report.location)
    return distance <= favorite.alert_distance


def has_unviewed(alerts: "list[Alert] | list[FavoriteAlert]") -> bool:
    """Returns True if any alert has not been viewed.

    Pure function.
    """
    return any(not a.is_viewed for a in alerts)


def rank_nearby_unviewed(
    alerts: list[Alert],
    user_location: Coordinate,
    radius_m: float,
) -> list[Alert]:
    """Rank unviewed alerts by their live distance from the user.

    Pure function: returns copies carrying the recomputed distance and
    never modifies the input.

    Args:
        alerts: Existing user alerts
        user_location: Current user position
        radius_m: Current alert distance in meters

    Returns:
        Unviewed alerts within radius, nearest first
    """
    refreshed = [
        replace(
            alert,
            distance_from_user=distance_between(user_location, alert.report.location),
        )
        for alert in alerts
        if not alert.is_viewed
    ]
    nearby = [a for a in refreshed if a.distance_from_user <= radius_m]
    return sorted(nearby, key=lambda a: a.distance_from_user)
