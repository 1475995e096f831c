"""Report data models and parsing - Pure functions.

This module defines the ephemeral Report model and parses backend report
payloads into typed Report objects. All functions are pure with no side effects.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from pinlocal.core.errors import InvalidCategory
from pinlocal.core.geo import Coordinate


# Reports live for a fixed 8 hours after creation
REPORT_TTL = timedelta(hours=8)


class ReportCategory(enum.Enum):
    """Closed set of report categories, keyed by their wire code."""

    SAFETY = "safety"
    FUN = "fun"
    LOST_MISSING = "lost"

    @property
    def code(self) -> str:
        return self.value


def parse_category(value: "ReportCategory | str") -> ReportCategory:
    """Resolve a category code (or enum member) to a ReportCategory.

    Pure function.

    Args:
        value: Category code such as "safety", or a ReportCategory

    Returns:
        The matching ReportCategory

    Raises:
        InvalidCategory: If the code is not in the closed set
    """
    if isinstance(value, ReportCategory):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for category in ReportCategory:
            if normalized in (category.code, category.name.lower()):
                return category
    raise InvalidCategory(value)


@dataclass(frozen=True)
class Report:
    """Immutable report data model.

    The photo payload lives only in memory: it is ignored by equality
    and never written by the codec.

    Attributes:
        id: Opaque unique report ID
        location: Where the report was dropped
        text: Free-text description as typed by the reporter
        language: Detected language tag of the text (e.g. 'en', 'es')
        category: Report category
        created_at: Creation timestamp (UTC)
        has_photo: Whether the reporter attached a photo
        photo: Photo bytes, session-only
    """
    id: str
    location: Coordinate
    text: str
    language: str
    category: ReportCategory
    created_at: datetime
    has_photo: bool = False
    photo: bytes | None = field(default=None, compare=False, repr=False)

    @property
    def expires_at(self) -> datetime:
        """Expiry timestamp, always created_at + REPORT_TTL."""
        return self.created_at + REPORT_TTL

    def is_active(self, now: datetime) -> bool:
        """Return True while the report has not yet expired."""
        return self.expires_at > now

    def without_photo(self) -> "Report":
        """Return a copy carrying only the has_photo flag."""
        return Report(
            id=self.id,
            location=self.location,
            text=self.text,
            language=self.language,
            category=self.category,
            created_at=self.created_at,
            has_photo=self.has_photo,
        )


def new_report(
    report_id: str,
    location: Coordinate,
    text: str,
    language: str,
    category: "ReportCategory | str",
    now: datetime,
    photo: bytes | None = None,
) -> Report:
    """Build a fresh Report created at `now`.

    Pure function.

    Raises:
        InvalidCategory: If category is not a known code
    """
    return Report(
        id=report_id,
        location=location,
        text=text,
        language=language,
        category=parse_category(category),
        created_at=now,
        has_photo=photo is not None,
        photo=photo,
    )


def filter_active(reports: list[Report], now: datetime) -> list[Report]:
    """Filter reports to those that have not expired at `now`.

    Pure function.
    """
    return [r for r in reports if r.is_active(now)]


def split_expired(
    reports: list[Report],
    now: datetime,
) -> tuple[list[Report], list[Report]]:
    """Partition reports into (active, expired) at `now`.

    Pure function. A report whose expires_at equals `now` is expired.
    """
    active: list[Report] = []
    expired: list[Report] = []
    for report in reports:
        (active if report.is_active(now) else expired).append(report)
    return active, expired


def parse_report(item: dict[str, Any]) -> Report | None:
    """Parse a single backend report payload into a Report.

    Pure function: takes raw dict, returns typed Report or None if invalid.
    Unknown categories fall back to SAFETY, as the backend predates the
    category field.

    Args:
        item: Report object from the backend's /reports/all response

    Returns:
        Report object or None if parsing fails
    """
    try:
        report_id = item.get("id")
        if not report_id:
            return None

        # Backend uses milliseconds since epoch
        timestamp_ms = item.get("timestamp")
        if timestamp_ms is None:
            return None
        created_at = datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=timezone.utc)

        try:
            category = parse_category(item.get("category", "safety"))
        except InvalidCategory:
            category = ReportCategory.SAFETY

        return Report(
            id=str(report_id),
            location=Coordinate(
                latitude=float(item["lat"]),
                longitude=float(item["lng"]),
            ),
            text=str(item.get("content", "")),
            language=str(item.get("language", "en")),
            category=category,
            created_at=created_at,
            has_photo=bool(item.get("hasPhoto", False)),
        )
    except (KeyError, TypeError, ValueError, OverflowError):
        return None


def parse_reports(payload: dict[str, Any], now: datetime) -> list[Report]:
    """Parse the backend /reports/all response into active Reports.

    Pure function: drops invalid and already-expired entries.

    Args:
        payload: Response body with "success" and "reports" keys
        now: Reference time for expiry filtering

    Returns:
        List of active reports, newest first
    """
    if not payload.get("success", False):
        return []

    reports = []
    for item in payload.get("reports") or []:
        if not isinstance(item, dict):
            continue
        report = parse_report(item)
        if report is not None and report.is_active(now):
            reports.append(report)

    return sorted(reports, key=lambda r: r.created_at, reverse=True)


def report_to_payload(report: Report) -> dict[str, Any]:
    """Convert a Report to the backend's submission payload.

    Pure function. The photo is not included; the shell attaches it.
    """
    return {
        "lat": report.location.latitude,
        "lng": report.location.longitude,
        "content": report.text,
        "language": report.language,
        "hasPhoto": report.has_photo,
        "category": report.category.code,
    }
