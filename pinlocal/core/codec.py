"""State serialization - Pure functions.

Each store persists itself as one opaque string blob. Reports and favorites
are encoded as a JSON array of objects so free-text fields (report text,
favorite names) can contain any character. An empty store encodes to "[]".

The earlier line format (fields joined by ":::", records joined by "|||",
no escaping) is still decoded so existing data survives an upgrade; it is
never written.

Decoding never fails as a whole: each record that cannot be parsed is
skipped and reported back in DecodeResult.errors.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pinlocal.core.alert import FavoriteAlertKey
from pinlocal.core.errors import InvalidCategory, MalformedRecord
from pinlocal.core.favorite import DEFAULT_FAVORITE_ALERT_DISTANCE, FavoritePlace
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import Report, ReportCategory, parse_category


EMPTY_LIST = "[]"

LEGACY_RECORD_DELIMITER = "|||"
LEGACY_FIELD_DELIMITER = ":::"

T = TypeVar("T")


@dataclass
class DecodeResult(Generic[T]):
    """Records recovered from a blob, plus the records that were skipped.

    Attributes:
        records: Successfully decoded records, in blob order
        errors: One MalformedRecord per skipped record
        legacy: True if the blob used the old delimiter format
    """
    records: list[T] = field(default_factory=list)
    errors: list[MalformedRecord] = field(default_factory=list)
    legacy: bool = False


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def encode_datetime(value: datetime) -> str:
    """Encode an aware datetime as ISO 8601."""
    return value.isoformat()


def decode_datetime(value: Any) -> datetime:
    """Decode an ISO 8601 string or epoch-milliseconds number.

    Naive values are taken as UTC.

    Raises:
        MalformedRecord: If the value is neither
    """
    try:
        if isinstance(value, bool):
            raise TypeError("boolean is not a timestamp")
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        parsed = datetime.fromisoformat(text)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise MalformedRecord(f"Invalid timestamp {value!r}: {e}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def encode_timestamp(value: datetime | None) -> str:
    """Encode the single cooldown timestamp; empty string for never."""
    return "" if value is None else encode_datetime(value)


def decode_timestamp(blob: str | None) -> datetime | None:
    """Decode the cooldown timestamp, returning None when absent or corrupt."""
    if blob is None or not blob.strip():
        return None
    try:
        return decode_datetime(blob)
    except MalformedRecord:
        return None


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def report_to_dict(report: Report) -> dict[str, Any]:
    """Convert a Report to its persisted dict form (no photo)."""
    return {
        "id": report.id,
        "lat": report.location.latitude,
        "lng": report.location.longitude,
        "text": report.text,
        "language": report.language,
        "has_photo": report.has_photo,
        "category": report.category.code,
        "created_at": encode_datetime(report.created_at),
    }


def report_from_dict(data: Any) -> Report:
    """Convert a persisted dict back to a Report.

    Raises:
        MalformedRecord: If required fields are missing or invalid
    """
    if not isinstance(data, dict):
        raise MalformedRecord(f"Report record is not an object: {data!r}")
    try:
        report_id = data["id"]
        if not isinstance(report_id, str) or not report_id:
            raise MalformedRecord("Report record has no id")
        return Report(
            id=report_id,
            location=Coordinate(
                latitude=float(data["lat"]),
                longitude=float(data["lng"]),
            ),
            text=str(data.get("text", "")),
            language=str(data.get("language", "")),
            category=parse_category(data.get("category", ReportCategory.SAFETY.code)),
            created_at=decode_datetime(data["created_at"]),
            has_photo=bool(data.get("has_photo", False)),
        )
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, MalformedRecord):
            raise
        raise MalformedRecord(f"Invalid report record: {e}") from e


def encode_reports(reports: list[Report]) -> str:
    """Encode reports as a JSON array. Photos are never included."""
    if not reports:
        return EMPTY_LIST
    return json.dumps([report_to_dict(r) for r in reports], ensure_ascii=False)


def _legacy_report(line: str) -> Report:
    parts = line.split(LEGACY_FIELD_DELIMITER)
    if len(parts) < 8:
        raise MalformedRecord(f"Legacy report has {len(parts)} fields, expected 8+")

    # Records written before categories existed default to SAFETY
    try:
        category = parse_category(parts[8]) if len(parts) > 8 else ReportCategory.SAFETY
    except InvalidCategory:
        category = ReportCategory.SAFETY

    try:
        return Report(
            id=parts[0],
            location=Coordinate(latitude=float(parts[1]), longitude=float(parts[2])),
            text=parts[3],
            language=parts[4],
            has_photo=parts[5].strip().lower() == "true",
            created_at=decode_datetime(parts[6]),
            category=category,
        )
    except ValueError as e:
        if isinstance(e, MalformedRecord):
            raise
        raise MalformedRecord(f"Invalid legacy report: {e}") from e


def decode_reports(blob: str | None) -> DecodeResult[Report]:
    """Decode a reports blob, skipping malformed records individually."""
    return _decode_records(blob, report_from_dict, _legacy_report)


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

def favorite_to_dict(favorite: FavoritePlace) -> dict[str, Any]:
    """Convert a FavoritePlace to its persisted dict form."""
    return {
        "id": favorite.id,
        "name": favorite.name,
        "description": favorite.description,
        "lat": favorite.location.latitude,
        "lng": favorite.location.longitude,
        "alert_distance": favorite.alert_distance,
        "enable_safety_alerts": favorite.enable_safety_alerts,
        "enable_fun_alerts": favorite.enable_fun_alerts,
        "enable_lost_alerts": favorite.enable_lost_alerts,
        "created_at": encode_datetime(favorite.created_at),
    }


def favorite_from_dict(data: Any) -> FavoritePlace:
    """Convert a persisted dict back to a FavoritePlace.

    Raises:
        MalformedRecord: If required fields are missing or invalid
    """
    if not isinstance(data, dict):
        raise MalformedRecord(f"Favorite record is not an object: {data!r}")
    try:
        favorite_id = data["id"]
        if not isinstance(favorite_id, str) or not favorite_id:
            raise MalformedRecord("Favorite record has no id")
        return FavoritePlace(
            id=favorite_id,
            name=str(data["name"]),
            description=str(data.get("description", "")),
            location=Coordinate(
                latitude=float(data["lat"]),
                longitude=float(data["lng"]),
            ),
            alert_distance=float(data.get("alert_distance", DEFAULT_FAVORITE_ALERT_DISTANCE)),
            enable_safety_alerts=bool(data.get("enable_safety_alerts", True)),
            enable_fun_alerts=bool(data.get("enable_fun_alerts", False)),
            enable_lost_alerts=bool(data.get("enable_lost_alerts", True)),
            created_at=decode_datetime(data["created_at"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, MalformedRecord):
            raise
        raise MalformedRecord(f"Invalid favorite record: {e}") from e


def encode_favorites(favorites: list[FavoritePlace]) -> str:
    """Encode favorites as a JSON array."""
    if not favorites:
        return EMPTY_LIST
    return json.dumps([favorite_to_dict(f) for f in favorites], ensure_ascii=False)


def _legacy_bool(value: str, default: bool) -> bool:
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return default


def _legacy_favorite(line: str) -> FavoritePlace:
    parts = line.split(LEGACY_FIELD_DELIMITER)
    if len(parts) < 9:
        raise MalformedRecord(f"Legacy favorite has {len(parts)} fields, expected 9")
    try:
        return FavoritePlace(
            id=parts[0],
            name=parts[1],
            location=Coordinate(latitude=float(parts[2]), longitude=float(parts[3])),
            alert_distance=float(parts[4]),
            enable_safety_alerts=_legacy_bool(parts[5], True),
            enable_fun_alerts=_legacy_bool(parts[6], False),
            enable_lost_alerts=_legacy_bool(parts[7], True),
            created_at=decode_datetime(parts[8]),
        )
    except ValueError as e:
        if isinstance(e, MalformedRecord):
            raise
        raise MalformedRecord(f"Invalid legacy favorite: {e}") from e


def decode_favorites(blob: str | None) -> DecodeResult[FavoritePlace]:
    """Decode a favorites blob, skipping malformed records individually."""
    return _decode_records(blob, favorite_from_dict, _legacy_favorite)


# ---------------------------------------------------------------------------
# Viewed-state sets
# ---------------------------------------------------------------------------

def encode_viewed_ids(ids: set[str]) -> str:
    """Encode viewed report IDs as a sorted JSON array."""
    return json.dumps(sorted(ids))


def decode_viewed_ids(blob: str | None) -> DecodeResult[str]:
    """Decode viewed report IDs, skipping anything that is not a string."""
    result: DecodeResult[str] = DecodeResult()
    for item in _load_json_list(blob, result):
        if isinstance(item, str) and item:
            result.records.append(item)
        else:
            result.errors.append(MalformedRecord(f"Invalid viewed id: {item!r}"))
    return result


def encode_viewed_keys(keys: set[FavoriteAlertKey]) -> str:
    """Encode viewed favorite alert keys as a sorted JSON array of pairs."""
    return json.dumps([list(k) for k in sorted(keys)])


def decode_viewed_keys(blob: str | None) -> DecodeResult[FavoriteAlertKey]:
    """Decode viewed favorite alert keys, skipping malformed pairs."""
    result: DecodeResult[FavoriteAlertKey] = DecodeResult()
    for item in _load_json_list(blob, result):
        if (
            isinstance(item, list)
            and len(item) == 2
            and all(isinstance(part, str) and part for part in item)
        ):
            result.records.append(FavoriteAlertKey(item[0], item[1]))
        else:
            result.errors.append(MalformedRecord(f"Invalid viewed key: {item!r}"))
    return result


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json_list(blob: str | None, result: DecodeResult) -> list[Any]:
    if blob is None or not blob.strip():
        return []
    try:
        data = json.loads(blob)
    except ValueError as e:
        result.errors.append(MalformedRecord(f"Blob is not valid JSON: {e}"))
        return []
    if not isinstance(data, list):
        result.errors.append(MalformedRecord("Blob is not a JSON array"))
        return []
    return data


def _decode_records(blob, from_dict, from_legacy_line) -> DecodeResult:
    result = DecodeResult()
    if blob is None or not blob.strip() or blob.strip() == EMPTY_LIST:
        return result

    stripped = blob.strip()
    if stripped.startswith("["):
        for item in _load_json_list(stripped, result):
            try:
                result.records.append(from_dict(item))
            except MalformedRecord as e:
                result.errors.append(e)
        return result

    result.legacy = True
    for line in stripped.split(LEGACY_RECORD_DELIMITER):
        if not line.strip():
            continue
        try:
            result.records.append(from_legacy_line(line))
        except MalformedRecord as e:
            result.errors.append(e)
    return result
