"""Unit tests for the report model and backend payload parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from pinlocal.core.errors import InvalidCategory
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import (
    REPORT_TTL,
    Report,
    ReportCategory,
    filter_active,
    new_report,
    parse_category,
    parse_report,
    parse_reports,
    report_to_payload,
    split_expired,
)


T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


@pytest.fixture
def backend_item():
    """A report as returned by GET /reports/all."""
    return {
        "id": "abc123",
        "lat": 40.0,
        "lng": -74.0,
        "content": "Road closed",
        "language": "en",
        "hasPhoto": True,
        "timestamp": _ms(T0),
        "category": "safety",
        "photo": None,
    }


class TestParseCategory:
    @pytest.mark.parametrize("code,expected", [
        ("safety", ReportCategory.SAFETY),
        ("fun", ReportCategory.FUN),
        ("lost", ReportCategory.LOST_MISSING),
        ("LOST", ReportCategory.LOST_MISSING),
        ("lost_missing", ReportCategory.LOST_MISSING),
        (" Fun ", ReportCategory.FUN),
    ])
    def test_known_codes(self, code, expected):
        assert parse_category(code) is expected

    def test_enum_passes_through(self):
        assert parse_category(ReportCategory.FUN) is ReportCategory.FUN

    @pytest.mark.parametrize("code", ["weather", "", None, 3])
    def test_unknown_code_raises(self, code):
        with pytest.raises(InvalidCategory) as exc_info:
            parse_category(code)
        assert exc_info.value.code == code

    def test_invalid_category_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_category("weather")


class TestReport:
    def test_expires_after_ttl(self):
        report = new_report("r1", Coordinate(40.0, -74.0), "x", "en", "fun", T0)
        assert REPORT_TTL == timedelta(hours=8)
        assert report.expires_at == T0 + timedelta(hours=8)

    def test_active_until_expiry_instant(self):
        report = new_report("r1", Coordinate(40.0, -74.0), "x", "en", "fun", T0)
        assert report.is_active(T0 + timedelta(hours=7, minutes=59))
        assert not report.is_active(T0 + timedelta(hours=8))

    def test_new_report_sets_has_photo(self):
        report = new_report("r1", Coordinate(40.0, -74.0), "x", "en", "safety", T0, photo=b"jpeg")
        assert report.has_photo
        assert report.photo == b"jpeg"

    def test_photo_ignored_by_equality(self):
        with_photo = new_report("r1", Coordinate(40.0, -74.0), "x", "en", "safety", T0, photo=b"jpeg")
        assert with_photo == with_photo.without_photo()
        assert with_photo.without_photo().photo is None
        assert with_photo.without_photo().has_photo

    def test_new_report_rejects_unknown_category(self):
        with pytest.raises(InvalidCategory):
            new_report("r1", Coordinate(40.0, -74.0), "x", "en", "weather", T0)

    def test_is_immutable(self):
        report = new_report("r1", Coordinate(40.0, -74.0), "x", "en", "fun", T0)
        with pytest.raises(AttributeError):
            report.text = "changed"


class TestExpiryFiltering:
    def test_split_expired(self, make_report):
        fresh = make_report("fresh", created_at=T0)
        old = make_report("old", created_at=T0 - timedelta(hours=9))
        active, expired = split_expired([fresh, old], T0)
        assert active == [fresh]
        assert expired == [old]

    def test_expiry_boundary_counts_as_expired(self, make_report):
        report = make_report(created_at=T0 - REPORT_TTL)
        active, expired = split_expired([report], T0)
        assert active == []
        assert expired == [report]

    def test_filter_active(self, make_report):
        fresh = make_report("fresh")
        old = make_report("old", created_at=T0 - timedelta(days=1))
        assert filter_active([fresh, old], T0) == [fresh]


class TestParseReport:
    def test_parses_backend_item(self, backend_item):
        report = parse_report(backend_item)
        assert report == Report(
            id="abc123",
            location=Coordinate(40.0, -74.0),
            text="Road closed",
            language="en",
            category=ReportCategory.SAFETY,
            created_at=T0,
            has_photo=True,
        )

    def test_unknown_category_defaults_to_safety(self, backend_item):
        backend_item["category"] = "weather"
        assert parse_report(backend_item).category is ReportCategory.SAFETY

    def test_missing_category_defaults_to_safety(self, backend_item):
        del backend_item["category"]
        assert parse_report(backend_item).category is ReportCategory.SAFETY

    @pytest.mark.parametrize("missing", ["id", "timestamp", "lat", "lng"])
    def test_missing_required_field(self, backend_item, missing):
        del backend_item[missing]
        assert parse_report(backend_item) is None

    def test_invalid_coordinate_type(self, backend_item):
        backend_item["lat"] = "north"
        assert parse_report(backend_item) is None


class TestParseReports:
    def test_drops_expired_and_sorts_newest_first(self, backend_item):
        newer = dict(backend_item, id="newer", timestamp=_ms(T0 + timedelta(minutes=5)))
        expired = dict(backend_item, id="expired", timestamp=_ms(T0 - timedelta(hours=9)))
        payload = {"success": True, "reports": [backend_item, expired, newer]}

        reports = parse_reports(payload, T0 + timedelta(minutes=10))

        assert [r.id for r in reports] == ["newer", "abc123"]

    def test_unsuccessful_payload_is_empty(self, backend_item):
        assert parse_reports({"success": False, "reports": [backend_item]}, T0) == []

    def test_skips_non_dict_items(self, backend_item):
        payload = {"success": True, "reports": ["junk", backend_item]}
        assert [r.id for r in parse_reports(payload, T0)] == ["abc123"]


class TestReportToPayload:
    def test_payload_fields(self, make_report):
        payload = report_to_payload(make_report(category=ReportCategory.LOST_MISSING))
        assert payload == {
            "lat": 40.0,
            "lng": -74.0,
            "content": "Broken streetlight",
            "language": "en",
            "hasPhoto": False,
            "category": "lost",
        }
