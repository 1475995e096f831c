"""Unit tests for message formatting.

Pure function tests - no mocks needed, fast execution.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from pinlocal.core.alert import Alert, FavoriteAlert
from pinlocal.core.favorite import FavoritePlace
from pinlocal.core.formatter import (
    format_alert_summary,
    format_favorite_alert_message,
    format_favorite_alert_summary,
    format_time_ago,
    get_alert_distance_text,
    get_category_display_name,
    get_category_icon,
    get_enabled_categories_text,
    is_spanish,
)
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import ReportCategory


T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def home():
    return FavoritePlace(
        id="home",
        name="Home",
        location=Coordinate(40.0, -74.0),
        created_at=T0,
    )


def _favorite_alert(favorite, report, distance):
    return FavoriteAlert(
        id=f"fa-{report.id}",
        favorite=favorite,
        report=report,
        distance_from_favorite=distance,
        timestamp=T0,
    )


class TestLanguage:
    @pytest.mark.parametrize("tag", ["es", "ES", "es-MX", "es_AR"])
    def test_spanish_tags(self, tag):
        assert is_spanish(tag)

    @pytest.mark.parametrize("tag", ["en", "en-US", "fr", "", "est"])
    def test_other_tags(self, tag):
        assert not is_spanish(tag)


class TestCategoryText:
    def test_display_names(self):
        assert get_category_display_name(ReportCategory.LOST_MISSING) == "Lost/Missing"
        assert get_category_display_name(ReportCategory.SAFETY, "es") == "Seguridad"

    def test_every_category_has_an_icon(self):
        for category in ReportCategory:
            assert get_category_icon(category)

    def test_enabled_categories_default_favorite(self, home):
        assert get_enabled_categories_text(home) == "Safety, Lost"

    def test_enabled_categories_none(self, home):
        muted = replace(home, enable_safety_alerts=False, enable_lost_alerts=False)
        assert get_enabled_categories_text(muted) == "None"
        assert get_enabled_categories_text(muted, "es") == "Ninguna"


class TestAlertDistanceText:
    @pytest.mark.parametrize("meters,expected", [
        (1609, "1 mile"),
        (3218, "2 miles"),
        (8047, "5 miles"),
        (8050, "zip code area"),
        (160934, "state-wide"),
    ])
    def test_step_labels(self, meters, expected):
        assert get_alert_distance_text(meters) == expected

    def test_custom_distance(self):
        assert get_alert_distance_text(500) == "custom distance"
        assert get_alert_distance_text(500, "es") == "distancia personalizada"


class TestAlertSummary:
    def test_single_alert(self, make_report):
        alerts = [Alert("a1", make_report(), 100.0, T0)]
        assert format_alert_summary(alerts, 1609) == "1 new alert within 1 mile"

    def test_multiple_alerts(self, make_report):
        alerts = [
            Alert("a1", make_report("r1"), 100.0, T0),
            Alert("a2", make_report("r2"), 200.0, T0),
        ]
        assert format_alert_summary(alerts, 8050) == "2 new alerts within zip code area"

    def test_spanish(self, make_report):
        alerts = [
            Alert("a1", make_report("r1"), 100.0, T0),
            Alert("a2", make_report("r2"), 200.0, T0),
        ]
        assert format_alert_summary(alerts, 3218, "es") == "2 nuevas alertas dentro de 2 millas"


class TestFavoriteAlertText:
    def test_message_uses_miles(self, home, make_report):
        alert = _favorite_alert(home, make_report(), 1609.0)
        assert format_favorite_alert_message(alert) == "New alert at Home (1.0 miles)"

    def test_single_alert_summary_is_detailed(self, home, make_report):
        alert = _favorite_alert(home, make_report(), 804.5)
        assert format_favorite_alert_summary([alert]) == "New alert at Home (0.5 miles)"

    def test_multiple_alert_summary(self, home, make_report):
        alerts = [
            _favorite_alert(home, make_report("r1"), 10.0),
            _favorite_alert(home, make_report("r2"), 20.0),
        ]
        assert format_favorite_alert_summary(alerts) == "2 new alerts at favorite places"
        assert format_favorite_alert_summary(alerts, "es") == "2 nuevas alertas en lugares favoritos"


class TestTimeAgo:
    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "Just now"),
        (timedelta(minutes=5), "5 minutes ago"),
        (timedelta(hours=3, minutes=10), "3 hours ago"),
        (timedelta(days=2), "2 days ago"),
    ])
    def test_english(self, delta, expected):
        assert format_time_ago(T0, T0 + delta) == expected

    def test_spanish(self):
        assert format_time_ago(T0, T0 + timedelta(seconds=10), "es") == "Justo ahora"
        assert format_time_ago(T0, T0 + timedelta(minutes=7), "es") == "Hace 7 minutos"
