"""Unit tests for alert matching and ranking.

Pure function tests - no mocks needed, fast execution.
"""

from datetime import datetime, timezone

import pytest

from pinlocal.core.alert import (
    Alert,
    FavoriteAlert,
    FavoriteAlertKey,
    favorite_still_matches,
    find_new_favorite_matches,
    find_new_report_matches,
    has_unviewed,
    rank_nearby_unviewed,
)
from pinlocal.core.favorite import FavoritePlace, edit_favorite, favorite_from_categories
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import ReportCategory


T0 = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
USER = Coordinate(40.001, -74.0)


@pytest.fixture
def home():
    """Favorite at the report fixture's default position, 1 mile radius."""
    return FavoritePlace(
        id="home",
        name="Home",
        location=Coordinate(40.0, -74.0),
        created_at=T0,
    )


class TestFindNewReportMatches:
    def test_report_within_radius_matches(self, make_report):
        report = make_report()
        matches = find_new_report_matches([report], set(), USER, 1609)

        assert len(matches) == 1
        assert matches[0].report == report
        assert matches[0].distance == pytest.approx(111.2, abs=0.5)

    def test_report_outside_radius_ignored(self, make_report):
        assert find_new_report_matches([make_report()], set(), USER, 50) == []

    def test_already_alerted_report_ignored(self, make_report):
        assert find_new_report_matches([make_report("r1")], {"r1"}, USER, 1609) == []

    def test_duplicate_input_matches_once(self, make_report):
        report = make_report("r1")
        matches = find_new_report_matches([report, report], set(), USER, 1609)
        assert len(matches) == 1

    def test_preserves_input_order(self, make_report):
        far = make_report("far", lat=40.005)
        near = make_report("near")
        matches = find_new_report_matches([far, near], set(), USER, 1609)
        assert [m.report.id for m in matches] == ["far", "near"]


class TestFindNewFavoriteMatches:
    def test_matching_category_and_distance(self, home, make_report):
        report = make_report("r1", lat=40.001)
        matches = find_new_favorite_matches([home], [report], set())

        assert len(matches) == 1
        assert matches[0].key == FavoriteAlertKey("r1", "home")
        assert matches[0].distance == pytest.approx(111.2, abs=0.5)

    def test_disabled_category_ignored(self, home, make_report):
        report = make_report(category=ReportCategory.FUN)
        assert find_new_favorite_matches([home], [report], set()) == []

    def test_outside_favorite_radius_ignored(self, home, make_report):
        report = make_report(lat=40.05)
        assert find_new_favorite_matches([home], [report], set()) == []

    def test_existing_key_ignored(self, home, make_report):
        existing = {FavoriteAlertKey("r1", "home")}
        assert find_new_favorite_matches([home], [make_report("r1")], existing) == []

    def test_one_report_matches_each_favorite(self, home, make_report):
        work = favorite_from_categories(
            "work", "Work", Coordinate(40.002, -74.0), {ReportCategory.SAFETY}, 1609, T0,
        )
        matches = find_new_favorite_matches([home, work], [make_report("r1")], set())
        assert {m.key for m in matches} == {
            FavoriteAlertKey("r1", "home"),
            FavoriteAlertKey("r1", "work"),
        }


class TestFavoriteStillMatches:
    def _alert(self, favorite, report):
        return FavoriteAlert(
            id="a1",
            favorite=favorite,
            report=report,
            distance_from_favorite=0.0,
            timestamp=T0,
        )

    def test_unchanged_favorite_matches(self, home, make_report):
        alert = self._alert(home, make_report())
        assert favorite_still_matches(alert, home)

    def test_shrunk_radius_no_longer_matches(self, home, make_report):
        alert = self._alert(home, make_report(lat=40.001))
        assert not favorite_still_matches(alert, edit_favorite(home, alert_distance=50))

    def test_disabled_category_no_longer_matches(self, home, make_report):
        alert = self._alert(home, make_report())
        edited = edit_favorite(home, enable_safety_alerts=False)
        assert not favorite_still_matches(alert, edited)


class TestHasUnviewed:
    def test_empty(self):
        assert not has_unviewed([])

    def test_mixed(self, make_report):
        viewed = Alert("a1", make_report("r1"), 10.0, T0, is_viewed=True)
        unviewed = Alert("a2", make_report("r2"), 10.0, T0)
        assert has_unviewed([viewed, unviewed])
        assert not has_unviewed([viewed])


class TestRankNearbyUnviewed:
    def test_nearest_first_with_recomputed_distance(self, make_report):
        far = Alert("a1", make_report("far", lat=40.004), 999.0, T0)
        near = Alert("a2", make_report("near", lat=40.0015), 999.0, T0)

        ranked = rank_nearby_unviewed([far, near], USER, 1609)

        assert [a.report_id for a in ranked] == ["near", "far"]
        assert ranked[0].distance_from_user == pytest.approx(55.6, abs=0.5)

    def test_does_not_modify_input(self, make_report):
        alert = Alert("a1", make_report(), 999.0, T0)
        rank_nearby_unviewed([alert], USER, 1609)
        assert alert.distance_from_user == 999.0

    def test_excludes_viewed_and_out_of_radius(self, make_report):
        viewed = Alert("a1", make_report("r1"), 0.0, T0, is_viewed=True)
        distant = Alert("a2", make_report("r2", lat=41.0), 0.0, T0)
        assert rank_nearby_unviewed([viewed, distant], USER, 1609) == []
