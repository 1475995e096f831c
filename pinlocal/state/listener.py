"""Event interfaces between the engine and the UI/notification layer."""

from pinlocal.core.alert import Alert, FavoriteAlert
from pinlocal.core.favorite import FavoritePlace
from pinlocal.core.report import Report


class EngineListener:
    """Receives engine events. Every method is a no-op by default."""

    def on_new_alerts(self, alerts: list[Alert]) -> None:
        pass

    def on_alerts_updated(self, has_unviewed: bool) -> None:
        pass

    def on_new_favorite_alerts(self, alerts: list[FavoriteAlert]) -> None:
        pass

    def on_favorite_alerts_updated(self, alerts: list[FavoriteAlert], has_unviewed: bool) -> None:
        pass

    def on_favorites_updated(self, favorites: list[FavoritePlace]) -> None:
        pass

    def on_report_created(self, report: Report) -> None:
        pass

    def on_reports_expired(self, reports: list[Report]) -> None:
        pass


class FavoriteChangeListener:
    """Notified by FavoriteStore before an edit or removal is reported."""

    def on_favorite_updated(self, favorite: FavoritePlace) -> None:
        pass

    def on_favorite_removed(self, favorite_id: str) -> None:
        pass
