"""Message formatting - Pure functions.

This module formats alerts, favorites and categories into short
notification texts. English and Spanish are supported; any other
language code falls back to English.
All functions are pure with no side effects.
"""

from datetime import datetime

from pinlocal.core.alert import Alert, FavoriteAlert
from pinlocal.core.favorite import (
    ALERT_DISTANCE_1_MILE,
    ALERT_DISTANCE_2_MILES,
    ALERT_DISTANCE_3_MILES,
    ALERT_DISTANCE_5_MILES,
    ALERT_DISTANCE_STATE,
    ALERT_DISTANCE_ZIP_CODE,
    FavoritePlace,
)
from pinlocal.core.report import ReportCategory


METERS_PER_MILE = 1609.0

_DISTANCE_LABELS = {
    ALERT_DISTANCE_1_MILE: ("1 mile", "1 milla"),
    ALERT_DISTANCE_2_MILES: ("2 miles", "2 millas"),
    ALERT_DISTANCE_3_MILES: ("3 miles", "3 millas"),
    ALERT_DISTANCE_5_MILES: ("5 miles", "5 millas"),
    ALERT_DISTANCE_ZIP_CODE: ("zip code area", "área de código postal"),
    ALERT_DISTANCE_STATE: ("state-wide", "todo el estado"),
}

_CATEGORY_NAMES = {
    ReportCategory.SAFETY: ("Safety", "Seguridad"),
    ReportCategory.FUN: ("Fun", "Diversión"),
    ReportCategory.LOST_MISSING: ("Lost/Missing", "Perdido/Desaparecido"),
}

# Shorter labels used in favorite settings summaries
_CATEGORY_SHORT_NAMES = {
    ReportCategory.SAFETY: ("Safety", "Seguridad"),
    ReportCategory.FUN: ("Fun", "Diversión"),
    ReportCategory.LOST_MISSING: ("Lost", "Perdidos"),
}

_CATEGORY_ICONS = {
    ReportCategory.SAFETY: "⚠️",
    ReportCategory.FUN: "🎉",
    ReportCategory.LOST_MISSING: "🔍",
}


def is_spanish(language: str) -> bool:
    """Returns True for Spanish language tags ('es', 'es-MX', ...)."""
    return language.lower().split("-")[0].split("_")[0] == "es"


def _pick(pair: tuple[str, str], language: str) -> str:
    return pair[1] if is_spanish(language) else pair[0]


def get_category_display_name(category: ReportCategory, language: str = "en") -> str:
    """Get the human-readable category name.

    Pure function.
    """
    return _pick(_CATEGORY_NAMES[category], language)


def get_category_icon(category: ReportCategory) -> str:
    """Get an emoji representing the category.

    Pure function.
    """
    return _CATEGORY_ICONS[category]


def get_alert_distance_text(distance_m: float, language: str = "en") -> str:
    """Get the label for an alert distance step.

    Pure function. Values that are not a step get a generic label.
    """
    label = _DISTANCE_LABELS.get(distance_m)
    if label is None:
        return _pick(("custom distance", "distancia personalizada"), language)
    return _pick(label, language)


def get_enabled_categories_text(favorite: FavoritePlace, language: str = "en") -> str:
    """List the categories a favorite alerts on, e.g. "Safety, Lost".

    Pure function.
    """
    names = [_pick(_CATEGORY_SHORT_NAMES[c], language) for c in favorite.enabled_categories]
    if not names:
        return _pick(("None", "Ninguna"), language)
    return ", ".join(names)


def format_alert_summary(
    new_alerts: list[Alert],
    alert_distance_m: float,
    language: str = "en",
) -> str:
    """Format the notification text for a batch of new user alerts.

    Pure function.

    Args:
        new_alerts: Newly created unviewed alerts
        alert_distance_m: Current user alert distance
        language: Language tag for the message

    Returns:
        e.g. "2 new alerts within 1 mile"
    """
    distance_text = get_alert_distance_text(alert_distance_m, language)
    count = len(new_alerts)
    if is_spanish(language):
        noun = "nueva alerta" if count == 1 else "nuevas alertas"
        return f"{count} {noun} dentro de {distance_text}"
    noun = "new alert" if count == 1 else "new alerts"
    return f"{count} {noun} within {distance_text}"


def format_favorite_alert_message(alert: FavoriteAlert, language: str = "en") -> str:
    """Format the notification text for one favorite alert.

    Pure function.
    """
    miles = alert.distance_from_favorite / METERS_PER_MILE
    name = alert.favorite.name
    if is_spanish(language):
        return f"Nueva alerta en {name} ({miles:.1f} millas)"
    return f"New alert at {name} ({miles:.1f} miles)"


def format_favorite_alert_summary(
    new_alerts: list[FavoriteAlert],
    language: str = "en",
) -> str:
    """Format the notification text for a batch of new favorite alerts.

    Pure function. A single alert gets its own detailed message.
    """
    if len(new_alerts) == 1:
        return format_favorite_alert_message(new_alerts[0], language)
    if is_spanish(language):
        return f"{len(new_alerts)} nuevas alertas en lugares favoritos"
    return f"{len(new_alerts)} new alerts at favorite places"


def format_time_ago(timestamp: datetime, now: datetime, language: str = "en") -> str:
    """Format a timestamp relative to now, e.g. "5 minutes ago".

    Pure function.
    """
    minutes = int((now - timestamp).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    spanish = is_spanish(language)

    if minutes < 1:
        return "Justo ahora" if spanish else "Just now"
    if minutes < 60:
        return f"Hace {minutes} minutos" if spanish else f"{minutes} minutes ago"
    if hours < 24:
        return f"Hace {hours} horas" if spanish else f"{hours} hours ago"
    return f"Hace {days} días" if spanish else f"{days} days ago"
