"""PinLocal API - FastAPI service in front of the alert engine.

Exposes report creation, location updates, alerts and favorite places
for a single device. State lives in the configured persistence backend.
"""

import base64
import binascii
import logging
import os
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from pinlocal.core import codec
from pinlocal.core.alert import Alert, FavoriteAlert
from pinlocal.core.errors import InvalidCategory
from pinlocal.core.favorite import DEFAULT_FAVORITE_ALERT_DISTANCE, FavoritePlace
from pinlocal.core.formatter import (
    format_time_ago,
    get_alert_distance_text,
    get_enabled_categories_text,
)
from pinlocal.core.geo import Coordinate
from pinlocal.core.report import Report, ReportCategory, parse_category
from pinlocal.main import get_config
from pinlocal.orchestrator import CheckResult, Orchestrator

log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="PinLocal API",
    description="Anonymous, ephemeral, location-based incident reports and alerts",
    version="1.0.0",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# ===== Request Models =====

class LocationIn(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.lat, longitude=self.lng)


class ReportCreate(LocationIn):
    text: str
    category: str
    language: str | None = None
    photo: str | None = None


class AlertDistanceUpdate(BaseModel):
    meters: float = Field(gt=0)


class FavoriteCreate(LocationIn):
    name: str
    description: str = ""
    alert_distance: float = Field(default=DEFAULT_FAVORITE_ALERT_DISTANCE, gt=0)
    categories: list[str] = [ReportCategory.SAFETY.code, ReportCategory.LOST_MISSING.code]


class FavoriteUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    alert_distance: float | None = Field(default=None, gt=0)
    categories: list[str] | None = None


class FavoriteAlertViewed(BaseModel):
    report_id: str | None = None


# ===== Orchestrator =====

_orchestrator: Orchestrator | None = None


def get_orchestrator() -> Orchestrator:
    """Get or create the process-wide orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator(get_config())
        _orchestrator.load()
        logger.info("Orchestrator initialized")
    return _orchestrator


# ===== Response helpers =====

def _report_to_dict(report: Report, orchestrator: Orchestrator) -> dict[str, Any]:
    now = orchestrator.clock.now()
    data = codec.report_to_dict(report)
    data["expires_at"] = codec.encode_datetime(report.expires_at)
    data["time_ago"] = format_time_ago(report.created_at, now, orchestrator.config.language)
    return data


def _alert_to_dict(alert: Alert, orchestrator: Orchestrator) -> dict[str, Any]:
    return {
        "id": alert.id,
        "report": _report_to_dict(alert.report, orchestrator),
        "distance_from_user": alert.distance_from_user,
        "timestamp": codec.encode_datetime(alert.timestamp),
        "is_viewed": alert.is_viewed,
    }


def _favorite_to_dict(favorite: FavoritePlace, orchestrator: Orchestrator) -> dict[str, Any]:
    data = codec.favorite_to_dict(favorite)
    data["categories"] = [c.code for c in favorite.enabled_categories]
    data["categories_text"] = get_enabled_categories_text(favorite, orchestrator.config.language)
    return data


def _favorite_alert_to_dict(alert: FavoriteAlert, orchestrator: Orchestrator) -> dict[str, Any]:
    return {
        "id": alert.id,
        "favorite_id": alert.favorite.id,
        "favorite_name": alert.favorite.name,
        "report": _report_to_dict(alert.report, orchestrator),
        "distance_from_favorite": alert.distance_from_favorite,
        "timestamp": codec.encode_datetime(alert.timestamp),
        "is_viewed": alert.is_viewed,
    }


def _check_to_dict(result: CheckResult, orchestrator: Orchestrator) -> dict[str, Any]:
    return {
        "suppressed": result.suppressed,
        "new_alerts": [_alert_to_dict(a, orchestrator) for a in result.new_alerts],
        "new_favorite_alerts": [
            _favorite_alert_to_dict(a, orchestrator) for a in result.new_favorite_alerts
        ],
        "notifications": result.notification_texts(
            orchestrator.alert_distance, orchestrator.config.language,
        ),
    }


def _parse_categories(codes: list[str]) -> set[ReportCategory]:
    try:
        return {parse_category(code) for code in codes}
    except InvalidCategory as e:
        raise HTTPException(status_code=422, detail=str(e))


def _decode_photo(photo: str | None) -> bytes | None:
    if photo is None:
        return None
    # Accept both bare base64 and data URLs
    _, _, encoded = photo.rpartition(",")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="Photo is not valid base64")


# ===== Endpoints =====

@app.get("/health")
async def health_check(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "reports": len(orchestrator.active_reports()),
        "favorites": len(orchestrator.favorites()),
        "pending_writes": orchestrator.writer.pending_keys,
    }


@app.get("/reports")
async def list_reports(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """List active reports, newest first."""
    reports = sorted(orchestrator.active_reports(), key=lambda r: r.created_at, reverse=True)
    return {
        "count": len(reports),
        "reports": [_report_to_dict(r, orchestrator) for r in reports],
    }


@app.post("/reports", status_code=201)
async def create_report(
    body: ReportCreate,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Create a report at the given position."""
    photo = _decode_photo(body.photo)
    try:
        report = orchestrator.create_report(
            location=body.to_coordinate(),
            text=body.text,
            category=body.category,
            language=body.language,
            photo=photo,
        )
    except InvalidCategory as e:
        raise HTTPException(status_code=422, detail=str(e))

    return _report_to_dict(report, orchestrator)


@app.post("/location")
async def update_location(
    body: LocationIn,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Apply a position fix and return any new alerts."""
    result = orchestrator.on_location_update(body.to_coordinate())
    return _check_to_dict(result, orchestrator)


@app.get("/alerts")
async def list_alerts(
    nearby: bool = False,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """List user alerts, or only unviewed ones near the last position."""
    alerts = orchestrator.nearby_unviewed() if nearby else orchestrator.alerts()
    return {
        "alert_distance": orchestrator.alert_distance,
        "alert_distance_text": get_alert_distance_text(
            orchestrator.alert_distance, orchestrator.config.language,
        ),
        "has_unviewed": any(not a.is_viewed for a in orchestrator.alerts()),
        "alerts": [_alert_to_dict(a, orchestrator) for a in alerts],
    }


@app.post("/alerts/viewed")
async def mark_all_alerts_viewed(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Mark every user alert as viewed."""
    orchestrator.mark_all_alerts_viewed()
    return {"message": "All alerts marked as viewed"}


@app.post("/alerts/{report_id}/viewed")
async def mark_alert_viewed(
    report_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Mark the alert for one report as viewed."""
    orchestrator.mark_alert_viewed(report_id)
    return {"message": f"Alert for report '{report_id}' marked as viewed"}


@app.put("/settings/alert-distance")
async def set_alert_distance(
    body: AlertDistanceUpdate,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Change the user alert radius."""
    orchestrator.set_alert_distance(body.meters)
    return {
        "alert_distance": orchestrator.alert_distance,
        "alert_distance_text": get_alert_distance_text(
            orchestrator.alert_distance, orchestrator.config.language,
        ),
    }


@app.get("/favorites")
async def list_favorites(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """List favorite places."""
    return {"favorites": [_favorite_to_dict(f, orchestrator) for f in orchestrator.favorites()]}


@app.post("/favorites", status_code=201)
async def create_favorite(
    body: FavoriteCreate,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Create a favorite place."""
    favorite = orchestrator.add_favorite(
        name=body.name,
        location=body.to_coordinate(),
        alert_distance=body.alert_distance,
        categories=_parse_categories(body.categories),
        description=body.description,
    )
    return _favorite_to_dict(favorite, orchestrator)


@app.put("/favorites/{favorite_id}")
async def update_favorite(
    favorite_id: str,
    updates: FavoriteUpdate,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Edit a favorite place; alerts are re-evaluated against the new settings."""
    current = orchestrator.get_favorite(favorite_id)
    if current is None:
        raise HTTPException(status_code=404, detail=f"Favorite '{favorite_id}' not found")

    changes: dict[str, Any] = {}
    if updates.name is not None:
        changes["name"] = updates.name
    if updates.description is not None:
        changes["description"] = updates.description
    if updates.alert_distance is not None:
        changes["alert_distance"] = updates.alert_distance
    if updates.lat is not None or updates.lng is not None:
        changes["location"] = Coordinate(
            latitude=updates.lat if updates.lat is not None else current.location.latitude,
            longitude=updates.lng if updates.lng is not None else current.location.longitude,
        )
    if updates.categories is not None:
        categories = _parse_categories(updates.categories)
        changes["enable_safety_alerts"] = ReportCategory.SAFETY in categories
        changes["enable_fun_alerts"] = ReportCategory.FUN in categories
        changes["enable_lost_alerts"] = ReportCategory.LOST_MISSING in categories

    updated = orchestrator.update_favorite(favorite_id, **changes)
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Favorite '{favorite_id}' not found")
    return _favorite_to_dict(updated, orchestrator)


@app.delete("/favorites/{favorite_id}")
async def delete_favorite(
    favorite_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Delete a favorite place and its alerts."""
    if not orchestrator.remove_favorite(favorite_id):
        raise HTTPException(status_code=404, detail=f"Favorite '{favorite_id}' not found")
    return {"message": f"Favorite '{favorite_id}' deleted", "id": favorite_id}


@app.get("/favorites/alerts")
async def list_favorite_alerts(
    favorite_id: str | None = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """List favorite alerts, optionally for one favorite."""
    alerts = orchestrator.favorite_alerts(favorite_id)
    return {
        "has_unviewed": any(not a.is_viewed for a in alerts),
        "alerts": [_favorite_alert_to_dict(a, orchestrator) for a in alerts],
    }


@app.post("/favorites/{favorite_id}/viewed")
async def mark_favorite_viewed(
    favorite_id: str,
    body: FavoriteAlertViewed | None = None,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Mark a favorite's alerts (or a single one of them) as viewed."""
    if orchestrator.get_favorite(favorite_id) is None:
        raise HTTPException(status_code=404, detail=f"Favorite '{favorite_id}' not found")

    if body is not None and body.report_id:
        orchestrator.mark_favorite_alert_viewed(body.report_id, favorite_id)
    else:
        orchestrator.mark_favorite_viewed(favorite_id)
    return {"message": f"Alerts for favorite '{favorite_id}' marked as viewed"}


@app.post("/maintenance/sweep")
async def sweep_expired(orchestrator: Orchestrator = Depends(get_orchestrator)):
    """Remove expired reports and their alerts, then retry deferred writes."""
    expired = orchestrator.sweep_expired()
    flushed = orchestrator.flush()
    return {
        "expired": [r.id for r in expired],
        "pending_writes": [] if flushed else orchestrator.writer.pending_keys,
    }
