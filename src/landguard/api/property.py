"""FastAPI router for property checks, scam reports, alerts, and watchlists."""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends

from landguard.api.auth import require_role, require_token
from landguard.errors import ValidationError
from landguard.scoring.models import CamelModel
from landguard.services.factories import build_property_service
from landguard.services.property_check import PropertyService

router = APIRouter(prefix="/property", tags=["property"])


class PropertyCheckRequest(CamelModel):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None


class ScamReportRequest(CamelModel):
    property_id: Optional[str] = None
    address: Optional[str] = None
    listing_id: Optional[str] = None
    scam_type: Optional[str] = None
    description: Optional[str] = None
    evidence: List[str] = []


class ListingRequest(CamelModel):
    listing_url: Optional[str] = None
    platform: Optional[str] = None
    seller_name: Optional[str] = None
    seller_phone: Optional[str] = None
    seller_email: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    description: Optional[str] = None
    photo_urls: Optional[List[str]] = None
    listed_date: Optional[datetime] = None
    removed_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    is_flagged: Optional[bool] = None
    scam_types: Optional[List[str]] = None
    flag_count: Optional[int] = None


class AlertRequest(CamelModel):
    title: Optional[str] = None
    message: Optional[str] = None
    alert_type: str = "warning"
    severity: str = "medium"


class VoteRequest(CamelModel):
    direction: Optional[str] = None


class WatchRequest(CamelModel):
    property_id: Optional[str] = None
    notifications_enabled: bool = True


@lru_cache(maxsize=1)
def get_property_service() -> PropertyService:
    return build_property_service()


def _ok(data):
    return {"success": True, "data": data}


@router.post("/check", summary="Check a property for scam history")
def check_property(
    payload: PropertyCheckRequest,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    result = service.check_property(
        payload.address,
        payload.city,
        payload.state,
        country=payload.country,
        zip_code=payload.zip_code,
    )
    return _ok(result.to_payload())


@router.post("/report", summary="Report a property scam")
def report_scam(
    payload: ScamReportRequest,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    outcome = service.report_scam(
        reported_by=user["username"],
        scam_type=payload.scam_type,
        description=payload.description,
        property_id=payload.property_id,
        address=payload.address,
        listing_id=payload.listing_id,
        evidence=payload.evidence,
    )
    return _ok(
        {
            "reportId": outcome.report.id,
            "report": outcome.report.to_payload(),
            "alert": outcome.alert.to_payload() if outcome.alert else None,
        }
    )


@router.get("/stats", summary="Aggregate property statistics")
def property_stats(
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    return _ok(service.stats())


@router.post("/{property_id}/listings", summary="Attach a platform listing to a property")
def add_listing(
    property_id: str,
    payload: ListingRequest,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    listing = service.add_listing(property_id, payload.model_dump(mode="json", by_alias=True, exclude_none=True))
    return _ok(listing.to_payload())


@router.post("/reports/{report_id}/verify", summary="Verify a scam report")
def verify_report(
    report_id: str,
    user=Depends(require_role("admin")),
    service: PropertyService = Depends(get_property_service),
):
    report = service.verify_report(report_id, verified_by=user["username"])
    return _ok(report.to_payload())


@router.post("/{property_id}/alerts", summary="Create a community alert")
def create_alert(
    property_id: str,
    payload: AlertRequest,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    alert = service.alerts.create_alert(
        property_id,
        title=payload.title or "",
        message=payload.message or "",
        alert_type=payload.alert_type,
        severity=payload.severity,
        created_by=user["username"],
    )
    return _ok(alert.to_payload())


@router.post("/alerts/{alert_id}/vote", summary="Vote on a community alert")
def vote_alert(
    alert_id: str,
    payload: VoteRequest,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    if not payload.direction:
        raise ValidationError("direction is required")
    return _ok(service.alerts.vote(alert_id, payload.direction).to_payload())


@router.post("/alerts/{alert_id}/deactivate", summary="Deactivate a community alert")
def deactivate_alert(
    alert_id: str,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    return _ok(service.alerts.deactivate_alert(alert_id).to_payload())


@router.get("/watch", summary="List the caller's watched properties")
def list_watches(
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    watches = service.alerts.list_watches(user["username"])
    return _ok({"watches": [watch.to_payload() for watch in watches], "count": len(watches)})


@router.post("/watch", summary="Watch a property")
def watch_property(
    payload: WatchRequest,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    if not (payload.property_id or "").strip():
        raise ValidationError("propertyId is required")
    watch = service.alerts.watch(
        user["username"],
        payload.property_id.strip(),
        notifications_enabled=payload.notifications_enabled,
    )
    return _ok(watch.to_payload())


@router.delete("/watch/{property_id}", summary="Stop watching a property")
def unwatch_property(
    property_id: str,
    user=Depends(require_token),
    service: PropertyService = Depends(get_property_service),
):
    service.alerts.unwatch(user["username"], property_id)
    return _ok({"propertyId": property_id, "watching": False})


__all__ = ["router", "get_property_service"]
