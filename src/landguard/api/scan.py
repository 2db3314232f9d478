"""FastAPI router exposing the stateless scan endpoints."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends

from landguard.api.auth import require_token
from landguard.errors import ValidationError
from landguard.scoring.models import CamelModel
from landguard.services.factories import build_scan_service
from landguard.services.scanning import ScanService

router = APIRouter(prefix="/v1", tags=["scans"])


class ListingScanRequest(CamelModel):
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    text: Optional[str] = None
    location: Optional[str] = None
    price: Optional[float] = None
    image_count: Optional[int] = None
    seller_name: Optional[str] = None
    seller_phone: Optional[str] = None
    seller_email: Optional[str] = None


class SellerScanRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    profile_url: Optional[str] = None
    listing_history: Optional[List[str]] = None


class DocumentScanRequest(CamelModel):
    document_type: Optional[str] = None
    document_text: Optional[str] = None
    document_url: Optional[str] = None
    property_address: Optional[str] = None


class BulkScanRequest(CamelModel):
    listings: Optional[List[ListingScanRequest]] = None


@lru_cache(maxsize=1)
def get_scan_service() -> ScanService:
    return build_scan_service()


@router.post("/scan-listing", summary="Scan a listing for scam indicators")
def scan_listing(
    payload: ListingScanRequest,
    user=Depends(require_token),
    service: ScanService = Depends(get_scan_service),
):
    result = service.scan_listing(**payload.model_dump())
    return {"success": True, "data": result.to_payload()}


@router.post("/scan-seller", summary="Scan a seller profile")
def scan_seller(
    payload: SellerScanRequest,
    user=Depends(require_token),
    service: ScanService = Depends(get_scan_service),
):
    result = service.scan_seller(**payload.model_dump())
    return {"success": True, "data": result.to_payload()}


@router.post("/scan-document", summary="Scan a property document")
def scan_document(
    payload: DocumentScanRequest,
    user=Depends(require_token),
    service: ScanService = Depends(get_scan_service),
):
    if not payload.document_type:
        raise ValidationError("documentType is required")
    result = service.scan_document(**payload.model_dump())
    return {"success": True, "data": result.to_payload()}


@router.post("/bulk-scan", summary="Scan many listings in one request")
def bulk_scan(
    payload: BulkScanRequest,
    user=Depends(require_token),
    service: ScanService = Depends(get_scan_service),
):
    listings = None if payload.listings is None else [item.model_dump() for item in payload.listings]
    return {"success": True, "data": service.bulk_scan(listings)}


@router.get("/rules", summary="Describe the active rule table")
def describe_rules(
    user=Depends(require_token),
    service: ScanService = Depends(get_scan_service),
):
    return {"success": True, "data": service.rule_table.describe()}


__all__ = ["router", "get_scan_service"]
