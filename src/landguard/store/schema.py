"""Entity models for properties, listings, reports, alerts, and watches."""

from __future__ import annotations

import hashlib
import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List

from pydantic import Field

from landguard.scoring.models import CamelModel, RiskLevel, Severity


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PropertyStatus(str, Enum):
    ACTIVE = "active"
    FLAGGED = "flagged"
    VERIFIED_SCAM = "verified_scam"
    CLEARED = "cleared"
    UNDER_REVIEW = "under_review"


class Platform(str, Enum):
    CRAIGSLIST = "craigslist"
    FACEBOOK = "facebook"
    RIGHTMOVE = "rightmove"
    ZILLOW = "zillow"
    REALTOR = "realtor"
    KIJIJI = "kijiji"
    JUWAI = "juwai"
    OTHER = "other"


class ScamType(str, Enum):
    FAKE_LISTING = "fake_listing"
    PRICE_MANIPULATION = "price_manipulation"
    PHOTO_THEFT = "photo_theft"
    DUPLICATE_LISTING = "duplicate_listing"
    SELLER_FRAUD = "seller_fraud"
    WIRE_FRAUD = "wire_fraud"
    RENTAL_SCAM = "rental_scam"


class ReporterType(str, Enum):
    USER = "user"
    COMMUNITY = "community"
    SYSTEM = "system"


class AlertType(str, Enum):
    WARNING = "warning"
    DANGER = "danger"
    INFO = "info"


class VoteDirection(str, Enum):
    UP = "up"
    DOWN = "down"


DEFAULT_WATCH_ALERT_TYPES = ["price_change", "new_listing", "scam_report", "community_alert"]


def normalize_address_part(value: str) -> str:
    return re.sub(r"\s+", " ", (value or "").strip().lower())


def property_id(address: str, city: str, state: str) -> str:
    """Derive the stable property id from the normalised address triple."""

    normalized = "|".join(normalize_address_part(part) for part in (address, city, state))
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    return f"prop_{digest[:16]}"


def listing_id(platform: str, listing_url: str) -> str:
    """Derive a listing id so re-observing the same platform URL refreshes it."""

    normalized = f"{platform}|{listing_url.strip().lower()}"
    return f"lst_{hashlib.sha256(normalized.encode('utf-8')).hexdigest()[:16]}"


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def watch_id(user_id: str, prop_id: str) -> str:
    return f"watch_{user_id}_{prop_id}"


class PropertyRecord(CamelModel):
    """Canonical entity for one physical address."""

    id: str
    address: str
    city: str
    state: str
    country: str = "US"
    zip_code: str = ""
    status: PropertyStatus = PropertyStatus.ACTIVE
    risk_score: int = Field(default=0, ge=0, le=100)
    risk_level: RiskLevel = RiskLevel.SAFE
    total_flags: int = Field(default=0, ge=0)
    verified_scam: bool = False
    first_flagged: datetime | None = None
    last_checked: datetime = Field(default_factory=utcnow)
    notes: str | None = None
    version: int = 0


class PropertyListing(CamelModel):
    id: str
    property_id: str
    platform: Platform = Platform.OTHER
    listing_url: str
    seller_name: str | None = None
    seller_phone: str | None = None
    seller_email: str | None = None
    price: float = Field(default=0, ge=0)
    currency: str = "USD"
    description: str | None = None
    photo_urls: List[str] = Field(default_factory=list)
    listed_date: datetime = Field(default_factory=utcnow)
    removed_date: datetime | None = None
    is_active: bool = True
    is_flagged: bool = False
    scam_types: List[ScamType] = Field(default_factory=list)
    flag_count: int = Field(default=0, ge=0)
    version: int = 0


class ScamReport(CamelModel):
    """Append-only scam report; only the verification fields ever change."""

    id: str
    property_id: str
    listing_id: str | None = None
    reported_by: str
    reporter_type: ReporterType = ReporterType.USER
    scam_type: ScamType
    severity: Severity = Severity.MEDIUM
    description: str
    evidence: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)
    verified: bool = False
    verified_by: str | None = None
    verified_at: datetime | None = None
    version: int = 0


class CommunityAlert(CamelModel):
    id: str
    property_id: str
    title: str
    message: str
    alert_type: AlertType = AlertType.WARNING
    severity: Severity = Severity.MEDIUM
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    scan_count: int = Field(default=0, ge=0)
    last_scanned: datetime | None = None
    is_active: bool = True
    version: int = 0


class PropertyWatch(CamelModel):
    id: str
    user_id: str
    property_id: str
    notifications_enabled: bool = True
    added_at: datetime = Field(default_factory=utcnow)
    last_checked: datetime = Field(default_factory=utcnow)
    alert_types: List[str] = Field(default_factory=lambda: list(DEFAULT_WATCH_ALERT_TYPES))
    version: int = 0


class PriceRange(CamelModel):
    min: float = 0
    max: float = 0


class ListingHistorySummary(CamelModel):
    property_id: str
    total_listings: int = 0
    platforms: List[Platform] = Field(default_factory=list)
    price_range: PriceRange = Field(default_factory=PriceRange)
    avg_price: float = 0
    unique_sellers: int = 0


class PropertyStats(CamelModel):
    total_properties: int = 0
    flagged_properties: int = 0
    verified_scams: int = 0
    active_alerts: int = 0
    total_reports: int = 0
    avg_risk_score: float = 0
    scams_by_type: Dict[ScamType, int] = Field(default_factory=lambda: {scam: 0 for scam in ScamType})


__all__ = [
    "AlertType",
    "CommunityAlert",
    "DEFAULT_WATCH_ALERT_TYPES",
    "ListingHistorySummary",
    "Platform",
    "PriceRange",
    "PropertyListing",
    "PropertyRecord",
    "PropertyStats",
    "PropertyStatus",
    "PropertyWatch",
    "ReporterType",
    "ScamReport",
    "ScamType",
    "VoteDirection",
    "listing_id",
    "new_id",
    "normalize_address_part",
    "property_id",
    "utcnow",
    "watch_id",
]
