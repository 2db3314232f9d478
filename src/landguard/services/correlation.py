"""Cross-platform listing correlation and property risk recomputation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from landguard.errors import ValidationError
from landguard.observability import get_observability
from landguard.scoring.aggregator import clamp_score, classify
from landguard.scoring.models import Severity
from landguard.store.property_store import PropertyStore
from landguard.store.schema import (
    ListingHistorySummary,
    Platform,
    PriceRange,
    PropertyListing,
    PropertyRecord,
    PropertyStats,
    PropertyStatus,
    ReporterType,
    ScamReport,
    ScamType,
    listing_id,
    new_id,
    normalize_address_part,
    property_id,
    utcnow,
)

LOGGER = logging.getLogger(__name__)

EnumT = TypeVar("EnumT", bound=Enum)

FLAG_POINTS = 10
FLAG_CAP = 5
VERIFIED_SCAM_POINTS = 50
LISTING_COUNT_STEPS = (3, 5)
LISTING_COUNT_POINTS = 10
PLATFORM_DIVERSITY_MIN = 3
PLATFORM_DIVERSITY_POINTS = 15
PRICE_VARIANCE_THRESHOLD = 40.0
PRICE_VARIANCE_POINTS = 20
REPORT_POINTS = 10
REPORT_CAP = 3

_CRITICAL_SCAM_TYPES = {ScamType.WIRE_FRAUD, ScamType.SELLER_FRAUD}
_HIGH_SCAM_TYPES = {ScamType.FAKE_LISTING, ScamType.RENTAL_SCAM}


@dataclass(frozen=True, slots=True)
class RiskBreakdown:
    """Individual contributions to a property's risk score."""

    flags: int = 0
    verified_scam: int = 0
    listing_count: int = 0
    platform_diversity: int = 0
    price_variance: int = 0
    reports: int = 0

    @property
    def total(self) -> int:
        return clamp_score(
            self.flags
            + self.verified_scam
            + self.listing_count
            + self.platform_diversity
            + self.price_variance
            + self.reports
        )


def price_variance_percent(listings: Iterable[PropertyListing]) -> float | None:
    """Return ``(max - min) / min * 100`` over active priced listings, or ``None``."""

    prices = [listing.price for listing in listings if listing.is_active and listing.price > 0]
    if len(prices) < 2:
        return None
    low, high = min(prices), max(prices)
    return (high - low) / low * 100


def risk_breakdown(
    record: PropertyRecord,
    listings: Sequence[PropertyListing],
    reports: Sequence[ScamReport],
) -> RiskBreakdown:
    """Compute every risk component for ``record`` from its listings and reports."""

    listing_points = sum(LISTING_COUNT_POINTS for step in LISTING_COUNT_STEPS if len(listings) > step)
    platforms = {listing.platform for listing in listings}
    variance = price_variance_percent(listings)
    return RiskBreakdown(
        flags=min(record.total_flags, FLAG_CAP) * FLAG_POINTS,
        verified_scam=VERIFIED_SCAM_POINTS if record.verified_scam else 0,
        listing_count=listing_points,
        platform_diversity=PLATFORM_DIVERSITY_POINTS if len(platforms) >= PLATFORM_DIVERSITY_MIN else 0,
        price_variance=PRICE_VARIANCE_POINTS if variance is not None and variance > PRICE_VARIANCE_THRESHOLD else 0,
        reports=min(len(reports), REPORT_CAP) * REPORT_POINTS,
    )


def compute_property_risk(
    record: PropertyRecord,
    listings: Sequence[PropertyListing],
    reports: Sequence[ScamReport],
) -> int:
    return risk_breakdown(record, listings, reports).total


def severity_for_scam_type(scam_type: ScamType) -> Severity:
    if scam_type in _CRITICAL_SCAM_TYPES:
        return Severity.CRITICAL
    if scam_type in _HIGH_SCAM_TYPES:
        return Severity.HIGH
    return Severity.MEDIUM


def summarize_history(prop_id: str, listings: Sequence[PropertyListing]) -> ListingHistorySummary:
    """Summarise where and at what prices a property has been listed."""

    platforms = list(dict.fromkeys(listing.platform for listing in listings))
    prices = [listing.price for listing in listings if listing.price > 0]
    sellers = {
        value.strip().lower()
        for listing in listings
        for value in (listing.seller_phone, listing.seller_email, listing.seller_name)
        if value and value.strip()
    }
    return ListingHistorySummary(
        property_id=prop_id,
        total_listings=len(listings),
        platforms=platforms,
        price_range=PriceRange(min=min(prices), max=max(prices)) if prices else PriceRange(),
        avg_price=sum(prices) / len(prices) if prices else 0,
        unique_sellers=len(sellers),
    )


def _require(value: str | None, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def _enum(enum_cls: Type[EnumT], value: Any, field_name: str) -> EnumT:
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}", code="INVALID_FIELD") from exc


class CorrelationEngine:
    """Resolve property identities and fold listings and reports into their risk."""

    def __init__(self, store: PropertyStore) -> None:
        self.store = store
        self.observability = get_observability(component="correlation")

    def _with_risk(
        self,
        record: PropertyRecord,
        listings: Sequence[PropertyListing] | None = None,
        reports: Sequence[ScamReport] | None = None,
    ) -> PropertyRecord:
        current_listings = self.store.list_listings(record.id) if listings is None else listings
        current_reports = self.store.list_reports(record.id) if reports is None else reports
        risk_score = compute_property_risk(record, current_listings, current_reports)
        return record.model_copy(update={"risk_score": risk_score, "risk_level": classify(risk_score)})

    def upsert_property(
        self,
        address: str,
        city: str,
        state: str,
        country: str = "US",
        zip_code: str = "",
        status: PropertyStatus | str | None = None,
        notes: str | None = None,
    ) -> PropertyRecord:
        """Create or refresh the record for the address triple and recompute its risk.

        Raises:
            ValidationError: If address, city, or state is blank.
            ConflictError: If another writer updated the record concurrently.
        """

        address = _require(address, "address")
        city = _require(city, "city")
        state = _require(state, "state")
        prop_id = property_id(address, city, state)
        existing = self.store.get_property(prop_id)

        if existing is None:
            record = PropertyRecord(
                id=prop_id,
                address=address,
                city=city,
                state=state,
                country=(country or "US").strip() or "US",
                zip_code=(zip_code or "").strip(),
                status=_enum(PropertyStatus, status, "status") if status else PropertyStatus.ACTIVE,
                notes=notes,
            )
        else:
            updates: Dict[str, Any] = {"last_checked": utcnow()}
            if status:
                updates["status"] = _enum(PropertyStatus, status, "status")
            if zip_code and zip_code.strip():
                updates["zip_code"] = zip_code.strip()
            if notes is not None:
                updates["notes"] = notes
            record = existing.model_copy(update=updates)

        saved = self.store.save_property(self._with_risk(record))
        self.observability.emit_event(
            "property.upserted",
            property_id=prop_id,
            created=existing is None,
            risk_score=saved.risk_score,
        )
        return saved

    def add_listing(self, prop_id: str, listing_data: Mapping[str, Any]) -> PropertyListing:
        """Attach a platform listing to a property and recompute the property's risk.

        The same platform and URL always map to the same listing id, so
        re-observing a listing refreshes it instead of duplicating it.
        """

        record = self.store.require_property(prop_id)
        listing_url = _require(listing_data.get("listingUrl") or listing_data.get("listing_url"), "listingUrl")
        platform = _enum(Platform, listing_data.get("platform") or Platform.OTHER, "platform")
        lst_id = listing_id(platform.value, listing_url)
        existing = self.store.get_listing(prop_id, lst_id)

        payload = dict(listing_data)
        payload.update({"id": lst_id, "propertyId": prop_id, "platform": platform, "listingUrl": listing_url})
        payload.pop("listing_url", None)
        payload.pop("property_id", None)
        try:
            listing = PropertyListing.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid listing: {exc.errors()[0]['msg']}", code="INVALID_FIELD") from exc
        listing = listing.model_copy(update={"version": existing.version if existing else 0})

        listings = [item for item in self.store.list_listings(prop_id) if item.id != lst_id] + [listing]
        self.store.save_property(self._with_risk(record, listings=listings))
        saved = self.store.save_listing(listing)
        LOGGER.info(
            "Recorded listing listing_id=%s property_id=%s platform=%s",
            lst_id,
            prop_id,
            platform.value,
        )
        self.observability.increment("listings.recorded", tags={"platform": platform.value})
        return saved

    def add_scam_report(self, prop_id: str, report_data: Mapping[str, Any]) -> ScamReport:
        """Persist a scam report and fold it into the owning property.

        Increments ``totalFlags``, stamps ``firstFlagged`` once, and moves an
        ``active`` property to ``flagged``.
        """

        record = self.store.require_property(prop_id)
        scam_type = _enum(
            ScamType, _require(report_data.get("scamType") or report_data.get("scam_type"), "scamType"), "scamType"
        )
        description = _require(report_data.get("description"), "description")
        report = ScamReport(
            id=new_id("rpt"),
            property_id=prop_id,
            listing_id=report_data.get("listingId") or report_data.get("listing_id"),
            reported_by=report_data.get("reportedBy") or report_data.get("reported_by") or "anonymous",
            reporter_type=_enum(
                ReporterType,
                report_data.get("reporterType") or report_data.get("reporter_type") or ReporterType.USER,
                "reporterType",
            ),
            scam_type=scam_type,
            severity=severity_for_scam_type(scam_type),
            description=description,
            evidence=list(report_data.get("evidence") or []),
        )

        now = utcnow()
        updates: Dict[str, Any] = {"total_flags": record.total_flags + 1}
        if record.first_flagged is None:
            updates["first_flagged"] = now
        if record.status is PropertyStatus.ACTIVE:
            updates["status"] = PropertyStatus.FLAGGED
        flagged = record.model_copy(update=updates)

        reports = self.store.list_reports(prop_id) + [report]
        self.store.save_property(self._with_risk(flagged, reports=reports))
        saved = self.store.save_report(report)
        LOGGER.info(
            "Recorded scam report report_id=%s property_id=%s scam_type=%s",
            saved.id,
            prop_id,
            scam_type.value,
        )
        self.observability.increment("reports.recorded", tags={"scam_type": scam_type.value})
        return saved

    def verify_report(self, report_id: str, verified_by: str) -> ScamReport:
        """Mark a report verified and the owning property a verified scam."""

        report = self.store.get_report(report_id)
        record = self.store.require_property(report.property_id)
        verified_record = record.model_copy(update={"verified_scam": True, "status": PropertyStatus.VERIFIED_SCAM})
        self.store.save_property(self._with_risk(verified_record))
        if report.verified:
            return report
        updated = report.model_copy(update={"verified": True, "verified_by": verified_by, "verified_at": utcnow()})
        return self.store.save_report(updated)

    def listing_history(self, prop_id: str) -> ListingHistorySummary:
        return summarize_history(prop_id, self.store.list_listings(prop_id))

    def property_stats(self) -> PropertyStats:
        """Aggregate counters across every stored property."""

        properties = self.store.list_properties()
        reports = self.store.list_reports()
        alerts = self.store.list_alerts(active_only=True)
        scams_by_type = {scam: 0 for scam in ScamType}
        for report in reports:
            scams_by_type[report.scam_type] += 1
        return PropertyStats(
            total_properties=len(properties),
            flagged_properties=sum(
                1 for record in properties if record.status in {PropertyStatus.FLAGGED, PropertyStatus.VERIFIED_SCAM}
            ),
            verified_scams=sum(1 for record in properties if record.verified_scam),
            active_alerts=len(alerts),
            total_reports=len(reports),
            avg_risk_score=(
                round(sum(record.risk_score for record in properties) / len(properties), 2) if properties else 0
            ),
            scams_by_type=scams_by_type,
        )


def parse_address_line(line: str) -> List[str] | None:
    """Split ``"addr, city, state"`` into its three normalised parts."""

    parts = [part.strip() for part in (line or "").split(",")]
    if len(parts) < 3 or not all(normalize_address_part(part) for part in parts[:3]):
        return None
    return parts[:3]


__all__ = [
    "CorrelationEngine",
    "RiskBreakdown",
    "compute_property_risk",
    "parse_address_line",
    "price_variance_percent",
    "risk_breakdown",
    "severity_for_scam_type",
    "summarize_history",
]
