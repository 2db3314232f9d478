"""Property check and scam report orchestration used by the HTTP layer."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from landguard.errors import ValidationError
from landguard.observability import get_observability
from landguard.services.alerts import DEFAULT_CAS_ATTEMPTS, AlertManager
from landguard.services.correlation import CorrelationEngine, parse_address_line
from landguard.store.property_store import PropertyStore
from landguard.store.schema import CommunityAlert, ListingHistorySummary, PropertyListing, PropertyRecord, ScamReport

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PropertyCheckResult:
    property: PropertyRecord
    listings: List[PropertyListing]
    alerts: List[CommunityAlert]
    history: ListingHistorySummary

    def to_payload(self) -> Dict[str, Any]:
        return {
            "property": self.property.to_payload(),
            "listings": [listing.to_payload() for listing in self.listings],
            "alerts": [alert.to_payload() for alert in self.alerts],
            "history": self.history.to_payload(),
        }


@dataclass(slots=True)
class ReportOutcome:
    report: ScamReport
    alert: CommunityAlert | None


class PropertyService:
    """Front door for property checks, reports, listings, alerts, and watches."""

    def __init__(self, store: PropertyStore, *, max_attempts: int | None = None) -> None:
        self.store = store
        self.correlation = CorrelationEngine(store)
        self.alerts = AlertManager(store, max_attempts=max_attempts or DEFAULT_CAS_ATTEMPTS)
        self.observability = get_observability(component="property")

    def check_property(
        self,
        address: str,
        city: str,
        state: str,
        country: str | None = None,
        zip_code: str | None = None,
    ) -> PropertyCheckResult:
        """Resolve the property, count the lookup once, and return its current picture."""

        started = time.perf_counter()
        record = self.correlation.upsert_property(address, city, state, country or "US", zip_code or "")
        self.alerts.record_scan(record.id)
        listings = self.store.list_listings(record.id)
        result = PropertyCheckResult(
            property=record,
            listings=listings,
            alerts=self.alerts.active_alerts(record.id),
            history=self.correlation.listing_history(record.id),
        )
        self.observability.increment("property.checks", tags={"risk_level": record.risk_level.value})
        self.observability.record_timing("property.check_ms", (time.perf_counter() - started) * 1000)
        self.observability.emit_event(
            "property.checked",
            property_id=record.id,
            risk_score=record.risk_score,
            listings=len(listings),
            alerts=len(result.alerts),
        )
        return result

    def report_scam(
        self,
        *,
        reported_by: str,
        scam_type: str | None,
        description: str | None,
        property_id: str | None = None,
        address: str | None = None,
        listing_id: str | None = None,
        evidence: List[str] | None = None,
    ) -> ReportOutcome:
        """File a report against a property id or an ``"addr, city, state"`` line."""

        if not (scam_type or "").strip() or not (description or "").strip():
            raise ValidationError("scamType and description are required")

        target = (property_id or "").strip()
        if not target and address:
            parts = parse_address_line(address)
            if parts:
                target = self.correlation.upsert_property(*parts).id
        if not target:
            raise ValidationError("propertyId or an 'address, city, state' line is required")

        report_data: Mapping[str, Any] = {
            "scamType": scam_type,
            "description": description,
            "reportedBy": reported_by,
            "listingId": listing_id,
            "evidence": evidence or [],
        }
        report = self.correlation.add_scam_report(target, report_data)
        alert = self.alerts.alert_for_report(report)
        LOGGER.info(
            "Filed report report_id=%s property_id=%s severity=%s alert_id=%s",
            report.id,
            target,
            report.severity.value,
            alert.id if alert else None,
        )
        return ReportOutcome(report=report, alert=alert)

    def add_listing(self, property_id: str, listing_data: Mapping[str, Any]) -> PropertyListing:
        return self.correlation.add_listing(property_id, listing_data)

    def verify_report(self, report_id: str, verified_by: str) -> ScamReport:
        return self.correlation.verify_report(report_id, verified_by)

    def stats(self) -> Dict[str, Any]:
        return self.correlation.property_stats().to_payload()


__all__ = ["PropertyCheckResult", "PropertyService", "ReportOutcome"]
