"""Typed repository for property records and the entities they own.

Key layout inside the key-value store::

    property:{property_id}
    listing:{property_id}:{listing_id}
    report:{property_id}:{report_id}     report_ref:{report_id} -> property_id
    alert:{property_id}:{alert_id}       alert_ref:{alert_id}   -> property_id
    watch:{user_id}:{property_id}

Every child lives under its own key, so adding one never rewrites a shared
index. The ``*_ref`` pointers are written once, after the entity they point at,
and let callers address a report or alert by id alone.
"""

from __future__ import annotations

import logging
from typing import List, Type, TypeVar

from landguard.errors import NotFoundError
from landguard.scoring.models import CamelModel
from landguard.store.kv import KeyValueStore, StoredValue
from landguard.store.schema import CommunityAlert, PropertyListing, PropertyRecord, PropertyWatch, ScamReport

LOGGER = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=CamelModel)


def _load(model: Type[ModelT], stored: StoredValue) -> ModelT:
    record = model.model_validate(stored.value)
    return record.model_copy(update={"version": stored.version})


class PropertyStore:
    """Reads and compare-and-swap writes for property entities."""

    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------
    def _get(self, model: Type[ModelT], key: str) -> ModelT | None:
        stored = self.kv.get(key)
        return _load(model, stored) if stored else None

    def _save(self, key: str, record: ModelT) -> ModelT:
        version = self.kv.set(key, record.to_payload(), expected_version=record.version)
        return record.model_copy(update={"version": version})

    def _list(self, model: Type[ModelT], prefix: str) -> List[ModelT]:
        return [_load(model, stored) for stored in self.kv.values(prefix)]

    def _resolve_ref(self, kind: str, entity_id: str) -> str:
        stored = self.kv.get(f"{kind}_ref:{entity_id}")
        if stored is None:
            raise NotFoundError(f"{kind.capitalize()} '{entity_id}' not found")
        return stored.value["propertyId"]

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    def get_property(self, property_id: str) -> PropertyRecord | None:
        return self._get(PropertyRecord, f"property:{property_id}")

    def require_property(self, property_id: str) -> PropertyRecord:
        record = self.get_property(property_id)
        if record is None:
            raise NotFoundError(f"Property '{property_id}' not found")
        return record

    def save_property(self, record: PropertyRecord) -> PropertyRecord:
        """Persist ``record``; ``record.version`` must match the stored version."""

        return self._save(f"property:{record.id}", record)

    def list_properties(self) -> List[PropertyRecord]:
        return self._list(PropertyRecord, "property:")

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------
    def get_listing(self, property_id: str, listing_id: str) -> PropertyListing | None:
        return self._get(PropertyListing, f"listing:{property_id}:{listing_id}")

    def save_listing(self, listing: PropertyListing) -> PropertyListing:
        return self._save(f"listing:{listing.property_id}:{listing.id}", listing)

    def list_listings(self, property_id: str) -> List[PropertyListing]:
        return self._list(PropertyListing, f"listing:{property_id}:")

    # ------------------------------------------------------------------
    # Scam reports
    # ------------------------------------------------------------------
    def save_report(self, report: ScamReport) -> ScamReport:
        saved = self._save(f"report:{report.property_id}:{report.id}", report)
        if report.version == 0:
            self.kv.set(f"report_ref:{report.id}", {"propertyId": report.property_id}, expected_version=0)
        return saved

    def get_report(self, report_id: str) -> ScamReport:
        property_id = self._resolve_ref("report", report_id)
        report = self._get(ScamReport, f"report:{property_id}:{report_id}")
        if report is None:
            raise NotFoundError(f"Report '{report_id}' not found")
        return report

    def list_reports(self, property_id: str | None = None) -> List[ScamReport]:
        prefix = f"report:{property_id}:" if property_id else "report:"
        return self._list(ScamReport, prefix)

    # ------------------------------------------------------------------
    # Community alerts
    # ------------------------------------------------------------------
    def save_alert(self, alert: CommunityAlert) -> CommunityAlert:
        saved = self._save(f"alert:{alert.property_id}:{alert.id}", alert)
        if alert.version == 0:
            self.kv.set(f"alert_ref:{alert.id}", {"propertyId": alert.property_id}, expected_version=0)
        return saved

    def get_alert(self, alert_id: str) -> CommunityAlert:
        property_id = self._resolve_ref("alert", alert_id)
        alert = self._get(CommunityAlert, f"alert:{property_id}:{alert_id}")
        if alert is None:
            raise NotFoundError(f"Alert '{alert_id}' not found")
        return alert

    def list_alerts(self, property_id: str | None = None, *, active_only: bool = False) -> List[CommunityAlert]:
        prefix = f"alert:{property_id}:" if property_id else "alert:"
        alerts = self._list(CommunityAlert, prefix)
        if active_only:
            alerts = [alert for alert in alerts if alert.is_active]
        return alerts

    # ------------------------------------------------------------------
    # Watches
    # ------------------------------------------------------------------
    def get_watch(self, user_id: str, property_id: str) -> PropertyWatch | None:
        return self._get(PropertyWatch, f"watch:{user_id}:{property_id}")

    def save_watch(self, watch: PropertyWatch) -> PropertyWatch:
        return self._save(f"watch:{watch.user_id}:{watch.property_id}", watch)

    def delete_watch(self, user_id: str, property_id: str) -> None:
        self.kv.delete(f"watch:{user_id}:{property_id}")
        LOGGER.info("Removed watch user_id=%s property_id=%s", user_id, property_id)

    def list_watches(self, user_id: str) -> List[PropertyWatch]:
        return self._list(PropertyWatch, f"watch:{user_id}:")


__all__ = ["PropertyStore"]
