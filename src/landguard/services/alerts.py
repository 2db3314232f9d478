"""Community alerts, scan counters, votes, and per-user property watches."""

from __future__ import annotations

import logging
from typing import Callable, List

from landguard.errors import ConflictError, NotFoundError, ValidationError
from landguard.observability import get_observability
from landguard.scoring.models import Severity
from landguard.store.property_store import PropertyStore
from landguard.store.schema import (
    AlertType,
    CommunityAlert,
    PropertyWatch,
    ScamReport,
    VoteDirection,
    new_id,
    utcnow,
    watch_id,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_CAS_ATTEMPTS = 50
ALERT_MESSAGE_LIMIT = 200


class AlertManager:
    """Owns community alerts and watches for property records.

    Counter updates (``scanCount``, votes) re-read the alert and re-apply the
    increment when a concurrent writer wins the compare-and-swap, so N calls
    always add exactly N.
    """

    def __init__(self, store: PropertyStore, *, max_attempts: int = DEFAULT_CAS_ATTEMPTS) -> None:
        self.store = store
        self.max_attempts = max(1, max_attempts)
        self.observability = get_observability(component="alerts")

    def _update_alert(self, alert: CommunityAlert, mutate: Callable[[CommunityAlert], dict]) -> CommunityAlert:
        current = alert
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.store.save_alert(current.model_copy(update=mutate(current)))
            except ConflictError:
                LOGGER.debug("Alert %s changed concurrently (attempt %d); re-reading", alert.id, attempt)
                current = self.store.get_alert(alert.id)
        raise ConflictError(f"Alert '{alert.id}' kept changing after {self.max_attempts} attempts")

    def create_alert(
        self,
        property_id: str,
        *,
        title: str,
        message: str,
        alert_type: AlertType | str = AlertType.WARNING,
        severity: Severity | str = Severity.MEDIUM,
        created_by: str,
    ) -> CommunityAlert:
        """Create an active alert for an existing property."""

        self.store.require_property(property_id)
        if not (title or "").strip():
            raise ValidationError("title is required")
        if not (message or "").strip():
            raise ValidationError("message is required")
        try:
            resolved_type = AlertType(alert_type)
            resolved_severity = Severity(severity)
        except ValueError as exc:
            raise ValidationError(str(exc), code="INVALID_FIELD") from exc

        alert = CommunityAlert(
            id=new_id("alert"),
            property_id=property_id,
            title=title.strip(),
            message=message.strip()[:ALERT_MESSAGE_LIMIT],
            alert_type=resolved_type,
            severity=resolved_severity,
            created_by=created_by,
        )
        saved = self.store.save_alert(alert)
        self.observability.emit_event(
            "alert.created",
            alert_id=saved.id,
            property_id=property_id,
            alert_type=resolved_type.value,
            severity=resolved_severity.value,
        )
        return saved

    def alert_for_report(self, report: ScamReport) -> CommunityAlert | None:
        """Raise a danger or warning alert for critical and high severity reports."""

        if report.severity not in {Severity.CRITICAL, Severity.HIGH}:
            return None
        return self.create_alert(
            report.property_id,
            title=f"{report.scam_type.value.replace('_', ' ').upper()} Reported",
            message=report.description,
            alert_type=AlertType.DANGER if report.severity is Severity.CRITICAL else AlertType.WARNING,
            severity=report.severity,
            created_by=report.reported_by,
        )

    def active_alerts(self, property_id: str) -> List[CommunityAlert]:
        return self.store.list_alerts(property_id, active_only=True)

    def record_scan(self, property_id: str) -> List[CommunityAlert]:
        """Count one lookup of ``property_id`` on every active alert it has."""

        scanned_at = utcnow()
        updated = [
            self._update_alert(
                alert,
                lambda current: {"scan_count": current.scan_count + 1, "last_scanned": scanned_at},
            )
            for alert in self.active_alerts(property_id)
        ]
        if updated:
            self.observability.increment("alerts.scans_recorded", value=len(updated))
        return updated

    def vote(self, alert_id: str, direction: VoteDirection | str) -> CommunityAlert:
        """Add one up or down vote. Votes are not deduplicated per voter."""

        try:
            resolved = VoteDirection(direction)
        except ValueError as exc:
            raise ValidationError("direction must be 'up' or 'down'", code="INVALID_FIELD") from exc

        alert = self.store.get_alert(alert_id)
        if resolved is VoteDirection.UP:
            return self._update_alert(alert, lambda current: {"upvotes": current.upvotes + 1})
        return self._update_alert(alert, lambda current: {"downvotes": current.downvotes + 1})

    def deactivate_alert(self, alert_id: str) -> CommunityAlert:
        alert = self.store.get_alert(alert_id)
        if not alert.is_active:
            return alert
        saved = self.store.save_alert(alert.model_copy(update={"is_active": False}))
        LOGGER.info("Deactivated alert alert_id=%s property_id=%s", alert_id, alert.property_id)
        return saved

    def watch(self, user_id: str, property_id: str, *, notifications_enabled: bool = True) -> PropertyWatch:
        """Add or refresh the single watch for ``(user_id, property_id)``."""

        self.store.require_property(property_id)
        existing = self.store.get_watch(user_id, property_id)
        now = utcnow()
        watch = PropertyWatch(
            id=watch_id(user_id, property_id),
            user_id=user_id,
            property_id=property_id,
            notifications_enabled=notifications_enabled,
            added_at=existing.added_at if existing else now,
            last_checked=now,
            version=existing.version if existing else 0,
        )
        return self.store.save_watch(watch)

    def unwatch(self, user_id: str, property_id: str) -> None:
        if self.store.get_watch(user_id, property_id) is None:
            raise NotFoundError(f"Watch for property '{property_id}' not found")
        self.store.delete_watch(user_id, property_id)

    def list_watches(self, user_id: str) -> List[PropertyWatch]:
        return self.store.list_watches(user_id)


__all__ = ["AlertManager"]
