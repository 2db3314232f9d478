"""Unit tests for community alerts, scan counters, votes, and watches."""

from __future__ import annotations

import threading

import pytest

from landguard.errors import ConflictError, NotFoundError, ValidationError
from landguard.scoring.models import Severity
from landguard.services.alerts import AlertManager
from landguard.services.property_check import PropertyService
from landguard.store.kv import MemoryKeyValueStore
from landguard.store.property_store import PropertyStore
from landguard.store.schema import AlertType, DEFAULT_WATCH_ALERT_TYPES


@pytest.fixture()
def service() -> PropertyService:
    return PropertyService(PropertyStore(MemoryKeyValueStore()))


@pytest.fixture()
def prop_id(service: PropertyService) -> str:
    return service.correlation.upsert_property("5 Pine Rd", "Tampa", "FL").id


def _alert(service: PropertyService, prop_id: str, **overrides):
    fields = {"title": "Heads up", "message": "Seller asked for gift cards", "created_by": "u1"}
    fields.update(overrides)
    return service.alerts.create_alert(prop_id, **fields)


def test_record_scan_counts_each_call(service: PropertyService, prop_id: str) -> None:
    alert = _alert(service, prop_id)
    for _ in range(5):
        service.alerts.record_scan(prop_id)

    stored = service.store.get_alert(alert.id)
    assert stored.scan_count == 5
    assert stored.last_scanned is not None


def test_concurrent_scans_are_not_lost(service: PropertyService, prop_id: str) -> None:
    """Concurrent record_scan calls each add exactly one, even when CAS writes collide."""

    first = _alert(service, prop_id)
    second = _alert(service, prop_id, title="Second")
    workers = 8
    per_worker = 10
    barrier = threading.Barrier(workers)
    errors: list[BaseException] = []

    def _scan() -> None:
        barrier.wait()
        try:
            for _ in range(per_worker):
                service.alerts.record_scan(prop_id)
        except BaseException as exc:  # pragma: no cover - surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=_scan) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert service.store.get_alert(first.id).scan_count == workers * per_worker
    assert service.store.get_alert(second.id).scan_count == workers * per_worker


def test_check_property_counts_one_scan(service: PropertyService) -> None:
    result = service.check_property("5 Pine Rd", "Tampa", "FL")
    alert = _alert(service, result.property.id)

    checked = service.check_property("5 pine rd", "TAMPA", "fl")
    assert [item.id for item in checked.alerts] == [alert.id]
    assert checked.alerts[0].scan_count == 1


def test_deactivated_alerts_are_not_counted(service: PropertyService, prop_id: str) -> None:
    alert = _alert(service, prop_id)
    service.alerts.deactivate_alert(alert.id)

    assert service.alerts.record_scan(prop_id) == []
    assert service.alerts.active_alerts(prop_id) == []
    assert service.store.get_alert(alert.id).scan_count == 0


def test_votes_accumulate(service: PropertyService, prop_id: str) -> None:
    alert = _alert(service, prop_id)
    service.alerts.vote(alert.id, "up")
    service.alerts.vote(alert.id, "up")
    updated = service.alerts.vote(alert.id, "down")

    assert updated.upvotes == 2
    assert updated.downvotes == 1

    with pytest.raises(ValidationError):
        service.alerts.vote(alert.id, "sideways")
    with pytest.raises(NotFoundError):
        service.alerts.vote("alert_missing", "up")


def test_exhausted_retries_surface_conflict(prop_id: str, service: PropertyService) -> None:
    """A writer that never wins the compare-and-swap gives up with ConflictError."""

    alert = _alert(service, prop_id)
    manager = AlertManager(service.store, max_attempts=2)
    stale = alert.model_copy(update={"version": alert.version + 10})
    service.store.get_alert = lambda alert_id: stale  # type: ignore[method-assign]

    with pytest.raises(ConflictError):
        manager.vote(alert.id, "up")


def test_create_alert_validation(service: PropertyService, prop_id: str) -> None:
    with pytest.raises(NotFoundError):
        _alert(service, "prop_missing")
    with pytest.raises(ValidationError):
        _alert(service, prop_id, title=" ")
    with pytest.raises(ValidationError):
        _alert(service, prop_id, alert_type="panic")

    long_alert = _alert(service, prop_id, message="x" * 500)
    assert len(long_alert.message) == 200


def test_wire_fraud_report_raises_danger_alert(service: PropertyService) -> None:
    """Critical reports open a danger alert and high reports a warning."""

    outcome = service.report_scam(
        reported_by="u1",
        scam_type="wire_fraud",
        description="Asked me to wire the deposit",
        address="5 Pine Rd, Tampa, FL",
    )
    assert outcome.alert is not None
    assert outcome.alert.alert_type is AlertType.DANGER
    assert outcome.alert.severity is Severity.CRITICAL
    assert outcome.alert.title == "WIRE FRAUD Reported"
    assert outcome.alert.scan_count == 0

    high = service.report_scam(
        reported_by="u2",
        scam_type="rental_scam",
        description="Fake rental",
        property_id=outcome.report.property_id,
    )
    assert high.alert.alert_type is AlertType.WARNING

    medium = service.report_scam(
        reported_by="u3",
        scam_type="photo_theft",
        description="Stolen photos",
        property_id=outcome.report.property_id,
    )
    assert medium.alert is None


def test_report_requires_a_target(service: PropertyService) -> None:
    with pytest.raises(ValidationError):
        service.report_scam(reported_by="u1", scam_type="wire_fraud", description="x", address="nowhere")
    with pytest.raises(ValidationError):
        service.report_scam(reported_by="u1", scam_type="", description="x", property_id="prop_1")


def test_watch_upsert_and_unwatch(service: PropertyService, prop_id: str) -> None:
    """Watching twice keeps one record and its original addedAt."""

    first = service.alerts.watch("client_1", prop_id)
    second = service.alerts.watch("client_1", prop_id, notifications_enabled=False)

    watches = service.alerts.list_watches("client_1")
    assert len(watches) == 1
    assert watches[0].notifications_enabled is False
    assert watches[0].alert_types == DEFAULT_WATCH_ALERT_TYPES
    assert second.added_at == first.added_at
    assert service.alerts.list_watches("someone_else") == []

    service.alerts.unwatch("client_1", prop_id)
    assert service.alerts.list_watches("client_1") == []
    with pytest.raises(NotFoundError):
        service.alerts.unwatch("client_1", prop_id)


def test_watch_requires_existing_property(service: PropertyService) -> None:
    with pytest.raises(NotFoundError):
        service.alerts.watch("client_1", "prop_missing")
