"""Unit tests for the stateless scan service."""

from __future__ import annotations

import pytest

from landguard.errors import ValidationError
from landguard.scoring import rules
from landguard.scoring.models import RiskLevel, SubjectType
from landguard.services.scanning import ScanService, validate_url
from landguard.settings import get_settings


@pytest.fixture()
def service() -> ScanService:
    return ScanService()


def test_validate_url() -> None:
    assert validate_url(" https://zillow.com/h/1 ") == "https://zillow.com/h/1"

    with pytest.raises(ValidationError) as missing:
        validate_url(None)
    assert missing.value.code == "MISSING_FIELD"

    for bad in ("not a url", "ftp://example.com/x", "https://"):
        with pytest.raises(ValidationError) as invalid:
            validate_url(bad)
        assert invalid.value.code == "INVALID_URL"


def test_scan_listing_combines_text_and_structured_fields(service: ScanService) -> None:
    result = service.scan_listing(
        url="https://craigslist.org/apa/1",
        title="URGENT sale",
        description="Wire transfer only, seller overseas, cash only",
        price=3500,
        image_count=1,
    )

    categories = [flag.category for flag in result.flags]
    assert rules.SUSPICIOUS_PRICE in categories
    assert rules.LISTING_IMAGES in categories
    assert result.score == 100
    assert result.risk_level is RiskLevel.CRITICAL
    assert result.subject_type is SubjectType.LISTING
    assert result.url == "https://craigslist.org/apa/1"
    assert result.rule_version == rules.RULE_VERSION
    assert result.scan_id.startswith("scan_")
    assert "Do NOT send any money or deposit" in result.recommendations


def test_scan_listing_requires_url(service: ScanService) -> None:
    with pytest.raises(ValidationError) as excinfo:
        service.scan_listing(url=None, description="Wire transfer only")
    assert excinfo.value.code == "MISSING_FIELD"


def test_clean_listing_is_safe(service: ScanService) -> None:
    result = service.scan_listing(
        url="https://www.zillow.com/homedetails/1",
        title="3 bed ranch",
        description="Open house Saturday. Contact the listing agent.",
        price=320000,
        image_count=24,
    )
    assert result.flags == []
    assert result.score == 0
    assert result.risk_level is RiskLevel.SAFE


def test_scan_seller(service: ScanService) -> None:
    """Seller scans need one identifying field and weigh listing volume."""

    with pytest.raises(ValidationError):
        service.scan_seller()

    result = service.scan_seller(
        name="Pat",
        email="pat@mailinator.com",
        listing_history=[f"listing {index}" for index in range(12)],
    )
    descriptions = [flag.description for flag in result.flags]
    assert "Disposable email domain" in descriptions
    assert "High volume of listings" in descriptions
    assert result.subject_type is SubjectType.SELLER
    assert result.score == 28


def test_scan_document(service: ScanService) -> None:
    with pytest.raises(ValidationError) as bad_type:
        service.scan_document(document_type="lease", document_text="text")
    assert bad_type.value.code == "INVALID_DOCUMENT_TYPE"

    with pytest.raises(ValidationError) as missing:
        service.scan_document(document_type="deed")
    assert missing.value.code == "MISSING_FIELD"

    result = service.scan_document(
        document_type="deed",
        document_text="Grantor and grantee. Legal description attached. Consideration paid. Forged seal.",
    )
    assert result.subject_type is SubjectType.DOCUMENT
    assert result.score == 25
    assert result.risk_level is RiskLevel.LOW
    assert result.recommendations[-2:] == ["Obtain title insurance", "Verify the chain of title"]


def test_bulk_scan_limits(service: ScanService) -> None:
    with pytest.raises(ValidationError) as missing:
        service.bulk_scan(None)
    assert missing.value.code == "MISSING_FIELD"

    with pytest.raises(ValidationError) as empty:
        service.bulk_scan([])
    assert empty.value.code == "EMPTY_ARRAY"

    limit = get_settings().scoring.max_bulk_listings
    too_many = [{"url": f"https://zillow.com/h/{index}"} for index in range(limit + 1)]
    with pytest.raises(ValidationError) as excinfo:
        service.bulk_scan(too_many)
    assert excinfo.value.code == "TOO_MANY_ITEMS"

    with pytest.raises(ValidationError) as no_url:
        service.bulk_scan([{"url": "https://zillow.com/h/1"}, {"title": "no url"}])
    assert no_url.value.message == "listings[1].url is required"


def test_bulk_scan_summarises_levels(service: ScanService) -> None:
    """Invalid URLs are reported per item while valid listings are still scanned."""

    batch = service.bulk_scan(
        [
            {"url": "https://zillow.com/h/1", "description": "Nice home", "image_count": 12},
            {"url": "https://craigslist.org/h/2", "description": "Wire transfer only, overseas", "price": 2000},
            {"url": "not-a-url"},
        ]
    )

    assert batch["batchId"].startswith("batch_")
    assert batch["totalRequested"] == 3
    assert batch["totalProcessed"] == 2
    assert batch["totalErrors"] == 1
    assert batch["errors"] == [{"index": 2, "code": "INVALID_URL", "message": "url is not a valid URL"}]
    assert batch["summary"]["safe"] == 1
    assert sum(batch["summary"].values()) == 2
    assert all(len(item["topFlags"]) <= get_settings().scoring.top_flags for item in batch["results"])
