"""Stateless listing, seller, document, and bulk scans."""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Sequence
from urllib.parse import urlsplit

from landguard.errors import LandGuardError, ValidationError
from landguard.observability import get_observability
from landguard.scoring import aggregator
from landguard.scoring.analyzer import analyze, analyze_document, analyze_url
from landguard.scoring.models import DocumentType, RiskFlag, RiskLevel, ScanResult, StructuredFields, SubjectType
from landguard.scoring.rules import DEFAULT_RULE_TABLE, RuleTable
from landguard.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


def _new_scan_id() -> str:
    return f"scan_{uuid.uuid4().hex[:12]}"


def _join_text(*parts: Any) -> str:
    return " ".join(str(part) for part in parts if part)


def validate_url(url: str | None, *, field_name: str = "url") -> str:
    """Return a stripped http(s) URL or raise a :class:`ValidationError`."""

    if url is None or not str(url).strip():
        raise ValidationError(f"{field_name} is required")
    candidate = str(url).strip()
    try:
        parts = urlsplit(candidate)
    except ValueError as exc:
        raise ValidationError(f"{field_name} is not a valid URL", code="INVALID_URL") from exc
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ValidationError(f"{field_name} is not a valid URL", code="INVALID_URL")
    return candidate


class ScanService:
    """Run the analyzer and aggregator for each subject type and shape the result."""

    def __init__(self, *, rule_table: RuleTable = DEFAULT_RULE_TABLE, settings: Settings | None = None) -> None:
        self.rule_table = rule_table
        self.settings = settings or get_settings()
        self.observability = get_observability(component="scanning", settings=self.settings)

    def _result(
        self,
        subject_type: SubjectType,
        flags: Sequence[RiskFlag],
        *,
        url: str | None = None,
        document_type: str | None = None,
        started: float | None = None,
    ) -> ScanResult:
        total = aggregator.score(flags)
        level = aggregator.classify(total)
        result = ScanResult(
            scan_id=_new_scan_id(),
            subject_type=subject_type,
            score=total,
            risk_level=level,
            flags=list(flags),
            recommendations=aggregator.recommend(level, flags, subject_type=subject_type, document_type=document_type),
            scanned_at=datetime.now(timezone.utc),
            rule_version=self.rule_table.version,
            url=url,
        )
        tags = {"subject": subject_type.value, "risk_level": level.value}
        self.observability.increment("scans.completed", tags=tags)
        if started is not None:
            self.observability.record_timing("scans.duration_ms", (time.perf_counter() - started) * 1000, tags=tags)
        return result

    def scan_text(self, text: str | None, structured: StructuredFields | None = None) -> ScanResult:
        """Score raw text without the URL requirement of :meth:`scan_listing`."""

        started = time.perf_counter()
        flags = analyze(text, structured, rule_table=self.rule_table)
        return self._result(SubjectType.LISTING, flags, url=structured.url if structured else None, started=started)

    def scan_listing(
        self,
        *,
        url: str | None,
        title: str | None = None,
        description: str | None = None,
        text: str | None = None,
        location: str | None = None,
        price: float | None = None,
        image_count: int | None = None,
        seller_name: str | None = None,
        seller_phone: str | None = None,
        seller_email: str | None = None,
    ) -> ScanResult:
        """Scan one listing.

        Raises:
            ValidationError: ``MISSING_FIELD`` without a URL, ``INVALID_URL``
                when the URL is not http(s).
        """

        started = time.perf_counter()
        listing_url = validate_url(url)
        structured = StructuredFields(
            price=price,
            image_count=image_count,
            phone=seller_phone,
            email=seller_email,
            url=listing_url,
        )
        body = _join_text(title, description, text, location, seller_name)
        flags = analyze(body, structured, rule_table=self.rule_table)
        return self._result(SubjectType.LISTING, flags, url=listing_url, started=started)

    def scan_seller(
        self,
        *,
        name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        profile_url: str | None = None,
        listing_history: Sequence[str] | None = None,
    ) -> ScanResult:
        """Scan a seller profile from its contact details and listing history."""

        if not any(value and str(value).strip() for value in (name, email, phone, profile_url)):
            raise ValidationError("At least one of name, email, phone, or profileUrl is required")

        started = time.perf_counter()
        history = list(listing_history or [])
        structured = StructuredFields(
            phone=phone,
            email=email,
            listing_count=len(history) if listing_history is not None else None,
        )
        flags = analyze(_join_text(name, *history), structured, rule_table=self.rule_table)
        profile = (profile_url or "").strip() or None
        if profile:
            flags.extend(analyze_url(profile, rule_table=self.rule_table))
        return self._result(SubjectType.SELLER, flags, url=profile, started=started)

    def scan_document(
        self,
        *,
        document_type: DocumentType | str,
        document_text: str | None = None,
        document_url: str | None = None,
        property_address: str | None = None,
    ) -> ScanResult:
        """Scan a deed, title, or contract for warning language and missing elements."""

        try:
            doc_type = DocumentType(document_type)
        except ValueError as exc:
            raise ValidationError(
                "documentType must be one of: deed, title, contract, other", code="INVALID_DOCUMENT_TYPE"
            ) from exc
        if not (document_text or "").strip() and not (document_url or "").strip():
            raise ValidationError("documentText or documentUrl is required")
        url = validate_url(document_url, field_name="documentUrl") if document_url else None

        started = time.perf_counter()
        flags = analyze_document(
            document_text,
            doc_type,
            property_address=property_address,
            rule_table=self.rule_table,
        )
        return self._result(SubjectType.DOCUMENT, flags, url=url, document_type=doc_type.value, started=started)

    def bulk_scan(self, listings: Sequence[Mapping[str, Any]] | None) -> Dict[str, Any]:
        """Scan up to ``scoring.max_bulk_listings`` listings and summarise their levels."""

        if listings is None:
            raise ValidationError("listings array is required")
        if len(listings) == 0:
            raise ValidationError("listings array cannot be empty", code="EMPTY_ARRAY")
        limit = self.settings.scoring.max_bulk_listings
        if len(listings) > limit:
            raise ValidationError(f"Maximum {limit} listings per request", code="TOO_MANY_ITEMS")
        for index, listing in enumerate(listings):
            if not (listing.get("url") or "").strip():
                raise ValidationError(f"listings[{index}].url is required")

        results: List[ScanResult] = []
        errors: List[Dict[str, Any]] = []
        for index, listing in enumerate(listings):
            try:
                results.append(self.scan_listing(**dict(listing)))
            except LandGuardError as exc:
                errors.append({"index": index, "code": exc.code, "message": exc.message})

        summary = {level.value: 0 for level in RiskLevel}
        for result in results:
            summary[result.risk_level.value] += 1
        top_n = self.settings.scoring.top_flags
        LOGGER.info("Bulk scan processed=%d errors=%d", len(results), len(errors))
        return {
            "batchId": f"batch_{uuid.uuid4().hex[:12]}",
            "totalRequested": len(listings),
            "totalProcessed": len(results),
            "totalErrors": len(errors),
            "results": [
                {**result.to_payload(), "topFlags": [flag.to_payload() for flag in result.flags[:top_n]]}
                for result in results
            ],
            "errors": errors,
            "summary": summary,
        }


__all__ = ["ScanService", "validate_url"]
