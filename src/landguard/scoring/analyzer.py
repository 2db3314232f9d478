"""Heuristic content analyzer turning listing text and metadata into risk flags."""

from __future__ import annotations

import re
from typing import Iterable, List
from urllib.parse import urlsplit

from landguard.scoring import rules
from landguard.scoring.models import DocumentType, RiskFlag, Severity, StructuredFields
from landguard.scoring.rules import DEFAULT_RULE_TABLE, RuleTable

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[a-z]{2,}$", re.IGNORECASE)
_PHONE_RE = re.compile(r"^\+?[\d\s().-]+$")


def analyze(
    text: str | None,
    structured: StructuredFields | None = None,
    *,
    rule_table: RuleTable = DEFAULT_RULE_TABLE,
) -> List[RiskFlag]:
    """Return the ordered risk flags for ``text`` and the optional structured fields.

    Args:
        text: Free text to scan. ``None`` or blank text yields no text flags.
        structured: Price, image count, contact details, and URL signals.
        rule_table: Rule table to evaluate; defaults to the shared table.

    Returns:
        Flags in stable category order so truncated views are deterministic.
    """

    lowered = (text or "").lower()
    fields = structured or StructuredFields()
    flags: List[RiskFlag] = []

    if lowered.strip():
        flags.extend(_evaluate_categories(lowered, rule_table.content_categories))
    flags.extend(_price_flags(fields.price, rule_table))
    flags.extend(_image_flags(fields.image_count, rule_table))
    if lowered.strip():
        flags.extend(_evaluate_categories(lowered, rule_table.template_categories))
    flags.extend(_contact_flags(fields, rule_table))
    if fields.url:
        flags.extend(analyze_url(fields.url, rule_table=rule_table))
    return flags


def analyze_document(
    text: str | None,
    document_type: DocumentType | str,
    *,
    property_address: str | None = None,
    rule_table: RuleTable = DEFAULT_RULE_TABLE,
) -> List[RiskFlag]:
    """Return document-language, deed completeness, and address flags."""

    lowered = (text or "").lower()
    doc_type = DocumentType(document_type)
    flags = list(_evaluate_categories(lowered, rule_table.document_categories)) if lowered.strip() else []

    if doc_type is DocumentType.DEED:
        for element in rule_table.deed_elements:
            if not element.pattern.search(lowered):
                flags.append(
                    RiskFlag(
                        category=rules.DOCUMENT_COMPLETENESS,
                        description=f"Missing: {element.name}",
                        weight=10,
                        severity=Severity.MEDIUM,
                    )
                )

    address = (property_address or "").strip().lower()
    if address and address not in lowered:
        flags.append(
            RiskFlag(
                category=rules.ADDRESS_VERIFICATION,
                description="Document address does not match provided address",
                weight=20,
                severity=Severity.HIGH,
                evidence=property_address,
            )
        )
    return flags


def analyze_url(url: str, *, rule_table: RuleTable = DEFAULT_RULE_TABLE) -> List[RiskFlag]:
    """Flag shortened links and look-alike marketplace domains."""

    host = _hostname(url)
    if not host:
        return []

    flags: List[RiskFlag] = []
    for shortener in rule_table.url_shorteners:
        if _host_matches(host, shortener):
            flags.append(
                RiskFlag(
                    category=rules.SUSPICIOUS_URL,
                    description="Shortened URL hides the real destination",
                    weight=10,
                    severity=Severity.MEDIUM,
                    evidence=shortener,
                )
            )
            break

    for domain in rule_table.marketplace_domains:
        if domain in host:
            continue
        typo = next((candidate for candidate in _typo_variants(domain) if candidate in host), None)
        if typo:
            flags.append(
                RiskFlag(
                    category=rules.SUSPICIOUS_URL,
                    description=f"Possible look-alike of {domain}",
                    weight=18,
                    severity=Severity.HIGH,
                    evidence=typo,
                )
            )
            break
    return flags


def _evaluate_categories(text: str, categories: Iterable[rules.PatternCategory]) -> Iterable[RiskFlag]:
    for category in categories:
        flag = category.evaluate(text)
        if flag is not None:
            yield flag


def _price_flags(price: float | None, rule_table: RuleTable) -> List[RiskFlag]:
    # Zero or negative prices mean "not stated" on most platforms.
    if price is None or price <= 0:
        return []
    if price < rule_table.suspicious_price_below:
        return [
            RiskFlag(
                category=rules.SUSPICIOUS_PRICE,
                description="Price is unrealistically low",
                weight=25,
                severity=Severity.HIGH,
                evidence=f"{price:g}",
            )
        ]
    if price < rule_table.low_price_below:
        return [
            RiskFlag(
                category=rules.LOW_PRICE,
                description="Price is significantly below market",
                weight=12,
                severity=Severity.MEDIUM,
                evidence=f"{price:g}",
            )
        ]
    return []


def _image_flags(image_count: int | None, rule_table: RuleTable) -> List[RiskFlag]:
    if image_count is None:
        return []
    if image_count <= 0:
        return [
            RiskFlag(
                category=rules.LISTING_IMAGES,
                description="No images",
                weight=20,
                severity=Severity.HIGH,
            )
        ]
    if image_count < rule_table.few_images_below:
        return [
            RiskFlag(
                category=rules.LISTING_IMAGES,
                description="Few images",
                weight=15,
                severity=Severity.MEDIUM,
                evidence=str(image_count),
            )
        ]
    return []


def _contact_flags(fields: StructuredFields, rule_table: RuleTable) -> List[RiskFlag]:
    flags: List[RiskFlag] = []

    phone = (fields.phone or "").strip()
    if phone:
        digits = re.sub(r"\D", "", phone)
        if not _PHONE_RE.match(phone) or not 10 <= len(digits) <= 15:
            flags.append(_contact_flag("Malformed phone number", 10, Severity.MEDIUM, phone))
        elif digits[-10:-7] in rule_table.voip_area_codes:
            flags.append(_contact_flag("Possible VOIP or virtual phone number", 10, Severity.MEDIUM, phone))

    email = (fields.email or "").strip().lower()
    if email:
        if not _EMAIL_RE.match(email):
            flags.append(_contact_flag("Malformed email address", 10, Severity.MEDIUM, email))
        domain = email.rpartition("@")[2] if "@" in email else ""
        if domain and (
            domain in rule_table.disposable_email_domains
            or any(marker in domain for marker in rule_table.disposable_email_markers)
        ):
            flags.append(_contact_flag("Disposable email domain", 20, Severity.HIGH, domain))

    if fields.listing_count is not None and fields.listing_count > rule_table.high_listing_volume_above:
        flags.append(
            RiskFlag(
                category=rules.SELLER_ACTIVITY,
                description="High volume of listings",
                weight=8,
                severity=Severity.MEDIUM,
                evidence=str(fields.listing_count),
            )
        )
    return flags


def _contact_flag(description: str, weight: int, severity: Severity, evidence: str) -> RiskFlag:
    return RiskFlag(
        category=rules.CONTACT_DETAILS,
        description=description,
        weight=weight,
        severity=severity,
        evidence=evidence,
    )


def _hostname(url: str) -> str:
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"http://{candidate}"
    try:
        return (urlsplit(candidate).hostname or "").lower()
    except ValueError:
        return ""


def _host_matches(host: str, shortener: str) -> bool:
    if "." in shortener:
        return host == shortener or host.endswith(f".{shortener}")
    return shortener in host


def _typo_variants(domain: str) -> List[str]:
    variants = [
        domain.replace("a", "4", 1),
        domain.replace("o", "0", 1),
        domain.replace("i", "1", 1),
        f"{domain}s",
        domain[:-1],
    ]
    return [variant for variant in variants if variant != domain]


__all__ = ["analyze", "analyze_document", "analyze_url"]
