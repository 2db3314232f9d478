"""Versioned rule table consumed by the content analyzer.

Every pattern category, structured-field threshold, and lookup list the
analyzer evaluates lives here, so a scan of any subject type reads the same
weights. Bump ``RULE_VERSION`` whenever a weight, pattern, or threshold
changes; the version is echoed on every scan result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Pattern, Sequence, Tuple

from landguard.scoring.models import RiskFlag, Severity

RULE_VERSION = "2024.2"

# Category labels as they appear on emitted flags.
URGENCY_LANGUAGE = "Urgency Language"
SUSPICIOUS_CONTACT = "Suspicious Contact"
SUSPICIOUS_CLAIMS = "Suspicious Claims"
RISKY_PAYMENT = "Risky Payment"
REMOTE_SELLER = "Remote Seller"
ADVANCE_PAYMENT = "Advance Payment"
SUSPICIOUS_PRICE = "Suspicious Price"
LOW_PRICE = "Low Price"
LISTING_IMAGES = "Listing Images"
GENERIC_TEMPLATE = "Generic Template"
LOCATION_WITHHOLDING = "Location Withholding"
CONTACT_DETAILS = "Contact Details"
SELLER_ACTIVITY = "Seller Activity"
SUSPICIOUS_URL = "Suspicious URL"
DOCUMENT_LANGUAGE = "Document Language"
DOCUMENT_COMPLETENESS = "Document Completeness"
ADDRESS_VERIFICATION = "Address Verification"


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


@dataclass(frozen=True, slots=True)
class PatternCategory:
    """A named group of regexes with either a per-match or a fixed weight.

    Count mode (``per_match_weight`` set) weighs ``min(matches * per_match_weight, cap)``.
    Fixed mode emits ``fixed_weight`` once when at least ``min_matches``
    patterns hit. Severity escalates from ``severity`` to ``HIGH`` once
    ``high_at`` patterns match.
    """

    key: str
    label: str
    description: str
    patterns: Tuple[Pattern[str], ...]
    per_match_weight: int | None = None
    cap: int | None = None
    fixed_weight: int | None = None
    min_matches: int = 1
    severity: Severity = Severity.MEDIUM
    high_at: int | None = None

    def __post_init__(self) -> None:
        if (self.per_match_weight is None) == (self.fixed_weight is None):
            raise ValueError(f"Category '{self.key}' needs exactly one of per_match_weight or fixed_weight")

    def matches(self, text: str) -> list[str]:
        """Return the first matched snippet of every pattern that hits ``text``."""

        found: list[str] = []
        for pattern in self.patterns:
            match = pattern.search(text)
            if match:
                found.append(match.group(0))
        return found

    def weigh(self, match_count: int) -> int:
        if self.per_match_weight is not None:
            weight = match_count * self.per_match_weight
            return min(weight, self.cap) if self.cap is not None else weight
        return self.fixed_weight or 0

    def evaluate(self, text: str) -> RiskFlag | None:
        """Return a flag for ``text`` or ``None`` when the category does not fire."""

        found = self.matches(text)
        if len(found) < max(self.min_matches, 1):
            return None
        severity = self.severity
        if self.high_at is not None and len(found) >= self.high_at:
            severity = Severity.HIGH
        return RiskFlag(
            category=self.label,
            description=self.description.format(count=len(found)),
            weight=self.weigh(len(found)),
            severity=severity,
            evidence=found[0],
        )


@dataclass(frozen=True, slots=True)
class DeedElement:
    name: str
    pattern: Pattern[str]


@dataclass(frozen=True, slots=True)
class RuleTable:
    """Everything the analyzer needs, grouped by evaluation stage.

    ``content_categories`` run before the structured price and image rules and
    ``template_categories`` run after them; together with the contact, URL,
    and document stages this yields the stable flag order.
    """

    version: str
    content_categories: Tuple[PatternCategory, ...]
    template_categories: Tuple[PatternCategory, ...]
    document_categories: Tuple[PatternCategory, ...]
    deed_elements: Tuple[DeedElement, ...]
    suspicious_price_below: float = 5_000
    low_price_below: float = 15_000
    few_images_below: int = 3
    high_listing_volume_above: int = 10
    disposable_email_domains: FrozenSet[str] = field(default_factory=frozenset)
    disposable_email_markers: Tuple[str, ...] = ()
    voip_area_codes: FrozenSet[str] = field(default_factory=frozenset)
    url_shorteners: Tuple[str, ...] = ()
    marketplace_domains: Tuple[str, ...] = ()

    @property
    def categories(self) -> Sequence[PatternCategory]:
        """All text categories in emission order."""

        return self.content_categories + self.template_categories

    def describe(self) -> dict:
        """Return a JSON-friendly summary used by the rules endpoint."""

        def _summary(category: PatternCategory) -> dict:
            return {
                "key": category.key,
                "label": category.label,
                "patternCount": len(category.patterns),
                "perMatchWeight": category.per_match_weight,
                "cap": category.cap,
                "fixedWeight": category.fixed_weight,
                "minMatches": category.min_matches,
            }

        return {
            "version": self.version,
            "categories": [_summary(category) for category in self.categories],
            "documentCategories": [_summary(category) for category in self.document_categories],
            "thresholds": {
                "suspiciousPriceBelow": self.suspicious_price_below,
                "lowPriceBelow": self.low_price_below,
                "fewImagesBelow": self.few_images_below,
                "highListingVolumeAbove": self.high_listing_volume_above,
            },
        }


URGENCY = PatternCategory(
    key="urgency",
    label=URGENCY_LANGUAGE,
    description="{count} pressure tactics detected",
    patterns=_compile(
        r"urgent",
        r"quick sale",
        r"must sell",
        r"deposit today",
        r"wire transfer",
        r"gift card",
        r"immediate",
        r"act fast",
        r"won'?t last",
        r"first come",
        r"serious buyers only",
        r"cash only",
        r"motivated seller",
        r"below market",
        r"western union",
        r"moneygram",
        r"bitcoin",
        r"crypto",
        r"zelle",
        r"venmo",
    ),
    per_match_weight=8,
    cap=30,
    high_at=3,
)

CONTACT = PatternCategory(
    key="contact",
    label=SUSPICIOUS_CONTACT,
    description="Unusual contact methods detected",
    patterns=_compile(
        r"whatsapp only",
        r"text only",
        r"no (phone )?calls",
        r"telegram",
        r"overseas",
        r"out of (the )?country",
        r"abroad",
        r"traveling",
    ),
    per_match_weight=10,
    cap=30,
    high_at=2,
)

CLAIMS = PatternCategory(
    key="claims",
    label=SUSPICIOUS_CLAIMS,
    description="Unusual seller claims detected",
    patterns=_compile(
        r"owner financing",
        r"rent to own",
        r"no credit check",
        r"bad credit ok",
        r"no bank needed",
        r"private sale",
        r"off market",
        r"exclusive deal",
    ),
    per_match_weight=8,
    cap=24,
)

PAYMENT = PatternCategory(
    key="payment",
    label=RISKY_PAYMENT,
    description="Untraceable payment method requested",
    patterns=_compile(r"wire|western union|moneygram|gift card|bitcoin|crypto|zelle|venmo"),
    fixed_weight=25,
    severity=Severity.HIGH,
)

REMOTE = PatternCategory(
    key="remote_seller",
    label=REMOTE_SELLER,
    description="Seller claims to be overseas or unable to meet",
    patterns=_compile(r"overseas|abroad|out of country|international|traveling|can'?t meet"),
    fixed_weight=18,
    severity=Severity.HIGH,
)

ADVANCE = PatternCategory(
    key="advance_payment",
    label=ADVANCE_PAYMENT,
    description="Deposit requested before viewing",
    patterns=_compile(r"deposit|advance|upfront|before viewing|to hold|secure it"),
    fixed_weight=22,
    severity=Severity.HIGH,
)

GENERIC = PatternCategory(
    key="generic_template",
    label=GENERIC_TEMPLATE,
    description="Listing reads like a reused template ({count} stock phrases)",
    patterns=_compile(
        r"beautiful property",
        r"amazing opportunity",
        r"once in a lifetime",
        r"dream home",
        r"won'?t be disappointed",
        r"you won'?t regret",
        r"perfect location",
        r"prime location",
        r"investment opportunity",
        r"rental income",
        r"passive income",
        r"guaranteed return",
    ),
    fixed_weight=12,
    min_matches=3,
)

LOCATION = PatternCategory(
    key="location_withholding",
    label=LOCATION_WITHHOLDING,
    description="Exact address withheld until payment",
    patterns=_compile(
        r"exact location available",
        r"address upon deposit",
        r"viewing after payment",
        r"keys upon transfer",
        r"location disclosed",
    ),
    fixed_weight=20,
    severity=Severity.HIGH,
)

QUITCLAIM = PatternCategory(
    key="quitclaim_deed",
    label=DOCUMENT_LANGUAGE,
    description="Quitclaim deed transfers no title guarantee",
    patterns=_compile(r"quit\s?claim deed"),
    fixed_weight=12,
)

FORGERY = PatternCategory(
    key="forged_document",
    label=DOCUMENT_LANGUAGE,
    description="Document mentions forgery or fake content",
    patterns=_compile(r"forged|fake"),
    fixed_weight=25,
    severity=Severity.CRITICAL,
)

EXPIRED = PatternCategory(
    key="expired_document",
    label=DOCUMENT_LANGUAGE,
    description="Document appears to be expired",
    patterns=_compile(r"expired"),
    fixed_weight=15,
    severity=Severity.HIGH,
)

DEFAULT_RULE_TABLE = RuleTable(
    version=RULE_VERSION,
    content_categories=(URGENCY, CONTACT, CLAIMS, PAYMENT, REMOTE, ADVANCE),
    template_categories=(GENERIC, LOCATION),
    document_categories=(QUITCLAIM, FORGERY, EXPIRED),
    deed_elements=(
        DeedElement("Grantor identification", re.compile(r"grantor", re.IGNORECASE)),
        DeedElement("Grantee identification", re.compile(r"grantee", re.IGNORECASE)),
        DeedElement("Legal description", re.compile(r"legal description", re.IGNORECASE)),
        DeedElement("Consideration", re.compile(r"consideration", re.IGNORECASE)),
    ),
    disposable_email_domains=frozenset(
        {
            "tempmail.com",
            "throwaway.email",
            "guerrillamail.com",
            "mailinator.com",
            "10minutemail.com",
            "yopmail.com",
            "trashmail.com",
            "getnada.com",
            "dispostable.com",
            "mailnesia.com",
            "tempmailo.com",
            "emailondeck.com",
        }
    ),
    disposable_email_markers=("tempmail", "throwaway", "mailinator", "guerrillamail", "10minutemail", "yopmail"),
    voip_area_codes=frozenset({"456", "500", "533", "544", "566", "577", "588"}),
    url_shorteners=("bit.ly", "tinyurl", "goo.gl", "t.co", "shorturl"),
    marketplace_domains=("facebook", "craigslist", "kijiji", "realtor", "zillow", "trulia", "redfin"),
)


__all__ = [
    "ADDRESS_VERIFICATION",
    "ADVANCE_PAYMENT",
    "CONTACT_DETAILS",
    "DEFAULT_RULE_TABLE",
    "DOCUMENT_COMPLETENESS",
    "DOCUMENT_LANGUAGE",
    "DeedElement",
    "GENERIC_TEMPLATE",
    "LISTING_IMAGES",
    "LOCATION_WITHHOLDING",
    "LOW_PRICE",
    "PatternCategory",
    "REMOTE_SELLER",
    "RISKY_PAYMENT",
    "RULE_VERSION",
    "RuleTable",
    "SELLER_ACTIVITY",
    "SUSPICIOUS_CLAIMS",
    "SUSPICIOUS_CONTACT",
    "SUSPICIOUS_PRICE",
    "SUSPICIOUS_URL",
    "URGENCY_LANGUAGE",
]
