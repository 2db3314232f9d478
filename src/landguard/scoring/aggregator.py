"""Score aggregation, risk classification, and recommendation helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from landguard.scoring import rules
from landguard.scoring.models import RiskFlag, RiskLevel, SubjectType

MAX_SCORE = 100


@dataclass(frozen=True, slots=True)
class RiskBuckets:
    """Ordered ``(minimum score, level)`` cut points, highest first."""

    name: str
    cuts: Tuple[Tuple[int, RiskLevel], ...]
    floor: RiskLevel

    def classify(self, value: float) -> RiskLevel:
        clamped = clamp_score(value)
        for minimum, level in self.cuts:
            if clamped >= minimum:
                return level
        return self.floor


CANONICAL_BUCKETS = RiskBuckets(
    name="canonical",
    cuts=(
        (70, RiskLevel.CRITICAL),
        (50, RiskLevel.HIGH),
        (30, RiskLevel.MEDIUM),
        (10, RiskLevel.LOW),
    ),
    floor=RiskLevel.SAFE,
)

# Historical cut points kept only to document how earlier clients bucketed scores.
EXTENSION_BUCKETS = RiskBuckets(
    name="extension-three-level",
    cuts=((60, RiskLevel.HIGH), (30, RiskLevel.MEDIUM)),
    floor=RiskLevel.LOW,
)
LEGACY_PROPERTY_BUCKETS = RiskBuckets(
    name="legacy-property",
    cuts=(
        (80, RiskLevel.CRITICAL),
        (60, RiskLevel.HIGH),
        (40, RiskLevel.MEDIUM),
        (20, RiskLevel.LOW),
    ),
    floor=RiskLevel.SAFE,
)


def clamp_score(value: float) -> int:
    return int(round(max(0, min(MAX_SCORE, value))))


def score(flags: Iterable[RiskFlag]) -> int:
    """Sum non-negative flag weights, capped at 100."""

    return min(MAX_SCORE, sum(max(0, flag.weight) for flag in flags))


def classify(value: float) -> RiskLevel:
    """Map any numeric score onto the canonical five buckets."""

    return CANONICAL_BUCKETS.classify(value)


_LEVEL_ADVICE = {
    RiskLevel.CRITICAL: [
        "Do NOT send any money or deposit",
        "Do NOT share personal or financial information",
        "Verify property ownership through county or land registry records",
        "Contact local authorities if you suspect fraud",
    ],
    RiskLevel.MEDIUM: [
        "Proceed with extreme caution",
        "Verify seller identity independently",
        "Consider using a licensed real estate agent",
        "Check county property records",
    ],
    RiskLevel.LOW: [
        "Listing appears mostly legitimate",
        "Still verify ownership before proceeding",
        "Use a licensed agent for the transaction",
    ],
    RiskLevel.SAFE: [
        "No significant red flags detected",
        "Standard due diligence recommended",
        "Use escrow for any payments",
    ],
}
_LEVEL_ADVICE[RiskLevel.HIGH] = _LEVEL_ADVICE[RiskLevel.CRITICAL]

_DOCUMENT_ADVICE = {
    RiskLevel.CRITICAL: [
        "Do NOT proceed with this document",
        "Have a real estate attorney review it immediately",
        "Verify document authenticity with the issuing authority",
    ],
    RiskLevel.MEDIUM: [
        "Document requires professional review",
        "Consult with a real estate attorney",
        "Verify with the county recorder's office",
    ],
    RiskLevel.SAFE: [
        "Document appears valid",
        "Have an attorney review it before signing",
        "Ensure proper notarization",
    ],
}
_DOCUMENT_ADVICE[RiskLevel.HIGH] = _DOCUMENT_ADVICE[RiskLevel.CRITICAL]
_DOCUMENT_ADVICE[RiskLevel.LOW] = _DOCUMENT_ADVICE[RiskLevel.SAFE]

_CATEGORY_ADVICE: Sequence[Tuple[str, str]] = (
    (rules.RISKY_PAYMENT, "Only use traceable payment methods (escrow, bank transfer)"),
    (rules.REMOTE_SELLER, "Insist on meeting the seller in person"),
    (rules.ADVANCE_PAYMENT, "Never pay a deposit before viewing the property in person"),
    (rules.LISTING_IMAGES, "Request more photos or a live video walkthrough"),
    (rules.SUSPICIOUS_CONTACT, "Request a video call to verify the seller's identity"),
    (rules.LOCATION_WITHHOLDING, "Do not pay anything until you have the full property address"),
    (rules.SUSPICIOUS_URL, "Open the listing directly on the marketplace instead of through the link"),
)

_DEED_ADVICE = ["Obtain title insurance", "Verify the chain of title"]


def recommend(
    risk_level: RiskLevel,
    flags: Iterable[RiskFlag],
    *,
    subject_type: SubjectType = SubjectType.LISTING,
    document_type: str | None = None,
) -> List[str]:
    """Return de-duplicated advice for the level and the flag categories present."""

    present = {flag.category for flag in flags}
    if subject_type is SubjectType.DOCUMENT:
        advice = list(_DOCUMENT_ADVICE[risk_level])
        if document_type == "deed":
            advice.extend(_DEED_ADVICE)
    else:
        advice = list(_LEVEL_ADVICE[risk_level])

    for category, recommendation in _CATEGORY_ADVICE:
        if category in present:
            advice.append(recommendation)
    return list(dict.fromkeys(advice))


__all__ = [
    "CANONICAL_BUCKETS",
    "EXTENSION_BUCKETS",
    "LEGACY_PROPERTY_BUCKETS",
    "MAX_SCORE",
    "RiskBuckets",
    "clamp_score",
    "classify",
    "recommend",
    "score",
]
