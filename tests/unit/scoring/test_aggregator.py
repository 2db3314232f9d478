"""Unit tests for score aggregation, classification, and recommendations."""

from __future__ import annotations

import pytest

from landguard.scoring import rules
from landguard.scoring.aggregator import (
    CANONICAL_BUCKETS,
    EXTENSION_BUCKETS,
    LEGACY_PROPERTY_BUCKETS,
    classify,
    recommend,
    score,
)
from landguard.scoring.analyzer import analyze
from landguard.scoring.models import RiskFlag, RiskLevel, Severity, SubjectType


def _flag(weight: int, category: str = "Test") -> RiskFlag:
    return RiskFlag(category=category, description="test", weight=weight, severity=Severity.LOW)


def test_score_is_bounded() -> None:
    """Scores stay within [0, 100] for any flag sequence."""

    assert score([]) == 0
    assert score([_flag(40), _flag(35)]) == 75
    assert score([_flag(60), _flag(60), _flag(60)]) == 100


def test_negative_weights_are_rejected_at_construction() -> None:
    with pytest.raises(ValueError):
        _flag(-5)


@pytest.mark.parametrize(
    ("value", "level"),
    [
        (0, RiskLevel.SAFE),
        (9, RiskLevel.SAFE),
        (10, RiskLevel.LOW),
        (29, RiskLevel.LOW),
        (30, RiskLevel.MEDIUM),
        (50, RiskLevel.HIGH),
        (69, RiskLevel.HIGH),
        (70, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
        (-20, RiskLevel.SAFE),
        (250, RiskLevel.CRITICAL),
    ],
)
def test_classify_boundaries(value: int, level: RiskLevel) -> None:
    assert classify(value) is level


def test_classify_is_monotonic() -> None:
    """A higher score never lands in a lower bucket."""

    ranks = [classify(value).rank for value in range(-5, 106)]
    assert ranks == sorted(ranks)


def test_legacy_bucket_schemes_disagree_with_canonical() -> None:
    """Document where the historical cut points diverge from the canonical scheme."""

    assert CANONICAL_BUCKETS.classify(55) is RiskLevel.HIGH
    assert EXTENSION_BUCKETS.classify(55) is RiskLevel.MEDIUM
    assert LEGACY_PROPERTY_BUCKETS.classify(55) is RiskLevel.MEDIUM

    assert CANONICAL_BUCKETS.classify(75) is RiskLevel.CRITICAL
    assert LEGACY_PROPERTY_BUCKETS.classify(75) is RiskLevel.HIGH
    assert EXTENSION_BUCKETS.classify(75) is RiskLevel.HIGH

    assert CANONICAL_BUCKETS.classify(5) is RiskLevel.SAFE
    assert EXTENSION_BUCKETS.classify(5) is RiskLevel.LOW


def test_end_to_end_example_is_critical() -> None:
    """The classic overseas wire-transfer pitch scores critical without saturating."""

    flags = analyze("URGENT! Wire transfer only, seller overseas, cash only")
    categories = [flag.category for flag in flags]
    assert rules.URGENCY_LANGUAGE in categories
    assert rules.RISKY_PAYMENT in categories
    assert rules.REMOTE_SELLER in categories

    total = score(flags)
    assert total == 77
    assert classify(total) is RiskLevel.CRITICAL


def test_recommendations_follow_categories_and_dedupe() -> None:
    """Category advice is appended regardless of level and never repeated."""

    payment = _flag(25, rules.RISKY_PAYMENT)
    recs = recommend(RiskLevel.SAFE, [payment, payment, _flag(18, rules.REMOTE_SELLER)])
    assert recs[0] == "No significant red flags detected"
    assert "Only use traceable payment methods (escrow, bank transfer)" in recs
    assert "Insist on meeting the seller in person" in recs
    assert len(recs) == len(set(recs))


def test_document_recommendations_add_deed_advice() -> None:
    recs = recommend(RiskLevel.HIGH, [], subject_type=SubjectType.DOCUMENT, document_type="deed")
    assert recs[0] == "Do NOT proceed with this document"
    assert recs[-2:] == ["Obtain title insurance", "Verify the chain of title"]
