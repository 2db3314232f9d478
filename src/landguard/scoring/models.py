"""Pydantic models shared by the analyzer, the aggregator, and the scan service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire and in the store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        """Return a JSON-compatible dict using camelCase aliases."""

        return self.model_dump(mode="json", by_alias=True)


class RiskLevel(str, Enum):
    """Discrete risk buckets, ordered from least to most severe."""

    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = [RiskLevel.SAFE, RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SubjectType(str, Enum):
    LISTING = "listing"
    SELLER = "seller"
    DOCUMENT = "document"


class DocumentType(str, Enum):
    DEED = "deed"
    TITLE = "title"
    CONTRACT = "contract"
    OTHER = "other"


class RiskFlag(CamelModel):
    """A single detected indicator contributing to a score."""

    category: str
    description: str
    weight: int = Field(ge=0)
    severity: Severity
    evidence: str | None = None


class ScanResult(CamelModel):
    """Outcome of one listing, seller, or document scan."""

    scan_id: str
    subject_type: SubjectType
    score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    flags: List[RiskFlag] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    scanned_at: datetime
    rule_version: str
    url: str | None = None


@dataclass(frozen=True, slots=True)
class StructuredFields:
    """Optional structured signals evaluated alongside the free text."""

    price: float | None = None
    image_count: int | None = None
    phone: str | None = None
    email: str | None = None
    url: str | None = None
    listing_count: int | None = None


__all__ = [
    "CamelModel",
    "DocumentType",
    "RiskFlag",
    "RiskLevel",
    "ScanResult",
    "Severity",
    "StructuredFields",
    "SubjectType",
]
