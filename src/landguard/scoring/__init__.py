"""Rule-based scam risk scoring for listings, sellers, and documents."""

from landguard.scoring.aggregator import classify, recommend, score
from landguard.scoring.analyzer import analyze, analyze_document, analyze_url
from landguard.scoring.models import RiskFlag, RiskLevel, ScanResult, Severity, StructuredFields, SubjectType
from landguard.scoring.rules import DEFAULT_RULE_TABLE, RULE_VERSION, RuleTable

__all__ = [
    "DEFAULT_RULE_TABLE",
    "RULE_VERSION",
    "RiskFlag",
    "RiskLevel",
    "RuleTable",
    "ScanResult",
    "Severity",
    "StructuredFields",
    "SubjectType",
    "analyze",
    "analyze_document",
    "analyze_url",
    "classify",
    "recommend",
    "score",
]
