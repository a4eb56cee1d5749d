"""Content analysis configuration and pattern library.

The pattern library is versioned data, not code: the defaults below can
be replaced wholesale by a JSON file (PATTERN_LIBRARY_PATH) so term
lists and weights are tuned without redeploying the engine. Every
analysis report and audit entry records the library version it ran with.
"""
import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


DEFAULT_PATTERN_VERSION = "2026.02.01"


# ==========================================================================
# HARASSMENT
# ==========================================================================
DIRECT_HARASSMENT_TERMS: Tuple[str, ...] = (
    "stupid", "ugly", "worthless", "failure", "hate", "disgusting",
    "pathetic", "loser", "idiot", "moron", "dumb", "retard",
)

# Condescending / prescriptive framing
INDIRECT_HARASSMENT_TERMS: Tuple[str, ...] = (
    "you should", "you need to", "you must", "you have to",
    "everyone knows", "obviously", "clearly", "it's obvious",
)

THREATENING_TERMS: Tuple[str, ...] = (
    "kill", "hurt", "destroy", "ruin", "end", "finish",
    "you'll pay", "you'll regret", "watch out", "be careful",
)

# ==========================================================================
# PRIVACY EXPOSURE
# ==========================================================================
PRIVACY_PATTERNS: Dict[str, str] = {
    "phone": r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b",
    "email": r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b",
    "ip": r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b",
    "url": r"\bhttps?://[^\s]+",
    "address": (
        r"\b\d+\s+[A-Za-z\s]+"
        r"(?:Street|St|Avenue|Ave|Road|Rd|Drive|Dr|Lane|Ln|Boulevard|Blvd)\b"
    ),
    "ssn": r"\b\d{3}-\d{2}-\d{4}\b",
    "creditCard": r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b",
}

PRIVACY_BASE_SCORES: Dict[str, float] = {
    "ssn": 0.8,
    "creditCard": 0.8,
    "address": 0.4,
    "phone": 0.3,
    "email": 0.3,
    "ip": 0.2,
    "url": 0.1,
}

PRIVACY_TYPE_SEVERITY: Dict[str, str] = {
    "ssn": "critical",
    "creditCard": "critical",
    "phone": "high",
    "email": "high",
    "address": "high",
    "ip": "medium",
    "url": "low",
}

# "my phone is ...", "I live in ..." - matched case-insensitively
SELF_DISCLOSURE_PATTERNS: Tuple[str, ...] = (
    r"\bmy\s+(?:name|email|phone|address|location)\s+is\b",
    r"\bI\s+live\s+in\b",
    r"\bI\s+work\s+at\b",
    r"\bmy\s+company\s+is\b",
)

# ==========================================================================
# PROFESSIONAL IMAGE
# ==========================================================================
UNPROFESSIONAL_TERMS: Tuple[str, ...] = (
    "damn", "hell", "crap", "sucks", "bullshit", "fuck", "shit",
    "bitch", "asshole", "dick", "piss", "pissed",
)

CONTROVERSIAL_TOPICS: Tuple[str, ...] = (
    "politics", "religion", "abortion", "gun control", "immigration",
    "climate change", "vaccines", "conspiracy", "fake news",
)

OVERLY_PERSONAL_PHRASES: Tuple[str, ...] = (
    "my ex", "my husband", "my wife", "my boyfriend", "my girlfriend",
    "my family", "my kids", "my children", "my parents",
)


@dataclass(frozen=True)
class PatternLibrary:
    """Versioned term lists, regexes and per-hit weights."""
    version: str = DEFAULT_PATTERN_VERSION

    direct_harassment_terms: Tuple[str, ...] = DIRECT_HARASSMENT_TERMS
    indirect_harassment_terms: Tuple[str, ...] = INDIRECT_HARASSMENT_TERMS
    threatening_terms: Tuple[str, ...] = THREATENING_TERMS
    direct_harassment_weight: float = 0.4
    indirect_harassment_weight: float = 0.2
    threatening_weight: float = 0.6

    privacy_patterns: Dict[str, str] = field(default_factory=lambda: dict(PRIVACY_PATTERNS))
    privacy_base_scores: Dict[str, float] = field(
        default_factory=lambda: dict(PRIVACY_BASE_SCORES)
    )
    privacy_type_severity: Dict[str, str] = field(
        default_factory=lambda: dict(PRIVACY_TYPE_SEVERITY)
    )
    self_disclosure_patterns: Tuple[str, ...] = SELF_DISCLOSURE_PATTERNS
    self_disclosure_weight: float = 0.3

    unprofessional_terms: Tuple[str, ...] = UNPROFESSIONAL_TERMS
    controversial_topics: Tuple[str, ...] = CONTROVERSIAL_TOPICS
    overly_personal_phrases: Tuple[str, ...] = OVERLY_PERSONAL_PHRASES
    unprofessional_weight: float = 0.2
    controversial_weight: float = 0.3
    overly_personal_weight: float = 0.1

    # Timing windows are local hours, inclusive
    late_night_start_hour: int = 22
    late_night_end_hour: int = 6
    late_night_weight: float = 0.3
    early_morning_start_hour: int = 5
    early_morning_end_hour: int = 8
    early_morning_weight: float = 0.2
    weekend_days: FrozenSet[int] = frozenset({5, 6})   # datetime.weekday()
    weekend_weight: float = 0.1
    holidays: FrozenSet[str] = frozenset()               # "MM-DD" or "YYYY-MM-DD"
    holiday_weight: float = 0.2

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PatternLibrary":
        """Build a library from a mapping, keeping defaults for absent keys.

        Raises:
            ValueError: If the mapping has unknown keys or no version
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown pattern library keys: {sorted(unknown)}")
        if not data.get("version"):
            raise ValueError("Pattern library requires a version")

        values: Dict[str, Any] = {}
        for key, value in data.items():
            default = getattr(cls, key, None)
            if isinstance(default, tuple):
                value = tuple(value)
            elif isinstance(default, frozenset):
                value = frozenset(value)
            values[key] = value
        return cls(**values)

    @classmethod
    def from_json(cls, path: str) -> "PatternLibrary":
        """Load a library from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        library = cls.from_dict(data)

        logger.info(
            "PATTERN_LIBRARY_LOADED",
            extra={"path": path, "version": library.version}
        )
        return library


def load_pattern_library(path: Optional[str] = None) -> PatternLibrary:
    """Load the library from path or PATTERN_LIBRARY_PATH, else the defaults."""
    path = path or os.getenv("PATTERN_LIBRARY_PATH")
    if not path:
        return PatternLibrary()
    return PatternLibrary.from_json(path)


@dataclass(frozen=True)
class ContentAnalysisConfig:
    """Scoring weights and thresholds for the content analyzer."""

    # Aggregate: overall = min(1, sum(weight * dimension score))
    harassment_weight: float = 0.4
    privacy_weight: float = 0.3
    professional_weight: float = 0.2
    timing_weight: float = 0.1

    # Risk tolerance multipliers applied to the harassment score
    conservative_multiplier: float = 1.2
    moderate_multiplier: float = 1.0
    open_multiplier: float = 0.8

    # Recommendation triggers (strictly greater than)
    harassment_trigger: float = 0.3
    privacy_trigger: float = 0.2
    professional_trigger: float = 0.3
    timing_trigger: float = 0.3

    # Audit mapping of the overall score
    audit_high_risk_above: float = 0.7
    audit_medium_risk_above: float = 0.4
    audit_warning_above: float = 0.5

    confidence: float = 0.8
