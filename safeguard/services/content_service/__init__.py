"""Content Service: pre-publication content risk analysis.

Components:
- config.py: versioned pattern library and scoring thresholds
- analyzer.py: ContentRiskAnalyzer (harassment, privacy, professional, timing)
- alternatives.py: substitution rewrites and LLM-backed safe alternatives
"""

from .config import (
    PatternLibrary,
    ContentAnalysisConfig,
    load_pattern_library,
    DEFAULT_PATTERN_VERSION,
)
from .analyzer import (
    ContentRiskAnalyzer,
    ContentRiskReport,
    DimensionRisk,
    PrivacyExposure,
    Recommendation,
    ContentAlternative,
)
from .alternatives import (
    SafeAlternativeGenerator,
    GeneratedAlternative,
    neutralize_harassment,
    redact_privacy,
    professionalize,
    NEUTRAL_PLACEHOLDER,
    REDACTION_MARKER,
    PROFESSIONAL_PLACEHOLDER,
)

__all__ = [
    "PatternLibrary",
    "ContentAnalysisConfig",
    "load_pattern_library",
    "DEFAULT_PATTERN_VERSION",
    "ContentRiskAnalyzer",
    "ContentRiskReport",
    "DimensionRisk",
    "PrivacyExposure",
    "Recommendation",
    "ContentAlternative",
    "SafeAlternativeGenerator",
    "GeneratedAlternative",
    "neutralize_harassment",
    "redact_privacy",
    "professionalize",
    "NEUTRAL_PLACEHOLDER",
    "REDACTION_MARKER",
    "PROFESSIONAL_PLACEHOLDER",
]
