"""Threat Service: community threat intelligence from anonymized incidents.

Components:
- aggregator.py: CommunityThreatAggregator, trend and urgency rules
- threat_repository.py: threat pattern storage
- config.py: category mapping, mitigation library, profile context tables
"""

from .aggregator import (
    CommunityThreatAggregator,
    ThreatCategoryStats,
    compute_trend,
    context_for_profile,
    pattern_hash,
    relevant_mitigations,
    urgency_level,
)
from .threat_repository import CommunityThreatRepository

__all__ = [
    "CommunityThreatAggregator",
    "ThreatCategoryStats",
    "compute_trend",
    "context_for_profile",
    "pattern_hash",
    "relevant_mitigations",
    "urgency_level",
    "CommunityThreatRepository",
]
