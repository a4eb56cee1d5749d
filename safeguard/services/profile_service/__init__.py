"""Profile Service: per-user safety profiles and risk scoring.

Components:
- config.py: vulnerability weights and protection thresholds
- profile_manager.py: SafetyProfileManager, risk computation, level derivation
- profile_repository.py: profile storage and the platform user directory
"""

from .profile_manager import (
    SafetyProfileManager,
    RiskAssessmentResult,
    compute_risk_assessment,
    derive_protection_level,
    parse_profile_changes,
)
from .profile_repository import SafetyProfileRepository, UserDirectory, PlatformUser

__all__ = [
    "SafetyProfileManager",
    "RiskAssessmentResult",
    "compute_risk_assessment",
    "derive_protection_level",
    "parse_profile_changes",
    "SafetyProfileRepository",
    "UserDirectory",
    "PlatformUser",
]
