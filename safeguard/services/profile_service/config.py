"""Risk scoring weights and protection-level thresholds."""
from typing import Dict

from safeguard.shared.models import VulnerabilityFactor


# Additive weight per vulnerability factor
VULNERABILITY_WEIGHTS: Dict[VulnerabilityFactor, float] = {
    VulnerabilityFactor.CONTENT_CREATOR: 2.0,
    VulnerabilityFactor.PUBLIC_FIGURE: 3.0,
    VulnerabilityFactor.HIGH_VISIBILITY_BUSINESS: 2.0,
    VulnerabilityFactor.YOUNG_ENTREPRENEUR: 1.0,
    VulnerabilityFactor.SOLO_FOUNDER: 1.0,
    VulnerabilityFactor.INTERNATIONAL_BUSINESS: 1.5,
    VulnerabilityFactor.TECH_INDUSTRY: 1.5,
    VulnerabilityFactor.CONSULTING: 1.0,
    VulnerabilityFactor.EDUCATION: 0.5,
    VulnerabilityFactor.HEALTHCARE: 0.5,
    VulnerabilityFactor.FINANCE: 2.0,
    VulnerabilityFactor.OTHER: 1.0,
}
DEFAULT_VULNERABILITY_WEIGHT = 1.0

# Recent incidents: mean severity over the window, halved (0-5 scale)
INCIDENT_WINDOW_DAYS = 30
INCIDENT_SEVERITY_FACTOR = 0.5

# More than this many connected integrations adds a fixed factor
INTEGRATION_EXPOSURE_THRESHOLD = 3
INTEGRATION_EXPOSURE_SCORE = 1.0

MIN_RISK_SCORE = 0.0
MAX_RISK_SCORE = 10.0

MAXIMUM_PROTECTION_THRESHOLD = 8.0
ELEVATED_PROTECTION_THRESHOLD = 5.0

# Profiles older than this are due for reassessment
DEFAULT_REASSESSMENT_DAYS = 7
