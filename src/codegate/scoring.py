"""
Risk scoring and admission verdicts.
"""

from .heuristics import ENTROPY_THRESHOLD, is_allowed_package
from .models import APPROVE, REJECT, REVIEW, SecuritySignals


MAX_SCORE = 100

REJECT_THRESHOLD = 70
REVIEW_THRESHOLD = 50

# Any of these flags means the code is rejected outright.
CRITICAL_SIGNALS = (
    "has_eval",
    "has_dynamic_code_execution",
    "has_network_without_permission",
    "has_global_variable_override",
    "has_storage_access",
    "has_navigator_access",
    "has_dangerous_dom_manipulation",
    "has_obfuscated_code",
)

DYNAMIC_NETWORK_SCORE = 40
HIGH_ENTROPY_SCORE = 15
SUSPICIOUS_NAMES_SCORE = 10
UNKNOWN_PACKAGE_SCORE = 20
REFERENCED_DOMAIN_SCORE = 25


def calculate_security_score(signals: SecuritySignals) -> int:
    """
    Reduce security signals to a risk score.

    Args:
        signals: Signals collected by the detector

    Returns:
        Integer in 0-100, higher is more dangerous
    """
    if any(getattr(signals, name) for name in CRITICAL_SIGNALS):
        return MAX_SCORE

    score = 0

    if signals.has_dynamic_url_construction and signals.has_network_api:
        score += DYNAMIC_NETWORK_SCORE

    if signals.entropy > ENTROPY_THRESHOLD:
        score += HIGH_ENTROPY_SCORE

    if signals.suspicious_variable_names:
        score += SUSPICIOUS_NAMES_SCORE

    unknown_packages = [pkg for pkg in signals.imported_packages if not is_allowed_package(pkg)]
    score += len(unknown_packages) * UNKNOWN_PACKAGE_SCORE

    # counts allow-listed domains too
    score += len(signals.referenced_domains) * REFERENCED_DOMAIN_SCORE

    return min(score, MAX_SCORE)


def get_security_verdict(score: int) -> str:
    """
    Map a risk score to an admission verdict.

    - score >= 70: REJECT
    - 50 <= score < 70: REVIEW
    - score < 50: APPROVE
    """
    if score >= REJECT_THRESHOLD:
        return REJECT
    if score >= REVIEW_THRESHOLD:
        return REVIEW
    return APPROVE
