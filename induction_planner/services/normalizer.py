"""
Recommendation normalizer for the Induction Planner.

All coercion of loosely-shaped candidates into contract-safe recommendations
happens here. Nothing in this module raises on bad input: malformed fields are
replaced by the defaults below.
"""
import math
from typing import Any, Dict, List, Optional

from induction_planner.schemas.fleet import TRAIN_STATUSES, Recommendation

DEFAULT_CONFIDENCE = 0.5
DEFAULT_PRIORITY = 5
DEFAULT_REASONING = "AI recommendation"
FALLBACK_STATUS = "standby"

MIN_PRIORITY = 1
MAX_PRIORITY = 10

# Alternative spellings upstream sources use for a status
STATUS_ALIASES = {
    "service": "ready",
    "in_service": "ready",
    "run": "ready",
}


def coerce_status(value: Any) -> str:
    """Map a candidate status onto one of the four train statuses."""
    if not isinstance(value, str):
        return FALLBACK_STATUS
    status = value.strip().lower()
    status = STATUS_ALIASES.get(status, status)
    if status in TRAIN_STATUSES:
        return status
    return FALLBACK_STATUS


def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def clamp_confidence(value: Any) -> float:
    number = _finite_number(value)
    if number is None:
        return DEFAULT_CONFIDENCE
    return min(max(number, 0.0), 1.0)


def clamp_priority(value: Any) -> int:
    number = _finite_number(value)
    if number is None:
        return DEFAULT_PRIORITY
    return min(max(int(round(number)), MIN_PRIORITY), MAX_PRIORITY)


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def normalize_reasoning(value: Any) -> List[str]:
    reasons = _string_list(value)
    return reasons or [DEFAULT_REASONING]


def normalize_risk_factors(value: Any) -> List[str]:
    return _string_list(value)


def normalize_recommendation(
    trainset_id: str,
    final_status: str,
    candidate: Dict[str, Any],
    override_reason: str = "",
) -> Recommendation:
    """
    Build the emitted recommendation from a validated status and its raw candidate.

    Args:
        trainset_id: Trainset the recommendation is for
        final_status: Status decided by the safety validator
        candidate: Raw candidate fields from the recommendation source
        override_reason: Safety override explanation, placed first in the reasoning

    Returns:
        A Recommendation whose numeric and list fields are within contract ranges
    """
    reasoning = normalize_reasoning(candidate.get("reasoning"))
    if override_reason:
        reasoning = [override_reason] + [r for r in reasoning if r != DEFAULT_REASONING]

    return Recommendation(
        trainset_id=trainset_id,
        recommended_status=coerce_status(final_status),
        confidence_score=clamp_confidence(candidate.get("confidence_score")),
        reasoning=reasoning,
        priority_score=clamp_priority(candidate.get("priority_score")),
        risk_factors=normalize_risk_factors(candidate.get("risk_factors")),
    )
