"""
Summary aggregation for scheduling runs.
"""
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from induction_planner.errors import EmptyRunError
from induction_planner.schemas.fleet import Recommendation
from induction_planner.schemas.responses import RunSummary


def summarize_run(recommendations: List[Recommendation], now: Optional[datetime] = None) -> RunSummary:
    """
    Compute fleet-level statistics for the final recommendation set.

    Raises:
        EmptyRunError: If there are no recommendations to aggregate
    """
    if not recommendations:
        raise EmptyRunError("Scheduling run produced no recommendations")

    status_counts = Counter(rec.recommended_status for rec in recommendations)
    total_confidence = sum(rec.confidence_score for rec in recommendations)
    timestamp = (now or datetime.now(timezone.utc)).isoformat()

    return RunSummary(
        total_trainsets=len(recommendations),
        recommendations=dict(status_counts),
        average_confidence=round(total_confidence / len(recommendations), 2),
        high_risk_count=sum(1 for rec in recommendations if rec.risk_factors),
        optimization_timestamp=timestamp,
    )
