"""
Candidates from an already persisted schedule.

When a run is not forced to recompute, rows saved for the same schedule date
are offered again as candidates. They still go through the safety validator,
so a certificate that expired since the row was written is caught. Rows whose
status came from a safety override are skipped: the candidate behind them is
unknown, and reusing the overridden status would make it sticky.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from induction_planner.safety import SAFETY_OVERRIDE_PREFIX
from induction_planner.schemas.fleet import FleetSnapshot
from induction_planner.schemas.requests import SchedulingConstraints
from induction_planner.services.recommendation_source import Candidate, RecommendationSource


def _was_overridden(factors: Any) -> bool:
    if not isinstance(factors, list):
        return False
    return any(isinstance(f, str) and f.startswith(SAFETY_OVERRIDE_PREFIX) for f in factors)


def row_to_candidate(row: Dict[str, Any]) -> Optional[Candidate]:
    reasoning = row.get("reasoning")
    if not isinstance(reasoning, dict):
        reasoning = {}
    factors = reasoning.get("factors")
    if _was_overridden(factors):
        return None
    return {
        "trainset_id": row.get("trainset_id"),
        "recommended_status": row.get("planned_status"),
        "confidence_score": row.get("ai_confidence_score"),
        "reasoning": factors,
        "priority_score": reasoning.get("priority_score"),
        "risk_factors": reasoning.get("risk_factors"),
    }


class StoredScheduleSource(RecommendationSource):
    """Re-offers the persisted rows of one schedule date as candidates."""

    name = "stored_schedule"

    def __init__(self, rows: List[Dict[str, Any]]):
        self.rows = rows

    async def generate(
        self,
        snapshot: FleetSnapshot,
        constraints: SchedulingConstraints,
        now: datetime,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Candidate]:
        known = {vehicle.id for vehicle in snapshot.vehicles}
        candidates = []
        for row in self.rows:
            if row.get("trainset_id") not in known:
                continue
            candidate = row_to_candidate(row)
            if candidate is not None:
                candidates.append(candidate)
        return candidates
