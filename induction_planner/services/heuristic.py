"""
Heuristic fallback recommendations.

Used when the prediction endpoint is disabled, unreachable, or leaves trainsets
out of its answer. Output is deterministic for a given seed.
"""
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from induction_planner.schemas.fleet import FleetSnapshot, Vehicle
from induction_planner.schemas.requests import SchedulingConstraints
from induction_planner.services.recommendation_source import Candidate, RecommendationSource

# Fallback confidence range (percent)
MIN_FALLBACK_CONFIDENCE = 80
MAX_FALLBACK_CONFIDENCE = 99

READY_AVAILABILITY = 95
HIGH_BRANDING_PRIORITY = 8
LOW_MILEAGE = 30000
VALID_FITNESS_DAYS = 14
EXPIRY_WARNING_DAYS = 7


def fallback_reasoning(vehicle: Vehicle, now: datetime) -> List[str]:
    reasons = []

    if vehicle.availability_percentage > READY_AVAILABILITY:
        reasons.append("High availability score")
    if not vehicle.open_job_cards():
        reasons.append("No pending maintenance")
    if vehicle.branding_priority >= HIGH_BRANDING_PRIORITY:
        reasons.append("High branding priority")
    if vehicle.mileage < LOW_MILEAGE:
        reasons.append("Low mileage accumulation")

    days_left = _days_to_nearest_expiry(vehicle, now)
    if days_left is not None and days_left > VALID_FITNESS_DAYS:
        reasons.append("Valid fitness certificate")

    if not reasons:
        reasons.append("Standard operational parameters")

    return reasons


def fallback_risk_factors(vehicle: Vehicle, now: datetime) -> List[str]:
    risks = []

    for cert in vehicle.fitness_certificates:
        days = cert.days_to_expiry(now)
        if 0 < days <= EXPIRY_WARNING_DAYS:
            risks.append(f"{cert.certificate_type} certificate expires in {days} days")

    open_cards = vehicle.open_job_cards()
    if open_cards:
        risks.append(f"{len(open_cards)} open job card(s)")

    return risks


def _days_to_nearest_expiry(vehicle: Vehicle, now: datetime) -> Optional[int]:
    if not vehicle.fitness_certificates:
        return None
    return min(cert.days_to_expiry(now) for cert in vehicle.fitness_certificates)


def fallback_status(vehicle: Vehicle) -> str:
    if vehicle.status == "maintenance":
        return "maintenance"
    if vehicle.availability_percentage > READY_AVAILABILITY and not vehicle.open_job_cards():
        return "ready"
    return "standby"


def fallback_priority(vehicle: Vehicle) -> int:
    priorities = [card.priority for card in vehicle.open_job_cards() if card.priority is not None]
    if not priorities:
        return 5
    return min(max(priorities) * 2, 10)


class HeuristicSource(RecommendationSource):
    """Local rule-of-thumb candidates with seeded, per-trainset confidence."""

    name = "heuristic"

    def __init__(self, seed: int = 0):
        self.seed = seed

    def confidence_for(self, vehicle: Vehicle) -> float:
        rng = random.Random(f"{self.seed}:{vehicle.id}")
        return rng.randint(MIN_FALLBACK_CONFIDENCE, MAX_FALLBACK_CONFIDENCE) / 100

    def candidate_for(self, vehicle: Vehicle, now: datetime) -> Candidate:
        return {
            "trainset_id": vehicle.id,
            "recommended_status": fallback_status(vehicle),
            "confidence_score": self.confidence_for(vehicle),
            "reasoning": fallback_reasoning(vehicle, now),
            "priority_score": fallback_priority(vehicle),
            "risk_factors": fallback_risk_factors(vehicle, now),
        }

    async def generate(
        self,
        snapshot: FleetSnapshot,
        constraints: SchedulingConstraints,
        now: datetime,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Candidate]:
        return [self.candidate_for(vehicle, now) for vehicle in snapshot.vehicles]
