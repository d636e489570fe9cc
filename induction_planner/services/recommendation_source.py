"""
Recommendation sources for the Induction Planner.

A recommendation source produces one raw candidate per trainset. Candidates are
plain dicts shaped like a Recommendation; any field may be missing or malformed
and is fixed up later by the normalizer.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from induction_planner.schemas.fleet import FleetSnapshot, Vehicle
from induction_planner.schemas.requests import SchedulingConstraints

# Job cards without a recorded priority count as medium severity
DEFAULT_JOB_PRIORITY = 3

Candidate = Dict[str, Any]


class RecommendationSource:
    """Base class for anything that can produce raw candidates for a fleet."""

    name = "source"

    async def generate(
        self,
        snapshot: FleetSnapshot,
        constraints: SchedulingConstraints,
        now: datetime,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Candidate]:
        raise NotImplementedError


def vehicle_features(vehicle: Vehicle, now: datetime) -> Dict[str, Any]:
    """Derived per-trainset features sent to the prediction endpoint."""
    fitness_expiry_days: Dict[str, int] = {}
    for cert in vehicle.fitness_certificates:
        days = cert.days_to_expiry(now)
        current = fitness_expiry_days.get(cert.certificate_type)
        if current is None or days < current:
            fitness_expiry_days[cert.certificate_type] = days

    return {
        "id": vehicle.id,
        "number": vehicle.number,
        "current_status": vehicle.status,
        "bay_position": vehicle.bay_position,
        "mileage": vehicle.mileage,
        "last_cleaning_days": vehicle.days_since_cleaning(now),
        "branding_priority": vehicle.branding_priority,
        "availability": vehicle.availability_percentage,
        "fitness_expiry_days": fitness_expiry_days,
        "open_job_cards": len(vehicle.open_job_cards()),
        "maintenance_priority": sum(
            card.priority if card.priority is not None else DEFAULT_JOB_PRIORITY
            for card in vehicle.job_cards
        ),
    }


def fleet_features(snapshot: FleetSnapshot, now: datetime) -> List[Dict[str, Any]]:
    return [vehicle_features(vehicle, now) for vehicle in snapshot.vehicles]
