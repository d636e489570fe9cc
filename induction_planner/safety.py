"""
Safety guardrails for the Induction Planner.

This module applies the hard override rules that every candidate status has to
pass, whichever recommendation source produced it. The rules form a strict
priority chain: the first matching rule decides the status.
"""
from datetime import datetime
from typing import Any, Tuple

from induction_planner.schemas.fleet import Vehicle
from induction_planner.services.normalizer import coerce_status

# Open job cards at or above this priority block service
CRITICAL_JOB_PRIORITY = 4

# Prefix of every override reason added to a recommendation
SAFETY_OVERRIDE_PREFIX = "Safety override"

# Availability thresholds (percent)
CRITICAL_AVAILABILITY = 75
MAINTENANCE_AVAILABILITY = 90


def has_expired_certificate(vehicle: Vehicle, now: datetime) -> bool:
    return any(cert.is_expired(now) for cert in vehicle.fitness_certificates)


def has_critical_job_card(vehicle: Vehicle) -> bool:
    return any(
        card.priority is not None and card.priority >= CRITICAL_JOB_PRIORITY
        for card in vehicle.open_job_cards()
    )


def validate_status(candidate_status: Any, vehicle: Vehicle, now: datetime) -> Tuple[str, str]:
    """
    Apply the safety override chain to a candidate status.

    Args:
        candidate_status: Status suggested by a recommendation source, possibly malformed
        vehicle: Trainset the candidate belongs to
        now: Evaluation time used for certificate expiry

    Returns:
        Tuple of (final status, override reason). The reason is empty when the
        candidate status was accepted.
    """
    if has_expired_certificate(vehicle, now):
        return "critical", f"{SAFETY_OVERRIDE_PREFIX}: fitness certificate expired"

    if has_critical_job_card(vehicle):
        return "critical", f"{SAFETY_OVERRIDE_PREFIX}: open job card with priority >= {CRITICAL_JOB_PRIORITY}"

    availability = vehicle.availability_percentage
    if availability < CRITICAL_AVAILABILITY:
        return "critical", f"{SAFETY_OVERRIDE_PREFIX}: availability {availability:g}% below {CRITICAL_AVAILABILITY}%"

    if availability < MAINTENANCE_AVAILABILITY:
        return "maintenance", f"{SAFETY_OVERRIDE_PREFIX}: availability {availability:g}% below {MAINTENANCE_AVAILABILITY}%"

    return coerce_status(candidate_status), ""
