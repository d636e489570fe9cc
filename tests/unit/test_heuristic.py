"""
Unit tests for the heuristic fallback source.
"""
import pytest

from induction_planner.schemas.fleet import FleetSnapshot
from induction_planner.schemas.requests import SchedulingConstraints
from induction_planner.services.heuristic import (
    HeuristicSource, fallback_priority, fallback_reasoning, fallback_status
)


def test_fallback_status_rules(make_vehicle):
    assert fallback_status(make_vehicle(status="maintenance", availability=99)) == "maintenance"
    assert fallback_status(make_vehicle(availability=96)) == "ready"
    assert fallback_status(make_vehicle(availability=95)) == "standby"
    assert fallback_status(make_vehicle(availability=99, job_cards=[("open", 1)])) == "standby"
    assert fallback_status(make_vehicle(availability=99, job_cards=[("closed", 5)])) == "ready"


def test_fallback_reasoning(make_vehicle, now):
    vehicle = make_vehicle(availability=98, branding_priority=9, mileage=12000, cert_days=(30,))
    assert fallback_reasoning(vehicle, now) == [
        "High availability score",
        "No pending maintenance",
        "High branding priority",
        "Low mileage accumulation",
        "Valid fitness certificate",
    ]

    plain = make_vehicle(availability=80, mileage=90000, cert_days=(5,), job_cards=[("open", 2)])
    assert fallback_reasoning(plain, now) == ["Standard operational parameters"]


@pytest.mark.asyncio
async def test_fallback_covers_every_trainset(make_vehicle, now):
    snapshot = FleetSnapshot(vehicles=[make_vehicle(vehicle_id=f"ts-{i}") for i in range(6)])
    candidates = await HeuristicSource(seed=3).generate(snapshot, SchedulingConstraints(), now)

    assert [c["trainset_id"] for c in candidates] == [v.id for v in snapshot.vehicles]
    for candidate in candidates:
        assert 0.80 <= candidate["confidence_score"] <= 0.99
        assert 1 <= candidate["priority_score"] <= 10


def test_confidence_is_deterministic_per_seed(make_vehicle):
    vehicle = make_vehicle(vehicle_id="ts-07")
    assert HeuristicSource(seed=11).confidence_for(vehicle) == HeuristicSource(seed=11).confidence_for(vehicle)

    scores = {HeuristicSource(seed=seed).confidence_for(vehicle) for seed in range(50)}
    assert len(scores) > 1
    assert all(0.80 <= score <= 0.99 for score in scores)


def test_risk_factors_flag_soon_expiring_certificates(make_vehicle, now):
    vehicle = make_vehicle(cert_days=(3, 40), job_cards=[("open", 2)])
    candidate = HeuristicSource().candidate_for(vehicle, now)
    assert "rolling_stock certificate expires in 3 days" in candidate["risk_factors"]
    assert "1 open job card(s)" in candidate["risk_factors"]
    assert candidate["priority_score"] == 4


def test_priority_follows_most_severe_open_job_card(make_vehicle):
    assert fallback_priority(make_vehicle()) == 5
    assert fallback_priority(make_vehicle(job_cards=[("open", None)])) == 5
    assert fallback_priority(make_vehicle(job_cards=[("open", 1), ("open", 3)])) == 6
    assert fallback_priority(make_vehicle(job_cards=[("open", 5), ("closed", 2)])) == 10
    assert fallback_priority(make_vehicle(job_cards=[("closed", 5)])) == 5
