"""
Test configuration and fixtures for the Induction Planner.

This module provides common test fixtures for both unit and integration tests:
a fixed evaluation clock, a trainset factory and an in-memory fleet store.
"""
import os
from datetime import date, datetime, timedelta, timezone

import pytest

from induction_planner.errors import PersistenceFailure, SnapshotFetchFailure
from induction_planner.schemas.fleet import FitnessCertificate, FleetSnapshot, JobCard, Vehicle
from induction_planner.services.fleet_store import schedule_row_values
from induction_planner.services.heuristic import HeuristicSource
from induction_planner.services.pipeline import SchedulingEngine

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
SCHEDULE_DATE = date(2026, 10, 19)


class InMemoryFleetStore:
    """Store double with the same async interface as FleetStore."""

    def __init__(self, vehicles=None, kpis=None):
        self.vehicles = list(vehicles or [])
        self.kpis = list(kpis or [])
        self.system_config = {}
        self.rows = {}
        self.training_records = []
        self.failing_ids = set()
        self.snapshot_error = None
        self.upsert_calls = 0

    async def fetch_snapshot(self):
        if self.snapshot_error:
            raise SnapshotFetchFailure(self.snapshot_error)
        return FleetSnapshot(vehicles=self.vehicles)

    async def upsert_schedule_row(self, schedule_date, rec):
        self.upsert_calls += 1
        if rec.trainset_id in self.failing_ids:
            raise PersistenceFailure("disk full", rec.trainset_id)
        self.rows[(schedule_date, rec.trainset_id)] = schedule_row_values(schedule_date, rec)

    async def fetch_schedule(self, schedule_date):
        return [row for (day, _), row in sorted(self.rows.items()) if day == schedule_date]

    async def fetch_system_config(self):
        return dict(self.system_config)

    async def fetch_recent_kpis(self, limit=30):
        return self.kpis[:limit]

    async def record_training_data(self, schedule_date, input_features, recommendations, model_version):
        self.training_records.append({
            "schedule_date": schedule_date,
            "input_features": input_features,
            "ai_recommendation": recommendations,
            "model_version": model_version,
        })


@pytest.fixture
def now():
    """Fixed evaluation time."""
    return NOW


@pytest.fixture
def schedule_date():
    return SCHEDULE_DATE


@pytest.fixture
def make_vehicle():
    """Factory for trainsets; cert_days and job_cards describe attached records."""
    def _make(
        vehicle_id="ts-01",
        availability=98,
        status="ready",
        cert_days=(30,),
        job_cards=(),
        mileage=25000,
        branding_priority=5,
        cleaned_days_ago=2,
    ):
        certs = [
            FitnessCertificate(
                id=f"{vehicle_id}-cert-{i}",
                trainset_id=vehicle_id,
                certificate_type=["rolling_stock", "signalling", "telecom"][i % 3],
                issue_date=NOW.date() - timedelta(days=365),
                expiry_date=NOW.date() + timedelta(days=days),
            )
            for i, days in enumerate(cert_days)
        ]
        cards = [
            JobCard(
                id=f"{vehicle_id}-jc-{i}",
                trainset_id=vehicle_id,
                status=card_status,
                priority=priority,
                description="test job",
            )
            for i, (card_status, priority) in enumerate(job_cards)
        ]
        return Vehicle(
            id=vehicle_id,
            number=f"KM-{vehicle_id}",
            status=status,
            bay_position=1,
            mileage=mileage,
            last_cleaning=NOW - timedelta(days=cleaned_days_ago),
            branding_priority=branding_priority,
            availability_percentage=availability,
            fitness_certificates=certs,
            job_cards=cards,
        )
    return _make


@pytest.fixture
def store_factory():
    return InMemoryFleetStore


@pytest.fixture
def memory_store():
    return InMemoryFleetStore()


@pytest.fixture
def build_engine(memory_store):
    """Engine over the in-memory store with a fixed clock and no remote model."""
    def _build(remote=None, store=None, seed=0):
        return SchedulingEngine(
            store=store or memory_store,
            fallback=HeuristicSource(seed=seed),
            remote=remote,
            default_constraints={"target_punctuality": 99.5, "max_service_hours": 18},
            max_concurrent_writes=2,
            clock=lambda: NOW,
        )
    return _build


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment variables."""
    os.environ.setdefault("MODEL_ENABLED", "0")
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
