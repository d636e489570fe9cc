"""
Database operations for the Induction Planner.

This module provides the store boundary of a scheduling run:
1. Loading the fleet snapshot (trainsets joined with certificates and job cards)
2. Upserting daily schedule rows keyed by (schedule_date, trainset_id)
3. Reading recent KPIs and the operator configuration
4. Logging training data for the prediction model
"""
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from induction_planner.errors import PersistenceFailure, SnapshotFetchFailure
from induction_planner.schemas.fleet import FleetSnapshot, Recommendation, Vehicle
from induction_planner.services.tables import (
    ai_training_data, daily_schedules, fitness_certificates, job_cards,
    kpi_metrics, metadata, system_config, trainsets
)

KPI_HISTORY_DAYS = 30

# Operator-editable settings read at the start of every run
SYSTEM_CONFIG_KEYS = ("fleet_constraints", "branding_weights", "ai_model_settings")


def _row_to_dict(row: Any) -> Dict[str, Any]:
    """Convert any type of row to dict."""
    if isinstance(row, dict):
        return row
    if hasattr(row, '_mapping'):  # SQLAlchemy Row
        return dict(row._mapping)
    return dict(row)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def schedule_row_values(schedule_date: date, rec: Recommendation) -> Dict[str, Any]:
    """Column values persisted for one recommendation."""
    return {
        "schedule_date": schedule_date,
        "trainset_id": rec.trainset_id,
        "planned_status": rec.recommended_status,
        "ai_confidence_score": rec.confidence_score,
        "reasoning": {
            "factors": list(rec.reasoning),
            "risk_factors": list(rec.risk_factors),
            "priority_score": rec.priority_score,
        },
    }


class FleetStore:
    """Async SQLAlchemy store holding fleet records and daily schedules."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> "FleetStore":
        return cls(create_async_engine(database_url))

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def fetch_snapshot(self) -> FleetSnapshot:
        """
        Load every trainset with its certificates and job cards.

        Raises:
            SnapshotFetchFailure: If the store cannot be read or holds invalid records
        """
        try:
            async with self.engine.connect() as conn:
                train_rows = (await conn.execute(sa.select(trainsets).order_by(trainsets.c.number))).mappings().all()
                cert_rows = (await conn.execute(sa.select(fitness_certificates))).mappings().all()
                card_rows = (await conn.execute(sa.select(job_cards))).mappings().all()

            certs_by_train = defaultdict(list)
            for row in cert_rows:
                certs_by_train[row["trainset_id"]].append(dict(row))
            cards_by_train = defaultdict(list)
            for row in card_rows:
                cards_by_train[row["trainset_id"]].append(dict(row))

            vehicles = [
                Vehicle(
                    **dict(row),
                    fitness_certificates=certs_by_train[row["id"]],
                    job_cards=cards_by_train[row["id"]],
                )
                for row in train_rows
            ]
            return FleetSnapshot(vehicles=vehicles)
        except (SQLAlchemyError, OSError) as e:
            raise SnapshotFetchFailure(f"Could not load fleet snapshot: {str(e)}")
        except ValidationError as e:
            raise SnapshotFetchFailure(f"Fleet snapshot contains invalid records: {str(e)}")

    async def upsert_schedule_row(self, schedule_date: date, rec: Recommendation) -> None:
        """
        Insert or replace the schedule row for (schedule_date, trainset_id).

        Raises:
            PersistenceFailure: If the row could not be written
        """
        values = schedule_row_values(schedule_date, rec)
        values["updated_at"] = datetime.now(timezone.utc)
        try:
            stmt = self._upsert_statement(values)
            async with self.engine.begin() as conn:
                await conn.execute(stmt)
        except (SQLAlchemyError, OSError, NotImplementedError) as e:
            raise PersistenceFailure(f"Could not save schedule row: {str(e)}", rec.trainset_id)

    def _upsert_statement(self, values: Dict[str, Any]):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise NotImplementedError(f"Upsert not supported for dialect {dialect}")

        stmt = insert(daily_schedules).values(**values)
        replaced = {
            key: stmt.excluded[key]
            for key in ("planned_status", "ai_confidence_score", "reasoning", "updated_at")
        }
        return stmt.on_conflict_do_update(
            index_elements=["schedule_date", "trainset_id"],
            set_=replaced,
        )

    async def fetch_schedule(self, schedule_date: date) -> List[Dict[str, Any]]:
        """Return the persisted schedule rows for one date."""
        query = (
            sa.select(
                daily_schedules.c.schedule_date,
                daily_schedules.c.trainset_id,
                daily_schedules.c.planned_status,
                daily_schedules.c.ai_confidence_score,
                daily_schedules.c.reasoning,
            )
            .where(daily_schedules.c.schedule_date == schedule_date)
            .order_by(daily_schedules.c.trainset_id)
        )
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(query)
                return [_row_to_dict(row) for row in result.mappings()]
        except (SQLAlchemyError, OSError) as e:
            raise SnapshotFetchFailure(f"Could not load schedule for {schedule_date}: {str(e)}")

    async def fetch_system_config(self) -> Dict[str, Any]:
        """Return the stored operator configuration, keyed by config_key."""
        query = sa.select(system_config.c.config_key, system_config.c.config_value).where(
            system_config.c.config_key.in_(SYSTEM_CONFIG_KEYS)
        )
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(query)
                return {row["config_key"]: row["config_value"] for row in result.mappings()}
        except (SQLAlchemyError, OSError) as e:
            raise SnapshotFetchFailure(f"Could not load system configuration: {str(e)}")

    async def fetch_recent_kpis(self, limit: int = KPI_HISTORY_DAYS) -> List[Dict[str, Any]]:
        query = sa.select(kpi_metrics).order_by(kpi_metrics.c.metric_date.desc()).limit(limit)
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(query)
                return [
                    {key: _jsonable(value) for key, value in _row_to_dict(row).items()}
                    for row in result.mappings()
                ]
        except (SQLAlchemyError, OSError) as e:
            raise SnapshotFetchFailure(f"Could not load KPI history: {str(e)}")

    async def record_training_data(
        self,
        schedule_date: date,
        input_features: Dict[str, Any],
        recommendations: List[Recommendation],
        model_version: Optional[str],
    ) -> None:
        values = {
            "schedule_date": schedule_date,
            "input_features": input_features,
            "ai_recommendation": [rec.model_dump() for rec in recommendations],
            "model_version": model_version,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            async with self.engine.begin() as conn:
                await conn.execute(sa.insert(ai_training_data).values(**values))
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceFailure(f"Could not record training data: {str(e)}")
