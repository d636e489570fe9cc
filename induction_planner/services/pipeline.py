"""
Pipeline service for the Induction Planner.

This module runs one scheduling run end to end:
1. Loading the fleet snapshot
2. Sourcing candidates (stored schedule, prediction model, heuristic fallback)
3. Applying the safety validator and the normalizer
4. Summarizing and persisting the recommendations
"""
import asyncio
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from induction_planner.config import Settings, load_default_constraints
from induction_planner.errors import (
    PersistenceFailure, SchedulingError, SnapshotFetchFailure, UpstreamUnavailable
)
from induction_planner.safety import validate_status
from induction_planner.schemas.fleet import FleetSnapshot, Recommendation
from induction_planner.schemas.requests import ScheduleRequest, SchedulingConstraints
from induction_planner.schemas.responses import (
    ErrorResponse, PersistenceFailureOut, ScheduleResponse
)
from induction_planner.services.fleet_store import FleetStore
from induction_planner.services.heuristic import HeuristicSource
from induction_planner.services.model_provider import RemoteModelSource, build_model_input
from induction_planner.services.normalizer import normalize_recommendation
from induction_planner.services.recommendation_source import Candidate
from induction_planner.services.stored_schedule import StoredScheduleSource
from induction_planner.services.summary import summarize_run


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def index_candidates(raw: List[Candidate], snapshot: FleetSnapshot) -> Dict[str, Candidate]:
    """Key candidates by trainset id, keeping the first one per known trainset."""
    known = {vehicle.id for vehicle in snapshot.vehicles}
    indexed: Dict[str, Candidate] = {}
    dropped = 0
    for candidate in raw:
        trainset_id = candidate.get("trainset_id")
        trainset_id = str(trainset_id) if trainset_id is not None else None
        if trainset_id not in known or trainset_id in indexed:
            dropped += 1
            continue
        indexed[trainset_id] = candidate
    if dropped:
        print(f"Ignored {dropped} candidates for unknown or duplicate trainsets")
    return indexed


def resolve_constraints(
    requested: SchedulingConstraints,
    stored_config: Dict[str, Any],
    defaults: Dict[str, Any],
) -> SchedulingConstraints:
    """Stored fleet constraints win over the request, which wins over the defaults."""
    constraints = requested.with_defaults(defaults)
    overrides = stored_config.get("fleet_constraints")
    overrides = dict(overrides) if isinstance(overrides, dict) else {}
    branding_weights = stored_config.get("branding_weights")
    if isinstance(branding_weights, dict):
        overrides.setdefault("branding_weights", branding_weights)
    if not overrides:
        return constraints
    try:
        return constraints.with_overrides(overrides)
    except ValidationError as e:
        print(f"Ignoring invalid stored fleet constraints ({e.error_count()} errors)")
        return constraints


def configured_model_version(stored_config: Dict[str, Any]) -> Optional[str]:
    settings = stored_config.get("ai_model_settings")
    if not isinstance(settings, dict):
        return None
    model = settings.get("model")
    return model if isinstance(model, str) and model else None


def evaluate_fleet(
    snapshot: FleetSnapshot,
    candidates: Dict[str, Candidate],
    now: datetime,
) -> List[Recommendation]:
    """
    Validate and normalize one candidate per trainset.

    Every trainset in the snapshot gets exactly one recommendation, in snapshot
    order, even when no candidate was produced for it.
    """
    recommendations = []
    for vehicle in snapshot.vehicles:
        candidate = candidates.get(vehicle.id, {})
        proposed = candidate.get("recommended_status")
        status, override_reason = validate_status(proposed, vehicle, now)
        if override_reason:
            print(f"Safety override for trainset {vehicle.number}: {proposed!r} -> {status}")
        recommendations.append(normalize_recommendation(vehicle.id, status, candidate, override_reason))
    return recommendations


class SchedulingEngine:
    """Runs scheduling runs against an injected store and recommendation sources."""

    def __init__(
        self,
        store: FleetStore,
        fallback: HeuristicSource,
        remote: Optional[RemoteModelSource] = None,
        default_constraints: Optional[Dict[str, Any]] = None,
        max_concurrent_writes: int = 4,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.fallback = fallback
        self.remote = remote
        self.default_constraints = default_constraints or {}
        self.max_concurrent_writes = max(1, max_concurrent_writes)
        self.clock = clock

    async def run(self, request: ScheduleRequest) -> Union[ScheduleResponse, ErrorResponse]:
        """
        Execute one scheduling run.

        Fatal errors end the run with an ErrorResponse. An unavailable prediction
        endpoint falls back to the heuristic, and rows that fail to save are
        listed in the response with success set to false.
        """
        now = self.clock()
        try:
            if self.remote is not None:
                self.remote.check_configuration()
            stored_config = await self._system_config()
            constraints = resolve_constraints(request.constraints, stored_config, self.default_constraints)
            snapshot = await self.store.fetch_snapshot()
            print(f"Scheduling {len(snapshot.vehicles)} trainsets for {request.schedule_date}")

            candidates, context = await self.collect_candidates(
                snapshot, constraints, request, now, configured_model_version(stored_config)
            )
            recommendations = evaluate_fleet(snapshot, candidates, now)
            summary = summarize_run(recommendations, now)
        except SchedulingError as e:
            print(f"Scheduling run failed: {type(e).__name__}: {e.message}")
            return ErrorResponse(error=e.message)

        failures = await self.persist(request.schedule_date, recommendations)
        await self.record_training_data(request.schedule_date, snapshot, constraints, now, context, recommendations)

        return ScheduleResponse(
            success=not failures,
            recommendations=recommendations,
            summary=summary,
            timestamp=self.clock().isoformat(),
            persistence_failures=[
                PersistenceFailureOut(trainset_id=f.trainset_id or "", error=f.message)
                for f in failures
            ],
        )

    async def collect_candidates(
        self,
        snapshot: FleetSnapshot,
        constraints: SchedulingConstraints,
        request: ScheduleRequest,
        now: datetime,
        model_version: Optional[str] = None,
    ) -> Tuple[Dict[str, Candidate], Dict[str, Any]]:
        """
        Gather one candidate per trainset from the available sources.

        model_version labels candidates from the remote model in the training
        data; the remote model name is used when it is not given.
        """
        context: Dict[str, Any] = {"schedule_date": request.schedule_date}
        candidates: Dict[str, Candidate] = {}

        if not request.force_recompute:
            candidates.update(await self._stored_candidates(request.schedule_date, snapshot, constraints, now))
            if candidates:
                print(f"Reusing stored schedule for {len(candidates)} trainsets")
                context["model_version"] = StoredScheduleSource.name

        pending = [vehicle for vehicle in snapshot.vehicles if vehicle.id not in candidates]
        if not pending:
            return candidates, context

        subset = FleetSnapshot(vehicles=pending)
        if self.remote is not None:
            context["historical_kpis"] = await self._recent_kpis()
            try:
                raw = await self.remote.generate(subset, constraints, now, context)
                candidates.update(index_candidates(raw, subset))
                context["model_version"] = model_version or self.remote.model
            except UpstreamUnavailable as e:
                print(f"{e.message}; falling back to heuristic recommendations")

        missing = [vehicle for vehicle in pending if vehicle.id not in candidates]
        if missing:
            print(f"Using {self.fallback.name} candidates for {len(missing)} trainsets")
            remainder = FleetSnapshot(vehicles=missing)
            raw = await self.fallback.generate(remainder, constraints, now, context)
            candidates.update(index_candidates(raw, remainder))
            context.setdefault("model_version", self.fallback.name)

        return candidates, context

    async def _stored_candidates(
        self,
        schedule_date: date,
        snapshot: FleetSnapshot,
        constraints: SchedulingConstraints,
        now: datetime,
    ) -> Dict[str, Candidate]:
        try:
            rows = await self.store.fetch_schedule(schedule_date)
        except SnapshotFetchFailure as e:
            print(f"Stored schedule unavailable: {e.message}")
            return {}
        raw = await StoredScheduleSource(rows).generate(snapshot, constraints, now)
        return index_candidates(raw, snapshot)

    async def _system_config(self) -> Dict[str, Any]:
        try:
            return await self.store.fetch_system_config()
        except SnapshotFetchFailure as e:
            print(f"System configuration unavailable: {e.message}")
            return {}

    async def _recent_kpis(self) -> List[Dict[str, Any]]:
        try:
            return await self.store.fetch_recent_kpis()
        except SnapshotFetchFailure as e:
            print(f"KPI history unavailable: {e.message}")
            return []

    async def persist(self, schedule_date: date, recommendations: List[Recommendation]) -> List[PersistenceFailure]:
        """Upsert every recommendation; returns the rows that could not be saved."""
        semaphore = asyncio.Semaphore(self.max_concurrent_writes)

        async def write(rec: Recommendation) -> Optional[PersistenceFailure]:
            async with semaphore:
                try:
                    await self.store.upsert_schedule_row(schedule_date, rec)
                except PersistenceFailure as e:
                    e.trainset_id = e.trainset_id or rec.trainset_id
                    print(f"Failed to save schedule row for {rec.trainset_id}: {e.message}")
                    return e
            return None

        results = await asyncio.gather(*(write(rec) for rec in recommendations))
        return [failure for failure in results if failure is not None]

    async def record_training_data(
        self,
        schedule_date: date,
        snapshot: FleetSnapshot,
        constraints: SchedulingConstraints,
        now: datetime,
        context: Dict[str, Any],
        recommendations: List[Recommendation],
    ) -> None:
        model_input = build_model_input(snapshot, constraints, now, context)
        try:
            await self.store.record_training_data(
                schedule_date, model_input, recommendations, context.get("model_version")
            )
        except PersistenceFailure as e:
            print(f"Failed to record training data: {e.message}")


def create_scheduling_engine(settings: Settings, store: Optional[FleetStore] = None) -> SchedulingEngine:
    """Build an engine from settings; the prediction model is skipped when disabled."""
    remote = None
    if settings.model_enabled:
        remote = RemoteModelSource(
            endpoint=settings.model_endpoint,
            api_key=settings.model_api_key,
            model=settings.model_name,
            timeout=settings.model_timeout_seconds,
        )
    return SchedulingEngine(
        store=store or FleetStore.from_url(settings.database_url),
        fallback=HeuristicSource(seed=settings.fallback_seed),
        remote=remote,
        default_constraints=load_default_constraints(),
        max_concurrent_writes=settings.max_concurrent_writes,
    )
