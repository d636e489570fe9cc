"""
Main application module for the Induction Planner.

This module defines the FastAPI application, routes, and middleware.
"""
from datetime import date
from functools import lru_cache
from typing import List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from induction_planner.config import Settings
from induction_planner.errors import ConfigurationMissing, SnapshotFetchFailure
from induction_planner.schemas.requests import ScheduleRequest
from induction_planner.schemas.responses import ErrorResponse, ScheduleResponse, ScheduleRow
from induction_planner.services.pipeline import SchedulingEngine, create_scheduling_engine

# Create FastAPI app
app = FastAPI(
    title="Induction Planner",
    description="Daily train induction scheduling with mandatory safety overrides",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache()
def build_scheduling_engine() -> SchedulingEngine:
    """Engine shared by all requests of this process."""
    return create_scheduling_engine(Settings.from_env())


def get_scheduling_engine() -> SchedulingEngine:
    try:
        return build_scheduling_engine()
    except ConfigurationMissing as e:
        print(f"Cannot build scheduling engine: {e.message}")
        raise HTTPException(status_code=500, detail=e.message)


@app.get("/ping")
@app.head("/ping")
async def ping():
    """Health check endpoint. Supports both GET and HEAD methods."""
    return {"status": "ok"}


@app.post(
    "/schedule/optimize",
    response_model=ScheduleResponse,
    responses={500: {"model": ErrorResponse}},
)
async def optimize_schedule(
    request: ScheduleRequest,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """
    Run the scheduler for one service date.

    Args:
        request: Schedule date, optional constraints and the force_recompute flag
        engine: Scheduling engine built from the environment

    Returns:
        ScheduleResponse with recommendations and summary, or an ErrorResponse
        with status 500 when the run was aborted
    """
    print(f"Schedule run requested for {request.schedule_date} (force_recompute={request.force_recompute})")
    result = await engine.run(request)

    if isinstance(result, ErrorResponse):
        return JSONResponse(status_code=500, content=result.model_dump(mode="json"))
    return result


@app.get("/schedule/{schedule_date}", response_model=List[ScheduleRow])
async def get_schedule(
    schedule_date: date,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Return the persisted schedule rows for one date."""
    try:
        rows = await engine.store.fetch_schedule(schedule_date)
    except SnapshotFetchFailure as e:
        raise HTTPException(status_code=500, detail=e.message)
    return rows
