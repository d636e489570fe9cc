"""
API response schemas for the Induction Planner.

This module defines the Pydantic models for API responses.
"""
from datetime import date
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from induction_planner.schemas.fleet import Recommendation, TrainStatus


class RunSummary(BaseModel):
    """Fleet-level statistics for one scheduling run."""
    total_trainsets: int
    recommendations: Dict[str, int] = Field(
        ..., description="Number of recommendations per status"
    )
    average_confidence: float
    high_risk_count: int = Field(
        ..., description="Recommendations carrying at least one risk factor"
    )
    optimization_timestamp: str


class PersistenceFailureOut(BaseModel):
    """A schedule row that could not be saved."""
    trainset_id: str
    error: str


class ScheduleResponse(BaseModel):
    """Response model for a completed scheduling run."""
    success: bool
    recommendations: List[Recommendation]
    summary: RunSummary
    timestamp: str
    persistence_failures: List[PersistenceFailureOut] = Field(
        default_factory=list,
        description="Rows that were not durably saved; non-empty implies success is false",
    )


class ErrorResponse(BaseModel):
    """Response model for a run aborted by a fatal error."""
    success: Literal[False] = False
    error: str


class ScheduleRow(BaseModel):
    """One persisted daily schedule row."""
    schedule_date: date
    trainset_id: str
    planned_status: TrainStatus
    ai_confidence_score: float
    reasoning: Dict[str, Any]
