"""
Request schemas for the Induction Planner API.
"""
from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SchedulingConstraints(BaseModel):
    """Per-run scheduling options. Unset fields take the configured defaults."""
    model_config = ConfigDict(frozen=True)

    target_punctuality: Optional[float] = Field(
        None, ge=0, le=100, description="Target punctuality percentage"
    )
    max_service_hours: Optional[float] = Field(
        None, ge=0, description="Maximum service hours per trainset per day"
    )
    min_maintenance_interval: Optional[float] = Field(
        None, ge=0, description="Minimum hours between maintenance windows"
    )
    branding_weights: Optional[Dict[str, Any]] = Field(
        None, description="Scoring weights for branding exposure"
    )

    def with_defaults(self, defaults: Dict[str, Any]) -> "SchedulingConstraints":
        """Return a copy where every unset field is filled from defaults."""
        merged = {**defaults, **self.model_dump(exclude_none=True)}
        return SchedulingConstraints(**merged)

    def with_overrides(self, overrides: Dict[str, Any]) -> "SchedulingConstraints":
        """Return a copy where every field set in overrides replaces the current value."""
        stored = {key: value for key, value in overrides.items() if value is not None}
        return SchedulingConstraints(**{**self.model_dump(exclude_none=True), **stored})


class ScheduleRequest(BaseModel):
    """Body of a scheduling run request."""
    model_config = ConfigDict(populate_by_name=True)

    schedule_date: date = Field(..., alias="scheduleDate")
    constraints: SchedulingConstraints = Field(default_factory=SchedulingConstraints)
    force_recompute: bool = Field(False, alias="forceRecompute")
