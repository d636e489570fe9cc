"""
Fleet snapshot and recommendation schemas.

These models describe the read-only view of the fleet a scheduling run works
on and the validated recommendation it emits for each trainset.
"""
import math
from datetime import date, datetime, time, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

TrainStatus = Literal["ready", "standby", "maintenance", "critical"]
TRAIN_STATUSES = ("ready", "standby", "maintenance", "critical")

CertificateType = Literal["rolling_stock", "signalling", "telecom"]

SECONDS_PER_DAY = 24 * 60 * 60


def as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps from the store as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class FitnessCertificate(BaseModel):
    """Safety compliance document attached to one trainset."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    trainset_id: str
    certificate_type: CertificateType
    issue_date: Optional[date] = None
    expiry_date: date

    def expires_at(self) -> datetime:
        return datetime.combine(self.expiry_date, time.min, tzinfo=timezone.utc)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at() <= as_utc(now)

    def days_to_expiry(self, now: datetime) -> int:
        remaining = (self.expires_at() - as_utc(now)).total_seconds()
        return math.ceil(remaining / SECONDS_PER_DAY)


class JobCard(BaseModel):
    """Maintenance work order attached to one trainset."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    trainset_id: str
    status: Literal["open", "closed"]
    priority: Optional[int] = None
    description: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == "open"


class Vehicle(BaseModel):
    """One trainset joined with its certificates and job cards."""
    model_config = ConfigDict(frozen=True)

    id: str
    number: str
    status: TrainStatus
    bay_position: int
    mileage: int = Field(0, ge=0)
    last_cleaning: Optional[datetime] = None
    branding_priority: int = Field(5, ge=1, le=10)
    availability_percentage: float = Field(..., ge=0, le=100)
    fitness_certificates: List[FitnessCertificate] = Field(default_factory=list)
    job_cards: List[JobCard] = Field(default_factory=list)

    def days_since_cleaning(self, now: datetime) -> Optional[int]:
        if self.last_cleaning is None:
            return None
        elapsed = (as_utc(now) - as_utc(self.last_cleaning)).total_seconds()
        return math.ceil(elapsed / SECONDS_PER_DAY)

    def open_job_cards(self) -> List[JobCard]:
        return [card for card in self.job_cards if card.is_open]

    def nearest_expiry(self) -> Optional[date]:
        if not self.fitness_certificates:
            return None
        return min(cert.expiry_date for cert in self.fitness_certificates)


class FleetSnapshot(BaseModel):
    """Immutable per-run view of every trainset."""
    model_config = ConfigDict(frozen=True)

    vehicles: List[Vehicle] = Field(default_factory=list)

    def by_id(self) -> dict:
        return {vehicle.id: vehicle for vehicle in self.vehicles}


class Recommendation(BaseModel):
    """Validated, normalized status recommendation for one trainset."""
    model_config = ConfigDict(frozen=True)

    trainset_id: str
    recommended_status: TrainStatus
    confidence_score: float = Field(..., ge=0, le=1)
    reasoning: List[str]
    priority_score: int = Field(..., ge=1, le=10)
    risk_factors: List[str] = Field(default_factory=list)
