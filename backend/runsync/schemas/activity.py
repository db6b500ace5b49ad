from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.enums import ActivitySource


class DeviceHealthRef(BaseModel):
    source: Literal[ActivitySource.DEVICE_HEALTH] = ActivitySource.DEVICE_HEALTH
    external_id: str = Field(min_length=1)

    model_config = {"frozen": True}


class FitnessNetworkRef(BaseModel):
    source: Literal[ActivitySource.FITNESS_NETWORK] = ActivitySource.FITNESS_NETWORK
    external_id: int

    model_config = {"frozen": True}


# A record's source and its external id travel together, so a device-health
# record can never carry a fitness-network id.
ActivityRef = Annotated[Union[DeviceHealthRef, FitnessNetworkRef], Field(discriminator="source")]


class ActivityRecord(BaseModel):
    """Read-only snapshot of a tagged activity, as seen by duplicate detection."""

    id: int
    user_id: int
    start_date: datetime
    distance: float
    duration: float
    origin: ActivityRef

    model_config = {"frozen": True}

    @property
    def source(self) -> ActivitySource:
        return self.origin.source


class ActivityCreate(BaseModel):
    origin: ActivityRef
    start_date: datetime
    end_date: datetime
    duration: float = Field(ge=0)
    distance: float = Field(ge=0)
    calories: Optional[float] = Field(default=None, ge=0)
    average_heart_rate: Optional[float] = Field(default=None, ge=0)
    workout_name: Optional[str] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        # The store keeps UTC only; naive input is taken as UTC already.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _check_dates(self) -> "ActivityCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date.")
        return self


class ActivityRead(BaseModel):
    id: int
    user_id: int
    start_date: datetime
    end_date: datetime
    duration: float
    distance: float
    calories: Optional[float] = None
    average_heart_rate: Optional[float] = None
    workout_name: Optional[str] = None
    source: Optional[ActivitySource] = None
    device_health_uuid: Optional[str] = None
    fitness_network_id: Optional[int] = None
    synced_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}
