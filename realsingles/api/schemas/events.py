"""
Event and speed dating schemas.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..services.profile_options import EVENT_STATUSES, EVENT_TYPES, SPEED_DATING_GENDER_PREFERENCES


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class EventFields(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    event_type: Optional[str] = None
    image_url: Optional[str] = None
    venue_name: Optional[str] = Field(None, max_length=200)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    max_attendees: Optional[int] = Field(None, ge=1)
    is_public: Optional[bool] = None

    @field_validator("event_type")
    @classmethod
    def validate_event_type(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in EVENT_TYPES:
            raise ValueError(f"Invalid event_type: {v}")
        return v

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(v)

    @model_validator(mode="after")
    def check_times(self):
        if self.start_datetime and self.end_datetime and self.end_datetime < self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class EventCreate(EventFields):
    title: str = Field(..., min_length=1, max_length=200)
    event_type: str = "in_person"
    start_datetime: datetime
    is_public: bool = True


class EventUpdate(EventFields):
    """Partial update; only keys present in the body are applied."""

    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in EVENT_STATUSES:
            raise ValueError(f"Invalid status: {v}")
        return v


class SpeedDatingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    image_url: Optional[str] = None
    scheduled_datetime: datetime
    duration_minutes: int = Field(45, ge=5, le=240)
    round_duration_seconds: int = Field(180, ge=30, le=1800)
    min_participants: int = Field(6, ge=2)
    max_participants: Optional[int] = Field(20, ge=2)
    gender_preference: str = "mixed"
    age_min: Optional[int] = Field(None, ge=18, le=99)
    age_max: Optional[int] = Field(None, ge=18, le=99)

    @field_validator("gender_preference")
    @classmethod
    def validate_gender_preference(cls, v: str) -> str:
        if v not in SPEED_DATING_GENDER_PREFERENCES:
            raise ValueError(f"Invalid gender_preference: {v}")
        return v

    @field_validator("scheduled_datetime")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        return naive_utc(v)

    @model_validator(mode="after")
    def check_ranges(self) -> "SpeedDatingCreate":
        if self.age_min and self.age_max and self.age_min > self.age_max:
            raise ValueError("age_min cannot be greater than age_max")
        if self.max_participants is not None and self.max_participants < self.min_participants:
            raise ValueError("max_participants cannot be less than min_participants")
        return self
