"""
Profile, completion and filter schemas.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from ..services.profile_options import HAS_KIDS, WANTS_KIDS, invalid_values

MIN_AGE = 18
MAX_AGE = 99


class ProfileUpdate(BaseModel):
    """
    Partial profile update.

    Only the keys present in the request are applied. Enumerated fields are
    checked against the allowed values before anything is written.
    """

    display_name: Optional[str] = Field(None, max_length=50)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    looking_for: Optional[List[str]] = None
    profile_image_url: Optional[str] = None
    verification_selfie_url: Optional[str] = None

    bio: Optional[str] = Field(None, max_length=1000)
    looking_for_description: Optional[str] = Field(None, max_length=500)

    height_inches: Optional[int] = Field(None, ge=36, le=96)
    body_type: Optional[str] = None
    ethnicity: Optional[List[str]] = None

    marital_status: Optional[str] = None
    dating_intentions: Optional[str] = None

    country: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    occupation: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=100)
    education: Optional[str] = None
    religion: Optional[str] = None
    political_views: Optional[str] = None
    exercise: Optional[str] = None
    languages: Optional[List[str]] = None
    zodiac_sign: Optional[str] = None

    smoking: Optional[str] = None
    drinking: Optional[str] = None
    marijuana: Optional[str] = None

    has_kids: Optional[str] = None
    wants_kids: Optional[str] = None
    pets: Optional[List[str]] = None

    interests: Optional[List[str]] = None
    life_goals: Optional[List[str]] = None

    ideal_first_date: Optional[str] = Field(None, max_length=500)
    non_negotiables: Optional[str] = Field(None, max_length=500)
    way_to_heart: Optional[str] = Field(None, max_length=500)
    after_work: Optional[str] = Field(None, max_length=500)
    nightclub_or_home: Optional[str] = Field(None, max_length=200)
    pet_peeves: Optional[str] = Field(None, max_length=500)
    craziest_travel_story: Optional[str] = Field(None, max_length=500)
    weirdest_gift: Optional[str] = Field(None, max_length=500)
    worst_job: Optional[str] = Field(None, max_length=500)
    dream_job: Optional[str] = Field(None, max_length=500)

    social_link_1: Optional[str] = Field(None, max_length=255)
    social_link_2: Optional[str] = Field(None, max_length=255)

    profile_hidden: Optional[bool] = None
    profile_completion_step: Optional[int] = Field(None, ge=1, le=37)

    model_config = {"extra": "forbid"}

    @field_validator("date_of_birth")
    @classmethod
    def validate_age(cls, v: Optional[date]) -> Optional[date]:
        if v is None:
            return v
        today = date.today()
        age = today.year - v.year - ((today.month, today.day) < (v.month, v.day))
        if age < MIN_AGE:
            raise ValueError(f"You must be at least {MIN_AGE} years old")
        return v

    @model_validator(mode="after")
    def validate_options(self) -> "ProfileUpdate":
        for name in self.model_fields_set:
            bad = invalid_values(name, getattr(self, name))
            if bad:
                raise ValueError(f"Invalid {name}: {bad[0]}")
        return self

    def changes(self) -> dict:
        """Only the fields the client sent."""
        return self.model_dump(exclude_unset=True)


class SkipFieldsRequest(BaseModel):
    fields: List[str] = Field(..., min_length=1, description="Profile fields to skip")


class PreferNotRequest(BaseModel):
    field: str = Field(..., min_length=1, description="Profile field answered 'prefer not to say'")


class FiltersUpdate(BaseModel):
    """Saved discovery filters. Omitted keys are cleared."""

    min_age: Optional[int] = Field(None, ge=MIN_AGE, le=MAX_AGE)
    max_age: Optional[int] = Field(None, ge=MIN_AGE, le=MAX_AGE)
    min_height: Optional[int] = Field(None, ge=36, le=96)
    max_height: Optional[int] = Field(None, ge=36, le=96)
    max_distance_miles: Optional[int] = Field(None, ge=1, le=500)
    body_types: Optional[List[str]] = None
    ethnicities: Optional[List[str]] = None
    religions: Optional[List[str]] = None
    education_levels: Optional[List[str]] = None
    zodiac_signs: Optional[List[str]] = None
    smoking: Optional[str] = None
    drinking: Optional[str] = None
    marijuana: Optional[str] = None
    has_kids: Optional[str] = None
    wants_kids: Optional[str] = None

    @model_validator(mode="after")
    def validate_ranges(self) -> "FiltersUpdate":
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("min_age cannot be greater than max_age")
        if self.min_height is not None and self.max_height is not None and self.min_height > self.max_height:
            raise ValueError("min_height cannot be greater than max_height")
        if self.has_kids is not None and self.has_kids != "any" and self.has_kids not in HAS_KIDS:
            raise ValueError(f"Invalid has_kids: {self.has_kids}")
        if self.wants_kids is not None and self.wants_kids != "any" and self.wants_kids not in WANTS_KIDS:
            raise ValueError(f"Invalid wants_kids: {self.wants_kids}")
        return self


class ProfileResponse(BaseModel):
    """Full profile as seen by its owner."""

    user_id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    looking_for: Optional[List[str]] = None
    profile_image_url: Optional[str] = None
    is_verified: bool = False
    bio: Optional[str] = None
    looking_for_description: Optional[str] = None
    height_inches: Optional[int] = None
    body_type: Optional[str] = None
    ethnicity: Optional[List[str]] = None
    marital_status: Optional[str] = None
    dating_intentions: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    occupation: Optional[str] = None
    company: Optional[str] = None
    education: Optional[str] = None
    religion: Optional[str] = None
    political_views: Optional[str] = None
    exercise: Optional[str] = None
    languages: Optional[List[str]] = None
    zodiac_sign: Optional[str] = None
    smoking: Optional[str] = None
    drinking: Optional[str] = None
    marijuana: Optional[str] = None
    has_kids: Optional[str] = None
    wants_kids: Optional[str] = None
    pets: Optional[List[str]] = None
    interests: Optional[List[str]] = None
    life_goals: Optional[List[str]] = None
    ideal_first_date: Optional[str] = None
    non_negotiables: Optional[str] = None
    way_to_heart: Optional[str] = None
    after_work: Optional[str] = None
    nightclub_or_home: Optional[str] = None
    pet_peeves: Optional[str] = None
    craziest_travel_story: Optional[str] = None
    weirdest_gift: Optional[str] = None
    worst_job: Optional[str] = None
    dream_job: Optional[str] = None
    social_link_1: Optional[str] = None
    social_link_2: Optional[str] = None
    profile_hidden: bool = False
    can_start_matching: bool = False
    profile_completion_percentage: int = 0
    profile_completion_step: Optional[int] = None
    onboarding_completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class GalleryItemCreate(BaseModel):
    """Row for a file the client already uploaded to storage."""

    media_url: str = Field(..., min_length=1, max_length=2000)
    media_type: str = Field("image", pattern="^(image|video)$")


class GalleryOrderEntry(BaseModel):
    id: UUID
    display_order: int = Field(..., ge=0)


class GalleryUpdate(BaseModel):
    order: List[GalleryOrderEntry] = Field(default_factory=list)
    primary_id: Optional[UUID] = None
