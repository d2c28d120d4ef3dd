"""
Matchmaker and introduction schemas.
"""

from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class MatchmakerApply(BaseModel):
    bio: Optional[str] = Field(None, max_length=2000)
    specialties: List[str] = Field(default_factory=list)
    years_experience: Optional[int] = Field(None, ge=0, le=80)


class ClientCreate(BaseModel):
    client_user_id: UUID
    notes: Optional[str] = Field(None, max_length=2000)


class IntroductionCreate(BaseModel):
    user_a_id: UUID
    user_b_id: UUID
    intro_message: str = Field(..., min_length=50, max_length=1000)


class IntroductionUpdate(BaseModel):
    """Either a member's response or the owner's outcome, never both."""

    action: Optional[Literal["accept", "decline"]] = None
    outcome: Optional[Literal["no_response", "declined", "chatted", "dated", "relationship"]] = None

    @model_validator(mode="after")
    def exactly_one(self) -> "IntroductionUpdate":
        if (self.action is None) == (self.outcome is None):
            raise ValueError("Provide either action or outcome")
        return self
