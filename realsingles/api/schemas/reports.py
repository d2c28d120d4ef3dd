"""
Report request schemas.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ..services.profile_options import REPORT_REASONS


class ReportCreate(BaseModel):
    reported_user_id: UUID
    reason: str
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        if v not in REPORT_REASONS:
            raise ValueError(f"Invalid reason: {v}")
        return v
