"""
Admin moderation schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..services.profile_options import (
    MATCHMAKER_STATUSES,
    REPORT_STATUSES,
    USER_ROLES,
    USER_STATUSES,
)

# Keys of an admin user update that live on the users table
USER_FIELDS = ("status", "role", "display_name")


class AdminUserUpdate(BaseModel):
    """
    Account fields an admin may change.

    Any other keys in the request body are profile fields and are validated
    separately.
    """

    status: Optional[str] = None
    role: Optional[str] = None
    display_name: Optional[str] = Field(None, max_length=50)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in USER_STATUSES:
            raise ValueError(f"Invalid status: {v}")
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in USER_ROLES:
            raise ValueError(f"Invalid role: {v}")
        return v


class ReportUpdate(BaseModel):
    status: Optional[str] = None
    admin_notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in REPORT_STATUSES:
            raise ValueError(f"Invalid report status: {v}")
        return v


class MatchmakerStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in MATCHMAKER_STATUSES:
            raise ValueError(f"Invalid matchmaker status: {v}")
        return v
