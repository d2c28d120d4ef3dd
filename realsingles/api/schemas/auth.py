"""
Authentication request/response schemas.
Pydantic models for signup, login and session checks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class SignupRequest(BaseModel):
    """Request schema for account creation."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, max_length=72, description="Password (min 8 characters)")
    display_name: Optional[str] = Field(None, max_length=50, description="Name shown to other members")
    referral_code: Optional[str] = Field(None, max_length=16, description="Code from a referral link")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        if not any(c.isalpha() for c in v):
            raise ValueError("Password must contain at least one letter")

        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")

        return v


class LoginRequest(BaseModel):
    """Request schema for login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


class RefreshRequest(BaseModel):
    """Optional body for token refresh; the cookie is used when absent."""

    refresh_token: Optional[str] = Field(None, description="Refresh token")


class UserResponse(BaseModel):
    """Account fields safe to return to the account owner."""

    id: UUID
    email: str
    display_name: Optional[str] = None
    role: str
    status: str
    points_balance: int = 0
    referral_code: Optional[str] = None
    subscription_tier: str = "free"
    last_active_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    """Token info returned by signup, login and refresh."""

    user: UserResponse
    access_token: Optional[str] = Field(None, description="Supabase access token (mobile clients)")
    refresh_token: Optional[str] = Field(None, description="Supabase refresh token")
    token_type: str = Field(default="bearer")
    expires_in: int = Field(..., description="Token expiration time in seconds")
