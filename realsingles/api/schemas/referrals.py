"""
Referral request schemas.
"""

from pydantic import BaseModel, Field


class ReferralApply(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=16)
