"""
Billing request schemas.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PortalRequest(BaseModel):
    return_url: Optional[str] = Field(None, max_length=500)


class CheckoutRequest(BaseModel):
    plan_id: UUID
