"""
Rewards schemas: catalog products, orders and point adjustments.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from ..services.profile_options import ORDER_STATUSES, PRODUCT_CATEGORIES


class ProductResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    points_cost: int
    dollar_price: Optional[Decimal] = None
    retail_value: Optional[Decimal] = None
    category: str
    stock_quantity: Optional[int] = None
    is_active: bool
    is_public: bool
    requires_shipping: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_serializer("dollar_price", "retail_value")
    def serialize_money(self, value: Optional[Decimal]) -> Optional[float]:
        return float(value) if value is not None else None


class ProductUpsert(BaseModel):
    """Admin create/replace body for a catalog product."""

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    image_url: Optional[str] = None
    points_cost: int = Field(default=0, ge=0)
    dollar_price: Optional[Decimal] = Field(None, ge=0)
    retail_value: Optional[Decimal] = Field(None, ge=0)
    category: str
    stock_quantity: Optional[int] = Field(None, ge=0, description="Omit for unlimited stock")
    is_active: bool = True
    is_public: bool = True
    requires_shipping: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Product name is required")
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        if v not in PRODUCT_CATEGORIES:
            raise ValueError(f"Invalid category: {v}")
        return v

    @model_validator(mode="after")
    def require_price(self) -> "ProductUpsert":
        if self.points_cost <= 0 and not (self.dollar_price and self.dollar_price > 0):
            raise ValueError("A product needs a points cost or a dollar price")
        return self


class OrderCreate(BaseModel):
    product_id: UUID
    shipping_address: Optional[Dict[str, Any]] = None


class OrderStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in ORDER_STATUSES:
            raise ValueError(f"Invalid order status: {v}")
        return v


class PointsAdjustRequest(BaseModel):
    amount: int = Field(..., description="Points to add (negative to deduct)")
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("amount")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Amount must be non-zero")
        return v
