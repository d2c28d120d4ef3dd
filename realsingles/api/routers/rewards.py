"""
Rewards routes.
Public product catalog, point redemptions and the caller's point history.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...db.models import PointTransaction, User
from ..config import APISettings, get_settings
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.rewards import OrderCreate, ProductResponse
from ..services.cache_service import CacheKeys, CacheService, get_cache_service
from ..services.points import serialize_transaction
from ..services.rewards import RewardsService, serialize_order

router = APIRouter(tags=["Rewards"])


@router.get("/products")
async def list_products(
    category: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    settings: APISettings = Depends(get_settings),
):
    """Active, public catalog products, cheapest first."""

    def load():
        products = RewardsService(db).list_public_products(category, limit, offset)
        return [ProductResponse.model_validate(p).model_dump(mode="json") for p in products]

    products = cache.get_or_set(
        CacheKeys.products(category, limit, offset), load,
        ttl=settings.cache_ttl_products, key_type="products",
    )
    return ok({"products": products, "total": len(products)})


@router.get("/products/{product_id}", responses=ERROR_RESPONSES)
async def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    settings: APISettings = Depends(get_settings),
):
    def load():
        product = RewardsService(db).get_active_product(product_id)
        return ProductResponse.model_validate(product).model_dump(mode="json")

    product = cache.get_or_set(
        CacheKeys.product(product_id), load,
        ttl=settings.cache_ttl_products, key_type="products",
    )
    return ok(product)


@router.post("/orders", status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_order(
    request: OrderCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    """Redeem points for a product."""
    order = RewardsService(db).place_order(current_user, request.product_id, request.shipping_address)
    # Stock changed
    cache.invalidate_products()
    return ok(
        {"order": serialize_order(order), "points_balance": current_user.points_balance},
        msg="Order placed",
    )


@router.get("/orders", responses=ERROR_RESPONSES)
async def list_orders(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    orders = RewardsService(db).list_orders(current_user.id, limit, offset)
    return ok({"orders": [serialize_order(o) for o in orders]})


@router.get("/points", responses=ERROR_RESPONSES)
async def get_points(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current balance and the ledger, newest first."""
    transactions = (
        db.query(PointTransaction)
        .filter(PointTransaction.user_id == current_user.id)
        .order_by(PointTransaction.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return ok({
        "balance": current_user.points_balance,
        "transactions": [serialize_transaction(t) for t in transactions],
    })
