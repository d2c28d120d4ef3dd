"""
Rewards Service
Catalog reads and point redemptions.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...db.models import Order, Product, User
from ..errors import InvalidRequestError, ResourceNotFoundError
from .points import apply_points, locked_balance

logger = logging.getLogger(__name__)


def serialize_order(order: Order) -> Dict[str, Any]:
    product = order.product
    return {
        "id": str(order.id),
        "product_id": str(order.product_id),
        "product_name": product.name if product else None,
        "product_image_url": product.image_url if product else None,
        "points_spent": order.points_spent,
        "status": order.status,
        "shipping_address": order.shipping_address,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }


class RewardsService:
    def __init__(self, db: Session):
        self.db = db

    def list_public_products(self, category: Optional[str] = None, limit: int = 50,
                             offset: int = 0) -> List[Product]:
        query = self.db.query(Product).filter(Product.is_active.is_(True), Product.is_public.is_(True))
        if category:
            query = query.filter(Product.category == category)
        return query.order_by(Product.points_cost, Product.name).offset(offset).limit(limit).all()

    def get_active_product(self, product_id: UUID) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if product is None or not product.is_active:
            raise ResourceNotFoundError("Product", product_id)
        return product

    def place_order(self, user: User, product_id: UUID,
                    shipping_address: Optional[Dict[str, Any]] = None) -> Order:
        """
        Redeem points for a product.

        The order, the balance deduction, the ledger row and the stock
        decrement are committed together. The product and user rows are
        locked first so concurrent redemptions cannot oversell or overdraw.

        Raises:
            ResourceNotFoundError: product missing or inactive
            InvalidRequestError: out of stock, address missing or insufficient points
        """
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if product is None or not product.is_active:
            raise ResourceNotFoundError("Product", product_id)
        balance = locked_balance(self.db, user.id)

        if product.stock_quantity is not None and product.stock_quantity <= 0:
            raise InvalidRequestError("Product is out of stock")
        if product.requires_shipping and not shipping_address:
            raise InvalidRequestError("Shipping address is required for this product")
        if balance < product.points_cost:
            raise InvalidRequestError(
                "Insufficient points",
                details={"balance": balance, "required": product.points_cost},
            )

        order = Order(
            user_id=user.id,
            product_id=product.id,
            points_spent=product.points_cost,
            status="pending",
            shipping_address=shipping_address,
        )
        self.db.add(order)
        self.db.flush()

        apply_points(
            self.db,
            user,
            -product.points_cost,
            "redemption",
            description=f"Redeemed {product.name}",
            reference_id=order.id,
            reference_type="order",
        )
        if product.stock_quantity is not None:
            product.stock_quantity -= 1

        self.db.commit()
        self.db.refresh(order)
        logger.info(f"Order {order.id} placed by {user.id} for {product.id} ({product.points_cost} points)")
        return order

    def list_orders(self, user_id: UUID, limit: int = 50, offset: int = 0) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
