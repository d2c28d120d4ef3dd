"""
Admin routes.
Catalog management, member moderation, point adjustments, order fulfilment,
report review, matchmaker approval and speed dating scheduling. Admins and
moderators only.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...db.models import Matchmaker, Order, Product, Profile, Report, User, utcnow
from ..config import APISettings, get_settings
from ..dependencies import get_db, require_admin
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.admin import USER_FIELDS, AdminUserUpdate, MatchmakerStatusUpdate, ReportUpdate
from ..schemas.auth import UserResponse
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.events import SpeedDatingCreate
from ..schemas.profile import ProfileUpdate
from ..schemas.rewards import OrderStatusUpdate, PointsAdjustRequest, ProductResponse, ProductUpsert
from ..services.cache_service import CacheService, get_cache_service
from ..services.events import SpeedDatingService, serialize_session
from ..services.formatting import capitalize_name
from ..services.matchmakers import serialize_matchmaker
from ..services.notifications import create_notification
from ..services.points import apply_points
from ..services.profiles import ProfileService
from ..services.rewards import serialize_order

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses=ERROR_RESPONSES,
)


def _validate(model, data: Dict[str, Any]):
    """Validate a partial body, reporting the first problem as a 400."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestError(e.errors()[0]["msg"])


def _get_product(db: Session, product_id: UUID) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if product is None:
        raise ResourceNotFoundError("Product", product_id)
    return product


def _product_payload(product: Product) -> dict:
    return ProductResponse.model_validate(product).model_dump(mode="json")


def serialize_report(report: Report) -> dict:
    return {
        "id": str(report.id),
        "reporter_id": str(report.reporter_id),
        "reported_user_id": str(report.reported_user_id),
        "reason": report.reason,
        "description": report.description,
        "status": report.status,
        "admin_notes": report.admin_notes,
        "created_at": report.created_at.isoformat(),
        "updated_at": report.updated_at.isoformat() if report.updated_at else None,
    }


# ----------------------------------------------------------------------
# Products
# ----------------------------------------------------------------------


@router.get("/products")
async def admin_list_products(
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db),
):
    query = db.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    products = query.order_by(Product.created_at.desc()).all()
    return ok({"products": [_product_payload(p) for p in products], "total": len(products)})


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def admin_create_product(
    request: ProductUpsert,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    product = Product(**request.model_dump())
    db.add(product)
    db.commit()
    db.refresh(product)
    cache.invalidate_products()
    logger.info(f"Admin {admin.id} created product {product.id}")
    return ok(_product_payload(product), msg="Product created")


@router.get("/products/{product_id}")
async def admin_get_product(product_id: UUID, db: Session = Depends(get_db)):
    product = _get_product(db, product_id)
    data = _product_payload(product)
    data["total_orders"] = db.query(func.count(Order.id)).filter(Order.product_id == product_id).scalar()
    return ok(data)


@router.put("/products/{product_id}")
async def admin_update_product(
    product_id: UUID,
    request: ProductUpsert,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    product = _get_product(db, product_id)
    for key, value in request.model_dump().items():
        setattr(product, key, value)
    db.commit()
    db.refresh(product)
    cache.invalidate_products()
    logger.info(f"Admin {admin.id} updated product {product_id}")
    return ok(_product_payload(product), msg="Product updated")


@router.delete("/products/{product_id}")
async def admin_delete_product(
    product_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    """Soft delete: the product is deactivated so past orders keep their reference."""
    product = _get_product(db, product_id)
    product.is_active = False
    db.commit()
    cache.invalidate_products()
    logger.info(f"Admin {admin.id} deactivated product {product_id}")
    return ok(msg="Product deactivated")


@router.post("/products/{product_id}/toggle")
async def admin_toggle_product(
    product_id: UUID,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
):
    """Flip `is_active` and return the new value."""
    product = _get_product(db, product_id)
    product.is_active = not product.is_active
    db.commit()
    cache.invalidate_products()
    logger.info(f"Admin {admin.id} set product {product_id} is_active={product.is_active}")
    return ok({"id": str(product.id), "is_active": product.is_active})


# ----------------------------------------------------------------------
# Users
# ----------------------------------------------------------------------


@router.get("/users")
async def admin_list_users(
    search: Optional[str] = Query(None, max_length=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.email.ilike(pattern), User.display_name.ilike(pattern)))
    if status_filter:
        query = query.filter(User.status == status_filter)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()
    return ok({
        "users": [UserResponse.model_validate(u).model_dump(mode="json") for u in users],
        "total": total,
        "limit": limit,
        "offset": offset,
    })


@router.patch("/users/{user_id}")
async def admin_update_user(
    user_id: UUID,
    body: Dict[str, Any] = Body(...),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """
    Update a member.

    `status`, `role` and `display_name` go to the account; every other key is
    treated as a profile field and validated like a member's own update.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise ResourceNotFoundError("User", user_id)

    account = _validate(AdminUserUpdate, {k: v for k, v in body.items() if k in USER_FIELDS})
    profile_changes = _validate(ProfileUpdate, {k: v for k, v in body.items() if k not in USER_FIELDS})

    for key, value in account.model_dump(exclude_unset=True).items():
        if key == "display_name":
            value = capitalize_name(value) or None
        setattr(user, key, value)

    changes = profile_changes.changes()
    if changes:
        ProfileService(db, settings).update_profile(user, changes)
    db.commit()
    db.refresh(user)

    logger.info(f"Admin {admin.id} updated user {user_id}: {sorted(body.keys())}")
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    return ok({
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
        "profile_completion_percentage": profile.profile_completion_percentage if profile else 0,
    }, msg="User updated")


@router.post("/users/{user_id}/points")
async def admin_adjust_points(
    user_id: UUID,
    request: PointsAdjustRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Add or remove points; the balance may not go below zero."""
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise ResourceNotFoundError("User", user_id)

    transaction = apply_points(
        db,
        user,
        request.amount,
        "admin_adjustment",
        description=request.reason,
        reference_id=admin.id,
        reference_type="admin",
    )
    create_notification(
        db,
        user.id,
        "points_adjusted",
        "Points Updated",
        f"{abs(request.amount)} points were {'added to' if request.amount > 0 else 'removed from'} your balance",
        {"amount": request.amount},
    )
    db.commit()
    logger.info(f"Admin {admin.id} adjusted points for {user_id} by {request.amount:+d}")
    return ok({
        "points_balance": user.points_balance,
        "transaction_id": str(transaction.id),
    }, msg="Points adjusted")


# ----------------------------------------------------------------------
# Orders
# ----------------------------------------------------------------------


@router.get("/orders")
async def admin_list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(Order)
    if status_filter:
        query = query.filter(Order.status == status_filter)
    total = query.count()
    orders = query.order_by(Order.created_at.desc()).offset(offset).limit(limit).all()
    data = []
    for order in orders:
        entry = serialize_order(order)
        entry["user_id"] = str(order.user_id)
        data.append(entry)
    return ok({"orders": data, "total": total})


@router.patch("/orders/{order_id}")
async def admin_update_order(
    order_id: UUID,
    request: OrderStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    order = db.query(Order).filter(Order.id == order_id).first()
    if order is None:
        raise ResourceNotFoundError("Order", order_id)

    previous = order.status
    order.status = request.status
    create_notification(
        db,
        order.user_id,
        "order_update",
        "Order Update",
        f"Your order is now {request.status}",
        {"order_id": str(order.id), "status": request.status},
    )
    db.commit()
    db.refresh(order)
    logger.info(f"Admin {admin.id} moved order {order_id} from {previous} to {request.status}")
    return ok(serialize_order(order), msg="Order updated")


# ----------------------------------------------------------------------
# Reports
# ----------------------------------------------------------------------


@router.get("/reports")
async def admin_list_reports(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(Report)
    if status_filter:
        query = query.filter(Report.status == status_filter)
    total = query.count()
    reports = query.order_by(Report.created_at.desc()).offset(offset).limit(limit).all()
    return ok({"reports": [serialize_report(r) for r in reports], "total": total})


@router.patch("/reports/{report_id}")
async def admin_update_report(
    report_id: UUID,
    request: ReportUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    report = db.query(Report).filter(Report.id == report_id).first()
    if report is None:
        raise ResourceNotFoundError("Report", report_id)

    for key, value in request.model_dump(exclude_unset=True).items():
        setattr(report, key, value)
    db.commit()
    db.refresh(report)
    logger.info(f"Admin {admin.id} updated report {report_id} ({report.status})")
    return ok(serialize_report(report), msg="Report updated")


# ----------------------------------------------------------------------
# Matchmakers
# ----------------------------------------------------------------------


@router.patch("/matchmakers/{matchmaker_id}")
async def admin_update_matchmaker(
    matchmaker_id: UUID,
    request: MatchmakerStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    matchmaker = db.query(Matchmaker).filter(Matchmaker.id == matchmaker_id).first()
    if matchmaker is None:
        raise ResourceNotFoundError("Matchmaker", matchmaker_id)

    matchmaker.status = request.status
    if request.status == "approved" and matchmaker.approved_at is None:
        matchmaker.approved_at = utcnow()
        create_notification(
            db,
            matchmaker.user_id,
            "matchmaker_approved",
            "You're a Matchmaker!",
            "Your matchmaker application was approved",
            {"matchmaker_id": str(matchmaker.id)},
        )
    db.commit()
    db.refresh(matchmaker)
    logger.info(f"Admin {admin.id} set matchmaker {matchmaker_id} to {request.status}")
    return ok(serialize_matchmaker(matchmaker), msg="Matchmaker updated")


# ----------------------------------------------------------------------
# Speed dating
# ----------------------------------------------------------------------


@router.get("/speed-dating")
async def admin_list_speed_dating(
    session_status: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    sessions = SpeedDatingService(db).list_all(session_status)
    return ok({"sessions": sessions, "total": len(sessions)})


@router.post("/speed-dating", status_code=status.HTTP_201_CREATED)
async def admin_create_speed_dating(
    request: SpeedDatingCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    session = SpeedDatingService(db).create_session(request.model_dump())
    logger.info(f"Admin {admin.id} scheduled speed dating session {session.id}")
    return ok(serialize_session(session), msg="Session created")
