"""
Notification routes.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...db.models import Notification, User, utcnow
from ..dependencies import get_current_user, get_db
from ..errors import ResourceNotFoundError
from ..schemas.common import ERROR_RESPONSES, ok
from ..services.notifications import serialize_notification

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_own_notification(db: Session, notification_id: UUID, user: User) -> Notification:
    """Another member's notification is reported as missing."""
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user.id)
        .first()
    )
    if notification is None:
        raise ResourceNotFoundError("Notification", notification_id)
    return notification


@router.get("", responses=ERROR_RESPONSES)
async def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    base = db.query(Notification).filter(Notification.user_id == current_user.id)
    query = base.filter(Notification.is_read.is_(False)) if unread_only else base
    notifications = query.order_by(Notification.created_at.desc()).limit(limit).all()
    unread_count = base.filter(Notification.is_read.is_(False)).count()
    return ok({
        "notifications": [serialize_notification(n) for n in notifications],
        "unread_count": unread_count,
    })


@router.post("/read-all", responses=ERROR_RESPONSES)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.is_read.is_(False))
        .update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)
    )
    db.commit()
    return ok({"updated": updated})


@router.post("/{notification_id}/read", responses=ERROR_RESPONSES)
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = get_own_notification(db, notification_id, current_user)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
    return ok(serialize_notification(notification))


@router.delete("/{notification_id}", responses=ERROR_RESPONSES)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = get_own_notification(db, notification_id, current_user)
    db.delete(notification)
    db.commit()
    return ok(msg="Notification deleted")
