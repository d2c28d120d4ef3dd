"""
In-app notifications.

Rows written here are picked up by Supabase realtime and the push worker;
this module only persists them.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ...db.models import Notification

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: UUID,
    type: str,
    title: str,
    body: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> Notification:
    """Add a notification to the session. The caller commits."""
    notification = Notification(user_id=user_id, type=type, title=title, body=body, data=data)
    db.add(notification)
    logger.info(f"Queued {type} notification for {user_id}")
    return notification


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "data": notification.data,
        "is_read": notification.is_read,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }
