"""
Messaging routes.
Conversation lists and message history. Live delivery happens through
Supabase realtime on the messages table.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...db.models import User
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.messaging import MessageCreate
from ..services.messaging import MessagingService, serialize_message

router = APIRouter(tags=["Messaging"], responses=ERROR_RESPONSES)


@router.get("/conversations")
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok({"conversations": MessagingService(db).list_conversations(current_user.id)})


@router.get("/conversations/{conversation_id}/messages")
async def list_messages(
    conversation_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    before: Optional[datetime] = Query(None, description="Only messages older than this"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Message history, newest first."""
    if before is not None and before.tzinfo is not None:
        # Stored timestamps are naive UTC
        before = before.astimezone(timezone.utc).replace(tzinfo=None)
    messages = MessagingService(db).list_messages(conversation_id, current_user.id, limit, before)
    return ok({"messages": [serialize_message(m) for m in messages]})


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: UUID,
    request: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = MessagingService(db).send_message(
        conversation_id,
        current_user.id,
        request.content,
        message_type=request.message_type,
        client_message_id=request.client_message_id,
    )
    return ok(serialize_message(message))


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    MessagingService(db).delete_message(message_id, current_user.id)
    return ok(msg="Message deleted")
