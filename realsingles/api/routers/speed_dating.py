"""
Speed dating routes.
Upcoming virtual sessions and member registration. Sessions are scheduled
through the admin routes.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...db.models import User
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..services.events import SpeedDatingService

router = APIRouter(prefix="/speed-dating", tags=["Speed Dating"])


@router.get("", responses=ERROR_RESPONSES)
async def list_sessions(
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    sessions = SpeedDatingService(db).list_upcoming(current_user, limit, offset)
    return ok({"sessions": sessions, "limit": limit, "offset": offset})


@router.post("/{session_id}/register", responses=ERROR_RESPONSES)
async def register(
    session_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Join a session; gender and age limits apply."""
    created, message = SpeedDatingService(db).register(session_id, current_user)
    return ok({"session_id": str(session_id), "registered": True, "created": created}, msg=message)


@router.delete("/{session_id}/register", responses=ERROR_RESPONSES)
async def unregister(
    session_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(msg=SpeedDatingService(db).unregister(session_id, current_user))
