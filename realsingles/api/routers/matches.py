"""
Match routes.
Like / pass / super like, mutual matches, likes received and sent, undo and
unmatch.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...db.models import User
from ..config import APISettings, get_settings
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.matches import MatchActionRequest, UndoRequest
from ..services.matches import MatchService

router = APIRouter(prefix="/matches", tags=["Matches"])


@router.post("", responses=ERROR_RESPONSES)
async def record_action(
    request: MatchActionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record an action on another member; reports whether it made a match."""
    result = MatchService(db).record_action(current_user, request.target_user_id, request.action)
    return ok(
        {
            "action": result.match.action,
            "target_user_id": str(result.match.target_user_id),
            "is_mutual": result.is_mutual,
            "conversation_id": str(result.conversation_id) if result.conversation_id else None,
        },
        msg="It's a match!" if result.is_mutual else None,
    )


@router.get("", responses=ERROR_RESPONSES)
async def list_matches(
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mutual matches, most recent first."""
    matches = MatchService(db).get_mutual_matches(current_user.id, limit=limit, offset=offset)
    return ok({"matches": matches, "limit": limit, "offset": offset})


@router.get("/likes", responses=ERROR_RESPONSES)
async def likes_received(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Members who liked the caller and are still waiting on a response."""
    likes = MatchService(db).get_likes_received(current_user.id, limit=limit, offset=offset)
    return ok({"likes": likes, "total": len(likes)})


@router.get("/likes-sent", responses=ERROR_RESPONSES)
async def likes_sent(
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    include_super: bool = Query(True),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Members the caller liked who have not liked back yet."""
    result = MatchService(db).get_likes_sent(
        current_user.id, limit=limit, offset=offset, include_super=include_super
    )
    return ok({**result, "limit": limit, "offset": offset})


@router.get("/undo", responses=ERROR_RESPONSES)
async def get_undoable(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """The most recent action that can still be undone, if any."""
    match = MatchService(db).get_undoable_action(current_user.id, settings.undo_window_minutes)
    if match is None:
        return ok({"action": None})
    return ok({
        "action": {
            "target_user_id": str(match.target_user_id),
            "action": match.action,
            "created_at": match.created_at.isoformat(),
        },
        "window_minutes": settings.undo_window_minutes,
    })


@router.post("/undo", responses=ERROR_RESPONSES)
async def undo(
    request: UndoRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """Take back a recent action."""
    action = MatchService(db).undo_action(
        current_user, request.target_user_id, settings.undo_window_minutes
    )
    return ok({"undone_action": action, "target_user_id": str(request.target_user_id)},
              msg="Action undone")


@router.delete("/{user_id}", responses=ERROR_RESPONSES)
async def unmatch(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Unmatch a member; the shared conversation is archived."""
    MatchService(db).unmatch(current_user, user_id)
    return ok(msg="Unmatched")
