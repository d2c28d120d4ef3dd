"""
Block routes.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import Block, User
from ..dependencies import get_current_user, get_db
from ..errors import InvalidRequestError, ResourceNotFoundError
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.matches import BlockRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blocks", tags=["Blocks"])


@router.get("", responses=ERROR_RESPONSES)
async def list_blocks(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(Block, User)
        .join(User, User.id == Block.blocked_id)
        .filter(Block.blocker_id == current_user.id)
        .order_by(Block.created_at.desc())
        .all()
    )
    return ok([
        {
            "blocked_id": str(user.id),
            "display_name": user.display_name,
            "created_at": block.created_at.isoformat(),
        }
        for block, user in rows
    ])


@router.post("", responses=ERROR_RESPONSES)
async def block_user(
    request: BlockRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Block a member. Blocking twice is a no-op."""
    if request.blocked_id == current_user.id:
        raise InvalidRequestError("Cannot block yourself")
    if not db.query(User.id).filter(User.id == request.blocked_id).first():
        raise ResourceNotFoundError("User", request.blocked_id)

    existing = (
        db.query(Block)
        .filter(Block.blocker_id == current_user.id, Block.blocked_id == request.blocked_id)
        .first()
    )
    if existing:
        return ok(msg="Already blocked")

    db.add(Block(blocker_id=current_user.id, blocked_id=request.blocked_id))
    db.commit()
    logger.info(f"User {current_user.id} blocked {request.blocked_id}")
    return ok(msg="User blocked")


@router.delete("/{blocked_id}", responses=ERROR_RESPONSES)
async def unblock_user(
    blocked_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    deleted = (
        db.query(Block)
        .filter(Block.blocker_id == current_user.id, Block.blocked_id == blocked_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        raise ResourceNotFoundError("Block", blocked_id)
    db.commit()
    return ok(msg="User unblocked")
