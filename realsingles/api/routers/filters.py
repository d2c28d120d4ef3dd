"""
Discovery filter routes.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import User, UserFilters
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.profile import FiltersUpdate
from ..services.discovery import FILTER_COLUMNS

router = APIRouter(prefix="/filters", tags=["Filters"])


def serialize_filters(row) -> dict:
    return {column: getattr(row, column) if row is not None else None for column in FILTER_COLUMNS}


@router.get("", responses=ERROR_RESPONSES)
async def get_filters(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Saved filters; every key is null when nothing is saved yet."""
    row = db.query(UserFilters).filter(UserFilters.user_id == current_user.id).first()
    return ok(serialize_filters(row))


@router.put("", responses=ERROR_RESPONSES)
async def save_filters(
    request: FiltersUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace the saved filters."""
    row = db.query(UserFilters).filter(UserFilters.user_id == current_user.id).first()
    if row is None:
        row = UserFilters(user_id=current_user.id)
        db.add(row)

    for column, value in request.model_dump().items():
        setattr(row, column, value)
    db.commit()
    db.refresh(row)
    return ok(serialize_filters(row), msg="Filters saved")
