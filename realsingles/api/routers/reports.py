"""
Member reports.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...db.models import Report, User, utcnow
from ..dependencies import get_current_user, get_db
from ..errors import ConflictError, InvalidRequestError, ResourceNotFoundError
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.reports import ReportCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

REPORT_COOLDOWN = timedelta(hours=24)


@router.post("", status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_report(
    request: ReportCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """File a report; one report per reported member every 24 hours."""
    if request.reported_user_id == current_user.id:
        raise InvalidRequestError("You cannot report yourself")
    if db.query(User.id).filter(User.id == request.reported_user_id).first() is None:
        raise ResourceNotFoundError("User", request.reported_user_id)

    recent = (
        db.query(Report.id)
        .filter(
            Report.reporter_id == current_user.id,
            Report.reported_user_id == request.reported_user_id,
            Report.created_at >= utcnow() - REPORT_COOLDOWN,
        )
        .first()
    )
    if recent is not None:
        raise ConflictError("You have already reported this user recently")

    report = Report(
        reporter_id=current_user.id,
        reported_user_id=request.reported_user_id,
        reason=request.reason,
        description=request.description,
    )
    db.add(report)
    db.commit()
    logger.warning(f"User {current_user.id} reported {request.reported_user_id} ({request.reason})")
    return ok({"id": str(report.id), "status": report.status}, msg="Report submitted")
