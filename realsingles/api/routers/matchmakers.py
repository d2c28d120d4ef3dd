"""
Matchmaker routes.
Applications, client rosters and introductions. Roster and introduction
management is restricted to the matchmaker who owns the record; members
respond to their own introductions through the same PATCH route.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...db.models import Matchmaker, User
from ..dependencies import get_current_user, get_db, get_owned_matchmaker
from ..errors import PermissionDeniedError, ResourceNotFoundError
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.matchmakers import ClientCreate, IntroductionCreate, IntroductionUpdate, MatchmakerApply
from ..services.matchmakers import MatchmakerService, serialize_introduction, serialize_matchmaker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matchmakers", tags=["Matchmakers"], responses=ERROR_RESPONSES)


@router.get("")
async def list_matchmakers(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Approved matchmakers."""
    matchmakers = MatchmakerService(db).list_approved()
    return ok({"matchmakers": [serialize_matchmaker(m) for m in matchmakers]})


@router.post("", status_code=status.HTTP_201_CREATED)
async def apply(
    request: MatchmakerApply,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Apply to become a matchmaker; the application starts as pending."""
    matchmaker = MatchmakerService(db).apply(
        current_user, request.bio, request.specialties, request.years_experience
    )
    return ok(serialize_matchmaker(matchmaker), msg="Application submitted")


@router.get("/{matchmaker_id}/clients")
async def list_clients(
    matchmaker: Matchmaker = Depends(get_owned_matchmaker),
    db: Session = Depends(get_db),
):
    return ok({"clients": MatchmakerService(db).list_clients(matchmaker)})


@router.post("/{matchmaker_id}/clients", status_code=status.HTTP_201_CREATED)
async def add_client(
    request: ClientCreate,
    matchmaker: Matchmaker = Depends(get_owned_matchmaker),
    db: Session = Depends(get_db),
):
    client = MatchmakerService(db).add_client(matchmaker, request.client_user_id, request.notes)
    return ok({"id": str(client.id), "client_user_id": str(client.client_user_id), "status": client.status},
              msg="Client added")


@router.get("/{matchmaker_id}/introductions")
async def list_introductions(
    matchmaker: Matchmaker = Depends(get_owned_matchmaker),
    db: Session = Depends(get_db),
):
    intros = MatchmakerService(db).list_introductions(matchmaker)
    return ok({"introductions": [serialize_introduction(i) for i in intros]})


@router.post("/{matchmaker_id}/introductions", status_code=status.HTTP_201_CREATED)
async def create_introduction(
    request: IntroductionCreate,
    matchmaker: Matchmaker = Depends(get_owned_matchmaker),
    db: Session = Depends(get_db),
):
    intro = MatchmakerService(db).create_introduction(
        matchmaker, request.user_a_id, request.user_b_id, request.intro_message
    )
    return ok(serialize_introduction(intro), msg="Introduction sent")


@router.patch("/{matchmaker_id}/introductions/{intro_id}")
async def update_introduction(
    matchmaker_id: UUID,
    intro_id: UUID,
    request: IntroductionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Respond to or close out an introduction.

    `{action}` comes from one of the two introduced members; `{outcome}`
    comes from the owning matchmaker.
    """
    service = MatchmakerService(db)
    matchmaker = db.query(Matchmaker).filter(Matchmaker.id == matchmaker_id).first()
    if matchmaker is None:
        raise ResourceNotFoundError("Matchmaker", matchmaker_id)
    intro = service.get_introduction(matchmaker_id, intro_id)

    if request.action is not None:
        result = service.respond(intro, current_user, request.action)
        msg = result.pop("msg")
        return ok(result, msg=msg)

    if matchmaker.user_id != current_user.id:
        raise PermissionDeniedError("Not authorized")
    intro = service.set_outcome(intro, request.outcome)
    logger.info(f"Introduction {intro_id} outcome set to {request.outcome}")
    return ok(serialize_introduction(intro), msg="Outcome updated")
