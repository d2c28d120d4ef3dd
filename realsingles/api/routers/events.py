"""
Event routes.
Public listings, event details, creator edits and registration.
"""

from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...db.models import User
from ..dependencies import get_current_user, get_current_user_optional, get_db, require_admin
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.events import EventCreate, EventUpdate
from ..services.events import EventService, serialize_event

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("")
async def list_events(
    event_status: Literal["upcoming", "past", "all"] = Query("upcoming", alias="status"),
    city: Optional[str] = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db),
):
    """Public events; signed-in callers also see which they registered for."""
    events = EventService(db).list_events(current_user, event_status, city, limit, offset)
    return ok({"events": events, "limit": limit, "offset": offset})


@router.post("", status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_event(
    request: EventCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = EventService(db).create_event(admin, request.changes())
    return ok(serialize_event(event, is_registered=True), msg="Event created")


@router.get("/{event_id}", responses=ERROR_RESPONSES)
async def get_event(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = EventService(db)
    return ok(service.event_detail(service.get_event(event_id), current_user))


@router.put("/{event_id}", responses=ERROR_RESPONSES)
async def update_event(
    event_id: UUID,
    request: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit an event; creator only."""
    service = EventService(db)
    event = service.update_event(service.get_event(event_id), current_user, request.changes())
    return ok(serialize_event(event), msg="Event updated")


@router.delete("/{event_id}", responses=ERROR_RESPONSES)
async def cancel_event(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Cancel an event; the row is kept so attendees can see it was cancelled."""
    service = EventService(db)
    service.cancel_event(service.get_event(event_id), current_user)
    return ok(msg="Event cancelled")


@router.post("/{event_id}/register", responses=ERROR_RESPONSES)
async def register(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    attendee, message = EventService(db).register(event_id, current_user)
    return ok({"event_id": str(event_id), "status": attendee.status}, msg=message)


@router.delete("/{event_id}/register", responses=ERROR_RESPONSES)
async def unregister(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ok(msg=EventService(db).unregister(event_id, current_user))
