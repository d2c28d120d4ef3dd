"""
Events Service
Community events and virtual speed dating sessions, with member
registration for both.
"""

import logging
from datetime import datetime, time
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...db.models import (
    Event,
    EventAttendee,
    Profile,
    SpeedDatingRegistration,
    SpeedDatingSession,
    User,
    utcnow,
)
from ..errors import InvalidRequestError, PermissionDeniedError, ResourceNotFoundError
from .matching import calculate_age
from .notifications import create_notification

logger = logging.getLogger(__name__)

REQUIRED_GENDER = {"men_only": "male", "women_only": "female"}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def start_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min)


def serialize_event(event: Event, is_registered: bool = False) -> Dict[str, Any]:
    return {
        "id": str(event.id),
        "title": event.title,
        "description": event.description,
        "event_type": event.event_type,
        "image_url": event.image_url,
        "venue_name": event.venue_name,
        "address": event.address,
        "city": event.city,
        "state": event.state,
        "latitude": event.latitude,
        "longitude": event.longitude,
        "start_datetime": _iso(event.start_datetime),
        "end_datetime": _iso(event.end_datetime),
        "max_attendees": event.max_attendees,
        "current_attendees": event.current_attendees or 0,
        "is_public": bool(event.is_public),
        "status": event.status,
        "created_by": str(event.created_by) if event.created_by else None,
        "created_at": _iso(event.created_at),
        "is_registered": is_registered,
    }


def serialize_session(session: SpeedDatingSession, registered_count: int = 0,
                      is_registered: bool = False) -> Dict[str, Any]:
    return {
        "id": str(session.id),
        "title": session.title,
        "description": session.description,
        "image_url": session.image_url,
        "scheduled_datetime": _iso(session.scheduled_datetime),
        "duration_minutes": session.duration_minutes,
        "round_duration_seconds": session.round_duration_seconds,
        "min_participants": session.min_participants,
        "max_participants": session.max_participants,
        "gender_preference": session.gender_preference,
        "age_min": session.age_min,
        "age_max": session.age_max,
        "status": session.status,
        "registered_count": registered_count,
        "is_registered": is_registered,
    }


class EventService:
    """Event listings, creator edits and attendee registration."""

    def __init__(self, db: Session):
        self.db = db

    def list_events(self, viewer: Optional[User], status: str = "upcoming", city: Optional[str] = None,
                    limit: int = 20, offset: int = 0, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Public events.

        `upcoming` starts today or later, `past` started before today; both
        leave out cancelled events. `all` returns everything public.
        """
        today = start_of_day(now or utcnow())
        query = self.db.query(Event).filter(Event.is_public.is_(True))
        if status == "upcoming":
            query = query.filter(Event.status != "cancelled", Event.start_datetime >= today)
            query = query.order_by(Event.start_datetime.asc())
        elif status == "past":
            query = query.filter(Event.status != "cancelled", Event.start_datetime < today)
            query = query.order_by(Event.start_datetime.desc())
        else:
            query = query.order_by(Event.start_datetime.asc())
        if city:
            query = query.filter(Event.city.ilike(f"%{city}%"))

        events = query.offset(offset).limit(limit).all()
        mine = self._registered_event_ids(viewer, [e.id for e in events])
        return [serialize_event(e, e.id in mine) for e in events]

    def _registered_event_ids(self, viewer: Optional[User], event_ids: List[UUID]) -> set:
        if viewer is None or not event_ids:
            return set()
        return {
            event_id for (event_id,) in self.db.query(EventAttendee.event_id).filter(
                EventAttendee.user_id == viewer.id, EventAttendee.event_id.in_(event_ids)
            )
        }

    def get_event(self, event_id: UUID, lock: bool = False) -> Event:
        query = self.db.query(Event).filter(Event.id == event_id)
        if lock:
            query = query.with_for_update().populate_existing()
        event = query.first()
        if event is None:
            raise ResourceNotFoundError("Event", event_id)
        return event

    def event_detail(self, event: Event, viewer: User) -> Dict[str, Any]:
        if not event.is_public and event.created_by != viewer.id and not viewer.is_admin:
            raise ResourceNotFoundError("Event", event.id)

        rows = (
            self.db.query(EventAttendee, User, Profile)
            .join(User, User.id == EventAttendee.user_id)
            .outerjoin(Profile, Profile.user_id == EventAttendee.user_id)
            .filter(EventAttendee.event_id == event.id)
            .order_by(EventAttendee.registered_at)
            .all()
        )
        data = serialize_event(event, any(a.user_id == viewer.id for a, _, _ in rows))
        data["attendees"] = [
            {
                "user_id": str(user.id),
                "display_name": user.display_name,
                "profile_image_url": profile.profile_image_url if profile else None,
                "status": attendee.status,
            }
            for attendee, user, profile in rows
        ]
        return data

    def create_event(self, creator: User, fields: Dict[str, Any]) -> Event:
        """Create an event; the creator is registered as its first attendee."""
        event = Event(created_by=creator.id, status="upcoming", current_attendees=1, **fields)
        self.db.add(event)
        self.db.flush()
        self.db.add(EventAttendee(event_id=event.id, user_id=creator.id, status="registered"))
        self.db.commit()
        self.db.refresh(event)
        logger.info(f"Event {event.id} created by {creator.id}")
        return event

    def _require_creator(self, event: Event, user: User, action: str) -> None:
        if event.created_by != user.id:
            raise PermissionDeniedError(f"Not authorized to {action} this event")

    def update_event(self, event: Event, user: User, changes: Dict[str, Any]) -> Event:
        self._require_creator(event, user, "update")
        start = changes.get("start_datetime", event.start_datetime)
        end = changes.get("end_datetime", event.end_datetime)
        if start and end and end < start:
            raise InvalidRequestError("end_datetime must be after start_datetime")
        if "title" in changes and not changes["title"]:
            raise InvalidRequestError("Title is required")
        if "start_datetime" in changes and changes["start_datetime"] is None:
            raise InvalidRequestError("start_datetime is required")

        for key, value in changes.items():
            setattr(event, key, value)
        self.db.commit()
        self.db.refresh(event)
        return event

    def cancel_event(self, event: Event, user: User) -> Event:
        self._require_creator(event, user, "delete")
        event.status = "cancelled"
        self.db.commit()
        logger.info(f"Event {event.id} cancelled by {user.id}")
        return event

    def register(self, event_id: UUID, user: User, now: Optional[datetime] = None) -> Tuple[EventAttendee, str]:
        """
        Register the member for an event.

        Returns:
            (attendee, message)

        Raises:
            ResourceNotFoundError: unknown event
            InvalidRequestError: cancelled, already started or full
        """
        event = self.get_event(event_id, lock=True)
        if event.status == "cancelled":
            raise InvalidRequestError("This event has been cancelled")
        if event.start_datetime < (now or utcnow()):
            raise InvalidRequestError("This event has already started and is no longer accepting registrations")

        attendee = (
            self.db.query(EventAttendee)
            .filter(EventAttendee.event_id == event.id, EventAttendee.user_id == user.id)
            .first()
        )
        if attendee is not None and attendee.status == "registered":
            return attendee, "You are already registered for this event"

        current = event.current_attendees or 0
        if event.max_attendees is not None and current >= event.max_attendees:
            raise InvalidRequestError("This event has reached maximum capacity")

        if attendee is None:
            attendee = EventAttendee(event_id=event.id, user_id=user.id, status="registered")
            self.db.add(attendee)
        else:
            attendee.status = "registered"
            attendee.registered_at = utcnow()
        event.current_attendees = current + 1
        self.db.commit()
        self.db.refresh(attendee)
        logger.info(f"User {user.id} registered for event {event.id}")
        return attendee, "You are now registered for this event"

    def unregister(self, event_id: UUID, user: User) -> str:
        """Cancel a registration; cancelling twice is not an error."""
        event = self.get_event(event_id, lock=True)
        attendee = (
            self.db.query(EventAttendee)
            .filter(EventAttendee.event_id == event.id, EventAttendee.user_id == user.id)
            .first()
        )
        if attendee is None:
            return "You are not registered for this event"

        if attendee.status == "registered" and (event.current_attendees or 0) > 0:
            event.current_attendees -= 1
        self.db.delete(attendee)
        self.db.commit()
        logger.info(f"User {user.id} left event {event.id}")
        return "Registration cancelled successfully"


class SpeedDatingService:
    """Virtual speed dating sessions and their registrations."""

    def __init__(self, db: Session):
        self.db = db

    def _counts(self, session_ids: List[UUID]) -> Dict[UUID, int]:
        if not session_ids:
            return {}
        rows = (
            self.db.query(SpeedDatingRegistration.session_id, func.count(SpeedDatingRegistration.id))
            .filter(SpeedDatingRegistration.session_id.in_(session_ids))
            .group_by(SpeedDatingRegistration.session_id)
            .all()
        )
        return dict(rows)

    def _registration(self, session_id: UUID, user_id: UUID) -> Optional[SpeedDatingRegistration]:
        return (
            self.db.query(SpeedDatingRegistration)
            .filter(SpeedDatingRegistration.session_id == session_id, SpeedDatingRegistration.user_id == user_id)
            .first()
        )

    def list_upcoming(self, viewer: User, limit: int = 20, offset: int = 0,
                      now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        sessions = (
            self.db.query(SpeedDatingSession)
            .filter(
                SpeedDatingSession.status == "scheduled",
                SpeedDatingSession.scheduled_datetime >= (now or utcnow()),
            )
            .order_by(SpeedDatingSession.scheduled_datetime.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        ids = [s.id for s in sessions]
        counts = self._counts(ids)
        mine = {
            sid for (sid,) in self.db.query(SpeedDatingRegistration.session_id).filter(
                SpeedDatingRegistration.user_id == viewer.id, SpeedDatingRegistration.session_id.in_(ids)
            )
        } if ids else set()
        return [serialize_session(s, counts.get(s.id, 0), s.id in mine) for s in sessions]

    def list_all(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self.db.query(SpeedDatingSession)
        if status:
            query = query.filter(SpeedDatingSession.status == status)
        sessions = query.order_by(SpeedDatingSession.scheduled_datetime.desc()).all()
        counts = self._counts([s.id for s in sessions])
        return [serialize_session(s, counts.get(s.id, 0)) for s in sessions]

    def create_session(self, fields: Dict[str, Any]) -> SpeedDatingSession:
        session = SpeedDatingSession(status="scheduled", **fields)
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        logger.info(f"Speed dating session {session.id} scheduled for {session.scheduled_datetime}")
        return session

    def get_session(self, session_id: UUID, lock: bool = False) -> SpeedDatingSession:
        query = self.db.query(SpeedDatingSession).filter(SpeedDatingSession.id == session_id)
        if lock:
            query = query.with_for_update().populate_existing()
        session = query.first()
        if session is None:
            raise ResourceNotFoundError("Session", session_id)
        return session

    def check_eligibility(self, session: SpeedDatingSession, profile: Optional[Profile],
                          today=None) -> None:
        """Raise InvalidRequestError when the member does not fit the session."""
        required = REQUIRED_GENDER.get(session.gender_preference)
        if required and (profile is None or profile.gender != required):
            raise InvalidRequestError(f"This session is for {session.gender_preference.replace('_', ' ')}")

        age = calculate_age(profile.date_of_birth, today) if profile else None
        if age is None:
            return
        if session.age_min and age < session.age_min:
            raise InvalidRequestError(f"You must be at least {session.age_min} years old for this session")
        if session.age_max and age > session.age_max:
            raise InvalidRequestError(f"You must be {session.age_max} years old or younger for this session")

    def register(self, session_id: UUID, user: User, now: Optional[datetime] = None) -> Tuple[bool, str]:
        """
        Register the member for a session.

        Returns:
            (created, message)
        """
        now = now or utcnow()
        session = self.get_session(session_id, lock=True)
        if session.status != "scheduled":
            raise InvalidRequestError("This session is no longer open for registration")
        if session.scheduled_datetime < now:
            raise InvalidRequestError("This session has already started")
        if self._registration(session.id, user.id) is not None:
            return False, "You are already registered for this session"

        registered = self._counts([session.id]).get(session.id, 0)
        if session.max_participants is not None and registered >= session.max_participants:
            raise InvalidRequestError("This session is full")

        profile = self.db.query(Profile).filter(Profile.user_id == user.id).first()
        self.check_eligibility(session, profile, now.date())

        self.db.add(SpeedDatingRegistration(session_id=session.id, user_id=user.id))
        create_notification(
            self.db,
            user.id,
            "event",
            "Speed Dating Registration",
            f"You're registered for {session.title}",
            {"session_id": str(session.id)},
        )
        self.db.commit()
        logger.info(f"User {user.id} registered for speed dating {session.id}")
        return True, "Successfully registered for speed dating session"

    def unregister(self, session_id: UUID, user: User) -> str:
        session = self.get_session(session_id)
        if session.status != "scheduled":
            raise InvalidRequestError("Cannot cancel registration for a session that has started")
        registration = self._registration(session.id, user.id)
        if registration is not None:
            self.db.delete(registration)
            self.db.commit()
            logger.info(f"User {user.id} left speed dating {session.id}")
        return "Registration cancelled successfully"
