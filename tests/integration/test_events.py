"""
Events and virtual speed dating.
"""

import uuid
from datetime import timedelta

import pytest

from realsingles.db.models import (
    Event,
    EventAttendee,
    Notification,
    SpeedDatingRegistration,
    SpeedDatingSession,
    utcnow,
)


def in_days(days: float) -> str:
    return (utcnow() + timedelta(days=days)).replace(microsecond=0).isoformat()


@pytest.fixture
def admin(make_user):
    return make_user(display_name="Host", role="admin")


@pytest.fixture
def make_event(client, admin, auth_headers):
    def _make_event(**fields):
        body = {"title": "Rooftop Mixer", "city": "Austin", "start_datetime": in_days(3)}
        body.update(fields)
        response = client.post("/api/events", json=body, headers=auth_headers(admin))
        assert response.status_code == 201, response.json()
        return response.json()["data"]

    return _make_event


@pytest.fixture
def session(db_session):
    def _session(**fields):
        values = {"title": "Friday Speed Dating", "scheduled_datetime": utcnow() + timedelta(days=2)}
        values.update(fields)
        row = SpeedDatingSession(**values)
        db_session.add(row)
        db_session.commit()
        return row

    return _session


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------


def test_admin_creates_event_and_is_registered(client, db_session, make_event, make_user, auth_headers, admin):
    event = make_event(max_attendees=10)
    assert event["current_attendees"] == 1
    assert event["is_registered"] is True
    assert db_session.query(EventAttendee).filter(EventAttendee.user_id == admin.id).count() == 1

    member = make_user()
    denied = client.post("/api/events", json={"title": "Mine", "start_datetime": in_days(1)},
                         headers=auth_headers(member))
    assert denied.status_code == 403


def test_event_validation(client, admin, auth_headers):
    headers = auth_headers(admin)
    assert client.post("/api/events", json={"title": "No date"}, headers=headers).status_code == 400
    backwards = {"title": "Backwards", "start_datetime": in_days(2), "end_datetime": in_days(1)}
    assert client.post("/api/events", json=backwards, headers=headers).status_code == 400
    bad_type = {"title": "Hybrid", "start_datetime": in_days(2), "event_type": "hybrid"}
    assert client.post("/api/events", json=bad_type, headers=headers).status_code == 400


def test_list_upcoming_past_and_city(client, db_session, make_event):
    make_event(title="Later", start_datetime=in_days(5))
    make_event(title="Sooner", start_datetime=in_days(1), city="Dallas")
    cancelled = make_event(title="Called Off")
    db_session.query(Event).filter(Event.title == "Called Off").update({"status": "cancelled"})
    db_session.add(Event(title="Last Month", start_datetime=utcnow() - timedelta(days=30)))
    db_session.add(Event(title="Private", start_datetime=utcnow() + timedelta(days=2), is_public=False))
    db_session.commit()

    upcoming = client.get("/api/events").json()["data"]["events"]
    assert [e["title"] for e in upcoming] == ["Sooner", "Later"]

    past = client.get("/api/events?status=past").json()["data"]["events"]
    assert [e["title"] for e in past] == ["Last Month"]

    dallas = client.get("/api/events?city=dall").json()["data"]["events"]
    assert [e["title"] for e in dallas] == ["Sooner"]
    assert cancelled["id"] not in [e["id"] for e in upcoming]


def test_register_and_unregister(client, db_session, make_event, make_user, auth_headers):
    event = make_event()
    member = make_user()
    headers = auth_headers(member)
    url = f"/api/events/{event['id']}/register"

    first = client.post(url, headers=headers).json()
    assert first["msg"] == "You are now registered for this event"
    assert client.post(url, headers=headers).json()["msg"] == "You are already registered for this event"

    detail = client.get(f"/api/events/{event['id']}", headers=headers).json()["data"]
    assert detail["current_attendees"] == 2
    assert detail["is_registered"] is True
    assert str(member.id) in [a["user_id"] for a in detail["attendees"]]

    assert client.delete(url, headers=headers).json()["msg"] == "Registration cancelled successfully"
    assert client.delete(url, headers=headers).json()["msg"] == "You are not registered for this event"
    db_session.expire_all()
    assert db_session.get(Event, uuid.UUID(event["id"])).current_attendees == 1


def test_register_rules(client, db_session, make_event, make_user, auth_headers):
    full = make_event(max_attendees=1)
    member = make_user()
    headers = auth_headers(member)

    response = client.post(f"/api/events/{full['id']}/register", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "This event has reached maximum capacity"

    started = Event(title="Started", start_datetime=utcnow() - timedelta(hours=1))
    db_session.add(started)
    db_session.commit()
    response = client.post(f"/api/events/{started.id}/register", headers=headers)
    assert response.status_code == 400

    assert client.post("/api/events/00000000-0000-0000-0000-000000000000/register",
                       headers=headers).status_code == 404


def test_only_creator_edits_and_cancels(client, make_event, make_user, auth_headers, admin):
    event = make_event()
    member = make_user()
    url = f"/api/events/{event['id']}"

    assert client.put(url, json={"title": "Hijacked"}, headers=auth_headers(member)).status_code == 403
    assert client.delete(url, headers=auth_headers(member)).status_code == 403

    updated = client.put(url, json={"venue_name": "The Roof", "max_attendees": 40}, headers=auth_headers(admin))
    assert updated.json()["data"]["venue_name"] == "The Roof"
    assert updated.json()["data"]["title"] == "Rooftop Mixer"

    assert client.delete(url, headers=auth_headers(admin)).json()["msg"] == "Event cancelled"
    response = client.post(f"{url}/register", headers=auth_headers(member))
    assert response.status_code == 400
    assert response.json()["error"] == "This event has been cancelled"


# ----------------------------------------------------------------------
# Speed dating
# ----------------------------------------------------------------------


def test_admin_schedules_session(client, admin, auth_headers, make_user):
    body = {"title": "Thirties Mixer", "scheduled_datetime": in_days(4), "age_min": 30, "age_max": 39}
    created = client.post("/api/admin/speed-dating", json=body, headers=auth_headers(admin))
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["status"] == "scheduled"
    assert (data["duration_minutes"], data["round_duration_seconds"]) == (45, 180)
    assert (data["min_participants"], data["max_participants"]) == (6, 20)
    assert data["gender_preference"] == "mixed"

    listed = client.get("/api/admin/speed-dating", headers=auth_headers(admin)).json()["data"]
    assert listed["total"] == 1

    inverted = dict(body, age_min=40, age_max=30)
    assert client.post("/api/admin/speed-dating", json=inverted, headers=auth_headers(admin)).status_code == 400
    member = make_user()
    assert client.post("/api/admin/speed-dating", json=body, headers=auth_headers(member)).status_code == 403


def test_speed_dating_registration(client, db_session, session, make_user, auth_headers):
    row = session(max_participants=2)
    member = make_user()
    headers = auth_headers(member)
    url = f"/api/speed-dating/{row.id}/register"

    first = client.post(url, headers=headers).json()
    assert first["msg"] == "Successfully registered for speed dating session"
    assert first["data"]["created"] is True
    assert client.post(url, headers=headers).json()["msg"] == "You are already registered for this session"
    note = db_session.query(Notification).filter(Notification.user_id == member.id).one()
    assert (note.type, note.title) == ("event", "Speed Dating Registration")

    listed = client.get("/api/speed-dating", headers=headers).json()["data"]["sessions"]
    assert listed[0]["registered_count"] == 1
    assert listed[0]["is_registered"] is True

    assert client.delete(url, headers=headers).status_code == 200
    assert db_session.query(SpeedDatingRegistration).count() == 0


def test_speed_dating_eligibility(client, db_session, session, make_user, auth_headers):
    her = make_user(gender="female")
    headers = auth_headers(her)

    men_only = session(gender_preference="men_only")
    response = client.post(f"/api/speed-dating/{men_only.id}/register", headers=headers)
    assert response.status_code == 400
    assert response.json()["error"] == "This session is for men only"

    older = session(age_min=40)
    response = client.post(f"/api/speed-dating/{older.id}/register", headers=headers)
    assert response.json()["error"] == "You must be at least 40 years old for this session"

    full = session(max_participants=2)
    for _ in range(2):
        db_session.add(SpeedDatingRegistration(session_id=full.id, user_id=make_user().id))
    db_session.commit()
    response = client.post(f"/api/speed-dating/{full.id}/register", headers=headers)
    assert response.json()["error"] == "This session is full"

    past = session(scheduled_datetime=utcnow() - timedelta(minutes=5))
    assert client.post(f"/api/speed-dating/{past.id}/register", headers=headers).status_code == 400

    done = session(status="completed")
    assert client.delete(f"/api/speed-dating/{done.id}/register", headers=headers).status_code == 400
