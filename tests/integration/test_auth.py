"""
Authentication flow against a fake Supabase Auth client.
"""

from realsingles.db.models import Referral, User

SIGNUP = {"email": "Jamie@Example.com", "password": "secret123", "display_name": "jamie lee"}


def test_signup_creates_local_account(client, db_session):
    response = client.post("/api/auth/signup", json=SIGNUP)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "jamie@example.com"
    assert body["data"]["user"]["display_name"] == "Jamie Lee"
    assert body["data"]["access_token"]
    assert "access_token" in response.cookies

    user = db_session.query(User).filter(User.email == "jamie@example.com").one()
    assert user.profile is not None
    assert len(user.referral_code) == 8


def test_signup_rejects_weak_password(client):
    response = client.post("/api/auth/signup", json={**SIGNUP, "password": "password"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_signup_duplicate_email_conflicts(client):
    assert client.post("/api/auth/signup", json=SIGNUP).status_code == 201
    response = client.post("/api/auth/signup", json=SIGNUP)
    assert response.status_code == 409


def test_signup_with_unknown_referral_code(client):
    response = client.post("/api/auth/signup", json={**SIGNUP, "referral_code": "NOPE1234"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid referral code"


def test_signup_with_referral_code_tracks_referral(client, db_session, make_user):
    referrer = make_user()
    response = client.post("/api/auth/signup", json={**SIGNUP, "referral_code": referrer.referral_code.lower()})
    assert response.status_code == 201

    referral = db_session.query(Referral).one()
    assert referral.referrer_id == referrer.id
    assert referral.status == "pending"


def test_login_and_session(client, auth_client):
    client.post("/api/auth/signup", json=SIGNUP)

    response = client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]

    session = client.get("/api/auth/session", headers={"Authorization": f"Bearer {token}"})
    assert session.json()["data"]["authenticated"] is True
    assert session.json()["data"]["user"]["email"] == "jamie@example.com"


def test_login_wrong_password(client):
    client.post("/api/auth/signup", json=SIGNUP)
    response = client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "wrong999"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


def test_login_suspended_account(client, db_session):
    client.post("/api/auth/signup", json=SIGNUP)
    user = db_session.query(User).one()
    user.status = "suspended"
    db_session.commit()

    response = client.post("/api/auth/login", json={"email": SIGNUP["email"], "password": "secret123"})
    assert response.status_code == 403


def test_anonymous_session_check(client):
    response = client.get("/api/auth/session")
    assert response.status_code == 200
    assert response.json()["data"] == {"authenticated": False}


def test_refresh_with_body_token(client, db_session):
    client.post("/api/auth/signup", json=SIGNUP)
    user = db_session.query(User).one()

    response = client.post("/api/auth/refresh", json={"refresh_token": f"refresh-{user.id}"})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["id"] == str(user.id)


def test_refresh_without_token(client):
    response = client.post("/api/auth/refresh")
    assert response.status_code == 401


def test_logout_revokes_and_clears(client, auth_client, make_user, auth_headers):
    user = make_user()
    response = client.post("/api/auth/logout", headers=auth_headers(user))
    assert response.status_code == 200
    assert len(auth_client.signed_out) == 1


def test_protected_route_requires_token(client):
    response = client.get("/api/users/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Not authenticated"}


def test_invalid_token_rejected(client):
    response = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_non_admin_blocked_from_admin_routes(client, make_user, auth_headers):
    user = make_user()
    response = client.get("/api/admin/products", headers=auth_headers(user))
    assert response.status_code == 403
