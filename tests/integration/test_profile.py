"""
Profile, completion and filter routes.
"""

from datetime import date

from realsingles.db.models import PointTransaction, Referral, UserGallery


def test_get_me(client, make_user, auth_headers):
    user = make_user(display_name="Riley")
    response = client.get("/api/users/me", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["display_name"] == "Riley"
    assert data["completion"]["can_start_matching"] is True
    assert data["completion"]["resume_step"] == 6


def test_patch_me_normalizes_names(client, make_user, auth_headers):
    user = make_user()
    response = client.patch(
        "/api/users/me",
        json={"first_name": "mary-jane", "bio": "Coffee and hiking", "smoking": "never"},
        headers=auth_headers(user),
    )
    assert response.status_code == 200
    profile = response.json()["data"]["profile"]
    assert profile["first_name"] == "Mary-Jane"
    assert profile["smoking"] == "never"


def test_patch_me_rejects_invalid_option(client, make_user, auth_headers):
    user = make_user()
    response = client.patch("/api/users/me", json={"smoking": "sometimes"}, headers=auth_headers(user))
    assert response.status_code == 400


def test_patch_me_rejects_minor(client, make_user, auth_headers):
    user = make_user()
    today = date.today()
    response = client.patch(
        "/api/users/me",
        json={"date_of_birth": date(today.year - 16, 1, 1).isoformat()},
        headers=auth_headers(user),
    )
    assert response.status_code == 400


def test_completing_required_steps_rewards_referrer(client, db_session, make_user, auth_headers):
    referrer = make_user()
    newcomer = make_user(complete=False)
    db_session.add(Referral(referrer_id=referrer.id, referred_user_id=newcomer.id))
    newcomer.referred_by = referrer.id
    db_session.add(UserGallery(user_id=newcomer.id, media_url="https://img.test/new.jpg"))
    db_session.commit()

    response = client.patch(
        "/api/users/me",
        json={
            "display_name": "casey",
            "date_of_birth": "1992-03-04",
            "gender": "male",
            "looking_for": ["female"],
        },
        headers=auth_headers(newcomer),
    )
    assert response.status_code == 200
    assert response.json()["data"]["completion"]["can_start_matching"] is True

    db_session.expire_all()
    referral = db_session.query(Referral).one()
    assert referral.status == "rewarded"
    assert referral.points_awarded == 100
    assert db_session.query(PointTransaction).filter(PointTransaction.user_id == referrer.id).count() == 1


def test_get_other_user(client, make_user, auth_headers):
    viewer = make_user()
    other = make_user(display_name="Morgan", gender="male", looking_for=("female",))

    response = client.get(f"/api/users/{other.id}", headers=auth_headers(viewer))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["display_name"] == "Morgan"
    assert data["photos"] == [f"https://img.test/{other.id}.jpg"]
    assert data["is_favorite"] is False


def test_hidden_user_is_not_found(client, make_user, auth_headers):
    viewer = make_user()
    hidden = make_user(profile_hidden=True)
    response = client.get(f"/api/users/{hidden.id}", headers=auth_headers(viewer))
    assert response.status_code == 404


def test_completion_steps_listing(client, make_user, auth_headers):
    user = make_user()
    response = client.get("/api/profile/completion/steps", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["data"]["total_steps"] == 37


def test_skip_and_prefer_not(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    skipped = client.post("/api/profile/completion/skip", json={"fields": ["bio"]}, headers=headers)
    assert skipped.status_code == 200
    assert "bio" in skipped.json()["data"]["skipped_fields"]

    prefer = client.post("/api/profile/completion/prefer-not", json={"field": "religion"}, headers=headers)
    assert prefer.status_code == 200
    assert "religion" in prefer.json()["data"]["completed_fields"]


def test_required_field_cannot_be_skipped(client, make_user, auth_headers):
    user = make_user()
    response = client.post("/api/profile/completion/skip", json={"fields": ["gender"]},
                           headers=auth_headers(user))
    assert response.status_code == 400


def test_prefer_not_only_on_sensitive_fields(client, make_user, auth_headers):
    user = make_user()
    response = client.post("/api/profile/completion/prefer-not", json={"field": "bio"},
                           headers=auth_headers(user))
    assert response.status_code == 400


def test_filters_round_trip(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)

    assert client.get("/api/filters", headers=headers).json()["data"]["min_age"] is None

    saved = client.put("/api/filters", json={"min_age": 25, "max_age": 35, "wants_kids": "any"},
                       headers=headers)
    assert saved.status_code == 200
    assert saved.json()["data"]["max_age"] == 35


def test_filters_reject_inverted_range(client, make_user, auth_headers):
    user = make_user()
    response = client.put("/api/filters", json={"min_age": 40, "max_age": 30}, headers=auth_headers(user))
    assert response.status_code == 400


def test_gallery_add_reorder_and_primary(client, db_session, make_user, auth_headers):
    user = make_user(complete=False)
    headers = auth_headers(user)

    video = client.post("/api/users/me/gallery", json={"media_url": "https://img.test/v.mp4",
                                                       "media_type": "video"}, headers=headers)
    assert video.status_code == 201
    assert video.json()["data"]["is_primary"] is False

    first = client.post("/api/users/me/gallery", json={"media_url": "https://img.test/1.jpg"},
                        headers=headers).json()["data"]
    second = client.post("/api/users/me/gallery", json={"media_url": "https://img.test/2.jpg"},
                         headers=headers).json()["data"]
    assert first["is_primary"] is True
    assert (first["display_order"], second["display_order"]) == (1, 2)

    me = client.get("/api/users/me", headers=headers).json()["data"]
    assert me["profile"]["profile_image_url"] == "https://img.test/1.jpg"

    updated = client.put("/api/users/me/gallery", json={
        "order": [
            {"id": second["id"], "display_order": 0},
            {"id": video.json()["data"]["id"], "display_order": 1},
            {"id": first["id"], "display_order": 5},
        ],
        "primary_id": second["id"],
    }, headers=headers)
    assert updated.status_code == 200
    items = updated.json()["data"]["items"]
    assert [i["id"] for i in items] == [second["id"], video.json()["data"]["id"], first["id"]]
    assert [i["is_primary"] for i in items] == [True, False, False]

    me = client.get("/api/users/me", headers=headers).json()["data"]
    assert me["profile"]["profile_image_url"] == "https://img.test/2.jpg"

    bad_primary = client.put("/api/users/me/gallery", json={"primary_id": video.json()["data"]["id"]},
                             headers=headers)
    assert bad_primary.status_code == 400


def test_gallery_delete_promotes_next_image(client, db_session, make_user, auth_headers):
    user = make_user(complete=False)
    other = make_user()
    headers = auth_headers(user)
    first = client.post("/api/users/me/gallery", json={"media_url": "https://img.test/1.jpg"},
                        headers=headers).json()["data"]
    second = client.post("/api/users/me/gallery", json={"media_url": "https://img.test/2.jpg"},
                         headers=headers).json()["data"]

    assert client.delete(f"/api/users/me/gallery/{first['id']}", headers=auth_headers(other)).status_code == 404
    assert client.delete(f"/api/users/me/gallery/{first['id']}", headers=headers).status_code == 200

    items = client.get("/api/users/me/gallery", headers=headers).json()["data"]["items"]
    assert [i["id"] for i in items] == [second["id"]]
    assert items[0]["is_primary"] is True

    client.delete(f"/api/users/me/gallery/{second['id']}", headers=headers)
    me = client.get("/api/users/me", headers=headers).json()["data"]
    assert me["profile"]["profile_image_url"] is None
    assert db_session.query(UserGallery).filter(UserGallery.user_id == user.id).count() == 0


def test_gallery_rejects_unknown_media_type(client, make_user, auth_headers):
    user = make_user()
    response = client.post("/api/users/me/gallery", json={"media_url": "https://img.test/a.gif",
                                                          "media_type": "gif"}, headers=auth_headers(user))
    assert response.status_code == 400
