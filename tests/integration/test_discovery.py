"""
Discovery, match actions, blocks and favorites.
"""

from datetime import timedelta

from realsingles.db.models import Block, Conversation, Match, Notification, utcnow


def make_pair(make_user):
    """A woman seeking men and a man seeking women."""
    her = make_user(display_name="Ava", gender="female", looking_for=("male",))
    him = make_user(display_name="Ben", gender="male", looking_for=("female",))
    return her, him


def test_discover_returns_compatible_candidates(client, make_user, auth_headers):
    her, him = make_pair(make_user)
    make_user(display_name="Cleo", gender="female", looking_for=("male",))

    response = client.get("/api/discover", headers=auth_headers(her))
    assert response.status_code == 200
    data = response.json()["data"]
    assert [p["user_id"] for p in data["profiles"]] == [str(him.id)]
    assert data["total"] == 1
    assert data["empty_reason"] is None
    assert "debug" not in data


def test_discover_excludes_blocked_and_acted(client, db_session, make_user, auth_headers):
    her, him = make_pair(make_user)
    other = make_user(display_name="Dan", gender="male", looking_for=("female",))
    db_session.add(Block(blocker_id=him.id, blocked_id=her.id))
    db_session.add(Match(user_id=her.id, target_user_id=other.id, action="pass"))
    db_session.commit()

    data = client.get("/api/discover", headers=auth_headers(her)).json()["data"]
    assert data["profiles"] == []
    assert data["empty_reason"] == "no_matches"


def test_discover_incomplete_profile(client, make_user, auth_headers):
    user = make_user(complete=False)
    data = client.get("/api/discover", headers=auth_headers(user)).json()["data"]
    assert data["empty_reason"] == "incomplete_profile"


def test_discover_debug_is_admin_only(client, make_user, auth_headers):
    member = make_user()
    admin = make_user(role="admin")

    member_data = client.get("/api/discover?debug=true", headers=auth_headers(member)).json()["data"]
    admin_data = client.get("/api/discover?debug=true", headers=auth_headers(admin)).json()["data"]
    assert "debug" not in member_data
    assert "excluded" in admin_data["debug"]


def test_discover_rejects_bad_limit(client, make_user, auth_headers):
    user = make_user()
    assert client.get("/api/discover?limit=0", headers=auth_headers(user)).status_code == 400


def test_top_matches_have_scores(client, make_user, auth_headers):
    her, him = make_pair(make_user)
    response = client.get("/api/discover/top-matches", headers=auth_headers(her))
    profiles = response.json()["data"]["profiles"]
    assert profiles[0]["user_id"] == str(him.id)
    assert 0 < profiles[0]["compatibility"]["total"] <= 100


def test_mutual_like_creates_match_and_conversation(client, db_session, make_user, auth_headers):
    her, him = make_pair(make_user)

    first = client.post("/api/matches", json={"target_user_id": str(him.id), "action": "like"},
                        headers=auth_headers(her))
    assert first.json()["data"]["is_mutual"] is False

    likes = client.get("/api/matches/likes", headers=auth_headers(him)).json()["data"]
    assert [l["user_id"] for l in likes["likes"]] == [str(her.id)]

    second = client.post("/api/matches", json={"target_user_id": str(her.id), "action": "super_like"},
                         headers=auth_headers(him))
    body = second.json()
    assert body["data"]["is_mutual"] is True
    assert body["msg"] == "It's a match!"
    assert body["data"]["conversation_id"]

    assert db_session.query(Conversation).count() == 1
    assert db_session.query(Notification).filter(Notification.type == "match").count() == 2

    matches = client.get("/api/matches", headers=auth_headers(her)).json()["data"]["matches"]
    assert matches[0]["user_id"] == str(him.id)
    assert matches[0]["conversation_id"] == body["data"]["conversation_id"]


def test_match_action_validation(client, make_user, auth_headers):
    her, him = make_pair(make_user)
    headers = auth_headers(her)

    assert client.post("/api/matches", json={"target_user_id": str(her.id), "action": "like"},
                       headers=headers).status_code == 400
    assert client.post("/api/matches", json={"target_user_id": str(him.id), "action": "wink"},
                       headers=headers).status_code == 400


def test_blocked_pair_cannot_interact(client, make_user, auth_headers):
    her, him = make_pair(make_user)
    assert client.post("/api/blocks", json={"blocked_id": str(him.id)},
                       headers=auth_headers(her)).status_code == 200

    response = client.post("/api/matches", json={"target_user_id": str(her.id), "action": "like"},
                           headers=auth_headers(him))
    assert response.status_code == 403


def test_undo_recent_action(client, make_user, auth_headers):
    her, him = make_pair(make_user)
    headers = auth_headers(her)
    client.post("/api/matches", json={"target_user_id": str(him.id), "action": "pass"}, headers=headers)

    last = client.get("/api/matches/undo", headers=headers).json()["data"]
    assert last["action"]["action"] == "pass"

    undone = client.post("/api/matches/undo", json={"target_user_id": str(him.id)}, headers=headers)
    assert undone.json()["data"]["undone_action"] == "pass"
    assert client.get("/api/matches/undo", headers=headers).json()["data"] == {"action": None}


def test_undo_window_expired(client, db_session, make_user, auth_headers):
    her, him = make_pair(make_user)
    db_session.add(Match(user_id=her.id, target_user_id=him.id, action="pass",
                         created_at=utcnow() - timedelta(minutes=30)))
    db_session.commit()

    response = client.post("/api/matches/undo", json={"target_user_id": str(him.id)},
                           headers=auth_headers(her))
    assert response.status_code == 400


def test_unmatch_archives_conversation(client, db_session, make_user, auth_headers):
    her, him = make_pair(make_user)
    client.post("/api/matches", json={"target_user_id": str(him.id), "action": "like"}, headers=auth_headers(her))
    client.post("/api/matches", json={"target_user_id": str(her.id), "action": "like"}, headers=auth_headers(him))

    response = client.delete(f"/api/matches/{him.id}", headers=auth_headers(her))
    assert response.status_code == 200

    db_session.expire_all()
    assert db_session.query(Conversation).one().status == "archived"
    assert client.get("/api/matches", headers=auth_headers(her)).json()["data"]["matches"] == []
    assert client.delete(f"/api/matches/{him.id}", headers=auth_headers(her)).status_code == 404


def test_block_lifecycle(client, make_user, auth_headers):
    her, him = make_pair(make_user)
    headers = auth_headers(her)

    assert client.post("/api/blocks", json={"blocked_id": str(her.id)}, headers=headers).status_code == 400
    client.post("/api/blocks", json={"blocked_id": str(him.id)}, headers=headers)
    again = client.post("/api/blocks", json={"blocked_id": str(him.id)}, headers=headers)
    assert again.json()["msg"] == "Already blocked"

    assert len(client.get("/api/blocks", headers=headers).json()["data"]) == 1
    assert client.delete(f"/api/blocks/{him.id}", headers=headers).status_code == 200
    assert client.delete(f"/api/blocks/{him.id}", headers=headers).status_code == 404


def test_favorites_are_idempotent(client, make_user, auth_headers):
    her, him = make_pair(make_user)
    headers = auth_headers(her)

    assert client.post("/api/favorites", json={"favorite_user_id": str(him.id)},
                       headers=headers).json()["msg"] == "Added to favorites"
    assert client.post("/api/favorites", json={"favorite_user_id": str(him.id)},
                       headers=headers).json()["msg"] == "Already favorited"

    favorites = client.get("/api/favorites", headers=headers).json()["data"]
    assert favorites["total"] == 1

    detail = client.get(f"/api/users/{him.id}", headers=headers).json()["data"]
    assert detail["is_favorite"] is True

    assert client.delete(f"/api/favorites/{him.id}", headers=headers).status_code == 200
    assert client.delete(f"/api/favorites/{him.id}", headers=headers).status_code == 200


def _like_each_other(db_session, a, b, when):
    db_session.add_all([
        Match(user_id=a.id, target_user_id=b.id, action="like", created_at=when),
        Match(user_id=b.id, target_user_id=a.id, action="like", created_at=when),
    ])
    db_session.commit()


def test_match_page_skips_suspended_before_paging(client, db_session, make_user, auth_headers):
    her, him = make_pair(make_user)
    gone = make_user(display_name="Dan", gender="male", looking_for=("female",), status="suspended")
    _like_each_other(db_session, her, him, utcnow() - timedelta(days=2))
    _like_each_other(db_session, her, gone, utcnow() - timedelta(hours=1))

    matches = client.get("/api/matches?limit=1", headers=auth_headers(her)).json()["data"]["matches"]
    assert [m["user_id"] for m in matches] == [str(him.id)]


def test_likes_page_skips_suspended_before_paging(client, db_session, make_user, auth_headers):
    her, him = make_pair(make_user)
    gone = make_user(display_name="Dan", gender="male", looking_for=("female",), status="suspended")
    db_session.add_all([
        Match(user_id=him.id, target_user_id=her.id, action="like", created_at=utcnow() - timedelta(days=1)),
        Match(user_id=gone.id, target_user_id=her.id, action="super_like"),
    ])
    db_session.commit()

    likes = client.get("/api/matches/likes?limit=1", headers=auth_headers(her)).json()["data"]["likes"]
    assert [l["user_id"] for l in likes] == [str(him.id)]


def test_likes_sent_lists_unreturned_likes(client, db_session, make_user, auth_headers):
    her, him = make_pair(make_user)
    dan = make_user(display_name="Dan", gender="male", looking_for=("female",))
    eli = make_user(display_name="Eli", gender="male", looking_for=("female",))
    db_session.add_all([
        Match(user_id=her.id, target_user_id=him.id, action="like", created_at=utcnow() - timedelta(hours=2)),
        Match(user_id=her.id, target_user_id=dan.id, action="super_like", created_at=utcnow() - timedelta(days=1)),
        Match(user_id=her.id, target_user_id=eli.id, action="like"),
        Match(user_id=eli.id, target_user_id=her.id, action="like"),
    ])
    db_session.commit()
    headers = auth_headers(her)

    data = client.get("/api/matches/likes-sent", headers=headers).json()["data"]
    assert [l["display_name"] for l in data["likes"]] == ["Dan", "Ben"]
    assert data["likes"][0]["is_super_like"] is True
    assert data["total"] == 2

    plain = client.get("/api/matches/likes-sent?include_super=false", headers=headers).json()["data"]
    assert [l["display_name"] for l in plain["likes"]] == ["Ben"]

    assert client.get("/api/matches/likes-sent?limit=51", headers=headers).status_code == 400
