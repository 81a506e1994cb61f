from datetime import datetime, timezone

from sqlmodel import select

from models import Match, Swipe, SwipeDecision


def swipe(client, user, name_id, action):
    return client.post("/swipe", json={
        "user_id": user.id,
        "name_id": name_id,
        "action": action,
    })


def test_fresh_user_sees_most_popular_name(client, users, add_names):
    joe, _ = users
    add_names("Smith", "Johnson", "Brown")
    response = client.get(f"/names/next/{joe.id}")
    assert response.status_code == 200
    assert response.json()["name"] == "Smith"


def test_swiped_names_are_never_offered_again(client, users, add_names):
    joe, _ = users
    names = add_names("Smith", "Johnson", "Brown", "Garcia")

    offered = []
    while True:
        response = client.get(f"/names/next/{joe.id}")
        candidate = response.json()
        if candidate is None:
            break
        offered.append(candidate["id"])
        assert swipe(client, joe, candidate["id"], "dislike").status_code == 200

    assert sorted(offered) == sorted(n.id for n in names)
    assert len(offered) == len(set(offered))


def test_swipes_by_one_user_do_not_hide_names_from_the_other(client, users, add_names):
    joe, sam = users
    smith, _ = add_names("Smith", "Johnson")
    swipe(client, joe, smith.id, "like")
    assert client.get(f"/names/next/{joe.id}").json()["name"] == "Johnson"
    assert client.get(f"/names/next/{sam.id}").json()["name"] == "Smith"


def test_exhausted_user_gets_null(client, users, add_names):
    joe, _ = users
    (smith,) = add_names("Smith")
    swipe(client, joe, smith.id, "like")
    response = client.get(f"/names/next/{joe.id}")
    assert response.status_code == 200
    assert response.json() is None


def test_uploaded_name_is_next_for_both_users(client, users, add_names):
    joe, sam = users
    add_names("Smith", "Johnson")
    response = client.post("/names", json={"name_text": "TestName123", "user_id": joe.id})
    assert response.status_code == 201

    for user in (joe, sam):
        assert client.get(f"/names/next/{user.id}").json()["name"] == "TestName123"


def test_newest_upload_comes_first(client, users):
    joe, _ = users
    client.post("/names", json={"name_text": "Older", "user_id": joe.id})
    client.post("/names", json={"name_text": "Newer", "user_id": joe.id})
    assert client.get(f"/names/next/{joe.id}").json()["name"] == "Newer"


def test_both_likes_make_exactly_one_match(client, session, users, add_names):
    joe, sam = users
    (smith,) = add_names("Smith")

    first = swipe(client, joe, smith.id, "like").json()
    assert first["is_match"] is False
    second = swipe(client, sam, smith.id, "like").json()
    assert second["is_match"] is True
    assert second["name"]["name"] == "Smith"
    assert sorted(second["match"]["users"]) == sorted([joe.id, sam.id])

    matches = session.exec(select(Match)).all()
    assert len(matches) == 1
    assert matches[0].name_id == smith.id


def test_match_is_independent_of_swipe_order(client, users, add_names):
    joe, sam = users
    (smith,) = add_names("Smith")
    swipe(client, sam, smith.id, "like")
    assert swipe(client, joe, smith.id, "like").json()["is_match"] is True

    for user in (joe, sam):
        matches = client.get(f"/matches/{user.id}").json()
        assert [m["name"] for m in matches] == ["Smith"]
        assert sorted(matches[0]["users"]) == sorted([joe.id, sam.id])


def test_one_sided_like_is_not_a_match(client, users, add_names):
    joe, sam = users
    (smith,) = add_names("Smith")
    swipe(client, joe, smith.id, "like")
    assert swipe(client, sam, smith.id, "dislike").json()["is_match"] is False
    assert client.get(f"/matches/{joe.id}").json() == []
    assert client.get("/matches").json() == []


def test_existing_match_row_does_not_undo_the_swipe(client, session, users, add_names):
    joe, sam = users
    (smith,) = add_names("Smith")
    low, high = sorted((joe.id, sam.id))
    session.add(Swipe(user_id=sam.id, name_id=smith.id, action=SwipeDecision.like))
    session.add(Match(name_id=smith.id, user1_id=low, user2_id=high))
    session.commit()

    response = swipe(client, joe, smith.id, "like")
    assert response.status_code == 200
    assert response.json()["is_match"] is True

    session.expire_all()
    assert len(session.exec(select(Match)).all()) == 1
    stored = session.exec(select(Swipe).where(Swipe.user_id == joe.id)).all()
    assert [s.name_id for s in stored] == [smith.id]


def test_naive_client_timestamp_is_stored_as_utc(client, session, users, add_names):
    joe, _ = users
    (smith,) = add_names("Smith")
    response = client.post("/swipe", json={
        "user_id": joe.id,
        "name_id": smith.id,
        "action": "like",
        "timestamp": "2024-01-01T12:00:00",
    })
    assert response.status_code == 200

    stored = session.exec(select(Swipe).where(Swipe.user_id == joe.id)).one()
    timestamp = stored.timestamp
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    assert timestamp == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_second_swipe_on_same_name_is_rejected(client, session, users, add_names):
    joe, _ = users
    (smith,) = add_names("Smith")
    assert swipe(client, joe, smith.id, "like").status_code == 200
    response = swipe(client, joe, smith.id, "dislike")
    assert response.status_code == 409

    rows = session.exec(select(Swipe).where(Swipe.user_id == joe.id)).all()
    assert len(rows) == 1


def test_swipe_on_missing_name_is_404(client, users):
    joe, _ = users
    assert swipe(client, joe, 9999, "like").status_code == 404


def test_swipe_rejects_unknown_action(client, users, add_names):
    joe, _ = users
    (smith,) = add_names("Smith")
    assert swipe(client, joe, smith.id, "superlike").status_code == 422


def test_add_name_validation(client, users):
    joe, _ = users
    assert client.post("/names", json={"name_text": "   ", "user_id": joe.id}).status_code == 422
    assert client.post("/names", json={"name_text": "Smith", "user_id": 9999}).status_code == 404

    created = client.post("/names", json={
        "name_text": "  Martinez ",
        "user_id": joe.id,
        "origin_text": "Spanish",
        "meaning_text": "Son of Martin",
        "gender_text": "neutral",
    })
    assert created.status_code == 201
    names = client.get("/names").json()
    assert names[0]["name"] == "Martinez"
    assert names[0]["origin"] == "Spanish"
    assert names[0]["is_user_uploaded"] is True

    duplicate = client.post("/names", json={"name_text": "martinez", "user_id": joe.id})
    assert duplicate.status_code == 409


def test_user_profile(client, users):
    joe, _ = users
    body = client.get(f"/users/{joe.id}").json()
    assert body["username"] == "joe"
    assert "password_hash" not in body
    assert client.get("/users/9999").status_code == 404
    assert [u["username"] for u in client.get("/users").json()] == ["joe", "sam"]


def test_api_key_is_enforced_when_configured(client, users, monkeypatch):
    monkeypatch.setenv("NAME_PICKER_API_KEY", "secret")
    assert client.get("/users").status_code == 401
    assert client.get("/users", headers={"apikey": "wrong"}).status_code == 401
    assert client.get("/users", headers={"apikey": "secret"}).status_code == 200
    assert client.get("/").status_code == 200
