"""Check-ins API tests."""

from datetime import timedelta

SCORES = {"mental_score": 4, "body_score": 3, "mood_score": 5}


def test_checkin_and_read_back(client, auth_headers):
    headers = auth_headers("c1@test.com", "Cora")
    r = client.post("/checkins", headers=headers, json={**SCORES, "address": "12 Elm St"})
    assert r.status_code == 201
    body = r.json()
    assert body["alerts_resolved"] == 0
    assert body["is_manual"] is True

    today = client.get("/checkins/today", headers=headers)
    assert today.status_code == 200
    assert today.json()["id"] == body["id"]
    assert client.get("/auth/me", headers=headers).json()["last_known_address"] == "12 Elm St"


def test_no_checkin_today_returns_null(client, auth_headers):
    headers = auth_headers("c2@test.com")
    r = client.get("/checkins/today", headers=headers)
    assert r.status_code == 200
    assert r.json() is None


def test_update_today(client, auth_headers):
    headers = auth_headers("c3@test.com")
    assert client.put("/checkins/today", headers=headers, json={"mood_score": 2}).status_code == 404

    client.post("/checkins", headers=headers, json=SCORES)
    r = client.put("/checkins/today", headers=headers, json={"mood_score": 2})
    assert r.status_code == 200
    assert r.json()["mood_score"] == 2
    assert r.json()["mental_score"] == 4


def test_yesterdays_checkin_is_read_only(client, auth_headers, clock):
    headers = auth_headers("c4@test.com")
    client.post("/checkins", headers=headers, json=SCORES)
    clock.advance(timedelta(days=1))
    assert client.put("/checkins/today", headers=headers, json={"mood_score": 1}).status_code == 404


def test_scores_validated(client, auth_headers):
    headers = auth_headers("c5@test.com")
    r = client.post("/checkins", headers=headers, json={**SCORES, "mood_score": 6})
    assert r.status_code == 422


def test_supporter_only_account_cannot_check_in(client, auth_headers):
    headers = auth_headers("s@test.com", is_checker=False)
    assert client.post("/checkins", headers=headers, json=SCORES).status_code == 403


def test_stats_streak(client, auth_headers, clock):
    headers = auth_headers("c6@test.com")
    client.post("/checkins", headers=headers, json={"mental_score": 2, "body_score": 2, "mood_score": 2})
    clock.advance(timedelta(days=1))
    client.post("/checkins", headers=headers, json={"mental_score": 4, "body_score": 4, "mood_score": 4})

    stats = client.get("/checkins/stats", headers=headers).json()
    assert stats["total"] == 2
    assert stats["current_streak"] == 2
    assert stats["average_mood"] == 3.0

    history = client.get("/checkins", headers=headers).json()
    assert [c["mood_score"] for c in history] == [4, 2]
