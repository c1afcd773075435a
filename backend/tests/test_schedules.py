"""Schedule API tests."""

NEW_YORK = {
    "window_start_hour": 7,
    "window_end_hour": 10,
    "timezone_identifier": "America/New_York",
    "grace_period_minutes": 30,
}


def test_no_schedule_yet(client, auth_headers):
    headers = auth_headers("sched1@test.com")
    assert client.get("/users/me/schedule", headers=headers).status_code == 404


def test_put_schedule_reports_status(client, auth_headers):
    headers = auth_headers("sched2@test.com")
    # Test clock is 12:00 UTC on 2026-03-10, 08:00 in New York
    r = client.put("/users/me/schedule", headers=headers, json=NEW_YORK)
    assert r.status_code == 200
    body = r.json()
    assert body["in_window"] is True
    assert body["in_grace_period"] is False
    assert body["next_window_closes_at"].startswith("2026-03-10T14:30:00")
    assert body["next_reminder_at"].startswith("2026-03-10T13:30:00")
    assert body["active_days"] == [0, 1, 2, 3, 4, 5, 6]

    assert client.get("/users/me/schedule", headers=headers).json()["id"] == body["id"]


def test_replacing_schedule_keeps_one_active(client, auth_headers):
    headers = auth_headers("sched3@test.com")
    first = client.put("/users/me/schedule", headers=headers, json=NEW_YORK).json()
    second = client.put(
        "/users/me/schedule",
        headers=headers,
        json={**NEW_YORK, "window_start_hour": 18, "window_end_hour": 21, "active_days": [1, 1, 3]},
    ).json()
    assert second["id"] != first["id"]
    assert second["active_days"] == [1, 3]
    assert client.get("/users/me/schedule", headers=headers).json()["window_start_hour"] == 18


def test_invalid_schedules_rejected(client, auth_headers):
    headers = auth_headers("sched4@test.com")
    bad = [
        {**NEW_YORK, "timezone_identifier": "Mars/Olympus_Mons"},
        {**NEW_YORK, "window_start_hour": 10, "window_end_hour": 7},
        {**NEW_YORK, "active_days": []},
        {**NEW_YORK, "active_days": [7]},
    ]
    for payload in bad:
        assert client.put("/users/me/schedule", headers=headers, json=payload).status_code == 400
    assert client.get("/users/me/schedule", headers=headers).status_code == 404
