"""Pokes tests."""

from datetime import timedelta

from heykin.models.enums import Channel
from heykin.services.checkin_service import record_checkin
from heykin.services.poke_service import send_poke, unseen_count


def _me(client, headers):
    return client.get("/auth/me", headers=headers).json()


def test_supporter_pokes_checker(client, auth_headers, providers):
    checker = auth_headers("pk1@test.com", "Maria", phone_number="+15550000000")
    supporter = auth_headers("pk2@test.com", "Sam", is_checker=False)
    client.post("/circle/members", headers=checker, json={"supporter_email": "pk2@test.com", "alert_via_sms": True})
    checker_id = _me(client, checker)["id"]

    r = client.post("/pokes", headers=supporter, json={"to_user_id": checker_id, "message": "Call me?"})
    assert r.status_code == 201
    assert r.json()["notified_via"] == ["push", "sms"]
    assert providers.push.recipients() == [checker_id]
    [(_, content)] = providers.push.calls
    assert content.title == "Sam sent you a poke"
    assert content.data["type"] == "poke"

    inbox = client.get("/pokes", headers=checker).json()
    assert [(p["from_name"], p["message"]) for p in inbox] == [("Sam", "Call me?")]
    assert client.get("/pokes/unseen/count", headers=checker).json() == {"count": 1}

    # Only the recipient can mark it seen
    assert client.post(f"/pokes/{inbox[0]['id']}/seen", headers=supporter).status_code == 404
    seen = client.post(f"/pokes/{inbox[0]['id']}/seen", headers=checker)
    assert seen.status_code == 200
    assert seen.json()["seen_at"] is not None
    assert client.get("/pokes/unseen/count", headers=checker).json() == {"count": 0}


def test_poke_requires_permission(client, auth_headers):
    checker = auth_headers("pk3@test.com")
    supporter = auth_headers("pk4@test.com")
    stranger = auth_headers("pk5@test.com")
    link_id = client.post("/circle/members", headers=checker, json={"supporter_email": "pk4@test.com"}).json()["id"]
    checker_id = _me(client, checker)["id"]
    supporter_id = _me(client, supporter)["id"]

    assert client.post("/pokes", headers=stranger, json={"to_user_id": checker_id}).status_code == 403
    # Links are directed: the checker does not support their supporter
    assert client.post("/pokes", headers=checker, json={"to_user_id": supporter_id}).status_code == 403

    client.patch(f"/circle/members/{link_id}", headers=checker, json={"can_poke": False})
    assert client.post("/pokes", headers=supporter, json={"to_user_id": checker_id}).status_code == 403
    assert client.get("/pokes", headers=checker).json() == []


def test_mark_all_seen(client, auth_headers):
    checker = auth_headers("pk6@test.com")
    supporter = auth_headers("pk7@test.com")
    client.post("/circle/members", headers=checker, json={"supporter_email": "pk7@test.com"})
    checker_id = _me(client, checker)["id"]
    for _ in range(3):
        client.post("/pokes", headers=supporter, json={"to_user_id": checker_id})

    assert client.get("/pokes/unseen/count", headers=checker).json() == {"count": 3}
    assert client.post("/pokes/seen/all", headers=checker).json() == {"count": 0}
    assert len(client.get("/pokes?limit=2", headers=checker).json()) == 2


def test_failed_delivery_still_stores_poke(db, make_user, link, providers, clock):
    checker = make_user("Checker")
    supporter = make_user("Supporter")
    link(checker, supporter, alert_via_email=True)
    providers.push.fail_always("provider-error")

    poke, delivered = send_poke(db, supporter, checker.id, None, providers, clock)
    assert delivered == [Channel.EMAIL]
    assert poke.id is not None
    assert poke.message is None
    assert unseen_count(db, checker.id) == 1


def test_checkin_answers_pokes(db, make_user, link, providers, clock):
    checker = make_user("Checker")
    supporter = make_user("Supporter")
    link(checker, supporter)
    poke, _ = send_poke(db, supporter, checker.id, "You up?", providers, clock)
    assert poke.responded_at is None

    clock.advance(timedelta(minutes=20))
    record_checkin(db, checker, 4, 4, 4, clock=clock)
    db.refresh(poke)
    assert poke.responded_at == clock.now()
