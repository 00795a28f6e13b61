"""Tests for user, session and invitation endpoints."""
from uuid import uuid4

from karaoke.services.change_feed import INSERT

from api_helpers import create_user, create_session


async def test_user_profile(client):
    user, headers = await create_user(client, "  Freddie  ")
    assert user["display_name"] == "Freddie"
    assert user["avatar_emoji"] == "🎤"

    me = await client.get("/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]

    beat = await client.post("/users/me/heartbeat", headers=headers)
    assert beat.status_code == 200


async def test_identity_required(client):
    assert (await client.get("/users/me")).status_code == 401
    assert (await client.get("/users/me", headers={"X-User-Id": "not-a-uuid"})).status_code == 401
    assert (await client.get("/users/me", headers={"X-User-Id": str(uuid4())})).status_code == 401


async def test_blank_display_name(client):
    response = await client.post("/users", json={"display_name": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please enter a display name"


async def test_create_and_join_session(client, feed, recorder):
    host, host_headers = await create_user(client, "Host")
    guest, guest_headers = await create_user(client, "Guest")
    session = await create_session(client, host_headers)
    assert session["host_id"] == host["id"]

    state = await client.post(f"/sessions/{session['code'].lower()}/join", headers=guest_headers)
    assert state.status_code == 200
    body = state.json()
    assert body["meta"]["id"] == session["id"]
    assert body["participant_count"] == 2
    assert [p["display_name"] for p in body["participants"]] == ["Host", "Guest"]

    # Joining again changes nothing
    again = await client.post(f"/sessions/{session['code']}/join", headers=guest_headers)
    assert again.json()["participant_count"] == 2
    joins = [e for e in recorder if e.table == "session_participants" and e.event_type == INSERT]
    assert len(joins) == 2


async def test_unknown_code(client):
    response = await client.get("/sessions/ZZZZ9999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Invalid session code"


async def test_leave_and_close(client):
    _, host_headers = await create_user(client, "Host")
    _, guest_headers = await create_user(client, "Guest")
    session = await create_session(client, host_headers)
    code = session["code"]
    await client.post(f"/sessions/{code}/join", headers=guest_headers)

    assert (await client.post(f"/sessions/{code}/leave", headers=guest_headers)).status_code == 204
    participants = await client.get(f"/sessions/{code}/participants")
    assert len(participants.json()) == 1

    assert (await client.post(f"/sessions/{code}/close", headers=guest_headers)).status_code == 403
    closed = await client.post(f"/sessions/{code}/close", headers=host_headers)
    assert closed.status_code == 200
    assert closed.json()["is_active"] is False
    assert (await client.get(f"/sessions/{code}")).status_code == 404


async def test_share_link(client):
    _, headers = await create_user(client)
    session = await create_session(client, headers)

    response = await client.get(f"/sessions/{session['code']}/link")
    assert response.json() == {"code": session["code"], "url": f"https://karaoke.test/join/{session['code']}"}


async def test_invitation_redeem_joins_session(client):
    host, host_headers = await create_user(client, "Host")
    _, guest_headers = await create_user(client, "Guest")
    _, late_headers = await create_user(client, "Late")
    session = await create_session(client, host_headers)

    created = await client.post(
        f"/sessions/{session['code']}/invitations",
        json={"uses_remaining": 1},
        headers=host_headers,
    )
    assert created.status_code == 201
    invitation = created.json()
    assert invitation["url"].endswith(f"/join/{session['code']}")

    redeemed = await client.post(f"/invitations/{invitation['invitation_code']}/redeem", headers=guest_headers)
    assert redeemed.status_code == 200
    assert redeemed.json()["session"]["id"] == session["id"]
    assert redeemed.json()["invitation"]["uses_remaining"] == 0

    participants = (await client.get(f"/sessions/{session['code']}/participants")).json()
    assert [p["display_name"] for p in participants] == ["Host", "Guest"]

    exhausted = await client.post(f"/invitations/{invitation['invitation_code']}/redeem", headers=late_headers)
    assert exhausted.status_code == 410


async def test_outsider_cannot_invite(client):
    _, host_headers = await create_user(client, "Host")
    _, outsider_headers = await create_user(client, "Outsider")
    session = await create_session(client, host_headers)

    response = await client.post(f"/sessions/{session['code']}/invitations", json={}, headers=outsider_headers)
    assert response.status_code == 403


async def test_device_context(client, context_store):
    user, _ = await create_user(client)
    assert (await client.get("/context/device-1")).status_code == 404

    saved = await client.put("/context/device-1", json={"user_id": user["id"]})
    assert saved.status_code == 200
    loaded = await client.get("/context/device-1")
    assert loaded.json() == {"user_id": user["id"], "session_id": None}

    assert (await client.delete("/context/device-1")).status_code == 204
    assert "device-1" not in context_store.saved
