from __future__ import annotations

from conftest import CALLER_ID


def test_voice_webhook_returns_outbound_twiml(client):
    resp = client.post("/api/v1/phone/voice", data={"To": "client:alice", "From": "client:browser"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/xml")
    assert "<Client>alice</Client>" in resp.text
    assert f'callerId="{CALLER_ID}"' in resp.text


def test_make_call_then_status_callbacks(client, carrier):
    resp = client.post(
        "/api/v1/phone/call?baseUrl=https://hooks.example.test",
        json={"to": "+15559876543", "from": "+15551234567"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    call_sid = body["call"]["call_sid"]
    assert body["call"]["status"] == "initiated"
    assert body["call"]["direction"] == "browser-to-phone"
    assert carrier.created[0]["url"] == "https://hooks.example.test/api/v1/phone/voice"

    resp = client.post("/api/v1/phone/call-status", data={"CallSid": call_sid, "CallStatus": "ringing"})
    assert resp.json() == {"received": True}

    calls = client.get("/api/v1/phone/calls").json()
    assert [c["call_sid"] for c in calls["calls"]] == [call_sid]
    assert calls["statistics"]["callsByStatus"] == {"ringing": 1}

    ringing = client.get("/api/v1/phone/calls/status/ringing").json()
    assert [c["call_sid"] for c in ringing] == [call_sid]

    client.post(
        "/api/v1/phone/call-status",
        data={"CallSid": call_sid, "CallStatus": "completed", "Duration": "12"},
    )
    stats = client.get("/api/v1/phone/statistics").json()
    assert stats == {
        "totalActiveCalls": 0,
        "callsByStatus": {},
        "callsByType": {},
        "averageCallDuration": 0.0,
    }


def test_make_call_rejects_invalid_destination(client):
    resp = client.post("/api/v1/phone/call", json={"to": "+0", "from": "+15551234567"})

    assert resp.status_code == 400
    assert "Invalid destination" in resp.json()["detail"]


def test_make_call_without_destination_is_a_bad_request(client, carrier):
    resp = client.post("/api/v1/phone/call", json={"from": "+15551234567"})

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Both to and from parameters are required"}
    assert carrier.created == []


def test_make_call_maps_rate_limit_to_429(client):
    payload = {"to": "+15559876543", "from": "+15551234567"}
    for _ in range(5):
        assert client.post("/api/v1/phone/call", json=payload).status_code == 200

    resp = client.post("/api/v1/phone/call", json=payload)

    assert resp.status_code == 429
    assert "Too many call attempts" in resp.json()["detail"]


def test_status_webhook_without_call_sid_is_acknowledged(client):
    resp = client.post("/api/v1/phone/call-status", data={"CallStatus": "completed"})

    assert resp.status_code == 200
    assert resp.json() == {"received": True}


def test_incoming_and_dial_status_webhooks(client):
    resp = client.post(
        "/api/v1/phone/incoming",
        data={"CallSid": "CAin", "From": "+15557778888", "To": CALLER_ID},
    )
    assert resp.headers["content-type"].startswith("text/xml")
    assert "<Client>user</Client>" in resp.text
    assert "/api/v1/phone/dial-status" in resp.text

    resp = client.post("/api/v1/phone/dial-status", data={"CallSid": "CAin", "DialCallStatus": "busy"})
    assert "could not be completed" in resp.text

    details = client.get("/api/v1/phone/calls/CAin").json()
    assert details["direction"] == "phone-to-browser"


def test_call_details_not_found(client):
    resp = client.get("/api/v1/phone/calls/CAmissing")

    assert resp.status_code == 404


def test_unknown_status_filter_is_rejected(client):
    assert client.get("/api/v1/phone/calls/status/exploded").status_code == 400


def test_end_call(client, carrier):
    call_sid = client.post(
        "/api/v1/phone/call", json={"to": "+15559876543", "from": "+15551234567"}
    ).json()["call"]["call_sid"]

    resp = client.post(f"/api/v1/phone/calls/{call_sid}/end")

    assert resp.json() == {"success": True, "call_sid": call_sid}
    assert carrier.updated == [(call_sid, "completed")]


def test_token_health_and_config(client):
    assert client.get("/api/v1/phone/token?identity=alice").json() == {
        "token": "token-for-alice",
        "identity": "alice",
    }
    health = client.get("/api/v1/phone/health").json()
    assert health["status"] == "healthy"
    assert client.get("/api/v1/phone/config").json() == {"phone_number": CALLER_ID}
