"""Tracking and alert API tests.

Learn: The invariants under test here:
1. A point is stored before it is broadcast — and never broadcast if it
   could not be stored.
2. hasAlert=true always carries an open alert type.
3. Resolution is monotonic: resolving twice succeeds, changes nothing the
   second time, and never produces "sos-resolved-resolved".
"""

import pytest


@pytest.fixture
async def rider(client):
    event = (await client.post("/api/events", json={
        "name": "Alpine Sprint", "startDate": "2024-08-01T07:00:00Z",
        "endDate": "2024-08-01T11:00:00Z", "location": "Tahoe", "status": "active",
    })).json()
    resp = await client.post("/api/participants", json={
        "number": 4, "name": "Hal", "eventId": event["id"], "status": "active",
    })
    return resp.json()


def position(rider, lat=39.10, lng=-120.03, **fields):
    return {
        "participantId": rider["id"],
        "eventId": rider["eventId"],
        "location": {"lat": lat, "lng": lng},
        **fields,
    }


# ═══════════════════════════════════════════════════════════
# Submitting points
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_submit_point_assigns_id_and_timestamp(client, rider):
    resp = await client.post("/api/tracking", json=position(rider, speed=12.5, battery=88))
    assert resp.status_code == 201
    point = resp.json()
    assert point["id"] == 1
    assert point["timestamp"]
    assert point["hasAlert"] is False
    assert point["alertType"] is None
    assert point["battery"] == 88


@pytest.mark.asyncio
async def test_submitted_point_is_broadcast_and_fetchable(client, app, rider, viewer):
    """Anything a viewer sees live can be fetched from history right away."""
    point = (await client.post("/api/tracking", json=position(rider))).json()
    await app.state.hub.flush()

    [message] = viewer.messages()
    assert message["type"] == "position_update"
    assert message["data"]["id"] == point["id"]

    history = (await client.get(f"/api/participants/{rider['id']}/tracking")).json()
    assert [p["id"] for p in history] == [point["id"]]


@pytest.mark.asyncio
async def test_unknown_participant_rejected_without_broadcast(client, app, rider, viewer):
    resp = await client.post("/api/tracking", json={**position(rider), "participantId": 404})
    assert resp.status_code == 422
    await app.state.hub.flush()
    assert viewer.sent == []


@pytest.mark.asyncio
@pytest.mark.parametrize("fields", [
    {"hasAlert": True},
    {"hasAlert": True, "alertType": "sos-resolved"},
    {"hasAlert": False, "alertType": "sos"},
    {"alertType": "fire"},
    {"battery": 101},
    {"speed": -3},
])
async def test_invalid_points_rejected(client, app, rider, viewer, fields):
    resp = await client.post("/api/tracking", json=position(rider, **fields))
    assert resp.status_code == 422
    await app.state.hub.flush()
    assert viewer.sent == []


@pytest.mark.asyncio
async def test_out_of_range_coordinates_rejected(client, rider):
    resp = await client.post("/api/tracking", json=position(rider, lat=91.0))
    assert resp.status_code == 422


# ═══════════════════════════════════════════════════════════
# History
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_history_newest_first_with_limit(client, rider):
    for minute in (5, 0, 10):
        await client.post("/api/tracking", json=position(
            rider, timestamp=f"2024-08-01T07:{minute:02d}:00Z",
        ))

    history = (await client.get(f"/api/participants/{rider['id']}/tracking")).json()
    assert [p["timestamp"][14:16] for p in history] == ["10", "05", "00"]

    limited = (await client.get(f"/api/participants/{rider['id']}/tracking", params={"limit": 2})).json()
    assert len(limited) == 2
    assert limited[0]["timestamp"][14:16] == "10"


@pytest.mark.asyncio
async def test_history_limit_bounds(client, rider):
    resp = await client.get(f"/api/participants/{rider['id']}/tracking", params={"limit": 0})
    assert resp.status_code == 422


# ═══════════════════════════════════════════════════════════
# Alerts
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_active_alerts_one_per_participant(client, rider):
    await client.post("/api/tracking", json=position(
        rider, hasAlert=True, alertType="low-battery", timestamp="2024-08-01T07:00:00Z",
    ))
    await client.post("/api/tracking", json=position(
        rider, hasAlert=True, alertType="low-battery", timestamp="2024-08-01T07:00:05Z",
    ))

    alerts = (await client.get(f"/api/events/{rider['eventId']}/alerts")).json()
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert["participantName"] == "Hal"
    assert alert["participantNumber"] == 4
    assert alert["alertType"] == "low-battery"
    assert alert["trackingPointId"] == 2


@pytest.mark.asyncio
async def test_resolve_alert(client, app, rider, viewer):
    point = (await client.post("/api/tracking", json=position(rider, hasAlert=True, alertType="sos"))).json()
    await app.state.hub.flush()
    viewer.sent.clear()

    resp = await client.post(f"/api/tracking/{point['id']}/resolve-alert")
    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    await app.state.hub.flush()
    assert viewer.messages() == [{"type": "alert", "data": {"id": point["id"], "resolved": True}}]

    [stored] = (await client.get(f"/api/participants/{rider['id']}/tracking")).json()
    assert stored["hasAlert"] is False
    assert stored["alertType"] == "sos-resolved"
    assert (await client.get(f"/api/events/{rider['eventId']}/alerts")).json() == []


@pytest.mark.asyncio
async def test_resolve_alert_twice_is_idempotent(client, app, rider, viewer):
    point = (await client.post("/api/tracking", json=position(rider, hasAlert=True, alertType="sos"))).json()
    await client.post(f"/api/tracking/{point['id']}/resolve-alert")
    await app.state.hub.flush()
    viewer.sent.clear()

    resp = await client.post(f"/api/tracking/{point['id']}/resolve-alert")
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    await app.state.hub.flush()
    assert viewer.sent == []

    [stored] = (await client.get(f"/api/participants/{rider['id']}/tracking")).json()
    assert stored["alertType"] == "sos-resolved"


@pytest.mark.asyncio
async def test_resolve_point_without_alert(client, app, rider, viewer):
    point = (await client.post("/api/tracking", json=position(rider))).json()
    await app.state.hub.flush()
    viewer.sent.clear()

    resp = await client.post(f"/api/tracking/{point['id']}/resolve-alert")
    assert resp.json()["success"] is True
    await app.state.hub.flush()
    assert viewer.sent == []


@pytest.mark.asyncio
async def test_resolve_unknown_point_404(client):
    resp = await client.post("/api/tracking/123/resolve-alert")
    assert resp.status_code == 404
