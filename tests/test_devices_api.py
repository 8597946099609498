"""Device API tests — inventory and participant assignment."""

import pytest


@pytest.fixture
async def participant(client):
    event = (await client.post("/api/events", json={
        "name": "Hill Climb", "startDate": "2024-06-01T09:00:00Z",
        "endDate": "2024-06-01T12:00:00Z", "location": "Twin Peaks",
    })).json()
    resp = await client.post("/api/participants", json={
        "number": 7, "name": "Dee", "eventId": event["id"],
    })
    return resp.json()


async def add_device(client, name, type_="GPS", **fields):
    resp = await client.post("/api/devices", json={
        "name": name, "type": type_, "serialNumber": f"SN-{name}", **fields,
    })
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_create_device_defaults(client):
    device = await add_device(client, "Tracker A")
    assert device["status"] == "available"
    assert device["assignedTo"] is None
    assert device["serialNumber"] == "SN-Tracker A"


@pytest.mark.asyncio
async def test_device_battery_bounds(client):
    resp = await client.post("/api/devices", json={
        "name": "X", "type": "GPS", "serialNumber": "SN-X", "batteryLevel": 140,
    })
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_get_device_and_404(client):
    device = await add_device(client, "Tracker A")
    assert (await client.get(f"/api/devices/{device['id']}")).json()["name"] == "Tracker A"
    assert (await client.get("/api/devices/50")).status_code == 404


@pytest.mark.asyncio
async def test_devices_by_type_is_case_insensitive(client):
    await add_device(client, "A", "GPS")
    await add_device(client, "B", "Wearable")
    await add_device(client, "C", "gps")

    resp = await client.get("/api/devices/type/GPS")
    assert sorted(d["name"] for d in resp.json()) == ["A", "C"]


@pytest.mark.asyncio
async def test_update_device_is_partial(client):
    device = await add_device(client, "A", batteryLevel=90)
    resp = await client.put(f"/api/devices/{device['id']}", json={"status": "maintenance"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "maintenance"
    assert resp.json()["batteryLevel"] == 90


@pytest.mark.asyncio
async def test_assign_and_unassign(client, participant):
    device = await add_device(client, "A")

    resp = await client.post(f"/api/devices/{device['id']}/assign/{participant['id']}")
    assert resp.status_code == 200
    assert resp.json()["status"] == "assigned"
    assert resp.json()["assignedTo"] == participant["id"]

    resp = await client.get(f"/api/participants/{participant['id']}/device")
    assert resp.json()["id"] == device["id"]
    assert (await client.get("/api/devices/unassigned")).json() == []

    resp = await client.post(f"/api/devices/{device['id']}/unassign")
    assert resp.json()["status"] == "available"
    assert resp.json()["assignedTo"] is None

    resp = await client.get(f"/api/participants/{participant['id']}/device")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_assign_releases_previous_device(client, participant):
    """A participant carries one device; assigning another frees the first."""
    first = await add_device(client, "A")
    second = await add_device(client, "B")

    await client.post(f"/api/devices/{first['id']}/assign/{participant['id']}")
    await client.post(f"/api/devices/{second['id']}/assign/{participant['id']}")

    first = (await client.get(f"/api/devices/{first['id']}")).json()
    assert first["status"] == "available"
    assert first["assignedTo"] is None

    unassigned = (await client.get("/api/devices/unassigned")).json()
    assert [d["name"] for d in unassigned] == ["A"]


@pytest.mark.asyncio
async def test_assign_unknown_device_or_participant_404(client, participant):
    device = await add_device(client, "A")
    assert (await client.post(f"/api/devices/99/assign/{participant['id']}")).status_code == 404
    assert (await client.post(f"/api/devices/{device['id']}/assign/99")).status_code == 404
    assert (await client.post("/api/devices/99/unassign")).status_code == 404
