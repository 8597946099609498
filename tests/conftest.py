"""Test fixtures — a fresh app, store and hub per test.

Learn: Testing pattern for the in-memory store + broadcast hub:

1. Every test builds its own app via create_app(Settings(...)) with the
   simulator and demo data switched off, so nothing moves unless the test
   moves it.
2. REST goes through httpx's ASGITransport — no server, same event loop
   as the test, so the test can also reach into app.state.hub.
3. Subscribers are FakeConnection objects: they record every frame the
   hub's writer tasks hand them. await hub.flush() waits until every
   queued frame has been delivered.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from trackpro.config import Settings
from trackpro.main import create_app
from trackpro.realtime.hub import BroadcastHub
from trackpro.realtime.registry import SubscriberRegistry
from trackpro.schemas.common import GeoPoint, LineStringGeometry, PointGeometry
from trackpro.schemas.event import EventCreate
from trackpro.schemas.participant import ParticipantCreate
from trackpro.schemas.route import CheckpointCreate, RouteCreate
from trackpro.schemas.tracking import TrackingPointCreate
from trackpro.storage.memory import MemoryStore


def make_settings(**overrides) -> Settings:
    """Settings for tests — quiet, empty, deterministic."""
    defaults = {"simulator_enabled": False, "seed_demo_data": False}
    return Settings(**{**defaults, **overrides})


class FakeConnection:
    """In-memory SubscriberConnection that records what it is sent."""

    def __init__(self, is_open: bool = True, fail: bool = False):
        self.is_open = is_open
        self.fail = fail
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(data)

    def messages(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]

    def types(self) -> list[str]:
        return [m["type"] for m in self.messages()]


# ═══════════════════════════════════════════════════════════
# Store + hub (no HTTP)
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def store():
    return MemoryStore()


@pytest_asyncio.fixture()
async def registry():
    return SubscriberRegistry()


@pytest_asyncio.fixture()
async def hub(registry, store):
    """BroadcastHub over a fresh registry; every subscriber is dropped afterwards."""
    hub = BroadcastHub(registry, store)
    yield hub
    await hub.close()


# A short route: two checkpoints ~550 m apart, [lng, lat]
START = [-122.4194, 37.7749]
FINISH = [-122.4150, 37.7785]


async def build_race(store) -> dict:
    """An active event on a two-checkpoint route with two active riders.

    Returns a dict with the records: event, route, checkpoints, riders.
    """
    now = datetime.now(timezone.utc)
    route = await store.create_route(RouteCreate(
        name="Test Loop", distance=0.6,
        path=LineStringGeometry(coordinates=[START, FINISH]),
    ))
    checkpoints = [
        await store.create_checkpoint(CheckpointCreate(
            name=name, route_id=route.id, order=order,
            location=PointGeometry(coordinates=coords), radius=50,
        ))
        for order, (name, coords) in enumerate([("Start", START), ("Finish", FINISH)])
    ]
    event = await store.create_event(EventCreate(
        name="Test Race", start_date=now, end_date=now + timedelta(hours=2),
        location="San Francisco, CA", status="active", route_id=route.id,
    ))
    riders = [
        await store.create_participant(ParticipantCreate(
            number=number, name=name, event_id=event.id, status="active",
        ))
        for number, name in [(1, "Ada Rider"), (2, "Ben Rider")]
    ]
    return {"event": event, "route": route, "checkpoints": checkpoints, "riders": riders}


@pytest_asyncio.fixture()
async def race(store):
    return await build_race(store)


def point_at(participant, lat: float, lng: float, **fields) -> TrackingPointCreate:
    """A TrackingPointCreate for a participant at the given position."""
    return TrackingPointCreate(
        participant_id=participant.id,
        event_id=participant.event_id,
        location=GeoPoint(lat=lat, lng=lng),
        **fields,
    )


# ═══════════════════════════════════════════════════════════
# App + HTTP
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def app():
    app = create_app(make_settings())
    yield app
    await app.state.hub.close()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def viewer(app):
    """A FakeConnection subscribed to the app's hub.

    The `connected` greeting is flushed and cleared, so viewer.sent only
    holds what the test itself triggers.
    """
    connection = FakeConnection()
    app.state.hub.accept(connection)
    await app.state.hub.flush()
    connection.sent.clear()
    return connection
