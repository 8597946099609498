"""Demo data — one active event on a San Francisco route with a dozen riders."""

import random
from datetime import datetime, timedelta, timezone

import structlog

from trackpro.schemas.common import GeoPoint, LineStringGeometry, PointGeometry
from trackpro.schemas.device import DeviceCreate
from trackpro.schemas.event import EventCreate
from trackpro.schemas.participant import ParticipantCreate
from trackpro.schemas.route import CheckpointCreate, RouteCreate
from trackpro.schemas.tracking import TrackingPointCreate
from trackpro.storage.memory import MemoryStore

logger = structlog.get_logger()

# [lng, lat], GeoJSON order
ROUTE_COORDINATES = [
    [-122.4194, 37.7749],
    [-122.4101, 37.7853],
    [-122.4021, 37.7891],
    [-122.3957, 37.7915],
    [-122.3906, 37.7944],
]

CHECKPOINT_NAMES = ["Start", "CP1", "CP2", "CP3", "Finish"]

PARTICIPANT_NAMES = [
    "Jay Jay", "Sarah Johnson", "Emily Chen", "Michael Brown",
    "David Wilson", "Bilal", "Robert Martinez", "Lisa Anderson",
    "James Thomas", "Jennifer Garcia", "Daniel Lewis", "Maria Rodriguez",
]

# Drawn per participant; roughly four in five are out on the course
PARTICIPANT_STATUSES = ["active", "active", "active", "active", "withdrawn"]


async def seed_demo_data(store: MemoryStore, rng: random.Random | None = None) -> None:
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)

    devices = [
        DeviceCreate(name="GPS Tracker 1", type="GPS", serial_number="GPS-001",
                     status="available", battery_level=100, last_seen=now),
        DeviceCreate(name="GPS Tracker 2", type="GPS", serial_number="GPS-002",
                     status="available", battery_level=95, last_seen=now),
        DeviceCreate(name="Smartphone A", type="Smartphone", serial_number="SM-001",
                     status="assigned", battery_level=80, last_seen=now, assigned_to=1),
        DeviceCreate(name="Smart Watch X", type="Wearable", serial_number="SW-001",
                     status="assigned", battery_level=75, last_seen=now, assigned_to=2),
        DeviceCreate(name="GPS Tracker 3", type="GPS", serial_number="GPS-003",
                     status="maintenance", battery_level=20, last_seen=now - timedelta(days=1)),
    ]
    for device in devices:
        await store.create_device(device)

    route = await store.create_route(RouteCreate(
        name="Mountain Challenge Route",
        description="A challenging mountain bike route with steep climbs and descents",
        distance=21.5,
        path=LineStringGeometry(coordinates=ROUTE_COORDINATES),
        created_by=1,
    ))
    for order, (name, coords) in enumerate(zip(CHECKPOINT_NAMES, ROUTE_COORDINATES)):
        await store.create_checkpoint(CheckpointCreate(
            name=name,
            route_id=route.id,
            order=order,
            location=PointGeometry(coordinates=coords),
            radius=50,
        ))

    event = await store.create_event(EventCreate(
        name="Mountain Challenge 2023",
        description="Annual mountain biking challenge through scenic trails",
        start_date=now,
        end_date=now + timedelta(hours=5),
        location="San Francisco, CA",
        status="active",
        route_id=route.id,
        created_by=1,
        max_participants=50,
    ))

    for index, name in enumerate(PARTICIPANT_NAMES):
        status = rng.choice(PARTICIPANT_STATUSES)
        participant = await store.create_participant(ParticipantCreate(
            number=index + 1,
            name=name,
            event_id=event.id,
            status=status,
            emergency_contact="Emergency Contact",
            emergency_phone="123-456-7890",
        ))
        if status != "active":
            continue

        # Start each rider near one of the route's waypoints
        lng, lat = ROUTE_COORDINATES[index % len(ROUTE_COORDINATES)]
        has_alert = participant.number == 2
        await store.create_tracking_point(TrackingPointCreate(
            participant_id=participant.id,
            event_id=event.id,
            timestamp=now,
            location=GeoPoint(
                lat=lat + rng.uniform(-0.005, 0.005),
                lng=lng + rng.uniform(-0.005, 0.005),
            ),
            speed=rng.uniform(0, 20),
            battery=float(rng.randint(0, 100)),
            elevation=100 + rng.uniform(0, 500),
            has_alert=has_alert,
            alert_type="sos" if has_alert else None,
        ))

    logger.info(
        "seed.loaded",
        event_id=event.id,
        participants=len(PARTICIPANT_NAMES),
        devices=len(devices),
    )
