"""Event generator — simulated device telemetry for active events.

Learn: Until real GPS devices report in, this worker stands in for them.
Two independent loops run in the FastAPI lifespan:

  motion loop (every 5s):  each active rider with a known position moves
                           a little, loses a little battery, and the new
                           point is persisted + broadcast as position_update
  alert loop  (every 30s): with 10% probability, one active rider without
                           an open alert raises sos / low-battery / off-course,
                           broadcast as an `alert` carrying AlertInfo

New positions go through BroadcastHub.ingest_position, the same entry
point a real device gateway would call, so replacing the simulator never
touches the hub.

A tick that fails is logged and the loop keeps going.
"""

import asyncio
import random
from typing import Optional

import structlog

from trackpro.config import Settings
from trackpro.realtime.hub import BroadcastHub
from trackpro.schemas.common import GeoPoint
from trackpro.schemas.messages import AlertMessage
from trackpro.schemas.participant import Participant
from trackpro.schemas.tracking import (
    ALERT_TYPES,
    AlertInfo,
    TrackingPoint,
    TrackingPointCreate,
)
from trackpro.storage.memory import MemoryStore

logger = structlog.get_logger()


class EventGenerator:
    """Synthesizes tracking points and alerts for every active event.

    Usage:
        generator = EventGenerator.from_settings(store, hub, settings)
        generator.start()
        ...
        await generator.stop()
    """

    def __init__(
        self,
        store: MemoryStore,
        hub: BroadcastHub,
        *,
        motion_interval: float = 5.0,
        alert_interval: float = 30.0,
        alert_probability: float = 0.1,
        position_jitter: float = 0.00025,
        battery_drain: float = 0.1,
        elevation_jitter: float = 1.0,
        max_speed: float = 20.0,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.hub = hub
        self.motion_interval = motion_interval
        self.alert_interval = alert_interval
        self.alert_probability = alert_probability
        self.position_jitter = position_jitter
        self.battery_drain = battery_drain
        self.elevation_jitter = elevation_jitter
        self.max_speed = max_speed
        self.rng = rng or random.Random()
        self._tasks: list[asyncio.Task] = []

    @classmethod
    def from_settings(
        cls,
        store: MemoryStore,
        hub: BroadcastHub,
        settings: Settings,
        rng: Optional[random.Random] = None,
    ) -> "EventGenerator":
        return cls(
            store,
            hub,
            motion_interval=settings.motion_interval_seconds,
            alert_interval=settings.alert_interval_seconds,
            alert_probability=settings.alert_probability,
            position_jitter=settings.position_jitter_degrees,
            battery_drain=settings.battery_drain_per_tick,
            elevation_jitter=settings.elevation_jitter,
            max_speed=settings.max_speed_kmh,
            rng=rng,
        )

    # ─── Candidates ──────────────────────────────────────

    async def _active_riders(self) -> list[tuple[Participant, TrackingPoint]]:
        """(participant, latest point) for active riders in active events.

        Riders with no tracking point yet are skipped; there is no base
        position to move them from.
        """
        riders = []
        for event in await self.store.get_events():
            if event.status != "active":
                continue
            for participant in await self.store.get_participants(event.id):
                if participant.status != "active":
                    continue
                latest = await self.store.get_latest_tracking_point(participant.id)
                if latest is not None:
                    riders.append((participant, latest))
        return riders

    # ─── Motion tick ─────────────────────────────────────

    def next_position(self, latest: TrackingPoint) -> TrackingPointCreate:
        """Perturb the latest point into the next one. Alert state carries over."""
        jitter = self.position_jitter
        if latest.battery is None:
            battery = 100.0
        else:
            battery = round(max(0.0, min(100.0, latest.battery - self.battery_drain)), 3)
        if latest.elevation is None:
            elevation = 100.0
        else:
            elevation = latest.elevation + self.rng.uniform(
                -self.elevation_jitter, self.elevation_jitter
            )

        return TrackingPointCreate(
            participant_id=latest.participant_id,
            event_id=latest.event_id,
            location=GeoPoint(
                lat=latest.location.lat + self.rng.uniform(-jitter, jitter),
                lng=latest.location.lng + self.rng.uniform(-jitter, jitter),
            ),
            speed=self.rng.uniform(0, self.max_speed),
            battery=battery,
            elevation=elevation,
            has_alert=latest.has_alert,
            alert_type=latest.alert_type,
        )

    async def motion_tick(self) -> list[TrackingPoint]:
        """Move every active rider once. Returns the points created."""
        created = []
        for _, latest in await self._active_riders():
            point = await self.hub.ingest_position(self.next_position(latest))
            created.append(point)
        logger.debug("simulator.motion_tick", points=len(created))
        return created

    # ─── Alert tick ──────────────────────────────────────

    async def alert_tick(self) -> Optional[AlertInfo]:
        """Maybe raise one alert. Returns the AlertInfo broadcast, if any.

        Learn: Only riders whose latest point has no open alert are
        eligible, so a rider never stacks a second alert on an unresolved
        one. The alert point is persisted first; what goes out on the wire
        is the AlertInfo projection, not the raw point.
        """
        if self.rng.random() >= self.alert_probability:
            return None

        candidates = [
            (participant, latest)
            for participant, latest in await self._active_riders()
            if not latest.has_alert
        ]
        if not candidates:
            return None

        participant, latest = self.rng.choice(candidates)
        alert_type = self.rng.choice(ALERT_TYPES)

        point = await self.store.create_tracking_point(
            TrackingPointCreate(
                participant_id=participant.id,
                event_id=latest.event_id,
                location=latest.location,
                speed=latest.speed,
                battery=latest.battery,
                elevation=latest.elevation,
                has_alert=True,
                alert_type=alert_type,
            )
        )

        alert = AlertInfo(
            participant_id=participant.id,
            alert_type=alert_type,
            timestamp=point.timestamp,
            location=point.location,
            participant_name=participant.name,
            participant_number=participant.number,
            tracking_point_id=point.id,
        )
        self.hub.broadcast(AlertMessage(data=alert))
        logger.info(
            "simulator.alert_raised",
            participant_id=participant.id,
            alert_type=alert_type,
            tracking_point_id=point.id,
        )
        return alert

    # ─── Loops ───────────────────────────────────────────

    async def run_motion_loop(self) -> None:
        await self._run_loop("motion", self.motion_interval, self.motion_tick)

    async def run_alert_loop(self) -> None:
        await self._run_loop("alert", self.alert_interval, self.alert_tick)

    async def _run_loop(self, name: str, interval: float, tick) -> None:
        logger.info("simulator.loop_started", loop=name, interval=interval)
        while True:
            await asyncio.sleep(interval)
            try:
                await tick()
            except Exception:
                logger.exception("simulator.tick_failed", loop=name)

    def start(self) -> None:
        """Launch both loops as background tasks on the running event loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self.run_motion_loop(), name="simulator-motion"),
            asyncio.create_task(self.run_alert_loop(), name="simulator-alert"),
        ]

    async def stop(self) -> None:
        """Cancel both loops and wait for them to finish."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("simulator.stopped")
