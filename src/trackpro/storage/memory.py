"""In-memory entity store — events, routes, checkpoints, participants,
devices and tracking points.

Learn: Every method is `async` so the store can be swapped for a real
database without touching callers, but none of them awaits internally.
On a single event loop that makes each call atomic: the broadcast hub,
the simulator and HTTP handlers never observe a half-applied write.

Records are pydantic models. Updates replace the stored model with a
re-validated copy rather than mutating it in place, so a record already
handed to a caller never changes under its feet.
"""

import itertools
from datetime import datetime, timezone
from typing import Any, Optional

from trackpro import geo
from trackpro.schemas.device import Device, DeviceCreate
from trackpro.schemas.event import Event, EventCreate, EventWithStats
from trackpro.schemas.participant import (
    Participant,
    ParticipantCreate,
    ParticipantWithTracking,
)
from trackpro.schemas.route import Checkpoint, CheckpointCreate, Route, RouteCreate
from trackpro.schemas.tracking import (
    RESOLVED_SUFFIX,
    AlertInfo,
    TrackingPoint,
    TrackingPointCreate,
)


class StoreError(Exception):
    """Raised when a record cannot be persisted (e.g. it references a missing record)."""


def _utc(ts: datetime) -> datetime:
    """Treat naive timestamps as UTC so all stored points compare cleanly."""
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


def _chronological(point: TrackingPoint) -> tuple[datetime, int]:
    return point.timestamp, point.id


def _merge(record, changes: dict[str, Any]):
    """Copy of a record with changes applied, re-validated against its model."""
    return type(record).model_validate({**record.model_dump(), **changes})


class MemoryStore:
    """Dict-per-entity store with auto-increment integer ids."""

    def __init__(self):
        self._devices: dict[int, Device] = {}
        self._events: dict[int, Event] = {}
        self._routes: dict[int, Route] = {}
        self._checkpoints: dict[int, Checkpoint] = {}
        self._participants: dict[int, Participant] = {}
        self._tracking_points: dict[int, TrackingPoint] = {}
        self._ids: dict[str, itertools.count] = {}

    def _next_id(self, kind: str) -> int:
        counter = self._ids.setdefault(kind, itertools.count(1))
        return next(counter)

    # ═══════════════════════════════════════════════════════
    # Devices
    # ═══════════════════════════════════════════════════════

    async def get_devices(self) -> list[Device]:
        return list(self._devices.values())

    async def get_device(self, device_id: int) -> Optional[Device]:
        return self._devices.get(device_id)

    async def create_device(self, data: DeviceCreate) -> Device:
        device = Device(id=self._next_id("device"), **data.model_dump())
        self._devices[device.id] = device
        return device

    async def update_device(self, device_id: int, changes: dict[str, Any]) -> Optional[Device]:
        device = self._devices.get(device_id)
        if not device:
            return None
        device = _merge(device, changes)
        self._devices[device_id] = device
        return device

    async def get_unassigned_devices(self) -> list[Device]:
        return [d for d in self._devices.values() if d.assigned_to is None]

    async def get_devices_by_type(self, device_type: str) -> list[Device]:
        wanted = device_type.lower()
        return [d for d in self._devices.values() if d.type.lower() == wanted]

    async def get_device_by_participant(self, participant_id: int) -> Optional[Device]:
        for device in self._devices.values():
            if device.assigned_to == participant_id:
                return device
        return None

    async def assign_device_to_participant(
        self, device_id: int, participant_id: int
    ) -> Optional[Device]:
        """Assign a device, releasing whatever device the participant had before."""
        if device_id not in self._devices or participant_id not in self._participants:
            return None

        previous = await self.get_device_by_participant(participant_id)
        if previous and previous.id != device_id:
            await self.update_device(previous.id, {"status": "available", "assigned_to": None})

        return await self.update_device(
            device_id, {"status": "assigned", "assigned_to": participant_id}
        )

    async def unassign_device(self, device_id: int) -> Optional[Device]:
        return await self.update_device(device_id, {"status": "available", "assigned_to": None})

    # ═══════════════════════════════════════════════════════
    # Events
    # ═══════════════════════════════════════════════════════

    async def get_events(self) -> list[Event]:
        return list(self._events.values())

    async def get_event(self, event_id: int) -> Optional[Event]:
        return self._events.get(event_id)

    async def create_event(self, data: EventCreate) -> Event:
        event = Event(id=self._next_id("event"), **data.model_dump())
        self._events[event.id] = event
        return event

    async def update_event(self, event_id: int, changes: dict[str, Any]) -> Optional[Event]:
        event = self._events.get(event_id)
        if not event:
            return None
        event = _merge(event, changes)
        self._events[event_id] = event
        return event

    async def get_event_with_stats(self, event_id: int) -> Optional[EventWithStats]:
        """Event plus participant counts, open alerts and checkpoint progress.

        Learn: The lead participant is whoever has covered the most ground;
        completed_checkpoints reports the leader's progress against the
        route's total.
        """
        event = self._events.get(event_id)
        if not event:
            return None

        participants = await self.get_participants_with_tracking(event_id)
        checkpoints = await self._route_checkpoints(event.route_id)
        alerts = await self.get_active_alerts(event_id)

        lead = max(participants, key=lambda p: p.distance, default=None)
        if lead is not None and lead.distance <= 0:
            lead = None

        return EventWithStats(
            **event.model_dump(),
            participant_count=len(participants),
            active_participants=sum(1 for p in participants if p.status == "active"),
            alerts_count=len(alerts),
            completed_checkpoints=max(
                (p.checkpoints_completed for p in participants), default=0
            ),
            total_checkpoints=len(checkpoints),
            lead_participant=lead,
        )

    # ═══════════════════════════════════════════════════════
    # Routes + checkpoints
    # ═══════════════════════════════════════════════════════

    async def get_routes(self) -> list[Route]:
        return list(self._routes.values())

    async def get_route(self, route_id: int) -> Optional[Route]:
        return self._routes.get(route_id)

    async def create_route(self, data: RouteCreate) -> Route:
        route = Route(id=self._next_id("route"), **data.model_dump())
        self._routes[route.id] = route
        return route

    async def update_route(self, route_id: int, changes: dict[str, Any]) -> Optional[Route]:
        route = self._routes.get(route_id)
        if not route:
            return None
        route = _merge(route, changes)
        self._routes[route_id] = route
        return route

    async def get_routes_by_event(self, event_id: int) -> list[Route]:
        event = self._events.get(event_id)
        if not event or event.route_id is None:
            return []
        route = self._routes.get(event.route_id)
        return [route] if route else []

    async def get_checkpoints(self, route_id: int) -> list[Checkpoint]:
        return sorted(
            (cp for cp in self._checkpoints.values() if cp.route_id == route_id),
            key=lambda cp: cp.order,
        )

    async def create_checkpoint(self, data: CheckpointCreate) -> Checkpoint:
        checkpoint = Checkpoint(id=self._next_id("checkpoint"), **data.model_dump())
        self._checkpoints[checkpoint.id] = checkpoint
        return checkpoint

    async def update_checkpoint(
        self, checkpoint_id: int, changes: dict[str, Any]
    ) -> Optional[Checkpoint]:
        checkpoint = self._checkpoints.get(checkpoint_id)
        if not checkpoint:
            return None
        checkpoint = _merge(checkpoint, changes)
        self._checkpoints[checkpoint_id] = checkpoint
        return checkpoint

    async def delete_checkpoint(self, checkpoint_id: int) -> bool:
        return self._checkpoints.pop(checkpoint_id, None) is not None

    async def _route_checkpoints(self, route_id: Optional[int]) -> list[Checkpoint]:
        if route_id is None:
            return []
        return await self.get_checkpoints(route_id)

    # ═══════════════════════════════════════════════════════
    # Participants
    # ═══════════════════════════════════════════════════════

    async def get_participants(self, event_id: int) -> list[Participant]:
        return [p for p in self._participants.values() if p.event_id == event_id]

    async def get_participant(self, participant_id: int) -> Optional[Participant]:
        return self._participants.get(participant_id)

    async def create_participant(self, data: ParticipantCreate) -> Participant:
        participant = Participant(id=self._next_id("participant"), **data.model_dump())
        self._participants[participant.id] = participant
        return participant

    async def update_participant(
        self, participant_id: int, changes: dict[str, Any]
    ) -> Optional[Participant]:
        participant = self._participants.get(participant_id)
        if not participant:
            return None
        participant = _merge(participant, changes)
        self._participants[participant_id] = participant
        return participant

    async def get_participants_with_tracking(self, event_id: int) -> list[ParticipantWithTracking]:
        """Participants of an event with latest position and derived progress.

        Learn: distance is the haversine length of the participant's
        recorded path, duration spans their first to latest point, and a
        checkpoint counts as completed once the path has entered its radius
        after every earlier checkpoint on the route.
        """
        event = self._events.get(event_id)
        checkpoints = await self._route_checkpoints(event.route_id if event else None)

        result = []
        for participant in await self.get_participants(event_id):
            history = sorted(self._history(participant.id), key=_chronological)
            path = [(p.location.lat, p.location.lng) for p in history]

            result.append(
                ParticipantWithTracking(
                    **participant.model_dump(),
                    latest_position=history[-1] if history else None,
                    distance=round(geo.path_length_km(path), 3),
                    duration=(
                        geo.format_duration(history[-1].timestamp - history[0].timestamp)
                        if history
                        else "00:00:00"
                    ),
                    checkpoints_completed=_checkpoints_completed(path, checkpoints),
                )
            )
        return result

    # ═══════════════════════════════════════════════════════
    # Tracking points + alerts
    # ═══════════════════════════════════════════════════════

    def _history(self, participant_id: int) -> list[TrackingPoint]:
        return [p for p in self._tracking_points.values() if p.participant_id == participant_id]

    async def get_tracking_points(self, participant_id: int, limit: int = 100) -> list[TrackingPoint]:
        """Tracking history for a participant, newest first."""
        history = sorted(self._history(participant_id), key=_chronological, reverse=True)
        return history[:limit]

    async def create_tracking_point(self, data: TrackingPointCreate) -> TrackingPoint:
        """Persist a point. Assigns the id, and the timestamp when the input has none.

        Raises StoreError when the participant does not exist.
        """
        if data.participant_id not in self._participants:
            raise StoreError(f"Participant {data.participant_id} not found")
        timestamp = _utc(data.timestamp) if data.timestamp else datetime.now(timezone.utc)
        point = TrackingPoint(
            **data.model_dump(exclude={"timestamp"}),
            id=self._next_id("tracking_point"),
            timestamp=timestamp,
        )
        self._tracking_points[point.id] = point
        return point

    async def get_tracking_point(self, point_id: int) -> Optional[TrackingPoint]:
        return self._tracking_points.get(point_id)

    async def get_latest_tracking_point(self, participant_id: int) -> Optional[TrackingPoint]:
        return max(self._history(participant_id), key=_chronological, default=None)

    async def get_active_alerts(self, event_id: int) -> list[AlertInfo]:
        """One AlertInfo per participant whose latest point has an open alert."""
        alerts = []
        for participant in await self.get_participants(event_id):
            latest = await self.get_latest_tracking_point(participant.id)
            if not latest or not latest.has_alert or latest.event_id != event_id:
                continue
            alerts.append(
                AlertInfo(
                    participant_id=participant.id,
                    alert_type=latest.alert_type,
                    timestamp=latest.timestamp,
                    location=latest.location,
                    participant_name=participant.name,
                    participant_number=participant.number,
                    tracking_point_id=latest.id,
                )
            )
        return alerts

    async def resolve_alert(self, point_id: int) -> bool:
        """Resolve the alert carried by a tracking point.

        Learn: Position updates carry the open alert forward, so one alert
        spans several points. Resolving any of them closes every open point
        of that participant with the same alert type. Resolving again is a
        no-op (returns True); "-resolved" is never appended twice.
        Returns False only when the point does not exist.
        """
        point = self._tracking_points.get(point_id)
        if not point:
            return False
        if not point.has_alert:
            return True

        for other in self._history(point.participant_id):
            if other.has_alert and other.alert_type == point.alert_type:
                self._tracking_points[other.id] = other.model_copy(
                    update={
                        "has_alert": False,
                        "alert_type": f"{other.alert_type}{RESOLVED_SUFFIX}",
                    }
                )
        return True


def _checkpoints_completed(path: list[geo.LatLng], checkpoints: list[Checkpoint]) -> int:
    """How many route checkpoints the path has reached, in route order."""
    reached = 0
    for point in path:
        if reached == len(checkpoints):
            break
        target = checkpoints[reached]
        lng, lat = target.location.coordinates[:2]
        if geo.within_radius(point, (lat, lng), target.radius):
            reached += 1
    return reached
