"""Cache reconciliation — which polled queries a live message makes stale.

Learn: This is a pure mapping from (message type, selected event) to
query keys:

    position_update     → participants-with-tracking
    alert               → alerts, participants-with-tracking
    event_update        → event list, event detail, event stats
    participant_status  → participants, participants-with-tracking
    connected           → nothing

Keys are always scoped to the event the viewer has selected, never to an
event id inside the message. A message about another event still
marks the selected event's views stale.
"""

from typing import Optional

from trackpro.client.query_cache import QueryCache
from trackpro.realtime.types import ALERT, EVENT_UPDATE, PARTICIPANT_STATUS, POSITION_UPDATE
from trackpro.schemas.messages import LiveMessage

EVENT_LIST = "/api/events"


def event_detail_key(event_id: int) -> str:
    return f"/api/events/{event_id}"


def event_stats_key(event_id: int) -> str:
    return f"/api/events/{event_id}/stats"


def alerts_key(event_id: int) -> str:
    return f"/api/events/{event_id}/alerts"


def participants_key(event_id: int) -> str:
    return f"/api/events/{event_id}/participants"


def participants_tracking_key(event_id: int) -> str:
    return f"/api/events/{event_id}/participants/tracking"


def invalidation_keys(message_type: str, event_id: Optional[int]) -> list[str]:
    """Query keys a message of this type invalidates for the selected event.

    With no event selected only unscoped keys (the event list) apply.
    """
    if message_type == EVENT_UPDATE:
        keys = [EVENT_LIST]
        if event_id is not None:
            keys += [event_detail_key(event_id), event_stats_key(event_id)]
        return keys

    if event_id is None:
        return []
    if message_type == POSITION_UPDATE:
        return [participants_tracking_key(event_id)]
    if message_type == ALERT:
        return [alerts_key(event_id), participants_tracking_key(event_id)]
    if message_type == PARTICIPANT_STATUS:
        return [participants_key(event_id), participants_tracking_key(event_id)]
    return []


def reconcile(cache: QueryCache, message: LiveMessage, event_id: Optional[int]) -> list[str]:
    """Apply the mapping to a cache. Returns the keys that were marked stale."""
    return [key for key in invalidation_keys(message.type, event_id) if cache.invalidate(key)]
