"""Cache reconciliation tests — which polled queries each live message stales."""

import httpx
import pytest

from trackpro.client.query_cache import QueryCache
from trackpro.client.reconcile import invalidation_keys, reconcile
from trackpro.schemas.messages import parse_message


@pytest.mark.parametrize("message_type,expected", [
    ("position_update", ["/api/events/3/participants/tracking"]),
    ("alert", ["/api/events/3/alerts", "/api/events/3/participants/tracking"]),
    ("event_update", ["/api/events", "/api/events/3", "/api/events/3/stats"]),
    ("participant_status", ["/api/events/3/participants", "/api/events/3/participants/tracking"]),
    ("connected", []),
    ("something_new", []),
])
def test_invalidation_table(message_type, expected):
    assert invalidation_keys(message_type, 3) == expected


@pytest.mark.parametrize("message_type,expected", [
    ("position_update", []),
    ("alert", []),
    ("event_update", ["/api/events"]),
    ("participant_status", []),
])
def test_no_selected_event_only_touches_event_list(message_type, expected):
    assert invalidation_keys(message_type, None) == expected


ALL_KEYS = [
    "/api/events",
    "/api/events/3",
    "/api/events/3/stats",
    "/api/events/3/alerts",
    "/api/events/3/participants",
    "/api/events/3/participants/tracking",
    "/api/events/4/participants/tracking",
]


@pytest.fixture
async def cache():
    def handler(request):
        return httpx.Response(200, json=[])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as client:
        cache = QueryCache(client)
        for key in ALL_KEYS:
            await cache.get(key)
        yield cache


def stale(cache):
    return [k for k in ALL_KEYS if cache.is_stale(k)]


@pytest.mark.asyncio
async def test_position_update_stales_tracking_view_only(cache):
    message = parse_message(
        '{"type":"position_update","data":{"id":1,"participantId":1,"eventId":3,'
        '"timestamp":"2024-05-01T08:00:00Z","location":{"lat":1,"lng":2}}}'
    )
    assert reconcile(cache, message, 3) == ["/api/events/3/participants/tracking"]
    assert stale(cache) == ["/api/events/3/participants/tracking"]


@pytest.mark.asyncio
async def test_keys_follow_selected_event_not_message(cache):
    """A message about event 4 still stales the selected event's views."""
    message = parse_message('{"type":"participant_status","data":{"participantId":1,"eventId":4,"status":"active"}}')
    reconcile(cache, message, 3)
    assert stale(cache) == ["/api/events/3/participants", "/api/events/3/participants/tracking"]


@pytest.mark.asyncio
async def test_connected_stales_nothing(cache):
    message = parse_message('{"type":"connected","data":{"clientId":"x"}}')
    assert reconcile(cache, message, 3) == []
    assert stale(cache) == []


@pytest.mark.asyncio
async def test_alert_without_selected_event(cache):
    message = parse_message('{"type":"alert","data":{"id":5,"resolved":true}}')
    assert reconcile(cache, message, None) == []
    assert stale(cache) == []
