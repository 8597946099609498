"""WebSocket endpoint — the live-update channel for dashboard viewers.

Learn: Each viewer opens one long-lived socket at /ws (same host and port
as the REST API). The handler:
1. Accepts the upgrade and registers the socket with the BroadcastHub
   (which immediately sends a `connected` message with the client id)
2. Feeds every inbound frame to the hub (position reports)
3. Unregisters the socket when the viewer goes away

Outbound traffic never passes through this handler; the hub's per-
subscriber writer task sends directly on the socket.

There is no authentication on the live channel; anyone who can reach
the server can watch and report positions.
"""

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from trackpro.realtime.hub import BroadcastHub


class WebSocketConnection:
    """Adapts a Starlette WebSocket to the hub's SubscriberConnection protocol."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)


async def live_updates_websocket(websocket: WebSocket):
    """Live-update channel: server → viewer broadcasts, viewer → server reports."""
    hub: BroadcastHub = websocket.app.state.hub

    await websocket.accept()
    connection_id = hub.accept(WebSocketConnection(websocket))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await hub.handle_inbound(connection_id, raw)
    finally:
        hub.remove(connection_id)
