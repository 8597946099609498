"""Live-update receiver — the viewer's end of the /ws channel.

Learn: A viewer keeps one socket open to the broadcast hub. The receiver
is a small state machine:

    disconnected → connecting → connected → disconnected (close or error)
         ↑                                        │
         └──────── reconnect after fixed delay ───┘

The delay is fixed (8s by default), not exponential. The pending
reconnect is an asyncio TimerHandle, and close() cancels it, so a closed
receiver never reopens the socket later.

Only the most recent message is kept (last_message); new messages
overwrite it. Callers that want every message pass on_message. There is
no outbound buffering: send_message() while not connected fails fast.
"""

import asyncio
import enum
import json
from typing import Any, Awaitable, Callable, Optional

import structlog
import websockets
from pydantic import BaseModel, ValidationError

from trackpro.schemas.messages import ConnectedMessage, LiveMessage, parse_message

logger = structlog.get_logger()

Connector = Callable[[str], Awaitable[Any]]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class LiveUpdateReceiver:
    """Reconnecting subscriber to the broadcast hub.

    Usage:
        receiver = LiveUpdateReceiver("ws://localhost:8000/ws", on_message=print)
        receiver.start()
        ...
        await receiver.close()

    `connect` defaults to websockets.connect; tests pass a fake that returns
    an object with async iteration, `send()` and `close()`.
    """

    def __init__(
        self,
        url: str,
        *,
        reconnect_delay: float = 8.0,
        connect: Optional[Connector] = None,
        on_message: Optional[Callable[[LiveMessage], None]] = None,
    ):
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.on_message = on_message
        self.state = ConnectionState.DISCONNECTED
        self.last_message: Optional[LiveMessage] = None
        self.client_id: Optional[str] = None
        self.connect_attempts = 0

        self._connect = connect or websockets.connect
        self._socket: Any = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._closed = False

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # ─── Lifecycle ───────────────────────────────────────

    def start(self) -> None:
        """Open the connection. Must be called from within a running event loop."""
        if self._closed:
            raise RuntimeError("Receiver has been closed")
        if self._task is not None and not self._task.done():
            return
        self._open()

    async def close(self) -> None:
        """Tear down: cancel any pending reconnect, close the socket, stop reading."""
        self._closed = True
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

        socket, self._socket = self._socket, None
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if socket is not None:
            await socket.close()

        self.state = ConnectionState.DISCONNECTED
        logger.info("receiver.closed", url=self.url)

    def _open(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="live-update-receiver"
        )

    async def _run(self) -> None:
        self.state = ConnectionState.CONNECTING
        self.connect_attempts += 1
        log = logger.bind(url=self.url, attempt=self.connect_attempts)

        try:
            socket = await self._connect(self.url)
        except Exception as e:
            log.warning("receiver.connect_failed", error=str(e))
            self._on_disconnected()
            return

        self._socket = socket
        self.state = ConnectionState.CONNECTED
        log.info("receiver.connected")

        try:
            async for frame in socket:
                self._handle_frame(frame)
            log.info("receiver.disconnected")
        except websockets.ConnectionClosed as e:
            log.warning("receiver.connection_lost", error=str(e))
        except OSError as e:
            log.warning("receiver.transport_error", error=str(e))
        except Exception:
            log.exception("receiver.read_failed")
            await socket.close()
        finally:
            self._socket = None
            self._on_disconnected()

    def _on_disconnected(self) -> None:
        self.state = ConnectionState.DISCONNECTED
        if self._closed or self._reconnect_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._open)
        logger.info("receiver.reconnect_scheduled", url=self.url, delay=self.reconnect_delay)

    # ─── Messages ────────────────────────────────────────

    def _handle_frame(self, frame: str | bytes) -> None:
        try:
            message = parse_message(frame)
        except (ValidationError, ValueError) as e:
            logger.warning("receiver.invalid_frame", error=str(e)[:200])
            return

        self.last_message = message
        if isinstance(message, ConnectedMessage):
            self.client_id = message.data.client_id

        if self.on_message is not None:
            try:
                self.on_message(message)
            except Exception:
                logger.exception("receiver.on_message_failed", type=message.type)

    async def send_message(self, payload: BaseModel | dict) -> bool:
        """Serialize and send. Returns False (without queuing) unless connected."""
        if not self.is_connected or self._socket is None:
            return False

        if isinstance(payload, BaseModel):
            text = payload.model_dump_json(by_alias=True, exclude_none=True)
        else:
            text = json.dumps(payload, default=str)

        try:
            await self._socket.send(text)
        except (websockets.ConnectionClosed, OSError) as e:
            logger.warning("receiver.send_failed", error=str(e))
            return False
        return True
