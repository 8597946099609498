"""Broadcast hub — fans every live event out to all connected viewers.

Learn: The hub is the single point where live messages leave the server.
Three kinds of producers feed it:
1. The simulator (or a real device ingestion path) — new positions and alerts
2. Viewers themselves — position reports sent over their own socket
3. REST handlers — resolve alert, submit tracking point, event/participant edits

Delivery is best-effort and at-most-once. There is no backlog: a viewer
that connects late starts from zero history and relies on the polled REST
queries for initial state. A message broadcast while a viewer is
disconnected is simply never seen by it.

Each subscriber owns an outbound queue drained by its own writer task.
broadcast() serializes the message once and enqueues it without awaiting,
so a slow or dead socket never delays delivery to anyone else, and each
subscriber receives messages in the order broadcast() was called.
"""

import asyncio
import json
import uuid

import structlog
from pydantic import ValidationError

from trackpro.realtime.registry import Subscriber, SubscriberConnection, SubscriberRegistry
from trackpro.realtime.types import POSITION_UPDATE
from trackpro.schemas.messages import (
    ConnectedData,
    ConnectedMessage,
    LiveMessage,
    PositionUpdateMessage,
    encode_message,
)
from trackpro.schemas.tracking import TrackingPoint, TrackingPointCreate
from trackpro.storage.memory import MemoryStore

logger = structlog.get_logger()


class BroadcastHub:
    """Accepts subscribers, ingests their position reports, broadcasts to all."""

    def __init__(
        self,
        registry: SubscriberRegistry,
        store: MemoryStore,
        queue_size: int = 256,
    ):
        self.registry = registry
        self.store = store
        self.queue_size = queue_size

    # ─── Connection lifecycle ────────────────────────────

    def accept(self, connection: SubscriberConnection) -> str:
        """Register a new subscriber and greet it with its connection id.

        Must be called from within the running event loop (it starts the
        subscriber's writer task).
        """
        connection_id = uuid.uuid4().hex
        subscriber = Subscriber(
            connection_id=connection_id,
            connection=connection,
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        self.registry.register(subscriber)
        subscriber.writer = asyncio.create_task(
            self._deliver(subscriber), name=f"hub-writer-{connection_id}"
        )

        self._enqueue(
            subscriber,
            encode_message(ConnectedMessage(data=ConnectedData(client_id=connection_id))),
        )
        logger.info(
            "hub.subscriber_connected",
            connection_id=connection_id,
            subscribers=len(self.registry),
        )
        return connection_id

    def remove(self, connection_id: str) -> None:
        """Forget a subscriber. Safe to call more than once."""
        subscriber = self.registry.unregister(connection_id)
        if subscriber is None:
            return
        if subscriber.writer is not None:
            subscriber.writer.cancel()
        logger.info(
            "hub.subscriber_disconnected",
            connection_id=connection_id,
            subscribers=len(self.registry),
        )

    async def close(self) -> None:
        """Drop every subscriber and wait for their writers to stop."""
        writers = [s.writer for s in self.registry if s.writer is not None]
        self.registry.for_each(lambda s: self.remove(s.connection_id))
        await asyncio.gather(*writers, return_exceptions=True)

    # ─── Inbound ─────────────────────────────────────────

    async def handle_inbound(self, connection_id: str, raw: str | bytes) -> None:
        """Process one frame from a viewer.

        Learn: Fire-and-forget: nothing is ever sent back to the sender
        about a dropped frame, and the connection stays open whatever
        arrives. Only position_update is acted on today: it is validated,
        persisted, then re-broadcast to everyone including the sender.
        """
        log = logger.bind(connection_id=connection_id)

        try:
            envelope = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log.warning("hub.inbound_invalid_json", error=str(e))
            return

        if not isinstance(envelope, dict):
            log.warning("hub.inbound_not_an_object")
            return

        message_type = envelope.get("type")
        if message_type != POSITION_UPDATE:
            log.debug("hub.inbound_ignored", type=message_type)
            return

        try:
            data = TrackingPointCreate.model_validate(envelope.get("data"))
        except ValidationError as e:
            log.info("hub.inbound_invalid_position", errors=e.error_count())
            return

        try:
            await self.ingest_position(data)
        except Exception:
            log.exception("hub.inbound_persist_failed", participant_id=data.participant_id)

    # ─── Ingestion + fan-out ─────────────────────────────

    async def ingest_position(self, data: TrackingPointCreate) -> TrackingPoint:
        """Persist a new tracking point, then broadcast it as position_update.

        Learn: This is the one entry point for "a new point arrived":
        viewer reports, the REST API and the simulator all come through
        here, and a real device gateway would too. The store write is
        awaited before anything is broadcast, so any viewer that sees the
        update can immediately fetch it from history. If the write raises,
        nothing is broadcast and the error propagates to the caller.
        """
        point = await self.store.create_tracking_point(data)
        self.broadcast(PositionUpdateMessage(data=point))
        return point

    def broadcast(self, message: LiveMessage) -> int:
        """Queue a message for every open subscriber. Returns how many got it.

        Subscribers whose channel is not open are skipped but stay
        registered; only remove() takes them out.
        """
        text = encode_message(message)
        delivered = 0
        for subscriber in self.registry:
            if not subscriber.connection.is_open:
                continue
            if self._enqueue(subscriber, text):
                delivered += 1

        logger.debug("hub.broadcast", type=message.type, subscribers=delivered)
        return delivered

    async def flush(self) -> None:
        """Wait until every queued message has been handed to its transport."""
        await asyncio.gather(*(s.queue.join() for s in self.registry))

    def _enqueue(self, subscriber: Subscriber, text: str) -> bool:
        try:
            subscriber.queue.put_nowait(text)
            return True
        except asyncio.QueueFull:
            logger.warning(
                "hub.subscriber_queue_full",
                connection_id=subscriber.connection_id,
                queue_size=self.queue_size,
            )
            return False

    async def _deliver(self, subscriber: Subscriber) -> None:
        """Writer task — drains one subscriber's queue into its socket.

        Learn: A failed send is logged and the next message is tried; the
        subscriber is not removed. Removal happens only on disconnect,
        which cancels this task.
        """
        log = logger.bind(connection_id=subscriber.connection_id)
        while True:
            text = await subscriber.queue.get()
            try:
                if subscriber.connection.is_open:
                    await subscriber.connection.send_text(text)
            except Exception as e:
                log.warning("hub.send_failed", error=str(e))
            finally:
                subscriber.queue.task_done()
