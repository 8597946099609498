"""Subscriber registry — the set of live-update connections a hub serves.

Learn: The registry is an ordinary object, constructed by create_app()
(or by a test) and handed to the BroadcastHub, not a module-level
global. Each app instance and each test gets its own.

No locks: every operation runs on the event loop without awaiting, so
register/unregister/iteration never interleave.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Protocol


class SubscriberConnection(Protocol):
    """What the hub needs from a transport — FastAPI WebSocket or a test fake."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...


@dataclass
class Subscriber:
    connection_id: str
    connection: SubscriberConnection
    queue: asyncio.Queue
    writer: Optional[asyncio.Task] = field(default=None, repr=False)


class SubscriberRegistry:
    """Connected subscribers keyed by connection id."""

    def __init__(self):
        self._subscribers: dict[str, Subscriber] = {}

    def register(self, subscriber: Subscriber) -> None:
        if subscriber.connection_id in self._subscribers:
            raise ValueError(f"Duplicate connection id: {subscriber.connection_id}")
        self._subscribers[subscriber.connection_id] = subscriber

    def unregister(self, connection_id: str) -> Optional[Subscriber]:
        """Remove and return the subscriber. Unknown ids return None."""
        return self._subscribers.pop(connection_id, None)

    def get(self, connection_id: str) -> Optional[Subscriber]:
        return self._subscribers.get(connection_id)

    def for_each(self, fn: Callable[[Subscriber], None]) -> None:
        # Snapshot so fn may unregister safely
        for subscriber in list(self._subscribers.values()):
            fn(subscriber)

    def __iter__(self) -> Iterator[Subscriber]:
        return iter(list(self._subscribers.values()))

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._subscribers
