"""FastAPI dependencies — hand route handlers the app's store and hub.

Learn: create_app() builds one MemoryStore and one BroadcastHub per app
and parks them on app.state. Handlers ask for them through Depends() so
tests can build a fresh app (fresh state) without touching globals.
"""

from fastapi import Request

from trackpro.realtime.hub import BroadcastHub
from trackpro.storage.memory import MemoryStore


def get_store(request: Request) -> MemoryStore:
    return request.app.state.store


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub
