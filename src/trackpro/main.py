"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance with its own store, subscriber registry and broadcast hub on
app.state. Lifespan loads demo data and runs the simulator in the
background. Tests call create_app(Settings(...)) to get an isolated app.

Run with: uvicorn trackpro.main:app --reload --port 8000
"""

import random
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trackpro import __version__
from trackpro.api import api_router
from trackpro.config import Settings, settings as default_settings
from trackpro.logging_config import configure_logging
from trackpro.middleware.request_id import RequestIdMiddleware
from trackpro.realtime.hub import BroadcastHub
from trackpro.realtime.registry import SubscriberRegistry
from trackpro.realtime.websocket import live_updates_websocket
from trackpro.services.simulator import EventGenerator
from trackpro.storage.memory import MemoryStore
from trackpro.storage.seed import seed_demo_data

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at
    shutdown. The simulator's loops are plain asyncio tasks on the same
    event loop as the request handlers and the hub.
    """
    config: Settings = app.state.settings
    configure_logging(config.log_level, config.log_json)
    logger.info(
        "trackpro.starting",
        version=__version__,
        environment=config.environment,
        port=config.port,
    )

    rng = random.Random(config.seed)
    if config.seed_demo_data:
        await seed_demo_data(app.state.store, rng)

    generator: Optional[EventGenerator] = None
    if config.simulator_enabled:
        generator = EventGenerator.from_settings(app.state.store, app.state.hub, config, rng=rng)
        generator.start()
        logger.info("trackpro.simulator_started")

    yield

    logger.info("trackpro.shutdown")
    if generator is not None:
        await generator.stop()
    await app.state.hub.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    config = settings or default_settings

    app = FastAPI(
        title="TrackPro",
        description="Live event tracking — participants, positions, alerts",
        version=__version__,
        lifespan=lifespan,
    )

    store = MemoryStore()
    app.state.settings = config
    app.state.store = store
    app.state.hub = BroadcastHub(
        SubscriberRegistry(),
        store,
        queue_size=config.subscriber_queue_size,
    )

    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    app.add_api_websocket_route(config.ws_path, live_updates_websocket)

    return app


# Default app instance (used by uvicorn: trackpro.main:app)
app = create_app()
