"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TRACKPRO_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: The same Settings class covers both sides of the live channel —
the server (hub, simulator) and the Python viewer (receiver, polled cache).
Tests build their own Settings instance and pass it to create_app().
"""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via TRACKPRO_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Live-update channel
    ws_path: str = "/ws"
    subscriber_queue_size: int = Field(256, ge=1)  # per-subscriber outbound buffer

    # Simulated device telemetry
    simulator_enabled: bool = True
    motion_interval_seconds: float = Field(5.0, gt=0)
    alert_interval_seconds: float = Field(30.0, gt=0)
    alert_probability: float = Field(0.1, ge=0.0, le=1.0)
    position_jitter_degrees: float = Field(0.00025, ge=0.0)
    battery_drain_per_tick: float = Field(0.1, ge=0.0)
    elevation_jitter: float = Field(1.0, ge=0.0)
    max_speed_kmh: float = Field(20.0, ge=0.0)

    # Demo data
    seed_demo_data: bool = True
    seed: Optional[int] = None  # fixed seed → reproducible demo data

    # Viewer (client) side
    api_url: str = "http://localhost:8000"
    reconnect_delay_seconds: float = Field(8.0, gt=0)
    poll_interval_seconds: float = Field(10.0, gt=0)

    model_config = {"env_prefix": "TRACKPRO_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Debug mode leaks internals; only allow it in development."""
        if self.environment != "development" and self.debug:
            raise ValueError(
                "TRACKPRO_DEBUG must be false in non-development environments."
            )
        return self

    @property
    def ws_url(self) -> str:
        """Live-update URL derived from api_url (http → ws, https → wss)."""
        base = self.api_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return base + self.ws_path


# Singleton — import this everywhere
settings = Settings()
