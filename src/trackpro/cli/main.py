"""TrackPro CLI — run the server, inspect events, watch live updates.

Usage:
    trackpro serve                               # Start API + broadcast hub + simulator
    trackpro events                              # List events
    trackpro participants -e 1                   # Riders of event 1 with live tracking
    trackpro alerts -e 1                         # Open alerts for event 1
    trackpro resolve 42                          # Resolve the alert on tracking point 42
    trackpro report 7 1 37.7749 -122.4194        # Submit a tracking point
    trackpro watch --event-id 1                  # Stream live updates, refresh polled views
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from trackpro.config import Settings, settings

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


def _api_url() -> str:
    return settings.api_url.rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the TrackPro backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (CliRunner
    inside async tests).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) if row.get(k) is not None else "-")[:w].ljust(w)
                         for _, k, w in columns)
        click.echo(line)


def _status_color(status: str) -> str:
    colors = {
        "active": "green",
        "upcoming": "cyan",
        "completed": "blue",
        "registered": "white",
        "finished": "blue",
        "withdrawn": "red",
        "disqualified": "red",
        "sos": "red",
        "low-battery": "yellow",
        "off-course": "magenta",
    }
    return colors.get(status, "white")


def _fail_on_404(r: httpx.Response, what: str):
    if r.status_code == 404:
        click.secho(f"{what} not found.", fg="red", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="trackpro")
def main():
    """TrackPro — live participant tracking for outdoor events."""


# ---------------------------------------------------------------------------
# trackpro serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: TRACKPRO_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: TRACKPRO_PORT)")
@click.option("--no-simulator", is_flag=True, help="Do not generate synthetic telemetry")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], no_simulator: bool, reload: bool):
    """Run the HTTP API and the live-update socket."""
    import uvicorn

    if no_simulator:
        os.environ["TRACKPRO_SIMULATOR_ENABLED"] = "false"

    if reload:
        # The reloader imports the app in a fresh process, which reads the env
        app = "trackpro.main:app"
    else:
        from trackpro.main import create_app

        app = create_app(Settings())

    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# trackpro events
# ---------------------------------------------------------------------------


@main.command()
@click.argument("event_id", type=int, required=False)
def events(event_id: Optional[int]):
    """List events, or show one event with its stats."""
    _run(_events_impl(event_id))


async def _events_impl(event_id: Optional[int]):
    async with _client() as c:
        if event_id is None:
            r = await c.get("/api/events")
            r.raise_for_status()
            rows = r.json()
            if not rows:
                click.echo("No events found.")
                return
            click.secho(f"Events ({len(rows)}):", bold=True)
            click.echo()
            _print_table(rows, [
                ("ID", "id", 5),
                ("Status", "status", 10),
                ("Name", "name", 36),
                ("Location", "location", 24),
            ])
            return

        r = await c.get(f"/api/events/{event_id}/stats")
        _fail_on_404(r, f"Event #{event_id}")
        r.raise_for_status()
        event = r.json()

        status_str = click.style(event["status"], fg=_status_color(event["status"]))
        click.secho(f"Event #{event['id']}: {event['name']}", bold=True)
        click.echo(f"  Status:        {status_str}")
        click.echo(f"  Participants:  {event['participantCount']} "
                   f"({event['activeParticipants']} active)")
        click.echo(f"  Open alerts:   {event['alertsCount']}")
        click.echo(f"  Checkpoints:   {event['completedCheckpoints']}/{event['totalCheckpoints']}")
        lead = event.get("leadParticipant")
        if lead:
            click.echo(f"  Leader:        #{lead['number']} {lead['name']} "
                       f"({lead['distance']:.2f} km, {lead['duration']})")


# ---------------------------------------------------------------------------
# trackpro participants
# ---------------------------------------------------------------------------


@main.command()
@click.option("--event-id", "-e", type=int, required=True, help="Event to list")
def participants(event_id: int):
    """Riders of an event with their latest position, distance and duration."""
    _run(_participants_impl(event_id))


async def _participants_impl(event_id: int):
    async with _client() as c:
        r = await c.get(f"/api/events/{event_id}/participants/tracking")
        r.raise_for_status()
        riders = r.json()

        if not riders:
            click.echo("No participants found.")
            return

        rows = []
        for p in riders:
            latest = p.get("latestPosition") or {}
            location = latest.get("location") or {}
            rows.append({
                **p,
                "lat": f"{location['lat']:.5f}" if location else None,
                "lng": f"{location['lng']:.5f}" if location else None,
                "battery": latest.get("battery"),
                "alert": latest.get("alertType") if latest.get("hasAlert") else None,
            })

        click.secho(f"Participants ({len(rows)}):", bold=True)
        click.echo()
        _print_table(rows, [
            ("No", "number", 4),
            ("Name", "name", 20),
            ("Status", "status", 10),
            ("Lat", "lat", 10),
            ("Lng", "lng", 11),
            ("Km", "distance", 7),
            ("Time", "duration", 9),
            ("CPs", "checkpointsCompleted", 4),
            ("Batt", "battery", 6),
            ("Alert", "alert", 12),
        ])


# ---------------------------------------------------------------------------
# trackpro alerts
# ---------------------------------------------------------------------------


@main.command()
@click.option("--event-id", "-e", type=int, required=True, help="Event to check")
def alerts(event_id: int):
    """Open alerts for an event, one per participant."""
    _run(_alerts_impl(event_id))


async def _alerts_impl(event_id: int):
    async with _client() as c:
        r = await c.get(f"/api/events/{event_id}/alerts")
        r.raise_for_status()
        open_alerts = r.json()

        if not open_alerts:
            click.secho("No open alerts.", fg="green")
            return

        click.secho(f"Open alerts ({len(open_alerts)}):", bold=True)
        click.echo()
        for a in open_alerts:
            kind = click.style(a["alertType"], fg=_status_color(a["alertType"]))
            loc = a["location"]
            click.echo(f"  #{a['participantNumber']:<4} {a['participantName']:20s}  [{kind}]  "
                       f"{loc['lat']:.5f},{loc['lng']:.5f}  {a['timestamp']}")
        click.echo("\n  Resolve with: trackpro resolve <point-id>")


# ---------------------------------------------------------------------------
# trackpro resolve
# ---------------------------------------------------------------------------


@main.command()
@click.argument("point_id", type=int)
def resolve(point_id: int):
    """Resolve the alert carried by a tracking point.

    POINT_ID is the trackingPointId shown by `trackpro alerts`. Resolving
    an alert that is already closed is a no-op and still succeeds.
    """
    _run(_resolve_impl(point_id))


async def _resolve_impl(point_id: int):
    async with _client() as c:
        r = await c.post(f"/api/tracking/{point_id}/resolve-alert")
        _fail_on_404(r, f"Tracking point #{point_id}")
        r.raise_for_status()
        click.secho(f"Resolved alert on tracking point #{point_id}", fg="green")


# ---------------------------------------------------------------------------
# trackpro report
# ---------------------------------------------------------------------------


@main.command()
@click.argument("participant_id", type=int)
@click.argument("event_id", type=int)
@click.argument("lat", type=float)
@click.argument("lng", type=float)
@click.option("--speed", type=float, help="km/h")
@click.option("--battery", type=float, help="Percent, 0-100")
@click.option("--elevation", type=float, help="Metres")
@click.option("--alert", "alert_type", type=click.Choice(["sos", "low-battery", "off-course"]),
              help="Raise an alert with this point")
@click.option("--http", "use_http", is_flag=True,
              help="POST to /api/tracking instead of the live channel (confirms the stored point)")
def report(participant_id: int, event_id: int, lat: float, lng: float,
           speed: Optional[float], battery: Optional[float], elevation: Optional[float],
           alert_type: Optional[str], use_http: bool):
    """Send a position report, as a device would. It is stored and broadcast.

    Over the live channel the report is fire-and-forget: the server never
    answers, and an invalid report is dropped silently.
    """
    body = _position_body(participant_id, event_id, lat, lng, speed, battery,
                          elevation, alert_type)
    if use_http:
        _run(_report_http_impl(body))
    else:
        _run(_report_live_impl(body))


def _position_body(participant_id: int, event_id: int, lat: float, lng: float,
                   speed: Optional[float], battery: Optional[float],
                   elevation: Optional[float], alert_type: Optional[str]) -> dict:
    body: dict = {
        "participantId": participant_id,
        "eventId": event_id,
        "location": {"lat": lat, "lng": lng},
        "hasAlert": alert_type is not None,
    }
    for key, value in (("speed", speed), ("battery", battery),
                       ("elevation", elevation), ("alertType", alert_type)):
        if value is not None:
            body[key] = value
    return body


async def _report_live_impl(body: dict, connect_timeout: float = 5.0):
    from trackpro.client.receiver import LiveUpdateReceiver

    receiver = LiveUpdateReceiver(settings.ws_url, reconnect_delay=settings.reconnect_delay_seconds)
    receiver.start()
    try:
        deadline = asyncio.get_running_loop().time() + connect_timeout
        while not receiver.is_connected and asyncio.get_running_loop().time() < deadline:
            await asyncio.sleep(0.05)
        sent = await receiver.send_message({"type": "position_update", "data": body})
    finally:
        await receiver.close()

    if not sent:
        click.secho(f"Could not reach {settings.ws_url}", fg="red", err=True)
        sys.exit(1)
    click.secho(f"Position report sent for participant #{body['participantId']}", fg="green")


async def _report_http_impl(body: dict):
    async with _client() as c:
        r = await c.post("/api/tracking", json=body)
        if r.status_code == 422:
            click.secho("Rejected:", fg="red", err=True)
            click.echo(_pretty_json(r.json()), err=True)
            sys.exit(1)
        r.raise_for_status()
        point = r.json()
        click.secho(f"Tracking point #{point['id']} recorded at {point['timestamp']}", fg="green")


# ---------------------------------------------------------------------------
# trackpro watch
# ---------------------------------------------------------------------------


@main.command()
@click.option("--event-id", "-e", type=int, help="Event to follow (scopes refreshes)")
@click.option("--raw", is_flag=True, help="Print each message as JSON")
def watch(event_id: Optional[int], raw: bool):
    """Stream live updates and keep the event's polled views fresh.

    Reconnects automatically if the server goes away. Ctrl-C to stop.
    """
    try:
        _run(_watch_impl(event_id, raw))
    except KeyboardInterrupt:
        click.echo()


async def _watch_impl(event_id: Optional[int], raw: bool):
    from trackpro.client.query_cache import QueryCache
    from trackpro.client.receiver import LiveUpdateReceiver
    from trackpro.client.reconcile import EVENT_LIST, participants_tracking_key, reconcile

    async with _client() as c:
        cache = QueryCache(c)
        await cache.fetch(EVENT_LIST)
        if event_id is not None:
            await cache.fetch(participants_tracking_key(event_id))

        def on_message(message):
            if raw:
                click.echo(message.model_dump_json(by_alias=True))
            else:
                click.echo(_describe(message))
            stale = reconcile(cache, message, event_id)
            if stale:
                click.secho(f"    stale: {', '.join(stale)}", dim=True)

        receiver = LiveUpdateReceiver(
            settings.ws_url,
            reconnect_delay=settings.reconnect_delay_seconds,
            on_message=on_message,
        )
        click.secho(f"Watching {settings.ws_url} (Ctrl-C to stop)", bold=True)
        receiver.start()
        try:
            while True:
                await asyncio.sleep(settings.poll_interval_seconds)
                for key in await cache.refresh_stale():
                    click.secho(f"    refreshed: {key}", dim=True)
        finally:
            await receiver.close()


def _describe(message) -> str:
    """One line per live message."""
    data = message.data
    if message.type == "connected":
        return click.style(f"connected as {data.client_id}", fg="green")
    if message.type == "position_update":
        battery = f"{data.battery:.1f}%" if data.battery is not None else "-"
        return (f"position  participant={data.participant_id}  "
                f"{data.location.lat:.5f},{data.location.lng:.5f}  battery={battery}")
    if message.type == "alert":
        if getattr(data, "resolved", False):
            return click.style(f"alert     point #{data.id} resolved", fg="green")
        return click.style(
            f"ALERT     #{data.participant_number} {data.participant_name}: {data.alert_type}",
            fg=_status_color(data.alert_type), bold=True,
        )
    if message.type == "event_update":
        return f"event     #{data.id} {data.name} ({data.status})"
    return f"status    participant={data.participant_id} → {data.status}"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
