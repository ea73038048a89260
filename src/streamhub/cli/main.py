"""streamhub CLI — run the server, mint tokens, publish and listen.

Usage:
    streamhub serve                                   # Run the API + hub (uvicorn)
    streamhub token user:42                           # Mint a stream token
    streamhub token admin --admin                     # Mint an admin token
    streamhub stats                                   # Hub statistics
    streamhub broadcast announcement '{"msg": "hi"}'  # Event to every stream
    streamhub send user:42 new_message '{"id": 7}'    # Event to one subscriber
    streamhub listen                                  # Print events from a stream

Admin commands read the token from --token or STREAMHUB_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Any, Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("STREAMHUB_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str], timeout: Optional[float] = 30.0) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the streamhub server."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=timeout)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. CliRunner inside an async test) by
    offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token_from_ctx(token: Optional[str]) -> str:
    """Resolve the token from the flag or STREAMHUB_TOKEN env var."""
    tok = token or os.environ.get("STREAMHUB_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set STREAMHUB_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _parse_data(raw: str) -> Any:
    """Parse a JSON payload argument; plain text is sent as a string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _check(r: httpx.Response) -> dict:
    if r.status_code >= 400:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
        sys.exit(1)
    return r.json()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="streamhub")
def main():
    """streamhub — real-time event delivery over Server-Sent Events."""


@main.command()
@click.option("--host", default=None, help="Bind address (default STREAMHUB_HOST)")
@click.option("--port", type=int, default=None, help="Port (default STREAMHUB_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP server with the event hub."""
    import uvicorn

    from streamhub.config import settings

    uvicorn.run(
        "streamhub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.argument("subject")
@click.option("--admin", is_flag=True, help="Grant the admin scope")
@click.option("--expires", type=int, default=None, help="Lifetime in minutes")
def token(subject: str, admin: bool, expires: Optional[int]):
    """Mint a JWT for SUBJECT (the subscriber key its streams use)."""
    from streamhub.auth.jwt import TokenError, create_access_token

    try:
        click.echo(
            create_access_token(
                subject,
                scopes=["admin"] if admin else [],
                expires_minutes=expires,
            )
        )
    except TokenError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)


@main.command()
@click.option("--token", "-t", help="Admin token (or set STREAMHUB_TOKEN)")
def stats(token: Optional[str]):
    """Show hub statistics."""
    _run(_stats_impl(_token_from_ctx(token)))


async def _stats_impl(tok: str):
    async with _client(tok) as c:
        data = _check(await c.get("/api/v1/sse/stats"))["data"]

    click.secho(f"Connections: {data['total_connections']}", bold=True)
    for key, count in sorted(data["subscriber_connections"].items()):
        click.echo(f"  {key}: {count}")
    totals = data["totals"]
    click.echo(
        f"Published: {totals['published']}  Delivered: {totals['delivered']}  "
        f"Dropped: {totals['dropped']}"
    )
    dropped = {cid: n for cid, n in data["dropped_by_connection"].items() if n}
    if dropped:
        click.secho("Connections with drops:", fg="yellow")
        for cid, n in dropped.items():
            click.echo(f"  {cid}: {n}")


@main.command()
@click.argument("event")
@click.argument("data")
@click.option("--token", "-t", help="Admin token (or set STREAMHUB_TOKEN)")
def broadcast(event: str, data: str, token: Optional[str]):
    """Send EVENT with JSON DATA to every open stream."""
    body = {"event": event, "data": _parse_data(data)}
    _run(_post_impl(_token_from_ctx(token), "/api/v1/sse/broadcast", body))


@main.command()
@click.argument("subscriber_key")
@click.argument("event")
@click.argument("data")
@click.option("--token", "-t", help="Admin token (or set STREAMHUB_TOKEN)")
def send(subscriber_key: str, event: str, data: str, token: Optional[str]):
    """Send EVENT with JSON DATA to every stream of SUBSCRIBER_KEY."""
    body = {
        "subscriber_key": subscriber_key,
        "event": event,
        "data": _parse_data(data),
    }
    _run(_post_impl(_token_from_ctx(token), "/api/v1/sse/send-to-subscriber", body))


async def _post_impl(tok: str, path: str, body: dict):
    async with _client(tok) as c:
        result = _check(await c.post(path, json=body))
    click.secho(f"{result['message']} (delivered: {result['delivered']})", fg="green")


@main.command()
@click.option("--token", "-t", help="Stream token (or set STREAMHUB_TOKEN)")
@click.option("--raw", is_flag=True, help="Print raw SSE frames")
def listen(token: Optional[str], raw: bool):
    """Open a stream and print events until interrupted."""
    try:
        _run(_listen_impl(_token_from_ctx(token), raw))
    except KeyboardInterrupt:
        pass


async def _listen_impl(tok: str, raw: bool):
    async with _client(tok, timeout=None) as c:
        async with c.stream("GET", "/sse/stream") as r:
            if r.status_code >= 400:
                await r.aread()
                _check(r)
            event_type = "message"
            async for line in r.aiter_lines():
                if raw:
                    click.echo(line)
                    continue
                if line.startswith("event:"):
                    event_type = line[6:].strip()
                elif line.startswith("data:"):
                    payload = _parse_data(line[5:].strip())
                    click.secho(f"[{event_type}] ", fg="cyan", nl=False)
                    click.echo(json.dumps(payload, default=str))
                elif not line:
                    event_type = "message"


if __name__ == "__main__":
    main()
