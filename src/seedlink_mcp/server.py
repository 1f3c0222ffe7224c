"""MCP server entry point for SeedLink data feeds.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.

SeedLink accepts no further commands once streaming has begun, so each
tool opens its own short session against the configured server.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Iterator

from mcp.server.fastmcp import FastMCP

from .models.catalog import Catalog
from .models.miniseed import parse_miniseed_header
from .models.selector import ChannelSelector
from .protocol.engine import SeedLinkClient
from .protocol.errors import PayloadDecodeError, SeedLinkError
from .transport.tcp_connection import (
    CONNECT_TIMEOUT_S,
    DEFAULT_HOST,
    DEFAULT_PORT,
    TCPConnection,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "seedlink",
    instructions="MCP server for SeedLink real-time seismic data feeds",
)

MAX_RECORDS = 100
DEFAULT_READ_TIMEOUT_S = 30.0


@dataclass
class ServerSettings:
    """Connection settings chosen with the ``connect`` tool."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_READ_TIMEOUT_S
    verbose: bool = False


# Global connection settings
_settings: ServerSettings | None = None


def _get_settings() -> ServerSettings:
    """Get the configured server, raising if ``connect`` has not run."""
    if _settings is None:
        raise RuntimeError(
            "No SeedLink server configured. Use the 'connect' tool first."
        )
    return _settings


@contextmanager
def _session(settings: ServerSettings) -> Iterator[SeedLinkClient]:
    """Open a connection, yield a client, and say BYE on the way out."""
    conn = TCPConnection(
        settings.host,
        settings.port,
        connect_timeout=CONNECT_TIMEOUT_S,
        read_timeout=settings.timeout,
    )
    conn.open()
    try:
        with SeedLinkClient(conn, verbose=settings.verbose) as client:
            yield client
    finally:
        conn.close()


def _fetch_catalog() -> Catalog:
    with _session(_get_settings()) as client:
        client.handshake()
        return client.available_streams()


def _parse_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    when = datetime.fromisoformat(value)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_READ_TIMEOUT_S,
    verbose: bool = False,
) -> dict[str, Any]:
    """Configure the SeedLink server to use and verify it answers HELLO.

    Args:
        host: Server hostname (default rtserve.iris.washington.edu).
        port: Server port (default 18000).
        timeout: Read timeout in seconds for every session.
        verbose: Log all protocol traffic at INFO level.
    """
    global _settings
    settings = ServerSettings(host=host, port=port, timeout=timeout, verbose=verbose)
    try:
        with _session(settings) as client:
            hello = client.handshake()
    except SeedLinkError as e:
        return {"connected": False, "error": str(e)}

    _settings = settings
    return {
        "connected": True,
        "server": f"{host}:{port}",
        "software": hello.software,
        "organization": hello.organization,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Forget the configured SeedLink server."""
    global _settings
    _settings = None
    return {"disconnected": True}


@mcp.tool()
def get_server_info() -> dict[str, Any]:
    """Retrieve the server's software version and operating organization."""
    settings = _get_settings()
    try:
        with _session(settings) as client:
            hello = client.handshake()
    except SeedLinkError as e:
        return {"error": str(e)}

    return {
        "server": f"{settings.host}:{settings.port}",
        "software": hello.software,
        "organization": hello.organization,
    }


# ─── CATALOG TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def list_channels(
    network: str | None = None,
    station: str | None = None,
) -> dict[str, Any]:
    """List the channels the server offers as NET_STA_LOC_CHA identifiers.

    Public servers carry thousands of streams; filter to keep the
    result small.

    Args:
        network: Only channels of this network code (e.g. "IU").
        station: Only channels of this station code (e.g. "ANMO").
    """
    try:
        catalog = _fetch_catalog()
    except SeedLinkError as e:
        return {"error": str(e)}

    channels = []
    for channel_id in catalog.list_channels():
        net, sta, _ = channel_id.split("_", 2)
        if network is not None and net != network:
            continue
        if station is not None and sta != station:
            continue
        channels.append(channel_id)

    return {
        "software": catalog.software,
        "organization": catalog.organization,
        "count": len(channels),
        "channels": channels,
    }


@mcp.tool()
def get_station(network: str, station: str) -> dict[str, Any]:
    """Read the catalog entry for one station, including every stream.

    Args:
        network: Network code (e.g. "IU").
        station: Station code (e.g. "ANMO").
    """
    try:
        catalog = _fetch_catalog()
    except SeedLinkError as e:
        return {"error": str(e)}

    entry = catalog.find_station(network, station)
    if entry is None:
        return {"error": f"Station {network}_{station} not offered by server"}
    return entry.to_dict()


# ─── DATA TOOLS ───────────────────────────────────────────────────────

@mcp.tool()
def fetch_records(
    channel_id: str,
    count: int = 1,
    start: str | None = None,
    end: str | None = None,
) -> dict[str, Any]:
    """Stream records from one channel and summarize their headers.

    Args:
        channel_id: Channel as NET_STA_LOC_CHA (e.g. "IU_ANMO_00_BHZ").
        count: Number of records to read (1-100).
        start: Optional ISO-8601 start time; alone it requests backfill
            from that moment on.
        end: Optional ISO-8601 end time; requires start.
    """
    if not 1 <= count <= MAX_RECORDS:
        return {"error": f"Count must be 1-{MAX_RECORDS}"}
    if end is not None and start is None:
        return {"error": "An end time requires a start time"}

    try:
        selector = ChannelSelector.parse(channel_id)
        start_time = _parse_time(start)
        end_time = _parse_time(end)
    except ValueError as e:
        return {"error": str(e)}

    records: list[dict[str, Any]] = []
    try:
        with _session(_get_settings()) as client:
            client.handshake()
            client.select_stream(selector)
            if start_time is not None and end_time is not None:
                client.request_time_range(start_time, end_time)
            elif start_time is not None:
                client.request_backfill(start_time)
            client.begin_streaming()

            for record in client.read_records():
                summary: dict[str, Any] = {"sequence": record.sequence}
                try:
                    summary.update(parse_miniseed_header(record.payload).to_dict())
                except PayloadDecodeError as e:
                    summary["error"] = str(e)
                records.append(summary)
                if len(records) >= count:
                    break
    except SeedLinkError as e:
        return {"error": str(e), "records": records}

    return {"channel": str(selector), "count": len(records), "records": records}


# ─── RESOURCES ────────────────────────────────────────────────────────

@mcp.resource("seedlink://server")
def server_settings() -> str:
    """The SeedLink server tools currently talk to."""
    if _settings is None:
        return json.dumps({"configured": False})
    return json.dumps({"configured": True, **asdict(_settings)}, indent=2)


# ─── PROMPTS ──────────────────────────────────────────────────────────

@mcp.prompt()
def survey_network(network: str) -> str:
    """Survey the stations and channels of one network.

    Args:
        network: Network code (e.g. "IU").
    """
    return f"""Use list_channels with network="{network}" to see what the server offers.
Group the channels by station and summarize:
- Which stations are available
- Which band/instrument codes each offers (e.g. BH?, HH?, LH?)
- Which location codes are in use

Use get_station for details such as the time span each stream covers."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
