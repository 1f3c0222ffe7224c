"""SeedLink command keywords and command-line builders.

Every command is a line of ASCII text terminated by CRLF. Keywords are
case-sensitive.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from ..models.selector import ChannelSelector

LINE_TERMINATOR = "\r\n"
TIME_FORMAT = "%Y,%m,%d,%H,%M,%S"

LOCATION_WIDTH = 2
CHANNEL_WIDTH = 3


class Command(str, Enum):
    """Command keywords."""

    HELLO = "HELLO"
    CAT = "CAT"
    STATION = "STATION"
    SELECT = "SELECT"
    TIME = "TIME"
    END = "END"
    INFO = "INFO"
    BYE = "BYE"


def build_command(text: str) -> bytes:
    """Encode one command line, appending the CRLF terminator."""
    return (text + LINE_TERMINATOR).encode("ascii")


def format_time(when: datetime) -> str:
    """Format a timestamp as ``year,month,day,hour,minute,second`` in UTC.

    Aware timestamps are converted to UTC first; naive ones are taken as UTC.
    """
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return when.strftime(TIME_FORMAT)


def station_command(selector: ChannelSelector) -> str:
    """Build ``STATION <station> <network>``."""
    return f"{Command.STATION.value} {selector.station} {selector.network}"


def select_command(selector: ChannelSelector) -> str:
    """Build ``SELECT <loc><chan>``.

    Location and channel are left-justified and space-padded to 2 and 3
    characters. Longer values are sent as-is.
    """
    location = selector.location.ljust(LOCATION_WIDTH)
    channel = selector.channel.ljust(CHANNEL_WIDTH)
    return f"{Command.SELECT.value} {location}{channel}"


def backfill_command(when: datetime) -> str:
    """Build ``TIME <y,m,d,H,M,S>`` requesting data from ``when`` onward."""
    return f"{Command.TIME.value} {format_time(when)}"


def time_range_command(start: datetime, end: datetime) -> str:
    """Build ``TIME <t0> <t1>`` for a bounded window."""
    return f"{Command.TIME.value} {format_time(start)} {format_time(end)}"


def info_command(level: str = "STREAMS") -> str:
    """Build ``INFO <level>``."""
    return f"{Command.INFO.value} {level}"
