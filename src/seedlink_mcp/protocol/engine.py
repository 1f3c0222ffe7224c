"""SeedLink protocol engine: handshake state machine and session commands.

A session runs::

    HELLO                 -> free-text banner
    STATION <sta> <net>   -> OK | ERROR
    SELECT <loc><cha>     -> OK | ERROR
    TIME ...              -> (optional time window)
    END                   -> binary records from here on
    BYE                   -> session closed

``INFO STREAMS`` may be issued before ``END`` to retrieve the catalog.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Iterator

from ..models.catalog import Catalog, XmlCatalogDeserializer
from ..models.miniseed import MiniSeedTextDecoder
from ..models.selector import ChannelSelector
from .aggregator import STREAM_READ_SIZE, CatalogAggregator
from .commands import (
    Command,
    backfill_command,
    build_command,
    format_time,
    select_command,
    station_command,
    time_range_command,
)
from .errors import InvalidTimeRangeError, SessionClosedError, TransportError
from .framing import Record, RecordFramer
from .interfaces import CatalogDeserializer, PayloadDecoder, Transport
from .parser import HelloResponse, check_acknowledgment, decode_text, parse_hello

logger = logging.getLogger(__name__)

RESPONSE_BUFFER_SIZE = 2048


class SessionState(Enum):
    """Where the client is in the handshake."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    NEGOTIATING = "negotiating"
    SELECTING = "selecting"
    STREAMING = "streaming"
    CLOSED = "closed"


class SeedLinkClient:
    """Drives one SeedLink session over a connected transport.

    Usage::

        with TCPConnection(host, port) as conn, SeedLinkClient(conn) as client:
            client.handshake()
            client.select_stream(ChannelSelector("IU", "ANMO", "00", "BHZ"))
            client.begin_streaming()
            for record in client.read_records():
                ...

    Not safe for concurrent use: one caller owns the client and its
    connection.
    """

    def __init__(
        self,
        transport: Transport,
        verbose: bool = False,
        payload_decoder: PayloadDecoder | None = None,
        catalog_deserializer: CatalogDeserializer | None = None,
    ) -> None:
        self._transport = transport
        self._verbose = verbose
        self.payload_decoder: PayloadDecoder = payload_decoder or MiniSeedTextDecoder()
        self.catalog_deserializer: CatalogDeserializer = (
            catalog_deserializer or XmlCatalogDeserializer()
        )
        self.framer = RecordFramer()
        self._state = (
            SessionState.CONNECTED if transport.connected else SessionState.DISCONNECTED
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def verbose(self) -> bool:
        return self._verbose

    def set_verbose(self, verbose: bool) -> None:
        self._verbose = verbose

    def _trace(self, msg: str, *args) -> None:
        logger.log(logging.INFO if self._verbose else logging.DEBUG, msg, *args)

    # ─── RAW I/O ─────────────────────────────────────────────────────

    def set_timeout(self, seconds: float | None) -> None:
        """Set the transport read timeout; ``None`` blocks indefinitely."""
        self._transport.set_timeout(seconds)

    def read(self, size: int = RESPONSE_BUFFER_SIZE) -> bytes:
        """Read up to ``size`` bytes from the server in a single call."""
        return self._transport.read(size)

    def send_command(self, text: str) -> int:
        """Write ``text`` followed by CRLF. No response is read.

        Returns:
            Number of bytes written.

        Raises:
            SessionClosedError: If ``BYE`` has already been sent.
        """
        if self._state is SessionState.CLOSED:
            raise SessionClosedError(f"Cannot send {text!r}: session is closed")
        self._trace("SEND: %s", text)
        return self._transport.write(build_command(text))

    def expect_ok(self) -> None:
        """Read one response buffer and require it to be exactly ``OK``.

        Raises:
            ServerRejectedError: On ``ERROR``.
            UnexpectedResponseError: On anything else.
        """
        data = self.read(RESPONSE_BUFFER_SIZE)
        self._trace("RECV: %r", decode_text(data))
        check_acknowledgment(data)

    # ─── HANDSHAKE ───────────────────────────────────────────────────

    def hello(self) -> int:
        """Say ``HELLO``; the caller reads the banner."""
        n = self.send_command(Command.HELLO.value)
        self._state = SessionState.NEGOTIATING
        return n

    def handshake(self) -> HelloResponse:
        """Say ``HELLO`` and read the banner."""
        self.hello()
        data = self.read(RESPONSE_BUFFER_SIZE)
        self._trace("RECV: %r", decode_text(data))
        response = parse_hello(data)
        logger.info("Server: %s (%s)", response.software, response.organization)
        return response

    def cat(self) -> int:
        """Ask for the station list with the legacy ``CAT`` command."""
        return self.send_command(Command.CAT.value)

    def select_station(self, selector: ChannelSelector) -> None:
        """Select the selector's station: ``STATION <station> <network>``."""
        self.send_command(station_command(selector))
        self.expect_ok()
        self._state = SessionState.SELECTING

    def select_channel(self, selector: ChannelSelector) -> None:
        """Select location and channel: ``SELECT <loc><cha>``."""
        self.send_command(select_command(selector))
        self.expect_ok()
        self._state = SessionState.SELECTING

    def select_stream(self, selector: ChannelSelector) -> None:
        """Select station, then location and channel."""
        self.select_station(selector)
        self.select_channel(selector)

    def request_backfill(self, when: datetime) -> int:
        """Request data from ``when`` until now. No acknowledgment is read."""
        return self.send_command(backfill_command(when))

    def request_time_range(self, start: datetime, end: datetime) -> None:
        """Request data between ``start`` and ``end``.

        Raises:
            InvalidTimeRangeError: If both bounds format to the same second.
                Nothing is sent in that case.
        """
        if format_time(start) == format_time(end):
            raise InvalidTimeRangeError("Time range has no duration")
        self.send_command(time_range_command(start, end))
        self.expect_ok()

    def begin_streaming(self) -> int:
        """Say ``END``: handshaking is over and records start flowing."""
        n = self.send_command(Command.END.value)
        self._state = SessionState.STREAMING
        return n

    def bye(self) -> int:
        """Say ``BYE``. No further commands are accepted."""
        n = self.send_command(Command.BYE.value)
        self._state = SessionState.CLOSED
        return n

    # ─── DATA ────────────────────────────────────────────────────────

    def read_records(self, read_size: int = STREAM_READ_SIZE) -> Iterator[Record]:
        """Yield records as they arrive until the server closes the stream."""
        while True:
            data = self.read(read_size)
            if not data:
                logger.info(
                    "Stream ended with %d bytes of partial record pending",
                    self.framer.pending,
                )
                return
            self.framer.feed(data)
            for record in self.framer.drain():
                self._trace("Record %s", record)
                yield record

    def available_streams(self) -> Catalog:
        """Retrieve the server catalog with ``INFO STREAMS``.

        Public servers offer thousands of streams; this can take a while.
        """
        return CatalogAggregator(self).fetch()

    def list_channels(self) -> list[str]:
        """Retrieve the catalog and list its ``NET_STA_LOC_CHA`` identifiers."""
        return self.available_streams().list_channels()

    def __enter__(self) -> SeedLinkClient:
        return self

    def __exit__(self, *exc_info) -> None:
        if self._state is SessionState.CLOSED or not self._transport.connected:
            return
        try:
            self.bye()
        except TransportError as e:
            logger.warning("Error saying BYE: %s", e)
