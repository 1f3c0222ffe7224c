"""Record header decoder and stream framer for SeedLink binary records.

Record layout::

    +-------+---------------------+-------------------------------+
    | Magic | Sequence / sentinel |           Payload             |
    | 2 B   | 6 bytes ASCII       |  512 bytes (miniSEED record)  |
    +-------+---------------------+-------------------------------+

- Magic: ``SL``
- Sequence: 6 hexadecimal digits, or one of the INFO sentinels
  ``INFO *`` (last record of an INFO response) and ``INFO  ``
  (more INFO records follow)
- Payload: opaque to this layer, handed to a payload decoder

Records have no length prefix; the stream is cut every 520 bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .errors import BadMagicError, BadSequenceNumberError, FramingError

logger = logging.getLogger(__name__)

MAGIC = b"SL"
HEADER_SIZE = 8
PAYLOAD_SIZE = 512
RECORD_SIZE = HEADER_SIZE + PAYLOAD_SIZE  # 520

TERMINAL_INFO_FIELD = b"INFO *"
CONTINUATION_INFO_FIELD = b"INFO  "

# Integer values reported by decode_header() for the INFO sentinels
TERMINAL_INFO = 0
CONTINUATION_INFO = -1

MAX_SEQUENCE = 0xFFFFFF


class HeaderKind(Enum):
    """What the 6-byte header field carries."""

    DATA = "data"
    TERMINAL_INFO = "terminal_info"
    CONTINUATION_INFO = "continuation_info"


@dataclass(frozen=True)
class RecordHeader:
    """A decoded 8-byte record header."""

    kind: HeaderKind
    sequence: int = 0

    @property
    def value(self) -> int:
        """Signed integer form: sequence number, 0 for terminal, -1 for continuation."""
        if self.kind is HeaderKind.TERMINAL_INFO:
            return TERMINAL_INFO
        if self.kind is HeaderKind.CONTINUATION_INFO:
            return CONTINUATION_INFO
        return self.sequence

    @property
    def is_terminal(self) -> bool:
        return self.kind is HeaderKind.TERMINAL_INFO


@dataclass(frozen=True)
class Record:
    """One framed SeedLink record: header plus 512-byte payload."""

    header: RecordHeader
    payload: bytes

    @property
    def sequence(self) -> int:
        return self.header.value

    def __repr__(self) -> str:
        return (
            f"Record(kind={self.header.kind.value}, "
            f"sequence={self.header.value}, payload_len={len(self.payload)})"
        )


def parse_header(data: bytes) -> RecordHeader:
    """Parse the first 8 bytes of ``data`` into a :class:`RecordHeader`.

    Raises:
        FramingError: If fewer than 8 bytes are supplied.
        BadMagicError: If bytes 0-1 are not ``SL``.
        BadSequenceNumberError: If the sequence field is not a sentinel
            and not hexadecimal.
    """
    if len(data) < HEADER_SIZE:
        raise FramingError(
            f"Header needs {HEADER_SIZE} bytes, got {len(data)}"
        )

    magic = bytes(data[0:2])
    if magic != MAGIC:
        raise BadMagicError(magic)

    field = bytes(data[2:HEADER_SIZE])
    if field == TERMINAL_INFO_FIELD:
        return RecordHeader(HeaderKind.TERMINAL_INFO)
    if field == CONTINUATION_INFO_FIELD:
        return RecordHeader(HeaderKind.CONTINUATION_INFO)

    try:
        text = field.decode("ascii")
        # int() tolerates signs, whitespace and underscores; the wire format does not
        if not all(c in "0123456789abcdefABCDEF" for c in text):
            raise ValueError(f"non-hexadecimal digits in {text!r}")
        sequence = int(text, 16)
    except ValueError as e:
        raise BadSequenceNumberError(field) from e

    return RecordHeader(HeaderKind.DATA, sequence)


def decode_header(data: bytes) -> int:
    """Decode a record header to its signed integer form.

    Returns the sequence number for data records, ``0`` for the
    terminal INFO sentinel and ``-1`` for the continuation sentinel.
    """
    return parse_header(data).value


def build_header(sequence: int | HeaderKind) -> bytes:
    """Build an 8-byte header for a sequence number or INFO sentinel."""
    if sequence is HeaderKind.TERMINAL_INFO:
        return MAGIC + TERMINAL_INFO_FIELD
    if sequence is HeaderKind.CONTINUATION_INFO:
        return MAGIC + CONTINUATION_INFO_FIELD
    if isinstance(sequence, HeaderKind):
        raise ValueError("A DATA header needs an integer sequence number")
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(
            f"Sequence number must be 0-{MAX_SEQUENCE:#x}, got {sequence}"
        )
    return MAGIC + f"{sequence:06X}".encode("ascii")


def build_record(sequence: int | HeaderKind, payload: bytes = b"") -> bytes:
    """Build a complete 520-byte record, zero-padding the payload."""
    if len(payload) > PAYLOAD_SIZE:
        raise ValueError(
            f"Payload must be at most {PAYLOAD_SIZE} bytes, got {len(payload)}"
        )
    return build_header(sequence) + payload.ljust(PAYLOAD_SIZE, b"\x00")


class RecordFramer:
    """Cuts an incrementally fed byte stream into complete records.

    Usage::

        framer = RecordFramer()
        framer.feed(conn.read(4096))
        for record in framer.drain():
            handle(record)

    Bytes that do not yet form a whole record stay buffered until the
    next :meth:`feed`.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet emitted as records."""
        return len(self._buffer)

    def feed(self, data: bytes) -> None:
        """Append transport bytes to the accumulator."""
        self._buffer.extend(data)

    def drain(self) -> Iterator[Record]:
        """Yield every complete record currently buffered, in arrival order.

        A record is removed from the accumulator before it is yielded, so
        stopping iteration early leaves the rest queued. A record whose
        header fails to decode is removed as a whole before the error
        propagates.
        """
        while len(self._buffer) >= RECORD_SIZE:
            unit = bytes(self._buffer[:RECORD_SIZE])
            del self._buffer[:RECORD_SIZE]
            try:
                header = parse_header(unit[:HEADER_SIZE])
            except FramingError:
                logger.debug("Discarding malformed record header %r", unit[:HEADER_SIZE])
                raise
            yield Record(header=header, payload=unit[HEADER_SIZE:])

    def clear(self) -> None:
        """Drop any buffered partial record."""
        self._buffer.clear()
