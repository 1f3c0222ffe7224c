"""miniSEED 2.x fixed-header reader and ASCII payload decoder.

Only what the client needs is read: identification, timing and sample
count from the 48-byte fixed header, and the data encoding from
blockette 1000. Numeric samples are never decompressed.

Fixed header layout (offsets within the record)::

    +--------+---------+----------+---------+---------+---------+-------+
    | Seq no | Quality | Reserved | Station | Loc     | Channel | Net   |
    | 0: 6 B | 6: 1 B  | 7: 1 B   | 8: 5 B  | 13: 2 B | 15: 3 B | 18: 2 |
    +--------+---------+----------+---------+---------+---------+-------+
    | BTIME start | Samples | Rate fact | Rate mult | Flags  | Blockettes |
    | 20: 10 B    | 30: u16 | 32: i16   | 34: i16   | 36: 3 B| 39: u8     |
    +-------------+---------+-----------+-----------+--------+------------+
    | Time correction | Data offset | First blockette |
    | 40: i32         | 44: u16     | 46: u16         |
    +-----------------+-------------+-----------------+
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone

from ..protocol.errors import PayloadDecodeError

FIXED_HEADER_SIZE = 48
BLOCKETTE_1000 = 1000
ENCODING_ASCII = 0

# BTIME: year, day-of-year, hour, minute, second, unused, 1/10000 s
BTIME_FORMAT = "HHBBBBH"
BTIME_OFFSET = 20


@dataclass
class MiniSeedHeader:
    """Summary of a miniSEED record's fixed header."""

    sequence_number: str
    network: str
    station: str
    location: str
    channel: str
    start_time: datetime
    num_samples: int
    sample_rate: float
    data_offset: int
    encoding: int | None
    byte_order: str

    def to_dict(self) -> dict:
        d = asdict(self)
        d["start_time"] = self.start_time.isoformat()
        return d


def _detect_byte_order(payload: bytes) -> str:
    """Pick the struct prefix that yields a plausible BTIME year and day."""
    for prefix in (">", "<"):
        year, day = struct.unpack_from(prefix + "HH", payload, BTIME_OFFSET)
        if 1900 <= year <= 2100 and 1 <= day <= 366:
            return prefix
    raise PayloadDecodeError("Payload is not a miniSEED record (implausible start time)")


def _sample_rate(factor: int, multiplier: int) -> float:
    if factor == 0 or multiplier == 0:
        return 0.0
    if factor > 0 and multiplier > 0:
        return float(factor * multiplier)
    if factor > 0 > multiplier:
        return -float(factor) / multiplier
    if factor < 0 < multiplier:
        return -float(multiplier) / factor
    return 1.0 / (factor * multiplier)


def _find_encoding(payload: bytes, order: str, first_blockette: int, count: int) -> int | None:
    """Walk the blockette chain looking for blockette 1000's encoding byte."""
    offset = first_blockette
    seen = 0
    while offset and seen < count:
        if offset + 4 > len(payload):
            raise PayloadDecodeError(f"Blockette offset {offset} beyond record end")
        btype, next_offset = struct.unpack_from(order + "HH", payload, offset)
        if btype == BLOCKETTE_1000:
            if offset + 5 > len(payload):
                raise PayloadDecodeError("Truncated blockette 1000")
            return payload[offset + 4]
        if next_offset and next_offset <= offset:
            raise PayloadDecodeError("Blockette chain does not advance")
        offset = next_offset
        seen += 1
    return None


def parse_miniseed_header(payload: bytes) -> MiniSeedHeader:
    """Read the fixed header and blockette 1000 of a miniSEED record.

    Raises:
        PayloadDecodeError: If the payload is too short or not miniSEED.
    """
    if len(payload) < FIXED_HEADER_SIZE:
        raise PayloadDecodeError(
            f"miniSEED fixed header needs {FIXED_HEADER_SIZE} bytes, got {len(payload)}"
        )

    order = _detect_byte_order(payload)
    year, day, hour, minute, second, _, tenth_ms = struct.unpack_from(
        order + BTIME_FORMAT, payload, BTIME_OFFSET
    )
    num_samples, factor, multiplier = struct.unpack_from(order + "Hhh", payload, 30)
    blockette_count = payload[39]
    data_offset, first_blockette = struct.unpack_from(order + "HH", payload, 44)

    try:
        start_time = datetime(year, 1, 1, hour, minute, second, tzinfo=timezone.utc) + timedelta(
            days=day - 1, microseconds=tenth_ms * 100
        )
    except ValueError as e:
        raise PayloadDecodeError(f"Invalid miniSEED start time: {e}") from e

    def _text(start: int, end: int) -> str:
        return payload[start:end].decode("ascii", errors="replace").strip()

    return MiniSeedHeader(
        sequence_number=_text(0, 6),
        network=_text(18, 20),
        station=_text(8, 13),
        location=_text(13, 15),
        channel=_text(15, 18),
        start_time=start_time,
        num_samples=num_samples,
        sample_rate=_sample_rate(factor, multiplier),
        data_offset=data_offset,
        encoding=_find_encoding(payload, order, first_blockette, blockette_count),
        byte_order="big" if order == ">" else "little",
    )


class MiniSeedTextDecoder:
    """Extracts the text carried by an ASCII-encoded miniSEED record.

    INFO responses carry their XML in such records: the sample count is
    the number of characters starting at the data offset. Text is decoded as
    Latin-1, one character per byte, so a response split across records
    loses nothing: joining the decoded pieces gives the same string as
    decoding the joined bytes.
    """

    def decode_text(self, payload: bytes) -> str:
        header = parse_miniseed_header(payload)
        if header.encoding not in (None, ENCODING_ASCII):
            raise PayloadDecodeError(
                f"Record {header.sequence_number} is not ASCII-encoded "
                f"(encoding {header.encoding})"
            )
        if header.num_samples == 0:
            return ""
        start = header.data_offset
        end = start + header.num_samples
        if start < FIXED_HEADER_SIZE or end > len(payload):
            raise PayloadDecodeError(
                f"Text range {start}-{end} outside record of {len(payload)} bytes"
            )
        return payload[start:end].decode("latin-1").rstrip("\x00")


def build_text_record(
    text: str,
    station: str = "",
    network: str = "",
    sequence_number: int = 1,
    record_length: int = 512,
    start: datetime | None = None,
) -> bytes:
    """Build an ASCII-encoded, big-endian miniSEED record carrying ``text``.

    The inverse of :meth:`MiniSeedTextDecoder.decode_text`, used to stage
    INFO responses in tests and tooling. Text is encoded as Latin-1.
    """
    data_offset = 64
    data = text.encode("latin-1")
    if data_offset + len(data) > record_length:
        raise ValueError(
            f"Text of {len(data)} bytes does not fit a {record_length}-byte record"
        )
    start = start or datetime(2000, 1, 1, tzinfo=timezone.utc)
    day = start.timetuple().tm_yday

    buf = bytearray(record_length)
    buf[0:6] = f"{sequence_number:06d}".encode("ascii")
    buf[6:7] = b"D"
    buf[8:13] = station.encode("ascii")[:5].ljust(5)
    buf[13:15] = b"  "
    buf[15:18] = b"LOG"
    buf[18:20] = network.encode("ascii")[:2].ljust(2)
    struct.pack_into(
        ">" + BTIME_FORMAT, buf, BTIME_OFFSET,
        start.year, day, start.hour, start.minute, start.second, 0,
        start.microsecond // 100,
    )
    struct.pack_into(">Hhh", buf, 30, len(data), 0, 0)
    buf[39] = 1
    struct.pack_into(">HH", buf, 44, data_offset, FIXED_HEADER_SIZE)
    # Blockette 1000: type, next, encoding, word order, record length exponent
    exponent = record_length.bit_length() - 1
    struct.pack_into(">HHBBBB", buf, FIXED_HEADER_SIZE, BLOCKETTE_1000, 0, ENCODING_ASCII, 1, exponent, 0)
    buf[data_offset : data_offset + len(data)] = data
    return bytes(buf)
