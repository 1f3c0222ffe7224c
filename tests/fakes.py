"""In-memory stand-ins for the transport used across tests."""

from __future__ import annotations

from seedlink_mcp.models.miniseed import build_text_record
from seedlink_mcp.protocol.framing import HeaderKind, build_record


class FakeTransport:
    """Replays canned server responses and records everything written.

    Each ``read`` returns the next queued response, split if it is
    larger than the requested size. An exhausted queue reads as ``b""``
    (server closed the stream).
    """

    def __init__(self, responses: list[bytes] | None = None) -> None:
        self.responses = list(responses or [])
        self.written = bytearray()
        self.read_calls = 0
        self.timeout: float | None = None
        self.connected = True

    def write(self, data: bytes) -> int:
        self.written.extend(data)
        return len(data)

    def read(self, size: int) -> bytes:
        self.read_calls += 1
        if not self.responses:
            return b""
        data = self.responses.pop(0)
        if len(data) > size:
            self.responses.insert(0, data[size:])
            data = data[:size]
        return data

    def set_timeout(self, seconds: float | None) -> None:
        self.timeout = seconds

    @property
    def lines(self) -> list[str]:
        return self.written.decode("ascii").split("\r\n")[:-1]


def info_records(text: str, chunk_size: int = 400) -> bytes:
    """Split ``text`` across INFO records, the last one headed ``INFO *``."""
    chunks = [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)] or [""]
    out = bytearray()
    for i, chunk in enumerate(chunks):
        last = i == len(chunks) - 1
        kind = HeaderKind.TERMINAL_INFO if last else HeaderKind.CONTINUATION_INFO
        out.extend(build_record(kind, build_text_record(chunk, sequence_number=i + 1)))
    return bytes(out)


CATALOG_XML = """<?xml version="1.0"?>
<seedlink software="SeedLink v3.1 (2020.075)" organization="IRIS DMC" started="2020/03/16 17:02:55.6143">
  <station name="ANTO" network="IU" description="Ankara, Turkey" begin_seq="0A1B2C" end_seq="0A1B3F" stream_check="enabled">
    <stream location="00" seedname="BHE" type="D" begin_time="2020/03/20 10:00:00.0000" end_time="2020/03/20 11:00:00.0000" begin_recno="12" end_recno="40" gap_check="enabled" gap_threshold="0"/>
    <stream location="10" seedname="BHZ" type="D" begin_time="2020/03/20 10:00:00.0000" end_time="2020/03/20 11:00:00.0000"/>
  </station>
  <station name="ANMO" network="IU" description="Albuquerque, New Mexico, USA" begin_seq="000001" end_seq="0000FF" stream_check="disabled">
    <stream location="00" seedname="BHZ" type="D" begin_time="2020/03/20 10:00:00.0000" end_time="2020/03/20 11:00:00.0000"/>
  </station>
</seedlink>
"""
