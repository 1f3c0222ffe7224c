"""Tests for the SeedLink session engine."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from fakes import FakeTransport
from seedlink_mcp.models.selector import ChannelSelector
from seedlink_mcp.protocol.engine import SeedLinkClient, SessionState
from seedlink_mcp.protocol.errors import (
    InvalidTimeRangeError,
    ServerRejectedError,
    SessionClosedError,
    TransportError,
    UnexpectedResponseError,
)
from seedlink_mcp.protocol.framing import build_record

ANMO = ChannelSelector("IU", "ANMO", "00", "BHZ")
BANNER = b"SeedLink v3.1 (2020.075)\r\nIRIS DMC\r\n"


def test_initial_state():
    assert SeedLinkClient(FakeTransport()).state is SessionState.CONNECTED

    conn = FakeTransport()
    conn.connected = False
    assert SeedLinkClient(conn).state is SessionState.DISCONNECTED


def test_send_command_writes_crlf_and_reads_nothing():
    conn = FakeTransport()
    client = SeedLinkClient(conn)
    assert client.send_command("CAT") == 5
    assert bytes(conn.written) == b"CAT\r\n"
    assert conn.read_calls == 0


def test_handshake():
    conn = FakeTransport([BANNER])
    client = SeedLinkClient(conn)
    hello = client.handshake()
    assert conn.lines == ["HELLO"]
    assert hello.organization == "IRIS DMC"
    assert client.state is SessionState.NEGOTIATING


def test_select_station():
    conn = FakeTransport([b"OK\r\n"])
    client = SeedLinkClient(conn)
    client.select_station(ANMO)
    assert conn.lines == ["STATION ANMO IU"]
    assert client.state is SessionState.SELECTING


def test_select_channel_full_width():
    conn = FakeTransport([b"OK\r\n"])
    SeedLinkClient(conn).select_channel(ANMO)
    assert bytes(conn.written) == b"SELECT 00BHZ\r\n"


def test_select_channel_padded():
    conn = FakeTransport([b"OK\r\n"])
    SeedLinkClient(conn).select_channel(ChannelSelector("IU", "ANMO", "0", "HZ"))
    assert bytes(conn.written) == b"SELECT 0 HZ \r\n"


def test_select_stream_sends_both():
    conn = FakeTransport([b"OK\r\n", b"OK\r\n"])
    SeedLinkClient(conn).select_stream(ANMO)
    assert conn.lines == ["STATION ANMO IU", "SELECT 00BHZ"]


def test_server_rejected():
    conn = FakeTransport([b"ERROR\r\n"])
    with pytest.raises(ServerRejectedError):
        SeedLinkClient(conn).select_station(ANMO)


def test_unexpected_response_carries_text():
    conn = FakeTransport([b"WHAT?\r\n"])
    with pytest.raises(UnexpectedResponseError) as excinfo:
        SeedLinkClient(conn).select_channel(ANMO)
    assert excinfo.value.response == "WHAT?\r\n"


def test_acknowledgment_is_a_single_read():
    """OK split over two reads is not reassembled."""
    conn = FakeTransport([b"O", b"K\r\n"])
    with pytest.raises(UnexpectedResponseError):
        SeedLinkClient(conn).select_station(ANMO)
    assert conn.read_calls == 1


def test_time_range_without_duration_sends_nothing():
    conn = FakeTransport([b"OK\r\n"])
    client = SeedLinkClient(conn)
    t = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    with pytest.raises(InvalidTimeRangeError):
        client.request_time_range(t, t)
    assert bytes(conn.written) == b""
    assert conn.read_calls == 0


def test_time_range_equal_instants_with_different_offsets():
    conn = FakeTransport([b"OK\r\n"])
    start = datetime(2020, 1, 2, 12, 0, 0, tzinfo=timezone.utc)
    end = datetime(2020, 1, 2, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    assert start == end
    with pytest.raises(InvalidTimeRangeError):
        SeedLinkClient(conn).request_time_range(start, end)
    assert bytes(conn.written) == b""
    assert conn.read_calls == 0


def test_time_range_same_second_has_no_duration():
    client = SeedLinkClient(FakeTransport())
    t0 = datetime(2020, 1, 2, 3, 4, 5, 100)
    t1 = datetime(2020, 1, 2, 3, 4, 5, 900)
    with pytest.raises(ValueError):
        client.request_time_range(t0, t1)


def test_time_range():
    conn = FakeTransport([b"OK\r\n"])
    t0 = datetime(2020, 1, 2, 3, 4, 5)
    t1 = datetime(2020, 1, 2, 4, 4, 5)
    SeedLinkClient(conn).request_time_range(t0, t1)
    assert conn.lines == ["TIME 2020,01,02,03,04,05 2020,01,02,04,04,05"]
    assert conn.read_calls == 1


def test_backfill_is_fire_and_forget():
    conn = FakeTransport()
    SeedLinkClient(conn).request_backfill(datetime(2021, 12, 31, 23, 59, 58))
    assert conn.lines == ["TIME 2021,12,31,23,59,58"]
    assert conn.read_calls == 0


def test_backfill_from_non_utc_time_is_sent_in_utc():
    conn = FakeTransport()
    start = datetime(2020, 1, 2, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    SeedLinkClient(conn).request_backfill(start)
    assert conn.lines == ["TIME 2020,01,02,12,00,00"]


def test_full_session_state_transitions():
    conn = FakeTransport([BANNER, b"OK\r\n", b"OK\r\n"])
    client = SeedLinkClient(conn)
    client.handshake()
    assert client.state is SessionState.NEGOTIATING
    client.select_stream(ANMO)
    assert client.state is SessionState.SELECTING
    client.begin_streaming()
    assert client.state is SessionState.STREAMING
    client.bye()
    assert client.state is SessionState.CLOSED
    assert conn.lines == ["HELLO", "STATION ANMO IU", "SELECT 00BHZ", "END", "BYE"]


def test_commands_after_bye_are_rejected():
    conn = FakeTransport()
    client = SeedLinkClient(conn)
    client.bye()
    with pytest.raises(SessionClosedError):
        client.hello()
    assert conn.lines == ["BYE"]


def test_read_records_across_misaligned_reads():
    stream = b"".join(build_record(i) for i in range(1, 4))
    conn = FakeTransport([stream[:300], stream[300:1300], stream[1300:]])
    client = SeedLinkClient(conn)
    client.begin_streaming()
    assert [r.sequence for r in client.read_records()] == [1, 2, 3]


def test_read_records_ends_at_end_of_stream():
    conn = FakeTransport([build_record(7) + b"SL0000"])
    client = SeedLinkClient(conn)
    records = list(client.read_records())
    assert [r.sequence for r in records] == [7]
    assert client.framer.pending == 6


def test_set_timeout():
    conn = FakeTransport()
    SeedLinkClient(conn).set_timeout(2.5)
    assert conn.timeout == 2.5


def test_context_manager_says_bye():
    conn = FakeTransport()
    with SeedLinkClient(conn) as client:
        client.begin_streaming()
    assert conn.lines == ["END", "BYE"]


def test_context_manager_after_bye():
    conn = FakeTransport()
    with SeedLinkClient(conn) as client:
        client.bye()
    assert conn.lines == ["BYE"]


def test_context_manager_tolerates_dead_transport():
    class Dead(FakeTransport):
        def write(self, data):
            raise TransportError("broken pipe")

    with SeedLinkClient(Dead()):
        pass


def test_verbose_traffic_logged_at_info(caplog):
    conn = FakeTransport([b"OK\r\n"])
    client = SeedLinkClient(conn, verbose=True)
    with caplog.at_level(logging.INFO, logger="seedlink_mcp.protocol.engine"):
        client.select_station(ANMO)
    assert "SEND: STATION ANMO IU" in caplog.text


def test_quiet_traffic_not_logged_at_info(caplog):
    conn = FakeTransport([b"OK\r\n"])
    client = SeedLinkClient(conn)
    with caplog.at_level(logging.INFO, logger="seedlink_mcp.protocol.engine"):
        client.select_station(ANMO)
    assert "SEND" not in caplog.text

    client.set_verbose(True)
    assert client.verbose
