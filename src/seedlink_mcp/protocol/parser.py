"""Parsing of textual server responses: acknowledgments and the HELLO banner."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ServerRejectedError, UnexpectedResponseError

ACK_OK = b"OK\r\n"
ACK_ERROR = b"ERROR\r\n"


@dataclass
class HelloResponse:
    """Parsed HELLO banner.

    The server answers with two lines: software/version and the
    organization operating the server.
    """

    software: str
    organization: str
    raw: bytes

    def __repr__(self) -> str:
        return (
            f"HelloResponse(software={self.software!r}, "
            f"organization={self.organization!r})"
        )


def decode_text(data: bytes) -> str:
    """Decode server text without failing on stray bytes."""
    return data.decode("utf-8", errors="replace")


def check_acknowledgment(data: bytes) -> None:
    """Require ``data`` to be exactly ``OK\\r\\n``.

    Raises:
        ServerRejectedError: If the server sent exactly ``ERROR\\r\\n``.
        UnexpectedResponseError: For anything else, including ``OK``
            without its line terminator.
    """
    if data == ACK_OK:
        return
    if data == ACK_ERROR:
        raise ServerRejectedError("SeedLink returned an error")
    raise UnexpectedResponseError(decode_text(data))


def parse_hello(data: bytes) -> HelloResponse:
    """Parse the HELLO banner. Missing lines become empty strings."""
    lines = decode_text(data).splitlines()
    software = lines[0].strip() if lines else ""
    organization = lines[1].strip() if len(lines) > 1 else ""
    return HelloResponse(software=software, organization=organization, raw=data)
