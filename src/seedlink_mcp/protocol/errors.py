"""Exception hierarchy for SeedLink protocol failures.

Every failure raised by the client derives from :class:`SeedLinkError`, so
callers can catch the whole family or inspect the specific kind to decide
whether to reconnect, re-issue a command, or abort.
"""

from __future__ import annotations


class SeedLinkError(Exception):
    """Base class for all SeedLink client errors."""


class TransportError(SeedLinkError):
    """The underlying byte stream failed (I/O error, closed peer, not connected)."""


class TransportTimeoutError(TransportError):
    """A transport read exceeded the configured timeout."""


class FramingError(SeedLinkError):
    """A record could not be framed or its header could not be decoded."""


class BadMagicError(FramingError):
    """The record header does not start with the ``SL`` marker."""

    def __init__(self, magic: bytes) -> None:
        super().__init__(f"Not a SeedLink record: bad magic {magic!r}")
        self.magic = magic


class BadSequenceNumberError(FramingError):
    """The 6-byte sequence field is neither a sentinel nor hexadecimal."""

    def __init__(self, field: bytes) -> None:
        super().__init__(f"Invalid sequence number field {field!r}")
        self.field = field


class ServerRejectedError(SeedLinkError):
    """The server answered a command with the literal ``ERROR``."""


class UnexpectedResponseError(SeedLinkError):
    """The server answered with something other than ``OK`` or ``ERROR``."""

    def __init__(self, response: str) -> None:
        super().__init__(f"SeedLink returned an unexpected message: {response!r}")
        self.response = response


class InvalidTimeRangeError(SeedLinkError, ValueError):
    """A requested time window has no duration."""


class CatalogParseError(SeedLinkError):
    """Aggregated catalog text is not a well-formed catalog document."""


class PayloadDecodeError(SeedLinkError):
    """A record payload could not be decoded into text."""


class SessionClosedError(SeedLinkError):
    """A command was issued after the session was terminated with ``BYE``."""
