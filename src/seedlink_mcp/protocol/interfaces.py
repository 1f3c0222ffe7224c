"""Narrow interfaces for the collaborators the protocol engine depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..models.catalog import Catalog


class Transport(Protocol):
    """A connected, blocking byte stream."""

    @property
    def connected(self) -> bool: ...

    def write(self, data: bytes) -> int: ...

    def read(self, size: int) -> bytes: ...

    def set_timeout(self, seconds: float | None) -> None: ...


class PayloadDecoder(Protocol):
    """Turns a 512-byte record payload into text."""

    def decode_text(self, payload: bytes) -> str: ...


class CatalogDeserializer(Protocol):
    """Turns aggregated catalog text into a typed :class:`Catalog`."""

    def deserialize(self, text: str) -> Catalog: ...
