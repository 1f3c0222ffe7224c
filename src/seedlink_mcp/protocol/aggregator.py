"""Multi-record aggregation of the ``INFO STREAMS`` catalog response.

The server answers ``INFO STREAMS`` with a run of INFO records whose
payloads carry consecutive slices of one XML document. Every record but
the last is headed ``SLINFO  ``; the last is headed ``SLINFO *``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .commands import info_command
from .errors import TransportError
from .framing import RecordHeader

if TYPE_CHECKING:
    from ..models.catalog import Catalog
    from .engine import SeedLinkClient

logger = logging.getLogger(__name__)

STREAM_READ_SIZE = 4096


class CatalogAggregator:
    """Retrieves and assembles the catalog over a client's connection."""

    def __init__(self, client: SeedLinkClient, read_size: int = STREAM_READ_SIZE) -> None:
        self._client = client
        self._read_size = read_size
        self.last_header: RecordHeader | None = None
        self.record_count = 0

    def collect_text(self) -> str:
        """Send ``INFO STREAMS`` and return the concatenated payload text.

        Reading continues until a terminal INFO record has been decoded.
        A read that completes no record keeps the loop going.

        Raises:
            TransportError: If the server closes the stream first.
        """
        client = self._client
        framer = client.framer
        decoder = client.payload_decoder
        chunks: list[str] = []
        self.last_header = None
        self.record_count = 0

        client.send_command(info_command("STREAMS"))
        while self.last_header is None or not self.last_header.is_terminal:
            data = client.read(self._read_size)
            if not data:
                raise TransportError(
                    f"Connection closed after {self.record_count} catalog records"
                )
            framer.feed(data)
            for record in framer.drain():
                chunks.append(decoder.decode_text(record.payload))
                self.last_header = record.header
                self.record_count += 1
                if record.header.is_terminal:
                    break

        logger.debug("Catalog assembled from %d records", self.record_count)
        return "".join(chunks)

    def fetch(self) -> Catalog:
        """Retrieve the catalog and deserialize it as a whole."""
        text = self.collect_text()
        return self._client.catalog_deserializer.deserialize(text)
