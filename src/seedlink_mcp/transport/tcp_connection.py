"""TCP connection to a SeedLink server.

SeedLink runs over a single persistent TCP stream; port 18000 by
convention. Reads and writes block until data moves, the optional read
timeout elapses, or the connection fails.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass

from ..protocol.errors import TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "rtserve.iris.washington.edu"
DEFAULT_PORT = 18000
CONNECT_TIMEOUT_S = 10.0
READ_TIMEOUT_S: float | None = None


@dataclass
class ServerAddress:
    """Where the connection points."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class TCPConnection:
    """Manages the TCP connection to a SeedLink server.

    Usage::

        conn = TCPConnection("rtserve.iris.washington.edu", 18000)
        conn.open()
        conn.write(b"HELLO\\r\\n")
        banner = conn.read(2048)
        conn.close()
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        connect_timeout: float = CONNECT_TIMEOUT_S,
        read_timeout: float | None = READ_TIMEOUT_S,
    ) -> None:
        self._address = ServerAddress(host=host, port=port)
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._sock: socket.socket | None = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def address(self) -> ServerAddress:
        return self._address

    def open(self) -> ServerAddress:
        """Connect to the server.

        Raises:
            TransportTimeoutError: If the connection attempt timed out.
            TransportError: If the server cannot be reached.
        """
        if self._sock is not None:
            return self._address

        try:
            sock = socket.create_connection(
                (self._address.host, self._address.port),
                timeout=self._connect_timeout,
            )
        except socket.timeout as e:
            raise TransportTimeoutError(f"Timed out connecting to {self._address}") from e
        except OSError as e:
            raise TransportError(f"Cannot connect to {self._address}: {e}") from e

        sock.settimeout(self._read_timeout)
        self._sock = sock
        logger.info("Connected to %s", self._address)
        return self._address

    def close(self) -> None:
        """Close the connection."""
        if self._sock is None:
            return

        try:
            self._sock.close()
        except OSError as e:
            logger.warning("Error closing connection: %s", e)
        finally:
            self._sock = None
            logger.info("Disconnected from %s", self._address)

    def set_timeout(self, seconds: float | None) -> None:
        """Set the read timeout in seconds (``None`` blocks indefinitely)."""
        self._read_timeout = seconds
        if self._sock is not None:
            self._sock.settimeout(seconds)

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise TransportError("Not connected to server")
        return self._sock

    def write(self, data: bytes) -> int:
        """Write all of ``data`` to the server.

        Returns:
            Number of bytes written.

        Raises:
            TransportError: If not connected or the write fails.
        """
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except socket.timeout as e:
            raise TransportTimeoutError("Timed out writing to server") from e
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e
        return len(data)

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes in a single call.

        Returns:
            The bytes received; ``b""`` once the server has closed the stream.

        Raises:
            TransportTimeoutError: If the read timeout elapsed.
            TransportError: If not connected or the read fails.
        """
        sock = self._require_socket()
        try:
            return sock.recv(size)
        except socket.timeout as e:
            raise TransportTimeoutError(
                f"No data from {self._address} within {self._read_timeout}s"
            ) from e
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

    def __enter__(self) -> TCPConnection:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
