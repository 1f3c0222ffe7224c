"""Byte-stream transports for talking to SeedLink servers."""

from .tcp_connection import TCPConnection
