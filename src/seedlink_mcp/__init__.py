"""SeedLink client and MCP server for real-time seismic data feeds."""

from .models.catalog import Catalog, Station, Stream, list_channels
from .models.selector import ChannelSelector
from .protocol.engine import SeedLinkClient, SessionState
from .protocol.errors import SeedLinkError
from .transport.tcp_connection import TCPConnection

__version__ = "0.1.0"
