"""Data models for channel selectors, the stream catalog, and miniSEED records."""

from .selector import ChannelSelector
from .catalog import Catalog, Station, Stream, XmlCatalogDeserializer, list_channels
from .miniseed import MiniSeedHeader, MiniSeedTextDecoder, parse_miniseed_header
