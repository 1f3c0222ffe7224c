"""Catalog model: the stations and streams a server offers.

The catalog arrives as the XML document returned for ``INFO STREAMS``::

    <seedlink software="..." organization="..." started="...">
      <station name="ANMO" network="IU" description="..." begin_seq="..."
               end_seq="..." stream_check="enabled">
        <stream seedname="BHZ" location="00" type="D" begin_time="..."
                end_time="..." begin_recno="..." end_recno="..."
                gap_check="enabled" gap_threshold="..."/>
      </station>
    </seedlink>

The ``begin_recno``/``end_recno``/``gap_check``/``gap_threshold`` attributes
only appear when the server has gap checking enabled.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, asdict
from pathlib import Path

from ..protocol.errors import CatalogParseError
from .selector import SEPARATOR


@dataclass(frozen=True)
class Stream:
    """One stream (channel) of a station."""

    seedname: str
    location: str
    type: str
    begin_time: str
    end_time: str
    begin_recno: str | None = None
    end_recno: str | None = None
    gap_check: str | None = None
    gap_threshold: str | None = None

    @property
    def identifier(self) -> str:
        return f"{self.location.strip()}{SEPARATOR}{self.seedname.strip()}"

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Station:
    """A station and its streams."""

    name: str
    network: str
    description: str
    begin_seq: str
    end_seq: str
    stream_check: str
    streams: tuple[Stream, ...] = ()

    @property
    def identifier(self) -> str:
        return f"{self.network.strip()}{SEPARATOR}{self.name.strip()}"

    def channel_ids(self) -> list[str]:
        return [
            f"{self.identifier}{SEPARATOR}{stream.identifier}"
            for stream in self.streams
        ]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "network": self.network,
            "description": self.description,
            "begin_seq": self.begin_seq,
            "end_seq": self.end_seq,
            "stream_check": self.stream_check,
            "streams": [s.to_dict() for s in self.streams],
        }


@dataclass(frozen=True)
class Catalog:
    """Server metadata plus every station it offers."""

    software: str
    organization: str
    started: str
    stations: tuple[Station, ...] = ()

    def list_channels(self) -> list[str]:
        return list_channels(self)

    def find_station(self, network: str, name: str) -> Station | None:
        for station in self.stations:
            if station.network.strip() == network and station.name.strip() == name:
                return station
        return None

    def to_dict(self) -> dict:
        return {
            "software": self.software,
            "organization": self.organization,
            "started": self.started,
            "stations": [s.to_dict() for s in self.stations],
        }


def list_channels(catalog: Catalog) -> list[str]:
    """Return ``NET_STA_LOC_CHA`` identifiers for every stream, sorted ascending."""
    channels: list[str] = []
    for station in catalog.stations:
        channels.extend(station.channel_ids())
    channels.sort()
    return channels


# ─── XML DESERIALIZATION ─────────────────────────────────────────────

STATION_FIELDS = ("name", "network", "description", "begin_seq", "end_seq", "stream_check")
STREAM_FIELDS = ("seedname", "location", "type", "begin_time", "end_time")
STREAM_OPTIONAL_FIELDS = ("begin_recno", "end_recno", "gap_check", "gap_threshold")
CATALOG_FIELDS = ("software", "organization", "started")


def _required(element: ET.Element, names: tuple[str, ...]) -> dict[str, str]:
    values = {}
    for name in names:
        value = element.get(name)
        if value is None:
            raise CatalogParseError(
                f"<{element.tag}> is missing required attribute '{name}'"
            )
        values[name] = value
    return values


def _parse_stream(element: ET.Element) -> Stream:
    fields = _required(element, STREAM_FIELDS)
    for name in STREAM_OPTIONAL_FIELDS:
        fields[name] = element.get(name)
    return Stream(**fields)


def _parse_station(element: ET.Element) -> Station:
    fields = _required(element, STATION_FIELDS)
    streams = tuple(_parse_stream(e) for e in element.findall("stream"))
    return Station(streams=streams, **fields)


class XmlCatalogDeserializer:
    """Builds a :class:`Catalog` from the ``INFO STREAMS`` XML document."""

    def deserialize(self, text: str) -> Catalog:
        """Parse the whole document.

        Raises:
            CatalogParseError: If the text is not well-formed XML or an
                element lacks a required attribute. No partial catalog
                is returned.
        """
        try:
            root = ET.fromstring(text.strip())
        except ET.ParseError as e:
            raise CatalogParseError(f"Error parsing catalog XML: {e}") from e

        fields = _required(root, CATALOG_FIELDS)
        stations = tuple(_parse_station(e) for e in root.findall("station"))
        return Catalog(stations=stations, **fields)


def parse_catalog(text: str) -> Catalog:
    """Deserialize catalog XML with the default deserializer."""
    return XmlCatalogDeserializer().deserialize(text)


def load_catalog(path: str | Path) -> Catalog:
    """Load a catalog document saved to disk."""
    path = Path(path)
    return parse_catalog(path.read_text(encoding="utf-8"))
