"""Channel selector: the network/station/location/channel subscription target."""

from __future__ import annotations

from dataclasses import dataclass

SEPARATOR = "_"


@dataclass(frozen=True)
class ChannelSelector:
    """Identifies one subscribable data channel.

    Network is typically two characters, location e.g. ``00`` or ``10``
    (may be empty), channel e.g. ``BHZ`` or ``HHE``.
    """

    network: str
    station: str
    location: str
    channel: str

    def __post_init__(self) -> None:
        for name in ("network", "station", "channel"):
            if not getattr(self, name):
                raise ValueError(f"Channel selector {name} must not be empty")
        for name in ("network", "station", "location", "channel"):
            value = getattr(self, name)
            if any(c.isspace() for c in value):
                raise ValueError(
                    f"Channel selector {name} must not contain whitespace, got {value!r}"
                )

    @classmethod
    def parse(cls, identifier: str) -> ChannelSelector:
        """Build a selector from ``NET_STA_LOC_CHA`` as produced by ``list_channels``."""
        parts = identifier.strip().split(SEPARATOR)
        if len(parts) != 4:
            raise ValueError(
                f"Channel identifier must look like NET_STA_LOC_CHA, got {identifier!r}"
            )
        network, station, location, channel = parts
        return cls(network=network, station=station, location=location, channel=channel)

    def __str__(self) -> str:
        return SEPARATOR.join((self.network, self.station, self.location, self.channel))
