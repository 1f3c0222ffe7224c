"""Protocol layer: record framing, command builders, response parsing, and the session engine."""

from .framing import RecordFramer, decode_header, parse_header
from .commands import Command, build_command
