"""History line parsing.

Each line of a ``rec/<user>/<device>/<period>`` file looks like::

    2024-01-05T10:12:33Z\t*                 \t{"_type":"location",...}

Everything before the first tab is informational and discarded; the
JSON payload runs from the first ``{`` to the end of the line.
"""

from __future__ import annotations

from pytracks.exceptions import MalformedRecordError
from pytracks.models.location import Location, decode_location


def split_history_line(line: str) -> tuple[str, str]:
    """Split *line* into its ``(prefix, payload)`` parts.

    Raises
    ------
    MalformedRecordError
        If the line carries no JSON object.
    """
    text = line.rstrip("\r\n")
    prefix = text.partition("\t")[0]
    start = text.find("{")
    if start < 0:
        raise MalformedRecordError("No JSON object on history line")
    return prefix, text[start:]


def parse_history_line(line: str) -> Location:
    """Decode the location carried by one history line."""
    _, payload = split_history_line(line)
    return decode_location(payload)
