"""Base model and shared field types for OwnTracks payloads.

Every record model inherits from :class:`TracksBaseModel` which
provides:

* ``frozen=True`` so decoded records can be shared between concurrent
  readers without copying.
* ``extra="ignore"`` so keys added by newer clients do not break
  ingestion of old and new history alike.
* ``populate_by_name=True`` so models can be built from Python with
  descriptive field names while the wire format keeps its short keys.

Unlike lenient API models, enums here are closed: a value without a
mapped member is a validation error, never silently coerced.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer


def parse_epoch_seconds(value: Any) -> datetime:
    """Convert an integer UNIX epoch (seconds) to an aware UTC datetime.

    Floats, strings and booleans are rejected: the protocol only ever
    writes whole seconds.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("expected integer epoch seconds")
    try:
        return datetime.fromtimestamp(value, tz=UTC)
    except (OverflowError, OSError) as exc:
        raise ValueError(f"epoch seconds out of range: {value}") from exc


def to_epoch_seconds(value: datetime) -> int:
    """Inverse of :func:`parse_epoch_seconds`."""
    return int(value.timestamp())


EpochSeconds = Annotated[
    datetime,
    BeforeValidator(parse_epoch_seconds),
    PlainSerializer(to_epoch_seconds, return_type=int),
]
"""Annotated type: integer epoch seconds on the wire, UTC datetime in Python."""


class TracksBaseModel(BaseModel):
    """Base for OwnTracks wire models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
