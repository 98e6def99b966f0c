"""OwnTracks location model.

Field meanings follow the ``_type: location`` message of the OwnTracks
JSON format (https://owntracks.org/booklet/tech/json/#_typelocation).
Optional fields are ``None`` when the key is absent from the payload;
absence is never coerced to a zero value.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    Field,
    SerializerFunctionWrapHandler,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    ValidationInfo,
    model_serializer,
    model_validator,
)

from pytracks.exceptions import MalformedRecordError
from pytracks.models._base import EpochSeconds, TracksBaseModel

_UInt = Annotated[StrictInt, Field(ge=0)]
_Percent = Annotated[StrictInt, Field(ge=0, le=100)]

# Keys that carry the flattened connection variant on the wire.
_CONNECTION_KEYS = ("conn", "SSID", "BSSID")

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class BatteryStatus(IntEnum):
    """Battery charging status (``bs``)."""

    UNKNOWN = 0
    UNPLUGGED = 1
    CHARGING = 2
    FULL = 3


class MonitoringMode(IntEnum):
    """Monitoring mode the message was constructed in (``m``, iOS only)."""

    QUIET = -1
    MANUAL = 0
    SIGNIFICANT = 1
    MOVE = 2


class Trigger(StrEnum):
    """Reason for the location report (``t``)."""

    PING = "p"
    """Issued randomly by the background task."""
    CIRCULAR_REGION = "c"
    """Circular region enter/leave event."""
    BEACON_REGION = "b"
    """Beacon region enter/leave event (iOS only)."""
    REPORT_LOCATION_RESPONSE = "r"
    """Response to a ``reportLocation`` command."""
    MANUAL = "u"
    """Manual publish requested by the user."""
    TIMER = "t"
    """Timer based publish in move mode (iOS only)."""
    LOCATIONS_SERVICES = "v"
    """Frequent Locations monitoring by the OS (iOS only)."""


# ------------------------------------------------------------------
# Connection state
# ------------------------------------------------------------------


class WifiMetadata(TracksBaseModel):
    """Access point details reported alongside a wifi connection (iOS)."""

    ssid: StrictStr = Field(alias="SSID")
    """Unique name of the WLAN."""
    bssid: StrictStr = Field(alias="BSSID")
    """Identifies the access point."""


class WifiConnection(TracksBaseModel):
    """Phone is connected to a WiFi network."""

    conn: Literal["w"] = "w"
    metadata: WifiMetadata | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"conn": self.conn}
        if self.metadata is not None:
            wire["SSID"] = self.metadata.ssid
            wire["BSSID"] = self.metadata.bssid
        return wire


class OfflineConnection(TracksBaseModel):
    """Phone is offline."""

    conn: Literal["o"] = "o"

    def to_wire(self) -> dict[str, Any]:
        return {"conn": self.conn}


class MobileConnection(TracksBaseModel):
    """Phone is on mobile data."""

    conn: Literal["m"] = "m"

    def to_wire(self) -> dict[str, Any]:
        return {"conn": self.conn}


Connection = Annotated[
    WifiConnection | OfflineConnection | MobileConnection,
    Field(discriminator="conn"),
]
"""Internet connectivity when the message was created, keyed by ``conn``."""


# ------------------------------------------------------------------
# Location
# ------------------------------------------------------------------


class Location(TracksBaseModel):
    """A single location fix reported by a device.

    On the wire the connection variant is flattened into the top-level
    object (``conn`` plus, for wifi, ``SSID``/``BSSID``).  In Python it
    is exposed as the nested :data:`Connection` union on ``connection``.
    """

    # --- Position ---
    latitude: StrictFloat = Field(alias="lat")
    """Latitude in degrees."""
    longitude: StrictFloat = Field(alias="lon")
    """Longitude in degrees."""
    timestamp: EpochSeconds = Field(alias="tst")
    """Time of the location fix."""
    accuracy: _UInt | None = Field(default=None, alias="acc")
    """Accuracy of the reported location (m)."""
    altitude: StrictInt | None = Field(default=None, alias="alt")
    """Altitude above sea level (m)."""
    vertical_accuracy: _UInt | None = Field(default=None, alias="vac")
    """Vertical accuracy of ``altitude`` (m)."""
    course: _UInt | None = Field(default=None, alias="cog")
    """Course over ground (degrees)."""
    velocity: _UInt | None = Field(default=None, alias="vel")
    """Velocity (km/h)."""
    barometric_pressure: StrictFloat | None = Field(default=None, alias="p")
    """Barometric pressure (kPa, extended data)."""

    # --- Device ---
    battery_status: BatteryStatus = Field(alias="bs")
    battery: _Percent | None = Field(default=None, alias="batt")
    """Battery level (0-100 %)."""
    connection: Connection | None = None
    monitoring_mode: MonitoringMode | None = Field(default=None, alias="m")
    tracker_id: StrictStr | None = Field(default=None, alias="tid")
    """Initials shown for the user; required in HTTP mode."""

    # --- Regions ---
    trigger: Trigger | None = Field(default=None, alias="t")
    region_radius: _UInt | None = Field(default=None, alias="rad")
    """Radius of the region entered/left (m)."""
    in_regions: tuple[StrictStr, ...] | None = Field(default=None, alias="inregions")
    """Names of the regions the device is currently in. Might be empty."""
    in_region_ids: tuple[StrictStr, ...] | None = Field(default=None, alias="inrids")
    """IDs of the regions the device is currently in. Might be empty."""
    point_of_interest_name: StrictStr | None = Field(default=None, alias="poi")

    # --- Message ---
    tag: StrictStr | None = None
    topic: StrictStr | None = None
    """Original publish topic, e.g. ``owntracks/jane/phone`` (HTTP payloads only)."""
    created_at: EpochSeconds | None = None
    """Time the message was constructed, as opposed to ``timestamp``.

    Documented as required but missing from plenty of real history.
    """

    @model_validator(mode="before")
    @classmethod
    def _nest_connection(cls, values: Any, info: ValidationInfo) -> Any:
        """Fold the flattened ``conn``/``SSID``/``BSSID`` keys into ``connection``."""
        if not isinstance(values, dict):
            return values
        working = dict(values)
        if info.context and info.context.get("wire"):
            # ``connection`` is not a wire key; the variant only arrives flattened.
            working.pop("connection", None)
        if not any(key in working for key in _CONNECTION_KEYS):
            return working
        tag = working.pop("conn", None)
        ssid = working.pop("SSID", None)
        bssid = working.pop("BSSID", None)
        if tag is None:
            return working

        connection: dict[str, Any] = {"conn": tag}
        # Metadata only exists as a pair; a lone SSID or BSSID is dropped.
        if tag == "w" and isinstance(ssid, str) and isinstance(bssid, str):
            connection["metadata"] = {"SSID": ssid, "BSSID": bssid}
        working["connection"] = connection
        return working

    @model_serializer(mode="wrap")
    def _flatten_connection(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data: dict[str, Any] = handler(self)
        data.pop("connection", None)
        if self.connection is not None:
            data.update(self.connection.to_wire())
        return data

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-ready wire form, omitting absent fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ------------------------------------------------------------------
# Codec
# ------------------------------------------------------------------


def _wire_field(loc: tuple[int | str, ...]) -> str | None:
    """Map a pydantic error location back to the offending wire key."""
    if not loc:
        return None
    head = loc[0]
    if head == "connection":
        for part in reversed(loc):
            if part in ("SSID", "BSSID"):
                return str(part)
        return "conn"
    return str(head)


def decode_location(text: str | bytes) -> Location:
    """Decode one JSON object into a :class:`Location`.

    Raises
    ------
    MalformedRecordError
        If the payload is not a JSON object or any field violates its
        type, range or requiredness.
    """
    try:
        return Location.model_validate_json(text, by_alias=True, by_name=False, context={"wire": True})
    except ValidationError as exc:
        first = exc.errors()[0]
        field = _wire_field(tuple(first["loc"]))
        where = f"field '{field}'" if field else "payload"
        raise MalformedRecordError(f"Invalid {where}: {first['msg']}", field=field) from exc


def encode_location(location: Location) -> str:
    """Encode *location* to compact wire JSON; the inverse of :func:`decode_location`."""
    return location.model_dump_json(by_alias=True, exclude_none=True)
