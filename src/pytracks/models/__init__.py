"""Data models for OwnTracks location history."""

from pytracks.models._base import EpochSeconds, TracksBaseModel, parse_epoch_seconds
from pytracks.models.location import (
    BatteryStatus,
    Connection,
    Location,
    MobileConnection,
    MonitoringMode,
    OfflineConnection,
    Trigger,
    WifiConnection,
    WifiMetadata,
    decode_location,
    encode_location,
)

__all__ = [
    "BatteryStatus",
    "Connection",
    "EpochSeconds",
    "Location",
    "MobileConnection",
    "MonitoringMode",
    "OfflineConnection",
    "TracksBaseModel",
    "Trigger",
    "WifiConnection",
    "WifiMetadata",
    "decode_location",
    "encode_location",
    "parse_epoch_seconds",
]
