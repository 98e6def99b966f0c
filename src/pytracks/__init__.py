"""pytracks - In-memory index and query server for OwnTracks location history."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytracks")
except PackageNotFoundError:
    __version__ = "0+local"
from pytracks.config import TracksConfig
from pytracks.exceptions import (
    FilesystemFailureError,
    InvalidStorageRootError,
    LockUnavailableError,
    MalformedRecordError,
    TracksConfigError,
    TracksError,
    UnknownEntityError,
)
from pytracks.ingestion import FilesystemIngester, IngestionReport, IngestionResult, load_index
from pytracks.models import (
    BatteryStatus,
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
from pytracks.state import DeviceStore, LocationIndex, LocationStore, UserStore

__all__ = [
    "__version__",
    "BatteryStatus",
    "DeviceStore",
    "FilesystemFailureError",
    "FilesystemIngester",
    "IngestionReport",
    "IngestionResult",
    "InvalidStorageRootError",
    "Location",
    "LocationIndex",
    "LocationStore",
    "LockUnavailableError",
    "MalformedRecordError",
    "MobileConnection",
    "MonitoringMode",
    "OfflineConnection",
    "TracksConfig",
    "TracksConfigError",
    "TracksError",
    "Trigger",
    "UnknownEntityError",
    "UserStore",
    "WifiConnection",
    "WifiMetadata",
    "decode_location",
    "encode_location",
    "load_index",
]
