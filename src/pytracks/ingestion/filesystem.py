"""One-shot ingestion of the recorder storage tree.

Layout::

    <base>/last/<user>/<device>/              existence defines users/devices
    <base>/rec/<user>/<device>/<period-file>  one "<prefix>\\t<json>" per line

The ``last`` tree is the source of truth for which users and devices
exist; history under ``rec`` is only read for devices discovered there.
Files inside ``last`` are never parsed.
"""

from __future__ import annotations

import logging
import time
from operator import attrgetter
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from pytracks.exceptions import FilesystemFailureError, InvalidStorageRootError, MalformedRecordError
from pytracks.ingestion.records import parse_history_line
from pytracks.models.location import Location
from pytracks.state.index import DeviceStore, LocationIndex, UserStore

_logger = logging.getLogger(__name__)

LAST_DIRECTORY = "last"
HISTORY_DIRECTORY = "rec"


class IngestionReport(BaseModel):
    """Counts and timings of one ingestion pass.

    ``load_seconds`` covers discovery and parsing, ``sort_seconds`` the
    separate sort pass; the two are measured independently.
    """

    model_config = ConfigDict(frozen=True)

    users: int
    devices: int
    locations: int
    load_seconds: float
    sort_seconds: float


class IngestionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: LocationIndex
    report: IngestionReport


def _subdirectories(directory: Path) -> list[Path]:
    return sorted(entry for entry in directory.iterdir() if entry.is_dir())


class FilesystemIngester:
    """Builds a :class:`LocationIndex` from a storage base directory."""

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path)

    @property
    def last_directory(self) -> Path:
        return self.base_path / LAST_DIRECTORY

    @property
    def history_directory(self) -> Path:
        return self.base_path / HISTORY_DIRECTORY

    def load(self) -> IngestionResult:
        """Discover, parse and sort the whole storage tree.

        Raises
        ------
        InvalidStorageRootError
            If the base path exists but is not a directory.
        FilesystemFailureError
            On any I/O error while scanning or reading.
        MalformedRecordError
            If any history line fails to decode.
        """
        _logger.info("Loading from base directory '%s'", self.base_path)
        started_loading = time.perf_counter()

        try:
            self._prepare_base()
            pending = self._discover()
            for user_name, devices in pending.items():
                for device_name, locations in devices.items():
                    locations.extend(self._read_history(user_name, device_name))
        except OSError as exc:
            path = Path(exc.filename) if exc.filename else None
            raise FilesystemFailureError(f"Unable to read storage: {exc}", path=path) from exc

        location_count = sum(len(locations) for devices in pending.values() for locations in devices.values())
        load_seconds = time.perf_counter() - started_loading
        _logger.info(
            "Loading took %.2fs, loaded %d user(s) with a total of %d location(s)",
            load_seconds,
            len(pending),
            location_count,
        )

        started_sorting = time.perf_counter()
        for devices in pending.values():
            for locations in devices.values():
                locations.sort(key=attrgetter("timestamp"))
        sort_seconds = time.perf_counter() - started_sorting
        _logger.info("Sorting locations took %.2fs", sort_seconds)

        index = LocationIndex(
            users={
                user_name: UserStore(
                    devices={
                        device_name: DeviceStore(locations=tuple(locations))
                        for device_name, locations in devices.items()
                    }
                )
                for user_name, devices in pending.items()
            }
        )
        report = IngestionReport(
            users=len(pending),
            devices=sum(len(devices) for devices in pending.values()),
            locations=location_count,
            load_seconds=load_seconds,
            sort_seconds=sort_seconds,
        )
        return IngestionResult(index=index, report=report)

    def _prepare_base(self) -> None:
        if not self.base_path.exists():
            _logger.debug("No base directory at '%s', creating", self.base_path)
            self.base_path.mkdir(parents=True)
        elif not self.base_path.is_dir():
            raise InvalidStorageRootError(self.base_path)
        self.last_directory.mkdir(exist_ok=True)
        self.history_directory.mkdir(exist_ok=True)

    def _discover(self) -> dict[str, dict[str, list[Location]]]:
        """Enumerate ``last/<user>/<device>`` into empty per-device buffers."""
        pending: dict[str, dict[str, list[Location]]] = {}
        for user_directory in _subdirectories(self.last_directory):
            devices = pending.setdefault(user_directory.name, {})
            for device_directory in _subdirectories(user_directory):
                devices[device_directory.name] = []
        return pending

    def _read_history(self, user_name: str, device_name: str) -> list[Location]:
        directory = self.history_directory / user_name / device_name
        if not directory.exists():
            _logger.debug("No history for %s/%s", user_name, device_name)
            return []

        locations: list[Location] = []
        for history_file in sorted(entry for entry in directory.iterdir() if entry.is_file()):
            locations.extend(self._read_file(history_file))
        return locations

    def _read_file(self, path: Path) -> list[Location]:
        locations: list[Location] = []
        try:
            with path.open(encoding="utf-8") as handle:
                for line_number, line in enumerate(handle, start=1):
                    try:
                        locations.append(parse_history_line(line))
                    except MalformedRecordError as exc:
                        raise MalformedRecordError(
                            f"{path}:{line_number}: {exc}",
                            field=exc.field,
                            path=path,
                            line_number=line_number,
                        ) from exc
        except UnicodeDecodeError as exc:
            raise FilesystemFailureError(f"Unable to decode '{path}': {exc}", path=path) from exc
        return locations


def load_index(base_path: Path | str) -> IngestionResult:
    """Ingest the storage tree at *base_path*."""
    return FilesystemIngester(base_path).load()
