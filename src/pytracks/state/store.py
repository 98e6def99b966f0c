"""Guarded read access to the location index.

This is the only component query handlers talk to.  It is constructed
from a fully built :class:`LocationIndex`, so readers can never observe
an ingestion in progress.
"""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from pytracks.exceptions import LockUnavailableError
from pytracks.models.location import Location
from pytracks.state.index import LocationIndex

DEFAULT_LOCK_TIMEOUT = 1.0

_EARLIEST = datetime.min.replace(tzinfo=UTC)
_LATEST = datetime.max.replace(tzinfo=UTC)


def to_utc_datetime(value: datetime | int | float) -> datetime:
    """Normalize a range bound to an aware UTC datetime.

    Naive datetimes are taken to be UTC; numbers are epoch seconds.
    Numbers outside the representable range clamp to the earliest or
    latest datetime, so huge bounds act as open ends.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    try:
        return datetime.fromtimestamp(value, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return _LATEST if value > 0 else _EARLIEST


class LocationStore:
    """Read-only query engine over a :class:`LocationIndex`.

    A single lock guards the whole index.  Every query takes it for the
    duration of its read and copies the result out before releasing it.
    A query that cannot take the lock within ``lock_timeout`` seconds
    raises :class:`LockUnavailableError`.  Acquisition blocks the calling
    thread for up to that long, so async callers run queries in a worker
    thread.
    """

    def __init__(self, index: LocationIndex, *, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self._index = index
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout

    @classmethod
    def load(cls, base_path: Path | str, *, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> LocationStore:
        """Ingest *base_path* and wrap the resulting index.

        Any ingestion error propagates; no store is created in that case.
        """
        # Import lazily to avoid coupling the state package back into ingestion.
        from pytracks.ingestion.filesystem import FilesystemIngester

        result = FilesystemIngester(base_path).load()
        return cls(result.index, lock_timeout=lock_timeout)

    @contextlib.contextmanager
    def _locked(self) -> Iterator[LocationIndex]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise LockUnavailableError("Unable to take lock for in memory storage")
        try:
            yield self._index
        finally:
            self._lock.release()

    def user_names(self) -> set[str]:
        """Names of all indexed users."""
        with self._locked() as index:
            return index.user_names()

    def device_names(self, user_name: str) -> set[str] | None:
        """Device names of *user_name*, or ``None`` if the user is unknown.

        A known user without devices yields an empty set.
        """
        with self._locked() as index:
            user_store = index.user(user_name)
            if user_store is None:
                return None
            return user_store.device_names()

    def last_locations(self) -> list[Location]:
        """Most recent fix of every device that has any history."""
        with self._locked() as index:
            return [
                last
                for _, _, device_store in index.device_stores()
                if (last := device_store.last_location) is not None
            ]

    def locations(
        self,
        user_name: str,
        device_name: str,
        start: datetime | int | float,
        end: datetime | int | float,
    ) -> list[Location]:
        """Fixes of one device with ``start <= timestamp <= end``, oldest first.

        Unknown users or devices yield an empty list.
        """
        start_at = to_utc_datetime(start)
        end_at = to_utc_datetime(end)
        with self._locked() as index:
            user_store = index.user(user_name)
            device_store = user_store.device(device_name) if user_store is not None else None
            if device_store is None:
                return []
            return device_store.between(start_at, end_at)
