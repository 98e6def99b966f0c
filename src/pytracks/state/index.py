"""Hierarchical in-memory location index.

``LocationIndex`` maps user -> :class:`UserStore`, which maps device ->
:class:`DeviceStore`.  Every level is a frozen model: the index is built
once by the ingester and never mutated afterwards.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Iterator
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from pytracks.models.location import Location


def _fix_time(location: Location) -> datetime:
    return location.timestamp


class DeviceStore(BaseModel):
    """Location history of one device, ascending by fix timestamp."""

    model_config = ConfigDict(frozen=True)

    locations: tuple[Location, ...] = ()

    def __len__(self) -> int:
        return len(self.locations)

    @property
    def last_location(self) -> Location | None:
        """Most recent fix, or ``None`` for a device without history."""
        return self.locations[-1] if self.locations else None

    def between(self, start: datetime, end: datetime) -> list[Location]:
        """Return fixes with ``start <= timestamp <= end`` in stored order.

        Relies on ``locations`` being sorted; the ingester guarantees it.
        """
        if start > end:
            return []
        lower = bisect_left(self.locations, start, key=_fix_time)
        upper = bisect_right(self.locations, end, lo=lower, key=_fix_time)
        return list(self.locations[lower:upper])

    def is_sorted(self) -> bool:
        return all(a.timestamp <= b.timestamp for a, b in zip(self.locations, self.locations[1:]))


class UserStore(BaseModel):
    """Devices of one user."""

    model_config = ConfigDict(frozen=True)

    devices: dict[str, DeviceStore] = Field(default_factory=dict)

    def device(self, device_name: str) -> DeviceStore | None:
        return self.devices.get(device_name)

    def device_names(self) -> set[str]:
        return set(self.devices)


class LocationIndex(BaseModel):
    """All users known to the storage, with their devices and history."""

    model_config = ConfigDict(frozen=True)

    users: dict[str, UserStore] = Field(default_factory=dict)

    def user(self, user_name: str) -> UserStore | None:
        return self.users.get(user_name)

    def user_names(self) -> set[str]:
        return set(self.users)

    def device_stores(self) -> Iterator[tuple[str, str, DeviceStore]]:
        """Yield ``(user, device, store)`` for every indexed device."""
        for user_name, user_store in self.users.items():
            for device_name, device_store in user_store.devices.items():
                yield user_name, device_name, device_store

    @property
    def location_count(self) -> int:
        return sum(len(store) for _, _, store in self.device_stores())
