"""Index/query layer.

This package owns the in-memory location index and the guarded read
operations served from it.  Nothing in here touches the filesystem.
"""

from pytracks.state.index import DeviceStore, LocationIndex, UserStore
from pytracks.state.store import LocationStore

__all__ = [
    "DeviceStore",
    "LocationIndex",
    "LocationStore",
    "UserStore",
]
