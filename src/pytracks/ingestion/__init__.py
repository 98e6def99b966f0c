"""Ingestion layer.

This package reads the recorder's on-disk storage tree and builds the
in-memory :class:`pytracks.state.index.LocationIndex` from it.
"""

from pytracks.ingestion.filesystem import FilesystemIngester, IngestionReport, IngestionResult, load_index
from pytracks.ingestion.records import parse_history_line, split_history_line

__all__ = [
    "FilesystemIngester",
    "IngestionReport",
    "IngestionResult",
    "load_index",
    "parse_history_line",
    "split_history_line",
]
