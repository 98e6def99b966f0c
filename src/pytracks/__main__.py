"""Command line entry point: load the storage tree and serve it over HTTP.

Usage
-----
::

    python -m pytracks --storage-path /var/spool/owntracks/recorder/store

Every option falls back to an environment variable of the same name
(``STORAGE_PATH``, ``BIND``, ``LOCK_TIMEOUT``, ``LOG_LEVEL``).
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from aiohttp import web

from pytracks.config import TracksConfig
from pytracks.exceptions import TracksConfigError, TracksError
from pytracks.server import create_app
from pytracks.state.store import LocationStore

_logger = logging.getLogger("pytracks")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pytracks",
        description="Serve OwnTracks recorder location history from memory.",
    )
    parser.add_argument("-s", "--storage-path", help="Path to the recorder storage (env: STORAGE_PATH)")
    parser.add_argument("-b", "--bind", help="Address to bind to (env: BIND, default: [::]:3000)")
    parser.add_argument("--lock-timeout", type=float, help="Seconds to wait for the index lock (env: LOCK_TIMEOUT)")
    parser.add_argument("--log-level", help="Logging level (env: LOG_LEVEL, default: INFO)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = TracksConfig.from_env(
            storage_path=args.storage_path,
            bind=args.bind,
            lock_timeout=args.lock_timeout,
            log_level=args.log_level,
        )
    except TracksConfigError as exc:
        print(f"pytracks: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        host, port = config.host, config.port
    except TracksConfigError as exc:
        _logger.error("%s", exc)
        return 1

    try:
        store = LocationStore.load(config.storage_path, lock_timeout=config.lock_timeout)
    except TracksError as exc:
        _logger.error("Failed to load storage: %s", exc)
        return 1

    _logger.info("Listening on %s", config.bind)
    web.run_app(create_app(store), host=host, port=port, print=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
