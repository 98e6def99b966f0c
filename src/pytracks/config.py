"""Server configuration for pytracks."""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any

from pytracks.exceptions import TracksConfigError

DEFAULT_BIND = "[::]:3000"


def parse_bind(bind: str) -> tuple[str, int]:
    """Split a ``host:port`` or ``[ipv6]:port`` address.

    Raises
    ------
    TracksConfigError
        If *bind* is not a valid socket address.
    """
    host, sep, port_text = bind.strip().rpartition(":")
    if not sep or not host or not port_text.isdigit():
        raise TracksConfigError(f"Unable to parse '{bind}' as socket address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        # Bare IPv6 without brackets is ambiguous about where the port starts.
        raise TracksConfigError(f"Unable to parse '{bind}' as socket address")
    port = int(port_text)
    if not host or port > 65535:
        raise TracksConfigError(f"Unable to parse '{bind}' as socket address")
    return host, port


@dataclasses.dataclass(frozen=True)
class TracksConfig:
    """Server configuration.

    Parameters
    ----------
    storage_path : Path
        Base directory of the recorder storage (holds ``last`` and ``rec``).
    bind : str
        Socket address to listen on, ``host:port`` or ``[ipv6]:port``.
    lock_timeout : float
        Seconds a query waits for the index lock before failing.
    log_level : str
        Root logging level name.
    """

    storage_path: Path
    bind: str = DEFAULT_BIND
    lock_timeout: float = 1.0
    log_level: str = "INFO"

    @property
    def host(self) -> str:
        return parse_bind(self.bind)[0]

    @property
    def port(self) -> int:
        return parse_bind(self.bind)[1]

    @classmethod
    def from_env(cls, **overrides: Any) -> TracksConfig:
        """Create configuration from environment variables.

        Reads ``STORAGE_PATH`` and optional ``BIND``, ``LOCK_TIMEOUT`` and
        ``LOG_LEVEL``.  Explicit keyword arguments that are not ``None``
        override environment values.
        """
        env = os.environ
        overrides = {key: value for key, value in overrides.items() if value is not None}

        config_kwargs: dict[str, Any] = {}
        storage_env = env.get("STORAGE_PATH")
        if storage_env:
            config_kwargs["storage_path"] = storage_env

        bind_env = env.get("BIND")
        if bind_env:
            config_kwargs["bind"] = bind_env

        timeout_env = env.get("LOCK_TIMEOUT")
        if timeout_env is not None and "lock_timeout" not in overrides:
            try:
                config_kwargs["lock_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise TracksConfigError(f"Invalid LOCK_TIMEOUT '{timeout_env}'") from exc

        level_env = env.get("LOG_LEVEL")
        if level_env:
            config_kwargs["log_level"] = level_env

        config_kwargs.update(overrides)

        if "storage_path" not in config_kwargs:
            raise TracksConfigError("A storage path is required (--storage-path or STORAGE_PATH)")
        config_kwargs["storage_path"] = Path(config_kwargs["storage_path"])
        log_level = str(config_kwargs.get("log_level", "INFO")).upper()
        if log_level not in logging.getLevelNamesMapping():
            raise TracksConfigError(f"Unknown log level '{log_level}'")
        config_kwargs["log_level"] = log_level

        return cls(**config_kwargs)
