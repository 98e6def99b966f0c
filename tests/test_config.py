from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from pytracks.__main__ import main
from pytracks.config import TracksConfig, parse_bind
from pytracks.exceptions import TracksConfigError

_ENV_KEYS = ("STORAGE_PATH", "BIND", "LOCK_TIMEOUT", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.mark.parametrize(
    ("bind", "expected"),
    [
        ("[::]:3000", ("::", 3000)),
        ("127.0.0.1:8080", ("127.0.0.1", 8080)),
        ("localhost:1", ("localhost", 1)),
    ],
)
def test_parse_bind(bind: str, expected: tuple[str, int]) -> None:
    assert parse_bind(bind) == expected


@pytest.mark.parametrize("bind", ["3000", "localhost", ":3000", "::1:3000", "[::]:http", "host:70000"])
def test_parse_bind_rejects_invalid_addresses(bind: str) -> None:
    with pytest.raises(TracksConfigError):
        parse_bind(bind)


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_PATH", "/srv/store")
    monkeypatch.setenv("BIND", "127.0.0.1:9000")
    monkeypatch.setenv("LOCK_TIMEOUT", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = TracksConfig.from_env()

    assert config.storage_path == Path("/srv/store")
    assert config.host == "127.0.0.1"
    assert config.port == 9000
    assert config.lock_timeout == 2.5
    assert config.log_level == "DEBUG"


def test_config_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_PATH", "/srv/store")
    monkeypatch.setenv("BIND", "127.0.0.1:9000")

    config = TracksConfig.from_env(storage_path="/tmp/other", bind=None)

    assert config.storage_path == Path("/tmp/other")
    assert config.bind == "127.0.0.1:9000"
    assert config.lock_timeout == 1.0


@pytest.mark.parametrize(
    ("env", "overrides"),
    [
        ({}, {}),
        ({"STORAGE_PATH": "/srv/store", "LOCK_TIMEOUT": "soon"}, {}),
        ({"STORAGE_PATH": "/srv/store"}, {"log_level": "chatty"}),
    ],
)
def test_config_errors(monkeypatch: pytest.MonkeyPatch, env: dict[str, str], overrides: dict[str, Any]) -> None:
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    with pytest.raises(TracksConfigError):
        TracksConfig.from_env(**overrides)


# ------------------------------------------------------------------
# CLI
# ------------------------------------------------------------------


def test_main_serves_loaded_storage(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr("pytracks.__main__.web.run_app", lambda app, **kwargs: calls.append(kwargs))
    (tmp_path / "last" / "alice" / "phone").mkdir(parents=True)

    exit_code = main(["--storage-path", str(tmp_path), "--bind", "127.0.0.1:3001"])

    assert exit_code == 0
    assert calls[0]["host"] == "127.0.0.1"
    assert calls[0]["port"] == 3001


def test_main_fails_on_invalid_storage_root(tmp_path: Path) -> None:
    base = tmp_path / "store"
    base.write_text("", encoding="utf-8")

    assert main(["--storage-path", str(base)]) == 1


def test_main_fails_on_malformed_history(tmp_path: Path) -> None:
    (tmp_path / "last" / "alice" / "phone").mkdir(parents=True)
    history = tmp_path / "rec" / "alice" / "phone"
    history.mkdir(parents=True)
    (history / "2024-01.rec").write_text("x\t{broken\n", encoding="utf-8")

    assert main(["--storage-path", str(tmp_path)]) == 1


def test_main_fails_on_invalid_bind(tmp_path: Path) -> None:
    assert main(["--storage-path", str(tmp_path), "--bind", "nowhere"]) == 1


def test_main_requires_storage_path() -> None:
    assert main([]) == 2
