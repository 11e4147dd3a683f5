# ruff: noqa: S101
import os
from datetime import UTC, datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from ccledger.config import Settings
from ccledger.pricing import DEFAULT_CACHE_PATH


def test_defaults() -> None:
    settings = Settings()

    assert settings.paths == []
    assert settings.timezone is None
    assert settings.tz is None
    assert settings.offline is False
    assert settings.block_hours == 5.0
    assert settings.pricing_timeout == 10.0
    assert settings.pricing_cache == DEFAULT_CACHE_PATH
    assert settings.file_timeout == 30.0
    assert settings.max_workers == 4


def test_invalid_timezone_is_rejected() -> None:
    with pytest.raises(ValidationError, match="unknown timezone"):
        Settings(timezone="Mars/Olympus_Mons")


def test_timezone_resolves() -> None:
    assert Settings(timezone="UTC").tz is UTC


@pytest.mark.parametrize("hours", [0, -5])
def test_block_hours_must_be_positive(hours: float) -> None:
    with pytest.raises(ValidationError):
        Settings(block_hours=hours)


def test_max_workers_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(max_workers=0)


def test_bounds_accept_iso_strings() -> None:
    settings = Settings(since="2025-01-15T00:00:00Z", until="2025-01-16")

    assert settings.since == datetime(2025, 1, 15, tzinfo=UTC)
    assert settings.until == datetime(2025, 1, 16, tzinfo=UTC)


def test_bounds_reject_garbage() -> None:
    with pytest.raises(ValidationError, match="invalid date"):
        Settings(since="soon")


def test_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    first, second = tmp_path / "one", tmp_path / "two"
    monkeypatch.setenv("CCLEDGER_PATH", f"{first}{os.pathsep}{second}")
    monkeypatch.setenv("CCLEDGER_TIMEZONE", "Asia/Tokyo")
    monkeypatch.setenv("CCLEDGER_OFFLINE", "yes")
    monkeypatch.setenv("CCLEDGER_PRICING_CACHE", str(tmp_path / "p.json"))

    settings = Settings.from_env()

    assert settings.paths == [first, second]
    assert settings.timezone == "Asia/Tokyo"
    assert settings.offline is True
    assert settings.pricing_cache == tmp_path / "p.json"


def test_overrides_beat_env_and_none_is_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CCLEDGER_TIMEZONE", "Asia/Tokyo")
    monkeypatch.setenv("CCLEDGER_OFFLINE", "1")

    settings = Settings.from_env(timezone="UTC", offline=None)

    assert settings.timezone == "UTC"
    assert settings.offline is True


def test_invalid_env_timezone_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CCLEDGER_TIMEZONE", "Nowhere/Special")

    with pytest.raises(ValueError):
        Settings.from_env()


def test_default_log_roots(tmp_path: Path) -> None:
    roots = Settings().log_roots()

    assert roots == [
        tmp_path / "xdg" / "claude" / "projects",
        Path.home() / ".claude" / "projects",
    ]


def test_custom_log_roots(tmp_path: Path) -> None:
    projects = tmp_path / "projects"
    other = tmp_path / "claude-home"

    roots = Settings(paths=[projects, other]).log_roots()

    assert roots == [projects, other / "projects", other]
