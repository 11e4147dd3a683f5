import json
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

from ccledger.pricing import CostCalculator, StaticPricingSource

EntryFactory = Callable[..., dict[str, Any]]
LogWriter = Callable[[str, Iterable[dict[str, Any] | str]], Path]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the developer's own environment out of every test."""
    for name in (
        "CCLEDGER_PATH",
        "CCLEDGER_TIMEZONE",
        "CCLEDGER_OFFLINE",
        "CCLEDGER_PRICING_CACHE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture()
def entry() -> EntryFactory:
    """Build a raw assistant log entry; keyword overrides replace top-level keys."""

    def _make(
        *,
        timestamp: str = "2025-01-15T10:00:00Z",
        model: str = "claude-sonnet-4-20250514",
        input_tokens: Any = 100,
        output_tokens: Any = 50,
        cache_creation: Any = None,
        cache_read: Any = None,
        message_id: str | None = "msg-1",
        request_id: str | None = "req-1",
        session_id: str | None = "conv-1",
        **extra: Any,
    ) -> dict[str, Any]:
        usage: dict[str, Any] = {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        }
        if cache_creation is not None:
            usage["cache_creation_input_tokens"] = cache_creation
        if cache_read is not None:
            usage["cache_read_input_tokens"] = cache_read
        message: dict[str, Any] = {"model": model, "usage": usage}
        if message_id is not None:
            message["id"] = message_id
        raw: dict[str, Any] = {
            "type": "assistant",
            "timestamp": timestamp,
            "message": message,
        }
        if request_id is not None:
            raw["requestId"] = request_id
        if session_id is not None:
            raw["sessionId"] = session_id
        raw.update(extra)
        return raw

    return _make


@pytest.fixture()
def log_root(tmp_path: Path) -> Path:
    root = tmp_path / "claude" / "projects"
    root.mkdir(parents=True)
    return root


@pytest.fixture()
def write_log(log_root: Path) -> LogWriter:
    """Write entries (dicts or raw strings) as a JSONL file under ``log_root``."""

    def _write(relative: str, lines: Iterable[dict[str, Any] | str]) -> Path:
        path = log_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        body = "\n".join(
            line if isinstance(line, str) else json.dumps(line) for line in lines
        )
        path.write_text(body + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def calculator() -> CostCalculator:
    return CostCalculator(StaticPricingSource())
