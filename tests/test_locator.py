# ruff: noqa: S101
from pathlib import Path

import pytest

from ccledger.locator import default_log_roots, expand_custom_root, find_log_files


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("{}\n", encoding="utf-8")
    return path


def test_find_log_files_recurses_and_sorts(tmp_path: Path) -> None:
    b = _touch(tmp_path / "proj-b" / "session.jsonl")
    a = _touch(tmp_path / "proj-a" / "nested" / "deep" / "session.jsonl")
    _touch(tmp_path / "proj-a" / "notes.txt")
    _touch(tmp_path / "proj-a" / "session.jsonl.bak")

    assert find_log_files([tmp_path]) == [a, b]


def test_find_log_files_deduplicates_overlapping_roots(tmp_path: Path) -> None:
    log = _touch(tmp_path / "projects" / "p" / "x.jsonl")

    found = find_log_files([tmp_path, tmp_path / "projects", tmp_path / "projects"])

    assert found == [log]


def test_find_log_files_skips_missing_roots(tmp_path: Path) -> None:
    log = _touch(tmp_path / "real" / "x.jsonl")

    found = find_log_files([tmp_path / "missing", tmp_path / "real"])

    assert found == [log]


def test_find_log_files_ignores_file_roots(tmp_path: Path) -> None:
    log = _touch(tmp_path / "x.jsonl")

    assert find_log_files([log]) == []


def test_find_log_files_returns_absolute_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _touch(tmp_path / "logs" / "x.jsonl")
    monkeypatch.chdir(tmp_path)

    (found,) = find_log_files([Path("logs")])

    assert found.is_absolute()


def test_custom_extension(tmp_path: Path) -> None:
    log = _touch(tmp_path / "x.ndjson")
    _touch(tmp_path / "y.jsonl")

    assert find_log_files([tmp_path], extension=".ndjson") == [log]


def test_default_log_roots_prefers_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))

    roots = default_log_roots()

    assert roots[0] == tmp_path / "config" / "claude" / "projects"
    assert roots[1] == Path.home() / ".claude" / "projects"


def test_default_log_roots_without_xdg(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)

    assert default_log_roots()[0] == Path.home() / ".config" / "claude" / "projects"


def test_expand_custom_root() -> None:
    assert expand_custom_root("/data/projects") == [Path("/data/projects")]
    assert expand_custom_root("/data/claude") == [
        Path("/data/claude/projects"),
        Path("/data/claude"),
    ]
