"""Discovery of Claude Code session log files."""

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from ccledger.logger import logger
from ccledger.utils import normalize_path

logger = logger.getChild("locator")

LOG_EXTENSION = ".jsonl"


def default_log_roots() -> list[Path]:
    """Return the conventional Claude Code log directories, XDG first."""
    home = Path.home()
    xdg_config = os.environ.get("XDG_CONFIG_HOME") or str(home / ".config")
    return [
        Path(xdg_config) / "claude" / "projects",
        home / ".claude" / "projects",
    ]


def expand_custom_root(path: str | Path) -> list[Path]:
    """Expand a user supplied directory into the roots worth searching.

    A directory already named ``projects`` is used as is; otherwise both its
    ``projects`` subdirectory and the directory itself are searched.
    """
    root = Path(path).expanduser()
    if root.name == "projects":
        return [root]
    return [root / "projects", root]


def find_log_files(
    roots: Iterable[str | Path],
    extension: str = LOG_EXTENSION,
) -> list[Path]:
    """Return sorted, de-duplicated absolute paths of log files under ``roots``.

    Missing or unreadable roots are skipped; they are an expected condition
    (e.g. an unused legacy location), not an error.
    """
    found: dict[str, Path] = {}
    for root in roots:
        for path in _iter_root(Path(root).expanduser(), extension):
            key = normalize_path(path)
            if key is not None:
                found.setdefault(key, Path(key))
    return [found[key] for key in sorted(found)]


def _iter_root(root: Path, extension: str) -> Iterator[Path]:
    try:
        if not root.is_dir():
            logger.debug(f"log root not found: {root}")
            return
    except OSError as exc:
        logger.debug(f"log root not accessible: {root} ({exc})")
        return

    def _on_error(exc: OSError) -> None:
        logger.debug(f"skipping unreadable directory: {exc}")

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error):
        for filename in filenames:
            if not filename.endswith(extension):
                continue
            path = Path(dirpath) / filename
            try:
                if path.is_file():
                    yield path
            except OSError:
                continue
