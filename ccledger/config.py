"""Runtime settings for an accounting run."""

import os
from datetime import datetime, tzinfo
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, field_validator

from ccledger.aggregate import DEFAULT_BLOCK_HOURS
from ccledger.locator import default_log_roots, expand_custom_root
from ccledger.pricing import DEFAULT_CACHE_PATH, DEFAULT_FETCH_TIMEOUT
from ccledger.utils import parse_timestamp, resolve_timezone

_TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Where to read logs from and how to price and bucket them."""

    model_config = ConfigDict(frozen=True)

    # empty means the conventional Claude Code locations
    paths: list[Path] = Field(default_factory=list)
    # IANA name; None or "system" means host local time
    timezone: str | None = None
    offline: bool = False
    block_hours: PositiveFloat = DEFAULT_BLOCK_HOURS
    pricing_timeout: PositiveFloat = DEFAULT_FETCH_TIMEOUT
    pricing_cache: Path | None = DEFAULT_CACHE_PATH
    file_timeout: PositiveFloat = 30.0
    max_workers: int = Field(default=4, ge=1)
    since: datetime | None = None
    until: datetime | None = None

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        resolve_timezone(value)
        return value

    @field_validator("since", "until", mode="before")
    @classmethod
    def _parse_bound(cls, value: object) -> object:
        if isinstance(value, str):
            parsed = parse_timestamp(value)
            if parsed is None:
                message = f"invalid date: {value!r}"
                raise ValueError(message)
            return parsed
        return value

    @classmethod
    def from_env(cls, **overrides: object) -> "Settings":
        """Build settings from ``CCLEDGER_*`` variables, then apply overrides."""
        values: dict[str, object] = {}
        if raw_paths := os.environ.get("CCLEDGER_PATH"):
            values["paths"] = [Path(p) for p in raw_paths.split(os.pathsep) if p]
        if timezone := os.environ.get("CCLEDGER_TIMEZONE"):
            values["timezone"] = timezone
        if offline := os.environ.get("CCLEDGER_OFFLINE"):
            values["offline"] = offline.strip().lower() in _TRUE_VALUES
        if cache := os.environ.get("CCLEDGER_PRICING_CACHE"):
            values["pricing_cache"] = Path(cache)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)

    @property
    def tz(self) -> tzinfo | None:
        return resolve_timezone(self.timezone)

    def log_roots(self) -> list[Path]:
        """Return the directories to search for session logs."""
        if not self.paths:
            return default_log_roots()
        roots: list[Path] = []
        for path in self.paths:
            roots.extend(expand_custom_root(path))
        return roots
