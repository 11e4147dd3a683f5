"""Pydantic models for Claude Code session log entries.

Claude Code writes one JSON object per line with many different shapes. Only
assistant messages carry token usage, so we validate just the fields needed
for accounting and ignore the rest.
"""

import math
from datetime import datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
    ValidationError,
    field_validator,
)

from ccledger.logger import logger
from ccledger.utils import parse_timestamp

logger = logger.getChild("log_models")

ASSISTANT_TYPE = "assistant"


def _require_number(value: object) -> object:
    # bool is an int subclass but never a token count
    if isinstance(value, bool) or not isinstance(value, int | float):
        message = f"expected a number, got {type(value).__name__}"
        raise ValueError(message)
    if not math.isfinite(value):
        message = f"expected a finite number, got {value!r}"
        raise ValueError(message)
    return int(value)


class MessageUsage(BaseModel):
    """The ``message.usage`` object reported by the API."""

    model_config = ConfigDict(extra="ignore")

    input_tokens: NonNegativeInt
    output_tokens: NonNegativeInt
    cache_creation_input_tokens: NonNegativeInt = 0
    cache_read_input_tokens: NonNegativeInt = 0

    @field_validator("input_tokens", "output_tokens", mode="before")
    @classmethod
    def _check_required_counts(cls, value: object) -> object:
        return _require_number(value)

    @field_validator(
        "cache_creation_input_tokens", "cache_read_input_tokens", mode="before"
    )
    @classmethod
    def _default_cache_counts(cls, value: object) -> object:
        if value is None:
            return 0
        return _require_number(value)


class AssistantMessage(BaseModel):
    """The nested ``message`` payload of an assistant entry."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    model: str = Field(min_length=1)
    usage: MessageUsage

    @field_validator("model", mode="before")
    @classmethod
    def _check_model(cls, value: object) -> object:
        if not isinstance(value, str):
            message = "model must be a string"
            raise ValueError(message)
        return value


class AssistantEntry(BaseModel):
    """Top-level log entry for an assistant message with usage data."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str | None = None
    timestamp: datetime
    message: AssistantMessage
    session_id: str | None = Field(default=None, alias="sessionId")
    conversation_id: str | None = None
    request_id: str | None = Field(default=None, alias="requestId")
    title: str | None = None
    cost_usd: NonNegativeFloat | None = Field(default=None, alias="costUSD")
    cwd: str | None = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: object) -> datetime:
        parsed = parse_timestamp(value)
        if parsed is None:
            message = f"invalid timestamp: {value!r}"
            raise ValueError(message)
        return parsed

    @field_validator("type")
    @classmethod
    def _check_type(cls, value: str | None) -> str | None:
        if value is not None and value != ASSISTANT_TYPE:
            message = f"not an assistant entry: {value!r}"
            raise ValueError(message)
        return value

    @field_validator("cost_usd", mode="before")
    @classmethod
    def _check_cost(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int | float):
            message = "costUSD must be a number"
            raise ValueError(message)
        if not math.isfinite(value):
            message = f"costUSD must be finite, got {value!r}"
            raise ValueError(message)
        return value

    @property
    def conversation(self) -> str | None:
        """Return ``sessionId`` falling back to ``conversation_id``."""
        return self.session_id or self.conversation_id


def parse_assistant_entry(raw: dict[str, Any]) -> AssistantEntry | None:
    """Validate a raw log dictionary, returning None for non-usage entries."""
    entry_type = raw.get("type")
    if entry_type is not None and entry_type != ASSISTANT_TYPE:
        return None
    try:
        return AssistantEntry.model_validate(raw)
    except ValidationError as exc:
        logger.debug(f"validate error: {exc.error_count()} error(s)")
        return None
