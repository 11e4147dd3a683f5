"""Pytest unit tests for ``ccledger.log_models``."""

# ruff: noqa: S101

from datetime import UTC, datetime

import pytest

from ccledger.log_models import AssistantEntry, parse_assistant_entry


def test_assistant_entry_parses_with_timestamp(entry) -> None:
    """Ensure assistant entries normalize timestamps and aliases."""
    parsed = parse_assistant_entry(entry(timestamp="2025-09-30T12:34:56Z"))

    assert isinstance(parsed, AssistantEntry)
    assert parsed.timestamp == datetime(2025, 9, 30, 12, 34, 56, tzinfo=UTC)
    assert parsed.session_id == "conv-1"
    assert parsed.request_id == "req-1"
    assert parsed.message.id == "msg-1"
    assert parsed.message.model == "claude-sonnet-4-20250514"


def test_naive_timestamp_is_treated_as_utc(entry) -> None:
    parsed = parse_assistant_entry(entry(timestamp="2025-10-01T08:15:00"))

    assert parsed is not None
    assert parsed.timestamp.tzinfo is not None
    assert parsed.timestamp == datetime(2025, 10, 1, 8, 15, tzinfo=UTC)


def test_cache_counts_default_to_zero(entry) -> None:
    """Absent and null cache fields both count as zero tokens."""
    raw = entry()
    raw["message"]["usage"]["cache_read_input_tokens"] = None

    parsed = parse_assistant_entry(raw)

    assert parsed is not None
    assert parsed.message.usage.cache_creation_input_tokens == 0
    assert parsed.message.usage.cache_read_input_tokens == 0


def test_missing_type_is_accepted(entry) -> None:
    raw = entry()
    del raw["type"]

    assert parse_assistant_entry(raw) is not None


def test_conversation_falls_back_to_conversation_id(entry) -> None:
    parsed = parse_assistant_entry(entry(session_id=None, conversation_id="legacy"))

    assert parsed is not None
    assert parsed.conversation == "legacy"


def test_session_id_wins_over_conversation_id(entry) -> None:
    parsed = parse_assistant_entry(entry(conversation_id="legacy"))

    assert parsed is not None
    assert parsed.conversation == "conv-1"


@pytest.mark.parametrize("entry_type", ["user", "summary", "system"])
def test_non_assistant_entries_are_skipped(entry, entry_type: str) -> None:
    assert parse_assistant_entry(entry(type=entry_type)) is None


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("input_tokens", True),
        ("input_tokens", "100"),
        ("output_tokens", None),
        ("output_tokens", -1),
        ("cache_creation", -5),
        ("cache_read", "lots"),
        ("input_tokens", 1e999),
        ("output_tokens", float("nan")),
        ("cache_read", float("-inf")),
    ],
)
def test_invalid_token_counts_are_rejected(entry, field: str, value: object) -> None:
    """Booleans, strings, negatives and non-finite floats are not token counts."""
    assert parse_assistant_entry(entry(**{field: value})) is None


def test_missing_usage_is_rejected(entry) -> None:
    raw = entry()
    del raw["message"]["usage"]

    assert parse_assistant_entry(raw) is None


@pytest.mark.parametrize("model", ["", 42, None])
def test_invalid_model_is_rejected(entry, model: object) -> None:
    assert parse_assistant_entry(entry(model=model)) is None


@pytest.mark.parametrize("timestamp", ["yesterday", "", 1736935200])
def test_invalid_timestamp_is_rejected(entry, timestamp: object) -> None:
    assert parse_assistant_entry(entry(timestamp=timestamp)) is None


def test_missing_timestamp_is_rejected(entry) -> None:
    raw = entry()
    del raw["timestamp"]

    assert parse_assistant_entry(raw) is None


@pytest.mark.parametrize(
    "cost", [-0.01, "1.5", False, float("inf"), float("nan")]
)
def test_invalid_cost_is_rejected(entry, cost: object) -> None:
    assert parse_assistant_entry(entry(costUSD=cost)) is None


def test_cost_is_kept_verbatim(entry) -> None:
    parsed = parse_assistant_entry(entry(costUSD=0.125))

    assert parsed is not None
    assert parsed.cost_usd == 0.125
