"""Data models for ccledger usage accounting."""

from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeFloat,
    NonNegativeInt,
)

UNKNOWN_CONVERSATION = "unknown"


class TokenUsage(BaseModel):
    """Token counts for a single assistant message."""

    model_config = ConfigDict(frozen=True)

    input: NonNegativeInt = 0
    output: NonNegativeInt = 0
    cache_creation: NonNegativeInt = 0
    cache_read: NonNegativeInt = 0

    @property
    def total(self) -> int:
        """Return input plus output tokens, the headline token figure."""
        return self.input + self.output

    @property
    def all_tokens(self) -> int:
        """Return every token class including cache traffic."""
        return self.input + self.output + self.cache_creation + self.cache_read


class UsageRecord(BaseModel):
    """A single billed assistant message extracted from a session log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    model: str = Field(min_length=1)
    usage: TokenUsage
    cost: NonNegativeFloat = 0.0
    conversation_id: str | None = None
    request_id: str | None = None
    message_id: str | None = None
    title: str | None = None
    cwd: str | None = None

    @property
    def fingerprint(self) -> str | None:
        """Return ``message_id:request_id`` or None when either is missing."""
        if not self.message_id or not self.request_id:
            return None
        return f"{self.message_id}:{self.request_id}"

    @property
    def session_key(self) -> str:
        return self.conversation_id or UNKNOWN_CONVERSATION


class ModelUsage(BaseModel):
    """Per-model totals inside a daily or monthly bucket."""

    model: str
    input_tokens: NonNegativeInt = 0
    output_tokens: NonNegativeInt = 0
    cache_creation_tokens: NonNegativeInt = 0
    cache_read_tokens: NonNegativeInt = 0
    cost: NonNegativeFloat = 0.0
    count: NonNegativeInt = 0

    def add(self, record: UsageRecord) -> None:
        """Accumulate the tokens and cost of ``record``."""
        self.input_tokens += record.usage.input
        self.output_tokens += record.usage.output
        self.cache_creation_tokens += record.usage.cache_creation
        self.cache_read_tokens += record.usage.cache_read
        self.cost += record.cost
        self.count += 1


class _PeriodUsage(BaseModel):
    total_tokens: NonNegativeInt = 0
    total_cost: NonNegativeFloat = 0.0
    model_breakdown: dict[str, ModelUsage] = Field(default_factory=dict)
    conversations: NonNegativeInt = 0

    def add(self, record: UsageRecord) -> None:
        self.total_tokens += record.usage.total
        self.total_cost += record.cost
        breakdown = self.model_breakdown.get(record.model)
        if breakdown is None:
            breakdown = ModelUsage(model=record.model)
            self.model_breakdown[record.model] = breakdown
        breakdown.add(record)

    def iter_models(self) -> list[ModelUsage]:
        """Return model breakdown entries sorted by cost descending."""
        return sorted(
            self.model_breakdown.values(),
            key=lambda usage: (usage.cost, usage.model),
            reverse=True,
        )


class DailyUsage(_PeriodUsage):
    """Usage for one timezone-local calendar day."""

    date: str


class MonthlyUsage(_PeriodUsage):
    """Usage for one timezone-local calendar month."""

    month: str
    days: NonNegativeInt = 0


class SessionUsage(BaseModel):
    """Usage for one conversation."""

    conversation_id: str
    title: str | None = None
    start_time: datetime
    end_time: datetime
    total_tokens: NonNegativeInt = 0
    total_cost: NonNegativeFloat = 0.0
    message_count: NonNegativeInt = 0
    models: list[str] = Field(default_factory=list)

    @classmethod
    def open(cls, record: UsageRecord) -> "SessionUsage":
        """Create an empty session spanning only ``record``'s timestamp."""
        return cls(
            conversation_id=record.session_key,
            start_time=record.timestamp,
            end_time=record.timestamp,
        )

    def add(self, record: UsageRecord) -> None:
        """Fold ``record`` into the session, widening its time span."""
        self.total_tokens += record.usage.total
        self.total_cost += record.cost
        self.message_count += 1
        if record.timestamp < self.start_time:
            self.start_time = record.timestamp
        if record.timestamp > self.end_time:
            self.end_time = record.timestamp
        if record.model not in self.models:
            self.models.append(record.model)
        if record.title and not self.title:
            self.title = record.title

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()


class BillingBlock(BaseModel):
    """A fixed-duration accounting window opened by its first record."""

    start_time: datetime
    end_time: datetime
    total_tokens: NonNegativeInt = 0
    total_cost: NonNegativeFloat = 0.0
    message_count: NonNegativeInt = 0
    session_totals: dict[str, SessionUsage] = Field(default_factory=dict)

    def add(self, record: UsageRecord) -> None:
        """Fold ``record`` into the block totals and its nested session."""
        self.total_tokens += record.usage.total
        self.total_cost += record.cost
        self.message_count += 1
        session = self.session_totals.get(record.session_key)
        if session is None:
            session = SessionUsage.open(record)
            self.session_totals[record.session_key] = session
        session.add(record)

    @property
    def sessions(self) -> list[SessionUsage]:
        """Return nested sessions in order of first appearance."""
        return list(self.session_totals.values())

    def is_active(self, now: datetime | None = None) -> bool:
        """Return True when ``now`` (default: wall clock) lies inside the block."""
        current = now if now is not None else datetime.now(UTC)
        return self.start_time <= current <= self.end_time

    def remaining_seconds(self, now: datetime | None = None) -> float:
        current = now if now is not None else datetime.now(UTC)
        return max(0.0, (self.end_time - current).total_seconds())


class UsageSummary(BaseModel):
    """Top-line statistics across the whole record set."""

    total_cost: NonNegativeFloat = 0.0
    total_tokens: NonNegativeInt = 0
    total_conversations: NonNegativeInt = 0
    start: datetime
    end: datetime
    top_model: str = "none"
    average_daily_cost: NonNegativeFloat = 0.0


class IngestStats(BaseModel):
    """Diagnostics gathered while reading log files."""

    files_found: NonNegativeInt = 0
    files_read: NonNegativeInt = 0
    files_failed: NonNegativeInt = 0
    lines_read: NonNegativeInt = 0
    lines_rejected: NonNegativeInt = 0
    duplicates_in_file: NonNegativeInt = 0
    duplicates_across_files: NonNegativeInt = 0
    records: NonNegativeInt = 0


class UsageReport:
    """Read-only view over the four rollups and the summary.

    Every query returns a fresh container so callers cannot alter the
    underlying aggregation state.
    """

    def __init__(
        self,
        *,
        daily: dict[str, DailyUsage],
        monthly: dict[str, MonthlyUsage],
        sessions: dict[str, SessionUsage],
        blocks: list[BillingBlock],
        summary: UsageSummary,
        stats: IngestStats | None = None,
        block_hours: float = 5.0,
    ) -> None:
        self._daily = daily
        self._monthly = monthly
        self._sessions = sessions
        self._blocks = blocks
        self.summary = summary
        self.stats = stats or IngestStats()
        self.block_hours = block_hours

    def daily_usage(self) -> list[DailyUsage]:
        """Return daily buckets sorted ascending by date."""
        return [
            item.model_copy(deep=True)
            for _, item in sorted(self._daily.items())
        ]

    def monthly_usage(self) -> Mapping[str, MonthlyUsage]:
        """Return monthly buckets keyed by ``YYYY-MM`` in ascending order."""
        return MappingProxyType(
            {
                month: item.model_copy(deep=True)
                for month, item in sorted(self._monthly.items())
            }
        )

    def sessions(self) -> list[SessionUsage]:
        """Return sessions sorted by start time, most recent first."""
        ordered = sorted(
            self._sessions.values(),
            key=lambda session: session.start_time,
            reverse=True,
        )
        return [session.model_copy(deep=True) for session in ordered]

    def blocks(self) -> list[BillingBlock]:
        """Return billing blocks sorted ascending by start time."""
        ordered = sorted(self._blocks, key=lambda block: block.start_time)
        return [block.model_copy(deep=True) for block in ordered]

    def active_block(self, now: datetime | None = None) -> BillingBlock | None:
        """Return the block containing ``now``, if any."""
        for block in reversed(self.blocks()):
            if block.is_active(now):
                return block
        return None

    @property
    def is_empty(self) -> bool:
        return not self._daily

    def to_dict(self, now: datetime | None = None) -> dict[str, Any]:
        """Return a JSON-ready representation of the whole report."""
        blocks = []
        for block in self.blocks():
            payload = block.model_dump(mode="json", exclude={"session_totals"})
            payload["sessions"] = [
                session.model_dump(mode="json") for session in block.sessions
            ]
            payload["is_active"] = block.is_active(now)
            blocks.append(payload)
        return {
            "block_hours": self.block_hours,
            "summary": self.summary.model_dump(mode="json"),
            "daily": [item.model_dump(mode="json") for item in self.daily_usage()],
            "monthly": {
                month: item.model_dump(mode="json")
                for month, item in self.monthly_usage().items()
            },
            "sessions": [item.model_dump(mode="json") for item in self.sessions()],
            "blocks": blocks,
            "stats": self.stats.model_dump(mode="json"),
        }
