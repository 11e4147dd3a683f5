"""Rollups over a stream of deduplicated, cost-annotated usage records.

Each function folds the same record sequence independently; none of them
depends on the output of another.
"""

import math
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta, tzinfo

from ccledger.models import (
    BillingBlock,
    DailyUsage,
    MonthlyUsage,
    SessionUsage,
    UsageRecord,
    UsageSummary,
)
from ccledger.utils import bucket_date, bucket_month

DEFAULT_BLOCK_HOURS = 5.0
ONE_DAY = timedelta(days=1)


def aggregate_daily(
    records: Iterable[UsageRecord], tz: tzinfo | None
) -> dict[str, DailyUsage]:
    """Group records by timezone-local calendar day."""
    daily: dict[str, DailyUsage] = {}
    conversations: dict[str, set[str]] = defaultdict(set)

    for record in records:
        day = bucket_date(record.timestamp, tz)
        usage = daily.get(day)
        if usage is None:
            usage = DailyUsage(date=day)
            daily[day] = usage
        usage.add(record)
        if record.conversation_id:
            conversations[day].add(record.conversation_id)

    for day, ids in conversations.items():
        daily[day].conversations = len(ids)
    return daily


def aggregate_monthly(
    records: Iterable[UsageRecord], tz: tzinfo | None
) -> dict[str, MonthlyUsage]:
    """Group records by timezone-local calendar month."""
    monthly: dict[str, MonthlyUsage] = {}
    conversations: dict[str, set[str]] = defaultdict(set)
    days: dict[str, set[str]] = defaultdict(set)

    for record in records:
        month = bucket_month(record.timestamp, tz)
        usage = monthly.get(month)
        if usage is None:
            usage = MonthlyUsage(month=month)
            monthly[month] = usage
        usage.add(record)
        days[month].add(bucket_date(record.timestamp, tz))
        if record.conversation_id:
            conversations[month].add(record.conversation_id)

    for month, usage in monthly.items():
        usage.days = len(days[month])
        usage.conversations = len(conversations[month])
    return monthly


def aggregate_sessions(records: Iterable[UsageRecord]) -> dict[str, SessionUsage]:
    """Group records by conversation; records without one share ``unknown``."""
    sessions: dict[str, SessionUsage] = {}
    for record in records:
        session = sessions.get(record.session_key)
        if session is None:
            session = SessionUsage.open(record)
            sessions[record.session_key] = session
        session.add(record)
    return sessions


def build_billing_blocks(
    records: Sequence[UsageRecord],
    block_hours: float = DEFAULT_BLOCK_HOURS,
) -> list[BillingBlock]:
    """Split time-ordered records into fixed-duration billing blocks.

    ``records`` must already be sorted by timestamp. A block opens at the
    timestamp of the first record that does not fit in the current one and
    stays open for ``block_hours``; a record exactly on the boundary still
    belongs to the open block.
    """
    if block_hours <= 0:
        message = f"block_hours must be positive, got {block_hours}"
        raise ValueError(message)
    duration = timedelta(hours=block_hours)

    blocks: list[BillingBlock] = []
    current: BillingBlock | None = None
    for record in records:
        if current is None or record.timestamp > current.end_time:
            current = BillingBlock(
                start_time=record.timestamp,
                end_time=record.timestamp + duration,
            )
            blocks.append(current)
        current.add(record)
    return blocks


def build_summary(
    records: Iterable[UsageRecord],
    now: datetime | None = None,
) -> UsageSummary:
    """Derive top-line statistics in a single pass."""
    total_cost = 0.0
    total_tokens = 0
    model_counts: Counter[str] = Counter()
    conversations: set[str] = set()
    start: datetime | None = None
    end: datetime | None = None

    for record in records:
        total_cost += record.cost
        total_tokens += record.usage.total
        model_counts[record.model] += 1
        if record.conversation_id:
            conversations.add(record.conversation_id)
        if start is None or record.timestamp < start:
            start = record.timestamp
        if end is None or record.timestamp > end:
            end = record.timestamp

    if start is None or end is None:
        current = now if now is not None else datetime.now(UTC)
        return UsageSummary(start=current, end=current)

    days = max(1, math.ceil((end - start) / ONE_DAY))
    # most_common keeps first-seen order among equal counts
    top_model = model_counts.most_common(1)[0][0]
    return UsageSummary(
        total_cost=total_cost,
        total_tokens=total_tokens,
        total_conversations=len(conversations),
        start=start,
        end=end,
        top_model=top_model,
        average_daily_cost=total_cost / days,
    )
