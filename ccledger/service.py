"""Core services for reading Claude Code session logs and building reports."""

import json
import time
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from pathlib import Path

from ccledger.aggregate import (
    DEFAULT_BLOCK_HOURS,
    aggregate_daily,
    aggregate_monthly,
    aggregate_sessions,
    build_billing_blocks,
    build_summary,
)
from ccledger.config import Settings
from ccledger.dedup import DeduplicationStore, DedupScope
from ccledger.locator import find_log_files
from ccledger.log_models import parse_assistant_entry
from ccledger.logger import logger
from ccledger.models import IngestStats, TokenUsage, UsageRecord, UsageReport
from ccledger.pricing import CostCalculator, build_pricing_source

logger = logger.getChild("service")

DEFAULT_FILE_TIMEOUT = 30.0


class LogReadTimeout(TimeoutError):
    """Raised when a single log file takes longer than its deadline to read."""


@dataclass
class FileResult:
    """Records and counters produced by parsing one log file."""

    path: Path
    records: list[UsageRecord] = field(default_factory=list)
    lines_read: int = 0
    lines_rejected: int = 0
    duplicates: int = 0
    failed: bool = False


@dataclass
class IngestResult:
    """Deduplicated records of a run, sorted by timestamp, plus diagnostics."""

    records: list[UsageRecord]
    stats: IngestStats
    files: list[Path] = field(default_factory=list)


def extract_record(line: str, calculator: CostCalculator) -> UsageRecord | None:
    """Parse one JSONL line into a usage record, or None when it is not one.

    A ``costUSD`` value on the entry is trusted as is; otherwise the cost is
    computed from the token counts.
    """
    try:
        raw = json.loads(line)
    except (ValueError, RecursionError):
        # JSONDecodeError, oversized integers and pathological nesting
        return None
    if not isinstance(raw, dict):
        return None
    entry = parse_assistant_entry(raw)
    if entry is None:
        return None

    message_usage = entry.message.usage
    usage = TokenUsage(
        input=message_usage.input_tokens,
        output=message_usage.output_tokens,
        cache_creation=message_usage.cache_creation_input_tokens,
        cache_read=message_usage.cache_read_input_tokens,
    )
    model = entry.message.model
    cost = (
        entry.cost_usd
        if entry.cost_usd is not None
        else calculator.cost(model, usage)
    )
    return UsageRecord(
        timestamp=entry.timestamp,
        model=model,
        usage=usage,
        cost=cost,
        conversation_id=entry.conversation,
        request_id=entry.request_id,
        message_id=entry.message.id,
        title=entry.title,
        cwd=entry.cwd,
    )


def _iter_lines(path: Path, deadline: float | None) -> Iterator[tuple[int, str]]:
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line_no, line in enumerate(handle, start=1):
            if deadline is not None and time.monotonic() > deadline:
                message = f"timed out reading {path} at line {line_no}"
                raise LogReadTimeout(message)
            if not line.strip():
                continue
            yield line_no, line


def parse_log_file(
    path: Path,
    calculator: CostCalculator,
    *,
    timeout: float | None = DEFAULT_FILE_TIMEOUT,
) -> FileResult:
    """Read one log file sequentially, dropping repeats within the file.

    A file that cannot be read, or that exceeds ``timeout`` seconds, is
    abandoned: the result is flagged as failed and holds no records.
    """
    result = FileResult(path=path)
    store = DeduplicationStore(DedupScope.FILE)
    deadline = time.monotonic() + timeout if timeout is not None else None
    try:
        for line_no, line in _iter_lines(path, deadline):
            result.lines_read += 1
            record = extract_record(line, calculator)
            if record is None:
                result.lines_rejected += 1
                logger.debug(f"skipped line: {path} line={line_no}")
                continue
            if not store.should_keep(record):
                result.duplicates += 1
                continue
            result.records.append(record)
    except LogReadTimeout as exc:
        logger.warning(f"{exc}; discarding partial results")
        return FileResult(path=path, lines_read=result.lines_read, failed=True)
    except OSError as exc:
        logger.warning(f"failed to read {path}: {exc}")
        return FileResult(path=path, lines_read=result.lines_read, failed=True)
    return result


def _within(record: UsageRecord, since: datetime | None, until: datetime | None) -> bool:
    if since is not None and record.timestamp < since:
        return False
    if until is not None and record.timestamp > until:
        return False
    return True


def ingest(
    roots: Iterable[str | Path],
    calculator: CostCalculator,
    *,
    store: DeduplicationStore | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
    file_timeout: float | None = DEFAULT_FILE_TIMEOUT,
    max_workers: int = 4,
) -> IngestResult:
    """Locate, parse and globally deduplicate every log file under ``roots``.

    Files are parsed concurrently when ``max_workers`` is above one, but the
    run-wide deduplication is applied afterwards in discovery order, so the
    first occurrence of a fingerprint always wins regardless of scheduling.
    """
    run_store = store if store is not None else DeduplicationStore(DedupScope.RUN)
    files = find_log_files(roots)
    stats = IngestStats(files_found=len(files))

    def _parse(path: Path) -> FileResult:
        return parse_log_file(path, calculator, timeout=file_timeout)

    if max_workers > 1 and len(files) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(_parse, files))
    else:
        results = [_parse(path) for path in files]

    records: list[UsageRecord] = []
    for result in results:
        stats.lines_read += result.lines_read
        stats.lines_rejected += result.lines_rejected
        stats.duplicates_in_file += result.duplicates
        if result.failed:
            stats.files_failed += 1
            continue
        stats.files_read += 1
        for record in result.records:
            if not run_store.should_keep(record):
                stats.duplicates_across_files += 1
                continue
            if _within(record, since, until):
                records.append(record)

    records.sort(key=lambda record: record.timestamp)
    stats.records = len(records)
    logger.debug(
        f"ingested {stats.records} records from {stats.files_read}/"
        f"{stats.files_found} files ({stats.duplicates_across_files} cross-file "
        "duplicates)"
    )
    return IngestResult(records=records, stats=stats, files=files)


def build_report(
    records: Sequence[UsageRecord],
    *,
    tz: tzinfo | None,
    block_hours: float = DEFAULT_BLOCK_HOURS,
    stats: IngestStats | None = None,
    now: datetime | None = None,
) -> UsageReport:
    """Run the four rollups and the summary over the same records."""
    ordered = sorted(records, key=lambda record: record.timestamp)
    return UsageReport(
        daily=aggregate_daily(ordered, tz),
        monthly=aggregate_monthly(ordered, tz),
        sessions=aggregate_sessions(ordered),
        blocks=build_billing_blocks(ordered, block_hours),
        summary=build_summary(ordered, now=now),
        stats=stats,
        block_hours=block_hours,
    )


def build_calculator(settings: Settings) -> CostCalculator:
    """Return a cost calculator honouring the offline flag and fetch timeout."""
    source = build_pricing_source(
        offline=settings.offline,
        timeout=settings.pricing_timeout,
        cache_path=settings.pricing_cache,
    )
    return CostCalculator(source)


def load_report(
    settings: Settings,
    *,
    calculator: CostCalculator | None = None,
    store: DeduplicationStore | None = None,
) -> UsageReport:
    """Convenience helper to ingest logs and aggregate them per ``settings``."""
    resolved_calculator = calculator or build_calculator(settings)
    result = ingest(
        settings.log_roots(),
        resolved_calculator,
        store=store,
        since=settings.since,
        until=settings.until,
        file_timeout=settings.file_timeout,
        max_workers=settings.max_workers,
    )
    return build_report(
        result.records,
        tz=settings.tz,
        block_hours=settings.block_hours,
        stats=result.stats,
    )
