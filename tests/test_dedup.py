"""Pytest tests for ``ccledger.dedup``."""

# ruff: noqa: S101

import threading
from datetime import UTC, datetime

from ccledger.dedup import DeduplicationStore, DedupScope
from ccledger.models import TokenUsage, UsageRecord


def _record(message_id: str | None = "m1", request_id: str | None = "r1") -> UsageRecord:
    return UsageRecord(
        timestamp=datetime(2025, 1, 15, tzinfo=UTC),
        model="claude-sonnet-4-20250514",
        usage=TokenUsage(input=1, output=1),
        message_id=message_id,
        request_id=request_id,
    )


def test_first_offer_is_kept() -> None:
    store = DeduplicationStore()

    assert store.should_keep(_record()) is True
    assert "m1:r1" in store
    assert len(store) == 1


def test_repeat_offer_is_dropped() -> None:
    store = DeduplicationStore()
    store.should_keep(_record())

    assert store.should_keep(_record()) is False
    assert len(store) == 1


def test_fingerprint_needs_both_ids() -> None:
    assert _record("m1", "r2").fingerprint == "m1:r2"
    assert _record(None, "r1").fingerprint is None
    assert _record("m1", None).fingerprint is None
    assert _record("", "r1").fingerprint is None


def test_records_without_fingerprint_are_always_kept() -> None:
    """Older log formats lack ids; they must never be undercounted."""
    store = DeduplicationStore()

    assert store.should_keep(_record(None, None)) is True
    assert store.should_keep(_record(None, None)) is True
    assert store.should_keep(_record("m1", None)) is True
    assert len(store) == 0


def test_different_fingerprints_are_independent() -> None:
    store = DeduplicationStore()

    assert store.should_keep(_record("m1", "r1")) is True
    assert store.should_keep(_record("m1", "r2")) is True
    assert store.should_keep(_record("m2", "r1")) is True


def test_scopes_do_not_share_state() -> None:
    file_store = DeduplicationStore(DedupScope.FILE)
    run_store = DeduplicationStore(DedupScope.RUN)

    assert file_store.should_keep(_record()) is True
    assert run_store.should_keep(_record()) is True
    assert repr(file_store) == "DeduplicationStore(scope='file', seen=1)"


def test_concurrent_offers_keep_exactly_one() -> None:
    store = DeduplicationStore()
    barrier = threading.Barrier(8)
    results: list[bool] = []
    lock = threading.Lock()

    def offer() -> None:
        barrier.wait()
        kept = store.should_keep(_record())
        with lock:
            results.append(kept)

    threads = [threading.Thread(target=offer) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert results.count(False) == 7
