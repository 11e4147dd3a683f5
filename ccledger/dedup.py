"""Fingerprint store used to count each usage event at most once."""

import threading
from enum import StrEnum

from ccledger.models import UsageRecord


class DedupScope(StrEnum):
    FILE = "file"
    RUN = "run"


class DeduplicationStore:
    """Thread-safe set of usage record fingerprints seen in one scope.

    A fingerprint is ``message_id:request_id``. Records missing either
    identifier have no fingerprint and are always kept, so older log formats
    are never undercounted. Callers build one store per file (FILE scope) to
    drop replayed lines and one per run (RUN scope) to drop the same event
    appearing in several files.
    """

    def __init__(self, scope: DedupScope = DedupScope.RUN) -> None:
        self.scope = scope
        self._lock = threading.Lock()
        self._seen: set[str] = set()

    def should_keep(self, record: UsageRecord) -> bool:
        """Return True the first time a fingerprint is offered, False after."""
        fingerprint = record.fingerprint
        if fingerprint is None:
            return True

        with self._lock:
            if fingerprint in self._seen:
                return False
            self._seen.add(fingerprint)
            return True

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def __repr__(self) -> str:
        return f"DeduplicationStore(scope={self.scope.value!r}, seen={len(self)})"
