"""In-memory result cache keyed by a fingerprint of the scored record fields."""
from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from .kpi.models import KPISet
from .models import SurveyRecord
from .scoring.composite import CompositeScoreResult


logger = logging.getLogger("restodiag.cache")


def fingerprint(record: SurveyRecord, namespace: str = "") -> str:
    """SHA-256 of the fields the pipeline reads, in canonical JSON form.

    ``namespace`` separates results computed under different configurations;
    the engine passes its config hash.
    """
    payload = json.dumps(record.scoring_inputs(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(f"{namespace}|{payload}".encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    kpis: KPISet
    composite: CompositeScoreResult


class ResultCache:
    """Write-once cache of KPI and composite results.

    Keys combine the record fingerprint with a namespace, so engines with
    different configurations can share one cache. Lookups and inserts hold a
    lock; the computation itself runs outside it. If two threads compute the
    same key, the first stored entry wins and both callers receive it.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def get_or_compute(
        self,
        record: SurveyRecord,
        compute: Callable[[], Tuple[KPISet, CompositeScoreResult]],
        namespace: str = "",
    ) -> CacheEntry:
        key = fingerprint(record, namespace)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self.hits += 1
                return entry
            self.misses += 1

        kpis, composite = compute()
        with self._lock:
            entry = self._entries.setdefault(key, CacheEntry(kpis, composite))
        logger.debug("Cached result for fingerprint %s", key[:12])
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, record: SurveyRecord) -> bool:
        return self.get(fingerprint(record)) is not None
