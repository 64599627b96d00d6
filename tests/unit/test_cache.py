from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from restodiag.cache import ResultCache, fingerprint
from restodiag.config import default_config
from restodiag.guard import guard_record
from restodiag.kpi import derive_kpis
from restodiag.scoring.composite import score_composite


RAW = {"monthly_revenue": 200000, "food_cost": 60000, "labor_cost": 50000, "business_type": "火锅"}


def compute_for(record):
    config = default_config()
    kpis = derive_kpis(record, config.resolver().resolve(record.business_type), config)
    return kpis, score_composite(record, kpis, config.scoring)


def test_fingerprint_ignores_unread_fields():
    a = guard_record({**RAW, "store_name": "A", "extra_column": "ignored"})
    b = guard_record({**RAW, "store_name": "B"})
    assert fingerprint(a) == fingerprint(b)
    assert len(fingerprint(a)) == 64


def test_fingerprint_changes_with_scored_fields():
    a = guard_record(RAW)
    assert fingerprint(a) != fingerprint(replace(a, monthly_revenue=200001))
    assert fingerprint(a) != fingerprint(guard_record({**RAW, "business_type": "快餐"}))


def test_label_and_canonical_value_share_a_fingerprint():
    assert fingerprint(guard_record({**RAW, "business_type": "火锅"})) == fingerprint(guard_record({**RAW, "business_type": "hot_pot"}))


def test_get_or_compute_computes_once():
    cache = ResultCache()
    record = guard_record(RAW)
    calls = []

    def compute():
        calls.append(1)
        return compute_for(record)

    first = cache.get_or_compute(record, compute)
    second = cache.get_or_compute(record, compute)
    assert first is second
    assert len(calls) == 1
    assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1}
    assert record in cache


def test_namespaces_keep_entries_apart():
    cache = ResultCache()
    record = guard_record(RAW)
    first = cache.get_or_compute(record, lambda: compute_for(record), namespace="config-a")
    second = cache.get_or_compute(record, lambda: compute_for(record), namespace="config-b")
    assert first is not second
    assert fingerprint(record, "config-a") != fingerprint(record, "config-b")
    assert cache.stats() == {"entries": 2, "hits": 0, "misses": 2}


def test_concurrent_writers_store_one_entry():
    cache = ResultCache()
    record = guard_record(RAW)

    with ThreadPoolExecutor(max_workers=8) as pool:
        entries = list(pool.map(lambda _: cache.get_or_compute(record, lambda: compute_for(record)), range(32)))

    assert len(cache) == 1
    assert all(entry is entries[0] for entry in entries)


def test_clear_resets_state():
    cache = ResultCache()
    record = guard_record(RAW)
    cache.get_or_compute(record, lambda: compute_for(record))
    cache.clear()
    assert len(cache) == 0
    assert cache.stats()["misses"] == 0
