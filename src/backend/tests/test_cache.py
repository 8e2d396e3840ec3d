from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mathscribe.refinement.base import RefinementResult
from mathscribe.refinement.cache import RefinementCache, make_cache_key

TTL = 3600.0


def _result(value="x"):
    return RefinementResult(
        final_result=value, iterations=1, reasoning="", confidence=1.0,
        model_used="m", processing_time_ms=5,
    )


@given(st.text(), st.text(), st.text(), st.floats(allow_nan=False))
def test_key_is_deterministic(task, input_text, model, temperature):
    assert make_cache_key(task, input_text, model, temperature) == make_cache_key(
        task, input_text, model, temperature
    )


def test_key_changes_with_each_component():
    base = ("convert", "x squared", "gpt-4o", 0.2)
    key = make_cache_key(*base)
    assert make_cache_key("simplify", *base[1:]) != key
    assert make_cache_key(base[0], "x cubed", *base[2:]) != key
    assert make_cache_key(*base[:2], "gpt-4o-mini", base[3]) != key
    assert make_cache_key(*base[:3], 0.3) != key


def test_key_components_do_not_run_together():
    assert make_cache_key("ab", "c", "m", 0.2) != make_cache_key("a", "bc", "m", 0.2)


def test_entry_available_until_ttl(cache, clock):
    cache.put("k", _result(), "task")
    clock.advance(TTL - 0.001)
    entry = cache.get("k", "task")
    assert entry is not None
    assert entry.result.final_result == "x"
    assert entry.task_key == "task"


def test_stale_entry_is_evicted_on_lookup(cache, clock):
    cache.put("k", _result(), "task")
    clock.advance(TTL + 0.001)
    assert cache.get("k", "task") is None
    assert len(cache) == 0


def test_task_mismatch_misses_without_evicting(cache):
    cache.put("k", _result(), "task")
    assert cache.get("k", "other task") is None
    assert len(cache) == 1


def test_put_overwrites_and_resets_timestamp(cache, clock):
    cache.put("k", _result("old"), "task")
    clock.advance(TTL - 1)
    cache.put("k", _result("new"), "task")
    clock.advance(2)
    assert cache.get("k", "task").result.final_result == "new"


def test_least_recently_used_entry_is_evicted(clock):
    cache = RefinementCache(max_entries=2, clock=clock)
    cache.put("a", _result("a"), "t")
    cache.put("b", _result("b"), "t")
    assert cache.get("a", "t") is not None
    cache.put("c", _result("c"), "t")
    assert cache.stats()["keys"] == ["a", "c"]
    assert cache.get("b", "t") is None


def test_clear_and_stats(cache):
    cache.put("a", _result(), "t")
    cache.put("b", _result(), "t")
    assert cache.stats() == {"size": 2, "keys": ["a", "b"]}
    cache.clear()
    assert cache.stats() == {"size": 0, "keys": []}


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        RefinementCache(max_entries=0)
