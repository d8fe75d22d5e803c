import threading

import pytest

from tailwatch.cache import ExpiringStore


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def test_entries_expire_after_ttl(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)
    store.set('a', 1)

    clock.advance(59)
    assert store.get('a') == 1
    assert 'a' in store

    clock.advance(1)
    assert store.get('a') is None
    assert 'a' not in store
    assert len(store) == 0


def test_per_entry_ttl_overrides_default(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)
    store.set('short', 1, ttl_seconds=5)
    store.set('long', 2)

    clock.advance(10)
    assert store.get('short', 'gone') == 'gone'
    assert store.get('long') == 2
    assert store.expires_in('long') == 50
    assert store.expires_in('short') is None


def test_sweep_drops_only_expired_entries(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)
    store.set('old', 1, ttl_seconds=10)
    store.set('fresh', 2)

    clock.advance(30)

    assert store.sweep() == 1
    assert len(store) == 1
    assert store.sweep() == 0


def test_oldest_entries_are_evicted_over_capacity(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, max_entries=3, clock=clock)
    for key in 'abcd':
        store.set(key, key)
        clock.advance(1)

    assert len(store) == 3
    assert 'a' not in store
    assert 'd' in store


def test_get_or_set_computes_once(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)
    calls = []

    def factory():
        calls.append(1)
        return 'value'

    assert store.get_or_set('k', factory) == 'value'
    assert store.get_or_set('k', factory) == 'value'
    assert len(calls) == 1

    clock.advance(60)
    store.get_or_set('k', factory)
    assert len(calls) == 2


def test_get_or_set_caches_nothing_on_error(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)

    def failing():
        raise RuntimeError('upstream down')

    with pytest.raises(RuntimeError):
        store.get_or_set('k', failing)
    assert len(store) == 0


def test_stats_track_hits_and_misses(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)
    store.set('a', 1)
    store.get('a')
    store.get('b')

    assert store.stats == {'entries': 1, 'hits': 1, 'misses': 1, 'hit_rate': 0.5}

    store.delete('a')
    store.clear()
    assert len(store) == 0


def test_increment_counts_and_keeps_original_expiry(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)

    assert store.increment('ip') == (1, 60)
    clock.advance(20)
    assert store.increment('ip') == (2, 40)
    assert store.expires_in('ip') == 40

    clock.advance(40)
    assert store.increment('ip') == (1, 60)


def test_increment_is_atomic_across_threads(clock) -> None:
    store = ExpiringStore(ttl_seconds=60, clock=clock)
    barrier = threading.Barrier(8, timeout=5)

    def worker():
        barrier.wait()
        for _ in range(250):
            store.increment('ip')

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.get('ip') == 2000
