"""
Tests for the PresenceCache.
"""

import threading

from lanpresence.scanner.presence import PresenceCache


class TestPresenceCache:

    def test_starts_empty(self):
        cache = PresenceCache()
        assert len(cache) == 0
        assert cache.is_present(1) is False

    def test_mark_and_clear(self):
        cache = PresenceCache()
        cache.mark_present(1)
        cache.mark_present(2)
        assert cache.is_present(1)
        assert cache.is_present(2)
        assert not cache.is_present(3)

        cache.clear()
        assert not cache.is_present(1)
        assert len(cache) == 0

    def test_replace_drops_previous_users(self):
        cache = PresenceCache()
        cache.replace([1, 2])
        cache.replace([3])
        assert cache.snapshot() == frozenset({3})

    def test_snapshot_is_not_affected_by_later_writes(self):
        cache = PresenceCache()
        cache.replace([1])
        snap = cache.snapshot()
        cache.mark_present(2)
        assert snap == frozenset({1})

    def test_readers_only_see_complete_cycles(self):
        """Concurrent readers never observe a partly replaced set."""
        cache = PresenceCache()
        cycle_a = frozenset(range(0, 50))
        cycle_b = frozenset(range(100, 150))
        allowed = {frozenset(), cycle_a, cycle_b}
        seen_bad = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                snap = cache.snapshot()
                if snap not in allowed:
                    seen_bad.append(snap)

        def writer():
            for i in range(500):
                cache.replace(cycle_a if i % 2 else cycle_b)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        writers = [threading.Thread(target=writer) for _ in range(2)]
        for t in writers:
            t.start()
        for t in writers:
            t.join()
        stop.set()
        for t in readers:
            t.join()

        assert seen_bad == []
        assert cache.snapshot() in (cycle_a, cycle_b)

    def test_concurrent_marks_are_not_lost(self):
        cache = PresenceCache()

        def marker(start):
            for i in range(100):
                cache.mark_present(start + i)

        threads = [threading.Thread(target=marker, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 400
