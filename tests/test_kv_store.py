"""Tests for the in-memory key-value store."""

from qa_dashboard.services.kv_store import KeyValueStore


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestKeyValueStore:
    """Tests for KeyValueStore."""

    def test_set_and_get(self):
        """Should return stored values."""
        store = KeyValueStore("test")
        store.set("a", 1)

        assert store.get("a") == 1
        assert "a" in store
        assert store.get("missing") is None

    def test_expires_after_ttl(self):
        """Should drop entries older than the TTL."""
        clock = FakeClock()
        store = KeyValueStore("test", ttl_seconds=10, clock=clock)
        store.set("a", 1)

        clock.now = 10
        assert store.get("a") == 1

        clock.now = 10.5
        assert store.get("a") is None
        assert len(store) == 0

    def test_write_refreshes_ttl(self):
        """Should restart the TTL on every write."""
        clock = FakeClock()
        store = KeyValueStore("test", ttl_seconds=10, clock=clock)
        store.set("a", 1)
        clock.now = 8
        store.set("a", 2)
        clock.now = 15

        assert store.get("a") == 2

    def test_evicts_oldest_write(self):
        """Should evict the least recently written entry when full."""
        store = KeyValueStore("test", max_entries=2)
        store.set("a", 1)
        store.set("b", 2)
        store.set("a", 3)
        store.set("c", 4)

        assert store.snapshot() == {"a": 3, "c": 4}

    def test_purge_counts_removed(self):
        """Should report how many expired entries were purged."""
        clock = FakeClock()
        store = KeyValueStore("test", ttl_seconds=1, clock=clock)
        store.set("a", 1)
        store.set("b", 2)
        clock.now = 5
        store.set("c", 3)

        assert store.purge() == 2
        assert list(store.values()) == [3]

    def test_delete_and_clear(self):
        """Should delete single entries and clear everything."""
        store = KeyValueStore("test")
        store.set("a", 1)
        store.set("b", 2)

        assert store.delete("a") is True
        assert store.delete("a") is False
        store.clear()
        assert len(store) == 0
