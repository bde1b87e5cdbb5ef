from unittest import mock

import pytest
import redis

from edgefleet import db
from edgefleet.errors import StoreError
from edgefleet.settings import Settings
from edgefleet.store import MemoryStore, RedisStore


class TestMemoryStore:
    def test_hash_field_roundtrip(self, store):
        assert store.get("devices:1", "data") is None
        store.set("devices:1", "data", '{"id": 1}')
        assert store.get("devices:1", "data") == '{"id": 1}'
        assert store.get("devices:1", "other") is None

    def test_increment_starts_at_one(self, store):
        assert [store.increment("c") for _ in range(3)] == [1, 2, 3]

    def test_counters_are_independent(self, store):
        store.increment("a:next_id")
        store.increment("a:next_id")
        assert store.increment("b:next_id") == 1

    def test_sets(self, store):
        store.add_to_set("s", 1)
        store.add_to_set("s", "1")
        store.add_to_set("s", 2)
        assert sorted(store.set_members("s")) == ["1", "2"]
        assert store.set_cardinality("s") == 2
        store.remove_from_set("s", 1)
        store.remove_from_set("s", 99)
        assert store.set_members("s") == ["2"]
        assert store.set_cardinality("missing") == 0
        assert store.set_members("missing") == []

    def test_list_push_front_and_range(self, store):
        for v in (1, 2, 3, 4):
            store.list_push_front("l", v)
        assert store.list_range("l", 0, -1) == ["4", "3", "2", "1"]
        assert store.list_range("l", 0, 0) == ["4"]
        assert store.list_range("l", 1, 2) == ["3", "2"]
        assert store.list_range("l", 0, 99) == ["4", "3", "2", "1"]
        assert store.list_range("l", -2, -1) == ["2", "1"]
        assert store.list_range("l", 3, 1) == []
        assert store.list_range("missing", 0, -1) == []

    def test_delete_and_exists(self, store):
        store.set("k", "data", "x")
        assert store.exists("k")
        store.delete("k")
        assert not store.exists("k")
        store.delete("k")  # absent key is a no-op

    def test_emptied_set_no_longer_exists(self, store):
        store.add_to_set("s", 1)
        store.remove_from_set("s", 1)
        assert not store.exists("s")

    def test_wrong_type_raises_store_error(self, store):
        store.add_to_set("s", 1)
        with pytest.raises(StoreError):
            store.list_push_front("s", 1)
        with pytest.raises(StoreError):
            store.increment("s")

    def test_increment_non_integer(self, store):
        store.set("h", "data", "x")
        with pytest.raises(StoreError):
            store.increment("h")

    def test_ping(self, store):
        assert store.ping() is True


class TestRedisStore:
    def test_commands_map_to_redis(self):
        client = mock.MagicMock()
        client.hget.return_value = "payload"
        client.incr.return_value = 7
        client.smembers.return_value = {"1", "2"}
        client.scard.return_value = 2
        client.lrange.return_value = ["3"]
        client.exists.return_value = 1
        s = RedisStore(client)

        assert s.get("devices:1", "data") == "payload"
        client.hget.assert_called_with("devices:1", "data")
        s.set("devices:1", "data", "{}")
        client.hset.assert_called_with("devices:1", "data", "{}")
        assert s.increment("devices:next_id") == 7
        assert sorted(s.set_members("devices:all")) == ["1", "2"]
        assert s.set_cardinality("devices:all") == 2
        s.list_push_front("device:1:telemetry", 3)
        client.lpush.assert_called_with("device:1:telemetry", 3)
        assert s.list_range("device:1:telemetry", 0, 0) == ["3"]
        assert s.exists("devices:1") is True
        s.remove_from_set("devices:all", 1)
        client.srem.assert_called_with("devices:all", 1)
        s.delete("devices:1")
        client.delete.assert_called_with("devices:1")

    def test_backend_errors_become_store_errors(self):
        client = mock.MagicMock()
        client.incr.side_effect = redis.ConnectionError("connection refused")
        with pytest.raises(StoreError, match="connection refused"):
            RedisStore(client).increment("devices:next_id")


class TestInitStore:
    def teardown_method(self):
        db.set_store(None)

    def test_memory_backend(self):
        store = db.init_store(Settings(store_backend="memory"))
        assert isinstance(store, MemoryStore)
        assert db.get_store() is store

    def test_falls_back_to_memory_when_redis_unreachable(self):
        client = mock.MagicMock()
        client.ping.side_effect = redis.ConnectionError("unreachable")
        with mock.patch("redis.Redis", return_value=client):
            store = db.init_store(Settings(store_backend="redis", redis_url=None))
        assert isinstance(store, MemoryStore)

    def test_uses_redis_when_reachable(self):
        client = mock.MagicMock()
        client.ping.return_value = True
        with mock.patch("redis.Redis.from_url", return_value=client) as from_url:
            store = db.init_store(Settings(store_backend="redis", redis_url="redis://cache:6379/0"))
        assert isinstance(store, RedisStore)
        assert from_url.call_args.kwargs["decode_responses"] is True
