"""
Key-value store adapters.

Every repository talks to the backend through the small ``KVStore`` contract
below: hash-field records, integer counters, membership sets and
push-front lists. Two implementations:

  RedisStore   -> the real backend (redis-py), errors surface as StoreError
  MemoryStore  -> in-process maps, used for local development and tests

Keys are plain strings; values and members come back as ``str``.
"""

import logging
from abc import ABC, abstractmethod
from functools import wraps
from threading import Lock
from typing import Any, Callable, Dict, List

import redis

from .errors import StoreError

log = logging.getLogger("store")

class KVStore(ABC):
    name: str = "kv"

    @abstractmethod
    def get(self, key: str, field: str) -> str | None: ...

    @abstractmethod
    def set(self, key: str, field: str, value: str) -> None: ...

    @abstractmethod
    def increment(self, key: str) -> int: ...

    @abstractmethod
    def add_to_set(self, key: str, member: Any) -> None: ...

    @abstractmethod
    def remove_from_set(self, key: str, member: Any) -> None: ...

    @abstractmethod
    def set_members(self, key: str) -> List[str]: ...

    @abstractmethod
    def set_cardinality(self, key: str) -> int: ...

    @abstractmethod
    def list_push_front(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def list_range(self, key: str, start: int, stop: int) -> List[str]:
        """Inclusive range; negative indexes count from the end (LRANGE)."""

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def ping(self) -> bool: ...

# ---------------- redis ----------------

def _wrap_errors(fn: Callable) -> Callable:
    @wraps(fn)
    def inner(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except redis.RedisError as e:
            raise StoreError(f"redis {fn.__name__} failed: {e}") from e
    return inner

class RedisStore(KVStore):
    name = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, s) -> "RedisStore":
        opts = dict(
            decode_responses=True,
            socket_timeout=s.redis_timeout,
            socket_connect_timeout=s.redis_timeout,
        )
        if s.redis_url:
            client = redis.Redis.from_url(s.redis_url, **opts)
        else:
            client = redis.Redis(
                host=s.redis_host, port=s.redis_port,
                password=s.redis_password, db=s.redis_db, **opts,
            )
        return cls(client)

    @_wrap_errors
    def get(self, key, field):
        return self.client.hget(key, field)

    @_wrap_errors
    def set(self, key, field, value):
        self.client.hset(key, field, value)

    @_wrap_errors
    def increment(self, key):
        return int(self.client.incr(key))

    @_wrap_errors
    def add_to_set(self, key, member):
        self.client.sadd(key, member)

    @_wrap_errors
    def remove_from_set(self, key, member):
        self.client.srem(key, member)

    @_wrap_errors
    def set_members(self, key):
        return list(self.client.smembers(key))

    @_wrap_errors
    def set_cardinality(self, key):
        return int(self.client.scard(key))

    @_wrap_errors
    def list_push_front(self, key, value):
        self.client.lpush(key, value)

    @_wrap_errors
    def list_range(self, key, start, stop):
        return list(self.client.lrange(key, start, stop))

    @_wrap_errors
    def delete(self, key):
        self.client.delete(key)

    @_wrap_errors
    def exists(self, key):
        return self.client.exists(key) > 0

    @_wrap_errors
    def ping(self):
        return bool(self.client.ping())

# ---------------- in-memory ----------------

class MemoryStore(KVStore):
    """Map-backed store with the same semantics as the Redis commands used."""

    name = "memory"

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._lock = Lock()

    def _typed(self, key: str, kind: type, create: bool = False):
        val = self._data.get(key)
        if val is None:
            if not create:
                return None
            val = self._data[key] = kind()
        if not isinstance(val, kind):
            raise StoreError(f"WRONGTYPE operation against key {key!r}")
        return val

    def get(self, key, field):
        with self._lock:
            h = self._typed(key, dict)
            return None if h is None else h.get(field)

    def set(self, key, field, value):
        with self._lock:
            self._typed(key, dict, create=True)[field] = str(value)

    def increment(self, key):
        with self._lock:
            cur = self._data.get(key, "0")
            if not isinstance(cur, str):
                raise StoreError(f"WRONGTYPE operation against key {key!r}")
            try:
                nxt = int(cur) + 1
            except ValueError:
                raise StoreError(f"value at {key!r} is not an integer") from None
            self._data[key] = str(nxt)
            return nxt

    def add_to_set(self, key, member):
        with self._lock:
            self._typed(key, set, create=True).add(str(member))

    def remove_from_set(self, key, member):
        with self._lock:
            s = self._typed(key, set)
            if s is not None:
                s.discard(str(member))
                if not s:
                    del self._data[key]

    def set_members(self, key):
        with self._lock:
            s = self._typed(key, set)
            return list(s) if s else []

    def set_cardinality(self, key):
        with self._lock:
            s = self._typed(key, set)
            return len(s) if s else 0

    def list_push_front(self, key, value):
        with self._lock:
            self._typed(key, list, create=True).insert(0, str(value))

    def list_range(self, key, start, stop):
        with self._lock:
            lst = self._typed(key, list)
            if not lst:
                return []
            n = len(lst)
            if start < 0:
                start = max(n + start, 0)
            if stop < 0:
                stop = n + stop
            if start >= n or start > stop:
                return []
            return lst[start:stop + 1]

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def exists(self, key):
        with self._lock:
            return key in self._data

    def ping(self):
        return True
