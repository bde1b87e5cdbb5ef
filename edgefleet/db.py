import logging

from .errors import StoreError
from .settings import settings
from .store import KVStore, MemoryStore, RedisStore

log = logging.getLogger("db")

_store: KVStore | None = None

def init_store(s=settings) -> KVStore:
    """Connect to Redis; fall back to the in-memory store if it is unreachable."""
    global _store
    if s.store_backend == "memory":
        log.info("Using in-memory storage (STORE_BACKEND=memory)")
        _store = MemoryStore()
        return _store

    store = RedisStore.from_settings(s)
    try:
        store.ping()
    except StoreError as e:
        log.warning("Redis connection failed: %s", e)
        log.warning("Falling back to in-memory storage")
        _store = MemoryStore()
        return _store

    log.info("Redis connected successfully")
    _store = store
    return _store

def set_store(store: KVStore | None) -> None:
    global _store
    _store = store

def get_store() -> KVStore:
    if _store is None:
        return init_store()
    return _store
