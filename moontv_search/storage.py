"""
================================================================================
MoonTV Search Core - Key-Value Storage Backends
================================================================================
Opaque string key-value stores the ResultCache can persist into.

  - MemoryStorage - in-process dict, used when the caller hands the
                    cache a plain dict to persist into
  - RedisStorage  - shared across workers via Redis

Backends raise StorageUnavailable on failure; the cache decides what to
do about it (it degrades to memory-only).
================================================================================
"""

import logging
import threading
from typing import MutableMapping, Optional

import redis

from .config import SearchCoreConfig
from .errors import StorageUnavailable

logger = logging.getLogger(__name__)


class MemoryStorage:
    """
    In-process storage.

    A caller-supplied dict is used by reference, so the caller can read
    back whatever the cache persisted.
    """
    def __init__(self, data: Optional[MutableMapping[str, str]] = None):
        self._data: MutableMapping[str, str] = data if data is not None else {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class RedisStorage:
    """Redis-backed storage for shared state."""
    def __init__(self, url: Optional[str] = None, prefix: str = "moontv:", client=None):
        if client is None:
            if not url:
                raise StorageUnavailable("RedisStorage needs a url or a client")
            try:
                client = redis.from_url(url, decode_responses=True)
            except ValueError as e:
                raise StorageUnavailable(f"Bad Redis URL {url!r}: {e}") from e
        self.client = client
        self.url = url
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def ping(self) -> None:
        try:
            self.client.ping()
        except redis.RedisError as e:
            raise StorageUnavailable(f"Redis PING failed: {e}") from e

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(self._k(key))
        except redis.RedisError as e:
            raise StorageUnavailable(f"Redis GET failed: {e}") from e
        if isinstance(value, bytes):
            value = value.decode('utf-8')
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(self._k(key), value)
        except redis.RedisError as e:
            raise StorageUnavailable(f"Redis SET failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._k(key))
        except redis.RedisError as e:
            raise StorageUnavailable(f"Redis DELETE failed: {e}") from e


def storage_from_config(config: SearchCoreConfig) -> Optional[RedisStorage]:
    """
    Redis when configured and reachable, otherwise None (the cache then
    stays memory-only).
    """
    if config.redis_url:
        try:
            storage = RedisStorage(config.redis_url, prefix=config.cache_prefix)
            storage.ping()
            logger.info(f"Search cache storage: Redis ({config.redis_url})")
            return storage
        except StorageUnavailable as e:
            logger.warning(f"Redis connection failed, falling back to memory: {e}")
    logger.info("Search cache storage: memory only")
    return None
