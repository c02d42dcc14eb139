import pytest
import redis

from moontv_search.config import SearchCoreConfig
from moontv_search.errors import StorageUnavailable
from moontv_search.storage import MemoryStorage, RedisStorage, storage_from_config


class FakeRedis:
    def __init__(self):
        self.data = {}

    def ping(self):
        return True

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class DownRedis:
    def ping(self):
        raise redis.ConnectionError("connection refused")

    def get(self, *args):
        raise redis.ConnectionError("connection refused")

    set = delete = get


def test_memory_storage_uses_caller_dict():
    backing = {}
    storage = MemoryStorage(backing)
    storage.set("k", "v")
    assert backing == {"k": "v"}
    assert storage.get("k") == "v"

    storage.delete("k")
    storage.delete("missing")
    assert storage.get("k") is None


def test_redis_storage_prefixes_keys():
    client = FakeRedis()
    storage = RedisStorage(client=client, prefix="moontv:")

    storage.set("cache", "payload")
    assert client.data == {"moontv:cache": "payload"}
    assert storage.get("cache") == "payload"

    storage.delete("cache")
    assert storage.get("cache") is None


def test_redis_storage_decodes_bytes():
    client = FakeRedis()
    client.data["moontv:cache"] = "流浪地球".encode('utf-8')
    assert RedisStorage(client=client).get("cache") == "流浪地球"


def test_redis_errors_become_storage_unavailable():
    storage = RedisStorage(client=DownRedis())
    with pytest.raises(StorageUnavailable):
        storage.ping()
    with pytest.raises(StorageUnavailable):
        storage.get("cache")
    with pytest.raises(StorageUnavailable):
        storage.set("cache", "x")


def test_redis_storage_needs_url_or_client():
    with pytest.raises(StorageUnavailable):
        RedisStorage()


def test_storage_from_config_without_redis_is_memory_only():
    assert storage_from_config(SearchCoreConfig()) is None


def test_storage_from_config_falls_back_on_bad_url():
    assert storage_from_config(SearchCoreConfig(redis_url="not-a-redis-url")) is None


def test_storage_from_config_uses_reachable_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(redis, "from_url", lambda url, **kwargs: client)

    storage = storage_from_config(SearchCoreConfig(redis_url="redis://cache:6379/0", cache_prefix="tv:"))

    assert isinstance(storage, RedisStorage)
    storage.set("cache", "payload")
    assert client.data == {"tv:cache": "payload"}


def test_storage_from_config_falls_back_when_redis_is_down(monkeypatch):
    monkeypatch.setattr(redis, "from_url", lambda url, **kwargs: DownRedis())
    assert storage_from_config(SearchCoreConfig(redis_url="redis://cache:6379/0")) is None
