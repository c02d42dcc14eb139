import json
import logging

from moontv_search.config import SearchCoreConfig
from moontv_search.log import debug_log_event, debug_logger, setup_logging


def test_defaults():
    config = SearchCoreConfig()
    assert config.cache_ttl == 300
    assert config.cache_max_items == 50
    assert config.cache_sweep_interval == 60
    assert config.redis_url is None


def test_from_env(monkeypatch):
    monkeypatch.setenv("SEARCH_CACHE_TTL", "120")
    monkeypatch.setenv("SEARCH_CACHE_MAX_ITEMS", "10")
    monkeypatch.setenv("SEARCH_DIVERSITY_RATIO", "0.5")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("DEBUG_LOGGING", "yes")
    monkeypatch.setenv("SEARCH_TRENDING_MAX_ITEMS", "20")

    config = SearchCoreConfig.from_env()

    assert config.cache_ttl == 120.0
    assert config.cache_max_items == 10
    assert config.diversity_ratio == 0.5
    assert config.redis_url == "redis://localhost:6379/0"
    assert config.debug_logging is True
    assert config.trending_max_items == 20
    assert config.trending_window_days == 7.0


def test_from_env_bad_values_fall_back(monkeypatch):
    monkeypatch.setenv("SEARCH_CACHE_MAX_ITEMS", "lots")
    monkeypatch.setenv("SEARCH_CACHE_TTL", "soon")
    monkeypatch.delenv("REDIS_URL", raising=False)

    config = SearchCoreConfig.from_env()

    assert config.cache_max_items == 50
    assert config.cache_ttl == 300
    assert config.redis_url is None


def test_debug_events_written_as_json(tmp_path):
    setup_logging(str(tmp_path), debug_logging=True)
    try:
        debug_log_event({'event': 'rank', 'query': '流浪地球'})
        for handler in debug_logger.handlers:
            handler.flush()

        line = (tmp_path / "debug.log").read_text(encoding="utf-8").strip()
        assert json.loads(line) == {'event': 'rank', 'query': '流浪地球'}
    finally:
        for handler in list(debug_logger.handlers):
            debug_logger.removeHandler(handler)
            handler.close()
        debug_logger.disabled = True


def test_debug_events_dropped_when_disabled(tmp_path):
    setup_logging(str(tmp_path), debug_logging=False)
    debug_log_event({'event': 'rank'})
    assert not (tmp_path / "debug.log").exists()
    assert logging.getLogger("moontv_search").level == logging.INFO
