"""
Runtime configuration for the search core.

Values come from the environment (a local .env is loaded by the package
on import). Anything unparseable falls back to the default.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(name, "").strip()
    return value or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, str(default))
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}={raw!r}, using {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower() in ('1', 'true', 'yes', 'on')


@dataclass
class SearchCoreConfig:
    """Settings shared by the ranker, cache and history."""
    cache_ttl: float = 5 * 60             # Seconds an entry stays valid
    cache_max_items: int = 50
    cache_sweep_interval: float = 60.0    # Seconds between background sweeps
    cache_prefix: str = "moontv:"
    history_max_items: int = 30
    trending_max_items: int = 50          # Keywords kept per trending category
    trending_window_days: float = 7.0
    diversity_ratio: float = 0.3          # Share of the list one source may fill
    min_source_cap: int = 3
    redis_url: Optional[str] = None
    log_dir: Optional[str] = None
    debug_logging: bool = False

    @classmethod
    def from_env(cls) -> "SearchCoreConfig":
        """Build config from environment variables."""
        return cls(
            cache_ttl=_env_float('SEARCH_CACHE_TTL', cls.cache_ttl),
            cache_max_items=_env_int('SEARCH_CACHE_MAX_ITEMS', cls.cache_max_items),
            cache_sweep_interval=_env_float('SEARCH_CACHE_SWEEP_INTERVAL', cls.cache_sweep_interval),
            cache_prefix=_env_str('SEARCH_CACHE_PREFIX', cls.cache_prefix),
            history_max_items=_env_int('SEARCH_HISTORY_MAX_ITEMS', cls.history_max_items),
            trending_max_items=_env_int('SEARCH_TRENDING_MAX_ITEMS', cls.trending_max_items),
            trending_window_days=_env_float('SEARCH_TRENDING_WINDOW_DAYS', cls.trending_window_days),
            diversity_ratio=_env_float('SEARCH_DIVERSITY_RATIO', cls.diversity_ratio),
            min_source_cap=_env_int('SEARCH_MIN_SOURCE_CAP', cls.min_source_cap),
            redis_url=_env_str('REDIS_URL'),
            log_dir=_env_str('LOG_DIR'),
            debug_logging=_env_bool('DEBUG_LOGGING', cls.debug_logging),
        )
