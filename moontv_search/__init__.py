# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

from .config import SearchCoreConfig
from .errors import (
    CacheCorrupted,
    CollaboratorUnavailable,
    InvalidInput,
    SearchCoreError,
    StorageUnavailable,
)
from .history import HistoryLookup, SearchHistory
from .log import setup_logging
from .models import RankingWeights, SearchResult
from .search import (
    ResultCache,
    SearchDeduplicator,
    SearchRanker,
    SmartSearch,
    deduplicate_only,
    merge_similar,
    rank_results,
)
from .search.similarity import similarity
from .trending import TrendingSearch

__version__ = "1.0.0"


def create_search(config=None) -> SmartSearch:
    """Build a SmartSearch from config (default: environment)."""
    config = config or SearchCoreConfig.from_env()
    setup_logging(config.log_dir, debug_logging=config.debug_logging)
    return SmartSearch(config=config)


__all__ = [
    'CacheCorrupted', 'CollaboratorUnavailable', 'HistoryLookup', 'InvalidInput',
    'RankingWeights', 'ResultCache', 'SearchCoreConfig', 'SearchCoreError',
    'SearchDeduplicator', 'SearchHistory', 'SearchRanker', 'SearchResult',
    'SmartSearch', 'StorageUnavailable', 'TrendingSearch', 'create_search',
    'deduplicate_only', 'merge_similar', 'rank_results', 'setup_logging',
    'similarity',
]
