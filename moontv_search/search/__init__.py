"""
================================================================================
MoonTV Search Core - Search Package
================================================================================
Ranking, deduplication and caching of multi-source search results.

Components:
  - similarity.py   - Normalized Levenshtein similarity and title normalization
  - scorer.py       - Five sub-scores and the weighted ranking score
  - deduplicator.py - Identity keys and duplicate collapsing
  - ranker.py       - Score -> dedup -> diversity -> sort pipeline
  - cache.py        - Per-query TTL cache with background sweeping
  - smart_search.py - Cache + ranker + history coordinator
================================================================================
"""

from .cache import ResultCache
from .deduplicator import SearchDeduplicator
from .ranker import SearchRanker, deduplicate_only, merge_similar, rank_results
from .scorer import ResultScorer
from .smart_search import SmartSearch

__all__ = [
    'ResultCache', 'ResultScorer', 'SearchDeduplicator', 'SearchRanker',
    'SmartSearch', 'deduplicate_only', 'merge_similar', 'rank_results',
]
