"""
================================================================================
MoonTV Search Core - Smart Search Coordinator
================================================================================
Glues cache, ranker and history together for callers (route handlers,
background jobs).

Flow:
  1. Return cached results for the query if present
  2. Otherwise pull raw results through the caller's fetch callables
  3. Rank (score -> dedup -> diversity -> sort)
  4. Cache the ranked list and record the query in history and trending

Fetching itself is the caller's job; this module never touches the network.
================================================================================
"""

import time
import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..config import SearchCoreConfig
from ..history import SearchHistory
from ..models import SearchResult
from ..storage import storage_from_config
from ..trending import TrendingSearch
from .cache import ResultCache
from .ranker import SearchRanker

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Sequence[SearchResult]]


class SmartSearch:
    """Cached, ranked search over caller-provided result fetchers."""

    def __init__(
        self,
        ranker: Optional[SearchRanker] = None,
        cache: Optional[ResultCache] = None,
        history: Optional[SearchHistory] = None,
        trending: Optional[TrendingSearch] = None,
        config: Optional[SearchCoreConfig] = None
    ):
        """
        Args:
            ranker: Ranker to use (default: built from config, with `history`
                as its popularity lookup)
            cache: Result cache (default: built from config)
            history: Search history (default: new SearchHistory)
            trending: Trending keyword counters (default: new TrendingSearch)
            config: Settings for any component not passed in
        """
        self.config = config or SearchCoreConfig()
        self.history = history if history is not None else SearchHistory(
            max_items=self.config.history_max_items
        )
        self.trending = trending if trending is not None else TrendingSearch(
            max_items=self.config.trending_max_items,
            window_days=self.config.trending_window_days,
        )
        self.ranker = ranker or SearchRanker(
            history_lookup=self.history,
            diversity_ratio=self.config.diversity_ratio,
            min_source_cap=self.config.min_source_cap,
        )
        self.cache = cache if cache is not None else ResultCache(
            ttl=self.config.cache_ttl,
            max_items=self.config.cache_max_items,
            sweep_interval=self.config.cache_sweep_interval,
            storage=storage_from_config(self.config),
        )

    def search(
        self,
        query: str,
        fetch: Fetcher,
        limit: Optional[int] = None,
        category: Optional[str] = None
    ) -> List[SearchResult]:
        """
        Ranked search for a single fetcher.

        Args:
            query: Search query
            fetch: Callable returning raw results for the query
            limit: Maximum results to return (None = all)
            category: Trending category to count the query under

        Returns:
            Ranked results (possibly empty)
        """
        return self.search_many(query, {'default': fetch}, limit=limit, category=category)

    def search_many(
        self,
        query: str,
        fetchers: Mapping[str, Fetcher],
        limit: Optional[int] = None,
        category: Optional[str] = None
    ) -> List[SearchResult]:
        """
        Ranked search merging several fetchers (one per source).

        A failing fetcher is logged and contributes nothing. Every
        non-blank query counts towards trending, cached or not.
        """
        if not query or not query.strip():
            return []

        self.trending.record(query, category)

        start_time = time.time()

        # CHECK CACHE FIRST
        cached = self.cache.get(query)
        if cached is not None:
            logger.info(
                f"Cache HIT for query '{query}' ({len(cached)} results, "
                f"took {time.time() - start_time:.3f}s)"
            )
            return cached[:limit] if limit is not None else cached

        logger.info(f"Cache MISS - smart search for '{query}' across {len(fetchers)} fetchers")

        raw_results = self._collect(query, fetchers)
        logger.info(f"Got {len(raw_results)} raw results")

        ranked = self.ranker.rank(raw_results, query)

        self.cache.set(query, ranked)
        self.history.add(query)

        logger.info(f"Smart search completed in {time.time() - start_time:.2f}s")
        return ranked[:limit] if limit is not None else ranked

    def _collect(self, query: str, fetchers: Mapping[str, Fetcher]) -> List[SearchResult]:
        all_results: List[SearchResult] = []
        for name, fetch in fetchers.items():
            try:
                results = fetch(query)
            except Exception as e:
                logger.error(f"Fetch failed for {name}: {e}")
                continue
            if results:
                all_results.extend(
                    r if isinstance(r, SearchResult) else SearchResult.from_dict(r)
                    for r in results
                )
        return all_results

    def suggestions(self, limit: int = 10) -> List[str]:
        """Recent history keywords first, then trending ones, without repeats."""
        merged: List[str] = []
        seen = set()
        for keyword in self.history.suggestions(limit) + self.trending.keywords(limit):
            if keyword.lower() not in seen:
                seen.add(keyword.lower())
                merged.append(keyword)
        return merged[:limit]

    def stats(self) -> Dict:
        return {
            'cache': self.cache.stats(),
            'history': self.history.stats(),
            'trending': self.trending.stats(),
            'weights': self.ranker.weights.to_dict(),
        }
