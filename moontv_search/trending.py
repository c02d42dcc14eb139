"""
================================================================================
MoonTV Search Core - Trending Searches
================================================================================
Per-category keyword counters over a sliding time window.

  - Keywords are trimmed and lowercased before counting
  - Each category keeps at most `max_items` keywords, ordered by count,
    then by most recent search
  - Keywords not searched within `window_days` drop out
  - top() without a category merges counts across categories

Usage:
    trending = TrendingSearch()
    trending.record("流浪地球", "电影")
    trending.top(limit=10)
    # [{'keyword': '流浪地球', 'count': 1, 'last_searched': ..., 'category': '电影'}]
================================================================================
"""

import time
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60


@dataclass
class TrendingItem:
    keyword: str
    count: int
    last_searched: float
    category: str


def _rank_key(item: TrendingItem):
    return (-item.count, -item.last_searched)


class TrendingSearch:
    """Thread-safe trending keyword counters, grouped by category."""

    DEFAULT_CATEGORY = '其他'

    def __init__(
        self,
        max_items: int = 50,
        window_days: float = 7,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            max_items: Keywords kept per category
            window_days: Keywords not searched for this long are dropped
            clock: Time source in epoch seconds (default: time.time)
        """
        self.max_items = max_items
        self.window_days = window_days
        self._clock = clock or time.time
        self._categories: Dict[str, List[TrendingItem]] = {}
        self._last_update = 0.0
        self._lock = threading.Lock()

    def _cutoff(self) -> float:
        return self._clock() - self.window_days * DAY

    def _trim(self, items: List[TrendingItem], cutoff: float) -> List[TrendingItem]:
        live = sorted((i for i in items if i.last_searched > cutoff), key=_rank_key)
        return live[:self.max_items]

    # =========================================================================
    # RECORDING
    # =========================================================================

    def record(self, keyword: str, category: Optional[str] = None) -> None:
        """Count one search for `keyword` in `category` (default: 其他)."""
        if not keyword or not keyword.strip():
            return

        normalized = keyword.strip().lower()
        category = (category or "").strip() or self.DEFAULT_CATEGORY
        now = self._clock()

        with self._lock:
            items = self._categories.setdefault(category, [])
            existing = next((i for i in items if i.keyword == normalized), None)
            if existing:
                existing.count += 1
                existing.last_searched = now
            else:
                items.append(TrendingItem(normalized, 1, now, category))
            self._categories[category] = self._trim(items, now - self.window_days * DAY)
            self._last_update = now

        logger.debug(f"Trending record: '{normalized}' in {category}")

    def cleanup(self) -> int:
        """
        Drop keywords outside the window and enforce the per-category cap.

        Returns the number of keywords removed.
        """
        cutoff = self._cutoff()
        removed = 0
        with self._lock:
            for category in list(self._categories):
                items = self._categories[category]
                kept = self._trim(items, cutoff)
                removed += len(items) - len(kept)
                if kept:
                    self._categories[category] = kept
                else:
                    del self._categories[category]
            self._last_update = self._clock()

        if removed:
            logger.info(f"Trending cleanup: {removed} keywords removed")
        return removed

    def clear(self) -> None:
        with self._lock:
            self._categories = {}
            self._last_update = 0.0

    # =========================================================================
    # QUERYING
    # =========================================================================

    def top(self, category: Optional[str] = None, limit: int = 10) -> List[Dict]:
        """
        Most searched keywords.

        With a category, that category's ranking. Without one, counts for
        the same keyword are summed across categories; the merged item
        keeps the category it was first seen in and its latest search time.
        """
        cutoff = self._cutoff()
        limit = max(0, limit)

        with self._lock:
            if category:
                items = self._categories.get(category, [])
                return [asdict(i) for i in self._trim(items, cutoff)[:limit]]

            merged: Dict[str, TrendingItem] = {}
            for items in self._categories.values():
                for item in items:
                    if item.last_searched <= cutoff:
                        continue
                    existing = merged.get(item.keyword)
                    if existing is None:
                        merged[item.keyword] = TrendingItem(**asdict(item))
                    else:
                        existing.count += item.count
                        existing.last_searched = max(existing.last_searched, item.last_searched)

        ranked = sorted(merged.values(), key=_rank_key)
        return [asdict(i) for i in ranked[:limit]]

    def keywords(self, limit: int = 10) -> List[str]:
        """Trending keywords only, for search suggestions."""
        return [item['keyword'] for item in self.top(limit=limit)]

    # =========================================================================
    # BACKUP
    # =========================================================================

    def export_data(self) -> Dict[str, Any]:
        """JSON-shaped snapshot that import_data() accepts."""
        with self._lock:
            return {
                'categories': {
                    name: [asdict(i) for i in items]
                    for name, items in self._categories.items()
                },
                'last_update': self._last_update,
                'max_items': self.max_items,
                'window_days': self.window_days,
            }

    def import_data(self, data: Mapping) -> int:
        """
        Replace all counters with an exported snapshot.

        Malformed items are skipped with a warning. Returns the number of
        keywords imported.
        """
        categories = data.get('categories') if isinstance(data, Mapping) else None
        if not isinstance(categories, Mapping):
            logger.warning("Trending import ignored: no 'categories' mapping")
            return 0

        cutoff = self._cutoff()
        restored: Dict[str, List[TrendingItem]] = {}
        for name, items in categories.items():
            if not isinstance(items, list):
                logger.warning(f"Skipping trending category {name}: expected a list")
                continue
            parsed = []
            for raw in items:
                try:
                    parsed.append(TrendingItem(
                        keyword=str(raw['keyword']).strip().lower(),
                        count=int(raw['count']),
                        last_searched=float(raw['last_searched']),
                        category=str(name),
                    ))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping malformed trending item in {name}: {e}")
            kept = self._trim(parsed, cutoff)
            if kept:
                restored[str(name)] = kept

        try:
            last_update = float(data.get('last_update') or 0)
        except (TypeError, ValueError):
            last_update = 0.0

        with self._lock:
            self._categories = restored
            self._last_update = last_update

        count = sum(len(items) for items in restored.values())
        logger.info(f"Imported {count} trending keywords")
        return count

    def stats(self) -> Dict[str, Any]:
        cutoff = self._cutoff()
        with self._lock:
            per_category = {
                name: sum(1 for i in items if i.last_searched > cutoff)
                for name, items in self._categories.items()
            }
            return {
                'categories': per_category,
                'total_keywords': sum(per_category.values()),
                'last_update': self._last_update,
            }
