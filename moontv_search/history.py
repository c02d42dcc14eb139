"""
================================================================================
MoonTV Search Core - Search History
================================================================================
Keyword history used by the popularity sub-score.

The ranker only needs the HistoryLookup interface. SearchHistory is the
in-process implementation: a frequency-tracking keyword list, newest
first, with expiry and a size cap.

Usage:
    history = SearchHistory()
    history.add("流浪地球")
    history.recent_queries(10)
    # [{'query': '流浪地球', 'timestamp': 1760000000.0}]
================================================================================
"""

import time
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60


class HistoryLookup(ABC):
    """Anything that can report recent search queries."""

    @abstractmethod
    def recent_queries(self, limit: int) -> List[Dict]:
        """
        Return up to `limit` recent queries, newest first.

        Each item is {"query": str, "timestamp": float (epoch seconds)}.
        """


@dataclass
class HistoryItem:
    keyword: str
    timestamp: float
    frequency: int = 1


class SearchHistory(HistoryLookup):
    """Thread-safe in-memory keyword history."""

    def __init__(
        self,
        max_items: int = 30,
        expire_days: float = 90,
        recent_days: float = 7,
        frequency_threshold: int = 2,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            max_items: Maximum keywords kept (newest win)
            expire_days: Keywords older than this are dropped
            recent_days: Window for the "recent" category
            frequency_threshold: Searches needed to count as "frequent"
            clock: Time source in epoch seconds (default: time.time)
        """
        self.max_items = max_items
        self.expire_days = expire_days
        self.recent_days = recent_days
        self.frequency_threshold = frequency_threshold
        self._clock = clock or time.time
        self._items: List[HistoryItem] = []
        self._lock = threading.Lock()

    def _live_items(self) -> List[HistoryItem]:
        cutoff = self._clock() - self.expire_days * DAY
        return [item for item in self._items if item.timestamp > cutoff]

    def add(self, keyword: str) -> None:
        """Record a search. Repeats move to the front and bump frequency."""
        if not keyword or not keyword.strip():
            return

        trimmed = keyword.strip()
        lowered = trimmed.lower()
        now = self._clock()

        with self._lock:
            items = self._live_items()
            existing = next((i for i in items if i.keyword.lower() == lowered), None)
            if existing:
                items.remove(existing)
                existing.timestamp = now
                existing.frequency += 1
            else:
                existing = HistoryItem(keyword=trimmed, timestamp=now)
            items.insert(0, existing)
            self._items = items[:self.max_items]

        logger.debug(f"History add: '{trimmed}' (frequency={existing.frequency})")

    def remove(self, keyword: str) -> None:
        lowered = (keyword or "").strip().lower()
        with self._lock:
            self._items = [i for i in self._items if i.keyword.lower() != lowered]

    def clear(self) -> None:
        with self._lock:
            self._items = []

    def recent_queries(self, limit: int = 10) -> List[Dict]:
        with self._lock:
            items = self._live_items()[:max(0, limit)]
            return [{'query': i.keyword, 'timestamp': i.timestamp} for i in items]

    def categorized(self) -> Dict[str, List[Dict]]:
        """
        Split history into recent / frequent / old.

        An item is "recent" if searched within `recent_days`, otherwise
        "frequent" if searched at least `frequency_threshold` times,
        otherwise "old".
        """
        recent_cutoff = self._clock() - self.recent_days * DAY
        groups: Dict[str, List[Dict]] = {'recent': [], 'frequent': [], 'old': []}

        with self._lock:
            for item in self._live_items():
                if item.timestamp > recent_cutoff:
                    groups['recent'].append(asdict(item))
                elif item.frequency >= self.frequency_threshold:
                    groups['frequent'].append(asdict(item))
                else:
                    groups['old'].append(asdict(item))

        return groups

    def suggestions(self, limit: int = 5) -> List[str]:
        """Most recent distinct keywords."""
        with self._lock:
            seen: List[str] = []
            for item in self._live_items():
                if item.keyword not in seen:
                    seen.append(item.keyword)
                if len(seen) >= limit:
                    break
            return seen

    def stats(self) -> Dict:
        recent_cutoff = self._clock() - self.recent_days * DAY
        with self._lock:
            items = self._live_items()
            by_frequency = sorted(items, key=lambda i: i.frequency, reverse=True)
            return {
                'total_count': len(items),
                'recent_count': sum(1 for i in items if i.timestamp > recent_cutoff),
                'frequent_count': sum(1 for i in items if i.frequency >= self.frequency_threshold),
                'top_keywords': [i.keyword for i in by_frequency[:10]],
            }
