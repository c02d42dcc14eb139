"""
================================================================================
MoonTV Search Core - Result Scorer
================================================================================
Scores one search result against a query on five independent axes and
combines them into a single ranking score.

Sub-scores (each 0-100):
  - title       - exact / substring / edit-distance match against the query
  - year        - closeness to a year mentioned in the query
  - source      - static quality tier of the provider
  - popularity  - overlap with recent search history (or a heuristic)
  - recency     - how new the title is

Combined score:
  title*0.35 + year*0.15 + source*0.20 + popularity*0.15 + recency*0.10

The default weights sum to 0.95, so the best possible default score is 95.
Weights are never renormalized: overrides summing past 1.0 give scores
above 100, and only relative order is guaranteed in that case.
================================================================================
"""

import re
import math
import time
import logging
from collections.abc import Mapping as MappingABC
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..errors import CollaboratorUnavailable
from ..models import RankingWeights, ScoredResult, SearchResult
from .similarity import normalize_for_match, similarity

logger = logging.getLogger(__name__)

_YEAR = re.compile(r'(?<!\d)(\d{4})(?!\d)')

DAY = 24 * 60 * 60


def parse_year(text: Optional[str]) -> Optional[int]:
    """First standalone four-digit number in `text`, or None."""
    if not text:
        return None
    match = _YEAR.search(str(text))
    return int(match.group(1)) if match else None


class ResultScorer:
    """
    Computes sub-scores and the combined score for search results.

    The optional history lookup is any object with
    `recent_queries(limit) -> [{"query": str, "timestamp": float}]`.
    If it is missing or fails, popularity falls back to a heuristic.
    """

    # Provider quality tiers: curated catalogs > big platforms > the rest
    SOURCE_QUALITY = {
        'douban': 95,
        'imdb': 90,
        'tmdb': 85,
        'mgtv': 80,
        'iqiyi': 75,
        'tencent': 75,
        'youku': 70,
        'bilibili': 70,
        'pptv': 60,
        'sohu': 60,
    }
    DEFAULT_SOURCE_SCORE = 50

    # Title markers for the heuristic popularity score
    TRENDING_MARKERS = ('热门', '最新', '推荐', 'popular', 'latest', 'recommended', 'trending')
    ACCLAIMED_MARKERS = ('经典', '高分', '获奖', 'classic', 'award-winning', 'acclaimed')

    HISTORY_LIMIT = 100
    HISTORY_RECENT_DAYS = 7

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        history_lookup=None,
        source_scores: Optional[Mapping[str, float]] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            weights: Partial weight overrides merged over the defaults
            history_lookup: Optional search-history collaborator
            source_scores: Extra or replacement provider quality tiers
            clock: Time source in epoch seconds (default: time.time)

        Raises:
            InvalidInput: Unknown weight name or non-numeric weight
        """
        self.weights = RankingWeights().merged(weights)
        self.history_lookup = history_lookup
        self.source_quality: Dict[str, float] = dict(self.SOURCE_QUALITY)
        if source_scores:
            self.source_quality.update({k.lower(): v for k, v in source_scores.items()})
        self._clock = clock or time.time

    def current_year(self) -> int:
        return time.localtime(self._clock()).tm_year

    # =========================================================================
    # SUB-SCORES
    # =========================================================================

    def title_score(self, title: str, query: str) -> float:
        """
        Score how well `title` matches `query`.

        Examples:
            title_score("流浪地球", "流浪地球")   -> 100
            title_score("流浪地球2", "流浪地球")  -> 80 + 12 + 5 = 97
            title_score("Naruto", "Boruto")     -> floor(60 * 0.667) = 40
        """
        normalized_title = normalize_for_match(title)
        normalized_query = normalize_for_match(query)
        if not normalized_title or not normalized_query:
            return 0

        if normalized_title == normalized_query:
            return 100

        position = normalized_title.find(normalized_query)
        if position >= 0:
            ratio = len(normalized_query) / len(normalized_title)
            position_bonus = max(0.0, 1 - position / len(normalized_title))
            return 80 + math.floor(ratio * 15) + math.floor(position_bonus * 5)

        return math.floor(similarity(normalized_title, normalized_query) * 60)

    def year_score(self, year: str, query: str, current_year: Optional[int] = None) -> float:
        result_year = parse_year(year)
        if result_year is None or not (query or "").strip():
            return 50

        if current_year is None:
            current_year = self.current_year()
        latest = current_year + 2

        query_year = next(
            (y for y in (int(m) for m in _YEAR.findall(query)) if 1900 <= y <= latest),
            None
        )
        if query_year is not None:
            diff = abs(result_year - query_year)
            if diff == 0:
                return 100
            if diff == 1:
                return 90
            if diff <= 2:
                return 80
            if diff <= 5:
                return 60
            return 30

        if 1990 <= result_year <= latest:
            return 70
        return 30

    def source_score(self, source: str) -> float:
        return self.source_quality.get((source or "").lower(), self.DEFAULT_SOURCE_SCORE)

    def popularity_score(self, result: SearchResult, history: Optional[Sequence[Dict]] = None) -> float:
        """
        Popularity from search history, or a heuristic when history is None.

        With history, every past query that overlaps the title adds 10
        points (5 if older than HISTORY_RECENT_DAYS) to a base of 50.
        """
        if history is None:
            return self.heuristic_popularity(result)

        title = normalize_for_match(result.title)
        if not title:
            return 50

        now = self._clock()
        weighted_hits = 0.0
        for item in history:
            past_query = normalize_for_match(str(item.get('query') or ''))
            if not past_query:
                continue
            if past_query in title or title in past_query:
                weighted_hits += self._recency_weight(item.get('timestamp'), now)

        return _clamp(50 + weighted_hits * 10)

    def _recency_weight(self, timestamp, now: float) -> float:
        try:
            ts = float(timestamp)
        except (TypeError, ValueError):
            return 0.5
        if ts > 1e11:  # epoch milliseconds
            ts /= 1000.0
        return 1.0 if now - ts <= self.HISTORY_RECENT_DAYS * DAY else 0.5

    def heuristic_popularity(self, result: SearchResult) -> float:
        score = 50 + self.source_score(result.source) * 0.3

        title = (result.title or "").lower()
        if title:
            if any(marker in title for marker in self.TRENDING_MARKERS):
                score += 10
            if any(marker in title for marker in self.ACCLAIMED_MARKERS):
                score += 15

        return _clamp(score)

    def recency_score(self, year: str, current_year: Optional[int] = None) -> float:
        result_year = parse_year(year)
        if result_year is None:
            return 10

        if current_year is None:
            current_year = self.current_year()
        age = current_year - result_year

        if age <= 1:
            return 100
        if age <= 3:
            return 85
        if age <= 5:
            return 70
        if age <= 10:
            return 50
        if age <= 20:
            return 30
        return 10

    # =========================================================================
    # HISTORY
    # =========================================================================

    def load_history(self) -> Optional[List[Dict]]:
        """
        Fetch recent queries from the history collaborator.

        Returns None (use the heuristic) when there is no collaborator or
        it fails; the failure is logged and never propagated.
        """
        if self.history_lookup is None:
            return None

        try:
            return self._fetch_history()
        except CollaboratorUnavailable as e:
            logger.warning(f"Popularity falling back to heuristic: {e}")
            return None

    def _fetch_history(self) -> List[Dict]:
        try:
            history = self.history_lookup.recent_queries(self.HISTORY_LIMIT)
        except Exception as e:
            raise CollaboratorUnavailable('history_lookup', str(e)) from e

        if history is None or isinstance(history, (str, bytes)):
            raise CollaboratorUnavailable('history_lookup', f"unexpected payload {history!r}")
        try:
            return [item for item in history if isinstance(item, MappingABC)]
        except TypeError as e:
            raise CollaboratorUnavailable('history_lookup', str(e)) from e

    # =========================================================================
    # COMBINED
    # =========================================================================

    def combine(self, scored: ScoredResult, weights: Optional[RankingWeights] = None) -> float:
        w = weights or self.weights
        return (
            scored.title_score * w.title +
            scored.year_score * w.year +
            scored.source_score * w.source +
            scored.popularity_score * w.popularity +
            scored.recency_score * w.recency
        )

    def score(
        self,
        result: SearchResult,
        query: str,
        position: int = 0,
        history: Optional[Sequence[Dict]] = None,
        weights: Optional[RankingWeights] = None,
        current_year: Optional[int] = None
    ) -> ScoredResult:
        """Score a single result. `history` is the pre-fetched lookup output."""
        if current_year is None:
            current_year = self.current_year()

        scored = ScoredResult(
            result=result,
            position=position,
            title_score=self.title_score(result.title, query),
            year_score=self.year_score(result.year, query, current_year),
            source_score=self.source_score(result.source),
            popularity_score=self.popularity_score(result, history),
            recency_score=self.recency_score(result.year, current_year),
        )
        scored.final_score = self.combine(scored, weights)
        return scored

    def score_all(
        self,
        results: Sequence[SearchResult],
        query: str,
        weights: Optional[RankingWeights] = None
    ) -> List[ScoredResult]:
        """Score every result; history is fetched once for the batch."""
        history = self.load_history()
        current_year = self.current_year()
        return [
            self.score(result, query, position=i, history=history,
                       weights=weights, current_year=current_year)
            for i, result in enumerate(results)
        ]


def _clamp(score: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, score))
