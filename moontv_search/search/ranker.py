"""
================================================================================
MoonTV Search Core - Ranking Pipeline
================================================================================
Single public entry point for ordering multi-source search results.

Flow:
  1. Score every result against the query (ResultScorer)
  2. Collapse duplicates by identity key (SearchDeduplicator)
  3. Diversity pass - cap any one source at max(3, 30% of results)
  4. Stable sort by final score, highest first

Only the caller's SearchResult objects come back out; scores stay inside.
================================================================================
"""

import math
import time
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..log import debug_log_event
from ..models import RankingWeights, ScoredResult, SearchResult
from .deduplicator import SearchDeduplicator
from .scorer import ResultScorer

logger = logging.getLogger(__name__)


class SearchRanker:
    """Scores, deduplicates and diversifies search results."""

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        history_lookup=None,
        source_scores: Optional[Mapping[str, float]] = None,
        diversity_ratio: float = 0.3,
        min_source_cap: int = 3,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize ranker.

        Args:
            weights: Partial overrides for the five ranking weights
            history_lookup: Optional search history collaborator
            source_scores: Overrides for the provider quality table
            diversity_ratio: Max share of the list one source may take
            min_source_cap: Floor for the per-source cap
            clock: Time source in epoch seconds (default: time.time)

        Raises:
            InvalidInput: Unknown weight name or non-numeric weight
        """
        self.scorer = ResultScorer(
            weights=weights,
            history_lookup=history_lookup,
            source_scores=source_scores,
            clock=clock or time.time,
        )
        self.deduplicator = SearchDeduplicator()
        self.diversity_ratio = diversity_ratio
        self.min_source_cap = min_source_cap

    @property
    def weights(self) -> RankingWeights:
        return self.scorer.weights

    def update_weights(self, **overrides: float) -> RankingWeights:
        """Merge new weight overrides into the current weights."""
        self.scorer.weights = self.scorer.weights.merged(overrides)
        return self.scorer.weights

    def score(self, result: SearchResult, query: str) -> ScoredResult:
        """Score one result (diagnostics; rank() never exposes scores)."""
        return self.scorer.score(result, query, history=self.scorer.load_history())

    def rank(
        self,
        results: Sequence[SearchResult],
        query: str,
        weights: Optional[Mapping[str, float]] = None
    ) -> List[SearchResult]:
        """
        Rank results for a query.

        Args:
            results: Raw results from one or more sources
            query: User query
            weights: Per-call weight overrides (merged over the ranker's)

        Returns:
            Deduplicated, diversified results, best first
        """
        if not results:
            return []

        call_weights = self.scorer.weights.merged(weights)

        scored = self.scorer.score_all(results, query, weights=call_weights)
        deduped = self.deduplicator.deduplicate(scored)
        diversified = self.diversify(deduped)
        ranked = sorted(diversified, key=lambda s: (-s.final_score, s.position))

        debug_log_event({
            'event': 'rank',
            'query': query,
            'input': len(results),
            'deduped': len(deduped),
            'returned': len(ranked),
            'top': [
                {'title': s.result.title, 'source': s.result.source, 'score': round(s.final_score, 2)}
                for s in ranked[:5]
            ],
        })
        logger.info(
            f"Ranked '{query}': {len(results)} in, {len(deduped)} unique, {len(ranked)} out"
        )

        return [s.result for s in ranked]

    def source_cap(self, count: int) -> int:
        return max(self.min_source_cap, math.floor(self.diversity_ratio * count))

    def diversify(self, scored: Sequence[ScoredResult]) -> List[ScoredResult]:
        """
        Limit how many results any one source contributes.

        Primary pass walks the score-sorted list and skips a source once it
        has `cap` items. If that keeps fewer than 2 * cap items, a relaxed
        pass backfills skipped items in score order up to 2 * cap total.
        """
        if not scored:
            return []

        cap = self.source_cap(len(scored))
        ordered = sorted(scored, key=lambda s: (-s.final_score, s.position))

        per_source: Dict[str, int] = defaultdict(int)
        kept: List[ScoredResult] = []
        skipped: List[ScoredResult] = []
        for item in ordered:
            source = item.result.source
            if per_source[source] < cap:
                kept.append(item)
                per_source[source] += 1
            else:
                skipped.append(item)

        target = cap * 2
        for item in skipped:
            if len(kept) >= target:
                break
            kept.append(item)

        if skipped:
            logger.debug(
                f"Diversity cap {cap}: kept {len(kept)} of {len(ordered)} "
                f"({len(ordered) - len(kept)} dropped)"
            )
        return kept

    def deduplicate_only(self, results: Sequence[SearchResult]) -> List[SearchResult]:
        """
        Remove duplicates without scoring; first occurrence wins.

        Every result gets a synthetic score of 0, so the dedup tie-break
        keeps the earliest one and input order is preserved.
        """
        if not results:
            return []
        placeholders = [
            ScoredResult(result=result, position=i, final_score=0.0)
            for i, result in enumerate(results)
        ]
        return [s.result for s in self.deduplicator.deduplicate(placeholders)]

    def merge_similar(self, results: Sequence[SearchResult]) -> List[SearchResult]:
        """Opt-in coarse merge that also matches title acronyms and years."""
        return self.deduplicator.merge_similar(results)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def rank_results(
    results: Sequence[SearchResult],
    query: str,
    weights: Optional[Mapping[str, float]] = None,
    history_lookup=None
) -> List[SearchResult]:
    """Rank with a fresh default ranker."""
    return SearchRanker(weights=weights, history_lookup=history_lookup).rank(results, query)


def deduplicate_only(results: Sequence[SearchResult]) -> List[SearchResult]:
    return SearchRanker().deduplicate_only(results)


def merge_similar(results: Sequence[SearchResult]) -> List[SearchResult]:
    return SearchRanker().merge_similar(results)
