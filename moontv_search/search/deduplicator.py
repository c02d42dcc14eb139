"""
================================================================================
MoonTV Search Core - Search Result Deduplicator
================================================================================
Collapses results describing the same title from different sources.

Problem:
  User searches "流浪地球" -> gets the same film from douban, iqiyi, youku...

Identity keys:
  1. ext:<external_id>              - when the result carries a catalog ID
  2. title:<normalized title>|<year> - otherwise
  3. src:<source>|<id>|#<position>   - no ID and no usable title (always unique)

Default mode is a single pass over a dict of key -> best-so-far, keeping
the highest scored member of each key (first seen wins ties).

Coarse mode (merge_similar) also joins results whose title acronyms and
years match. It is opt-in only; the ranking pipeline never uses it.
================================================================================
"""

import logging
from typing import Dict, List, Sequence

from ..models import ScoredResult, SearchResult
from .similarity import normalize_title, title_acronym

logger = logging.getLogger(__name__)


class SearchDeduplicator:
    """
    Deduplicates scored search results by identity key.

    Algorithm:
      1. Compute a primary key per result
      2. Keep one representative per key (highest final score)
      3. Return representatives in first-seen key order
    """

    # Acronyms shorter than this are too ambiguous to merge on
    MIN_ACRONYM_LENGTH = 2

    def primary_key(self, result: SearchResult, position: int = 0) -> str:
        """
        Identity key for a result.

        Examples:
            external_id="12345"                      -> "ext:12345"
            title="测试视频  ", year="2023"           -> "title:测试视频|2023"
            title="", source="a", id="9" (pos 4)     -> "src:a|9|#4"
        """
        external_id = (result.external_id or "").strip()
        if external_id:
            return f"ext:{external_id}"

        title = normalize_title(result.title)
        if title:
            return f"title:{title}|{(result.year or '').strip()}"

        return f"src:{result.source}|{result.id}|#{position}"

    def acronym_key(self, result: SearchResult) -> str:
        """Coarse key from title acronym + year, or "" when not usable."""
        acronym = title_acronym(result.title)
        if len(acronym) < self.MIN_ACRONYM_LENGTH:
            return ""
        return f"acr:{acronym}|{(result.year or '').strip()}"

    def deduplicate(self, scored: Sequence[ScoredResult]) -> List[ScoredResult]:
        """
        Keep the best scored result for every primary key.

        Args:
            scored: Scored results in processing order

        Returns:
            One ScoredResult per key, in first-seen order
        """
        if not scored:
            return []

        best: Dict[str, ScoredResult] = {}
        for item in scored:
            key = self.primary_key(item.result, item.position)
            kept = best.get(key)
            if kept is None:
                best[key] = item
            elif item.final_score > kept.final_score:
                logger.debug(
                    f"Replacing '{kept.result.title}' ({kept.result.source}) with "
                    f"'{item.result.title}' ({item.result.source}) for key {key}"
                )
                best[key] = item

        deduped = list(best.values())
        logger.info(f"Deduplicated {len(scored)} results into {len(deduped)} unique titles")
        return deduped

    def merge_similar(self, results: Sequence[SearchResult]) -> List[SearchResult]:
        """
        Coarse merge: primary key OR (acronym AND year) equality.

        Groups are transitive (union-find over shared keys). The first
        seen member of each group is kept, in input order.
        """
        if not results:
            return []

        parent = list(range(len(results)))

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        def union(a: int, b: int) -> None:
            root_a, root_b = find(a), find(b)
            if root_a != root_b:
                # Lower index stays root so the first seen member wins
                parent[max(root_a, root_b)] = min(root_a, root_b)

        owner: Dict[str, int] = {}
        for i, result in enumerate(results):
            keys = [self.primary_key(result, i)]
            acronym = self.acronym_key(result)
            if acronym:
                keys.append(acronym)
            for key in keys:
                if key in owner:
                    union(owner[key], i)
                else:
                    owner[key] = i

        merged = [result for i, result in enumerate(results) if find(i) == i]
        logger.info(f"Coarse merge reduced {len(results)} results to {len(merged)}")
        return merged
