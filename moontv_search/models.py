"""
================================================================================
MoonTV Search Core - Data Models
================================================================================
Plain data passed between the ranking pipeline and its callers.

  - SearchResult   - one candidate title from a single content source
  - ScoredResult   - a SearchResult plus its sub-scores (never returned)
  - RankingWeights - weights for combining the five sub-scores
  - CacheEntry     - one memoized result list in the ResultCache
================================================================================
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidInput


# =============================================================================
# SEARCH RESULTS
# =============================================================================

@dataclass(frozen=True)
class SearchResult:
    """
    Standardized search result that works across ALL sources.

    The core never mutates these; rank() hands back the very objects
    it was given.
    """
    title: str = ""                  # Display title
    year: str = ""                   # Four-digit year as text, may be blank
    source: str = ""                 # Source identifier ("douban", "iqiyi", ...)
    external_id: str = ""            # Cross-provider ID, "" means absent
    id: str = ""                     # Source-local ID
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "title": self.title,
            "year": self.year,
            "source": self.source,
            "external_id": self.external_id,
            "id": self.id,
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SearchResult":
        """
        Build a result from a loosely shaped dict.

        Accepts `external_id`, `externalId` or `douban_id` for the
        cross-provider identifier. Numbers are coerced to text and
        None becomes "".
        """
        external_id = data.get("external_id")
        if external_id in (None, ""):
            external_id = data.get("externalId")
        if external_id in (None, ""):
            external_id = data.get("douban_id")

        known = {"title", "year", "source", "external_id", "externalId",
                 "douban_id", "id", "extra"}
        extra = dict(data.get("extra") or {})
        for key, value in data.items():
            if key not in known:
                extra[key] = value

        return cls(
            title=_text(data.get("title")),
            year=_text(data.get("year")),
            source=_text(data.get("source")),
            external_id=_text(external_id),
            id=_text(data.get("id")),
            extra=extra,
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class ScoredResult:
    """A result with its sub-scores. Lives only inside one ranking call."""
    result: SearchResult
    position: int = 0
    title_score: float = 0.0
    year_score: float = 0.0
    source_score: float = 0.0
    popularity_score: float = 0.0
    recency_score: float = 0.0
    final_score: float = 0.0


# =============================================================================
# RANKING WEIGHTS
# =============================================================================

@dataclass(frozen=True)
class RankingWeights:
    """
    Weights for the combined ranking score.

    NOTE: weights are never renormalized. The defaults sum to 0.95, so a
    result perfect on every axis scores 95. Overrides that sum past 1.0
    push scores above 100; relative order is still meaningful.
    """
    title: float = 0.35
    year: float = 0.15
    source: float = 0.20
    popularity: float = 0.15
    recency: float = 0.10

    def merged(self, overrides: Optional[Mapping[str, Any]] = None) -> "RankingWeights":
        """
        Return a copy with `overrides` merged over these weights.

        Raises:
            InvalidInput: Unknown weight name or non-numeric value
        """
        if not overrides:
            return self

        names = {f.name for f in fields(self)}
        values = asdict(self)
        for name, value in overrides.items():
            # Accept the camelCase names used by JS callers ("titleWeight")
            key = name[:-len("Weight")] if name.endswith("Weight") else name
            if key not in names:
                raise InvalidInput(f"Unknown ranking weight: {name!r}")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInput(f"Ranking weight {name!r} must be a number, got {value!r}")
            values[key] = float(value)
        return RankingWeights(**values)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


# =============================================================================
# CACHE
# =============================================================================

@dataclass
class CacheEntry:
    """One memoized query in the ResultCache."""
    query: str
    results: List[SearchResult]
    created_at: float
    size_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "created_at": self.created_at,
            "size_bytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheEntry":
        return cls(
            query=str(data["query"]),
            results=[SearchResult.from_dict(r) for r in data["results"]],
            created_at=float(data["created_at"]),
            size_bytes=int(data.get("size_bytes", 0)),
        )
