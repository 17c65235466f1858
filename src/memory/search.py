"""Recall over stored memories: semantic ranking with a keyword fallback."""

from dataclasses import dataclass
from datetime import datetime

import structlog

from .embeddings import EmbeddingProvider, cosine_similarity
from .models import Memory
from .store import MemoryStore

logger = structlog.get_logger()


@dataclass
class SearchResult:
    id: str
    type: str
    content: str
    importance: float
    similarity: float
    created_at: datetime | None = None

    @classmethod
    def from_memory(cls, memory: Memory, similarity: float) -> "SearchResult":
        return cls(
            id=memory.id,
            type=memory.type.value,
            content=memory.content,
            importance=memory.importance,
            similarity=similarity,
            created_at=memory.created_at,
        )


def _word_overlap(words: list[str], content: str) -> float:
    """Fraction of query words contained in the content."""
    if not words:
        return 0.0
    content_lower = content.lower()
    return sum(1 for w in words if w in content_lower) / len(words)


class MemorySearch:
    """Finds memories relevant to a query or conversation context."""

    def __init__(
        self,
        store: MemoryStore,
        embedder: EmbeddingProvider | None = None,
        scan_limit: int = 500,
        min_similarity: float = 0.3,
    ):
        self.store = store
        self.embedder = embedder
        self.scan_limit = scan_limit
        self.min_similarity = min_similarity

    def semantic_search(
        self, query: str, limit: int = 10, min_similarity: float | None = None
    ) -> list[SearchResult]:
        """Rank the most recent memories by similarity to ``query``.

        Memories without an embedding are scored by word overlap instead.
        ``min_similarity`` defaults to the threshold given at construction.
        Ranking weights similarity by importance. Raises if the query
        cannot be embedded.
        """
        if self.embedder is None:
            raise RuntimeError("Semantic search needs an embedding provider")

        if min_similarity is None:
            min_similarity = self.min_similarity

        query_vec = self.embedder.generate(query)
        words = query.lower().split()

        results = []
        for memory in self.store.query_recent(self.scan_limit):
            if memory.embedding:
                similarity = cosine_similarity(query_vec, memory.embedding)
            else:
                similarity = _word_overlap(words, memory.content)

            if similarity >= min_similarity:
                results.append(SearchResult.from_memory(memory, similarity))

        results.sort(key=lambda r: r.similarity * (1 + r.importance / 10), reverse=True)
        return results[:limit]

    def keyword_search(self, query: str, limit: int = 10) -> list[SearchResult]:
        """LIKE lookup on the first significant word, re-ranked by word overlap."""
        words = [w for w in query.split() if len(w) > 2][:5]
        if not words:
            return []

        lowered = [w.lower() for w in words]
        candidates = self.store.keyword_candidates(words[0], limit=limit * 2)
        scored = [
            SearchResult.from_memory(m, _word_overlap(lowered, m.content)) for m in candidates
        ]
        scored.sort(key=lambda r: r.similarity, reverse=True)
        return scored[:limit]

    def get_relevant_memories(
        self, context: str, limit: int = 10, min_similarity: float = 0.25
    ) -> list[SearchResult]:
        """Semantic results, topped up with keyword hits when fewer than three."""
        try:
            results = self.semantic_search(context, limit, min_similarity=min_similarity)
        except Exception as e:
            logger.warning("memory.semantic_search_failed", error=str(e))
            return self.keyword_search(context, limit)

        if len(results) >= 3:
            return results

        seen = {r.id for r in results}
        for hit in self.keyword_search(context, limit):
            if hit.id not in seen:
                results.append(hit)
                seen.add(hit.id)
        return results[:limit]


def format_for_prompt(results: list[SearchResult]) -> str:
    """Render memories as a system-prompt section; empty string when none."""
    if not results:
        return ""
    lines = [f"- [{r.type}] {r.content}" for r in results]
    return "## Your Memories About the User\n" + "\n".join(lines)
