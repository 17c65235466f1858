"""Duplicate detection for candidate memories against the recent-memory window.

Checks run in order, cheapest first, and stop at the first positive:

1. exact: trimmed, case-insensitive equality with a stored memory
2. lexical: Jaccard overlap of lower-cased whitespace tokens
3. semantic: cosine similarity of embeddings, only against memories that
   already carry one, and skipped when the candidate cannot be embedded

Any infrastructure failure (store unreachable, table missing, embedding
provider down) makes the candidate count as new. Storing a duplicate now and
then is preferred over losing a fact.
"""

from dataclasses import dataclass, field

import structlog

from .embeddings import EmbeddingProvider, cosine_similarity
from .models import DedupVerdict, Memory
from .store import MemoryStore

logger = structlog.get_logger()

DEFAULT_WINDOW_SIZE = 50
DEFAULT_LEXICAL_THRESHOLD = 0.8
DEFAULT_SEMANTIC_THRESHOLD = 0.92

_NOT_GENERATED = object()


def jaccard_similarity(a: str, b: str) -> float:
    """|A ∩ B| / |A ∪ B| over lower-cased whitespace tokens."""
    tokens_a = set(a.lower().split())
    tokens_b = set(b.lower().split())
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


@dataclass
class DedupContext:
    """State shared by the checks for one candidate."""

    candidate: str
    window: list[Memory]
    embedder: EmbeddingProvider | None = None
    _embedding: object = field(default=_NOT_GENERATED, repr=False)

    @property
    def normalized(self) -> str:
        return self.candidate.strip().lower()

    def candidate_embedding(self) -> list[float] | None:
        """Embed the candidate once; None if there is no provider or it fails."""
        if self._embedding is _NOT_GENERATED:
            self._embedding = None
            if self.embedder is not None:
                try:
                    self._embedding = self.embedder.generate(self.candidate)
                except Exception as e:
                    logger.warning("dedup_embedding_failed", error=str(e))
        return self._embedding

    @property
    def generated_embedding(self) -> list[float] | None:
        if self._embedding is _NOT_GENERATED:
            return None
        return self._embedding


class ExactMatchCheck:
    name = "exact"

    def __call__(self, ctx: DedupContext) -> DedupVerdict | None:
        target = ctx.normalized
        for memory in ctx.window:
            if memory.content.strip().lower() == target:
                return DedupVerdict(True, self.name, memory.id, 1.0)
        return None


class LexicalOverlapCheck:
    name = "lexical"

    def __init__(self, threshold: float = DEFAULT_LEXICAL_THRESHOLD):
        self.threshold = threshold

    def __call__(self, ctx: DedupContext) -> DedupVerdict | None:
        for memory in ctx.window:
            score = jaccard_similarity(ctx.candidate, memory.content)
            if score > self.threshold:
                return DedupVerdict(True, self.name, memory.id, score)
        return None


class SemanticOverlapCheck:
    name = "semantic"

    def __init__(self, threshold: float = DEFAULT_SEMANTIC_THRESHOLD):
        self.threshold = threshold

    def __call__(self, ctx: DedupContext) -> DedupVerdict | None:
        embedded = [m for m in ctx.window if m.embedding]
        if not embedded:
            return None

        vector = ctx.candidate_embedding()
        if vector is None:
            return None

        for memory in embedded:
            score = cosine_similarity(vector, memory.embedding)
            if score > self.threshold:
                return DedupVerdict(True, self.name, memory.id, score)
        return None


class DuplicateChecker:
    """Decides whether a candidate memory repeats a recently stored one."""

    def __init__(
        self,
        store: MemoryStore,
        embedder: EmbeddingProvider | None = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
        lexical_threshold: float = DEFAULT_LEXICAL_THRESHOLD,
        semantic_threshold: float = DEFAULT_SEMANTIC_THRESHOLD,
        checks: list | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.window_size = window_size
        self.checks = checks if checks is not None else [
            ExactMatchCheck(),
            LexicalOverlapCheck(lexical_threshold),
            SemanticOverlapCheck(semantic_threshold),
        ]

    def is_duplicate(self, candidate: str) -> bool:
        return self.check(candidate).duplicate

    def check(self, candidate: str) -> DedupVerdict:
        """Run the checks against a fresh recency window. Never raises."""
        try:
            window = self.store.query_recent(self.window_size)
        except Exception as e:
            logger.warning("dedup_window_unavailable", error=str(e))
            return DedupVerdict(False)

        ctx = DedupContext(candidate=candidate, window=window, embedder=self.embedder)
        for check in self.checks:
            try:
                verdict = check(ctx)
            except Exception as e:
                logger.warning("dedup_check_failed", check=check.name, error=str(e))
                return DedupVerdict(False, embedding=ctx.generated_embedding)
            if verdict is not None:
                verdict.embedding = ctx.generated_embedding
                return verdict

        return DedupVerdict(False, embedding=ctx.generated_embedding)
