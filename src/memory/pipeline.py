"""Memory pipeline: orchestrates extract -> dedup -> embed -> store for each chat turn."""

import structlog

from observability import metrics

from .dedup import DuplicateChecker
from .embeddings import EmbeddingProvider
from .extractor import Extractor, PatternExtractor
from .models import CandidateMemory, Memory, MemorySource, MemoryType
from .store import MemoryStore

logger = structlog.get_logger()


class ExtractionPipeline:
    """Turns completed conversation turns into stored memories.

    Safe to call after every turn: it never raises, and a failure on one
    candidate does not stop the others.
    """

    def __init__(
        self,
        store: MemoryStore,
        embedder: EmbeddingProvider | None = None,
        extractor: Extractor | None = None,
        checker: DuplicateChecker | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.extractor = extractor or PatternExtractor()
        self.checker = checker or DuplicateChecker(store, embedder)

    def extract_and_store_memories(
        self, user_message: str, assistant_reply: str, conversation_id: str
    ) -> list[Memory]:
        """Extract candidates from one turn and store the ones that are new.

        Candidates from the same turn are checked against stored memories
        only, not against each other.

        Returns:
            Memories stored by this call (empty on any failure).
        """
        stored: list[Memory] = []
        try:
            with metrics.timer("memory_extraction"):
                candidates = self.extractor.extract(user_message, assistant_reply)
                metrics.counter("memory_candidates", len(candidates))

                duplicates = 0
                for candidate in candidates:
                    verdict = self.checker.check(candidate.content)
                    if verdict.duplicate:
                        duplicates += 1
                        metrics.counter("memory_duplicates")
                        logger.debug(
                            "memory.duplicate_skipped",
                            content=candidate.content,
                            stage=verdict.stage,
                            existing_id=verdict.existing_id,
                        )
                        continue

                    memory = self._store_candidate(
                        candidate, verdict.embedding, conversation_id
                    )
                    if memory:
                        stored.append(memory)
        except Exception as e:
            logger.error(
                "memory.extraction_failed", conversation_id=conversation_id, error=str(e)
            )
            return stored

        if candidates:
            logger.info(
                "memory.extraction_processed",
                conversation_id=conversation_id,
                extracted=len(candidates),
                stored=len(stored),
                duplicates=duplicates,
            )
        return stored

    def _store_candidate(
        self,
        candidate: CandidateMemory,
        embedding: list[float] | None,
        conversation_id: str,
    ) -> Memory | None:
        """Insert one accepted candidate. Returns None if the insert failed."""
        memory = Memory(
            id="",
            type=candidate.type,
            content=candidate.content,
            source=MemorySource.AUTO_EXTRACTION.value,
            embedding=embedding or self._embed(candidate.content),
            importance=candidate.importance,
            metadata={"conversation_id": conversation_id} if conversation_id else {},
        )
        try:
            self.store.insert(memory)
        except Exception as e:
            metrics.counter("memory_store_failures")
            logger.warning("memory.store_failed", content=candidate.content, error=str(e))
            return None

        metrics.counter("memory_stored")
        return memory

    def remember(
        self,
        content: str,
        memory_type: MemoryType = MemoryType.FACT,
        source: str = MemorySource.AGENT.value,
        importance: float | None = None,
    ) -> Memory:
        """Store an explicitly requested memory. No duplicate gate; store errors propagate."""
        content = (content or "").strip()
        if not content:
            raise ValueError("Memory content must not be empty")

        memory = Memory(
            id="",
            type=MemoryType(memory_type),
            content=content,
            source=source,
            embedding=self._embed(content),
        )
        if importance is not None:
            memory.importance = importance
        return self.store.insert(memory)

    def _embed(self, text: str) -> list[float] | None:
        if self.embedder is None:
            return None
        try:
            return self.embedder.generate(text)
        except Exception as e:
            logger.warning("memory.embedding_failed", error=str(e))
            return None
