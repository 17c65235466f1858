"""Conversation memory: heuristic fact extraction with a duplicate gate."""

from .dedup import DuplicateChecker
from .embeddings import EmbeddingError, EmbeddingProvider, cosine_similarity
from .extractor import Extractor, PatternExtractor
from .models import CandidateMemory, DedupVerdict, Memory, MemorySource, MemoryType
from .pipeline import ExtractionPipeline
from .search import MemorySearch, SearchResult
from .store import MemoryStore

__all__ = [
    "CandidateMemory",
    "DedupVerdict",
    "DuplicateChecker",
    "EmbeddingError",
    "EmbeddingProvider",
    "ExtractionPipeline",
    "Extractor",
    "Memory",
    "MemorySearch",
    "MemorySource",
    "MemoryStore",
    "MemoryType",
    "PatternExtractor",
    "SearchResult",
    "cosine_similarity",
]
