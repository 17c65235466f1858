"""Shared test fixtures for chatmem."""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from memory.embeddings import EmbeddingProvider  # noqa: E402
from memory.models import Memory, MemoryType  # noqa: E402
from memory.store import MemoryStore  # noqa: E402
from observability import metrics  # noqa: E402


class FakeEmbedder(EmbeddingProvider):
    """Same text -> same one-hot vector; different texts -> orthogonal vectors."""

    provider_name = "fake"

    def __init__(self, dim: int = 16):
        self.dim = dim
        self._slots: dict[str, int] = {}

    def generate(self, text: str) -> list[float]:
        slot = self._slots.setdefault(text, len(self._slots) % self.dim)
        return [1.0 if i == slot else 0.0 for i in range(self.dim)]


@pytest.fixture
def store(tmp_path):
    """MemoryStore backed by a throwaway SQLite file."""
    return MemoryStore(tmp_path / "memory.db")


@pytest.fixture
def embedder():
    """Mock wrapping FakeEmbedder; set generate.return_value/side_effect to override."""
    return MagicMock(wraps=FakeEmbedder())


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def make_memory():
    """Factory for Memory rows with increasing created_at."""
    base = datetime(2025, 1, 1, 12, 0, 0)
    counter = {"n": 0}

    def _make(
        content="User likes tea",
        id=None,
        type=MemoryType.PREFERENCE,
        embedding=None,
        importance=5,
        source="auto-extraction",
        created_at=None,
    ):
        counter["n"] += 1
        return Memory(
            id=id or f"m{counter['n']}",
            type=type,
            content=content,
            source=source,
            embedding=embedding,
            importance=importance,
            created_at=created_at or base + timedelta(minutes=counter["n"]),
        )

    return _make
