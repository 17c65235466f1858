"""Embedding providers and vector helpers for memory deduplication and recall."""

import json
from abc import ABC, abstractmethod

import numpy as np
import structlog

logger = structlog.get_logger()

# Same sentence model ChromaDB ships as its default embedding function
DEFAULT_LOCAL_MODEL = "all-MiniLM-L6-v2"
DEFAULT_API_MODEL = "text-embedding-3-small"
VALID_METHODS = {"local", "api"}


class EmbeddingError(Exception):
    """Embedding generation failed."""


class EmbeddingProvider(ABC):
    """Turns text into a fixed-length vector."""

    provider_name: str = "base"

    @abstractmethod
    def generate(self, text: str) -> list[float]:
        """Return the embedding for ``text``. Raises EmbeddingError on failure."""


class LocalEmbeddingProvider(EmbeddingProvider):
    """ONNX MiniLM via ChromaDB's bundled default embedding function."""

    provider_name = "local"

    def __init__(self, embedding_function=None):
        self._fn = embedding_function

    def _get_function(self):
        if self._fn is None:
            try:
                from chromadb.utils import embedding_functions
            except ImportError as e:
                raise EmbeddingError("chromadb package not installed") from e
            self._fn = embedding_functions.DefaultEmbeddingFunction()
        return self._fn

    def generate(self, text: str) -> list[float]:
        fn = self._get_function()
        try:
            vectors = fn([text])
        except Exception as e:
            raise EmbeddingError(f"Local embedding failed: {e}") from e
        if vectors is None or len(vectors) == 0:
            raise EmbeddingError("Local embedding returned no vectors")
        return [float(x) for x in vectors[0]]


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embeddings endpoint, retried with backoff."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client=None,
        max_attempts: int = 3,
    ):
        self.model = model or DEFAULT_API_MODEL

        if client is None:
            try:
                from openai import OpenAI
            except ImportError:
                raise EmbeddingError(
                    "openai package not installed. Run: pip install 'chatmem[openai]'"
                )
            client = OpenAI(api_key=api_key)
        self.client = client

        from cli.retry import api_retry

        self._request = api_retry(max_attempts=max_attempts)(self._create)

    def _create(self, text: str):
        return self.client.embeddings.create(model=self.model, input=text)

    def generate(self, text: str) -> list[float]:
        try:
            response = self._request(text)
            return [float(x) for x in response.data[0].embedding]
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"OpenAI embedding failed: {e}") from e


def create_embedding_provider(config: dict | None = None) -> EmbeddingProvider:
    """Build a provider from the ``embeddings`` config section.

    ``method: api`` needs an API key; without one it falls back to local.
    """
    cfg = config or {}
    method = cfg.get("method", "local")
    if method not in VALID_METHODS:
        raise ValueError(f"Invalid embedding method: {method}. Must be one of {VALID_METHODS}")

    if method == "api":
        api_key = cfg.get("api_key")
        if api_key:
            return OpenAIEmbeddingProvider(
                api_key=api_key,
                model=cfg.get("model"),
                max_attempts=cfg.get("max_attempts", 3),
            )
        logger.warning("embedding_api_key_missing", fallback="local")

    return LocalEmbeddingProvider()


def cosine_similarity(a, b) -> float:
    """Cosine similarity in [-1, 1]; 0.0 for mismatched lengths or zero vectors."""
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape or va.size == 0:
        return 0.0
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def dump_embedding(vector: list[float] | None) -> str | None:
    """Serialize a vector for the ``embedding`` TEXT column."""
    if vector is None:
        return None
    return json.dumps([float(x) for x in vector])


def parse_embedding(raw: str | None) -> list[float] | None:
    """Inverse of dump_embedding. Malformed values yield None."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("embedding_parse_failed", raw=str(raw)[:60])
        return None
    if not isinstance(data, list):
        return None
    try:
        return [float(x) for x in data]
    except (TypeError, ValueError):
        return None
