"""Pydantic configuration models for chatmem."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_EMBEDDING_METHODS = {"local", "api"}
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class PathsConfig(BaseModel):
    """File paths configuration."""

    db_path: Path = Path("~/chatmem/memory.db")
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db_path = self.db_path.expanduser()
        if self.log_file:
            self.log_file = self.log_file.expanduser()
        return self


class MemoryConfig(BaseModel):
    """Extraction, dedup and recall tuning."""

    enabled: bool = True
    window_size: int = Field(default=50, ge=1)
    lexical_threshold: float = 0.8
    semantic_threshold: float = 0.92
    search_limit: int = Field(default=10, ge=1)
    min_similarity: float = 0.3
    relevant_min_similarity: float = 0.25
    scan_limit: int = Field(default=500, ge=1)

    @field_validator(
        "lexical_threshold", "semantic_threshold", "min_similarity", "relevant_min_similarity"
    )
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"threshold must be 0-1, got {v}")
        return v


class EmbeddingConfig(BaseModel):
    """Embedding provider selection."""

    method: str = "local"
    api_key: Optional[str] = None
    model: Optional[str] = None  # None = provider default
    max_attempts: int = Field(default=3, ge=1)

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        if v not in VALID_EMBEDDING_METHODS:
            raise ValueError(
                f"Invalid embedding method: {v}. Must be one of {VALID_EMBEDDING_METHODS}"
            )
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class ChatmemConfig(BaseModel):
    """Main configuration model."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    embeddings: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in the embedding API key."""
        key = self.embeddings.api_key
        if key and key.startswith("${") and key.endswith("}"):
            self.embeddings.api_key = os.getenv(key[2:-1], "")
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "ChatmemConfig":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
