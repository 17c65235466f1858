"""Data models for conversation memories."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

# Schema default for rows created without an explicit importance
DEFAULT_IMPORTANCE = 0.5


class MemoryType(str, Enum):
    FACT = "fact"
    PREFERENCE = "preference"
    PATTERN = "pattern"
    NOTE = "note"
    ENTITY = "entity"


class MemorySource(str, Enum):
    AUTO_EXTRACTION = "auto-extraction"
    AGENT = "agent"
    MANUAL = "manual"


@dataclass(frozen=True)
class CandidateMemory:
    """Extractor output, not yet persisted. Importance is on a 0-10 scale."""

    type: MemoryType
    content: str
    importance: float


@dataclass
class Memory:
    id: str
    type: MemoryType
    content: str
    source: str = MemorySource.AUTO_EXTRACTION.value
    embedding: list[float] | None = None
    importance: float = DEFAULT_IMPORTANCE
    metadata: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class DedupVerdict:
    """Outcome of a duplicate check for one candidate."""

    duplicate: bool
    stage: str | None = None  # exact | lexical | semantic
    existing_id: str | None = None
    score: float = 0.0
    embedding: list[float] | None = None
