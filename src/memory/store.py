"""Persistent storage for conversation memories: SQLite with JSON embeddings."""

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

import structlog

from db import wal_connect

from .embeddings import dump_embedding, parse_embedding
from .models import DEFAULT_IMPORTANCE, Memory, MemoryType

logger = structlog.get_logger()


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally (ESCAPE '\\')."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MemoryStore:
    """SQLite persistence for memories. Rows are insert-only from the extraction core."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS memories (
                    id TEXT PRIMARY KEY,
                    type TEXT NOT NULL,
                    content TEXT NOT NULL,
                    source TEXT,
                    embedding TEXT,
                    importance REAL DEFAULT {DEFAULT_IMPORTANCE},
                    metadata TEXT,
                    created_at TIMESTAMP NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_memories_created
                ON memories(created_at)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_memories_type
                ON memories(type)
            """)

    def insert(self, memory: Memory) -> Memory:
        """Insert a memory, assigning an id when it has none."""
        if not memory.id:
            memory.id = uuid.uuid4().hex[:16]

        mem_type = memory.type.value if isinstance(memory.type, MemoryType) else memory.type
        with wal_connect(self.db_path) as conn:
            conn.execute(
                """INSERT INTO memories
                   (id, type, content, source, embedding, importance, metadata, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    memory.id,
                    mem_type,
                    memory.content,
                    memory.source,
                    dump_embedding(memory.embedding),
                    memory.importance,
                    json.dumps(memory.metadata) if memory.metadata else None,
                    memory.created_at.isoformat(),
                ),
            )
        return memory

    def query_recent(self, limit: int = 50) -> list[Memory]:
        """Most recently created memories, newest first."""
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                "SELECT * FROM memories ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
            return [self._row_to_memory(r) for r in rows]

    def get(self, memory_id: str) -> Memory | None:
        with wal_connect(self.db_path, row_factory=True) as conn:
            row = conn.execute("SELECT * FROM memories WHERE id = ?", (memory_id,)).fetchone()
            if row:
                return self._row_to_memory(row)
        return None

    def list_memories(
        self, memory_type: MemoryType | None = None, limit: int = 50
    ) -> list[Memory]:
        """Newest-first listing, optionally filtered by type."""
        sql = "SELECT * FROM memories"
        params: list = []
        if memory_type:
            sql += " WHERE type = ?"
            params.append(
                memory_type.value if isinstance(memory_type, MemoryType) else memory_type
            )
        sql += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_memory(r) for r in rows]

    def keyword_candidates(self, word: str, limit: int = 20) -> list[Memory]:
        """Newest memories whose content contains ``word`` (case-insensitive)."""
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                """SELECT * FROM memories WHERE content LIKE ? ESCAPE '\\'
                   ORDER BY created_at DESC, rowid DESC LIMIT ?""",
                (f"%{escape_like(word)}%", limit),
            ).fetchall()
            return [self._row_to_memory(r) for r in rows]

    def delete(self, memory_id: str) -> bool:
        """Hard-delete one memory. Returns False if it did not exist."""
        with wal_connect(self.db_path) as conn:
            cur = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
            return cur.rowcount > 0

    def get_stats(self) -> dict:
        """Memory counts by type and total."""
        with wal_connect(self.db_path, row_factory=True) as conn:
            rows = conn.execute(
                "SELECT type, COUNT(*) AS cnt FROM memories GROUP BY type"
            ).fetchall()
            by_type = {r["type"]: r["cnt"] for r in rows}
            with_embedding = conn.execute(
                "SELECT COUNT(*) FROM memories WHERE embedding IS NOT NULL"
            ).fetchone()[0]

        return {
            "total": sum(by_type.values()),
            "by_type": by_type,
            "with_embedding": with_embedding,
        }

    def reset(self) -> int:
        """Delete ALL memories. Returns count deleted."""
        with wal_connect(self.db_path) as conn:
            count = conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]
            conn.execute("DELETE FROM memories")
        return count

    @staticmethod
    def _row_to_memory(row: sqlite3.Row) -> Memory:
        d = dict(row)
        created = d.get("created_at") or ""
        metadata = {}
        if d.get("metadata"):
            try:
                metadata = json.loads(d["metadata"])
            except ValueError:
                logger.warning("memory_metadata_invalid", memory_id=d["id"])
        importance = d.get("importance")
        return Memory(
            id=d["id"],
            type=MemoryType(d["type"]),
            content=d["content"],
            source=d.get("source") or "",
            embedding=parse_embedding(d.get("embedding")),
            importance=DEFAULT_IMPORTANCE if importance is None else importance,
            metadata=metadata,
            created_at=datetime.fromisoformat(created) if created else datetime.now(),
        )
