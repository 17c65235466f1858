"""Tests for MemoryStore: insert, recency ordering, listing, search helpers."""

from datetime import datetime

from memory.models import Memory, MemoryType
from memory.store import MemoryStore, escape_like


class TestInsertAndGet:
    def test_insert_assigns_id(self, store):
        m = store.insert(Memory(id="", type=MemoryType.FACT, content="User's name is Alice"))
        assert len(m.id) == 16
        assert store.get(m.id).content == "User's name is Alice"

    def test_round_trips_fields(self, store, make_memory):
        m = make_memory("User dislikes mushrooms", id="x1", embedding=[0.25, -0.5], importance=5)
        m.metadata = {"conversation_id": "c1"}
        store.insert(m)

        got = store.get("x1")
        assert got.type == MemoryType.PREFERENCE
        assert got.embedding == [0.25, -0.5]
        assert got.importance == 5
        assert got.source == "auto-extraction"
        assert got.metadata == {"conversation_id": "c1"}
        assert got.created_at == m.created_at

    def test_missing_embedding_stays_none(self, store, make_memory):
        store.insert(make_memory(id="x1"))
        assert store.get("x1").embedding is None

    def test_get_nonexistent(self, store):
        assert store.get("nope") is None

    def test_reopen_existing_db(self, tmp_path, make_memory):
        MemoryStore(tmp_path / "m.db").insert(make_memory(id="keep"))
        assert MemoryStore(tmp_path / "m.db").get("keep") is not None


class TestQueryRecent:
    def test_newest_first_and_limited(self, store, make_memory):
        for i in range(5):
            store.insert(make_memory(f"memory {i}", id=f"m{i}"))
        recent = store.query_recent(3)
        assert [m.id for m in recent] == ["m4", "m3", "m2"]

    def test_ties_break_by_insertion(self, store, make_memory):
        same = datetime(2025, 6, 1, 9, 0, 0)
        store.insert(make_memory("first", id="a", created_at=same))
        store.insert(make_memory("second", id="b", created_at=same))
        assert [m.id for m in store.query_recent(2)] == ["b", "a"]

    def test_empty(self, store):
        assert store.query_recent(50) == []


class TestListingAndStats:
    def test_list_filtered_by_type(self, store, make_memory):
        store.insert(make_memory("User's name is Alice", type=MemoryType.FACT))
        store.insert(make_memory("User likes jazz", type=MemoryType.PREFERENCE))
        facts = store.list_memories(MemoryType.FACT)
        assert [m.content for m in facts] == ["User's name is Alice"]

    def test_stats(self, store, make_memory):
        store.insert(make_memory("a", type=MemoryType.FACT, embedding=[1.0]))
        store.insert(make_memory("b", type=MemoryType.FACT))
        store.insert(make_memory("c", type=MemoryType.NOTE))
        stats = store.get_stats()
        assert stats["total"] == 3
        assert stats["by_type"] == {"fact": 2, "note": 1}
        assert stats["with_embedding"] == 1

    def test_delete(self, store, make_memory):
        store.insert(make_memory(id="gone"))
        assert store.delete("gone") is True
        assert store.delete("gone") is False
        assert store.get("gone") is None

    def test_reset(self, store, make_memory):
        store.insert(make_memory())
        store.insert(make_memory())
        assert store.reset() == 2
        assert store.query_recent(10) == []


class TestKeywordCandidates:
    def test_case_insensitive_contains(self, store, make_memory):
        store.insert(make_memory("User dislikes Mushrooms", id="m"))
        store.insert(make_memory("User likes jazz", id="j"))
        assert [m.id for m in store.keyword_candidates("mushroom")] == ["m"]

    def test_wildcards_are_literal(self, store, make_memory):
        store.insert(make_memory("User scored 100% on the test", id="pct"))
        store.insert(make_memory("User likes jazz", id="j"))
        assert [m.id for m in store.keyword_candidates("%")] == ["pct"]
        assert store.keyword_candidates("_") == []

    def test_escape_like(self):
        assert escape_like("50%_off") == "50\\%\\_off"
