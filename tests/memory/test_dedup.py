"""Tests for DuplicateChecker stages and fail-open behaviour."""

import math
import sqlite3
from unittest.mock import MagicMock

import pytest

from memory.dedup import (
    DedupContext,
    DuplicateChecker,
    ExactMatchCheck,
    LexicalOverlapCheck,
    SemanticOverlapCheck,
    jaccard_similarity,
)
from memory.embeddings import EmbeddingError


def _unit(cos: float) -> list[float]:
    """2-d unit vector whose cosine with [1, 0] is ``cos``."""
    return [cos, math.sqrt(1 - cos * cos)]


class TestJaccard:
    def test_identical(self):
        assert jaccard_similarity("hello world", "hello world") == 1.0

    def test_case_insensitive(self):
        assert jaccard_similarity("Hello World", "hello world") == 1.0

    def test_no_overlap(self):
        assert jaccard_similarity("hello world", "foo bar") == 0.0

    def test_both_empty(self):
        assert jaccard_similarity("", "   ") == 0.0

    def test_four_of_five(self):
        assert jaccard_similarity("user likes green tea", "user likes green tea daily") == 0.8


class TestExactStage:
    def test_any_case_and_padding_is_duplicate(self, store, make_memory):
        store.insert(make_memory("User's name is Alice", id="alice"))
        checker = DuplicateChecker(store)
        verdict = checker.check("  user's NAME is alice ")
        assert verdict.duplicate
        assert verdict.stage == "exact"
        assert verdict.existing_id == "alice"

    def test_check_alone(self, make_memory):
        ctx = DedupContext("User dislikes mushrooms", [make_memory("User dislikes mushrooms")])
        assert ExactMatchCheck()(ctx).duplicate
        ctx = DedupContext("User dislikes onions", [make_memory("User dislikes mushrooms")])
        assert ExactMatchCheck()(ctx) is None


class TestLexicalStage:
    def test_ratio_exactly_threshold_is_not_duplicate(self, store, make_memory):
        store.insert(make_memory("User likes green tea daily"))
        assert DuplicateChecker(store).is_duplicate("User likes green tea") is False

    def test_ratio_above_threshold_is_duplicate(self, store, make_memory):
        store.insert(make_memory("User likes green tea daily", id="tea"))
        verdict = DuplicateChecker(store).check("User really likes green tea daily")
        assert verdict.duplicate
        assert verdict.stage == "lexical"
        assert verdict.existing_id == "tea"
        assert verdict.score == pytest.approx(5 / 6)

    def test_custom_threshold(self, make_memory):
        ctx = DedupContext("User likes green tea", [make_memory("User likes green tea daily")])
        assert LexicalOverlapCheck(threshold=0.5)(ctx).duplicate


class TestSemanticStage:
    def test_similarity_above_threshold_is_duplicate(self, store, embedder, make_memory):
        store.insert(make_memory("User enjoys jazz music", id="jazz", embedding=_unit(0.93)))
        embedder.generate.return_value = [1.0, 0.0]

        verdict = DuplicateChecker(store, embedder).check("User likes listening to jazz")
        assert verdict.duplicate
        assert verdict.stage == "semantic"
        assert verdict.existing_id == "jazz"
        assert verdict.score == pytest.approx(0.93)

    def test_similarity_below_threshold_is_not_duplicate(self, store, embedder, make_memory):
        store.insert(make_memory("User enjoys jazz music", embedding=_unit(0.90)))
        embedder.generate.return_value = [1.0, 0.0]

        verdict = DuplicateChecker(store, embedder).check("User likes listening to jazz")
        assert not verdict.duplicate
        assert verdict.embedding == [1.0, 0.0]

    def test_only_members_with_embeddings_are_compared(self, store, embedder, make_memory):
        store.insert(make_memory("User enjoys jazz music"))
        checker = DuplicateChecker(store, embedder)
        assert checker.is_duplicate("User likes listening to jazz") is False
        embedder.generate.assert_not_called()

    def test_embedding_failure_skips_stage(self, store, embedder, make_memory):
        store.insert(make_memory("User enjoys jazz music", embedding=_unit(0.99)))
        embedder.generate.side_effect = EmbeddingError("model unavailable")

        verdict = DuplicateChecker(store, embedder).check("User likes listening to jazz")
        assert not verdict.duplicate
        assert verdict.embedding is None

    def test_no_provider_skips_stage(self, make_memory):
        ctx = DedupContext("User likes jazz", [make_memory("x", embedding=[1.0, 0.0])])
        assert SemanticOverlapCheck()(ctx) is None

    def test_candidate_embedded_once(self, make_memory, embedder):
        embedder.generate.return_value = [1.0, 0.0]
        window = [make_memory(f"memory {i}", embedding=[0.0, 1.0]) for i in range(3)]
        ctx = DedupContext("User likes jazz", window, embedder)
        SemanticOverlapCheck()(ctx)
        ctx.candidate_embedding()
        assert embedder.generate.call_count == 1


class TestOrdering:
    def test_cheap_stages_short_circuit(self, store, embedder, make_memory):
        store.insert(make_memory("User dislikes mushrooms", embedding=[1.0, 0.0]))
        assert DuplicateChecker(store, embedder).is_duplicate("User dislikes mushrooms")
        embedder.generate.assert_not_called()

    def test_window_is_bounded(self, store, make_memory):
        store.insert(make_memory("User dislikes mushrooms"))
        store.insert(make_memory("User likes jazz"))
        store.insert(make_memory("User lives in / is from Paris"))

        checker = DuplicateChecker(store, window_size=2)
        assert checker.is_duplicate("User dislikes mushrooms") is False
        assert checker.is_duplicate("User likes jazz") is True

    def test_window_requeried_each_call(self, store, make_memory):
        checker = DuplicateChecker(store)
        assert checker.is_duplicate("User likes jazz") is False
        store.insert(make_memory("User likes jazz"))
        assert checker.is_duplicate("User likes jazz") is True


class TestFailOpen:
    def test_store_error_means_not_duplicate(self):
        broken = MagicMock()
        broken.query_recent.side_effect = sqlite3.OperationalError("no such table: memories")
        checker = DuplicateChecker(broken)
        assert checker.is_duplicate("User's name is Alice") is False

    def test_check_error_means_not_duplicate(self, store, make_memory):
        store.insert(make_memory("User likes jazz"))
        exploding = MagicMock(side_effect=RuntimeError("boom"))
        exploding.name = "exploding"
        checker = DuplicateChecker(store, checks=[exploding, ExactMatchCheck()])
        assert checker.is_duplicate("User likes jazz") is False

    def test_empty_check_list_disables_stages(self, store, make_memory):
        store.insert(make_memory("User likes jazz"))
        checker = DuplicateChecker(store, checks=[])
        assert checker.checks == []
        assert checker.is_duplicate("User likes jazz") is False

    def test_empty_store(self, store):
        assert DuplicateChecker(store).is_duplicate("anything") is False
