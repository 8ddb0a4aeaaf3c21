"""Tests for top-K ranking."""

import numpy as np

from earshot.labels import LabelCatalog
from earshot.ranking import rank

C = 521


class TestRank:
    def test_strictly_decreasing_scores(self):
        scores = np.linspace(1.0, 0.0, C, dtype=np.float32)
        results = rank(scores, k=5)
        assert [r.class_index for r in results] == [0, 1, 2, 3, 4]

    def test_sorted_descending(self):
        scores = np.random.default_rng(1).random(C).astype(np.float32)
        results = rank(scores, k=20)
        values = [r.score for r in results]
        assert values == sorted(values, reverse=True)
        assert results[0].class_index == int(np.argmax(scores))

    def test_ties_broken_by_ascending_index(self):
        scores = np.zeros(C, dtype=np.float32)
        scores[10] = 0.9
        scores[3] = 0.9
        results = rank(scores, k=2)
        assert [r.class_index for r in results] == [3, 10]

    def test_all_equal_scores_keep_index_order(self):
        results = rank(np.full(C, 0.5, dtype=np.float32), k=C)
        assert [r.class_index for r in results] == list(range(C))

    def test_k_larger_than_classes_returns_all(self):
        scores = np.random.default_rng(2).random(C).astype(np.float32)
        results = rank(scores, k=C + 100)
        assert len(results) == C
        assert sorted(r.class_index for r in results) == list(range(C))

    def test_non_positive_k_returns_empty(self):
        scores = np.ones(C, dtype=np.float32)
        assert rank(scores, k=0) == []
        assert rank(scores, k=-3) == []

    def test_labels_joined_from_catalog(self):
        catalog = LabelCatalog({0: "Speech", 1: "Music"})
        results = rank([0.1, 0.7, 0.2], k=3, catalog=catalog)

        assert [r.label for r in results] == ["Music", "Class 2", "Speech"]
        assert results[0].score == np.float32(0.7)

    def test_placeholder_labels_without_catalog(self):
        results = rank([0.2, 0.8], k=1)
        assert results[0].label == "Class 1"
