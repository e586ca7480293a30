"""Tests for unique weighted combination generation."""

import random

import pytest

from layerforge.core.models import Layer, LayerStore
from layerforge.errors import CombinationError
from layerforge.generation import combinations as combinations_module
from layerforge.generation import (
    combination_key,
    generate_combinations,
    total_possible_combinations,
)


def _store(**layers: list[str]) -> LayerStore:
    return LayerStore(Layer(name=name, traits=traits) for name, traits in layers.items())


ORDER = ["Background", "Eyes", "Hat"]


class TestCombinationKey:
    def test_order_independent(self):
        assert combination_key({"a": "1", "b": "2"}) == combination_key({"b": "2", "a": "1"})

    def test_distinguishes_traits(self):
        assert combination_key({"a": "1"}) != combination_key({"a": "2"})


class TestTotalPossibleCombinations:
    def test_product_of_trait_counts(self, scenario_store):
        assert total_possible_combinations(ORDER, scenario_store) == 4

    def test_missing_layer_counts_as_zero(self, scenario_store):
        assert total_possible_combinations(["Background", "Nope"], scenario_store) == 0


class TestGenerateCombinations:
    def test_exact_unique_supply(self, scenario_store, scenario_config):
        combos = generate_combinations(
            ORDER, scenario_config.weights, scenario_store, 4, seed=7
        )
        assert len(combos) == 4
        assert len({combination_key(c) for c in combos}) == 4

    def test_every_combination_follows_layer_order(self, scenario_store, scenario_config):
        combos = generate_combinations(
            ORDER, scenario_config.weights, scenario_store, 3, seed=1
        )
        for combo in combos:
            assert list(combo) == ORDER
            for layer_name, trait in combo.items():
                assert trait in scenario_store[layer_name].traits

    def test_full_space_is_unique(self):
        store = _store(
            A=[f"a{i}" for i in range(4)],
            B=[f"b{i}" for i in range(5)],
            C=[f"c{i}" for i in range(3)],
        )
        combos = generate_combinations(["A", "B", "C"], {}, store, 60, seed=3)
        assert len({combination_key(c) for c in combos}) == 60

    def test_supply_beyond_space_returns_duplicates(self, scenario_store, scenario_config):
        combos = generate_combinations(
            ORDER, scenario_config.weights, scenario_store, 10, seed=11
        )
        assert len(combos) == 10
        assert len({combination_key(c) for c in combos}) == 4

    def test_skewed_weights_still_unique(self):
        store = _store(Body=["Common", "Rare"], Hat=["Cap"])
        weights = {"Body": {"Common": 1000, "Rare": 1}, "Hat": {"Cap": 1}}
        combos = generate_combinations(["Body", "Hat"], weights, store, 2, seed=0)
        assert {c["Body"] for c in combos} == {"Common", "Rare"}

    def test_zero_weight_trait_excluded(self):
        store = _store(Body=["A", "B"], Hat=["Cap"])
        weights = {"Body": {"A": 1, "B": 0}}
        combos = generate_combinations(["Body", "Hat"], weights, store, 3, seed=0)
        assert len(combos) == 3
        assert all(c["Body"] == "A" for c in combos)

    def test_layer_without_weights_is_uniform(self):
        store = _store(Body=["A", "B", "C"])
        combos = generate_combinations(["Body"], {}, store, 3, seed=5)
        assert sorted(c["Body"] for c in combos) == ["A", "B", "C"]

    def test_completion_by_enumeration(self, monkeypatch):
        monkeypatch.setattr(combinations_module, "ATTEMPTS_PER_ITEM", 0)
        store = _store(A=["a0", "a1", "a2"], B=["b0", "b1", "b2", "b3"])
        combos = generate_combinations(["A", "B"], {}, store, 12, seed=2)
        assert len({combination_key(c) for c in combos}) == 12

    def test_completion_lazy_walk(self, monkeypatch):
        monkeypatch.setattr(combinations_module, "ATTEMPTS_PER_ITEM", 0)
        monkeypatch.setattr(combinations_module, "ENUMERATION_LIMIT", 1)
        store = _store(A=["a0", "a1", "a2"], B=["b0", "b1", "b2", "b3"])
        combos = generate_combinations(["A", "B"], {}, store, 12, seed=2)
        assert len({combination_key(c) for c in combos}) == 12

    def test_zero_supply(self, scenario_store):
        assert generate_combinations(ORDER, {}, scenario_store, 0) == []

    def test_negative_supply_raises(self, scenario_store):
        with pytest.raises(ValueError):
            generate_combinations(ORDER, {}, scenario_store, -1)

    def test_missing_layer_raises(self, scenario_store):
        with pytest.raises(CombinationError, match="Nope"):
            generate_combinations(["Background", "Nope"], {}, scenario_store, 1)

    def test_empty_layer_raises(self):
        store = _store(Body=["A"], Empty=[])
        with pytest.raises(CombinationError, match="no traits"):
            generate_combinations(["Body", "Empty"], {}, store, 1)

    def test_seed_is_reproducible(self, scenario_store, scenario_config):
        first = generate_combinations(
            ORDER, scenario_config.weights, scenario_store, 4, seed=99
        )
        second = generate_combinations(
            ORDER, scenario_config.weights, scenario_store, 4, seed=99
        )
        assert first == second

    def test_explicit_rng(self, scenario_store):
        combos = generate_combinations(ORDER, {}, scenario_store, 2, rng=random.Random(4))
        assert len(combos) == 2
