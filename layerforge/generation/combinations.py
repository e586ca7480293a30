"""Trait combination generation.

Draws one trait per layer (in layer order) with the rarity engine's weighted
selection and keeps only combinations it has not produced before. The draw
loop is bounded at `target_supply * 10` attempts; anything still missing after
that is filled in two steps:

1. Unseen combinations left in the eligible space are drawn weighted,
   without replacement, so heavily skewed weights cannot starve uniqueness.
2. Once the unique pool is exhausted (supply larger than the combination
   space), combinations are drawn freely and duplicates are allowed.

Callers that need strict uniqueness should compare
`total_possible_combinations()` against the supply before generating.
"""

import heapq
import itertools
import json
import logging
import math
import random
from collections.abc import Iterator, Mapping, Sequence

from ..core.models import Combination, LayerStore, WeightTable
from ..errors import CombinationError
from ..rarity import select_weighted_trait

logger = logging.getLogger(__name__)

ATTEMPTS_PER_ITEM = 10

# Above this many eligible combinations the completion step walks the space
# lazily instead of ranking all of it
ENUMERATION_LIMIT = 200_000


def combination_key(combination: Combination) -> str:
    """Canonical, order-independent identity of a combination."""
    return json.dumps(combination, sort_keys=True, separators=(",", ":"))


def total_possible_combinations(layer_order: Sequence[str], store: LayerStore) -> int:
    """Number of distinct combinations: product of trait counts per layer.

    Layers missing from the store count as zero traits.
    """
    return math.prod(store.trait_count(name) for name in layer_order)


def _check_layers(layer_order: Sequence[str], store: LayerStore) -> None:
    for name in layer_order:
        layer = store.get(name)
        if layer is None:
            raise CombinationError(f'Layer "{name}" not found in uploaded layers')
        if not layer.is_usable:
            raise CombinationError(f'Layer "{name}" has no traits')


def _eligible_traits(traits: Sequence[str], layer_weights: Mapping[str, float]) -> list[str]:
    """Traits the weighted selection can actually return."""
    positive = [t for t in traits if layer_weights.get(t, 0.0) > 0]
    return positive or list(traits)


class _LayerPlan:
    """Per-layer inputs resolved once per generation run."""

    __slots__ = ("name", "traits", "weights", "eligible", "uniform")

    def __init__(self, name: str, traits: Sequence[str], weights: Mapping[str, float]):
        self.name = name
        self.traits = list(traits)
        self.weights = dict(weights)
        self.eligible = _eligible_traits(self.traits, self.weights)
        self.uniform = sum(max(0.0, self.weights.get(t, 0.0)) for t in self.traits) <= 0

    def weight_of(self, trait: str) -> float:
        if self.uniform:
            return 1.0
        return max(0.0, self.weights.get(trait, 0.0))


def _draw(plans: Sequence[_LayerPlan], rng: random.Random) -> Combination:
    return {
        plan.name: select_weighted_trait(plan.traits, plan.weights, rng)
        for plan in plans
    }


def _iter_lazy(plans: Sequence[_LayerPlan], rng: random.Random) -> Iterator[Combination]:
    shuffled = []
    for plan in plans:
        options = list(plan.eligible)
        rng.shuffle(options)
        shuffled.append(options)
    for picks in itertools.product(*shuffled):
        yield {plan.name: trait for plan, trait in zip(plans, picks)}


def _complete_unique(
    plans: Sequence[_LayerPlan],
    seen: set[str],
    needed: int,
    eligible_space: int,
    rng: random.Random,
) -> list[Combination]:
    """Pick `needed` combinations not in `seen`, favouring likelier ones."""
    if eligible_space <= ENUMERATION_LIMIT:
        # Weighted sampling without replacement: key = u ** (1 / w)
        ranked: list[tuple[float, int, Combination]] = []
        for index, picks in enumerate(itertools.product(*(p.eligible for p in plans))):
            combination = {plan.name: trait for plan, trait in zip(plans, picks)}
            if combination_key(combination) in seen:
                continue
            weight = math.prod(plan.weight_of(trait) for plan, trait in zip(plans, picks))
            score = rng.random() ** (1.0 / weight) if weight > 0 else 0.0
            ranked.append((score, index, combination))
        return [item[2] for item in heapq.nlargest(needed, ranked)]

    picked: list[Combination] = []
    for combination in _iter_lazy(plans, rng):
        if combination_key(combination) in seen:
            continue
        picked.append(combination)
        if len(picked) >= needed:
            break
    return picked


def generate_combinations(
    layer_order: Sequence[str],
    weights: WeightTable,
    store: LayerStore,
    target_supply: int,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> list[Combination]:
    """Produce exactly `target_supply` trait combinations.

    Args:
        layer_order: Layers to pick from, in compositing order
        weights: Rarity weights per layer; layers without weights are uniform
        store: Layer store holding every layer in `layer_order`
        target_supply: Number of combinations to return
        seed: Seed for a fresh RNG (ignored when `rng` is given)
        rng: Explicit random generator

    Returns:
        List of combinations, unique while the combination space allows it

    Raises:
        CombinationError: If a layer is missing from the store or has no traits
        ValueError: If target_supply is negative
    """
    if target_supply < 0:
        raise ValueError(f"target_supply must be >= 0, got {target_supply}")

    _check_layers(layer_order, store)

    if rng is None:
        rng = random.Random(seed)

    plans = [
        _LayerPlan(name, store[name].traits, weights.get(name, {}))
        for name in layer_order
    ]

    combinations: list[Combination] = []
    seen: set[str] = set()

    max_attempts = target_supply * ATTEMPTS_PER_ITEM
    attempts = 0
    while len(combinations) < target_supply and attempts < max_attempts:
        combination = _draw(plans, rng)
        key = combination_key(combination)
        if key not in seen:
            seen.add(key)
            combinations.append(combination)
        attempts += 1

    if len(combinations) < target_supply:
        eligible_space = math.prod(len(plan.eligible) for plan in plans)
        remaining_unique = eligible_space - len(seen)
        if remaining_unique > 0:
            needed = min(target_supply - len(combinations), remaining_unique)
            logger.info(
                "Random draws stalled after %d attempts; completing %d unique combinations",
                attempts,
                needed,
            )
            for combination in _complete_unique(plans, seen, needed, eligible_space, rng):
                seen.add(combination_key(combination))
                combinations.append(combination)

    if len(combinations) < target_supply:
        logger.warning(
            "Only %d unique combinations exist for a supply of %d; filling with duplicates",
            len(seen),
            target_supply,
        )
        while len(combinations) < target_supply:
            combinations.append(_draw(plans, rng))

    return combinations
