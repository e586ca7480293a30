"""Weighted trait selection and rarity math.

Weights are relative, non-negative numbers per trait. A layer whose weights
are empty or sum to zero falls back to uniform selection. Rarity is a trait's
weight expressed as a percentage of its layer's total weight.

Every random draw goes through a `random.Random` instance so callers can
seed it for reproducible collections.
"""

import logging
import math
import random
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from ..core.models import Combination, ValidationResult, WeightTable

logger = logging.getLogger(__name__)

# Weights above this are accepted but usually a sign of a unit mix-up
MAX_REASONABLE_WEIGHT = 1000.0

# Rarity sample size cap for distribution previews
MAX_DISTRIBUTION_SAMPLES = 100_000


class RarityTier(BaseModel):
    """A fixed band of average rarity percentage: min_rarity <= r < max_rarity."""

    name: str
    min_rarity: float
    max_rarity: float


class TierSummary(BaseModel):
    min_rarity: float
    max_rarity: float
    count: int = 0
    percentage: float = 0.0


# Ordered from rarest band to most common. The top band is closed at 100.
RARITY_TIERS: tuple[RarityTier, ...] = (
    RarityTier(name="Legendary", min_rarity=90.0, max_rarity=100.0),
    RarityTier(name="Epic", min_rarity=70.0, max_rarity=90.0),
    RarityTier(name="Rare", min_rarity=40.0, max_rarity=70.0),
    RarityTier(name="Uncommon", min_rarity=20.0, max_rarity=40.0),
    RarityTier(name="Common", min_rarity=0.0, max_rarity=20.0),
)


# =============================================================================
# Weighted selection
# =============================================================================


def select_weighted_trait(
    traits: Sequence[str],
    weights: Mapping[str, float],
    rng: random.Random | None = None,
) -> str:
    """Pick one trait with probability proportional to its weight.

    Traits absent from `weights` (or with negative weights) count as zero.
    Empty or all-zero weights select uniformly. The cumulative scan runs in
    the declared trait order, so a seeded rng gives a deterministic pick.

    The scan stops at the first trait whose cumulative bound is strictly
    greater than the draw. With `bound >= draw` a draw of exactly 0.0 would
    land on a leading zero-weight trait, so zero-weight traits could be
    picked; the strict comparison guarantees they never are.

    Raises:
        ValueError: If `traits` is empty.
    """
    if not traits:
        raise ValueError("No traits available")

    rng = rng or random

    if not weights:
        return traits[rng.randrange(len(traits))]

    trait_weights = [max(0.0, float(weights.get(t, 0.0))) for t in traits]
    total_weight = sum(trait_weights)
    if total_weight <= 0:
        return traits[rng.randrange(len(traits))]

    draw = rng.random() * total_weight
    cumulative = 0.0
    for trait, weight in zip(traits, trait_weights):
        cumulative += weight
        if draw < cumulative:
            return trait

    # Floating-point accumulation can leave the draw just past the last bound
    return next(t for t, w in zip(reversed(traits), reversed(trait_weights)) if w > 0)


# =============================================================================
# Rarity math
# =============================================================================


def layer_weight_sum(layer_weights: Mapping[str, float]) -> float:
    return float(sum(layer_weights.values()))


def rarity_percentage(
    trait: str, weights: Mapping[str, float], total_weight: float
) -> float:
    """Weight of `trait` as a percentage of `total_weight` (0 if total is 0)."""
    if total_weight == 0:
        return 0.0
    return weights.get(trait, 0.0) / total_weight * 100


def layer_rarity(layer_weights: Mapping[str, float]) -> list[dict[str, Any]]:
    """Per-trait weight and rarity for one layer, most common first."""
    total_weight = layer_weight_sum(layer_weights)
    if total_weight == 0:
        return [
            {"trait": trait, "weight": 0.0, "rarity": 0.0} for trait in layer_weights
        ]

    rows = [
        {
            "trait": trait,
            "weight": float(weight),
            "rarity": rarity_percentage(trait, layer_weights, total_weight),
        }
        for trait, weight in layer_weights.items()
    ]
    return sorted(rows, key=lambda row: -row["rarity"])


def all_layer_rarity(weights: WeightTable) -> list[dict[str, Any]]:
    """`layer_rarity` for every layer in the table."""
    return [
        {"layer": layer_name, "traits": layer_rarity(layer_weights)}
        for layer_name, layer_weights in weights.items()
    ]


def combination_rarity(combination: Combination, weights: WeightTable) -> float:
    """Average rarity percentage of the traits picked by a combination.

    Layers without weights contribute an equal-weight rarity so that
    uniformly selected layers are not scored as impossibly rare.
    """
    if not combination:
        return 0.0

    scores: list[float] = []
    for layer_name, trait in combination.items():
        layer_weights = weights.get(layer_name, {})
        total_weight = layer_weight_sum(layer_weights)
        if total_weight > 0:
            scores.append(rarity_percentage(trait, layer_weights, total_weight))
        elif layer_weights:
            scores.append(100.0 / len(layer_weights))
        else:
            scores.append(100.0)
    return sum(scores) / len(scores)


def normalize_weights(weights: WeightTable) -> WeightTable:
    """Rescale every layer so its weights sum to 100.

    A layer whose weights sum to zero gets an equal share for each trait.
    Applying this twice gives the same table (within float rounding).
    """
    normalized: WeightTable = {}

    for layer_name, layer_weights in weights.items():
        if not layer_weights:
            normalized[layer_name] = {}
            continue

        total_weight = layer_weight_sum(layer_weights)
        if total_weight == 0:
            equal_weight = 100 / len(layer_weights)
            normalized[layer_name] = {trait: equal_weight for trait in layer_weights}
        else:
            normalized[layer_name] = {
                trait: weight / total_weight * 100
                for trait, weight in layer_weights.items()
            }

    return normalized


# =============================================================================
# Validation
# =============================================================================


def validate_weights(weights: WeightTable) -> ValidationResult:
    """Check a weight table without raising.

    Flags, per layer: a zero weight sum, negative weights, and weights above
    MAX_REASONABLE_WEIGHT. A zero-sum layer is still an error here; callers
    that accept equal-weight fallback can choose to ignore it.
    """
    result = ValidationResult()

    for layer_name, layer_weights in weights.items():
        total_weight = layer_weight_sum(layer_weights)
        if total_weight == 0:
            result.add_error(
                category="ZERO_WEIGHT_SUM",
                location=layer_name,
                message=f'Layer "{layer_name}" has no valid weights',
                suggestion="Give at least one trait a positive weight",
            )

        for trait, weight in layer_weights.items():
            if weight < 0:
                result.add_error(
                    category="NEGATIVE_WEIGHT",
                    location=f"{layer_name}.{trait}",
                    message=f'Trait "{trait}" in layer "{layer_name}" has negative weight',
                    value=str(weight),
                )

        if layer_weights:
            max_weight = max(layer_weights.values())
            if max_weight > MAX_REASONABLE_WEIGHT:
                result.add_error(
                    category="OUTLIER_WEIGHT",
                    location=layer_name,
                    message=f'Layer "{layer_name}" has very high weights (max: {max_weight:g})',
                    value=str(max_weight),
                )

    return result


# =============================================================================
# Tiers and previews
# =============================================================================


def _tier_for(rarity: float) -> RarityTier | None:
    for tier in RARITY_TIERS:
        if tier.min_rarity <= rarity < tier.max_rarity:
            return tier
    top = RARITY_TIERS[0]
    if rarity == top.max_rarity:
        return top
    return None


def rarity_tiers(entries: Sequence[Mapping[str, Any]]) -> dict[str, TierSummary]:
    """Bucket combinations into the fixed RARITY_TIERS bands.

    Args:
        entries: Items with a `rarity` percentage and an optional `count`
            (defaults to 1)

    Returns:
        Tier name -> TierSummary with count and share of all entries
    """
    tiers = {
        tier.name: TierSummary(min_rarity=tier.min_rarity, max_rarity=tier.max_rarity)
        for tier in RARITY_TIERS
    }

    total_count = 0
    for entry in entries:
        count = int(entry.get("count", 1))
        total_count += count
        tier = _tier_for(float(entry["rarity"]))
        if tier is None:
            logger.warning("Rarity %s falls outside every tier", entry["rarity"])
            continue
        tiers[tier.name].count += count

    for summary in tiers.values():
        summary.percentage = summary.count / total_count * 100 if total_count else 0.0

    return tiers


def _draw_from_table(weights: WeightTable, rng: random.Random) -> Combination:
    return {
        layer_name: select_weighted_trait(list(layer_weights), layer_weights, rng)
        for layer_name, layer_weights in weights.items()
        if layer_weights
    }


def rarity_distribution(
    total_supply: int,
    weights: WeightTable,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Sample combinations straight from a weight table and tally them.

    Samples `min(total_supply * 10, MAX_DISTRIBUTION_SAMPLES)` draws and
    returns one row per distinct combination with its average rarity and
    how often it came up, highest average rarity percentage first.
    """
    rng = rng or random.Random()
    sample_size = min(total_supply * 10, MAX_DISTRIBUTION_SAMPLES)

    rows: dict[tuple[tuple[str, str], ...], dict[str, Any]] = {}
    for _ in range(sample_size):
        combination = _draw_from_table(weights, rng)
        key = tuple(sorted(combination.items()))
        row = rows.get(key)
        if row is None:
            rows[key] = {
                "combination": combination,
                "rarity": combination_rarity(combination, weights),
                "count": 1,
            }
        else:
            row["count"] += 1

    return sorted(rows.values(), key=lambda row: -row["rarity"])


def rarity_preview(
    weights: WeightTable,
    sample_size: int = 1000,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Estimate the tier mix a weight table will produce.

    Returns:
        Dict with total_combinations, estimated_unique and a
        rarity_distribution list of {tier, count, percentage}
    """
    rng = rng or random.Random()

    total_combinations = math.prod(
        len(layer_weights) for layer_weights in weights.values()
    )

    samples = [
        {"rarity": combination_rarity(_draw_from_table(weights, rng), weights)}
        for _ in range(sample_size)
    ]
    tiers = rarity_tiers(samples)

    return {
        "total_combinations": total_combinations,
        "estimated_unique": min(total_combinations, sample_size),
        "rarity_distribution": [
            {"tier": name, "count": summary.count, "percentage": summary.percentage}
            for name, summary in tiers.items()
        ],
    }
