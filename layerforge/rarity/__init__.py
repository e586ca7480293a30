"""Rarity engine: weighted trait selection, normalization, validation and tiers."""

from .engine import (
    MAX_REASONABLE_WEIGHT,
    RARITY_TIERS,
    RarityTier,
    TierSummary,
    select_weighted_trait,
    layer_weight_sum,
    rarity_percentage,
    layer_rarity,
    all_layer_rarity,
    combination_rarity,
    normalize_weights,
    validate_weights,
    rarity_tiers,
    rarity_distribution,
    rarity_preview,
)

__all__ = [
    "MAX_REASONABLE_WEIGHT",
    "RARITY_TIERS",
    "RarityTier",
    "TierSummary",
    "select_weighted_trait",
    "layer_weight_sum",
    "rarity_percentage",
    "layer_rarity",
    "all_layer_rarity",
    "combination_rarity",
    "normalize_weights",
    "validate_weights",
    "rarity_tiers",
    "rarity_distribution",
    "rarity_preview",
]
