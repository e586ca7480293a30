"""All Pydantic models for Layerforge, organized by domain.

- layers.py: Layer and the per-session LayerStore
- generation.py: Config, session state, progress snapshots and results
- validation.py: ValidationIssue / ValidationResult
"""

from .layers import Layer, LayerStore
from .generation import (
    WeightTable,
    Combination,
    CollectionInfo,
    GenerationConfig,
    SessionStatus,
    GenerationSession,
    ProgressSnapshot,
    TraitAttribute,
    ItemMetadata,
    GenerationResult,
)
from .validation import Severity, ValidationIssue, ValidationResult

__all__ = [
    # Layers
    "Layer",
    "LayerStore",
    # Generation
    "WeightTable",
    "Combination",
    "CollectionInfo",
    "GenerationConfig",
    "SessionStatus",
    "GenerationSession",
    "ProgressSnapshot",
    "TraitAttribute",
    "ItemMetadata",
    "GenerationResult",
    # Validation
    "Severity",
    "ValidationIssue",
    "ValidationResult",
]
