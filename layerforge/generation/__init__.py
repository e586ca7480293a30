"""Collection generation: combinations, compositing, metadata and the pipeline.

- combinations.py: unique weighted trait combinations
- compositor.py: Pillow layer compositing to PNG
- metadata.py: per-item and collection metadata documents
- progress.py: thread-safe progress registry
- pipeline.py: batched generate -> composite -> upload run
"""

from .combinations import (
    combination_key,
    generate_combinations,
    total_possible_combinations,
)
from .compositor import DEFAULT_CANVAS_SIZE, composite_image
from .metadata import (
    build_collection_metadata,
    build_item_metadata,
    extract_all_attributes,
)
from .pipeline import (
    DEFAULT_BATCH_SIZE,
    GenerationPipeline,
    artifact_key,
    batch_percentage,
    metadata_key,
)
from .progress import ProgressRegistry

__all__ = [
    # Combinations
    "combination_key",
    "generate_combinations",
    "total_possible_combinations",
    # Compositing
    "DEFAULT_CANVAS_SIZE",
    "composite_image",
    # Metadata
    "build_collection_metadata",
    "build_item_metadata",
    "extract_all_attributes",
    # Pipeline
    "DEFAULT_BATCH_SIZE",
    "GenerationPipeline",
    "artifact_key",
    "batch_percentage",
    "metadata_key",
    "ProgressRegistry",
]
