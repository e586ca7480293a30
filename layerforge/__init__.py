"""Layerforge: generative collection engine.

Turns a set of image layers and a per-trait rarity weighting into a
collection of composited, metadata-tagged artifacts.

Usage:
    from layerforge import SessionManager, GenerationConfig, MemoryStorage
    from layerforge.sessions import extract_layers

    manager = SessionManager(storage=MemoryStorage())
    session_id = manager.create_session(extract_layers(zip_bytes))
    manager.save_config(session_id, GenerationConfig.from_yaml("collection.yaml"))
    result = asyncio.run(manager.start_generation(session_id))
"""

__version__ = "0.3.0"

from .core.models import (
    CollectionInfo,
    GenerationConfig,
    GenerationResult,
    GenerationSession,
    Layer,
    LayerStore,
    ProgressSnapshot,
    SessionStatus,
    ValidationResult,
)
from .sessions import SessionManager
from .storage import LocalStorage, MemoryStorage, Storage

__all__ = [
    "__version__",
    "CollectionInfo",
    "GenerationConfig",
    "GenerationResult",
    "GenerationSession",
    "Layer",
    "LayerStore",
    "ProgressSnapshot",
    "SessionStatus",
    "ValidationResult",
    "SessionManager",
    "LocalStorage",
    "MemoryStorage",
    "Storage",
]
