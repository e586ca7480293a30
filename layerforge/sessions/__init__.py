"""Session handling: layer extraction, config validation, persistence and the manager."""

from .extraction import (
    IMAGE_EXTENSIONS,
    MAX_IMAGE_DIMENSION,
    MAX_TRAITS_PER_LAYER,
    extract_layers,
    extract_layers_from_directory,
    sanitize_layer_name,
    validate_layers,
)
from .manager import DEFAULT_SESSION_TTL, SessionManager
from .persistence import SessionStore
from .validation import MAX_SUPPLY, MIN_SUPPLY, validate_config

__all__ = [
    "IMAGE_EXTENSIONS",
    "MAX_IMAGE_DIMENSION",
    "MAX_TRAITS_PER_LAYER",
    "extract_layers",
    "extract_layers_from_directory",
    "sanitize_layer_name",
    "validate_layers",
    "DEFAULT_SESSION_TTL",
    "SessionManager",
    "SessionStore",
    "MAX_SUPPLY",
    "MIN_SUPPLY",
    "validate_config",
]
