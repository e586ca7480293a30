"""CLI commands for Layerforge."""

from . import (
    layers,
    rarity,
    generate,
    config_cmd,
)

__all__ = [
    "layers",
    "rarity",
    "generate",
    "config_cmd",
]
