"""Command-line interface for Layerforge."""

from .app import app

__all__ = ["app"]
