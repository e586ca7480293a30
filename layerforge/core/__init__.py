"""Core models shared across Layerforge."""
