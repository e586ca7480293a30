"""Configuration management for Layerforge.

Three config tiers:
- generation: batching, canvas size and worker limits for the pipeline
- storage: where artifacts are written and the base URL handed out for them
- sessions: where session state is persisted and how long idle sessions live

Config resolution order (highest priority first):
1. Programmatic (LayerforgeConfig constructed in code)
2. Environment variables (LAYERFORGE_BATCH_SIZE, LAYERFORGE_STORAGE_DIR, etc.)
3. Config file (~/.config/layerforge/config.json, managed by `layerforge config`)
4. Hardcoded defaults

A `.env` file in the working directory (or any parent) is loaded before env
vars are read; values already present in the environment win.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "layerforge"
CONFIG_FILE = CONFIG_DIR / "config.json"


# =============================================================================
# Config tiers
# =============================================================================


@dataclass
class GenerationSettings:
    """Pipeline tuning.

    - batch_size: items composited and uploaded per batch
    - max_workers: compositing thread cap (further limited by machine resources
      when resource_mode is "auto")
    - upload_concurrency: in-flight uploads per batch
    """

    batch_size: int = 100
    canvas_size: int = 512
    max_workers: int = 8
    upload_concurrency: int = 16
    resource_mode: str = "auto"


@dataclass
class StorageSettings:
    """Local artifact storage. Empty base_url means file:// URIs."""

    root: str = "./output/artifacts"
    base_url: str = ""


@dataclass
class SessionSettings:
    root: str = "./output/sessions"
    ttl_seconds: int = 3600


# =============================================================================
# Main config class
# =============================================================================


@dataclass
class LayerforgeConfig:
    """Top-level layerforge configuration.

    Examples:
        # Package use: no files needed
        config = LayerforgeConfig(generation=GenerationSettings(batch_size=50))

        # CLI use: loads from ~/.config/layerforge/config.json
        config = LayerforgeConfig.load()
    """

    generation: GenerationSettings = field(default_factory=GenerationSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    sessions: SessionSettings = field(default_factory=SessionSettings)

    @classmethod
    def load(cls) -> "LayerforgeConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: config file
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError, TypeError, ValueError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: env var overrides
        _ensure_dotenv()
        _apply_env(config)

        return config

    def save(self) -> None:
        """Save config to ~/.config/layerforge/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return {
            "generation": asdict(self.generation),
            "storage": asdict(self.storage),
            "sessions": asdict(self.sessions),
        }

    @property
    def sessions_dir(self) -> Path:
        return Path(self.sessions.root).expanduser()

    @property
    def storage_dir(self) -> Path:
        return Path(self.storage.root).expanduser()


# =============================================================================
# Value application
# =============================================================================

_INT_FIELDS = {
    "batch_size",
    "canvas_size",
    "max_workers",
    "upload_concurrency",
    "ttl_seconds",
}

# env var -> (section, key)
ENV_VARS: dict[str, tuple[str, str]] = {
    "LAYERFORGE_BATCH_SIZE": ("generation", "batch_size"),
    "LAYERFORGE_CANVAS_SIZE": ("generation", "canvas_size"),
    "LAYERFORGE_MAX_WORKERS": ("generation", "max_workers"),
    "LAYERFORGE_UPLOAD_CONCURRENCY": ("generation", "upload_concurrency"),
    "LAYERFORGE_RESOURCE_MODE": ("generation", "resource_mode"),
    "LAYERFORGE_STORAGE_DIR": ("storage", "root"),
    "LAYERFORGE_STORAGE_BASE_URL": ("storage", "base_url"),
    "LAYERFORGE_SESSIONS_DIR": ("sessions", "root"),
    "LAYERFORGE_SESSION_TTL": ("sessions", "ttl_seconds"),
}


def set_value(config: LayerforgeConfig, section: str, key: str, value: Any) -> None:
    """Set `section.key`, coercing integer fields.

    Raises:
        KeyError: If the section or key does not exist
        ValueError: If an integer field gets a non-integer value
    """
    if section not in ("generation", "storage", "sessions"):
        raise KeyError(f"Unknown config section: {section}")
    target = getattr(config, section)
    if not hasattr(target, key):
        raise KeyError(f"Unknown config key: {section}.{key}")
    if key in _INT_FIELDS:
        value = int(value)
    setattr(target, key, value)


def _apply_dict(config: LayerforgeConfig, data: dict) -> None:
    """Apply a dict of values onto a LayerforgeConfig, ignoring unknown keys."""
    for section in ("generation", "storage", "sessions"):
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        for k, v in values.items():
            if hasattr(getattr(config, section), k):
                set_value(config, section, k, v)


def _apply_env(config: LayerforgeConfig) -> None:
    for env_var, (section, key) in ENV_VARS.items():
        val = os.environ.get(env_var)
        if not val:
            continue
        try:
            set_value(config, section, key, val)
        except ValueError:
            logger.warning("Invalid %s=%r, ignoring", env_var, val)


_dotenv_loaded = False


def _ensure_dotenv() -> None:
    """Load .env file into os.environ if not already loaded."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        _dotenv_loaded = True
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path=dotenv_path, override=False)


# =============================================================================
# Global config singleton
# =============================================================================

_config: LayerforgeConfig | None = None


def get_config() -> LayerforgeConfig:
    """Get the global LayerforgeConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = LayerforgeConfig.load()
    return _config


def configure(config: LayerforgeConfig) -> None:
    """Set the global LayerforgeConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
