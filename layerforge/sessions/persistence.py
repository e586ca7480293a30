"""On-disk session state.

Each session owns one directory under the sessions root:

    <root>/<session_id>/
        layers.json              [{"name": ..., "traits": [...]}, ...]
        layers/<layer>/<n>.png   trait image bytes, file per trait
        config.json              GenerationConfig
        result.json              GenerationResult (only after completion)

Trait names are free text, so image files are numbered and layers.json maps
each trait to its file.
"""

import json
import logging
import re
import shutil
import time
from pathlib import Path

from ..core.models import GenerationConfig, GenerationResult, Layer, LayerStore
from ..errors import SessionNotFoundError

logger = logging.getLogger(__name__)

LAYERS_FILE = "layers.json"
LAYERS_DIR = "layers"
CONFIG_FILE = "config.json"
RESULT_FILE = "result.json"

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _write_text(path: Path, text: str) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(text)
    tmp_path.replace(path)


class SessionStore:
    """Reads and writes session directories under a root path."""

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser()

    def session_dir(self, session_id: str) -> Path:
        if not _SESSION_ID_RE.match(session_id):
            raise SessionNotFoundError(f"Invalid session id: {session_id!r}")
        return self.root / session_id

    def exists(self, session_id: str) -> bool:
        return self.session_dir(session_id).is_dir()

    def list_sessions(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.name
            for p in self.root.iterdir()
            if p.is_dir() and _SESSION_ID_RE.match(p.name)
        )

    # ── Layers ──

    def save_layers(self, session_id: str, store: LayerStore) -> None:
        session_dir = self.session_dir(session_id)
        layers_dir = session_dir / LAYERS_DIR
        layers_dir.mkdir(parents=True, exist_ok=True)

        manifest = []
        for layer in store:
            layer_dir = layers_dir / layer.name
            layer_dir.mkdir(exist_ok=True)
            files: dict[str, str] = {}
            for index, trait in enumerate(layer.traits):
                data = layer.image(trait)
                if data is None:
                    continue
                filename = f"{index}.png"
                (layer_dir / filename).write_bytes(data)
                files[trait] = filename
            manifest.append({"name": layer.name, "traits": list(layer.traits), "files": files})

        _write_text(session_dir / LAYERS_FILE, json.dumps(manifest, indent=2))

    def load_layers(self, session_id: str) -> LayerStore | None:
        session_dir = self.session_dir(session_id)
        manifest_path = session_dir / LAYERS_FILE
        if not manifest_path.exists():
            return None

        manifest = json.loads(manifest_path.read_text())
        layers = []
        for entry in manifest:
            layer_dir = session_dir / LAYERS_DIR / entry["name"]
            images: dict[str, bytes] = {}
            for trait, filename in entry.get("files", {}).items():
                image_path = layer_dir / filename
                if image_path.exists():
                    images[trait] = image_path.read_bytes()
                else:
                    logger.warning(
                        'Missing image file %s for trait "%s" in session %s',
                        image_path,
                        trait,
                        session_id,
                    )
            layers.append(Layer(name=entry["name"], traits=entry["traits"], images=images))
        return LayerStore(layers)

    # ── Config and result ──

    def save_config(self, session_id: str, config: GenerationConfig) -> None:
        session_dir = self.session_dir(session_id)
        session_dir.mkdir(parents=True, exist_ok=True)
        _write_text(session_dir / CONFIG_FILE, config.model_dump_json(indent=2))

    def load_config(self, session_id: str) -> GenerationConfig | None:
        path = self.session_dir(session_id) / CONFIG_FILE
        if not path.exists():
            return None
        return GenerationConfig.model_validate_json(path.read_text())

    def save_result(self, session_id: str, result: GenerationResult) -> None:
        session_dir = self.session_dir(session_id)
        session_dir.mkdir(parents=True, exist_ok=True)
        _write_text(session_dir / RESULT_FILE, result.model_dump_json(indent=2))

    def load_result(self, session_id: str) -> GenerationResult | None:
        path = self.session_dir(session_id) / RESULT_FILE
        if not path.exists():
            return None
        return GenerationResult.model_validate_json(path.read_text())

    def delete_result(self, session_id: str) -> None:
        (self.session_dir(session_id) / RESULT_FILE).unlink(missing_ok=True)

    # ── Cleanup ──

    def delete(self, session_id: str) -> bool:
        """Remove a session directory. Returns False if there was none."""
        session_dir = self.session_dir(session_id)
        if not session_dir.exists():
            return False
        shutil.rmtree(session_dir)
        return True

    def stale_sessions(self, max_age_seconds: float, now: float | None = None) -> list[str]:
        """Session ids whose directory was last modified over `max_age_seconds` ago."""
        now = time.time() if now is None else now
        stale = []
        for session_id in self.list_sessions():
            mtime = (self.root / session_id).stat().st_mtime
            if now - mtime > max_age_seconds:
                stale.append(session_id)
        return stale
