"""Layer extraction from uploaded archives.

Layout convention: every top-level folder is a layer, every image file
directly inside it is a trait named after the file stem.

    Background/Blue.png      -> layer "Background", trait "Blue"
    Eyes/Laser Red.png       -> layer "Eyes", trait "Laser Red"

A single wrapping folder (``collection/Background/Blue.png``) is unwrapped.
Folder names are sanitized to letters, digits and underscores. Hidden files
and macOS resource forks are ignored, as are folders with no images.
"""

import io
import logging
import re
import zipfile
from collections.abc import Callable
from pathlib import Path, PurePosixPath

from PIL import Image, UnidentifiedImageError

from ..core.models import Layer, LayerStore, ValidationResult
from ..errors import ExtractionError
from ..utils.callbacks import ItemProgressCallback

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})
MAX_TRAITS_PER_LAYER = 100
MAX_IMAGE_DIMENSION = 2048

# (path parts relative to the archive root, loader for the file's bytes)
_Entry = tuple[tuple[str, ...], Callable[[], bytes]]


def sanitize_layer_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


def is_image_file(filename: str) -> bool:
    return (
        not filename.startswith(".")
        and PurePosixPath(filename).suffix.lower() in IMAGE_EXTENSIONS
    )


def _is_ignored(parts: tuple[str, ...]) -> bool:
    return any(part.startswith(".") or part == "__MACOSX" for part in parts)


def _unwrap(entries: list[_Entry]) -> list[_Entry]:
    """Strip a single root folder that wraps every layer folder."""
    roots = {parts[0] for parts, _ in entries}
    if len(roots) == 1 and all(len(parts) >= 3 for parts, _ in entries):
        return [(parts[1:], loader) for parts, loader in entries]
    return entries


def _assemble(entries: list[_Entry], on_progress: ItemProgressCallback | None) -> LayerStore:
    entries = _unwrap([e for e in entries if not _is_ignored(e[0])])

    folders: dict[str, list[tuple[str, Callable[[], bytes]]]] = {}
    for parts, loader in entries:
        if len(parts) != 2:
            continue
        folder, filename = parts
        if is_image_file(filename):
            folders.setdefault(folder, []).append((filename, loader))

    layers: list[Layer] = []
    seen_names: set[str] = set()
    total = len(folders)

    for index, folder in enumerate(sorted(folders), start=1):
        name = sanitize_layer_name(folder)
        if name in seen_names:
            logger.warning(
                'Folder "%s" maps to layer name "%s" which is already taken; skipping',
                folder,
                name,
            )
            continue

        traits: list[str] = []
        images: dict[str, bytes] = {}
        for filename, loader in sorted(folders[folder]):
            trait = PurePosixPath(filename).stem
            if trait in images:
                logger.warning(
                    'Duplicate trait "%s" in layer "%s" (%s); keeping the first',
                    trait,
                    name,
                    filename,
                )
                continue
            traits.append(trait)
            images[trait] = loader()

        seen_names.add(name)
        layers.append(Layer(name=name, traits=traits, images=images))
        if on_progress is not None:
            on_progress(index, total)

    logger.info(
        "Extracted %d layers with %d traits",
        len(layers),
        sum(len(layer.traits) for layer in layers),
    )
    return LayerStore(layers)


def extract_layers(
    archive: bytes, on_progress: ItemProgressCallback | None = None
) -> LayerStore:
    """Read a ZIP archive into a LayerStore.

    Raises:
        ExtractionError: If the bytes are not a readable ZIP archive
    """
    try:
        zf = zipfile.ZipFile(io.BytesIO(archive))
    except zipfile.BadZipFile as e:
        raise ExtractionError(f"Not a valid ZIP archive: {e}") from e

    with zf:
        entries: list[_Entry] = []
        for info in zf.infolist():
            if info.is_dir():
                continue
            parts = PurePosixPath(info.filename).parts
            entries.append((parts, lambda info=info: zf.read(info)))
        try:
            return _assemble(entries, on_progress)
        except zipfile.BadZipFile as e:
            raise ExtractionError(f"Corrupt ZIP archive: {e}") from e


def extract_layers_from_directory(
    path: Path | str, on_progress: ItemProgressCallback | None = None
) -> LayerStore:
    """Read an already-unpacked layer tree into a LayerStore.

    Raises:
        ExtractionError: If `path` is not a directory
    """
    root = Path(path)
    if not root.is_dir():
        raise ExtractionError(f"Not a directory: {root}")

    entries: list[_Entry] = [
        (file.relative_to(root).parts, file.read_bytes)
        for file in root.rglob("*")
        if file.is_file()
    ]
    return _assemble(entries, on_progress)


def validate_layers(store: LayerStore) -> ValidationResult:
    """Check extracted layers before any configuration is accepted."""
    result = ValidationResult()

    if len(store) == 0:
        result.add_error(
            category="NO_LAYERS",
            location="archive",
            message="No valid layers found in archive",
            suggestion="Put each layer's images in its own top-level folder",
        )

    for layer in store:
        if not layer.traits:
            result.add_error(
                category="EMPTY_LAYER",
                location=layer.name,
                message=f'Layer "{layer.name}" has no valid image files',
            )

        if len(layer.traits) > MAX_TRAITS_PER_LAYER:
            result.add_error(
                category="TOO_MANY_TRAITS",
                location=layer.name,
                message=(
                    f'Layer "{layer.name}" has too many traits '
                    f"(max {MAX_TRAITS_PER_LAYER})"
                ),
                value=str(len(layer.traits)),
            )

        for trait in layer.missing_images():
            result.add_error(
                category="MISSING_IMAGE",
                location=f"{layer.name}.{trait}",
                message=f'Trait "{trait}" in layer "{layer.name}" has no image',
            )

        for trait, data in layer.images.items():
            try:
                with Image.open(io.BytesIO(data)) as img:
                    width, height = img.size
            except (UnidentifiedImageError, OSError):
                result.add_error(
                    category="INVALID_IMAGE",
                    location=f"{layer.name}.{trait}",
                    message=f'Invalid image file "{trait}" in layer "{layer.name}"',
                )
                continue

            if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
                result.add_error(
                    category="IMAGE_TOO_LARGE",
                    location=f"{layer.name}.{trait}",
                    message=(
                        f'Image "{trait}" in layer "{layer.name}" is too large '
                        f"(max {MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION})"
                    ),
                    value=f"{width}x{height}",
                )

    return result
