"""Layer compositing with Pillow.

Each combination becomes one square RGBA image: a transparent canvas with
every selected trait image alpha-composited on top, bottom layer first.
"""

import io
import logging
from collections.abc import Sequence

from PIL import Image, ImageOps, UnidentifiedImageError

from ..core.models import Combination, LayerStore
from ..errors import CompositingError

logger = logging.getLogger(__name__)

DEFAULT_CANVAS_SIZE = 512


def _decode(data: bytes, layer_name: str, trait: str) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise CompositingError(
            f'Cannot decode image for trait "{trait}" in layer "{layer_name}": {e}'
        ) from e


def _fit(img: Image.Image, canvas_size: int) -> tuple[Image.Image, tuple[int, int]]:
    """Scale down oversized images and centre the result on the canvas."""
    if img.width > canvas_size or img.height > canvas_size:
        img = ImageOps.contain(img, (canvas_size, canvas_size))
    offset = ((canvas_size - img.width) // 2, (canvas_size - img.height) // 2)
    return img, offset


def composite_image(
    combination: Combination,
    store: LayerStore,
    layer_order: Sequence[str],
    canvas_size: int = DEFAULT_CANVAS_SIZE,
) -> bytes:
    """Render one combination to PNG bytes.

    Layers are applied in `layer_order`; layers the combination does not
    mention are skipped. A trait with no image bytes is logged and skipped
    rather than failing the item.

    Raises:
        CompositingError: If stored image bytes cannot be decoded
    """
    canvas = Image.new("RGBA", (canvas_size, canvas_size), (0, 0, 0, 0))

    for layer_name in layer_order:
        trait = combination.get(layer_name)
        if trait is None:
            continue

        data = store.image(layer_name, trait)
        if data is None:
            logger.warning(
                'Image not found for trait "%s" in layer "%s"', trait, layer_name
            )
            continue

        img, offset = _fit(_decode(data, layer_name, trait), canvas_size)
        if img.size == canvas.size:
            canvas = Image.alpha_composite(canvas, img)
        else:
            canvas.alpha_composite(img, dest=offset)

    buffer = io.BytesIO()
    canvas.save(buffer, format="PNG")
    return buffer.getvalue()
