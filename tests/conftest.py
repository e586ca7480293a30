"""Shared fixtures: small layer stores built from solid-colour Pillow images."""

import io
import zipfile

import pytest
from PIL import Image

from layerforge.core.models import CollectionInfo, GenerationConfig, Layer, LayerStore


def png_bytes(color=(255, 0, 0, 255), size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def zip_bytes(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


COLORS = {
    "Blue": (0, 0, 255, 255),
    "Red": (255, 0, 0, 255),
    "Normal": (255, 255, 255, 255),
    "Laser": (0, 255, 0, 255),
    "None": (0, 0, 0, 0),
}

SCENARIO_LAYERS = {
    "Background": ["Blue", "Red"],
    "Eyes": ["Normal", "Laser"],
    "Hat": ["None"],
}


@pytest.fixture
def make_png():
    return png_bytes


@pytest.fixture
def make_zip():
    return zip_bytes


@pytest.fixture
def scenario_store() -> LayerStore:
    """Background {Blue, Red}, Eyes {Normal, Laser}, Hat {None}: 4 combinations."""
    return LayerStore(
        Layer(
            name=name,
            traits=traits,
            images={t: png_bytes(COLORS[t]) for t in traits},
        )
        for name, traits in SCENARIO_LAYERS.items()
    )


@pytest.fixture
def scenario_config() -> GenerationConfig:
    return GenerationConfig(
        layer_order=["Background", "Eyes", "Hat"],
        weights={
            "Background": {"Blue": 50, "Red": 50},
            "Eyes": {"Normal": 70, "Laser": 30},
            "Hat": {"None": 100},
        },
        target_supply=4,
        collection=CollectionInfo(
            name="Example",
            symbol="EXM",
            description="An example collection",
            royalties=5,
            creator="creator-address",
        ),
    )


@pytest.fixture
def scenario_zip() -> bytes:
    return zip_bytes(
        {
            f"{layer}/{trait}.png": png_bytes(COLORS[trait])
            for layer, traits in SCENARIO_LAYERS.items()
            for trait in traits
        }
    )
