"""Layer models: the in-memory trait images for one generation session.

A Layer is a named category of mutually exclusive traits (e.g. "Background"),
each trait backed by raw image bytes. A LayerStore holds every layer that was
extracted for a session. It is populated once and read-only afterwards, so it
can be shared between compositing workers without locking.
"""

from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Layer(BaseModel):
    """One named set of mutually exclusive traits and their images."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    traits: list[str] = Field(default_factory=list)
    images: dict[str, bytes] = Field(default_factory=dict, repr=False)

    @field_validator("traits")
    @classmethod
    def _traits_unique(cls, traits: list[str]) -> list[str]:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for trait in traits:
            if trait in seen:
                duplicates.add(trait)
            seen.add(trait)
        if duplicates:
            raise ValueError(f"duplicate trait names: {sorted(duplicates)}")
        return traits

    @property
    def is_usable(self) -> bool:
        """A layer can take part in generation only if it has traits."""
        return len(self.traits) > 0

    def image(self, trait: str) -> bytes | None:
        return self.images.get(trait)

    def missing_images(self) -> list[str]:
        """Traits declared on the layer that have no image bytes."""
        return [t for t in self.traits if t not in self.images]


class LayerStore:
    """Ordered, read-only collection of layers for one session.

    Iteration order is extraction order, which is not necessarily the
    compositing order (that comes from the generation config).
    """

    def __init__(self, layers: Iterable[Layer] = ()):
        self._layers: dict[str, Layer] = {}
        for layer in layers:
            if layer.name in self._layers:
                raise ValueError(f"Duplicate layer name: {layer.name!r}")
            self._layers[layer.name] = layer

    def __contains__(self, name: object) -> bool:
        return name in self._layers

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers.values())

    def __len__(self) -> int:
        return len(self._layers)

    def __getitem__(self, name: str) -> Layer:
        return self._layers[name]

    def __repr__(self) -> str:
        return f"LayerStore({self.names!r})"

    @property
    def names(self) -> list[str]:
        return list(self._layers)

    def get(self, name: str) -> Layer | None:
        return self._layers.get(name)

    def trait_count(self, name: str) -> int:
        layer = self._layers.get(name)
        return len(layer.traits) if layer else 0

    def image(self, layer_name: str, trait: str) -> bytes | None:
        """Image bytes for a trait, or None if the layer or image is missing."""
        layer = self._layers.get(layer_name)
        if layer is None:
            return None
        return layer.image(trait)

    @property
    def total_traits(self) -> int:
        return sum(len(layer.traits) for layer in self._layers.values())

    def summary(self) -> list[dict]:
        """Lightweight description of every layer (no image bytes)."""
        return [
            {"name": layer.name, "traits": list(layer.traits), "count": len(layer.traits)}
            for layer in self._layers.values()
        ]
