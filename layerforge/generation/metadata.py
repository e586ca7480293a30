"""Metadata documents for generated artifacts and the collection."""

from collections.abc import Sequence
from typing import Any

from ..core.models import CollectionInfo, Combination, ItemMetadata, TraitAttribute


def build_item_metadata(
    index: int,
    combination: Combination,
    layer_order: Sequence[str],
    collection: CollectionInfo,
    image_uri: str = "",
) -> ItemMetadata:
    """Metadata for one artifact. Attributes follow the compositing order."""
    attributes = [
        TraitAttribute(trait_type=layer_name, value=combination[layer_name])
        for layer_name in layer_order
        if layer_name in combination
    ]

    properties: dict[str, Any] = {
        "files": [{"uri": image_uri, "type": "image/png"}] if image_uri else [],
        "category": "image",
        "creators": [{"address": collection.creator, "share": 100, "verified": True}],
    }

    return ItemMetadata(
        name=f"{collection.name} #{index}",
        description=collection.description,
        image=image_uri,
        attributes=attributes,
        properties=properties,
        collection={"name": collection.name, "family": collection.symbol},
    )


def extract_all_attributes(items: Sequence[ItemMetadata]) -> list[TraitAttribute]:
    """Every distinct (trait_type, value) pair, in first-seen order."""
    seen: dict[tuple[str, str], TraitAttribute] = {}
    for item in items:
        for attr in item.attributes:
            seen.setdefault((attr.trait_type, attr.value), attr)
    return list(seen.values())


def build_collection_metadata(
    session_id: str,
    items: Sequence[ItemMetadata],
    collection: CollectionInfo,
) -> dict[str, Any]:
    """Collection-level document uploaded alongside the artifacts.

    Royalties are stored in percent and published as basis points.
    """
    return {
        "name": collection.name,
        "symbol": collection.symbol,
        "description": collection.description,
        "image": items[0].image if items else "",
        "external_url": collection.external_url or "",
        "seller_fee_basis_points": round(collection.royalties * 100),
        "session_id": session_id,
        "attributes": [a.model_dump() for a in extract_all_attributes(items)],
        "properties": {
            "category": "image",
            "files": [{"uri": item.image, "type": "image/png"} for item in items],
            "creators": [{"address": collection.creator, "share": 100}],
        },
        "collection": {"name": collection.name, "family": collection.symbol},
        "items": [item.model_dump(mode="json") for item in items],
    }
