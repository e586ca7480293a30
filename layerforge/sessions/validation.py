"""Generation config validation against a session's extracted layers.

Returns a ValidationResult rather than raising so the caller can show every
problem at once. Errors block saving a config; warnings describe fallbacks
that generation will apply (uniform selection, duplicate items).
"""

from ..core.models import GenerationConfig, LayerStore, ValidationResult
from ..generation.combinations import total_possible_combinations
from ..rarity import validate_weights

MIN_SUPPLY = 1
MAX_SUPPLY = 10_000
MIN_ROYALTIES = 0.0
MAX_ROYALTIES = 25.0

# Weight problems generation can work around
_WEIGHT_WARNINGS = {"ZERO_WEIGHT_SUM", "OUTLIER_WEIGHT"}


def _validate_order(config: GenerationConfig, store: LayerStore, result: ValidationResult) -> None:
    if not config.layer_order:
        result.add_error(
            category="EMPTY_ORDER",
            location="layer_order",
            message="Layer order is empty",
            suggestion="List the layers to composite, bottom layer first",
        )
        return

    seen: set[str] = set()
    for layer_name in config.layer_order:
        if layer_name in seen:
            result.add_error(
                category="DUPLICATE_LAYER",
                location="layer_order",
                message=f'Layer "{layer_name}" appears more than once in the order',
            )
            continue
        seen.add(layer_name)

        layer = store.get(layer_name)
        if layer is None:
            result.add_error(
                category="UNKNOWN_LAYER",
                location="layer_order",
                message=f'Layer "{layer_name}" not found in uploaded layers',
                suggestion=f"Available layers: {', '.join(store.names) or 'none'}",
            )
        elif not layer.is_usable:
            result.add_error(
                category="EMPTY_LAYER",
                location=layer_name,
                message=f'Layer "{layer_name}" has no traits',
            )


def _validate_weights(config: GenerationConfig, store: LayerStore, result: ValidationResult) -> None:
    for layer_name, layer_weights in config.weights.items():
        layer = store.get(layer_name)
        if layer is None:
            result.add_error(
                category="UNKNOWN_LAYER",
                location=f"weights.{layer_name}",
                message=f'Rarity weights given for unknown layer "{layer_name}"',
            )
            continue
        if layer_name not in config.layer_order:
            result.add_warning(
                category="UNUSED_WEIGHTS",
                location=f"weights.{layer_name}",
                message=f'Layer "{layer_name}" has weights but is not in the layer order',
            )

        for trait in layer.traits:
            if trait not in layer_weights:
                result.add_error(
                    category="MISSING_WEIGHT",
                    location=f"weights.{layer_name}",
                    message=f'Trait "{trait}" in layer "{layer_name}" missing rarity weight',
                )
        for trait in layer_weights:
            if trait not in layer.traits:
                result.add_error(
                    category="UNKNOWN_TRAIT",
                    location=f"weights.{layer_name}.{trait}",
                    message=f'Weight given for unknown trait "{trait}" in layer "{layer_name}"',
                )

    for issue in validate_weights(config.weights).errors:
        if issue.category in _WEIGHT_WARNINGS:
            suggestion = issue.suggestion
            if issue.category == "ZERO_WEIGHT_SUM":
                suggestion = "Traits in this layer will be picked uniformly"
            result.add_warning(
                category=issue.category,
                location=issue.location,
                message=issue.message,
                suggestion=suggestion,
                value=issue.value,
            )
        else:
            result.errors.append(issue)

    for layer_name in config.layer_order:
        if layer_name in store and layer_name not in config.weights:
            result.add_warning(
                category="NO_WEIGHTS",
                location=f"weights.{layer_name}",
                message=f'Layer "{layer_name}" has no rarity weights; traits are picked uniformly',
            )


def _validate_supply(config: GenerationConfig, store: LayerStore, result: ValidationResult) -> None:
    supply = config.target_supply
    if not MIN_SUPPLY <= supply <= MAX_SUPPLY:
        result.add_error(
            category="SUPPLY_OUT_OF_RANGE",
            location="target_supply",
            message=f"Supply must be between {MIN_SUPPLY} and {MAX_SUPPLY}",
            value=str(supply),
        )
        return

    if config.layer_order and all(
        store.trait_count(name) > 0 for name in config.layer_order
    ):
        possible = total_possible_combinations(config.layer_order, store)
        if supply > possible:
            result.add_warning(
                category="SUPPLY_EXCEEDS_COMBINATIONS",
                location="target_supply",
                message=(
                    f"Supply {supply} exceeds the {possible} possible combinations; "
                    "some items will be duplicates"
                ),
                suggestion="Add traits or lower the supply",
                value=str(supply),
            )


def _validate_collection(config: GenerationConfig, result: ValidationResult) -> None:
    collection = config.collection
    if not collection.name.strip():
        result.add_error(
            category="MISSING_NAME",
            location="collection.name",
            message="Collection name is required",
        )
    if not collection.symbol.strip():
        result.add_error(
            category="MISSING_SYMBOL",
            location="collection.symbol",
            message="Collection symbol is required",
        )
    if not MIN_ROYALTIES <= collection.royalties <= MAX_ROYALTIES:
        result.add_error(
            category="ROYALTIES_OUT_OF_RANGE",
            location="collection.royalties",
            message=f"Royalties must be between {MIN_ROYALTIES:g} and {MAX_ROYALTIES:g}%",
            value=f"{collection.royalties:g}",
        )


def validate_config(config: GenerationConfig, store: LayerStore) -> ValidationResult:
    """Check a generation config against the layers it will draw from."""
    result = ValidationResult()
    _validate_order(config, store, result)
    _validate_weights(config, store, result)
    _validate_supply(config, store, result)
    _validate_collection(config, result)
    return result
