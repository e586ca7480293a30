"""Layers command: extract and validate a layer archive."""

from pathlib import Path

import typer

from ...errors import ExtractionError
from ...generation import total_possible_combinations
from ...sessions import validate_layers
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, load_layer_source


@app.command("layers")
def layers_command(
    source: Path = typer.Argument(
        ..., help="ZIP archive (or unpacked directory) with one folder per layer"
    ),
):
    """
    Extract layers from an archive and check them.

    Each top-level folder becomes a layer and each image inside it a trait.

    Example:
        layerforge layers collection.zip
        layerforge --json layers ./layers/
    """
    out = Output(console=console, json_mode=get_json_mode())

    if not source.exists():
        out.error(f"File not found: {source}", exit_code=ExitCode.FILE_NOT_FOUND)
        raise typer.Exit(out.finish())

    try:
        store = load_layer_source(source)
    except ExtractionError as e:
        out.error(str(e))
        raise typer.Exit(out.finish())

    total = total_possible_combinations(store.names, store) if len(store) else 0
    out.success(
        f"Extracted {len(store)} layers ({store.total_traits} traits) from {source}",
        layer_count=len(store),
        trait_count=store.total_traits,
        total_combinations=total,
    )

    out.table(
        "Layers",
        ["Layer", "Traits", "Names"],
        [
            [layer.name, str(len(layer.traits)), ", ".join(layer.traits)]
            for layer in store
        ],
        data_key="layers",
    )
    if total:
        out.text(f"Possible combinations (all layers): {total:,}")

    out.validation(validate_layers(store))
    raise typer.Exit(out.finish())
