"""Rarity command: inspect the weights of a generation config."""

import random
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from ...core.models import GenerationConfig
from ...errors import ExtractionError
from ...rarity import layer_rarity, rarity_preview, validate_weights
from ...sessions import validate_config
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, load_layer_source


@app.command("rarity")
def rarity_command(
    config_file: Path = typer.Argument(..., help="Generation config YAML"),
    layers: Path | None = typer.Option(
        None,
        "--layers",
        "-l",
        help="Layer archive or directory to validate the full config against",
    ),
    samples: int = typer.Option(
        1000, "--samples", "-n", min=1, help="Sample size for the tier preview"
    ),
    seed: int | None = typer.Option(
        None, "--seed", help="Random seed for reproducibility"
    ),
):
    """
    Show per-layer rarity and a tier preview for a config's weights.

    Example:
        layerforge rarity collection.yaml
        layerforge rarity collection.yaml --layers collection.zip --seed 7
    """
    out = Output(console=console, json_mode=get_json_mode())

    if not config_file.exists():
        out.error(f"File not found: {config_file}", exit_code=ExitCode.FILE_NOT_FOUND)
        raise typer.Exit(out.finish())

    try:
        config = GenerationConfig.from_yaml(config_file)
    except (yaml.YAMLError, ValidationError) as e:
        out.error(f"Failed to load config: {e}")
        raise typer.Exit(out.finish())

    if layers is not None:
        if not layers.exists():
            out.error(f"File not found: {layers}", exit_code=ExitCode.FILE_NOT_FOUND)
            raise typer.Exit(out.finish())
        try:
            store = load_layer_source(layers)
        except ExtractionError as e:
            out.error(str(e))
            raise typer.Exit(out.finish())
        out.validation(validate_config(config, store))
    else:
        out.validation(validate_weights(config.weights))

    out.success(
        f"Loaded weights for {len(config.weights)} layers from {config_file}",
        config=str(config_file),
        layer_count=len(config.weights),
    )

    layer_names = [n for n in config.layer_order if n in config.weights]
    layer_names += [n for n in config.weights if n not in layer_names]

    rarity_data = {}
    for layer_name in layer_names:
        rows = layer_rarity(config.weights[layer_name])
        rarity_data[layer_name] = rows
        if not out.json_mode:
            out.table(
                f"Rarity: {layer_name}",
                ["Trait", "Weight", "Rarity"],
                [[r["trait"], f"{r['weight']:g}", f"{r['rarity']:.1f}%"] for r in rows],
            )
    out.set_data("rarity", rarity_data)

    preview = rarity_preview(config.weights, sample_size=samples, rng=random.Random(seed))
    out.table(
        "Tier Preview",
        ["Tier", "Count", "Share"],
        [
            [t["tier"], str(t["count"]), f"{t['percentage']:.1f}%"]
            for t in preview["rarity_distribution"]
        ],
        data_key="tiers",
    )
    out.text(
        f"Combinations: {preview['total_combinations']:,} "
        f"(sampled {samples:,} draws)"
    )
    out.set_data("total_combinations", preview["total_combinations"])
    out.set_data("estimated_unique", preview["estimated_unique"])

    raise typer.Exit(out.finish())
