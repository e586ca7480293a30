"""Generate command: run the full pipeline for a layer archive and config."""

import asyncio
import copy
import logging
import time
from pathlib import Path
from threading import Event, Thread

import typer
import yaml
from pydantic import ValidationError
from rich.live import Live
from rich.logging import RichHandler
from rich.spinner import Spinner
from rich.text import Text

from ...config import get_config
from ...core.models import GenerationConfig, GenerationResult, ProgressSnapshot
from ...errors import ConfigurationError, ExtractionError
from ...sessions import SessionManager, validate_layers
from ...storage import LocalStorage
from ..app import app, console, get_json_mode
from ..utils import ExitCode, Output, format_elapsed, load_layer_source

_BAR_WIDTH = 30


def _build_progress_display(snap: ProgressSnapshot | None, elapsed: float) -> Text:
    """Build a Rich Text renderable showing live generation progress."""
    text = Text()
    if snap is None:
        text.append(f"Starting... | {format_elapsed(elapsed)}", style="cyan bold")
        return text

    filled = round(snap.percentage / 100 * _BAR_WIDTH)
    bar = "█" * filled + "░" * (_BAR_WIDTH - filled)

    text.append(
        f"{snap.status.value.capitalize()} | {snap.current}/{snap.total} items | "
        f"{format_elapsed(elapsed)}",
        style="cyan bold",
    )
    text.append("\n\n  ")
    text.append(bar, style="cyan")
    text.append(f" {snap.percentage:>3.0f}%", style="bold")
    if snap.message:
        text.append(f"\n  {snap.message}", style="dim")
    return text


def setup_logging(verbose: bool = False, debug: bool = False):
    """Configure logging for generation."""
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=False)],
        force=True,
    )

    for name in ["layerforge.generation", "layerforge.sessions"]:
        logging.getLogger(name).setLevel(level)


@app.command("generate")
def generate_command(
    source: Path = typer.Argument(
        ..., help="ZIP archive (or unpacked directory) with one folder per layer"
    ),
    config_file: Path = typer.Argument(..., help="Generation config YAML"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Artifact output directory (defaults to config)"
    ),
    base_url: str | None = typer.Option(
        None, "--base-url", help="Base URL for artifact URIs (defaults to file://)"
    ),
    batch_size: int | None = typer.Option(
        None, "--batch-size", min=1, help="Items composited per batch"
    ),
    workers: int | None = typer.Option(
        None, "--workers", "-w", min=1, help="Max compositing threads"
    ),
    resource_mode: str | None = typer.Option(
        None, "--resource-mode", help="Resource tuning mode: auto | manual"
    ),
    seed: int | None = typer.Option(
        None, "--seed", help="Random seed for reproducibility"
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress progress output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detailed logs"),
    debug: bool = typer.Option(
        False, "--debug", help="Show debug-level logs (very verbose)"
    ),
):
    """
    Generate a collection from layers and a config.

    Extracts the layers, validates the config against them, then composites
    and stores every item plus a collection metadata document.

    Example:
        layerforge generate collection.zip collection.yaml
        layerforge generate ./layers collection.yaml -o ./out --seed 42
    """
    setup_logging(verbose=verbose, debug=debug)

    json_mode = get_json_mode()
    out = Output(console=console, json_mode=json_mode)
    start_time = time.time()

    for path in (source, config_file):
        if not path.exists():
            out.error(f"File not found: {path}", exit_code=ExitCode.FILE_NOT_FOUND)
            raise typer.Exit(out.finish())

    if resource_mode is not None and resource_mode not in {"auto", "manual"}:
        out.error("--resource-mode must be 'auto' or 'manual'")
        raise typer.Exit(out.finish())

    # Layers
    try:
        store = load_layer_source(source)
    except ExtractionError as e:
        out.error(str(e))
        raise typer.Exit(out.finish())

    layer_check = validate_layers(store)
    if not layer_check.valid:
        out.validation(layer_check)
        raise typer.Exit(out.finish())
    out.success(f"Extracted {len(store)} layers ({store.total_traits} traits)")

    # Config
    try:
        gen_config = GenerationConfig.from_yaml(config_file)
    except (yaml.YAMLError, ValidationError) as e:
        out.error(f"Failed to load config: {e}")
        raise typer.Exit(out.finish())

    settings = copy.deepcopy(get_config())
    if batch_size is not None:
        settings.generation.batch_size = batch_size
    if workers is not None:
        settings.generation.max_workers = workers
    if resource_mode is not None:
        settings.generation.resource_mode = resource_mode
    if output is not None:
        settings.storage.root = str(output)
    if base_url is not None:
        settings.storage.base_url = base_url

    storage = LocalStorage(settings.storage_dir, settings.storage.base_url or None)
    manager = SessionManager.from_config(settings, storage=storage)
    manager.evict_expired()
    session_id = manager.create_session(store)

    config_check = manager.validate_config(session_id, gen_config)
    out.validation(config_check)
    try:
        session = manager.save_config(session_id, gen_config)
    except ConfigurationError:
        manager.cleanup_session(session_id)
        raise typer.Exit(out.finish())

    out.success(
        f"Session [bold]{session_id}[/bold]: {session.target_supply} items "
        f"from {len(session.layer_order)} layers",
        session_id=session_id,
    )
    if not json_mode:
        console.print(f"Output: {settings.storage_dir}")
        console.print(
            f"Batch size: {manager.pipeline.batch_size} | "
            f"Workers: {manager.pipeline.max_workers}"
        )
        if seed is not None:
            console.print(f"Seed: {seed}")
        console.print()

    # Run
    result: GenerationResult | None = None
    generation_error: Exception | None = None

    def run_generation():
        return asyncio.run(manager.start_generation(session_id, seed=seed))

    if verbose or debug or json_mode or quiet:
        try:
            result = run_generation()
        except Exception as e:
            generation_error = e
    else:
        generation_done = Event()

        def do_generation():
            nonlocal result, generation_error
            try:
                result = run_generation()
            except Exception as e:
                generation_error = e
            finally:
                generation_done.set()

        generation_thread = Thread(target=do_generation, daemon=True)
        generation_thread.start()

        with Live(
            Spinner("dots", text="Starting...", style="cyan"),
            console=console,
            refresh_per_second=4,
            transient=True,
        ) as live:
            while not generation_done.is_set():
                elapsed = time.time() - start_time
                live.update(
                    _build_progress_display(manager.get_progress(session_id), elapsed)
                )
                time.sleep(0.25)

    if generation_error is not None or result is None:
        out.error(
            f"Generation failed: {generation_error}",
            exit_code=ExitCode.GENERATION_ERROR,
        )
        raise typer.Exit(out.finish())

    elapsed = time.time() - start_time

    out.set_data("artifact_count", len(result.artifact_uris))
    out.set_data("metadata_uri", result.metadata_base_uri)
    out.set_data("output_dir", str(settings.storage_dir))
    out.set_data("total_time_seconds", elapsed)

    if not json_mode:
        console.print()
        out.divider()
        console.print("[green]✓[/green] Generation complete")
        out.divider()
        console.print()
        console.print(
            f"Duration: {format_elapsed(elapsed)} ({result.total_supply} items)"
        )
        console.print(f"Metadata: {result.metadata_base_uri}")
        console.print()

    raise typer.Exit(out.finish())
