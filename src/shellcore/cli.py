"""
Command-line interface for shellcore.

Provides commands for slicing a mesh into walls and skin and for
inspecting the effective slicer configuration.
"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from shellcore import __version__
from shellcore.core.config import SlicerConfig, build_config, load_config
from shellcore.core.exceptions import ShellCoreError
from shellcore.core.logging import configure_logging
from shellcore.pipeline import SlicePipeline
from shellcore.slicing.mesh_section import load_mesh
from shellcore.slicing.toolpath import ToolpathType

console = Console()


def _effective_config(config_file: Optional[Path], **overrides: object) -> SlicerConfig:
    """Config file (or defaults) with command-line overrides applied."""
    base = load_config(config_file) if config_file else SlicerConfig()
    data = base.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    return build_config(data)


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default="WARNING", help="Minimum log level")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
@click.pass_context
def main(ctx: click.Context, log_level: str, json_logs: bool) -> None:
    """shellcore - Walls and exposure-driven skin for FDM slicing."""
    ctx.ensure_object(dict)
    configure_logging(level=log_level, json_output=json_logs)


# =============================================================================
# Slicing Commands
# =============================================================================


@main.command("slice")
@click.argument("mesh_path", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "config_file", type=click.Path(exists=True, path_type=Path),
              help="YAML slicer configuration")
@click.option("--layer-height", type=float, help="Layer height (mm)")
@click.option("--nozzle-diameter", type=float, help="Nozzle diameter (mm)")
@click.option("--wall-count", type=int, help="Number of walls")
@click.option("--skin-layers", "skin_layer_count", type=int, help="Top/bottom skin layers")
@click.option("--no-exposure", is_flag=True, help="Disable exposure detection")
@click.option("--resolution", type=int, help="Exposure sampling resolution")
@click.option("--workers", type=int, default=None, help="Worker threads")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write layers as JSON")
def slice_mesh(
    mesh_path: Path,
    config_file: Optional[Path],
    layer_height: Optional[float],
    nozzle_diameter: Optional[float],
    wall_count: Optional[int],
    skin_layer_count: Optional[int],
    no_exposure: bool,
    resolution: Optional[int],
    workers: Optional[int],
    output: Optional[Path],
) -> None:
    """Slice a mesh and summarise walls and skin per layer."""
    try:
        config = _effective_config(
            config_file,
            layer_height=layer_height,
            nozzle_diameter=nozzle_diameter,
            wall_count=wall_count,
            skin_layer_count=skin_layer_count,
            exposure_detection_enabled=False if no_exposure else None,
            exposure_detection_resolution=resolution,
        )
        mesh = load_mesh(mesh_path)
        result = SlicePipeline(config, max_workers=workers).slice_mesh(mesh)
    except ShellCoreError as e:
        console.print(f"[red]✗[/red] Slicing failed: {e}")
        raise SystemExit(1)

    if not result.success:
        for error in result.errors:
            console.print(f"[red]✗[/red] {error}")
        raise SystemExit(1)

    table = Table(title=f"Layers: {mesh_path.name}")
    table.add_column("Layer", justify="right", style="cyan")
    table.add_column(ToolpathType.WALL_OUTER.value, justify="right")
    table.add_column(ToolpathType.WALL_INNER.value, justify="right")
    table.add_column(ToolpathType.SKIN.value, justify="right")
    table.add_column("Errors", justify="right")

    for layer in result.layers:
        table.add_row(
            str(layer.layer_index),
            str(layer.count(ToolpathType.WALL_OUTER.value)),
            str(layer.count(ToolpathType.WALL_INNER.value)),
            str(layer.count(ToolpathType.SKIN.value)),
            str(len(layer.errors)) if layer.errors else "-",
        )

    console.print(table)
    console.print(
        f"[green]✓[/green] {result.total_layers} layers, "
        f"{len(result.skin_layers)} with skin"
    )
    for error in result.errors:
        console.print(f"[yellow]⚠[/yellow] {error}")

    if output:
        output.write_text(json.dumps(result.to_dict(), indent=2))
        console.print(f"  Wrote {output}")


# =============================================================================
# Configuration Commands
# =============================================================================


@main.group()
def config() -> None:
    """Configuration commands."""
    pass


@config.command("show")
@click.argument("config_file", required=False, type=click.Path(exists=True, path_type=Path))
def config_show(config_file: Optional[Path]) -> None:
    """Show the effective slicer configuration."""
    try:
        cfg = load_config(config_file) if config_file else SlicerConfig()
    except ShellCoreError as e:
        console.print(f"[red]✗[/red] Failed to load configuration: {e}")
        raise SystemExit(1)

    table = Table(title="Slicer Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in cfg.model_dump().items():
        table.add_row(name, str(value))

    console.print(table)


if __name__ == "__main__":
    main()
