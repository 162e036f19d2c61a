"""
envelope3d CLI.

Command-line interface for turning building envelope geometry into 3D scene
descriptions.
"""

from __future__ import annotations

import asyncio
import json
from collections import Counter
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .controller import GeometryVisualizationController
from .core.config import settings
from .core.envelope import CollectionLocator
from .geometry.records import GeometryRecordBuilder
from .utils.logging_config import ensure_logging
from .visualization.palette import rgba_to_hex
from .visualization.scene import JSONSurface, ScenePass

app = typer.Typer(
    name="envelope3d",
    help="Building envelope geometry to 3D scene descriptions",
    add_completion=False,
)
console = Console()


def _print_pass(scene_pass: Optional[ScenePass], messages: List[str], output: Path) -> None:
    for message in messages:
        console.print(f"[yellow]![/yellow] {message}")

    if scene_pass is None:
        console.print("[red]✗[/red] Nothing to render")
        raise typer.Exit(code=1)

    table = Table(title=f"Layers (colored by {scene_pass.attribute or 'nothing'})")
    table.add_column("Layer", style="cyan")
    table.add_column("Kind")
    table.add_column("Color")
    table.add_column("Features", justify="right")
    table.add_column("Visible")
    for layer in scene_pass.layers:
        table.add_row(
            layer.title,
            layer.kind,
            rgba_to_hex(layer.color),
            str(len(layer.records)),
            "yes" if layer.visible else "no",
        )
    console.print(table)

    if scene_pass.camera:
        framing = scene_pass.camera.framing
        console.print(
            f"Camera: target=({framing.target_x:.6f}, {framing.target_y:.6f}) "
            f"zoom={framing.zoom:.1f} tilt={framing.tilt:.0f} heading={framing.heading:.0f}"
        )
    console.print(f"[green]✓[/green] Scene written to {output}")


async def _run_scene(
    output: Path,
    attribute: Optional[str],
    gmlids: Optional[List[str]] = None,
    response: Optional[dict] = None,
) -> tuple[Optional[ScenePass], List[str]]:
    controller = GeometryVisualizationController(surface=JSONSurface(output))
    await controller.mount()
    try:
        if gmlids:
            scene_pass = await controller.lookup_building(gmlids, attribute)
        else:
            scene_pass = await controller.show_response(response, attribute)
        if controller.session is not None:
            await controller.session.wait_camera()
        messages = list(controller.session.messages) if controller.session else []
        return scene_pass, messages
    finally:
        await controller.teardown()


def _load_response(input_file: Path) -> dict:
    if not input_file.exists():
        console.print(f"[red]✗[/red] File not found: {input_file}")
        raise typer.Exit(code=1)
    try:
        return json.loads(input_file.read_text())
    except json.JSONDecodeError as exc:
        console.print(f"[red]✗[/red] Not valid JSON: {exc}")
        raise typer.Exit(code=1)


@app.command()
def scene(
    gmlids: List[str] = typer.Argument(..., help="Building GMLID(s)"),
    attribute: Optional[str] = typer.Option(None, "--attribute", "-a", help="Attribute to color by"),
    output: Path = typer.Option(Path("scene.json"), "--output", "-o", help="Scene JSON output"),
):
    """
    Fetch geometry for one or more buildings and write a scene description.
    """
    ensure_logging()
    console.print(Panel.fit(
        f"[bold blue]envelope3d[/bold blue]\nGMLID(s): {', '.join(gmlids)}",
        border_style="blue",
    ))
    scene_pass, messages = asyncio.run(_run_scene(output, attribute, gmlids=gmlids))
    _print_pass(scene_pass, messages, output)


@app.command()
def render(
    input_file: Path = typer.Argument(..., help="Saved geometry service response (JSON)"),
    attribute: Optional[str] = typer.Option(None, "--attribute", "-a", help="Attribute to color by"),
    output: Path = typer.Option(Path("scene.json"), "--output", "-o", help="Scene JSON output"),
):
    """
    Build a scene description from a saved geometry response.
    """
    ensure_logging()
    response = _load_response(input_file)
    scene_pass, messages = asyncio.run(_run_scene(output, attribute, response=response))
    _print_pass(scene_pass, messages, output)


@app.command()
def attributes(
    input_file: Path = typer.Argument(..., help="Saved geometry service response (JSON)"),
):
    """
    List the attributes available for coloring and their distinct values.
    """
    response = _load_response(input_file)
    located = CollectionLocator().locate_optional(response, settings.primary_collections)
    if located is None:
        console.print(f"[red]✗[/red] None of {', '.join(settings.primary_collections)} found")
        raise typer.Exit(code=1)

    batch = GeometryRecordBuilder().build_records(located.features)
    counts: dict[str, Counter] = {}
    for record in batch.records:
        for name, value in record.attributes.items():
            counts.setdefault(name, Counter())[value] += 1

    table = Table(title=f"{located.name} ({len(batch.records)} features, {len(batch.skipped)} skipped)")
    table.add_column("Attribute", style="cyan")
    table.add_column("Distinct values", justify="right")
    table.add_column("Most common")
    for name, counter in counts.items():
        common = ", ".join(f"{value} ({n})" for value, n in counter.most_common(3))
        table.add_row(name, str(len(counter)), common)
    console.print(table)


@app.command()
def serve(
    port: int = typer.Option(settings.api_port, "--port", "-p", help="Port"),
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
):
    """
    Run the scene REST API.
    """
    import uvicorn

    console.print(f"[green]Scene API running at:[/green] http://{host}:{port}")
    uvicorn.run("envelope3d.api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
