"""
CLI for the glTF texture cache.

Commands:
- info: Show configuration
- images: List the texture sources of a scene
- resolve: Resolve one texture request and write the result as PNG
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from PIL import Image as PILImage
from PIL import UnidentifiedImageError
from rich.console import Console
from rich.table import Table

from .config import settings
from .errors import TextureCacheError
from .logging import setup_logging
from .textures.base import ExecutionMode, Interpretation, TextureRequestKey

app = typer.Typer(
    name="gltf-texture-cache",
    help="Texture resolution cache for glTF import pipelines",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """glTF Texture Cache - load, convert and cache scene textures once."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_output=settings.log_json)
    logger.debug("CLI initialized with log level: {}", log_level)


@app.command()
def info():
    """Show configuration."""
    logger.debug("Displaying configuration")
    console.print("[bold blue]glTF Texture Cache Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Execution Mode", settings.execution_mode.value)
    table.add_row("Asset Directory", settings.asset_dir)
    table.add_row("Fetch Timeout", f"{settings.fetch_timeout}s")
    table.add_row("Fetch Retries", str(settings.fetch_retries))
    table.add_row("Log Level", settings.log_level)

    console.print(table)


@app.command()
def images(
    scene: Path = typer.Argument(..., help="Path to a .gltf or .glb file"),
):
    """List the texture sources of a scene."""
    from .scene import create_scene_reader

    logger.info("Listing textures of {}", scene)
    try:
        reader = create_scene_reader(scene)
        sources = reader.image_sources()
    except (TextureCacheError, ValueError) as e:
        logger.error("Could not read scene {}: {}", scene, e)
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)

    if not sources:
        console.print("[yellow]Scene has no textures[/]")
        return

    table = Table(title=f"Textures in {scene.name}")
    table.add_column("Index", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("URI")
    table.add_column("MIME Type")
    for source in sources:
        uri = source.uri or "(embedded)"
        if uri.startswith("data:"):
            uri = "(data uri)"
        table.add_row(str(source.index), source.name, uri, source.mime_type or "")
    console.print(table)


def _load_overrides(specs: list[str]) -> dict[str, PILImage.Image]:
    """Parse NAME=PATH override arguments into loaded images."""
    overrides = {}
    for spec in specs:
        name, sep, path = spec.partition("=")
        if not sep or not name or not path:
            raise typer.BadParameter(f"Expected NAME=PATH, got {spec!r}", param_hint="--override")
        try:
            image = PILImage.open(path)
            image.load()
        except (OSError, UnidentifiedImageError) as e:
            raise typer.BadParameter(f"Could not open {path}: {e}", param_hint="--override")
        overrides[name] = image
    return overrides


def _build_key(
    index: int,
    interpretation: Interpretation,
    roughness: float,
    aux: list[int],
) -> TextureRequestKey:
    if interpretation is Interpretation.METALLIC_ROUGHNESS:
        return TextureRequestKey.metallic_roughness(index, roughness)
    if interpretation is Interpretation.OCCLUSION:
        return TextureRequestKey.occlusion(index, tuple(aux))
    return TextureRequestKey(source_index=index, interpretation=interpretation)


@app.command()
def resolve(
    scene: Path = typer.Argument(..., help="Path to a .gltf or .glb file"),
    index: int = typer.Option(..., "--index", "-i", help="Texture index to resolve"),
    interpretation: Interpretation = typer.Option(
        Interpretation.BASE, "--as", "-a", help="How to interpret the texture"
    ),
    roughness: float = typer.Option(
        1.0, "--roughness", "-r", help="Roughness factor for metallic_roughness"
    ),
    aux: Optional[List[int]] = typer.Option(
        None, "--aux", help="Extra texture indices combined into occlusion"
    ),
    override: Optional[List[str]] = typer.Option(
        None, "--override", help="Replace a source image: NAME=PATH"
    ),
    mode: ExecutionMode = typer.Option(
        settings.execution_mode, "--mode", "-m", help="runtime or tooling"
    ),
    output: Path = typer.Option(Path("."), "--output", "-o", help="Directory for the PNG"),
):
    """Resolve one texture request and write the result as PNG."""
    key = _build_key(index, interpretation, roughness, aux or [])
    overrides = _load_overrides(override or [])
    logger.info("Resolving {} from {} (mode={})", key.describe(), scene, mode.value)

    async def run_resolve() -> Path:
        from .assets import TextureAssetStore
        from .scene import create_scene_reader
        from .textures.cache import TextureCache

        reader = create_scene_reader(
            scene, timeout=settings.fetch_timeout, retries=settings.fetch_retries
        )
        asset_store = None
        if mode is ExecutionMode.TOOLING:
            logger.debug("Persisting tooling assets to {}", settings.asset_path)
            asset_store = TextureAssetStore(settings.asset_path)

        async with TextureCache(
            reader, overrides=overrides, execution_mode=mode, asset_store=asset_store
        ) as cache:
            texture = await cache.resolve(key)

            output.mkdir(parents=True, exist_ok=True)
            out_path = output / f"{key.interpretation_name}_{index}.png"
            texture.image.save(out_path, format="PNG")
            logger.debug("Wrote {}", out_path)

            table = Table(title="Cached Textures")
            table.add_column("Request", style="cyan")
            table.add_column("Size", style="green")
            table.add_column("Used")
            table.add_column("External")
            for entry in cache.enumerate_all():
                table.add_row(
                    entry.key.describe(),
                    f"{entry.image.width}x{entry.image.height}",
                    "yes" if entry.used else "no",
                    "yes" if entry.external else "no",
                )
            console.print(table)
        return out_path

    try:
        out_path = asyncio.run(run_resolve())
    except (TextureCacheError, ValueError) as e:
        logger.error("Could not resolve {}: {}", key.describe(), e)
        console.print(f"[red]Error resolving {key.describe()}: {e}[/]")
        raise typer.Exit(1)

    console.print(f"[bold green]Wrote {out_path}[/]")


if __name__ == "__main__":
    app()
