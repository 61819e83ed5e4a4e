"""
Persisted texture assets for the tooling path.

Saves resolved textures as PNG files and keeps an index describing them,
including which ones must be imported as normal maps.
"""

import asyncio
import hashlib
import json
from pathlib import Path

from loguru import logger
from PIL import Image as PILImage
from pydantic import BaseModel, Field
from rich.console import Console

console = Console()


class TextureAsset(BaseModel):
    """A texture written to the asset directory."""

    id: str = Field(description="Hash-based unique identifier")
    name: str = Field(description="Display name of the source image")
    file_path: str = Field(description="Relative path to the PNG in the asset directory")
    width: int = Field(description="Image width in pixels")
    height: int = Field(description="Image height in pixels")
    texture_type: str = Field(default="default", description="Import hint: 'default' or 'normal'")


class AssetIndex(BaseModel):
    """Index of persisted textures keyed by asset ID."""

    assets: dict[str, TextureAsset] = Field(
        default_factory=dict,
        description="Mapping from asset ID to persisted texture",
    )

    def add_asset(self, asset: TextureAsset) -> None:
        """Add or replace an asset entry."""
        self.assets[asset.id] = asset

    def get_asset(self, asset_id: str) -> TextureAsset | None:
        """Get an asset by ID."""
        return self.assets.get(asset_id)

    def normal_maps(self) -> list[TextureAsset]:
        """Get all assets marked as normal maps."""
        return [a for a in self.assets.values() if a.texture_type == "normal"]


class TextureAssetStore:
    """Writes textures to disk and annotates their import settings."""

    def __init__(self, asset_dir: Path | str):
        """
        Initialize the asset store.

        Args:
            asset_dir: Directory to write persisted textures to
        """
        self.asset_dir = Path(asset_dir)
        self.index_path = self.asset_dir / "index.json"
        self._index: AssetIndex | None = None

        self.asset_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("TextureAssetStore initialized: dir={}", self.asset_dir)

    @property
    def index(self) -> AssetIndex:
        """Load or create the asset index."""
        if self._index is None:
            self._index = self._load_index()
        return self._index

    def _load_index(self) -> AssetIndex:
        """Load the asset index from disk."""
        if self.index_path.exists():
            try:
                data = json.loads(self.index_path.read_text())
                index = AssetIndex.model_validate(data)
                logger.debug("Loaded asset index with {} textures", len(index.assets))
                return index
            except Exception as e:
                logger.warning("Could not load asset index: {}", e)
                console.print(f"[yellow]Warning: Could not load asset index: {e}[/]")
        return AssetIndex()

    def save_index(self) -> None:
        """Save the asset index to disk."""
        self.index_path.write_text(self.index.model_dump_json(indent=2))
        logger.debug("Saved asset index to {}", self.index_path)

    async def persist(
        self, name: str, image: PILImage.Image, source_index: int | None = None
    ) -> TextureAsset:
        """
        Save an image as a PNG asset and record it in the index.

        Image names are not unique within a scene, so the asset ID covers the
        source index as well when one is given.

        Args:
            name: Display name of the source image
            image: Image to write
            source_index: Texture index the image was read from

        Returns:
            TextureAsset describing the written file
        """
        asset_id = self._asset_id(name, source_index)
        file_path = f"{asset_id}.png"
        full_path = self.asset_dir / file_path

        await asyncio.to_thread(image.save, full_path, format="PNG", optimize=True)
        logger.debug("Saved texture {} to {}", name, full_path)

        asset = TextureAsset(
            id=asset_id,
            name=name,
            file_path=file_path,
            width=image.width,
            height=image.height,
        )
        self.index.add_asset(asset)
        self.save_index()
        return asset

    def mark_as_normal_map(self, asset: TextureAsset) -> TextureAsset:
        """
        Annotate a persisted asset so it is imported as a normal map.

        Args:
            asset: Asset returned by persist()

        Returns:
            The updated asset entry
        """
        updated = asset.model_copy(update={"texture_type": "normal"})
        self.index.add_asset(updated)
        self.save_index()
        logger.info("Marked {} as normal map", asset.file_path)
        return updated

    def _asset_id(self, name: str, source_index: int | None) -> str:
        """Generate a hash-based ID from an image name and its source index."""
        key = name if source_index is None else f"{source_index}:{name}"
        return hashlib.sha256(key.encode()).hexdigest()[:16]
