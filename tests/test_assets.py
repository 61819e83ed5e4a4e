"""
Tests for texture asset persistence.

Tests TextureAssetStore, the asset index and normal-map annotation.
"""

import json

import pytest
from PIL import Image

from gltf_texture_cache.assets import AssetIndex, TextureAsset, TextureAssetStore


class TestAssetIndex:
    """Test AssetIndex model."""

    def test_create_empty_index(self):
        """Test creating an empty index."""
        assert AssetIndex().assets == {}

    def test_add_and_get(self):
        """Test adding an asset to the index."""
        index = AssetIndex()
        asset = TextureAsset(id="abc", name="albedo", file_path="abc.png", width=4, height=4)

        index.add_asset(asset)

        assert index.get_asset("abc") == asset
        assert index.get_asset("missing") is None

    def test_normal_maps(self):
        """Test filtering normal-map assets."""
        index = AssetIndex()
        index.add_asset(TextureAsset(id="a", name="a", file_path="a.png", width=1, height=1))
        index.add_asset(
            TextureAsset(
                id="n", name="n", file_path="n.png", width=1, height=1, texture_type="normal"
            )
        )

        assert [a.id for a in index.normal_maps()] == ["n"]


class TestTextureAssetStore:
    """Test TextureAssetStore class."""

    @pytest.fixture
    def store(self, temp_asset_dir):
        """Create a TextureAssetStore for testing."""
        return TextureAssetStore(temp_asset_dir)

    def test_init_creates_directory(self, temp_dir):
        """Test that init creates the asset directory."""
        asset_dir = temp_dir / "new_assets"
        TextureAssetStore(asset_dir)

        assert asset_dir.exists()

    @pytest.mark.asyncio
    async def test_persist_writes_png(self, store, temp_asset_dir):
        """Test that persist writes the image and records it."""
        image = Image.new("RGB", (6, 3), color=(1, 2, 3))

        asset = await store.persist("Rock Normal", image)

        written = Image.open(temp_asset_dir / asset.file_path)
        assert written.size == (6, 3)
        assert asset.width == 6
        assert asset.height == 3
        assert asset.texture_type == "default"
        data = json.loads((temp_asset_dir / "index.json").read_text())
        assert asset.id in data["assets"]

    @pytest.mark.asyncio
    async def test_persist_same_name_same_id(self, store):
        """Test that asset IDs are stable per name."""
        a = await store.persist("albedo", Image.new("RGB", (1, 1)))
        b = await store.persist("albedo", Image.new("RGB", (2, 2)))

        assert a.id == b.id
        assert len(store.index.assets) == 1

    @pytest.mark.asyncio
    async def test_persist_same_name_different_sources(self, store):
        """Test that equal names from different texture indices get separate assets."""
        a = await store.persist("Normal", Image.new("RGB", (1, 1)), source_index=0)
        b = await store.persist("Normal", Image.new("RGB", (1, 1)), source_index=1)

        assert a.id != b.id
        assert a.file_path != b.file_path
        assert len(store.index.assets) == 2

    @pytest.mark.asyncio
    async def test_mark_as_normal_map(self, store, temp_asset_dir):
        """Test that normal-map annotation is saved to the index."""
        asset = await store.persist("normal", Image.new("RGB", (1, 1)))

        updated = store.mark_as_normal_map(asset)

        assert updated.texture_type == "normal"
        reloaded = TextureAssetStore(temp_asset_dir)
        assert reloaded.index.get_asset(asset.id).texture_type == "normal"

    def test_corrupt_index_ignored(self, temp_asset_dir):
        """Test that an unreadable index starts fresh."""
        (temp_asset_dir / "index.json").write_text("{broken")

        store = TextureAssetStore(temp_asset_dir)

        assert store.index.assets == {}
