"""
Texture asset persistence package.

Provides PNG persistence and import annotations for the tooling path.
"""

from .store import AssetIndex, TextureAsset, TextureAssetStore

__all__ = [
    "AssetIndex",
    "TextureAsset",
    "TextureAssetStore",
]
