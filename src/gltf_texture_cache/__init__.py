"""
glTF Texture Cache.

Resolves glTF textures for an import pipeline: each raw image is decoded at
most once, each interpretation (normal map, metallic/roughness bake,
occlusion bake) is converted at most once, and concurrent identical requests
share one load.

Usage:
    # List textures in a scene
    gltf-texture-cache images model.glb

    # Resolve a normal map
    gltf-texture-cache resolve model.glb --index 2 --as normal
"""

__version__ = "0.1.0"

from .errors import TextureCacheError
from .scene import GltfSceneReader, SceneImageReader, create_scene_reader
from .textures import (
    ExecutionMode,
    ImageSource,
    Interpretation,
    LoadedTexture,
    TextureCache,
    TextureRequestKey,
)

__all__ = [
    "ExecutionMode",
    "GltfSceneReader",
    "ImageSource",
    "Interpretation",
    "LoadedTexture",
    "SceneImageReader",
    "TextureCache",
    "TextureCacheError",
    "TextureRequestKey",
    "create_scene_reader",
]
