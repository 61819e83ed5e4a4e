"""
Texture resolution package.

Provides request keys, the texture cache, decoding and pixel transforms.
"""

from .base import ExecutionMode, ImageSource, Interpretation, LoadedTexture, TextureRequestKey
from .cache import TextureCache
from .codec import decode_image

__all__ = [
    "ExecutionMode",
    "ImageSource",
    "Interpretation",
    "LoadedTexture",
    "TextureRequestKey",
    "TextureCache",
    "decode_image",
]
