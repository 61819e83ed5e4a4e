"""Pytest fixtures and configuration for gltf-texture-cache tests.

This module provides shared fixtures for testing the texture cache, scene
readers, asset store and CLI.
"""

import asyncio
import base64
import json
import random
import struct
import tempfile
from collections import Counter
from collections.abc import Generator
from io import BytesIO
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PIL import Image

from gltf_texture_cache.errors import TextureNotFoundError
from gltf_texture_cache.scene.base import SceneImageReader
from gltf_texture_cache.textures.base import ImageSource
from gltf_texture_cache.textures.codec import decode_image


def png_bytes(color=(255, 0, 0), size=(8, 8), mode="RGB") -> bytes:
    """Encode a solid-color image as PNG."""
    img = Image.new(mode, size, color=color)
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def noise_png_bytes(size=(32, 32), seed=7) -> bytes:
    """Encode a random-noise image as PNG (does not compress well)."""
    rng = random.Random(seed)
    img = Image.new("RGB", size)
    img.putdata([(rng.randrange(256), rng.randrange(256), rng.randrange(256)) for _ in range(size[0] * size[1])])
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64," + base64.b64encode(data).decode("ascii")


def build_glb(document: dict, binary: bytes) -> bytes:
    """Pack a glTF JSON document and a BIN chunk into a GLB container."""
    json_chunk = json.dumps(document).encode("utf-8")
    json_chunk += b" " * (-len(json_chunk) % 4)
    binary += b"\x00" * (-len(binary) % 4)
    length = 12 + 8 + len(json_chunk) + 8 + len(binary)
    return (
        struct.pack("<4sII", b"glTF", 2, length)
        + struct.pack("<II", len(json_chunk), 0x4E4F534A)
        + json_chunk
        + struct.pack("<II", len(binary), 0x004E4942)
        + binary
    )


class InMemorySceneReader(SceneImageReader):
    """Scene reader backed by a dict, counting every byte read."""

    def __init__(self, images: dict[int, tuple[str, bytes]], delay: float = 0.0):
        self.images = images
        self.delay = delay
        self.read_calls: Counter = Counter()

    def image_source(self, index: int) -> ImageSource:
        if index not in self.images:
            raise TextureNotFoundError(f"No texture at index {index}", source_index=index)
        return ImageSource(index=index, name=self.images[index][0])

    def image_sources(self) -> list[ImageSource]:
        return [self.image_source(i) for i in sorted(self.images)]

    async def read_image_bytes(self, index: int) -> tuple[bytes, str]:
        source = self.image_source(index)
        self.read_calls[index] += 1
        await asyncio.sleep(self.delay)
        return self.images[index][1], source.name


# --- Temporary Directory Fixtures ---


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def temp_asset_dir(temp_dir: Path) -> Path:
    """Create a temporary directory for persisted textures."""
    asset_dir = temp_dir / "assets"
    asset_dir.mkdir()
    return asset_dir


# --- Sample Data Fixtures ---


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Create sample PNG bytes for testing."""
    return png_bytes(color=(200, 100, 50), size=(16, 16))


@pytest.fixture
def scene_reader() -> InMemorySceneReader:
    """Scene with four textures; reads suspend briefly so requests interleave."""
    return InMemorySceneReader(
        {
            0: ("albedo", png_bytes((255, 0, 0))),
            1: ("normal", png_bytes((128, 64, 255))),
            2: ("orm", png_bytes((100, 60, 200))),
            3: ("ao_detail", png_bytes((128, 0, 0))),
        },
        delay=0.01,
    )


@pytest.fixture
def counting_decoder() -> MagicMock:
    """Decoder that delegates to decode_image and records calls."""
    return MagicMock(side_effect=decode_image)


@pytest.fixture
def gltf_scene(temp_dir: Path) -> Path:
    """Write a .gltf scene with a data URI image and an external file image."""
    (temp_dir / "textures").mkdir()
    (temp_dir / "textures" / "Rock%20Normal.png").write_bytes(b"unused")
    (temp_dir / "textures" / "Rock Normal.png").write_bytes(png_bytes((128, 128, 255)))
    document = {
        "asset": {"version": "2.0"},
        "images": [
            {"uri": data_uri(png_bytes((0, 255, 0))), "name": "Grass"},
            {"uri": "textures/Rock%20Normal.png"},
            {"uri": "textures/missing.png"},
        ],
        "textures": [{"source": 0}, {"source": 1}, {"source": 2}, {"source": 9}],
    }
    path = temp_dir / "scene.gltf"
    path.write_text(json.dumps(document))
    return path


@pytest.fixture
def glb_scene(temp_dir: Path) -> Path:
    """Write a .glb scene whose image lives in the BIN chunk."""
    image = png_bytes((10, 20, 30), size=(4, 2))
    document = {
        "asset": {"version": "2.0"},
        "buffers": [{"byteLength": len(image)}],
        "bufferViews": [{"buffer": 0, "byteOffset": 0, "byteLength": len(image)}],
        "images": [{"bufferView": 0, "mimeType": "image/png"}],
        "textures": [{"source": 0}],
    }
    path = temp_dir / "scene.glb"
    path.write_bytes(build_glb(document, image))
    return path


# --- Settings Override Fixtures ---


@pytest.fixture
def mock_settings(temp_dir: Path, monkeypatch):
    """Override settings with test values."""
    monkeypatch.setenv("ASSET_DIR", str(temp_dir / "assets"))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    from gltf_texture_cache.config import Settings

    return Settings()
