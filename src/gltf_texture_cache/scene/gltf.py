"""
glTF 2.0 scene image reader.

Reads ``.gltf`` (JSON) and ``.glb`` (binary container) documents and resolves
texture indices to encoded image bytes. Images may live in a bufferView, a
``data:`` URI, a file next to the document, or a remote http(s) URL.
"""

import asyncio
import base64
import json
import struct
from pathlib import Path
from urllib.parse import unquote

import httpx
from loguru import logger

from ..errors import SceneFormatError, TextureIOError, TextureNotFoundError
from ..textures.base import ImageSource
from .base import SceneImageReader

GLB_MAGIC = b"glTF"
GLB_CHUNK_JSON = 0x4E4F534A
GLB_CHUNK_BIN = 0x004E4942


class GltfSceneReader(SceneImageReader):
    """Reads texture images out of a glTF document."""

    def __init__(
        self,
        path: Path | str,
        timeout: int = 30,
        retries: int = 3,
        backoff: float = 1.0,
    ):
        """
        Initialize the reader.

        The document is parsed on first access. Async callers should await
        open() first so the file is read off the event loop.

        Args:
            path: Path to a .gltf or .glb file
            timeout: HTTP request timeout in seconds for remote image URIs
            retries: Number of attempts for remote image URIs
            backoff: Base delay in seconds between remote attempts (doubles each retry)
        """
        self.path = Path(path)
        self.base_dir = self.path.parent
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff
        self._document: dict | None = None
        self._glb_bin: bytes | None = None
        self._buffers: dict[int, bytes] = {}
        self._buffer_lock = asyncio.Lock()
        self._document_lock = asyncio.Lock()

    async def open(self) -> None:
        """Read and parse the document in a worker thread."""
        async with self._document_lock:
            if self._document is None:
                self._document = await asyncio.to_thread(self._load_document)

    @property
    def document(self) -> dict:
        """Load and parse the glTF JSON."""
        if self._document is None:
            self._document = self._load_document()
        return self._document

    def _load_document(self) -> dict:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError as e:
            raise TextureNotFoundError(f"Scene not found: {self.path}") from e
        except OSError as e:
            raise TextureIOError(f"Could not read scene {self.path}: {e}") from e

        if raw[:4] == GLB_MAGIC:
            json_bytes, self._glb_bin = self._split_glb(raw)
        else:
            json_bytes = raw

        try:
            document = json.loads(json_bytes)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SceneFormatError(f"Invalid glTF JSON in {self.path}: {e}") from e
        if not isinstance(document, dict):
            raise SceneFormatError(f"glTF root of {self.path} is not an object")

        logger.debug("Loaded scene {} ({} bytes)", self.path.name, len(raw))
        return document

    def _split_glb(self, raw: bytes) -> tuple[bytes, bytes | None]:
        """Split a GLB container into its JSON and BIN chunks."""
        if len(raw) < 20:
            raise SceneFormatError(f"Truncated GLB header in {self.path}")
        _, version, length = struct.unpack_from("<4sII", raw, 0)
        if version != 2:
            raise SceneFormatError(f"Unsupported GLB version {version} in {self.path}")

        json_chunk = None
        bin_chunk = None
        offset = 12
        end = min(length, len(raw))
        while offset + 8 <= end:
            chunk_length, chunk_type = struct.unpack_from("<II", raw, offset)
            chunk = raw[offset + 8 : offset + 8 + chunk_length]
            if len(chunk) != chunk_length:
                raise SceneFormatError(f"Truncated GLB chunk in {self.path}")
            if chunk_type == GLB_CHUNK_JSON and json_chunk is None:
                json_chunk = chunk
            elif chunk_type == GLB_CHUNK_BIN and bin_chunk is None:
                bin_chunk = chunk
            offset += 8 + chunk_length

        if json_chunk is None:
            raise SceneFormatError(f"GLB without JSON chunk: {self.path}")
        return json_chunk, bin_chunk

    def _array(self, name: str) -> list:
        """Get a top-level glTF array such as ``textures`` or ``images``."""
        value = self.document.get(name, [])
        if not isinstance(value, list):
            raise SceneFormatError(f"glTF {name} of {self.path} is not an array")
        return value

    def _entry(self, name: str, position: int, texture_index: int) -> dict:
        entry = self._array(name)[position]
        if not isinstance(entry, dict):
            raise SceneFormatError(
                f"glTF {name}[{position}] is not an object", source_index=texture_index
            )
        return entry

    @staticmethod
    def _field(entry: dict, field: str, kind: type, texture_index: int, default=None):
        """Read an optional property, checking its JSON type."""
        value = entry.get(field)
        if value is None:
            return default
        # bool is an int subclass but never a valid index or length
        if not isinstance(value, kind) or isinstance(value, bool):
            raise SceneFormatError(
                f"glTF property {field!r} must be {kind.__name__}, got {value!r}",
                source_index=texture_index,
            )
        return value

    def _image_entry(self, index: int) -> tuple[int, dict]:
        """Resolve a texture index to (image_index, image_dict)."""
        textures = self._array("textures")
        if not 0 <= index < len(textures):
            raise TextureNotFoundError(f"No texture at index {index}", source_index=index)

        texture = self._entry("textures", index, index)
        image_index = self._field(texture, "source", int, index)
        images = self._array("images")
        if image_index is None or not 0 <= image_index < len(images):
            raise TextureNotFoundError(
                f"Texture {index} references missing image {image_index}",
                source_index=index,
            )
        return image_index, self._entry("images", image_index, index)

    def image_source(self, index: int) -> ImageSource:
        _, image = self._image_entry(index)
        uri = self._field(image, "uri", str, index)

        name = self._field(image, "name", str, index)
        if not name and uri and not uri.startswith("data:"):
            name = Path(unquote(uri)).stem
        if not name:
            name = f"texture_{index}"

        mime_type = self._field(image, "mimeType", str, index)
        return ImageSource(index=index, name=name, uri=uri, mime_type=mime_type)

    def image_sources(self) -> list[ImageSource]:
        return [self.image_source(i) for i in range(len(self._array("textures")))]

    async def read_image_bytes(self, index: int) -> tuple[bytes, str]:
        await self.open()
        source = self.image_source(index)
        _, image = self._image_entry(index)
        view_index = self._field(image, "bufferView", int, index)

        if view_index is not None:
            data = await self._read_buffer_view(view_index, index)
        elif source.uri:
            data = await self._read_uri(source.uri, index)
        else:
            raise SceneFormatError(
                f"Image for texture {index} has neither uri nor bufferView",
                source_index=index,
            )

        logger.debug("Read {} bytes for texture {} ({})", len(data), index, source.name)
        return data, source.name

    async def _read_buffer_view(self, view_index: int, texture_index: int) -> bytes:
        if not 0 <= view_index < len(self._array("bufferViews")):
            raise SceneFormatError(
                f"Missing bufferView {view_index}", source_index=texture_index
            )
        view = self._entry("bufferViews", view_index, texture_index)
        buffer_index = self._field(view, "buffer", int, texture_index, default=0)
        start = self._field(view, "byteOffset", int, texture_index, default=0)
        end = start + self._field(view, "byteLength", int, texture_index, default=-1)
        buffer = await self._buffer(buffer_index, texture_index)
        if start < 0 or end < start or end > len(buffer):
            raise SceneFormatError(
                f"bufferView {view_index} exceeds its buffer", source_index=texture_index
            )
        return buffer[start:end]

    async def _buffer(self, buffer_index: int, texture_index: int) -> bytes:
        async with self._buffer_lock:
            if buffer_index not in self._buffers:
                if not 0 <= buffer_index < len(self._array("buffers")):
                    raise SceneFormatError(
                        f"Missing buffer {buffer_index}", source_index=texture_index
                    )
                entry = self._entry("buffers", buffer_index, texture_index)
                uri = self._field(entry, "uri", str, texture_index)
                if uri is None:
                    if buffer_index != 0 or self._glb_bin is None:
                        raise SceneFormatError(
                            f"Buffer {buffer_index} has no data", source_index=texture_index
                        )
                    self._buffers[buffer_index] = self._glb_bin
                else:
                    self._buffers[buffer_index] = await self._read_uri(uri, texture_index)
            return self._buffers[buffer_index]

    async def _read_uri(self, uri: str, texture_index: int) -> bytes:
        if uri.startswith("data:"):
            header, _, payload = uri.partition(",")
            if not header.endswith(";base64"):
                raise SceneFormatError(
                    "Only base64 data URIs are supported", source_index=texture_index
                )
            try:
                return base64.b64decode(payload, validate=True)
            except ValueError as e:
                raise SceneFormatError(
                    f"Invalid base64 data URI: {e}", source_index=texture_index
                ) from e

        if uri.startswith(("http://", "https://")):
            return await self._fetch(uri, texture_index)

        file_path = self.base_dir / unquote(uri)
        try:
            return await asyncio.to_thread(file_path.read_bytes)
        except FileNotFoundError as e:
            raise TextureNotFoundError(
                f"Image file not found: {file_path}", source_index=texture_index
            ) from e
        except OSError as e:
            raise TextureIOError(
                f"Could not read {file_path}: {e}", source_index=texture_index
            ) from e

    async def _fetch(self, url: str, texture_index: int) -> bytes:
        """Fetch a remote image with exponential backoff."""
        for attempt in range(self.retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url)
                    response.raise_for_status()
                    logger.debug("Fetched image: {} bytes from {}", len(response.content), url[:60])
                    return response.content
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise TextureNotFoundError(
                        f"Image not found at {url}", source_index=texture_index
                    ) from e
                error: httpx.HTTPError = e
            except httpx.HTTPError as e:
                error = e

            if attempt == self.retries - 1:
                logger.warning(
                    "Failed to fetch image after {} attempts: {} - {}", self.retries, url[:60], error
                )
                raise TextureIOError(
                    f"Could not fetch {url}: {error}", source_index=texture_index
                ) from error
            logger.debug("Fetch attempt {} failed, retrying: {}", attempt + 1, error)
            await asyncio.sleep(self.backoff * 2**attempt)

        raise AssertionError("unreachable")
