"""
Texture resolution cache.

Loads each raw image at most once, applies each interpretation transform at
most once, and hands every caller of the same request the same
LoadedTexture. Concurrent requests for one key share a single in-flight task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, ValuesView
from typing import TYPE_CHECKING

from loguru import logger
from PIL import Image as PILImage

from ..errors import (
    DuplicateInsertionError,
    TextureCacheClosedError,
    TextureCacheError,
    TextureNotFoundError,
    UnsupportedInterpretationError,
)
from . import transforms
from .base import ExecutionMode, Interpretation, LoadedTexture, TextureRequestKey
from .codec import decode_image

if TYPE_CHECKING:
    from ..assets import TextureAssetStore
    from ..scene import SceneImageReader


def _consume_exception(task: asyncio.Task) -> None:
    # Failures are re-raised to awaiting callers; this only silences
    # "exception was never retrieved" when every caller went away.
    if not task.cancelled():
        task.exception()


class TextureCache:
    """Resolves texture requests for one scene, caching every result."""

    def __init__(
        self,
        reader: SceneImageReader,
        overrides: Mapping[str, PILImage.Image | None] | None = None,
        execution_mode: ExecutionMode | str = ExecutionMode.RUNTIME,
        asset_store: TextureAssetStore | None = None,
        decoder: Callable[[bytes], PILImage.Image] = decode_image,
    ):
        """
        Initialize the texture cache.

        Args:
            reader: Scene collaborator that maps texture indices to names and bytes
            overrides: Images supplied by the caller, keyed by source display name
            execution_mode: "runtime" transforms in memory; "tooling" persists
                normal maps through the asset store instead
            asset_store: Persistence for the tooling path
            decoder: Function decoding raw image bytes

        Raises:
            ValueError: If tooling mode is requested without an asset store
        """
        self.reader = reader
        self.execution_mode = ExecutionMode(execution_mode)
        if self.execution_mode is ExecutionMode.TOOLING and asset_store is None:
            raise ValueError("Tooling mode requires an asset store")
        self.asset_store = asset_store
        self.decoder = decoder

        self._overrides: dict[str, PILImage.Image] = {
            name: image for name, image in (overrides or {}).items() if image is not None
        }
        self._textures: dict[TextureRequestKey, LoadedTexture] = {}
        self._pending: dict[TextureRequestKey, asyncio.Task[LoadedTexture]] = {}
        self._closed = False

        logger.debug(
            "TextureCache initialized: mode={}, overrides={}",
            self.execution_mode.value,
            len(self._overrides),
        )

    def __len__(self) -> int:
        return len(self._textures)

    def __contains__(self, key: object) -> bool:
        return key in self._textures

    async def __aenter__(self) -> TextureCache:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.teardown()

    @property
    def closed(self) -> bool:
        return self._closed

    async def resolve(self, key: TextureRequestKey, used: bool = True) -> LoadedTexture:
        """
        Return the texture for a request, loading and converting it if needed.

        Args:
            key: Identity of the requested output
            used: Whether the caller references the result from the final
                material graph. Only the first resolution of a key decides
                the flag.

        Returns:
            The cached LoadedTexture; every caller of one key gets the same instance

        Raises:
            TextureCacheError: Any failure from the scene reader, decoder or
                dispatcher, unchanged. Nothing is cached on failure.
        """
        if self._closed:
            raise TextureCacheClosedError(
                f"Cannot resolve {key.describe()}: cache was torn down",
                source_index=key.source_index,
                interpretation=key.interpretation_name,
            )

        cached = self._textures.get(key)
        if cached is not None:
            return cached

        task = self._pending.get(key)
        if task is None:
            logger.debug("Resolving {}", key.describe())
            task = asyncio.create_task(self._load(key, used), name=f"resolve {key.describe()}")
            task.add_done_callback(_consume_exception)
            self._pending[key] = task
        else:
            logger.debug("Joining in-flight resolve of {}", key.describe())

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if self._closed and task.cancelled():
                raise TextureCacheClosedError(
                    f"Resolve of {key.describe()} aborted by teardown",
                    source_index=key.source_index,
                    interpretation=key.interpretation_name,
                ) from None
            raise

    async def _load(self, key: TextureRequestKey, used: bool) -> LoadedTexture:
        """Run the one load sequence for a key: override, then dispatch, then insert."""
        try:
            await self.reader.open()
            texture = self._try_override(key, used)
            if texture is None:
                texture = await self._dispatch(key, used)
            return self._insert(texture)
        except Exception as e:
            if isinstance(e, TextureCacheError):
                if e.source_index is None:
                    e.source_index = key.source_index
                if e.interpretation is None:
                    e.interpretation = key.interpretation_name
            logger.warning("Failed to resolve {}: {}", key.describe(), e)
            raise
        finally:
            self._pending.pop(key, None)

    def _try_override(self, key: TextureRequestKey, used: bool) -> LoadedTexture | None:
        """Use a caller-supplied image for the key's source, if one is mapped."""
        if key.source_index is None or not self._overrides:
            return None

        name = self.reader.image_source(key.source_index).name
        image = self._overrides.get(name)
        if image is None:
            return None

        logger.info("use external: {}", name)
        return LoadedTexture(key=key, image=image, used=used, external=True)

    async def _dispatch(self, key: TextureRequestKey, used: bool) -> LoadedTexture:
        """Produce a texture by interpretation."""
        interpretation = key.interpretation

        if interpretation == Interpretation.BASE:
            image, _ = await self._decode_source(self._source_index(key))
            return LoadedTexture(key=key, image=image, used=used)

        elif interpretation == Interpretation.NORMAL:
            if self.execution_mode is ExecutionMode.TOOLING:
                return await self._persist_normal_map(key)
            base = await self._resolve_base(self._source_index(key))
            converted = await asyncio.to_thread(transforms.normal_map, base.image)
            return LoadedTexture(key=key, image=converted, used=True)

        elif interpretation == Interpretation.METALLIC_ROUGHNESS:
            # Bake roughnessFactor into the texture
            base = await self._resolve_base(self._source_index(key))
            converted = await asyncio.to_thread(
                transforms.metallic_roughness, base.image, key.roughness_factor
            )
            return LoadedTexture(key=key, image=converted, used=True)

        elif interpretation == Interpretation.OCCLUSION:
            indices = (self._source_index(key), *key.aux_indices)
            bases = await asyncio.gather(*(self._resolve_base(i) for i in indices))
            converted = await asyncio.to_thread(
                transforms.occlusion, bases[0].image, *(b.image for b in bases[1:])
            )
            return LoadedTexture(key=key, image=converted, used=True)

        raise UnsupportedInterpretationError(
            f"Unsupported interpretation: {key.interpretation_name!r}",
            source_index=key.source_index,
            interpretation=key.interpretation_name,
        )

    def _source_index(self, key: TextureRequestKey) -> int:
        if key.source_index is None:
            raise TextureNotFoundError(
                f"Request {key.describe()} has no source index",
                interpretation=key.interpretation_name,
            )
        return key.source_index

    async def _resolve_base(self, index: int) -> LoadedTexture:
        """Resolve the shared base image that derived textures are computed from."""
        return await self.resolve(TextureRequestKey.base(index), used=False)

    async def _decode_source(self, index: int) -> tuple[PILImage.Image, str]:
        data, name = await self.reader.read_image_bytes(index)
        image = await asyncio.to_thread(self.decoder, data)
        logger.debug("Decoded texture {} ({}): {}x{}", index, name, image.width, image.height)
        return image, name

    async def _persist_normal_map(self, key: TextureRequestKey) -> LoadedTexture:
        """Tooling path: persist the raw image and annotate it as a normal map."""
        image, name = await self._decode_source(self._source_index(key))
        asset = await self.asset_store.persist(name, image, source_index=key.source_index)
        self.asset_store.mark_as_normal_map(asset)
        return LoadedTexture(key=key, image=image, used=True)

    def _insert(self, texture: LoadedTexture) -> LoadedTexture:
        """Append a texture to the table. The first writer for a key wins."""
        key = texture.key
        if self._closed:
            if texture.owned:
                texture.image.close()
            raise TextureCacheClosedError(
                f"Discarded {key.describe()}: cache was torn down while it loaded",
                source_index=key.source_index,
                interpretation=key.interpretation_name,
            )

        existing = self._textures.get(key)
        if existing is not None:
            if existing.image is texture.image and existing.external == texture.external:
                return existing
            raise DuplicateInsertionError(
                f"{key.describe()} is already cached with a different image",
                source_index=key.source_index,
                interpretation=key.interpretation_name,
            )

        self._textures[key] = texture
        logger.debug(
            "Cached {} (used={}, external={})", key.describe(), texture.used, texture.external
        )
        return texture

    def enumerate_all(self) -> ValuesView[LoadedTexture]:
        """
        Snapshot of every cached texture.

        The returned view iterates lazily, can be iterated repeatedly, and is
        unaffected by later resolves.
        """
        return dict(self._textures).values()

    def used_textures(self) -> list[LoadedTexture]:
        """
        Cached textures referenced by the final material graph.

        The result depends on request order. A Base first decoded as the
        intermediate of a derived texture keeps ``used=False`` even if it is
        requested directly afterwards.
        """
        return [t for t in self._textures.values() if t.used]

    def teardown(self) -> None:
        """
        Release every owned image and close the cache.

        External (override) images are left to their owner. Calling this more
        than once is a no-op.
        """
        if self._closed:
            logger.debug("TextureCache already torn down")
            return
        self._closed = True

        for task in list(self._pending.values()):
            task.cancel()
        self._pending.clear()

        released: set[int] = set()
        for texture in self._textures.values():
            if texture.owned and id(texture.image) not in released:
                released.add(id(texture.image))
                texture.image.close()

        logger.debug(
            "TextureCache torn down: {} entries, {} images released",
            len(self._textures),
            len(released),
        )
        self._textures.clear()
