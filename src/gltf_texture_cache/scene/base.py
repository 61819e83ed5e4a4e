"""
Abstract base class for scene image readers.

Enables reading image bytes from glTF files, archives, or other scene formats.
"""

from abc import ABC, abstractmethod

from ..textures.base import ImageSource


class SceneImageReader(ABC):
    """Abstract interface mapping scene texture indices to raw image data."""

    async def open(self) -> None:
        """Load the scene document if the reader needs to. Safe to call repeatedly."""

    @abstractmethod
    def image_source(self, index: int) -> ImageSource:
        """
        Describe the image behind a texture index without reading its bytes.

        Args:
            index: Texture index in the scene document

        Returns:
            ImageSource with the resolved display name

        Raises:
            TextureNotFoundError: If the index does not exist
        """
        pass

    @abstractmethod
    def image_sources(self) -> list[ImageSource]:
        """Describe every texture in the scene, in index order."""
        pass

    @abstractmethod
    async def read_image_bytes(self, index: int) -> tuple[bytes, str]:
        """
        Read the encoded bytes of the image behind a texture index.

        Args:
            index: Texture index in the scene document

        Returns:
            Tuple of (encoded_bytes, display_name)

        Raises:
            TextureNotFoundError: If the index or its backing file does not exist
            TextureIOError: If reading or fetching the bytes failed
        """
        pass
