"""
Error taxonomy for texture resolution.

Every failure carries the offending source index and interpretation when
they are known, so callers can report which image failed to import.
"""


class TextureCacheError(Exception):
    """Base class for all texture resolution failures."""

    def __init__(
        self,
        message: str,
        source_index: int | None = None,
        interpretation: str | None = None,
    ):
        super().__init__(message)
        self.source_index = source_index
        self.interpretation = interpretation


class TextureNotFoundError(TextureCacheError):
    """A texture or image index does not exist in the scene, or its file is missing."""


class TextureIOError(TextureCacheError):
    """Transient read failure (disk, archive, network). Callers may retry."""


class UnsupportedFormatError(TextureCacheError):
    """Image bytes are not in a format the decoder understands."""


class CorruptDataError(TextureCacheError):
    """Image bytes were recognised but could not be decoded."""


class SceneFormatError(TextureCacheError):
    """The scene document itself is malformed."""


class UnsupportedInterpretationError(TextureCacheError, NotImplementedError):
    """The request names an interpretation the dispatcher does not handle."""


class DuplicateInsertionError(TextureCacheError):
    """A second, different value was written for an already cached key."""


class TextureCacheClosedError(TextureCacheError):
    """The cache was used after teardown."""
