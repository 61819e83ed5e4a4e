"""
Raw image decoding.

Turns encoded image bytes (PNG, JPEG, ...) into a fully loaded Pillow image.
"""

from io import BytesIO

from loguru import logger
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from ..errors import CorruptDataError, UnsupportedFormatError


def decode_image(data: bytes) -> PILImage.Image:
    """
    Decode raw image bytes into an RGB or RGBA image.

    Args:
        data: Encoded image bytes

    Returns:
        A loaded Pillow image, independent of ``data``

    Raises:
        UnsupportedFormatError: If Pillow does not recognise the format
        CorruptDataError: If the data is truncated or otherwise unreadable
    """
    try:
        img = PILImage.open(BytesIO(data))
    except UnidentifiedImageError as e:
        raise UnsupportedFormatError(f"Unrecognised image format: {e}") from e

    try:
        img.load()
    except (OSError, ValueError, SyntaxError) as e:
        raise CorruptDataError(f"Could not decode {img.format} image: {e}") from e

    # Palette images keep their transparency as RGBA
    has_transparency = img.mode in ("RGBA", "LA") or (
        img.mode == "P" and "transparency" in img.info
    )

    if img.mode == "P":
        img = img.convert("RGBA") if has_transparency else img.convert("RGB")
    elif img.mode == "LA":
        img = img.convert("RGBA")
    elif img.mode not in ("RGB", "RGBA", "L"):
        img = img.convert("RGB")

    logger.debug("Decoded image: {}x{} mode={}", img.width, img.height, img.mode)
    return img
