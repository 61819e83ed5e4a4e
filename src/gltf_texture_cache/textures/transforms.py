"""
Pixel transforms applied to decoded glTF textures.

Each function is pure: it returns a new image and leaves its inputs intact,
since inputs are shared base images owned by the cache.
"""

from PIL import Image as PILImage
from PIL import ImageChops


def _solid(size: tuple[int, int], value: int) -> PILImage.Image:
    return PILImage.new("L", size, value)


def normal_map(image: PILImage.Image) -> PILImage.Image:
    """
    Repack a tangent-space normal map into the AG layout.

    X moves to alpha and Y stays in green; red and blue are filled with
    white, matching DXT5nm-style sampling.

    Args:
        image: glTF normal map (X in R, Y in G, Z in B)

    Returns:
        RGBA image (255, Y, 255, X)
    """
    r, g, _ = image.convert("RGB").split()
    white = _solid(image.size, 255)
    return PILImage.merge("RGBA", (white, g, white, r))


def metallic_roughness(image: PILImage.Image, roughness_factor: float) -> PILImage.Image:
    """
    Bake a glTF metallic/roughness texture into a metallic/smoothness texture.

    glTF stores roughness in G and metalness in B. The output stores metalness
    in R and smoothness in A, with the roughness factor baked in.

    Args:
        image: glTF metallicRoughnessTexture
        roughness_factor: Material roughnessFactor multiplied into G

    Returns:
        RGBA image (metallic, 0, 0, 255 - roughness * factor)
    """
    _, g, b = image.convert("RGB").split()
    smoothness = g.point(lambda v: 255 - min(255, max(0, round(v * roughness_factor))))
    black = _solid(image.size, 0)
    return PILImage.merge("RGBA", (b, black, black, smoothness))


def occlusion(image: PILImage.Image, *aux_images: PILImage.Image) -> PILImage.Image:
    """
    Move glTF occlusion (R channel) into the G channel.

    The R channel of every auxiliary image is multiplied into the result,
    resized to the base image first when dimensions differ.

    Args:
        image: glTF occlusionTexture
        *aux_images: Extra occlusion sources combined with the base

    Returns:
        RGBA image (255, occlusion, 255, 255)
    """
    ao = image.convert("RGB").getchannel("R")
    for aux in aux_images:
        channel = aux.convert("RGB").getchannel("R")
        if channel.size != ao.size:
            channel = channel.resize(ao.size, PILImage.Resampling.BILINEAR)
        ao = ImageChops.multiply(ao, channel)

    white = _solid(image.size, 255)
    return PILImage.merge("RGBA", (white, ao, white, white))
