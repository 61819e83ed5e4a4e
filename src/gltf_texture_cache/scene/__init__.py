"""
Scene reader package.

Provides a factory function to create a reader for a scene document.
"""

from pathlib import Path

from .base import SceneImageReader
from .gltf import GltfSceneReader


def create_scene_reader(
    path: str | Path,
    timeout: int = 30,
    retries: int = 3,
    **kwargs,
) -> SceneImageReader:
    """
    Factory function to create a scene image reader.

    Args:
        path: Path to the scene document (.gltf or .glb)
        timeout: HTTP timeout for remote image URIs
        retries: Attempts for remote image URIs
        **kwargs: Additional reader-specific arguments

    Returns:
        Configured SceneImageReader instance

    Raises:
        ValueError: If the file type is not recognized
    """
    suffix = Path(path).suffix.lower()
    if suffix in (".gltf", ".glb"):
        return GltfSceneReader(path, timeout=timeout, retries=retries, **kwargs)
    else:
        raise ValueError(f"Unknown scene format: {suffix or path}")


__all__ = [
    "SceneImageReader",
    "GltfSceneReader",
    "create_scene_reader",
]
