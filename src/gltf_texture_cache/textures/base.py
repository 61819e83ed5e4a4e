"""
Data models for texture resolution.

Provides the request key that identifies one cached output, the cached value
itself, and the enums that parameterize the cache.
"""

from enum import Enum

from PIL import Image as PILImage
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Interpretation(str, Enum):
    """Semantic role a request assigns to a source image."""

    BASE = "base"
    NORMAL = "normal"
    METALLIC_ROUGHNESS = "metallic_roughness"
    OCCLUSION = "occlusion"


class ExecutionMode(str, Enum):
    """Environment the cache is resolving textures for."""

    RUNTIME = "runtime"
    TOOLING = "tooling"


class ImageSource(BaseModel):
    """A raw image referenced by the scene document."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(description="Texture index in the scene document")
    name: str = Field(description="Display name used for override lookup")
    uri: str | None = Field(default=None, description="URI of the image, if not embedded")
    mime_type: str | None = Field(default=None, description="Declared MIME type")


class TextureRequestKey(BaseModel):
    """Identity of one logical texture output.

    Keys are compared field by field, with exact float equality for the
    roughness factor, and hash accordingly so they can be used directly as
    dictionary keys.
    """

    model_config = ConfigDict(frozen=True)

    source_index: int | None = Field(default=None, description="Primary texture index")
    interpretation: Interpretation | str = Field(
        default=Interpretation.BASE,
        union_mode="left_to_right",
        description="How the source image is interpreted",
    )
    roughness_factor: float | None = Field(
        default=None,
        description="Roughness factor baked into metallic/roughness outputs",
    )
    aux_indices: tuple[int, ...] = Field(
        default=(),
        description="Additional texture indices combined into the output",
    )

    @model_validator(mode="before")
    @classmethod
    def _default_roughness(cls, data):
        if isinstance(data, dict):
            if (
                data.get("interpretation") == Interpretation.METALLIC_ROUGHNESS
                and data.get("roughness_factor") is None
            ):
                data = {**data, "roughness_factor": 1.0}
        return data

    @model_validator(mode="after")
    def _check_roughness(self) -> "TextureRequestKey":
        if (
            self.roughness_factor is not None
            and self.interpretation != Interpretation.METALLIC_ROUGHNESS
        ):
            raise ValueError("roughness_factor only applies to metallic_roughness requests")
        return self

    @classmethod
    def base(cls, index: int) -> "TextureRequestKey":
        return cls(source_index=index)

    @classmethod
    def normal(cls, index: int) -> "TextureRequestKey":
        return cls(source_index=index, interpretation=Interpretation.NORMAL)

    @classmethod
    def metallic_roughness(cls, index: int, roughness_factor: float = 1.0) -> "TextureRequestKey":
        return cls(
            source_index=index,
            interpretation=Interpretation.METALLIC_ROUGHNESS,
            roughness_factor=roughness_factor,
        )

    @classmethod
    def occlusion(cls, index: int, aux_indices: tuple[int, ...] = ()) -> "TextureRequestKey":
        return cls(
            source_index=index,
            interpretation=Interpretation.OCCLUSION,
            aux_indices=tuple(aux_indices),
        )

    @property
    def interpretation_name(self) -> str:
        """Plain string form of the interpretation, known or not."""
        if isinstance(self.interpretation, Interpretation):
            return self.interpretation.value
        return str(self.interpretation)

    def describe(self) -> str:
        """Short label for logs and error messages, e.g. ``metallic_roughness(0.5)[2]``."""
        label = self.interpretation_name
        if self.roughness_factor is not None:
            label += f"({self.roughness_factor!r})"
        indices = "?" if self.source_index is None else str(self.source_index)
        if self.aux_indices:
            indices += "+" + ",".join(str(i) for i in self.aux_indices)
        return f"{label}[{indices}]"


class LoadedTexture(BaseModel):
    """A cached texture result.

    ``used`` marks results referenced by the final material graph rather than
    loaded only as an intermediate. ``external`` marks caller-supplied
    overrides, whose images the cache never releases.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: TextureRequestKey
    image: PILImage.Image
    used: bool = True
    external: bool = False

    @property
    def owned(self) -> bool:
        """Whether the cache owns (and must release) the image buffer."""
        return not self.external
