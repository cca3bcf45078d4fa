"""Data types for the material and texture resolver."""

import math
from dataclasses import dataclass, field, replace
from typing import Any, NamedTuple, Optional, Tuple

from .color import ColorFactor

WHITE: ColorFactor = (1.0, 1.0, 1.0, 1.0)


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


@dataclass(frozen=True)
class NormalMapDef:
    """Normal map attached to a catalog texture."""

    uri: Optional[str] = None
    scale_x: Optional[float] = None
    scale_y: Optional[float] = None

    @property
    def scale(self) -> float:
        """Average of both axes when both are set, else X alone, else 1."""
        if self.scale_x is not None and self.scale_y is not None:
            return (self.scale_x + self.scale_y) / 2
        if self.scale_x is not None:
            return self.scale_x
        return 1.0

    @classmethod
    def from_dict(cls, data: Any) -> Optional["NormalMapDef"]:
        if not isinstance(data, dict):
            return None
        uri = data.get("uri")
        if not isinstance(uri, str) or not uri:
            return None
        return cls(
            uri=uri,
            scale_x=_finite(data.get("normalScaleX")),
            scale_y=_finite(data.get("normalScaleY")),
        )


@dataclass(frozen=True)
class TextureDef:
    """One named texture of a catalog element type."""

    uri: Optional[str] = None
    normal: Optional[NormalMapDef] = None
    length_repeat_scale: Optional[float] = None
    height_repeat_scale: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["TextureDef"]:
        if not isinstance(data, dict):
            return None
        uri = data.get("uri")
        return cls(
            uri=uri if isinstance(uri, str) and uri else None,
            normal=NormalMapDef.from_dict(data.get("normal")),
            length_repeat_scale=_finite(data.get("lengthRepeatScale")),
            height_repeat_scale=_finite(data.get("heightRepeatScale")),
        )

    def repeat_for(self, extent_u: Optional[float], extent_v: Optional[float]) -> Tuple[float, float]:
        """UV multipliers that tile the texture at real-world density."""

        def factor(extent: Optional[float], scale: Optional[float]) -> float:
            if extent is None or scale is None:
                return 1.0
            value = extent * scale
            return value if math.isfinite(value) and value != 0 else 1.0

        return (
            factor(extent_u, self.length_repeat_scale),
            factor(extent_v, self.height_repeat_scale),
        )


@dataclass
class Texture:
    """Image resource shared by every material that references its URI."""

    uri: str
    data: bytes
    mime_type: Optional[str] = None

    @property
    def name(self) -> str:
        if self.uri.startswith("data:"):
            return "texture"
        return self.uri.rstrip("/").split("/")[-1].split("?")[0] or "texture"

    @property
    def byte_length(self) -> int:
        return len(self.data)


class MaterialKey(NamedTuple):
    """Identity of a resolved material; equal keys share one Material."""

    kind: str
    element_type: str
    texture_uri: str
    normal_uri: str
    base_color_factor: ColorFactor
    double_sided: bool


@dataclass(eq=False)
class Material:
    """PBR material ready for serialization."""

    name: str
    base_color_factor: ColorFactor = WHITE
    base_color_texture: Optional[Texture] = None
    normal_texture: Optional[Texture] = None
    normal_scale: Optional[float] = None
    double_sided: bool = False
    metallic: float = 0.0
    roughness: float = 1.0
    key: Optional[MaterialKey] = field(default=None, repr=False)

    @property
    def has_normal_map(self) -> bool:
        return self.normal_texture is not None

    def without_normal_map(self) -> "Material":
        key = self.key._replace(normal_uri="") if self.key is not None else None
        return replace(self, normal_texture=None, normal_scale=None, key=key)
