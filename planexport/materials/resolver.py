"""Deduplicating material and texture resolution for one export."""

import asyncio
import logging
from typing import Dict, Optional

from planexport.errors import TextureUnavailableError
from planexport.model_gen.types import RenderMeta

from .catalog import TextureCatalog
from .color import hex_to_linear_factor
from .fetcher import TextureFetcher
from .types import WHITE, Material, MaterialKey, Texture, TextureDef

logger = logging.getLogger(__name__)

DEFAULT_COLOR = 0xD0D0D0

# Kinds whose UVs are rescaled by the texture repeat scales
REPEAT_KINDS = ("wall", "floor")


class MaterialResolver:
    """
    Resolves render metadata to shared Material and Texture resources.

    Both caches map a key to the task creating its resource. The first
    caller for a key starts the task; every later caller awaits the same
    task, so each URI is fetched once and each material built once.
    A resolver is scoped to a single export.
    """

    def __init__(self, catalog: Optional[TextureCatalog] = None, fetcher: Optional[TextureFetcher] = None):
        self.catalog = catalog or TextureCatalog()
        self.fetcher = fetcher or TextureFetcher()
        self._textures: Dict[str, "asyncio.Future[Texture]"] = {}
        self._materials: Dict[MaterialKey, "asyncio.Future[Material]"] = {}
        self._stripped: Dict[int, Material] = {}

    @property
    def texture_count(self) -> int:
        return len(self._textures)

    @property
    def material_count(self) -> int:
        return len(self._materials)

    def texture_def_for(self, meta: RenderMeta) -> Optional[TextureDef]:
        return self.catalog.lookup(meta.element_type, meta.texture_key)

    def uv_repeat_for(self, meta: RenderMeta) -> Optional[tuple]:
        """UV multipliers for a mesh, or None when its UVs stay raw."""
        if meta.kind not in REPEAT_KINDS:
            return None
        texture_def = self.texture_def_for(meta)
        if texture_def is None:
            return None
        return texture_def.repeat_for(meta.extent_u, meta.extent_v)

    def material_key(self, meta: RenderMeta) -> MaterialKey:
        texture_def = self.texture_def_for(meta)
        if texture_def is not None:
            base_color_factor = WHITE
        else:
            base_color_factor = hex_to_linear_factor(meta.color if meta.color is not None else DEFAULT_COLOR)
        normal = texture_def.normal if texture_def is not None else None
        return MaterialKey(
            kind=meta.kind or "default",
            element_type=meta.element_type or "",
            texture_uri=(texture_def.uri or "") if texture_def is not None else "",
            normal_uri=(normal.uri or "") if normal is not None else "",
            base_color_factor=base_color_factor,
            double_sided=meta.double_sided,
        )

    async def get_texture(self, uri: Optional[str]) -> Texture:
        """
        Fetch a texture once per URI.

        Raises:
            TextureUnavailableError: If the URI is missing or cannot be fetched
        """
        if not uri:
            raise TextureUnavailableError("", "Texture URI is missing")

        task = self._textures.get(uri)
        if task is None:
            task = asyncio.ensure_future(self._create_texture(uri))
            self._textures[uri] = task
        return await task

    async def _create_texture(self, uri: str) -> Texture:
        image = await self.fetcher.fetch(uri)
        return Texture(uri=uri, data=image.data, mime_type=image.mime_type)

    async def material_for(self, meta: RenderMeta) -> Material:
        """Resolve the shared material for a mesh's render metadata."""
        key = self.material_key(meta)
        task = self._materials.get(key)
        if task is None:
            task = asyncio.ensure_future(self._create_material(key, self.texture_def_for(meta)))
            self._materials[key] = task
        return await task

    async def _create_material(self, key: MaterialKey, texture_def: Optional[TextureDef]) -> Material:
        material = Material(
            name=key.kind,
            base_color_factor=key.base_color_factor,
            double_sided=key.double_sided,
            key=key,
        )
        if texture_def is None:
            return material

        material.base_color_texture = await self.get_texture(texture_def.uri)
        if texture_def.normal is not None and texture_def.normal.uri:
            material.normal_texture = await self.get_texture(texture_def.normal.uri)
            material.normal_scale = texture_def.normal.scale
        logger.debug(f"Built material {key.kind}/{key.element_type} ({texture_def.uri})")
        return material

    def without_normal_map(self, material: Material) -> Material:
        """Shared variant of a material with its normal map removed."""
        if not material.has_normal_map:
            return material
        stripped = self._stripped.get(id(material))
        if stripped is None:
            stripped = material.without_normal_map()
            self._stripped[id(material)] = stripped
        return stripped

    async def close(self, close_fetcher: bool = True) -> None:
        """Cancel unfinished fetches and optionally close the fetcher."""
        for task in list(self._textures.values()) + list(self._materials.values()):
            if not task.done():
                task.cancel()
        if close_fetcher:
            await self.fetcher.close()
