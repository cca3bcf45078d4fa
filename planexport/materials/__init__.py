"""Materials and textures for floor-plan exports.

Maps per-mesh render metadata plus the editor's texture catalog to
deduplicated PBR materials and embedded texture images.

Usage:
    from planexport.materials import MaterialResolver, TextureCatalog

    resolver = MaterialResolver(TextureCatalog.from_dict(textures_by_type))
    material = await resolver.material_for(mesh.meta)
"""

from .catalog import TextureCatalog, collect_used_types, select_catalog
from .color import hex_to_linear_factor, srgb_to_linear
from .fetcher import FetchedImage, TextureFetcher, guess_mime_type, read_data_uri, sniff_mime_type
from .resolver import MaterialResolver
from .types import Material, MaterialKey, NormalMapDef, Texture, TextureDef

__all__ = [
    # Core types
    "Material",
    "MaterialKey",
    "Texture",
    "TextureDef",
    "NormalMapDef",
    # Catalog
    "TextureCatalog",
    "collect_used_types",
    "select_catalog",
    # Fetching
    "TextureFetcher",
    "FetchedImage",
    "read_data_uri",
    "guess_mime_type",
    "sniff_mime_type",
    # Resolution
    "MaterialResolver",
    # Color
    "srgb_to_linear",
    "hex_to_linear_factor",
]
