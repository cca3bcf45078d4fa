"""Texture catalog keyed by element type, then texture name."""

import logging
from typing import Any, Dict, Iterable, Optional

from planexport.planner.elements import FloorPlanDocument

from .types import TextureDef

logger = logging.getLogger(__name__)


class TextureCatalog:
    """Lookup of texture definitions supplied by the editor's element catalog."""

    def __init__(self, textures_by_type: Optional[Dict[str, Dict[str, TextureDef]]] = None):
        self._by_type: Dict[str, Dict[str, TextureDef]] = textures_by_type or {}

    @classmethod
    def from_dict(cls, data: Any) -> "TextureCatalog":
        """
        Parse a ``texturesByType`` mapping.

        Entries that are not objects are ignored.
        """
        by_type: Dict[str, Dict[str, TextureDef]] = {}
        if isinstance(data, dict):
            for element_type, textures in data.items():
                if not isinstance(textures, dict):
                    continue
                parsed = {}
                for name, raw in textures.items():
                    texture_def = TextureDef.from_dict(raw)
                    if texture_def is not None:
                        parsed[str(name)] = texture_def
                if parsed:
                    by_type[str(element_type)] = parsed
        return cls(by_type)

    def lookup(self, element_type: Optional[str], texture_key: Optional[str]) -> Optional[TextureDef]:
        if not element_type or not texture_key:
            return None
        return self._by_type.get(element_type, {}).get(texture_key)

    def select(self, types: Iterable[str]) -> "TextureCatalog":
        """Restrict the catalog to the given element types."""
        return TextureCatalog({t: self._by_type[t] for t in types if t in self._by_type})

    @property
    def types(self) -> list:
        return list(self._by_type)

    def __len__(self) -> int:
        return len(self._by_type)


def collect_used_types(document: FloorPlanDocument) -> list:
    """Line and area types present on visible layers."""
    return document.used_types()


def select_catalog(document: FloorPlanDocument, catalog: TextureCatalog) -> TextureCatalog:
    """Reduce a full element catalog to the types the document actually uses."""
    selected = catalog.select(collect_used_types(document))
    logger.debug(f"Selected textures for {len(selected)} of {len(catalog)} element types")
    return selected
