"""Floor Plan Reader

Normalizes a floor-plan JSON document (as produced by the planner editor)
into typed records. Collections may be encoded either as ordered lists or as
id-keyed mappings; numeric properties may be bare numbers or ``{"length": n}``
objects. Malformed values fall back to documented defaults rather than
aborting the layer.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

from planexport.errors import InvalidDocumentError

from .elements import Area, FloorPlanDocument, Hole, Item, Layer, Line, Vertex

logger = logging.getLogger(__name__)


DEFAULT_WALL_HEIGHT = 300.0
DEFAULT_WALL_THICKNESS = 20.0
DEFAULT_HOLE_WIDTH = 90.0
DEFAULT_HOLE_HEIGHT = 210.0
DEFAULT_HOLE_ALTITUDE = 0.0
DEFAULT_ITEM_WIDTH = 80.0
DEFAULT_ITEM_DEPTH = 80.0
DEFAULT_ITEM_HEIGHT = 80.0

DEFAULT_FLOOR_COLOR = 0xDCDCDC
DEFAULT_ITEM_COLOR = 0xCFCFCF


def normalize_map_or_list(value: Any) -> List[Any]:
    """Return the entries of a list or the values of a mapping, in order."""
    if not value:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return list(value.values())
    return []


def to_finite(value: Any) -> Optional[float]:
    """Coerce a number or numeric string to a finite float, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        try:
            num = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return num if math.isfinite(num) else None


def optional_length_prop(properties: Any, name: str) -> Optional[float]:
    """Read a length property given as a number or ``{"length": n}``."""
    if not isinstance(properties, dict):
        return None
    raw = properties.get(name)
    if raw is None:
        return None
    if isinstance(raw, dict):
        return to_finite(raw.get("length"))
    return to_finite(raw)


def length_prop(properties: Any, name: str, fallback: float) -> float:
    value = optional_length_prop(properties, name)
    return fallback if value is None else value


def parse_hex_color(value: Any, fallback: int) -> int:
    """Parse ``0xRRGGBB`` integers or ``"#rrggbb"`` strings."""
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if not isinstance(value, str):
        return fallback
    trimmed = value.strip()
    if not trimmed.startswith("#") or len(trimmed) != 7:
        return fallback
    try:
        return int(trimmed[1:], 16)
    except ValueError:
        return fallback


def texture_key(value: Any) -> Optional[str]:
    if isinstance(value, str) and value and value != "none":
        return value
    return None


def _id_of(entry: Dict[str, Any], key: Any = None) -> str:
    raw = entry.get("id")
    if raw is None:
        raw = key
    return "" if raw is None else str(raw)


def _entries(value: Any):
    """Yield ``(entry, mapping_key)`` pairs for dict entries of a list or mapping."""
    if isinstance(value, dict):
        pairs = value.items()
    else:
        pairs = ((None, entry) for entry in normalize_map_or_list(value))
    for key, entry in pairs:
        if isinstance(entry, dict):
            yield entry, key


def _id_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _properties(entry: Dict[str, Any]) -> Dict[str, Any]:
    """The entry's ``properties`` object; anything else reads as no properties."""
    props = entry.get("properties")
    return props if isinstance(props, dict) else {}


def _display_name(entry: Dict[str, Any], element_id: str, fallback: str) -> str:
    for candidate in (entry.get("name"), entry.get("type"), element_id):
        if isinstance(candidate, str) and candidate:
            return candidate
    return fallback


class PlanReader:
    """Reads planner scene documents into a FloorPlanDocument."""

    def __init__(
        self,
        default_wall_height: float = DEFAULT_WALL_HEIGHT,
        default_wall_thickness: float = DEFAULT_WALL_THICKNESS,
        default_hole_width: float = DEFAULT_HOLE_WIDTH,
        default_hole_height: float = DEFAULT_HOLE_HEIGHT,
        default_hole_altitude: float = DEFAULT_HOLE_ALTITUDE,
        default_item_width: float = DEFAULT_ITEM_WIDTH,
        default_item_depth: float = DEFAULT_ITEM_DEPTH,
        default_item_height: float = DEFAULT_ITEM_HEIGHT,
    ):
        self.default_wall_height = default_wall_height
        self.default_wall_thickness = default_wall_thickness
        self.default_hole_width = default_hole_width
        self.default_hole_height = default_hole_height
        self.default_hole_altitude = default_hole_altitude
        self.default_item_width = default_item_width
        self.default_item_depth = default_item_depth
        self.default_item_height = default_item_height

    def read(self, document: Any) -> FloorPlanDocument:
        """
        Normalize a decoded scene document.

        Args:
            document: Mapping with a ``layers`` collection

        Returns:
            FloorPlanDocument with typed, defaulted layers

        Raises:
            InvalidDocumentError: If the document is not a mapping
        """
        if not isinstance(document, dict):
            raise InvalidDocumentError("Floor plan document must be a JSON object")

        layers = []
        for entry, key in _entries(document.get("layers")):
            layers.append(self._read_layer(entry, key))

        logger.debug(f"Read {len(layers)} layers")
        return FloorPlanDocument(layers=layers)

    def read_json(self, text: str) -> FloorPlanDocument:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidDocumentError(f"Invalid JSON: {e}") from e
        return self.read(document)

    def read_file(self, path: str | Path) -> FloorPlanDocument:
        """Read a scene JSON file from disk."""
        with open(path, "r", encoding="utf-8") as f:
            return self.read_json(f.read())

    def _read_layer(self, entry: Dict[str, Any], key: Any) -> Layer:
        layer_id = _id_of(entry, key)
        altitude = to_finite(entry.get("altitude"))
        layer = Layer(
            id=layer_id,
            altitude=altitude if altitude is not None else 0.0,
            visible=entry.get("visible") is not False,
        )

        for raw, raw_key in _entries(entry.get("vertices")):
            vertex = self._read_vertex(raw, raw_key)
            if vertex is not None:
                layer.vertices.append(vertex)
        for raw, raw_key in _entries(entry.get("lines")):
            layer.lines.append(self._read_line(raw, raw_key))
        for raw, raw_key in _entries(entry.get("holes")):
            layer.holes.append(self._read_hole(raw, raw_key))
        for raw, raw_key in _entries(entry.get("areas")):
            layer.areas.append(self._read_area(raw, raw_key))
        for raw, raw_key in _entries(entry.get("items")):
            layer.items.append(self._read_item(raw, raw_key))

        layer.index()
        # Entries without an id cannot be referenced
        layer.vertices_by_id.pop("", None)
        layer.lines_by_id.pop("", None)
        layer.holes_by_id.pop("", None)
        layer.areas_by_id.pop("", None)
        return layer

    def _read_vertex(self, raw: Dict[str, Any], key: Any) -> Optional[Vertex]:
        vertex_id = _id_of(raw, key)
        x = to_finite(raw.get("x"))
        y = to_finite(raw.get("y"))
        if x is None or y is None:
            logger.warning(f"Dropping vertex {vertex_id or '?'} with non-finite coordinates")
            return None
        return Vertex(id=vertex_id, x=x, y=y)

    def _read_line(self, raw: Dict[str, Any], key: Any) -> Line:
        line_id = _id_of(raw, key)
        props = _properties(raw)
        return Line(
            id=line_id,
            type=raw.get("type") if isinstance(raw.get("type"), str) else "",
            name=_display_name(raw, line_id, "wall"),
            vertices=_id_list(raw.get("vertices")),
            holes=_id_list(raw.get("holes")),
            height=length_prop(props, "height", self.default_wall_height),
            thickness=length_prop(props, "thickness", self.default_wall_thickness),
            texture_key=texture_key(props.get("textureB")) or texture_key(props.get("textureA")),
        )

    def _read_hole(self, raw: Dict[str, Any], key: Any) -> Hole:
        hole_id = _id_of(raw, key)
        props = _properties(raw)
        line_ref = raw.get("line")
        return Hole(
            id=hole_id,
            type=raw.get("type") if isinstance(raw.get("type"), str) else "",
            name=_display_name(raw, hole_id, "hole"),
            line=None if line_ref is None else str(line_ref),
            offset=to_finite(raw.get("offset")),
            width=length_prop(props, "width", self.default_hole_width),
            height=length_prop(props, "height", self.default_hole_height),
            altitude=length_prop(props, "altitude", self.default_hole_altitude),
        )

    def _read_area(self, raw: Dict[str, Any], key: Any) -> Area:
        area_id = _id_of(raw, key)
        props = _properties(raw)
        return Area(
            id=area_id,
            type=raw.get("type") if isinstance(raw.get("type"), str) else "",
            name=_display_name(raw, area_id, "area"),
            vertices=_id_list(raw.get("vertices")),
            holes=_id_list(raw.get("holes")),
            color=parse_hex_color(props.get("patternColor"), DEFAULT_FLOOR_COLOR),
            texture_key=texture_key(props.get("texture")),
        )

    def _read_item(self, raw: Dict[str, Any], key: Any) -> Item:
        item_id = _id_of(raw, key)
        props = _properties(raw)

        length_fallback = optional_length_prop(props, "length")
        width = optional_length_prop(props, "width")
        if width is None:
            width = length_fallback if length_fallback is not None else self.default_item_width
        depth = optional_length_prop(props, "depth")
        if depth is None:
            depth = width
        height = optional_length_prop(props, "height")
        if height is None:
            height = self.default_item_height
        altitude = optional_length_prop(props, "altitude")

        x = to_finite(raw.get("x"))
        y = to_finite(raw.get("y"))
        rotation = to_finite(raw.get("rotation"))

        return Item(
            id=item_id,
            type=raw.get("type") if isinstance(raw.get("type"), str) else "",
            name=_display_name(raw, item_id, "item"),
            x=x if x is not None else 0.0,
            y=y if y is not None else 0.0,
            rotation=rotation if rotation is not None else 0.0,
            width=width,
            depth=depth,
            height=height,
            altitude=altitude if altitude is not None else 0.0,
            color=parse_hex_color(props.get("color") or props.get("patternColor"), DEFAULT_ITEM_COLOR),
        )
