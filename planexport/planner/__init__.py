"""Floor-plan reading for the planner editor's scene documents."""

from .elements import Area, FloorPlanDocument, Hole, Item, Layer, Line, Vertex
from .reader import (
    PlanReader,
    length_prop,
    normalize_map_or_list,
    optional_length_prop,
    parse_hex_color,
)

__all__ = [
    "PlanReader",
    "FloorPlanDocument",
    "Layer",
    "Vertex",
    "Line",
    "Hole",
    "Area",
    "Item",
    "normalize_map_or_list",
    "length_prop",
    "optional_length_prop",
    "parse_hex_color",
]
