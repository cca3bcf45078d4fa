"""Typed floor-plan records produced by the reader."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

Point2D = Tuple[float, float]


@dataclass
class Vertex:
    """A 2D point shared by id among the lines and areas of one layer."""

    id: str
    x: float = 0.0
    y: float = 0.0

    @property
    def point(self) -> Point2D:
        return (self.x, self.y)


@dataclass
class Line:
    """A straight wall between two vertices."""

    id: str
    type: str = ""
    name: str = ""
    vertices: List[str] = field(default_factory=list)
    holes: List[str] = field(default_factory=list)
    height: float = 300.0
    thickness: float = 20.0
    texture_key: Optional[str] = None


@dataclass
class Hole:
    """A rectangular opening placed along its owning line."""

    id: str
    type: str = ""
    name: str = ""
    line: Optional[str] = None
    offset: Optional[float] = None  # None when the document value was not finite
    width: float = 90.0
    height: float = 210.0
    altitude: float = 0.0


@dataclass
class Area:
    """A floor polygon, optionally with other areas cut out of it."""

    id: str
    type: str = ""
    name: str = ""
    vertices: List[str] = field(default_factory=list)
    holes: List[str] = field(default_factory=list)
    color: int = 0xDCDCDC
    texture_key: Optional[str] = None


@dataclass
class Item:
    """A placed furniture item, approximated as a box."""

    id: str
    type: str = ""
    name: str = ""
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0  # degrees
    width: float = 80.0
    depth: float = 80.0
    height: float = 80.0
    altitude: float = 0.0
    color: int = 0xCFCFCF


@dataclass
class Layer:
    """A horizontal slice of the plan with its own id namespace."""

    id: str
    altitude: float = 0.0
    visible: bool = True
    vertices: List[Vertex] = field(default_factory=list)
    lines: List[Line] = field(default_factory=list)
    holes: List[Hole] = field(default_factory=list)
    areas: List[Area] = field(default_factory=list)
    items: List[Item] = field(default_factory=list)

    # Id lookups, filled by the reader
    vertices_by_id: Dict[str, Vertex] = field(default_factory=dict)
    lines_by_id: Dict[str, Line] = field(default_factory=dict)
    holes_by_id: Dict[str, Hole] = field(default_factory=dict)
    areas_by_id: Dict[str, Area] = field(default_factory=dict)

    def index(self) -> None:
        """Rebuild the id lookups from the ordered collections."""
        self.vertices_by_id = {v.id: v for v in self.vertices}
        self.lines_by_id = {line.id: line for line in self.lines}
        self.holes_by_id = {h.id: h for h in self.holes}
        self.areas_by_id = {a.id: a for a in self.areas}

    def resolve_points(self, vertex_ids: List[str]) -> List[Point2D]:
        """Look up a vertex id sequence, raising KeyError for unknown ids."""
        points = []
        for vertex_id in vertex_ids:
            vertex = self.vertices_by_id.get(vertex_id)
            if vertex is None:
                raise KeyError(f"Missing vertex {vertex_id} (layer {self.id})")
            points.append(vertex.point)
        return points

    @property
    def element_count(self) -> int:
        return len(self.lines) + len(self.holes) + len(self.areas) + len(self.items)


@dataclass
class FloorPlanDocument:
    """Complete floor plan: an ordered list of layers."""

    layers: List[Layer] = field(default_factory=list)

    @property
    def visible_layers(self) -> List[Layer]:
        return [layer for layer in self.layers if layer.visible]

    def used_types(self) -> List[str]:
        """Element types of lines and areas on visible layers, in first-seen order."""
        seen: Dict[str, None] = {}
        for layer in self.visible_layers:
            for line in layer.lines:
                if line.type:
                    seen.setdefault(line.type, None)
            for area in layer.areas:
                if area.type:
                    seen.setdefault(area.type, None)
        return list(seen)
