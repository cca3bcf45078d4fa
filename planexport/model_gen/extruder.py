"""Floor and wall mesh construction."""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from planexport.planner.elements import Area, Layer, Line

from .primitives import EPSILON, bbox_uvs, box_geometry, plan_to_world, triangulate_rings
from .types import Mesh3D, RenderMeta, SceneNode

logger = logging.getLogger(__name__)

DEFAULT_WALL_COLOR = 0xD3D3D3


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class FloorBuilder:
    """Builds planar floor meshes from area polygons."""

    def build(self, area: Area, layer: Layer) -> Optional[SceneNode]:
        """
        Triangulate an area, cutting out its hole areas.

        Raises:
            KeyError: If the area references a vertex missing from the layer
        """
        if len(area.vertices) < 3:
            return None

        outer = layer.resolve_points(area.vertices)
        holes = []
        for hole_area_id in area.holes:
            hole_area = layer.areas_by_id.get(hole_area_id)
            if hole_area is None or len(hole_area.vertices) < 3:
                continue
            holes.append(layer.resolve_points(hole_area.vertices))

        points2d, faces = triangulate_rings(outer, holes)
        if len(faces) == 0:
            logger.warning(f"Area {area.id} triangulated to nothing")
            return None

        outer_arr = np.asarray(outer, dtype=np.float64)
        min_xy = outer_arr.min(axis=0)
        size = outer_arr.max(axis=0) - min_xy

        uvs = None
        if size[0] > 0 and size[1] > 0:
            uvs = bbox_uvs(points2d, (min_xy[0], min_xy[1]), (size[0], size[1]))

        vertices = plan_to_world(points2d)
        normals = np.tile([0.0, 1.0, 0.0], (len(vertices), 1))

        meta = RenderMeta(
            kind="floor",
            element_type=area.type or None,
            texture_key=area.texture_key,
            color=area.color,
            layer_id=layer.id or None,
            source_id=area.id,
            extent_u=float(size[0]),
            extent_v=float(size[1]),
        )
        mesh = Mesh3D(
            vertices=vertices,
            faces=faces,
            normals=normals,
            uvs=uvs,
            meta=meta,
            name=area.name,
        )
        return SceneNode.for_mesh(mesh)


@dataclass
class OpeningSpan:
    """An opening projected onto the wall axis (wall-centered coordinates)."""

    start_x: float
    end_x: float
    altitude: float
    hole_height: float

    @property
    def width(self) -> float:
        return self.end_x - self.start_x

    @property
    def center_x(self) -> float:
        return (self.start_x + self.end_x) / 2


@dataclass
class WallSegment:
    """An axis-aligned box piece of a wall in wall-local space."""

    name: str
    length: float
    center_x: float
    height: float
    center_y: float


def resolve_opening(
    offset: float, width: float, hole_height: float, altitude: float, length: float, height: float
) -> Optional[OpeningSpan]:
    """Place an opening along a wall, clamped to the wall extent."""
    offset = _clamp(offset, 0.0, 1.0)
    center_x = offset * length - length / 2
    half = length / 2
    start_x = _clamp(center_x - width / 2, -half, half)
    end_x = _clamp(center_x + width / 2, -half, half)
    if end_x - start_x <= EPSILON:
        return None
    return OpeningSpan(
        start_x=start_x,
        end_x=end_x,
        altitude=_clamp(altitude, 0.0, height),
        hole_height=_clamp(hole_height, 0.0, height),
    )


def segment_wall(length: float, height: float, openings: List[OpeningSpan]) -> List[WallSegment]:
    """
    Partition a wall left to right into boxes around its openings.

    Full-height pieces fill the gaps between openings; each opening gets a
    sill below it and a lintel above it. Degenerate pieces are omitted.
    """
    segments: List[WallSegment] = []
    cursor = -length / 2

    for span in sorted(openings, key=lambda s: s.start_x):
        left = span.start_x - cursor
        if left > EPSILON:
            segments.append(WallSegment("wall-seg", left, cursor + left / 2, height, height / 2))

        sill = span.altitude
        if sill > EPSILON:
            segments.append(WallSegment("wall-sill", span.width, span.center_x, sill, sill / 2))

        top = span.altitude + span.hole_height
        lintel = height - top
        if lintel > EPSILON:
            segments.append(WallSegment("wall-lintel", span.width, span.center_x, lintel, top + lintel / 2))

        cursor = max(cursor, span.end_x)

    right = length / 2 - cursor
    if right > EPSILON:
        segments.append(WallSegment("wall-seg", right, cursor + right / 2, height, height / 2))

    if not segments:
        segments.append(WallSegment("wall", length, 0.0, height, height / 2))

    return segments


def wall_segment_uvs(
    vertices: np.ndarray, normals: np.ndarray, segment: WallSegment, length: float, height: float
) -> np.ndarray:
    """
    UVs relative to the whole wall so one texture runs across all segments.

    Wall faces map wall-local X/Y onto [0, 1]; end caps and top/bottom faces
    additionally spread the thickness axis so no face has a degenerate mapping.
    """
    uvs = np.empty((len(vertices), 2))
    uvs[:, 0] = (vertices[:, 0] + segment.center_x) / length + 0.5
    uvs[:, 1] = (vertices[:, 1] + segment.center_y) / height

    axis = np.argmax(np.abs(normals), axis=1)
    caps = axis == 0
    uvs[caps, 0] += vertices[caps, 2] / length
    top_bottom = axis == 1
    uvs[top_bottom, 1] += vertices[top_bottom, 2] / height
    return uvs


class WallBuilder:
    """Builds segmented wall groups from lines and their openings."""

    def __init__(self, color: int = DEFAULT_WALL_COLOR):
        self.color = color

    def build(self, line: Line, layer: Layer) -> Optional[SceneNode]:
        """
        Build a wall group positioned at the line midpoint and rotated to its yaw.

        Raises:
            KeyError: If the line references a vertex missing from the layer
        """
        if len(line.vertices) < 2:
            return None

        (x0, y0), (x1, y1) = layer.resolve_points(line.vertices[:2])
        dx = x1 - x0
        dy = y1 - y0
        length = math.hypot(dx, dy)
        if not math.isfinite(length) or length <= EPSILON:
            return None

        height = line.height
        thickness = line.thickness
        if height <= EPSILON or thickness <= EPSILON:
            return None

        openings = []
        for hole_id in line.holes:
            hole = layer.holes_by_id.get(hole_id)
            if hole is None or hole.offset is None:
                continue
            span = resolve_opening(hole.offset, hole.width, hole.height, hole.altitude, length, height)
            if span is not None:
                openings.append(span)

        group = SceneNode.group(
            line.name,
            translation=((x0 + x1) / 2, 0.0, -(y0 + y1) / 2),
            yaw=math.atan2(dy, dx),
        )

        meta = RenderMeta(
            kind="wall",
            element_type=line.type or None,
            texture_key=line.texture_key,
            color=self.color,
            layer_id=layer.id or None,
            source_id=line.id,
            extent_u=length,
            extent_v=height,
        )

        for index, segment in enumerate(segment_wall(length, height, openings)):
            vertices, normals, faces = box_geometry(segment.length, segment.height, thickness)

            uvs = wall_segment_uvs(vertices, normals, segment, length, height)
            mesh = Mesh3D(
                vertices=vertices,
                faces=faces,
                normals=normals,
                uvs=uvs,
                meta=meta,
                name=f"{segment.name}-{index}",
            )
            group.add(SceneNode.for_mesh(mesh, translation=(segment.center_x, segment.center_y, 0.0)))

        return group
