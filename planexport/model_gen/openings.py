"""Door and window geometry placed in their owning walls."""

import logging
import math
from typing import Optional

from planexport.planner.elements import Hole, Layer

from .primitives import EPSILON, box_geometry
from .types import Mesh3D, RenderMeta, SceneNode

logger = logging.getLogger(__name__)

DEFAULT_OPENING_COLOR = 0xB0B0B0


class OpeningBuilder:
    """Creates a box filling each wall opening (door leaf or window pane)."""

    def __init__(self, color: int = DEFAULT_OPENING_COLOR):
        self.color = color

    def build(self, hole: Hole, layer: Layer) -> Optional[SceneNode]:
        """
        Build the opening box, sized by the hole and the owning wall thickness.

        Returns None when the owning line is absent or degenerate.

        Raises:
            KeyError: If the owning line references a vertex missing from the layer
        """
        line = layer.lines_by_id.get(hole.line) if hole.line is not None else None
        if line is None:
            logger.debug(f"Hole {hole.id} has no owning line, skipping")
            return None
        if len(line.vertices) < 2:
            return None

        (x0, y0), (x1, y1) = layer.resolve_points(line.vertices[:2])
        dx = x1 - x0
        dy = y1 - y0
        length = math.hypot(dx, dy)
        if not math.isfinite(length) or length <= EPSILON:
            return None

        if hole.width <= EPSILON or hole.height <= EPSILON or line.thickness <= EPSILON:
            return None

        offset = 0.5 if hole.offset is None else max(0.0, min(1.0, hole.offset))
        cx = x0 + dx * offset
        cy = y0 + dy * offset

        vertices, normals, faces = box_geometry(hole.width, hole.height, line.thickness)
        mesh = Mesh3D(
            vertices=vertices,
            faces=faces,
            normals=normals,
            meta=RenderMeta(
                kind="hole",
                element_type=hole.type or None,
                color=self.color,
                layer_id=layer.id or None,
                source_id=hole.id,
            ),
            name=hole.name,
        )

        group = SceneNode.group(f"{hole.name}-group", translation=(cx, 0.0, -cy), yaw=math.atan2(dy, dx))
        group.add(SceneNode.for_mesh(mesh, translation=(0.0, hole.altitude + hole.height / 2, 0.0)))
        return group
