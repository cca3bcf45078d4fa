"""Box approximations of placed furniture items."""

import math
from typing import Optional

from planexport.planner.elements import Item, Layer

from .primitives import EPSILON, box_geometry
from .types import Mesh3D, RenderMeta, SceneNode


class ItemBuilder:
    """Builds an item box under a pivot carrying the item's placement."""

    def build(self, item: Item, layer: Layer) -> Optional[SceneNode]:
        dims = (item.width, item.depth, item.height)
        if not all(math.isfinite(d) and d > EPSILON for d in dims):
            return None

        vertices, normals, faces = box_geometry(item.width, item.height, item.depth)
        mesh = Mesh3D(
            vertices=vertices,
            faces=faces,
            normals=normals,
            meta=RenderMeta(
                kind="item",
                element_type=item.type or None,
                color=item.color,
                layer_id=layer.id or None,
                source_id=item.id,
            ),
            name=item.name,
        )

        pivot = SceneNode.group(
            f"{item.name}-pivot",
            translation=(item.x, 0.0, -item.y),
            yaw=math.radians(item.rotation),
        )
        pivot.add(SceneNode.for_mesh(mesh, translation=(0.0, item.altitude + item.height / 2, 0.0)))
        return pivot
