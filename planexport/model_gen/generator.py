"""Scene graph assembly from a floor-plan document."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from planexport.planner.elements import FloorPlanDocument, Layer

from .extruder import DEFAULT_WALL_COLOR, FloorBuilder, WallBuilder
from .furniture import ItemBuilder
from .openings import DEFAULT_OPENING_COLOR, OpeningBuilder
from .types import Scene3D, SceneNode

logger = logging.getLogger(__name__)


@dataclass
class GeneratorConfig:
    """Configuration options for the model generator."""

    generate_floors: bool = True
    generate_walls: bool = True
    generate_openings: bool = True  # Box filling each door/window opening
    generate_items: bool = True

    wall_color: int = DEFAULT_WALL_COLOR
    opening_color: int = DEFAULT_OPENING_COLOR


class ModelGenerator:
    """
    Generates a scene graph from a floor plan.

    Pipeline, per visible layer:
    1. Triangulate area polygons into floors
    2. Build wall groups segmented around their openings
    3. Fill openings with door/window boxes
    4. Place furniture boxes
    """

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or GeneratorConfig()

        self.floor_builder = FloorBuilder()
        self.wall_builder = WallBuilder(color=self.config.wall_color)
        self.opening_builder = OpeningBuilder(color=self.config.opening_color)
        self.item_builder = ItemBuilder()

    def generate(self, document: FloorPlanDocument) -> Scene3D:
        """
        Generate the scene graph.

        Args:
            document: Normalized floor plan

        Returns:
            Scene3D whose root holds one group per visible layer
        """
        scene = Scene3D(used_types=document.used_types())

        for layer in document.layers:
            if not layer.visible:
                scene.stats.skipped_layers += 1
                continue

            layer_group = self._build_layer(layer, scene)
            scene.root.add(layer_group)
            scene.stats.layers += 1

        scene.stats.meshes = len(scene.get_all_meshes())
        logger.info(
            f"Built {scene.stats.meshes} meshes from {scene.stats.layers} layers "
            f"({scene.stats.skipped_elements} elements skipped)"
        )
        return scene

    def _build_layer(self, layer: Layer, scene: Scene3D) -> SceneNode:
        layer_group = SceneNode.group(
            f"layer-{layer.id or 'unknown'}", translation=(0.0, layer.altitude, 0.0)
        )

        if self.config.generate_floors:
            self._add_all(layer_group, scene, layer, "area", layer.areas, self.floor_builder)
        if self.config.generate_walls:
            self._add_all(layer_group, scene, layer, "line", layer.lines, self.wall_builder)
        if self.config.generate_openings:
            self._add_all(layer_group, scene, layer, "hole", layer.holes, self.opening_builder)
        if self.config.generate_items:
            self._add_all(layer_group, scene, layer, "item", layer.items, self.item_builder)

        return layer_group

    def _add_all(
        self,
        parent: SceneNode,
        scene: Scene3D,
        layer: Layer,
        kind: str,
        elements: Iterable[Any],
        builder: Any,
    ) -> None:
        """Build each element, dropping (and counting) the ones that fail."""
        for element in elements:
            try:
                node = builder.build(element, layer)
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping {kind} {element.id}: {e}")
                scene.stats.skip(kind)
                continue

            if node is None:
                logger.debug(f"Skipping degenerate {kind} {element.id}")
                scene.stats.skip(kind)
                continue

            parent.add(node)
