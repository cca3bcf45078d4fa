"""3D scene construction for floor-plan exports.

This module converts normalized floor-plan layers (areas, lines, holes,
items) into a scene graph of triangulated meshes with render metadata.

Usage:
    from planexport.model_gen import ModelGenerator

    generator = ModelGenerator()
    scene = generator.generate(floor_plan)
"""

from .extruder import FloorBuilder, OpeningSpan, WallBuilder, WallSegment, resolve_opening, segment_wall
from .furniture import ItemBuilder
from .generator import GeneratorConfig, ModelGenerator
from .openings import OpeningBuilder
from .primitives import box_geometry, triangulate_rings
from .types import BuildStats, Mesh3D, RenderMeta, Scene3D, SceneNode

__all__ = [
    # Main API
    "ModelGenerator",
    "GeneratorConfig",
    "Scene3D",
    "SceneNode",
    "Mesh3D",
    "RenderMeta",
    "BuildStats",
    # Element builders
    "FloorBuilder",
    "WallBuilder",
    "OpeningBuilder",
    "ItemBuilder",
    # Wall segmentation
    "OpeningSpan",
    "WallSegment",
    "resolve_opening",
    "segment_wall",
    # Primitives
    "box_geometry",
    "triangulate_rings",
]
