"""Floor-plan to GLB export.

Reads planner scene documents (layers of walls, openings, floor areas and
furniture items), builds a textured scene graph and serializes it as a
binary glTF file.

Usage:
    from planexport import export_plan_to_glb

    glb = await export_plan_to_glb(scene_json, textures_by_type)
"""

from .config import ExportConfig
from .errors import (
    EmptySceneError,
    ExportError,
    InvalidDocumentError,
    PipelineStateError,
    TextureUnavailableError,
)
from .pipeline import GLB_CONTENT_TYPE, export_plan_to_glb

__version__ = "0.1.0"

__all__ = [
    "export_plan_to_glb",
    "GLB_CONTENT_TYPE",
    "ExportConfig",
    "ExportError",
    "InvalidDocumentError",
    "EmptySceneError",
    "TextureUnavailableError",
    "PipelineStateError",
]
