"""GLB serialization of built floor-plan scenes."""

from .exporter import BakedMesh, SceneExporter, bake_mesh, iter_world_meshes
from .glb import GLBDocument, GlbError, read_accessor, read_glb, read_image_bytes
from .sanitize import compute_normals, compute_tangents, resolve_tangents, sanitize_matrix, tangents_valid

__all__ = [
    "SceneExporter",
    "BakedMesh",
    "bake_mesh",
    "iter_world_meshes",
    "GLBDocument",
    "GlbError",
    "read_glb",
    "read_accessor",
    "read_image_bytes",
    "sanitize_matrix",
    "compute_normals",
    "compute_tangents",
    "resolve_tangents",
    "tangents_valid",
]
