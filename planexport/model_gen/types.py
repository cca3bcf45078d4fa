"""Data types for 3D scene construction."""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

import numpy as np
import trimesh

Point3D = Tuple[float, float, float]

MESH_KINDS = ("floor", "wall", "hole", "item")


@dataclass(frozen=True)
class RenderMeta:
    """Per-mesh tag consumed by the material resolver and serializer."""

    kind: str  # floor, wall, hole, item
    element_type: Optional[str] = None
    texture_key: Optional[str] = None
    color: int = 0xD0D0D0
    layer_id: Optional[str] = None
    source_id: str = ""

    # Texture repeat extents: wall length/height, or floor bounding box width/height
    extent_u: Optional[float] = None
    extent_v: Optional[float] = None

    @property
    def double_sided(self) -> bool:
        return self.kind == "floor"


@dataclass
class Mesh3D:
    """Triangulated geometry in node-local space plus its render metadata."""

    vertices: np.ndarray
    faces: np.ndarray
    meta: RenderMeta
    normals: Optional[np.ndarray] = None
    uvs: Optional[np.ndarray] = None
    tangents: Optional[np.ndarray] = None
    name: str = "mesh"

    @property
    def vertex_count(self) -> int:
        return int(len(self.vertices))

    @property
    def triangle_count(self) -> int:
        return int(len(self.faces))

    def to_trimesh(self) -> trimesh.Trimesh:
        """Convert to trimesh object without merging or reordering vertices."""
        mesh = trimesh.Trimesh(vertices=self.vertices, faces=self.faces, process=False)
        mesh.metadata["kind"] = self.meta.kind
        mesh.metadata["element_type"] = self.meta.element_type
        mesh.metadata["source_id"] = self.meta.source_id
        return mesh


@dataclass
class SceneNode:
    """Scene graph node; children are owned exclusively by their parent."""

    name: str = "node"
    matrix: np.ndarray = field(default_factory=lambda: np.eye(4))
    children: List["SceneNode"] = field(default_factory=list)
    mesh: Optional[Mesh3D] = None

    @classmethod
    def group(
        cls,
        name: str,
        translation: Point3D = (0.0, 0.0, 0.0),
        yaw: float = 0.0,
    ) -> "SceneNode":
        """Create a node translated and rotated about +Y by ``yaw`` radians."""
        matrix = trimesh.transformations.translation_matrix(translation)
        if yaw != 0.0:
            matrix = matrix @ trimesh.transformations.rotation_matrix(yaw, [0, 1, 0])
        return cls(name=name, matrix=matrix)

    @classmethod
    def for_mesh(cls, mesh: Mesh3D, translation: Point3D = (0.0, 0.0, 0.0)) -> "SceneNode":
        return cls(
            name=mesh.name,
            matrix=trimesh.transformations.translation_matrix(translation),
            mesh=mesh,
        )

    def add(self, child: "SceneNode") -> "SceneNode":
        self.children.append(child)
        return child

    def traverse(self) -> Iterator["SceneNode"]:
        """Depth-first, pre-order, children in insertion order."""
        yield self
        for child in self.children:
            yield from child.traverse()

    def iter_meshes(self) -> Iterator[Mesh3D]:
        for node in self.traverse():
            if node.mesh is not None:
                yield node.mesh


@dataclass
class BuildStats:
    """Counters for the geometry build of one export."""

    layers: int = 0
    skipped_layers: int = 0
    meshes: int = 0
    skipped_elements: int = 0
    skipped_by_kind: dict = field(default_factory=dict)

    def skip(self, kind: str) -> None:
        self.skipped_elements += 1
        self.skipped_by_kind[kind] = self.skipped_by_kind.get(kind, 0) + 1

    def to_dict(self) -> dict:
        return {
            "layers": self.layers,
            "skipped_layers": self.skipped_layers,
            "meshes": self.meshes,
            "skipped_elements": self.skipped_elements,
            "skipped_by_kind": dict(self.skipped_by_kind),
        }


@dataclass
class Scene3D:
    """Complete scene graph for one export."""

    root: SceneNode = field(default_factory=lambda: SceneNode(name="FloorPlanModel"))
    stats: BuildStats = field(default_factory=BuildStats)
    used_types: List[str] = field(default_factory=list)

    def get_all_meshes(self) -> List[Mesh3D]:
        return list(self.root.iter_meshes())

    def get_by_kind(self, kind: str) -> List[Mesh3D]:
        """Get all meshes of a specific render kind."""
        return [m for m in self.root.iter_meshes() if m.meta.kind == kind]

    def get_by_source(self, source_id: str) -> List[Mesh3D]:
        """Get all meshes from a specific source element."""
        return [m for m in self.root.iter_meshes() if m.meta.source_id == source_id]

    @property
    def is_empty(self) -> bool:
        return next(self.root.iter_meshes(), None) is None
