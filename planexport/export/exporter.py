"""Scene graph to GLB serialization."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from planexport.errors import EmptySceneError, PipelineStateError
from planexport.materials.resolver import MaterialResolver
from planexport.materials.types import Material
from planexport.model_gen.types import Mesh3D, Scene3D, SceneNode

from .glb import GLBDocument
from .sanitize import (
    compute_normals,
    resolve_tangents,
    sanitize_matrix,
    transform_directions,
    transform_positions,
)

logger = logging.getLogger(__name__)


@dataclass
class BakedMesh:
    """A mesh with its world transform applied, ready for emission."""

    name: str
    positions: np.ndarray
    normals: np.ndarray
    faces: np.ndarray
    uvs: Optional[np.ndarray]
    tangents: Optional[np.ndarray]
    source: Mesh3D


def iter_world_meshes(root: SceneNode) -> Iterator[Tuple[Mesh3D, np.ndarray]]:
    """
    Depth-first walk yielding each mesh with its accumulated world matrix.

    Non-finite local matrices are treated as identity.
    """
    stack: List[Tuple[SceneNode, np.ndarray]] = [(root, np.eye(4))]
    while stack:
        node, parent_world = stack.pop()
        world = parent_world @ sanitize_matrix(node.matrix)
        if node.mesh is not None:
            yield node.mesh, world
        # Reverse so children are visited in insertion order
        for child in reversed(node.children):
            stack.append((child, world))


def bake_mesh(mesh: Mesh3D, world: np.ndarray) -> BakedMesh:
    """Apply a world matrix to positions, normals and any supplied tangents."""
    positions = transform_positions(np.asarray(mesh.vertices, dtype=np.float64), world)
    faces = np.asarray(mesh.faces, dtype=np.int64).reshape(-1, 3)

    if mesh.normals is not None:
        normals = transform_directions(mesh.normals, world, normal=True)
    else:
        normals = compute_normals(positions, faces)

    tangents = None
    if mesh.tangents is not None:
        supplied = np.asarray(mesh.tangents, dtype=np.float64)
        xyz = transform_directions(supplied[:, :3], world)
        tangents = np.column_stack([xyz, supplied[:, 3]]) if supplied.shape[1] == 4 else xyz

    uvs = None if mesh.uvs is None else np.array(mesh.uvs, dtype=np.float64)
    return BakedMesh(
        name=mesh.name,
        positions=positions,
        normals=normals,
        faces=faces,
        uvs=uvs,
        tangents=tangents,
        source=mesh,
    )


class SceneExporter:
    """
    Serializes a scene graph into a single GLB payload.

    Every mesh is flattened into one node directly under the output scene,
    with its world transform baked into the vertex data.
    """

    def __init__(self, resolver: Optional[MaterialResolver] = None):
        self.resolver = resolver or MaterialResolver()

    async def export(self, scene: Optional[Scene3D]) -> bytes:
        """
        Export a built scene.

        Raises:
            PipelineStateError: If no scene was built
            EmptySceneError: If the scene has no meshes
            TextureUnavailableError: If a referenced texture cannot be fetched
        """
        if scene is None:
            raise PipelineStateError("Cannot serialize before the scene is built")

        entries = [(mesh, world) for mesh, world in iter_world_meshes(scene.root) if len(mesh.faces) > 0]
        if not entries:
            raise EmptySceneError("No meshes were produced from the floor plan")

        materials = await asyncio.gather(
            *(self.resolver.material_for(mesh.meta) for mesh, _ in entries),
            return_exceptions=True,
        )
        # Every failure is retrieved here; the first one (in mesh order) is reported
        for result in materials:
            if isinstance(result, BaseException):
                raise result

        document = GLBDocument()
        dropped_normal_maps = 0
        for index, ((mesh, world), material) in enumerate(zip(entries, materials)):
            baked = bake_mesh(mesh, world)
            self._apply_uv_repeat(baked)

            if material.has_normal_map:
                baked.tangents = resolve_tangents(
                    baked.positions, baked.normals, baked.uvs, baked.faces, supplied=baked.tangents
                )
                if baked.tangents is None:
                    material = self.resolver.without_normal_map(material)
                    dropped_normal_maps += 1
            else:
                baked.tangents = None

            self._emit(document, baked, material, index)

        if dropped_normal_maps:
            logger.warning(f"Dropped normal maps on {dropped_normal_maps} meshes without a valid tangent basis")
        logger.info(
            f"Serialized {document.node_count} nodes, {self.resolver.material_count} materials, "
            f"{self.resolver.texture_count} textures"
        )
        return document.to_bytes()

    def _apply_uv_repeat(self, baked: BakedMesh) -> None:
        if baked.uvs is None:
            return
        repeat = self.resolver.uv_repeat_for(baked.source.meta)
        if repeat is not None:
            baked.uvs[:, 0] *= repeat[0]
            baked.uvs[:, 1] *= repeat[1]

    def _emit(self, document: GLBDocument, baked: BakedMesh, material: Material, index: int) -> None:
        attributes = {
            "POSITION": document.add_accessor(baked.positions, "VEC3"),
            "NORMAL": document.add_accessor(baked.normals, "VEC3"),
        }
        if baked.uvs is not None:
            attributes["TEXCOORD_0"] = document.add_accessor(baked.uvs, "VEC2")
        if baked.tangents is not None:
            attributes["TANGENT"] = document.add_accessor(baked.tangents, "VEC4")

        indices = document.add_accessor(baked.faces, "SCALAR", indices=True)
        document.add_mesh_node(
            baked.name or f"mesh-{index}",
            attributes,
            indices,
            document.add_material(material),
        )
