"""Tests for GLB serialization."""

import io
import logging
import struct

import numpy as np
import pytest
import trimesh

from planexport.errors import EmptySceneError, PipelineStateError, TextureUnavailableError
from planexport.export import (
    GLBDocument,
    GlbError,
    SceneExporter,
    compute_tangents,
    iter_world_meshes,
    read_accessor,
    read_glb,
    read_image_bytes,
    resolve_tangents,
    sanitize_matrix,
    tangents_valid,
)
from planexport.export.glb import CHUNK_TYPE_BIN, CHUNK_TYPE_JSON, COMPONENT_UNSIGNED_INT, COMPONENT_UNSIGNED_SHORT
from planexport.materials import MaterialResolver, TextureCatalog
from planexport.materials.types import Texture
from planexport.model_gen import Mesh3D, ModelGenerator, RenderMeta, Scene3D, SceneNode
from planexport.planner import PlanReader
from tests.plan_fixtures import make_png, png_data_uri


def build_scene(scene_doc):
    return ModelGenerator().generate(PlanReader().read(scene_doc))


async def export(scene, textures=None):
    resolver = MaterialResolver(TextureCatalog.from_dict(textures))
    try:
        return await SceneExporter(resolver).export(scene)
    finally:
        await resolver.close()


def triangle_scene(matrix=None, meta=None, **mesh_kwargs):
    """Scene with a single right triangle under one node."""
    mesh = Mesh3D(
        vertices=np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, -1.0]]),
        faces=np.array([[0, 1, 2]]),
        meta=meta or RenderMeta(kind="item", source_id="t"),
        name="triangle",
        **mesh_kwargs,
    )
    scene = Scene3D()
    node = SceneNode.for_mesh(mesh)
    if matrix is not None:
        node.matrix = matrix
    scene.root.add(node)
    return scene


def primitives(gltf):
    return [mesh["primitives"][0] for mesh in gltf["meshes"]]


@pytest.fixture
def textured_door_scene(door_scene):
    door_scene["layers"]["layer-1"]["lines"]["l1"]["properties"] = {"textureA": "bricks"}
    return door_scene


@pytest.fixture
def brick_textures():
    return {
        "wall": {
            "bricks": {
                "uri": png_data_uri(make_png(4, 4, (150, 60, 40))),
                "normal": {"uri": png_data_uri(make_png(4, 4, (128, 128, 255))), "normalScaleX": 0.8},
                "lengthRepeatScale": 0.01,
                "heightRepeatScale": 0.01,
            }
        }
    }


# ============================================================================
# GLB Container Tests
# ============================================================================


class TestGLBDocument:
    """Tests for the GLB container writer."""

    def test_layout(self):
        document = GLBDocument()
        document.add_accessor(np.zeros((3, 3)), "VEC3")
        data = document.to_bytes()

        magic, version, length = struct.unpack_from("<4sII", data, 0)
        assert magic == b"glTF"
        assert version == 2
        assert length == len(data)
        assert length % 4 == 0

        json_length, json_type = struct.unpack_from("<II", data, 12)
        assert json_type == CHUNK_TYPE_JSON
        assert json_length % 4 == 0
        bin_length, bin_type = struct.unpack_from("<II", data, 20 + json_length)
        assert bin_type == CHUNK_TYPE_BIN
        assert bin_length == 36

    def test_written_once(self):
        document = GLBDocument()
        document.to_bytes()
        with pytest.raises(PipelineStateError):
            document.to_bytes()
        with pytest.raises(PipelineStateError):
            document.add_accessor(np.zeros((1, 3)), "VEC3")

    def test_index_component_width(self):
        document = GLBDocument()
        small = document.add_accessor(np.array([[0, 1, 2]]), "SCALAR", indices=True)
        large = document.add_accessor(np.array([[0, 1, 70000]]), "SCALAR", indices=True)
        assert document.gltf["accessors"][small]["componentType"] == COMPONENT_UNSIGNED_SHORT
        assert document.gltf["accessors"][large]["componentType"] == COMPONENT_UNSIGNED_INT

    def test_position_bounds(self):
        document = GLBDocument()
        index = document.add_accessor(np.array([[0.0, 1.0, 2.0], [-1.0, 5.0, 0.5]]), "VEC3")
        accessor = document.gltf["accessors"][index]
        assert accessor["min"] == [-1.0, 1.0, 0.5]
        assert accessor["max"] == [0.0, 5.0, 2.0]

    def test_buffer_views_aligned(self):
        document = GLBDocument()
        document.add_accessor(np.array([[0, 1, 2]]), "SCALAR", indices=True)
        document.add_accessor(np.zeros((2, 3)), "VEC3")
        offsets = [view["byteOffset"] for view in document.gltf["bufferViews"]]
        assert all(offset % 4 == 0 for offset in offsets)

    def test_read_rejects_garbage(self):
        with pytest.raises(GlbError):
            read_glb(b"not a glb payload at all")

    def test_unknown_image_mime_warns(self, caplog):
        document = GLBDocument()
        with caplog.at_level(logging.WARNING, logger="planexport.export.glb"):
            index = document.add_texture(Texture(uri="https://x.test/raw", data=b"\x00\x01"))
        image = document.gltf["images"][document.gltf["textures"][index]["source"]]
        assert "mimeType" not in image
        assert "without a mime type" in caplog.text


# ============================================================================
# Sanitization Tests
# ============================================================================


class TestSanitize:
    """Tests for transform and tangent sanitization."""

    def test_non_finite_matrix_reset(self):
        matrix = np.eye(4)
        matrix[0, 3] = np.nan
        assert np.array_equal(sanitize_matrix(matrix), np.eye(4))

    def test_finite_matrix_kept(self):
        matrix = trimesh.transformations.translation_matrix([1, 2, 3])
        assert np.array_equal(sanitize_matrix(matrix), matrix)

    def test_compute_tangents_follow_u(self):
        positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, -1.0]])
        normals = np.tile([0.0, 1.0, 0.0], (3, 1))
        uvs = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        tangents = compute_tangents(positions, normals, uvs, np.array([[0, 1, 2]]))

        assert tangents.shape == (3, 4)
        assert np.allclose(tangents[:, :3], [1.0, 0.0, 0.0])
        assert set(np.abs(tangents[:, 3])) == {1.0}

    def test_degenerate_uvs_rejected(self):
        positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, -1.0]])
        normals = np.tile([0.0, 1.0, 0.0], (3, 1))
        uvs = np.zeros((3, 2))
        assert resolve_tangents(positions, normals, uvs, np.array([[0, 1, 2]])) is None

    def test_tangents_valid(self):
        assert tangents_valid(np.array([[1.0, 0.0, 0.0, 1.0]]))
        assert not tangents_valid(np.array([[1.0, 0.0, 0.0, 1.0], [0.0, 0.0, 0.0, 1.0]]))
        assert not tangents_valid(np.array([[np.inf, 0.0, 0.0, 1.0]]))
        assert not tangents_valid(None)

    def test_supplied_tangents_gain_handedness(self):
        supplied = np.array([[1.0, 0.0, 0.0]] * 3)
        tangents = resolve_tangents(np.zeros((3, 3)), None, None, None, supplied=supplied)
        assert tangents.shape == (3, 4)
        assert np.all(tangents[:, 3] == 1.0)

    def test_world_walk_order(self, door_scene):
        scene = build_scene(door_scene)
        names = [mesh.name for mesh, _ in iter_world_meshes(scene.root)]
        assert names == ["wall-seg-0", "wall-lintel-1", "wall-seg-2", "door"]


# ============================================================================
# SceneExporter Tests
# ============================================================================


class TestSceneExporter:
    """Tests for scene graph serialization."""

    @pytest.mark.asyncio
    async def test_requires_scene(self):
        with pytest.raises(PipelineStateError):
            await export(None)

    @pytest.mark.asyncio
    async def test_empty_scene(self):
        with pytest.raises(EmptySceneError):
            await export(Scene3D())

    @pytest.mark.asyncio
    async def test_floor_positions_round_trip(self, floor_scene):
        gltf, binary = read_glb(await export(build_scene(floor_scene)))

        assert len(gltf["nodes"]) == 1
        assert gltf["scenes"][0]["nodes"] == [0]
        primitive = primitives(gltf)[0]
        positions = read_accessor(gltf, binary, primitive["attributes"]["POSITION"])
        expected = np.array([[0, 0, 0], [400, 0, 0], [400, 0, -300], [0, 0, -300]], dtype=float)

        actual = sorted(map(tuple, positions))
        assert np.allclose(actual, sorted(map(tuple, expected)), atol=1e-4)

        normals = read_accessor(gltf, binary, primitive["attributes"]["NORMAL"])
        assert np.allclose(normals, [0.0, 1.0, 0.0])
        indices = read_accessor(gltf, binary, primitive["indices"])
        assert len(indices) % 3 == 0

    @pytest.mark.asyncio
    async def test_world_transforms_baked(self, door_scene):
        scene = build_scene(door_scene)
        gltf, binary = read_glb(await export(scene))

        for primitive, (mesh, world) in zip(primitives(gltf), iter_world_meshes(scene.root)):
            positions = read_accessor(gltf, binary, primitive["attributes"]["POSITION"])
            expected = trimesh.transformations.transform_points(mesh.vertices, world)
            assert np.allclose(positions, expected, atol=1e-4)
        assert all("matrix" not in node for node in gltf["nodes"])

    @pytest.mark.asyncio
    async def test_loads_with_trimesh(self, door_scene):
        data = await export(build_scene(door_scene))
        loaded = trimesh.load(io.BytesIO(data), file_type="glb")
        assert np.allclose(loaded.bounds, [[0.0, 0.0, -10.0], [300.0, 300.0, 10.0]], atol=1e-4)

    @pytest.mark.asyncio
    async def test_non_finite_node_matrix(self):
        matrix = np.full((4, 4), np.inf)
        gltf, binary = read_glb(await export(triangle_scene(matrix=matrix)))
        positions = read_accessor(gltf, binary, primitives(gltf)[0]["attributes"]["POSITION"])
        assert np.all(np.isfinite(positions))
        assert np.allclose(positions, [[0, 0, 0], [1, 0, 0], [0, 0, -1]])

    @pytest.mark.asyncio
    async def test_missing_normals_computed(self):
        gltf, binary = read_glb(await export(triangle_scene()))
        normals = read_accessor(gltf, binary, primitives(gltf)[0]["attributes"]["NORMAL"])
        assert np.allclose(normals, [0.0, 1.0, 0.0])

    @pytest.mark.asyncio
    async def test_materials_deduplicated(self, door_scene):
        gltf, _ = read_glb(await export(build_scene(door_scene)))
        wall_materials = {p["material"] for p in primitives(gltf)[:3]}
        assert len(wall_materials) == 1
        assert len(gltf["materials"]) == 2
        assert "textures" not in gltf
        assert all("TANGENT" not in p["attributes"] for p in primitives(gltf))

    @pytest.mark.asyncio
    async def test_normal_mapped_walls_get_tangents(self, textured_door_scene, brick_textures):
        gltf, binary = read_glb(await export(build_scene(textured_door_scene), brick_textures))
        walls, door = primitives(gltf)[:3], primitives(gltf)[3]

        for primitive in walls:
            tangents = read_accessor(gltf, binary, primitive["attributes"]["TANGENT"])
            assert np.allclose(np.linalg.norm(tangents[:, :3], axis=1), 1.0, atol=1e-4)
            assert set(np.abs(tangents[:, 3]).round(4)) == {1.0}
            material = gltf["materials"][primitive["material"]]
            assert material["normalTexture"]["scale"] == pytest.approx(0.8)
            assert material["pbrMetallicRoughness"]["baseColorFactor"] == [1.0, 1.0, 1.0, 1.0]
        assert "TANGENT" not in door["attributes"]
        assert "normalTexture" not in gltf["materials"][door["material"]]

        assert len(gltf["images"]) == 2
        assert len(gltf["samplers"]) == 1
        assert gltf["samplers"][0]["wrapS"] == 10497

    @pytest.mark.asyncio
    async def test_uv_repeat_applied(self, textured_door_scene, brick_textures):
        gltf, binary = read_glb(await export(build_scene(textured_door_scene), brick_textures))
        u_values = []
        for primitive in primitives(gltf)[:3]:
            uvs = read_accessor(gltf, binary, primitive["attributes"]["TEXCOORD_0"])
            normals = read_accessor(gltf, binary, primitive["attributes"]["NORMAL"])
            u_values.append(uvs[np.abs(normals[:, 2]) > 0.5, 0])
        u_values = np.concatenate(u_values)
        # 300 long wall at 0.01 repeats per unit
        assert u_values.min() == pytest.approx(0.0, abs=1e-5)
        assert u_values.max() == pytest.approx(3.0, abs=1e-5)

    @pytest.mark.asyncio
    async def test_normal_map_dropped_without_uvs(self, brick_textures):
        meta = RenderMeta(kind="wall", element_type="wall", texture_key="bricks", source_id="w")
        scene = triangle_scene(meta=meta, normals=np.tile([0.0, 1.0, 0.0], (3, 1)))
        gltf, _ = read_glb(await export(scene, brick_textures))

        primitive = primitives(gltf)[0]
        assert "TANGENT" not in primitive["attributes"]
        material = gltf["materials"][primitive["material"]]
        assert "normalTexture" not in material
        assert "baseColorTexture" in material["pbrMetallicRoughness"]

    @pytest.mark.asyncio
    async def test_embedded_data_uri_texture(self, png_bytes):
        textures = {"wall": {"plain": {"uri": png_data_uri(png_bytes)}}}
        meta = RenderMeta(kind="wall", element_type="wall", texture_key="plain", source_id="w")
        scene = triangle_scene(meta=meta, uvs=np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]]))

        gltf, binary = read_glb(await export(scene, textures))
        assert len(gltf["images"]) == 1
        image = gltf["images"][0]
        assert image["mimeType"] == "image/png"
        assert "uri" not in image
        assert gltf["bufferViews"][image["bufferView"]]["byteLength"] == len(png_bytes)
        assert read_image_bytes(gltf, binary, 0) == png_bytes

    @pytest.mark.asyncio
    async def test_first_material_failure_reported(self):
        first_uri = "data:image/png;base64,abc"
        second_uri = "data:image/png;base64,abcdefg"
        textures = {"wall": {"a": {"uri": first_uri}, "b": {"uri": second_uri}}}

        scene = Scene3D()
        for key in ("a", "b"):
            mesh = Mesh3D(
                vertices=np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, -1.0]]),
                faces=np.array([[0, 1, 2]]),
                meta=RenderMeta(kind="wall", element_type="wall", texture_key=key, source_id=key),
                name=f"triangle-{key}",
            )
            scene.root.add(SceneNode.for_mesh(mesh))

        resolver = MaterialResolver(TextureCatalog.from_dict(textures))
        with pytest.raises(TextureUnavailableError) as exc_info:
            await SceneExporter(resolver).export(scene)
        await resolver.close()

        assert exc_info.value.uri == first_uri
        assert all(task.done() for task in resolver._materials.values())
