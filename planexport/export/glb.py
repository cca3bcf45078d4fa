"""Binary glTF 2.0 (GLB) container writing and reading.

Layout: 12-byte header (magic, version, total length), a JSON chunk padded
with spaces and a BIN chunk padded with zeros, every chunk 4-byte aligned.
One buffer backs all buffer views.
"""

import json
import logging
import struct
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from planexport.errors import PipelineStateError
from planexport.materials.types import Material, Texture

logger = logging.getLogger(__name__)

GLB_MAGIC = b"glTF"
GLB_VERSION = 2
CHUNK_TYPE_JSON = 0x4E4F534A
CHUNK_TYPE_BIN = 0x004E4942

COMPONENT_FLOAT = 5126
COMPONENT_UNSIGNED_INT = 5125
COMPONENT_UNSIGNED_SHORT = 5123

TARGET_ARRAY_BUFFER = 34962
TARGET_ELEMENT_ARRAY_BUFFER = 34963

WRAP_REPEAT = 10497
FILTER_LINEAR = 9729
FILTER_LINEAR_MIPMAP_LINEAR = 9987

COMPONENT_DTYPES = {
    COMPONENT_FLOAT: np.dtype("<f4"),
    COMPONENT_UNSIGNED_INT: np.dtype("<u4"),
    COMPONENT_UNSIGNED_SHORT: np.dtype("<u2"),
}
TYPE_SIZES = {"SCALAR": 1, "VEC2": 2, "VEC3": 3, "VEC4": 4}


class GlbError(ValueError):
    """Malformed GLB input."""


def _pad(data: bytes, fill: bytes) -> bytes:
    remainder = len(data) % 4
    return data if remainder == 0 else data + fill * (4 - remainder)


class GLBDocument:
    """Accumulates glTF entities over one binary buffer and serializes them."""

    def __init__(self, generator: str = "planexport"):
        self.gltf: Dict[str, Any] = {
            "asset": {"version": "2.0", "generator": generator},
            "scene": 0,
            "scenes": [{"name": "scene", "nodes": []}],
            "nodes": [],
            "meshes": [],
            "materials": [],
            "accessors": [],
            "bufferViews": [],
            "buffers": [],
        }
        self._bin = bytearray()
        self._material_index: Dict[int, int] = {}
        self._texture_index: Dict[int, int] = {}
        self._sampler: Optional[int] = None
        self._written = False

    def _check_open(self) -> None:
        if self._written:
            raise PipelineStateError("GLB document was already written")

    def _add_buffer_view(self, data: bytes, target: Optional[int] = None, byte_stride: Optional[int] = None) -> int:
        self._check_open()
        while len(self._bin) % 4:
            self._bin.append(0)
        view: Dict[str, Any] = {"buffer": 0, "byteOffset": len(self._bin), "byteLength": len(data)}
        if target is not None:
            view["target"] = target
        if byte_stride is not None:
            view["byteStride"] = byte_stride
        self._bin.extend(data)
        self.gltf["bufferViews"].append(view)
        return len(self.gltf["bufferViews"]) - 1

    def add_accessor(self, array: np.ndarray, accessor_type: str, indices: bool = False) -> int:
        """
        Append an attribute or index array and return its accessor index.

        Float attributes are stored as float32; indices as uint16 or uint32.
        """
        array = np.asarray(array)
        if indices:
            flat = array.reshape(-1)
            component = COMPONENT_UNSIGNED_SHORT if flat.size and flat.max() < 65535 else COMPONENT_UNSIGNED_INT
            data = flat.astype(COMPONENT_DTYPES[component])
            target = TARGET_ELEMENT_ARRAY_BUFFER
        else:
            component = COMPONENT_FLOAT
            data = array.astype(COMPONENT_DTYPES[component]).reshape(-1, TYPE_SIZES[accessor_type])
            target = TARGET_ARRAY_BUFFER

        view = self._add_buffer_view(data.tobytes(), target=target)
        accessor: Dict[str, Any] = {
            "bufferView": view,
            "componentType": component,
            "count": int(len(data) if indices else data.shape[0]),
            "type": accessor_type,
        }
        if accessor_type == "VEC3" and not indices and data.shape[0] > 0:
            accessor["min"] = [float(v) for v in data.min(axis=0)]
            accessor["max"] = [float(v) for v in data.max(axis=0)]
        self.gltf["accessors"].append(accessor)
        return len(self.gltf["accessors"]) - 1

    def _get_sampler(self) -> int:
        if self._sampler is None:
            self.gltf.setdefault("samplers", []).append(
                {
                    "magFilter": FILTER_LINEAR,
                    "minFilter": FILTER_LINEAR_MIPMAP_LINEAR,
                    "wrapS": WRAP_REPEAT,
                    "wrapT": WRAP_REPEAT,
                }
            )
            self._sampler = len(self.gltf["samplers"]) - 1
        return self._sampler

    def add_texture(self, texture: Texture) -> int:
        """Embed a texture image once and return its texture index."""
        existing = self._texture_index.get(id(texture))
        if existing is not None:
            return existing

        view = self._add_buffer_view(texture.data)
        image: Dict[str, Any] = {"name": texture.name, "bufferView": view}
        if texture.mime_type:
            image["mimeType"] = texture.mime_type
        else:
            logger.warning(f"Embedding image {texture.name} without a mime type")
        images = self.gltf.setdefault("images", [])
        images.append(image)

        textures = self.gltf.setdefault("textures", [])
        textures.append({"source": len(images) - 1, "sampler": self._get_sampler()})
        index = len(textures) - 1
        self._texture_index[id(texture)] = index
        return index

    def add_material(self, material: Material) -> int:
        """Add a material once (by identity) and return its index."""
        existing = self._material_index.get(id(material))
        if existing is not None:
            return existing
        self._check_open()

        pbr: Dict[str, Any] = {
            "baseColorFactor": [float(c) for c in material.base_color_factor],
            "metallicFactor": material.metallic,
            "roughnessFactor": material.roughness,
        }
        entry: Dict[str, Any] = {"name": material.name, "pbrMetallicRoughness": pbr}
        if material.base_color_texture is not None:
            pbr["baseColorTexture"] = {"index": self.add_texture(material.base_color_texture)}
        if material.normal_texture is not None:
            normal: Dict[str, Any] = {"index": self.add_texture(material.normal_texture)}
            if material.normal_scale is not None and material.normal_scale != 1.0:
                normal["scale"] = material.normal_scale
            entry["normalTexture"] = normal
        if material.double_sided:
            entry["doubleSided"] = True

        self.gltf["materials"].append(entry)
        index = len(self.gltf["materials"]) - 1
        self._material_index[id(material)] = index
        return index

    def add_mesh_node(
        self,
        name: str,
        attributes: Dict[str, int],
        indices: Optional[int],
        material: Optional[int],
    ) -> int:
        """Add a single-primitive mesh, a node for it, and attach the node to the scene."""
        self._check_open()
        primitive: Dict[str, Any] = {"attributes": dict(attributes), "mode": 4}
        if indices is not None:
            primitive["indices"] = indices
        if material is not None:
            primitive["material"] = material
        self.gltf["meshes"].append({"name": name, "primitives": [primitive]})
        mesh_index = len(self.gltf["meshes"]) - 1

        self.gltf["nodes"].append({"name": name, "mesh": mesh_index})
        node_index = len(self.gltf["nodes"]) - 1
        self.gltf["scenes"][0]["nodes"].append(node_index)
        return node_index

    @property
    def node_count(self) -> int:
        return len(self.gltf["nodes"])

    def to_bytes(self) -> bytes:
        """Serialize the document; no further additions are accepted."""
        self._check_open()
        self._written = True

        binary = _pad(bytes(self._bin), b"\x00")
        gltf = dict(self.gltf)
        if binary:
            gltf["buffers"] = [{"byteLength": len(binary)}]
        else:
            gltf.pop("buffers")
            gltf.pop("bufferViews")
        for key in ("materials", "accessors", "meshes"):
            if not gltf.get(key):
                gltf.pop(key, None)

        json_bytes = _pad(json.dumps(gltf, separators=(",", ":")).encode("utf-8"), b" ")
        total = 12 + 8 + len(json_bytes) + (8 + len(binary) if binary else 0)

        out = bytearray(struct.pack("<4sII", GLB_MAGIC, GLB_VERSION, total))
        out += struct.pack("<II", len(json_bytes), CHUNK_TYPE_JSON) + json_bytes
        if binary:
            out += struct.pack("<II", len(binary), CHUNK_TYPE_BIN) + binary
        return bytes(out)


def read_glb(data: bytes) -> Tuple[Dict[str, Any], bytes]:
    """Split a GLB payload into its JSON document and BIN chunk."""
    if len(data) < 20:
        raise GlbError("GLB payload too small")
    magic, version, length = struct.unpack_from("<4sII", data, 0)
    if magic != GLB_MAGIC or version != GLB_VERSION:
        raise GlbError("Not a glTF 2.0 binary payload")
    if length != len(data):
        raise GlbError(f"GLB length mismatch: header {length}, actual {len(data)}")

    offset = 12
    gltf: Optional[Dict[str, Any]] = None
    binary = b""
    while offset < length:
        chunk_length, chunk_type = struct.unpack_from("<II", data, offset)
        chunk = data[offset + 8 : offset + 8 + chunk_length]
        if chunk_type == CHUNK_TYPE_JSON:
            gltf = json.loads(chunk.decode("utf-8"))
        elif chunk_type == CHUNK_TYPE_BIN:
            binary = chunk
        offset += 8 + chunk_length

    if gltf is None:
        raise GlbError("GLB payload has no JSON chunk")
    return gltf, binary


def read_accessor(gltf: Dict[str, Any], binary: bytes, index: int) -> np.ndarray:
    """Decode one (non-sparse, tightly packed) accessor to a numpy array."""
    accessor = gltf["accessors"][index]
    view = gltf["bufferViews"][accessor["bufferView"]]
    dtype = COMPONENT_DTYPES.get(accessor["componentType"])
    if dtype is None:
        raise GlbError(f"Unsupported componentType {accessor['componentType']}")
    size = TYPE_SIZES[accessor["type"]]
    start = view.get("byteOffset", 0) + accessor.get("byteOffset", 0)
    count = accessor["count"]
    array = np.frombuffer(binary, dtype=dtype, count=count * size, offset=start)
    return array.reshape(count, size) if size > 1 else array


def read_image_bytes(gltf: Dict[str, Any], binary: bytes, image_index: int) -> bytes:
    view = gltf["bufferViews"][gltf["images"][image_index]["bufferView"]]
    start = view.get("byteOffset", 0)
    return binary[start : start + view["byteLength"]]
