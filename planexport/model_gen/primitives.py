"""Geometry primitives shared by the element builders."""

from typing import List, Sequence, Tuple

import numpy as np
import trimesh
from shapely.geometry import Polygon
from shapely.geometry.polygon import orient

Point2D = Tuple[float, float]

EPSILON = 1e-6


def box_geometry(width: float, height: float, depth: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Create a box centered at the origin with flat per-face normals.

    Args:
        width: Extent along X
        height: Extent along Y
        depth: Extent along Z

    Returns:
        (vertices, normals, faces); every triangle owns its three vertices
    """
    box = trimesh.creation.box(extents=[width, height, depth])
    box.unmerge_vertices()
    vertices = np.asarray(box.vertices, dtype=np.float64)
    faces = np.asarray(box.faces, dtype=np.int64)

    normals = np.zeros_like(vertices)
    normals[faces.reshape(-1)] = np.repeat(box.face_normals, 3, axis=0)
    return vertices, normals, faces


def plan_to_world(points: np.ndarray, y: float = 0.0) -> np.ndarray:
    """Map plan coordinates (x, y) onto the Y-up ground plane (x, y, -plan_y)."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return np.column_stack([points[:, 0], np.full(len(points), y), -points[:, 1]])


def triangulate_rings(outer: Sequence[Point2D], holes: List[Sequence[Point2D]]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Triangulate a polygon with holes in plan space.

    The outer ring is oriented counter-clockwise and every hole clockwise
    before tessellation. Returned triangles are counter-clockwise in plan
    space, which is +Y facing once mapped with ``plan_to_world``, and only
    vertices referenced by a triangle are returned.

    Returns:
        (vertices (n, 2), faces (m, 3))
    """
    polygon = orient(Polygon(outer, holes=[h for h in holes if len(h) >= 3]), sign=1.0)
    vertices, faces = trimesh.creation.triangulate_polygon(polygon, engine="earcut")
    vertices = np.asarray(vertices, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)

    if len(faces) == 0:
        return vertices, faces

    # Drop ring-closing duplicates and any other vertex no triangle uses
    used, faces = np.unique(faces, return_inverse=True)
    vertices = vertices[used]
    faces = faces.reshape(-1, 3)

    a = vertices[faces[:, 0]]
    b = vertices[faces[:, 1]]
    c = vertices[faces[:, 2]]
    cross = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    clockwise = cross < 0
    faces[clockwise] = faces[clockwise][:, ::-1]
    return vertices, faces


def bbox_uvs(points: np.ndarray, min_xy: Point2D, size: Point2D) -> np.ndarray:
    """Project plan points onto [0, 1] using a bounding box."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    uvs = np.empty_like(points)
    uvs[:, 0] = (points[:, 0] - min_xy[0]) / size[0]
    uvs[:, 1] = (points[:, 1] - min_xy[1]) / size[1]
    return uvs
