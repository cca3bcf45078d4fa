"""Geometry sanitization applied before emission."""

import logging
from typing import Optional

import numpy as np
import trimesh

logger = logging.getLogger(__name__)

TANGENT_EPSILON = 1e-6


def sanitize_matrix(matrix: np.ndarray) -> np.ndarray:
    """Return the matrix, or identity when any element is not finite."""
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.shape != (4, 4) or not np.all(np.isfinite(matrix)):
        logger.warning("Resetting non-finite node transform to identity")
        return np.eye(4)
    return matrix


def transform_positions(positions: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    return trimesh.transformations.transform_points(positions, matrix)


def transform_directions(directions: np.ndarray, matrix: np.ndarray, normal: bool = False) -> np.ndarray:
    """
    Transform direction vectors by the linear part of a matrix and renormalize.

    Normals use the inverse transpose so non-uniform scale keeps them perpendicular.
    """
    linear = matrix[:3, :3]
    if normal:
        try:
            linear = np.linalg.inv(linear).T
        except np.linalg.LinAlgError:
            pass
    out = np.asarray(directions, dtype=np.float64) @ linear.T
    with np.errstate(invalid="ignore", divide="ignore"):
        lengths = np.linalg.norm(out, axis=1, keepdims=True)
        out = np.where(lengths > 0, out / lengths, out)
    return out


def compute_normals(positions: np.ndarray, faces: np.ndarray) -> np.ndarray:
    """Area-weighted vertex normals from triangle winding."""
    mesh = trimesh.Trimesh(vertices=positions, faces=faces, process=False)
    return np.asarray(mesh.vertex_normals, dtype=np.float64)


def compute_tangents(
    positions: np.ndarray,
    normals: np.ndarray,
    uvs: np.ndarray,
    faces: np.ndarray,
) -> np.ndarray:
    """
    Per-vertex tangents (x, y, z, handedness) from UV gradients.

    Triangles with a degenerate UV mapping contribute nothing; vertices that
    receive no contribution end with a zero tangent, which validation rejects.
    """
    positions = np.asarray(positions, dtype=np.float64)
    normals = np.asarray(normals, dtype=np.float64)
    uvs = np.asarray(uvs, dtype=np.float64)
    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)

    p0, p1, p2 = positions[faces[:, 0]], positions[faces[:, 1]], positions[faces[:, 2]]
    w0, w1, w2 = uvs[faces[:, 0]], uvs[faces[:, 1]], uvs[faces[:, 2]]

    e1 = p1 - p0
    e2 = p2 - p0
    d1 = w1 - w0
    d2 = w2 - w0

    det = d1[:, 0] * d2[:, 1] - d2[:, 0] * d1[:, 1]
    usable = np.abs(det) > 1e-12
    r = np.zeros_like(det)
    r[usable] = 1.0 / det[usable]

    sdir = (e1 * d2[:, 1:2] - e2 * d1[:, 1:2]) * r[:, None]
    tdir = (e2 * d1[:, 0:1] - e1 * d2[:, 0:1]) * r[:, None]

    tan1 = np.zeros_like(positions)
    tan2 = np.zeros_like(positions)
    for corner in range(3):
        np.add.at(tan1, faces[:, corner], sdir)
        np.add.at(tan2, faces[:, corner], tdir)

    # Gram-Schmidt against the normal
    tangent = tan1 - normals * np.sum(normals * tan1, axis=1, keepdims=True)
    lengths = np.linalg.norm(tangent, axis=1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        tangent = np.where(lengths > 0, tangent / lengths, 0.0)

    handedness = np.where(np.sum(np.cross(normals, tangent) * tan2, axis=1) < 0.0, -1.0, 1.0)
    return np.column_stack([tangent, handedness])


def tangents_valid(tangents: Optional[np.ndarray]) -> bool:
    """Every tangent's 3D part must have a finite length above epsilon."""
    if tangents is None:
        return False
    tangents = np.asarray(tangents, dtype=np.float64)
    if tangents.ndim != 2 or tangents.shape[1] < 3 or len(tangents) == 0:
        return False
    with np.errstate(invalid="ignore", over="ignore"):
        lengths = np.linalg.norm(tangents[:, :3], axis=1)
    return bool(np.all(np.isfinite(lengths)) and np.all(lengths > TANGENT_EPSILON))


def resolve_tangents(
    positions: np.ndarray,
    normals: Optional[np.ndarray],
    uvs: Optional[np.ndarray],
    faces: Optional[np.ndarray],
    supplied: Optional[np.ndarray] = None,
) -> Optional[np.ndarray]:
    """
    Tangents for a normal-mapped primitive, or None when no valid basis exists.

    Supplied tangents are used as-is; otherwise they are computed when
    positions, normals, UVs and indices are all present.
    """
    tangents = supplied
    if tangents is None:
        if normals is None or uvs is None or faces is None or len(faces) == 0:
            return None
        tangents = compute_tangents(positions, normals, uvs, faces)

    if not tangents_valid(tangents):
        return None

    tangents = np.asarray(tangents, dtype=np.float64)
    if tangents.shape[1] == 3:
        tangents = np.column_stack([tangents, np.ones(len(tangents))])
    return tangents
