from __future__ import annotations

import numpy as np

from voxmesh.util.math import normalize_rows


def estimate_normals(positions: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """Face-weighted vertex normals.

    Every triangle (a, b, c) adds its unnormalized cross product (b-a) x (c-a) to
    each of its three vertices, so larger faces weigh more. The sums are then
    normalized. A vertex that only touches degenerate triangles keeps a zero normal.
    """
    pos = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
    tris = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    normals = np.zeros_like(pos)
    if tris.shape[0] == 0:
        return normals

    a = pos[tris[:, 0]]
    b = pos[tris[:, 1]]
    c = pos[tris[:, 2]]
    face = np.cross(b - a, c - a)

    # np.add.at accumulates repeated indices, unlike fancy-index +=
    for k in range(3):
        np.add.at(normals, tris[:, k], face)

    return normalize_rows(normals).astype(np.float32)
