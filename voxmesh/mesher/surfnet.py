from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from voxmesh.config import DEFAULT_SURFNET_SMOOTH
from voxmesh.field.source import sample_block
from voxmesh.mesh.mesh import Mesh
from voxmesh.mesh.normals import estimate_normals
from voxmesh.mesher.base import build_timer, check_size

NO_VERTEX = -1

# Axis neighbours used by the relaxation.
_NEIGHBOURS = (
    (-1, 0, 0), (1, 0, 0),
    (0, -1, 0), (0, 1, 0),
    (0, 0, -1), (0, 0, 1),
)

# The three vertex quads around a lattice point, as (x, y, z) offsets. The last
# entry is the corner diagonal to the origin; its voxel is compared with the
# voxel at (+1, +1, +1) to decide whether the quad crosses the surface.
_QUADS = (
    ((0, 0, 0), (0, 1, 0), (0, 0, 1), (0, 1, 1)),
    ((0, 0, 0), (0, 0, 1), (1, 0, 0), (1, 0, 1)),
    ((0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 0)),
)
# Triangle corner order into a quad, picked by which side is solid.
_ORDER_SOLID_NEAR = (0, 1, 2, 2, 1, 3)
_ORDER_SOLID_FAR = (2, 1, 0, 3, 1, 2)


def neighbour_table(index_map: np.ndarray, cells: np.ndarray) -> np.ndarray:
    """(N, 6) indices of each vertex's axis neighbours, NO_VERTEX where missing.

    ``index_map`` is ``[z, y, x]``; ``cells`` holds the (x, y, z) lattice point of
    every vertex in index order.
    """
    size = index_map.shape[0]
    out = np.full((cells.shape[0], len(_NEIGHBOURS)), NO_VERTEX, dtype=np.int64)
    for k, (dx, dy, dz) in enumerate(_NEIGHBOURS):
        x = cells[:, 0] + dx
        y = cells[:, 1] + dy
        z = cells[:, 2] + dz
        ok = (x >= 0) & (y >= 0) & (z >= 0) & (x < size) & (y < size) & (z < size)
        out[ok, k] = index_map[z[ok], y[ok], x[ok]]
    return out


def relax(current: np.ndarray, previous: np.ndarray, neighbours: np.ndarray) -> None:
    """One Laplacian pass: ``current[i]`` = mean of ``previous[i]`` and its existing neighbours."""
    total = previous.copy()
    count = np.ones((previous.shape[0], 1), dtype=previous.dtype)
    for k in range(neighbours.shape[1]):
        nb = neighbours[:, k]
        has = nb != NO_VERTEX
        total[has] += previous[nb[has]]
        count[has] += 1
    current[...] = total / count


def laplacian_energy(positions: np.ndarray, neighbours: np.ndarray) -> float:
    """Sum of squared distances between each vertex and the mean of its existing neighbours."""
    pos = np.asarray(positions, dtype=np.float64)
    total = np.zeros_like(pos)
    count = np.zeros((pos.shape[0], 1))
    for k in range(neighbours.shape[1]):
        nb = neighbours[:, k]
        has = nb != NO_VERTEX
        total[has] += pos[nb[has]]
        count[has] += 1
    has_any = count[:, 0] > 0
    if not np.any(has_any):
        return 0.0
    mean = total[has_any] / count[has_any]
    return float(np.sum((pos[has_any] - mean) ** 2))


@dataclass(frozen=True)
class SurfNetMesher:
    """Surface Nets: one vertex per sign-changing 2x2x2 voxel neighbourhood, relaxed ``smooth`` times."""

    size: int
    smooth: int = DEFAULT_SURFNET_SMOOTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "size", check_size(self.size))
        if int(self.smooth) < 0:
            raise ValueError(f"smooth must be >= 0, got {self.smooth}")
        object.__setattr__(self, "smooth", int(self.smooth))

    def place_vertices(self, occ: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return (index_map [z, y, x], cells (N,3) as x, y, z) for ``occ`` sampled on ``[0, size]``."""
        size = self.size
        o = occ.astype(np.int8)
        count = np.zeros((size, size, size), dtype=np.int8)
        for dz in (0, 1):
            for dy in (0, 1):
                for dx in (0, 1):
                    count += o[dz:dz + size, dy:dy + size, dx:dx + size]
        has_vertex = (count > 0) & (count < 8)

        index_map = np.full((size, size, size), NO_VERTEX, dtype=np.int64)
        zyx = np.argwhere(has_vertex)
        index_map[zyx[:, 0], zyx[:, 1], zyx[:, 2]] = np.arange(zyx.shape[0])
        return index_map, zyx[:, ::-1].copy()

    def connect_faces(self, occ: np.ndarray, index_map: np.ndarray) -> np.ndarray:
        indices: list[int] = []
        for z, y, x in np.argwhere(index_map[:-1, :-1, :-1] != NO_VERTEX).tolist():
            pos = bool(occ[z + 1, y + 1, x + 1])
            for quad in _QUADS:
                ix = [int(index_map[z + oz, y + oy, x + ox]) for ox, oy, oz in quad]
                if NO_VERTEX in ix:
                    continue
                px, py, pz = quad[3]
                neg = bool(occ[z + pz, y + py, x + px])
                if pos == neg:
                    continue
                order = _ORDER_SOLID_NEAR if neg else _ORDER_SOLID_FAR
                indices.extend(ix[i] for i in order)
        return np.asarray(indices, dtype=np.uint32)

    def mesh(self, source) -> Mesh:
        size = self.size
        with build_timer("surface nets") as stats:
            axis = np.arange(0, size + 1, dtype=np.int64)
            occ = sample_block(source, axis, axis, axis)  # [z, y, x]

            index_map, cells = self.place_vertices(occ)
            current = cells.astype(np.float32)
            previous = np.zeros_like(current)

            if self.smooth:
                neighbours = neighbour_table(index_map, cells)
                for _ in range(self.smooth):
                    # previous takes the last positions, current becomes scratch
                    previous, current = current, previous
                    relax(current, previous, neighbours)

            indices = self.connect_faces(occ, index_map)
            if indices.size == 0:
                stats.update(vertices=0, triangles=0)
                return Mesh.empty()

            normals = estimate_normals(current, indices)
            mesh = Mesh(positions=current, normals=normals, indices=indices)
            stats.update(vertices=mesh.n_vertices, triangles=mesh.n_triangles)
        return mesh
