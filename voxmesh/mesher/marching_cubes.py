"""Marching Cubes over a boolean voxel field.

Pipeline per ``mesh()`` call:

1. fill a margin-padded density grid (occupied -> +1, empty -> -1)
2. optionally box-blur it so the surface is rounded instead of blocky
3. optionally derive per-lattice normals from the blurred gradient
4. sweep the cells bottom-to-top (y outer, z middle, x inner) and polygonize
5. resolve vertex normals: trilinear from the gradient grid, or face-weighted

The buffered sweep shares edge-crossing vertices between neighbouring cells via
small per-layer caches keyed by ``x + z*stride``. Horizontal edges live on the
layer's bottom or top plane; when the sweep moves up one layer the top caches
become the bottom caches by swapping references, and only the new top is reset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from voxmesh.config import DEFAULT_MC_BUFFERED, DEFAULT_MC_SMOOTH, MC_TARGET
from voxmesh.mesh.mesh import Mesh
from voxmesh.mesh.normals import estimate_normals
from voxmesh.mesher.base import build_timer, check_size
from voxmesh.mesher.grid import DensityGrid
from voxmesh.mesher.mc_tables import (
    CUBE_EDGE_FLAGS,
    EDGE_CONNECTION,
    EDGE_DIRECTION,
    EDGE_LATTICE,
    END_OF_LIST,
    TRIANGLE_CONNECTION_TABLE,
    TRIANGLE_TABLE_U8,
    VERTEX_OFFSET,
    WINDING_ORDER,
)

logger = logging.getLogger(__name__)

TARGET = MC_TARGET

_EMPTY = -1


def get_offset(v1: float, v2: float) -> float:
    """Fraction along an edge where the density crosses TARGET; 0.5 when both ends are equal."""
    delta = v2 - v1
    if delta == 0.0:
        return 0.5
    return (TARGET - v1) / delta


def edge_point(pos: Sequence[int], cube: Sequence[float], edge: int) -> tuple:
    c0, c1 = EDGE_CONNECTION[edge]
    offset = get_offset(cube[c0], cube[c1])
    o = VERTEX_OFFSET[c0]
    d = EDGE_DIRECTION[edge]
    return (
        pos[0] + o[0] + offset * d[0],
        pos[1] + o[1] + offset * d[1],
        pos[2] + o[2] + offset * d[2],
    )


def cell_corners(grid: DensityGrid, size: int) -> np.ndarray:
    """Corner densities for every cell in ``[0, size)^3`` as ``[z, y, x, corner]``."""
    return np.stack([grid.window(o[0], o[1], o[2], size) for o in VERTEX_OFFSET], axis=-1)


def cell_flags(corners: np.ndarray) -> np.ndarray:
    """8-bit case index per cell: bit i set when corner i is at or below TARGET."""
    below = corners <= TARGET
    weights = (1 << np.arange(8)).astype(np.int32)
    return (below.astype(np.int32) * weights).sum(axis=-1)


class _Sweep:
    """Working state of one polygonization pass; discarded after the call."""

    def __init__(self, size: int, corners: np.ndarray, flags: np.ndarray) -> None:
        self.size = size
        self.corners = corners
        self.flags = flags
        self.vertices: List[tuple] = []
        self.indices: List[int] = []

        # Cells with at least one crossed edge, grouped per layer.
        active = CUBE_EDGE_FLAGS[flags] != 0  # [z, y, x]
        self.layers = [np.argwhere(active[:, y, :]) for y in range(size)]  # (z, x) rows

        stride = size + 1
        self.stride = stride
        plane = stride * stride
        self.ybuf = np.full(plane, _EMPTY, dtype=np.int64)
        self.xbuf = np.full(plane, _EMPTY, dtype=np.int64)
        self.xtop = np.full(plane, _EMPTY, dtype=np.int64)
        self.zbuf = np.full(plane, _EMPTY, dtype=np.int64)
        self.ztop = np.full(plane, _EMPTY, dtype=np.int64)

    def next_layer(self) -> None:
        self.xbuf, self.xtop = self.xtop, self.xbuf
        self.zbuf, self.ztop = self.ztop, self.zbuf
        self.xtop.fill(_EMPTY)
        self.ztop.fill(_EMPTY)
        self.ybuf.fill(_EMPTY)

    def _cache(self, axis: int, dy: int) -> np.ndarray:
        if axis == 1:
            return self.ybuf
        if axis == 0:
            return self.xtop if dy else self.xbuf
        return self.ztop if dy else self.zbuf

    def shared_vertex(self, x: int, y: int, z: int, cube: Sequence[float], edge: int) -> int:
        axis, dx, dy, dz = EDGE_LATTICE[edge]
        buf = self._cache(axis, dy)
        slot = (x + dx) + (z + dz) * self.stride
        index = int(buf[slot])
        if index == _EMPTY:
            index = len(self.vertices)
            self.vertices.append(edge_point((x, y, z), cube, edge))
            buf[slot] = index
        return index

    def run_buffered(self) -> None:
        for y in range(self.size):
            for z, x in self.layers[y].tolist():
                flag = int(self.flags[z, y, x])
                cube = self.corners[z, y, x].tolist()
                tris = TRIANGLE_TABLE_U8[flag]
                for i in range(5):
                    if tris[3 * i] == END_OF_LIST:
                        break
                    for j in range(3):
                        edge = int(tris[3 * i + WINDING_ORDER[j]])
                        self.indices.append(self.shared_vertex(x, y, z, cube, edge))
            self.next_layer()

    def run_unbuffered(self) -> None:
        for y in range(self.size):
            for z, x in self.layers[y].tolist():
                flag = int(self.flags[z, y, x])
                cube = self.corners[z, y, x].tolist()
                edge_flags = int(CUBE_EDGE_FLAGS[flag])
                pos = (x, y, z)
                edge_vertex = [None] * 12
                for e in range(12):
                    if edge_flags & (1 << e):
                        edge_vertex[e] = edge_point(pos, cube, e)

                table = TRIANGLE_CONNECTION_TABLE[flag]
                for i in range(5):
                    if table[3 * i] < 0:
                        break
                    idx = len(self.vertices)
                    for j in range(3):
                        self.indices.append(idx + WINDING_ORDER[j])
                        self.vertices.append(edge_vertex[int(table[3 * i + j])])


@dataclass(frozen=True)
class MarchingCubesMesher:
    size: int
    smooth: bool = DEFAULT_MC_SMOOTH
    buffered: bool = DEFAULT_MC_BUFFERED

    def __post_init__(self) -> None:
        object.__setattr__(self, "size", check_size(self.size))

    def mesh(self, source) -> Mesh:
        label = "marching cubes" if self.buffered else "marching cubes (unbuffered)"
        with build_timer(label) as stats:
            grid = DensityGrid.fill(source, self.size)
            normal_grid = None
            if self.smooth:
                grid.blur()
                normal_grid = grid.gradient_normals()

            corners = cell_corners(grid, self.size)
            sweep = _Sweep(self.size, corners, cell_flags(corners))
            logger.debug("%d of %d cells cross the surface", sum(len(layer) for layer in sweep.layers), self.size ** 3)
            if self.buffered:
                sweep.run_buffered()
            else:
                sweep.run_unbuffered()

            if not sweep.indices:
                stats.update(vertices=0, triangles=0)
                return Mesh.empty()

            positions = np.asarray(sweep.vertices, dtype=np.float64)
            indices = np.asarray(sweep.indices, dtype=np.uint32)
            if normal_grid is not None:
                normals = normal_grid.interpolate(positions)
            else:
                normals = estimate_normals(positions.astype(np.float32), indices)

            mesh = Mesh(positions=positions, normals=normals, indices=indices)
            stats.update(vertices=mesh.n_vertices, triangles=mesh.n_triangles)
        return mesh
