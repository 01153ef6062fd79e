from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from voxmesh.field.source import sample_block
from voxmesh.mesh.mesh import Mesh
from voxmesh.mesher.base import build_timer, check_size

# Quad corners per axis, as (x, y, z) offsets from the face origin. Listed so that
# ORDER_FRONT winds counter-clockwise around +axis.
_QUAD = {
    0: np.array([[0, 0, 0], [0, 1, 0], [0, 0, 1], [0, 1, 1]], dtype=np.int32),
    1: np.array([[0, 0, 0], [0, 0, 1], [1, 0, 0], [1, 0, 1]], dtype=np.int32),
    2: np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]], dtype=np.int32),
}
ORDER_FRONT = np.array([0, 1, 2, 2, 1, 3], dtype=np.uint32)
ORDER_REVERSE = np.array([2, 1, 0, 3, 1, 2], dtype=np.uint32)

# (axis, sign) in emission order: +x, -x, +y, -y, +z, -z
_FACES = ((0, 1), (0, -1), (1, 1), (1, -1), (2, 1), (2, -1))


@dataclass(frozen=True)
class BlockyMesher:
    """One flat quad per exposed voxel face; no vertex sharing, exact axis normals."""

    size: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "size", check_size(self.size))

    def mesh(self, source) -> Mesh:
        size = self.size
        with build_timer("blocky") as stats:
            # One voxel of context on every side for neighbour tests.
            axis = np.arange(-1, size + 1, dtype=np.int64)
            occ = sample_block(source, axis, axis, axis)  # [z, y, x]
            inner = occ[1:-1, 1:-1, 1:-1]

            positions: list[np.ndarray] = []
            normals: list[np.ndarray] = []
            indices: list[np.ndarray] = []
            base = 0

            for ax, sign in _FACES:
                # numpy axis of occ for lattice axis x/y/z
                np_ax = 2 - ax
                neighbour = np.roll(occ, -sign, axis=np_ax)[1:-1, 1:-1, 1:-1]
                exposed = inner & ~neighbour
                zyx = np.argwhere(exposed)
                n = zyx.shape[0]
                if n == 0:
                    continue

                origin = zyx[:, ::-1].astype(np.int32)  # (n, 3) as x, y, z
                if sign > 0:
                    origin[:, ax] += 1
                corners = origin[:, None, :] + _QUAD[ax][None, :, :]  # (n, 4, 3)
                positions.append(corners.reshape(-1, 3).astype(np.float32))

                normal = np.zeros(3, dtype=np.float32)
                normal[ax] = float(sign)
                normals.append(np.tile(normal, (n * 4, 1)))

                order = ORDER_FRONT if sign > 0 else ORDER_REVERSE
                starts = base + np.arange(n, dtype=np.uint32) * 4
                indices.append((starts[:, None] + order[None, :]).reshape(-1))
                base += n * 4

            if not positions:
                stats.update(vertices=0, triangles=0)
                return Mesh.empty()

            mesh = Mesh(
                positions=np.concatenate(positions, axis=0),
                normals=np.concatenate(normals, axis=0),
                indices=np.concatenate(indices, axis=0),
            )
            stats.update(vertices=mesh.n_vertices, triangles=mesh.n_triangles)
        return mesh
