"""Voxel fields: total, side-effect free occupancy queries over integer lattice points.

A field only has to answer ``get(x, y, z) -> bool``. Fields that can answer a whole
axis-aligned block at once also expose ``get_block(xs, ys, zs)``; meshers prefer it
and fall back to point queries (see :func:`sample_block`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Tuple, runtime_checkable

import numpy as np


@runtime_checkable
class VoxelField(Protocol):
    def get(self, x: int, y: int, z: int) -> bool: ...


def sample_block(field, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
    """Return a ``(len(zs), len(ys), len(xs))`` bool block, indexed ``[z, y, x]``."""
    xs = np.asarray(xs, dtype=np.int64)
    ys = np.asarray(ys, dtype=np.int64)
    zs = np.asarray(zs, dtype=np.int64)
    if hasattr(field, "get_block"):
        block = np.asarray(field.get_block(xs, ys, zs), dtype=bool)
        expected = (zs.size, ys.size, xs.size)
        if block.shape != expected:
            raise ValueError(f"get_block returned shape {block.shape}, expected {expected}")
        return block

    block = np.zeros((zs.size, ys.size, xs.size), dtype=bool)
    for k, z in enumerate(zs):
        for j, y in enumerate(ys):
            for i, x in enumerate(xs):
                block[k, j, i] = bool(field.get(int(x), int(y), int(z)))
    return block


def _mesh_axes(xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    return zs[:, None, None], ys[None, :, None], xs[None, None, :]


@dataclass(frozen=True)
class SphereField:
    """Solid ball: occupied where the squared distance to the centre is below r*r."""

    x: int
    y: int
    z: int
    r: int

    def get(self, x: int, y: int, z: int) -> bool:
        dx, dy, dz = x - self.x, y - self.y, z - self.z
        return dx * dx + dy * dy + dz * dz < self.r * self.r

    def get_block(self, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        z, y, x = _mesh_axes(xs, ys, zs)
        d2 = (x - self.x) ** 2 + (y - self.y) ** 2 + (z - self.z) ** 2
        return d2 < self.r * self.r


@dataclass(frozen=True)
class SineTerrainField:
    """Rolling heightfield: solid below ``base + amplitude * sin(x) * cos(z)``."""

    amplitude: float = 8.0
    period: float = 32.0
    base: float = 16.0

    def height(self, x: np.ndarray | float, z: np.ndarray | float) -> np.ndarray:
        w = 2.0 * np.pi / float(self.period)
        return self.base + self.amplitude * np.sin(np.asarray(x) * w) * np.cos(np.asarray(z) * w)

    def get(self, x: int, y: int, z: int) -> bool:
        return bool(y < float(self.height(x, z)))

    def get_block(self, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        z, y, x = _mesh_axes(xs, ys, zs)
        return y < self.height(x, z)


class DenseField:
    """A bounded occupancy array indexed ``[z, y, x]``; everything outside is empty."""

    def __init__(self, data: np.ndarray, origin: Tuple[int, int, int] = (0, 0, 0)) -> None:
        data = np.asarray(data, dtype=bool)
        if data.ndim != 3:
            raise ValueError(f"DenseField needs a 3D array, got shape {data.shape}")
        self.data = data
        self.origin = tuple(int(v) for v in origin)

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.data.shape

    def get(self, x: int, y: int, z: int) -> bool:
        ox, oy, oz = self.origin
        i, j, k = x - ox, y - oy, z - oz
        nz, ny, nx = self.data.shape
        if 0 <= i < nx and 0 <= j < ny and 0 <= k < nz:
            return bool(self.data[k, j, i])
        return False

    def get_block(self, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        ox, oy, oz = self.origin
        nz, ny, nx = self.data.shape
        i = xs - ox
        j = ys - oy
        k = zs - oz
        vi = (i >= 0) & (i < nx)
        vj = (j >= 0) & (j < ny)
        vk = (k >= 0) & (k < nz)
        out = np.zeros((zs.size, ys.size, xs.size), dtype=bool)
        inner = self.data[np.ix_(k[vk], j[vj], i[vi])]
        out[np.ix_(vk, vj, vi)] = inner
        return out


class WindowedField:
    """View of another field through a chunk window.

    ``get(x, y, z)`` forwards to ``source.get(x*step + ox, y*step + oy, z*step + oz)``, so
    a mesher sampling ``[0, size)`` sees the chunk at ``origin`` with lattice stride ``step``.
    """

    def __init__(self, source, origin: Tuple[int, int, int], step: int = 1) -> None:
        if int(step) < 1:
            raise ValueError(f"step must be >= 1, got {step}")
        self.source = source
        self.origin = tuple(int(v) for v in origin)
        self.step = int(step)

    def get(self, x: int, y: int, z: int) -> bool:
        ox, oy, oz = self.origin
        s = self.step
        return bool(self.source.get(x * s + ox, y * s + oy, z * s + oz))

    def get_block(self, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        ox, oy, oz = self.origin
        s = self.step
        return sample_block(self.source, xs * s + ox, ys * s + oy, zs * s + oz)
