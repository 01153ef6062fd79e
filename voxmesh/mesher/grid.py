"""Margin-padded density grid used by the Marching Cubes mesher.

The grid covers lattice coordinates ``[-pad, size + pad]`` on every axis and is
stored as a C-ordered ``[z, y, x]`` array, i.e. flattened as ``x + y*n + z*n*n``.
The margin lets the blur kernel and the gradient read past the cube without
special-casing the border. Reading outside the allocated grid is a margin bug
and raises :class:`GridBoundsError` instead of clamping.
"""

from __future__ import annotations

import numpy as np

from voxmesh.config import BLUR_WIDTH, GRID_PAD
from voxmesh.field.source import sample_block
from voxmesh.util.math import lerp, normalize_rows


class GridBoundsError(IndexError):
    pass


class DensityGrid:
    def __init__(self, size: int, pad: int = GRID_PAD) -> None:
        self.size = int(size)
        self.pad = int(pad)
        self.n = self.size + 2 * self.pad + 1
        self.data = np.zeros((self.n, self.n, self.n), dtype=np.float32)

    @classmethod
    def fill(cls, source, size: int, pad: int = GRID_PAD) -> "DensityGrid":
        """Sample ``source`` into a fresh grid: occupied -> +1, empty -> -1."""
        grid = cls(size, pad)
        coords = np.arange(-grid.pad, grid.size + grid.pad + 1, dtype=np.int64)
        occ = sample_block(source, coords, coords, coords)
        grid.data[...] = np.where(occ, np.float32(1.0), np.float32(-1.0))
        return grid

    @property
    def lo(self) -> int:
        return -self.pad

    @property
    def hi(self) -> int:
        return self.size + self.pad

    def _check(self, x: int, y: int, z: int) -> None:
        for name, v in (("x", x), ("y", y), ("z", z)):
            if v < self.lo or v > self.hi:
                raise GridBoundsError(f"{name}={v} is outside the padded grid [{self.lo}, {self.hi}]")

    def get(self, x: int, y: int, z: int) -> float:
        self._check(x, y, z)
        p = self.pad
        return float(self.data[z + p, y + p, x + p])

    def window(self, dx: int, dy: int, dz: int, count: int) -> np.ndarray:
        """Values at lattice points ``(i+dx, j+dy, k+dz)`` for ``i, j, k`` in ``[0, count)``."""
        self._check(dx, dy, dz)
        self._check(dx + count - 1, dy + count - 1, dz + count - 1)
        p = self.pad
        return self.data[dz + p:dz + p + count, dy + p:dy + p + count, dx + p:dx + p + count]

    def blur(self, width: int = BLUR_WIDTH) -> None:
        """Separable box blur: X, then Y, then Z, each pass reading the previous one.

        Each output is the mean of ``width`` centred samples. Cells closer than
        ``width // 2`` to the grid border keep their value along that axis.
        """
        if width % 2 != 1 or width < 1:
            raise ValueError(f"blur width must be a positive odd number, got {width}")
        r = width // 2
        if self.n <= 2 * r:
            return
        for np_ax in (2, 1, 0):  # x, y, z
            src = np.moveaxis(self.data, np_ax, 0).astype(np.float64)
            csum = np.concatenate([np.zeros((1,) + src.shape[1:]), np.cumsum(src, axis=0)], axis=0)
            window_sum = csum[width:] - csum[:-width]
            out = src.copy()
            out[r:self.n - r] = window_sum / width
            self.data = np.ascontiguousarray(np.moveaxis(out, 0, np_ax)).astype(np.float32)

    def gradient_normals(self) -> "NormalGrid":
        """Negated, normalized central-difference gradient at every interior lattice point."""
        d = self.data
        g = np.zeros(d.shape + (3,), dtype=np.float32)
        g[:, :, 1:-1, 0] = d[:, :, 2:] - d[:, :, :-2]
        g[:, 1:-1, :, 1] = d[:, 2:, :] - d[:, :-2, :]
        g[1:-1, :, :, 2] = d[2:, :, :] - d[:-2, :, :]
        # Border layers have no central difference on some axis.
        g[0, ...] = 0.0
        g[-1, ...] = 0.0
        g[:, 0, ...] = 0.0
        g[:, -1, ...] = 0.0
        g[:, :, 0, :] = 0.0
        g[:, :, -1, :] = 0.0
        n = normalize_rows(-g.reshape(-1, 3)).reshape(g.shape)
        return NormalGrid(n, self.size, self.pad)


class NormalGrid:
    """Per-lattice-point normals, same layout as the :class:`DensityGrid` they came from."""

    def __init__(self, data: np.ndarray, size: int, pad: int) -> None:
        self.data = data
        self.size = int(size)
        self.pad = int(pad)

    def get(self, x: int, y: int, z: int) -> np.ndarray:
        lo, hi = -self.pad, self.size + self.pad
        if min(x, y, z) < lo or max(x, y, z) > hi:
            raise GridBoundsError(f"({x}, {y}, {z}) is outside the padded grid [{lo}, {hi}]")
        p = self.pad
        return self.data[z + p, y + p, x + p]

    def interpolate(self, positions: np.ndarray) -> np.ndarray:
        """Trilinearly interpolate normals at fractional lattice positions (N,3)."""
        pos = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        if pos.shape[0] == 0:
            return np.zeros((0, 3), dtype=np.float32)
        base = np.floor(pos).astype(np.int64)
        frac = (pos - base)[:, :, None]  # (N,3,1)

        lo, hi = -self.pad, self.size + self.pad - 1
        if base.min() < lo or base.max() > hi:
            raise GridBoundsError(f"interpolation position outside the padded grid [{lo}, {hi + 1}]")

        g = base + self.pad
        gx, gy, gz = g[:, 0], g[:, 1], g[:, 2]
        d = self.data
        fx, fy, fz = frac[:, 0], frac[:, 1], frac[:, 2]

        x0 = lerp(d[gz, gy, gx], d[gz, gy, gx + 1], fx)
        x1 = lerp(d[gz + 1, gy, gx], d[gz + 1, gy, gx + 1], fx)
        x2 = lerp(d[gz, gy + 1, gx], d[gz, gy + 1, gx + 1], fx)
        x3 = lerp(d[gz + 1, gy + 1, gx], d[gz + 1, gy + 1, gx + 1], fx)

        z0 = lerp(x0, x1, fz)
        z1 = lerp(x2, x3, fz)

        return normalize_rows(lerp(z0, z1, fy)).astype(np.float32)
