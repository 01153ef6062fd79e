from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np
from opensimplex import OpenSimplex


@dataclass(frozen=True)
class NoiseConfig:
    octaves: int = 5
    lacunarity: float = 2.0
    gain: float = 0.5
    base_freq: float = 0.02
    amplitude: float = 12.0


_MASK64 = (1 << 64) - 1


class ColumnValueNoise:
    """Value noise over integer lattice columns ``(x, z)``.

    Each octave places random values on a coarse grid of ``period`` columns and
    blends them with smootherstep. Column coordinates stay integral all the way
    through, so a column always gets the same height whichever block asks for it.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed)

    def _hash01(self, cx: np.ndarray, cz: np.ndarray, octave: int) -> np.ndarray:
        salt = np.uint64((self.seed * 0x9E3779B97F4A7C15 + octave * 0x165667B19E3779F9) & _MASK64)
        h = (cx.astype(np.uint64) * np.uint64(0xBF58476D1CE4E5B9)) ^ (cz.astype(np.uint64) * np.uint64(0x94D049BB133111EB)) ^ salt
        h ^= h >> np.uint64(31)
        h *= np.uint64(0xD6E8FEB86659FD93)
        h ^= h >> np.uint64(32)
        return (h >> np.uint64(40)).astype(np.float32) / np.float32(1 << 24)  # [0,1)

    @staticmethod
    def _fade(t: np.ndarray) -> np.ndarray:
        return t * t * t * (t * (t * 6 - 15) + 10)

    def octave(self, xs: np.ndarray, zs: np.ndarray, period: int, octave: int = 0) -> np.ndarray:
        xs = np.asarray(xs, dtype=np.int64)
        zs = np.asarray(zs, dtype=np.int64)
        cx = np.floor_divide(xs, period)
        cz = np.floor_divide(zs, period)
        u = self._fade(((xs - cx * period) / period).astype(np.float32))
        v = self._fade(((zs - cz * period) / period).astype(np.float32))

        a = self._hash01(cx, cz, octave)
        b = self._hash01(cx + 1, cz, octave)
        c = self._hash01(cx, cz + 1, octave)
        d = self._hash01(cx + 1, cz + 1, octave)

        ab = a + (b - a) * u
        cd = c + (d - c) * u
        return ab + (cd - ab) * v


class FBMColumnNoise:
    """Fractal sum of :class:`ColumnValueNoise` octaves, scaled to ``cfg.amplitude``."""

    def __init__(self, seed: int, cfg: NoiseConfig | None = None) -> None:
        self.seed = int(seed)
        self.cfg = cfg or NoiseConfig()
        self.base = ColumnValueNoise(seed)

    def periods(self) -> list[int]:
        out = []
        period = 1.0 / self.cfg.base_freq
        for _ in range(self.cfg.octaves):
            out.append(max(1, int(round(period))))
            period /= self.cfg.lacunarity
        return out

    def grid(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        xs, zs = np.broadcast_arrays(np.asarray(xs, dtype=np.int64), np.asarray(zs, dtype=np.int64))
        total = np.zeros(xs.shape, dtype=np.float32)
        amp = 1.0
        norm = 0.0
        for i, period in enumerate(self.periods()):
            n = self.base.octave(xs, zs, period, i)
            total += (n * 2.0 - 1.0) * np.float32(amp)
            norm += amp
            amp *= self.cfg.gain
        return total / np.float32(max(norm, 1e-9)) * np.float32(self.cfg.amplitude)

    def value(self, x: int, z: int) -> float:
        return float(self.grid(np.array([x]), np.array([z]))[0])


class FBMSimplexNoise:
    """Simplex-based fBm. Slower, kept for quality."""

    def __init__(self, seed: int, cfg: NoiseConfig | None = None) -> None:
        self.seed = int(seed)
        self.cfg = cfg or NoiseConfig()
        self._simp = OpenSimplex(self.seed)

    def value(self, x: float, z: float) -> float:
        freq = self.cfg.base_freq
        amp = 1.0
        total = 0.0
        norm = 0.0
        for _ in range(self.cfg.octaves):
            total += self._simp.noise2(x * freq, z * freq) * amp
            norm += amp
            freq *= self.cfg.lacunarity
            amp *= self.cfg.gain
        return total / max(norm, 1e-9) * self.cfg.amplitude

    def grid(self, x: np.ndarray, z: np.ndarray) -> np.ndarray:
        x, z = np.broadcast_arrays(np.asarray(x, dtype=np.float64), np.asarray(z, dtype=np.float64))
        out = np.empty(x.shape, dtype=np.float32)
        for idx in np.ndindex(x.shape):
            out[idx] = self.value(float(x[idx]), float(z[idx]))
        return out


class NoiseTerrainField:
    """Heightfield terrain: a lattice point is solid below ``base + fbm(x, z)``."""

    def __init__(
        self,
        seed: int,
        *,
        mode: str = "fast",
        amplitude: float | None = None,
        base: float = 16.0,
        cfg: NoiseConfig | None = None,
    ) -> None:
        if mode not in ("fast", "simplex"):
            raise ValueError(f"unknown noise mode: {mode!r}")
        self.seed = int(seed)
        self.mode = mode
        self.base = float(base)
        cfg = cfg or NoiseConfig()
        if amplitude is not None:
            cfg = replace(cfg, amplitude=float(amplitude))
        self.noise = FBMSimplexNoise(self.seed, cfg) if mode == "simplex" else FBMColumnNoise(self.seed, cfg)

    def height_grid(self, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        gx, gz = np.meshgrid(np.asarray(xs, dtype=np.int64), np.asarray(zs, dtype=np.int64), indexing="xy")
        return np.float32(self.base) + self.noise.grid(gx, gz)  # (nz, nx)

    def get(self, x: int, y: int, z: int) -> bool:
        h = self.height_grid(np.array([x]), np.array([z]))
        return bool(y < h[0, 0])

    def get_block(self, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        h = self.height_grid(xs, zs)
        return np.asarray(ys)[None, :, None] < h[:, None, :]
