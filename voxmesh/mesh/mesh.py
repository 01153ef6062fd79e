from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, NamedTuple, Optional, Tuple

import numpy as np

from voxmesh.config import U16_VERTEX_LIMIT


class IndexOverflowError(OverflowError):
    """Raised when a mesh has more vertices than a 16-bit index batch can address."""


class Vertex(NamedTuple):
    pos: Tuple[float, float, float]
    normal: Tuple[float, float, float]
    material: Optional[int] = None


@dataclass
class Mesh:
    """Triangle mesh produced by a mesher.

    positions: (N,3) float32
    normals:   (N,3) float32
    indices:   (M,) uint32, flat triples
    materials: (N,) uint8, optional per-vertex material tag
    """

    positions: np.ndarray
    normals: np.ndarray
    indices: np.ndarray
    materials: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        self.normals = np.asarray(self.normals, dtype=np.float32).reshape(-1, 3)
        self.indices = np.asarray(self.indices, dtype=np.uint32).reshape(-1)
        if self.materials is not None:
            self.materials = np.asarray(self.materials, dtype=np.uint8).reshape(-1)

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(
            positions=np.zeros((0, 3), dtype=np.float32),
            normals=np.zeros((0, 3), dtype=np.float32),
            indices=np.zeros((0,), dtype=np.uint32),
        )

    @property
    def n_vertices(self) -> int:
        return int(self.positions.shape[0])

    @property
    def n_triangles(self) -> int:
        return int(self.indices.shape[0] // 3)

    @property
    def is_empty(self) -> bool:
        return self.indices.size == 0

    @property
    def triangles(self) -> np.ndarray:
        return self.indices.reshape(-1, 3)

    @property
    def vertices(self) -> Iterator[Vertex]:
        for i in range(self.n_vertices):
            p = self.positions[i]
            n = self.normals[i]
            m = None if self.materials is None else int(self.materials[i])
            yield Vertex((float(p[0]), float(p[1]), float(p[2])), (float(n[0]), float(n[1]), float(n[2])), m)

    def validate(self) -> None:
        if self.normals.shape != self.positions.shape:
            raise ValueError(f"normals shape {self.normals.shape} != positions shape {self.positions.shape}")
        if self.indices.size % 3 != 0:
            raise ValueError(f"index count {self.indices.size} is not a multiple of 3")
        if self.indices.size and int(self.indices.max()) >= self.n_vertices:
            raise ValueError(f"index {int(self.indices.max())} out of range for {self.n_vertices} vertices")
        if self.materials is not None and self.materials.shape[0] != self.n_vertices:
            raise ValueError("materials must have one entry per vertex")

    def translate(self, offset) -> None:
        self.positions += np.asarray(offset, dtype=np.float32).reshape(1, 3)

    def scale(self, factor: float) -> None:
        self.positions *= np.float32(factor)

    def interleaved(self) -> np.ndarray:
        """Vertex format: pos (3) + norm (3) => float32 rows, the upload layout."""
        return np.concatenate([self.positions, self.normals], axis=1).astype(np.float32)

    def indices_u16(self) -> np.ndarray:
        if self.n_vertices > U16_VERTEX_LIMIT:
            raise IndexOverflowError(
                f"{self.n_vertices} vertices exceed the 16-bit index range ({U16_VERTEX_LIMIT})"
            )
        return self.indices.astype(np.uint16)

    def summary(self) -> Dict:
        out = {
            "vertices": self.n_vertices,
            "triangles": self.n_triangles,
            "has_materials": self.materials is not None,
        }
        if self.n_vertices:
            out["bounds_min"] = self.positions.min(axis=0).tolist()
            out["bounds_max"] = self.positions.max(axis=0).tolist()
        return out
