from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from voxmesh.mesh.mesh import Mesh

ChunkKey = Tuple[int, int, int]

@dataclass
class Chunk:
    x: int
    y: int
    z: int
    r: int  # lattice step (resolution)
    mesh: Optional[Mesh] = None  # None = dirty

    @property
    def key(self) -> ChunkKey:
        return (self.x, self.y, self.z)

@dataclass
class ChunkMesh:
    x: int
    y: int
    z: int
    mesh: Mesh  # world-space positions, materials assigned
