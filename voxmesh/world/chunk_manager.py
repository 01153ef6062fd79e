from __future__ import annotations

import logging
import queue
import threading
from typing import Dict, List, Optional, Set

import numpy as np

from voxmesh.config import DEFAULT_CHUNK_RES, DEFAULT_MAX_UPLOADS, MATERIAL_RING_WIDTH, VOXEL_WORLD_SIZE
from voxmesh.field.source import WindowedField
from voxmesh.mesh.mesh import Mesh
from voxmesh.world.chunk import Chunk, ChunkKey, ChunkMesh

logger = logging.getLogger(__name__)


def ring_materials(positions: np.ndarray, width: float = MATERIAL_RING_WIDTH) -> np.ndarray:
    """Alternate two materials in rings of ``width`` world units around the Y axis."""
    r = np.hypot(positions[:, 0], positions[:, 2])
    return ((r.astype(np.int64) // int(width)) % 2).astype(np.uint8)


def build_chunk_mesh(source, mesher, chunk: Chunk) -> Mesh:
    """Mesh one chunk and move it to world space.

    Voxels are half a world unit: the chunk at world position p samples the source
    from lattice point 2p with stride r, and the mesh is scaled by r/2.
    """
    origin = tuple(int(round(v / VOXEL_WORLD_SIZE)) for v in chunk.key)
    mesh = mesher.mesh(WindowedField(source, origin, chunk.r))
    mesh.scale(chunk.r * VOXEL_WORLD_SIZE)
    mesh.translate(chunk.key)
    mesh.materials = ring_materials(mesh.positions)
    return mesh


def whole_span(span: float) -> int:
    """Chunk keys are integer world positions, so a chunk side must be a whole number of units."""
    if span <= 0 or float(span) != int(span):
        raise ValueError(f"chunk span must be a positive whole number of world units, got {span}")
    return int(span)


class ChunkWorker(threading.Thread):
    def __init__(self, task_q: "queue.Queue[tuple]", out_q: "queue.Queue[tuple]", *, source) -> None:
        super().__init__(daemon=True)
        self.task_q = task_q
        self.out_q = out_q
        self.source = source
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                chunk, mesher, generation = self.task_q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                mesh = build_chunk_mesh(self.source, mesher, chunk)
                self.out_q.put((chunk.key, generation, mesh, None))
            except Exception as e:
                logger.exception("meshing chunk %s failed", chunk.key)
                self.out_q.put((chunk.key, generation, None, e))
            finally:
                self.task_q.task_done()


class ChunkManager:
    """Tiles space into chunks and remeshes dirty ones lazily.

    Synchronous use: ``generate()`` chunks, then ``update()``. Background use:
    ``start_worker()``, ``request_dirty()`` and ``poll_ready()`` each frame.
    """

    def __init__(self, source, mesher, chunk_size: Optional[float] = None, resolution: int = DEFAULT_CHUNK_RES) -> None:
        if int(resolution) < 1:
            raise ValueError(f"chunk resolution must be >= 1, got {resolution}")
        self.source = source
        self.mesher = mesher
        self.chunk_size = chunk_size
        self.resolution = int(resolution)
        whole_span(self._span_for(mesher))
        self.chunks: Dict[ChunkKey, Chunk] = {}
        self.modified = False

        self.generation = 0
        self.task_q: "queue.Queue[tuple]" = queue.Queue()
        self.out_q: "queue.Queue[tuple]" = queue.Queue()
        self.worker: Optional[ChunkWorker] = None
        self.pending: Set[ChunkKey] = set()

    def _span_for(self, mesher) -> float:
        if self.chunk_size is not None:
            return float(self.chunk_size)
        return mesher.size * self.resolution * VOXEL_WORLD_SIZE

    @property
    def chunk_span(self) -> int:
        """World units per chunk side; follows the mesher size unless fixed."""
        return whole_span(self._span_for(self.mesher))

    def world_to_chunk(self, x: float, y: float, z: float) -> ChunkKey:
        s = self.chunk_span
        return tuple(int(np.floor(v / s)) * s for v in (x, y, z))

    def generate(self, x: int, y: int, z: int, r: Optional[int] = None) -> None:
        key = (int(x), int(y), int(z))
        if key in self.chunks:
            return
        r = self.resolution if r is None else int(r)
        if r < 1:
            raise ValueError(f"chunk resolution must be >= 1, got {r}")
        self.chunks[key] = Chunk(x=key[0], y=key[1], z=key[2], r=r)
        self.modified = True

    def set_mesher(self, mesher) -> None:
        whole_span(self._span_for(mesher))
        self.mesher = mesher
        self.generation += 1
        for chunk in self.chunks.values():
            chunk.mesh = None
        self.pending.clear()
        self.modified = True

    def dirty(self) -> List[Chunk]:
        return [c for c in self.chunks.values() if c.mesh is None]

    def update(self) -> List[ChunkMesh]:
        """Mesh every dirty chunk on the calling thread and return the rebuilt ones."""
        if not self.modified:
            return []
        rebuilt = []
        for chunk in self.dirty():
            chunk.mesh = build_chunk_mesh(self.source, self.mesher, chunk)
            rebuilt.append(ChunkMesh(chunk.x, chunk.y, chunk.z, chunk.mesh))
        logger.debug("remeshed %d chunk(s)", len(rebuilt))
        self.modified = False
        return rebuilt

    # Background meshing

    def start_worker(self) -> None:
        if self.worker is not None:
            return
        self.worker = ChunkWorker(self.task_q, self.out_q, source=self.source)
        self.worker.start()

    def shutdown(self) -> None:
        if self.worker is None:
            return
        self.worker.stop()
        self.worker.join(timeout=1.0)
        self.worker = None

    def request(self, key: ChunkKey) -> bool:
        """Queue one dirty chunk for the worker. Returns False if it is clean or already queued."""
        if self.worker is None:
            raise RuntimeError("start_worker() must be called before requesting background meshing")
        chunk = self.chunks.get(tuple(key))
        if chunk is None:
            raise KeyError(f"no chunk at {key}")
        if chunk.mesh is not None or chunk.key in self.pending:
            return False
        self.pending.add(chunk.key)
        self.task_q.put((Chunk(chunk.x, chunk.y, chunk.z, chunk.r), self.mesher, self.generation))
        return True

    def request_dirty(self) -> int:
        n = sum(1 for chunk in self.dirty() if self.request(chunk.key))
        self.modified = False
        return n

    def poll_ready(self, max_items: int = DEFAULT_MAX_UPLOADS) -> List[ChunkMesh]:
        ready = []
        while len(ready) < max_items:
            try:
                key, generation, mesh, error = self.out_q.get_nowait()
            except queue.Empty:
                break
            if generation != self.generation:
                continue  # built with a mesher that has since been replaced
            self.pending.discard(key)
            if error is not None:
                raise RuntimeError(f"background meshing of chunk {key} failed") from error
            chunk = self.chunks.get(key)
            if chunk is None:
                continue
            chunk.mesh = mesh
            ready.append(ChunkMesh(chunk.x, chunk.y, chunk.z, mesh))
        return ready
