from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Protocol, runtime_checkable

from voxmesh.config import DEFAULT_MC_SMOOTH, DEFAULT_SURFNET_SMOOTH
from voxmesh.mesh.mesh import Mesh

logger = logging.getLogger(__name__)

MESHER_KINDS = ("blocky", "marching_cubes", "surfnet")
_ALIASES = {
    "mc": "marching_cubes",
    "marching-cubes": "marching_cubes",
    "surface_nets": "surfnet",
    "surface-nets": "surfnet",
}


@runtime_checkable
class Mesher(Protocol):
    """Samples a voxel field over ``[0, size)^3`` and builds a :class:`Mesh`.

    Implementations hold configuration only; every ``mesh()`` call allocates and
    discards its own working buffers.
    """

    size: int

    def mesh(self, source) -> Mesh: ...


def check_size(size: int) -> int:
    size = int(size)
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    return size


@contextmanager
def build_timer(label: str) -> Iterator[dict]:
    """Log how long a mesh build took. Callers fill ``stats`` with their counts."""
    stats: dict = {}
    t0 = time.perf_counter()
    yield stats
    ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        "%s built in %.1f ms (%d vertices, %d triangles)",
        label,
        ms,
        int(stats.get("vertices", 0)),
        int(stats.get("triangles", 0)),
    )


def make_mesher(kind: str, size: int, smooth=None):
    """Build a mesher by name: ``blocky``, ``marching_cubes`` (``mc``) or ``surfnet``."""
    from voxmesh.mesher.blocky import BlockyMesher
    from voxmesh.mesher.marching_cubes import MarchingCubesMesher
    from voxmesh.mesher.surfnet import SurfNetMesher

    key = _ALIASES.get(str(kind).lower(), str(kind).lower())
    if key == "blocky":
        return BlockyMesher(size=size)
    if key == "marching_cubes":
        return MarchingCubesMesher(size=size, smooth=DEFAULT_MC_SMOOTH if smooth is None else bool(smooth))
    if key == "surfnet":
        return SurfNetMesher(size=size, smooth=DEFAULT_SURFNET_SMOOTH if smooth is None else int(smooth))
    raise ValueError(f"unknown mesher {kind!r}; expected one of {', '.join(MESHER_KINDS)}")
