from __future__ import annotations

import argparse
import logging
import random
from typing import List, Optional

from voxmesh.config import (
    APP_VERSION,
    DEFAULT_MESHER,
    DEFAULT_NOISE,
    DEFAULT_SEED,
    DEFAULT_SIZE,
    DEFAULT_SOURCE,
    DEFAULT_SPHERE_RADIUS,
    DEFAULT_SURFNET_SMOOTH,
    DEFAULT_TERRAIN_AMPLITUDE,
    DEFAULT_TERRAIN_PERIOD,
)
from voxmesh.field.noise import NoiseTerrainField
from voxmesh.field.source import SineTerrainField, SphereField
from voxmesh.mesher.base import _ALIASES, MESHER_KINDS, make_mesher

logger = logging.getLogger(__name__)

SOURCES = ("sphere", "sine", "noise")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="voxmesh", description=f"Mesh a voxel field into triangles v{APP_VERSION}")
    p.add_argument("--mesher", choices=MESHER_KINDS + tuple(_ALIASES), default=DEFAULT_MESHER, help=f"{' | '.join(MESHER_KINDS)} (default: {DEFAULT_MESHER})")
    p.add_argument("--size", type=int, default=DEFAULT_SIZE, help=f"cube edge in lattice units (default: {DEFAULT_SIZE})")
    p.add_argument(
        "--smooth",
        dest="smooth",
        action="store_true",
        default=None,
        help="marching cubes: blur the field and use gradient normals (default on)",
    )
    p.add_argument("--no-smooth", dest="smooth", action="store_false", help="marching cubes: hard threshold, face normals")
    p.add_argument(
        "--relax",
        type=int,
        default=DEFAULT_SURFNET_SMOOTH,
        help=f"surface nets: relaxation passes (default: {DEFAULT_SURFNET_SMOOTH})",
    )
    p.add_argument("--source", choices=SOURCES, default=DEFAULT_SOURCE, help=f"voxel field to mesh (default: {DEFAULT_SOURCE})")
    p.add_argument("--radius", type=int, default=DEFAULT_SPHERE_RADIUS, help="sphere radius in lattice units")
    p.add_argument("--noise", choices=["fast", "simplex"], default=DEFAULT_NOISE, help="noise mode for --source noise")
    p.add_argument("--seed", default=str(DEFAULT_SEED), help=f"int seed or 'random' (default: {DEFAULT_SEED})")
    p.add_argument("--debug", action="store_true", help="log build timings")
    return p.parse_args(argv)


def _seed(value: str) -> int:
    if isinstance(value, str) and value.lower() == "random":
        return random.randint(0, 2**31 - 1)
    return int(value)


def build_source(name: str, *, size: int, radius: int, seed: int, noise_mode: str = DEFAULT_NOISE):
    """Build one of the demo fields, centred in a cube of edge ``size``."""
    c = size // 2
    if name == "sphere":
        return SphereField(c, c, c, radius)
    if name == "sine":
        return SineTerrainField(amplitude=DEFAULT_TERRAIN_AMPLITUDE, period=DEFAULT_TERRAIN_PERIOD, base=c)
    if name == "noise":
        return NoiseTerrainField(seed, mode=noise_mode, base=c)
    raise ValueError(f"unknown source {name!r}; expected one of {', '.join(SOURCES)}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    seed = _seed(args.seed)
    source = build_source(args.source, size=int(args.size), radius=int(args.radius), seed=seed, noise_mode=str(args.noise))

    kind = _ALIASES.get(args.mesher, args.mesher)
    smooth = args.relax if kind == "surfnet" else args.smooth
    mesher = make_mesher(args.mesher, int(args.size), smooth=smooth)
    logger.info("meshing %s (size %d) with %s", args.source, mesher.size, type(mesher).__name__)

    mesh = mesher.mesh(source)
    mesh.validate()
    summary = mesh.summary()
    logger.info("%d vertices, %d triangles", summary["vertices"], summary["triangles"])
    print(summary)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
