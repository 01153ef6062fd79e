import logging

import pytest

from voxmesh.mesher.base import MESHER_KINDS, Mesher, build_timer, check_size, make_mesher
from voxmesh.mesher.blocky import BlockyMesher
from voxmesh.mesher.marching_cubes import MarchingCubesMesher
from voxmesh.mesher.surfnet import SurfNetMesher


class TestMakeMesher:

    @pytest.mark.parametrize(
        "kind, cls",
        [
            ("blocky", BlockyMesher),
            ("marching_cubes", MarchingCubesMesher),
            ("mc", MarchingCubesMesher),
            ("marching-cubes", MarchingCubesMesher),
            ("surfnet", SurfNetMesher),
            ("surface_nets", SurfNetMesher),
            ("SURFNET", SurfNetMesher),
        ],
    )
    def test_dispatch(self, kind, cls):
        m = make_mesher(kind, 8)
        assert isinstance(m, cls)
        assert m.size == 8
        assert isinstance(m, Mesher)

    def test_all_kinds_known(self):
        for kind in MESHER_KINDS:
            make_mesher(kind, 4)

    def test_defaults(self):
        assert make_mesher("mc", 8).smooth is True
        assert make_mesher("surfnet", 8).smooth == 7

    def test_smooth_forwarded(self):
        assert make_mesher("mc", 8, smooth=False).smooth is False
        assert make_mesher("surfnet", 8, smooth=3).smooth == 3

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="unknown mesher"):
            make_mesher("dual_contouring", 8)

    @pytest.mark.parametrize("kind", MESHER_KINDS)
    def test_bad_size(self, kind):
        with pytest.raises(ValueError):
            make_mesher(kind, 0)


class TestHelpers:

    def test_check_size(self):
        assert check_size(3) == 3
        with pytest.raises(ValueError):
            check_size(-1)

    def test_build_timer_logs(self, caplog):
        caplog.set_level(logging.DEBUG, logger="voxmesh.mesher.base")
        with build_timer("sphere") as stats:
            stats.update(vertices=6, triangles=8)
        assert "sphere built in" in caplog.text
        assert "(6 vertices, 8 triangles)" in caplog.text

    def test_mesh_build_logs(self, caplog, single_voxel):
        caplog.set_level(logging.DEBUG, logger="voxmesh.mesher.base")
        MarchingCubesMesher(4, smooth=False).mesh(single_voxel)
        assert "marching cubes built in" in caplog.text
