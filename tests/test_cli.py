import pytest

from voxmesh.cli import _parse_args, build_source, main
from voxmesh.config import DEFAULT_MESHER, DEFAULT_SIZE
from voxmesh.field.noise import NoiseTerrainField
from voxmesh.field.source import SineTerrainField, SphereField


class TestParseArgs:

    def test_defaults(self):
        args = _parse_args([])
        assert args.mesher == DEFAULT_MESHER
        assert args.size == DEFAULT_SIZE
        assert args.smooth is None
        assert args.debug is False

    def test_smooth_flags(self):
        assert _parse_args(["--smooth"]).smooth is True
        assert _parse_args(["--no-smooth"]).smooth is False

    def test_bad_source(self):
        with pytest.raises(SystemExit):
            _parse_args(["--source", "teapot"])

    def test_unknown_mesher_rejected(self, capsys):
        with pytest.raises(SystemExit):
            _parse_args(["--mesher", "dual_contouring"])
        assert "invalid choice" in capsys.readouterr().err

    @pytest.mark.parametrize("name", ["blocky", "marching_cubes", "surfnet", "mc", "surface-nets"])
    def test_mesher_names_accepted(self, name):
        assert _parse_args(["--mesher", name]).mesher == name


class TestBuildSource:

    def test_sphere_centred(self):
        s = build_source("sphere", size=16, radius=5, seed=1)
        assert s == SphereField(8, 8, 8, 5)

    def test_sine(self):
        assert isinstance(build_source("sine", size=16, radius=5, seed=1), SineTerrainField)

    def test_noise(self):
        s = build_source("noise", size=16, radius=5, seed=42, noise_mode="simplex")
        assert isinstance(s, NoiseTerrainField)
        assert s.seed == 42
        assert s.mode == "simplex"

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_source("teapot", size=16, radius=5, seed=1)


class TestMain:

    @pytest.mark.parametrize(
        "argv",
        [
            ["--mesher", "blocky", "--size", "8", "--radius", "3"],
            ["--mesher", "mc", "--size", "8", "--radius", "3", "--no-smooth"],
            ["--mesher", "surfnet", "--size", "8", "--relax", "2", "--source", "sine"],
            ["--mesher", "marching_cubes", "--size", "8", "--source", "noise", "--seed", "7", "--debug"],
        ],
    )
    def test_runs(self, argv, capsys):
        assert main(argv) == 0
        out = capsys.readouterr().out
        assert "'vertices'" in out
        assert "'triangles'" in out

    def test_random_seed(self, capsys):
        assert main(["--mesher", "blocky", "--size", "4", "--source", "noise", "--seed", "random"]) == 0

    def test_unknown_mesher(self):
        with pytest.raises(SystemExit):
            main(["--mesher", "dual_contouring", "--size", "4"])
