import numpy as np
import pytest

from conftest import PointField
from voxmesh.mesher.grid import DensityGrid, GridBoundsError


def _half_space():
    # solid for x < 2
    return PointField(lambda x, y, z: x < 2)


class TestDensityGrid:

    def test_extent(self):
        g = DensityGrid(4)
        assert g.n == 11
        assert (g.lo, g.hi) == (-3, 7)
        assert g.data.shape == (11, 11, 11)

    def test_fill_signs(self, single_voxel):
        g = DensityGrid.fill(single_voxel, 4)
        assert g.get(2, 2, 2) == 1.0
        assert g.get(-3, -3, -3) == -1.0
        assert g.get(7, 7, 7) == -1.0
        assert (g.data == 1.0).sum() == 1

    def test_fill_samples_margin(self):
        g = DensityGrid.fill(_half_space(), 4)
        assert g.get(-3, 0, 0) == 1.0
        assert g.get(1, 0, 0) == 1.0
        assert g.get(2, 0, 0) == -1.0

    @pytest.mark.parametrize("point", [(-4, 0, 0), (0, 8, 0), (0, 0, 100)])
    def test_get_out_of_range(self, point):
        g = DensityGrid(4)
        with pytest.raises(GridBoundsError):
            g.get(*point)
        with pytest.raises(IndexError):
            g.get(*point)

    def test_window(self):
        g = DensityGrid.fill(_half_space(), 4)
        w = g.window(1, 0, 0, 4)
        assert w.shape == (4, 4, 4)
        assert np.all(w[:, :, 0] == 1.0)
        assert np.all(w[:, :, 1:] == -1.0)

    def test_window_out_of_range(self):
        g = DensityGrid(4)
        with pytest.raises(GridBoundsError):
            g.window(5, 0, 0, 4)


class TestBlur:

    def test_constant_field_unchanged(self, solid):
        g = DensityGrid.fill(solid, 6)
        g.blur()
        assert np.allclose(g.data, 1.0)

    def test_values_stay_in_range(self, sphere16):
        g = DensityGrid.fill(sphere16, 16)
        g.blur()
        assert g.data.min() >= -1.0 - 1e-6
        assert g.data.max() <= 1.0 + 1e-6

    def test_spike_spreads(self, single_voxel):
        g = DensityGrid.fill(single_voxel, 4)
        g.blur()
        # mean of a 5x5x5 box holding one +1 among -1s
        assert np.isclose(g.get(2, 2, 2), (1.0 - 124.0) / 125.0, atol=1e-6)
        assert g.get(4, 2, 2) > -1.0
        assert np.isclose(g.get(5, 2, 2), -1.0)

    def test_border_left_unblurred(self):
        g = DensityGrid.fill(PointField(lambda x, y, z: x == -3), 4)
        g.blur()
        # the two outermost x layers keep their value; the field is constant in y and z
        assert np.isclose(g.get(-3, 2, 2), 1.0)
        assert np.isclose(g.get(-2, 2, 2), -1.0)
        assert np.isclose(g.get(-1, 2, 2), -0.6)

    def test_even_width_rejected(self):
        g = DensityGrid(4)
        with pytest.raises(ValueError):
            g.blur(4)


class TestGradientNormals:

    def test_points_to_empty_side(self):
        g = DensityGrid.fill(_half_space(), 4)
        n = g.gradient_normals()
        assert np.allclose(n.get(1, 2, 2), [1.0, 0.0, 0.0])
        assert np.allclose(n.get(2, 2, 2), [1.0, 0.0, 0.0])

    def test_flat_region_and_border_are_zero(self):
        g = DensityGrid.fill(_half_space(), 4)
        n = g.gradient_normals()
        assert np.allclose(n.get(5, 2, 2), 0.0)
        assert np.allclose(n.get(-3, 2, 2), 0.0)
        assert np.all(np.isfinite(n.data))

    def test_get_out_of_range(self):
        n = DensityGrid(4).gradient_normals()
        with pytest.raises(GridBoundsError):
            n.get(8, 0, 0)

    def test_interpolate_between_lattice_points(self):
        n = DensityGrid.fill(_half_space(), 4).gradient_normals()
        out = n.interpolate(np.array([[1.5, 2.0, 2.0], [1.5, 2.25, 1.75]]))
        assert out.dtype == np.float32
        assert np.allclose(out, [[1.0, 0.0, 0.0]] * 2)

    def test_interpolate_empty(self):
        n = DensityGrid(4).gradient_normals()
        assert n.interpolate(np.zeros((0, 3))).shape == (0, 3)

    @pytest.mark.parametrize("pos", [(7.0, 0.0, 0.0), (-3.5, 0.0, 0.0), (0.0, 0.0, 9.0)])
    def test_interpolate_out_of_range(self, pos):
        n = DensityGrid(4).gradient_normals()
        with pytest.raises(GridBoundsError):
            n.interpolate(np.array([pos]))
