import numpy as np
import pytest

from voxmesh.field.source import DenseField, SphereField


class PointField:
    """Only answers ``get``, so meshers go through the per-point fallback."""

    def __init__(self, fn):
        self.fn = fn

    def get(self, x, y, z):
        return bool(self.fn(x, y, z))


@pytest.fixture
def single_voxel():
    """One solid lattice point at (2, 2, 2)."""
    data = np.zeros((1, 1, 1), dtype=bool)
    data[0, 0, 0] = True
    return DenseField(data, origin=(2, 2, 2))


@pytest.fixture
def sphere16():
    return SphereField(8, 8, 8, 6)


@pytest.fixture
def solid():
    return PointField(lambda x, y, z: True)


@pytest.fixture
def empty():
    return PointField(lambda x, y, z: False)
