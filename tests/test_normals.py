import numpy as np

from voxmesh.mesh.normals import estimate_normals


class TestEstimateNormals:

    def test_single_triangle(self):
        pos = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=np.float32)
        n = estimate_normals(pos, np.array([0, 1, 2]))
        assert np.allclose(n, [[0, 0, 1]] * 3)

    def test_winding_flips_normal(self):
        pos = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0]], dtype=np.float32)
        n = estimate_normals(pos, np.array([0, 2, 1]))
        assert np.allclose(n, [[0, 0, -1]] * 3)

    def test_last_triangle_contributes(self):
        pos = np.array(
            [[0, 0, 0], [1, 0, 0], [0, 1, 0], [5, 0, 0], [5, 1, 0], [5, 0, 1]],
            dtype=np.float32,
        )
        n = estimate_normals(pos, np.array([0, 1, 2, 3, 4, 5]))
        assert np.allclose(n[3:], [[1, 0, 0]] * 3)

    def test_area_weighted(self):
        pos = np.array(
            [[0, 0, 0], [4, 0, 0], [0, 4, 0], [0, 1, 0], [0, 0, 1]],
            dtype=np.float32,
        )
        # big triangle faces +z, small one faces +x, both share vertex 0
        n = estimate_normals(pos, np.array([0, 1, 2, 0, 3, 4]))
        assert np.isclose(np.linalg.norm(n[0]), 1.0)
        assert n[0][2] > n[0][0] > 0.0
        assert np.isclose(n[0][1], 0.0)

    def test_degenerate_triangle_gives_zero(self):
        pos = np.array([[0, 0, 0], [1, 1, 1], [2, 2, 2]], dtype=np.float32)
        n = estimate_normals(pos, np.array([0, 1, 2]))
        assert np.all(np.isfinite(n))
        assert np.allclose(n, 0.0)

    def test_unreferenced_vertex_is_zero(self):
        pos = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [9, 9, 9]], dtype=np.float32)
        n = estimate_normals(pos, np.array([0, 1, 2]))
        assert n[3].tolist() == [0.0, 0.0, 0.0]

    def test_no_triangles(self):
        n = estimate_normals(np.zeros((2, 3), dtype=np.float32), np.zeros(0, dtype=np.uint32))
        assert n.shape == (2, 3)
        assert np.allclose(n, 0.0)
