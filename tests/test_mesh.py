import numpy as np
import pytest

from voxmesh.config import U16_VERTEX_LIMIT
from voxmesh.mesh.mesh import IndexOverflowError, Mesh, Vertex


def _quad_mesh(materials=None):
    positions = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]]
    normals = [[0, 0, 1]] * 4
    indices = [0, 1, 2, 2, 1, 3]
    return Mesh(positions=positions, normals=normals, indices=indices, materials=materials)


class TestMesh:

    def test_coerces_dtypes(self):
        m = _quad_mesh(materials=[0, 1, 0, 1])
        assert m.positions.dtype == np.float32
        assert m.normals.dtype == np.float32
        assert m.indices.dtype == np.uint32
        assert m.materials.dtype == np.uint8
        assert m.positions.shape == (4, 3)

    def test_counts(self):
        m = _quad_mesh()
        assert m.n_vertices == 4
        assert m.n_triangles == 2
        assert m.triangles.shape == (2, 3)
        assert not m.is_empty

    def test_empty(self):
        m = Mesh.empty()
        assert m.is_empty
        assert m.n_vertices == 0
        assert m.n_triangles == 0
        m.validate()
        assert "bounds_min" not in m.summary()

    def test_vertices_yield_records(self):
        m = _quad_mesh(materials=[3, 3, 3, 3])
        verts = list(m.vertices)
        assert len(verts) == 4
        assert isinstance(verts[1], Vertex)
        assert verts[1].pos == (1.0, 0.0, 0.0)
        assert verts[1].normal == (0.0, 0.0, 1.0)
        assert verts[1].material == 3

    def test_vertices_without_materials(self):
        assert next(_quad_mesh().vertices).material is None

    def test_validate_rejects_out_of_range_index(self):
        m = _quad_mesh()
        m.indices[-1] = 7
        with pytest.raises(ValueError):
            m.validate()

    def test_validate_rejects_partial_triangle(self):
        m = Mesh(positions=np.zeros((3, 3)), normals=np.zeros((3, 3)), indices=[0, 1, 2, 0])
        with pytest.raises(ValueError):
            m.validate()

    def test_validate_rejects_material_count(self):
        m = _quad_mesh(materials=[0, 1])
        with pytest.raises(ValueError):
            m.validate()

    def test_translate_and_scale(self):
        m = _quad_mesh()
        m.scale(2.0)
        m.translate((1, 2, 3))
        assert m.positions[3].tolist() == [3.0, 4.0, 3.0]
        # normals are untouched
        assert m.normals[3].tolist() == [0.0, 0.0, 1.0]

    def test_interleaved_layout(self):
        m = _quad_mesh()
        rows = m.interleaved()
        assert rows.shape == (4, 6)
        assert rows.dtype == np.float32
        assert rows[1].tolist() == [1.0, 0.0, 0.0, 0.0, 0.0, 1.0]

    def test_summary_bounds(self):
        s = _quad_mesh().summary()
        assert s["vertices"] == 4
        assert s["triangles"] == 2
        assert s["bounds_min"] == [0.0, 0.0, 0.0]
        assert s["bounds_max"] == [1.0, 1.0, 0.0]


class TestIndicesU16:

    def test_small_mesh(self):
        idx = _quad_mesh().indices_u16()
        assert idx.dtype == np.uint16
        assert idx.tolist() == [0, 1, 2, 2, 1, 3]

    def test_at_limit(self):
        n = U16_VERTEX_LIMIT
        m = Mesh(positions=np.zeros((n, 3)), normals=np.zeros((n, 3)), indices=[0, 1, n - 1])
        assert m.indices_u16().tolist() == [0, 1, n - 1]

    def test_overflow_raises(self):
        n = U16_VERTEX_LIMIT + 1
        m = Mesh(positions=np.zeros((n, 3)), normals=np.zeros((n, 3)), indices=[0, 1, n - 1])
        with pytest.raises(IndexOverflowError):
            m.indices_u16()
        with pytest.raises(OverflowError):
            m.indices_u16()
