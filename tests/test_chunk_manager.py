import time

import numpy as np
import pytest

from conftest import PointField
from voxmesh.field.source import SphereField, WindowedField
from voxmesh.mesher.blocky import BlockyMesher
from voxmesh.mesher.marching_cubes import MarchingCubesMesher
from voxmesh.world.chunk import Chunk
from voxmesh.world.chunk_manager import ChunkManager, build_chunk_mesh, ring_materials


def _drain(manager, expected, timeout=10.0):
    ready = []
    deadline = time.monotonic() + timeout
    while len(ready) < expected and time.monotonic() < deadline:
        ready.extend(manager.poll_ready(max_items=8))
        time.sleep(0.01)
    return ready


@pytest.fixture
def source():
    # lattice units; with half-unit voxels this is a ball of radius 2.5 around (4, 4, 4)
    return SphereField(8, 8, 8, 5)


@pytest.fixture
def manager(source):
    m = ChunkManager(source, BlockyMesher(16))
    yield m
    m.shutdown()


class TestRingMaterials:

    def test_alternates_by_distance(self):
        pos = np.array([[0, 0, 0], [5, 7, 0], [0, -3, 9], [3, 0, 4]], dtype=np.float32)
        assert ring_materials(pos).tolist() == [0, 1, 0, 1]


class TestBuildChunkMesh:

    def test_window_scale_and_offset(self, source):
        mesher = BlockyMesher(16)
        got = build_chunk_mesh(source, mesher, Chunk(4, 0, 0, 1))
        expected = mesher.mesh(WindowedField(source, (8, 0, 0), 1))
        assert np.allclose(got.positions, expected.positions * 0.5 + [4, 0, 0])
        assert np.array_equal(got.indices, expected.indices)

    def test_resolution_steps_lattice(self, source):
        mesher = BlockyMesher(8)
        got = build_chunk_mesh(source, mesher, Chunk(0, 0, 0, 2))
        expected = mesher.mesh(WindowedField(source, (0, 0, 0), 2))
        assert np.allclose(got.positions, expected.positions)

    def test_materials_assigned(self, source):
        m = build_chunk_mesh(source, BlockyMesher(16), Chunk(0, 0, 0, 1))
        assert m.materials is not None
        assert m.materials.shape == (m.n_vertices,)
        m.validate()


class TestChunkManager:

    def test_generate_is_idempotent(self, manager):
        manager.generate(0, 0, 0)
        manager.generate(0, 0, 0, r=2)
        assert len(manager.chunks) == 1
        assert manager.chunks[(0, 0, 0)].r == 1

    def test_update_meshes_dirty_chunks(self, manager):
        manager.generate(0, 0, 0)
        manager.generate(8, 0, 0)
        rebuilt = manager.update()
        assert sorted((c.x, c.y, c.z) for c in rebuilt) == [(0, 0, 0), (8, 0, 0)]
        assert all(c.mesh is not None for c in manager.chunks.values())
        assert not rebuilt[0].mesh.is_empty or not rebuilt[1].mesh.is_empty

    def test_update_without_changes_is_noop(self, manager):
        manager.generate(0, 0, 0)
        manager.update()
        assert manager.update() == []

    def test_only_new_chunks_rebuilt(self, manager):
        manager.generate(0, 0, 0)
        manager.update()
        manager.generate(0, 8, 0)
        rebuilt = manager.update()
        assert [(c.x, c.y, c.z) for c in rebuilt] == [(0, 8, 0)]

    def test_set_mesher_marks_all_dirty(self, manager):
        manager.generate(0, 0, 0)
        manager.generate(0, 0, 8)
        manager.update()
        manager.set_mesher(MarchingCubesMesher(16, smooth=False))
        assert len(manager.dirty()) == 2
        rebuilt = manager.update()
        assert len(rebuilt) == 2
        assert manager.dirty() == []

    def test_world_to_chunk(self, manager):
        assert manager.chunk_span == 8.0
        assert manager.world_to_chunk(9.5, -0.5, 3.0) == (8, -8, 0)

    def test_fixed_chunk_size(self, source):
        m = ChunkManager(source, BlockyMesher(16), chunk_size=32.0)
        assert m.world_to_chunk(40.0, 0.0, -1.0) == (32, 0, -32)

    def test_world_to_chunk_lands_on_chunk_grid(self, source):
        m = ChunkManager(source, BlockyMesher(14))
        assert m.chunk_span == 7
        for x in (0.0, 6.9, 7.0, 16.0, -0.1, -7.5):
            key = m.world_to_chunk(x, 0.0, 0.0)
            assert key[0] % 7 == 0
            assert key[0] <= x < key[0] + 7

    def test_odd_size_rejected(self, source):
        with pytest.raises(ValueError, match="whole number"):
            ChunkManager(source, BlockyMesher(15))

    def test_fractional_chunk_size_rejected(self, source):
        with pytest.raises(ValueError):
            ChunkManager(source, BlockyMesher(16), chunk_size=7.5)

    def test_set_mesher_rejects_odd_size(self, manager):
        manager.generate(0, 0, 0)
        manager.update()
        with pytest.raises(ValueError):
            manager.set_mesher(BlockyMesher(15))
        assert manager.mesher.size == 16
        assert manager.dirty() == []

    def test_bad_resolution(self, source, manager):
        with pytest.raises(ValueError):
            ChunkManager(source, BlockyMesher(16), resolution=0)
        with pytest.raises(ValueError):
            manager.generate(0, 0, 0, r=0)


class TestBackgroundMeshing:

    def test_worker_builds_requested_chunks(self, manager):
        for x in (0, 8):
            manager.generate(x, 0, 0)
        manager.start_worker()
        assert manager.request_dirty() == 2
        ready = _drain(manager, 2)
        assert len(ready) == 2
        assert manager.dirty() == []
        assert manager.pending == set()

    def test_matches_synchronous_build(self, source, manager):
        manager.generate(0, 0, 0)
        manager.start_worker()
        manager.request((0, 0, 0))
        ready = _drain(manager, 1)
        expected = build_chunk_mesh(source, BlockyMesher(16), Chunk(0, 0, 0, 1))
        assert np.array_equal(ready[0].mesh.positions, expected.positions)

    def test_request_is_not_repeated(self, manager):
        manager.generate(0, 0, 0)
        manager.start_worker()
        assert manager.request((0, 0, 0)) is True
        assert manager.request((0, 0, 0)) is False
        _drain(manager, 1)
        assert manager.request((0, 0, 0)) is False

    def test_request_needs_worker(self, manager):
        manager.generate(0, 0, 0)
        with pytest.raises(RuntimeError):
            manager.request((0, 0, 0))

    def test_request_unknown_chunk(self, manager):
        manager.start_worker()
        with pytest.raises(KeyError):
            manager.request((1, 2, 3))

    def test_worker_error_surfaces(self):
        def boom(x, y, z):
            raise ValueError("bad field")

        m = ChunkManager(PointField(boom), BlockyMesher(2))
        m.generate(0, 0, 0)
        m.start_worker()
        try:
            m.request((0, 0, 0))
            with pytest.raises(RuntimeError) as info:
                _drain(m, 1)
            assert isinstance(info.value.__cause__, ValueError)
        finally:
            m.shutdown()

    def test_shutdown_is_idempotent(self, manager):
        manager.start_worker()
        manager.shutdown()
        manager.shutdown()
        assert manager.worker is None
