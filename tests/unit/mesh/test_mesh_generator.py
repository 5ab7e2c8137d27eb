"""
Unit tests for implicit-surface mesh generation
"""

from collections import Counter

import numpy as np
import pytest

from depthfusion.config import ReconstructionConfig
from depthfusion.exceptions import InvalidConfigurationError, SurfaceReconstructionError
from depthfusion.reconstruction.mesh import MeshGenerator, generate_mesh
from depthfusion.reconstruction.mesh.poisson import select_depth, solve_indicator
from depthfusion.reconstruction.types import OrientedPointCloud

from conftest import sample_sphere


def test_indicator_is_negative_inside_and_positive_outside(sphere_cloud):
    field = solve_indicator(sphere_cloud.points, sphere_cloud.normals, depth=4)

    center = np.round((np.zeros(3) - field.origin) / field.spacing).astype(int)
    assert field.values[tuple(center)] < 0
    assert field.values[0, 0, 0] > 0
    assert field.values[-1, -1, -1] > 0


def test_indicator_rejects_too_few_samples():
    with pytest.raises(SurfaceReconstructionError):
        solve_indicator(np.zeros((3, 3)), np.ones((3, 3)))


def test_indicator_rejects_coincident_samples():
    with pytest.raises(SurfaceReconstructionError):
        solve_indicator(np.ones((10, 3)), np.ones((10, 3)))


def test_depth_adapts_to_sampling_density(sphere_cloud):
    points = sphere_cloud.points
    lower = points.min(axis=0) - 0.1
    width = 2.2

    # Every occupied cell holds at least one sample
    assert select_depth(points, lower, width, 5, 1.0)[0] == 5
    coarse, occupied = select_depth(points, lower, width, 5, 20.0)
    assert coarse < 5
    assert len(points) / occupied >= 20.0 or coarse == 2


def test_empty_cloud_yields_empty_mesh(config):
    mesh = generate_mesh(OrientedPointCloud(), config=config)

    assert mesh.num_vertices == 0
    assert mesh.num_faces == 0


def test_degenerate_cloud_yields_empty_mesh(config):
    cloud = OrientedPointCloud(points=np.ones((20, 3)), normals=np.tile([0.0, 0.0, 1.0], (20, 1)))

    generator = MeshGenerator(config=config)
    mesh = generator.generate(cloud)

    assert mesh.is_empty()
    assert 'error' in generator.last_info


def test_sphere_reconstruction_is_valid_and_closed(sphere_cloud, config):
    generator = MeshGenerator(config=config)

    mesh = generator.generate(sphere_cloud)

    assert mesh.num_faces > 0
    assert mesh.is_valid()
    radii = np.linalg.norm(mesh.vertices, axis=1)
    assert np.abs(radii - 1.0).mean() < 0.15

    edges = np.sort(np.concatenate([mesh.faces[:, [0, 1]], mesh.faces[:, [1, 2]], mesh.faces[:, [2, 0]]]), axis=1)
    assert all(count % 2 == 0 for count in Counter(map(tuple, edges)).values())

    assert generator.last_info['triangles'] == mesh.num_faces
    assert generator.last_info['effective_depth'] <= config.octree_depth


def test_sphere_faces_point_outward(sphere_cloud, config):
    mesh = generate_mesh(sphere_cloud, config=config)

    a, b, c = (mesh.vertices[mesh.faces[:, i]] for i in range(3))
    normals = np.cross(b - a, c - a)
    assert (np.einsum("ij,ij->i", normals, (a + b + c) / 3.0) > 0).mean() > 0.95


def test_reconstruction_is_translation_covariant(config):
    """Moving the samples moves the mesh by the same offset."""
    points, normals = sample_sphere(1200)
    offset = np.array([10.0, -4.0, 2.5])

    base = generate_mesh(OrientedPointCloud(points=points, normals=normals), config=config)
    moved = generate_mesh(OrientedPointCloud(points=points + offset, normals=normals), config=config)

    assert base.num_faces == moved.num_faces
    np.testing.assert_allclose(moved.vertices - offset, base.vertices, atol=1e-6)


def test_unknown_method_is_rejected():
    with pytest.raises(InvalidConfigurationError):
        MeshGenerator(method='delaunay')


def test_open3d_method(sphere_cloud):
    pytest.importorskip("open3d")
    config = ReconstructionConfig(mesh_method="open3d", normal_workers=1)

    mesh = MeshGenerator(config=config).generate(sphere_cloud)

    assert mesh.num_faces > 0
    assert mesh.is_valid()
