"""
Unit tests for viewpoint-oriented normal estimation
"""

import numpy as np

from depthfusion.reconstruction.normals import estimate_normals, orient_towards_viewpoint

from conftest import sample_plane, sample_sphere


def test_plane_normals_face_the_viewpoint():
    """A plane above the sensor gets normals pointing back down at it."""
    points = sample_plane(300, (-1.0, 1.0), (-1.0, 1.0), z=1.0)
    viewpoint = np.zeros(3)

    normals = estimate_normals(points, viewpoint, neighbors=10)

    assert normals.shape == points.shape
    np.testing.assert_allclose(normals, np.tile([0.0, 0.0, -1.0], (300, 1)), atol=1e-9)


def test_normals_are_unit_length_and_oriented():
    """Every normal has unit length and a non-negative dot product with the view direction."""
    points, _ = sample_sphere(800)
    viewpoint = np.array([0.0, 0.0, 4.0])
    front = points[points[:, 2] > 0.2]

    normals = estimate_normals(front, viewpoint, neighbors=10)

    np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0)
    assert (np.einsum("ij,ij->i", normals, viewpoint - front) >= -1e-9).all()


def test_sphere_seen_from_outside_gets_outward_normals():
    """On a convex patch facing the sensor the normals point away from the center."""
    points, outward = sample_sphere(1000)
    viewpoint = np.array([5.0, 0.0, 0.0])
    cap = points[:, 0] > 0.3

    normals = estimate_normals(points[cap], viewpoint, neighbors=10)

    alignment = np.einsum("ij,ij->i", normals, outward[cap])
    assert (alignment > 0.95).all()


def test_results_do_not_depend_on_worker_count():
    """Any degree of parallelism yields identical normals."""
    points = np.random.default_rng(3).normal(size=(5000, 3))
    viewpoint = np.array([10.0, -2.0, 1.0])

    serial = estimate_normals(points, viewpoint, workers=1)
    parallel = estimate_normals(points, viewpoint, workers=4)

    np.testing.assert_array_equal(serial, parallel)


def test_small_frames_use_all_available_neighbors():
    """Fewer points than requested neighbors still produce one normal per point."""
    points = sample_plane(5, (0.0, 1.0), (0.0, 1.0), z=2.0)

    normals = estimate_normals(points, np.zeros(3), neighbors=10)

    assert normals.shape == (5, 3)
    np.testing.assert_allclose(np.abs(normals[:, 2]), 1.0, atol=1e-9)


def test_too_few_points_for_a_plane_face_the_viewpoint():
    """With one or two points the normal is the direction to the sensor."""
    points = np.array([[0.0, 0.0, 2.0], [3.0, 0.0, 0.0]])

    normals = estimate_normals(points, np.zeros(3))

    np.testing.assert_allclose(normals, [[0.0, 0.0, -1.0], [-1.0, 0.0, 0.0]])


def test_empty_input_returns_empty_normals():
    assert estimate_normals(np.empty((0, 3)), np.zeros(3)).shape == (0, 3)


def test_orient_towards_viewpoint_flips_only_backfacing_normals():
    points = np.zeros((2, 3))
    normals = np.array([[0.0, 0.0, 1.0], [0.0, 0.0, -1.0]])

    oriented = orient_towards_viewpoint(points, normals, np.array([0.0, 0.0, 1.0]))

    np.testing.assert_array_equal(oriented, [[0.0, 0.0, 1.0], [0.0, 0.0, 1.0]])


def test_non_finite_points_get_nan_normals():
    """Points with a NaN coordinate are skipped; the rest match a clean run."""
    points = sample_plane(120, (-1.0, 1.0), (-1.0, 1.0), z=1.0)
    corrupted = np.insert(points, 7, [np.nan, 0.0, 1.0], axis=0)

    normals = estimate_normals(corrupted, np.zeros(3), neighbors=10)

    assert np.isnan(normals[7]).all()
    np.testing.assert_array_equal(np.delete(normals, 7, axis=0), estimate_normals(points, np.zeros(3), neighbors=10))
