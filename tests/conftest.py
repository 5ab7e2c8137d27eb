"""
PyTest Configuration File

This file contains shared fixtures and synthetic point samplers for the test suite.
"""

import os
import sys

import numpy as np
import pytest

# Add the source directory to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from depthfusion.config import ReconstructionConfig
from depthfusion.reconstruction.types import Frame, MultiFrameCloud, OrientedPointCloud


def sample_sphere(count, radius=1.0, center=(0.0, 0.0, 0.0), seed=0):
    """Points spread evenly over a sphere (Fibonacci lattice) with outward normals."""
    index = np.arange(count) + 0.5
    phi = np.arccos(1.0 - 2.0 * index / count)
    theta = np.pi * (1.0 + 5 ** 0.5) * index
    normals = np.stack([
        np.cos(theta) * np.sin(phi),
        np.sin(theta) * np.sin(phi),
        np.cos(phi),
    ], axis=1)
    rng = np.random.default_rng(seed)
    # Tiny jitter keeps the lattice from being perfectly regular
    jitter = rng.normal(scale=1e-4 * radius, size=normals.shape)
    points = np.asarray(center) + radius * normals + jitter
    return points, normals


def sample_plane(count, x_range, y_range, z=1.0, seed=0):
    """Points on the plane z = const over a rectangle."""
    rng = np.random.default_rng(seed)
    x = rng.uniform(*x_range, size=count)
    y = rng.uniform(*y_range, size=count)
    return np.stack([x, y, np.full(count, z)], axis=1)


@pytest.fixture
def config():
    """Default configuration with a deterministic worker count."""
    return ReconstructionConfig(normal_workers=2)


@pytest.fixture
def sphere_cloud():
    """2000 samples of the unit sphere with outward normals."""
    points, normals = sample_sphere(2000)
    return OrientedPointCloud(points=points, normals=normals)


@pytest.fixture
def two_patch_cloud():
    """Two frames over adjacent planar patches seen from (0,0,0) and (1,0,0)."""
    first = Frame(points=sample_plane(100, (-1.0, 0.0), (-0.5, 0.5), seed=1), viewpoint=(0.0, 0.0, 0.0))
    second = Frame(points=sample_plane(150, (0.0, 1.0), (-0.5, 0.5), seed=2), viewpoint=(1.0, 0.0, 0.0))
    return MultiFrameCloud.from_frames([first, second])


@pytest.fixture
def noisy_frame():
    """A planar frame with a handful of far-away outliers appended at the end."""
    inliers = sample_plane(200, (0.0, 1.0), (0.0, 1.0), z=0.0, seed=3)
    outliers = np.array([
        [25.0, 25.0, 25.0],
        [-30.0, 10.0, 5.0],
        [15.0, -40.0, -20.0],
    ])
    return np.concatenate([inliers, outliers], axis=0)
