"""
Normal Estimation Module

Estimates one oriented normal per point from the k nearest neighbors: the
normal is the eigenvector of the smallest eigenvalue of the neighborhood
covariance, flipped to face the frame's viewpoint.

Work is split into fixed-size chunks of point indices and the chunks are
shared out over a thread pool. Chunk boundaries do not depend on the worker
count, so results are identical for any number of workers.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

from ..utils.logging import get_logger
from .types import as_point, as_points, finite_mask

logger = get_logger("reconstruction.normals")

DEFAULT_NEIGHBORS = 10
CHUNK_SIZE = 2048

# A plane needs at least three points
_MIN_PLANE_POINTS = 3


def _viewpoint_directions(points, viewpoint):
    """Unit vectors from each point toward the viewpoint (+z where they coincide)."""
    directions = viewpoint - points
    lengths = np.linalg.norm(directions, axis=1)
    result = np.zeros_like(points)
    result[:, 2] = 1.0
    ok = lengths > 0
    result[ok] = directions[ok] / lengths[ok, None]
    return result


def orient_towards_viewpoint(points, normals, viewpoint) -> np.ndarray:
    """Flip every normal whose dot product with (viewpoint - point) is negative."""
    flip = np.einsum("ij,ij->i", normals, viewpoint - points) < 0
    oriented = normals.copy()
    oriented[flip] *= -1.0
    return oriented


def _plane_normals(neighborhoods: np.ndarray) -> np.ndarray:
    """Least-squares plane normals for a batch of (m, k, 3) neighborhoods."""
    centered = neighborhoods - neighborhoods.mean(axis=1, keepdims=True)
    covariance = np.einsum("mki,mkj->mij", centered, centered) / neighborhoods.shape[1]
    # eigh returns ascending eigenvalues; column 0 spans the plane normal
    _, vectors = np.linalg.eigh(covariance)
    return vectors[:, :, 0]


def _estimate_chunk(tree, points, viewpoint, start, stop, k):
    query = points[start:stop]
    _, indices = tree.query(query, k=k)
    normals = _plane_normals(points[indices])
    return orient_towards_viewpoint(query, normals, viewpoint)


def estimate_normals(points, viewpoint, neighbors: int = DEFAULT_NEIGHBORS,
                     workers: Optional[int] = None) -> np.ndarray:
    """
    Compute one unit normal per point, oriented toward the viewpoint.

    Args:
        points: (N, 3) positions of one (filtered) frame
        viewpoint: Sensor origin of the frame
        neighbors: Size of the neighborhood used for the plane fit, including
            the point itself; clamped to the number of points available
        workers: Number of threads; None uses a single thread

    Returns:
        (N, 3) array of normals in input order; rows of points with a
        non-finite coordinate get NaN normals
    """
    points = as_points(points)
    viewpoint = as_point(viewpoint)
    finite = finite_mask(points)
    if not finite.all():
        logger.warning(f"Skipping {int((~finite).sum())} point(s) with non-finite coordinates")
        normals = np.full_like(points, np.nan)
        normals[finite] = estimate_normals(points[finite], viewpoint, neighbors, workers)
        return normals

    count = len(points)
    if count == 0:
        return np.empty((0, 3))

    k = min(int(neighbors), count)
    if k < _MIN_PLANE_POINTS:
        # Too few points to fit a plane; face the sensor directly
        logger.warning(
            f"Only {count} point(s) available for normal estimation; "
            f"using viewpoint directions as normals"
        )
        return _viewpoint_directions(points, viewpoint)
    if k < neighbors:
        logger.debug(f"Frame has {count} points; using k={k} instead of {neighbors}")

    tree = cKDTree(points)
    bounds = [(start, min(start + CHUNK_SIZE, count)) for start in range(0, count, CHUNK_SIZE)]
    workers = max(1, int(workers or 1))

    if workers == 1 or len(bounds) == 1:
        chunks = [_estimate_chunk(tree, points, viewpoint, start, stop, k) for start, stop in bounds]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(_estimate_chunk, tree, points, viewpoint, start, stop, k)
                for start, stop in bounds
            ]
            chunks = [future.result() for future in futures]

    normals = np.concatenate(chunks, axis=0)
    logger.debug(f"Estimated {len(normals)} normals with k={k} on {workers} worker(s)")
    return normals
