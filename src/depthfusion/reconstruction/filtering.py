"""
Statistical Outlier Removal

For every point the mean distance to its k nearest neighbors is computed; the
mean (mu) and sample standard deviation (sigma) of those values over the whole
cloud give a rejection threshold mu + t * sigma. Points strictly above the
threshold are dropped, survivors keep their order.

Two policies use this filter:
    - per frame, with k and t derived from the frame size (denoise_frame)
    - once over the merged oriented cloud, with fixed k and t (denoise_oriented_cloud)
"""

from typing import Tuple

import numpy as np
from scipy.spatial import cKDTree
from scipy.spatial.distance import cdist

from ..config import ReconstructionConfig
from ..utils.logging import get_logger
from .types import OrientedPointCloud, as_points, finite_mask

logger = get_logger("reconstruction.filtering")

# Upper bound on the number of pairwise distances held in memory at once
_DISTANCE_BLOCK = 4_000_000


def mean_neighbor_distances(points: np.ndarray, neighbors: int) -> np.ndarray:
    """
    Mean Euclidean distance from every point to its ``neighbors`` nearest
    other points. ``neighbors`` is clamped to len(points) - 1.
    """
    count = len(points)
    if count < 2:
        return np.zeros(count)
    k = max(1, min(int(neighbors), count - 1))

    if k == count - 1:
        # Every other point is a neighbor: exact block-wise pairwise sums, no tree needed
        block = max(1, _DISTANCE_BLOCK // count)
        sums = np.empty(count)
        for start in range(0, count, block):
            stop = min(start + block, count)
            sums[start:stop] = cdist(points[start:stop], points).sum(axis=1)
        return sums / k

    tree = cKDTree(points)
    distances, _ = tree.query(points, k=k + 1)
    # Column 0 is the query point itself (distance 0)
    return distances[:, 1:].mean(axis=1)


def statistical_outlier_mask(points, neighbors: int, stddev_multiplier: float) -> np.ndarray:
    """
    Boolean keep-mask of the points that pass the statistical filter.

    Points with a NaN or infinite coordinate are always rejected and take no
    part in the statistics. Fewer than two finite points have no neighborhood
    statistics and are kept whole.
    """
    points = as_points(points)
    keep = finite_mask(points)
    finite = points[keep]
    count = len(finite)
    if count < len(points):
        logger.warning(f"Dropping {len(points) - count} point(s) with non-finite coordinates")
    if count < 2:
        return keep

    mean_distances = mean_neighbor_distances(finite, neighbors)
    mu = mean_distances.mean()
    sigma = mean_distances.std(ddof=1)
    threshold = mu + stddev_multiplier * sigma

    keep[keep] = mean_distances <= threshold
    logger.debug(
        f"Outlier filter k={max(1, min(neighbors, count - 1))} t={stddev_multiplier:.4g}: "
        f"mu={mu:.6g} sigma={sigma:.6g}, kept {int(keep.sum())}/{len(points)}"
    )
    return keep


def frame_filter_parameters(frame_size: int, config: ReconstructionConfig) -> Tuple[int, float]:
    """
    Neighbor count and standard deviation multiplier for a frame of the given size.

    With the default policies every other point of the frame is a neighbor and
    the multiplier is ``frame_threshold_scale / frame_size``, so larger frames
    are filtered more tightly.
    """
    if config.frame_neighbor_policy == "all":
        neighbors = frame_size - 1
    else:
        neighbors = min(config.frame_neighbors, frame_size - 1)

    if config.frame_threshold_policy == "scaled":
        multiplier = config.frame_threshold_scale / frame_size if frame_size else 0.0
    else:
        multiplier = config.frame_stddev_multiplier

    return neighbors, multiplier


def denoise_frame(points, config: ReconstructionConfig) -> Tuple[np.ndarray, np.ndarray]:
    """
    Remove statistical outliers from one frame's points.

    Args:
        points: (N, 3) positions of the frame
        config: Pipeline configuration

    Returns:
        tuple: (surviving points in input order, boolean keep-mask over the input)
    """
    points = as_points(points)
    # Non-finite samples do not count toward the frame size
    count = int(finite_mask(points).sum())
    if count < 2:
        # No neighborhood exists for 0 or 1 points; pass through
        logger.warning(f"Degenerate frame with {count} finite point(s); skipping outlier removal")
        keep = finite_mask(points)
        return points[keep], keep

    neighbors, multiplier = frame_filter_parameters(count, config)
    keep = statistical_outlier_mask(points, neighbors, multiplier)
    return points[keep], keep


def denoise_oriented_cloud(cloud: OrientedPointCloud, config: ReconstructionConfig) -> OrientedPointCloud:
    """
    Second, global outlier pass over the merged cloud. Operates on positions;
    normals travel with their surviving points. Elements whose position or
    normal is not finite are dropped.
    """
    count = len(cloud)
    logger.info(
        f"Statistically filtering {count} points "
        f"(k={config.global_neighbors}, t={config.global_stddev_multiplier})"
    )
    usable = finite_mask(cloud.normals)
    keep = np.zeros(count, dtype=bool)
    keep[usable] = statistical_outlier_mask(cloud.points[usable], config.global_neighbors,
                                            config.global_stddev_multiplier)
    filtered = cloud.select(keep)
    logger.info(f"Statistical filtering complete: {len(filtered)} of {count} points kept")
    return filtered
