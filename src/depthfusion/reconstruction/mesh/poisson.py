"""
Screened Poisson Indicator Solve

Fits an indicator function chi on a regular grid of 2**depth cells per side
so that its gradient matches the splatted normal field while chi stays close
to zero at the sample positions:

    E(chi) = sum_edges (chi_b - chi_a - v_ab)^2 + alpha * sum_p chi(p)^2

chi grows along the normals, so it is negative inside the sampled surface and
positive outside; the mesh is its zero level set.

``depth`` bounds the resolution. The solve uses the finest depth at which
occupied cells hold on average at least ``samples_per_node`` samples, the grid
counterpart of an octree adapted to sampling density. ``point_weight`` scales
alpha, trading interpolation of the samples against smoothness of chi.
"""

from dataclasses import dataclass

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import cg

from ...exceptions import SurfaceReconstructionError
from ...utils.logging import get_logger

logger = get_logger("reconstruction.mesh.poisson")

# Fewest samples accepted for a solve
MIN_POINTS = 4

# Coarsest grid considered when adapting depth to sampling density
MIN_DEPTH = 2

# Trilinear corner offsets
_CORNERS = np.array([
    (0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 0),
    (0, 0, 1), (1, 0, 1), (0, 1, 1), (1, 1, 1),
])


@dataclass
class IndicatorField:
    """Solved indicator function sampled at grid nodes."""

    values: np.ndarray
    origin: np.ndarray
    spacing: float
    depth: int
    occupied_cells: int
    converged: bool


def _occupied_cells(points, lower, width, depth):
    resolution = 2 ** depth
    cells = np.floor((points - lower) / (width / resolution)).astype(np.int64)
    cells = np.clip(cells, 0, resolution - 1)
    return len(np.unique(cells, axis=0))


def select_depth(points, lower, width, max_depth, samples_per_node):
    """
    Finest depth not above ``max_depth`` whose occupied cells average at least
    ``samples_per_node`` samples.

    Returns:
        tuple: (depth, occupied cell count at that depth)
    """
    count = len(points)
    floor = min(MIN_DEPTH, max_depth)
    depth = max_depth
    occupied = _occupied_cells(points, lower, width, depth)
    while depth > floor and count / occupied < samples_per_node:
        depth -= 1
        occupied = _occupied_cells(points, lower, width, depth)
    return depth, occupied


def _interpolation_matrix(grid_coords, shape):
    """Sparse (n_points x n_nodes) matrix of trilinear weights."""
    base = np.floor(grid_coords).astype(np.int64)
    base = np.clip(base, 0, np.array(shape) - 2)
    frac = grid_coords - base

    rows = []
    cols = []
    weights = []
    point_ids = np.arange(len(grid_coords))
    for offset in _CORNERS:
        corner = base + offset
        w = np.prod(np.where(offset == 1, frac, 1.0 - frac), axis=1)
        rows.append(point_ids)
        cols.append(np.ravel_multi_index(corner.T, shape))
        weights.append(w)

    return sparse.coo_matrix(
        (np.concatenate(weights), (np.concatenate(rows), np.concatenate(cols))),
        shape=(len(grid_coords), int(np.prod(shape))),
    ).tocsr()


def _gradient_operator(shape):
    """
    Finite-difference gradient: one row per grid edge, +1 at its upper node
    and -1 at its lower node.

    Returns:
        tuple: (sparse operator, lower node ids, upper node ids, edge axis ids)
    """
    node_ids = np.arange(int(np.prod(shape))).reshape(shape)
    lower = []
    upper = []
    axes = []
    for axis in range(3):
        lo = np.delete(node_ids, -1, axis=axis).ravel()
        hi = np.delete(node_ids, 0, axis=axis).ravel()
        lower.append(lo)
        upper.append(hi)
        axes.append(np.full(len(lo), axis))
    lower = np.concatenate(lower)
    upper = np.concatenate(upper)
    axes = np.concatenate(axes)

    edge_ids = np.arange(len(lower))
    operator = sparse.coo_matrix(
        (np.concatenate([-np.ones(len(lower)), np.ones(len(upper))]),
         (np.concatenate([edge_ids, edge_ids]), np.concatenate([lower, upper]))),
        shape=(len(lower), int(np.prod(shape))),
    ).tocsr()
    return operator, lower, upper, axes


def solve_indicator(points, normals, depth=5, point_weight=4.0, samples_per_node=1.5,
                    scale=1.1, max_iterations=2000) -> IndicatorField:
    """
    Solve for the screened indicator function of an oriented point set.

    Args:
        points: (N, 3) sample positions
        normals: (N, 3) outward unit normals
        depth: Maximum grid depth (2**depth cells per side)
        point_weight: Screening weight of the samples
        samples_per_node: Minimum mean samples per occupied cell
        scale: Ratio between the reconstruction cube and the samples' bounding cube
        max_iterations: Conjugate gradient iteration cap

    Returns:
        IndicatorField

    Raises:
        SurfaceReconstructionError: if the samples cannot seed a grid
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
    count = len(points)
    if count < MIN_POINTS:
        raise SurfaceReconstructionError(f"Need at least {MIN_POINTS} samples, got {count}")
    if not (np.isfinite(points).all() and np.isfinite(normals).all()):
        raise SurfaceReconstructionError("Samples contain non-finite coordinates")

    lower, upper = points.min(axis=0), points.max(axis=0)
    extent = float((upper - lower).max())
    if extent <= 0:
        raise SurfaceReconstructionError("All samples coincide")

    width = extent * scale
    center = (lower + upper) / 2.0
    cube_lower = center - width / 2.0

    depth, occupied = select_depth(points, cube_lower, width, depth, samples_per_node)
    resolution = 2 ** depth
    spacing = width / resolution
    # One extra node layer on every side keeps the surface inside the grid
    origin = cube_lower - spacing
    nodes = resolution + 3
    shape = (nodes, nodes, nodes)
    logger.info(
        f"Solving indicator on {nodes}^3 grid (depth {depth}, "
        f"{count / occupied:.2f} samples per occupied cell)"
    )

    interpolation = _interpolation_matrix((points - origin) / spacing, shape)

    # Splatted normals, scaled so that chi jumps by about one across the surface
    density = count / occupied
    field = interpolation.T @ normals / density

    gradient, lower_ids, upper_ids, axes = _gradient_operator(shape)
    targets = 0.5 * (field[lower_ids, axes] + field[upper_ids, axes])

    # Weight each sample by the surface area it stands for, in cell units
    alpha = point_weight * occupied / count
    system = (gradient.T @ gradient + alpha * (interpolation.T @ interpolation)).tocsr()
    rhs = gradient.T @ targets

    preconditioner = sparse.diags(1.0 / system.diagonal())
    solution, info = cg(system, rhs, M=preconditioner, maxiter=max_iterations)
    if info < 0:
        raise SurfaceReconstructionError(f"Conjugate gradient breakdown (info={info})")
    if info > 0:
        logger.warning(f"Indicator solve did not converge within {info} iterations")

    return IndicatorField(
        values=solution.reshape(shape),
        origin=origin,
        spacing=spacing,
        depth=depth,
        occupied_cells=occupied,
        converged=info == 0,
    )
