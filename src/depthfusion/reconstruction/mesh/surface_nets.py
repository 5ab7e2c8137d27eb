"""
Surface Nets Extraction

Extracts the isosurface of a scalar field sampled on a regular grid. Every
cell whose corners straddle the iso level gets one vertex, placed at the mean
of the level crossings along its edges; every grid edge with a sign change
emits a quad joining the four cells around it, split into two triangles.
Faces are wound so their normals point from the low side of the field to the
high side.
"""

from typing import Tuple

import numpy as np

# Corner offsets of a cell, indexed 0..7 by (x + 2y + 4z)
_CORNERS = np.array([
    (0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 0),
    (0, 0, 1), (1, 0, 1), (0, 1, 1), (1, 1, 1),
])

_CELL_EDGES = (
    (0, 1), (2, 3), (4, 5), (6, 7),
    (0, 2), (1, 3), (4, 6), (5, 7),
    (0, 4), (1, 5), (2, 6), (3, 7),
)


def _cell_vertices(values, above, active):
    cells = np.argwhere(active)
    corner_values = np.stack(
        [values[cells[:, 0] + dx, cells[:, 1] + dy, cells[:, 2] + dz] for dx, dy, dz in _CORNERS],
        axis=1,
    )
    corner_above = np.stack(
        [above[cells[:, 0] + dx, cells[:, 1] + dy, cells[:, 2] + dz] for dx, dy, dz in _CORNERS],
        axis=1,
    )

    sums = np.zeros((len(cells), 3))
    counts = np.zeros(len(cells))
    for a, b in _CELL_EDGES:
        crossing = corner_above[:, a] != corner_above[:, b]
        if not crossing.any():
            continue
        va = corner_values[crossing, a]
        vb = corner_values[crossing, b]
        t = va / (va - vb)
        sums[crossing] += _CORNERS[a] + t[:, None] * (_CORNERS[b] - _CORNERS[a])
        counts[crossing] += 1

    return cells + sums / counts[:, None]


def _axis_quads(above, vertex_index, axis):
    """Quads (as four cell vertex ids) for sign-changing grid edges along one axis."""
    # Move the edge axis first so one routine serves x, y and z
    order = {0: (0, 1, 2), 1: (1, 2, 0), 2: (2, 0, 1)}[axis]
    grid = np.transpose(above, order)
    cell_ids = np.transpose(vertex_index, order)

    low = grid[:-1, 1:-1, 1:-1]
    high = grid[1:, 1:-1, 1:-1]
    i, u, v = np.nonzero(low != high)
    u = u + 1
    v = v + 1

    # The two in-plane axes (u, v) are cyclic successors of the edge axis,
    # so going around (u-1,v-1) -> (u,v-1) -> (u,v) -> (u-1,v) winds about +axis
    quads = np.stack([
        cell_ids[i, u - 1, v - 1],
        cell_ids[i, u, v - 1],
        cell_ids[i, u, v],
        cell_ids[i, u - 1, v],
    ], axis=1)

    # Edges running from high to low need the opposite winding
    reverse = low[i, u - 1, v - 1]
    quads[reverse] = quads[reverse][:, ::-1]
    return quads


def extract_isosurface(values: np.ndarray, origin, spacing: float,
                       level: float = 0.0) -> Tuple[np.ndarray, np.ndarray]:
    """
    Triangulate the ``level`` isosurface of a gridded scalar field.

    Args:
        values: (X, Y, Z) field values at grid nodes
        origin: World position of node (0, 0, 0)
        spacing: Distance between adjacent nodes
        level: Iso value

    Returns:
        tuple: (vertices (V, 3) in world coordinates, faces (F, 3) int64)
    """
    values = np.asarray(values, dtype=np.float64) - level
    if values.ndim != 3 or min(values.shape) < 3:
        return np.empty((0, 3)), np.empty((0, 3), dtype=np.int64)

    above = values > 0
    corner_count = np.zeros(tuple(s - 1 for s in values.shape), dtype=np.int64)
    for dx, dy, dz in _CORNERS:
        corner_count += above[dx:dx + corner_count.shape[0],
                              dy:dy + corner_count.shape[1],
                              dz:dz + corner_count.shape[2]]
    active = (corner_count > 0) & (corner_count < 8)
    if not active.any():
        return np.empty((0, 3)), np.empty((0, 3), dtype=np.int64)

    vertices = _cell_vertices(values, above, active)
    vertex_index = np.full(active.shape, -1, dtype=np.int64)
    vertex_index[active] = np.arange(len(vertices))

    quads = np.concatenate([_axis_quads(above, vertex_index, axis) for axis in range(3)], axis=0)
    if len(quads) == 0:
        return np.empty((0, 3)), np.empty((0, 3), dtype=np.int64)
    faces = np.concatenate([quads[:, [0, 1, 2]], quads[:, [0, 2, 3]]], axis=0)

    # Cells on the grid border may own a vertex without any quad; drop those
    used, faces = np.unique(faces.ravel(), return_inverse=True)
    faces = faces.reshape(-1, 3).astype(np.int64)
    vertices = np.asarray(origin, dtype=np.float64) + vertices[used] * float(spacing)
    return vertices, faces
