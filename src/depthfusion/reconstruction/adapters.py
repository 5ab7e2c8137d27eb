"""
Format Adapters

Marshalling between the flat structures exchanged with callers and the
structured types used inside the pipeline, plus optional conversion to and
from Open3D geometries for callers that read or write files with Open3D.
"""

from typing import Any, Dict

import numpy as np

from ..exceptions import InvalidInputError
from .types import Mesh, MultiFrameCloud, OrientedPointCloud


def cloud_from_flat(num_points, points, frame_lengths, viewpoints) -> MultiFrameCloud:
    """
    Build the pipeline input from flat arrays.

    Args:
        num_points (int): Declared total number of points
        points: Flat buffer, either (N, 3) or (3N,)
        frame_lengths: Per-frame point counts, in frame order
        viewpoints: Per-frame sensor origins, (F, 3) or (3F,)

    Returns:
        MultiFrameCloud

    Raises:
        InvalidInputError: if shapes or counts are inconsistent
    """
    points = np.asarray(points, dtype=np.float64)
    viewpoints = np.asarray(viewpoints, dtype=np.float64)
    if points.ndim == 1:
        if points.size % 3:
            raise InvalidInputError(f"Flat point buffer length {points.size} is not a multiple of 3")
        points = points.reshape(-1, 3)
    if viewpoints.ndim == 1:
        if viewpoints.size % 3:
            raise InvalidInputError(f"Flat viewpoint buffer length {viewpoints.size} is not a multiple of 3")
        viewpoints = viewpoints.reshape(-1, 3)
    return MultiFrameCloud(
        num_points=num_points,
        points=points,
        frame_lengths=tuple(np.asarray(frame_lengths, dtype=np.int64).ravel().tolist()),
        viewpoints=viewpoints,
    )


def oriented_cloud_to_flat(cloud: OrientedPointCloud) -> Dict[str, Any]:
    """Expose an oriented cloud as parallel arrays plus the passed-through frame bookkeeping."""
    return {
        'num_points': len(cloud),
        'points': cloud.points.copy(),
        'normals': cloud.normals.copy(),
        'num_frames': len(cloud.frame_lengths),
        'frame_lengths': list(cloud.frame_lengths),
        'viewpoints': cloud.viewpoints.copy(),
    }


def mesh_to_flat(mesh: Mesh) -> Dict[str, Any]:
    """Expose a mesh as vertex and face arrays with their counts."""
    return {
        'num_vertices': mesh.num_vertices,
        'vertices': mesh.vertices.copy(),
        'num_faces': mesh.num_faces,
        'faces': mesh.faces.copy(),
    }


def to_open3d_point_cloud(cloud: OrientedPointCloud):
    """Convert to an ``open3d.geometry.PointCloud`` carrying the normals."""
    import open3d as o3d

    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(cloud.points)
    pcd.normals = o3d.utility.Vector3dVector(cloud.normals)
    return pcd


def to_open3d_mesh(mesh: Mesh):
    """Convert to an ``open3d.geometry.TriangleMesh``."""
    import open3d as o3d

    o3d_mesh = o3d.geometry.TriangleMesh()
    o3d_mesh.vertices = o3d.utility.Vector3dVector(mesh.vertices)
    o3d_mesh.triangles = o3d.utility.Vector3iVector(mesh.faces.astype(np.int32))
    return o3d_mesh


def from_open3d_mesh(o3d_mesh) -> Mesh:
    """Convert an ``open3d.geometry.TriangleMesh`` to a Mesh."""
    return Mesh(
        vertices=np.asarray(o3d_mesh.vertices),
        faces=np.asarray(o3d_mesh.triangles),
    )
