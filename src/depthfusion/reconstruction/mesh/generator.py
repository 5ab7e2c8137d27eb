"""
Mesh Generation Module

This module turns an oriented point cloud into a triangle mesh by fitting an
implicit indicator function and extracting its zero level set.
"""

from ...config import ReconstructionConfig
from ...exceptions import SurfaceReconstructionError
from ...utils.logging import get_logger
from ..types import Mesh, OrientedPointCloud
from .poisson import MIN_POINTS, solve_indicator
from .surface_nets import extract_isosurface

logger = get_logger("reconstruction.mesh")


class MeshGenerator:
    """
    Class for generating meshes from oriented point clouds using different methods.
    """

    def __init__(self, method=None, config=None):
        """
        Initialize the mesh generator.

        Args:
            method (str): The meshing method to use ('screened' or 'open3d');
                defaults to the method named by the config
            config (ReconstructionConfig): Pipeline configuration
        """
        self.config = config or ReconstructionConfig()
        self.method = (method or self.config.mesh_method).lower()
        if self.method != self.config.mesh_method:
            # Validates the method name as well
            self.config = self.config.replace(mesh_method=self.method)

        # Information about the most recent reconstruction
        self.last_info = {}

    def generate(self, cloud: OrientedPointCloud) -> Mesh:
        """
        Generate a mesh from an oriented point cloud.

        An empty or degenerate cloud yields an empty mesh instead of an error.

        Args:
            cloud (OrientedPointCloud): Positions with outward unit normals

        Returns:
            Mesh: The reconstructed surface
        """
        self.last_info = {
            'method': self.method,
            'input_points': len(cloud),
            'config': {
                'depth': self.config.octree_depth,
                'point_weight': self.config.point_weight,
                'samples_per_node': self.config.samples_per_node,
                'scale': self.config.scale,
            }
        }

        if len(cloud) < MIN_POINTS:
            logger.warning(
                f"Cannot reconstruct a surface from {len(cloud)} point(s); returning an empty mesh"
            )
            return self._finish(Mesh.empty())

        logger.info(f"Begin surface reconstruction of {len(cloud)} points with method '{self.method}'")
        try:
            if self.method == 'screened':
                mesh = self.generate_with_screened_poisson(cloud)
            elif self.method == 'open3d':
                mesh = self.generate_with_open3d(cloud)
            else:
                raise ValueError(f"Unsupported meshing method: {self.method}")
        except SurfaceReconstructionError as e:
            logger.warning(f"Surface reconstruction failed, returning an empty mesh: {e}")
            self.last_info['error'] = str(e)
            return self._finish(Mesh.empty())

        except Exception as e:
            logger.error(f"Error during {self.method} mesh generation: {str(e)}")
            raise

        return self._finish(mesh)

    def _finish(self, mesh):
        self.last_info['vertices'] = mesh.num_vertices
        self.last_info['triangles'] = mesh.num_faces
        logger.info(f"Mesh generation completed: {mesh.num_vertices} vertices, {mesh.num_faces} triangles")
        return mesh

    def generate_with_screened_poisson(self, cloud):
        """
        Generate a mesh with the built-in screened Poisson solver and surface nets extraction.

        Args:
            cloud (OrientedPointCloud): Input samples

        Returns:
            Mesh: The zero level set of the solved indicator function
        """
        field = solve_indicator(
            cloud.points,
            cloud.normals,
            depth=self.config.octree_depth,
            point_weight=self.config.point_weight,
            samples_per_node=self.config.samples_per_node,
            scale=self.config.scale,
        )
        self.last_info['effective_depth'] = field.depth
        self.last_info['converged'] = field.converged

        vertices, faces = extract_isosurface(field.values, field.origin, field.spacing)
        if len(faces) == 0:
            raise SurfaceReconstructionError("Indicator function has no zero crossing")
        return Mesh(vertices=vertices, faces=faces)

    def generate_with_open3d(self, cloud):
        """
        Generate a mesh using Open3D's Poisson reconstruction.

        Open3D exposes depth and scale only; point weight and samples per node
        are not applied by this method.

        Args:
            cloud (OrientedPointCloud): Input samples

        Returns:
            Mesh: The reconstructed surface
        """
        try:
            import open3d as o3d
        except ImportError as e:
            logger.error(f"Open3D not available: {str(e)}")
            raise ImportError("Open3D is required for this meshing method. Install with 'pip install open3d'")

        from ..adapters import to_open3d_point_cloud, from_open3d_mesh

        logger.debug(
            f"Open3D Poisson ignores point_weight={self.config.point_weight} "
            f"and samples_per_node={self.config.samples_per_node}"
        )
        pcd = to_open3d_point_cloud(cloud)

        depth = int(self.config.octree_depth)
        logger.info(f"Performing Poisson reconstruction with depth {depth}")
        try:
            o3d_mesh, _ = o3d.geometry.TriangleMesh.create_from_point_cloud_poisson(
                pcd, depth=depth, width=0, scale=self.config.scale, linear_fit=False
            )
        except RuntimeError as e:
            raise SurfaceReconstructionError(f"Open3D Poisson reconstruction failed: {str(e)}")

        self.last_info['effective_depth'] = depth
        mesh = from_open3d_mesh(o3d_mesh)
        if mesh.num_faces == 0:
            raise SurfaceReconstructionError("Open3D Poisson reconstruction produced no faces")
        return mesh


def generate_mesh(cloud, method=None, config=None):
    """
    Convenience function to generate a mesh without explicitly creating a MeshGenerator instance.

    Args:
        cloud (OrientedPointCloud): The globally denoised oriented cloud
        method (str): The meshing method to use
        config (ReconstructionConfig): Pipeline configuration

    Returns:
        Mesh: The reconstructed surface
    """
    generator = MeshGenerator(method=method, config=config)
    return generator.generate(cloud)
