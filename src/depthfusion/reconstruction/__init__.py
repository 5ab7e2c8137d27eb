"""
Reconstruction module for the depthfusion pipeline.

This module turns multi-frame depth captures into a denoised, oriented point
cloud and optionally into a triangle mesh.
"""

# Import key functionality to make it available at the module level
from .types import Frame, MultiFrameCloud, OrientedPointCloud, Mesh, AccumulationReport
from .mesh import MeshGenerator, generate_mesh
from .pipeline import construct_oriented_cloud, reconstruct_surface, ReconstructionPipeline

__all__ = [
    'Frame',
    'MultiFrameCloud',
    'OrientedPointCloud',
    'Mesh',
    'AccumulationReport',
    'MeshGenerator',
    'generate_mesh',
    'construct_oriented_cloud',
    'reconstruct_surface',
    'ReconstructionPipeline',
]
