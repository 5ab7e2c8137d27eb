"""
Mesh generation module for the reconstruction pipeline.

This module provides tools for generating meshes from oriented point clouds
using an implicit-surface fit.
"""

from .generator import MeshGenerator, generate_mesh

__all__ = ['MeshGenerator', 'generate_mesh']
