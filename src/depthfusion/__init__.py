"""
depthfusion

Fuses per-frame depth captures into one denoised, oriented point cloud and
reconstructs a watertight triangle mesh from it.
"""

from .config import ReconstructionConfig, load_config
from .exceptions import (
    ReconstructionError,
    InvalidConfigurationError,
    InvalidInputError,
    SurfaceReconstructionError,
    AccumulationMismatchWarning,
)
from .reconstruction import (
    Frame,
    MultiFrameCloud,
    OrientedPointCloud,
    Mesh,
    AccumulationReport,
    construct_oriented_cloud,
    reconstruct_surface,
    ReconstructionPipeline,
)

__version__ = "0.1.0"

__all__ = [
    'ReconstructionConfig',
    'load_config',
    'ReconstructionError',
    'InvalidConfigurationError',
    'InvalidInputError',
    'SurfaceReconstructionError',
    'AccumulationMismatchWarning',
    'Frame',
    'MultiFrameCloud',
    'OrientedPointCloud',
    'Mesh',
    'AccumulationReport',
    'construct_oriented_cloud',
    'reconstruct_surface',
    'ReconstructionPipeline',
]
