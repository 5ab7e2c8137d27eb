"""
Reconstruction Pipeline

Entry points of the reconstruction core:

    construct_oriented_cloud  frames -> denoise + normals per frame -> combined oriented cloud
    reconstruct_surface       ... -> global denoise -> implicit surface -> mesh

Each call is self-contained; all state is created per invocation and the
configuration is passed in explicitly, so independent pipelines can run
concurrently with different tunables.
"""

from typing import Optional

from ..config import ReconstructionConfig
from ..utils.logging import get_logger
from .accumulation import accumulate_frames
from .filtering import denoise_oriented_cloud
from .mesh import MeshGenerator
from .types import MultiFrameCloud

logger = get_logger("reconstruction.pipeline")


def construct_oriented_cloud(cloud: MultiFrameCloud, config: Optional[ReconstructionConfig] = None,
                             return_report: bool = False):
    """
    Build a normals-annotated point cloud without meshing it.

    Args:
        cloud: Multi-frame input with per-frame viewpoints
        config: Pipeline configuration (defaults when None)
        return_report: Also return the AccumulationReport

    Returns:
        OrientedPointCloud, or (OrientedPointCloud, AccumulationReport) when
        return_report is set
    """
    config = config or ReconstructionConfig()
    oriented, report = accumulate_frames(cloud, config)
    if return_report:
        return oriented, report
    return oriented


def reconstruct_surface(cloud: MultiFrameCloud, config: Optional[ReconstructionConfig] = None,
                        return_report: bool = False):
    """
    Run the full pipeline and produce a triangle mesh.

    Args:
        cloud: Multi-frame input with per-frame viewpoints
        config: Pipeline configuration (defaults when None)
        return_report: Also return the AccumulationReport

    Returns:
        Mesh, or (Mesh, AccumulationReport) when return_report is set
    """
    config = config or ReconstructionConfig()
    oriented, report = accumulate_frames(cloud, config)
    logger.info(f"Loaded point cloud with normals: {len(oriented)} points")

    filtered = denoise_oriented_cloud(oriented, config)

    mesh = MeshGenerator(config=config).generate(filtered)
    if return_report:
        return mesh, report
    return mesh


class ReconstructionPipeline:
    """
    A configuration bound to both entry points.
    """

    def __init__(self, config: Optional[ReconstructionConfig] = None):
        self.config = config or ReconstructionConfig()

    def oriented_cloud(self, cloud: MultiFrameCloud, return_report: bool = False):
        return construct_oriented_cloud(cloud, self.config, return_report=return_report)

    def mesh(self, cloud: MultiFrameCloud, return_report: bool = False):
        return reconstruct_surface(cloud, self.config, return_report=return_report)
