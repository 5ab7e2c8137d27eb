"""
Cloud Accumulation Module

Walks the frames of a multi-frame cloud in order, denoises each one, estimates
its normals against the frame's viewpoint and appends the resulting oriented
points to one combined cloud.

Two cursors are kept apart: the buffer cursor advances by each frame's
original length, the combined cursor by the number of points that survived
filtering.
"""

import warnings
from typing import Iterator, Tuple

import numpy as np

from ..config import ReconstructionConfig
from ..exceptions import AccumulationMismatchWarning
from ..utils.logging import get_logger
from .filtering import denoise_frame
from .normals import estimate_normals
from .types import AccumulationReport, Frame, MultiFrameCloud, OrientedPointCloud, finite_mask

logger = get_logger("reconstruction.accumulation")


def iter_frames(cloud: MultiFrameCloud) -> Iterator[Tuple[int, Frame, int]]:
    """
    Slice the flat buffer into frames by prefix sums of the frame lengths.

    Yields:
        tuple: (frame index, frame, original declared length). A frame that
        runs past the end of the buffer is truncated to the points available.
    """
    cursor = 0
    for index, length in enumerate(cloud.frame_lengths):
        stop = min(cursor + length, len(cloud.points))
        frame = Frame(points=cloud.points[cursor:stop], viewpoint=cloud.viewpoints[index])
        yield index, frame, length
        cursor += length


def orient_frame(frame: Frame, config: ReconstructionConfig) -> OrientedPointCloud:
    """Denoise one frame and pair every surviving point with its normal."""
    filtered, _ = denoise_frame(frame.points, config)
    normals = estimate_normals(
        filtered,
        frame.viewpoint,
        neighbors=config.normal_neighbors,
        workers=config.normal_workers,
    )
    return OrientedPointCloud(points=filtered, normals=normals)


def accumulate_frames(cloud: MultiFrameCloud,
                      config: ReconstructionConfig) -> Tuple[OrientedPointCloud, AccumulationReport]:
    """
    Build one oriented cloud spanning all frames, in frame order.

    Args:
        cloud: The multi-frame input
        config: Pipeline configuration

    Returns:
        tuple: (combined OrientedPointCloud, AccumulationReport)
    """
    logger.info(f"Constructing oriented cloud from {cloud.num_frames} frame(s), {cloud.num_points} points")
    report = AccumulationReport(declared_points=cloud.num_points)

    sub_clouds = []
    buffer_cursor = 0
    combined_cursor = 0
    for index, frame, length in iter_frames(cloud):
        if len(frame) < length:
            logger.warning(
                f"Frame {index} declares {length} points but only {len(frame)} remain in the buffer"
            )
            report.truncated_frames.append(index)
        if finite_mask(frame.points).sum() < 2:
            report.degenerate_frames.append(index)

        oriented = orient_frame(frame, config)
        sub_clouds.append(oriented)

        logger.debug(
            f"Frame {index}: {len(oriented)} of {len(frame)} points kept, "
            f"combined range [{combined_cursor}, {combined_cursor + len(oriented)})"
        )
        report.original_lengths.append(length)
        report.surviving_counts.append(len(oriented))
        buffer_cursor += len(frame)
        combined_cursor += len(oriented)

    report.consumed_points = buffer_cursor
    combined = OrientedPointCloud.concatenate(
        sub_clouds, frame_lengths=cloud.frame_lengths, viewpoints=cloud.viewpoints
    )

    logger.info(
        f"Num points = {cloud.num_points}, consumed points = {buffer_cursor}, "
        f"combined oriented points = {combined_cursor}"
    )
    if report.mismatch:
        message = report.summary()
        logger.warning(f"Accumulation mismatch: {message}")
        warnings.warn(message, AccumulationMismatchWarning, stacklevel=2)

    return combined, report
