"""
Reconstruction Data Types

Containers passed between the reconstruction stages. Points, normals and
viewpoints are stored as float64 numpy arrays of shape (N, 3); faces as int64
arrays of shape (M, 3).
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import InvalidInputError


def as_points(values, name="points") -> np.ndarray:
    """Coerce a sequence of xyz triples into a float64 (N, 3) array."""
    array = np.asarray(values, dtype=np.float64)
    if array.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    if array.ndim != 2 or array.shape[1] != 3:
        raise InvalidInputError(f"{name} must have shape (N, 3), got {array.shape}")
    return array


def finite_mask(values) -> np.ndarray:
    """True for the rows of an (N, 3) array whose coordinates are all finite."""
    return np.isfinite(values).all(axis=1)


def as_point(value, name="viewpoint") -> np.ndarray:
    array = np.asarray(value, dtype=np.float64)
    if array.shape != (3,):
        raise InvalidInputError(f"{name} must be a single xyz triple, got shape {array.shape}")
    return array


def as_count(value, name) -> int:
    """Validate a non-negative whole-number count, rejecting fractional values."""
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidInputError(f"{name} must be an integer count, got {value!r}")
    if count != value:
        raise InvalidInputError(f"{name} must be a whole number, got {value!r}")
    if count < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {value!r}")
    return count


@dataclass(frozen=True)
class Frame:
    """One capture: a contiguous block of points and the sensor origin it was taken from."""

    points: np.ndarray
    viewpoint: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "points", as_points(self.points))
        object.__setattr__(self, "viewpoint", as_point(self.viewpoint))

    def __len__(self):
        return len(self.points)


@dataclass(frozen=True)
class MultiFrameCloud:
    """
    Several frames sharing one flat point buffer.

    The point at global index k belongs to the frame found by prefix-summing
    ``frame_lengths``. The sum of the lengths is expected to equal
    ``num_points``; a divergence is tolerated here and reported by the
    accumulator.
    """

    num_points: int
    points: np.ndarray
    frame_lengths: Tuple[int, ...]
    viewpoints: np.ndarray

    def __post_init__(self):
        num_points = as_count(self.num_points, "num_points")
        points = as_points(self.points)
        if len(points) != num_points:
            raise InvalidInputError(
                f"Point buffer holds {len(points)} points but num_points declares {self.num_points}"
            )
        lengths = tuple(
            as_count(length, f"Length of frame {index}") for index, length in enumerate(self.frame_lengths)
        )
        viewpoints = as_points(self.viewpoints, name="viewpoints")
        if len(viewpoints) != len(lengths):
            raise InvalidInputError(
                f"Got {len(lengths)} frame lengths but {len(viewpoints)} viewpoints"
            )
        object.__setattr__(self, "num_points", num_points)
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "frame_lengths", lengths)
        object.__setattr__(self, "viewpoints", viewpoints)

    @classmethod
    def from_frames(cls, frames: Sequence[Frame]) -> "MultiFrameCloud":
        """Build the flat representation from a list of frames."""
        if frames:
            points = np.concatenate([frame.points for frame in frames], axis=0)
            viewpoints = np.stack([frame.viewpoint for frame in frames])
        else:
            points = np.empty((0, 3))
            viewpoints = np.empty((0, 3))
        return cls(
            num_points=len(points),
            points=points,
            frame_lengths=tuple(len(frame) for frame in frames),
            viewpoints=viewpoints,
        )

    @property
    def num_frames(self) -> int:
        return len(self.frame_lengths)

    @property
    def declared_length_total(self) -> int:
        return sum(self.frame_lengths)


@dataclass
class OrientedPointCloud:
    """
    Positions paired one-to-one with unit normals.

    ``frame_lengths`` and ``viewpoints`` are carried through unchanged from the
    input cloud for downstream bookkeeping; they describe the original frames,
    not the filtered element counts.
    """

    points: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    normals: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    frame_lengths: Tuple[int, ...] = ()
    viewpoints: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))

    def __post_init__(self):
        self.points = as_points(self.points)
        self.normals = as_points(self.normals, name="normals")
        self.viewpoints = as_points(self.viewpoints, name="viewpoints")
        self.frame_lengths = tuple(int(length) for length in self.frame_lengths)
        if len(self.points) != len(self.normals):
            raise InvalidInputError(
                f"Got {len(self.points)} points but {len(self.normals)} normals"
            )

    def __len__(self):
        return len(self.points)

    def is_empty(self) -> bool:
        return len(self.points) == 0

    def select(self, mask) -> "OrientedPointCloud":
        """Return a new cloud with the elements picked by a boolean mask or index array."""
        return OrientedPointCloud(
            points=self.points[mask],
            normals=self.normals[mask],
            frame_lengths=self.frame_lengths,
            viewpoints=self.viewpoints,
        )

    @classmethod
    def concatenate(cls, clouds: Sequence["OrientedPointCloud"],
                    frame_lengths: Sequence[int] = (), viewpoints=None) -> "OrientedPointCloud":
        clouds = list(clouds)
        if clouds:
            points = np.concatenate([cloud.points for cloud in clouds], axis=0)
            normals = np.concatenate([cloud.normals for cloud in clouds], axis=0)
        else:
            points = np.empty((0, 3))
            normals = np.empty((0, 3))
        return cls(
            points=points,
            normals=normals,
            frame_lengths=tuple(frame_lengths),
            viewpoints=np.empty((0, 3)) if viewpoints is None else viewpoints,
        )


@dataclass
class Mesh:
    """Triangle mesh: vertex positions plus faces indexing into them."""

    vertices: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    faces: np.ndarray = field(default_factory=lambda: np.empty((0, 3), dtype=np.int64))

    def __post_init__(self):
        self.vertices = as_points(self.vertices, name="vertices")
        faces = np.asarray(self.faces, dtype=np.int64)
        if faces.size == 0:
            faces = np.empty((0, 3), dtype=np.int64)
        elif faces.ndim != 2 or faces.shape[1] != 3:
            raise InvalidInputError(f"faces must have shape (M, 3), got {faces.shape}")
        self.faces = faces

    @classmethod
    def empty(cls) -> "Mesh":
        return cls()

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_faces(self) -> int:
        return len(self.faces)

    def is_empty(self) -> bool:
        return self.num_vertices == 0 and self.num_faces == 0

    def is_valid(self) -> bool:
        """True when every face index points into the vertex list."""
        if self.num_faces == 0:
            return True
        return bool(self.faces.min() >= 0 and self.faces.max() < self.num_vertices)


@dataclass
class AccumulationReport:
    """Bookkeeping produced while merging frames into one oriented cloud."""

    declared_points: int
    consumed_points: int = 0
    original_lengths: List[int] = field(default_factory=list)
    surviving_counts: List[int] = field(default_factory=list)
    degenerate_frames: List[int] = field(default_factory=list)
    truncated_frames: List[int] = field(default_factory=list)

    @property
    def combined_points(self) -> int:
        return sum(self.surviving_counts)

    @property
    def removed_points(self) -> int:
        return self.consumed_points - self.combined_points

    @property
    def mismatch(self) -> bool:
        return self.consumed_points != self.declared_points or bool(self.truncated_frames)

    def summary(self) -> Optional[str]:
        if not self.mismatch:
            return None
        return (
            f"Consumed {self.consumed_points} of {self.declared_points} declared points "
            f"(truncated frames: {self.truncated_frames or 'none'})"
        )
