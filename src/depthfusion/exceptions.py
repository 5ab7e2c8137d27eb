"""
Exceptions Module

Error taxonomy shared by the configuration layer and the reconstruction stages.
Degenerate frames and accumulation mismatches are recoverable: they are logged
(mismatches also emit a warning) rather than raised.
"""


class ReconstructionError(Exception):
    """Base class for every error raised by depthfusion."""


class InvalidConfigurationError(ReconstructionError, ValueError):
    """A tunable has a nonsensical value."""

    def __init__(self, parameter, value, reason):
        self.parameter = parameter
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid configuration for '{parameter}' ({value!r}): {reason}")


class InvalidInputError(ReconstructionError, ValueError):
    """The input cloud is structurally invalid (wrong shapes or negative counts)."""


class SurfaceReconstructionError(ReconstructionError):
    """The implicit-surface solve cannot produce a mesh from its input."""


class AccumulationMismatchWarning(UserWarning):
    """Consumed point count diverges from the declared total of the input cloud."""
