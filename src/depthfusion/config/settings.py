"""
Settings Module

This module provides the tunables of the reconstruction pipeline: defaults,
quality presets, environment-variable overrides, and the validated
configuration value handed to every stage.
"""

import numbers
import os
from dataclasses import dataclass, field, fields, asdict
from typing import Dict, Any, Optional

from ..exceptions import InvalidConfigurationError

# Prefix for environment variable overrides (DEPTHFUSION_OCTREE_DEPTH, ...)
ENV_PREFIX = "DEPTHFUSION_"

NEIGHBOR_POLICIES = ("all", "fixed")
THRESHOLD_POLICIES = ("scaled", "fixed")
MESH_METHODS = ("screened", "open3d")

# Default configuration values
DEFAULT_CONFIG = {
    "frame_neighbor_policy": "all",
    "frame_neighbors": 10,
    "frame_threshold_policy": "scaled",
    "frame_threshold_scale": 50.0,
    "frame_stddev_multiplier": 1.0,
    "normal_neighbors": 10,
    "normal_workers": None,  # None means use all available cores
    "global_neighbors": 50,
    "global_stddev_multiplier": 3.0,
    "octree_depth": 5,
    "point_weight": 4.0,
    "samples_per_node": 1.5,
    "scale": 1.1,
    "mesh_method": "screened",
    "quality_preset": "medium",
}

# Quality presets with their corresponding parameter values
QUALITY_PRESETS = {
    "low": {
        "octree_depth": 4,
        "global_neighbors": 30,
        "samples_per_node": 2.0,
    },
    "medium": {
        "octree_depth": 5,
        "global_neighbors": 50,
        "samples_per_node": 1.5,
    },
    "high": {
        "octree_depth": 7,
        "global_neighbors": 50,
        "samples_per_node": 1.0,
    }
}


def get_config_value(key: str, default: Any = None) -> Any:
    """
    Get a configuration value from the environment or default config.

    Args:
        key: The configuration key to look up (prefixed and uppercased for env vars)
        default: Optional default value if not found

    Returns:
        The configuration value (environment values are returned as strings)
    """
    env_key = ENV_PREFIX + key.upper()
    env_value = os.environ.get(env_key)

    if env_value is not None:
        return env_value

    return DEFAULT_CONFIG.get(key, default)


def get_quality_preset(preset_name: Optional[str] = None) -> Dict[str, Any]:
    """
    Get the parameters for a quality preset.

    Args:
        preset_name: The name of the preset (low, medium, high)
                    If None, uses the value from config

    Returns:
        A dictionary of quality parameters
    """
    if preset_name is None:
        preset_name = get_config_value("quality_preset")

    # Default to medium if the preset is not found
    if preset_name not in QUALITY_PRESETS:
        preset_name = "medium"

    return QUALITY_PRESETS[preset_name]


def default_worker_count() -> int:
    """Number of workers used for normal estimation when none is configured."""
    return os.cpu_count() or 1


@dataclass(frozen=True)
class ReconstructionConfig:
    """
    Tunables for one reconstruction pipeline.

    Instances are immutable and validated on construction, so a pipeline never
    starts processing with a nonsensical parameter.
    """

    frame_neighbor_policy: str = DEFAULT_CONFIG["frame_neighbor_policy"]
    frame_neighbors: int = DEFAULT_CONFIG["frame_neighbors"]
    frame_threshold_policy: str = DEFAULT_CONFIG["frame_threshold_policy"]
    frame_threshold_scale: float = DEFAULT_CONFIG["frame_threshold_scale"]
    frame_stddev_multiplier: float = DEFAULT_CONFIG["frame_stddev_multiplier"]
    normal_neighbors: int = DEFAULT_CONFIG["normal_neighbors"]
    normal_workers: int = field(default_factory=default_worker_count)
    global_neighbors: int = DEFAULT_CONFIG["global_neighbors"]
    global_stddev_multiplier: float = DEFAULT_CONFIG["global_stddev_multiplier"]
    octree_depth: int = DEFAULT_CONFIG["octree_depth"]
    point_weight: float = DEFAULT_CONFIG["point_weight"]
    samples_per_node: float = DEFAULT_CONFIG["samples_per_node"]
    scale: float = DEFAULT_CONFIG["scale"]
    mesh_method: str = DEFAULT_CONFIG["mesh_method"]

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise InvalidConfigurationError naming the first invalid parameter."""
        if self.frame_neighbor_policy not in NEIGHBOR_POLICIES:
            raise InvalidConfigurationError(
                "frame_neighbor_policy", self.frame_neighbor_policy,
                f"must be one of {NEIGHBOR_POLICIES}")
        if self.frame_threshold_policy not in THRESHOLD_POLICIES:
            raise InvalidConfigurationError(
                "frame_threshold_policy", self.frame_threshold_policy,
                f"must be one of {THRESHOLD_POLICIES}")
        if self.mesh_method not in MESH_METHODS:
            raise InvalidConfigurationError(
                "mesh_method", self.mesh_method, f"must be one of {MESH_METHODS}")

        for name in ("frame_neighbors", "normal_neighbors", "normal_workers",
                     "global_neighbors", "octree_depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
                raise InvalidConfigurationError(name, value, "must be a positive integer")

        for name in ("frame_threshold_scale", "frame_stddev_multiplier",
                     "global_stddev_multiplier", "point_weight", "samples_per_node"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real) or not value > 0:
                raise InvalidConfigurationError(name, value, "must be a positive number")

        if isinstance(self.scale, bool) or not isinstance(self.scale, numbers.Real) or not self.scale >= 1.0:
            raise InvalidConfigurationError("scale", self.scale, "must be a number >= 1.0")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ReconstructionConfig":
        """
        Build a config from a dictionary, ignoring keys that are not tunables.

        String values (as read from the environment) are converted to the type
        of the field's default.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            if key not in known or value is None:
                continue
            kwargs[key] = _coerce(key, value)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def replace(self, **overrides) -> "ReconstructionConfig":
        values = self.to_dict()
        values.update(overrides)
        return ReconstructionConfig.from_dict(values)


_INT_KEYS = {"frame_neighbors", "normal_neighbors", "normal_workers",
             "global_neighbors", "octree_depth"}
_FLOAT_KEYS = {"frame_threshold_scale", "frame_stddev_multiplier",
               "global_stddev_multiplier", "point_weight", "samples_per_node", "scale"}


def _coerce(key, value):
    if not isinstance(value, str):
        return value
    try:
        if key in _INT_KEYS:
            return int(value)
        if key in _FLOAT_KEYS:
            return float(value)
    except ValueError:
        raise InvalidConfigurationError(key, value, "could not be parsed as a number")
    return value


def load_config(preset: Optional[str] = None, **overrides) -> ReconstructionConfig:
    """
    Resolve the effective configuration.

    Precedence, lowest first: defaults, quality preset, environment variables,
    explicit keyword overrides.

    Args:
        preset: Quality preset name (low, medium, high); None reads it from config
        **overrides: Tunable values that win over everything else

    Returns:
        A validated ReconstructionConfig
    """
    values = {key: get_config_value(key) for key in DEFAULT_CONFIG}
    preset_values = get_quality_preset(preset)
    for key, value in preset_values.items():
        # Environment overrides still beat the preset
        if os.environ.get(ENV_PREFIX + key.upper()) is None:
            values[key] = value
    values.update(overrides)
    return ReconstructionConfig.from_dict(values)
