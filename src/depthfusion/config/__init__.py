"""
Configuration Module

This module handles configuration management for the depthfusion reconstruction pipeline.
"""

from .settings import (
    ReconstructionConfig,
    DEFAULT_CONFIG,
    QUALITY_PRESETS,
    get_config_value,
    get_quality_preset,
    load_config
)

__all__ = [
    'ReconstructionConfig',
    'DEFAULT_CONFIG',
    'QUALITY_PRESETS',
    'get_config_value',
    'get_quality_preset',
    'load_config'
]
