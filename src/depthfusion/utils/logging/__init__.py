"""
Logging Module

This module provides logging utilities for the depthfusion reconstruction pipeline.
"""

from .logger import get_logger, setup_logging, get_timestamped_log_file

__all__ = ['get_logger', 'setup_logging', 'get_timestamped_log_file']
