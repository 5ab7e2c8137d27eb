"""Shared utilities for the depthfusion package."""
