"""
Utility functions for orientation processing.

This module provides:
    - quat_utils: Quaternion math utilities (w, x, y, z order)
"""

from .quat_utils import (
    IDENTITY_QUAT,
    quat_mul,
    quat_conj,
    quat_norm,
    quat_normalize,
    quat_mean,
    quat_relative,
    quat_to_euler,
)

__all__ = [
    "IDENTITY_QUAT",
    "quat_mul",
    "quat_conj",
    "quat_norm",
    "quat_normalize",
    "quat_mean",
    "quat_relative",
    "quat_to_euler",
]
