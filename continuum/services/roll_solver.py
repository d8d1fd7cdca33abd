"""
Roll decomposition for mesh segments.

A segment placed along the curve has a default orientation derived from
its tangent and a reference up vector.  ``compute_roll`` returns the
signed angle about the tangent that turns that default orientation
into the desired normal, so that consecutive tiles compose smoothly.
"""

from __future__ import annotations

import math

import numpy as np

from .vectors import as_vector, project_onto_plane, safe_normalize


def default_up(tangent: np.ndarray, reference_up: np.ndarray) -> np.ndarray:
    """Return the zero-roll up: ``reference_up`` projected ⟂ ``tangent``."""
    t = safe_normalize(tangent)
    return safe_normalize(project_onto_plane(reference_up, t))


def compute_roll(tangent: np.ndarray, normal: np.ndarray, reference_up: np.ndarray) -> float:
    """Signed roll in degrees turning the default frame onto ``normal``.

    Args:
        tangent: Direction of the curve; need not be unit length.
        normal: Desired up vector of the segment.
        reference_up: Up vector a zero-roll segment would use.

    Returns:
        The roll angle in degrees.  Degenerate inputs (zero tangent,
        reference parallel to the tangent) give ``0.0``.
    """
    t = safe_normalize(tangent)
    up = default_up(t, reference_up)
    if not t.any() or not up.any():
        return 0.0
    binormal = np.cross(t, up)
    n = as_vector(normal)
    cos_angle = float(np.dot(up, n))
    sin_angle = float(np.dot(binormal, n))
    if cos_angle == 0.0 and sin_angle == 0.0:
        return 0.0
    return -math.degrees(math.atan2(sin_angle, cos_angle))
