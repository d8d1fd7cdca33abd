"""
Small vector helpers shared by the curve services.

Everything here operates on ``numpy`` arrays of shape ``(3,)``.  The
helpers never produce NaN: normalising a vector shorter than
:data:`NORMALIZE_EPS` yields the zero vector, and the rotation helpers
take explicit branches for parallel and anti-parallel inputs instead
of relying on a near-zero cross product.
"""

from __future__ import annotations

import math
from typing import Iterable, Tuple

import numpy as np

# Vectors shorter than this are treated as zero when normalising.
NORMALIZE_EPS: float = 1e-8

# Dot products beyond ±(1 - PARALLEL_EPS) count as (anti-)parallel.
PARALLEL_EPS: float = 1e-6

WORLD_X = np.array([1.0, 0.0, 0.0])
WORLD_Y = np.array([0.0, 1.0, 0.0])
WORLD_Z = np.array([0.0, 0.0, 1.0])


def as_vector(v: Iterable[float]) -> np.ndarray:
    """Return ``v`` as a float64 array of shape ``(3,)``."""
    return np.asarray(v, dtype=np.float64).reshape(3)


def to_tuple(v: np.ndarray) -> Tuple[float, float, float]:
    return (float(v[0]), float(v[1]), float(v[2]))


def safe_normalize(v: np.ndarray) -> np.ndarray:
    """Normalise ``v``, returning the zero vector when it is too short."""
    v = as_vector(v)
    length = float(np.linalg.norm(v))
    if length < NORMALIZE_EPS:
        return np.zeros(3)
    return v / length


def clamp_length(v: np.ndarray, max_length: float) -> np.ndarray:
    """Scale ``v`` down so its magnitude does not exceed ``max_length``."""
    v = as_vector(v)
    length = float(np.linalg.norm(v))
    if length <= max_length or length < NORMALIZE_EPS:
        return v
    return v * (max_length / length)


def project_onto_plane(v: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Remove the component of ``v`` along the unit vector ``normal``."""
    v = as_vector(v)
    return v - normal * float(np.dot(v, normal))


def any_perpendicular(v: np.ndarray) -> np.ndarray:
    """Return a unit vector orthogonal to ``v``.

    The world axis least aligned with ``v`` is projected onto the plane
    perpendicular to ``v``, which keeps the projection well conditioned.
    A zero input yields the world Z axis.
    """
    u = safe_normalize(v)
    if not u.any():
        return WORLD_Z.copy()
    axis = (WORLD_X, WORLD_Y, WORLD_Z)[int(np.argmin(np.abs(u)))]
    return safe_normalize(project_onto_plane(axis, u))


def orthonormal_up(tangent: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """Gram–Schmidt ``reference`` against ``tangent`` into a unit normal.

    Falls back to :func:`any_perpendicular` when ``reference`` is nearly
    parallel to ``tangent`` (or zero).
    """
    t = safe_normalize(tangent)
    if not t.any():
        up = safe_normalize(reference)
        return up if up.any() else WORLD_Z.copy()
    up = safe_normalize(project_onto_plane(reference, t))
    if not up.any():
        return any_perpendicular(t)
    return up


def rotation_matrix(axis: np.ndarray, angle: float) -> np.ndarray:
    """Rodrigues rotation matrix for ``angle`` radians about ``axis``."""
    k = safe_normalize(axis)
    if not k.any() or angle == 0.0:
        return np.eye(3)
    kx, ky, kz = k
    K = np.array([[0.0, -kz, ky], [kz, 0.0, -kx], [-ky, kx, 0.0]])
    return np.eye(3) + math.sin(angle) * K + (1.0 - math.cos(angle)) * (K @ K)


def rotate(v: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotate ``v`` by ``angle`` radians about ``axis``."""
    return rotation_matrix(axis, angle) @ as_vector(v)


def rotation_between(a: np.ndarray, b: np.ndarray) -> Tuple[np.ndarray, float]:
    """Minimal rotation taking direction ``a`` onto direction ``b``.

    Returns:
        A tuple ``(axis, angle)``.  The angle is zero (identity) when the
        directions coincide or either is zero; anti-parallel directions
        rotate by pi about an arbitrary axis perpendicular to ``a``.
    """
    ua = safe_normalize(a)
    ub = safe_normalize(b)
    if not ua.any() or not ub.any():
        return WORLD_Z.copy(), 0.0
    c = float(np.clip(np.dot(ua, ub), -1.0, 1.0))
    if c > 1.0 - PARALLEL_EPS:
        return WORLD_Z.copy(), 0.0
    if c < -1.0 + PARALLEL_EPS:
        return any_perpendicular(ua), math.pi
    axis = safe_normalize(np.cross(ua, ub))
    return axis, math.acos(c)
