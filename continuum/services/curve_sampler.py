"""
Read-only queries against an externally owned curve.

The geometry services never touch a curve's storage directly.  They
talk to anything implementing :class:`CurveProvider` through the
helpers below, which clamp distances to ``[0, length]`` and answer
``None`` (or an empty array) when the curve has fewer than two points
rather than indexing out of range.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple

import numpy as np

from .vectors import as_vector, safe_normalize

# Smallest curve or mesh length considered non-degenerate.
EPSILON: float = 1e-4

MIN_POINTS: int = 2


class CurveProvider(Protocol):
    """Operations the host curve must expose.

    Locations, tangents and up vectors are in the curve's local space.
    Tangents at a point are the leave (outgoing) tangent; distances are
    arc lengths from the first point.
    """

    def num_points(self) -> int: ...

    def is_closed_loop(self) -> bool: ...

    def get_length(self) -> float: ...

    def location_at_distance(self, distance: float) -> np.ndarray: ...

    def tangent_at_distance(self, distance: float) -> np.ndarray: ...

    def up_vector_at_distance(self, distance: float) -> np.ndarray: ...

    def roll_at_distance(self, distance: float) -> float: ...

    def scale_at_distance(self, distance: float) -> np.ndarray: ...

    def distance_at_point(self, index: int) -> float: ...

    def location_at_point(self, index: int) -> np.ndarray: ...

    def tangent_at_point(self, index: int) -> np.ndarray: ...

    def up_vector_at_point(self, index: int) -> np.ndarray: ...

    def roll_at_point(self, index: int) -> float: ...

    def scale_at_point(self, index: int) -> np.ndarray: ...

    def rotation_at_point(self, index: int) -> np.ndarray: ...

    def set_tangents_at_point(
        self, index: int, arrive: np.ndarray, leave: np.ndarray, update: bool = False
    ) -> None: ...

    def set_up_vector_at_point(self, index: int, up: np.ndarray, update: bool = False) -> None: ...

    def update(self) -> None: ...


def has_enough_points(curve: CurveProvider) -> bool:
    return curve.num_points() >= MIN_POINTS


def clamp_distance(curve: CurveProvider, distance: float) -> float:
    """Clamp ``distance`` to the valid arc-length range of ``curve``."""
    length = curve.get_length()
    return min(max(float(distance), 0.0), max(length, 0.0))


def location_at(curve: CurveProvider, distance: float) -> Optional[np.ndarray]:
    if not has_enough_points(curve):
        return None
    return as_vector(curve.location_at_distance(clamp_distance(curve, distance)))


def tangent_at(curve: CurveProvider, distance: float) -> Optional[np.ndarray]:
    if not has_enough_points(curve):
        return None
    return as_vector(curve.tangent_at_distance(clamp_distance(curve, distance)))


def unit_tangent_at(curve: CurveProvider, distance: float) -> Optional[np.ndarray]:
    tangent = tangent_at(curve, distance)
    return None if tangent is None else safe_normalize(tangent)


def up_vector_at(curve: CurveProvider, distance: float) -> Optional[np.ndarray]:
    if not has_enough_points(curve):
        return None
    return as_vector(curve.up_vector_at_distance(clamp_distance(curve, distance)))


def roll_at(curve: CurveProvider, distance: float) -> Optional[float]:
    if not has_enough_points(curve):
        return None
    return float(curve.roll_at_distance(clamp_distance(curve, distance)))


def scale_at(curve: CurveProvider, distance: float) -> Optional[np.ndarray]:
    if not has_enough_points(curve):
        return None
    return np.asarray(curve.scale_at_distance(clamp_distance(curve, distance)), dtype=np.float64)


def point_locations(curve: CurveProvider) -> np.ndarray:
    """Return all control point locations as an ``(n, 3)`` array."""
    n = curve.num_points()
    if n == 0:
        return np.zeros((0, 3))
    return np.array([as_vector(curve.location_at_point(i)) for i in range(n)])


def point_distances(curve: CurveProvider) -> List[float]:
    return [float(curve.distance_at_point(i)) for i in range(curve.num_points())]


def curve_summary(curve: CurveProvider) -> Tuple[int, bool, float]:
    """Return ``(point_count, closed, length)`` for logging and planning."""
    return curve.num_points(), curve.is_closed_loop(), float(curve.get_length())
