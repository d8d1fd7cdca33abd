"""
Reference curve provider: a cubic Hermite spline.

``HermiteCurve`` implements the :class:`~.curve_sampler.CurveProvider`
protocol so the services can be used (and tested) without a host
application.  Each control point stores a location, arrive and leave
tangents, an up vector and a 2D cross-section scale.  Segments are
cubic Hermite patches evaluated on ``t ∈ [0, 1]`` with the leave
tangent of the first point and the arrive tangent of the second, so
tangent magnitudes are in curve units.

Arc length is tabulated per segment with ``numpy`` and inverted with
``np.interp``.  The table is rebuilt lazily after any edit, or eagerly
by :meth:`HermiteCurve.update`.

Roll is not stored separately: as in most engines it is a component of
the point rotation, derived from the up vector relative to the
zero-roll up (world Z projected onto the tangent plane).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np

from .roll_solver import compute_roll
from .vectors import (
    WORLD_X,
    WORLD_Z,
    NORMALIZE_EPS,
    as_vector,
    orthonormal_up,
    rotate,
    safe_normalize,
)

logger = logging.getLogger(__name__)

DEFAULT_SAMPLES_PER_SEGMENT: int = 64


@dataclass
class CurvePoint:
    """Snapshot of one control point."""

    index: int
    position: np.ndarray
    arrive_tangent: np.ndarray
    leave_tangent: np.ndarray
    up_vector: np.ndarray
    roll: float
    scale: np.ndarray


def _hermite_basis(t: np.ndarray):
    t2 = t * t
    t3 = t2 * t
    return (2 * t3 - 3 * t2 + 1, t3 - 2 * t2 + t, -2 * t3 + 3 * t2, t3 - t2)


def _hermite_basis_derivative(t: np.ndarray):
    t2 = t * t
    return (6 * t2 - 6 * t, 3 * t2 - 4 * t + 1, -6 * t2 + 6 * t, 3 * t2 - 2 * t)


def catmull_rom_tangents(positions: np.ndarray, closed: bool) -> np.ndarray:
    """Classic Catmull–Rom tangents, ``0.5 * (next - previous)``.

    Open endpoints use the one-sided difference to their only neighbour.
    """
    n = len(positions)
    tangents = np.zeros((n, 3))
    if n < 2:
        return tangents
    for i in range(n):
        if closed:
            tangents[i] = 0.5 * (positions[(i + 1) % n] - positions[(i - 1) % n])
        elif i == 0:
            tangents[i] = positions[1] - positions[0]
        elif i == n - 1:
            tangents[i] = positions[-1] - positions[-2]
        else:
            tangents[i] = 0.5 * (positions[i + 1] - positions[i - 1])
    return tangents


class HermiteCurve:
    """In-memory spline with arc-length queries."""

    def __init__(
        self,
        positions: Iterable[Sequence[float]],
        closed: bool = False,
        arrive_tangents: Optional[Iterable[Sequence[float]]] = None,
        leave_tangents: Optional[Iterable[Sequence[float]]] = None,
        up_vectors: Optional[Iterable[Sequence[float]]] = None,
        scales: Optional[Iterable[Sequence[float]]] = None,
        samples_per_segment: int = DEFAULT_SAMPLES_PER_SEGMENT,
    ) -> None:
        self._positions = np.array(list(positions), dtype=np.float64).reshape(-1, 3)
        n = len(self._positions)
        self._closed = bool(closed)
        if arrive_tangents is None:
            self._arrive = np.zeros((n, 3))
        else:
            self._arrive = np.array(list(arrive_tangents), dtype=np.float64).reshape(n, 3)
        if leave_tangents is None:
            self._leave = self._arrive.copy()
        else:
            self._leave = np.array(list(leave_tangents), dtype=np.float64).reshape(n, 3)
        if up_vectors is None:
            self._ups = np.tile(WORLD_Z, (n, 1))
        else:
            self._ups = np.array(list(up_vectors), dtype=np.float64).reshape(n, 3)
        if scales is None:
            self._scales = np.ones((n, 2))
        else:
            self._scales = np.array(list(scales), dtype=np.float64).reshape(n, 2)
        self._samples = max(2, int(samples_per_segment))
        self._distances = np.zeros(1)
        self._params = np.zeros(1)
        self._point_distances: List[float] = [0.0] * n
        self._dirty = True

    @classmethod
    def from_points(
        cls,
        positions: Iterable[Sequence[float]],
        closed: bool = False,
        **kwargs,
    ) -> "HermiteCurve":
        """Build a curve through ``positions`` with Catmull–Rom tangents."""
        pts = np.array(list(positions), dtype=np.float64).reshape(-1, 3)
        tangents = catmull_rom_tangents(pts, closed)
        return cls(pts, closed=closed, arrive_tangents=tangents, leave_tangents=tangents, **kwargs)

    # ------------------------------------------------------------------
    # Arc-length table

    def _segment_count(self) -> int:
        n = len(self._positions)
        if n < 2:
            return 0
        return n if self._closed else n - 1

    def _segment_controls(self, seg: int):
        j = (seg + 1) % len(self._positions)
        return self._positions[seg], self._leave[seg], self._positions[j], self._arrive[j]

    def _rebuild_table(self) -> None:
        nseg = self._segment_count()
        n = len(self._positions)
        if nseg == 0:
            self._distances = np.zeros(1)
            self._params = np.zeros(1)
            self._point_distances = [0.0] * n
            self._dirty = False
            return
        t = np.linspace(0.0, 1.0, self._samples + 1)
        h00, h10, h01, h11 = _hermite_basis(t)
        distances = [np.zeros(1)]
        params = [np.zeros(1)]
        point_distances = [0.0]
        offset = 0.0
        for seg in range(nseg):
            p0, m0, p1, m1 = self._segment_controls(seg)
            pts = (
                h00[:, None] * p0 + h10[:, None] * m0 + h01[:, None] * p1 + h11[:, None] * m1
            )
            steps = np.linalg.norm(np.diff(pts, axis=0), axis=1)
            cumulative = offset + np.cumsum(steps)
            distances.append(cumulative)
            params.append(seg + t[1:])
            offset = float(cumulative[-1])
            point_distances.append(offset)
        self._distances = np.concatenate(distances)
        self._params = np.concatenate(params)
        # A closed loop ends back on point 0; that distance is not a point.
        self._point_distances = point_distances[:n]
        self._dirty = False

    def _ensure_table(self) -> None:
        if self._dirty:
            self._rebuild_table()

    def _locate(self, distance: float):
        """Map an arc length onto ``(segment, t)``."""
        self._ensure_table()
        nseg = self._segment_count()
        d = min(max(float(distance), 0.0), float(self._distances[-1]))
        u = float(np.interp(d, self._distances, self._params))
        seg = min(int(math.floor(u)), nseg - 1)
        return seg, min(max(u - seg, 0.0), 1.0)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._positions):
            raise IndexError(f"curve point index {index} out of range")

    # ------------------------------------------------------------------
    # Curve-wide queries

    def num_points(self) -> int:
        return len(self._positions)

    def is_closed_loop(self) -> bool:
        return self._closed

    def set_closed_loop(self, closed: bool, update: bool = True) -> None:
        self._closed = bool(closed)
        self._dirty = True
        if update:
            self.update()

    def get_length(self) -> float:
        self._ensure_table()
        return float(self._distances[-1])

    def update(self) -> None:
        """Finalize a batch of edits by rebuilding the arc-length table."""
        self._rebuild_table()
        logger.debug(
            "HermiteCurve updated: points=%d closed=%s length=%.4f",
            len(self._positions),
            self._closed,
            self.get_length(),
        )

    # ------------------------------------------------------------------
    # Distance queries

    def location_at_distance(self, distance: float) -> np.ndarray:
        if self._segment_count() == 0:
            return self._positions[0].copy() if len(self._positions) else np.zeros(3)
        seg, t = self._locate(distance)
        p0, m0, p1, m1 = self._segment_controls(seg)
        h00, h10, h01, h11 = _hermite_basis(np.float64(t))
        return h00 * p0 + h10 * m0 + h01 * p1 + h11 * m1

    def tangent_at_distance(self, distance: float) -> np.ndarray:
        """Derivative of the curve; the chord when the derivative vanishes."""
        if self._segment_count() == 0:
            return np.zeros(3)
        seg, t = self._locate(distance)
        p0, m0, p1, m1 = self._segment_controls(seg)
        d00, d10, d01, d11 = _hermite_basis_derivative(np.float64(t))
        tangent = d00 * p0 + d10 * m0 + d01 * p1 + d11 * m1
        if float(np.linalg.norm(tangent)) < NORMALIZE_EPS:
            return p1 - p0
        return tangent

    def up_vector_at_distance(self, distance: float) -> np.ndarray:
        if self._segment_count() == 0:
            return WORLD_Z.copy()
        seg, t = self._locate(distance)
        j = (seg + 1) % len(self._positions)
        up = (1.0 - t) * self._ups[seg] + t * self._ups[j]
        if float(np.linalg.norm(up)) < NORMALIZE_EPS:
            up = self._ups[seg]
        return orthonormal_up(self.tangent_at_distance(distance), up)

    def roll_at_distance(self, distance: float) -> float:
        return -compute_roll(
            self.tangent_at_distance(distance), self.up_vector_at_distance(distance), WORLD_Z
        )

    def scale_at_distance(self, distance: float) -> np.ndarray:
        if self._segment_count() == 0:
            return self._scales[0].copy() if len(self._scales) else np.ones(2)
        seg, t = self._locate(distance)
        j = (seg + 1) % len(self._positions)
        return (1.0 - t) * self._scales[seg] + t * self._scales[j]

    # ------------------------------------------------------------------
    # Point queries

    def distance_at_point(self, index: int) -> float:
        self._check_index(index)
        self._ensure_table()
        return self._point_distances[index]

    def location_at_point(self, index: int) -> np.ndarray:
        self._check_index(index)
        return self._positions[index].copy()

    def tangent_at_point(self, index: int) -> np.ndarray:
        self._check_index(index)
        return self._leave[index].copy()

    def arrive_tangent_at_point(self, index: int) -> np.ndarray:
        self._check_index(index)
        return self._arrive[index].copy()

    def _point_direction(self, index: int) -> np.ndarray:
        direction = safe_normalize(self._leave[index])
        if not direction.any():
            direction = safe_normalize(self._arrive[index])
        if not direction.any() and len(self._positions) > 1:
            n = len(self._positions)
            if self._closed or index < n - 1:
                direction = safe_normalize(self._positions[(index + 1) % n] - self._positions[index])
            else:
                direction = safe_normalize(self._positions[index] - self._positions[index - 1])
        return direction

    def up_vector_at_point(self, index: int) -> np.ndarray:
        self._check_index(index)
        return orthonormal_up(self._point_direction(index), self._ups[index])

    def rotation_at_point(self, index: int) -> np.ndarray:
        """Rotation matrix with columns (forward, right, up)."""
        self._check_index(index)
        forward = self._point_direction(index)
        if not forward.any():
            forward = WORLD_X.copy()
        up = orthonormal_up(forward, self._ups[index])
        right = np.cross(up, forward)
        return np.column_stack([forward, right, up])

    def roll_at_point(self, index: int) -> float:
        self._check_index(index)
        return -compute_roll(self._point_direction(index), self.up_vector_at_point(index), WORLD_Z)

    def scale_at_point(self, index: int) -> np.ndarray:
        self._check_index(index)
        return self._scales[index].copy()

    def point(self, index: int) -> CurvePoint:
        self._check_index(index)
        return CurvePoint(
            index=index,
            position=self.location_at_point(index),
            arrive_tangent=self.arrive_tangent_at_point(index),
            leave_tangent=self.tangent_at_point(index),
            up_vector=self.up_vector_at_point(index),
            roll=self.roll_at_point(index),
            scale=self.scale_at_point(index),
        )

    # ------------------------------------------------------------------
    # Edits

    def set_tangents_at_point(
        self, index: int, arrive: np.ndarray, leave: np.ndarray, update: bool = False
    ) -> None:
        self._check_index(index)
        self._arrive[index] = as_vector(arrive)
        self._leave[index] = as_vector(leave)
        self._dirty = True
        if update:
            self.update()

    def set_up_vector_at_point(self, index: int, up: np.ndarray, update: bool = False) -> None:
        self._check_index(index)
        up = safe_normalize(up)
        if up.any():
            self._ups[index] = up
        if update:
            self.update()

    def set_roll_at_point(self, index: int, degrees: float, update: bool = False) -> None:
        """Rotate the point's zero-roll up by ``degrees`` about its tangent."""
        self._check_index(index)
        forward = self._point_direction(index)
        base = orthonormal_up(forward, WORLD_Z)
        self._ups[index] = rotate(base, forward, math.radians(degrees))
        if update:
            self.update()

    def set_scale_at_point(self, index: int, scale: Sequence[float], update: bool = False) -> None:
        self._check_index(index)
        self._scales[index] = np.asarray(scale, dtype=np.float64).reshape(2)
        if update:
            self.update()

    def set_location_at_point(self, index: int, location: Sequence[float], update: bool = True) -> None:
        self._check_index(index)
        self._positions[index] = as_vector(location)
        self._dirty = True
        if update:
            self.update()
