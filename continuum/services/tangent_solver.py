"""
Linear-scaled tangent computation for curve control points.

Every point gets an incoming (arrive) and outgoing (leave) tangent.
Interior points of an open curve, and every point of a closed curve,
use a single unified direction ``normalize(next - previous)`` so the
curve is C1 through the point; the incoming and outgoing magnitudes are
the distances to the previous and next point.  The open ends only have
one neighbour: the first point has no incoming tangent and the last
point has no outgoing tangent.

All tangents are multiplied by ``tangent_scale``: ``0.0`` collapses the
curve to straight spans between points, ``1.0`` gives the smooth
result.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np

from .curve_sampler import CurveProvider, has_enough_points, point_locations
from .vectors import safe_normalize

logger = logging.getLogger(__name__)

TangentPair = Tuple[np.ndarray, np.ndarray]


def compute_tangents(positions: np.ndarray, closed: bool, tangent_scale: float) -> List[TangentPair]:
    """Compute ``(incoming, outgoing)`` tangents for each position.

    Args:
        positions: ``(n, 3)`` array of control point locations.
        closed: Whether neighbours wrap around.
        tangent_scale: Factor applied to every tangent.

    Returns:
        One ``(incoming, outgoing)`` pair per point; empty when fewer
        than two points are given.
    """
    pts = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    n = len(pts)
    if n < 2:
        return []
    pairs: List[TangentPair] = []
    for i in range(n):
        current = pts[i]
        if closed:
            previous = pts[(i - 1) % n]
            nxt = pts[(i + 1) % n]
        else:
            # The missing neighbour at an open end is the point itself.
            previous = pts[i - 1] if i > 0 else current
            nxt = pts[i + 1] if i < n - 1 else current

        incoming_length = float(np.linalg.norm(current - previous))
        outgoing_length = float(np.linalg.norm(nxt - current))

        incoming = np.zeros(3)
        outgoing = np.zeros(3)
        if closed or 0 < i < n - 1:
            direction = safe_normalize(nxt - previous)
            incoming = direction * incoming_length * tangent_scale
            outgoing = direction * outgoing_length * tangent_scale
        elif i == 0:
            outgoing = safe_normalize(nxt - current) * outgoing_length * tangent_scale
        else:
            incoming = safe_normalize(current - previous) * incoming_length * tangent_scale
        pairs.append((incoming, outgoing))
    return pairs


def apply_tangents(curve: CurveProvider, tangent_scale: float) -> List[TangentPair]:
    """Compute tangents for ``curve`` and write them back to its points.

    The curve's ``update`` is left to the caller so several passes can
    be batched.  Curves with fewer than two points are left untouched.
    """
    if not has_enough_points(curve):
        logger.debug("apply_tangents: fewer than 2 points, skipping")
        return []
    pairs = compute_tangents(point_locations(curve), curve.is_closed_loop(), tangent_scale)
    for index, (incoming, outgoing) in enumerate(pairs):
        curve.set_tangents_at_point(index, incoming, outgoing, update=False)
    logger.debug(
        "apply_tangents: wrote %d tangent pairs (closed=%s scale=%.3f)",
        len(pairs),
        curve.is_closed_loop(),
        tangent_scale,
    )
    return pairs
