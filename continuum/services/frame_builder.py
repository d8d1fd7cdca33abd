"""
Orientation frames along a curve.

A :class:`Frame` pairs an arc-length position on the curve with a unit
tangent and a unit normal ("up").  Frames are produced in one of two
mutually exclusive ways, selected by
``ContinuumSettings.use_parallel_transport``:

* **Rotation-derived** – the up vector is taken from the curve's own
  per-point orientation (its Z axis).  The orientation is authored by
  the user, so no drift correction is applied.
* **Parallel transport** – the first normal is seeded from a fixed
  reference up vector and carried along the curve by the minimal
  rotation between consecutive tangents, re-orthogonalised at every
  step.  On closed curves the residual twist between the last and the
  first normal is spread over all frames proportionally to their
  position (a slerp from identity to the full correction), so the loop
  closes without a visible seam.

Per-frame debug output is emitted when the ``CONTINUUM_DEBUG``
environment variable is set.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..models import ContinuumSettings
from .curve_sampler import (
    EPSILON,
    CurveProvider,
    has_enough_points,
    location_at,
    point_distances,
    unit_tangent_at,
    up_vector_at,
)
from .vectors import as_vector, orthonormal_up, rotate, rotation_between, safe_normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Frame:
    """Local basis at one arc-length position along the curve.

    Attributes:
        distance: Arc length from the start of the curve.
        position: Location on the curve (local space).
        tangent: Unit tangent; zero only for a fully degenerate curve.
        normal: Unit normal orthogonal to ``tangent``.
    """

    distance: float
    position: np.ndarray
    tangent: np.ndarray
    normal: np.ndarray


def _debug_enabled() -> bool:
    return bool(os.getenv("CONTINUUM_DEBUG"))


def seed_normal(tangent: np.ndarray, reference_up: np.ndarray) -> np.ndarray:
    """Project ``reference_up`` onto the plane ⟂ ``tangent``.

    When the reference is (nearly) parallel to the tangent a
    perpendicular is picked from the world axis least aligned with the
    tangent instead.
    """
    return orthonormal_up(tangent, as_vector(reference_up))


def transport_normal(
    previous_tangent: np.ndarray,
    tangent: np.ndarray,
    previous_normal: np.ndarray,
) -> np.ndarray:
    """Carry ``previous_normal`` from ``previous_tangent`` to ``tangent``."""
    axis, angle = rotation_between(previous_tangent, tangent)
    provisional = rotate(previous_normal, axis, angle) if angle else as_vector(previous_normal)
    # Re-orthogonalise to remove accumulated drift.
    return orthonormal_up(tangent, provisional)


def close_loop(frames: List[Frame]) -> List[Frame]:
    """Distribute the closing twist of a loop over all frames.

    Each frame is rotated by the fraction of the rotation taking the
    last normal onto the first given by its arc length between the
    first and the last frame, then re-orthogonalised against its own
    tangent.  For equally spaced frames this is ``j / (N - 1)`` for
    frame ``j`` of ``N``.  The first frame is unchanged and the last
    one lands on the first normal.
    """
    if len(frames) < 2:
        return list(frames)
    first = frames[0].normal
    last = frames[-1].normal
    axis, angle = rotation_between(last, first)
    if angle == 0.0:
        return list(frames)
    if angle == math.pi and frames[-1].tangent.any():
        # Both normals are ⟂ the closing tangent; flip about it.
        axis = frames[-1].tangent
    count = len(frames) - 1
    origin = frames[0].distance
    total = frames[-1].distance - origin
    corrected: List[Frame] = []
    for j, frame in enumerate(frames):
        fraction = (frame.distance - origin) / total if total > 0.0 else j / count
        normal = rotate(frame.normal, axis, angle * fraction)
        corrected.append(replace(frame, normal=orthonormal_up(frame.tangent, normal)))
    logger.debug("close_loop: corrected %.6f rad of twist over %d frames", angle, len(frames))
    return corrected


def parallel_transport_frames(
    curve: CurveProvider,
    distances: Iterable[float],
    reference_up: np.ndarray,
    closed: bool = False,
) -> List[Frame]:
    """Parallel-transport a normal through the given arc-length samples.

    Args:
        curve: Curve to sample.
        distances: Increasing arc lengths at which to build frames.
        reference_up: Vector used to seed the first normal.
        closed: Apply closed-loop drift correction.  The last distance
            should then be the curve length so the final frame sits on
            top of the first.

    Returns:
        One frame per distance, or an empty list for a curve with fewer
        than two points.
    """
    if not has_enough_points(curve):
        return []
    frames: List[Frame] = []
    previous_tangent: Optional[np.ndarray] = None
    previous_normal: Optional[np.ndarray] = None
    for distance in distances:
        position = location_at(curve, distance)
        tangent = unit_tangent_at(curve, distance)
        if previous_normal is None:
            normal = seed_normal(tangent, reference_up)
        else:
            if not tangent.any():
                tangent = previous_tangent
            normal = transport_normal(previous_tangent, tangent, previous_normal)
        frames.append(Frame(distance=float(distance), position=position, tangent=tangent, normal=normal))
        previous_tangent, previous_normal = tangent, normal
    if closed:
        frames = close_loop(frames)
    if _debug_enabled():
        for k, frame in enumerate(frames):
            logger.debug(
                "Frame[%d]: d=%.4f pos=%s tangent=%s normal=%s",
                k,
                frame.distance,
                frame.position,
                frame.tangent,
                frame.normal,
            )
    return frames


def sample_transport_frames(
    curve: CurveProvider,
    segment_count: int,
    reference_up: np.ndarray,
) -> List[Frame]:
    """``segment_count + 1`` transported frames at equal arc-length spacing."""
    length = curve.get_length()
    if segment_count < 1 or length <= EPSILON:
        return []
    distances = np.linspace(0.0, length, segment_count + 1)
    return parallel_transport_frames(curve, distances, reference_up, closed=curve.is_closed_loop())


def tile_transport_frames(
    curve: CurveProvider,
    bounds: Sequence[Tuple[float, float]],
    reference_up: np.ndarray,
) -> Dict[float, Frame]:
    """Transported frames at every tile start and end, keyed by distance.

    Overlapping tiles end past the next tile's start, so the frames are
    transported through the merged, sorted set of boundaries.  Closed
    curves also get a sample at the full length for the loop correction.
    """
    closed = curve.is_closed_loop()
    samples = {float(d) for pair in bounds for d in pair}
    if closed:
        samples.add(float(curve.get_length()))
    frames = parallel_transport_frames(curve, sorted(samples), reference_up, closed=closed)
    return {frame.distance: frame for frame in frames}


def rotation_frames(curve: CurveProvider) -> List[Frame]:
    """One frame per control point, taken from the point rotations."""
    if not has_enough_points(curve):
        return []
    frames: List[Frame] = []
    for index in range(curve.num_points()):
        rotation = np.asarray(curve.rotation_at_point(index), dtype=np.float64)
        frames.append(
            Frame(
                distance=float(curve.distance_at_point(index)),
                position=as_vector(curve.location_at_point(index)),
                tangent=safe_normalize(rotation[:, 0]),
                normal=safe_normalize(rotation[:, 2]),
            )
        )
    return frames


def curve_frames(curve: CurveProvider, distances: Iterable[float]) -> List[Frame]:
    """Frames whose normals are the curve's own interpolated up vectors."""
    if not has_enough_points(curve):
        return []
    frames: List[Frame] = []
    for distance in distances:
        tangent = unit_tangent_at(curve, distance)
        normal = orthonormal_up(tangent, up_vector_at(curve, distance))
        frames.append(
            Frame(
                distance=float(distance),
                position=location_at(curve, distance),
                tangent=tangent,
                normal=normal,
            )
        )
    return frames


def apply_up_vectors(curve: CurveProvider, settings: ContinuumSettings) -> List[Frame]:
    """Compute per-point up vectors and write them back to ``curve``.

    With parallel transport the transported normals replace whatever
    rotations the user authored; otherwise the Z axis of each point's
    rotation is written back (only when ``compute_up_vectors`` is set).
    The curve's ``update`` is left to the caller.
    """
    if not has_enough_points(curve):
        logger.debug("apply_up_vectors: fewer than 2 points, skipping")
        return []
    n = curve.num_points()
    if settings.use_parallel_transport:
        distances = point_distances(curve)
        closed = curve.is_closed_loop()
        if closed:
            # Transport all the way round so the loop can be closed.
            distances.append(curve.get_length())
        frames = parallel_transport_frames(
            curve, distances, np.asarray(settings.up_vector), closed=closed
        )[:n]
    elif settings.compute_up_vectors:
        frames = rotation_frames(curve)
    else:
        return []
    for index, frame in enumerate(frames):
        curve.set_up_vector_at_point(index, frame.normal, update=False)
    logger.debug(
        "apply_up_vectors: wrote %d up vectors (parallel_transport=%s)",
        len(frames),
        settings.use_parallel_transport,
    )
    return frames


def log_up_vectors(curve: CurveProvider) -> None:
    """Emit one debug line per control point with its up vector."""
    for index in range(curve.num_points()):
        logger.debug(
            "UpVector[%d]: location=%s up=%s",
            index,
            as_vector(curve.location_at_point(index)),
            as_vector(curve.up_vector_at_point(index)),
        )
