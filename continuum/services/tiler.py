"""
Tiling of a fixed-length mesh along a curve.

The tiler decides how many copies of a mesh to lay along the curve and
produces one :class:`~continuum.models.MeshSegment` per copy.  The
initial count is the smallest number of meshes that covers the curve;
it is then reduced while the tiles would be packed closer than
``mesh_size_threshold * mesh_length`` or while the fraction of mesh
hanging past the curve end exceeds ``mesh_size_threshold``.  Fewer,
evenly spaced tiles are preferred over many cramped ones, but at least
one tile is always produced for a non-degenerate curve.

Tiles start every ``spacing = curve_length / segment_count`` and span
``max(mesh_length, spacing)`` of the curve, so a tile never shrinks
below its mesh length.  When that span runs past the end of the curve
the end location is extrapolated along the final tangent (overhang).
With parallel transport, each tile reads the transported frames at its
own start and end distance.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..models import ContinuumSettings, MeshSegment
from .curve_sampler import (
    EPSILON,
    CurveProvider,
    has_enough_points,
    location_at,
    scale_at,
    tangent_at,
    unit_tangent_at,
    up_vector_at,
)
from .frame_builder import curve_frames, tile_transport_frames
from .roll_solver import compute_roll
from .vectors import clamp_length, safe_normalize, to_tuple

logger = logging.getLogger(__name__)

# Slack allowed when comparing count-derived fractions, so curve lengths
# that are a multiple of the mesh length up to float noise still tile exactly.
FRACTION_EPS: float = 1e-6


@dataclass(frozen=True)
class TileLayout:
    """Result of partitioning a curve into mesh tiles."""

    segment_count: int
    spacing: float
    mesh_length: float
    curve_length: float
    overhang_fraction: float

    @property
    def span(self) -> float:
        """Arc length covered by each tile."""
        return max(self.mesh_length, self.spacing)

    def tile_bounds(self) -> List[Tuple[float, float]]:
        """``(start, end)`` arc lengths of every tile, ends clamped to the curve."""
        bounds: List[Tuple[float, float]] = []
        for i in range(self.segment_count):
            start = i * self.spacing
            bounds.append((start, min(start + self.span, self.curve_length)))
        return bounds


def compute_segment_count(curve_length: float, mesh_length: float, threshold: float) -> int:
    """Number of tiles for ``curve_length`` given the size threshold.

    Returns ``0`` when either length is not larger than
    :data:`~continuum.services.curve_sampler.EPSILON`.
    """
    if mesh_length <= EPSILON or curve_length <= EPSILON:
        return 0
    count = max(1, math.ceil(curve_length / mesh_length - FRACTION_EPS))
    while count > 1:
        spacing = curve_length / count
        overhang = 1.0 - curve_length / (count * mesh_length)
        if spacing < threshold * mesh_length - EPSILON or overhang > threshold + FRACTION_EPS:
            count -= 1
        else:
            break
    return count


def plan_tiles(curve_length: float, mesh_length: float, threshold: float) -> Optional[TileLayout]:
    """Build the :class:`TileLayout` for a curve, or ``None`` if degenerate."""
    count = compute_segment_count(curve_length, mesh_length, threshold)
    if count == 0:
        return None
    return TileLayout(
        segment_count=count,
        spacing=curve_length / count,
        mesh_length=mesh_length,
        curve_length=curve_length,
        overhang_fraction=max(0.0, 1.0 - curve_length / (count * mesh_length)),
    )


def tile_curve(
    curve: CurveProvider,
    mesh_length: float,
    settings: ContinuumSettings,
) -> List[MeshSegment]:
    """Lay ``mesh_length`` tiles along ``curve``.

    Args:
        curve: The curve to follow.
        mesh_length: Extent of the mesh along its tiling axis.
        settings: Threshold, frame mode and up-vector options.

    Returns:
        Segments ordered by increasing distance along the curve.  The
        list is empty when the curve has fewer than two points or when
        either length is degenerate.
    """
    if not has_enough_points(curve):
        logger.debug("tile_curve: fewer than 2 points, nothing to tile")
        return []
    curve_length = curve.get_length()
    layout = plan_tiles(curve_length, mesh_length, settings.mesh_size_threshold)
    if layout is None:
        logger.debug(
            "tile_curve: degenerate lengths (curve=%.6f mesh=%.6f), nothing to tile",
            curve_length,
            mesh_length,
        )
        return []

    bounds = layout.tile_bounds()
    transport = None
    if settings.use_parallel_transport:
        transport = tile_transport_frames(curve, bounds, np.asarray(settings.up_vector))
    fixed_up = np.asarray(settings.up_vector) if settings.absolute_up_direction else None
    final_direction = unit_tangent_at(curve, curve_length)
    debug = bool(os.getenv("CONTINUUM_DEBUG"))

    segments: List[MeshSegment] = []
    for i, (start, end) in enumerate(bounds):
        overhang = start + layout.span - end

        start_location = location_at(curve, start)
        end_location = location_at(curve, end)
        start_tangent = clamp_length(tangent_at(curve, start), mesh_length)
        end_tangent = clamp_length(tangent_at(curve, end), mesh_length)
        if overhang > EPSILON:
            end_location = end_location + final_direction * overhang

        if transport:
            start_normal = transport[start].normal
            end_normal = transport[end].normal
            up = safe_normalize(start_normal + end_normal)
            if not up.any():
                up = start_normal
        else:
            start_frame, end_frame = curve_frames(curve, (start, end))
            start_normal = start_frame.normal
            end_normal = end_frame.normal
            up = up_vector_at(curve, 0.5 * (start + end))
        if fixed_up is not None:
            up = fixed_up

        segment = MeshSegment(
            name=f"{settings.segment_name_prefix}_{i}",
            start_location=to_tuple(start_location),
            start_tangent=to_tuple(start_tangent),
            end_location=to_tuple(end_location),
            end_tangent=to_tuple(end_tangent),
            up_vector=to_tuple(up),
            start_roll=compute_roll(start_tangent, start_normal, up),
            end_roll=compute_roll(end_tangent, end_normal, up),
            start_scale=tuple(float(s) for s in scale_at(curve, start)),
            end_scale=tuple(float(s) for s in scale_at(curve, end)),
        )
        if debug:
            logger.debug(
                "Segment[%d] %s: d=[%.4f, %.4f] overhang=%.4f roll=(%.3f, %.3f)",
                i,
                segment.name,
                start,
                end,
                max(overhang, 0.0),
                segment.start_roll,
                segment.end_roll,
            )
        segments.append(segment)
    return segments
