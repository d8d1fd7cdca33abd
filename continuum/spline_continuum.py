"""
Spline continuum: keeps a row of mesh tiles in sync with a curve.

``SplineContinuum`` wires the geometry services to the three host
collaborators (curve, mesh bounds, mesh instance sink).  Hosts call the
explicit entry points whenever something relevant changes:

* :meth:`SplineContinuum.recompute` rewrites point tangents and up
  vectors on the curve.
* :meth:`SplineContinuum.retile` replaces every tile immediately.
* :meth:`SplineContinuum.request_rebuild` does the same, but deferred
  and coalesced so a burst of edits rebuilds once.

The whole tiling pass runs before any instance is destroyed or created,
so a failed or degenerate pass leaves the previous tiles in place.
"""

from __future__ import annotations

import logging
import time
from typing import Any, List, Optional

from .models import ContinuumSettings, MeshSegment
from .services.curve_sampler import CurveProvider, curve_summary, has_enough_points
from .services.frame_builder import apply_up_vectors, log_up_vectors
from .services.mesh_bounds import MeshBoundsProvider
from .services.rebuild import RebuildScheduler, ScheduleHook
from .services.segment_sink import MeshSegmentSink
from .services.tangent_solver import apply_tangents
from .services.tiler import tile_curve

logger = logging.getLogger(__name__)

# Settings whose change invalidates the point tangents / up vectors.
_SPLINE_FIELDS = {
    "tangent_scale",
    "use_parallel_transport",
    "up_vector",
    "auto_compute_spline",
    "compute_tangents",
    "compute_up_vectors",
}


class SplineContinuum:
    """Distributes a mesh continuously along a curve."""

    def __init__(
        self,
        curve: CurveProvider,
        bounds: MeshBoundsProvider,
        sink: MeshSegmentSink,
        mesh: Any = None,
        material: Any = None,
        settings: Optional[ContinuumSettings] = None,
        schedule: Optional[ScheduleHook] = None,
    ) -> None:
        self.curve = curve
        self.bounds = bounds
        self.sink = sink
        self.mesh = mesh
        self.material = material
        self.settings = settings or ContinuumSettings()
        self._handles: List[Any] = []
        self._segments: List[MeshSegment] = []
        self._scheduler = RebuildScheduler(self.retile, schedule)

    # ------------------------------------------------------------------
    # State

    @property
    def segments(self) -> List[MeshSegment]:
        """Segments installed by the last successful rebuild."""
        return list(self._segments)

    @property
    def handles(self) -> List[Any]:
        return list(self._handles)

    @property
    def rebuild_pending(self) -> bool:
        return self._scheduler.pending

    # ------------------------------------------------------------------
    # Entry points

    def on_construction(self) -> None:
        """Host hook run after the curve or the owner was (re)built."""
        if self.settings.auto_compute_spline:
            self.recompute()
        if self.settings.auto_rebuild_mesh:
            self.request_rebuild()

    def recompute(self) -> None:
        """Override the curve's tangents and up vectors with computed ones."""
        if not has_enough_points(self.curve):
            logger.debug("recompute: curve has fewer than 2 points, skipping")
            return
        if self.settings.compute_tangents:
            apply_tangents(self.curve, self.settings.tangent_scale)
        apply_up_vectors(self.curve, self.settings)
        self.curve.update()
        if logger.isEnabledFor(logging.DEBUG):
            log_up_vectors(self.curve)

    def request_rebuild(self) -> bool:
        """Schedule a deferred rebuild; returns False if one is pending."""
        return self._scheduler.request()

    def flush(self) -> bool:
        """Run a pending deferred rebuild now."""
        return self._scheduler.flush()

    def retile(self) -> List[MeshSegment]:
        """Replace all tiles with a freshly computed layout.

        Returns:
            The installed segments.  When the mesh or curve length is
            degenerate nothing is computed and the current tiles are
            left untouched; the current segments are returned.
        """
        t_start = time.perf_counter()
        mesh_length = self.bounds.mesh_length(self.mesh)
        count, closed, curve_length = curve_summary(self.curve)
        segments = tile_curve(self.curve, mesh_length, self.settings)
        if not segments:
            logger.warning(
                "[Continuum] nothing to tile (points=%d curve_length=%.4f mesh_length=%.4f); "
                "keeping %d existing segments",
                count,
                curve_length,
                mesh_length,
                len(self._handles),
            )
            return self.segments

        self.empty_mesh()
        handles: List[Any] = []
        try:
            for segment in segments:
                handles.append(self.sink.create_segment(segment))
        except Exception as exc:
            logger.error(
                "[Continuum] creating segment %d of %d failed, releasing partial rebuild: %s",
                len(handles),
                len(segments),
                exc,
            )
            for handle in handles:
                self.sink.destroy(handle)
            raise
        self._handles = handles
        self._segments = segments
        self.update_material()
        logger.info(
            "[Continuum] built %d segments over %.3f units (closed=%s parallel_transport=%s) in %.2f ms",
            len(segments),
            curve_length,
            closed,
            self.settings.use_parallel_transport,
            (time.perf_counter() - t_start) * 1000.0,
        )
        return self.segments

    def empty_mesh(self) -> None:
        """Destroy every live tile."""
        for handle in self._handles:
            self.sink.destroy(handle)
        self._handles = []
        self._segments = []

    def update_material(self) -> None:
        """Apply the material override to every live tile, if one is set."""
        if self.material is None:
            return
        for handle in self._handles:
            self.sink.set_material(handle, self.material)

    def set_material(self, material: Any) -> None:
        self.material = material
        self.update_material()

    def set_mesh(self, mesh: Any) -> None:
        """Swap the tiled mesh asset and rebuild if auto-rebuild is on."""
        self.mesh = mesh
        if self.settings.auto_rebuild_mesh:
            self.request_rebuild()

    def update_settings(self, **changes: Any) -> ContinuumSettings:
        """Validate and apply setting changes, then re-run what they affect.

        Raises:
            pydantic.ValidationError: If the merged settings are invalid.
        """
        merged = {**self.settings.model_dump(), **changes}
        self.settings = ContinuumSettings.model_validate(merged)
        if self.settings.auto_compute_spline and _SPLINE_FIELDS.intersection(changes):
            self.recompute()
        if self.settings.auto_rebuild_mesh:
            self.request_rebuild()
        return self.settings

    def destroy(self) -> None:
        """End-of-life hook: drop pending work and release all tiles."""
        self._scheduler.cancel()
        self.empty_mesh()


def create_continuum(
    curve: CurveProvider,
    bounds: MeshBoundsProvider,
    sink: MeshSegmentSink,
    mesh: Any = None,
    material: Any = None,
    schedule: Optional[ScheduleHook] = None,
    **settings: Any,
) -> SplineContinuum:
    """Factory to create a :class:`SplineContinuum` and run its construction hook.

    Keyword arguments other than the collaborators are validated into a
    :class:`~continuum.models.ContinuumSettings`.
    """
    continuum = SplineContinuum(
        curve,
        bounds,
        sink,
        mesh=mesh,
        material=material,
        settings=ContinuumSettings(**settings),
        schedule=schedule,
    )
    continuum.on_construction()
    return continuum
