"""
Tests for the SplineContinuum orchestrator and rebuild debouncing.

A straight 500 unit curve and a 100 unit mesh give a predictable five
tile layout, which makes it easy to count instance churn in the
in-memory sink.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List

import numpy as np
import pytest
from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1]))

from continuum import ContinuumSettings, MeshSegment, SplineContinuum, create_continuum
from continuum.services.curve import HermiteCurve
from continuum.services.mesh_bounds import BoundingBoxMeshBounds
from continuum.services.rebuild import RebuildScheduler
from continuum.services.segment_sink import InMemorySegmentSink

MESH = "road"


def _bounds() -> BoundingBoxMeshBounds:
    return BoundingBoxMeshBounds({MESH: ((0.0, -5.0, 0.0), (100.0, 5.0, 1.0))})


def _curve() -> HermiteCurve:
    return HermiteCurve.from_points([(0.0, 0.0, 0.0), (250.0, 0.0, 0.0), (500.0, 0.0, 0.0)])


def test_construction_defers_the_first_rebuild() -> None:
    sink = InMemorySegmentSink()
    continuum = create_continuum(_curve(), _bounds(), sink, mesh=MESH)
    assert continuum.rebuild_pending
    assert len(sink) == 0
    assert continuum.flush() is True
    assert not continuum.rebuild_pending
    assert len(sink) == 5
    assert [s.name for s in continuum.segments] == [f"SplineMesh_{i}" for i in range(5)]


def test_bursts_of_requests_rebuild_once() -> None:
    """Many requests in one cycle create each instance only once."""
    sink = InMemorySegmentSink()
    continuum = create_continuum(_curve(), _bounds(), sink, mesh=MESH)
    assert continuum.request_rebuild() is False
    continuum.update_settings(mesh_size_threshold=0.2)
    continuum.set_mesh(MESH)
    continuum.flush()
    assert sink.created_count == 5
    assert sink.destroyed_count == 0
    # Nothing left to run
    assert continuum.flush() is False


def test_schedule_hook_receives_a_single_callback() -> None:
    queued: List[Callable[[], None]] = []
    sink = InMemorySegmentSink()
    continuum = create_continuum(_curve(), _bounds(), sink, mesh=MESH, schedule=queued.append)
    continuum.update_settings(tangent_scale=0.5)
    continuum.request_rebuild()
    assert len(queued) == 1
    queued.pop()()
    assert len(sink) == 5
    assert not continuum.rebuild_pending
    # The next request schedules again
    continuum.request_rebuild()
    assert len(queued) == 1


def test_retile_replaces_previous_segments() -> None:
    sink = InMemorySegmentSink()
    continuum = SplineContinuum(_curve(), _bounds(), sink, mesh=MESH)
    first = continuum.retile()
    old_handles = continuum.handles
    second = continuum.retile()
    assert len(first) == len(second) == 5
    assert len(sink) == 5
    assert sink.destroyed_count == 5
    assert all(sink.segment(h) is None for h in old_handles)


def test_degenerate_mesh_keeps_existing_segments() -> None:
    sink = InMemorySegmentSink()
    continuum = SplineContinuum(_curve(), _bounds(), sink, mesh=MESH)
    continuum.retile()
    continuum.mesh = "missing"
    kept = continuum.retile()
    assert len(kept) == 5
    assert len(sink) == 5
    assert sink.destroyed_count == 0


def test_material_override_applies_to_all_segments() -> None:
    sink = InMemorySegmentSink()
    continuum = SplineContinuum(_curve(), _bounds(), sink, mesh=MESH, material="asphalt")
    continuum.retile()
    assert all(sink.material(h) == "asphalt" for h in continuum.handles)
    continuum.set_material("gravel")
    assert all(sink.material(h) == "gravel" for h in continuum.handles)
    assert sink.created_count == 5


def test_recompute_writes_tangents_when_enabled() -> None:
    curve = _curve()
    create_continuum(
        curve,
        _bounds(),
        InMemorySegmentSink(),
        mesh=MESH,
        auto_compute_spline=True,
        tangent_scale=0.5,
    )
    assert np.allclose(curve.arrive_tangent_at_point(0), 0.0)
    assert np.allclose(curve.tangent_at_point(0), (125.0, 0.0, 0.0))
    assert np.allclose(curve.tangent_at_point(2), 0.0)


def test_recompute_skips_short_curves() -> None:
    curve = HermiteCurve([(0.0, 0.0, 0.0)])
    continuum = SplineContinuum(curve, _bounds(), InMemorySegmentSink(), mesh=MESH)
    continuum.recompute()
    assert continuum.retile() == []


def test_invalid_settings_are_rejected() -> None:
    continuum = SplineContinuum(_curve(), _bounds(), InMemorySegmentSink(), mesh=MESH)
    with pytest.raises(ValidationError):
        continuum.update_settings(mesh_size_threshold=1.5)
    assert continuum.settings == ContinuumSettings()


def test_destroy_releases_everything() -> None:
    sink = InMemorySegmentSink()
    continuum = create_continuum(_curve(), _bounds(), sink, mesh=MESH)
    continuum.flush()
    continuum.request_rebuild()
    continuum.destroy()
    assert len(sink) == 0
    assert not continuum.rebuild_pending
    assert continuum.segments == []


class _FailingSink(InMemorySegmentSink):
    """Sink whose n-th ``create_segment`` call raises."""

    def __init__(self, fail_at: int) -> None:
        super().__init__()
        self.fail_at = fail_at
        self.calls = 0

    def create_segment(self, segment: MeshSegment) -> str:
        self.calls += 1
        if self.calls == self.fail_at:
            raise RuntimeError("out of instances")
        return super().create_segment(segment)


def test_failed_create_leaves_no_partial_tiles() -> None:
    sink = _FailingSink(fail_at=8)
    continuum = SplineContinuum(_curve(), _bounds(), sink, mesh=MESH)
    continuum.retile()
    assert len(sink) == 5
    with pytest.raises(RuntimeError):
        continuum.retile()
    # The old tiles were replaced and the two new ones were released again
    assert len(sink) == 0
    assert sink.destroyed_count == 7
    assert continuum.handles == []
    assert continuum.segments == []
    # A later rebuild starts from a clean slate
    assert len(continuum.retile()) == 5
    assert len(sink) == 5


def test_failed_rebuild_clears_pending_flag() -> None:
    def explode() -> None:
        raise RuntimeError("boom")

    scheduler = RebuildScheduler(explode)
    scheduler.request()
    with pytest.raises(RuntimeError):
        scheduler.flush()
    assert not scheduler.pending
    assert scheduler.runs == 0
