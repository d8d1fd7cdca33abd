"""
Tests for the linear-scaled tangent solver.

These tests check the open/closed endpoint rules, the unified direction
used for interior points, the effect of ``tangent_scale`` and the
degenerate case of coincident neighbours.
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

# Make the package importable when running tests without installing it
sys.path.append(str(Path(__file__).resolve().parents[1]))

from continuum.services.curve import HermiteCurve
from continuum.services.tangent_solver import apply_tangents, compute_tangents


def _square(side: float = 100.0) -> np.ndarray:
    return np.array(
        [
            (0.0, 0.0, 0.0),
            (side, 0.0, 0.0),
            (side, side, 0.0),
            (0.0, side, 0.0),
        ]
    )


def test_open_curve_endpoints_have_zero_outer_tangents() -> None:
    """The first incoming and last outgoing tangents of an open curve are zero."""
    positions = np.array([(0.0, 0.0, 0.0), (100.0, 0.0, 0.0), (100.0, 100.0, 0.0)])
    pairs = compute_tangents(positions, closed=False, tangent_scale=1.0)
    assert len(pairs) == 3
    first_in, first_out = pairs[0]
    last_in, last_out = pairs[-1]
    assert np.allclose(first_in, 0.0)
    assert np.allclose(last_out, 0.0)
    # The remaining end tangents point at the only neighbour with its distance
    assert np.allclose(first_out, (100.0, 0.0, 0.0))
    assert np.allclose(last_in, (0.0, 100.0, 0.0))


def test_interior_point_uses_unified_direction() -> None:
    """Interior tangents share the direction next - previous; only lengths differ."""
    positions = np.array([(0.0, 0.0, 0.0), (30.0, 0.0, 0.0), (30.0, 120.0, 0.0)])
    incoming, outgoing = compute_tangents(positions, closed=False, tangent_scale=1.0)[1]
    expected_dir = np.array([30.0, 120.0, 0.0]) / np.linalg.norm([30.0, 120.0, 0.0])
    assert np.allclose(incoming / np.linalg.norm(incoming), expected_dir)
    assert np.allclose(outgoing / np.linalg.norm(outgoing), expected_dir)
    assert pytest.approx(np.linalg.norm(incoming), rel=1e-9) == 30.0
    assert pytest.approx(np.linalg.norm(outgoing), rel=1e-9) == 120.0


def test_closed_curve_never_forces_zero_tangents() -> None:
    """Every point of a closed loop has non-zero, parallel tangents."""
    pairs = compute_tangents(_square(), closed=True, tangent_scale=1.0)
    for incoming, outgoing in pairs:
        assert np.linalg.norm(incoming) > 0.0
        assert np.linalg.norm(outgoing) > 0.0
        cross = np.cross(incoming, outgoing)
        assert np.allclose(cross, 0.0)
        assert float(np.dot(incoming, outgoing)) > 0.0


def test_tangent_scale_multiplies_every_tangent() -> None:
    """Halving the scale halves every tangent."""
    full = compute_tangents(_square(), closed=True, tangent_scale=1.0)
    half = compute_tangents(_square(), closed=True, tangent_scale=0.5)
    for (fi, fo), (hi, ho) in zip(full, half):
        assert np.allclose(hi, 0.5 * fi)
        assert np.allclose(ho, 0.5 * fo)


def test_zero_scale_and_coincident_points_give_zero_not_nan() -> None:
    """Degenerate inputs produce zero vectors rather than NaN."""
    zero_scale = compute_tangents(_square(), closed=True, tangent_scale=0.0)
    for incoming, outgoing in zero_scale:
        assert np.all(np.isfinite(incoming)) and np.allclose(incoming, 0.0)
        assert np.all(np.isfinite(outgoing)) and np.allclose(outgoing, 0.0)

    stacked = np.zeros((3, 3))
    for closed in (False, True):
        for incoming, outgoing in compute_tangents(stacked, closed=closed, tangent_scale=1.0):
            assert np.all(np.isfinite(incoming)) and np.allclose(incoming, 0.0)
            assert np.all(np.isfinite(outgoing)) and np.allclose(outgoing, 0.0)


def test_fewer_than_two_points_is_a_no_op() -> None:
    assert compute_tangents(np.zeros((1, 3)), closed=False, tangent_scale=1.0) == []
    curve = HermiteCurve([(5.0, 0.0, 0.0)])
    assert apply_tangents(curve, 1.0) == []


def test_apply_tangents_writes_back_to_curve() -> None:
    """apply_tangents stores incoming as arrive and outgoing as leave tangents."""
    curve = HermiteCurve.from_points(_square(), closed=False)
    pairs = apply_tangents(curve, 0.75)
    for index, (incoming, outgoing) in enumerate(pairs):
        assert np.allclose(curve.arrive_tangent_at_point(index), incoming)
        assert np.allclose(curve.tangent_at_point(index), outgoing)
    assert np.allclose(curve.arrive_tangent_at_point(0), 0.0)
    assert np.allclose(curve.tangent_at_point(3), 0.0)
