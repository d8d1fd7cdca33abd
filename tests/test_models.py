"""Validation tests for the settings and segment models."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1]))

from continuum.models import ContinuumSettings, MeshSegment


def test_defaults() -> None:
    settings = ContinuumSettings()
    assert settings.tangent_scale == 1.0
    assert settings.mesh_size_threshold == pytest.approx(0.3)
    assert settings.up_vector == (0.0, 0.0, 1.0)
    assert settings.auto_rebuild_mesh
    assert not settings.use_parallel_transport


def test_up_vector_is_normalised() -> None:
    settings = ContinuumSettings(up_vector=(0.0, 3.0, 4.0))
    assert settings.up_vector == pytest.approx((0.0, 0.6, 0.8))


@pytest.mark.parametrize(
    "changes",
    [
        {"up_vector": (0.0, 0.0, 0.0)},
        {"mesh_size_threshold": 1.5},
        {"mesh_size_threshold": -0.1},
        {"tangent_scale": -1.0},
        {"segment_name_prefix": ""},
    ],
)
def test_invalid_settings(changes: dict) -> None:
    with pytest.raises(ValidationError):
        ContinuumSettings(**changes)


def test_segment_is_immutable() -> None:
    segment = MeshSegment(
        name="SplineMesh_0",
        start_location=(0.0, 0.0, 0.0),
        start_tangent=(100.0, 0.0, 0.0),
        end_location=(100.0, 0.0, 0.0),
        end_tangent=(100.0, 0.0, 0.0),
    )
    assert segment.start_scale == (1.0, 1.0)
    assert segment.start_roll == 0.0
    with pytest.raises(ValidationError):
        segment.start_roll = 45.0
