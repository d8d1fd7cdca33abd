"""
Pydantic data models for the spline continuum.

``ContinuumSettings`` is the configuration surface owned by the caller
and read by the services; ``MeshSegment`` is the immutable value handed
to the mesh instance sink for every tile along the curve.  Keeping
these schemas in one place makes the contract between the geometry
core and its host explicit.
"""

from __future__ import annotations

import math
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

Vector3 = Tuple[float, float, float]
Vector2 = Tuple[float, float]


class ContinuumSettings(BaseModel):
    """Options controlling how the curve is computed and tiled."""

    model_config = ConfigDict(frozen=True)

    # 0.0 flattens every tangent (piecewise linear); 1.0 is fully smooth.
    tangent_scale: float = Field(
        default=1.0,
        ge=0.0,
        description="Linear scale applied to computed point tangents (0.0 = constant, 1.0 = smooth)",
    )
    mesh_size_threshold: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description=(
            "Maximum allowed overhang fraction and minimum allowed spacing "
            "fraction (relative to mesh length) when choosing the tile count"
        ),
    )
    use_parallel_transport: bool = Field(
        default=False,
        description=(
            "Build twist-minimising frames by parallel transport instead of "
            "using the curve's own point rotations.  Overrides user rotations."
        ),
    )
    absolute_up_direction: bool = Field(
        default=False,
        description="Use ``up_vector`` as the zero-roll up of every segment",
    )
    up_vector: Vector3 = Field(
        default=(0.0, 0.0, 1.0),
        description="Fixed up vector; also seeds parallel transport",
    )
    auto_compute_spline: bool = Field(
        default=False,
        description="Recompute point tangents and up vectors on construction",
    )
    compute_tangents: bool = Field(
        default=True,
        description="Whether the recompute pass writes tangents",
    )
    compute_up_vectors: bool = Field(
        default=True,
        description="Whether the recompute pass writes up vectors from point rotations",
    )
    auto_rebuild_mesh: bool = Field(
        default=True,
        description="Rebuild the tiled segments on construction and on setting changes",
    )
    segment_name_prefix: str = Field(
        default="SplineMesh",
        min_length=1,
        description="Prefix used when naming generated segments",
    )

    @field_validator("up_vector")
    @classmethod
    def _normalise_up_vector(cls, value: Vector3) -> Vector3:
        length = math.sqrt(sum(c * c for c in value))
        if length < 1e-8:
            raise ValueError("up_vector must be non-zero")
        return (value[0] / length, value[1] / length, value[2] / length)


class MeshSegment(BaseModel):
    """A single mesh tile placed along the curve.

    Tangent magnitudes encode how strongly the curve bends the mesh at
    each end.  Rolls are in degrees, measured about the tangent relative
    to the orientation ``up_vector`` would give a zero-roll tile.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique name of the segment within one rebuild")
    start_location: Vector3
    start_tangent: Vector3
    end_location: Vector3
    end_tangent: Vector3
    up_vector: Vector3 = (0.0, 0.0, 1.0)
    start_roll: float = 0.0
    end_roll: float = 0.0
    start_scale: Vector2 = (1.0, 1.0)
    end_scale: Vector2 = (1.0, 1.0)
