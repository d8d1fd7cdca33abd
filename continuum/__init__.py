"""
Continuous mesh tiling along 3D curves.

Roads, pipes, rails and fences are built by repeating one mesh along a
user-edited spline.  This package computes smooth tangents, twist-free
frames and the tile layout; the host application owns the curve and
spawns the mesh instances.
"""

from .models import ContinuumSettings, MeshSegment
from .spline_continuum import SplineContinuum, create_continuum

__all__ = [
    "ContinuumSettings",
    "MeshSegment",
    "SplineContinuum",
    "create_continuum",
]
