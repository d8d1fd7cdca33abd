"""
Mesh bounds providers.

The tiler only needs one number from a mesh asset: its extent along the
tiling axis (X).  A :class:`MeshBoundsProvider` answers that for an
opaque mesh reference.  The length must be queried before every
rebuild because the asset may have changed since the last one.

Two providers are included.  :class:`BoundingBoxMeshBounds` looks up
explicit bounding boxes; :class:`NpzMeshBounds` reads the ``bbox_min``
and ``bbox_max`` arrays of a compressed NumPy mesh archive (``.npz``),
the same layout used for tessellated mesh caches.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Protocol, Tuple

import numpy as np

# Index of the axis meshes are tiled along.
TILING_AXIS: int = 0


class MeshBoundsProvider(Protocol):
    def mesh_length(self, mesh: Any) -> float: ...


def extent_along_axis(
    bbox_min: Iterable[float], bbox_max: Iterable[float], axis: int = TILING_AXIS
) -> float:
    """Length of the bounding box along ``axis`` (never negative)."""
    lo = np.asarray(list(bbox_min), dtype=np.float64)
    hi = np.asarray(list(bbox_max), dtype=np.float64)
    return max(0.0, float(hi[axis] - lo[axis]))


class BoundingBoxMeshBounds:
    """Mesh lengths from a mapping of mesh → ``(bbox_min, bbox_max)``.

    Unknown meshes (including ``None``) have length ``0.0``, which the
    tiler treats as "nothing to tile".
    """

    def __init__(self, boxes: Dict[Any, Tuple[Iterable[float], Iterable[float]]] | None = None) -> None:
        self._boxes: Dict[Any, Tuple[Iterable[float], Iterable[float]]] = dict(boxes or {})

    def set_bounds(self, mesh: Any, bbox_min: Iterable[float], bbox_max: Iterable[float]) -> None:
        self._boxes[mesh] = (list(bbox_min), list(bbox_max))

    def mesh_length(self, mesh: Any) -> float:
        box = self._boxes.get(mesh)
        if box is None:
            return 0.0
        return extent_along_axis(box[0], box[1])


def load_mesh_bbox(path: Path) -> Tuple[list, list]:
    """Read the bounding box of a mesh archive.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the archive lacks ``bbox_min`` or ``bbox_max``.
    """
    if not path.exists():
        raise FileNotFoundError(f"Mesh archive not found: {path}")
    with np.load(path, allow_pickle=False) as data:
        required_keys = {"bbox_min", "bbox_max"}
        if not required_keys.issubset(data.files):
            missing = required_keys - set(data.files)
            raise ValueError(f"Mesh archive is missing fields: {missing}")
        return data["bbox_min"].astype(np.float64).tolist(), data["bbox_max"].astype(np.float64).tolist()


def save_mesh_bbox(path: Path, bbox_min: Iterable[float], bbox_max: Iterable[float]) -> None:
    """Write a minimal mesh archive holding only the bounding box."""
    np.savez_compressed(
        path,
        bbox_min=np.array(list(bbox_min), dtype=np.float32),
        bbox_max=np.array(list(bbox_max), dtype=np.float32),
    )


class NpzMeshBounds:
    """Mesh lengths read from ``.npz`` archives; meshes are file paths.

    The archive is read on every call so edits to the file are picked
    up by the next rebuild.
    """

    def mesh_length(self, mesh: Any) -> float:
        if mesh is None:
            return 0.0
        bbox_min, bbox_max = load_mesh_bbox(Path(mesh))
        return extent_along_axis(bbox_min, bbox_max)
