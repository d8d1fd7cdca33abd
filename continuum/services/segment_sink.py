"""
Mesh instance sinks.

The continuum hands every :class:`~continuum.models.MeshSegment` to a
sink, which turns it into whatever the host renders and returns an
opaque handle.  Handles are only ever passed back to the same sink to
destroy an instance or to change its material.

:class:`InMemorySegmentSink` keeps the segments in a dictionary keyed
by a random hex handle.  It is handy for tools that export the layout
and for tests.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from ..models import MeshSegment

logger = logging.getLogger(__name__)


class MeshSegmentSink(Protocol):
    def create_segment(self, segment: MeshSegment) -> Any: ...

    def destroy(self, handle: Any) -> None: ...

    def set_material(self, handle: Any, material: Any) -> None: ...


class InMemorySegmentSink:
    """Sink that stores live segments and their materials."""

    def __init__(self) -> None:
        self._segments: Dict[str, MeshSegment] = {}
        self._materials: Dict[str, Any] = {}
        self.created_count = 0
        self.destroyed_count = 0

    def create_segment(self, segment: MeshSegment) -> str:
        handle = uuid.uuid4().hex
        self._segments[handle] = segment
        self.created_count += 1
        return handle

    def destroy(self, handle: str) -> None:
        # Unknown handles are ignored so destroying twice is harmless.
        if self._segments.pop(handle, None) is not None:
            self.destroyed_count += 1
        self._materials.pop(handle, None)

    def set_material(self, handle: str, material: Any) -> None:
        if handle not in self._segments:
            logger.warning("set_material: unknown segment handle %s", handle)
            return
        self._materials[handle] = material

    def segment(self, handle: str) -> Optional[MeshSegment]:
        return self._segments.get(handle)

    def material(self, handle: str) -> Any:
        return self._materials.get(handle)

    @property
    def segments(self) -> List[MeshSegment]:
        """Live segments in creation order."""
        return list(self._segments.values())

    def __len__(self) -> int:
        return len(self._segments)
