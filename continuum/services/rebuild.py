"""
Debounced rebuild scheduling.

Several edits in one update cycle should not tear down and recreate the
tiled meshes several times.  :class:`RebuildScheduler` keeps a single
"pending" flag: the first request arms it and hands a callback to the
scheduling hook, later requests are dropped until the deferred rebuild
has run.  The hook is anything accepting a zero-argument callable, for
example ``loop.call_soon`` of an asyncio event loop.  Without a hook the
owner drives the deferred rebuild by calling :meth:`flush`.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ScheduleHook = Callable[[Callable[[], None]], object]


class RebuildScheduler:
    """Collapse bursts of rebuild requests into one deferred run."""

    def __init__(self, rebuild: Callable[[], None], schedule: Optional[ScheduleHook] = None) -> None:
        self._rebuild = rebuild
        self._schedule = schedule
        self._pending = False
        self.runs = 0

    @property
    def pending(self) -> bool:
        return self._pending

    def request(self) -> bool:
        """Ask for a rebuild at the next scheduling point.

        Returns:
            True if this request armed a new rebuild, False if it was
            coalesced into one already pending.
        """
        if self._pending:
            logger.debug("Rebuild already pending; request coalesced")
            return False
        self._pending = True
        if self._schedule is not None:
            self._schedule(self.flush)
        return True

    def flush(self) -> bool:
        """Run the pending rebuild, if any, and clear the flag.

        Returns:
            True if a rebuild ran.
        """
        if not self._pending:
            return False
        try:
            self._rebuild()
            self.runs += 1
        finally:
            self._pending = False
        return True

    def cancel(self) -> None:
        """Drop a pending rebuild without running it."""
        self._pending = False
