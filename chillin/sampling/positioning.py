"""Positioning service boundary.

The controller manages the update cadence itself through a
start-with-period / stop request pair; the service pushes fixes to the
registered handler.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from chillin.models.samples import LocationFix

#: Receives each fix.  Must be called from the controller's event loop; a
#: service delivering from another thread should go through
#: ``loop.call_soon_threadsafe``.
FixHandler = Callable[[LocationFix], None]


class PositioningService(ABC):
    """Source of location fixes at a requested period."""

    @abstractmethod
    async def start_updates(self, period_s: int, handler: FixHandler) -> None:
        """Begin delivering fixes to ``handler`` roughly every ``period_s`` seconds."""

    @abstractmethod
    async def stop_updates(self) -> None:
        """Stop delivering fixes.  Safe to call when no updates are active."""

    async def last_known_fix(self) -> LocationFix | None:
        """Return the service's cached fix, if any.  Default returns None."""
        return None
