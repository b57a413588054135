"""
Pointer Controller
==================
Drag-to-position for the watermark anchor.

State machine:
    IDLE     --down-->         DRAGGING   (commit anchor from the event)
    DRAGGING --move-->         DRAGGING   (commit anchor from the event)
    DRAGGING --up / leave-->   IDLE       (no commit)
    IDLE     --move-->         IDLE       (ignored)

Coordinates are normalized against the rectangle the canvas frame is
actually displayed in (which may be scaled), never against the canvas's
logical pixel size.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .state import CompositionState, clamp


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class ViewRect:
    """On-screen rectangle of the displayed canvas, in widget coordinates."""
    left: float
    top: float
    width: float
    height: float

    def contains(self, x: float, y: float) -> bool:
        return (self.left <= x <= self.left + self.width
                and self.top <= y <= self.top + self.height)


@dataclass
class DragSession:
    """Exists only while the pointer button is held."""
    start_anchor: Tuple[float, float]
    commits: int = 0


def normalize_point(x: float, y: float, rect: ViewRect) -> Tuple[float, float]:
    """Map a pointer position to a clamped [0, 1] anchor."""
    nx = (x - rect.left) / rect.width if rect.width > 0 else 0.0
    ny = (y - rect.top) / rect.height if rect.height > 0 else 0.0
    return clamp(nx, 0.0, 1.0), clamp(ny, 0.0, 1.0)


class PointerController:
    """Interprets pointer events into anchor updates on a CompositionState."""

    def __init__(self, state: CompositionState):
        self._state = state
        self._session: Optional[DragSession] = None

    @property
    def drag_state(self) -> DragState:
        return DragState.DRAGGING if self._session is not None else DragState.IDLE

    @property
    def session(self) -> Optional[DragSession]:
        return self._session

    def _commit(self, x: float, y: float, rect: ViewRect):
        self._state.set_anchor(*normalize_point(x, y, rect))
        self._session.commits += 1

    def pointer_down(self, x: float, y: float, rect: ViewRect):
        self._session = DragSession(start_anchor=self._state.transform.anchor)
        self._commit(x, y, rect)

    def pointer_move(self, x: float, y: float, rect: ViewRect) -> bool:
        """Returns True if the move was committed."""
        if self._session is None:
            return False
        self._commit(x, y, rect)
        return True

    def pointer_up(self):
        self._session = None

    def pointer_leave(self):
        self._session = None
