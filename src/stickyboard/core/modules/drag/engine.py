"""Drag-reorder arithmetic shared by the board and checklists.

While a drag is active, every pointer move recomputes where the dragged item
belongs from the vertical midpoints of its siblings. The item is inserted
before the first sibling whose midpoint is at or below the pointer; below all
of them it goes to the end.
"""

import inspect
from collections.abc import Callable, Hashable, Mapping, Sequence
from enum import StrEnum

import structlog
from pydantic import BaseModel, ConfigDict, Field

from stickyboard.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class Box(BaseModel):
    """On-screen bounding box of a sibling, vertical axis only."""

    model_config = ConfigDict(frozen=True)

    top: float
    height: float = Field(ge=0)

    @property
    def midpoint(self) -> float:
        return self.top + self.height / 2


def find_insertion_index(midpoints: Sequence[float], y: float) -> int:
    """Index to insert at, given sibling midpoints in document order.

    Ties insert before the sibling.
    """
    for index, midpoint in enumerate(midpoints):
        if y <= midpoint:
            return index
    return len(midpoints)


def move_item[K: Hashable](order: Sequence[K], dragged: K, boxes: Mapping[K, Box], y: float) -> list[K]:
    """Return `order` with `dragged` moved to the pointer position.

    Siblings without a box are not candidates; they stay next to the sibling
    that precedes them.
    """
    if dragged not in order:
        raise NotFoundError(f"Dragged item '{dragged}' is not in the list")

    siblings = [key for key in order if key != dragged]
    candidates = [key for key in siblings if key in boxes]
    index = find_insertion_index([boxes[key].midpoint for key in candidates], y)

    if index < len(candidates):
        position = siblings.index(candidates[index])
    else:
        position = len(siblings)
    return [*siblings[:position], dragged, *siblings[position:]]


def merge_order[K: Hashable](current: Sequence[K], dragged_order: Sequence[K]) -> list[K]:
    """Apply a settled drag order onto the list as it is now.

    Slots held by items the drag knew about are refilled in `dragged_order`.
    Items added since the drag started keep their slots; items removed since
    are dropped.
    """
    present = set(current)
    known = set(dragged_order)
    settled = iter([key for key in dragged_order if key in present])
    return [next(settled) if key in known else key for key in current]


class DragPhase(StrEnum):
    IDLE = "idle"
    DRAGGING = "dragging"
    SETTLED = "settled"


class DragSession[K: Hashable]:
    """One drag gesture over an ordered list.

    idle -> dragging (start) -> dragging (move, repeated) -> settled (end or
    cancel) -> idle. Ending and cancelling both keep the current visual order;
    there is no revert.
    """

    def __init__(self, order: Sequence[K], on_settle: Callable[[list[K]], object]) -> None:
        self._order: list[K] = list(order)
        self._on_settle = on_settle
        self._dragged: K | None = None
        self.phase = DragPhase.IDLE

    @property
    def order(self) -> list[K]:
        """Current visual order."""
        return list(self._order)

    @property
    def dragged(self) -> K | None:
        return self._dragged

    def start(self, item: K) -> None:
        if self.phase != DragPhase.IDLE:
            raise ValidationError(f"Cannot start a drag while {self.phase}")
        if item not in self._order:
            raise NotFoundError(f"Dragged item '{item}' is not in the list")
        self._dragged = item
        self.phase = DragPhase.DRAGGING
        logger.debug("drag_started", item=item)

    def move(self, y: float, boxes: Mapping[K, Box]) -> list[K]:
        """Reposition the dragged item for the current pointer y."""
        if self.phase != DragPhase.DRAGGING or self._dragged is None:
            raise ValidationError("No drag in progress")
        self._order = move_item(self._order, self._dragged, boxes, y)
        return self.order

    async def end(self) -> list[K]:
        """Drop: hand the current order to the owner."""
        return await self._settle()

    async def cancel(self) -> list[K]:
        """Abort: same as a drop at the current position."""
        return await self._settle()

    async def _settle(self) -> list[K]:
        if self.phase != DragPhase.DRAGGING:
            raise ValidationError("No drag in progress")
        self.phase = DragPhase.SETTLED
        order = self.order
        logger.debug("drag_settled", item=self._dragged, order=order)
        try:
            result = self._on_settle(order)
            if inspect.isawaitable(result):
                await result
        finally:
            self._dragged = None
            self.phase = DragPhase.IDLE
        return order
