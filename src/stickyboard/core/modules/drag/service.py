from collections.abc import Hashable, Mapping
from typing import Any

import structlog

from stickyboard.core.core import Service
from stickyboard.core.debounce import KeyedDebouncer
from stickyboard.core.gateway import PersistenceGateway
from stickyboard.core.modules.drag.engine import Box, DragSession, merge_order
from stickyboard.errors import ValidationError

logger = structlog.get_logger(__name__)


class DragService(Service):
    """Runs the single active drag gesture, on the board or inside one checklist."""

    def __init__(self, gateway: PersistenceGateway, debouncer: KeyedDebouncer) -> None:
        super().__init__(gateway, debouncer)
        self._session: DragSession[Any] | None = None

    @property
    def active(self) -> DragSession[Any] | None:
        return self._session

    def start_note_drag(self, note_id: int) -> DragSession[int]:
        """Start dragging a card; the settled order is saved as the board order."""
        board = self.core.services.board

        async def settle(note_ids: list[int]) -> None:
            # Cards added or deleted mid-drag keep the board's current layout
            await board.reorder_notes(merge_order(board.state.note_ids(), note_ids))

        session: DragSession[int] = DragSession(board.state.note_ids(), settle)
        return self._start(session, note_id)

    def start_item_drag(self, note_id: int, item_id: str) -> DragSession[str]:
        """Start dragging a task inside one note's checklist."""
        checklist = self.core.services.checklist

        async def settle(item_ids: list[str]) -> None:
            # The note may have been deleted mid-drag
            if self.core.services.board.has_note(note_id):
                current = checklist.get_checklist(note_id).item_ids()
                await checklist.reorder_items(note_id, merge_order(current, item_ids))

        session: DragSession[str] = DragSession(checklist.get_checklist(note_id).item_ids(), settle)
        return self._start(session, item_id)

    def move(self, y: float, boxes: Mapping[Hashable, Box]) -> list[Any]:
        """Pointer moved over the container; returns the new visual order."""
        return self._require_session().move(y, boxes)

    async def end(self) -> list[Any]:
        session = self._require_session()
        try:
            return await session.end()
        finally:
            self._session = None

    async def cancel(self) -> list[Any]:
        session = self._require_session()
        try:
            return await session.cancel()
        finally:
            self._session = None

    def _start[K: Hashable](self, session: DragSession[K], item: K) -> DragSession[K]:
        if self._session is not None:
            raise ValidationError("Another drag is already in progress")
        session.start(item)
        self._session = session
        return session

    def _require_session(self) -> DragSession[Any]:
        if self._session is None:
            raise ValidationError("No drag in progress")
        return self._session
