from collections.abc import Iterable

import structlog

from stickyboard.core.core import Service
from stickyboard.core.modules.board.events import (
    ChecklistItemAdded,
    ChecklistItemEdited,
    ChecklistItemRemoved,
    ChecklistItemToggled,
    ChecklistReordered,
)
from stickyboard.core.modules.checklist.models import Checklist, ChecklistItem

logger = structlog.get_logger(__name__)


class ChecklistService(Service):
    """Checklist operations of board notes.

    Each change goes through the board and schedules a debounced save of the
    whole checklist of that note.
    """

    def get_checklist(self, note_id: int) -> Checklist:
        return self.core.services.board.get_note(note_id).checklist

    async def add_item(self, note_id: int, text: str) -> ChecklistItem | None:
        """Append a task, return it, or None when the text is blank."""
        item_id = self.get_checklist(note_id).next_item_id()
        effects = await self.core.services.board.dispatch(ChecklistItemAdded(note_id=note_id, item_id=item_id, text=text))
        if not effects:
            return None
        return self.get_checklist(note_id).get_item(item_id)

    async def toggle_item(self, note_id: int, item_id: str) -> ChecklistItem:
        await self.core.services.board.dispatch(ChecklistItemToggled(note_id=note_id, item_id=item_id))
        return self._get_item(note_id, item_id)

    async def edit_item(self, note_id: int, item_id: str, text: str) -> ChecklistItem:
        """Commit an inline edit. Blank text keeps the original."""
        await self.core.services.board.dispatch(ChecklistItemEdited(note_id=note_id, item_id=item_id, text=text))
        return self._get_item(note_id, item_id)

    async def remove_item(self, note_id: int, item_id: str) -> None:
        await self.core.services.board.dispatch(ChecklistItemRemoved(note_id=note_id, item_id=item_id))
        logger.debug("checklist_item_removed", note_id=note_id, item_id=item_id)

    async def reorder_items(self, note_id: int, item_ids: Iterable[str]) -> list[ChecklistItem]:
        await self.core.services.board.dispatch(ChecklistReordered(note_id=note_id, item_ids=tuple(item_ids)))
        return list(self.get_checklist(note_id).items)

    def _get_item(self, note_id: int, item_id: str) -> ChecklistItem:
        item = self.get_checklist(note_id).get_item(item_id)
        if item is None:
            # Dispatch already rejected unknown items
            raise RuntimeError(f"Checklist item '{item_id}' vanished")
        return item
