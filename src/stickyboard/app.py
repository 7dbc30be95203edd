from collections.abc import AsyncGenerator, Hashable, Iterable, Mapping
from contextlib import asynccontextmanager
from typing import Any

from stickyboard.config import Config
from stickyboard.core.core import Confirm, Core, Notifier
from stickyboard.core.gateway import PersistenceGateway
from stickyboard.core.modules.checklist.models import ChecklistItem
from stickyboard.core.modules.drag.engine import Box
from stickyboard.core.modules.note.models import COLOR_PRESETS, Note, Visibility
from stickyboard.errors import ValidationError
from stickyboard.logging import setup_logging
from stickyboard.utils import is_color


def decline(_: Note) -> bool:
    """Default confirmation: destructive actions need an explicit yes."""
    return False


class App:
    """Facade for all board operations, validates input before delegating to Core."""

    def __init__(
        self,
        config: Config,
        gateway: PersistenceGateway | None = None,
        notifier: Notifier | None = None,
        confirm: Confirm | None = None,
    ) -> None:
        setup_logging(config.debug)
        self._core = Core(config, gateway=gateway, notifier=notifier)
        self._confirm = confirm or decline

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Board ===
    def get_notes(self) -> list[Note]:
        """Notes in display order."""
        return self._core.services.board.notes

    def get_note(self, note_id: int) -> Note:
        return self._core.services.board.get_note(note_id)

    def load_board(self, notes: Iterable[Note | Mapping[str, Any]]) -> list[Note]:
        """Show notes already stored on the server (e.g. embedded in the page)."""
        self._core.services.board.load(note if isinstance(note, Note) else Note.model_validate(note) for note in notes)
        return self.get_notes()

    async def add_note(self) -> Note | None:
        """Create a note at the top of the board, None if the server refused."""
        return await self._core.services.board.add_note()

    async def delete_note(self, note_id: int, confirm: Confirm | None = None) -> bool:
        """Delete a note once the user confirms."""
        return await self._core.services.board.delete_note(note_id, confirm or self._confirm)

    async def reorder_notes(self, note_ids: Iterable[int]) -> list[Note]:
        return await self._core.services.board.reorder_notes(note_ids)

    def get_color_presets(self) -> list[str]:
        """Swatches offered by the color picker."""
        return list(COLOR_PRESETS)

    async def set_color(self, note_id: int, color: str) -> Note:
        color = color.strip()
        if not is_color(color):
            raise ValidationError(f"Invalid color '{color}'")
        return await self._core.services.board.set_color(note_id, color)

    async def set_title(self, note_id: int, title: str) -> Note:
        return await self._core.services.board.set_title(note_id, title)

    async def toggle_minimize(self, note_id: int) -> Note:
        return await self._core.services.board.toggle_minimize(note_id)

    async def set_visibility(self, note_id: int, visibility: str) -> Note:
        try:
            value = Visibility(visibility)
        except ValueError as e:
            raise ValidationError(f"Invalid visibility '{visibility}'") from e
        return await self._core.services.board.set_visibility(note_id, value)

    async def flush(self) -> None:
        """Send pending saves now instead of waiting for their debounce window."""
        await self._core.services.board.flush()

    async def reconcile(self) -> int:
        """Retry failed saves, return how many are still unsynced."""
        return await self._core.services.board.reconcile()

    # === Checklist ===
    async def add_item(self, note_id: int, text: str) -> ChecklistItem | None:
        return await self._core.services.checklist.add_item(note_id, text)

    async def toggle_item(self, note_id: int, item_id: str) -> ChecklistItem:
        return await self._core.services.checklist.toggle_item(note_id, item_id)

    async def edit_item(self, note_id: int, item_id: str, text: str) -> ChecklistItem:
        return await self._core.services.checklist.edit_item(note_id, item_id, text)

    async def remove_item(self, note_id: int, item_id: str) -> None:
        await self._core.services.checklist.remove_item(note_id, item_id)

    async def reorder_items(self, note_id: int, item_ids: Iterable[str]) -> list[ChecklistItem]:
        return await self._core.services.checklist.reorder_items(note_id, item_ids)

    # === Drag ===
    def start_note_drag(self, note_id: int) -> None:
        self._core.services.drag.start_note_drag(note_id)

    def start_item_drag(self, note_id: int, item_id: str) -> None:
        self._core.services.drag.start_item_drag(note_id, item_id)

    def drag_move(self, y: float, boxes: Mapping[Hashable, Box | Mapping[str, float]]) -> list[Any]:
        """Pointer moved during a drag; `boxes` maps sibling ids to their boxes."""
        try:
            parsed = {key: box if isinstance(box, Box) else Box.model_validate(box) for key, box in boxes.items()}
        except ValueError as e:
            raise ValidationError(f"Invalid sibling boxes: {e}") from e
        return self._core.services.drag.move(y, parsed)

    async def drag_end(self) -> list[Any]:
        return await self._core.services.drag.end()

    async def drag_cancel(self) -> list[Any]:
        return await self._core.services.drag.cancel()
