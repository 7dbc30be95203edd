"""Checklist sub-model owned by a single note."""

import json
from collections.abc import Callable, Iterable
from typing import Any, Self

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from stickyboard.errors import NotFoundError
from stickyboard.utils import new_token

logger = structlog.get_logger(__name__)


class ChecklistItem(BaseModel):
    """One task line of a note."""

    model_config = ConfigDict(frozen=True)

    id: str  # Unique within the parent note only
    text: str
    completed: bool = False


class Checklist(BaseModel):
    """Ordered task list. Display order is the persisted order.

    Every operation returns a new Checklist; operations that would leave an
    item blank, or that receive blank text, return the checklist unchanged.
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[ChecklistItem, ...] = ()

    def get_item(self, item_id: str) -> ChecklistItem | None:
        """Get item by id."""
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]

    def next_item_id(self) -> str:
        """Generate an id not used by any item of this checklist."""
        used = set(self.item_ids())
        while True:
            item_id = new_token()
            if item_id not in used:
                return item_id

    def add_item(self, text: str, item_id: str | None = None) -> Self:
        """Append a new uncompleted item. Blank text is ignored."""
        text = text.strip()
        if not text:
            return self
        if item_id is None or self.get_item(item_id) is not None:
            item_id = self.next_item_id()
        return self.model_copy(update={"items": (*self.items, ChecklistItem(id=item_id, text=text))})

    def toggle_item(self, item_id: str) -> Self:
        return self._replace(item_id, lambda item: item.model_copy(update={"completed": not item.completed}))

    def edit_item(self, item_id: str, text: str) -> Self:
        """Replace item text. Blank text keeps the original."""
        text = text.strip()
        if not text:
            self._require(item_id)
            return self
        return self._replace(item_id, lambda item: item.model_copy(update={"text": text}))

    def remove_item(self, item_id: str) -> Self:
        self._require(item_id)
        return self.model_copy(update={"items": tuple(item for item in self.items if item.id != item_id)})

    def reorder_items(self, item_ids: Iterable[str]) -> Self:
        """Put items in the given order.

        Unknown ids are ignored, duplicates keep their first position, and items
        missing from `item_ids` follow the listed ones in their current order.
        """
        by_id = {item.id: item for item in self.items}
        ordered: list[ChecklistItem] = []
        for item_id in item_ids:
            item = by_id.pop(item_id, None)
            if item is not None:
                ordered.append(item)
        ordered.extend(item for item in self.items if item.id in by_id)
        return self.model_copy(update={"items": tuple(ordered)})

    def serialize(self) -> list[dict[str, Any]]:
        """Records in display order, as persisted by the gateway."""
        return [item.model_dump() for item in self.items]

    @classmethod
    def deserialize(cls, raw: Any) -> Self:
        """Build a checklist from its persisted form.

        Accepts a list of records or a JSON string holding one. Anything that is
        not an array gives an empty checklist; records that are not objects or
        have blank text are dropped, missing or repeated ids are regenerated.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str | bytes):
            try:
                raw = json.loads(raw) if raw else []
            except ValueError:
                logger.warning("checklist_invalid_json")
                return cls()
        if not isinstance(raw, list | tuple):
            return cls()

        checklist = cls()
        for record in raw:
            if isinstance(record, ChecklistItem):
                record = record.model_dump()
            if not isinstance(record, dict):
                continue
            try:
                item = ChecklistItem(
                    id=str(record.get("id") or ""),
                    text=str(record.get("text") or "").strip(),
                    completed=record.get("completed") or False,
                )
            except PydanticValidationError:
                logger.warning("checklist_item_invalid", record=record)
                continue
            if not item.text:
                continue
            if not item.id or checklist.get_item(item.id) is not None:
                item = item.model_copy(update={"id": checklist.next_item_id()})
            checklist = checklist.model_copy(update={"items": (*checklist.items, item)})
        return checklist

    def _require(self, item_id: str) -> ChecklistItem:
        item = self.get_item(item_id)
        if item is None:
            raise NotFoundError(f"Checklist item '{item_id}' not found")
        return item

    def _replace(self, item_id: str, change: Callable[[ChecklistItem], ChecklistItem]) -> Self:
        self._require(item_id)
        items = tuple(change(item) if item.id == item_id else item for item in self.items)
        return self.model_copy(update={"items": items})
