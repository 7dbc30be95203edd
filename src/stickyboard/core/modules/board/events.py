"""Board events and the persistence effects they produce."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from stickyboard.core.modules.note.models import Note, Visibility


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class BoardLoaded(Event):
    notes: tuple[Note, ...]


class NoteCreated(Event):
    note: Note


class NoteDeleted(Event):
    note_id: int


class NotesReordered(Event):
    note_ids: tuple[int, ...]


class TitleChanged(Event):
    note_id: int
    title: str


class ColorChanged(Event):
    note_id: int
    color: str


class MinimizeToggled(Event):
    note_id: int


class VisibilityChanged(Event):
    note_id: int
    visibility: Visibility


class ChecklistItemAdded(Event):
    note_id: int
    item_id: str
    text: str


class ChecklistItemToggled(Event):
    note_id: int
    item_id: str


class ChecklistItemEdited(Event):
    note_id: int
    item_id: str
    text: str


class ChecklistItemRemoved(Event):
    note_id: int
    item_id: str


class ChecklistReordered(Event):
    note_id: int
    item_ids: tuple[str, ...]


class EffectKind(StrEnum):
    ORDER = "order"
    TITLE = "title"
    COLOR = "color"
    CHECKLIST = "checklist"
    MINIMIZED = "minimized"
    VISIBILITY = "visibility"


class Effect(BaseModel):
    """A save the board owes the gateway.

    An effect names its target only; the value sent is read from the board
    when the save runs.
    """

    model_config = ConfigDict(frozen=True)

    kind: EffectKind
    note_id: int | None = None  # None for ORDER

    @property
    def key(self) -> str:
        """Debounce key; one pending save per key."""
        if self.note_id is None:
            return str(self.kind)
        return f"{self.kind}:{self.note_id}"
