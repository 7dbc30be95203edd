"""Pure board handlers: (state, event) -> (state, effects).

Handlers never touch the gateway. `BoardService` applies the returned state
and runs the effects.
"""

from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict

from stickyboard.core.modules.board.events import (
    BoardLoaded,
    ChecklistItemAdded,
    ChecklistItemEdited,
    ChecklistItemRemoved,
    ChecklistItemToggled,
    ChecklistReordered,
    ColorChanged,
    Effect,
    EffectKind,
    Event,
    MinimizeToggled,
    NoteCreated,
    NoteDeleted,
    NotesReordered,
    TitleChanged,
    VisibilityChanged,
)
from stickyboard.core.modules.checklist.models import Checklist
from stickyboard.core.modules.note.models import Note
from stickyboard.errors import NotFoundError, ValidationError


class BoardState(BaseModel):
    """Notes in display order."""

    model_config = ConfigDict(frozen=True)

    notes: tuple[Note, ...] = ()

    def get_note(self, note_id: int) -> Note | None:
        for note in self.notes:
            if note.id == note_id:
                return note
        return None

    def require_note(self, note_id: int) -> Note:
        note = self.get_note(note_id)
        if note is None:
            raise NotFoundError(f"Note '{note_id}' not found")
        return note

    def note_ids(self) -> list[int]:
        return [note.id for note in self.notes]


Result = tuple[BoardState, list[Effect]]
Handler = Callable[[BoardState, Any], Result]


def rank(notes: Iterable[Note]) -> tuple[Note, ...]:
    """Rewrite order indices as 1-based display positions."""
    return tuple(
        note if note.order == position else note.model_copy(update={"order": position}) for position, note in enumerate(notes, 1)
    )


def _replace_note(state: BoardState, note_id: int, **update: Any) -> BoardState:
    state.require_note(note_id)
    notes = tuple(note.model_copy(update=update) if note.id == note_id else note for note in state.notes)
    return state.model_copy(update={"notes": notes})


def _update_checklist(state: BoardState, note_id: int, change: Callable[[Checklist], Checklist]) -> Result:
    note = state.require_note(note_id)
    checklist = change(note.checklist)
    if checklist == note.checklist:
        return state, []
    return _replace_note(state, note_id, checklist=checklist), [Effect(kind=EffectKind.CHECKLIST, note_id=note_id)]


def on_board_loaded(state: BoardState, event: BoardLoaded) -> Result:
    ids = [note.id for note in event.notes]
    if len(ids) != len(set(ids)):
        raise ValidationError("Board contains duplicate note ids")
    notes = sorted(event.notes, key=lambda note: note.order)
    return state.model_copy(update={"notes": rank(notes)}), []


def on_note_created(state: BoardState, event: NoteCreated) -> Result:
    if state.get_note(event.note.id) is not None:
        raise ValidationError(f"Note '{event.note.id}' is already on the board")
    # Newest first
    notes = rank((event.note, *state.notes))
    return state.model_copy(update={"notes": notes}), [Effect(kind=EffectKind.ORDER)]


def on_note_deleted(state: BoardState, event: NoteDeleted) -> Result:
    state.require_note(event.note_id)
    notes = rank(note for note in state.notes if note.id != event.note_id)
    return state.model_copy(update={"notes": notes}), [Effect(kind=EffectKind.ORDER)]


def on_notes_reordered(state: BoardState, event: NotesReordered) -> Result:
    by_id = {note.id: note for note in state.notes}
    ordered: list[Note] = []
    for note_id in event.note_ids:
        note = by_id.pop(note_id, None)
        if note is not None:
            ordered.append(note)
    # Notes the caller did not list keep their relative order at the end
    ordered.extend(note for note in state.notes if note.id in by_id)
    return state.model_copy(update={"notes": rank(ordered)}), [Effect(kind=EffectKind.ORDER)]


def on_title_changed(state: BoardState, event: TitleChanged) -> Result:
    note = state.require_note(event.note_id)
    if not event.title.strip() or event.title == note.title:
        return state, []
    return _replace_note(state, event.note_id, title=event.title), [Effect(kind=EffectKind.TITLE, note_id=event.note_id)]


def on_color_changed(state: BoardState, event: ColorChanged) -> Result:
    state = _replace_note(state, event.note_id, color=event.color)
    return state, [Effect(kind=EffectKind.COLOR, note_id=event.note_id)]


def on_minimize_toggled(state: BoardState, event: MinimizeToggled) -> Result:
    note = state.require_note(event.note_id)
    state = _replace_note(state, event.note_id, minimized=not note.minimized)
    return state, [Effect(kind=EffectKind.MINIMIZED, note_id=event.note_id)]


def on_visibility_changed(state: BoardState, event: VisibilityChanged) -> Result:
    state = _replace_note(state, event.note_id, visibility=event.visibility)
    return state, [Effect(kind=EffectKind.VISIBILITY, note_id=event.note_id)]


def on_checklist_item_added(state: BoardState, event: ChecklistItemAdded) -> Result:
    return _update_checklist(state, event.note_id, lambda checklist: checklist.add_item(event.text, event.item_id))


def on_checklist_item_toggled(state: BoardState, event: ChecklistItemToggled) -> Result:
    return _update_checklist(state, event.note_id, lambda checklist: checklist.toggle_item(event.item_id))


def on_checklist_item_edited(state: BoardState, event: ChecklistItemEdited) -> Result:
    return _update_checklist(state, event.note_id, lambda checklist: checklist.edit_item(event.item_id, event.text))


def on_checklist_item_removed(state: BoardState, event: ChecklistItemRemoved) -> Result:
    return _update_checklist(state, event.note_id, lambda checklist: checklist.remove_item(event.item_id))


def on_checklist_reordered(state: BoardState, event: ChecklistReordered) -> Result:
    note = state.require_note(event.note_id)
    state, _ = _update_checklist(state, event.note_id, lambda checklist: checklist.reorder_items(event.item_ids))
    # A settled drag is always saved, even when it ends where it started
    return state, [Effect(kind=EffectKind.CHECKLIST, note_id=note.id)]


HANDLERS: dict[type[Event], Handler] = {
    BoardLoaded: on_board_loaded,
    NoteCreated: on_note_created,
    NoteDeleted: on_note_deleted,
    NotesReordered: on_notes_reordered,
    TitleChanged: on_title_changed,
    ColorChanged: on_color_changed,
    MinimizeToggled: on_minimize_toggled,
    VisibilityChanged: on_visibility_changed,
    ChecklistItemAdded: on_checklist_item_added,
    ChecklistItemToggled: on_checklist_item_toggled,
    ChecklistItemEdited: on_checklist_item_edited,
    ChecklistItemRemoved: on_checklist_item_removed,
    ChecklistReordered: on_checklist_reordered,
}


def dispatch(state: BoardState, event: Event) -> Result:
    """Apply one event to the board."""
    handler = HANDLERS.get(type(event))
    if handler is None:
        raise ValidationError(f"No handler for event '{type(event).__name__}'")
    return handler(state, event)
