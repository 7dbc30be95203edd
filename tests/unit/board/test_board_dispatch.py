"""Tests for the pure board handlers."""

import pytest

from stickyboard.core.modules.board.dispatch import BoardState, dispatch, rank
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
    MinimizeToggled,
    NoteCreated,
    NoteDeleted,
    NotesReordered,
    TitleChanged,
    VisibilityChanged,
)
from stickyboard.core.modules.note.models import Note, Visibility
from stickyboard.errors import NotFoundError, ValidationError

ORDER = Effect(kind=EffectKind.ORDER)


@pytest.fixture
def state():
    notes = (Note(id=1, title="One"), Note(id=2, title="Two"), Note(id=3, title="Three"))
    return BoardState(notes=rank(notes))


def orders(state):
    return [(note.id, note.order) for note in state.notes]


class TestStructuralEvents:
    """Tests for load, create, delete and reorder."""

    def test_load_sorts_by_order_and_ranks(self):
        """Test that loaded notes are sorted by order and re-ranked from 1."""
        notes = (Note(id=5, order=30), Note(id=6, order=10), Note(id=7, order=20))
        state, effects = dispatch(BoardState(), BoardLoaded(notes=notes))

        assert orders(state) == [(6, 1), (7, 2), (5, 3)]
        assert effects == []

    def test_load_rejects_duplicate_ids(self):
        with pytest.raises(ValidationError):
            dispatch(BoardState(), BoardLoaded(notes=(Note(id=1), Note(id=1))))

    def test_created_note_goes_first(self, state):
        """Test newest-first insertion and an order save."""
        new_state, effects = dispatch(state, NoteCreated(note=Note(id=9)))

        assert orders(new_state) == [(9, 1), (1, 2), (2, 3), (3, 4)]
        assert effects == [ORDER]

    def test_create_duplicate_rejected(self, state):
        with pytest.raises(ValidationError):
            dispatch(state, NoteCreated(note=Note(id=2)))

    def test_delete_reranks(self, state):
        new_state, effects = dispatch(state, NoteDeleted(note_id=1))

        assert orders(new_state) == [(2, 1), (3, 2)]
        assert effects == [ORDER]

    def test_delete_unknown(self, state):
        with pytest.raises(NotFoundError):
            dispatch(state, NoteDeleted(note_id=99))

    def test_reorder_assigns_one_based_positions(self, state):
        new_state, effects = dispatch(state, NotesReordered(note_ids=(3, 1, 2)))

        assert orders(new_state) == [(3, 1), (1, 2), (2, 3)]
        assert effects == [ORDER]

    def test_reorder_ignores_unknown_and_duplicates(self, state):
        """Test that unknown ids are skipped, repeats keep the first, missing notes go last."""
        new_state, _ = dispatch(state, NotesReordered(note_ids=(3, 99, 3)))
        assert new_state.note_ids() == [3, 1, 2]

    def test_no_op_reorder_keeps_order(self, state):
        new_state, effects = dispatch(state, NotesReordered(note_ids=(1, 2, 3)))
        assert new_state == state
        assert effects == [ORDER]

    def test_state_is_not_mutated(self, state):
        dispatch(state, NotesReordered(note_ids=(3, 2, 1)))
        assert state.note_ids() == [1, 2, 3]


class TestViewStateEvents:
    """Tests for title, color, minimize and visibility."""

    def test_title(self, state):
        new_state, effects = dispatch(state, TitleChanged(note_id=2, title="Renamed"))

        assert new_state.require_note(2).title == "Renamed"
        assert effects == [Effect(kind=EffectKind.TITLE, note_id=2)]
        assert effects[0].key == "title:2"

    def test_blank_title_is_discarded(self, state):
        """Test that a blank title changes nothing and saves nothing."""
        new_state, effects = dispatch(state, TitleChanged(note_id=2, title="   "))
        assert new_state == state
        assert effects == []

    def test_color(self, state):
        new_state, effects = dispatch(state, ColorChanged(note_id=1, color="#E8F5E9"))

        assert new_state.require_note(1).color == "#E8F5E9"
        assert effects == [Effect(kind=EffectKind.COLOR, note_id=1)]

    def test_minimize_flips(self, state):
        once, effects = dispatch(state, MinimizeToggled(note_id=3))
        twice, _ = dispatch(once, MinimizeToggled(note_id=3))

        assert once.require_note(3).minimized is True
        assert twice.require_note(3).minimized is False
        assert effects == [Effect(kind=EffectKind.MINIMIZED, note_id=3)]

    def test_minimize_keeps_order(self, state):
        new_state, _ = dispatch(state, MinimizeToggled(note_id=3))
        assert orders(new_state) == orders(state)

    def test_visibility(self, state):
        new_state, effects = dispatch(state, VisibilityChanged(note_id=1, visibility=Visibility.ALL_ADMINS))

        assert new_state.require_note(1).visibility == Visibility.ALL_ADMINS
        assert effects[0].key == "visibility:1"

    def test_unknown_note(self, state):
        with pytest.raises(NotFoundError):
            dispatch(state, ColorChanged(note_id=99, color="#fff"))


class TestChecklistEvents:
    """Tests for checklist changes routed through the board."""

    def test_add_item(self, state):
        new_state, effects = dispatch(state, ChecklistItemAdded(note_id=1, item_id="x", text="Buy milk"))

        assert new_state.require_note(1).checklist.serialize() == [{"id": "x", "text": "Buy milk", "completed": False}]
        assert effects == [Effect(kind=EffectKind.CHECKLIST, note_id=1)]

    def test_blank_item_saves_nothing(self, state):
        new_state, effects = dispatch(state, ChecklistItemAdded(note_id=1, item_id="x", text="  "))
        assert new_state == state
        assert effects == []

    def test_toggle_edit_remove(self, state):
        state, _ = dispatch(state, ChecklistItemAdded(note_id=1, item_id="x", text="Buy milk"))
        state, _ = dispatch(state, ChecklistItemToggled(note_id=1, item_id="x"))
        state, _ = dispatch(state, ChecklistItemEdited(note_id=1, item_id="x", text="Buy oat milk"))
        assert state.require_note(1).checklist.serialize() == [{"id": "x", "text": "Buy oat milk", "completed": True}]

        state, effects = dispatch(state, ChecklistItemRemoved(note_id=1, item_id="x"))
        assert state.require_note(1).checklist.items == ()
        assert effects == [Effect(kind=EffectKind.CHECKLIST, note_id=1)]

    def test_blank_edit_saves_nothing(self, state):
        state, _ = dispatch(state, ChecklistItemAdded(note_id=1, item_id="x", text="Buy milk"))
        new_state, effects = dispatch(state, ChecklistItemEdited(note_id=1, item_id="x", text=""))
        assert new_state == state
        assert effects == []

    def test_reorder_always_saves(self, state):
        """Test that a settled checklist drag saves even when nothing moved."""
        state, _ = dispatch(state, ChecklistItemAdded(note_id=2, item_id="a", text="A"))
        state, _ = dispatch(state, ChecklistItemAdded(note_id=2, item_id="b", text="B"))

        moved, effects = dispatch(state, ChecklistReordered(note_id=2, item_ids=("b", "a")))
        assert moved.require_note(2).checklist.item_ids() == ["b", "a"]
        assert effects == [Effect(kind=EffectKind.CHECKLIST, note_id=2)]

        same, effects = dispatch(state, ChecklistReordered(note_id=2, item_ids=("a", "b")))
        assert same == state
        assert effects == [Effect(kind=EffectKind.CHECKLIST, note_id=2)]

    def test_unknown_item(self, state):
        with pytest.raises(NotFoundError):
            dispatch(state, ChecklistItemToggled(note_id=1, item_id="nope"))
