"""Tests for input validation in the App facade."""

import pytest

from stickyboard.app import App
from stickyboard.core.gateway import GatewayAction
from stickyboard.errors import NotFoundError, ValidationError
from stickyboard.utils import is_color


class TestValidation:
    async def test_invalid_color_is_rejected(self, app, gateway, board_notes):
        app.load_board(board_notes)

        with pytest.raises(ValidationError):
            await app.set_color(1, "url(javascript:alert(1))")
        assert gateway.calls == []
        assert app.get_note(1).color == "#FFF9C4"

    async def test_color_is_trimmed(self, app, gateway, board_notes):
        app.load_board(board_notes)

        note = await app.set_color(1, " #fff ")
        assert note.color == "#fff"

    async def test_invalid_visibility_is_rejected(self, app, gateway, board_notes):
        app.load_board(board_notes)

        with pytest.raises(ValidationError):
            await app.set_visibility(1, "invalid_value")
        assert app.get_note(1).visibility == "only_me"
        assert gateway.calls_for(GatewayAction.SAVE_VISIBILITY) == []

    async def test_unknown_note(self, app):
        with pytest.raises(NotFoundError):
            await app.set_title(1, "x")
        with pytest.raises(NotFoundError):
            app.get_note(1)


class TestDefaults:
    async def test_delete_declined_without_confirmation(self, config, gateway, board_notes):
        """Test that deletes never proceed without an explicit confirmation."""
        app = App(config, gateway=gateway)
        async with app.lifespan():
            app.load_board(board_notes)
            assert await app.delete_note(1) is False
            assert gateway.calls_for(GatewayAction.DELETE) == []

    def test_load_board_accepts_payloads(self, config, gateway, board_notes):
        app = App(config, gateway=gateway)

        notes = app.load_board(board_notes)

        assert [note.title for note in notes] == ["Groceries", "Release", "Ideas"]
        assert notes[0].checklist.get_item("a1").completed is False
        assert notes[2].visibility == "all_admins"

    def test_color_presets_are_valid_colors(self, config, gateway):
        presets = App(config, gateway=gateway).get_color_presets()

        assert presets[0] == "#FFF9C4"
        assert len(presets) == len(set(presets)) == 10
        assert all(is_color(color) for color in presets)
