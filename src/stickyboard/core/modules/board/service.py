import asyncio
import contextlib
import inspect
from collections.abc import Iterable
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from stickyboard.core.core import Confirm, Service
from stickyboard.core.debounce import KeyedDebouncer
from stickyboard.core.gateway import GatewayAction, PersistenceGateway
from stickyboard.core.modules.board.dispatch import BoardState
from stickyboard.core.modules.board.dispatch import dispatch as apply_event
from stickyboard.core.modules.board.events import (
    BoardLoaded,
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
from stickyboard.core.modules.note.models import Note, Visibility
from stickyboard.errors import GatewayError

logger = structlog.get_logger(__name__)

# Shown to the user when a save of this kind fails
FAILURE_MESSAGES = {
    EffectKind.ORDER: "Unable to save note order.",
    EffectKind.TITLE: "Unable to save note title.",
    EffectKind.COLOR: "Unable to save note color.",
    EffectKind.CHECKLIST: "Unable to save checklist.",
    EffectKind.MINIMIZED: "Unable to save collapsed state.",
    EffectKind.VISIBILITY: "Unable to save note visibility.",
}


class BoardService(Service):
    """Owns the notes of the board in display order and persists every change.

    State changes are applied first (optimistic) and never rolled back; only
    add and delete wait for the gateway before touching the board. Saves that
    fail are remembered and sent again by `reconcile`.
    """

    def __init__(self, gateway: PersistenceGateway, debouncer: KeyedDebouncer) -> None:
        super().__init__(gateway, debouncer)
        self._state = BoardState()
        self._unsynced: dict[str, Effect] = {}
        self._reconcile_task: asyncio.Task[None] | None = None

    async def on_start(self) -> None:
        """Start the reconcile loop."""
        interval = self.core.config.reconcile_interval
        if interval > 0:
            self._reconcile_task = asyncio.create_task(self._reconcile_loop(interval))
        logger.debug("board_service_started", reconcile_interval=interval)

    async def on_stop(self) -> None:
        if self._reconcile_task is not None:
            self._reconcile_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconcile_task
            self._reconcile_task = None

    @property
    def state(self) -> BoardState:
        return self._state

    @property
    def notes(self) -> list[Note]:
        """Notes in display order."""
        return list(self._state.notes)

    @property
    def unsynced_keys(self) -> list[str]:
        """Keys of saves whose last attempt failed."""
        return list(self._unsynced)

    def get_note(self, note_id: int) -> Note:
        """Get note by id, raise NotFoundError if not on the board."""
        return self._state.require_note(note_id)

    def has_note(self, note_id: int) -> bool:
        return self._state.get_note(note_id) is not None

    def load(self, notes: Iterable[Note]) -> None:
        """Replace the board with notes already known to the server."""
        self._state, _ = apply_event(self._state, BoardLoaded(notes=tuple(notes)))
        self._unsynced.clear()
        logger.debug("board_loaded", note_count=len(self._state.notes))

    async def dispatch(self, event: Event) -> list[Effect]:
        """Apply an event to the board, then persist what it changed."""
        self._state, effects = apply_event(self._state, event)
        for effect in effects:
            delay = self._debounce_delay(effect.kind)
            if delay is None:
                await self._persist(effect)
            else:
                self.debouncer.schedule(effect.key, delay, lambda effect=effect: self._persist(effect))
        return effects

    async def add_note(self) -> Note | None:
        """Create a note on the server and put it at the top of the board.

        Returns None, leaving the board untouched, when the server does not
        confirm the note.
        """
        try:
            data = await self.gateway.call(GatewayAction.ADD)
            note = Note.model_validate(data)
        except GatewayError as e:
            logger.warning("note_create_failed", error=str(e))
            self.core.notify("Unable to add note.")
            return None
        except PydanticValidationError as e:
            logger.warning("note_create_invalid_payload", error=str(e))
            self.core.notify("Unable to add note (server returned invalid data).")
            return None

        if self.has_note(note.id):
            logger.warning("note_create_duplicate", note_id=note.id)
            self.core.notify("Unable to add note (server returned invalid data).")
            return None

        await self.dispatch(NoteCreated(note=note))
        logger.info("note_created", note_id=note.id)
        return self.get_note(note.id)

    async def delete_note(self, note_id: int, confirm: Confirm) -> bool:
        """Delete a note after explicit confirmation.

        The note leaves the board only once the server confirms the delete.
        Returns True when the note was deleted.
        """
        note = self.get_note(note_id)
        confirmed = confirm(note)
        if inspect.isawaitable(confirmed):
            confirmed = await confirmed
        if not confirmed:
            logger.debug("note_delete_declined", note_id=note_id)
            return False

        try:
            await self.gateway.call(GatewayAction.DELETE, note_id=note_id)
        except GatewayError as e:
            logger.warning("note_delete_failed", note_id=note_id, error=str(e))
            self.core.notify("Unable to delete note.")
            return False

        for kind in EffectKind:
            key = Effect(kind=kind, note_id=note_id).key
            self.debouncer.cancel(key)
            self._unsynced.pop(key, None)

        # Another delete of the same note may have finished while we waited
        if self.has_note(note_id):
            await self.dispatch(NoteDeleted(note_id=note_id))
        logger.info("note_deleted", note_id=note_id)
        return True

    async def reorder_notes(self, note_ids: Iterable[int]) -> list[Note]:
        """Set the display order; the full order is saved after the debounce window."""
        await self.dispatch(NotesReordered(note_ids=tuple(note_ids)))
        return self.notes

    async def set_color(self, note_id: int, color: str) -> Note:
        await self.dispatch(ColorChanged(note_id=note_id, color=color))
        return self.get_note(note_id)

    async def set_title(self, note_id: int, title: str) -> Note:
        """Update the title; only the settled value reaches the gateway."""
        await self.dispatch(TitleChanged(note_id=note_id, title=title))
        return self.get_note(note_id)

    async def toggle_minimize(self, note_id: int) -> Note:
        await self.dispatch(MinimizeToggled(note_id=note_id))
        return self.get_note(note_id)

    async def set_visibility(self, note_id: int, visibility: Visibility) -> Note:
        await self.dispatch(VisibilityChanged(note_id=note_id, visibility=visibility))
        return self.get_note(note_id)

    async def flush(self) -> None:
        """Send every pending debounced save now."""
        await self.debouncer.flush()

    async def reconcile(self) -> int:
        """Send failed saves again with current values, return how many still fail."""
        for key, effect in list(self._unsynced.items()):
            # A pending save of the same target will carry the current value
            if self.debouncer.is_pending(key):
                continue
            await self._persist(effect)
        if self._unsynced:
            logger.debug("board_unsynced", keys=self.unsynced_keys)
        return len(self._unsynced)

    def _debounce_delay(self, kind: EffectKind) -> float | None:
        config = self.core.config
        match kind:
            case EffectKind.ORDER:
                return config.order_debounce
            case EffectKind.TITLE:
                return config.title_debounce
            case EffectKind.CHECKLIST:
                return config.checklist_debounce
            case _:
                return None

    def _build_request(self, effect: Effect) -> tuple[GatewayAction, dict[str, Any]] | None:
        """Read the value to send from the board as it is now."""
        if effect.kind == EffectKind.ORDER:
            return GatewayAction.SAVE_ORDER, {"order": self._state.note_ids()}

        note = self._state.get_note(effect.note_id) if effect.note_id is not None else None
        if note is None:
            return None

        match effect.kind:
            case EffectKind.TITLE:
                return GatewayAction.SAVE_TITLE, {"note_id": note.id, "title": note.title}
            case EffectKind.COLOR:
                return GatewayAction.SAVE_COLOR, {"note_id": note.id, "color": note.color}
            case EffectKind.CHECKLIST:
                return GatewayAction.SAVE_CHECKLIST, {"note_id": note.id, "checklist": note.checklist.serialize()}
            case EffectKind.MINIMIZED:
                return GatewayAction.TOGGLE_MINIMIZE, {"note_id": note.id, "state": note.minimized}
            case EffectKind.VISIBILITY:
                return GatewayAction.SAVE_VISIBILITY, {"note_id": note.id, "visibility": str(note.visibility)}
        raise ValueError(f"Unknown effect kind '{effect.kind}'")

    async def _persist(self, effect: Effect) -> bool:
        request = self._build_request(effect)
        if request is None:
            # Target note is gone
            self._unsynced.pop(effect.key, None)
            return True

        action, params = request
        try:
            await self.gateway.call(action, **params)
        except GatewayError as e:
            first_failure = effect.key not in self._unsynced
            self._unsynced[effect.key] = effect
            logger.warning("save_failed", key=effect.key, action=str(action), error=str(e))
            if first_failure:
                self.core.notify(FAILURE_MESSAGES[effect.kind])
            return False

        if self._unsynced.pop(effect.key, None) is not None:
            logger.info("save_recovered", key=effect.key)
        return True

    async def _reconcile_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if not self._unsynced:
                continue
            try:
                await self.reconcile()
            except Exception:
                logger.exception("reconcile_error")
