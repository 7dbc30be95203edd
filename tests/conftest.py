"""Shared pytest fixtures."""

from typing import Any

import pytest

from stickyboard.app import App
from stickyboard.config import Config
from stickyboard.core.gateway import GatewayAction
from stickyboard.errors import GatewayError, TransportError


class FakeGateway:
    """In-memory gateway recording every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[GatewayAction, dict[str, Any]]] = []
        self.failures: dict[GatewayAction, GatewayError] = {}
        self.add_payload: Any = None  # Overrides the generated note when set
        self.closed = False
        self._next_id = 100

    def fail(self, action: GatewayAction, error: GatewayError | None = None) -> None:
        self.failures[action] = error or TransportError(str(action), "HTTP 500", status=500)

    def recover(self, action: GatewayAction) -> None:
        self.failures.pop(action, None)

    def calls_for(self, action: GatewayAction) -> list[dict[str, Any]]:
        return [params for called, params in self.calls if called == action]

    async def call(self, action: GatewayAction, **params: Any) -> Any:
        self.calls.append((action, params))
        if action in self.failures:
            raise self.failures[action]
        if action == GatewayAction.ADD:
            if self.add_payload is not None:
                return self.add_payload
            self._next_id += 1
            return {
                "id": self._next_id,
                "title": "Untitled Note",
                "color": "#FFF9C4",
                "checklist": [],
                "visibility": "only_me",
                "html": f'<div class="admin-note-card" data-note-id="{self._next_id}"></div>',
            }
        return None

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def config():
    """Config with short debounce windows and no reconcile loop."""
    return Config(
        gateway_url="http://gateway.test/wp-admin/admin-ajax.php",
        auth_token="nonce-123",
        order_debounce=0.01,
        title_debounce=0.01,
        checklist_debounce=0.01,
        reconcile_interval=0,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifications():
    """Messages shown to the user."""
    return []


@pytest.fixture
async def app(config, gateway, notifications):
    """Running app that confirms every delete."""
    app = App(config, gateway=gateway, notifier=notifications.append, confirm=lambda note: True)
    async with app.lifespan():
        yield app


@pytest.fixture
def board_notes():
    """Notes as embedded in a rendered board page."""
    return [
        {"id": 1, "title": "Groceries", "order": 1, "checklist": [{"id": "a1", "text": "Eggs", "completed": 0}]},
        {"id": 2, "title": "Release", "order": 2, "color": "#E1F5FE"},
        {"id": 3, "title": "Ideas", "order": 3, "visibility": "all_admins"},
    ]
