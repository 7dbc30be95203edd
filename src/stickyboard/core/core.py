from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

import structlog

from stickyboard.config import Config
from stickyboard.core.debounce import KeyedDebouncer
from stickyboard.core.gateway import HttpGateway, PersistenceGateway

if TYPE_CHECKING:
    from stickyboard.core.modules.note.models import Note

logger = structlog.get_logger(__name__)

Notifier = Callable[[str], None]
Confirm = Callable[["Note"], bool | Awaitable[bool]]


def log_notifier(message: str) -> None:
    """Default notifier: no UI attached, so the message only reaches the log."""
    logger.warning("user_notification", message=message)


class Service:
    """Base class for services sharing the gateway and the debouncer."""

    def __init__(self, gateway: PersistenceGateway, debouncer: KeyedDebouncer) -> None:
        self.gateway = gateway
        self.debouncer = debouncer
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on startup."""

    async def on_stop(self) -> None:
        """Cleanup service on shutdown."""

    @property
    def core(self) -> Core:
        """Get the core context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    from stickyboard.core.modules.board.service import BoardService  # noqa: PLC0415
    from stickyboard.core.modules.checklist.service import ChecklistService  # noqa: PLC0415
    from stickyboard.core.modules.drag.service import DragService  # noqa: PLC0415

    board: BoardService
    checklist: ChecklistService
    drag: DragService

    def __init__(self, gateway: PersistenceGateway, debouncer: KeyedDebouncer) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        # Board first: the other services dispatch into it
        service_configs = [
            ("board", "stickyboard.core.modules.board.service", "BoardService"),
            ("checklist", "stickyboard.core.modules.checklist.service", "ChecklistService"),
            ("drag", "stickyboard.core.modules.drag.service", "DragService"),
        ]

        # Dynamically import and instantiate services
        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(gateway, debouncer)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        # Reverse order: dependents stop before the board
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, gateway, debouncer and all service instances."""

    config: Config
    gateway: PersistenceGateway
    debouncer: KeyedDebouncer
    services: Services

    def __init__(self, config: Config, gateway: PersistenceGateway | None = None, notifier: Notifier | None = None) -> None:
        """Initialize core with config and gateway, and auto-register services."""
        self.config = config
        self.gateway = gateway or HttpGateway(
            config.gateway_url,
            config.auth_token,
            action_prefix=config.action_prefix,
            timeout=config.request_timeout,
        )
        self.notifier = notifier or log_notifier
        self.debouncer = KeyedDebouncer()
        self.services = Services(self.gateway, self.debouncer)
        self.services.set_core(self)

    def notify(self, message: str) -> None:
        """Show a non-blocking message to the user."""
        self.notifier(message)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Persist settled state, stop services and close the gateway."""
        await self.debouncer.flush()
        await self.services.stop_all()
        await self.gateway.aclose()
