"""Persistence Gateway: the only channel to durable storage.

The gateway is a single RPC-style endpoint. Every call carries an action name,
a flat set of parameters and the auth token, and answers with a result
envelope ``{"success": bool, "data": ...}``.
"""

import json
from enum import StrEnum
from typing import Any, Protocol

import httpx
import structlog

from stickyboard.errors import MalformedResponseError, RejectedError, TransportError

logger = structlog.get_logger(__name__)


class GatewayAction(StrEnum):
    ADD = "add"
    DELETE = "delete"
    SAVE_TITLE = "save_title"
    SAVE_COLOR = "save_color"
    SAVE_CHECKLIST = "save_checklist"
    SAVE_ORDER = "save_order"
    TOGGLE_MINIMIZE = "toggle_minimize"
    SAVE_VISIBILITY = "save_visibility"


class PersistenceGateway(Protocol):
    async def call(self, action: GatewayAction, **params: Any) -> Any:
        """Run an action and return the success payload, or raise a GatewayError."""
        ...

    async def aclose(self) -> None: ...


def encode_params(params: dict[str, Any]) -> dict[str, str]:
    """Flatten parameters for a form body: strings as is, everything else as JSON."""
    return {key: value if isinstance(value, str) else json.dumps(value) for key, value in params.items()}


def parse_envelope(action: str, body: Any) -> Any:
    """Return `data` of a successful envelope, raise on anything else."""
    if not isinstance(body, dict) or not isinstance(body.get("success"), bool):
        raise MalformedResponseError(action, "response is not a result envelope")
    data = body.get("data")
    if not body["success"]:
        if isinstance(data, dict) and data.get("message"):
            reason = str(data["message"])
        elif isinstance(data, str) and data:
            reason = data
        else:
            reason = "request rejected"
        raise RejectedError(action, reason)
    return data


class HttpGateway:
    """Gateway over an admin-ajax style endpoint using form-encoded POST requests."""

    def __init__(
        self,
        url: str,
        auth_token: str,
        action_prefix: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._auth_token = auth_token
        self._action_prefix = action_prefix
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def call(self, action: GatewayAction, **params: Any) -> Any:
        wire_action = f"{self._action_prefix}{action}"
        form = encode_params(params)
        form["action"] = wire_action
        form["nonce"] = self._auth_token

        try:
            response = await self._client.post(self._url, data=form)
        except httpx.HTTPError as e:
            logger.debug("gateway_transport_error", action=wire_action, error=str(e))
            raise TransportError(wire_action, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise TransportError(wire_action, f"HTTP {response.status_code}", status=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponseError(wire_action, "response body is not JSON") from e

        data = parse_envelope(wire_action, body)
        logger.debug("gateway_call", action=wire_action, status=response.status_code)
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
