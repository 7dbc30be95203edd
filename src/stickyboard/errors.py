from abc import ABC


class UserError(ABC, Exception):
    """Base class for caller-facing errors.

    All errors that inherit from UserError describe a mistake in the request
    itself (unknown note, invalid value) and can be shown to the user as is.
    """


class NotFoundError(UserError):
    """Raised when a requested note or checklist item is not on the board."""

    def __init__(self, message: str = "Note not found") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class GatewayError(Exception):
    """Base class for persistence failures.

    The board treats every subclass the same way: the failure is logged and
    reported through the notifier, and the triggering action can be retried.
    """

    def __init__(self, action: str, reason: str) -> None:
        super().__init__(f"{action}: {reason}")
        self.action = action
        self.reason = reason


class TransportError(GatewayError):
    """Raised when the gateway is unreachable or answers with a non-success status."""

    def __init__(self, action: str, reason: str, status: int | None = None) -> None:
        super().__init__(action, reason)
        self.status = status


class MalformedResponseError(GatewayError):
    """Raised when the response body is not a valid result envelope."""


class RejectedError(GatewayError):
    """Raised when the gateway answers with success=false."""
