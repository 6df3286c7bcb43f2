"""Error types raised by the Home Hub client.

Every failure reaches the caller as one of these; the protocol layer never
downgrades an error to a default value.
"""

from __future__ import annotations


class HubError(Exception):
    """Base exception for Home Hub client failures."""

    pass


class NotAuthenticated(HubError):
    """Raised when a call is attempted before a successful login.

    Nothing is sent to the device when this is raised.
    """

    pass


class TransportError(HubError):
    """Raised when the HTTP exchange with the hub fails.

    The request may or may not have reached the device, so the request
    counter on the hub side is unknown after this error.
    """

    pass


class MalformedResponse(HubError):
    """Raised when a reply body cannot be decoded into a reply envelope."""

    pass


class DeviceError(HubError):
    """A structured error code returned by the hub."""

    def __init__(self, code: int, description: str) -> None:
        super().__init__(description)
        self.code = code
        self.description = description

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, description={self.description!r})"


class SessionExpired(HubError):
    """The hub rejected the session id; a fresh login is required."""

    MESSAGE = "Invalid user session"

    def __init__(self, code: int, description: str = MESSAGE) -> None:
        super().__init__(self.MESSAGE)
        self.code = code
        self.description = description

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, description={self.description!r})"
