"""Client for the Home Hub management API.

This package signs in to a Home Hub, keeps its session, and wraps the hub's
JSON API calls as typed Python methods. An MCP (Model Context Protocol)
server exposes the same operations to AI assistants.

Example usage:
    >>> from homehub_client import Hub
    >>> hub = Hub('http://192.168.1.254', 'admin', 'my_password')
    >>> if hub.login():
    ...     devices = hub.connected_devices()
    ...     print(f"Found {len(devices)} devices")

For MCP server usage, run:
    $ homehub-mcp
"""

from .auth import Credentials, SessionState, compute_auth_key
from .config import ClientConfig
from .envelope import (
    Action,
    ActionReply,
    ResponseEnvelope,
    XMO_INVALID_SESSION_ERR,
    decode_response,
    encode_request,
)
from .errors import (
    DeviceError,
    HubError,
    MalformedResponse,
    NotAuthenticated,
    SessionExpired,
    TransportError,
)
from .hub_client import BandwidthUsage, HostDevice, Hub
from .session import HubSession, SessionStatus
from .transport import HTTPTransport

__version__ = "0.1.0"

__all__ = [
    # High-level client
    "Hub",
    "ClientConfig",
    # Protocol
    "HubSession",
    "SessionStatus",
    "SessionState",
    "Credentials",
    "HTTPTransport",
    "Action",
    "ActionReply",
    "ResponseEnvelope",
    "encode_request",
    "decode_response",
    "compute_auth_key",
    "XMO_INVALID_SESSION_ERR",
    # Data classes
    "HostDevice",
    "BandwidthUsage",
    # Exceptions
    "HubError",
    "NotAuthenticated",
    "SessionExpired",
    "DeviceError",
    "TransportError",
    "MalformedResponse",
]
