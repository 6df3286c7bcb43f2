"""Session and authentication state for the Home Hub.

The hub authenticates every request with a digest built from the user
credentials, the nonce issued at login, the request counter and a client
nonce (cnonce):

1. ha1 = MD5("<user>:<nonce>:" + MD5(password))
2. auth-key = MD5("<ha1>:<request id>:<cnonce>:JSON:/cgi/json-req")

Before login the session id is empty and the nonce is an empty string, so the
login request itself is signed with the same scheme.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass

from Crypto.Random import random

# Configure module logger
logger = logging.getLogger(__name__)

JSON_REQUEST_PATH = "/cgi/json-req"

# Largest cnonce the hub web UI generates
MAX_CNONCE = 2**31 - 1


@dataclass(frozen=True)
class Credentials:
    """User name and password supplied when the client is created."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


def md5_hex(value: str) -> str:
    """Return the lowercase hex MD5 digest of a string."""
    return hashlib.md5(value.encode()).hexdigest()


def generate_cnonce() -> int:
    """Generate a random client nonce for one request."""
    return random.randint(0, MAX_CNONCE)


def compute_auth_key(
    username: str,
    password: str,
    nonce: str,
    request_id: int,
    cnonce: int,
) -> str:
    """Compute the auth-key that signs one request envelope.

    Args:
        username: Hub user name.
        password: Plain text password.
        nonce: Nonce issued by the hub at login (empty before login).
        request_id: Request counter value carried by the envelope.
        cnonce: Client nonce carried by the envelope.

    Returns:
        The hexadecimal auth-key.
    """
    ha1 = md5_hex(f"{username}:{nonce}:{md5_hex(password)}")
    return md5_hex(f"{ha1}:{request_id}:{cnonce}:JSON:{JSON_REQUEST_PATH}")


class SessionState:
    """Per-client session state.

    Holds the user credentials, the session id and nonce issued by the hub,
    and the request counter. The counter only ever grows for the lifetime of
    the instance.

    Attributes:
        username: Hub user name.
        password: Hub password.
    """

    def __init__(self, credentials: Credentials) -> None:
        """Initialize an empty, logged out session.

        Args:
            credentials: The user credentials for this client.
        """
        self.username = credentials.username
        self.password = credentials.password
        self._session_id = ""
        self._nonce = ""
        self._request_count = 0
        self._lock = threading.Lock()

    @property
    def session_id(self) -> str:
        """Get the session id (empty until login succeeds)."""
        return self._session_id

    @property
    def nonce(self) -> str:
        """Get the nonce issued by the hub."""
        return self._nonce

    @property
    def request_count(self) -> int:
        """Get the value the next request will carry."""
        return self._request_count

    def next_request_id(self) -> int:
        """Return the request counter, then increment it.

        Must be called exactly once per outbound envelope, however many
        actions it carries.
        """
        with self._lock:
            request_id = self._request_count
            self._request_count += 1
            return request_id

    def apply_login_result(self, session_id: str, nonce: str) -> None:
        """Store the session id and nonce from a successful login reply.

        Args:
            session_id: Session id issued by the hub.
            nonce: Nonce issued by the hub.
        """
        with self._lock:
            self._session_id = session_id
            self._nonce = nonce
        logger.debug("Session established (logged in: %s)", self.is_logged_in())

    def invalidate(self) -> None:
        """Forget the session id so the next call must log in again."""
        with self._lock:
            self._session_id = ""
        logger.debug("Session invalidated")

    def is_logged_in(self) -> bool:
        """Check whether a session id is held."""
        return self._session_id != ""

    def auth_key(self, request_id: int, cnonce: int) -> str:
        """Compute the auth-key for a request signed with this session."""
        return compute_auth_key(
            self.username,
            self.password,
            self._nonce,
            request_id,
            cnonce,
        )
