"""Session management for the Home Hub JSON API.

``HubSession`` is the only place that knows the login handshake and what to
do when the hub reports an invalid session. It does not retry anything: on
expiry the session is invalidated and ``SessionExpired`` is raised, leaving
the caller to decide whether a fresh login and a second attempt are safe.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .auth import Credentials, SessionState, generate_cnonce
from .envelope import (
    Action,
    ActionReply,
    ResponseEnvelope,
    decode_response,
    encode_request,
)
from .errors import DeviceError, MalformedResponse, NotAuthenticated, SessionExpired
from .transport import HTTPTransport

# Configure module logger
logger = logging.getLogger(__name__)

LOGIN_METHOD = "logIn"
LOGOUT_METHOD = "logOut"

# Session options the hub web UI sends with every login
DEFAULT_SESSION_OPTIONS: Dict[str, Any] = {
    "nss": [{"name": "gtw", "uri": "http://sagemcom.com/gateway-data"}],
    "language": "ident",
    "context-flags": {"get-content-name": True, "local-time": True},
    "capability-depth": 2,
    "capability-flags": {
        "name": True,
        "default-value": False,
        "restriction": True,
        "description": False,
    },
    "time-format": "ISO_8601",
}


class SessionStatus(Enum):
    """Login state of a session."""

    LOGGED_OUT = "logged_out"
    AUTHENTICATING = "authenticating"
    LOGGED_IN = "logged_in"


class HubSession:
    """Authenticated session with a Home Hub.

    All exchanges through one instance are serialized, since the hub tracks
    a single session with a strictly increasing request counter.

    Attributes:
        state: The session state shared by every request.
        transport: The HTTP transport requests are sent through.

    Example:
        >>> session = HubSession(Credentials("admin", "secret"),
        ...                      HTTPTransport("http://192.168.1.254"))
        >>> session.login()
        True
        >>> reply = session.call([Action("getValue", "Device/DeviceInfo/ModelName")])
    """

    def __init__(self, credentials: Credentials, transport: HTTPTransport) -> None:
        """Initialize a logged out session.

        Args:
            credentials: The user credentials.
            transport: Transport used for every exchange.
        """
        self.credentials = credentials
        self.state = SessionState(credentials)
        self.transport = transport
        self._authenticating = False
        self._lock = threading.RLock()

    @property
    def status(self) -> SessionStatus:
        """Get the current login state."""
        if self._authenticating:
            return SessionStatus.AUTHENTICATING
        if self.state.is_logged_in():
            return SessionStatus.LOGGED_IN
        return SessionStatus.LOGGED_OUT

    @property
    def lock(self) -> threading.RLock:
        """Lock serializing every exchange made through this session."""
        return self._lock

    def is_logged_in(self) -> bool:
        """Check whether the session holds a session id."""
        return self.state.is_logged_in()

    def _exchange(self, actions: Sequence[Action]) -> ResponseEnvelope:
        request_id = self.state.next_request_id()
        body = encode_request(self.state, request_id, actions, generate_cnonce())
        logger.debug(
            "Sending request %d with %d action(s): %s",
            request_id,
            len(actions),
            ", ".join(a.method for a in actions),
        )
        return decode_response(self.transport.send(body))

    def login(self) -> bool:
        """Authenticate with the hub.

        Returns:
            True once the hub has issued a session id and nonce.

        Raises:
            DeviceError: If the hub rejected the login.
            TransportError: If the exchange failed.
            MalformedResponse: If the reply could not be decoded or lacks
                a session id.
        """
        action = Action(
            LOGIN_METHOD,
            parameters={
                "user": self.state.username,
                "persistent": "true",
                "session-options": DEFAULT_SESSION_OPTIONS,
            },
        )

        with self._lock:
            self._authenticating = True
            try:
                reply = self._exchange([action])
                error = reply.find_error()
                if error is None:
                    login_reply = reply.action(0)
                    error = login_reply.first_error()
                if error is not None:
                    logger.warning(
                        "Login failed with error code %d: %s",
                        error.code,
                        error.description,
                    )
                    raise DeviceError(error.code, error.description)

                parameters = login_reply.parameters
                session_id = parameters.get("id")
                nonce = parameters.get("nonce")
                if session_id in (None, "") or nonce is None:
                    raise MalformedResponse("Login reply has no session id or nonce")

                self.state.apply_login_result(str(session_id), str(nonce))
            finally:
                self._authenticating = False

        logger.info("Login successful as %s", self.state.username)
        return True

    def call(self, actions: Sequence[Action]) -> ResponseEnvelope:
        """Send one or more actions in a single request.

        Args:
            actions: Actions to send; together they use one request id.

        Returns:
            The decoded reply. Per-action errors are left on the reply.

        Raises:
            NotAuthenticated: If there is no session; nothing is sent.
            SessionExpired: If the hub rejected the session id. The session
                is invalidated before this is raised.
            DeviceError: If the hub failed the request with any other code.
            TransportError: If the exchange failed.
            MalformedResponse: If the reply could not be decoded.
            ValueError: If no actions are given; nothing is sent.
        """
        if not actions:
            raise ValueError("A request needs at least one action")

        with self._lock:
            if not self.is_logged_in():
                raise NotAuthenticated("Not authenticated - call login() first")

            reply = self._exchange(actions)
            error = reply.find_error()
            if error is None:
                return reply

            if error.is_session_expired:
                logger.info("Session %s expired", self.state.session_id)
                self.state.invalidate()
                raise SessionExpired(error.code, error.description)
            raise DeviceError(error.code, error.description)

    def call_action(self, action: Action) -> ActionReply:
        """Send a single action and return its reply."""
        return self.call([action]).action(0)

    def call_many(self, actions: Sequence[Action]) -> List[ActionReply]:
        """Send a batch of actions and return their replies in request order."""
        reply = self.call(actions)
        return [reply.action(i) for i in range(len(actions))]

    def logout(self) -> None:
        """End the session on the hub and forget it locally."""
        with self._lock:
            if not self.is_logged_in():
                return
            try:
                self.call([Action(LOGOUT_METHOD)])
            finally:
                self.state.invalidate()
            logger.debug("Logged out from hub")

    def download(self, uri: Optional[str]) -> str:
        """Fetch a file the hub has prepared in response to an action."""
        if not uri:
            raise MalformedResponse("Hub did not return a download URI")
        return self.transport.download(uri)
