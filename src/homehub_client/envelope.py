"""Request and reply envelopes for the Home Hub JSON API.

Every call to the hub is a single JSON document posted to ``/cgi/json-req``.
The request carries the session id, the request counter, a client nonce and an
auth-key, plus an ordered list of actions. The reply carries a request-level
error and one entry per action, matched back to the request by action id.

Encoding and decoding here are pure: no I/O and no session mutation.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from .auth import SessionState
from .errors import DeviceError, MalformedResponse, SessionExpired

# Well-known reply codes
XMO_SUCCESS = 0
XMO_REQUEST_NO_ERR = 16777216
XMO_INVALID_SESSION_ERR = 16777219
XMO_NO_ERR = 16777238

SUCCESS_CODES = frozenset({XMO_SUCCESS, XMO_REQUEST_NO_ERR, XMO_NO_ERR})

# Session id the hub expects before one has been issued
ANONYMOUS_SESSION_ID = "0"


@dataclass
class Action:
    """A single remote call.

    Attributes:
        method: Remote method name, e.g. ``getValue``.
        xpath: Case-sensitive path of the object the call targets.
        parameters: Method parameters; shape depends on the method.
    """

    method: str
    xpath: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self, action_id: int) -> Dict[str, Any]:
        """Render the action for the wire with its position in the batch."""
        data: Dict[str, Any] = {"id": action_id, "method": self.method}
        if self.xpath:
            data["xpath"] = self.xpath
        if self.parameters:
            data["parameters"] = self.parameters
        return data


@dataclass
class ReplyError:
    """Error code and description attached to a reply or action."""

    code: int = XMO_SUCCESS
    description: str = ""

    @property
    def is_error(self) -> bool:
        """Check whether the code is anything other than success."""
        return self.code not in SUCCESS_CODES

    @property
    def is_session_expired(self) -> bool:
        """Check whether the code signals an invalid user session."""
        return self.code == XMO_INVALID_SESSION_ERR

    def to_exception(self) -> Union[DeviceError, SessionExpired]:
        """Build the exception matching this error code."""
        if self.is_session_expired:
            return SessionExpired(self.code, self.description)
        return DeviceError(self.code, self.description)


@dataclass
class Callback:
    """One result entry of an action reply."""

    uid: int = 0
    xpath: str = ""
    result: ReplyError = field(default_factory=ReplyError)
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionReply:
    """The hub's answer to one requested action."""

    id: int
    error: ReplyError = field(default_factory=ReplyError)
    callbacks: List[Callback] = field(default_factory=list)

    def first_error(self) -> Optional[ReplyError]:
        """Return the action error, or the first failed callback result."""
        if self.error.is_error:
            return self.error
        for callback in self.callbacks:
            if callback.result.is_error:
                return callback.result
        return None

    def raise_for_error(self) -> None:
        """Raise the matching exception if the action failed.

        Raises:
            SessionExpired: If the hub rejected the session.
            DeviceError: For any other non-success code.
        """
        error = self.first_error()
        if error is not None:
            raise error.to_exception()

    @property
    def parameters(self) -> Dict[str, Any]:
        """Get the parameters of the first callback, after checking errors."""
        self.raise_for_error()
        if not self.callbacks:
            return {}
        return self.callbacks[0].parameters

    @property
    def value(self) -> Any:
        """Get the ``value`` parameter of the first callback.

        Raises:
            MalformedResponse: If the reply carries no value.
        """
        parameters = self.parameters
        if "value" not in parameters:
            raise MalformedResponse(f"Action {self.id} reply has no value")
        return parameters["value"]


@dataclass
class ResponseEnvelope:
    """A decoded reply from the hub."""

    request_id: Optional[int] = None
    error: ReplyError = field(default_factory=ReplyError)
    actions: List[ActionReply] = field(default_factory=list)

    def action(self, action_id: int) -> ActionReply:
        """Get the reply for the action with the given id.

        Args:
            action_id: Position of the action in the request batch.

        Raises:
            MalformedResponse: If the reply has no entry for the action.
        """
        for action_reply in self.actions:
            if action_reply.id == action_id:
                return action_reply
        raise MalformedResponse(f"Reply has no result for action {action_id}")

    def find_error(self) -> Optional[ReplyError]:
        """Return the first error in the reply, preferring session expiry."""
        errors = [self.error] + [a.error for a in self.actions]
        for action_reply in self.actions:
            errors.extend(cb.result for cb in action_reply.callbacks)
        for error in errors:
            if error.is_session_expired:
                return error
        if self.error.is_error:
            return self.error
        return None


def encode_request(
    state: SessionState,
    request_id: int,
    actions: Sequence[Action],
    cnonce: int,
) -> bytes:
    """Serialize actions into a signed request envelope.

    Args:
        state: Session state providing session id, nonce and credentials.
        request_id: Counter value taken from the session for this request.
        actions: One or more actions, sent in order with ids 0..n-1.
        cnonce: Client nonce used to sign the request.

    Returns:
        UTF-8 encoded JSON document.

    Raises:
        ValueError: If no actions are given.
    """
    if not actions:
        raise ValueError("A request needs at least one action")

    request = {
        "id": request_id,
        "session-id": state.session_id or ANONYMOUS_SESSION_ID,
        "priority": False,
        "actions": [action.to_dict(i) for i, action in enumerate(actions)],
        "cnonce": cnonce,
        "auth-key": state.auth_key(request_id, cnonce),
    }
    return json.dumps({"request": request}, separators=(",", ":")).encode()


def _parse_error(data: Any) -> ReplyError:
    if data is None:
        return ReplyError()
    if not isinstance(data, dict):
        raise MalformedResponse(f"Unexpected error object: {data!r}")
    try:
        code = int(data.get("code", XMO_SUCCESS))
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"Invalid error code: {data.get('code')!r}") from e
    return ReplyError(code=code, description=str(data.get("description", "")))


def _parse_callback(data: Any) -> Callback:
    if not isinstance(data, dict):
        raise MalformedResponse(f"Unexpected callback: {data!r}")
    parameters = data.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise MalformedResponse(f"Unexpected callback parameters: {parameters!r}")
    return Callback(
        uid=data.get("uid", 0),
        xpath=data.get("xpath", ""),
        result=_parse_error(data.get("result")),
        parameters=parameters,
    )


def _parse_action(data: Any) -> ActionReply:
    if not isinstance(data, dict) or "id" not in data:
        raise MalformedResponse(f"Unexpected action reply: {data!r}")
    callbacks = data.get("callbacks") or []
    if not isinstance(callbacks, list):
        raise MalformedResponse(f"Unexpected callbacks: {callbacks!r}")
    return ActionReply(
        id=data["id"],
        error=_parse_error(data.get("error")),
        callbacks=[_parse_callback(cb) for cb in callbacks],
    )


def decode_response(body: Union[bytes, str]) -> ResponseEnvelope:
    """Parse a reply body from the hub.

    Args:
        body: Raw reply body.

    Returns:
        The decoded reply. Errors it carries are not raised here.

    Raises:
        MalformedResponse: If the body is not a reply envelope.
    """
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedResponse(f"Reply is not valid JSON: {e}") from e

    reply = data.get("reply") if isinstance(data, dict) else None
    if not isinstance(reply, dict):
        raise MalformedResponse("Reply has no 'reply' object")

    actions = reply.get("actions") or []
    if not isinstance(actions, list):
        raise MalformedResponse(f"Unexpected actions: {actions!r}")

    return ResponseEnvelope(
        request_id=reply.get("id"),
        error=_parse_error(reply.get("error")),
        actions=[_parse_action(a) for a in actions],
    )
