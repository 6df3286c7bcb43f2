"""Shared fixtures for the Home Hub client tests."""

import pytest

from homehub_client.hub_client import Hub

from hub_stub import NONCE, SESSION_ID, StubHub


@pytest.fixture
def stub() -> StubHub:
    """A stub hub with no queued replies."""
    return StubHub()


@pytest.fixture
def hub(stub: StubHub) -> Hub:
    """A Hub client talking to the stub, not logged in."""
    return Hub("http://hub.test", "admin", "passw0rd", transport=stub.transport)


@pytest.fixture
def logged_in_hub(hub: Hub) -> Hub:
    """A Hub client with an established session."""
    hub.session.state.apply_login_result(SESSION_ID, NONCE)
    return hub
