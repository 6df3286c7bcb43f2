"""Tests for the session state and auth-key module."""

import hashlib
import threading

from homehub_client.auth import (
    MAX_CNONCE,
    Credentials,
    SessionState,
    compute_auth_key,
    generate_cnonce,
    md5_hex,
)


def _md5(value: str) -> str:
    return hashlib.md5(value.encode()).hexdigest()


class TestCredentials:
    """Tests for Credentials dataclass."""

    def test_creation(self) -> None:
        """Test credentials creation."""
        creds = Credentials("admin", "secret")
        assert creds.username == "admin"
        assert creds.password == "secret"

    def test_repr_hides_password(self) -> None:
        """Test the password never appears in repr."""
        assert "secret" not in repr(Credentials("admin", "secret"))


class TestAuthKey:
    """Tests for auth-key hashing."""

    def test_md5_hex(self) -> None:
        """Test MD5 helper against a known digest."""
        assert md5_hex("") == "d41d8cd98f00b204e9800998ecf8427e"

    def test_compute_auth_key(self) -> None:
        """Test auth-key follows the digest scheme."""
        ha1 = _md5("admin:2355345:" + _md5("passw0rd"))
        expected = _md5(f"{ha1}:7:12345:JSON:/cgi/json-req")
        assert compute_auth_key("admin", "passw0rd", "2355345", 7, 12345) == expected

    def test_auth_key_depends_on_request_id(self) -> None:
        """Test different request ids give different keys."""
        key1 = compute_auth_key("admin", "pw", "1", 1, 99)
        key2 = compute_auth_key("admin", "pw", "1", 2, 99)
        assert key1 != key2

    def test_nonce_is_not_parsed(self) -> None:
        """Test nonces that look numeric are used verbatim."""
        key1 = compute_auth_key("admin", "pw", "0042", 1, 99)
        key2 = compute_auth_key("admin", "pw", "42", 1, 99)
        assert key1 != key2

    def test_generate_cnonce_range(self) -> None:
        """Test cnonce stays within the hub's range."""
        for _ in range(50):
            assert 0 <= generate_cnonce() <= MAX_CNONCE


class TestSessionState:
    """Tests for SessionState class."""

    def test_init(self) -> None:
        """Test a new session is empty and logged out."""
        state = SessionState(Credentials("admin", "pw"))
        assert state.username == "admin"
        assert state.password == "pw"
        assert state.session_id == ""
        assert state.nonce == ""
        assert state.request_count == 0
        assert state.is_logged_in() is False

    def test_next_request_id_returns_then_increments(self) -> None:
        """Test the counter starts at 0 and grows by one."""
        state = SessionState(Credentials("admin", "pw"))
        assert [state.next_request_id() for _ in range(4)] == [0, 1, 2, 3]
        assert state.request_count == 4

    def test_apply_login_result(self) -> None:
        """Test login result marks the session logged in."""
        state = SessionState(Credentials("admin", "pw"))
        state.apply_login_result("987879", "2355345")
        assert state.session_id == "987879"
        assert state.nonce == "2355345"
        assert state.is_logged_in() is True

    def test_apply_empty_session_id(self) -> None:
        """Test an empty session id does not count as logged in."""
        state = SessionState(Credentials("admin", "pw"))
        state.apply_login_result("", "2355345")
        assert state.is_logged_in() is False

    def test_invalidate_keeps_nonce_and_credentials(self) -> None:
        """Test invalidate only clears the session id."""
        state = SessionState(Credentials("admin", "pw"))
        state.apply_login_result("987879", "2355345")
        state.next_request_id()
        state.invalidate()
        assert state.is_logged_in() is False
        assert state.session_id == ""
        assert state.nonce == "2355345"
        assert state.username == "admin"
        assert state.password == "pw"
        assert state.request_count == 1

    def test_auth_key_uses_session_nonce(self) -> None:
        """Test auth_key signs with the stored nonce."""
        state = SessionState(Credentials("admin", "pw"))
        state.apply_login_result("987879", "2355345")
        assert state.auth_key(3, 10) == compute_auth_key("admin", "pw", "2355345", 3, 10)

    def test_next_request_id_is_thread_safe(self) -> None:
        """Test concurrent callers never share a request id."""
        state = SessionState(Credentials("admin", "pw"))
        ids = []
        lock = threading.Lock()

        def worker() -> None:
            for _ in range(100):
                request_id = state.next_request_id()
                with lock:
                    ids.append(request_id)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(ids) == list(range(800))
