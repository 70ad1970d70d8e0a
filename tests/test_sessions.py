import pytest

from application.services.auth_service import AuthService
from domain.common.exceptions import UnauthorizedException
from infrastructure.sessions import InMemorySessionStore


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_session_expires_after_ttl():
    clock = FakeClock()
    store = InMemorySessionStore(ttl=60, clock=clock)
    token = store.create("admin")

    assert store.is_valid(token, "admin")
    clock.now += 61
    assert not store.is_valid(token, "admin")
    assert len(store) == 0


def test_sessions_are_scoped_and_revocable():
    store = InMemorySessionStore(ttl=60)
    token = store.create("upload")

    assert not store.is_valid(token, "admin")
    assert store.is_valid(token, "upload")
    assert store.revoke(token)
    assert not store.revoke(token)
    assert not store.is_valid(token, "upload")
    assert not store.is_valid(None, "upload")


def test_tokens_are_unique():
    store = InMemorySessionStore(ttl=60)
    assert len({store.create("admin") for _ in range(50)}) == 50


def test_login_requires_configured_password():
    auth = AuthService(InMemorySessionStore(ttl=60), admin_password=None)
    with pytest.raises(UnauthorizedException):
        auth.login("")


def test_login_and_logout():
    auth = AuthService(InMemorySessionStore(ttl=60), admin_password="s3cret")
    with pytest.raises(UnauthorizedException):
        auth.login("wrong")

    token = auth.login("s3cret")
    assert auth.is_admin(token)
    auth.logout(token)
    assert not auth.is_admin(token)


def test_upload_gate():
    open_auth = AuthService(InMemorySessionStore(ttl=60))
    assert not open_auth.gate_enabled
    open_auth.require_upload(None)
    assert open_auth.unlock("anything") is None

    gated = AuthService(InMemorySessionStore(ttl=60), upload_password="party")
    with pytest.raises(UnauthorizedException):
        gated.require_upload(None)
    with pytest.raises(UnauthorizedException):
        gated.unlock("nope")
    token = gated.unlock("party")
    gated.require_upload(token)
