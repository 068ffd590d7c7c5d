from conftest import PASSWORD

from notegate.auth.identity import (
    ABSENT,
    NO_IDENTITY,
    STORE_ERROR,
    UNKNOWN_USER,
    UNREADABLE,
    Identity,
)
from notegate.auth.resolver import SessionResolver
from notegate.auth.session import SessionData


def test_register_login_resolve(service, resolver):
    service.register("alice", PASSWORD)
    token = service.login("alice", PASSWORD)
    identity = resolver.resolve(token)
    assert isinstance(identity, Identity)
    assert identity.username == "alice"


def test_no_token(resolver):
    assert resolver.resolve(None) is ABSENT
    assert not ABSENT.clear_session


def test_tampered_token_fails_closed(service, resolver, alice):
    token = service.login("alice", PASSWORD)
    bob = service.register("bob-the-builder", PASSWORD)
    for i, ch in enumerate(token):
        for bit in range(7):
            flipped = chr(ord(ch) ^ (1 << bit))
            result = resolver.resolve(token[:i] + flipped + token[i + 1:])
            # Either rejected, or (trailing base64 bits) still exactly alice.
            assert result.id == alice.id if result else True
            assert getattr(result, "id", None) != bob.id
    middle = len(token) // 3
    swapped = "A" if token[middle] != "A" else "B"
    result = resolver.resolve(token[:middle] + swapped + token[middle + 1:])
    assert not result
    assert result.reason == UNREADABLE
    assert result.clear_session


def test_deleted_user_is_revoked(service, resolver, store, sealer, alice):
    token = service.login("alice", PASSWORD)
    store.delete_user(alice.id)
    assert sealer.unseal(token).id == alice.id
    result = resolver.resolve(token)
    assert not result
    assert result.reason == UNKNOWN_USER
    assert result.clear_session


def test_username_comes_from_store_not_token(service, resolver, store, alice):
    token = service.login("alice", PASSWORD)
    store.change_username(alice.id, "alicia")
    assert resolver.resolve(token).username == "alicia"


def test_logged_out_token_has_no_identity(resolver, sealer):
    result = resolver.resolve(sealer.seal(SessionData(theme="dark")))
    assert not result
    assert result.reason == NO_IDENTITY
    assert not result.clear_session


def test_malformed_id_skips_store(sealer):
    class ExplodingStore:
        def find_by_id(self, user_id):
            raise AssertionError("store should not be consulted")

    resolver = SessionResolver(sealer, ExplodingStore())
    result = resolver.resolve(sealer.seal(SessionData(id="1")))
    assert not result
    assert result.reason == UNKNOWN_USER


def test_store_failure_fails_closed(sealer, caplog):
    class BrokenStore:
        def find_by_id(self, user_id):
            raise RuntimeError("disk on fire")

    resolver = SessionResolver(sealer, BrokenStore())
    result = resolver.resolve(sealer.seal(SessionData(id="ab" * 16)))
    assert not result
    assert result.reason == STORE_ERROR
    assert result.clear_session
    assert "disk on fire" in caplog.text
