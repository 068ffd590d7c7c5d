import re

import pytest

from notegate.auth.users import CredentialStore, open_engine
from notegate.errors import AlreadyExists, NotFound, StoreUnavailable


def test_ids_are_random_hex(store):
    a = store.create_user("alice", "$argon2id$fake")
    b = store.create_user("bob", "$argon2id$fake")
    assert re.fullmatch(r"[0-9a-f]{32}", a.id)
    assert re.fullmatch(r"[0-9a-f]{32}", b.id)
    assert a.id != b.id


def test_reads_never_return_the_hash(store):
    u = store.create_user("alice", "$argon2id$fake")
    found = store.find_by_id(u.id)
    assert found.username == "alice"
    assert found.created_at is not None
    assert not hasattr(found, "pass_hash")
    assert store.find_by_username("alice") == found
    assert store.get_password_hash("alice") == "$argon2id$fake"
    assert store.get_password_hash("nobody") is None


def test_duplicate_username(store):
    store.create_user("alice", "h")
    with pytest.raises(AlreadyExists):
        store.create_user("alice", "h")


def test_username_is_case_sensitive(store):
    store.create_user("alice", "h")
    assert store.find_by_username("Alice") is None


def test_updates_and_delete(store):
    u = store.create_user("alice", "h1")
    store.change_username(u.id, "alicia")
    store.change_password_hash(u.id, "h2")
    assert store.get_password_hash("alicia") == "h2"
    store.delete_user(u.id)
    assert store.find_by_id(u.id) is None
    with pytest.raises(NotFound):
        store.delete_user(u.id)
    with pytest.raises(NotFound):
        store.change_password_hash(u.id, "h3")


def test_rename_into_taken_username(store):
    store.create_user("alice", "h")
    bob = store.create_user("bob", "h")
    with pytest.raises(AlreadyExists):
        store.change_username(bob.id, "alice")


def test_missing_schema_is_store_unavailable():
    store = CredentialStore(open_engine(":memory:"))
    with pytest.raises(StoreUnavailable):
        store.find_by_id("0" * 32)


def test_list_users(store):
    store.create_user("alice", "h")
    store.create_user("bob", "h")
    assert sorted(u.username for u in store.list_users()) == ["alice", "bob"]
