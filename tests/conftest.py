import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from notegate.app import create_app
from notegate.auth.passwords import PasswordHasher
from notegate.auth.resolver import SessionResolver
from notegate.auth.service import AuthService
from notegate.auth.session import SessionSealer
from notegate.auth.users import CredentialStore, open_engine
from notegate.config import Settings

PASSWORD = "correct horse battery staple"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Open registration, cheap hashing, a throwaway SQLite file."""
    return Settings(
        secret_key="test-secret-" + "x" * 40,
        registration_enabled=True,
        db_path=str(tmp_path / "users.sqlite"),
        hash_time_cost=1,
        hash_memory_cost=8,
        hash_parallelism=1,
    )


@pytest.fixture()
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )


@pytest.fixture()
def store(settings: Settings) -> CredentialStore:
    s = CredentialStore(open_engine(settings.db_path))
    s.create_schema()
    return s


@pytest.fixture()
def sealer(settings: Settings) -> SessionSealer:
    return SessionSealer(settings.secret_key, max_age=settings.session_max_age)


@pytest.fixture()
def resolver(sealer: SessionSealer, store: CredentialStore) -> SessionResolver:
    return SessionResolver(sealer, store)


@pytest.fixture()
def service(store, hasher, sealer, settings) -> AuthService:
    return AuthService(store, hasher, sealer, settings)


@pytest.fixture()
def alice(service):
    return service.register("alice", PASSWORD)


@pytest.fixture()
def app(settings, store, hasher):
    return create_app(settings, store=store, hasher=hasher)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def logged_in(client, alice, settings):
    """Client holding a valid session cookie for alice."""
    r = client.post(
        "/login",
        data={"username": "alice", "password": PASSWORD},
        follow_redirects=False,
    )
    assert r.status_code == 303, r.text
    assert client.cookies.get(settings.cookie_name)
    return client
