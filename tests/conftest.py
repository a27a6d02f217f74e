import datetime as _dt
import itertools
import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from quill.app import create_app
from quill.auth.users import CredentialStore
from quill.infra.db import Database
from quill.settings import Settings

ADMIN_USER = "admin"
ADMIN_PASSWORD = "correct horse battery staple"


@pytest.fixture(autouse=True)
def _ticking_clock(monkeypatch):
    """Every post_service.utc_now() call returns a strictly later timestamp."""
    from quill.services import post_service

    counter = itertools.count()
    base = _dt.datetime(2099, 1, 1)
    monkeypatch.setattr(post_service, "utc_now", lambda: base + _dt.timedelta(seconds=next(counter)))


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        secret_key="test-secret-key",
        database_url=f"sqlite:///{tmp_path / 'quill.sqlite3'}",
        users_path=tmp_path / "admins.yml",
    )


@pytest.fixture()
def credentials(settings: Settings) -> CredentialStore:
    store = CredentialStore(settings.users_path)
    store.add(ADMIN_USER, ADMIN_PASSWORD)
    return store


@pytest.fixture()
def db(settings: Settings):
    database = Database(settings.database_url)
    database.init_schema()
    yield database
    database.dispose()


@pytest.fixture()
def app(settings: Settings, credentials: CredentialStore, db: Database):
    return create_app(settings, db=db, credentials=credentials)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app, follow_redirects=False)


@pytest.fixture()
def admin_client(client: TestClient) -> TestClient:
    r = client.post("/api/auth/login", json={"username": ADMIN_USER, "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return client
