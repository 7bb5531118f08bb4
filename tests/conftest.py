"""Shared fixtures for the family tree test suite."""
import os

# Set env vars BEFORE any app imports
os.environ.setdefault("COOKIE_SECRET", "test-secret-key-for-testing")

import pytest
import kuzu
from fastapi.testclient import TestClient

from app.db import _init_schema, get_conn
from app import auth, crud
from app.models import FamilyTree, Gender, Marriage, Person


EDITOR_PASSWORD = "editor-password"

# Ensure auth module uses test secrets
auth.COOKIE_SECRET = os.environ["COOKIE_SECRET"]
auth.EDITOR_PASSWORD_HASH = auth.hash_password(EDITOR_PASSWORD)


def make_person(pid, gender=Gender.MALE, name=None, **kw):
    return Person(id=pid, name=name or pid.upper(), gender=gender, **kw)


# ── Tree fixtures ──

@pytest.fixture(name="make_person")
def make_person_fixture():
    return make_person


@pytest.fixture
def empty():
    return FamilyTree()


@pytest.fixture
def family():
    """
    R married to S, child C; C married to D, child E.
    Z exists but is connected to nobody.
    """
    t = FamilyTree()
    t = crud.add_person(t, make_person("r", birth_year=1920))
    t = crud.add_person(t, make_person("s", Gender.FEMALE, external=True))
    t = crud.add_person(t, make_person("c"))
    t = crud.add_person(t, make_person("d", Gender.FEMALE, external=True))
    t = crud.add_person(t, make_person("e", Gender.FEMALE))
    t = crud.add_person(t, make_person("z"))
    t = crud.add_marriage(t, Marriage(id="m1", spouse1_id="r", spouse2_id="s", marriage_year=1945))
    t = crud.add_marriage(t, Marriage(id="m2", spouse1_id="c", spouse2_id="d"))
    t = crud.add_child(t, "m1", "c")
    t = crud.add_child(t, "m2", "e")
    return t


# ── Database fixtures ──

@pytest.fixture
def db_path(tmp_path):
    """Temp directory for a fresh KuzuDB."""
    return tmp_path / "test_db"


@pytest.fixture
def db(db_path):
    """Initialized KuzuDB with the snapshot schema."""
    database = kuzu.Database(str(db_path))
    _init_schema(database)
    yield database
    database.close()


@pytest.fixture
def conn(db):
    """KuzuDB connection for unit tests."""
    return kuzu.Connection(db)


# ── FastAPI app fixtures ──

@pytest.fixture
def app_with_db(db):
    """FastAPI app with dependency override pointing at test DB."""
    from app.main import app

    def override_get_conn():
        c = kuzu.Connection(db)
        try:
            yield c
        finally:
            pass

    app.dependency_overrides[get_conn] = override_get_conn
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_with_db):
    """Unauthenticated TestClient."""
    return TestClient(app_with_db, raise_server_exceptions=False)


@pytest.fixture
def editor_client(app_with_db):
    """TestClient carrying a valid editor session cookie."""
    token = auth.create_session_token()
    return TestClient(app_with_db, raise_server_exceptions=False, cookies={auth.SESSION_COOKIE: token})
