# tests/conftest.py
# PURPOSE: create a TestClient and override DB dependency to use a temp SQLite file.

# Ensure project root is on sys.path so `import tasktimer` works when running pytest.
import sys, os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import tempfile

# Settings are read at import time: keep the lifespan away from ./tasks.db
_BOOT_DIR = tempfile.mkdtemp(prefix="tasktimer-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_BOOT_DIR, 'boot.db')}"
os.environ["RUN_STARTUP_MIGRATIONS"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from tasktimer.db import Base  # DB metadata
from tasktimer.main import app  # FastAPI app
from tasktimer.rate_limit import limiter
from tasktimer.store_db import get_db  # original dependency to override
from tasktimer.client import TaskApiClient


@pytest.fixture()
def engine():
    # Temporary SQLite file so data is isolated per test
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    engine = create_engine(f"sqlite:///{tmp.name}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    os.unlink(tmp.name)


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def api(client):
    """TaskApiClient talking to the app in-process (TestClient is an httpx.Client)."""
    http = TestClient(app, base_url="http://testserver/api/v1")
    yield TaskApiClient(http)
    http.close()
