# tests/control_plane/conftest.py
"""
Pytest fixtures for Control Plane tests
In-memory SQLite database and a TestClient with overridden dependencies
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEFAULT_REGIONS", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from control_plane.config import Settings, get_settings
from control_plane.core.region_service import region_service
from control_plane.database.models import Base
from control_plane.database.session import build_engine, get_db
from control_plane.main import app

PROVISION_TOKEN = "test-provision-token"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    """Session on a database seeded with the default regions"""
    session = session_factory()
    region_service.seed_default_regions(session)
    yield session
    session.close()


@pytest.fixture
def provision_settings():
    return Settings(_env_file=None, NODE_PROVISION_TOKEN=PROVISION_TOKEN)


@pytest.fixture
def client(db, session_factory, provision_settings):
    """TestClient bound to the test database"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: provision_settings
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"X-Provision-Token": PROVISION_TOKEN}


@pytest.fixture
def node_payload():
    return {
        "region_code": "eu-fra",
        "hostname": "node-1",
        "public_ipv4": "203.0.113.10",
        "public_key": "N" * 43 + "=",
        "endpoint": "node-1.example.net:51820",
        "tunnel_port": 51820,
    }
