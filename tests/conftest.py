import os

# Must be set before busmap is imported: Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from busmap.database import Base, database_session_manager
from busmap.main import app
from busmap.v1.models import Stop

STOPS = [
    (101, "A", 21.0285, 105.8542),
    (102, "B", 21.0301, 105.8467),
    (103, "C", 21.0333, 105.8398),
    (104, "D", 21.0368, 105.8349),
    (105, "E", 21.0402, 105.8290),
]


@pytest.fixture
def engine():
    """In-memory SQLite database with the full schema and five stops A..E (ids 101..105)."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)

    session = sessionmaker(bind=engine)()
    session.add_all(
        Stop(id=stop_id, name=name, latitude=lat, longitude=lon, bench="yes", shelter="no")
        for stop_id, name, lat, lon in STOPS
    )
    session.commit()
    session.close()

    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False)

    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[database_session_manager.get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
