import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_office.config import settings
from school_office.database import Base, get_db
from school_office.main import app


@pytest.fixture
def engine():
    """Fresh schema per test."""
    # In-memory DB; StaticPool shares its single connection across sessions
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def client(session_factory, upload_dir):
    """Test client with overridden dependency."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    del app.dependency_overrides[get_db]


@pytest.fixture
def program(client):
    return client.post("/api/programs", json={"name": "Hifzul Quran", "type": "Full time"}).json()


@pytest.fixture
def make_subject(client, program):
    def _make(name, year, program_id=None):
        resp = client.post("/api/subjects", json={
            "name": name, "programId": program_id or program["id"], "year": year,
        })
        assert resp.status_code == 201
        return resp.json()
    return _make


@pytest.fixture
def make_teacher(client):
    def _make(emp_id, name):
        resp = client.post("/api/teachers", data={"empId": emp_id, "name": name})
        assert resp.status_code == 201
        return resp.json()
    return _make
