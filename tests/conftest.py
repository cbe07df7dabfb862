import pytest
from fastapi.testclient import TestClient

from versioning_plane.db.session import create_db_engine, create_session_factory, init_db
from versioning_plane.main import create_app
from versioning_plane.models.file import File
from versioning_plane.services.file_registry import FileRegistry
from versioning_plane.services.locks import KeyedLock
from versioning_plane.services.version_store import VersionStore


@pytest.fixture
def engine(tmp_path):
    # file-backed so threads get their own connections
    engine = create_db_engine(f"sqlite:///{tmp_path / 'versions.db'}", echo=False)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def locks():
    return KeyedLock(timeout=5.0)


@pytest.fixture
def make_registry(session_factory, locks):
    """Build registries on fresh sessions that share one lock registry."""
    sessions = []

    def _make(**kwargs):
        session = session_factory()
        sessions.append(session)
        return FileRegistry(session, locks=locks, **kwargs)

    yield _make

    for session in sessions:
        session.close()


@pytest.fixture
def registry(make_registry):
    return make_registry()


@pytest.fixture
def store(db):
    return VersionStore(db)


@pytest.fixture
def file_row(db):
    file = File(
        original_name="report.pdf",
        entity_type="task",
        entity_id="T1",
        file_type="document",
    )
    db.add(file)
    db.commit()
    return file


@pytest.fixture
def client(engine):
    app = create_app(engine)
    with TestClient(app) as c:
        yield c
