"""Pytest configuration and shared fixtures."""

import json
import os

# The server engine is created at import time; keep it off PostgreSQL in tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
import requests  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from requests.adapters import BaseAdapter  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from auth import create_api_key  # noqa: E402
from change_tracker import ChangeTracker  # noqa: E402
from database import Base, get_db  # noqa: E402
from local_store import LocalBase, LocalRecordStore  # noqa: E402
from main import app  # noqa: E402
from models import ApiKeyDB  # noqa: E402
from mutations import RecordMutator  # noqa: E402


def get_test_db_url():
    """Get the test database URL from environment or use in-memory SQLite."""
    return os.environ.get("TEST_DATABASE_URL", "sqlite://")


def make_engine(db_url: str):
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(db_url, echo=False)


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine that persists for the entire test session."""
    engine = make_engine(get_test_db_url())

    # Create all tables
    Base.metadata.create_all(bind=engine)

    yield engine

    # Teardown: drop all tables and close connections
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Create a new database session for each test.

    This fixture creates a transaction for each test and rolls it back
    after the test completes, ensuring test isolation.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    # Create a session bound to the connection
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=connection
    )
    session = TestingSessionLocal()

    yield session

    # Rollback the transaction and close the connection
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def server(db_session):
    """Test client for the sync server, bound to the test database session."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()


# API key fixtures


@pytest.fixture
def api_key(db_session: Session) -> tuple[ApiKeyDB, str]:
    """Create an active API key. Returns the stored record and the raw key."""
    return create_api_key(db_session, "Alice's iPhone")


@pytest.fixture
def other_api_key(db_session: Session) -> tuple[ApiKeyDB, str]:
    """Create an API key for a second, unrelated account."""
    return create_api_key(db_session, "Bob's iPad")


# Local (on-device) store fixtures


def make_local_session() -> Session:
    engine = make_engine("sqlite://")
    LocalBase.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


@pytest.fixture
def local_session():
    session = make_local_session()
    yield session
    session.close()


@pytest.fixture
def store(local_session) -> LocalRecordStore:
    return LocalRecordStore(local_session)


@pytest.fixture
def tracker(store) -> ChangeTracker:
    return ChangeTracker(store)


@pytest.fixture
def mutator(store, tracker) -> RecordMutator:
    return RecordMutator(store, tracker, scope="scope-a")


# HTTP transport fixtures


class HandlerAdapter(BaseAdapter):
    """requests transport adapter that answers every request in-process.

    ``handler`` receives the PreparedRequest and returns a
    ``(status_code, body)`` pair; bytes bodies are sent as-is, anything else
    is JSON-encoded. Exceptions raised by the handler propagate to the
    caller like transport errors. The timeout of every request is kept in
    ``timeouts``.
    """

    def __init__(self, handler):
        super().__init__()
        self.handler = handler
        self.timeouts = []

    def send(
        self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None
    ):
        self.timeouts.append(timeout)
        status_code, body = self.handler(request)
        if not isinstance(body, bytes):
            body = json.dumps(body).encode("utf-8")

        response = requests.Response()
        response.status_code = status_code
        response._content = body
        response.headers["Content-Type"] = "application/json"
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


@pytest.fixture
def session_for():
    """Build a requests session whose every request is answered by ``handler``."""
    sessions = []

    def _session_for(handler) -> requests.Session:
        session = requests.Session()
        session.mount("http://", HandlerAdapter(handler))
        sessions.append(session)
        return session

    yield _session_for

    for session in sessions:
        session.close()


@pytest.fixture
def server_session(server, session_for) -> requests.Session:
    """requests session that talks to the in-process sync server."""

    def forward(request):
        reply = server.request(
            request.method,
            request.url,
            content=request.body,
            headers=dict(request.headers),
        )
        return reply.status_code, reply.content

    return session_for(forward)
