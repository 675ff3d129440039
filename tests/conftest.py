import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from string_analyzer.database import Base, get_db
from string_analyzer.main import app
from string_analyzer.models import string_record  # noqa: F401
from string_analyzer.services.interpreter import QueryInterpreter, get_interpreter


class StubInterpreter(QueryInterpreter):
    """Returns a canned result (or raises a canned error) and records calls."""

    def __init__(self):
        self.result = {}
        self.error = None
        self.calls = []

    async def interpret(self, text, schema):
        self.calls.append((text, schema))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
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
def interpreter():
    return StubInterpreter()


@pytest.fixture
def client(session_factory, interpreter):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_interpreter] = lambda: interpreter
    yield TestClient(app)
    app.dependency_overrides.clear()
