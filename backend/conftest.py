import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

from sqlmodel.pool import StaticPool

from api_client import ApiClient
from database import seed_profiles
from main import app, get_session
from models import Name

# Use StaticPool to share the same in-memory database across the same process
engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)


def get_test_session():
    with Session(engine) as session:
        yield session


app.dependency_overrides[get_session] = get_test_session


@pytest.fixture(autouse=True)
def _open_api(monkeypatch):
    # Tests that need the API key gate turn it on themselves
    monkeypatch.delenv("NAME_PICKER_API_KEY", raising=False)
    monkeypatch.delenv("NAME_PICKER_STRICT_CONFIG", raising=False)


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="users")
def users_fixture(session):
    joe, sam = seed_profiles(session)
    return joe, sam


@pytest.fixture(name="add_names")
def add_names_fixture(session):
    """Seed non-uploaded names; popularity descends in the given order."""
    def _add(*names):
        rows = [Name(name=n, popularity=100 - i) for i, n in enumerate(names)]
        session.add_all(rows)
        session.commit()
        for row in rows:
            session.refresh(row)
        return rows
    return _add


@pytest.fixture(name="client")
def client_fixture():
    return TestClient(app)


@pytest.fixture(name="api_factory")
def api_factory_fixture():
    """Build ApiClients wired straight into the FastAPI app. Call it inside the event loop."""
    def _make(**kwargs) -> ApiClient:
        return ApiClient(
            base_url="http://testserver",
            api_key="test-key",
            transport=httpx.ASGITransport(app=app),
            **kwargs,
        )
    return _make
