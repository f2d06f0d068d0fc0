import pytest
from fastapi.testclient import TestClient

from relaychat.core.config import Settings
from relaychat.main import create_app


def make_settings(**overrides) -> Settings:
    values = dict(
        DATABASE_URL=None,
        OPENAI_API_KEY=None,
        CHAT_MOCK=False,
        LANGFUSE_SECRET_KEY=None,
        LANGFUSE_PUBLIC_KEY=None,
        LOG_LEVEL="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'relaychat.db'}"


@pytest.fixture
def app(database_url):
    return create_app(make_settings(DATABASE_URL=database_url, CHAT_MOCK=True))


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def unconfigured_client():
    with TestClient(create_app(make_settings())) as client:
        yield client


@pytest.fixture
def conversation_id(client):
    resp = client.post("/api/conversations")
    assert resp.status_code == 201
    return resp.json()["id"]
