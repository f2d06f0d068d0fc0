import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import make_settings
from relaychat.main import create_app
from relaychat.repositories.conversation_repository import ConversationRepository
from relaychat.repositories.message_repository import MessageRepository
from relaychat.services.chat_relay_service import FIXTURE_TEXT
from relaychat.utils.stream import TextPart, parse_part


def test_created_conversation_is_listed_as_today(client):
    resp = client.post("/api/conversations")
    assert resp.status_code == 201
    created = resp.json()
    assert created["title"] == "New conversation"
    assert created["date"] == "today"
    assert isinstance(created["id"], str)

    listed = client.get("/api/conversations").json()
    assert {"id": created["id"], "title": "New conversation", "date": "today"} in listed


def test_conversations_are_listed_newest_first(client):
    first = client.post("/api/conversations").json()["id"]
    second = client.post("/api/conversations").json()["id"]

    ids = [c["id"] for c in client.get("/api/conversations").json()]
    assert ids == [second, first]


def test_appended_message_is_returned_last_and_trimmed(client, conversation_id):
    client.post(f"/api/conversations/{conversation_id}/messages", json={"role": "user", "content": "first"})
    resp = client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"role": "assistant", "content": "  second reply \n"},
    )
    assert resp.status_code == 201
    saved = resp.json()
    assert saved["content"] == "second reply"
    assert saved["role"] == "assistant"
    assert saved["conversation_id"] == conversation_id
    assert isinstance(saved["id"], str)
    assert saved["created_at"]

    messages = client.get(f"/api/conversations/{conversation_id}/messages").json()
    assert [m["content"] for m in messages] == ["first", "second reply"]
    assert messages[-1] == {"id": saved["id"], "role": "assistant", "content": "second reply"}


def test_listing_messages_twice_is_stable(client, conversation_id):
    for text in ("one", "two", "three"):
        client.post(f"/api/conversations/{conversation_id}/messages", json={"role": "user", "content": text})

    first = client.get(f"/api/conversations/{conversation_id}/messages").json()
    second = client.get(f"/api/conversations/{conversation_id}/messages").json()
    assert first == second
    assert [m["content"] for m in first] == ["one", "two", "three"]


def test_messages_of_unknown_conversation_are_empty(client):
    resp = client.get("/api/conversations/999/messages")
    assert resp.status_code == 200
    assert resp.json() == []


def test_append_to_unknown_conversation_is_not_found(client):
    resp = client.post("/api/conversations/999/messages", json={"role": "user", "content": "hello"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Conversation not found"}


@pytest.mark.parametrize("bad_id", ["abc", "0", "-1", "1.5", "00"])
def test_invalid_conversation_id_is_rejected(client, bad_id):
    resp = client.get(f"/api/conversations/{bad_id}/messages")
    assert resp.status_code == 400
    assert "positive integer" in resp.json()["error"]

    resp = client.post(f"/api/conversations/{bad_id}/messages", json={"role": "user", "content": "hi"})
    assert resp.status_code == 400

    resp = client.delete(f"/api/conversations/{bad_id}")
    assert resp.status_code == 400
    assert "positive integer" in resp.json()["error"]


def test_invalid_conversation_id_is_rejected_without_storage(unconfigured_client):
    resp = unconfigured_client.get("/api/conversations/abc/messages")
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "payload",
    [
        {"content": "no role"},
        {"role": "moderator", "content": "unknown role"},
        {"role": "user", "content": 42},
        {"role": "user"},
        {"role": "user", "content": "   "},
        {"role": "user", "content": ""},
    ],
)
def test_invalid_message_body_is_rejected(client, conversation_id, payload):
    resp = client.post(f"/api/conversations/{conversation_id}/messages", json=payload)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"

    assert client.get(f"/api/conversations/{conversation_id}/messages").json() == []


def test_unparseable_json_is_rejected(client, conversation_id):
    resp = client.post(
        f"/api/conversations/{conversation_id}/messages",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400


def test_system_role_is_accepted(client, conversation_id):
    resp = client.post(
        f"/api/conversations/{conversation_id}/messages", json={"role": "system", "content": "be brief"}
    )
    assert resp.status_code == 201


def test_delete_conversation_removes_its_messages(client, conversation_id):
    client.post(f"/api/conversations/{conversation_id}/messages", json={"role": "user", "content": "bye"})

    resp = client.delete(f"/api/conversations/{conversation_id}")
    assert resp.status_code == 204

    assert conversation_id not in [c["id"] for c in client.get("/api/conversations").json()]
    assert client.get(f"/api/conversations/{conversation_id}/messages").json() == []
    assert client.delete(f"/api/conversations/{conversation_id}").status_code == 404


def test_storage_check(client, unconfigured_client):
    assert client.get("/api/conversations/check").json() == {"ok": True, "message": "Storage is configured."}

    resp = unconfigured_client.get("/api/conversations/check")
    assert resp.status_code == 503
    assert resp.json()["ok"] is False


def test_unconfigured_storage(unconfigured_client):
    resp = unconfigured_client.get("/api/conversations")
    assert resp.status_code == 200
    assert resp.json() == []

    assert unconfigured_client.post("/api/conversations").status_code == 503
    assert unconfigured_client.get("/api/conversations/1/messages").status_code == 503
    resp = unconfigured_client.post("/api/conversations/1/messages", json={"role": "user", "content": "hi"})
    assert resp.status_code == 503
    assert "not configured" in resp.json()["error"]

    resp = unconfigured_client.delete("/api/conversations/1")
    assert resp.status_code == 503
    assert "not configured" in resp.json()["error"]


def test_listing_conversations_survives_storage_failure(client, monkeypatch):
    client.post("/api/conversations")

    async def broken(self):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(ConversationRepository, "list_recent", broken)
    resp = client.get("/api/conversations")
    assert resp.status_code == 200
    assert resp.json() == []


def test_storage_failures_are_server_errors(client, conversation_id, monkeypatch):
    async def broken(self, *args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(MessageRepository, "create", broken)
    monkeypatch.setattr(MessageRepository, "get_by_conversation_id", broken)
    monkeypatch.setattr(ConversationRepository, "create", broken)
    monkeypatch.setattr(ConversationRepository, "delete", broken)

    resp = client.post(f"/api/conversations/{conversation_id}/messages", json={"role": "user", "content": "hi"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to save message"}

    resp = client.get(f"/api/conversations/{conversation_id}/messages")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to load messages"}

    resp = client.post("/api/conversations")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to create conversation"}

    resp = client.delete(f"/api/conversations/{conversation_id}")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to delete conversation"}


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert "error" in resp.json()


def test_unreachable_database_at_startup_keeps_serving(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'missing_dir' / 'relaychat.db'}"
    with TestClient(create_app(make_settings(DATABASE_URL=url, CHAT_MOCK=True))) as client:
        resp = client.get("/api/conversations")
        assert resp.status_code == 200
        assert resp.json() == []

        resp = client.post("/api/conversations")
        assert resp.status_code == 503
        assert "unreachable" in resp.json()["error"]

        resp = client.get("/api/conversations/check")
        assert resp.status_code == 503
        assert resp.json()["ok"] is False

        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hello"}]})
        assert resp.status_code == 200
        parts = [parse_part(line) for line in resp.text.splitlines() if line.strip()]
        assert "".join(p.text for p in parts if isinstance(p, TextPart)) == FIXTURE_TEXT


def test_storage_recovers_once_database_becomes_reachable(tmp_path):
    missing = tmp_path / "missing_dir"
    url = f"sqlite+aiosqlite:///{missing / 'relaychat.db'}"
    with TestClient(create_app(make_settings(DATABASE_URL=url))) as client:
        assert client.post("/api/conversations").status_code == 503

        missing.mkdir()
        assert client.post("/api/conversations").status_code == 201
        assert len(client.get("/api/conversations").json()) == 1
