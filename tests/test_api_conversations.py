"""Tests for conversation CRUD endpoints."""

from sqlmodel import Session

from tests.conftest import AUTH, OTHER_AUTH, seed_conversation, seed_file, seed_message, test_engine
from chatrelay.models.conversation import Conversation


def test_requires_caller_identity(client):
    response = client.get("/api/conversations/")
    assert response.status_code == 401


def test_create_conversation(client):
    response = client.post("/api/conversations/", json={}, headers=AUTH)
    assert response.status_code == 200
    conv = response.json()["conversation"]
    assert conv["title"] == "New Conversation"
    assert conv["is_hidden"] is False
    assert conv["is_public"] is False


def test_create_temporary_conversation_is_hidden(client):
    response = client.post("/api/conversations/", json={"is_temporary": True}, headers=AUTH)
    assert response.json()["conversation"]["is_hidden"] is True


def test_list_conversations_empty(client):
    response = client.get("/api/conversations/", headers=AUTH)
    assert response.status_code == 200
    assert response.json() == {"conversations": []}


def test_list_conversations_only_visible_and_own(client):
    seed_conversation(title="Chat A")
    seed_conversation(title="Chat B")
    seed_conversation(title="Hidden", is_hidden=True)
    seed_conversation(user_id=2, title="Someone else")

    response = client.get("/api/conversations/", headers=AUTH)
    titles = {c["title"] for c in response.json()["conversations"]}
    assert titles == {"Chat A", "Chat B"}


def test_list_conversations_paginates(client):
    for i in range(23):
        seed_conversation(title=f"Chat {i}")

    first = client.get("/api/conversations/", headers=AUTH).json()["conversations"]
    second = client.get("/api/conversations/?page=2", headers=AUTH).json()["conversations"]
    assert len(first) == 20
    assert len(second) == 3


def test_get_conversation(client):
    cid = seed_conversation(title="My Chat")
    user_msg = seed_message(cid, "user", "hello")
    seed_message(cid, "assistant", "hi there", parent_id=user_msg)
    seed_file(message_id=user_msg)

    response = client.get(f"/api/conversations/{cid}", headers=AUTH)
    assert response.status_code == 200
    data = response.json()
    assert data["conversation"]["title"] == "My Chat"
    assert data["is_owner"] is True
    assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
    assert data["messages"][0]["content"] == "hello"
    assert len(data["messages"][0]["files"]) == 1
    assert data["messages"][1]["files"] == []


def test_get_conversation_not_found(client):
    response = client.get("/api/conversations/does-not-exist", headers=AUTH)
    assert response.status_code == 404


def test_get_private_conversation_of_other_user_is_forbidden(client):
    cid = seed_conversation(user_id=2)
    response = client.get(f"/api/conversations/{cid}", headers=AUTH)
    assert response.status_code == 403


def test_public_conversation_is_readable_by_others(client):
    cid = seed_conversation(user_id=2, is_public=True)
    response = client.get(f"/api/conversations/{cid}", headers=AUTH)
    assert response.status_code == 200
    assert response.json()["is_owner"] is False


def test_hidden_conversation_is_not_found_for_everyone(client):
    cid = seed_conversation(is_hidden=True, is_public=True)
    assert client.get(f"/api/conversations/{cid}", headers=AUTH).status_code == 404
    assert client.get(f"/api/conversations/{cid}", headers=OTHER_AUTH).status_code == 404


def test_share_conversation(client):
    cid = seed_conversation()
    response = client.post(f"/api/conversations/{cid}/share", headers=AUTH)
    assert response.status_code == 200

    response = client.get(f"/api/conversations/{cid}", headers=OTHER_AUTH)
    assert response.status_code == 200


def test_share_conversation_requires_owner(client):
    cid = seed_conversation(user_id=2)
    response = client.post(f"/api/conversations/{cid}/share", headers=AUTH)
    assert response.status_code == 403


def test_share_hidden_conversation_not_found(client):
    cid = seed_conversation(is_hidden=True)
    response = client.post(f"/api/conversations/{cid}/share", headers=AUTH)
    assert response.status_code == 404


def test_delete_conversation_hides_it(client):
    cid = seed_conversation(title="To Delete")
    seed_message(cid, "user", "bye")
    response = client.delete(f"/api/conversations/{cid}", headers=AUTH)
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    # Verify it's gone from every read path but still stored
    assert client.get(f"/api/conversations/{cid}", headers=AUTH).status_code == 404
    assert client.get("/api/conversations/", headers=AUTH).json()["conversations"] == []
    with Session(test_engine) as session:
        assert session.get(Conversation, cid).is_hidden is True


def test_delete_conversation_requires_owner(client):
    cid = seed_conversation(user_id=2)
    response = client.delete(f"/api/conversations/{cid}", headers=AUTH)
    assert response.status_code == 403


def test_delete_conversation_not_found(client):
    response = client.delete("/api/conversations/missing", headers=AUTH)
    assert response.status_code == 404


def test_deleted_conversation_rejects_new_messages(client, provider):
    cid = seed_conversation()
    question = seed_message(cid, "user", "q")
    assert client.delete(f"/api/conversations/{cid}", headers=AUTH).status_code == 200

    response = client.post(
        f"/api/conversations/{cid}/messages", json={"prompt": "still there?", "model": "gpt-4o"}, headers=AUTH
    )
    assert response.status_code == 404
    response = client.post(
        f"/api/conversations/{cid}/images",
        json={"prompt": "a fox", "size": "1024x1024", "quality": "low"},
        headers=AUTH,
    )
    assert response.status_code == 404
    assert client.put(f"/api/messages/{question}", json={"prompt": "x"}, headers=AUTH).status_code == 404
    assert provider.requests == []


def test_temporary_conversation_accepts_messages(client):
    created = client.post("/api/conversations/", json={"is_temporary": True}, headers=AUTH).json()
    cid = created["conversation"]["id"]

    response = client.post(
        f"/api/conversations/{cid}/messages", json={"prompt": "quick one", "model": "gpt-4o"}, headers=AUTH
    )
    assert response.status_code == 200
    assert response.text == "Hello from model"
