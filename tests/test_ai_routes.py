import pytest
from sqlmodel import Session

from conftest import FailingModelClient, auth_headers
from mytodos.core.deps import get_model_client
from mytodos.models.ai_history import AiHistory


def ask(client, headers, todos, query="What should I do first?", **fields):
    payload = {"query": query, "todos": todos, **fields}
    return client.post("/api/ai/assistance", json=payload, headers=headers)


def test_conversation_end_to_end(client, todo_snapshot):
    register = client.post("/api/auth/register", json={"username": "alice", "password": "pw123"})
    assert register.status_code == 201
    login = client.post("/api/auth/login", json={"username": "alice", "password": "pw123"})
    headers = auth_headers(login.json()["token"])

    todo = client.post(
        "/api/todos",
        json={"title": "Buy milk", "priority": 1, "due_date": todo_snapshot[0]["due_date"]},
        headers=headers,
    )
    assert todo.status_code == 201

    first = ask(client, headers, todo_snapshot)
    assert first.status_code == 200, first.text
    first_body = first.json()
    assert first_body["parent_id"] is None
    assert first_body["conversation_count"] == 1
    assert first_body["response"]
    assert first_body["model"] == "fake-model"

    second = ask(
        client,
        headers,
        todo_snapshot,
        query="And after that?",
        parent_id=first_body["id"],
        conversation_count=2,
    )
    assert second.status_code == 200, second.text
    second_body = second.json()
    assert second_body["parent_id"] == first_body["id"]
    assert second_body["conversation_count"] == 2

    expected = [first_body["id"], second_body["id"]]
    for turn_id in expected:
        thread = client.get(f"/api/ai/thread/{turn_id}", headers=headers)
        assert thread.status_code == 200
        assert [t["id"] for t in thread.json()] == expected

    turns = client.get(f"/api/ai/thread/{second_body['id']}", headers=headers).json()
    assert turns[0]["is_root"] is True
    assert turns[0]["query"] == "What should I do first?"
    assert turns[0]["todos"][0]["title"] == "Buy milk"
    assert turns[1]["is_root"] is False


def test_user_input_is_accepted_for_query(client, alice_headers, todo_snapshot, model_client):
    response = client.post(
        "/api/ai/assistance",
        json={"user_input": "Help me plan", "todos": todo_snapshot},
        headers=alice_headers,
    )
    assert response.status_code == 200
    assert model_client.calls[0][1].startswith("Help me plan")


def test_conversation_count_over_limit(client, alice_headers, todo_snapshot):
    response = ask(client, alice_headers, todo_snapshot, conversation_count=11)
    assert response.status_code == 400
    assert response.json()["message"] == "Maximum conversation count exceeded"


@pytest.mark.parametrize("payload", [{"query": "help"}, {"todos": []}, {}])
def test_missing_query_or_todos(client, alice_headers, payload):
    response = client.post("/api/ai/assistance", json=payload, headers=alice_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Query and todos are required"


def test_unknown_parent(client, alice_headers, todo_snapshot):
    response = ask(client, alice_headers, todo_snapshot, parent_id=9999, conversation_count=2)
    assert response.status_code == 404


def test_provider_failure_still_answers(app, client, alice_headers, todo_snapshot):
    app.dependency_overrides[get_model_client] = lambda: FailingModelClient()

    response = ask(client, alice_headers, todo_snapshot)
    assert response.status_code == 200
    body = response.json()
    assert body["model"] == "local-fallback"
    assert "Buy milk" in body["response"]


def test_assistance_requires_auth(client, todo_snapshot):
    response = client.post("/api/ai/assistance", json={"query": "x", "todos": todo_snapshot})
    assert response.status_code == 401


def test_conversations_are_private(client, alice_headers, bob_headers, todo_snapshot):
    turn_id = ask(client, alice_headers, todo_snapshot).json()["id"]

    assert client.get(f"/api/ai/thread/{turn_id}", headers=bob_headers).status_code == 404
    assert client.get("/api/ai/history", headers=bob_headers).json() == []
    assert client.delete(f"/api/ai/history/{turn_id}", headers=bob_headers).status_code == 404
    continued = ask(client, bob_headers, todo_snapshot, parent_id=turn_id, conversation_count=2)
    assert continued.status_code == 404

    assert client.get(f"/api/ai/thread/{turn_id}", headers=alice_headers).status_code == 200


def test_history_lists_newest_first(client, alice_headers, todo_snapshot):
    root = ask(client, alice_headers, todo_snapshot, query="one").json()
    ask(client, alice_headers, todo_snapshot, query="two", parent_id=root["id"], conversation_count=2)
    ask(client, alice_headers, todo_snapshot, query="three")

    history = client.get("/api/ai/history", headers=alice_headers).json()
    assert [t["query"] for t in history] == ["three", "two", "one"]
    assert history[2]["child_count"] == 1

    roots = client.get("/api/ai/history?roots_only=true", headers=alice_headers).json()
    assert [t["query"] for t in roots] == ["three", "one"]


def test_history_tolerates_malformed_snapshot(client, app, alice_headers, todo_snapshot):
    turn_id = ask(client, alice_headers, todo_snapshot).json()["id"]
    with Session(app.state.engine) as session:
        turn = session.get(AiHistory, turn_id)
        turn.todos = "{broken"
        session.add(turn)
        session.commit()

    history = client.get("/api/ai/history", headers=alice_headers)
    assert history.status_code == 200
    assert history.json()[0]["todos"] == "{broken"


def test_delete_turn_leaves_grandchildren(client, alice_headers, todo_snapshot):
    root = ask(client, alice_headers, todo_snapshot, query="one").json()
    child = ask(
        client, alice_headers, todo_snapshot, query="two",
        parent_id=root["id"], conversation_count=2,
    ).json()
    grandchild = ask(
        client, alice_headers, todo_snapshot, query="three",
        parent_id=child["id"], conversation_count=3,
    ).json()

    response = client.delete(f"/api/ai/history/{root['id']}", headers=alice_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    history = client.get("/api/ai/history", headers=alice_headers).json()
    assert [t["id"] for t in history] == [grandchild["id"]]
    assert history[0]["parent_id"] == child["id"]

    thread = client.get(f"/api/ai/thread/{grandchild['id']}", headers=alice_headers).json()
    assert [t["id"] for t in thread] == [grandchild["id"]]


def test_delete_subtree(client, alice_headers, todo_snapshot):
    root = ask(client, alice_headers, todo_snapshot).json()
    child = ask(
        client, alice_headers, todo_snapshot, parent_id=root["id"], conversation_count=2
    ).json()
    ask(client, alice_headers, todo_snapshot, parent_id=child["id"], conversation_count=3)

    response = client.delete(
        f"/api/ai/history/{root['id']}?subtree=true", headers=alice_headers
    )
    assert response.status_code == 200
    assert client.get("/api/ai/history", headers=alice_headers).json() == []


def test_delete_all_history(client, alice_headers, bob_headers, todo_snapshot):
    ask(client, alice_headers, todo_snapshot)
    ask(client, alice_headers, todo_snapshot)
    ask(client, bob_headers, todo_snapshot)

    response = client.delete("/api/ai/history", headers=alice_headers)
    assert response.status_code == 200
    assert client.get("/api/ai/history", headers=alice_headers).json() == []
    assert len(client.get("/api/ai/history", headers=bob_headers).json()) == 1


def test_providers(client, alice_headers):
    providers = client.get("/api/ai/providers", headers=alice_headers).json()
    by_name = {p["name"]: p for p in providers}
    assert set(by_name) == {"openai", "deepseek", "gemini"}
    assert by_name["deepseek"]["active"] is True
    assert by_name["deepseek"]["configured"] is False


def test_health_and_status(client):
    assert client.get("/health").json() == {"status": "ok"}
    status = client.get("/api/status").json()
    assert status["status"] == "online"
    assert status["env"] == "test"
