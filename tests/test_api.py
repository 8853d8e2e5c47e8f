"""HTTP API tests against an isolated data directory."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from agent_studio.ai.providers.mock_provider import MockProvider
from agent_studio.config import StudioConfig
from agent_studio.stories.persistence import load_snapshot
from agent_studio.stories.sample_data import SAMPLE_PROJECT_ID
from ui.backend.app import create_app


def _config(tmp_path: Path, *, seed: bool = True) -> StudioConfig:
    return StudioConfig(
        data_file=tmp_path / "data.json",
        conversation_db=tmp_path / "conversations.sqlite",
        seed_sample_data=seed,
    )


def _client(tmp_path: Path, provider: MockProvider | None = None) -> TestClient:
    return TestClient(create_app(_config(tmp_path), provider=provider or MockProvider()))


@pytest.fixture()
def client(tmp_path: Path) -> TestClient:
    return _client(tmp_path)


def test_health_reports_version_and_provider(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["provider"] == "mock"


def test_sample_data_is_seeded_and_summarized(client: TestClient) -> None:
    stories = client.get("/api/stories").json()
    statistics = client.get("/api/stories/statistics").json()

    assert sorted(story["id"] for story in stories) == ["1", "2", "3"]
    assert statistics["total"] == 3
    assert statistics["done_count"] == 1
    assert statistics["by_status"]["completed"] == 1


def test_seeding_can_be_disabled(tmp_path: Path) -> None:
    app = create_app(_config(tmp_path, seed=False), provider=MockProvider())

    assert TestClient(app).get("/api/stories").json() == []


def test_project_crud(client: TestClient) -> None:
    created = client.post("/api/projects", json={"name": "Portal", "description": "Self service"})
    assert created.status_code == 201
    project_id = created.json()["id"]

    updated = client.put(f"/api/projects/{project_id}", json={"status": "paused"})
    assert updated.status_code == 200
    assert updated.json()["status"] == "paused"
    assert updated.json()["description"] == "Self service"

    assert client.get(f"/api/projects/{project_id}").status_code == 200
    assert client.delete(f"/api/projects/{project_id}").status_code == 204
    assert client.get(f"/api/projects/{project_id}").status_code == 404
    assert client.delete(f"/api/projects/{project_id}").status_code == 404


def test_project_dashboard_counts_only_its_stories(client: TestClient) -> None:
    client.post(
        "/api/stories",
        json={"title": "Audit log", "project_id": SAMPLE_PROJECT_ID, "estimated_hours": 5},
    )

    dashboard = client.get(f"/api/projects/{SAMPLE_PROJECT_ID}/dashboard").json()

    assert dashboard["project"]["id"] == SAMPLE_PROJECT_ID
    assert dashboard["statistics"]["total"] == 1
    assert dashboard["statistics"]["total_estimated_hours"] == 5


def test_story_lifecycle(client: TestClient) -> None:
    created = client.post(
        "/api/stories",
        json={"title": "Audit log", "project_id": SAMPLE_PROJECT_ID, "priority": "high"},
    )
    assert created.status_code == 201
    story = created.json()
    assert story["progress"] == 0
    assert story["status"] == "backlog"

    updated = client.put(f"/api/stories/{story['id']}", json={"status": "review", "progress": 80})
    assert updated.status_code == 200
    assert updated.json()["status"] == "review"
    assert updated.json()["title"] == "Audit log"

    cleared = client.put(f"/api/stories/{story['id']}", json={"title": None})
    assert cleared.status_code == 400

    assigned = client.post(f"/api/stories/{story['id']}/agents", json={"agent_name": "Ana"})
    assert assigned.json()["assigned_agent"] == "Ana"

    filtered = client.get("/api/stories", params={"status": "review"}).json()
    assert [item["id"] for item in filtered] == [story["id"]]

    assert client.delete(f"/api/stories/{story['id']}").status_code == 204
    assert client.get(f"/api/stories/{story['id']}").status_code == 404


def test_story_validation_errors(client: TestClient) -> None:
    missing_project = client.post("/api/stories", json={"title": "x", "project_id": "nope"})
    bad_progress = client.post("/api/stories", json={"title": "x", "progress": 150})
    bad_status = client.get("/api/stories", params={"status": "archived"})

    assert missing_project.status_code == 404
    assert bad_progress.status_code == 422
    assert bad_status.status_code == 422
    assert client.put("/api/stories/missing", json={"title": "x"}).status_code == 404


def test_task_endpoints_and_cascade(client: TestClient) -> None:
    created = client.post("/api/stories/1/tasks", json={"title": "Add refresh tokens"})
    assert created.status_code == 201
    task_id = created.json()["id"]

    updated = client.put(f"/api/tasks/{task_id}", json={"status": "done"})
    assert updated.json()["status"] == "done"
    assert [task["id"] for task in client.get("/api/stories/1/tasks").json()] == [task_id]

    client.delete("/api/stories/1")
    assert client.put(f"/api/tasks/{task_id}", json={"status": "todo"}).status_code == 404
    assert client.post("/api/stories/1/tasks", json={"title": "x"}).status_code == 404


def test_workflow_stories_and_sync(client: TestClient) -> None:
    workflows = client.get("/api/workflows").json()
    assert [workflow["id"] for workflow in workflows][0] == "requirements-analysis"

    generated = client.post(
        "/api/workflows/requirements-analysis/stories",
        json={"project_id": SAMPLE_PROJECT_ID},
    )
    assert generated.status_code == 201
    assert len(generated.json()) == 25
    project = client.get(f"/api/projects/{SAMPLE_PROJECT_ID}").json()
    assert project["workflow_id"] == "requirements-analysis"

    sync_payload = {
        "current_phase_name": "Requirements Gathering & Documentation",
        "current_phase_index": 1,
        "total_phases": 3,
    }
    first = client.post("/api/workflows/requirements-analysis/sync", json=sync_payload).json()
    second = client.post("/api/workflows/requirements-analysis/sync", json=sync_payload).json()

    assert first["changed"] > 0
    assert second == {"workflow_id": "requirements-analysis", "changed": 0, "stories": []}
    done = client.get(
        "/api/stories",
        params={"workflow_id": "requirements-analysis", "status": "done"},
    ).json()
    assert {story["phase"] for story in done} == {"Discovery & Stakeholder Engagement"}


def test_workflow_story_generation_errors(client: TestClient) -> None:
    unknown_workflow = client.post(
        "/api/workflows/unknown/stories", json={"project_id": SAMPLE_PROJECT_ID}
    )
    unknown_project = client.post(
        "/api/workflows/development-sprint/stories", json={"project_id": "missing"}
    )

    assert unknown_workflow.status_code == 404
    assert unknown_project.status_code == 404


def test_generate_story_creates_story_and_tasks(tmp_path: Path) -> None:
    provider = MockProvider(
        [
            {
                "title": "Password reset",
                "description": "As a user, I want to reset my password.",
                "acceptanceCriteria": ["Email is sent", "Link expires after an hour"],
                "storyPoints": 8,
            }
        ]
    )
    client = _client(tmp_path, provider)
    agent = client.post("/api/agents", json={"name": "Ana", "type": "analyst"}).json()

    response = client.post(
        "/api/stories/generate",
        json={
            "requirements": "Users must be able to reset a forgotten password.",
            "project_id": SAMPLE_PROJECT_ID,
            "agent_id": agent["id"],
            "priority": "high",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["story"]["title"] == "Password reset"
    assert body["story"]["assigned_agent"] == "Ana"
    assert body["story"]["tags"] == ["ai-generated"]
    assert body["estimated_points"] == 8
    assert [task["title"] for task in body["tasks"]] == [
        "Acceptance Criteria 1",
        "Acceptance Criteria 2",
    ]
    assert body["tasks"][1]["description"] == "Link expires after an hour"


def test_generate_story_error_mapping(client: TestClient) -> None:
    requirements = "Users must be able to reset a forgotten password."
    too_short = client.post(
        "/api/stories/generate",
        json={"requirements": "short", "project_id": SAMPLE_PROJECT_ID},
    )
    missing_project = client.post(
        "/api/stories/generate",
        json={"requirements": requirements, "project_id": "missing"},
    )
    missing_agent = client.post(
        "/api/stories/generate",
        json={"requirements": requirements, "project_id": SAMPLE_PROJECT_ID, "agent_id": "x"},
    )
    upstream_failure = client.post(
        "/api/stories/generate",
        json={"requirements": requirements, "project_id": SAMPLE_PROJECT_ID},
    )

    assert too_short.status_code == 422
    assert missing_project.status_code == 404
    assert missing_agent.status_code == 404
    assert upstream_failure.status_code == 502


def test_agent_crud_and_lifecycle(client: TestClient) -> None:
    created = client.post(
        "/api/agents",
        json={"name": "Sam", "type": "scrum-master", "configuration": {"temperature": 0.1}},
    )
    assert created.status_code == 201
    agent = created.json()
    assert agent["status"] == "stopped"
    assert agent["configuration"]["temperature"] == 0.1
    assert "Scrum Master" in agent["system_prompt"]

    duplicate = client.post("/api/agents", json={"name": "Sam", "type": "pm"})
    assert duplicate.status_code == 409

    started = client.post(f"/api/agents/{agent['id']}/start").json()
    assert started["status"] == "active"
    assert started["last_activity"] is not None
    assert [item["name"] for item in client.get("/api/agents?status=active").json()] == ["Sam"]
    assert client.get("/api/agents?type=developer").json() == []

    renamed = client.put(f"/api/agents/{agent['id']}", json={"name": "Samira"})
    assert renamed.json()["name"] == "Samira"
    stopped = client.post(f"/api/agents/{agent['id']}/stop").json()
    assert stopped["status"] == "stopped"

    assert client.delete(f"/api/agents/{agent['id']}").status_code == 204
    assert client.get(f"/api/agents/{agent['id']}").status_code == 404


def test_agent_chat_keeps_conversation_context(tmp_path: Path) -> None:
    provider = MockProvider([{"response": "Start with discovery."}, {"response": "Then plan."}])
    client = _client(tmp_path, provider)
    agent = client.post("/api/agents", json={"name": "Pat", "type": "pm"}).json()

    first = client.post(f"/api/agents/{agent['id']}/chat", json={"message": "Where to begin?"})
    conversation_id = first.json()["conversation_id"]
    second = client.post(
        f"/api/agents/{agent['id']}/chat",
        json={"message": "And next?", "conversation_id": conversation_id},
    )

    assert first.status_code == 200
    assert first.json()["response"] == "Start with discovery."
    assert second.json()["conversation_id"] == conversation_id
    _, second_prompt = provider.prompts[1]
    assert "user: Where to begin?\nassistant: Start with discovery." in second_prompt
    assert client.get(f"/api/agents/{agent['id']}").json()["last_activity"] is not None


def test_agent_chat_rejects_foreign_conversation(client: TestClient) -> None:
    first = client.post("/api/agents", json={"name": "A", "type": "pm"}).json()
    second = client.post("/api/agents", json={"name": "B", "type": "pm"}).json()

    response = client.post(
        f"/api/agents/{second['id']}/chat",
        json={"message": "hi", "conversation_id": "does-not-exist"},
    )
    missing_agent = client.post("/api/agents/agent_missing/chat", json={"message": "hi"})
    failed = client.post(f"/api/agents/{first['id']}/chat", json={"message": "hi"})

    assert response.status_code == 404
    assert missing_agent.status_code == 404
    assert failed.status_code == 502


def test_ai_endpoints(tmp_path: Path) -> None:
    client = _client(tmp_path, MockProvider([{"response": "Use OAuth."}]))

    providers = client.get("/api/ai/providers").json()
    reply = client.post(
        "/api/ai/chat",
        json={
            "message": "How do we log in?",
            "agent_type": "architect",
            "agent_name": "Archie",
            "system_prompt": "You are a System Architect.",
        },
    )

    assert {item["name"]: item["active"] for item in providers} == {
        "openai": False,
        "mock": True,
    }
    assert reply.status_code == 200
    assert reply.json()["response"] == "Use OAuth."


def test_changes_are_persisted_and_reloaded(tmp_path: Path) -> None:
    client = _client(tmp_path)
    project_id = client.post("/api/projects", json={"name": "Persisted"}).json()["id"]

    snapshot = load_snapshot(tmp_path / "data.json")
    reloaded = _client(tmp_path)

    assert snapshot.get_project(project_id) is not None
    assert reloaded.get(f"/api/projects/{project_id}").status_code == 200
    assert len(reloaded.get("/api/stories").json()) == 3


def test_websocket_replays_history_then_streams(client: TestClient) -> None:
    client.post("/api/projects", json={"name": "Nova"})

    with client.websocket_connect("/api/events/ws") as websocket:
        replayed = websocket.receive_json()
        assert replayed["event_type"] == "store_changed"
        assert replayed["channel"] == "store"
        assert replayed["revision"] == 1

        client.post("/api/projects", json={"name": "Orion"})
        streamed = websocket.receive_json()
        assert streamed["revision"] == 2


def test_agent_chat_rejects_blank_message(tmp_path: Path) -> None:
    provider = MockProvider([{"response": "unused"}])
    client = _client(tmp_path, provider)
    agent = client.post("/api/agents", json={"name": "Quinn", "type": "analyst"}).json()

    blank = client.post(f"/api/agents/{agent['id']}/chat", json={"message": "   "})
    stateless = client.post(
        "/api/ai/chat",
        json={
            "message": "\n\t",
            "agent_type": "analyst",
            "agent_name": "Quinn",
            "system_prompt": "Be brief.",
        },
    )

    assert blank.status_code == 422
    assert stateless.status_code == 422
    assert provider.prompts == []


def test_agents_survive_restart_with_their_conversations(tmp_path: Path) -> None:
    provider = MockProvider([{"response": "Noted."}])
    client = _client(tmp_path, provider)
    agent = client.post("/api/agents", json={"name": "Robin", "type": "tester"}).json()
    client.post(f"/api/agents/{agent['id']}/start")
    chat = client.post(f"/api/agents/{agent['id']}/chat", json={"message": "Plan tests"}).json()

    reloaded = _client(tmp_path, MockProvider([{"response": "Continuing."}]))
    restored = reloaded.get(f"/api/agents/{agent['id']}")
    follow_up = reloaded.post(
        f"/api/agents/{agent['id']}/chat",
        json={"message": "Next?", "conversation_id": chat["conversation_id"]},
    )

    assert restored.status_code == 200
    assert restored.json()["name"] == "Robin"
    assert restored.json()["status"] == "active"
    assert follow_up.status_code == 200
    assert follow_up.json()["conversation_id"] == chat["conversation_id"]


def test_projects_and_stories_are_scoped_to_their_owner(client: TestClient) -> None:
    alice = {"X-Agent-Studio-User": "alice"}
    bob = {"X-Agent-Studio-User": "bob"}
    project = client.post("/api/projects", json={"name": "Private"}, headers=alice).json()
    story = client.post(
        "/api/stories",
        json={"title": "Secret", "description": "Alice only", "project_id": project["id"]},
        headers=alice,
    ).json()
    task = client.post(
        f"/api/stories/{story['id']}/tasks", json={"title": "Hidden"}, headers=alice
    ).json()

    assert project["owner"] == "alice"
    assert client.get(f"/api/projects/{project['id']}", headers=bob).status_code == 404
    assert client.get(f"/api/stories/{story['id']}", headers=bob).status_code == 404
    assert client.put(
        f"/api/stories/{story['id']}", json={"title": "Taken"}, headers=bob
    ).status_code == 404
    assert client.delete(f"/api/projects/{project['id']}", headers=bob).status_code == 404
    assert client.delete(f"/api/tasks/{task['id']}", headers=bob).status_code == 404
    assert client.post(
        "/api/stories",
        json={"title": "Sneak", "description": "In", "project_id": project["id"]},
        headers=bob,
    ).status_code == 404

    bob_projects = [item["id"] for item in client.get("/api/projects", headers=bob).json()]
    bob_stories = [item["id"] for item in client.get("/api/stories", headers=bob).json()]
    alice_stories = [item["id"] for item in client.get("/api/stories", headers=alice).json()]
    assert project["id"] not in bob_projects
    assert SAMPLE_PROJECT_ID in bob_projects
    assert story["id"] not in bob_stories
    assert story["id"] in alice_stories
    assert client.get("/api/stories/statistics", headers=bob).json()["total"] == 3
    assert client.get(f"/api/stories/{story['id']}", headers=alice).status_code == 200


def test_workflow_sync_only_touches_visible_projects(client: TestClient) -> None:
    alice = {"X-Agent-Studio-User": "alice"}
    bob = {"X-Agent-Studio-User": "bob"}
    project = client.post("/api/projects", json={"name": "Private"}, headers=alice).json()
    client.post(
        "/api/workflows/requirements-analysis/stories",
        json={"project_id": project["id"]},
        headers=alice,
    )
    denied = client.post(
        "/api/workflows/requirements-analysis/stories",
        json={"project_id": project["id"]},
        headers=bob,
    )
    sync = {
        "current_phase_name": "Requirements Gathering & Documentation",
        "current_phase_index": 1,
        "total_phases": 3,
    }

    by_bob = client.post("/api/workflows/requirements-analysis/sync", json=sync, headers=bob)
    by_alice = client.post("/api/workflows/requirements-analysis/sync", json=sync, headers=alice)

    assert denied.status_code == 404
    assert by_bob.json()["changed"] == 0
    assert by_alice.json()["changed"] > 0
