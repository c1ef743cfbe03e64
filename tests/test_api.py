"""HTTP surface, end to end against mocked GitHub and OpenRouter."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from forge.api.main import create_app
from forge.services import Services

from conftest import REPO, FakeGitHub, FakeOpenRouter, plan_for


@pytest.fixture
def make_client(settings):
    clients = []
    
    def factory(github: FakeGitHub, llm: FakeOpenRouter) -> TestClient:
        services = Services(
            settings,
            github_transport=httpx.MockTransport(github),
            llm_transport=httpx.MockTransport(llm),
        )
        client = TestClient(create_app(settings, services))
        client.__enter__()
        clients.append(client)
        return client
    
    yield factory
    for client in clients:
        client.__exit__(None, None, None)


def login(client: TestClient) -> None:
    response = client.put("/api/credentials", json={"github_token": "good"})
    assert response.status_code == 200
    assert response.json() == {"github_token": True, "model_api_key": False}


def test_health(make_client):
    client = make_client(FakeGitHub({}), FakeOpenRouter())
    
    response = client.get("/api/health")
    
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_invalid_token_is_not_stored(make_client):
    client = make_client(FakeGitHub({}), FakeOpenRouter())
    
    response = client.put("/api/credentials", json={"github_token": "bad"})
    
    assert response.status_code == 401
    assert client.get("/api/credentials").json()["github_token"] is False


def test_repos_search(make_client):
    client = make_client(FakeGitHub({}), FakeOpenRouter())
    login(client)
    
    response = client.get("/api/repos", params={"search": "HELLO"})
    
    assert response.json()["total"] == 1
    assert response.json()["repos"][0]["full_name"] == REPO


def test_workspace_required(make_client):
    client = make_client(FakeGitHub({}), FakeOpenRouter())
    
    assert client.get("/api/workspace").status_code == 404


def test_license_flow(make_client):
    github = FakeGitHub({"README.md": "# Hello"})
    llm = FakeOpenRouter(plan_for("LICENSE", "CREATE"), "MIT License")
    client = make_client(github, llm)
    login(client)
    
    state = client.post("/api/workspace", json={"repository": REPO}).json()
    assert state["context_loaded"]
    
    plan = client.post("/api/workspace/plan", json={"prompt": "add a LICENSE file"}).json()
    assert plan["steps"][0]["file_path"] == "LICENSE"
    assert plan["steps"][0]["status"] == "PENDING"
    
    edit = client.post("/api/workspace/steps/1/execute").json()
    assert edit["operation"] == "CREATE"
    assert edit["content"] == "MIT License"
    
    result = client.post("/api/workspace/edits/LICENSE/commit", json={"message": "Add LICENSE"})
    assert result.status_code == 200
    assert result.json()["success"]
    
    state = client.get("/api/workspace").json()
    assert state["files"]["LICENSE"]["version_token"] == github.files["LICENSE"][1]
    assert state["proposed_edits"] == {}
    assert state["plan"]["steps"][0]["status"] == "COMPLETED"
    assert llm.keys == ["Bearer sk-default", "Bearer sk-default"]


def test_commit_conflict_returns_409_and_keeps_edit(make_client):
    github = FakeGitHub({"README.md": "# Hello"})
    client = make_client(github, FakeOpenRouter(plan_for("README.md", "UPDATE"), "# Hello, world"))
    login(client)
    client.post("/api/workspace", json={"repository": REPO})
    client.post("/api/workspace/plan", json={"prompt": "greet the world"})
    client.post("/api/workspace/steps/1/execute")
    github.files["README.md"] = ("# Changed upstream", github.next_sha())
    
    response = client.post("/api/workspace/edits/README.md/commit", json={})
    
    assert response.status_code == 409
    assert response.json()["detail"]["kind"] == "conflict"
    assert "README.md" in client.get("/api/workspace").json()["proposed_edits"]
    
    client.post("/api/workspace/files/README.md/reload")
    retry = client.post("/api/workspace/edits/README.md/commit", json={})
    assert retry.status_code == 200
    assert github.files["README.md"][0] == "# Hello, world"


def test_step_errors(make_client):
    client = make_client(FakeGitHub({}), FakeOpenRouter(plan_for("a.py", "CREATE"), "x = 1"))
    login(client)
    client.post("/api/workspace", json={"repository": REPO})
    client.post("/api/workspace/plan", json={"prompt": "add a"})
    
    assert client.post("/api/workspace/steps/9/execute").status_code == 404
    assert client.post("/api/workspace/steps/1/execute").status_code == 200
    assert client.post("/api/workspace/steps/1/execute").status_code == 400
    assert client.delete("/api/workspace/edits/a.py").status_code == 200
    assert client.delete("/api/workspace/edits/a.py").status_code == 404


def test_empty_prompt_is_rejected(make_client):
    client = make_client(FakeGitHub({}), FakeOpenRouter())
    login(client)
    client.post("/api/workspace", json={"repository": REPO})
    
    assert client.post("/api/workspace/plan", json={"prompt": " "}).status_code == 400


class HtmlOnWriteGitHub(FakeGitHub):
    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "PUT":
            return httpx.Response(200, text="<html>maintenance</html>")
        return super().__call__(request)


def test_non_json_commit_response_keeps_edit(make_client):
    github = HtmlOnWriteGitHub({"README.md": "# Hello"})
    client = make_client(github, FakeOpenRouter(plan_for("README.md", "UPDATE"), "# Hi"))
    login(client)
    client.post("/api/workspace", json={"repository": REPO})
    client.post("/api/workspace/plan", json={"prompt": "say hi"})
    client.post("/api/workspace/steps/1/execute")
    
    response = client.post("/api/workspace/edits/README.md/commit", json={})
    
    assert response.status_code == 502
    assert response.json()["detail"]["kind"] == "generic"
    state = client.get("/api/workspace").json()
    assert state["proposed_edits"]["README.md"]["content"] == "# Hi"
    assert state["last_error"]["kind"] == "generic"
