"""Shared fixtures: in-memory fakes for the credential store and both gateways."""

from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

from forge.config import Settings
from forge.credentials import CredentialProvider
from forge.errors import FileNotFoundInRepoError, WriteConflictError
from forge.schemas import ChatMessage, CommitResult, EntryType, FileContent, RepositoryFile


REPO = "octocat/hello-world"


class FakeStore:
    """Dict-backed stand-in for CredentialStore."""
    
    def __init__(self, values: dict[str, str] | None = None):
        self.values = dict(values or {})
    
    async def get(self, key):
        return self.values.get(key)
    
    async def set(self, key, value):
        self.values[key] = value
    
    async def remove(self, key):
        self.values.pop(key, None)
    
    async def all(self):
        return dict(self.values)


class FakeRepositoryGateway:
    """In-memory repository with GitHub-like version token checks."""
    
    def __init__(self, files: dict[str, str] | None = None):
        self._counter = 0
        self.files: dict[str, tuple[str, str]] = {}
        for path, content in (files or {}).items():
            self.files[path] = (content, self._next_sha())
        self.reads: list[str] = []
        self.writes: list[dict] = []
        self.fail_reads: dict[str, Exception] = {}
    
    def _next_sha(self) -> str:
        self._counter += 1
        return f"sha{self._counter}"
    
    def token(self, path: str) -> str:
        return self.files[path][1]
    
    def touch(self, path: str, content: str) -> None:
        """Simulate a change made outside the workspace."""
        self.files[path] = (content, self._next_sha())
    
    async def list_directory(self, repo, path=""):
        prefix = f"{path.strip('/')}/" if path.strip("/") else ""
        entries: dict[str, RepositoryFile] = {}
        for file_path in sorted(self.files):
            if not file_path.startswith(prefix):
                continue
            head, _, rest = file_path[len(prefix):].partition("/")
            entry_path = prefix + head
            entries[entry_path] = RepositoryFile(
                path=entry_path,
                name=head,
                type=EntryType.DIRECTORY if rest else EntryType.FILE,
            )
        return list(entries.values())
    
    async def read_file(self, repo, path):
        self.reads.append(path)
        if path in self.fail_reads:
            raise self.fail_reads[path]
        if path not in self.files:
            raise FileNotFoundInRepoError(f"Not found: {path}", status_code=404)
        content, sha = self.files[path]
        return FileContent(path=path, content=content, version_token=sha)
    
    async def write_file(self, repo, path, content, message, version_token=None, branch=None):
        self.writes.append({"path": path, "content": content, "message": message, "sha": version_token})
        if path in self.files and self.files[path][1] != version_token:
            raise WriteConflictError(f"{path} does not match {version_token}", status_code=409)
        if path not in self.files and version_token is not None:
            raise WriteConflictError(f"{path} does not exist", status_code=422)
        sha = self._next_sha()
        self.files[path] = (content, sha)
        return CommitResult(success=True, path=path, new_version_token=sha, commit_sha=f"c{sha}")
    
    async def delete_file(self, repo, path, message, version_token, branch=None):
        if path not in self.files:
            raise FileNotFoundInRepoError(f"Not found: {path}", status_code=404)
        if self.files[path][1] != version_token:
            raise WriteConflictError(f"{path} does not match {version_token}", status_code=409)
        del self.files[path]
        return CommitResult(success=True, path=path, commit_sha="cdel")


class FakeChatGateway:
    """Returns queued responses (strings or exceptions) in order."""
    
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[tuple[str, list[ChatMessage]]] = []
        self.gate: asyncio.Event | None = None
    
    async def complete(self, model, messages):
        self.calls.append((model, messages))
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeGitHub:
    """Minimal stateful GitHub contents API."""
    
    def __init__(self, files: dict[str, str]):
        self.counter = 0
        self.files = {path: (content, self.next_sha()) for path, content in files.items()}
    
    def next_sha(self) -> str:
        self.counter += 1
        return f"sha{self.counter}"
    
    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/user":
            ok = request.headers.get("Authorization") == "token good"
            return httpx.Response(200 if ok else 401, json={"message": "Bad credentials"})
        if path == "/user/repos":
            return httpx.Response(200, json=[
                {"id": 1, "name": "hello-world", "full_name": REPO, "description": "demo"},
                {"id": 2, "name": "other", "full_name": "octocat/other"},
            ])
        
        prefix = f"/repos/{REPO}/contents/"
        file_path = path[len(prefix):]
        if request.method == "GET":
            if file_path == "":
                return httpx.Response(200, json=[
                    {"name": p, "path": p, "type": "file"} for p in sorted(self.files)
                ])
            if file_path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            content, sha = self.files[file_path]
            return httpx.Response(200, json={
                "type": "file", "path": file_path, "sha": sha, "encoding": "base64",
                "content": base64.b64encode(content.encode()).decode(),
            })
        if request.method == "PUT":
            body = json.loads(request.content)
            current = self.files.get(file_path)
            if current is not None and body.get("sha") != current[1]:
                return httpx.Response(409, json={"message": f"{file_path} does not match"})
            sha = self.next_sha()
            self.files[file_path] = (base64.b64decode(body["content"]).decode(), sha)
            return httpx.Response(201, json={"content": {"sha": sha}, "commit": {"sha": f"c-{sha}"}})
        return httpx.Response(405)


class FakeOpenRouter:
    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.keys: list[str] = []
    
    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.keys.append(request.headers["Authorization"])
        return httpx.Response(200, json={"choices": [{"message": {"content": self.answers.pop(0)}}]})


def plan_for(path: str, operation: str) -> str:
    return "```json\n" + json.dumps({
        "title": "Plan",
        "steps": [{"id": "1", "title": "Edit", "description": "Do it", "file_path": path, "operation": operation}],
    }) + "\n```"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'forge.db'}",
        openrouter_api_key="sk-default",
    )


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
async def credentials(fake_store) -> CredentialProvider:
    provider = CredentialProvider(fake_store)
    await provider.load()
    return provider
