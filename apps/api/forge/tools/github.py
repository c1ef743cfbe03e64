"""GitHub repository content gateway.

Provides versioned access to a repository's file tree over the REST v3 API:
- list_directory: Entries of a directory (or the single entry of a file path)
- read_file: Decoded content plus the blob sha used as version token
- write_file: Create or update a file, conditioned on the version token
- delete_file: Remove a file, conditioned on the version token
- validate_token / list_user_repos: Account-level helpers for repo selection
"""

from __future__ import annotations

import base64
import logging
from typing import Any
from urllib.parse import quote

import httpx

from forge.config import Settings, get_settings
from forge.credentials import CredentialProvider
from forge.errors import (
    AuthenticationError,
    FileNotFoundInRepoError,
    GatewayError,
    NetworkError,
    WriteConflictError,
)
from forge.schemas import CommitResult, EntryType, FileContent, GitHubRepo, RepositoryFile


logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"


def _contents_url(repo: str, path: str) -> str:
    path = path.strip("/")
    return f"/repos/{repo}/contents/{quote(path, safe='/')}"


def _to_repository_file(entry: dict[str, Any]) -> RepositoryFile:
    entry_type = EntryType.DIRECTORY if entry.get("type") == "dir" else EntryType.FILE
    return RepositoryFile(
        path=entry["path"],
        name=entry.get("name") or entry["path"].rsplit("/", 1)[-1],
        type=entry_type,
        size=entry.get("size"),
    )


def filter_repos(repos: list[GitHubRepo], query: str) -> list[GitHubRepo]:
    """Case-insensitive match of query against repo name and description."""
    query = query.strip().lower()
    if not query:
        return list(repos)
    return [
        r for r in repos
        if query in r.name.lower() or query in (r.description or "").lower()
    ]


class GitHubContentGateway:
    """Repository content gateway backed by the GitHub REST API."""
    
    def __init__(
        self,
        credentials: CredentialProvider,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        self._credentials = credentials
        self._client = httpx.AsyncClient(
            base_url=settings.github_api_base,
            headers={"Accept": JSON_MEDIA_TYPE},
            timeout=settings.github_timeout_seconds,
            transport=transport,
        )
    
    def _auth_headers(self, token: str | None = None) -> dict[str, str]:
        token = token or self._credentials.repository_token()
        return {"Authorization": f"token {token}"}
    
    async def _request(
        self,
        method: str,
        url: str,
        *,
        token: str | None = None,
        write: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {**self._auth_headers(token), **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"GitHub request failed: {e}") from e
        
        status = response.status_code
        if status < 400:
            return response
        
        message = _error_message(response)
        if status == 401 or (status == 403 and "rate limit" not in message.lower()):
            raise AuthenticationError(f"GitHub rejected the token: {message}", status_code=status)
        if status == 404:
            raise FileNotFoundInRepoError(f"Not found: {url}", status_code=status)
        if status == 409 or (write and status == 422 and "sha" in message.lower()):
            raise WriteConflictError(f"Version conflict on {url}: {message}", status_code=status)
        raise GatewayError(f"GitHub API Error {status}: {message}", status_code=status)
    
    # =========================================================================
    # Account
    # =========================================================================
    
    async def validate_token(self, token: str | None = None) -> bool:
        """Return True if the token is accepted by GitHub."""
        try:
            await self._request("GET", "/user", token=token)
        except (AuthenticationError, FileNotFoundInRepoError):
            return False
        return True
    
    async def list_user_repos(self) -> list[GitHubRepo]:
        """Repositories the user can access, most recently updated first."""
        response = await self._request(
            "GET",
            "/user/repos",
            params={"sort": "updated", "per_page": 100, "type": "all"},
        )
        return [GitHubRepo.model_validate(r) for r in _json(response)]
    
    # =========================================================================
    # Contents
    # =========================================================================
    
    async def list_directory(self, repo: str, path: str = "") -> list[RepositoryFile]:
        """List a directory; a file path yields a single entry."""
        response = await self._request("GET", _contents_url(repo, path))
        data = _json(response)
        entries = data if isinstance(data, list) else [data]
        return [_to_repository_file(e) for e in entries]
    
    async def read_file(self, repo: str, path: str) -> FileContent:
        """Read a file, decoding the transport encoding."""
        url = _contents_url(repo, path)
        response = await self._request("GET", url)
        data = _json(response)
        
        if isinstance(data, list) or data.get("type") not in ("file", None):
            raise GatewayError(f"{path} is not a file")
        
        sha = data["sha"]
        if data.get("encoding") == "base64":
            content = base64.b64decode(data.get("content", "")).decode("utf-8", errors="replace")
        else:
            # Large files come back without inline content
            raw = await self._request("GET", url, headers={"Accept": RAW_MEDIA_TYPE})
            content = raw.text
        
        return FileContent(path=data.get("path", path), content=content, version_token=sha)
    
    async def write_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        version_token: str | None = None,
        branch: str | None = None,
    ) -> CommitResult:
        """Create or update a file.
        
        The version token must be the one observed at the last read of the
        path; it may only be omitted when the path does not exist yet.
        
        Raises:
            WriteConflictError: The token is outdated or missing for an existing file
        """
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if version_token:
            body["sha"] = version_token
        if branch:
            body["branch"] = branch
        
        response = await self._request("PUT", _contents_url(repo, path), json=body, write=True)
        data = _json(response)
        logger.info(f"Committed {repo}:{path}")
        return CommitResult(
            success=True,
            path=path,
            new_version_token=(data.get("content") or {}).get("sha"),
            commit_sha=(data.get("commit") or {}).get("sha"),
        )
    
    async def delete_file(
        self,
        repo: str,
        path: str,
        message: str,
        version_token: str,
        branch: str | None = None,
    ) -> CommitResult:
        """Delete a file at the given version."""
        body: dict[str, Any] = {"message": message, "sha": version_token}
        if branch:
            body["branch"] = branch
        
        response = await self._request("DELETE", _contents_url(repo, path), json=body, write=True)
        data = _json(response)
        logger.info(f"Deleted {repo}:{path}")
        return CommitResult(
            success=True,
            path=path,
            commit_sha=(data.get("commit") or {}).get("sha"),
        )
    
    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise GatewayError(
            f"GitHub returned a non-JSON body ({response.status_code})",
            status_code=response.status_code,
        ) from e


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        return str(data.get("message", ""))
    return ""
