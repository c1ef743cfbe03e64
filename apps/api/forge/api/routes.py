"""FastAPI routes for the Forge API.

Endpoints:
- GET    /health                         - Health check
- GET    /credentials                    - Which credentials are configured
- PUT    /credentials                    - Store GitHub token / model API key
- DELETE /credentials/{name}             - Remove a credential
- GET    /repos                          - List (and search) the user's repositories
- POST   /workspace                      - Open a workspace for a repository
- GET    /workspace                      - Current workspace state
- GET    /workspace/tree                 - List a directory
- GET    /workspace/files/{path}         - Open a file (makes it active)
- POST   /workspace/files/{path}/reload  - Refresh content and version token
- POST   /workspace/plan                 - Generate a plan from a prompt
- POST   /workspace/steps/{id}/execute   - Execute a plan step
- DELETE /workspace/edits/{path}         - Discard a proposed edit
- POST   /workspace/edits/{path}/commit  - Commit a proposed edit
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from forge.agent.coordinator import WorkspaceCoordinator
from forge.api.errors import KIND_STATUS
from forge.credentials import GITHUB_TOKEN_KEY, MODEL_API_KEY
from forge.schemas import (
    CommitRequest,
    CommitResult,
    CreatePlanRequest,
    CredentialsStatusResponse,
    CredentialsUpdateRequest,
    HealthResponse,
    OpenWorkspaceRequest,
    Plan,
    ProposedEdit,
    RepoListResponse,
    RepositoryFile,
    WorkspaceState,
)
from forge.services import Services
from forge.tools.github import filter_repos


logger = logging.getLogger(__name__)
router = APIRouter()

CREDENTIAL_NAMES = {
    "github_token": GITHUB_TOKEN_KEY,
    "model_api_key": MODEL_API_KEY,
}


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_workspace(services: Services = Depends(get_services)) -> WorkspaceCoordinator:
    if services.workspace is None:
        raise HTTPException(status_code=404, detail="No workspace open")
    return services.workspace


# =============================================================================
# Health Check
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health(services: Services = Depends(get_services)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        version=services.settings.app_version,
        environment=services.settings.environment,
        details={"workspace": services.workspace.repository if services.workspace else None},
    )


# =============================================================================
# Credentials
# =============================================================================

def _credential_status(services: Services) -> CredentialsStatusResponse:
    return CredentialsStatusResponse(
        github_token=services.credentials.has(GITHUB_TOKEN_KEY),
        model_api_key=services.credentials.has(MODEL_API_KEY),
    )


@router.get("/credentials", response_model=CredentialsStatusResponse)
async def credential_status(services: Services = Depends(get_services)) -> CredentialsStatusResponse:
    return _credential_status(services)


@router.put("/credentials", response_model=CredentialsStatusResponse)
async def update_credentials(
    request: CredentialsUpdateRequest,
    services: Services = Depends(get_services),
) -> CredentialsStatusResponse:
    """Store credentials. The GitHub token is checked first unless disabled."""
    if request.github_token:
        if request.validate_token and not await services.github.validate_token(request.github_token):
            raise HTTPException(status_code=401, detail="Invalid GitHub token")
        await services.credentials.set(GITHUB_TOKEN_KEY, request.github_token)
    if request.model_api_key:
        await services.credentials.set(MODEL_API_KEY, request.model_api_key)
    return _credential_status(services)


@router.delete("/credentials/{name}", response_model=CredentialsStatusResponse)
async def remove_credential(
    name: str,
    services: Services = Depends(get_services),
) -> CredentialsStatusResponse:
    key = CREDENTIAL_NAMES.get(name)
    if key is None:
        raise HTTPException(status_code=404, detail=f"Unknown credential: {name}")
    await services.credentials.remove(key)
    return _credential_status(services)


# =============================================================================
# Repositories
# =============================================================================

@router.get("/repos", response_model=RepoListResponse)
async def list_repos(
    search: str = Query(default=""),
    services: Services = Depends(get_services),
) -> RepoListResponse:
    repos = filter_repos(await services.github.list_user_repos(), search)
    return RepoListResponse(repos=repos, total=len(repos))


# =============================================================================
# Workspace
# =============================================================================

@router.post("/workspace", response_model=WorkspaceState)
async def open_workspace(
    request: OpenWorkspaceRequest,
    services: Services = Depends(get_services),
) -> WorkspaceState:
    """Open a repository and load its planning context."""
    if request.repository.count("/") != 1:
        raise HTTPException(status_code=400, detail="Repository must be owner/name")
    workspace = services.open_workspace(request.repository, branch=request.branch)
    await workspace.load_context()
    return workspace.snapshot()


@router.get("/workspace", response_model=WorkspaceState)
async def get_workspace_state(
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> WorkspaceState:
    return workspace.snapshot()


@router.get("/workspace/tree", response_model=list[RepositoryFile])
async def list_tree(
    path: str = Query(default=""),
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> list[RepositoryFile]:
    return await workspace.list_directory(path)


@router.get("/workspace/files/{path:path}", response_model=RepositoryFile)
async def open_file(
    path: str,
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> RepositoryFile:
    return await workspace.open_file(path)


@router.post("/workspace/files/{path:path}/reload", response_model=RepositoryFile)
async def reload_file(
    path: str,
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> RepositoryFile:
    return await workspace.reload_file(path)


@router.post("/workspace/plan", response_model=Plan)
async def create_plan(
    request: CreatePlanRequest,
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> Plan:
    return await workspace.create_plan(request.prompt)


@router.post("/workspace/steps/{step_id}/execute", response_model=ProposedEdit)
async def execute_step(
    step_id: str,
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> ProposedEdit:
    return await workspace.execute_step(step_id)


@router.delete("/workspace/edits/{path:path}", response_model=WorkspaceState)
async def discard_edit(
    path: str,
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> WorkspaceState:
    workspace.discard(path)
    return workspace.snapshot()


@router.post("/workspace/edits/{path:path}/commit", response_model=CommitResult)
async def commit_edit(
    path: str,
    request: CommitRequest,
    workspace: WorkspaceCoordinator = Depends(get_workspace),
) -> CommitResult:
    """Commit a proposed edit. A stale version token answers 409."""
    result = await workspace.commit(path, request.message)
    if not result.success:
        status = KIND_STATUS.get(result.error_kind, 502)
        raise HTTPException(
            status_code=status,
            detail={
                "message": result.error_message,
                "kind": result.error_kind.value if result.error_kind else None,
            },
        )
    return result
