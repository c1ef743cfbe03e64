"""Pydantic schemas for the workspace data model and I/O contracts.

These schemas define the contracts between:
- The coordinator and its presentation layers (API, CLI)
- The coordinator and the repository / chat-completion gateways
- API endpoints and clients
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from forge.errors import ErrorKind


# =============================================================================
# Enums
# =============================================================================

class StepStatus(str, Enum):
    """Execution status of a plan step."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FileOperation(str, Enum):
    """File operation a step performs."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EntryType(str, Enum):
    """Kind of repository tree entry."""
    FILE = "FILE"
    DIRECTORY = "DIRECTORY"


# =============================================================================
# Plan Schemas
# =============================================================================

class PlanStep(BaseModel):
    """One planned file operation with its own execution lifecycle."""
    id: str = Field(..., description="Identifier unique within the plan")
    title: str = Field(..., description="Short label")
    description: str = Field(..., description="Instruction text for the coder model")
    file_path: str = Field(..., description="Target path within the repository")
    operation: FileOperation = Field(default=FileOperation.UPDATE)
    status: StepStatus = Field(default=StepStatus.PENDING)


class Plan(BaseModel):
    """Ordered steps generated from a single prompt."""
    title: str = Field(..., description="Short title for the plan")
    prompt: str = Field(default="", description="Prompt the plan was generated from")
    steps: list[PlanStep] = Field(default_factory=list)
    fallback: bool = Field(default=False, description="True when the model output was unusable")
    
    def get_step(self, step_id: str) -> PlanStep | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None
    
    def to_markdown(self) -> str:
        """Render plan as markdown."""
        md = f"# {self.title}\n\n"
        for i, step in enumerate(self.steps, 1):
            checkbox = "[x]" if step.status == StepStatus.COMPLETED else "[ ]"
            md += f"{i}. {checkbox} **{step.operation.value}** (`{step.file_path}`): {step.title}\n"
        return md


# =============================================================================
# Repository Schemas
# =============================================================================

class RepositoryFile(BaseModel):
    """A node of the remote file tree, with lazily loaded content."""
    path: str
    name: str = ""
    type: EntryType = EntryType.FILE
    size: int | None = None
    content: str | None = Field(default=None, description="Loaded lazily")
    version_token: str | None = Field(default=None, description="Token from the last read or write")


class FileContent(BaseModel):
    """Decoded file content together with its version token."""
    path: str
    content: str
    version_token: str


class ProposedEdit(BaseModel):
    """Unsaved candidate content for one path, pending a commit."""
    path: str
    content: str = ""
    operation: FileOperation = FileOperation.UPDATE
    step_id: str | None = None
    base_version_token: str | None = Field(
        default=None, description="Token of the file content the edit was produced from"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CommitResult(BaseModel):
    """Outcome of a write through the repository gateway."""
    success: bool
    path: str | None = None
    new_version_token: str | None = None
    commit_sha: str | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None


class GitHubRepo(BaseModel):
    """Repository summary as listed for the authenticated user."""
    id: int
    name: str
    full_name: str
    description: str | None = None
    stargazers_count: int = 0
    language: str | None = None
    updated_at: str | None = None
    default_branch: str = "main"
    html_url: str | None = None


# =============================================================================
# LLM Schemas
# =============================================================================

class ChatMessage(BaseModel):
    """A single message in a chat-completion conversation."""
    role: Literal["system", "user", "assistant"] = Field(...)
    content: str = Field(...)


# =============================================================================
# Workspace State
# =============================================================================

class ErrorInfo(BaseModel):
    """Last failure recorded by the coordinator for display."""
    kind: ErrorKind
    message: str
    step_id: str | None = None
    path: str | None = None


class WorkspaceState(BaseModel):
    """Read-only snapshot of coordinator state for presentation layers."""
    repository: str
    context_loaded: bool = False
    planning: bool = False
    plan: Plan | None = None
    files: dict[str, RepositoryFile] = Field(default_factory=dict)
    active_path: str | None = None
    proposed_edits: dict[str, ProposedEdit] = Field(default_factory=dict)
    last_error: ErrorInfo | None = None
    
    def step_status(self, step_id: str) -> StepStatus | None:
        if self.plan is None:
            return None
        step = self.plan.get_step(step_id)
        return step.status if step else None


# =============================================================================
# API Request/Response Schemas
# =============================================================================

class CredentialsUpdateRequest(BaseModel):
    """API request to store credentials."""
    github_token: str | None = Field(default=None, description="GitHub bearer token")
    model_api_key: str | None = Field(default=None, description="OpenRouter API key")
    validate_token: bool = Field(default=True, description="Check the GitHub token before saving")


class CredentialsStatusResponse(BaseModel):
    """Which credentials are configured; values are never returned."""
    github_token: bool
    model_api_key: bool


class OpenWorkspaceRequest(BaseModel):
    """API request to open a repository workspace."""
    repository: str = Field(..., description="owner/name")
    branch: str | None = Field(default=None, description="Branch to commit to; default branch if omitted")

    class Config:
        json_schema_extra = {
            "example": {"repository": "octocat/hello-world"}
        }


class CreatePlanRequest(BaseModel):
    """API request to generate a plan."""
    prompt: str = Field(..., description="Natural language change request")


class CommitRequest(BaseModel):
    """API request to commit a proposed edit."""
    message: str | None = Field(default=None, description="Commit message")


class RepoListResponse(BaseModel):
    """API response for listing repositories."""
    repos: list[GitHubRepo]
    total: int


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    details: dict[str, Any] = Field(default_factory=dict)
