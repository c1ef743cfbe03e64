"""Plan / execute / commit coordinator for one repository workspace.

The coordinator owns all workspace state (plan, step statuses, known files,
staged edits) and exposes it to presentation layers through read-only
snapshots pushed to subscribed listeners.

Flow:
  load_context -> create_plan -> execute_step (per step) -> commit | discard

Concurrency: executions of different steps may overlap; executions of the
same step are serialized by the IN_PROGRESS guard. Proposed edits are keyed
by path and the last finished execution for a path wins.
"""

from __future__ import annotations

import logging
from typing import Callable

from forge.agent.planner import fallback_plan, parse_plan
from forge.agent.prompts import format_execute_messages, format_plan_messages
from forge.agent.transitions import transition
from forge.config import Settings, get_settings
from forge.errors import (
    EditNotFoundError,
    ErrorKind,
    FileNotFoundInRepoError,
    ForgeError,
    GatewayError,
    PlanParseError,
    StepBusyError,
    StepNotFoundError,
)
from forge.llm.router import ChatCompletionGateway
from forge.schemas import (
    CommitResult,
    EntryType,
    ErrorInfo,
    FileOperation,
    Plan,
    PlanStep,
    ProposedEdit,
    RepositoryFile,
    StepStatus,
    WorkspaceState,
)
from forge.tools.github import GitHubContentGateway
from forge.tools.snapshot import build_repository_snapshot


logger = logging.getLogger(__name__)

StateListener = Callable[[WorkspaceState], None]


class WorkspaceCoordinator:
    """Single-user, single-session coordinator for one repository."""
    
    def __init__(
        self,
        repository: str,
        repository_gateway: GitHubContentGateway,
        chat_gateway: ChatCompletionGateway,
        settings: Settings | None = None,
        branch: str | None = None,
    ):
        self.repository = repository
        self.branch = branch
        self._repo = repository_gateway
        self._chat = chat_gateway
        self._settings = settings or get_settings()
        
        self._context = ""
        self._context_loaded = False
        self._planning = False
        self._plan: Plan | None = None
        self._files: dict[str, RepositoryFile] = {}
        self._active_path: str | None = None
        self._edits: dict[str, ProposedEdit] = {}
        self._last_error: ErrorInfo | None = None
        self._listeners: list[StateListener] = []
    
    # =========================================================================
    # Observation
    # =========================================================================
    
    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)
    
    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
    
    def snapshot(self) -> WorkspaceState:
        """Detached copy of the current state."""
        return WorkspaceState(
            repository=self.repository,
            context_loaded=self._context_loaded,
            planning=self._planning,
            plan=self._plan.model_copy(deep=True) if self._plan else None,
            files={p: f.model_copy(deep=True) for p, f in self._files.items()},
            active_path=self._active_path,
            proposed_edits={p: e.model_copy(deep=True) for p, e in self._edits.items()},
            last_error=self._last_error.model_copy() if self._last_error else None,
        )
    
    def _publish(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning(f"State listener {listener} failed: {e}")
    
    def _record_error(self, error: Exception, step_id: str | None = None, path: str | None = None) -> None:
        self._last_error = ErrorInfo(
            kind=getattr(error, "kind", ErrorKind.GENERIC),
            message=str(error),
            step_id=step_id,
            path=path,
        )
    
    # =========================================================================
    # Repository
    # =========================================================================
    
    async def load_context(self) -> str:
        """Build the planning snapshot from the repository root."""
        try:
            context, entries = await build_repository_snapshot(
                self._repo,
                self.repository,
                readme_chars=self._settings.readme_excerpt_chars,
            )
        except ForgeError as e:
            logger.error(f"Failed to fetch repo details for {self.repository}: {e}")
            self._record_error(e)
            self._publish()
            raise
        
        self._merge_entries(entries)
        self._context = context
        self._context_loaded = True
        logger.info(f"Loaded context for {self.repository} ({len(entries)} entries)")
        self._publish()
        return context
    
    async def list_directory(self, path: str = "") -> list[RepositoryFile]:
        entries = await self._repo.list_directory(self.repository, path)
        self._merge_entries(entries)
        self._publish()
        return [self._files[e.path].model_copy() for e in entries]
    
    async def open_file(self, path: str) -> RepositoryFile:
        """Load a file and make it the active file."""
        file = await self._read(path)
        self._active_path = path
        self._publish()
        return file.model_copy()
    
    async def reload_file(self, path: str) -> RepositoryFile:
        """Refresh content and version token, keeping any staged edit."""
        file = await self._read(path)
        self._publish()
        return file.model_copy()
    
    def _merge_entries(self, entries: list[RepositoryFile]) -> None:
        for entry in entries:
            known = self._files.get(entry.path)
            if known is None:
                self._files[entry.path] = entry.model_copy()
            else:
                known.name = entry.name
                known.type = entry.type
                known.size = entry.size
    
    async def _read(self, path: str) -> RepositoryFile:
        result = await self._repo.read_file(self.repository, path)
        file = self._files.get(path)
        if file is None:
            file = RepositoryFile(path=path, name=path.rsplit("/", 1)[-1])
            self._files[path] = file
        file.type = EntryType.FILE
        file.content = result.content
        file.version_token = result.version_token
        return file
    
    async def _read_if_exists(self, path: str) -> RepositoryFile | None:
        try:
            return await self._read(path)
        except FileNotFoundInRepoError:
            return None
    
    # =========================================================================
    # Plan
    # =========================================================================
    
    async def create_plan(self, prompt: str) -> Plan:
        """Generate a plan for ``prompt``.
        
        Never raises for unusable model output: a single manual-review step
        is planned instead so execution can always proceed.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty")
        
        self._planning = True
        self._last_error = None
        self._publish()
        
        try:
            messages = format_plan_messages(
                prompt,
                self._context,
                context_chars=self._settings.plan_context_chars,
            )
            text = await self._chat.complete(self._settings.planner_model, messages)
            plan = parse_plan(text, prompt)
            logger.info(f"Generated plan '{plan.title}' with {len(plan.steps)} steps")
        except PlanParseError as e:
            logger.warning(f"Unusable plan output, falling back to manual review: {e}")
            plan = fallback_plan(prompt, self._settings.fallback_plan_path)
        except GatewayError as e:
            logger.error(f"Plan generation failed, falling back to manual review: {e}")
            self._record_error(e)
            plan = fallback_plan(prompt, self._settings.fallback_plan_path)
        finally:
            self._planning = False
        
        self._plan = plan
        self._publish()
        return plan.model_copy(deep=True)
    
    def _require_step(self, step_id: str) -> PlanStep:
        step = self._plan.get_step(step_id) if self._plan else None
        if step is None:
            raise StepNotFoundError(f"No step {step_id} in the current plan")
        return step
    
    # =========================================================================
    # Execute
    # =========================================================================
    
    async def execute_step(self, step_id: str) -> ProposedEdit:
        """Run one step and stage its result as the proposed edit for its path.
        
        Raises:
            StepBusyError: The step is already running (status unchanged)
            InvalidTransitionError: The step already completed
            GatewayError: The step failed; it is marked FAILED and any
                earlier edit for the path is kept
        """
        step = self._require_step(step_id)
        if step.status == StepStatus.IN_PROGRESS:
            raise StepBusyError(step.id)
        
        transition(step, StepStatus.IN_PROGRESS)
        self._last_error = None
        logger.info(f"Executing step {step.id}: {step.title} ({step.operation.value} {step.file_path})")
        self._publish()
        
        try:
            edit = await self._run_step(step)
        except Exception as e:
            transition(step, StepStatus.FAILED)
            self._record_error(e, step_id=step.id, path=step.file_path)
            logger.error(f"Step {step.id} failed: {e}")
            self._publish()
            raise
        
        transition(step, StepStatus.COMPLETED)
        self._edits[step.file_path] = edit
        logger.info(f"Step {step.id} completed, staged edit for {step.file_path}")
        self._publish()
        return edit.model_copy()
    
    async def _run_step(self, step: PlanStep) -> ProposedEdit:
        path = step.file_path
        
        if step.operation == FileOperation.DELETE:
            current = await self._read(path)
            return ProposedEdit(
                path=path,
                operation=FileOperation.DELETE,
                step_id=step.id,
                base_version_token=current.version_token,
            )
        
        current = await self._read_if_exists(path)
        messages = format_execute_messages(
            task=step.description,
            file_path=path,
            current_code=current.content if current else "",
        )
        content = await self._chat.complete(self._settings.coder_model, messages)
        return ProposedEdit(
            path=path,
            content=content,
            operation=FileOperation.UPDATE if current else FileOperation.CREATE,
            step_id=step.id,
            base_version_token=current.version_token if current else None,
        )
    
    # =========================================================================
    # Staging / Commit
    # =========================================================================
    
    def discard(self, path: str) -> None:
        if self._edits.pop(path, None) is None:
            raise EditNotFoundError(f"No proposed edit for {path}")
        logger.info(f"Discarded proposed edit for {path}")
        self._publish()
    
    async def commit(self, path: str, message: str | None = None) -> CommitResult:
        """Write the staged edit for ``path`` back to the repository.
        
        Uses the version token from the last read of the path. On failure the
        edit and the local file are left untouched; a stale token is reported
        with ``error_kind == CONFLICT`` and resolved by ``reload_file``.
        """
        edit = self._edits.get(path)
        if edit is None:
            raise EditNotFoundError(f"No proposed edit for {path}")
        
        file = self._files.get(path)
        token = file.version_token if file else None
        message = message or f"{edit.operation.value.capitalize()} {path}"
        self._last_error = None
        
        try:
            if edit.operation == FileOperation.DELETE:
                if not token:
                    raise GatewayError(f"Reload {path} before deleting it")
                result = await self._repo.delete_file(
                    self.repository, path, message, token, branch=self.branch
                )
            else:
                result = await self._repo.write_file(
                    self.repository, path, edit.content, message,
                    version_token=token, branch=self.branch,
                )
        except ForgeError as e:
            logger.error(f"Commit of {path} failed: {e}")
            self._record_error(e, path=path)
            self._publish()
            return CommitResult(
                success=False,
                path=path,
                error_kind=getattr(e, "kind", ErrorKind.GENERIC),
                error_message=str(e),
            )
        
        if edit.operation == FileOperation.DELETE:
            self._files.pop(path, None)
            if self._active_path == path:
                self._active_path = None
        else:
            if file is None:
                file = RepositoryFile(path=path, name=path.rsplit("/", 1)[-1])
                self._files[path] = file
            file.type = EntryType.FILE
            file.content = edit.content
            file.version_token = result.new_version_token
        
        # A newer edit staged while the write was in flight stays staged
        if self._edits.get(path) is edit:
            del self._edits[path]
        
        logger.info(f"Committed {path} to {self.repository}")
        self._publish()
        return result
