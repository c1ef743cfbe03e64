"""CLI entrypoint (Typer).

- `forge login` / `forge set-key` / `forge logout`: manage stored credentials
- `forge repos`: list repositories available to the stored token
- `forge run OWNER/NAME "<request>"`: plan, execute every step, optionally commit
- `forge serve`: run the HTTP API
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from forge.config import get_settings
from forge.credentials import GITHUB_TOKEN_KEY, MODEL_API_KEY
from forge.errors import ForgeError
from forge.schemas import StepStatus, WorkspaceState
from forge.services import Services
from forge.tools.github import filter_repos


app = typer.Typer(help="Forge Agent CLI.")

T = TypeVar("T")


def _with_services(action: Callable[[Services], Awaitable[T]]) -> T:
    async def runner() -> T:
        services = Services(get_settings())
        await services.start()
        try:
            return await action(services)
        finally:
            await services.close()
    
    return asyncio.run(runner())


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Plan, execute and commit AI edits to GitHub repositories."""
    settings = get_settings()
    logging.basicConfig(
        level="DEBUG" if verbose else settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command()
def login(token: str = typer.Option(..., prompt="GitHub token", hide_input=True)):
    """Validate and store a GitHub token."""
    async def action(services: Services) -> bool:
        if not await services.github.validate_token(token):
            return False
        await services.credentials.set(GITHUB_TOKEN_KEY, token)
        return True
    
    if not _with_services(action):
        typer.echo("Invalid GitHub token.", err=True)
        raise typer.Exit(code=1)
    typer.echo("GitHub token saved.")


@app.command("set-key")
def set_key(key: str = typer.Option(..., prompt="OpenRouter API key", hide_input=True)):
    """Store an OpenRouter API key (the system default is used otherwise)."""
    _with_services(lambda services: services.credentials.set(MODEL_API_KEY, key))
    typer.echo("API key saved.")


@app.command()
def logout():
    """Forget the stored GitHub token."""
    _with_services(lambda services: services.credentials.remove(GITHUB_TOKEN_KEY))
    typer.echo("Logged out.")


@app.command()
def repos(search: str = typer.Option("", "--search", "-s", help="Filter by name or description")):
    """List repositories, most recently updated first."""
    async def action(services: Services):
        return filter_repos(await services.github.list_user_repos(), search)
    
    try:
        found = _with_services(action)
    except ForgeError as e:
        typer.echo(f"Failed to fetch repositories: {e}", err=True)
        raise typer.Exit(code=1)
    
    for repo in found:
        language = f" [{repo.language}]" if repo.language else ""
        typer.echo(f"{repo.full_name}{language}  *{repo.stargazers_count}")


class StepPrinter:
    """Echoes step status changes as the coordinator publishes them."""
    
    def __init__(self):
        self._seen: dict[str, StepStatus] = {}
    
    def __call__(self, state: WorkspaceState) -> None:
        if state.plan is None:
            return
        for step in state.plan.steps:
            if self._seen.get(step.id) != step.status:
                self._seen[step.id] = step.status
                typer.echo(f"  [{step.status.value}] {step.id}. {step.title} ({step.file_path})")


@app.command()
def run(
    repository: str = typer.Argument(..., help="owner/name"),
    prompt: str = typer.Argument(..., help="Change to make"),
    commit: bool = typer.Option(False, "--commit", help="Commit every staged edit"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message"),
    branch: Optional[str] = typer.Option(None, "--branch", help="Branch to commit to"),
):
    """Plan a change, execute every step and optionally commit the results."""
    async def action(services: Services) -> bool:
        workspace = services.open_workspace(repository, branch=branch)
        try:
            await workspace.load_context()
        except ForgeError as e:
            typer.echo(f"Failed to fetch repo details: {e}", err=True)
        
        plan = await workspace.create_plan(prompt)
        typer.echo(plan.to_markdown())
        if plan.fallback:
            typer.echo("Plan output was unusable; using a manual review step.")
        
        workspace.subscribe(StepPrinter())
        ok = True
        for step in plan.steps:
            try:
                await workspace.execute_step(step.id)
            except ForgeError as e:
                typer.echo(f"  Step {step.id} failed: {e}", err=True)
                ok = False
        
        state = workspace.snapshot()
        for path, edit in state.proposed_edits.items():
            typer.echo(f"\n--- {edit.operation.value} {path} ---")
            typer.echo(edit.content)
            if not commit:
                continue
            result = await workspace.commit(path, message)
            if result.success:
                typer.echo(f"Committed {path} ({result.commit_sha})")
            else:
                typer.echo(f"Commit of {path} failed [{result.error_kind.value}]: {result.error_message}", err=True)
                ok = False
        return ok
    
    if not _with_services(action):
        raise typer.Exit(code=1)


@app.command()
def serve():
    """Run the HTTP API."""
    from forge.api.main import run as run_api
    
    run_api(get_settings())


if __name__ == "__main__":
    app()
