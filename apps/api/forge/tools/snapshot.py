"""Repository snapshot used as planning context."""

from __future__ import annotations

import logging

from forge.errors import GatewayError
from forge.schemas import RepositoryFile
from forge.tools.github import GitHubContentGateway


logger = logging.getLogger(__name__)

README_NAMES = ("readme.md", "readme.rst", "readme.txt", "readme")


def find_readme(entries: list[RepositoryFile]) -> RepositoryFile | None:
    """Pick the README-like file of a directory listing, preferring markdown."""
    by_name = {e.name.lower(): e for e in entries}
    for name in README_NAMES:
        entry = by_name.get(name)
        if entry is not None:
            return entry
    return None


def format_snapshot(
    repo: str,
    entries: list[RepositoryFile],
    readme: str = "",
    readme_chars: int = 1000,
) -> str:
    """Render the bounded text summary fed to the planner."""
    file_list = "\n".join(f"- {e.path} ({e.type.value.lower()})" for e in entries)
    excerpt = readme[:readme_chars]
    if len(readme) > readme_chars:
        excerpt += "..."
    return f"Repo: {repo}\nFiles:\n{file_list}\nREADME:\n{excerpt}"


async def build_repository_snapshot(
    gateway: GitHubContentGateway,
    repo: str,
    readme_chars: int = 1000,
) -> tuple[str, list[RepositoryFile]]:
    """List the repository root and excerpt its README.
    
    Returns the snapshot text and the root entries. A README that cannot be
    read leaves the excerpt empty; failing to list the root propagates.
    """
    entries = await gateway.list_directory(repo, "")
    readme_text = ""
    readme = find_readme(entries)
    if readme is not None:
        try:
            readme_text = (await gateway.read_file(repo, readme.path)).content
        except GatewayError as e:
            logger.warning(f"Could not read {readme.path} for {repo}: {e}")
    return format_snapshot(repo, entries, readme_text, readme_chars), entries
