"""Process-wide wiring of the credential store and the two gateways."""

from __future__ import annotations

import logging

import httpx

from forge.agent.coordinator import WorkspaceCoordinator
from forge.config import Settings, get_settings
from forge.credentials import CredentialProvider, CredentialStore
from forge.database.session import Database
from forge.llm.openrouter import OpenRouterAdapter
from forge.llm.router import ChatCompletionGateway
from forge.tools.github import GitHubContentGateway


logger = logging.getLogger(__name__)


class Services:
    """Owns shared resources for one process.
    
    ``start()`` initialises the database and loads credentials; ``close()``
    releases HTTP clients and database connections.
    """
    
    def __init__(
        self,
        settings: Settings | None = None,
        github_transport: httpx.AsyncBaseTransport | None = None,
        llm_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.database = Database(self.settings.database_url, echo=self.settings.debug)
        self.store = CredentialStore(self.database)
        self.credentials = CredentialProvider(self.store)
        self.github = GitHubContentGateway(self.credentials, self.settings, transport=github_transport)
        self.chat = ChatCompletionGateway(
            OpenRouterAdapter(self.settings, transport=llm_transport),
            self.credentials,
            self.settings,
        )
        self.workspace: WorkspaceCoordinator | None = None
    
    async def start(self) -> None:
        await self.database.init()
        await self.credentials.load()
        logger.info(f"Services started ({self.settings.database_url})")
    
    def open_workspace(self, repository: str, branch: str | None = None) -> WorkspaceCoordinator:
        """Replace the active workspace with one for ``repository``."""
        self.workspace = WorkspaceCoordinator(
            repository,
            self.github,
            self.chat,
            self.settings,
            branch=branch,
        )
        logger.info(f"Opened workspace for {repository}")
        return self.workspace
    
    async def close(self) -> None:
        await self.github.close()
        await self.chat.close()
        await self.database.close()
