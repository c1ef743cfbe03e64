"""Credential store and provider.

The store is a plain persistent key-value table. The provider owns the
lifecycle: it is loaded once at startup and reloaded whenever a credential
changes through it. Gateways ask the provider at the start of every call.
"""

from __future__ import annotations

import logging

from sqlmodel import select

from forge.database.models import Setting, utc_now
from forge.database.session import Database
from forge.errors import MissingCredentialError


logger = logging.getLogger(__name__)

GITHUB_TOKEN_KEY = "gh_token"
MODEL_API_KEY = "openrouter_api_key"


class CredentialStore:
    """Persistent key-value store for credentials and settings."""
    
    def __init__(self, database: Database):
        self._db = database
    
    async def get(self, key: str) -> str | None:
        async with self._db.session() as session:
            setting = await session.get(Setting, key)
            return setting.value if setting else None
    
    async def set(self, key: str, value: str) -> None:
        async with self._db.session() as session:
            setting = await session.get(Setting, key)
            if setting is None:
                session.add(Setting(key=key, value=value))
            else:
                setting.value = value
                setting.updated_at = utc_now()
                session.add(setting)
    
    async def remove(self, key: str) -> None:
        async with self._db.session() as session:
            setting = await session.get(Setting, key)
            if setting is not None:
                await session.delete(setting)
    
    async def all(self) -> dict[str, str]:
        async with self._db.session() as session:
            result = await session.execute(select(Setting))
            return {s.key: s.value for s in result.scalars().all()}


class CredentialProvider:
    """Process-wide view of the stored credentials."""
    
    def __init__(self, store: CredentialStore):
        self._store = store
        self._values: dict[str, str] = {}
    
    async def load(self) -> None:
        """Read all credentials from the store."""
        self._values = await self._store.all()
        logger.info(f"Loaded credentials: {sorted(self._values)}")
    
    async def set(self, key: str, value: str) -> None:
        await self._store.set(key, value)
        await self.load()
        logger.info(f"Credential {key} updated")
    
    async def remove(self, key: str) -> None:
        await self._store.remove(key)
        await self.load()
        logger.info(f"Credential {key} removed")
    
    def has(self, key: str) -> bool:
        return bool(self._values.get(key))
    
    def repository_token(self) -> str:
        token = self._values.get(GITHUB_TOKEN_KEY)
        if not token:
            raise MissingCredentialError("GitHub token not configured")
        return token
    
    def model_api_key(self) -> str | None:
        return self._values.get(MODEL_API_KEY) or None
