"""Credential store persistence and provider lifecycle."""

from __future__ import annotations

import pytest

from forge.credentials import GITHUB_TOKEN_KEY, MODEL_API_KEY, CredentialProvider, CredentialStore
from forge.database.models import Setting
from forge.database.session import Database
from forge.errors import MissingCredentialError


@pytest.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.init()
    yield db
    await db.close()


@pytest.mark.asyncio
async def test_store_round_trip(database):
    store = CredentialStore(database)
    
    assert await store.get("gh_token") is None
    await store.set("gh_token", "one")
    await store.set("gh_token", "two")
    assert await store.get("gh_token") == "two"
    assert await store.all() == {"gh_token": "two"}
    
    await store.remove("gh_token")
    await store.remove("gh_token")
    assert await store.get("gh_token") is None


@pytest.mark.asyncio
async def test_update_refreshes_timestamp(database):
    store = CredentialStore(database)
    
    await store.set(GITHUB_TOKEN_KEY, "one")
    async with database.session() as session:
        first = (await session.get(Setting, GITHUB_TOKEN_KEY)).updated_at
    await store.set(GITHUB_TOKEN_KEY, "two")
    async with database.session() as session:
        second = (await session.get(Setting, GITHUB_TOKEN_KEY)).updated_at
    
    assert first is not None
    assert second >= first
    assert await store.get(GITHUB_TOKEN_KEY) == "two"


@pytest.mark.asyncio
async def test_values_persist_across_connections(settings, database):
    await CredentialStore(database).set(MODEL_API_KEY, "sk-user")
    
    other = Database(settings.database_url)
    try:
        assert await CredentialStore(other).get(MODEL_API_KEY) == "sk-user"
    finally:
        await other.close()


@pytest.mark.asyncio
async def test_provider_reloads_on_change(database):
    provider = CredentialProvider(CredentialStore(database))
    await provider.load()
    
    with pytest.raises(MissingCredentialError):
        provider.repository_token()
    assert provider.model_api_key() is None
    
    await provider.set(GITHUB_TOKEN_KEY, "ghp_abc")
    assert provider.repository_token() == "ghp_abc"
    assert provider.has(GITHUB_TOKEN_KEY)
    
    await provider.remove(GITHUB_TOKEN_KEY)
    assert not provider.has(GITHUB_TOKEN_KEY)


@pytest.mark.asyncio
async def test_empty_model_key_means_default(fake_store):
    fake_store.values[MODEL_API_KEY] = ""
    provider = CredentialProvider(fake_store)
    await provider.load()
    
    assert provider.model_api_key() is None
