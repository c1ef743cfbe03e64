"""Chat-completion gateway with key-fallback retry.

Strategy:
- Use the user-configured API key if present, else the system default key
- On an authentication rejection with a user key: retry once with the default key
- Everything else (non-auth failures, a second auth failure) propagates
"""

from __future__ import annotations

import logging

from forge.config import Settings, get_settings
from forge.credentials import CredentialProvider
from forge.errors import AuthenticationError, ErrorKind, GatewayError
from forge.llm.base import ChatAdapter
from forge.llm.normalize import strip_code_fences
from forge.schemas import ChatMessage


logger = logging.getLogger(__name__)


class ChatCompletionGateway:
    """Routes completion requests to an adapter with key fallback."""
    
    def __init__(
        self,
        adapter: ChatAdapter,
        credentials: CredentialProvider,
        settings: Settings | None = None,
        default_api_key: str | None = None,
    ):
        self._adapter = adapter
        self._credentials = credentials
        self._settings = settings or get_settings()
        if default_api_key is None:
            default_api_key = self._settings.openrouter_api_key
        self._default_key = default_api_key or None
    
    async def complete(self, model: str, messages: list[ChatMessage]) -> str:
        """Return the normalized completion text.
        
        Raises:
            AuthenticationError: No usable key, or every attempted key was rejected
            ModelUnavailableError: Unknown model identifier
            NetworkError: Transport failure
            GatewayError: Any other failure
        """
        user_key = self._credentials.model_api_key()
        key = user_key or self._default_key
        if not key:
            raise AuthenticationError("No OpenRouter API key configured")
        
        try:
            raw = await self._attempt(model, messages, key)
        except GatewayError as e:
            if e.kind != ErrorKind.AUTH_FAILED or not self._default_key or key == self._default_key:
                raise
            logger.warning(f"User API key rejected for {model}, retrying with default key")
            raw = await self._attempt(model, messages, self._default_key)
        
        return strip_code_fences(raw)
    
    async def _attempt(self, model: str, messages: list[ChatMessage], key: str) -> str:
        logger.info(f"Routing completion to {self._adapter.provider_name}/{model}")
        return await self._adapter.chat_completion(
            messages=messages,
            model=model,
            api_key=key,
            temperature=self._settings.llm_temperature,
        )
    
    async def close(self) -> None:
        await self._adapter.close()
