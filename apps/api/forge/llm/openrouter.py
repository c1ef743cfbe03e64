"""OpenRouter chat-completion adapter.

OpenRouter provides an OpenAI-compatible API at https://openrouter.ai/api/v1
and identifies the calling application through the HTTP-Referer and
X-Title headers.
"""

from __future__ import annotations

import logging
import time

import httpx

from forge.config import Settings, get_settings
from forge.errors import AuthenticationError, GatewayError, ModelUnavailableError, NetworkError
from forge.llm.base import ChatAdapter
from forge.schemas import ChatMessage


logger = logging.getLogger(__name__)


class OpenRouterAdapter(ChatAdapter):
    """OpenRouter API adapter using the OpenAI-compatible endpoint."""
    
    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        self.base_url = settings.openrouter_base_url
        self.timeout = settings.llm_timeout_seconds
        
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "HTTP-Referer": settings.openrouter_site_url,
                "X-Title": settings.openrouter_site_name,
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=transport,
        )
    
    @property
    def provider_name(self) -> str:
        return "openrouter"
    
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str,
        api_key: str,
        temperature: float = 0.2,
    ) -> str:
        """Send chat completion request to OpenRouter."""
        payload = self._build_request(messages=messages, model=model, temperature=temperature)
        
        start_time = time.perf_counter()
        
        try:
            response = await self._client.post(
                "/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.TransportError as e:
            raise NetworkError(f"OpenRouter request failed: {e}") from e
        
        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(f"OpenRouter {model} responded {response.status_code} in {latency_ms}ms")
        
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"OpenRouter rejected the API key: {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code == 404:
            raise ModelUnavailableError(
                f"Model not found: {model}",
                status_code=response.status_code,
            )
        if response.is_error:
            logger.error(f"AI Error: {response.text}")
            raise GatewayError(
                f"OpenRouter API Error: {response.status_code}",
                status_code=response.status_code,
            )
        
        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError("OpenRouter returned a non-JSON body") from e
        
        # Parse response
        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        content = message.get("content")
        if content is None:
            raise GatewayError(f"OpenRouter returned no content for {model}")
        
        return content
    
    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
