"""Abstract base class for chat-completion adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from forge.schemas import ChatMessage


class ChatAdapter(ABC):
    """Abstract base class for chat-completion provider adapters.
    
    Adapters are stateless with respect to credentials: the API key is
    supplied on every call so the gateway can decide which key to use.
    Failures are raised as ``GatewayError`` subclasses carrying a ``kind``.
    """
    
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'openrouter')."""
        ...
    
    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str,
        api_key: str,
        temperature: float = 0.2,
    ) -> str:
        """Send a chat completion request.
        
        Args:
            messages: List of conversation messages
            model: Model identifier
            api_key: Bearer key to authenticate with
            temperature: Sampling temperature (0-2)
            
        Returns:
            Raw text content of the first choice
        """
        ...
    
    async def close(self) -> None:
        """Release transport resources."""
    
    def _build_request(
        self,
        messages: list[ChatMessage],
        model: str,
        temperature: float,
    ) -> dict[str, Any]:
        """Build the API request payload."""
        return {
            "model": model,
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
        }
