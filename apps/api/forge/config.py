"""Application settings using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "Forge Agent"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    
    # ==========================================================================
    # Credential store (client-local)
    # ==========================================================================
    database_url: str = Field(default="sqlite+aiosqlite:///./forge.db")
    
    # ==========================================================================
    # OpenRouter
    # ==========================================================================
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_api_key: str = Field(default="", description="System default key")
    openrouter_site_url: str = "http://localhost:3000"
    openrouter_site_name: str = "FORGE AI"
    planner_model: str = "mistralai/devstral-2512:free"
    coder_model: str = "openai/gpt-oss-120b:free"
    llm_temperature: float = 0.2
    llm_timeout_seconds: float = 120.0
    
    # ==========================================================================
    # GitHub
    # ==========================================================================
    github_api_base: str = "https://api.github.com"
    github_timeout_seconds: float = 30.0
    
    # ==========================================================================
    # Planning
    # ==========================================================================
    readme_excerpt_chars: int = 1000
    plan_context_chars: int = 2000
    fallback_plan_path: str = "docs/README.md"
    
    # ==========================================================================
    # API
    # ==========================================================================
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    cors_origins: list[str] = Field(default=["http://localhost:3000"])


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
