"""SQLModel tables for client-local persistence.

Tables:
- Setting: key-value store backing the credential store
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Setting(SQLModel, table=True):
    """A single persisted setting."""
    
    __tablename__ = "settings"
    
    key: str = Field(primary_key=True, description="Setting name")
    value: str = Field(sa_column=Column(Text, nullable=False), description="Setting value")
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
