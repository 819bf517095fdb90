"""
Request and record schemas validated at the boundary.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Body of a chat turn request."""
    prompt: str = Field(min_length=1)

    @field_validator("prompt")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be blank")
        return value


class Turn(BaseModel):
    """One message in the relational store."""
    id: Optional[int] = None
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime


class Persona(BaseModel):
    """A companion persona with its most recent turns for one user."""
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    instructions: str
    seed: str = ""
    turns: list[Turn] = Field(default_factory=list)  # newest first
