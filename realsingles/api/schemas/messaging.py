"""
Messaging schemas.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    message_type: Literal["text", "image", "gif"] = "text"
    client_message_id: Optional[str] = Field(None, max_length=64, description="Client-side id for retries")

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message cannot be empty")
        return v
