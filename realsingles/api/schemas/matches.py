"""
Member interaction schemas: match actions, blocks and favorites.
"""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class MatchActionRequest(BaseModel):
    target_user_id: UUID = Field(..., description="Member being acted on")
    action: Literal["like", "pass", "super_like"]


class UndoRequest(BaseModel):
    target_user_id: UUID


class BlockRequest(BaseModel):
    blocked_id: UUID


class FavoriteRequest(BaseModel):
    favorite_user_id: UUID
