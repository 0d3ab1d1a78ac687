import uuid
from typing import Optional

from pydantic import Field

from .base import ApiModel, OwnedResponse


class CrewCreate(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=6)
    is_active: bool = True


class CrewUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = Field(default=None, min_length=6)
    is_active: Optional[bool] = None


class CrewResponse(OwnedResponse):
    # password_hash is never part of the response
    name: str
    username: str
    is_active: bool


class CrewSummary(ApiModel):
    id: uuid.UUID
    name: str
    is_active: Optional[bool] = None
