import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .base import ApiModel


class RegisterRequest(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator('email', mode='after')
    @classmethod
    def lower_email(cls, v):
        return v.lower()


class LoginRequest(ApiModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminResponse(ApiModel):
    id: uuid.UUID
    name: str
    email: str
    created_at: Optional[datetime] = None


class TokenResponse(ApiModel):
    token: str
    user: AdminResponse
