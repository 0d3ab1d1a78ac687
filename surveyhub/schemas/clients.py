import uuid
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .base import ApiModel, OwnedResponse, empty_to_none


class ClientBase(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    company: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = None
    gst_number: Optional[str] = Field(default=None, max_length=50)
    notes: Optional[str] = None

    @field_validator('email', 'phone', 'company', 'address', 'gst_number', 'notes', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return empty_to_none(v)

    @field_validator('email', mode='after')
    @classmethod
    def lower_email(cls, v):
        return v.lower() if v else v


class ClientCreate(ClientBase):
    pass


class ClientUpdate(ClientBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class ClientStats(ApiModel):
    total_projects: int
    active_projects: int
    completed_projects: int
    total_bills: int
    total_revenue: float
    paid_amount: float
    pending_amount: float


class ClientResponse(OwnedResponse):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    gst_number: Optional[str] = None
    notes: Optional[str] = None
    stats: Optional[ClientStats] = None


class ClientSummary(ApiModel):
    id: uuid.UUID
    name: str
    company: Optional[str] = None
