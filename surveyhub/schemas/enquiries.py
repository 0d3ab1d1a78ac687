from datetime import date
from typing import Optional
from enum import Enum

from pydantic import Field, field_validator

from .base import ApiModel, OwnedResponse, empty_to_none


class EnquiryStatus(str, Enum):
    new = "new"
    in_progress = "in-progress"
    completed = "completed"
    closed = "closed"


class EnquiryBase(ApiModel):
    subject: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    status: EnquiryStatus = EnquiryStatus.new
    follow_up_date: Optional[date] = None
    response_notes: Optional[str] = None

    @field_validator('response_notes', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return empty_to_none(v)


class EnquiryCreate(EnquiryBase):
    pass


class EnquiryUpdate(EnquiryBase):
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    message: Optional[str] = Field(default=None, min_length=1)
    status: Optional[EnquiryStatus] = None


class EnquiryResponse(OwnedResponse):
    subject: str
    message: str
    status: str
    follow_up_date: Optional[date] = None
    response_notes: Optional[str] = None
