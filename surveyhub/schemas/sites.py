import uuid
from datetime import date
from typing import List, Optional
from enum import Enum

from pydantic import Field, field_validator

from .base import ApiModel, OwnedResponse, empty_to_none
from .clients import ClientSummary
from .crews import CrewSummary
from .fleet import VehicleSummary, InstrumentSummary


class SiteStatus(str, Enum):
    pending = "PENDING"
    on_site_completed = "ON SITE COMPLETED"
    drawing_completed = "DRAWING COMPLETED"
    bill_submitted = "BILL SUBMITTED"
    bill_paid = "BILL PAID"
    project_completed = "PROJECT COMPLETED"


class SiteBase(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    location_url: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    status: SiteStatus = SiteStatus.pending
    client_id: Optional[uuid.UUID] = None
    vehicle_id: Optional[uuid.UUID] = None
    crew_ids: List[uuid.UUID] = Field(default_factory=list)
    instrument_ids: List[uuid.UUID] = Field(default_factory=list)

    @field_validator('location_url', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return empty_to_none(v)


class SiteCreate(SiteBase):
    pass


class SiteUpdate(SiteBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    status: Optional[SiteStatus] = None
    crew_ids: Optional[List[uuid.UUID]] = None
    instrument_ids: Optional[List[uuid.UUID]] = None


class BillSummary(ApiModel):
    id: uuid.UUID
    bill_number: str
    total_amount: float
    payment_status: str


class SiteResponse(OwnedResponse):
    name: str
    address: str
    city: str
    state: str
    location_url: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    status: str
    client_id: Optional[uuid.UUID] = None
    vehicle_id: Optional[uuid.UUID] = None
    bill_id: Optional[uuid.UUID] = None
    crew_ids: List[uuid.UUID] = Field(default_factory=list)
    instrument_ids: List[uuid.UUID] = Field(default_factory=list)

    # Expanded references, filled on demand
    client: Optional[ClientSummary] = None
    vehicle: Optional[VehicleSummary] = None
    bill: Optional[BillSummary] = None
    crews: Optional[List[CrewSummary]] = None
    instruments: Optional[List[InstrumentSummary]] = None


class SiteSummary(ApiModel):
    id: uuid.UUID
    name: str
    city: Optional[str] = None
