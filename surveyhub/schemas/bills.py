import uuid
from datetime import date
from typing import List, Optional
from enum import Enum

from pydantic import Field, field_validator

from .base import ApiModel, OwnedResponse, empty_to_none
from .clients import ClientSummary
from .sites import SiteSummary


class PaymentStatus(str, Enum):
    unpaid = "UNPAID"
    partial = "PARTIAL"
    paid = "PAID"


class BillItemInput(ApiModel):
    site_id: uuid.UUID
    site_name: Optional[str] = Field(default=None, max_length=255)
    description: str = Field(min_length=1)
    rate: float = Field(ge=0)
    amount: float = Field(ge=0)


class BillBase(ApiModel):
    # Totals and siteIds are derived server side; callers cannot set them
    customer_id: uuid.UUID
    bill_number: str = Field(min_length=1, max_length=50)
    bill_date: date
    items: List[BillItemInput] = Field(min_length=1)
    is_gst_bill: bool = Field(default=False, alias="isGSTBill")
    state_gst: float = Field(default=0, ge=0, le=100, alias="stateGST")
    central_gst: float = Field(default=0, ge=0, le=100, alias="centralGST")
    payment_status: PaymentStatus = PaymentStatus.unpaid
    notes: Optional[str] = None

    @field_validator('notes', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return empty_to_none(v)


class BillCreate(BillBase):
    pass


class BillUpdate(BillBase):
    customer_id: Optional[uuid.UUID] = None
    bill_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    bill_date: Optional[date] = None
    items: Optional[List[BillItemInput]] = Field(default=None, min_length=1)
    is_gst_bill: Optional[bool] = Field(default=None, alias="isGSTBill")
    state_gst: Optional[float] = Field(default=None, ge=0, le=100, alias="stateGST")
    central_gst: Optional[float] = Field(default=None, ge=0, le=100, alias="centralGST")
    payment_status: Optional[PaymentStatus] = None


class BillItemResponse(ApiModel):
    id: uuid.UUID
    site_id: uuid.UUID
    site_name: str
    description: str
    rate: float
    amount: float


class BillResponse(OwnedResponse):
    customer_id: uuid.UUID
    site_ids: List[uuid.UUID] = Field(default_factory=list)
    bill_number: str
    bill_date: date
    items: List[BillItemResponse] = Field(default_factory=list)
    subtotal: float
    is_gst_bill: bool = Field(alias="isGSTBill")
    state_gst: float = Field(alias="stateGST")
    central_gst: float = Field(alias="centralGST")
    total_tax_amount: float
    total_amount: float
    payment_status: str
    notes: Optional[str] = None

    customer: Optional[ClientSummary] = None
    sites: Optional[List[SiteSummary]] = None


class NextBillNumber(ApiModel):
    next_bill_number: str
