import uuid
from datetime import date
from typing import Optional
from enum import Enum

from pydantic import Field, field_validator

from .base import ApiModel, OwnedResponse, empty_to_none


# Enums
class VehicleType(str, Enum):
    car = "car"
    truck = "truck"
    van = "van"
    bike = "bike"
    other = "other"


class VehicleStatus(str, Enum):
    active = "active"
    maintenance = "maintenance"
    inactive = "inactive"


class InstrumentStatus(str, Enum):
    available = "available"
    in_use = "in-use"
    repair = "repair"
    lost = "lost"


def _check_year(v: Optional[int]) -> Optional[int]:
    if v is None:
        return v
    latest = date.today().year + 1
    if v < 1900:
        raise ValueError("Year must be after 1900")
    if v > latest:
        raise ValueError("Year cannot be in the future")
    return v


# Vehicle Schemas
class VehicleBase(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    type: VehicleType
    registration_number: str = Field(min_length=1, max_length=50)
    model: Optional[str] = Field(default=None, max_length=100)
    year: Optional[int] = None
    status: VehicleStatus = VehicleStatus.active
    insurance_expiry: Optional[date] = None
    pollution_expiry: Optional[date] = None
    service_due_date: Optional[date] = None

    @field_validator('registration_number', mode='after')
    @classmethod
    def upper_registration(cls, v):
        return v.upper() if v else v

    @field_validator('model', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return empty_to_none(v)

    @field_validator('year', mode='after')
    @classmethod
    def year_in_range(cls, v):
        return _check_year(v)


class VehicleCreate(VehicleBase):
    pass


class VehicleUpdate(VehicleBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[VehicleType] = None
    registration_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    status: Optional[VehicleStatus] = None


class VehicleResponse(OwnedResponse):
    name: str
    type: VehicleType
    registration_number: str
    model: Optional[str] = None
    year: Optional[int] = None
    status: VehicleStatus
    insurance_expiry: Optional[date] = None
    pollution_expiry: Optional[date] = None
    service_due_date: Optional[date] = None


class VehicleSummary(ApiModel):
    id: uuid.UUID
    name: str
    registration_number: str


# Instrument Schemas
class InstrumentBase(ApiModel):
    name: str = Field(min_length=1, max_length=255)
    type: Optional[str] = Field(default=None, max_length=100)
    serial_number: str = Field(min_length=1, max_length=100)
    status: InstrumentStatus = InstrumentStatus.available
    last_serviced_on: Optional[date] = None

    @field_validator('type', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return empty_to_none(v)


class InstrumentCreate(InstrumentBase):
    pass


class InstrumentUpdate(InstrumentBase):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    serial_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[InstrumentStatus] = None


class InstrumentResponse(OwnedResponse):
    name: str
    type: Optional[str] = None
    serial_number: str
    status: InstrumentStatus
    last_serviced_on: Optional[date] = None


class InstrumentSummary(ApiModel):
    id: uuid.UUID
    name: str
    status: InstrumentStatus
