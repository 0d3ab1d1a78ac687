import uuid
from datetime import date
from typing import Optional
from enum import Enum

from pydantic import Field, field_validator

from .base import ApiModel, OwnedResponse, empty_to_none
from .crews import CrewSummary
from .sites import SiteSummary


class ExpenseType(str, Enum):
    fuel = "FUEL"
    food = "FOOD"
    salary = "SALARY"
    others = "OTHERS"


class ExpenseBase(ApiModel):
    type: ExpenseType
    site_id: Optional[uuid.UUID] = None
    crew_id: Optional[uuid.UUID] = None
    amount: float = Field(ge=0)
    description: Optional[str] = None
    expense_date: date

    @field_validator('description', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return empty_to_none(v)


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(ExpenseBase):
    type: Optional[ExpenseType] = None
    amount: Optional[float] = Field(default=None, ge=0)
    expense_date: Optional[date] = None


class ExpenseResponse(OwnedResponse):
    type: str
    site_id: Optional[uuid.UUID] = None
    crew_id: Optional[uuid.UUID] = None
    amount: float
    description: Optional[str] = None
    expense_date: date

    site: Optional[SiteSummary] = None
    crew: Optional[CrewSummary] = None
