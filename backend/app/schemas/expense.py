"""
Expense schemas: request bodies, filters and aggregate responses.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional, Tuple
from datetime import datetime
from decimal import Decimal

from app.models.expense import ExpenseKind
from app.utils.dates import normalize_date


def _normalize_currency(value: str) -> str:
    normalized = value.strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValueError("Currency must be a 3-letter code")
    return normalized


def _normalize_tags(values) -> Tuple[str, ...]:
    return tuple(v.strip().lower() for v in values or () if v and v.strip())


class ExpenseCreate(BaseModel):
    amount: Decimal
    currency: Optional[str] = None
    kind: ExpenseKind
    type: str = Field("", max_length=32)
    resource: str = Field("", max_length=32)
    description: Optional[str] = None
    date: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        return _normalize_currency(v) if v else None

    @field_validator("type")
    @classmethod
    def lower_type(cls, v):
        return v.strip().lower()

    @field_validator("resource")
    @classmethod
    def upper_resource(cls, v):
        return v.strip().upper()

    @field_validator("date")
    @classmethod
    def check_date(cls, v):
        return normalize_date(v)


class ExpenseUpdate(BaseModel):
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    kind: Optional[ExpenseKind] = None
    type: Optional[str] = Field(None, max_length=32)
    resource: Optional[str] = Field(None, max_length=32)
    description: Optional[str] = None
    date: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        return _normalize_currency(v) if v is not None else None

    @field_validator("type")
    @classmethod
    def lower_type(cls, v):
        return v.strip().lower() if v is not None else None

    @field_validator("resource")
    @classmethod
    def upper_resource(cls, v):
        return v.strip().upper() if v is not None else None


class ExpenseResponse(BaseModel):
    id: str
    user_id: str
    amount: float
    currency: str
    kind: ExpenseKind
    type: str
    resource: str
    description: Optional[str]
    date: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    items: List[ExpenseResponse]
    total: int
    page: int
    page_size: int
    pages: int


class ExpenseFilter(BaseModel):
    """Immutable row filter shared by list, summary and group queries."""

    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    kind: Optional[ExpenseKind] = None
    types: Tuple[str, ...] = ()
    currencies: Tuple[str, ...] = ()
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    order_by: str = "date"
    order_dir: str = "desc"
    page: int = 1
    page_size: int = 0  # <= 0 means no pagination

    @field_validator("types", mode="before")
    @classmethod
    def lower_types(cls, v):
        return _normalize_tags(v)

    @field_validator("currencies", mode="before")
    @classmethod
    def upper_currencies(cls, v):
        return tuple(_normalize_currency(c) for c in v or () if c and c.strip())

    @field_validator("date_from", "date_to")
    @classmethod
    def check_dates(cls, v):
        return normalize_date(v)


class SummaryFilter(ExpenseFilter):
    """Filter for the summary endpoint; totals are expressed in original_currency."""

    original_currency: str = "VND"

    @field_validator("original_currency")
    @classmethod
    def upper_target(cls, v):
        return _normalize_currency(v)


class GroupsFilter(SummaryFilter):
    """Filter for the time-bucket endpoint. order_by sorts buckets, not rows."""

    group_by: str = "MONTH"
    order_by: Optional[str] = None


class CurrencySummary(BaseModel):
    total_income: float = 0.0
    total_expense: float = 0.0
    total_balance: float = 0.0


class ExpenseSummary(BaseModel):
    currency: str
    income_count: int
    expense_count: int
    total_income: float
    total_expense: float
    total_balance: float
    total_by_type_income: Dict[str, float]
    total_by_type_expense: Dict[str, float]
    by_currency: Optional[Dict[str, CurrencySummary]] = None


class ExpenseMeta(BaseModel):
    total: int
    income_count: int
    expense_count: int
    by_currency: Dict[str, CurrencySummary]


class ExpenseGroup(BaseModel):
    key: str
    label: str
    income: float
    expense: float
    balance: float
    total_by_type: Dict[str, float]


class ExpenseGroupsResponse(BaseModel):
    total: int
    page: int
    page_size: int
    groups: List[ExpenseGroup]
