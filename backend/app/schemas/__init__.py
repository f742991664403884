"""
Pydantic schemas package.
"""

from app.schemas.expense import (
    ExpenseCreate,
    ExpenseUpdate,
    ExpenseResponse,
    ExpenseListResponse,
    ExpenseFilter,
    SummaryFilter,
    GroupsFilter,
    CurrencySummary,
    ExpenseSummary,
    ExpenseMeta,
    ExpenseGroup,
    ExpenseGroupsResponse,
)
from app.schemas.currency import ExchangeRatesResponse, CurrencyList
from app.schemas.user import (
    UserRegister,
    UserLogin,
    UserUpdate,
    UserResponse,
)

__all__ = [
    "ExpenseCreate",
    "ExpenseUpdate",
    "ExpenseResponse",
    "ExpenseListResponse",
    "ExpenseFilter",
    "SummaryFilter",
    "GroupsFilter",
    "CurrencySummary",
    "ExpenseSummary",
    "ExpenseMeta",
    "ExpenseGroup",
    "ExpenseGroupsResponse",
    "ExchangeRatesResponse",
    "CurrencyList",
    "UserRegister",
    "UserLogin",
    "UserUpdate",
    "UserResponse",
]
