"""
Expense API endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.dependencies import get_db, get_rate_cache, get_auth_context
from app.models.expense import ExpenseKind
from app.schemas.expense import (
    ExpenseCreate,
    ExpenseUpdate,
    ExpenseResponse,
    ExpenseListResponse,
    ExpenseFilter,
    SummaryFilter,
    GroupsFilter,
    ExpenseSummary,
    ExpenseMeta,
    ExpenseGroupsResponse,
)
from app.services import expense_service
from app.services.exchange_rate_service import ExchangeRateCache
from app.services.auth import AuthContext

router = APIRouter(prefix="/expenses", tags=["expenses"])


def _filter_params(
    user_id: Optional[str] = None,
    kind: Optional[ExpenseKind] = None,
    types: Optional[List[str]] = Query(None),
    currencies: Optional[List[str]] = Query(None),
    date_from: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD"),
) -> dict:
    return {
        "user_id": user_id,
        "kind": kind,
        "types": types or (),
        "currencies": currencies or (),
        "date_from": date_from,
        "date_to": date_to,
    }


@router.post("", response_model=ExpenseResponse, status_code=201)
def create_expense(
    expense: ExpenseCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Create an expense or income record."""
    return expense_service.add_expense(db, expense, auth)


@router.get("", response_model=ExpenseListResponse)
def list_expenses(
    params: dict = Depends(_filter_params),
    order_by: str = "date",
    order_dir: str = "desc",
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=0, le=500),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """List records with filtering, ordering and pagination (page_size=0 returns all)."""
    f = ExpenseFilter(**params, order_by=order_by, order_dir=order_dir, page=page, page_size=page_size)
    return expense_service.list_expenses(db, f, auth)


@router.get("/summary", response_model=ExpenseSummary, response_model_exclude_none=True)
def get_summary(
    params: dict = Depends(_filter_params),
    original_currency: str = "VND",
    db: Session = Depends(get_db),
    rates: ExchangeRateCache = Depends(get_rate_cache),
    auth: AuthContext = Depends(get_auth_context)
):
    """
    Totals for the filtered records expressed in original_currency.
    by_currency is only present when more than one currency is involved.
    """
    f = SummaryFilter(**params, original_currency=original_currency)
    return expense_service.get_summary(db, rates, f, auth)


@router.get("/groups", response_model=ExpenseGroupsResponse)
def get_groups(
    params: dict = Depends(_filter_params),
    original_currency: str = "VND",
    group_by: str = Query("MONTH", description="DAY, WEEK, MONTH or YEAR"),
    order_by: Optional[str] = Query(None, description="period, income, expense or balance"),
    order_dir: str = "desc",
    page: int = Query(1, ge=1),
    page_size: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    rates: ExchangeRateCache = Depends(get_rate_cache),
    auth: AuthContext = Depends(get_auth_context)
):
    """Time-bucketed totals, newest bucket first unless order_by is given."""
    f = GroupsFilter(
        **params,
        original_currency=original_currency,
        group_by=group_by,
        order_by=order_by,
        order_dir=order_dir,
        page=page,
        page_size=page_size,
    )
    return expense_service.get_groups(db, rates, f, auth)


@router.get("/meta", response_model=ExpenseMeta)
def get_meta(
    params: dict = Depends(_filter_params),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Counts and native per-currency totals without fetching rows."""
    return expense_service.get_meta(db, ExpenseFilter(**params), auth)


@router.get("/types", response_model=List[str])
def list_types(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Distinct type tags in use."""
    return expense_service.list_types(db, auth, user_id)


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Get a single record."""
    return expense_service.get_expense(db, expense_id, auth)


@router.patch("/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: str,
    update: ExpenseUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Update only the provided fields."""
    return expense_service.update_expense(db, expense_id, update, auth)


@router.delete("/{expense_id}", status_code=204)
def delete_expense(
    expense_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context)
):
    """Soft delete a record."""
    expense_service.delete_expense(db, expense_id, auth)
    return None
