"""Service for expense validation, mutation and aggregated reads."""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import InvalidInputError, NotFoundError, PermissionDeniedError
from app.models.expense import Expense, ExpenseKind
from app.schemas.expense import (
    ExpenseCreate,
    ExpenseFilter,
    ExpenseGroupsResponse,
    ExpenseListResponse,
    ExpenseMeta,
    ExpenseResponse,
    ExpenseSummary,
    ExpenseUpdate,
    GroupsFilter,
    SummaryFilter,
)
from app.services import aggregation_service, expense_repository
from app.services.auth import AuthContext
from app.services.exchange_rate_service import ExchangeRateCache
from app.utils.dates import normalize_date, today_string

logger = logging.getLogger(__name__)


def validate_sign(kind: ExpenseKind, amount) -> None:
    """Expenses must be <= 0 and incomes >= 0."""
    value = Decimal(str(amount))
    if kind == ExpenseKind.expense and value > 0:
        raise InvalidInputError("Expense amount must be negative or zero")
    if kind == ExpenseKind.income and value < 0:
        raise InvalidInputError("Income amount must be positive or zero")


def _validate_date(value: Optional[str]) -> Optional[str]:
    try:
        return normalize_date(value)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e


def scope_filter(f: ExpenseFilter, auth: AuthContext) -> ExpenseFilter:
    """Regular users only ever see their own rows; admins keep the requested user_id."""
    if auth.is_admin:
        return f
    return f.model_copy(update={"user_id": auth.user_id})


def _get_owned(db: Session, expense_id: str, auth: AuthContext) -> Expense:
    expense = expense_repository.get_expense(db, expense_id)
    if expense is None or (not auth.is_admin and expense.user_id != auth.user_id):
        raise NotFoundError("Expense not found")
    return expense


def add_expense(db: Session, data: ExpenseCreate, auth: AuthContext, today: Optional[date] = None) -> Expense:
    """Validate and persist a new record. Nothing is written when validation fails."""
    validate_sign(data.kind, data.amount)

    user_id = auth.user_id
    if data.user_id and data.user_id != auth.user_id:
        if not auth.is_admin:
            raise PermissionDeniedError("You can only add your own expenses")
        user_id = data.user_id

    expense = Expense(
        user_id=user_id,
        amount=data.amount,
        currency=data.currency or settings.base_currency,
        kind=data.kind,
        type=data.type,
        resource=data.resource,
        description=data.description,
        date=_validate_date(data.date) or today_string(today),
    )
    expense = expense_repository.create_expense(db, expense)
    logger.info(f"Created {expense.kind.value} {expense.id} for user {user_id}")
    return expense


def update_expense(db: Session, expense_id: str, patch: ExpenseUpdate, auth: AuthContext) -> Expense:
    """Apply only the explicitly provided fields, re-checking the sign on the merged record."""
    expense = _get_owned(db, expense_id, auth)
    fields = patch.model_dump(exclude_unset=True)

    # Explicit nulls cannot clear required columns
    for required in ("amount", "currency", "kind", "type", "resource", "date"):
        if required in fields and fields[required] is None:
            raise InvalidInputError(f"{required} cannot be null")

    if "date" in fields:
        fields["date"] = _validate_date(fields["date"])

    validate_sign(fields.get("kind", expense.kind), fields.get("amount", expense.amount))

    if not fields:
        return expense
    return expense_repository.update_expense_fields(db, expense, fields)


def get_expense(db: Session, expense_id: str, auth: AuthContext) -> Expense:
    return _get_owned(db, expense_id, auth)


def delete_expense(db: Session, expense_id: str, auth: AuthContext) -> None:
    expense = _get_owned(db, expense_id, auth)
    expense_repository.soft_delete_expense(db, expense)
    logger.info(f"Soft-deleted expense {expense_id}")


def list_expenses(db: Session, f: ExpenseFilter, auth: AuthContext) -> ExpenseListResponse:
    f = scope_filter(f, auth)
    items = expense_repository.list_expenses(db, f)
    total = expense_repository.count_expenses(db, f)
    page_size = f.page_size if f.page_size > 0 else 0
    pages = (total + page_size - 1) // page_size if page_size else (1 if total else 0)

    return ExpenseListResponse(
        items=[ExpenseResponse.model_validate(e) for e in items],
        total=total,
        page=max(f.page, 1),
        page_size=page_size,
        pages=pages,
    )


def list_types(db: Session, auth: AuthContext, user_id: Optional[str] = None) -> List[str]:
    return expense_repository.list_types(db, user_id if auth.is_admin else auth.user_id)


def get_summary(db: Session, rates: ExchangeRateCache, f: SummaryFilter, auth: AuthContext) -> ExpenseSummary:
    f = scope_filter(f, auth)
    rows = expense_repository.list_all_expenses(db, f)
    return aggregation_service.compute_summary(rows, rates.get_rates(), f.original_currency)


def get_meta(db: Session, f: ExpenseFilter, auth: AuthContext) -> ExpenseMeta:
    f = scope_filter(f, auth)
    return aggregation_service.compute_meta(expense_repository.aggregate_rollup(db, f))


def get_groups(db: Session, rates: ExchangeRateCache, f: GroupsFilter, auth: AuthContext) -> ExpenseGroupsResponse:
    granularity = expense_repository.parse_granularity(f.group_by)
    f = scope_filter(f, auth)
    rollup = expense_repository.group_rollup(db, f, granularity)
    return aggregation_service.compute_groups(
        rollup,
        rates.get_rates(),
        f.original_currency,
        granularity,
        order_by=f.order_by,
        order_dir=f.order_dir,
        page=f.page,
        page_size=f.page_size,
    )
