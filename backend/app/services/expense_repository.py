"""
Query layer for expense rows.

Translates an ExpenseFilter into row fetches and database-side GROUP BY
rollups. Soft-deleted rows are never returned.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import Date, cast, func, literal_column
from sqlalchemy.orm import Session, Query

from app.exceptions import InvalidInputError
from app.models.expense import Expense, ExpenseKind
from app.schemas.expense import ExpenseFilter
from app.utils.dates import parse_date


class Granularity(str, enum.Enum):
    """Time bucket sizes for grouped reports."""
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"


@dataclass(frozen=True)
class RollupRow:
    """One (kind, currency) aggregate."""
    kind: ExpenseKind
    currency: str
    count: int
    total: float


@dataclass(frozen=True)
class GroupRollupRow:
    """One (bucket, currency, type, kind) aggregate."""
    bucket: str
    currency: str
    type: str
    kind: ExpenseKind
    total: float


# Whitelisted ORDER BY columns for the display list
ORDER_COLUMNS = {
    "date": Expense.date,
    "amount": Expense.amount,
    "type": Expense.type,
    "kind": Expense.kind,
    "currency": Expense.currency,
    "created_at": Expense.created_at,
}


def parse_granularity(value: Optional[str]) -> Granularity:
    """Case-insensitive DAY/WEEK/MONTH/YEAR lookup."""
    try:
        return Granularity((value or "").strip().upper())
    except ValueError:
        raise InvalidInputError(f"Unsupported group_by value: {value}") from None


def bucket_key(date_str: str, granularity: Granularity) -> str:
    """
    Bucket key for a YYYY-MM-DD date. Keys sort lexicographically.

    WEEK keys are the Monday of the ISO week, so 2024-01-21 (a Sunday)
    falls in bucket 2024-01-15.
    """
    if granularity == Granularity.DAY:
        return date_str
    if granularity == Granularity.WEEK:
        d = parse_date(date_str)
        return (d - timedelta(days=d.weekday())).isoformat()
    if granularity == Granularity.MONTH:
        return date_str[:7]
    return date_str[:4]


def build_base_query(db: Session, f: ExpenseFilter, *entities) -> Query:
    """Apply every WHERE clause of the filter; no ordering or limits."""
    query = db.query(*entities) if entities else db.query(Expense)
    query = query.filter(Expense.deleted_at.is_(None))

    if f.user_id:
        query = query.filter(Expense.user_id == f.user_id)
    if f.kind:
        query = query.filter(Expense.kind == f.kind)
    if f.types:
        query = query.filter(Expense.type.in_(f.types))
    if f.currencies:
        query = query.filter(Expense.currency.in_(f.currencies))
    # Fixed-width YYYY-MM-DD strings compare correctly as text
    if f.date_from:
        query = query.filter(Expense.date >= f.date_from)
    if f.date_to:
        query = query.filter(Expense.date <= f.date_to)

    return query


def _ordered(query: Query, f: ExpenseFilter) -> Query:
    column = ORDER_COLUMNS.get((f.order_by or "").lower(), Expense.date)
    direction = "asc" if (f.order_dir or "").lower() == "asc" else "desc"
    if direction == "asc":
        return query.order_by(column.asc(), Expense.created_at.asc(), Expense.id.asc())
    return query.order_by(column.desc(), Expense.created_at.desc(), Expense.id.desc())


def list_expenses(db: Session, f: ExpenseFilter) -> List[Expense]:
    """Filtered, ordered page of rows. page_size <= 0 returns every row."""
    query = _ordered(build_base_query(db, f), f)
    if f.page_size > 0:
        page = max(f.page, 1)
        query = query.offset((page - 1) * f.page_size).limit(f.page_size)
    return query.all()


def count_expenses(db: Session, f: ExpenseFilter) -> int:
    return build_base_query(db, f).count()


def list_all_expenses(db: Session, f: ExpenseFilter) -> List[Expense]:
    """Every matching row, ordered, ignoring pagination."""
    return _ordered(build_base_query(db, f), f).all()


def aggregate_rollup(db: Session, f: ExpenseFilter) -> List[RollupRow]:
    """COUNT and SUM(amount) per (kind, currency)."""
    rows = build_base_query(
        db, f,
        Expense.kind,
        Expense.currency,
        func.count(Expense.id).label("cnt"),
        func.sum(Expense.amount).label("total"),
    ).group_by(Expense.kind, Expense.currency).all()

    return [
        RollupRow(kind=row.kind, currency=row.currency, count=row.cnt, total=float(row.total or 0))
        for row in rows
    ]


def bucket_expression(db: Session, granularity: Granularity):
    """SQL expression deriving the bucket key from the stored date string."""
    if granularity == Granularity.DAY:
        return Expense.date
    if granularity == Granularity.MONTH:
        return func.substr(Expense.date, 1, 7)
    if granularity == Granularity.YEAR:
        return func.substr(Expense.date, 1, 4)

    if db.get_bind().dialect.name == "postgresql":
        return func.to_char(func.date_trunc("week", cast(Expense.date, Date)), "YYYY-MM-DD")
    # SQLite: jump to the week's Sunday, then back to its Monday
    return func.date(Expense.date, "weekday 0", "-6 days")


def group_rollup(db: Session, f: ExpenseFilter, granularity) -> List[GroupRollupRow]:
    """
    SUM(amount) per (bucket, currency, type, kind), newest bucket first.

    granularity may be a Granularity or its name; unknown names raise
    InvalidInputError before any SQL is built.
    """
    if not isinstance(granularity, Granularity):
        granularity = parse_granularity(granularity)

    bucket = literal_column("bucket")
    rows = build_base_query(
        db, f,
        bucket_expression(db, granularity).label("bucket"),
        Expense.currency,
        Expense.type,
        Expense.kind,
        func.sum(Expense.amount).label("total"),
    ).group_by(
        bucket, Expense.currency, Expense.type, Expense.kind
    ).order_by(bucket.desc()).all()

    return [
        GroupRollupRow(
            bucket=row.bucket,
            currency=row.currency,
            type=row.type,
            kind=row.kind,
            total=float(row.total or 0),
        )
        for row in rows
    ]


def get_expense(db: Session, expense_id: str) -> Optional[Expense]:
    return db.query(Expense).filter(
        Expense.id == expense_id,
        Expense.deleted_at.is_(None)
    ).first()


def create_expense(db: Session, expense: Expense) -> Expense:
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def update_expense_fields(db: Session, expense: Expense, fields: dict) -> Expense:
    for field, value in fields.items():
        setattr(expense, field, value)
    db.commit()
    db.refresh(expense)
    return expense


def soft_delete_expense(db: Session, expense: Expense) -> None:
    expense.deleted_at = datetime.utcnow()
    db.commit()


def list_types(db: Session, user_id: Optional[str] = None) -> List[str]:
    """Distinct non-empty type tags, ascending."""
    query = db.query(Expense.type).filter(
        Expense.deleted_at.is_(None),
        Expense.type != ""
    )
    if user_id:
        query = query.filter(Expense.user_id == user_id)
    return [row[0] for row in query.distinct().order_by(Expense.type.asc()).all()]
