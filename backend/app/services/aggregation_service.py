"""
Aggregation engine: summaries and time-bucket groups in a target currency.

Rates are "units of base currency per 1 unit of X". A currency missing from
the table is treated as rate 1 so a summary always completes.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from app.models.expense import ExpenseKind
from app.schemas.expense import (
    CurrencySummary,
    ExpenseGroup,
    ExpenseGroupsResponse,
    ExpenseMeta,
    ExpenseSummary,
)
from app.services.expense_repository import Granularity, GroupRollupRow, RollupRow
from app.utils.dates import parse_date

GROUP_SORT_KEYS = ("period", "income", "expense", "balance")


def rate_for(rates: Mapping[str, float], currency: str) -> float:
    rate = rates.get(currency)
    return rate if rate else 1.0


def convert_amount(amount, from_currency: str, to_currency: str, rates: Mapping[str, float]) -> float:
    """Convert using the same snapshot for both legs: amount * rate[from] / rate[to]."""
    return float(amount) * rate_for(rates, from_currency) / rate_for(rates, to_currency)


def _is_income(kind) -> bool:
    return kind == ExpenseKind.income


def compute_summary(rows: Iterable, rates: Mapping[str, float], target_currency: str = "VND") -> ExpenseSummary:
    """
    Summarize ledger rows (anything with amount, currency, kind and type).

    Expense amounts are negative, so total_balance = total_income + total_expense.
    Per-type expense totals are reported as magnitudes. The per-currency
    breakdown holds native amounts and is only attached when the rows span
    more than one currency.
    """
    target_rate = rate_for(rates, target_currency)

    income_count = 0
    expense_count = 0
    total_income = 0.0
    total_expense = 0.0
    by_type_income: Dict[str, float] = defaultdict(float)
    by_type_expense: Dict[str, float] = defaultdict(float)
    by_currency: Dict[str, CurrencySummary] = {}

    for row in rows:
        native = float(row.amount)
        converted = native * rate_for(rates, row.currency) / target_rate

        summary = by_currency.setdefault(row.currency, CurrencySummary())
        if _is_income(row.kind):
            income_count += 1
            total_income += converted
            by_type_income[row.type] += converted
            summary.total_income += native
        else:
            expense_count += 1
            total_expense += converted
            by_type_expense[row.type] += abs(converted)
            summary.total_expense += native
        summary.total_balance = summary.total_income + summary.total_expense

    return ExpenseSummary(
        currency=target_currency,
        income_count=income_count,
        expense_count=expense_count,
        total_income=total_income,
        total_expense=total_expense,
        total_balance=total_income + total_expense,
        total_by_type_income=dict(by_type_income),
        total_by_type_expense=dict(by_type_expense),
        by_currency=by_currency if len(by_currency) > 1 else None,
    )


def compute_meta(rollup: Iterable[RollupRow]) -> ExpenseMeta:
    """Counts and native per-currency totals from a (kind, currency) rollup."""
    total = income_count = expense_count = 0
    by_currency: Dict[str, CurrencySummary] = {}

    for row in rollup:
        total += row.count
        summary = by_currency.setdefault(row.currency, CurrencySummary())
        if _is_income(row.kind):
            income_count += row.count
            summary.total_income += row.total
        else:
            expense_count += row.count
            summary.total_expense += row.total
        summary.total_balance += row.total

    return ExpenseMeta(
        total=total,
        income_count=income_count,
        expense_count=expense_count,
        by_currency=by_currency,
    )


def bucket_label(key: str, granularity: Granularity) -> str:
    """Human label for a bucket key, e.g. "15 Jan 2024", "W/o 15 Jan", "Jan 2024"."""
    if granularity == Granularity.YEAR:
        return key
    if granularity == Granularity.MONTH:
        return datetime.strptime(key, "%Y-%m").strftime("%b %Y")
    day = parse_date(key)
    if granularity == Granularity.WEEK:
        return "W/o " + day.strftime("%d %b")
    return day.strftime("%d %b %Y")


def build_groups(
    rollup: Iterable[GroupRollupRow],
    rates: Mapping[str, float],
    target_currency: str,
    granularity: Granularity,
) -> List[ExpenseGroup]:
    """Fold rollup rows into buckets, keeping the rollup's first-seen bucket order."""
    target_rate = rate_for(rates, target_currency)
    groups: Dict[str, ExpenseGroup] = {}

    for row in rollup:
        converted = row.total * rate_for(rates, row.currency) / target_rate

        group = groups.get(row.bucket)
        if group is None:
            group = ExpenseGroup(
                key=row.bucket,
                label=bucket_label(row.bucket, granularity),
                income=0.0,
                expense=0.0,
                balance=0.0,
                total_by_type={},
            )
            groups[row.bucket] = group

        if _is_income(row.kind):
            group.income += converted
        else:
            group.expense += converted
        group.balance = group.income + group.expense
        group.total_by_type[row.type] = group.total_by_type.get(row.type, 0.0) + converted

    return list(groups.values())


def sort_groups(groups: List[ExpenseGroup], order_by: Optional[str], order_dir: Optional[str] = None) -> List[ExpenseGroup]:
    """Re-sort buckets by period/income/expense/balance; anything else keeps natural order."""
    key = (order_by or "").lower()
    if key not in GROUP_SORT_KEYS:
        return list(groups)

    reverse = (order_dir or "desc").lower() != "asc"
    if key == "period":
        return sorted(groups, key=lambda g: g.key, reverse=reverse)
    return sorted(groups, key=lambda g: getattr(g, key), reverse=reverse)


def paginate_groups(groups: List[ExpenseGroup], page: int = 1, page_size: int = 0) -> ExpenseGroupsResponse:
    """In-memory page of buckets; page_size <= 0 returns all of them."""
    page = max(page or 1, 1)
    if page_size and page_size > 0:
        start = (page - 1) * page_size
        selected = groups[start:start + page_size]
    else:
        selected = list(groups)

    return ExpenseGroupsResponse(
        total=len(groups),
        page=page,
        page_size=page_size or 0,
        groups=selected,
    )


def compute_groups(
    rollup: Iterable[GroupRollupRow],
    rates: Mapping[str, float],
    target_currency: str,
    granularity: Granularity,
    order_by: Optional[str] = None,
    order_dir: Optional[str] = None,
    page: int = 1,
    page_size: int = 0,
) -> ExpenseGroupsResponse:
    groups = build_groups(rollup, rates, target_currency, granularity)
    groups = sort_groups(groups, order_by, order_dir)
    return paginate_groups(groups, page, page_size)
