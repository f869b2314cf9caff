"""
Aggregations over a user's transactions.

All functions are pure: callers fetch the owner's transactions from the store
and pass them in. Period filters are closed intervals on calendar dates.

Amounts are summed as ``Decimal`` values built from each float's shortest
representation and converted back to ``float`` on output, so ``0.1 + 0.2``
totals ``0.3``. No cents rounding is applied.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from finance_tracker.models import CategoryTotal, MonthlyTotal, PeriodTotals, Transaction


def _to_decimal(amount: float) -> Decimal:
    return Decimal(repr(float(amount)))


def sort_by_date_desc(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda tx: tx.date, reverse=True)


def filter_by_period(transactions: Iterable[Transaction], start: date, end: date) -> list[Transaction]:
    """Transactions dated within ``[start, end]``, most recent first."""
    return sort_by_date_desc(tx for tx in transactions if start <= tx.date <= end)


def period_totals(transactions: Iterable[Transaction], start: date, end: date) -> PeriodTotals:
    income = Decimal(0)
    expense = Decimal(0)
    for tx in filter_by_period(transactions, start, end):
        if tx.type == "income":
            income += _to_decimal(tx.amount)
        else:
            expense += _to_decimal(tx.amount)
    return PeriodTotals(
        income_total=float(income),
        expense_total=float(expense),
        balance=float(income - expense),
    )


def monthly_totals(transactions: Iterable[Transaction], year: int) -> list[MonthlyTotal]:
    """Income and expense per calendar month of ``year``; always 12 entries."""
    income = [Decimal(0)] * 12
    expense = [Decimal(0)] * 12
    for tx in transactions:
        if tx.date.year != year:
            continue
        slot = tx.date.month - 1
        if tx.type == "income":
            income[slot] += _to_decimal(tx.amount)
        else:
            expense[slot] += _to_decimal(tx.amount)
    return [
        MonthlyTotal(month=slot + 1, income_total=float(income[slot]), expense_total=float(expense[slot]))
        for slot in range(12)
    ]


def category_totals(
    transactions: Iterable[Transaction],
    tx_type: str,
    start: date,
    end: date,
) -> list[CategoryTotal]:
    """
    Sum amounts per category for one transaction type within the period.

    Categories without matching transactions are omitted. Order follows the
    first appearance of each category in the most-recent-first period list.
    """
    totals: dict[str, Decimal] = {}
    for tx in filter_by_period(transactions, start, end):
        if tx.type != tx_type:
            continue
        totals[tx.category] = totals.get(tx.category, Decimal(0)) + _to_decimal(tx.amount)
    return [CategoryTotal(category=name, total=float(total)) for name, total in totals.items()]
