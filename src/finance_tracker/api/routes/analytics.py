from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from finance_tracker.api.dependencies import AuthenticatedRoute, Identity, Store, require_identity
from finance_tracker.domain.dates import parse_calendar_date
from finance_tracker.domain.kinds import TRANSACTIONS
from finance_tracker.errors import ValidationError
from finance_tracker.logger import get_logger
from finance_tracker.models import TRANSACTION_TYPES, CategoryTotal, MonthlyTotal, PeriodTotals, Transaction
from finance_tracker.services import analytics
from finance_tracker.services.records import list_owned

logger = get_logger(__name__)

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_identity)],
    route_class=AuthenticatedRoute,
)

StartDate = Annotated[str | None, Query(alias="startDate")]
EndDate = Annotated[str | None, Query(alias="endDate")]


def resolve_period(start_date: str | None, end_date: str | None) -> tuple[date, date]:
    if not start_date or not end_date:
        raise ValidationError("Start date and end date are required")
    try:
        return parse_calendar_date(start_date), parse_calendar_date(end_date)
    except ValueError as exc:
        raise ValidationError("Invalid date", error=str(exc)) from exc


@router.get("/transactions", response_model=list[Transaction])
async def transactions_in_period(
    identity: Identity,
    store: Store,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> list[Transaction]:
    start, end = resolve_period(start_date, end_date)
    transactions = await list_owned(store, TRANSACTIONS, identity)
    return analytics.filter_by_period(transactions, start, end)


@router.get("/period-totals", response_model=PeriodTotals)
async def totals_for_period(
    identity: Identity,
    store: Store,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> PeriodTotals:
    start, end = resolve_period(start_date, end_date)
    transactions = await list_owned(store, TRANSACTIONS, identity)
    return analytics.period_totals(transactions, start, end)


@router.get("/monthly-totals", response_model=list[MonthlyTotal])
async def totals_by_month(
    identity: Identity,
    store: Store,
    year: str | None = None,
) -> list[MonthlyTotal]:
    if not year:
        raise ValidationError("Year is required")
    try:
        target_year = int(year)
    except ValueError as exc:
        raise ValidationError("Year must be an integer", error=str(exc)) from exc

    transactions = await list_owned(store, TRANSACTIONS, identity)
    logger.debug("[ANALYTICS] Bucketing %d transactions for %s", len(transactions), target_year)
    return analytics.monthly_totals(transactions, target_year)


@router.get("/category-totals", response_model=list[CategoryTotal])
async def totals_by_category(
    identity: Identity,
    store: Store,
    tx_type: Annotated[str | None, Query(alias="type")] = None,
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> list[CategoryTotal]:
    if not tx_type or not start_date or not end_date:
        raise ValidationError("Type, start date, and end date are required")
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError("Type must be either 'income' or 'expense'")
    start, end = resolve_period(start_date, end_date)

    transactions = await list_owned(store, TRANSACTIONS, identity)
    return analytics.category_totals(transactions, tx_type, start, end)
