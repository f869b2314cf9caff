import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from finance_tracker.domain.dates import parse_calendar_date

TransactionType = Literal["income", "expense"]
BudgetPeriod = Literal["daily", "weekly", "monthly", "yearly"]

TRANSACTION_TYPES: tuple[str, ...] = ("income", "expense")


class ApiModel(BaseModel):
    # camelCase on the wire and in the store, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OwnedRecord(ApiModel):
    id: str
    user_id: str
    created_at: dt.datetime | None = None


class Transaction(OwnedRecord):
    amount: float
    category: str
    description: str
    date: dt.date
    type: TransactionType

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> dt.date:
        return parse_calendar_date(value)


class Budget(OwnedRecord):
    category: str
    amount: float
    period: BudgetPeriod


class Category(OwnedRecord):
    name: str
    type: TransactionType


class UserProfile(ApiModel):
    id: str
    username: str
    email: str | None = None
    display_name: str | None = None
    uid: str | None = None
    created_at: dt.datetime | None = None


class PeriodTotals(ApiModel):
    income_total: float
    expense_total: float
    balance: float


class MonthlyTotal(ApiModel):
    month: int
    income_total: float
    expense_total: float


class CategoryTotal(ApiModel):
    category: str
    total: float
