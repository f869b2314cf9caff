import datetime as dt
from typing import Any

from pydantic import ConfigDict, Field, field_validator

from finance_tracker.domain.dates import parse_calendar_date
from finance_tracker.models import ApiModel, BudgetPeriod, TransactionType


class RequestModel(ApiModel):
    # Unknown keys, including any client-sent userId, are dropped. Amounts must be finite.
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore", allow_inf_nan=False)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)


def _optional_date(value: Any) -> Any:
    if value is None:
        return None
    return parse_calendar_date(value)


class TransactionCreate(RequestModel):
    amount: float = Field(gt=0)
    category: str = Field(min_length=1)
    description: str = Field(min_length=3)
    date: dt.date
    type: TransactionType

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> dt.date:
        return parse_calendar_date(value)


class TransactionUpdate(RequestModel):
    amount: float | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=3)
    date: dt.date | None = None
    type: TransactionType | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> dt.date | None:
        return _optional_date(value)


class BudgetCreate(RequestModel):
    category: str = Field(min_length=1)
    amount: float = Field(gt=0)
    period: BudgetPeriod


class BudgetUpdate(RequestModel):
    category: str | None = Field(default=None, min_length=1)
    amount: float | None = Field(default=None, gt=0)
    period: BudgetPeriod | None = None


class CategoryCreate(RequestModel):
    name: str = Field(min_length=1)
    type: TransactionType


class CategoryUpdate(RequestModel):
    name: str | None = Field(default=None, min_length=1)
    type: TransactionType | None = None


class UserCreate(RequestModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=6)
    email: str | None = None
    display_name: str | None = None
    uid: str | None = None


class VerifyTokenRequest(RequestModel):
    token: str | None = None


class MessageResponse(ApiModel):
    message: str


class VerifyTokenResponse(ApiModel):
    uid: str
