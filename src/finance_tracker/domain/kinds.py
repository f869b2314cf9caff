from dataclasses import dataclass
from typing import Generic, TypeVar

from finance_tracker.models import Budget, Category, OwnedRecord, Transaction

RecordT = TypeVar("RecordT", bound=OwnedRecord)


@dataclass(frozen=True)
class RecordKind(Generic[RecordT]):
    collection: str
    label: str
    model: type[RecordT]


TRANSACTIONS = RecordKind("transactions", "Transaction", Transaction)
BUDGETS = RecordKind("budgets", "Budget", Budget)
CATEGORIES = RecordKind("categories", "Category", Category)

USERS_COLLECTION = "users"
