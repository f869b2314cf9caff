from fastapi import APIRouter, Depends, status

from finance_tracker.api.dependencies import AuthenticatedRoute, Identity, Store, require_identity
from finance_tracker.api.schemas import MessageResponse, TransactionCreate, TransactionUpdate
from finance_tracker.domain.kinds import TRANSACTIONS
from finance_tracker.logger import get_logger
from finance_tracker.models import Transaction
from finance_tracker.services.analytics import sort_by_date_desc
from finance_tracker.services.ownership import load_owned
from finance_tracker.services.records import create_owned, delete_owned, list_owned, update_owned

logger = get_logger(__name__)

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
    dependencies=[Depends(require_identity)],
    route_class=AuthenticatedRoute,
)


@router.get("", response_model=list[Transaction])
async def list_transactions(identity: Identity, store: Store) -> list[Transaction]:
    transactions = await list_owned(store, TRANSACTIONS, identity)
    logger.info("[TX] Found %d transactions for user %s", len(transactions), identity)
    return sort_by_date_desc(transactions)


@router.get("/{transaction_id}", response_model=Transaction)
async def get_transaction(transaction_id: str, identity: Identity, store: Store) -> Transaction:
    return await load_owned(store, TRANSACTIONS, transaction_id, identity)


@router.post("", response_model=Transaction, status_code=status.HTTP_201_CREATED)
async def create_transaction(payload: TransactionCreate, identity: Identity, store: Store) -> Transaction:
    return await create_owned(store, TRANSACTIONS, identity, payload)


@router.put("/{transaction_id}", response_model=MessageResponse)
async def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    identity: Identity,
    store: Store,
) -> MessageResponse:
    await update_owned(store, TRANSACTIONS, transaction_id, identity, payload)
    return MessageResponse(message="Transaction updated successfully")


@router.delete("/{transaction_id}", response_model=MessageResponse)
async def delete_transaction(transaction_id: str, identity: Identity, store: Store) -> MessageResponse:
    await delete_owned(store, TRANSACTIONS, transaction_id, identity)
    return MessageResponse(message="Transaction deleted successfully")
