from fastapi import APIRouter, Depends, status

from finance_tracker.api.dependencies import AuthenticatedRoute, Identity, Store, require_identity
from finance_tracker.api.schemas import BudgetCreate, BudgetUpdate, MessageResponse
from finance_tracker.domain.kinds import BUDGETS
from finance_tracker.models import Budget
from finance_tracker.services.ownership import load_owned
from finance_tracker.services.records import create_owned, delete_owned, list_owned, update_owned

router = APIRouter(
    prefix="/budgets",
    tags=["budgets"],
    dependencies=[Depends(require_identity)],
    route_class=AuthenticatedRoute,
)


@router.get("", response_model=list[Budget])
async def list_budgets(identity: Identity, store: Store) -> list[Budget]:
    return await list_owned(store, BUDGETS, identity)


@router.get("/{budget_id}", response_model=Budget)
async def get_budget(budget_id: str, identity: Identity, store: Store) -> Budget:
    return await load_owned(store, BUDGETS, budget_id, identity)


@router.post("", response_model=Budget, status_code=status.HTTP_201_CREATED)
async def create_budget(payload: BudgetCreate, identity: Identity, store: Store) -> Budget:
    return await create_owned(store, BUDGETS, identity, payload)


@router.put("/{budget_id}", response_model=MessageResponse)
async def update_budget(budget_id: str, payload: BudgetUpdate, identity: Identity, store: Store) -> MessageResponse:
    await update_owned(store, BUDGETS, budget_id, identity, payload)
    return MessageResponse(message="Budget updated successfully")


@router.delete("/{budget_id}", response_model=MessageResponse)
async def delete_budget(budget_id: str, identity: Identity, store: Store) -> MessageResponse:
    await delete_owned(store, BUDGETS, budget_id, identity)
    return MessageResponse(message="Budget deleted successfully")
