from fastapi import APIRouter, Depends, status

from finance_tracker.api.dependencies import AuthenticatedRoute, Identity, Store, require_identity
from finance_tracker.api.schemas import CategoryCreate, CategoryUpdate, MessageResponse
from finance_tracker.domain.kinds import CATEGORIES
from finance_tracker.errors import ValidationError
from finance_tracker.models import TRANSACTION_TYPES, Category
from finance_tracker.services.ownership import load_owned
from finance_tracker.services.records import create_owned, delete_owned, list_owned, update_owned

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
    dependencies=[Depends(require_identity)],
    route_class=AuthenticatedRoute,
)


@router.get("", response_model=list[Category])
async def list_categories(identity: Identity, store: Store) -> list[Category]:
    return await list_owned(store, CATEGORIES, identity)


@router.get("/type/{category_type}", response_model=list[Category])
async def list_categories_by_type(category_type: str, identity: Identity, store: Store) -> list[Category]:
    if category_type not in TRANSACTION_TYPES:
        raise ValidationError("Type must be either 'income' or 'expense'")
    return await list_owned(store, CATEGORIES, identity, type=category_type)


@router.get("/{category_id}", response_model=Category)
async def get_category(category_id: str, identity: Identity, store: Store) -> Category:
    return await load_owned(store, CATEGORIES, category_id, identity)


@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate, identity: Identity, store: Store) -> Category:
    return await create_owned(store, CATEGORIES, identity, payload)


@router.put("/{category_id}", response_model=MessageResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    identity: Identity,
    store: Store,
) -> MessageResponse:
    await update_owned(store, CATEGORIES, category_id, identity, payload)
    return MessageResponse(message="Category updated successfully")


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(category_id: str, identity: Identity, store: Store) -> MessageResponse:
    # Transactions referencing this category name are left untouched.
    await delete_owned(store, CATEGORIES, category_id, identity)
    return MessageResponse(message="Category deleted successfully")
