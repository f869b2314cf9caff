from typing import Any

from finance_tracker.api.schemas import RequestModel
from finance_tracker.domain.kinds import RecordKind, RecordT
from finance_tracker.errors import ValidationError
from finance_tracker.integration.store import RecordStore
from finance_tracker.logger import get_logger
from finance_tracker.services.ownership import load_owned

logger = get_logger(__name__)

OWNER_FIELD = "userId"


async def list_owned(
    store: RecordStore,
    kind: RecordKind[RecordT],
    owner_id: str,
    **filters: Any,
) -> list[RecordT]:
    # Owner filtering happens in the store query, never after the fact.
    raw_records = await store.query(kind.collection, **{OWNER_FIELD: owner_id}, **filters)
    return [kind.model.model_validate(raw) for raw in raw_records]


async def create_owned(
    store: RecordStore,
    kind: RecordKind[RecordT],
    owner_id: str,
    payload: RequestModel,
) -> RecordT:
    data = payload.to_document()
    data[OWNER_FIELD] = owner_id
    stored = await store.create(kind.collection, data)
    logger.info("[%s] Created %s for user %s", kind.collection.upper(), stored["id"], owner_id)
    return kind.model.model_validate(stored)


async def update_owned(
    store: RecordStore,
    kind: RecordKind[RecordT],
    record_id: str,
    identity: str,
    payload: RequestModel,
) -> None:
    await load_owned(store, kind, record_id, identity, action="update")
    changes = payload.to_document()
    changes.pop(OWNER_FIELD, None)
    if not changes:
        raise ValidationError("No fields to update")
    await store.update(kind.collection, record_id, changes)
    logger.info("[%s] Updated %s (%s)", kind.collection.upper(), record_id, ", ".join(changes))


async def delete_owned(
    store: RecordStore,
    kind: RecordKind[RecordT],
    record_id: str,
    identity: str,
) -> None:
    await load_owned(store, kind, record_id, identity, action="delete")
    await store.delete(kind.collection, record_id)
    logger.info("[%s] Deleted %s", kind.collection.upper(), record_id)
