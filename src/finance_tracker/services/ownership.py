from finance_tracker.domain.kinds import RecordKind, RecordT
from finance_tracker.errors import AuthorizationError, NotFoundError
from finance_tracker.integration.store import RecordStore
from finance_tracker.logger import get_logger
from finance_tracker.models import OwnedRecord

logger = get_logger(__name__)


def check_ownership(record: OwnedRecord, identity: str, action: str = "access", label: str = "record") -> None:
    if record.user_id != identity:
        logger.warning(
            "[AUTH] Denied %s of %s %s: owned by another user.",
            action,
            label.lower(),
            record.id,
        )
        raise AuthorizationError(f"Not authorized to {action} this {label.lower()}")


async def load_owned(
    store: RecordStore,
    kind: RecordKind[RecordT],
    record_id: str,
    identity: str,
    action: str = "access",
) -> RecordT:
    """
    Load a single record for ``identity``.

    Existence is checked before ownership, so a missing record is always a 404
    and a foreign record is always a 403.
    """
    raw = await store.get(kind.collection, record_id)
    if raw is None:
        raise NotFoundError(f"{kind.label} not found")
    record = kind.model.model_validate(raw)
    check_ownership(record, identity, action=action, label=kind.label)
    return record
