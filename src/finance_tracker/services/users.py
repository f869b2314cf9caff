import hashlib
import os

from finance_tracker.api.schemas import UserCreate
from finance_tracker.domain.kinds import USERS_COLLECTION
from finance_tracker.errors import ConflictError
from finance_tracker.integration.store import RecordStore
from finance_tracker.logger import get_logger
from finance_tracker.models import UserProfile

logger = get_logger(__name__)

ALGORITHM = "pbkdf2_sha256"
ITERATIONS = 100_000
SALT_BYTES = 16


def _pbkdf2_hash(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, ITERATIONS)


def hash_password(password: str) -> str:
    salt = os.urandom(SALT_BYTES)
    digest = _pbkdf2_hash(password, salt)
    return f"{ALGORITHM}${salt.hex()}${digest.hex()}"


async def create_profile(store: RecordStore, payload: UserCreate) -> UserProfile:
    existing = await store.query(USERS_COLLECTION, username=payload.username)
    if existing:
        raise ConflictError("Username already exists")
    # One profile per identity.
    if payload.uid and await store.query(USERS_COLLECTION, uid=payload.uid):
        raise ConflictError("Profile already exists for this identity")

    data = payload.to_document()
    data["passwordHash"] = hash_password(data.pop("password"))
    stored = await store.create(USERS_COLLECTION, data)
    logger.info("[USERS] Created profile %s (%s)", stored["id"], payload.username)
    return UserProfile.model_validate(stored)


async def find_profile_by_uid(store: RecordStore, uid: str) -> UserProfile | None:
    matches = await store.query(USERS_COLLECTION, uid=uid)
    if not matches:
        return None
    return UserProfile.model_validate(matches[0])
