import copy
import uuid
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from finance_tracker.app import app
from finance_tracker.errors import RecordStoreError
from finance_tracker.integration.identity import InvalidCredential, ServiceUnavailable

TOKENS = {
    "token-alice": "alice",
    "token-bob": "bob",
}
DOWN_TOKEN = "token-provider-down"


class InMemoryStore:
    """Stand-in for RecordStore keeping documents in a dict per collection."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(name, {})

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", collection))
        record_id = uuid.uuid4().hex
        record = dict(copy.deepcopy(data), id=record_id, createdAt=datetime.now(timezone.utc))
        self._collection(collection)[record_id] = record
        return copy.deepcopy(record)

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        self.calls.append(("get", collection))
        record = self._collection(collection).get(record_id)
        return copy.deepcopy(record) if record else None

    async def update(self, collection: str, record_id: str, data: dict[str, Any]) -> None:
        self.calls.append(("update", collection))
        records = self._collection(collection)
        if record_id not in records:
            raise RecordStoreError(error="document missing")
        records[record_id].update(copy.deepcopy(data))

    async def delete(self, collection: str, record_id: str) -> None:
        self.calls.append(("delete", collection))
        self._collection(collection).pop(record_id, None)

    async def query(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        self.calls.append(("query", collection))
        return [
            copy.deepcopy(record)
            for record in self._collection(collection).values()
            if all(record.get(field) == value for field, value in filters.items())
        ]

    def insert(self, collection: str, **data: Any) -> str:
        record_id = uuid.uuid4().hex
        self._collection(collection)[record_id] = dict(data, id=record_id, createdAt=datetime.now(timezone.utc))
        return record_id


class StubVerifier:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def verify(self, credential: str) -> str:
        self.calls.append(credential)
        if credential == DOWN_TOKEN:
            raise ServiceUnavailable("connection refused")
        if credential not in TOKENS:
            raise InvalidCredential("INVALID_ID_TOKEN")
        return TOKENS[credential]

    async def aclose(self) -> None:
        return None


def auth(token: str = "token-alice") -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def verifier() -> StubVerifier:
    return StubVerifier()


@pytest.fixture
def client(store: InMemoryStore, verifier: StubVerifier) -> Generator[TestClient, None, None]:
    originals = {name: getattr(app.state, name, None) for name in ("store", "verifier")}
    app.state.store = store
    app.state.verifier = verifier
    yield TestClient(app, raise_server_exceptions=False)
    for name, value in originals.items():
        if value is None:
            if hasattr(app.state, name):
                delattr(app.state, name)
        else:
            setattr(app.state, name, value)
