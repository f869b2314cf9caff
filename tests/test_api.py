import json

from fastapi.testclient import TestClient

from conftest import DOWN_TOKEN, InMemoryStore, StubVerifier, auth

LUNCH = {
    "amount": 42.50,
    "category": "food",
    "description": "Lunch",
    "date": "2024-03-15",
    "type": "expense",
}


def _create(client: TestClient, payload: dict, token: str = "token-alice", path: str = "/transactions") -> dict:
    response = client.post(path, json=payload, headers=auth(token))
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_token_rejected_without_store_access(
    client: TestClient, store: InMemoryStore, verifier: StubVerifier
) -> None:
    for method, path in [
        ("get", "/transactions"),
        ("post", "/transactions"),
        ("get", "/transactions/abc"),
        ("delete", "/budgets/abc"),
        ("get", "/categories"),
        ("get", "/analytics/period-totals"),
        ("get", "/users/profile"),
    ]:
        response = client.request(method, path)
        assert response.status_code == 401, path
        assert response.json() == {"message": "Authentication required"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    assert store.calls == []
    assert verifier.calls == []


def test_wrong_scheme_is_treated_as_missing(client: TestClient, verifier: StubVerifier) -> None:
    response = client.get("/transactions", headers={"Authorization": "Basic token-alice"})
    assert response.status_code == 401
    assert response.json()["message"] == "Authentication required"
    assert verifier.calls == []


def test_invalid_token(client: TestClient, store: InMemoryStore) -> None:
    response = client.get("/transactions", headers=auth("forged"))
    assert response.status_code == 401
    assert response.json() == {"message": "Invalid token", "error": "INVALID_ID_TOKEN"}
    assert store.calls == []


def test_identity_provider_outage_is_not_an_auth_failure(client: TestClient, store: InMemoryStore) -> None:
    response = client.get("/transactions", headers=auth(DOWN_TOKEN))
    assert response.status_code == 502
    assert response.json()["message"] == "Identity provider unavailable"
    assert store.calls == []


def test_malformed_body_without_token_is_unauthenticated(
    client: TestClient, store: InMemoryStore, verifier: StubVerifier
) -> None:
    headers = {"Content-Type": "application/json"}
    for method, path in [("post", "/transactions"), ("put", "/transactions/abc"), ("post", "/budgets")]:
        response = client.request(method, path, content=b"{not json", headers=headers)
        assert response.status_code == 401, path
        assert response.json() == {"message": "Authentication required"}

    forged = client.post("/categories", content=b"{not json", headers=dict(headers, **auth("forged")))
    assert forged.status_code == 401
    assert forged.json()["message"] == "Invalid token"
    assert store.calls == []


def test_non_finite_amount_rejected(client: TestClient, store: InMemoryStore) -> None:
    headers = dict(auth(), **{"Content-Type": "application/json"})
    for path, payload in [
        ("/transactions", dict(LUNCH, amount=float("inf"))),
        ("/budgets", {"category": "food", "amount": float("inf"), "period": "monthly"}),
    ]:
        response = client.post(path, content=json.dumps(payload), headers=headers)
        assert response.status_code == 400, path
        assert [error["field"] for error in response.json()["errors"]] == ["amount"]
    assert store.calls == []


def test_create_then_fetch_transaction(client: TestClient) -> None:
    created = _create(client, LUNCH)
    assert created["id"]
    assert created["createdAt"]
    assert created["userId"] == "alice"

    response = client.get(f"/transactions/{created['id']}", headers=auth())
    assert response.status_code == 200
    fetched = response.json()
    for field, value in LUNCH.items():
        assert fetched[field] == value
    assert fetched["id"] == created["id"]
    assert fetched["createdAt"]


def test_create_forces_owner_and_normalizes_date(client: TestClient, store: InMemoryStore) -> None:
    payload = dict(LUNCH, userId="bob", date="2024-03-15T00:00:00.000Z")
    created = _create(client, payload)
    assert created["userId"] == "alice"
    assert created["date"] == "2024-03-15"

    stored = store.collections["transactions"][created["id"]]
    assert stored["userId"] == "alice"


def test_create_validation_error(client: TestClient, store: InMemoryStore) -> None:
    payload = dict(LUNCH, description="ab", amount=-1)
    response = client.post("/transactions", json=payload, headers=auth())
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation error"
    fields = {error["field"] for error in body["errors"]}
    assert {"description", "amount"} <= fields
    assert ("create", "transactions") not in store.calls


def test_list_only_returns_own_transactions_most_recent_first(client: TestClient) -> None:
    _create(client, dict(LUNCH, date="2024-01-01"))
    _create(client, dict(LUNCH, date="2024-02-01"))
    _create(client, dict(LUNCH, description="Not mine"), token="token-bob")

    response = client.get("/transactions", headers=auth())
    assert response.status_code == 200
    data = response.json()
    assert [tx["date"] for tx in data] == ["2024-02-01", "2024-01-01"]
    assert all(tx["userId"] == "alice" for tx in data)


def test_single_record_checks_existence_before_ownership(client: TestClient, store: InMemoryStore) -> None:
    created = _create(client, LUNCH, token="token-bob")

    missing = client.get("/transactions/does-not-exist", headers=auth())
    assert missing.status_code == 404
    assert missing.json() == {"message": "Transaction not found"}

    foreign = client.get(f"/transactions/{created['id']}", headers=auth())
    assert foreign.status_code == 403

    update = client.put(f"/transactions/{created['id']}", json={"amount": 1}, headers=auth())
    assert update.status_code == 403
    delete = client.delete(f"/transactions/{created['id']}", headers=auth())
    assert delete.status_code == 403

    stored = store.collections["transactions"][created["id"]]
    assert stored["amount"] == 42.5
    assert ("update", "transactions") not in store.calls
    assert ("delete", "transactions") not in store.calls


def test_update_own_transaction(client: TestClient, store: InMemoryStore) -> None:
    created = _create(client, LUNCH)

    response = client.put(
        f"/transactions/{created['id']}",
        json={"amount": 10, "date": "2024-04-01T12:30:00Z", "userId": "bob"},
        headers=auth(),
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Transaction updated successfully"}

    fetched = client.get(f"/transactions/{created['id']}", headers=auth()).json()
    assert fetched["amount"] == 10
    assert fetched["date"] == "2024-04-01"
    assert fetched["userId"] == "alice"
    assert fetched["description"] == "Lunch"


def test_empty_update_rejected(client: TestClient) -> None:
    created = _create(client, LUNCH)
    response = client.put(f"/transactions/{created['id']}", json={}, headers=auth())
    assert response.status_code == 400
    assert response.json()["message"] == "No fields to update"


def test_delete_own_transaction(client: TestClient) -> None:
    created = _create(client, LUNCH)
    response = client.delete(f"/transactions/{created['id']}", headers=auth())
    assert response.status_code == 200
    assert response.json() == {"message": "Transaction deleted successfully"}
    assert client.get(f"/transactions/{created['id']}", headers=auth()).status_code == 404


def test_budget_crud(client: TestClient) -> None:
    budget = _create(client, {"category": "food", "amount": 300, "period": "monthly"}, path="/budgets")
    assert budget["userId"] == "alice"

    assert client.get("/budgets", headers=auth()).json()[0]["id"] == budget["id"]
    assert client.get("/budgets", headers=auth("token-bob")).json() == []
    assert client.get(f"/budgets/{budget['id']}", headers=auth("token-bob")).status_code == 403

    response = client.put(f"/budgets/{budget['id']}", json={"period": "yearly"}, headers=auth())
    assert response.json() == {"message": "Budget updated successfully"}
    assert client.get(f"/budgets/{budget['id']}", headers=auth()).json()["period"] == "yearly"

    bad = client.put(f"/budgets/{budget['id']}", json={"period": "hourly"}, headers=auth())
    assert bad.status_code == 400

    assert client.delete(f"/budgets/{budget['id']}", headers=auth()).status_code == 200
    assert client.get(f"/budgets/{budget['id']}", headers=auth()).status_code == 404


def test_categories_by_type_and_ownership(client: TestClient) -> None:
    food = _create(client, {"name": "Food", "type": "expense"}, path="/categories")
    _create(client, {"name": "Salary", "type": "income"}, path="/categories")
    _create(client, {"name": "Gifts", "type": "income"}, token="token-bob", path="/categories")

    response = client.get("/categories/type/income", headers=auth())
    assert [c["name"] for c in response.json()] == ["Salary"]

    invalid = client.get("/categories/type/transfer", headers=auth())
    assert invalid.status_code == 400
    assert invalid.json() == {"message": "Type must be either 'income' or 'expense'"}

    assert client.put(f"/categories/{food['id']}", json={"name": "X"}, headers=auth("token-bob")).status_code == 403
    assert client.delete(f"/categories/{food['id']}", headers=auth("token-bob")).status_code == 403
    assert client.delete("/categories/missing", headers=auth("token-bob")).status_code == 404

    assert client.put(f"/categories/{food['id']}", json={"name": "Groceries"}, headers=auth()).status_code == 200
    assert client.get(f"/categories/{food['id']}", headers=auth()).json()["name"] == "Groceries"


def test_deleting_category_keeps_transactions(client: TestClient) -> None:
    food = _create(client, {"name": "food", "type": "expense"}, path="/categories")
    tx = _create(client, LUNCH)

    assert client.delete(f"/categories/{food['id']}", headers=auth()).status_code == 200
    assert client.get(f"/transactions/{tx['id']}", headers=auth()).json()["category"] == "food"


def test_period_totals_scenario(client: TestClient) -> None:
    _create(client, {"amount": 100, "type": "income", "date": "2024-01-10", "category": "pay", "description": "Salary"})
    _create(client, {"amount": 40, "type": "expense", "date": "2024-01-20", "category": "food", "description": "Dinner"})
    _create(client, {"amount": 5, "type": "expense", "date": "2024-02-01", "category": "food", "description": "Snack"})

    response = client.get(
        "/analytics/period-totals",
        params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=auth(),
    )
    assert response.status_code == 200
    assert response.json() == {"incomeTotal": 100, "expenseTotal": 40, "balance": 60}


def test_analytics_transactions_in_period(client: TestClient) -> None:
    _create(client, dict(LUNCH, date="2024-01-31"))
    _create(client, dict(LUNCH, date="2024-02-01"))

    response = client.get(
        "/analytics/transactions",
        params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=auth(),
    )
    assert response.status_code == 200
    assert [tx["date"] for tx in response.json()] == ["2024-01-31"]


def test_analytics_requires_dates(client: TestClient, store: InMemoryStore) -> None:
    response = client.get("/analytics/transactions", params={"startDate": "2024-01-01"}, headers=auth())
    assert response.status_code == 400
    assert response.json() == {"message": "Start date and end date are required"}

    response = client.get(
        "/analytics/period-totals",
        params={"startDate": "2024-01-01", "endDate": "not-a-date"},
        headers=auth(),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid date"
    assert store.calls == []


def test_category_totals_endpoint(client: TestClient) -> None:
    _create(client, dict(LUNCH, amount=10, category="food"))
    _create(client, dict(LUNCH, amount=15, category="food"))
    _create(client, dict(LUNCH, amount=7, category="travel"))
    _create(client, dict(LUNCH, amount=99, type="income", category="pay"))

    response = client.get(
        "/analytics/category-totals",
        params={"type": "expense", "startDate": "2024-03-01", "endDate": "2024-03-31"},
        headers=auth(),
    )
    assert response.status_code == 200
    totals = {row["category"]: row["total"] for row in response.json()}
    assert totals == {"food": 25, "travel": 7}


def test_category_totals_parameter_errors(client: TestClient) -> None:
    missing = client.get("/analytics/category-totals", params={"type": "expense"}, headers=auth())
    assert missing.status_code == 400
    assert missing.json() == {"message": "Type, start date, and end date are required"}

    invalid = client.get(
        "/analytics/category-totals",
        params={"type": "transfer", "startDate": "2024-01-01", "endDate": "2024-01-31"},
        headers=auth(),
    )
    assert invalid.status_code == 400
    assert invalid.json() == {"message": "Type must be either 'income' or 'expense'"}


def test_monthly_totals_endpoint(client: TestClient) -> None:
    _create(client, dict(LUNCH, amount=20, date="2024-03-02"))
    _create(client, dict(LUNCH, amount=30, type="income", date="2024-12-31"))
    _create(client, dict(LUNCH, amount=50, date="2023-03-02"))

    response = client.get("/analytics/monthly-totals", params={"year": 2024}, headers=auth())
    assert response.status_code == 200
    data = response.json()
    assert [row["month"] for row in data] == list(range(1, 13))
    assert data[2] == {"month": 3, "incomeTotal": 0, "expenseTotal": 20}
    assert data[11] == {"month": 12, "incomeTotal": 30, "expenseTotal": 0}

    assert client.get("/analytics/monthly-totals", headers=auth()).status_code == 400
    assert client.get("/analytics/monthly-totals", params={"year": "soon"}, headers=auth()).status_code == 400


def test_create_user_and_profile(client: TestClient, store: InMemoryStore) -> None:
    payload = {"username": "alice", "password": "s3cret!", "email": "a@example.com", "uid": "alice"}
    response = client.post("/users", json=payload, headers=auth())
    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "alice"
    assert "password" not in body
    assert "passwordHash" not in body

    stored = store.collections["users"][body["id"]]
    assert stored["passwordHash"].startswith("pbkdf2_sha256$")
    assert "password" not in stored

    duplicate = client.post("/users", json=dict(payload, email="other@example.com"), headers=auth())
    assert duplicate.status_code == 409
    assert duplicate.json() == {"message": "Username already exists"}

    profile = client.get("/users/profile", headers=auth())
    assert profile.status_code == 200
    assert profile.json()["username"] == "alice"

    missing = client.get("/users/profile", headers=auth("token-bob"))
    assert missing.status_code == 404
    assert missing.json() == {"message": "User not found"}


def test_profile_cannot_claim_another_identity(client: TestClient, store: InMemoryStore) -> None:
    claim = {"username": "mallory", "password": "s3cret!", "uid": "alice"}

    anonymous = client.post("/users", json=claim)
    assert anonymous.status_code == 401
    foreign = client.post("/users", json=claim, headers=auth("token-bob"))
    assert foreign.status_code == 403
    assert foreign.json() == {"message": "Not authorized to link this identity"}
    assert "users" not in store.collections

    first = client.post("/users", json=dict(claim, username="alice"), headers=auth())
    assert first.status_code == 201
    second = client.post("/users", json=dict(claim, username="alice2"), headers=auth())
    assert second.status_code == 409
    assert second.json() == {"message": "Profile already exists for this identity"}

    profile = client.get("/users/profile", headers=auth())
    assert profile.json()["username"] == "alice"


def test_create_user_without_identity_needs_no_token(client: TestClient) -> None:
    response = client.post("/users", json={"username": "guest", "password": "s3cret!"})
    assert response.status_code == 201
    assert response.json()["uid"] is None


def test_create_user_validation(client: TestClient) -> None:
    response = client.post("/users", json={"username": "al"})
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert fields == {"username", "password"}


def test_verify_token_endpoint(client: TestClient) -> None:
    missing = client.post("/auth/verify-token", json={})
    assert missing.status_code == 400
    assert missing.json() == {"message": "Token is required"}

    invalid = client.post("/auth/verify-token", json={"token": "forged"})
    assert invalid.status_code == 401
    assert invalid.json()["message"] == "Invalid token"

    valid = client.post("/auth/verify-token", json={"token": "token-bob"})
    assert valid.status_code == 200
    assert valid.json() == {"uid": "bob"}


def test_unknown_route_uses_message_body(client: TestClient) -> None:
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"message": "Not Found"}
