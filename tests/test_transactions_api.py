import pytest


def _save(client, **overrides):
    payload = {
        "userId": "u1",
        "type": "expense",
        "amount": 12.5,
        "description": "I spent 12.50 on pizza",
        "category": "FOOD DELIVERY",
    }
    payload.update(overrides)
    return client.post("/api/v1/save-transaction", json=payload)


def test_save_normalizes_category_and_description(client):
    r = _save(client)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["duplicate"] is False
    assert body["transaction"]["category"] == "Dining Out"
    assert body["transaction"]["description"] == "Pizza"
    assert body["transaction"]["amount"] == 12.5


def test_duplicate_within_window_not_stored_twice(client):
    first = _save(client).json()
    second = _save(client).json()
    assert second["duplicate"] is True
    assert second["transaction"]["id"] == first["transaction"]["id"]
    assert client.get("/api/v1/transactions", params={"userId": "u1"}).json()["count"] == 1


def test_type_mismatched_category_is_reclassified(client):
    r = _save(client, type="income", amount=1000, description="freelance design work", category="Groceries")
    assert r.json()["transaction"]["category"] == "Freelance & Side Income"


def test_unknown_category_falls_back_to_description(client):
    r = _save(client, description="dog food", category="PET SUPPLIES")
    assert r.json()["transaction"]["category"] == "Groceries"


def test_missing_category_income_defaults_to_salary(client):
    r = _save(client, type="income", amount=1200, description="1200", category=None)
    body = r.json()["transaction"]
    assert body["category"] == "Salary"
    assert body["description"] == "Salary"


@pytest.mark.parametrize(
    "overrides",
    [{"amount": 0}, {"amount": -3}, {"type": "transfer"}, {"userId": ""}, {"description": ""}],
)
def test_invalid_payloads(client, overrides):
    assert _save(client, **overrides).status_code == 422


def test_date_is_kept(client):
    r = _save(client, date="2024-03-01T10:00:00Z")
    assert r.json()["transaction"]["date"].startswith("2024-03-01")


def test_bad_date_is_400(client):
    assert _save(client, date="yesterday").status_code == 400


def test_reused_transaction_id_conflicts(client):
    assert _save(client, transactionId="txn_1").status_code == 200
    assert _save(client, transactionId="txn_1", description="Coffee").status_code == 409


def test_list_newest_first(client):
    _save(client, description="Coffee", date="2024-01-01T00:00:00Z")
    _save(client, description="Lunch", date="2024-02-01T00:00:00Z")
    items = client.get("/api/v1/transactions", params={"userId": "u1", "limit": 10}).json()["transactions"]
    assert [i["description"] for i in items] == ["Lunch", "Coffee"]


def test_save_rate_limit(client):
    for i in range(15):
        assert _save(client, amount=i + 1).status_code == 200
    r = _save(client, amount=99)
    assert r.status_code == 429
    assert int(r.headers["Retry-After"]) > 0


def test_health_and_metrics(client):
    assert client.get("/health").json()["status"] == "ok"
    text = client.get("/metrics").text
    assert "anita_admission_decisions_total" in text
    assert "anita_description_source_total" in text
