from anita.utils.llm import CompletionError

HAIRCUT_MESSAGES = [
    {"role": "user", "content": "I wanna add expense"},
    {"role": "assistant", "content": "Sure! What was it for and how much was it?"},
    {"role": "user", "content": "21 on the haircut"},
    {"role": "assistant", "content": "Should I file it under 'Personal Care'?"},
    {"role": "user", "content": "Yes"},
]
CONFIRMATION = "I've added your expense of $21.00 for Personal Care (Haircut)."


def test_confirmed_transaction_is_returned_and_stored(client, chat_client):
    chat_client.reply = CONFIRMATION
    r = client.post(
        "/api/v1/chat-completion",
        json={"messages": HAIRCUT_MESSAGES, "userId": "u1", "conversationId": "c1"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["response"] == CONFIRMATION
    assert body["transaction"] == {
        "type": "expense",
        "amount": 21.0,
        "category": "Personal Care",
        "description": "Haircut",
    }
    assert body["transactionId"].startswith("txn_")

    listed = client.get("/api/v1/transactions", params={"userId": "u1"}).json()
    assert listed["count"] == 1
    assert listed["transactions"][0]["id"] == body["transactionId"]


def test_plain_reply_stores_nothing(client, chat_client):
    chat_client.reply = "Sure! Please provide the category of the expense."
    r = client.post("/api/v1/chat-completion", json={"messages": HAIRCUT_MESSAGES[:1], "userId": "u1"})
    assert r.status_code == 200
    assert r.json()["transaction"] is None
    assert r.json()["transactionId"] is None
    assert client.get("/api/v1/transactions", params={"userId": "u1"}).json()["count"] == 0


def test_without_user_transaction_is_reported_not_stored(client, chat_client):
    chat_client.reply = CONFIRMATION
    r = client.post("/api/chat-completion", json={"messages": HAIRCUT_MESSAGES})
    assert r.status_code == 200
    assert r.json()["transaction"]["category"] == "Personal Care"
    assert r.json()["transactionId"] is None


def test_system_prompt_added_for_known_user(client, chat_client):
    client.post("/api/v1/chat-completion", json={"messages": HAIRCUT_MESSAGES[:1], "userId": "u1"})
    sent = chat_client.calls[0]
    assert sent[0]["role"] == "system"
    assert "ANITA" in sent[0]["content"]


def test_messages_are_sanitized(client, chat_client):
    client.post(
        "/api/v1/chat-completion",
        json={"messages": [{"role": "user", "content": "<script>alert(1)</script>hello\u200b"}]},
    )
    assert chat_client.calls[0][-1] == {"role": "user", "content": "hello"}


def test_request_id_echoed(client):
    r = client.post(
        "/api/v1/chat-completion",
        json={"messages": [{"role": "user", "content": "hi"}]},
        headers={"X-Request-ID": "rid-123"},
    )
    assert r.json()["requestId"] == "rid-123"
    assert r.headers["X-Request-ID"] == "rid-123"


def test_chat_model_timeout_is_504(client, chat_client):
    chat_client.error = CompletionError("timeout")
    r = client.post("/api/v1/chat-completion", json={"messages": [{"role": "user", "content": "hi"}]})
    assert r.status_code == 504


def test_chat_model_error_is_502(client, chat_client):
    chat_client.error = CompletionError("http", "LLM HTTP error 500")
    r = client.post("/api/v1/chat-completion", json={"messages": [{"role": "user", "content": "hi"}]})
    assert r.status_code == 502


def test_validation_errors(client):
    assert client.post("/api/v1/chat-completion", json={"messages": []}).status_code == 422
    r = client.post(
        "/api/v1/chat-completion", json={"messages": [{"role": "user", "content": "   "}]}
    )
    assert r.status_code == 400


def test_rate_limited_after_twenty(client, clock):
    payload = {"messages": [{"role": "user", "content": "hi"}]}
    for _ in range(20):
        assert client.post("/api/v1/chat-completion", json=payload).status_code == 200

    r = client.post("/api/v1/chat-completion", json=payload, headers={"X-Request-ID": "rid-429"})
    assert r.status_code == 429
    assert r.headers["Retry-After"] == "60"
    body = r.json()
    assert body["error"] == "Rate limit exceeded"
    assert body["retryAfter"] == 60
    assert body["requestId"] == "rid-429"

    clock.advance(60)
    assert client.post("/api/v1/chat-completion", json=payload).status_code == 200
