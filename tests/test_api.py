import json

import pytest
from conftest import call_decision, text_decision
from fastapi.testclient import TestClient

from shipping_agent.app.errors import ModelInvocationError, ModelTimeoutError, StoreReadError
from shipping_agent.app.main import build_runtime, process
from shipping_agent.fast_api_server import create_app
from shipping_agent.services.shipment_store import InMemoryShipmentStore

BOOKING = {"origin": "Delhi", "destination": "Mumbai", "weight": "500kg", "item": "tea"}


@pytest.fixture
def client(runtime):
    return TestClient(create_app(runtime, cors_allow_origins=["http://localhost:5173"]))


class TestChat:
    def test_text_reply_and_history(self, client, model):
        model.queue(text_decision("Hi! Where are you shipping from?"))
        history = [{"role": "assistant", "content": "Welcome"}]

        response = client.post("/chat", json={"message": "hello", "history": history})

        assert response.status_code == 200
        body = response.json()
        assert body["reply"] == "Hi! Where are you shipping from?"
        assert body["history"] == [
            {"role": "assistant", "content": "Welcome"},
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "Hi! Where are you shipping from?"},
        ]

    def test_history_is_optional(self, client, model):
        model.queue(text_decision("ok"))

        response = client.post("/chat", json={"message": "hello"})

        assert response.status_code == 200
        assert response.json()["reply"] == "ok"

    def test_booking_shows_up_in_shipments(self, client, model):
        model.queue(call_decision(("book_shipment", BOOKING)))

        reply = client.post("/chat", json={"message": "book it", "history": []}).json()["reply"]
        shipments = client.get("/shipments").json()

        assert len(shipments) == 1
        assert shipments[0]["id"] in reply
        assert {k: shipments[0][k] for k in BOOKING} == BOOKING
        assert shipments[0]["status"] == "Pending"

    def test_history_round_trip(self, client, model):
        model.queue(text_decision("first"))
        model.queue(text_decision("second"))

        first = client.post("/chat", json={"message": "one", "history": []}).json()
        second = client.post("/chat", json={"message": "two", "history": first["history"]}).json()

        assert len(second["history"]) == 4
        turns, _ = model.calls[1]
        assert [t.content for t in turns] == ["one", "first", "two"]

    def test_unknown_action(self, client, model):
        model.queue(call_decision(("track_container", {})))

        response = client.post("/chat", json={"message": "track", "history": []})

        assert response.status_code == 200
        assert response.json()["reply"] == "Sorry, I can't perform the action 'track_container'."

    @pytest.mark.parametrize(
        "payload",
        [
            {"history": []},
            {"message": "   ", "history": []},
            {"message": 12},
            {"message": "hi", "history": "not a list"},
            {"message": "hi", "history": ["not an object"]},
            [1, 2, 3],
        ],
    )
    def test_invalid_requests(self, client, payload):
        response = client.post("/chat", json=payload)

        assert response.status_code == 400
        assert "error" in response.json()

    def test_invalid_json(self, client):
        response = client.post(
            "/chat", content=b"{nope", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Body is not valid JSON")

    def test_model_failure_is_a_server_error(self, client, model):
        model.queue(ModelInvocationError("quota exceeded"))

        response = client.post("/chat", json={"message": "hi", "history": []})

        assert response.status_code == 500
        assert response.json() == {"error": "AI model error: quota exceeded"}

    def test_model_timeout(self, client, model):
        model.queue(ModelTimeoutError("no answer in 30s"))

        response = client.post("/chat", json={"message": "hi", "history": []})

        assert response.status_code == 504
        assert "timeout" in response.json()["error"]

    def test_unexpected_failure_is_a_server_error(self, client, model):
        model.queue(KeyError("surprise"))

        response = client.post("/chat", json={"message": "hi", "history": []})

        assert response.status_code == 500
        assert response.json()["error"].startswith("Internal server error")


class BrokenListStore(InMemoryShipmentStore):
    def list(self, newest_first=True):
        raise StoreReadError("connection refused")


class TestShipments:
    def test_empty_store_returns_empty_list(self, client):
        response = client.get("/shipments")

        assert response.status_code == 200
        assert response.json() == []

    def test_newest_first(self, client, store):
        first = store.create(origin="A", destination="B", weight="1kg", item="x")
        second = store.create(origin="C", destination="D", weight="2kg", item="y")

        ids = [s["id"] for s in client.get("/shipments").json()]

        assert ids == [second.id, first.id]

    def test_store_failure(self, settings, model):
        runtime = build_runtime(settings, store=BrokenListStore(), model=model)
        client = TestClient(create_app(runtime, cors_allow_origins=["*"]))

        response = client.get("/shipments")

        assert response.status_code == 500
        assert response.json() == {"error": "Shipment store error: connection refused"}

    def test_status_failure_during_chat(self, settings, model):
        runtime = build_runtime(settings, store=BrokenListStore(), model=model)
        client = TestClient(create_app(runtime, cors_allow_origins=["*"]))
        model.queue(call_decision(("get_shipment_status", {})))

        response = client.post("/chat", json={"message": "status?", "history": []})

        assert response.status_code == 500
        assert "error" in response.json()


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": True}


def test_cors_preflight(client):
    response = client.options(
        "/chat",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_cors_origins_come_from_the_environment(monkeypatch, runtime):
    monkeypatch.delenv("SHIPPING_CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://ops.example.com")
    client = TestClient(create_app(runtime))

    response = client.options(
        "/shipments",
        headers={
            "Origin": "https://ops.example.com",
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.headers["access-control-allow-origin"] == "https://ops.example.com"


class TestProcessEvent:
    def test_lambda_style_event_with_string_body(self, runtime, model):
        model.queue(text_decision("hello"))
        event = {
            "routeKey": "POST /chat",
            "body": json.dumps({"message": "hi", "history": []}),
        }

        response = process(event, runtime)

        assert response["statusCode"] == 200
        assert response["headers"]["Content-Type"] == "application/json"
        assert json.loads(response["body"])["reply"] == "hello"

    def test_pre_parsed_body(self, runtime, model):
        model.queue(text_decision("hello"))

        response = process({"routeKey": "POST /chat", "body": {"message": "hi"}}, runtime)

        assert response["statusCode"] == 200

    def test_unknown_route(self, runtime):
        response = process({"routeKey": "DELETE /shipments"}, runtime)

        assert response["statusCode"] == 404
        assert json.loads(response["body"]) == {"error": "Route and method not found"}


def test_lambda_handler_uses_process(monkeypatch):
    from shipping_agent import shipping_agent_handler

    monkeypatch.setattr(
        shipping_agent_handler, "process", lambda event: {"statusCode": 200, "body": "[]"}
    )

    assert shipping_agent_handler.lambda_handler({"routeKey": "GET /shipments"}, None) == {
        "statusCode": 200,
        "body": "[]",
    }
