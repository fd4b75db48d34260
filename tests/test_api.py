from __future__ import annotations

from fastapi.testclient import TestClient

from signal_router.api import create_app
from signal_router.core.runner import BackgroundTask


class FakeRouter:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.messages = []
        self.ran = []

    async def handle(self, message):
        if self.error is not None:
            raise self.error
        self.messages.append(message)

        async def notify() -> None:
            self.ran.append(message.message_id)

        return [BackgroundTask(name="signals:notify-discord", run=notify)]


def _client(router: FakeRouter) -> TestClient:
    return TestClient(create_app(router))


def test_valid_payload_is_acknowledged_and_tasks_run() -> None:
    router = FakeRouter()
    response = _client(router).post(
        "/",
        json={"text": "BUY $AAPL", "u": "alice", "u_id": 1, "c_id": 200, "cn": "alpha", "m_id": "300"},
    )

    assert response.status_code == 200
    assert response.text == "OK"
    assert response.headers["access-control-allow-origin"] == "*"
    (message,) = router.messages
    assert message.author_id == "1"
    assert message.channel_id == "200"
    assert router.ran == ["300"]


def test_invalid_json_is_rejected() -> None:
    router = FakeRouter()
    response = _client(router).post("/", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.text == "Invalid JSON"
    assert router.messages == []


def test_non_object_body_is_rejected() -> None:
    response = _client(FakeRouter()).post("/", json=["text"])
    assert response.status_code == 400


def test_routing_error_returns_500() -> None:
    response = _client(FakeRouter(error=RuntimeError("boom"))).post("/", json={"text": "hi"})
    assert response.status_code == 500
    assert response.text == "Internal Server Error"


def test_preflight_returns_cors_headers() -> None:
    response = _client(FakeRouter()).options("/")
    assert response.status_code == 200
    assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"


def test_other_methods_are_not_allowed() -> None:
    client = _client(FakeRouter())
    assert client.get("/").status_code == 405
    assert client.put("/", json={}).status_code == 405
    assert client.delete("/").status_code == 405


def test_every_response_carries_cors_headers() -> None:
    client = _client(FakeRouter())
    responses = [
        client.post("/ingest", json={}),
        client.head("/"),
        client.get("/"),
        client.post("/", content=b"{not json", headers={"Content-Type": "application/json"}),
        _client(FakeRouter(error=RuntimeError("boom"))).post("/", json={"text": "hi"}),
    ]

    assert [response.status_code for response in responses] == [404, 405, 405, 400, 500]
    for response in responses:
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
