"""Tests for the HTTP and WebSocket session API."""

import asyncio
import logging

import httpx
import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from conftest import build_harness
from main import app
from mockvoice.api.broadcaster import EventBroadcaster
from mockvoice.api.dependencies import get_broadcaster, get_controller
from mockvoice.api.endpoints.session import session_events
from mockvoice.models.events import Listening


@pytest.fixture
def harness():
    return build_harness(
        questions=["Descreva um desafio de liderança."],
        evaluations=[90],
        max_recording_seconds=0.05,
    )


@pytest.fixture
def client(harness):
    broadcaster = EventBroadcaster()
    app.dependency_overrides[get_controller] = lambda: harness.controller
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestSessionEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_status_when_idle(self, client):
        response = client.get("/api/session/status")

        assert response.status_code == 200
        body = response.json()
        assert body["active"] is False
        assert body["recording"] is False
        assert body["questions_answered"] == 0

    def test_start_requires_topics(self, client):
        response = client.post(
            "/api/session/start",
            json={"topics": ["  "], "job_context": "Empresa"},
        )
        assert response.status_code == 400

    def test_start_validates_payload(self, client):
        response = client.post("/api/session/start", json={"topics": []})
        assert response.status_code == 422

    def test_done_without_recording(self, client):
        response = client.post("/api/session/done")
        assert response.status_code == 409

    def test_end_when_idle(self, client):
        response = client.post("/api/session/end")

        assert response.status_code == 200
        assert response.json()["status"] == "idle"

    def test_session_streams_events(self, client):
        with client.websocket_connect("/api/session/events") as websocket:
            response = client.post(
                "/api/session/start",
                json={"topics": ["Liderança"], "job_context": "Empresa de tecnologia"},
            )
            assert response.status_code == 202
            assert response.json()["topics"] == ["Liderança"]

            types = []
            while not types or types[-1] not in ("session_end", "error"):
                types.append(websocket.receive_json()["type"])

        assert types == [
            "session_warming",
            "session_started",
            "new_question",
            "listening",
            "processing",
            "answer_evaluated",
            "session_end",
        ]

    def test_websocket_ping(self, client):
        with client.websocket_connect("/api/session/events") as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}


class TestConcurrentStart:

    @pytest.fixture
    def overrides(self):
        harness = build_harness(max_recording_seconds=5)
        app.dependency_overrides[get_controller] = lambda: harness.controller
        app.dependency_overrides[get_broadcaster] = lambda: EventBroadcaster()
        yield harness.controller
        app.dependency_overrides.clear()

    @pytest.mark.asyncio
    async def test_second_start_is_rejected(self, overrides):
        controller = overrides
        payload = {"topics": ["Liderança"], "job_context": "Empresa de tecnologia"}

        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            first, second = await asyncio.gather(
                client.post("/api/session/start", json=payload),
                client.post("/api/session/start", json=payload),
            )
            statuses = sorted([first.status_code, second.status_code])
            accepted = first if first.status_code == 202 else second

            assert statuses == [202, 409]
            assert accepted.json()["version"] == controller.version
            assert controller.is_session_active()

            ended = await client.post("/api/session/end")
            assert ended.json()["status"] == "ended"

        await asyncio.sleep(0.05)
        assert not controller.is_session_active()


class BrokenWebSocket:
    """A client whose connection drops on the first event sent to it."""

    def __init__(self):
        self.send_failed = asyncio.Event()

    async def accept(self):
        pass

    async def send_json(self, data):
        self.send_failed.set()
        raise RuntimeError("connection reset")

    async def receive_json(self):
        await self.send_failed.wait()
        raise WebSocketDisconnect()


class TestEventForwarding:

    @pytest.mark.asyncio
    async def test_send_failure_is_collected(self, caplog):
        broadcaster = EventBroadcaster()
        controller = build_harness().controller
        endpoint = asyncio.create_task(
            session_events(BrokenWebSocket(), controller, broadcaster)
        )
        for _ in range(100):
            if broadcaster.subscriber_count:
                break
            await asyncio.sleep(0.001)

        with caplog.at_level(logging.WARNING, logger="mockvoice.api.endpoints.session"):
            await broadcaster.publish(Listening())
            await asyncio.wait_for(endpoint, timeout=1)

        assert broadcaster.subscriber_count == 0
        assert "Event forwarding stopped: connection reset" in caplog.text
