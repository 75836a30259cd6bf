"""
Tests for the HTTP surface: SSE framing, auth and operational endpoints.
"""

import json

import pytest

from ideate.agents.registry import CODER, GENERATOR, PLANNER
from ideate.config import IdeateConfig

from conftest import FakeGateway, plan_payload, rect, step_payload


def parse_sse(body: str):
    """Split an SSE body into decoded events; returns (events, saw_done)."""
    events, done = [], False
    for frame in body.split("\n\n"):
        if not frame.strip():
            continue
        assert frame.startswith("data: ")
        payload = frame[len("data: "):]
        if payload == "[DONE]":
            done = True
            continue
        events.append(json.loads(payload))
    return events, done


@pytest.fixture
def use_config(monkeypatch):
    def install(config: IdeateConfig):
        monkeypatch.setattr("ideate.config._config", config)
        return config

    return install


@pytest.mark.asyncio
async def test_chat_streams_visual_events(api_client, override_gateway):
    override_gateway(FakeGateway(responses={
        PLANNER: [plan_payload(2)],
        GENERATOR: [step_payload([rect("a")], "one"), step_payload([rect("a"), rect("b")], "two")],
    }))

    response = await api_client.post("/api/chat", json={
        "type": "visual",
        "prompt": {"text": "two boxes"},
        "drawingJSON": '{"elements":[],"appState":{}}',
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["x-vercel-ai-ui-message-stream"] == "v1"
    events, done = parse_sse(response.text)
    assert done
    assert [e["type"] for e in events] == [
        "text-start",
        "text-delta", "data-excalidraw-json",
        "text-delta", "data-excalidraw-json",
        "text-end",
    ]
    assert events[2] == {
        "type": "data-excalidraw-json",
        "data": {"elements": [rect("a")], "appState": {}, "files": {}},
        "transient": True,
    }


@pytest.mark.asyncio
async def test_chat_code(api_client, override_gateway):
    override_gateway(FakeGateway(streams={CODER: [[
        {"messageToUser": "Adds numbers.", "code": "def add(a, b):\n    return a + b\n"},
    ]]}))

    response = await api_client.post("/api/chat", json={
        "type": "code",
        "prompt": {"text": "write a function that adds two numbers"},
        "currentCode": "",
    })

    events, done = parse_sse(response.text)
    assert done
    assert [e["type"] for e in events] == ["text-start", "text-delta", "data-code", "text-end"]
    assert events[2]["data"].startswith("def add")


@pytest.mark.asyncio
async def test_unknown_type_is_empty_stream(api_client, override_gateway):
    gateway = override_gateway(FakeGateway())

    response = await api_client.post("/api/chat", json={"type": "sound", "prompt": {"text": "hi"}})

    assert response.status_code == 200
    events, done = parse_sse(response.text)
    assert events == []
    assert done
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_unknown_type_rejected_when_configured(api_client, override_gateway, use_config):
    use_config(IdeateConfig(unknown_mode="reject"))
    override_gateway(FakeGateway())

    response = await api_client.post("/api/chat", json={"type": "sound", "prompt": {"text": "hi"}})

    assert response.status_code == 422
    assert "sound" in response.json()["detail"]


@pytest.mark.asyncio
async def test_missing_prompt_is_validation_error(api_client, override_gateway):
    override_gateway(FakeGateway())
    response = await api_client.post("/api/chat", json={"type": "code"})
    assert response.status_code == 422
    assert "prompt" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"type": 42, "prompt": {"text": "hi"}},
    {"type": None, "prompt": {"text": "hi"}},
    {"prompt": {"text": "hi"}},
    {"type": "chart"},
])
async def test_unrecognised_type_shapes_are_empty_streams(api_client, override_gateway, body):
    gateway = override_gateway(FakeGateway())

    response = await api_client.post("/api/chat", json=body)

    assert response.status_code == 200
    events, done = parse_sse(response.text)
    assert events == []
    assert done
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_api_key_required(api_client, override_gateway, use_config):
    use_config(IdeateConfig(api_key="secret"))
    override_gateway(FakeGateway())
    body = {"type": "sound", "prompt": {"text": "hi"}}

    missing = await api_client.post("/api/chat", json=body)
    wrong = await api_client.post("/api/chat", json=body, headers={"X-API-Key": "nope"})
    right = await api_client.post("/api/chat", json=body, headers={"X-API-Key": "secret"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert right.status_code == 200


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_config_redacts_api_key(api_client, use_config):
    use_config(IdeateConfig(api_key="secret"))
    response = await api_client.get("/config")
    assert response.json()["api_key"] == "***"


@pytest.mark.asyncio
async def test_reload(api_client):
    response = await api_client.post("/reload")
    assert response.status_code == 200
    assert response.json()["status"] == "reloaded"
