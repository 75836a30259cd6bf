import json
import os
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import ValidationError

os.environ.setdefault("IDEATE_CONFIG", str(Path(__file__).resolve().parents[1] / "config.yaml"))

from ideate.agents.gateway import StreamingGeneration  # noqa: E402
from ideate.config import IdeateConfig  # noqa: E402
from ideate.errors import GenerationError  # noqa: E402
from ideate.main import app, get_gateway  # noqa: E402
from ideate.runtime import execute_chat  # noqa: E402
from ideate.schemas import ChatRequest  # noqa: E402

# 1x1 transparent PNG
BLANK_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class FakeGateway:
    """Scripted stand-in for AgentGateway.

    ``responses`` maps agent name → list of payload dicts (or exceptions) for
    ``invoke``; ``streams`` maps agent name → list of chunk lists for
    ``invoke_streaming``. Every call is recorded in ``calls``.
    """

    def __init__(self, responses=None, streams=None):
        self.responses = {k: list(v) for k, v in (responses or {}).items()}
        self.streams = {k: list(v) for k, v in (streams or {}).items()}
        self.calls = []

    async def invoke(self, agent_name, messages, output_schema):
        self.calls.append((agent_name, list(messages)))
        item = self.responses[agent_name].pop(0)
        if isinstance(item, Exception):
            raise item
        try:
            return output_schema.model_validate(item)
        except ValidationError as e:
            raise GenerationError(agent_name, str(e)) from e

    def invoke_streaming(self, agent_name, messages, output_schema, text_field="messageToUser"):
        self.calls.append((agent_name, list(messages)))
        items = self.streams[agent_name].pop(0)

        async def chunks():
            for item in items:
                if isinstance(item, Exception):
                    raise item
                yield item

        return StreamingGeneration(agent_name, chunks(), output_schema, text_field)

    def agent_calls(self, agent_name):
        return [messages for name, messages in self.calls if name == agent_name]


def drawing_json(elements, **extra):
    return json.dumps({"elements": elements, "appState": {}, **extra})


def rect(id, x=0, y=0):
    return {"id": id, "type": "rectangle", "x": x, "y": y, "width": 100, "height": 80}


def step_payload(elements, message="Drew something", plan="- [x] step"):
    return {
        "drawingJSON": drawing_json(elements),
        "messageToUser": message,
        "updatedDrawingPlan": plan,
    }


def plan_payload(steps, narrative="- [ ] **Step 1**: draw"):
    return {"drawingPlan": narrative, "stepCount": steps}


def message_texts(message):
    """Text parts of a LangChain message, in order."""
    return [p["text"] for p in message.content if p["type"] == "text"]


def message_images(message):
    return [p["image_url"]["url"] for p in message.content if p["type"] == "image_url"]


async def collect(body, gateway, config=None):
    request = ChatRequest.model_validate(body)
    return [e async for e in execute_chat(request, gateway, config or IdeateConfig())]


def kinds(events):
    return [e.type for e in events]


@pytest.fixture
def config():
    return IdeateConfig()


@pytest_asyncio.fixture
async def api_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def override_gateway():
    """Install a FakeGateway for the HTTP app; returns a setter."""

    def install(gateway):
        app.dependency_overrides[get_gateway] = lambda: gateway
        return gateway

    yield install
    app.dependency_overrides.pop(get_gateway, None)


@pytest.fixture(autouse=True)
def restore_config():
    """Tests that load or swap config must not leak it into later tests."""
    import ideate.config as config_module

    saved = (config_module._config, config_module._config_path)
    yield
    config_module._config, config_module._config_path = saved
