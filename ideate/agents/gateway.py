"""Agent gateway — the single place where model calls are made.

Two modes:
- ``invoke``: one-shot structured generation, returns a validated object.
- ``invoke_streaming``: streams text fragments of one output field while the
  model generates, then hands back the validated object.

Every failure of the underlying call surfaces as ``GenerationError``.
The gateway never retries; callers decide what to do.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ValidationError

from ideate.agents import cache as client_cache
from ideate.agents.registry import ResolvedAgent, merge_agent
from ideate.errors import GenerationError

if TYPE_CHECKING:
    from langchain_core.runnables import Runnable

    from ideate.config import IdeateConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


# ---------------------------------------------------------------------------
# Message helpers
# ---------------------------------------------------------------------------


def text_part(text: str) -> dict:
    return {"type": "text", "text": text}


def image_part(data_url: str) -> dict:
    """Image content block; ``data_url`` is a ``data:image/png;base64,...`` URL."""
    return {"type": "image_url", "image_url": {"url": data_url}}


def user_message(*parts: dict | None) -> HumanMessage:
    """Build a user message from content parts, skipping ``None`` entries."""
    return HumanMessage(content=[p for p in parts if p is not None])


def _with_system(agent: ResolvedAgent, messages: Sequence[BaseMessage]) -> list[BaseMessage]:
    return [SystemMessage(content=agent.prompt)] + list(messages)


# ---------------------------------------------------------------------------
# Streaming result
# ---------------------------------------------------------------------------


class StreamingGeneration(Generic[T]):
    """A streaming generation: text fragments first, structured object last.

    ``chunks`` yields partial structured outputs (dicts that grow as the model
    generates). ``text_stream()`` turns the growth of ``text_field`` into
    fragments; it can be consumed once. ``result()`` validates the final
    payload against the output schema.
    """

    def __init__(
        self,
        agent_name: str,
        chunks: AsyncIterator[Any],
        output_schema: type[T],
        text_field: str,
    ):
        self.agent_name = agent_name
        self._chunks = chunks
        self._schema = output_schema
        self._text_field = text_field
        self._latest: Any = None
        self._text = ""
        self._started = False
        self._exhausted = False

    def _advance(self, partial: Any) -> str:
        value = partial.get(self._text_field) if isinstance(partial, dict) else None
        if not isinstance(value, str) or not value.startswith(self._text):
            return ""
        delta = value[len(self._text):]
        self._text = value
        return delta

    async def text_stream(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("text_stream() can only be consumed once")
        self._started = True
        try:
            async for partial in self._chunks:
                self._latest = partial
                delta = self._advance(partial)
                if delta:
                    yield delta
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Agent '{self.agent_name}' stream error: {e}", exc_info=True)
            raise GenerationError(self.agent_name, str(e)) from e
        self._exhausted = True

    async def result(self) -> T:
        """Return the validated object. Drains the text stream if untouched."""
        if not self._started:
            async for _ in self.text_stream():
                pass
        if not self._exhausted:
            raise RuntimeError("result() called before the text stream was exhausted")
        try:
            return self._schema.model_validate(self._latest)
        except ValidationError as e:
            raise GenerationError(
                self.agent_name, f"output failed schema validation: {e}"
            ) from e


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------


class AgentGateway:
    """Invokes registered agents by name using the configured model clients."""

    def __init__(self, config: IdeateConfig):
        self.config = config

    def resolve(self, agent_name: str) -> ResolvedAgent:
        return merge_agent(agent_name, self.config.get_override(agent_name))

    def _structured_llm(self, agent: ResolvedAgent, output_schema: type[BaseModel]) -> Runnable:
        llm = client_cache.get_or_build(agent, self.config.gateway)
        # JSON schema by alias, so the model sees the wire field names.
        return llm.with_structured_output(output_schema.model_json_schema(by_alias=True))

    async def invoke(
        self,
        agent_name: str,
        messages: Sequence[BaseMessage],
        output_schema: type[T],
    ) -> T:
        """One-shot structured generation."""
        agent = self.resolve(agent_name)
        logger.info(f"Agent '{agent.name}' invoked (model={agent.model})")
        try:
            llm = self._structured_llm(agent, output_schema)
            raw = await llm.ainvoke(_with_system(agent, messages))
        except Exception as e:
            logger.error(f"Agent '{agent.name}' error: {e}", exc_info=True)
            raise GenerationError(agent.name, str(e)) from e

        try:
            return output_schema.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Agent '{agent.name}' returned an invalid payload: {e}")
            raise GenerationError(agent.name, f"output failed schema validation: {e}") from e

    def invoke_streaming(
        self,
        agent_name: str,
        messages: Sequence[BaseMessage],
        output_schema: type[T],
        text_field: str = "messageToUser",
    ) -> StreamingGeneration[T]:
        """Streaming structured generation. Nothing is sent until iterated."""
        agent = self.resolve(agent_name)

        async def chunks() -> AsyncIterator[Any]:
            logger.info(f"Agent '{agent.name}' streaming (model={agent.model})")
            llm = self._structured_llm(agent, output_schema)
            async for partial in llm.astream(_with_system(agent, messages)):
                yield partial

        return StreamingGeneration(agent.name, chunks(), output_schema, text_field)
