"""Runtime — routes a chat request to its pipeline and streams the result.

Three pipelines, selected by the request ``type``:
- visual:   plan, then refine the drawing step by step
- code:     one coder pass, streamed token by token (or generated whole)
- markdown: one markdown pass
Unknown types produce an empty stream.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable

from ideate.agents.gateway import AgentGateway, text_part, user_message
from ideate.agents.planner import plan as make_plan
from ideate.agents.refiner import refine
from ideate.agents.registry import CODER, MARKDOWN
from ideate.agents.state import Goal
from ideate.codec import decode_drawing, decode_image, decode_text, encode_text
from ideate.config import IdeateConfig
from ideate.errors import (
    GenerationError,
    InvalidRequestError,
    MalformedArtifactError,
    UnknownModeError,
)
from ideate.schemas import ChatRequest, CodeResult, MarkdownResult, StreamEvent
from ideate.streaming import StreamMultiplexer

logger = logging.getLogger(__name__)

CODE_TAG = "code"
MARKDOWN_TAG = "markdown"

# Failures reported to the user as the apology message
REQUEST_FAILURES = (GenerationError, MalformedArtifactError, InvalidRequestError)

Pipeline = Callable[[ChatRequest, StreamMultiplexer, AgentGateway, IdeateConfig], Awaitable[None]]


def prompt_text(request: ChatRequest) -> str:
    if request.prompt is None:
        raise InvalidRequestError(f"'{request.type}' request has no prompt")
    return request.prompt.text


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------


async def run_visual(
    request: ChatRequest,
    stream: StreamMultiplexer,
    gateway: AgentGateway,
    config: IdeateConfig,
) -> None:
    """Plan the drawing, then refine it one step at a time."""
    id = stream.open()
    try:
        goal = Goal(
            text=prompt_text(request),
            image=decode_image(request.image_bytes),
            drawing=decode_drawing(request.drawing_json),
        )
        plan = await make_plan(goal, gateway)
    except REQUEST_FAILURES as e:
        logger.error(f"Visual request failed before refinement: {e}")
        stream.text_delta(id, config.apology_message)
        stream.text_end(id)
        return

    if plan.remaining_steps == 0:
        stream.text_delta(id, plan.narrative)
    else:
        await refine(goal, goal.drawing, plan, stream, id, gateway, config.apology_message)
    stream.text_end(id)


def _code_message(goal: Goal):
    return user_message(
        text_part(goal.text),
        text_part(f"Existing code: {goal.current_code}"),
    )


async def run_code(
    request: ChatRequest,
    stream: StreamMultiplexer,
    gateway: AgentGateway,
    config: IdeateConfig,
) -> None:
    """One coder pass. Streams the explanation as it is generated when
    ``code_streaming`` is on, otherwise sends it whole."""
    id = stream.open()
    try:
        goal = Goal(
            text=prompt_text(request),
            current_code=decode_text(request.current_code, "currentCode"),
        )
        message = _code_message(goal)
        if config.code_streaming:
            generation = gateway.invoke_streaming(CODER, [message], CodeResult)
            async for fragment in generation.text_stream():
                stream.text_delta(id, fragment)
            result = await generation.result()
        else:
            result = await gateway.invoke(CODER, [message], CodeResult)
            if result.message_to_user:
                stream.text_delta(id, result.message_to_user)

        if result.code:
            stream.artifact_update(CODE_TAG, encode_text(result.code))
    except REQUEST_FAILURES as e:
        logger.error(f"Code generation failed: {e}")
        stream.text_delta(id, config.apology_message)
    stream.text_end(id)


async def run_markdown(
    request: ChatRequest,
    stream: StreamMultiplexer,
    gateway: AgentGateway,
    config: IdeateConfig,
) -> None:
    """One markdown pass: the message, then the full document."""
    id = stream.open()
    try:
        goal = Goal(
            text=prompt_text(request),
            markdown=decode_text(request.markdown_data, "markdownData"),
        )
        message = user_message(text_part(goal.text), text_part(goal.markdown))
        result = await gateway.invoke(MARKDOWN, [message], MarkdownResult)

        if result.message_to_user:
            stream.text_delta(id, result.message_to_user)
        stream.artifact_update(MARKDOWN_TAG, encode_text(result.markdown))
    except REQUEST_FAILURES as e:
        logger.error(f"Markdown generation failed: {e}")
        stream.text_delta(id, config.apology_message)
    stream.text_end(id)


PIPELINES: dict[str, Pipeline] = {
    "visual": run_visual,
    "code": run_code,
    "markdown": run_markdown,
}


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


def check_mode(request: ChatRequest, config: IdeateConfig) -> None:
    """Reject a request before streaming starts.

    Unknown types raise UnknownModeError only when configured to reject
    them; known types without a prompt raise InvalidRequestError.
    """
    if request.type not in PIPELINES:
        if config.unknown_mode == "reject":
            raise UnknownModeError(request.type, list(PIPELINES))
        return
    prompt_text(request)


async def handle(
    request: ChatRequest,
    stream: StreamMultiplexer,
    gateway: AgentGateway,
    config: IdeateConfig,
) -> None:
    """Dispatch a request to its pipeline. Unknown types do nothing."""
    pipeline = PIPELINES.get(request.type)
    if pipeline is None:
        logger.warning(f"Ignoring request with unknown type '{request.type}'")
        return

    logger.info(f"Handling '{request.type}' request")
    await pipeline(request, stream, gateway, config)


async def execute_chat(
    request: ChatRequest,
    gateway: AgentGateway,
    config: IdeateConfig,
) -> AsyncGenerator[StreamEvent, None]:
    """Run the request's pipeline and yield its stream events in order."""
    stream = StreamMultiplexer(fallback_message=config.apology_message)

    async def execute(mux: StreamMultiplexer) -> None:
        await handle(request, mux, gateway, config)

    async for event in stream.run(execute):
        yield event
