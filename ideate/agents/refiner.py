"""Iterative refiner — the drawing refinement loop as a LangGraph graph.

START → conditional (route_step)
  → "generate_step" → conditional (route_step) → "generate_step" → ...
  → "__done__"      → END

The loop runs at most ``plan.remaining_steps`` times. That bound is fixed
when the plan is made; each step replaces the plan narrative but never the
bound. A failed step ends the loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langgraph.graph import END, START, StateGraph

from ideate.agents.gateway import image_part, text_part, user_message
from ideate.agents.registry import GENERATOR
from ideate.agents.state import RefineState
from ideate.codec import (
    DrawingDocument,
    decode_drawing,
    drawing_to_text,
    encode_drawing,
    image_data_url,
)
from ideate.errors import GenerationError, MalformedArtifactError
from ideate.schemas import DrawingStepResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from langgraph.graph.state import CompiledStateGraph

    from ideate.agents.gateway import AgentGateway
    from ideate.agents.state import Goal, Plan
    from ideate.streaming import StreamMultiplexer

logger = logging.getLogger(__name__)

STEP_NODE = "generate_step"
DRAWING_TAG = "excalidraw-json"


def build_step_prompt(goal_text: str, plan: str, step: int, total: int) -> str:
    return f"""
INITIAL PROMPT:
{goal_text}

PLAN:
{plan}

CURRENT STEP: {step} of {total}
"""


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


def make_step_node(gateway: AgentGateway) -> Callable:
    """Create the node that runs one refinement step through the generator."""

    async def generate_step(state: RefineState) -> dict:
        step = state["step"] + 1
        total = state["total_steps"]
        logger.info(f"Refinement step {step}/{total}")

        image_url = state.get("image_url")
        message = user_message(
            text_part(build_step_prompt(state["goal_text"], state["plan"], step, total)),
            image_part(image_url) if image_url else None,
            text_part(state["artifact"]),
        )

        try:
            result = await gateway.invoke(GENERATOR, [message], DrawingStepResult)
            document = decode_drawing(result.drawing_json)
        except (GenerationError, MalformedArtifactError) as e:
            logger.error(f"Refinement step {step}/{total} failed: {e}")
            return {"failed": True, "error": str(e)}

        return {
            "step": step,
            "plan": result.updated_drawing_plan,
            "artifact": drawing_to_text(document),
            "document": encode_drawing(document),
            "message": result.message_to_user,
            "failed": False,
        }

    return generate_step


def route_step(state: RefineState) -> str:
    """Loop while steps remain and nothing has failed."""
    if state.get("failed"):
        return "__done__"
    if state["step"] >= state["total_steps"]:
        return "__done__"
    return STEP_NODE


def build_refine_graph(gateway: AgentGateway) -> CompiledStateGraph:
    graph = StateGraph(RefineState)
    graph.add_node(STEP_NODE, make_step_node(gateway))

    destinations = {STEP_NODE: STEP_NODE, "__done__": END}
    graph.add_conditional_edges(START, route_step, destinations)
    graph.add_conditional_edges(STEP_NODE, route_step, destinations)
    return graph.compile()


# ---------------------------------------------------------------------------
# Loop driver
# ---------------------------------------------------------------------------


async def refine(
    goal: Goal,
    initial_artifact: DrawingDocument,
    plan: Plan,
    stream: StreamMultiplexer,
    message_id: str,
    gateway: AgentGateway,
    apology: str,
) -> DrawingDocument:
    """Run the refinement loop, emitting a message and the full drawing
    after every successful step.

    On a failed step the apology is emitted and the loop stops; the drawing
    from the last successful step is returned and not re-sent. The caller
    closes the text block.
    """
    initial_state: RefineState = {
        "goal_text": goal.text,
        "image_url": image_data_url(goal.image) if goal.image else None,
        "plan": plan.narrative,
        "step": 0,
        "total_steps": plan.remaining_steps,
        "artifact": drawing_to_text(initial_artifact),
        "document": None,
        "message": None,
        "failed": False,
        "error": None,
    }

    graph = build_refine_graph(gateway)
    artifact = initial_artifact

    async for event in graph.astream(
        initial_state,
        config={"recursion_limit": plan.remaining_steps + 2},
        stream_mode="updates",
    ):
        for node_name, update in event.items():
            if node_name != STEP_NODE or not update:
                continue

            if update.get("failed"):
                logger.warning(f"Refinement stopped: {update.get('error')}")
                stream.text_delta(message_id, apology)
                return artifact

            stream.text_delta(message_id, update.get("message") or "")
            stream.artifact_update(DRAWING_TAG, update["document"])
            artifact = decode_drawing(update["document"])

    return artifact
