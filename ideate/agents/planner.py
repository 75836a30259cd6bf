"""Planner — turns a drawing request into a plan and a step count."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ideate.agents.gateway import image_part, text_part, user_message
from ideate.agents.registry import PLANNER
from ideate.agents.state import Goal, Plan
from ideate.codec import describe_drawing, drawing_to_text, image_data_url
from ideate.schemas import PlannerResult

if TYPE_CHECKING:
    from ideate.agents.gateway import AgentGateway

logger = logging.getLogger(__name__)


def build_planner_message(goal: Goal):
    """User message for the planner: request, snapshot image, canvas JSON
    and a textual analysis of the canvas."""
    parts = [text_part(goal.text)]
    if goal.image:
        parts.append(image_part(image_data_url(goal.image)))
    if goal.drawing is not None:
        parts.append(text_part(drawing_to_text(goal.drawing)))
        parts.append(text_part(describe_drawing(goal.drawing)))
    return user_message(*parts)


async def plan(goal: Goal, gateway: AgentGateway) -> Plan:
    """Ask the planner agent for a plan.

    The step count is taken as given; negative counts mean no steps.
    Raises GenerationError if the planner call fails.
    """
    result = await gateway.invoke(PLANNER, [build_planner_message(goal)], PlannerResult)

    steps = result.step_count
    if steps < 0:
        logger.warning(f"Planner returned negative stepCount {steps}, using 0")
        steps = 0

    logger.info(f"Planner produced {steps} step(s)")
    return Plan(narrative=result.drawing_plan, remaining_steps=steps)
