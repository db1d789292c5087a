"""Content strategist agent: plans the key points of one section."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from src.agents.document_generation.base import BaseAgent
from src.agents.document_generation.models import AgentOutput, AgentRole, Outline, OutlineSection, SectionPlan

logger = logging.getLogger(__name__)


def _format_outline(outline: Outline) -> str:
    lines = [f"# {outline.title}"]
    for section in outline.sections:
        lines.append(f"{'#' * max(section.level, 2)} {section.heading}")
        for sub_section in section.sub_sections or []:
            lines.append(f"{'#' * max(sub_section.level, 3)} {sub_section.heading}")
    return "\n".join(lines)


def _format_previous_plans(plans: Sequence[SectionPlan]) -> str:
    if not plans:
        return "No sections have been planned yet."
    blocks = []
    for plan in plans:
        points = "\n".join(f"- {point}" for point in plan.key_points)
        blocks.append(f"Section: {plan.heading}\n{points}")
    return "\n\n".join(blocks)


class ContentStrategistAgent(BaseAgent):
    """Plans one section, aware of every section planned before it."""

    role = AgentRole.CONTENT_STRATEGIST

    async def run(
        self,
        *,
        outline: Outline,
        section: OutlineSection,
        custom_instructions: str | None,
        previous_plans: Sequence[SectionPlan],
    ) -> AgentOutput[SectionPlan]:
        """Produce the plan for ``section``; ``previous_plans`` must not be repeated."""
        logger.debug(
            "Planning section %r of %r (previous plans: %d)",
            section.heading,
            outline.title,
            len(previous_plans),
        )
        messages = self._build_messages(
            output_model=SectionPlan,
            outline=_format_outline(outline),
            section_heading=section.heading,
            sub_sections="\n".join(f"- {sub.heading}" for sub in section.sub_sections or []) or "None",
            custom_instructions=custom_instructions or "No specific user instructions provided.",
            previous_plans=_format_previous_plans(previous_plans),
        )
        result = await self._generate(messages=messages, output_model=SectionPlan)
        logger.info(
            "Section planned: %r key_points=%d references=%d",
            result.output.heading,
            len(result.output.key_points),
            len(result.output.references or []),
        )
        return result
