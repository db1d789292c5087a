"""Editor-in-chief agent: final review over the assembled draft."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from src.agents.document_generation.base import BaseAgent
from src.agents.document_generation.models import (
    AgentOutput,
    AgentRole,
    DocumentRequest,
    FinalReview,
    Outline,
    SectionContent,
    SectionPlan,
)

logger = logging.getLogger(__name__)


class EditorInChiefAgent(BaseAgent):
    """Chooses the final title, writes global notes and proposes literal edits."""

    role = AgentRole.EDITOR_IN_CHIEF

    async def run(
        self,
        *,
        request: DocumentRequest,
        outline: Outline,
        plans: Sequence[SectionPlan],
        sections: Sequence[SectionContent],
    ) -> AgentOutput[FinalReview]:
        """Review the whole draft in one call."""
        logger.debug("Final review of %r: sections=%d", outline.title, len(sections))
        messages = self._build_messages(
            output_model=FinalReview,
            subject=request.subject,
            custom_instructions=request.custom_instructions or "No specific user instructions provided.",
            outline=outline.model_dump_json(indent=2),
            content_strategy=json.dumps([plan.model_dump() for plan in plans], indent=2, ensure_ascii=False),
            sections="\n\n".join(f"## {section.heading}\n\n{section.content}" for section in sections),
        )
        result = await self._generate(messages=messages, output_model=FinalReview)
        review = result.output
        logger.info(
            "Final review: title=%r global_feedback=%d proposed_edits=%d",
            review.final_article_title,
            len(review.global_feedback),
            len(review.proposed_edits),
        )
        for edit in review.proposed_edits:
            logger.debug("Proposed %s edit for %r: %s", edit.priority, edit.section_heading, edit.feedback)
        return result
