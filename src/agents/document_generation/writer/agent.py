"""Writer agent for section drafts and revisions."""

from __future__ import annotations

import logging

from src.agents.document_generation.base import BaseAgent
from src.agents.document_generation.models import AgentOutput, AgentRole, RevisionContext, SectionPlan, WriterOutput

logger = logging.getLogger(__name__)


class WriterAgent(BaseAgent):
    """Drafts a section from its plan, or revises it against editor feedback."""

    role = AgentRole.WRITER

    async def run(
        self,
        *,
        plan: SectionPlan,
        custom_instructions: str | None,
        revision: RevisionContext | None = None,
    ) -> AgentOutput[WriterOutput]:
        """Write ``plan``; with ``revision`` the previous draft and its feedback are included."""
        if revision is None:
            logger.debug("Drafting section %r: key_points=%d", plan.heading, len(plan.key_points))
        else:
            logger.debug(
                "Revising section %r against %d feedback point(s)",
                plan.heading,
                len(revision.previous_feedback.feedback),
            )
        messages = self._build_messages(
            output_model=WriterOutput,
            heading=plan.heading,
            key_points="\n".join(f"{index}. {point}" for index, point in enumerate(plan.key_points, start=1)),
            references="\n".join(f"- {ref.title}: {ref.url}" for ref in plan.references or []) or "None",
            custom_instructions=custom_instructions or "No specific user instructions provided.",
            editor_review=self._format_review(revision),
        )
        result = await self._generate(messages=messages, output_model=WriterOutput)
        logger.info(
            "Section written: %r chars=%d references=%d rebuttal=%s",
            result.output.content.heading,
            len(result.output.content.content),
            len(result.output.content.references or []),
            "yes" if result.output.response_to_editor_feedback else "no",
        )
        return result

    @staticmethod
    def _format_review(revision: RevisionContext | None) -> str:
        if revision is None:
            return "This is the first draft; there is no editor feedback yet."
        feedback = "\n".join(
            f"{index}. {point}" for index, point in enumerate(revision.previous_feedback.feedback, start=1)
        )
        return (
            "Editor Review Notes:\n"
            '"""\n'
            f"Current Section Heading: {revision.previous_content.heading}\n\n"
            f"Current Section Content: {revision.previous_content.content}\n\n"
            f"Editor Feedback:\n{feedback}\n"
            '"""\n\n'
            "You can push back on the editor feedback if you think it's not accurate "
            "or if you have a good reason to disagree."
        )
