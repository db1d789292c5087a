"""Editor agent: reviews one section draft."""

from __future__ import annotations

import logging

from src.agents.document_generation.base import BaseAgent
from src.agents.document_generation.models import AgentOutput, AgentRole, RevisionContext, SectionContent, SectionFeedback

logger = logging.getLogger(__name__)


class EditorAgent(BaseAgent):
    """Approves a draft or returns actionable feedback points."""

    role = AgentRole.EDITOR

    async def run(
        self,
        *,
        content: SectionContent,
        custom_instructions: str | None,
        revision: RevisionContext | None = None,
    ) -> AgentOutput[SectionFeedback]:
        """Review ``content``; ``revision`` carries the prior round and the writer's reply."""
        logger.debug("Reviewing section %r: chars=%d revision=%s", content.heading, len(content.content), revision is not None)
        messages = self._build_messages(
            output_model=SectionFeedback,
            heading=content.heading,
            content=content.content,
            custom_instructions=custom_instructions or "No specific user instructions provided.",
            previous_review=self._format_previous_review(revision),
        )
        result = await self._generate(messages=messages, output_model=SectionFeedback)
        logger.info(
            "Section reviewed: %r approved=%s feedback_points=%d",
            content.heading,
            result.output.approved,
            len(result.output.feedback),
        )
        return result

    @staticmethod
    def _format_previous_review(revision: RevisionContext | None) -> str:
        if revision is None:
            return "This is the first review of this section."
        feedback = "\n".join(
            f"{index}. {point}" for index, point in enumerate(revision.previous_feedback.feedback, start=1)
        )
        writer_response = revision.writer_response or "The writer did not respond to the feedback."
        return (
            "Previous Review:\n"
            '"""\n'
            f"Previous Content: {revision.previous_content.content}\n\n"
            f"Your Previous Feedback:\n{feedback}\n\n"
            f"Writer's Response: {writer_response}\n"
            '"""'
        )
