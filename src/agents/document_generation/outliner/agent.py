"""Outliner agent: turns a subject into the document outline."""

from __future__ import annotations

import logging

from src.agents.document_generation.base import BaseAgent
from src.agents.document_generation.models import AgentOutput, AgentRole, DocumentRequest, Outline

logger = logging.getLogger(__name__)


class OutlinerAgent(BaseAgent):
    """Creates the title and ordered section structure."""

    role = AgentRole.OUTLINER

    async def run(self, request: DocumentRequest) -> AgentOutput[Outline]:
        """Generate the outline for ``request``."""
        logger.debug(
            "Outlining: subject=%r custom_instructions=%s",
            request.subject,
            "yes" if request.custom_instructions else "no",
        )
        messages = self._build_messages(
            output_model=Outline,
            subject=request.subject,
            custom_instructions=request.custom_instructions or "No specific user instructions provided.",
        )
        result = await self._generate(messages=messages, output_model=Outline)
        logger.info("Outline created: title=%r sections=%d", result.output.title, len(result.output.sections))
        return result
