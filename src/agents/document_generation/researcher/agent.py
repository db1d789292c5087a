"""Researcher agent: answers research requests from web sources."""

from __future__ import annotations

import logging

from src.agents.document_generation.base import BaseAgent
from src.agents.document_generation.models import AgentOutput, AgentRole, ResearchRequest, ResearchResult

logger = logging.getLogger(__name__)


class ResearcherAgent(BaseAgent):
    """Searches the web and returns sourced findings.

    Invoked only through the ``researcher`` tool of another agent; its usage is
    recorded under that agent's invocation, never under a role of its own.
    """

    role = AgentRole.RESEARCHER

    async def run(self, request: ResearchRequest) -> AgentOutput[ResearchResult]:
        logger.debug("Researching: query=%r purpose=%r", request.query, request.purpose)
        messages = self._build_messages(
            output_model=ResearchResult,
            query=request.query,
            purpose=request.purpose,
            context=request.context,
        )
        result = await self._generate(messages=messages, output_model=ResearchResult)
        logger.info("Research completed: query=%r findings=%d", request.query, len(result.output.findings))
        return result
