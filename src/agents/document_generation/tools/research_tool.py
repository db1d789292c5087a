"""Tool that lets an agent delegate research to the researcher sub-agent."""

from __future__ import annotations

import logging
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from src.agents.document_generation.models import AgentOutput, ResearchRequest, ResearchResult, TokenUsage

logger = logging.getLogger(__name__)


class Researcher(Protocol):
    """Anything that can answer a research request."""

    async def run(self, request: ResearchRequest) -> AgentOutput[ResearchResult]:
        """Research and return sourced findings."""
        ...


class ResearchArguments(BaseModel):
    """Arguments a model may pass to ``researcher``."""

    subject: str = Field(
        ...,
        min_length=1,
        description="The specific topic, question, or concept to investigate (e.g., 'Benefits of renewable energy')",
    )
    purpose: str = Field(
        ...,
        description="The purpose of the research (e.g., fact verification, finding examples, validating points, finding trends)",
    )
    context: str = Field(
        ...,
        description="Background and constraints that guide the research scope: audience, depth, focus areas",
    )

    model_config = ConfigDict(frozen=True, extra="forbid")


class ResearchTool:
    """Runs the researcher and records its usage into the calling invocation's sink."""

    name = "researcher"
    description = (
        "Performs comprehensive research on a given subject and returns structured findings based on specified criteria"
    )
    arguments_model = ResearchArguments

    def __init__(self, *, researcher: Researcher, usage_sink: list[TokenUsage]) -> None:
        self._researcher = researcher
        self._usage_sink = usage_sink

    async def execute(self, arguments: BaseModel) -> str:
        if not isinstance(arguments, ResearchArguments):
            raise TypeError(f"{self.name} expects ResearchArguments, got {type(arguments).__name__}")
        logger.debug("Research query: subject=%r purpose=%r", arguments.subject, arguments.purpose)
        result = await self._researcher.run(
            ResearchRequest(query=arguments.subject, purpose=arguments.purpose, context=arguments.context)
        )
        # The researcher's own nested usage is flattened into the caller's record.
        self._usage_sink.append(result.usage.agent_usage)
        self._usage_sink.extend(result.usage.research_usages)
        logger.debug("Research completed: %d findings", len(result.output.findings))
        return result.output.model_dump_json()
