"""Bounded draft/review state machine for a single section."""

from __future__ import annotations

import logging
from typing import Protocol

from src.agents.document_generation.models import (
    AgentOutput,
    AgentRole,
    RevisionContext,
    RevisionState,
    SectionContent,
    SectionFeedback,
    SectionOutcome,
    SectionPlan,
    WriterOutput,
)
from src.agents.document_generation.orchestration.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 3

TERMINAL_STATES = frozenset({RevisionState.APPROVED, RevisionState.EXHAUSTED})


class SectionWriter(Protocol):
    """Drafting stage."""

    async def run(
        self,
        *,
        plan: SectionPlan,
        custom_instructions: str | None,
        revision: RevisionContext | None = None,
    ) -> AgentOutput[WriterOutput]: ...


class SectionReviewer(Protocol):
    """Reviewing stage."""

    async def run(
        self,
        *,
        content: SectionContent,
        custom_instructions: str | None,
        revision: RevisionContext | None = None,
    ) -> AgentOutput[SectionFeedback]: ...


def next_state_after_review(*, approved: bool, iteration: int, max_iterations: int) -> RevisionState:
    """Transition out of REVIEWING."""
    if approved:
        return RevisionState.APPROVED
    if iteration < max_iterations:
        return RevisionState.DRAFTING
    return RevisionState.EXHAUSTED


class RevisionStateMachine:
    """Drives one section through DRAFTING -> REVIEWING until APPROVED or EXHAUSTED.

    The iteration counter increases by one on every entry into DRAFTING and
    never exceeds ``max_iterations``. A rejected draft on the last iteration
    ends in EXHAUSTED and is returned as the section's content; only errors
    raised by the stages themselves abort the machine.
    """

    def __init__(
        self,
        *,
        plan: SectionPlan,
        custom_instructions: str | None,
        writer: SectionWriter,
        reviewer: SectionReviewer,
        ledger: UsageLedger,
        max_iterations: int = MAX_ITERATIONS,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._plan = plan
        self._custom_instructions = custom_instructions
        self._writer = writer
        self._reviewer = reviewer
        self._ledger = ledger
        self._max_iterations = max_iterations

        self._state = RevisionState.DRAFTING
        self._iteration = 0
        self._content: SectionContent | None = None
        self._writer_response: str | None = None
        self._context: RevisionContext | None = None

    @property
    def state(self) -> RevisionState:
        return self._state

    @property
    def iteration(self) -> int:
        return self._iteration

    async def run(self) -> SectionOutcome:
        """Step until a terminal state and return the final content."""
        while self._state not in TERMINAL_STATES:
            await self.step()
        return SectionOutcome(content=self._current_content(), state=self._state, iterations=self._iteration)

    async def step(self) -> RevisionState:
        """Perform the action of the current state and move to the next one."""
        if self._state is RevisionState.DRAFTING:
            await self._draft()
        elif self._state is RevisionState.REVIEWING:
            await self._review()
        else:
            raise RuntimeError(f"Section {self._plan.heading!r} is already {self._state}")
        return self._state

    def _current_content(self) -> SectionContent:
        if self._content is None:
            raise RuntimeError(f"Section {self._plan.heading!r} has no draft yet")
        return self._content

    async def _draft(self) -> None:
        self._iteration += 1
        logger.info("[%s] Iteration %d/%d: writer drafting", self._plan.heading, self._iteration, self._max_iterations)
        result = await self._writer.run(
            plan=self._plan,
            custom_instructions=self._custom_instructions,
            revision=self._context,
        )
        self._ledger.append(AgentRole.WRITER, result.usage)
        self._content = result.output.content
        self._writer_response = result.output.response_to_editor_feedback
        self._state = RevisionState.REVIEWING

    async def _review(self) -> None:
        content = self._current_content()
        logger.info("[%s] Iteration %d/%d: editor reviewing", self._plan.heading, self._iteration, self._max_iterations)
        review_context = None
        if self._context is not None:
            review_context = self._context.model_copy(update={"writer_response": self._writer_response})
        result = await self._reviewer.run(
            content=content,
            custom_instructions=self._custom_instructions,
            revision=review_context,
        )
        self._ledger.append(AgentRole.EDITOR, result.usage)
        feedback = result.output

        self._state = next_state_after_review(
            approved=feedback.approved,
            iteration=self._iteration,
            max_iterations=self._max_iterations,
        )
        if self._state is RevisionState.APPROVED:
            logger.info("[%s] Approved by editor", self._plan.heading)
        elif self._state is RevisionState.DRAFTING:
            logger.info("[%s] Revision requested by editor (%d point(s))", self._plan.heading, len(feedback.feedback))
            self._context = RevisionContext(previous_content=content, previous_feedback=feedback)
        else:
            logger.warning("[%s] Max iterations reached - using last version", self._plan.heading)
            self._context = None
