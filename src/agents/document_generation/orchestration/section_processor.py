"""Concurrent fan-out/fan-in of section revision loops."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from src.agents.document_generation.models import SectionOutcome, SectionPlan
from src.agents.document_generation.orchestration.revision import (
    MAX_ITERATIONS,
    RevisionStateMachine,
    SectionReviewer,
    SectionWriter,
)
from src.agents.document_generation.orchestration.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


class SectionProcessor:
    """Runs one :class:`RevisionStateMachine` per plan and joins them all-or-nothing."""

    def __init__(
        self,
        *,
        writer: SectionWriter,
        reviewer: SectionReviewer,
        max_iterations: int = MAX_ITERATIONS,
        max_concurrency: int = 0,
    ) -> None:
        self._writer = writer
        self._reviewer = reviewer
        self._max_iterations = max_iterations
        self._max_concurrency = max_concurrency

    async def process(
        self,
        plans: Sequence[SectionPlan],
        *,
        custom_instructions: str | None,
        ledger: UsageLedger,
    ) -> list[SectionOutcome]:
        """Revise every section concurrently; results follow the order of ``plans``.

        Each section writes to a ledger of its own; those are folded into
        ``ledger`` once the group has finished, including when it failed. The
        first stage error cancels the remaining sections and is re-raised.
        """
        outcomes: list[SectionOutcome | None] = [None] * len(plans)
        section_ledgers = [UsageLedger() for _ in plans]
        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency > 0 else None

        async def revise(index: int, plan: SectionPlan) -> None:
            machine = RevisionStateMachine(
                plan=plan,
                custom_instructions=custom_instructions,
                writer=self._writer,
                reviewer=self._reviewer,
                ledger=section_ledgers[index],
                max_iterations=self._max_iterations,
            )
            if semaphore is None:
                outcomes[index] = await machine.run()
            else:
                async with semaphore:
                    outcomes[index] = await machine.run()

        logger.info("Processing %d sections concurrently", len(plans))
        try:
            async with asyncio.TaskGroup() as group:
                for index, plan in enumerate(plans):
                    group.create_task(revise(index, plan), name=f"section-{index}")
        except ExceptionGroup as failure:
            first = failure.exceptions[0]
            logger.error(
                "Section processing failed (%d failing section(s)): %s: %s",
                len(failure.exceptions),
                type(first).__name__,
                first,
            )
            raise first from None
        finally:
            for section_ledger in section_ledgers:
                ledger.absorb(section_ledger)

        completed = [outcome for outcome in outcomes if outcome is not None]
        if len(completed) != len(plans):
            raise RuntimeError("Section processing finished without an outcome for every section")
        return completed
