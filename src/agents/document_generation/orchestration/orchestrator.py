"""Phase sequencer for multi-agent document generation."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from src.agents.document_generation.models import (
    AgentOutput,
    AgentRole,
    DocumentRequest,
    DocumentResult,
    FinalReview,
    Outline,
    OutlineSection,
    RevisionState,
    SectionContent,
    SectionPlan,
)
from src.agents.document_generation.orchestration.edit_applier import DocumentRenderer
from src.agents.document_generation.orchestration.output_handler import SnapshotWriter
from src.agents.document_generation.orchestration.section_processor import SectionProcessor
from src.agents.document_generation.orchestration.usage_ledger import CostCalculator, UsageLedger

logger = logging.getLogger(__name__)

PACKAGE_LOGGER_NAME = "src.agents.document_generation"


class OutlineStage(Protocol):
    async def run(self, request: DocumentRequest) -> AgentOutput[Outline]: ...


class StrategyStage(Protocol):
    async def run(
        self,
        *,
        outline: Outline,
        section: OutlineSection,
        custom_instructions: str | None,
        previous_plans: Sequence[SectionPlan],
    ) -> AgentOutput[SectionPlan]: ...


class FinalReviewStage(Protocol):
    async def run(
        self,
        *,
        request: DocumentRequest,
        outline: Outline,
        plans: Sequence[SectionPlan],
        sections: Sequence[SectionContent],
    ) -> AgentOutput[FinalReview]: ...


async def fold_content_strategy(
    *,
    strategist: StrategyStage,
    outline: Outline,
    custom_instructions: str | None,
    ledger: UsageLedger,
) -> tuple[SectionPlan, ...]:
    """Plan the outline's sections one at a time, left to right.

    Step ``i`` sees the plans of sections ``0..i-1`` and nothing after them.
    """
    plans: tuple[SectionPlan, ...] = ()
    for section in outline.sections:
        logger.info("Planning strategy for section: %r", section.heading)
        result = await strategist.run(
            outline=outline,
            section=section,
            custom_instructions=custom_instructions,
            previous_plans=plans,
        )
        ledger.append(AgentRole.CONTENT_STRATEGIST, result.usage)
        plans = (*plans, result.output)
    return plans


@contextmanager
def _verbose_logging(verbose: bool) -> Iterator[None]:
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    previous_level = package_logger.level
    if verbose:
        package_logger.setLevel(logging.DEBUG)
    try:
        yield
    finally:
        package_logger.setLevel(previous_level)


class DocumentPipeline:
    """Runs outline, strategy, draft/review, final review and rendering strictly in that order.

    Any stage error aborts the run and propagates unchanged; no partial
    document is returned. The usage recorded up to that point stays readable
    through :attr:`last_usage_ledger`.
    """

    def __init__(
        self,
        *,
        outliner: OutlineStage,
        strategist: StrategyStage,
        section_processor: SectionProcessor,
        editor_in_chief: FinalReviewStage,
        cost_calculator: CostCalculator,
        renderer: DocumentRenderer | None = None,
        snapshot_writer: SnapshotWriter | None = None,
    ) -> None:
        self._outliner = outliner
        self._strategist = strategist
        self._section_processor = section_processor
        self._editor_in_chief = editor_in_chief
        self._cost_calculator = cost_calculator
        self._renderer = renderer or DocumentRenderer()
        self._snapshot_writer = snapshot_writer
        self._last_usage_ledger: UsageLedger | None = None

    @property
    def last_usage_ledger(self) -> UsageLedger | None:
        """Ledger of the most recent run, complete or failed."""
        return self._last_usage_ledger

    async def generate_document(self, request: DocumentRequest, *, verbose: bool = False) -> DocumentResult:
        """Generate the finished document for ``request``."""
        ledger = UsageLedger()
        self._last_usage_ledger = ledger
        run_label = request.subject if len(request.subject) <= 60 else request.subject[:57] + "..."

        with _verbose_logging(verbose):
            run_dir = self._snapshot_writer.initialize_run_dir(request=request) if self._snapshot_writer else None
            started_at = time.perf_counter()
            try:
                result = await self._run_phases(request=request, ledger=ledger, run_label=run_label, run_dir=run_dir)
            except Exception as exc:
                self._progress(run_label=run_label, message=f"Failed with exception: {type(exc).__name__}: {exc}")
                if self._snapshot_writer is not None and run_dir is not None:
                    self._snapshot_writer.write_usage(
                        run_dir=run_dir,
                        ledger=ledger,
                        costs=self._cost_calculator.calculate(ledger),
                    )
                raise

            elapsed_minutes = (time.perf_counter() - started_at) / 60
            self._progress(run_label=run_label, message="Document generation complete")
            self._progress(run_label=run_label, message=f"Generated {len(result.sections)} sections")
            self._progress(run_label=run_label, message=f"Time taken: {elapsed_minutes:.2f}min")
            self._progress(run_label=run_label, message=f"Total cost: ${result.cost:.4f}")
            return result

    async def _run_phases(
        self,
        *,
        request: DocumentRequest,
        ledger: UsageLedger,
        run_label: str,
        run_dir: Path | None,
    ) -> DocumentResult:
        started_at = time.perf_counter()
        writer = self._snapshot_writer

        self._progress(run_label=run_label, message="Phase 1: Creating outline")
        outline_result = await self._outliner.run(request)
        ledger.append(AgentRole.OUTLINER, outline_result.usage)
        outline = outline_result.output
        if writer is not None and run_dir is not None:
            writer.write_outline(run_dir=run_dir, outline=outline)

        self._progress(run_label=run_label, message=f"Phase 2: Developing content strategy for {len(outline.sections)} sections")
        plans = await fold_content_strategy(
            strategist=self._strategist,
            outline=outline,
            custom_instructions=request.custom_instructions,
            ledger=ledger,
        )
        if writer is not None and run_dir is not None:
            writer.write_content_strategy(run_dir=run_dir, plans=plans)

        self._progress(run_label=run_label, message="Phase 3: Writing and editing content")
        outcomes = await self._section_processor.process(
            plans,
            custom_instructions=request.custom_instructions,
            ledger=ledger,
        )
        sections = [outcome.content for outcome in outcomes]
        exhausted = [outcome.content.heading for outcome in outcomes if outcome.state == RevisionState.EXHAUSTED]
        if exhausted:
            self._progress(run_label=run_label, message=f"Sections used without approval: {', '.join(exhausted)}")
        if writer is not None and run_dir is not None:
            writer.write_section_contents(run_dir=run_dir, sections=sections)

        self._progress(run_label=run_label, message="Phase 4: Final review")
        review_result = await self._editor_in_chief.run(
            request=request,
            outline=outline,
            plans=plans,
            sections=sections,
        )
        ledger.append(AgentRole.EDITOR_IN_CHIEF, review_result.usage)
        review = review_result.output
        if writer is not None and run_dir is not None:
            writer.write_final_review(run_dir=run_dir, review=review)

        self._progress(run_label=run_label, message="Phase 5: Generating final document")
        rendered = self._renderer.render(
            title=review.final_article_title,
            sections=sections,
            proposed_edits=review.proposed_edits,
            global_feedback=review.global_feedback,
        )
        self._progress(
            run_label=run_label,
            message=f"Applied {rendered.applied_edits} of {len(review.proposed_edits)} editorial edits",
        )

        costs = self._cost_calculator.calculate(ledger)
        if writer is not None and run_dir is not None:
            writer.write_document(run_dir=run_dir, markdown=rendered.markdown)
            writer.write_usage(run_dir=run_dir, ledger=ledger, costs=costs)
            writer.write_run_data(
                run_dir=run_dir,
                request=request,
                outline=outline,
                plans=plans,
                sections=sections,
                review=review,
                markdown=rendered.markdown,
                ledger=ledger,
                costs=costs,
                elapsed_minutes=(time.perf_counter() - started_at) / 60,
            )

        return DocumentResult(
            final_document=rendered.markdown,
            cost=costs.total,
            title=review.final_article_title,
            sections=outcomes,
            cost_report=costs,
        )

    def _progress(self, *, run_label: str, message: str) -> None:
        """Emit orchestration progress updates."""
        logger.info("[%s] %s", run_label, message)
