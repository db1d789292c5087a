"""Tests for the document generation phase sequencer."""

import json
import logging
from collections.abc import Sequence
from pathlib import Path

import pytest

from src.agents.document_generation.errors import ProviderError
from src.agents.document_generation.models import (
    AgentOutput,
    AgentRole,
    DocumentRequest,
    FinalReview,
    Outline,
    OutlineSection,
    ProposedEdit,
    RevisionContext,
    RevisionState,
    SectionContent,
    SectionFeedback,
    SectionPlan,
    TokenUsage,
    UsageRecord,
    WriterOutput,
)
from src.agents.document_generation.orchestration.orchestrator import (
    PACKAGE_LOGGER_NAME,
    DocumentPipeline,
    fold_content_strategy,
)
from src.agents.document_generation.orchestration.output_handler import SnapshotWriter
from src.agents.document_generation.orchestration.section_processor import SectionProcessor
from src.agents.document_generation.orchestration.usage_ledger import LEDGER_ROLES, CostCalculator, UsageLedger
from src.config import ModelPricing


def _usage(tokens: int = 100, research: int = 0) -> UsageRecord:
    return UsageRecord(
        agent_usage=TokenUsage(prompt_tokens=tokens, completion_tokens=tokens),
        research_usages=[TokenUsage(prompt_tokens=research, completion_tokens=research)] if research else [],
    )


class StubOutliner:
    def __init__(self, headings: Sequence[str]) -> None:
        self._headings = headings
        self.calls = 0

    async def run(self, request: DocumentRequest) -> AgentOutput[Outline]:
        self.calls += 1
        outline = Outline(
            title=f"Draft title: {request.subject}",
            sections=[OutlineSection(heading=heading, level=2) for heading in self._headings],
        )
        return AgentOutput[Outline](output=outline, usage=_usage(research=20))


class StubStrategist:
    def __init__(self, *, fail_at: int | None = None) -> None:
        self._fail_at = fail_at
        self.seen_previous: list[list[str]] = []

    async def run(
        self,
        *,
        outline: Outline,
        section: OutlineSection,
        custom_instructions: str | None,
        previous_plans: Sequence[SectionPlan],
    ) -> AgentOutput[SectionPlan]:
        self.seen_previous.append([plan.heading for plan in previous_plans])
        if self._fail_at is not None and len(self.seen_previous) == self._fail_at:
            raise ProviderError(provider="strategist-model", detail="503 Service Unavailable")
        plan = SectionPlan(heading=section.heading, key_points=[f"cover {section.heading}"])
        return AgentOutput[SectionPlan](output=plan, usage=_usage())


class StubWriter:
    def __init__(self) -> None:
        self.calls: list[tuple[str, RevisionContext | None]] = []

    async def run(
        self,
        *,
        plan: SectionPlan,
        custom_instructions: str | None,
        revision: RevisionContext | None = None,
    ) -> AgentOutput[WriterOutput]:
        self.calls.append((plan.heading, revision))
        round_number = sum(1 for heading, _ in self.calls if heading == plan.heading)
        content = SectionContent(heading=plan.heading, content=f"{plan.heading} text v{round_number}")
        return AgentOutput[WriterOutput](output=WriterOutput(content=content), usage=_usage())


class StubEditor:
    """Approves a heading on the round given in ``approve_on`` (default: first round)."""

    def __init__(self, approve_on: dict[str, int]) -> None:
        self._approve_on = approve_on
        self.calls: list[str] = []

    async def run(
        self,
        *,
        content: SectionContent,
        custom_instructions: str | None,
        revision: RevisionContext | None = None,
    ) -> AgentOutput[SectionFeedback]:
        self.calls.append(content.heading)
        round_number = self.calls.count(content.heading)
        approved = round_number >= self._approve_on.get(content.heading, 1)
        feedback = SectionFeedback(approved=approved, feedback=[] if approved else ["needs detail"])
        return AgentOutput[SectionFeedback](output=feedback, usage=_usage())


class StubEditorInChief:
    def __init__(self, edits: list[ProposedEdit] | None = None) -> None:
        self._edits = edits or []
        self.received_sections: list[str] = []

    async def run(
        self,
        *,
        request: DocumentRequest,
        outline: Outline,
        plans: Sequence[SectionPlan],
        sections: Sequence[SectionContent],
    ) -> AgentOutput[FinalReview]:
        self.received_sections = [section.heading for section in sections]
        review = FinalReview(
            final_article_title="Final Title",
            global_feedback=["Consider a glossary."],
            proposed_edits=self._edits,
        )
        return AgentOutput[FinalReview](output=review, usage=_usage())


def _build_calculator() -> CostCalculator:
    return CostCalculator(
        role_models={role: "model" for role in LEDGER_ROLES},
        research_model="research",
        pricing={
            "model": ModelPricing(input_per_million=1.0, output_per_million=2.0),
            "research": ModelPricing(input_per_million=0.5, output_per_million=0.5),
        },
    )


def _build_pipeline(
    *,
    outliner: StubOutliner,
    strategist: StubStrategist,
    writer: StubWriter,
    editor: StubEditor,
    editor_in_chief: StubEditorInChief,
    snapshot_dir: Path | None = None,
) -> DocumentPipeline:
    return DocumentPipeline(
        outliner=outliner,
        strategist=strategist,
        section_processor=SectionProcessor(writer=writer, reviewer=editor),
        editor_in_chief=editor_in_chief,
        cost_calculator=_build_calculator(),
        snapshot_writer=(
            SnapshotWriter(snapshot_dir=snapshot_dir, save_intermediate_results=True) if snapshot_dir is not None else None
        ),
    )


class TestFoldContentStrategy:
    """Tests for the sequential strategy fold."""

    @pytest.mark.asyncio
    async def test_each_step_sees_only_earlier_plans(self) -> None:
        strategist = StubStrategist()
        ledger = UsageLedger()
        outline = Outline(title="T", sections=[OutlineSection(heading=h, level=2) for h in ("A", "B", "C")])

        plans = await fold_content_strategy(strategist=strategist, outline=outline, custom_instructions=None, ledger=ledger)

        assert [plan.heading for plan in plans] == ["A", "B", "C"]
        assert strategist.seen_previous == [[], ["A"], ["A", "B"]]
        assert len(ledger.records(AgentRole.CONTENT_STRATEGIST)) == 3


class TestDocumentPipeline:
    """Tests for DocumentPipeline."""

    @pytest.mark.asyncio
    async def test_two_sections_with_late_approval(self) -> None:
        """Section 1 approved at once, section 2 on its third round."""
        writer = StubWriter()
        editor = StubEditor({"Basics": 1, "Advanced": 3})
        editor_in_chief = StubEditorInChief()
        pipeline = _build_pipeline(
            outliner=StubOutliner(["Basics", "Advanced"]),
            strategist=StubStrategist(),
            writer=writer,
            editor=editor,
            editor_in_chief=editor_in_chief,
        )

        result = await pipeline.generate_document(DocumentRequest(subject="Heat pumps"))

        assert len(writer.calls) == 4
        assert len(editor.calls) == 4
        assert [outcome.iterations for outcome in result.sections] == [1, 3]
        assert all(outcome.state == RevisionState.APPROVED for outcome in result.sections)
        assert editor_in_chief.received_sections == ["Basics", "Advanced"]
        assert result.final_document.startswith("# Final Title\n\n## Basics\n\nBasics text v1\n\n")
        assert "## Advanced\n\nAdvanced text v3\n\n" in result.final_document
        assert result.final_document.index("## Basics") < result.final_document.index("## Advanced")
        assert result.title == "Final Title"

        ledger = pipeline.last_usage_ledger
        assert ledger is not None
        assert len(ledger.records(AgentRole.OUTLINER)) == 1
        assert len(ledger.records(AgentRole.CONTENT_STRATEGIST)) == 2
        assert len(ledger.records(AgentRole.WRITER)) == 4
        assert len(ledger.records(AgentRole.EDITOR)) == 4
        assert len(ledger.records(AgentRole.EDITOR_IN_CHIEF)) == 1

    @pytest.mark.asyncio
    async def test_cost_covers_agent_and_research_usage(self) -> None:
        """The reported cost is agent total plus research total."""
        pipeline = _build_pipeline(
            outliner=StubOutliner(["Only"]),
            strategist=StubStrategist(),
            writer=StubWriter(),
            editor=StubEditor({}),
            editor_in_chief=StubEditorInChief(),
        )

        result = await pipeline.generate_document(DocumentRequest(subject="Heat pumps"))

        # 5 agent calls of 100/100 tokens at 1.0/2.0 per million, one research call of 20/20 at 0.5/0.5.
        assert result.cost_report.agent_total == pytest.approx(5 * 300 / 1_000_000)
        assert result.cost_report.research_total == pytest.approx(20 / 1_000_000)
        assert result.cost == pytest.approx(result.cost_report.agent_total + result.cost_report.research_total)

    @pytest.mark.asyncio
    async def test_strategy_failure_aborts_without_document(self, tmp_path: Path) -> None:
        """A provider error on the second strategy step propagates unchanged."""
        writer = StubWriter()
        editor_in_chief = StubEditorInChief()
        pipeline = _build_pipeline(
            outliner=StubOutliner(["One", "Two", "Three"]),
            strategist=StubStrategist(fail_at=2),
            writer=writer,
            editor=StubEditor({}),
            editor_in_chief=editor_in_chief,
            snapshot_dir=tmp_path,
        )

        with pytest.raises(ProviderError, match="503"):
            await pipeline.generate_document(DocumentRequest(subject="Heat pumps"))

        assert writer.calls == []
        assert editor_in_chief.received_sections == []
        ledger = pipeline.last_usage_ledger
        assert ledger is not None
        assert len(ledger.records(AgentRole.OUTLINER)) == 1
        assert len(ledger.records(AgentRole.CONTENT_STRATEGIST)) == 1

        run_dirs = list(tmp_path.iterdir())
        assert len(run_dirs) == 1
        assert (run_dirs[0] / "usages.json").exists()
        assert (run_dirs[0] / "costs.json").exists()
        assert not (run_dirs[0] / "document.md").exists()
        assert not (run_dirs[0] / "content_strategy.json").exists()

    @pytest.mark.asyncio
    async def test_edit_miss_leaves_section_unchanged(self) -> None:
        """A final-review edit that matches nothing is skipped silently."""
        edit = ProposedEdit(
            section_heading="Intro",
            original_text="foo",
            feedback="rephrase",
            new_text="bar",
            priority="LOW",
        )
        pipeline = _build_pipeline(
            outliner=StubOutliner(["Intro"]),
            strategist=StubStrategist(),
            writer=StubWriter(),
            editor=StubEditor({}),
            editor_in_chief=StubEditorInChief([edit]),
        )

        result = await pipeline.generate_document(DocumentRequest(subject="Heat pumps"))

        assert "## Intro\n\nIntro text v1\n\n" in result.final_document
        assert "bar" not in result.final_document

    @pytest.mark.asyncio
    async def test_snapshots_written_for_each_phase(self, tmp_path: Path) -> None:
        pipeline = _build_pipeline(
            outliner=StubOutliner(["A", "B"]),
            strategist=StubStrategist(),
            writer=StubWriter(),
            editor=StubEditor({}),
            editor_in_chief=StubEditorInChief(),
            snapshot_dir=tmp_path,
        )

        result = await pipeline.generate_document(DocumentRequest(subject="Heat pumps", custom_instructions="brief"))

        run_dir = next(tmp_path.iterdir())
        for name in (
            "outline.json",
            "content_strategy.json",
            "section_contents.json",
            "final_review.json",
            "document.md",
            "usages.json",
            "costs.json",
            "run_data.json",
        ):
            assert (run_dir / name).exists(), name
        assert (run_dir / "document.md").read_text(encoding="utf-8") == result.final_document
        run_data = json.loads((run_dir / "run_data.json").read_text(encoding="utf-8"))
        assert run_data["input"] == {"subject": "Heat pumps", "custom_instructions": "brief"}
        assert [plan["heading"] for plan in run_data["content_strategy"]] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_each_run_gets_a_fresh_ledger(self) -> None:
        pipeline = _build_pipeline(
            outliner=StubOutliner(["A"]),
            strategist=StubStrategist(),
            writer=StubWriter(),
            editor=StubEditor({}),
            editor_in_chief=StubEditorInChief(),
        )

        await pipeline.generate_document(DocumentRequest(subject="first"))
        first = pipeline.last_usage_ledger
        await pipeline.generate_document(DocumentRequest(subject="second"))

        assert pipeline.last_usage_ledger is not first
        assert pipeline.last_usage_ledger is not None
        assert pipeline.last_usage_ledger.record_count() == 5

    @pytest.mark.asyncio
    async def test_verbose_lowers_package_log_level_for_the_run(self) -> None:
        package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
        package_logger.setLevel(logging.WARNING)
        levels: list[int] = []

        class RecordingOutliner(StubOutliner):
            async def run(self, request: DocumentRequest) -> AgentOutput[Outline]:
                levels.append(package_logger.level)
                return await super().run(request)

        pipeline = _build_pipeline(
            outliner=RecordingOutliner(["A"]),
            strategist=StubStrategist(),
            writer=StubWriter(),
            editor=StubEditor({}),
            editor_in_chief=StubEditorInChief(),
        )

        try:
            await pipeline.generate_document(DocumentRequest(subject="Heat pumps"), verbose=True)
            assert levels == [logging.DEBUG]
            assert package_logger.level == logging.WARNING
        finally:
            package_logger.setLevel(logging.NOTSET)
