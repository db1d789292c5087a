"""Tests for usage recording and cost calculation."""

import itertools
import threading

import pytest

from src.agents.document_generation.models import AgentRole, TokenUsage, UsageRecord
from src.agents.document_generation.orchestration.usage_ledger import LEDGER_ROLES, CostCalculator, UsageLedger
from src.config import ModelPricing


def _record(prompt: int, completion: int, *research: tuple[int, int]) -> UsageRecord:
    return UsageRecord(
        agent_usage=TokenUsage(prompt_tokens=prompt, completion_tokens=completion),
        research_usages=[TokenUsage(prompt_tokens=p, completion_tokens=c) for p, c in research],
    )


def _build_calculator() -> CostCalculator:
    return CostCalculator(
        role_models={
            AgentRole.OUTLINER: "reasoning",
            AgentRole.CONTENT_STRATEGIST: "writing",
            AgentRole.WRITER: "writing",
            AgentRole.EDITOR: "writing",
            AgentRole.EDITOR_IN_CHIEF: "reasoning",
        },
        research_model="research",
        pricing={
            "reasoning": ModelPricing(input_per_million=15.0, output_per_million=60.0),
            "writing": ModelPricing(input_per_million=2.0, output_per_million=8.0),
            "research": ModelPricing(input_per_million=1.0, output_per_million=2.0),
        },
    )


class TestUsageLedger:
    """Tests for UsageLedger."""

    def test_new_ledger_has_every_role_empty(self) -> None:
        """All five orchestration roles start with no records."""
        ledger = UsageLedger()

        assert set(ledger.snapshot()) == set(LEDGER_ROLES)
        assert ledger.record_count() == 0
        assert ledger.self_usage(AgentRole.WRITER) == TokenUsage()

    def test_researcher_role_is_rejected(self) -> None:
        """Research usage belongs inside the calling agent's record."""
        ledger = UsageLedger()

        with pytest.raises(ValueError):
            ledger.append(AgentRole.RESEARCHER, _record(1, 1))

    def test_self_and_research_usage_are_separate(self) -> None:
        """Nested research tokens never leak into the role's own usage."""
        ledger = UsageLedger()
        ledger.append(AgentRole.WRITER, _record(100, 50, (10, 5), (20, 10)))
        ledger.append(AgentRole.WRITER, _record(200, 80))

        assert ledger.self_usage(AgentRole.WRITER) == TokenUsage(prompt_tokens=300, completion_tokens=130)
        assert ledger.research_usage(AgentRole.WRITER) == TokenUsage(prompt_tokens=30, completion_tokens=15)
        assert ledger.research_usage(AgentRole.EDITOR) == TokenUsage()

    def test_absorb_moves_every_record(self) -> None:
        """Absorbing a section ledger adds its records exactly once."""
        section = UsageLedger()
        section.append(AgentRole.WRITER, _record(10, 1))
        section.append(AgentRole.EDITOR, _record(20, 2))
        run = UsageLedger()
        run.append(AgentRole.OUTLINER, _record(5, 5))

        run.absorb(section)
        run.absorb(run)

        assert run.record_count() == 3
        assert run.records(AgentRole.EDITOR) == (_record(20, 2),)

    def test_merge_returns_new_ledger(self) -> None:
        """merge leaves both inputs untouched."""
        left = UsageLedger()
        left.append(AgentRole.WRITER, _record(1, 1))
        right = UsageLedger()
        right.append(AgentRole.EDITOR, _record(2, 2))

        merged = left.merge(right)

        assert merged.record_count() == 2
        assert left.record_count() == 1
        assert right.record_count() == 1

    def test_concurrent_appends_are_all_kept(self) -> None:
        """Appends from many threads are not lost."""
        ledger = UsageLedger()

        def append_many() -> None:
            for _ in range(200):
                ledger.append(AgentRole.WRITER, _record(1, 1))

        threads = [threading.Thread(target=append_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert ledger.self_usage(AgentRole.WRITER) == TokenUsage(prompt_tokens=1600, completion_tokens=1600)

    def test_to_dict_is_keyed_by_role_name(self) -> None:
        """The snapshot view is JSON-ready."""
        ledger = UsageLedger()
        ledger.append(AgentRole.EDITOR, _record(3, 4, (1, 1)))

        data = ledger.to_dict()

        assert data["EDITOR"] == [
            {
                "agent_usage": {"prompt_tokens": 3, "completion_tokens": 4},
                "research_usages": [{"prompt_tokens": 1, "completion_tokens": 1}],
            }
        ]
        assert data["WRITER"] == []


class TestCostCalculator:
    """Tests for CostCalculator."""

    def test_prices_self_and_research_separately(self) -> None:
        """Research is priced with the research model, own calls with the role's model."""
        ledger = UsageLedger()
        ledger.append(AgentRole.OUTLINER, _record(1_000_000, 1_000_000, (1_000_000, 1_000_000)))

        report = _build_calculator().calculate(ledger)

        assert report.roles[AgentRole.OUTLINER].self_cost == pytest.approx(75.0)
        assert report.roles[AgentRole.OUTLINER].research_cost == pytest.approx(3.0)
        assert report.agent_total == pytest.approx(75.0)
        assert report.research_total == pytest.approx(3.0)
        assert report.total == pytest.approx(78.0)

    def test_empty_ledger_costs_nothing(self) -> None:
        """A run with no usage costs zero for every role."""
        report = _build_calculator().calculate(UsageLedger())

        assert set(report.roles) == set(LEDGER_ROLES)
        assert report.total == 0.0

    def test_totals_do_not_depend_on_append_order(self) -> None:
        """Every permutation of the same appends yields identical figures."""
        entries = [
            (AgentRole.WRITER, _record(1200, 300, (50, 20))),
            (AgentRole.WRITER, _record(900, 250)),
            (AgentRole.EDITOR, _record(700, 90, (30, 30), (40, 10))),
            (AgentRole.EDITOR_IN_CHIEF, _record(4000, 800)),
        ]
        calculator = _build_calculator()
        reports = []
        for permutation in itertools.permutations(entries):
            ledger = UsageLedger()
            for role, record in permutation:
                ledger.append(role, record)
            reports.append(calculator.calculate(ledger))

        assert all(report == reports[0] for report in reports)

    def test_merged_ledgers_are_not_double_counted(self) -> None:
        """Merging section ledgers gives the same report as appending directly."""
        direct = UsageLedger()
        first = UsageLedger()
        second = UsageLedger()
        for ledger in (direct, first):
            ledger.append(AgentRole.WRITER, _record(100, 10, (5, 5)))
        for ledger in (direct, second):
            ledger.append(AgentRole.EDITOR, _record(200, 20))
        calculator = _build_calculator()

        assert calculator.calculate(first.merge(second)) == calculator.calculate(direct)

    def test_missing_price_is_rejected(self) -> None:
        """Construction fails when a model has no price."""
        with pytest.raises(ValueError, match="research"):
            CostCalculator(
                role_models={role: "writing" for role in LEDGER_ROLES},
                research_model="research",
                pricing={"writing": ModelPricing(input_per_million=1.0, output_per_million=1.0)},
            )

    def test_missing_role_model_is_rejected(self) -> None:
        """Every ledger role needs a model."""
        with pytest.raises(ValueError, match="No model configured"):
            CostCalculator(
                role_models={AgentRole.WRITER: "writing"},
                research_model="writing",
                pricing={"writing": ModelPricing(input_per_million=1.0, output_per_million=1.0)},
            )
