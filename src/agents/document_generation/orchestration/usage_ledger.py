"""Usage ledger and cost calculation for a document generation run."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping

from src.agents.document_generation.models import AgentRole, CostReport, RoleCost, TokenUsage, UsageRecord
from src.config import DocumentGenerationConfig, ModelPricing

logger = logging.getLogger(__name__)

# Research is recorded inside the record of the agent call that triggered it.
LEDGER_ROLES: tuple[AgentRole, ...] = (
    AgentRole.OUTLINER,
    AgentRole.CONTENT_STRATEGIST,
    AgentRole.WRITER,
    AgentRole.EDITOR,
    AgentRole.EDITOR_IN_CHIEF,
)


class UsageLedger:
    """Append-only mapping from role to the usage records of its invocations.

    Appends are lock-protected, and every aggregate is a sum, so neither the
    order of appends nor the order of merges changes any total.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[AgentRole, list[UsageRecord]] = {role: [] for role in LEDGER_ROLES}

    def append(self, role: AgentRole, record: UsageRecord) -> None:
        """Record one invocation of ``role``."""
        if role not in self._records:
            raise ValueError(f"{role} usage is recorded inside the calling agent's record")
        with self._lock:
            self._records[role].append(record)

    def absorb(self, other: UsageLedger) -> None:
        """Move every record of ``other`` into this ledger."""
        if other is self:
            return
        for role, records in other.snapshot().items():
            with self._lock:
                self._records[role].extend(records)

    def merge(self, other: UsageLedger) -> UsageLedger:
        """Return a new ledger holding the records of both ledgers."""
        merged = UsageLedger()
        merged.absorb(self)
        merged.absorb(other)
        return merged

    def records(self, role: AgentRole) -> tuple[UsageRecord, ...]:
        with self._lock:
            return tuple(self._records[role])

    def snapshot(self) -> dict[AgentRole, list[UsageRecord]]:
        """Copy of all records, keyed by role."""
        with self._lock:
            return {role: list(records) for role, records in self._records.items()}

    def record_count(self) -> int:
        with self._lock:
            return sum(len(records) for records in self._records.values())

    def self_usage(self, role: AgentRole) -> TokenUsage:
        """Tokens spent by ``role``'s own calls."""
        return _sum_usages(record.agent_usage for record in self.records(role))

    def research_usage(self, role: AgentRole) -> TokenUsage:
        """Tokens spent by research nested in ``role``'s calls."""
        return _sum_usages(usage for record in self.records(role) for usage in record.research_usages)

    def to_dict(self) -> dict[str, list[dict[str, object]]]:
        """JSON-ready view for snapshots."""
        return {str(role): [record.model_dump() for record in records] for role, records in self.snapshot().items()}


def _sum_usages(usages: Iterable[TokenUsage]) -> TokenUsage:
    total = TokenUsage()
    for usage in usages:
        total += usage
    return total


def _price(usage: TokenUsage, pricing: ModelPricing) -> float:
    input_cost = (usage.prompt_tokens / 1_000_000) * pricing.input_per_million
    output_cost = (usage.completion_tokens / 1_000_000) * pricing.output_per_million
    return input_cost + output_cost


class CostCalculator:
    """Prices a :class:`UsageLedger` with a static per-model price table."""

    def __init__(
        self,
        *,
        role_models: Mapping[AgentRole, str],
        research_model: str,
        pricing: Mapping[str, ModelPricing],
    ) -> None:
        missing = [role for role in LEDGER_ROLES if role not in role_models]
        if missing:
            raise ValueError(f"No model configured for role(s): {', '.join(missing)}")
        for model in [*role_models.values(), research_model]:
            if model not in pricing:
                raise ValueError(f"No pricing entry for model: {model}")
        self._role_models = dict(role_models)
        self._research_model = research_model
        self._pricing = dict(pricing)

    @classmethod
    def from_config(cls, config: DocumentGenerationConfig) -> CostCalculator:
        agents = config.agents
        return cls(
            role_models={
                AgentRole.OUTLINER: agents.outliner_llm.model,
                AgentRole.CONTENT_STRATEGIST: agents.content_strategist_llm.model,
                AgentRole.WRITER: agents.writer_llm.model,
                AgentRole.EDITOR: agents.editor_llm.model,
                AgentRole.EDITOR_IN_CHIEF: agents.editor_in_chief_llm.model,
            },
            research_model=agents.researcher_llm.model,
            pricing=config.pricing,
        )

    def calculate(self, ledger: UsageLedger) -> CostReport:
        """Self cost and research cost per role, plus the two process-wide totals.

        Tokens are summed before pricing, which keeps every figure independent
        of the order in which records were appended.
        """
        research_pricing = self._pricing[self._research_model]
        roles: dict[AgentRole, RoleCost] = {}
        for role in LEDGER_ROLES:
            roles[role] = RoleCost(
                self_cost=_price(ledger.self_usage(role), self._pricing[self._role_models[role]]),
                research_cost=_price(ledger.research_usage(role), research_pricing),
            )
        report = CostReport(
            roles=roles,
            agent_total=sum(cost.self_cost for cost in roles.values()),
            research_total=sum(cost.research_cost for cost in roles.values()),
        )
        logger.debug("Costs: agent_total=%.6f research_total=%.6f", report.agent_total, report.research_total)
        return report
