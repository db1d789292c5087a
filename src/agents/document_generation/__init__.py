"""Multi-agent long-form document generation package."""

from src.agents.document_generation.errors import DocumentGenerationError, ProviderError, SchemaValidationError
from src.agents.document_generation.factory import build_pipeline
from src.agents.document_generation.models import (
    AgentRole,
    CostReport,
    DocumentRequest,
    DocumentResult,
    FinalReview,
    Outline,
    ProposedEdit,
    RevisionState,
    SectionContent,
    SectionOutcome,
    SectionPlan,
    TokenUsage,
    UsageRecord,
)
from src.agents.document_generation.orchestration.orchestrator import DocumentPipeline
from src.agents.document_generation.orchestration.usage_ledger import CostCalculator, UsageLedger

__all__ = [
    "build_pipeline",
    "DocumentPipeline",
    "CostCalculator",
    "UsageLedger",
    "DocumentGenerationError",
    "ProviderError",
    "SchemaValidationError",
    "AgentRole",
    "CostReport",
    "DocumentRequest",
    "DocumentResult",
    "FinalReview",
    "Outline",
    "ProposedEdit",
    "RevisionState",
    "SectionContent",
    "SectionOutcome",
    "SectionPlan",
    "TokenUsage",
    "UsageRecord",
]
