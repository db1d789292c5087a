"""Orchestration of the document-generation phases."""

from src.agents.document_generation.orchestration.edit_applier import DocumentRenderer, apply_section_edits
from src.agents.document_generation.orchestration.orchestrator import DocumentPipeline, fold_content_strategy
from src.agents.document_generation.orchestration.output_handler import SnapshotWriter
from src.agents.document_generation.orchestration.revision import MAX_ITERATIONS, RevisionStateMachine
from src.agents.document_generation.orchestration.section_processor import SectionProcessor
from src.agents.document_generation.orchestration.usage_ledger import CostCalculator, UsageLedger

__all__ = [
    "MAX_ITERATIONS",
    "CostCalculator",
    "DocumentPipeline",
    "DocumentRenderer",
    "RevisionStateMachine",
    "SectionProcessor",
    "SnapshotWriter",
    "UsageLedger",
    "apply_section_edits",
    "fold_content_strategy",
]
