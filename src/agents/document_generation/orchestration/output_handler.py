"""Diagnostic snapshot writer for document-generation runs."""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from src.agents.document_generation.models import (
    CostReport,
    DocumentRequest,
    FinalReview,
    Outline,
    SectionContent,
    SectionPlan,
)
from src.agents.document_generation.orchestration.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """Writes per-run artifacts; a failed write is logged and never stops the run."""

    def __init__(self, *, snapshot_dir: Path, save_intermediate_results: bool) -> None:
        self._snapshot_dir = snapshot_dir
        self._save_intermediate_results = save_intermediate_results

    def initialize_run_dir(self, *, request: DocumentRequest) -> Path:
        """Create ``<snapshot_dir>/<timestamp>_<hash8>`` and return it."""
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        digest_source = request.subject + (request.custom_instructions or "")
        suffix = hashlib.sha256(digest_source.encode("utf-8")).hexdigest()[:8]
        run_dir = self._snapshot_dir / f"{timestamp}_{suffix}"
        try:
            run_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Could not create snapshot dir %s: %s", run_dir, exc)
        else:
            logger.info("Initialized snapshot dir: %s", run_dir)
        return run_dir

    def write_outline(self, *, run_dir: Path, outline: Outline) -> None:
        if self._save_intermediate_results:
            self._write_json(path=run_dir / "outline.json", payload=outline.model_dump())

    def write_content_strategy(self, *, run_dir: Path, plans: Sequence[SectionPlan]) -> None:
        if self._save_intermediate_results:
            self._write_json(path=run_dir / "content_strategy.json", payload=[plan.model_dump() for plan in plans])

    def write_section_contents(self, *, run_dir: Path, sections: Sequence[SectionContent]) -> None:
        if self._save_intermediate_results:
            self._write_json(path=run_dir / "section_contents.json", payload=[section.model_dump() for section in sections])

    def write_final_review(self, *, run_dir: Path, review: FinalReview) -> None:
        if self._save_intermediate_results:
            self._write_json(path=run_dir / "final_review.json", payload=review.model_dump())

    def write_document(self, *, run_dir: Path, markdown: str) -> None:
        if self._save_intermediate_results:
            self._write_text(path=run_dir / "document.md", text=markdown)

    def write_usage(self, *, run_dir: Path, ledger: UsageLedger, costs: CostReport) -> None:
        """Usage and cost are written even when intermediate results are off."""
        self._write_json(path=run_dir / "usages.json", payload=ledger.to_dict())
        self._write_json(path=run_dir / "costs.json", payload=self._cost_payload(costs))

    def write_run_data(
        self,
        *,
        run_dir: Path,
        request: DocumentRequest,
        outline: Outline,
        plans: Sequence[SectionPlan],
        sections: Sequence[SectionContent],
        review: FinalReview,
        markdown: str,
        ledger: UsageLedger,
        costs: CostReport,
        elapsed_minutes: float,
    ) -> None:
        """Single combined record of a successful run."""
        if not self._save_intermediate_results:
            return
        payload: dict[str, object] = {
            "input": request.model_dump(),
            "outline": outline.model_dump(),
            "content_strategy": [plan.model_dump() for plan in plans],
            "generated_sections": [section.model_dump() for section in sections],
            "final_review": review.model_dump(),
            "final_document": markdown,
            "usages": ledger.to_dict(),
            "costs": self._cost_payload(costs),
            "time_taken_min": round(elapsed_minutes, 2),
        }
        self._write_json(path=run_dir / "run_data.json", payload=payload)

    @staticmethod
    def _cost_payload(costs: CostReport) -> dict[str, object]:
        payload: dict[str, object] = {str(role): cost.model_dump() for role, cost in costs.roles.items()}
        payload["total"] = {"agent_costs": costs.agent_total, "research_costs": costs.research_total}
        return payload

    def _write_json(self, *, path: Path, payload: dict[str, object] | list[object]) -> None:
        """Write JSON payload with deterministic formatting."""
        try:
            with open(path, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
        except OSError as exc:
            logger.warning("Could not write snapshot %s: %s", path, exc)

    def _write_text(self, *, path: Path, text: str) -> None:
        try:
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(text)
        except OSError as exc:
            logger.warning("Could not write snapshot %s: %s", path, exc)
