#!/usr/bin/env python3
"""Generate a long-form Markdown document on a subject."""

import argparse
import asyncio
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from src.agents.document_generation.factory import build_pipeline
from src.agents.document_generation.models import DocumentRequest, DocumentResult
from src.agents.document_generation.orchestration.orchestrator import DocumentPipeline
from src.config import Config

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a long-form document with a team of LLM agents.")
    parser.add_argument("subject", help="Subject of the document")
    instructions = parser.add_mutually_exclusive_group()
    instructions.add_argument("--instructions", help="Free-form instructions for all agents")
    instructions.add_argument("--instructions-file", type=Path, help="Read the instructions from a file")
    parser.add_argument("--config", type=Path, default=Path("config/config.yaml"), help="Path to config.yaml")
    parser.add_argument("--output", type=Path, help="Write the document here instead of the documents directory")
    parser.add_argument("--verbose", action="store_true", help="Log agent inputs and outputs at DEBUG level")
    return parser.parse_args(argv)


def _read_instructions(args: argparse.Namespace) -> str | None:
    if args.instructions_file is not None:
        with open(args.instructions_file, encoding="utf-8") as handle:
            return handle.read().strip() or None
    return args.instructions


def _write_document(*, result: DocumentResult, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as handle:
        handle.write(result.final_document)
    logger.info("Document written to %s", output_path)


async def run(*, pipeline: DocumentPipeline, request: DocumentRequest, verbose: bool) -> DocumentResult:
    return await pipeline.generate_document(request, verbose=verbose)


def main(argv: list[str] | None = None) -> int:
    """Run document generation."""
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        config = Config(args.config)
        doc_config = config.get_document_generation_config()
        request = DocumentRequest(subject=args.subject, custom_instructions=_read_instructions(args))
        pipeline = build_pipeline(config=config)
    except Exception as exc:
        logger.error("Failed to initialize: %s", exc)
        return 1

    try:
        result = asyncio.run(run(pipeline=pipeline, request=request, verbose=args.verbose))
    except Exception as exc:
        logger.exception("Document generation failed: %s", exc)
        return 1

    output_path = args.output
    if output_path is None:
        timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        output_path = config.getDataOutputDir() / doc_config.output.documents_dir / f"{timestamp}.md"
    _write_document(result=result, output_path=output_path)

    logger.info("Title: %s", result.title)
    logger.info(
        "Cost: total=$%.4f agents=$%.4f research=$%.4f",
        result.cost,
        result.cost_report.agent_total,
        result.cost_report.research_total,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
