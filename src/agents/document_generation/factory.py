"""Wiring of the document-generation pipeline from configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from src.agents.document_generation.base import LLMClient
from src.agents.document_generation.content_strategist.agent import ContentStrategistAgent
from src.agents.document_generation.editor.agent import EditorAgent
from src.agents.document_generation.editor_in_chief.agent import EditorInChiefAgent
from src.agents.document_generation.llm_client import LiteLLMClient
from src.agents.document_generation.orchestration.edit_applier import DocumentRenderer
from src.agents.document_generation.orchestration.orchestrator import DocumentPipeline
from src.agents.document_generation.orchestration.output_handler import SnapshotWriter
from src.agents.document_generation.orchestration.section_processor import SectionProcessor
from src.agents.document_generation.orchestration.usage_ledger import CostCalculator
from src.agents.document_generation.outliner.agent import OutlinerAgent
from src.agents.document_generation.prompts.loader import PromptLoader
from src.agents.document_generation.researcher.agent import ResearcherAgent
from src.agents.document_generation.tools.toolkit import AgentToolkit
from src.agents.document_generation.tools.url_reader import UrlReaderClient
from src.agents.document_generation.tools.web_search import WebSearchClient
from src.agents.document_generation.writer.agent import WriterAgent
from src.config import Config

logger = logging.getLogger(__name__)


def build_pipeline(*, config: Config, llm_client: LLMClient | None = None) -> DocumentPipeline:
    """Build a :class:`DocumentPipeline` with every agent, tool and writer configured."""
    doc_config = config.get_document_generation_config()
    agents = doc_config.agents
    prompts = doc_config.prompts
    pipeline = doc_config.pipeline
    client = llm_client or LiteLLMClient()
    prompt_loader = PromptLoader(root_dir=Path(prompts.root_dir))

    web_search_config = doc_config.research.web_search
    url_reader_config = doc_config.research.url_reader
    web_search = WebSearchClient(
        api_base=web_search_config.api_base,
        api_key=web_search_config.api_key,
        timeout_seconds=web_search_config.timeout_seconds,
        default_max_results=web_search_config.max_results,
        default_search_depth=web_search_config.search_depth,
    )
    url_reader = UrlReaderClient(
        api_base=url_reader_config.api_base,
        timeout_seconds=url_reader_config.timeout_seconds,
        max_chars=url_reader_config.max_chars,
    )

    researcher = ResearcherAgent(
        llm_config=agents.researcher_llm,
        config=config,
        llm_client=client,
        prompt_loader=prompt_loader,
        prompt_name=prompts.researcher,
        toolkit=AgentToolkit(web_search=web_search, url_reader=url_reader),
        max_tool_steps=pipeline.max_tool_steps,
    )
    research_toolkit = AgentToolkit(researcher=researcher, url_reader=url_reader)

    outliner = OutlinerAgent(
        llm_config=agents.outliner_llm,
        config=config,
        llm_client=client,
        prompt_loader=prompt_loader,
        prompt_name=prompts.outliner,
        toolkit=research_toolkit,
        max_tool_steps=pipeline.max_tool_steps,
    )
    strategist = ContentStrategistAgent(
        llm_config=agents.content_strategist_llm,
        config=config,
        llm_client=client,
        prompt_loader=prompt_loader,
        prompt_name=prompts.content_strategist,
        toolkit=research_toolkit,
        max_tool_steps=pipeline.max_tool_steps,
    )
    writer = WriterAgent(
        llm_config=agents.writer_llm,
        config=config,
        llm_client=client,
        prompt_loader=prompt_loader,
        prompt_name=prompts.writer,
        toolkit=research_toolkit,
        max_tool_steps=pipeline.max_tool_steps,
    )
    editor = EditorAgent(
        llm_config=agents.editor_llm,
        config=config,
        llm_client=client,
        prompt_loader=prompt_loader,
        prompt_name=prompts.editor,
        toolkit=research_toolkit,
        max_tool_steps=pipeline.max_tool_steps,
    )
    editor_in_chief = EditorInChiefAgent(
        llm_config=agents.editor_in_chief_llm,
        config=config,
        llm_client=client,
        prompt_loader=prompt_loader,
        prompt_name=prompts.editor_in_chief,
        toolkit=research_toolkit,
        max_tool_steps=pipeline.max_tool_steps,
    )

    logger.info(
        "Pipeline built: outliner=%s writer=%s editor=%s editor_in_chief=%s max_iterations=%d",
        agents.outliner_llm.model,
        agents.writer_llm.model,
        agents.editor_llm.model,
        agents.editor_in_chief_llm.model,
        pipeline.max_revision_iterations,
    )

    return DocumentPipeline(
        outliner=outliner,
        strategist=strategist,
        section_processor=SectionProcessor(
            writer=writer,
            reviewer=editor,
            max_iterations=pipeline.max_revision_iterations,
            max_concurrency=pipeline.max_concurrent_sections,
        ),
        editor_in_chief=editor_in_chief,
        cost_calculator=CostCalculator.from_config(doc_config),
        renderer=DocumentRenderer(),
        snapshot_writer=SnapshotWriter(
            snapshot_dir=config.getDataOutputDir() / doc_config.output.snapshot_dir,
            save_intermediate_results=doc_config.output.save_intermediate_results,
        ),
    )
