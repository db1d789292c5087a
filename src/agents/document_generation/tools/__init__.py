"""Tools available to document-generation agents."""

from src.agents.document_generation.tools.research_tool import ResearchTool
from src.agents.document_generation.tools.toolkit import AgentTool, AgentToolkit, ToolSession, tool_spec
from src.agents.document_generation.tools.url_reader import UrlContentTool, UrlReaderClient
from src.agents.document_generation.tools.web_search import WebSearchClient, WebSearchTool

__all__ = [
    "AgentTool",
    "AgentToolkit",
    "ResearchTool",
    "ToolSession",
    "UrlContentTool",
    "UrlReaderClient",
    "WebSearchClient",
    "WebSearchTool",
    "tool_spec",
]
