"""Per-invocation tool sets for document-generation agents."""

from __future__ import annotations

from typing import ClassVar, Protocol

from pydantic import BaseModel

from src.agents.document_generation.models import TokenUsage
from src.agents.document_generation.tools.research_tool import Researcher, ResearchTool
from src.agents.document_generation.tools.url_reader import UrlContentTool, UrlReaderClient
from src.agents.document_generation.tools.web_search import WebSearchClient, WebSearchTool


class AgentTool(Protocol):
    """A function the model can call during an agent invocation."""

    name: ClassVar[str]
    description: ClassVar[str]
    arguments_model: ClassVar[type[BaseModel]]

    async def execute(self, arguments: BaseModel) -> str:
        """Run the tool with validated arguments and return text for the model."""
        ...


def tool_spec(tool: AgentTool) -> dict[str, object]:
    """OpenAI function-calling description of ``tool``."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.arguments_model.model_json_schema(),
        },
    }


class ToolSession:
    """Tools bound to one agent invocation and the research usage they accumulate."""

    def __init__(self, *, tools: list[AgentTool], research_usages: list[TokenUsage]) -> None:
        self.tools = tools
        self.research_usages = research_usages

    def find(self, name: str) -> AgentTool | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None


class AgentToolkit:
    """Builds a fresh :class:`ToolSession` for every invocation so usage never leaks between calls."""

    def __init__(
        self,
        *,
        researcher: Researcher | None = None,
        url_reader: UrlReaderClient | None = None,
        web_search: WebSearchClient | None = None,
    ) -> None:
        self._researcher = researcher
        self._url_reader = url_reader
        self._web_search = web_search

    def open_session(self) -> ToolSession:
        research_usages: list[TokenUsage] = []
        tools: list[AgentTool] = []
        if self._web_search is not None:
            tools.append(WebSearchTool(client=self._web_search))
        if self._url_reader is not None:
            tools.append(UrlContentTool(client=self._url_reader))
        if self._researcher is not None:
            tools.append(ResearchTool(researcher=self._researcher, usage_sink=research_usages))
        return ToolSession(tools=tools, research_usages=research_usages)
