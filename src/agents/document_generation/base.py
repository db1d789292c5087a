"""Base classes and protocols for document-generation agents."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import UTC, datetime
from typing import Any, ClassVar, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.agents.document_generation.errors import ProviderError, SchemaValidationError
from src.agents.document_generation.models import AgentOutput, AgentRole, TokenUsage, UsageRecord
from src.agents.document_generation.prompts.loader import PromptLoader
from src.agents.document_generation.tools.toolkit import AgentToolkit, ToolSession, tool_spec
from src.config import Config, LLMConfig
from src.util.token_validator import ContextWindowExceededError, validate_token_usage

logger = logging.getLogger(__name__)


class ToolCall(BaseModel):
    """Function call requested by the model."""

    id: str
    name: str
    arguments: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class LLMCompletion(BaseModel):
    """One chat-completion response reduced to what the agents need."""

    content: str | None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    usage: TokenUsage

    model_config = ConfigDict(frozen=True, extra="forbid")


class LLMClient(Protocol):
    """Protocol for LLM interactions."""

    async def complete(
        self,
        *,
        llm_config: LLMConfig,
        messages: list[dict[str, Any]],
        tools: list[dict[str, object]] | None = None,
    ) -> LLMCompletion:
        """Send a chat-completion request."""
        ...


T = TypeVar("T", bound=BaseModel)


class BaseAgent:
    """Base class for all document-generation agents.

    An invocation renders the role's prompt, lets the model call tools for up
    to ``max_tool_steps`` rounds, and validates the final JSON answer. Token
    usage of every round is summed into one :class:`UsageRecord`; usage of
    research triggered through tools is nested in the same record.
    """

    role: ClassVar[AgentRole]

    def __init__(
        self,
        *,
        llm_config: LLMConfig,
        config: Config,
        llm_client: LLMClient,
        prompt_loader: PromptLoader,
        prompt_name: str,
        toolkit: AgentToolkit | None = None,
        max_tool_steps: int = 5,
    ) -> None:
        self._llm_config = llm_config
        self._config = config
        self._llm_client = llm_client
        self._prompt_loader = prompt_loader
        self._prompt_name = prompt_name
        self._toolkit = toolkit
        self._max_tool_steps = max_tool_steps
        self._agent_name = self.__class__.__name__
        self._logger = logging.getLogger(f"{__name__}.{self._agent_name}")

    def _build_messages(self, *, output_model: type[BaseModel], **values: str) -> list[dict[str, Any]]:
        """Render the role's templates into a system and a user message."""
        template = self._prompt_loader.load_template(name=self._prompt_name)
        today = datetime.now(UTC).date().isoformat()
        schema = json.dumps(output_model.model_json_schema(), ensure_ascii=False)
        system_prompt = (
            f"{template.system.format(today=today)}\n\n"
            f"Respond with a single JSON object that conforms to this JSON schema:\n{schema}"
        )
        user_prompt = template.user.format(**values)
        self._logger.debug("Prompt assembled: system=%d chars user=%d chars", len(system_prompt), len(user_prompt))
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    def _validate_tokens(self, messages: list[dict[str, Any]]) -> int:
        """Validate token usage before an LLM call.

        Raises:
            ProviderError: If the request would not fit the model's context window.
        """
        try:
            token_count = validate_token_usage(
                messages=messages,
                context_window=self._llm_config.context_window,
                threshold=self._llm_config.context_window_threshold,
                encoding_name=self._config.getEncodingName(),
            )
        except ContextWindowExceededError as exc:
            raise ProviderError(provider=self._llm_config.model, detail=str(exc)) from exc
        context_pct = (token_count / self._llm_config.context_window) * 100
        self._logger.debug(
            "Token validation: %d tokens (%.1f%% of %d context window, threshold=%d%%)",
            token_count,
            context_pct,
            self._llm_config.context_window,
            self._llm_config.context_window_threshold,
        )
        return token_count

    async def _call_llm(self, messages: list[dict[str, Any]], tools: list[dict[str, object]] | None) -> LLMCompletion:
        """Call the configured LLM client."""
        token_count = self._validate_tokens(messages)
        self._logger.info(
            "Calling LLM: model=%s messages=%d tools=%d validated_tokens=%d",
            self._llm_config.model,
            len(messages),
            len(tools or []),
            token_count,
        )
        started_at = time.perf_counter()
        completion = await self._llm_client.complete(llm_config=self._llm_config, messages=messages, tools=tools)
        elapsed_seconds = time.perf_counter() - started_at
        self._logger.info(
            "LLM call completed in %.1fs: tool_calls=%d prompt_tokens=%d completion_tokens=%d",
            elapsed_seconds,
            len(completion.tool_calls),
            completion.usage.prompt_tokens,
            completion.usage.completion_tokens,
        )
        return completion

    async def _generate(self, *, messages: list[dict[str, Any]], output_model: type[T]) -> AgentOutput[T]:
        """Run the tool loop and return the validated output with its usage record."""
        session = self._toolkit.open_session() if self._toolkit is not None else ToolSession(tools=[], research_usages=[])
        tool_specs = [tool_spec(tool) for tool in session.tools] or None
        usage = TokenUsage()

        for step in range(1, self._max_tool_steps + 1):
            completion = await self._call_llm(messages, tool_specs)
            usage += completion.usage
            if not completion.tool_calls:
                break
            self._logger.debug("Step %d/%d: model requested %d tool call(s)", step, self._max_tool_steps, len(completion.tool_calls))
            messages.append(self._assistant_message(completion))
            results = await self._execute_tools(session, completion.tool_calls)
            for call, result in zip(completion.tool_calls, results, strict=True):
                messages.append({"role": "tool", "tool_call_id": call.id, "name": call.name, "content": result})
        else:
            self._logger.info("Tool step budget (%d) used up, requesting final answer", self._max_tool_steps)
            completion = await self._call_llm(messages, None)
            usage += completion.usage

        output = self._parse_json_response(completion.content or "", output_model)
        record = UsageRecord(agent_usage=usage, research_usages=list(session.research_usages))
        return AgentOutput[output_model](output=output, usage=record)  # type: ignore[valid-type]

    async def _execute_tools(self, session: ToolSession, calls: list[ToolCall]) -> list[str]:
        """Run one step's tool calls concurrently; the first failure cancels the others."""
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(self._execute_tool(session, call), name=f"tool-{call.name}") for call in calls]
        except ExceptionGroup as failure:
            first = failure.exceptions[0]
            self._logger.error("Tool call failed: %s: %s", type(first).__name__, first)
            raise first from None
        return [task.result() for task in tasks]

    async def _execute_tool(self, session: ToolSession, call: ToolCall) -> str:
        tool = session.find(call.name)
        if tool is None:
            raise SchemaValidationError(role=self.role, model_name="tool call", detail=f"unknown tool {call.name!r}")
        try:
            arguments = tool.arguments_model.model_validate_json(call.arguments or "{}")
        except ValidationError as exc:
            raise SchemaValidationError(role=self.role, model_name=tool.arguments_model.__name__, detail=str(exc)) from exc
        self._logger.debug("Executing tool %s", call.name)
        return await tool.execute(arguments)

    @staticmethod
    def _assistant_message(completion: LLMCompletion) -> dict[str, Any]:
        return {
            "role": "assistant",
            "content": completion.content,
            "tool_calls": [
                {"id": call.id, "type": "function", "function": {"name": call.name, "arguments": call.arguments}}
                for call in completion.tool_calls
            ],
        }

    def _parse_json_response(self, response: str, model_class: type[T]) -> T:
        """Parse and validate JSON output, stripping markdown fences when present."""
        text = response.strip()
        if text.startswith("```"):
            text = text[7:] if text.startswith("```json") else text[3:]
            text = text.rsplit("```", 1)[0].strip()
        self._logger.debug("Parsing JSON response into %s (chars=%d)", model_class.__name__, len(text))
        try:
            result = model_class.model_validate_json(text)
        except ValidationError as exc:
            raise SchemaValidationError(role=self.role, model_name=model_class.__name__, detail=str(exc)) from exc
        self._logger.info("Parsed response into %s successfully", model_class.__name__)
        return result
