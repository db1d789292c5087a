"""LLM client adapter for document-generation agents."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from litellm import acompletion

from src.agents.document_generation.base import LLMCompletion, ToolCall
from src.agents.document_generation.errors import ProviderError
from src.agents.document_generation.models import TokenUsage
from src.config import LLMConfig

logger = logging.getLogger(__name__)


class LiteLLMClient:
    """LiteLLM-backed implementation of the LLM client protocol.

    Transport failures are retried ``llm_config.max_retries`` times; after that
    the failure surfaces as :class:`ProviderError` and the caller's stage fails.
    """

    async def complete(
        self,
        *,
        llm_config: LLMConfig,
        messages: list[dict[str, Any]],
        tools: list[dict[str, object]] | None = None,
    ) -> LLMCompletion:
        """Call LiteLLM with configured retry behavior."""
        attempts = 0
        total_attempts = llm_config.max_retries + 1
        while True:
            attempts += 1
            logger.info(
                "Completion request %d/%d: model=%s api_base=%s tools=%d timeout=%ds max_tokens=%d",
                attempts,
                total_attempts,
                llm_config.model,
                llm_config.api_base,
                len(tools or []),
                llm_config.timeout_seconds,
                llm_config.max_tokens,
            )
            started_at = time.perf_counter()
            try:
                response = await acompletion(
                    model=llm_config.model,
                    api_base=llm_config.api_base,
                    api_key=llm_config.api_key,
                    messages=messages,
                    temperature=llm_config.temperature,
                    max_tokens=llm_config.max_tokens,
                    timeout=llm_config.timeout_seconds,
                    tools=tools,
                    stream=False,
                )
            except Exception as exc:
                elapsed = time.perf_counter() - started_at
                logger.error(
                    "LLM request failed: attempt %d/%d after %.1fs - %s: %s",
                    attempts,
                    total_attempts,
                    elapsed,
                    type(exc).__name__,
                    exc,
                )
                if attempts >= total_attempts:
                    logger.error("Completion failed on all %d attempts", total_attempts)
                    raise ProviderError(provider=llm_config.model, detail=f"{type(exc).__name__}: {exc}") from exc
                logger.info("Retrying completion in %.1fs", llm_config.retry_delay)
                await asyncio.sleep(llm_config.retry_delay)
                continue

            completion = self._to_completion(response)
            logger.info(
                "LLM response: attempt %d/%d succeeded in %.1fs, response_chars=%d tool_calls=%d",
                attempts,
                total_attempts,
                time.perf_counter() - started_at,
                len(completion.content or ""),
                len(completion.tool_calls),
            )
            return completion

    @staticmethod
    def _to_completion(response: Any) -> LLMCompletion:
        message = response.choices[0].message
        tool_calls = [
            ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "{}")
            for call in (getattr(message, "tool_calls", None) or [])
        ]
        if message.content is None and not tool_calls:
            raise ProviderError(provider=str(getattr(response, "model", "llm")), detail="LLM returned empty content")
        usage = getattr(response, "usage", None)
        return LLMCompletion(
            content=message.content,
            tool_calls=tool_calls,
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )
