"""Context-window guard for chat-completion requests, including tool-call turns."""

from typing import Any

import tiktoken

# Per-message framing: <|im_start|>{role}\n{content}<|im_end|>\n
_MESSAGE_OVERHEAD = 4
_REPLY_PRIMING = 3


class ContextWindowExceededError(ValueError):
    """Raised when a request would use more of the context window than allowed."""

    def __init__(self, token_count: int, context_window: int, threshold: int, threshold_tokens: int) -> None:
        self.token_count = token_count
        self.context_window = context_window
        self.threshold = threshold
        self.threshold_tokens = threshold_tokens

        percentage = (token_count / context_window * 100) if context_window > 0 else 0

        super().__init__(
            f"Request needs {token_count:,} tokens, above the {threshold}% threshold "
            f"({threshold_tokens:,} tokens) of a {context_window:,}-token context window "
            f"({percentage:.1f}% used)"
        )


def _message_texts(message: dict[str, Any]) -> list[str]:
    """Collect every string of a chat message that the model will read."""
    texts = [str(message.get("role") or "")]
    content = message.get("content")
    if isinstance(content, str):
        texts.append(content)
    for tool_call in message.get("tool_calls") or []:
        function = tool_call.get("function", {}) if isinstance(tool_call, dict) else {}
        texts.append(str(function.get("name") or ""))
        texts.append(str(function.get("arguments") or ""))
    if message.get("name"):
        texts.append(str(message["name"]))
    return texts


def count_tokens_from_messages(messages: list[dict[str, Any]], encoding_name: str = "o200k_base") -> int:
    """Approximate the prompt size of a chat request.

    Assistant turns that only carry tool calls have no ``content``; their
    function names and JSON arguments are counted instead.
    """
    encoding = tiktoken.get_encoding(encoding_name)
    total_tokens = 0
    for message in messages:
        total_tokens += _MESSAGE_OVERHEAD
        for text in _message_texts(message):
            total_tokens += len(encoding.encode(text))
    return total_tokens + _REPLY_PRIMING


def validate_token_usage(
    messages: list[dict[str, Any]],
    context_window: int,
    threshold: int,
    encoding_name: str = "o200k_base",
) -> int:
    """Return the request's token count or raise if it crosses the threshold.

    Raises:
        ContextWindowExceededError: If token usage exceeds ``threshold`` percent of ``context_window``.
    """
    token_count = count_tokens_from_messages(messages, encoding_name)
    threshold_tokens = int(context_window * (threshold / 100.0))
    if token_count > threshold_tokens:
        raise ContextWindowExceededError(
            token_count=token_count,
            context_window=context_window,
            threshold=threshold,
            threshold_tokens=threshold_tokens,
        )
    return token_count
