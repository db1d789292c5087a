"""Tests for the context-window guard."""

import pytest

from src.util.token_validator import (
    ContextWindowExceededError,
    count_tokens_from_messages,
    validate_token_usage,
)


class TestCountTokensFromMessages:
    """Tests for count_tokens_from_messages function."""

    def test_count_empty_messages(self) -> None:
        """Only the reply priming is counted for an empty request."""
        assert count_tokens_from_messages([]) == 3

    def test_count_grows_with_messages(self) -> None:
        """A second message adds to the count."""
        one = [{"role": "system", "content": "You are a helpful assistant."}]
        two = [*one, {"role": "user", "content": "Hello, how are you?"}]

        assert count_tokens_from_messages(two) > count_tokens_from_messages(one)

    def test_tool_call_turn_is_counted(self) -> None:
        """Assistant turns without content still count their tool-call arguments."""
        bare = [{"role": "assistant", "content": None}]
        with_call = [
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "researcher", "arguments": '{"subject": "solar panels in winter"}'},
                    }
                ],
            }
        ]

        assert count_tokens_from_messages(with_call) > count_tokens_from_messages(bare)

    def test_tool_result_name_is_counted(self) -> None:
        """The name on a tool message adds tokens."""
        unnamed = [{"role": "tool", "content": "result"}]
        named = [{"role": "tool", "content": "result", "name": "get_url_content"}]

        assert count_tokens_from_messages(named) > count_tokens_from_messages(unnamed)

    def test_different_encoding(self) -> None:
        """The encoding parameter is honored."""
        messages = [{"role": "user", "content": "Test message"}]

        assert count_tokens_from_messages(messages, encoding_name="cl100k_base") > 0


class TestValidateTokenUsage:
    """Tests for validate_token_usage function."""

    def test_within_threshold(self) -> None:
        """Small requests pass and return their count."""
        messages = [{"role": "user", "content": "Short message"}]

        token_count = validate_token_usage(messages, 100000, 90)

        assert 0 < token_count < 90000

    def test_exactly_at_threshold(self) -> None:
        """A count equal to the threshold is allowed."""
        messages = [{"role": "user", "content": "x" * 100}]
        actual_count = count_tokens_from_messages(messages)

        assert validate_token_usage(messages, actual_count, 100) == actual_count

    def test_one_token_over_threshold(self) -> None:
        """One token above the threshold raises."""
        messages = [{"role": "user", "content": "x" * 100}]
        actual_count = count_tokens_from_messages(messages)

        with pytest.raises(ContextWindowExceededError) as exc_info:
            validate_token_usage(messages, actual_count - 1, 100)

        assert exc_info.value.token_count == actual_count
        assert exc_info.value.threshold_tokens == actual_count - 1

    def test_zero_threshold(self) -> None:
        """A 0% threshold rejects any request."""
        with pytest.raises(ContextWindowExceededError):
            validate_token_usage([{"role": "user", "content": "Any message"}], 100000, 0)


class TestContextWindowExceededError:
    """Tests for ContextWindowExceededError exception."""

    def test_error_message_format(self) -> None:
        """The message carries counts, threshold and usage percentage."""
        error = ContextWindowExceededError(
            token_count=10000,
            context_window=100000,
            threshold=90,
            threshold_tokens=90000,
        )

        error_msg = str(error)

        assert "10,000" in error_msg
        assert "90%" in error_msg
        assert "90,000" in error_msg
        assert "100,000" in error_msg
        assert "10.0%" in error_msg

    def test_error_inheritance(self) -> None:
        """The error is a ValueError."""
        error = ContextWindowExceededError(token_count=100, context_window=90, threshold=90, threshold_tokens=81)

        assert isinstance(error, ValueError)
