"""Anthropic Claude LLM provider."""

import logging
from typing import Any

from jobscout.core.schemas import MessageRole, ToolCall
from jobscout.llm.base import (
    ChatMessage,
    LLMProvider,
    LLMResponse,
    StopReason,
    ToolSchema,
    dump_tool_content,
)

logger = logging.getLogger(__name__)

_DEFAULT_MAX_TOKENS = 4096


def _to_wire(message: ChatMessage) -> dict[str, Any]:
    """Convert a ChatMessage into Anthropic content blocks."""
    if message.role == MessageRole.ASSISTANT and message.tool_calls:
        blocks: list[dict[str, Any]] = []
        if message.content:
            blocks.append({"type": "text", "text": message.content})
        for call in message.tool_calls:
            blocks.append(
                {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments}
            )
        return {"role": "assistant", "content": blocks}

    if message.tool_results:
        blocks = [
            {
                "type": "tool_result",
                "tool_use_id": result.tool_call_id,
                "content": dump_tool_content(result.content),
                "is_error": result.is_error,
            }
            for result in message.tool_results
        ]
        if message.content:
            blocks.append({"type": "text", "text": message.content})
        return {"role": "user", "content": blocks}

    return {"role": message.role.value, "content": message.content}


def _stop_reason(raw: str | None) -> StopReason:
    if raw == "tool_use":
        return "tool_use"
    if raw == "max_tokens":
        return "max_tokens"
    return "end_turn"


class AnthropicProvider(LLMProvider):
    """LLM provider using the Anthropic Claude API."""

    def __init__(self) -> None:
        self._client: Any = None

    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        api_key = self._api_key()
        try:
            import anthropic
        except ImportError:
            msg = (
                "anthropic is required for the Anthropic provider. "
                "Install with: pip install 'jobscout[anthropic]'"
            )
            raise ImportError(msg) from None

        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        return self._client

    async def chat(
        self,
        system: str,
        messages: list[ChatMessage],
        tools: list[ToolSchema] | None = None,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        client = self._get_client()
        use_model = model or self.default_model

        kwargs: dict[str, Any] = {
            "model": use_model,
            "max_tokens": max_tokens or _DEFAULT_MAX_TOKENS,
            "messages": [_to_wire(m) for m in messages],
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.input_schema}
                for t in tools
            ]
        if temperature is not None:
            kwargs["temperature"] = temperature

        logger.debug("Sending %d messages to Anthropic API (%s)", len(messages), use_model)
        response = await client.messages.create(**kwargs)

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
                )

        return LLMResponse(
            text="".join(text_parts),
            tool_calls=tool_calls,
            stop_reason=_stop_reason(response.stop_reason),
        )
