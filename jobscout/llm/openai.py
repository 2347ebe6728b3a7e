"""OpenAI LLM provider (chat completions with function tools)."""

import json
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


def _to_wire(system: str, messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Flatten ChatMessages into the chat-completions message list.

    Tool results become one ``tool`` message each, in the order given.
    """
    wire: list[dict[str, Any]] = []
    if system:
        wire.append({"role": "system", "content": system})

    for message in messages:
        if message.role == MessageRole.ASSISTANT and message.tool_calls:
            wire.append(
                {
                    "role": "assistant",
                    "content": message.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": json.dumps(call.arguments),
                            },
                        }
                        for call in message.tool_calls
                    ],
                }
            )
            continue

        for result in message.tool_results:
            wire.append(
                {
                    "role": "tool",
                    "tool_call_id": result.tool_call_id,
                    "content": dump_tool_content(result.content),
                }
            )
        if message.content or not message.tool_results:
            wire.append({"role": message.role.value, "content": message.content})
    return wire


def _parse_arguments(raw: str | None, tool_name: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Malformed arguments for tool '%s': %.100s", tool_name, raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _stop_reason(finish_reason: str | None, has_calls: bool) -> StopReason:
    if finish_reason == "tool_calls" or (has_calls and finish_reason != "length"):
        return "tool_use"
    if finish_reason == "length":
        return "max_tokens"
    return "end_turn"


class OpenAIProvider(LLMProvider):
    """LLM provider using the OpenAI API."""

    def __init__(self) -> None:
        self._client: Any = None

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str | None:
        return "OPENAI_API_KEY"

    def _make_client(self) -> Any:
        api_key = self._api_key()
        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for the OpenAI provider. "
                "Install with: pip install 'jobscout[openai]'"
            )
            raise ImportError(msg) from None

        return openai.AsyncOpenAI(api_key=api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = self._make_client()
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
            "messages": _to_wire(system, messages),
        }
        if tools:
            kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": t.name,
                        "description": t.description,
                        "parameters": t.input_schema,
                    },
                }
                for t in tools
            ]
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        if temperature is not None:
            kwargs["temperature"] = temperature

        logger.debug(
            "Sending %d messages to %s (%s)", len(messages), self.provider_id, use_model
        )
        response = await client.chat.completions.create(**kwargs)

        choice = response.choices[0]
        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=_parse_arguments(call.function.arguments, call.function.name),
            )
            for call in (choice.message.tool_calls or [])
        ]
        return LLMResponse(
            text=choice.message.content or "",
            tool_calls=tool_calls,
            stop_reason=_stop_reason(choice.finish_reason, bool(tool_calls)),
        )
