"""Abstract base class for LLM providers and shared reply parsing."""

import json
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel, Field

from jobscout.core.schemas import MessageRole, ToolCall, ToolResult

StopReason = Literal["tool_use", "end_turn", "max_tokens"]


class ChatMessage(BaseModel):
    """One provider-neutral conversation message.

    An assistant message may carry tool calls; the user message that follows
    it carries their results.
    """

    role: MessageRole
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_results: list[ToolResult] = Field(default_factory=list)


class ToolSchema(BaseModel):
    """A tool advertised to the model."""

    name: str
    description: str
    input_schema: dict[str, Any]


class LLMResponse(BaseModel):
    text: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    stop_reason: StopReason = "end_turn"


def strip_code_fences(raw_text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    return re.sub(r"\n?```\s*$", "", cleaned)


def parse_json_reply(raw_text: str) -> Any:
    """Parse a model reply as JSON, tolerating markdown fences.

    Raises:
        ValueError: If the reply is not valid JSON.
    """
    try:
        return json.loads(strip_code_fences(raw_text))
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise ValueError(msg) from e


def dump_tool_content(content: Any) -> str:
    """Serialize a tool result payload for the wire."""
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, default=str)


class LLMProvider(ABC):
    """Base class that every LLM provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""

    def is_configured(self) -> bool:
        """True when the provider's credential is available."""
        return self.env_var is None or bool(os.environ.get(self.env_var))

    def _api_key(self) -> str:
        env_var = self.env_var
        if env_var is None:
            return ""
        api_key = os.environ.get(env_var)
        if not api_key:
            msg = f"{env_var} environment variable is required"
            raise ValueError(msg)
        return api_key

    @abstractmethod
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
        """Send a conversation to the model and return its normalized reply.

        Args:
            system: System prompt.
            messages: Conversation so far, oldest first.
            tools: Tools the model may call. None disables tool use.
            model: Override the provider's default model. None uses default.
            max_tokens: Completion budget. None uses the provider default.
            temperature: Sampling temperature. None uses the API default.

        Returns:
            The reply text, any requested tool calls and the stop reason.
        """

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        """Single-shot completion without tools. Returns the raw reply text."""
        response = await self.chat(
            system or "",
            [ChatMessage(role=MessageRole.USER, content=prompt)],
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.text
