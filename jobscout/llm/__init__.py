"""LLM provider registry with lazy loading.

Usage:
    from jobscout.llm import get_provider

    provider = get_provider("anthropic")
    reply = await provider.chat(system_prompt, messages, tools)
"""

import importlib

from jobscout.llm.base import (
    ChatMessage,
    LLMProvider,
    LLMResponse,
    ToolSchema,
    parse_json_reply,
    strip_code_fences,
)

__all__ = [
    "ChatMessage",
    "LLMProvider",
    "LLMResponse",
    "ToolSchema",
    "available_providers",
    "get_provider",
    "parse_json_reply",
    "strip_code_fences",
]

# Lazy registry: maps provider name → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "anthropic": ("jobscout.llm.anthropic", "AnthropicProvider"),
    "openai": ("jobscout.llm.openai", "OpenAIProvider"),
    "ollama": ("jobscout.llm.ollama", "OllamaProvider"),
}


def get_provider(name: str) -> LLMProvider:
    """Instantiate and return an LLM provider by name.

    Args:
        name: Provider identifier (anthropic, openai, ollama).

    Raises:
        ValueError: If the provider name is unknown.
    """
    if name not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown LLM provider '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[name]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls()  # type: ignore[no-any-return]


def available_providers() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(_REGISTRY)
