"""Tests for the conversational turn loop, tool dispatch and conversation ownership."""

from collections.abc import Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from jobscout.agents.context import ContextAssembler
from jobscout.agents.orchestrator import (
    APOLOGY_MESSAGE,
    EMPTY_REPLY_MESSAGE,
    OVERFLOW_MESSAGE,
    AgentOrchestrator,
    ChatRequest,
    ConversationNotFoundError,
    conversation_title,
)
from jobscout.agents.tools import ToolRegistry
from jobscout.core.config import AgentConfig
from jobscout.core.db import SQLiteStore
from jobscout.core.schemas import AgentType, Job, MessageRole, ToolCall
from jobscout.llm.base import ChatMessage, LLMProvider, LLMResponse


@pytest.fixture()
def store() -> Iterator[SQLiteStore]:
    s = SQLiteStore.open(":memory:")
    yield s
    s.close()


class _Script:
    """Replays canned replies and records a copy of each request."""

    def __init__(self, *replies: LLMResponse | Exception) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def chat(
        self,
        system: str,
        messages: list[ChatMessage],
        tools: Any = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.calls.append(
            {"system": system, "messages": list(messages), "tools": tools, **kwargs}
        )
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _orchestrator(
    store: SQLiteStore, script: _Script, config: AgentConfig | None = None, **kw: Any
) -> AgentOrchestrator:
    provider = MagicMock(spec=LLMProvider)
    provider.chat = script.chat
    return AgentOrchestrator(
        store, provider, ToolRegistry(store), ContextAssembler(store), config, **kw
    )


def _tool_reply(*calls: ToolCall, text: str = "") -> LLMResponse:
    return LLMResponse(text=text, tool_calls=list(calls), stop_reason="tool_use")


def _request(message: str = "Hello", **kw: Any) -> ChatRequest:
    defaults: dict[str, Any] = {"message": message, "agent_type": AgentType.CAREER_COACH}
    defaults.update(kw)
    return ChatRequest(**defaults)


# ---------------------------------------------------------------------------
# Plain turns
# ---------------------------------------------------------------------------
class TestPlainTurn:
    async def test_new_conversation(self, store: SQLiteStore) -> None:
        script = _Script(LLMResponse(text="Hi there"))
        response = await _orchestrator(store, script).chat(_request(), user_id=7)

        assert response.message.content == "Hi there"
        assert response.message.role == MessageRole.ASSISTANT
        assert len(response.suggested_follow_ups) == 3

        conversation = await store.get_conversation(response.conversation_id)
        assert conversation is not None
        assert conversation.user_id == 7
        assert conversation.title == "Hello"
        stored = await store.get_messages_by_conversation_id(response.conversation_id, 10)
        assert [(m.role, m.content) for m in stored] == [
            (MessageRole.USER, "Hello"),
            (MessageRole.ASSISTANT, "Hi there"),
        ]

    async def test_system_prompt_and_tools(self, store: SQLiteStore) -> None:
        script = _Script(LLMResponse(text="ok"))
        await _orchestrator(store, script, AgentConfig(model="m1", max_tokens=256)).chat(
            _request(agent_type=AgentType.COMPANY_INTEL), user_id=7
        )
        call = script.calls[0]
        assert "USER CONTEXT:" in call["system"]
        assert "Not yet provided." in call["system"]
        assert [t.name for t in call["tools"]] == ["analyze_company", "search_jobs"]
        assert call["model"] == "m1"
        assert call["max_tokens"] == 256

    async def test_history_replayed(self, store: SQLiteStore) -> None:
        script = _Script(LLMResponse(text="first"), LLMResponse(text="second"))
        orchestrator = _orchestrator(store, script)
        first = await orchestrator.chat(_request("One"), user_id=7)
        await orchestrator.chat(_request("Two", conversation_id=first.conversation_id), user_id=7)

        sent = script.calls[1]["messages"]
        assert [(m.role, m.content) for m in sent] == [
            (MessageRole.USER, "One"),
            (MessageRole.ASSISTANT, "first"),
            (MessageRole.USER, "Two"),
        ]

    async def test_history_window_starts_with_user(self, store: SQLiteStore) -> None:
        script = _Script(*(LLMResponse(text=f"a{i}") for i in range(3)))
        orchestrator = _orchestrator(store, script, AgentConfig(history_limit=3))
        first = await orchestrator.chat(_request("u0"), user_id=7)
        cid = first.conversation_id
        await orchestrator.chat(_request("u1", conversation_id=cid), user_id=7)
        await orchestrator.chat(_request("u2", conversation_id=cid), user_id=7)

        # Window of three prior messages is [a0, u1, a1]; a leading assistant is dropped.
        sent = script.calls[2]["messages"]
        assert [m.content for m in sent] == ["u1", "a1", "u2"]

    async def test_empty_reply_gets_fallback(self, store: SQLiteStore) -> None:
        response = await _orchestrator(store, _Script(LLMResponse(text="  "))).chat(
            _request(), user_id=7
        )
        assert response.message.content == EMPTY_REPLY_MESSAGE

    async def test_provider_error_apologizes(self, store: SQLiteStore) -> None:
        script = _Script(RuntimeError("overloaded"))
        response = await _orchestrator(store, script).chat(_request(), user_id=7)
        assert response.message.content == APOLOGY_MESSAGE
        stored = await store.get_messages_by_conversation_id(response.conversation_id, 10)
        assert stored[-1].content == APOLOGY_MESSAGE

    def test_conversation_title(self) -> None:
        assert conversation_title("short") == "short"
        assert conversation_title("x" * 60) == "x" * 50 + "..."


# ---------------------------------------------------------------------------
# Tool loop
# ---------------------------------------------------------------------------
class TestToolLoop:
    async def test_tool_call_then_answer(self, store: SQLiteStore) -> None:
        await store.upsert_job(Job(external_id="1", title="Python Developer", company="Wolt"))
        script = _Script(
            _tool_reply(ToolCall(id="c1", name="search_jobs", arguments={"query": "python"})),
            LLMResponse(text="Found one job at Wolt."),
        )
        response = await _orchestrator(store, script).chat(_request("Find python jobs"), user_id=7)

        assert response.message.content == "Found one job at Wolt."
        assert response.message.tool_calls is not None
        assert [c.name for c in response.message.tool_calls] == ["search_jobs"]
        assert response.message.tool_results is not None
        assert response.message.tool_results[0].content["count"] == 1

        second = script.calls[1]["messages"]
        assert second[-2].role == MessageRole.ASSISTANT
        assert second[-2].tool_calls[0].id == "c1"
        assert second[-1].role == MessageRole.USER
        assert second[-1].tool_results[0].tool_call_id == "c1"

    async def test_multiple_calls_keep_order(self, store: SQLiteStore) -> None:
        script = _Script(
            _tool_reply(
                ToolCall(id="a", name="search_jobs", arguments={"query": "x"}),
                ToolCall(id="b", name="salary_insights", arguments={"title": "x"}),
            ),
            LLMResponse(text="done"),
        )
        response = await _orchestrator(store, script).chat(_request(), user_id=7)
        assert response.message.tool_results is not None
        assert [r.tool_call_id for r in response.message.tool_results] == ["a", "b"]

    async def test_tool_outside_persona_is_unknown(self, store: SQLiteStore) -> None:
        script = _Script(
            _tool_reply(ToolCall(id="c1", name="analyze_company", arguments={})),
            LLMResponse(text="ok"),
        )
        response = await _orchestrator(store, script).chat(_request(), user_id=7)
        assert response.message.tool_results is not None
        result = response.message.tool_results[0]
        assert result.is_error is True
        assert result.content == {"error": "Unknown tool: analyze_company"}

    async def test_invalid_arguments_reported_to_model(self, store: SQLiteStore) -> None:
        script = _Script(
            _tool_reply(ToolCall(id="c1", name="search_jobs", arguments={"limit": 500})),
            LLMResponse(text="ok"),
        )
        response = await _orchestrator(store, script).chat(_request(), user_id=7)
        assert response.message.tool_results is not None
        result = response.message.tool_results[0]
        assert result.is_error is True
        assert result.content["error"] == "Invalid arguments for search_jobs"
        assert result.content["details"]

    async def test_failing_tool_does_not_fail_turn(self, store: SQLiteStore) -> None:
        script = _Script(
            _tool_reply(ToolCall(id="c1", name="search_jobs", arguments={"query": "x"})),
            LLMResponse(text="Sorry, search is down."),
        )
        orchestrator = _orchestrator(store, script)
        search = orchestrator.registry.get("search_jobs")
        assert search is not None
        search.run = AsyncMock(side_effect=RuntimeError("db gone"))  # type: ignore[method-assign]

        response = await orchestrator.chat(_request(), user_id=7)
        assert response.message.content == "Sorry, search is down."
        assert response.message.tool_results is not None
        assert response.message.tool_results[0].content == {"error": "Tool execution failed"}

    async def test_round_limit(self, store: SQLiteStore) -> None:
        call = ToolCall(id="c", name="search_jobs", arguments={"query": "x"})
        script = _Script(*(_tool_reply(call, text="Still looking") for _ in range(3)))
        response = await _orchestrator(store, script, AgentConfig(max_tool_rounds=2)).chat(
            _request(), user_id=7
        )
        assert len(script.calls) == 3
        assert response.message.content == f"Still looking\n\n{OVERFLOW_MESSAGE}"
        assert response.message.tool_calls is not None
        assert len(response.message.tool_calls) == 2

    async def test_tool_use_without_calls_ends_turn(self, store: SQLiteStore) -> None:
        script = _Script(LLMResponse(text="Answer", stop_reason="tool_use"))
        response = await _orchestrator(store, script).chat(_request(), user_id=7)
        assert response.message.content == "Answer"
        assert response.message.tool_calls is None


# ---------------------------------------------------------------------------
# Attachments
# ---------------------------------------------------------------------------
class TestAttachments:
    async def test_attachment_text_appended(self, store: SQLiteStore) -> None:
        script = _Script(LLMResponse(text="Nice CV"))
        orchestrator = _orchestrator(
            store, script, extract_attachment=lambda name, data: "Python, SQL"
        )
        await orchestrator.chat(
            _request("Review my CV", file_name="cv.txt", file_base64="eA=="), user_id=7
        )
        sent = script.calls[0]["messages"][-1].content
        assert sent.startswith("Review my CV")
        assert "ATTACHED DOCUMENT (cv.txt):\nPython, SQL" in sent

    async def test_unreadable_attachment_noted(self, store: SQLiteStore) -> None:
        def broken(name: str, data: str) -> str:
            msg = "Unsupported attachment type"
            raise ValueError(msg)

        script = _Script(LLMResponse(text="ok"))
        orchestrator = _orchestrator(store, script, extract_attachment=broken)
        await orchestrator.chat(
            _request("Review", file_name="cv.docx", file_base64="eA=="), user_id=7
        )
        sent = script.calls[0]["messages"][-1].content
        assert sent == "Review\n\n[Could not read the attached file: cv.docx]"

    async def test_stored_user_message_excludes_attachment(self, store: SQLiteStore) -> None:
        script = _Script(LLMResponse(text="ok"))
        orchestrator = _orchestrator(
            store, script, extract_attachment=lambda name, data: "secret CV text"
        )
        response = await orchestrator.chat(
            _request("Review", file_name="cv.md", file_base64="eA=="), user_id=7
        )
        stored = await store.get_messages_by_conversation_id(response.conversation_id, 10)
        assert stored[0].content == "Review"


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------
class TestOwnership:
    async def test_foreign_conversation_rejected(self, store: SQLiteStore) -> None:
        conversation = await store.create_conversation(1, AgentType.CAREER_COACH, "mine")
        orchestrator = _orchestrator(store, _Script())
        with pytest.raises(ConversationNotFoundError):
            await orchestrator.chat(_request(conversation_id=conversation.id), user_id=2)
        assert await store.get_messages_by_conversation_id(conversation.id, 10) == []

    async def test_missing_conversation(self, store: SQLiteStore) -> None:
        with pytest.raises(ConversationNotFoundError, match="Conversation not found: 42"):
            await _orchestrator(store, _Script()).chat(_request(conversation_id=42), user_id=1)

    async def test_list_get_delete(self, store: SQLiteStore) -> None:
        orchestrator = _orchestrator(store, _Script(LLMResponse(text="hi")))
        response = await orchestrator.chat(_request(), user_id=7)
        cid = response.conversation_id

        assert [c.id for c in await orchestrator.list_conversations(7)] == [cid]
        assert await orchestrator.list_conversations(8) == []

        conversation, messages = await orchestrator.get_conversation_messages(cid, 7)
        assert conversation.id == cid
        assert len(messages) == 2

        with pytest.raises(ConversationNotFoundError):
            await orchestrator.get_conversation_messages(cid, 8)
        with pytest.raises(ConversationNotFoundError):
            await orchestrator.delete_conversation(cid, 8)

        await orchestrator.delete_conversation(cid, 7)
        assert await store.get_conversation(cid) is None

    def test_empty_message_rejected(self) -> None:
        with pytest.raises(ValueError):
            ChatRequest(message="", agent_type=AgentType.NEGOTIATOR)
