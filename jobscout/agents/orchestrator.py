"""Conversation turns for the assistant personas.

One turn:
  1. Resolve or create the conversation (ownership-checked)
  2. Persist the user message
  3. Build the user context and system prompt
  4. Call the model; execute requested tools; repeat until it stops asking
  5. Persist the assistant reply with its tool records
"""

import logging
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, Field, ValidationError

from jobscout.agents.context import ContextAssembler, UserContext, format_context
from jobscout.agents.personas import build_system_prompt, get_persona
from jobscout.agents.tools import AgentTool, ToolRegistry
from jobscout.core.config import AgentConfig
from jobscout.core.schemas import (
    AgentType,
    Conversation,
    Message,
    MessageRole,
    ToolCall,
    ToolResult,
)
from jobscout.core.store import Datastore
from jobscout.documents.extractor import extract_attachment_text
from jobscout.llm.base import ChatMessage, LLMProvider, LLMResponse

logger = logging.getLogger(__name__)

TITLE_CHARS = 50
APOLOGY_MESSAGE = (
    "Sorry, I could not reach the assistant service right now. Please try again in a moment."
)
OVERFLOW_MESSAGE = (
    "I could not complete this request within the allowed number of tool calls. "
    "Please try a narrower question."
)
EMPTY_REPLY_MESSAGE = "I don't have an answer to that yet. Could you rephrase the question?"


class ConversationNotFoundError(Exception):
    """The conversation does not exist or belongs to another user."""

    def __init__(self, conversation_id: int) -> None:
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id


class TurnState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    agent_type: AgentType
    conversation_id: int | None = None
    file_name: str | None = None
    file_base64: str | None = None


class ChatResponse(BaseModel):
    conversation_id: int
    message: Message
    suggested_follow_ups: list[str] = Field(default_factory=list)


def conversation_title(message: str) -> str:
    title = message[:TITLE_CHARS]
    return title + "..." if len(message) > TITLE_CHARS else title


class AgentOrchestrator:
    """Runs conversation turns against an LLM provider with tool use.

    Usage::

        orchestrator = AgentOrchestrator(store, provider, ToolRegistry(store),
                                         ContextAssembler(store))
        response = await orchestrator.chat(ChatRequest(...), user_id=1)
    """

    def __init__(
        self,
        store: Datastore,
        provider: LLMProvider,
        registry: ToolRegistry,
        assembler: ContextAssembler,
        config: AgentConfig | None = None,
        extract_attachment: Callable[[str, str], str] = extract_attachment_text,
    ) -> None:
        self.store = store
        self.provider = provider
        self.registry = registry
        self.assembler = assembler
        self.config = config or AgentConfig()
        self._extract_attachment = extract_attachment

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def _owned_conversation(self, conversation_id: int, user_id: int) -> Conversation:
        conversation = await self.store.get_conversation(conversation_id)
        if conversation is None or conversation.user_id != user_id:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def list_conversations(self, user_id: int, limit: int = 20) -> list[Conversation]:
        return await self.store.get_conversations_by_user_id(user_id, limit)

    async def get_conversation_messages(
        self, conversation_id: int, user_id: int, limit: int = 100
    ) -> tuple[Conversation, list[Message]]:
        conversation = await self._owned_conversation(conversation_id, user_id)
        messages = await self.store.get_messages_by_conversation_id(conversation_id, limit)
        return conversation, messages

    async def delete_conversation(self, conversation_id: int, user_id: int) -> None:
        await self._owned_conversation(conversation_id, user_id)
        await self.store.delete_conversation(conversation_id)
        logger.info("Deleted conversation %d", conversation_id)

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    async def chat(self, request: ChatRequest, user_id: int) -> ChatResponse:
        """Run one conversation turn and return the persisted assistant message.

        Raises:
            ConversationNotFoundError: If ``request.conversation_id`` is unknown
                or owned by another user.
        """
        if request.conversation_id is not None:
            conversation = await self._owned_conversation(request.conversation_id, user_id)
        else:
            conversation = await self.store.create_conversation(
                user_id, request.agent_type, conversation_title(request.message)
            )
            logger.info("Created conversation %d for user %d", conversation.id, user_id)

        user_message = await self.store.create_message(
            conversation.id, MessageRole.USER, request.message
        )

        context = await self.assembler.build(user_id)
        system_prompt = build_system_prompt(request.agent_type, format_context(context))
        messages = await self._history(conversation.id, exclude_id=user_message.id)
        messages.append(ChatMessage(role=MessageRole.USER, content=self._user_content(request)))

        text, tool_calls, tool_results = await self._run_turn(
            request.agent_type, system_prompt, messages, context
        )

        saved = await self.store.create_message(
            conversation.id,
            MessageRole.ASSISTANT,
            text,
            tool_calls=tool_calls or None,
            tool_results=tool_results or None,
        )
        return ChatResponse(
            conversation_id=conversation.id,
            message=saved,
            suggested_follow_ups=list(get_persona(request.agent_type).follow_ups),
        )

    async def _history(self, conversation_id: int, exclude_id: int) -> list[ChatMessage]:
        limit = self.config.history_limit
        if limit == 0:
            return []
        stored = await self.store.get_messages_by_conversation_id(conversation_id, limit + 1)
        prior = [m for m in stored if m.id != exclude_id][-limit:]
        while prior and prior[0].role == MessageRole.ASSISTANT:
            prior.pop(0)
        return [ChatMessage(role=m.role, content=m.content) for m in prior if m.content]

    def _user_content(self, request: ChatRequest) -> str:
        if not (request.file_name and request.file_base64):
            return request.message
        try:
            text = self._extract_attachment(request.file_name, request.file_base64)
        except Exception:
            logger.warning("Could not read attachment '%s'", request.file_name, exc_info=True)
            return f"{request.message}\n\n[Could not read the attached file: {request.file_name}]"
        if not text.strip():
            return request.message
        return (
            f"{request.message}\n\n---\nATTACHED DOCUMENT ({request.file_name}):\n{text}\n---"
        )

    async def _run_turn(
        self,
        agent_type: AgentType,
        system_prompt: str,
        messages: list[ChatMessage],
        context: UserContext,
    ) -> tuple[str, list[ToolCall], list[ToolResult]]:
        tools = {tool.name: tool for tool in self.registry.for_agent(agent_type)}
        schemas = [tool.schema() for tool in tools.values()] or None

        all_calls: list[ToolCall] = []
        all_results: list[ToolResult] = []
        state = TurnState.AWAITING_MODEL
        response = LLMResponse()
        text = ""
        rounds = 0

        while state != TurnState.DONE:
            if state == TurnState.AWAITING_MODEL:
                try:
                    response = await self.provider.chat(
                        system_prompt,
                        messages,
                        schemas,
                        model=self.config.model,
                        max_tokens=self.config.max_tokens,
                    )
                except Exception:
                    logger.exception("Model call failed during %s turn", agent_type.value)
                    text = APOLOGY_MESSAGE
                    state = TurnState.DONE
                    continue

                if response.stop_reason != "tool_use" or not response.tool_calls:
                    text = response.text
                    state = TurnState.DONE
                elif rounds >= self.config.max_tool_rounds:
                    logger.warning(
                        "Tool round limit (%d) reached, ending turn", self.config.max_tool_rounds
                    )
                    text = f"{response.text}\n\n{OVERFLOW_MESSAGE}".strip()
                    state = TurnState.DONE
                else:
                    state = TurnState.EXECUTING_TOOLS

            elif state == TurnState.EXECUTING_TOOLS:
                rounds += 1
                results = [
                    await self._execute_tool(call, tools, context) for call in response.tool_calls
                ]
                messages.append(
                    ChatMessage(
                        role=MessageRole.ASSISTANT,
                        content=response.text,
                        tool_calls=response.tool_calls,
                    )
                )
                messages.append(ChatMessage(role=MessageRole.USER, tool_results=results))
                all_calls.extend(response.tool_calls)
                all_results.extend(results)
                state = TurnState.AWAITING_MODEL

        return text.strip() or EMPTY_REPLY_MESSAGE, all_calls, all_results

    async def _execute_tool(
        self, call: ToolCall, tools: dict[str, AgentTool], context: UserContext
    ) -> ToolResult:
        tool = tools.get(call.name)
        if tool is None:
            logger.warning("Model requested unknown tool '%s'", call.name)
            return ToolResult(
                tool_call_id=call.id,
                name=call.name,
                content={"error": f"Unknown tool: {call.name}"},
                is_error=True,
            )

        try:
            content = await tool.execute(call.arguments, context)
        except ValidationError as e:
            logger.warning("Invalid arguments for tool '%s': %s", call.name, e)
            return ToolResult(
                tool_call_id=call.id,
                name=call.name,
                content={
                    "error": f"Invalid arguments for {call.name}",
                    "details": [err["msg"] for err in e.errors()],
                },
                is_error=True,
            )
        except Exception:
            logger.exception("Tool '%s' failed", call.name)
            return ToolResult(
                tool_call_id=call.id,
                name=call.name,
                content={"error": "Tool execution failed"},
                is_error=True,
            )

        logger.debug("Tool '%s' completed", call.name)
        return ToolResult(tool_call_id=call.id, name=call.name, content=content)
