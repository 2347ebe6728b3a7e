"""Abstract datastore used by every component.

Implementations own entity storage; the pipeline and agents only see these
async operations and the models from ``jobscout.core.schemas``.
"""

from abc import ABC, abstractmethod

from jobscout.core.schemas import (
    AgentType,
    ClassifiedEvent,
    Company,
    CompanyScore,
    Conversation,
    Event,
    Job,
    JobMatch,
    MatchScore,
    Message,
    MessageRole,
    Profile,
    RankedCompany,
    ToolCall,
    ToolResult,
)


class Datastore(ABC):
    """Base class that every datastore must implement."""

    # --- companies and events ---

    @abstractmethod
    async def get_or_create_company(self, name: str) -> Company:
        """Return the company with this name (case-insensitive), creating it if absent."""

    @abstractmethod
    async def get_company_by_id(self, company_id: int) -> Company | None: ...

    @abstractmethod
    async def get_company_by_name(self, name: str) -> Company | None: ...

    @abstractmethod
    async def get_active_companies(self, days_back: int) -> list[Company]:
        """Companies with at least one event published within the window."""

    @abstractmethod
    async def create_event(self, company_id: int, event: ClassifiedEvent) -> Event: ...

    @abstractmethod
    async def get_events_by_company_id(self, company_id: int, limit: int) -> list[Event]:
        """Most recent events first."""

    @abstractmethod
    async def get_recent_events(self, days_back: int, limit: int) -> list[Event]:
        """Events of every company published within the window, newest first.

        Each event carries its company name.
        """

    # --- jobs ---

    @abstractmethod
    async def upsert_job(self, job: Job) -> Job:
        """Insert or update by (source, external_id), linking the company by name."""

    @abstractmethod
    async def get_job_by_id(self, job_id: int) -> Job | None: ...

    @abstractmethod
    async def get_jobs(self, limit: int, offset: int = 0) -> list[Job]: ...

    @abstractmethod
    async def get_jobs_by_company_id(self, company_id: int, limit: int) -> list[Job]: ...

    # --- profiles, saved jobs, matches ---

    @abstractmethod
    async def upsert_profile(self, profile: Profile) -> Profile: ...

    @abstractmethod
    async def get_profile_by_user_id(self, user_id: int) -> Profile | None: ...

    @abstractmethod
    async def save_job(self, user_id: int, job_id: int) -> None: ...

    @abstractmethod
    async def unsave_job(self, user_id: int, job_id: int) -> None: ...

    @abstractmethod
    async def get_saved_jobs_by_user_id(self, user_id: int) -> list[Job]: ...

    @abstractmethod
    async def upsert_job_match(self, user_id: int, job_id: int, score: MatchScore) -> None: ...

    @abstractmethod
    async def get_matches_by_user_id(self, user_id: int, limit: int) -> list[JobMatch]:
        """Best matches first."""

    # --- company scores ---

    @abstractmethod
    async def upsert_company_score(self, score: CompanyScore) -> CompanyScore:
        """Create or replace the row keyed by (company_id, user_id)."""

    @abstractmethod
    async def get_top_company_scores(self, user_id: int, limit: int) -> list[RankedCompany]:
        """Highest combined score first."""

    # --- conversations ---

    @abstractmethod
    async def create_conversation(
        self, user_id: int, agent_type: AgentType, title: str
    ) -> Conversation: ...

    @abstractmethod
    async def get_conversation(self, conversation_id: int) -> Conversation | None: ...

    @abstractmethod
    async def get_conversations_by_user_id(
        self, user_id: int, limit: int
    ) -> list[Conversation]: ...

    @abstractmethod
    async def delete_conversation(self, conversation_id: int) -> None: ...

    @abstractmethod
    async def create_message(
        self,
        conversation_id: int,
        role: MessageRole,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        tool_results: list[ToolResult] | None = None,
    ) -> Message: ...

    @abstractmethod
    async def get_messages_by_conversation_id(
        self, conversation_id: int, limit: int
    ) -> list[Message]:
        """The most recent ``limit`` messages, oldest first."""
