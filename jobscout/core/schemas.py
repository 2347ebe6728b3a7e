"""Core data models for the JobScout signal engine."""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

BUSINESS_FUNCTIONS = (
    "marketing",
    "sales",
    "it",
    "hr",
    "finance",
    "operations",
    "production",
    "rd",
    "management",
    "other",
)


def decode_list(value: Any) -> list[Any]:
    """Decode a list that may arrive JSON-encoded.

    Anything that is not a list (or a JSON string holding one) becomes [].
    """
    if not value:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


class EventType(str, Enum):
    """Closed set of company signal types."""

    YT_LAYOFF = "yt_layoff"
    YT_RESTRUCTURE = "yt_restructure"
    FUNDING = "funding"
    NEW_UNIT = "new_unit"
    EXPANSION = "expansion"
    ACQUISITION = "acquisition"
    STRATEGY_CHANGE = "strategy_change"
    LEADERSHIP_CHANGE = "leadership_change"
    OTHER = "other"


class RemotePreference(str, Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ON_SITE = "on-site"


class MatchCategory(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    FAIR = "fair"
    POSSIBLE = "possible"
    WEAK = "weak"


class AgentType(str, Enum):
    """The five assistant personas."""

    CAREER_COACH = "career_coach"
    JOB_ANALYZER = "job_analyzer"
    COMPANY_INTEL = "company_intel"
    INTERVIEW_PREP = "interview_prep"
    NEGOTIATOR = "negotiator"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


class RawNewsItem(BaseModel):
    """A news item as delivered by a news source. Consumed once by the classifier."""

    model_config = ConfigDict(frozen=True)

    headline: str
    summary: str = ""
    url: str = ""
    source: str = ""
    published_at: datetime = Field(default_factory=datetime.now)


class ClassifiedEvent(BaseModel):
    """A company-attributed signal derived from one news item.

    Frozen: classification output is persisted, never edited.
    """

    model_config = ConfigDict(frozen=True)

    company_name: str
    event_type: EventType = EventType.OTHER
    impact_strength: int = Field(default=3, ge=1, le=5)
    function_focus: list[str] = Field(default_factory=lambda: ["other"])
    affected_count: int | None = None
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    summary: str = Field(default="", max_length=500)
    headline: str = ""
    source_url: str = ""
    published_at: datetime = Field(default_factory=datetime.now)


class Company(BaseModel):
    id: int
    name: str
    industry: str | None = None
    website: str | None = None
    description: str | None = None
    employee_count: int | None = None
    headquarters: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class Event(BaseModel):
    """A persisted company event."""

    id: int
    company_id: int
    event_type: EventType = EventType.OTHER
    headline: str = ""
    summary: str = ""
    source_url: str = ""
    impact_strength: int | None = 3
    function_focus: list[str] = Field(default_factory=list)
    affected_count: int | None = None
    confidence: float = 0.0
    published_at: datetime = Field(default_factory=datetime.now)
    created_at: datetime = Field(default_factory=datetime.now)
    company_name: str | None = None

    @field_validator("function_focus", mode="before")
    @classmethod
    def _decode_functions(cls, v: Any) -> list[Any]:
        return decode_list(v)


# ---------------------------------------------------------------------------
# Jobs and profiles
# ---------------------------------------------------------------------------


class Job(BaseModel):
    """A job posting.

    required_skills is None when the posting carries no skill data and []
    when it explicitly requires nothing.
    """

    id: int | None = None
    external_id: str = ""
    source: str = ""
    title: str
    company: str = ""
    company_id: int | None = None
    description: str = ""
    location: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    employment_type: str | None = None
    remote_type: str | None = None
    industry: str | None = None
    required_skills: list[str] | None = None
    experience_required: int | None = None
    function_type: str | None = None
    seniority_level: str | None = None
    posted_at: datetime | None = None
    expires_at: datetime | None = None
    url: str = ""
    company_rating: int | None = Field(default=None, ge=0, le=100)

    @field_validator("required_skills", mode="before")
    @classmethod
    def _decode_skills(cls, v: Any) -> list[Any] | None:
        if v is None:
            return None
        return decode_list(v)


class WorkHistoryEntry(BaseModel):
    title: str = ""
    company: str = ""
    duration: str = ""


class Profile(BaseModel):
    """Candidate profile. List fields tolerate JSON-encoded strings."""

    user_id: int
    current_title: str | None = None
    years_of_experience: int | None = None
    skills: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    degree: str | None = None
    field: str | None = None
    preferred_job_titles: list[str] = Field(default_factory=list)
    preferred_industries: list[str] = Field(default_factory=list)
    preferred_locations: list[str] = Field(default_factory=list)
    employment_types: list[str] = Field(default_factory=list)
    salary_min: int | None = None
    salary_max: int | None = None
    remote_preference: RemotePreference | None = None
    work_history: list[WorkHistoryEntry] = Field(default_factory=list)
    target_functions: list[str] = Field(default_factory=list)

    @field_validator(
        "skills",
        "languages",
        "certifications",
        "preferred_job_titles",
        "preferred_industries",
        "preferred_locations",
        "employment_types",
        "target_functions",
        mode="before",
    )
    @classmethod
    def _decode_string_lists(cls, v: Any) -> list[str]:
        return [str(item) for item in decode_list(v) if item is not None]

    @field_validator("work_history", mode="before")
    @classmethod
    def _decode_work_history(cls, v: Any) -> list[Any]:
        return [item for item in decode_list(v) if isinstance(item, (dict, WorkHistoryEntry))]

    @field_validator("remote_preference", mode="before")
    @classmethod
    def _blank_remote_preference(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return v if v in {p.value for p in RemotePreference} else None
        return v


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


class MatchScore(BaseModel):
    """Weighted compatibility between one profile and one job. Recomputed, never edited."""

    model_config = ConfigDict(frozen=True)

    total_score: int = Field(ge=0, le=100)
    skill_score: int = Field(ge=0, le=100)
    experience_score: int = Field(ge=0, le=100)
    location_score: int = Field(ge=0, le=100)
    salary_score: int = Field(ge=0, le=100)
    industry_score: int = Field(ge=0, le=100)
    company_score: int = Field(ge=0, le=100)
    match_category: MatchCategory


class JobMatch(BaseModel):
    """A stored (user, job) match row."""

    user_id: int
    job: Job
    score: MatchScore


class CompanyScore(BaseModel):
    """Talent-need and profile-fit scores for one (company, user) pair."""

    company_id: int
    user_id: int = 0
    talent_need_score: float = Field(default=0.0, ge=0.0, le=100.0)
    profile_match_score: float = Field(default=0.0, ge=0.0, le=100.0)
    combined_score: float = Field(default=0.0, ge=0.0, le=100.0)
    reasons: list[str] = Field(default_factory=list)
    calculated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("reasons", mode="before")
    @classmethod
    def _decode_reasons(cls, v: Any) -> list[Any]:
        return decode_list(v)


class RankedCompany(BaseModel):
    """A company together with its stored score and open position count."""

    company: Company
    score: CompanyScore
    open_positions: int = 0


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Outcome of one tool invocation. content is always JSON-serializable."""

    tool_call_id: str
    name: str = ""
    content: Any = None
    is_error: bool = False


class Conversation(BaseModel):
    id: int
    user_id: int
    agent_type: AgentType
    title: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class Message(BaseModel):
    id: int
    conversation_id: int
    role: MessageRole
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None
    created_at: datetime = Field(default_factory=datetime.now)
