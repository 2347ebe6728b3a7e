"""Per-turn user context for the conversational agents.

The snapshot is rebuilt on every turn from the datastore and never
persisted. Every fetch degrades independently: a failing query yields an
empty section, not a failed turn.
"""

import logging
from datetime import datetime

from pydantic import BaseModel, Field

from jobscout.core.config import ContextConfig
from jobscout.core.schemas import EventType, Job, JobMatch, MatchCategory, Profile, RankedCompany
from jobscout.core.store import Datastore

logger = logging.getLogger(__name__)

PLACEHOLDER = "Not yet provided."
SECTION_ITEMS = 5


class MatchContext(BaseModel):
    job_id: int | None
    job_title: str
    company: str
    total_score: int
    skill_score: int
    experience_score: int
    location_score: int
    match_category: MatchCategory


class EventContext(BaseModel):
    event_type: EventType
    headline: str
    summary: str = ""
    impact_strength: int | None = None
    published_at: datetime


class CompanyContext(BaseModel):
    id: int
    name: str
    industry: str | None = None
    talent_need_score: float = 0.0
    profile_match_score: float = 0.0
    combined_score: float = 0.0
    reasons: list[str] = Field(default_factory=list)
    recent_events: list[EventContext] = Field(default_factory=list)
    open_positions: int = 0


class UserContext(BaseModel):
    """Everything the agent knows about the user for one turn."""

    user_id: int
    profile: Profile | None = None
    saved_jobs: list[Job] = Field(default_factory=list)
    top_matches: list[MatchContext] = Field(default_factory=list)
    recent_companies: list[CompanyContext] = Field(default_factory=list)


def _match_context(match: JobMatch) -> MatchContext:
    return MatchContext(
        job_id=match.job.id,
        job_title=match.job.title or "Unknown",
        company=match.job.company or "Unknown",
        total_score=match.score.total_score,
        skill_score=match.score.skill_score,
        experience_score=match.score.experience_score,
        location_score=match.score.location_score,
        match_category=match.score.match_category,
    )


class ContextAssembler:
    """Builds a UserContext from four independent datastore reads."""

    def __init__(self, store: Datastore, config: ContextConfig | None = None) -> None:
        self.store = store
        self.config = config or ContextConfig()

    async def build(self, user_id: int) -> UserContext:
        profile: Profile | None = None
        saved_jobs: list[Job] = []
        matches: list[JobMatch] = []
        ranked: list[RankedCompany] = []

        try:
            profile = await self.store.get_profile_by_user_id(user_id)
        except Exception:
            logger.warning("Could not fetch profile for user %d", user_id, exc_info=True)

        try:
            saved_jobs = await self.store.get_saved_jobs_by_user_id(user_id)
        except Exception:
            logger.warning("Could not fetch saved jobs for user %d", user_id, exc_info=True)

        try:
            matches = await self.store.get_matches_by_user_id(user_id, self.config.match_limit)
        except Exception:
            logger.warning("Could not fetch matches for user %d", user_id, exc_info=True)

        try:
            ranked = await self.store.get_top_company_scores(user_id, self.config.company_limit)
        except Exception:
            logger.warning("Could not fetch company scores for user %d", user_id, exc_info=True)

        companies: list[CompanyContext] = []
        for entry in ranked:
            try:
                events = await self.store.get_events_by_company_id(
                    entry.company.id, self.config.events_per_company
                )
            except Exception:
                logger.warning(
                    "Dropping company '%s' from context", entry.company.name, exc_info=True
                )
                continue
            companies.append(
                CompanyContext(
                    id=entry.company.id,
                    name=entry.company.name or "Unknown",
                    industry=entry.company.industry,
                    talent_need_score=entry.score.talent_need_score,
                    profile_match_score=entry.score.profile_match_score,
                    combined_score=entry.score.combined_score,
                    reasons=entry.score.reasons,
                    recent_events=[
                        EventContext(
                            event_type=e.event_type,
                            headline=e.headline,
                            summary=e.summary,
                            impact_strength=e.impact_strength,
                            published_at=e.published_at,
                        )
                        for e in events
                    ],
                    open_positions=entry.open_positions,
                )
            )

        return UserContext(
            user_id=user_id,
            profile=profile,
            saved_jobs=saved_jobs,
            top_matches=[_match_context(m) for m in matches],
            recent_companies=companies,
        )


def _or_unknown(value: object) -> str:
    return str(value) if value not in (None, "", []) else "?"


def _format_profile(profile: Profile | None) -> list[str]:
    lines = ["## User profile"]
    if profile is None:
        lines.append(PLACEHOLDER)
        return lines

    def joined(values: list[str]) -> str:
        return ", ".join(values) or "Not specified"

    lines += [
        f"- Current title: {profile.current_title or 'Not specified'}",
        f"- Experience: {_or_unknown(profile.years_of_experience)} years",
        f"- Skills: {joined(profile.skills)}",
        f"- Languages: {joined(profile.languages)}",
        f"- Education: {_or_unknown(profile.degree)} - {_or_unknown(profile.field)}",
        f"- Target titles: {joined(profile.preferred_job_titles)}",
        f"- Preferred locations: {joined(profile.preferred_locations)}",
        f"- Salary expectation: {_or_unknown(profile.salary_min)} - "
        f"{_or_unknown(profile.salary_max)} EUR",
        "- Remote preference: "
        + (profile.remote_preference.value if profile.remote_preference else "Not specified"),
    ]
    if profile.work_history:
        lines.append("### Work history")
        for entry in profile.work_history[:3]:
            lines.append(f"- {entry.title} @ {entry.company} ({entry.duration})")
    return lines


def _format_matches(matches: list[MatchContext]) -> list[str]:
    lines = [f"## Top job matches ({len(matches)})"]
    if not matches:
        lines.append(PLACEHOLDER)
    for m in matches[:SECTION_ITEMS]:
        lines.append(
            f"- {m.job_title} @ {m.company} - score {m.total_score}% ({m.match_category.value})"
        )
    return lines


def _format_saved(jobs: list[Job]) -> list[str]:
    lines = [f"## Saved jobs ({len(jobs)})"]
    if not jobs:
        lines.append(PLACEHOLDER)
    for job in jobs[:SECTION_ITEMS]:
        if job.salary_min and job.salary_max:
            salary = f"{job.salary_min}-{job.salary_max} EUR"
        else:
            salary = "salary unknown"
        lines.append(f"- {job.title} @ {job.company} ({job.location or '?'}) - {salary}")
    return lines


def _format_companies(companies: list[CompanyContext]) -> list[str]:
    lines = ["## Companies with hiring signals"]
    if not companies:
        lines.append(PLACEHOLDER)
    for c in companies[:SECTION_ITEMS]:
        lines.append(f"- {c.name} ({c.industry or '?'}) - score {c.combined_score:.0f}%")
        if c.recent_events:
            lines.append("  Latest signals:")
            for e in c.recent_events[:2]:
                lines.append(f"  * [{e.event_type.value}] {e.headline}")
    return lines


def format_context(context: UserContext) -> str:
    """Render the context as markdown-ish text for the system prompt."""
    sections = [
        _format_profile(context.profile),
        _format_matches(context.top_matches),
        _format_saved(context.saved_jobs),
        _format_companies(context.recent_companies),
    ]
    return "\n\n".join("\n".join(section) for section in sections)
