"""Read-only tools the agents can call during a conversation turn.

Each tool declares a pydantic argument model; its JSON schema is what the
model sees, and model-supplied arguments are validated against it before
``run`` is called. Tools never write to the datastore.
"""

import logging
import statistics
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field

from jobscout.agents.context import UserContext
from jobscout.agents.personas import get_persona
from jobscout.core.schemas import AgentType, Job
from jobscout.core.store import Datastore
from jobscout.llm.base import ToolSchema
from jobscout.pipeline.matcher import JobMatcher

logger = logging.getLogger(__name__)

# Jobs scanned when a tool filters the stored postings.
SCAN_LIMIT = 200
SALARY_SCAN_LIMIT = 100


def _job_summary(job: Job) -> dict[str, Any]:
    return {
        "id": job.id,
        "title": job.title,
        "company": job.company,
        "location": job.location,
        "remote_type": job.remote_type,
        "salary_min": job.salary_min,
        "salary_max": job.salary_max,
    }


class AgentTool(ABC):
    """Base class for agent tools."""

    name: ClassVar[str]
    description: ClassVar[str]
    args_model: ClassVar[type[BaseModel]]

    def __init__(self, store: Datastore, matcher: JobMatcher | None = None) -> None:
        self.store = store
        self.matcher = matcher or JobMatcher()

    def schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            input_schema=self.args_model.model_json_schema(),
        )

    async def execute(self, arguments: dict[str, Any], context: UserContext) -> dict[str, Any]:
        """Validate raw arguments and run the tool.

        Raises:
            pydantic.ValidationError: If the arguments do not fit ``args_model``.
        """
        args = self.args_model.model_validate(arguments)
        return await self.run(args, context)

    @abstractmethod
    async def run(self, args: Any, context: UserContext) -> dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class SearchJobsArgs(BaseModel):
    query: str = Field(description="Search query (title, company or description text)")
    location: str | None = Field(default=None, description="Location filter")
    remote_only: bool = Field(default=False, description="Only remote or hybrid jobs")
    limit: int = Field(default=10, ge=1, le=50, description="Max results")


class SearchJobsTool(AgentTool):
    name = "search_jobs"
    description = (
        "Search for jobs matching specific criteria. "
        "Use this to find relevant job opportunities."
    )
    args_model = SearchJobsArgs

    async def run(self, args: SearchJobsArgs, context: UserContext) -> dict[str, Any]:
        query = args.query.lower().strip()
        location = (args.location or "").lower().strip()

        def matches(job: Job) -> bool:
            text = f"{job.title} {job.company} {job.description}".lower()
            if query not in text:
                return False
            if location and location not in (job.location or "").lower():
                return False
            if args.remote_only and job.remote_type not in ("remote", "hybrid"):
                return False
            return True

        found = [job for job in await self.store.get_jobs(SCAN_LIMIT) if matches(job)]
        return {"count": len(found), "jobs": [_job_summary(j) for j in found[: args.limit]]}


class AnalyzeJobArgs(BaseModel):
    job_id: int = Field(description="Job ID to analyze")


class AnalyzeJobTool(AgentTool):
    name = "analyze_job"
    description = (
        "Get detailed analysis of a specific job and how well it matches the user's profile."
    )
    args_model = AnalyzeJobArgs

    async def run(self, args: AnalyzeJobArgs, context: UserContext) -> dict[str, Any]:
        job = await self.store.get_job_by_id(args.job_id)
        if job is None:
            return {"error": "Job not found"}

        match_analysis = None
        if context.profile is not None:
            match_analysis = self.matcher.match(context.profile, job).model_dump(mode="json")

        details = _job_summary(job)
        details.update(
            description=job.description,
            employment_type=job.employment_type,
            industry=job.industry,
            required_skills=job.required_skills,
            experience_required=job.experience_required,
            url=job.url,
        )
        return {"job": details, "match_analysis": match_analysis}


class CompareJobsArgs(BaseModel):
    job_ids: list[int] = Field(min_length=1, max_length=10, description="Job IDs to compare")


class CompareJobsTool(AgentTool):
    name = "compare_jobs"
    description = "Compare multiple jobs side by side based on various criteria."
    args_model = CompareJobsArgs

    async def run(self, args: CompareJobsArgs, context: UserContext) -> dict[str, Any]:
        jobs: list[Job] = []
        missing: list[int] = []
        for job_id in args.job_ids:
            job = await self.store.get_job_by_id(job_id)
            if job is None:
                missing.append(job_id)
            else:
                jobs.append(job)

        if not jobs:
            return {"error": "None of the jobs were found", "missing_ids": missing}

        mins = [j.salary_min for j in jobs if j.salary_min]
        maxes = [j.salary_max for j in jobs if j.salary_max]
        comparison = []
        for job in jobs:
            row = _job_summary(job)
            row.update(employment_type=job.employment_type, industry=job.industry)
            if context.profile is not None:
                row["match_score"] = self.matcher.match(context.profile, job).total_score
            comparison.append(row)

        return {
            "comparison": comparison,
            "missing_ids": missing,
            "summary": {
                "total_jobs": len(jobs),
                "salary_range": {
                    "min": min(mins) if mins else None,
                    "max": max(maxes) if maxes else None,
                },
                "locations": sorted({j.location for j in jobs if j.location}),
                "remote_options": sorted({j.remote_type for j in jobs if j.remote_type}),
            },
        }


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


class AnalyzeCompanyArgs(BaseModel):
    company_name: str | None = Field(default=None, description="Company name to analyze")
    company_id: int | None = Field(default=None, description="Company ID, if known")


class AnalyzeCompanyTool(AgentTool):
    name = "analyze_company"
    description = (
        "Get detailed analysis of a company including recent news, hiring signals "
        "and open positions."
    )
    args_model = AnalyzeCompanyArgs

    async def run(self, args: AnalyzeCompanyArgs, context: UserContext) -> dict[str, Any]:
        company = None
        if args.company_id is not None:
            company = await self.store.get_company_by_id(args.company_id)
        elif args.company_name:
            company = await self.store.get_company_by_name(args.company_name)

        if company is None:
            return {
                "error": "Company not found",
                "suggestion": "Try searching for jobs from this company instead.",
            }

        events = await self.store.get_events_by_company_id(company.id, 10)
        jobs = await self.store.get_jobs_by_company_id(company.id, 20)
        return {
            "company": company.model_dump(mode="json", exclude={"created_at"}),
            "signals": {
                "total_events": len(events),
                "events": [
                    {
                        "type": e.event_type.value,
                        "headline": e.headline,
                        "impact": e.impact_strength,
                        "date": e.published_at.isoformat(),
                    }
                    for e in events
                ],
            },
            "hiring": {
                "open_positions": len(jobs),
                "positions": [
                    {"title": j.title, "location": j.location, "remote_type": j.remote_type}
                    for j in jobs[:5]
                ],
            },
        }


# ---------------------------------------------------------------------------
# Profile and salary
# ---------------------------------------------------------------------------


class ProfileGapsArgs(BaseModel):
    target_job_id: int | None = Field(default=None, description="Specific job to compare against")
    target_industry: str | None = Field(
        default=None, description="Industry to analyze requirements for"
    )


class ProfileGapsTool(AgentTool):
    name = "profile_gaps"
    description = (
        "Analyze gaps between the user's profile and their target jobs or industry requirements."
    )
    args_model = ProfileGapsArgs

    async def run(self, args: ProfileGapsArgs, context: UserContext) -> dict[str, Any]:
        profile = context.profile
        if profile is None:
            return {
                "error": "No profile found",
                "suggestion": "Complete your profile first to get a personalized gap analysis.",
            }

        user_skills = {s.lower().strip() for s in profile.skills}
        gaps: dict[str, Any] = {"skills": [], "experience": None, "recommendations": []}

        if args.target_job_id is not None:
            job = await self.store.get_job_by_id(args.target_job_id)
            if job is None:
                return {"error": "Job not found"}
            gaps["skills"] = [
                s for s in (job.required_skills or []) if s.lower().strip() not in user_skills
            ]
            years = profile.years_of_experience
            if job.experience_required and years and years < job.experience_required:
                gaps["experience"] = {
                    "required": job.experience_required,
                    "current": years,
                    "gap": job.experience_required - years,
                }

        if args.target_industry:
            industry = args.target_industry.lower().strip()
            demand: Counter[str] = Counter()
            for job in await self.store.get_jobs(SCAN_LIMIT):
                if job.industry and industry in job.industry.lower():
                    demand.update(
                        s for s in (job.required_skills or []) if s.lower().strip() not in user_skills
                    )
            gaps["industry_skills"] = [skill for skill, _ in demand.most_common(10)]

        missing_skills = gaps["skills"] or gaps.get("industry_skills", [])
        if missing_skills:
            gaps["recommendations"].append(f"Develop these skills: {', '.join(missing_skills[:5])}")
        if gaps["experience"]:
            gaps["recommendations"].append(
                f"You need {gaps['experience']['gap']} more years of experience. "
                "Consider project work or freelance assignments."
            )

        return {
            "current_profile": {
                "skills": profile.skills,
                "experience": profile.years_of_experience,
                "certifications": profile.certifications,
            },
            "gaps": gaps,
        }


class SalaryInsightsArgs(BaseModel):
    title: str = Field(description="Job title to research")
    location: str | None = Field(default=None, description="Location for salary data")
    experience_years: int | None = Field(default=None, ge=0, description="Years of experience")


class SalaryInsightsTool(AgentTool):
    name = "salary_insights"
    description = "Get salary insights for specific roles, locations and experience levels."
    args_model = SalaryInsightsArgs

    async def run(self, args: SalaryInsightsArgs, context: UserContext) -> dict[str, Any]:
        title = args.title.lower().strip()
        location = (args.location or "").lower().strip()
        relevant = [
            j
            for j in await self.store.get_jobs(SALARY_SCAN_LIMIT)
            if title in j.title.lower()
            and j.salary_min
            and j.salary_max
            and (not location or location in (j.location or "").lower())
        ]
        if not relevant:
            return {
                "message": "Not enough salary data for this role.",
                "suggestion": "Try a broader job title or a different location.",
            }

        midpoints = [(j.salary_min + j.salary_max) / 2 for j in relevant]  # type: ignore[operator]
        years = args.experience_years
        if years is None and context.profile is not None:
            years = context.profile.years_of_experience

        recommendation = None
        if years:
            level = "above-average" if years > 5 else "average"
            recommendation = f"With {years} years of experience you can expect {level} pay."

        return {
            "title": args.title,
            "location": args.location or "All locations",
            "sample_size": len(relevant),
            "salary": {
                "min": min(j.salary_min for j in relevant),  # type: ignore[type-var]
                "max": max(j.salary_max for j in relevant),  # type: ignore[type-var]
                "average": round(statistics.fmean(midpoints)),
                "median": statistics.median(midpoints),
            },
            "recommendation": recommendation,
        }


# ---------------------------------------------------------------------------
# Interview preparation
# ---------------------------------------------------------------------------


class InterviewQuestionsArgs(BaseModel):
    job_id: int | None = Field(default=None, description="Job ID to generate questions for")
    company_name: str | None = Field(default=None, description="Company name")
    question_type: Literal["behavioral", "technical", "situational", "all"] = Field(
        default="all", description="Type of questions to generate"
    )


class InterviewQuestionsTool(AgentTool):
    name = "generate_interview_questions"
    description = "Generate likely interview questions for a specific job or company."
    args_model = InterviewQuestionsArgs

    async def run(self, args: InterviewQuestionsArgs, context: UserContext) -> dict[str, Any]:
        job_context = ""
        if args.job_id is not None:
            job = await self.store.get_job_by_id(args.job_id)
            if job is None:
                return {"error": "Job not found"}
            job_context = f"Role: {job.title} at {job.company}. {job.description}".strip()

        profile = context.profile
        return {
            "context": {
                "job": job_context,
                "company": f"Company: {args.company_name}" if args.company_name else "",
                "user_profile": (
                    {
                        "title": profile.current_title,
                        "skills": profile.skills,
                        "experience": profile.years_of_experience,
                    }
                    if profile is not None
                    else None
                ),
            },
            "question_types": args.question_type,
            "note": "Generate personalized questions based on this context.",
        }


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

TOOL_CLASSES: tuple[type[AgentTool], ...] = (
    SearchJobsTool,
    AnalyzeJobTool,
    CompareJobsTool,
    AnalyzeCompanyTool,
    ProfileGapsTool,
    SalaryInsightsTool,
    InterviewQuestionsTool,
)


class ToolRegistry:
    """Name-to-tool lookup with per-persona subsets."""

    def __init__(self, store: Datastore, matcher: JobMatcher | None = None) -> None:
        matcher = matcher or JobMatcher()
        self._tools: dict[str, AgentTool] = {cls.name: cls(store, matcher) for cls in TOOL_CLASSES}

    def get(self, name: str) -> AgentTool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def for_agent(self, agent_type: AgentType) -> list[AgentTool]:
        return [self._tools[name] for name in get_persona(agent_type).tool_names]
