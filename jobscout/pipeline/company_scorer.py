"""Company-level scoring from recent events and open positions.

Talent need estimates how likely a company is to hire soon; profile match
estimates how relevant those openings are to one candidate. Both are
clamped to 0-100 and blended 50/50 when a profile is available.
"""

import logging
from datetime import datetime

from jobscout.core.schemas import (
    Company,
    CompanyScore,
    Event,
    EventType,
    Job,
    Profile,
    RankedCompany,
)

logger = logging.getLogger(__name__)

DEFAULT_IMPACT = 3
JOB_BONUS_PER_POSITION = 5
JOB_BONUS_CAP = 30
TARGET_SENIORITY = frozenset({"senior", "lead"})
REMOTE_KEYWORDS = ("remote", "etä")

EVENT_BONUS = 15
FUNCTION_BONUS = 10
LOCATION_BONUS = 5
REMOTE_BONUS = 3
SENIORITY_BONUS = 10
INDUSTRY_BONUS = 15


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def _event_contribution(event: Event) -> tuple[int, str] | None:
    """Points and reason for one event, or None when the type carries no signal."""
    impact = event.impact_strength if event.impact_strength is not None else DEFAULT_IMPACT
    event_type = event.event_type

    if event_type == EventType.FUNDING:
        return 20 + 5 * impact, f"Funding round (impact {impact}/5)"
    if event_type == EventType.EXPANSION:
        return 15 + 4 * impact, "Growing and expanding"
    if event_type == EventType.NEW_UNIT:
        return 15 + 3 * impact, "New unit or market"
    if event_type == EventType.ACQUISITION:
        return 10 + 3 * impact, "Acquisition, integration hires likely"
    if event_type == EventType.LEADERSHIP_CHANGE:
        return 10, "Leadership change"
    if event_type == EventType.YT_LAYOFF:
        if impact >= 4:
            return 5, "Large layoff negotiations, rebuild may follow"
        return -5, "Layoff negotiations under way"
    if event_type == EventType.YT_RESTRUCTURE:
        return 5, "Restructuring, new roles emerging"
    return None


class CompanyScorer:
    """Computes talent-need and profile-match scores for companies."""

    def talent_need(
        self, company: Company, events: list[Event], jobs: list[Job]
    ) -> tuple[float, list[str]]:
        score = 0.0
        reasons: list[str] = []

        for event in events:
            contribution = _event_contribution(event)
            if contribution is None:
                continue
            points, reason = contribution
            score += points
            reasons.append(reason)

        if jobs:
            score += min(JOB_BONUS_CAP, JOB_BONUS_PER_POSITION * len(jobs))
            reasons.append(f"{len(jobs)} open positions")

        return _clamp(score), reasons

    def profile_match(
        self,
        company: Company,
        events: list[Event],
        jobs: list[Job],
        profile: Profile | None,
    ) -> tuple[float, list[str]]:
        if profile is None:
            return 0.0, []

        score = 0.0
        reasons: list[str] = []
        target_functions = {f.lower().strip() for f in profile.target_functions if f.strip()}
        target_locations = [loc.lower().strip() for loc in profile.preferred_locations if loc.strip()]

        for event in events:
            matching = [f for f in event.function_focus if f.lower() in target_functions]
            if matching:
                score += EVENT_BONUS
                reasons.append(f"Event affects: {', '.join(matching)}")

        matching_jobs = 0
        for job in jobs:
            job_points = 0
            if job.function_type and job.function_type.lower() in target_functions:
                job_points += FUNCTION_BONUS
            if job.location:
                location = job.location.lower()
                if any(loc in location for loc in target_locations):
                    job_points += LOCATION_BONUS
                if any(kw in location for kw in REMOTE_KEYWORDS):
                    job_points += REMOTE_BONUS
            if job.seniority_level and job.seniority_level.lower() in TARGET_SENIORITY:
                job_points += SENIORITY_BONUS
            if job_points:
                matching_jobs += 1
                score += job_points

        if matching_jobs:
            reasons.append(f"{matching_jobs} suitable open positions")

        if company.industry:
            industry = company.industry.lower().strip()
            if any(i.lower().strip() == industry for i in profile.preferred_industries):
                score += INDUSTRY_BONUS
                reasons.append(f"Industry fits: {company.industry}")

        return _clamp(score), reasons

    def combine(self, talent_need: float, profile_match: float, has_profile: bool) -> float:
        if has_profile:
            return _clamp(0.5 * talent_need + 0.5 * profile_match)
        return _clamp(talent_need)

    def score(
        self,
        company: Company,
        events: list[Event],
        jobs: list[Job],
        profile: Profile | None = None,
        user_id: int = 0,
    ) -> CompanyScore:
        """Score one company. Talent-need reasons come before profile-match reasons."""
        talent_need, need_reasons = self.talent_need(company, events, jobs)
        profile_match, match_reasons = self.profile_match(company, events, jobs, profile)
        combined = self.combine(talent_need, profile_match, profile is not None)

        logger.debug(
            "Scored '%s': need=%.0f match=%.0f combined=%.1f",
            company.name,
            talent_need,
            profile_match,
            combined,
        )
        return CompanyScore(
            company_id=company.id,
            user_id=user_id,
            talent_need_score=talent_need,
            profile_match_score=profile_match,
            combined_score=combined,
            reasons=need_reasons + match_reasons,
            calculated_at=datetime.now(),
        )


def format_company_report(ranked: RankedCompany, events: list[Event], jobs: list[Job]) -> str:
    """Render a plain-text report for one scored company."""
    score = ranked.score
    rule = "=" * 60
    lines = [
        rule,
        ranked.company.name,
        rule,
        "",
        "SCORES:",
        f"   Talent need:   {score.talent_need_score:.0f}/100",
        f"   Profile match: {score.profile_match_score:.0f}/100",
        f"   Combined:      {score.combined_score:.0f}/100",
        "",
        "WHY LISTED:",
    ]
    lines.extend(f"   - {reason}" for reason in score.reasons)

    if events:
        lines += ["", "RECENT EVENTS:"]
        for event in events[:3]:
            lines.append(f"   - [{event.event_type.value}] {event.headline[:60]}")

    if jobs:
        lines += ["", f"OPEN POSITIONS ({len(jobs)}):"]
        for job in jobs[:5]:
            lines.append(f"   - {job.title} ({job.location or 'N/A'})")

    lines.append("")
    return "\n".join(lines)
