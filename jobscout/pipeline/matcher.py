"""Weighted profile-to-job compatibility scoring.

Six sub-scores in 0-100, combined with fixed weights:

  skill 0.30, experience 0.20, location 0.15,
  salary 0.15, industry 0.10, company 0.10

Missing data on either side yields a neutral sub-score, never an error.
"""

import logging
import math

from jobscout.core.schemas import Job, MatchCategory, MatchScore, Profile, RemotePreference

logger = logging.getLogger(__name__)

WEIGHTS = {
    "skill": 0.30,
    "experience": 0.20,
    "location": 0.15,
    "salary": 0.15,
    "industry": 0.10,
    "company": 0.10,
}

# Inclusive lower bounds, checked top-down.
CATEGORY_THRESHOLDS: tuple[tuple[int, MatchCategory], ...] = (
    (90, MatchCategory.PERFECT),
    (70, MatchCategory.GOOD),
    (50, MatchCategory.FAIR),
    (30, MatchCategory.POSSIBLE),
)


def round_half_up(value: float) -> int:
    """Round .5 up for non-negative scores. Builtin round() rounds half to even."""
    return math.floor(value + 0.5 + 1e-9)


def match_category(total: int) -> MatchCategory:
    for threshold, category in CATEGORY_THRESHOLDS:
        if total >= threshold:
            return category
    return MatchCategory.WEAK


def _normalized(values: list[str]) -> list[str]:
    return [v.lower().strip() for v in values if v and v.strip()]


def _overlaps(needle: str, candidates: list[str]) -> bool:
    return any(needle in c or c in needle for c in candidates)


class JobMatcher:
    """Scores how well a job fits a candidate profile.

    Usage::

        score = JobMatcher().match(profile, job)
        print(score.total_score, score.match_category)
    """

    def match(self, profile: Profile, job: Job) -> MatchScore:
        skill = self.skill_score(profile, job)
        experience = self.experience_score(profile, job)
        location = self.location_score(profile, job)
        salary = self.salary_score(profile, job)
        industry = self.industry_score(profile, job)
        company = self.company_score(job)

        weighted = (
            skill * WEIGHTS["skill"]
            + experience * WEIGHTS["experience"]
            + location * WEIGHTS["location"]
            + salary * WEIGHTS["salary"]
            + industry * WEIGHTS["industry"]
            + company * WEIGHTS["company"]
        )
        total = max(0, min(100, round_half_up(weighted)))

        return MatchScore(
            total_score=total,
            skill_score=skill,
            experience_score=experience,
            location_score=location,
            salary_score=salary,
            industry_score=industry,
            company_score=company,
            match_category=match_category(total),
        )

    def skill_score(self, profile: Profile, job: Job) -> int:
        user_skills = _normalized(profile.skills)
        if not user_skills or job.required_skills is None:
            return 50

        required = _normalized(job.required_skills)
        if not required:
            return 70

        matched = sum(1 for skill in required if _overlaps(skill, user_skills))
        return min(100, round_half_up(matched / len(required) * 100))

    def experience_score(self, profile: Profile, job: Job) -> int:
        user_years = profile.years_of_experience
        required = job.experience_required
        if not user_years or not required:
            return 70

        if user_years >= required:
            surplus = user_years - required
            if surplus <= 2:
                return 100
            if surplus <= 5:
                return 90
            return 80

        deficit = required - user_years
        if deficit <= 1:
            return 80
        if deficit <= 2:
            return 60
        return 40

    def location_score(self, profile: Profile, job: Job) -> int:
        preference = profile.remote_preference
        remote_type = (job.remote_type or "").lower().strip()
        if preference == RemotePreference.REMOTE and remote_type == "remote":
            return 100
        if preference == RemotePreference.HYBRID and remote_type in ("hybrid", "remote"):
            return 90
        if preference == RemotePreference.ON_SITE and remote_type == "on-site":
            return 100

        preferred = _normalized(profile.preferred_locations)
        location = (job.location or "").lower().strip()
        if not preferred or not location:
            return 50
        return 90 if _overlaps(location, preferred) else 30

    def salary_score(self, profile: Profile, job: Job) -> int:
        if not profile.salary_min or not job.salary_min:
            return 70

        user_min = float(profile.salary_min)
        user_max = float(profile.salary_max or user_min * 1.5)
        job_min = float(job.salary_min)
        job_max = float(job.salary_max or job_min * 1.2)

        if job_max >= user_min and job_min <= user_max:
            user_range = user_max - user_min
            if user_range <= 0:
                return 100
            overlap = min(job_max, user_max) - max(job_min, user_min)
            return max(0, min(100, round_half_up(overlap / user_range * 100)))

        if job_min > user_max:
            return 100

        deficit = user_min - job_max
        return max(0, round_half_up(100 - deficit / user_min * 100))

    def industry_score(self, profile: Profile, job: Job) -> int:
        preferred = _normalized(profile.preferred_industries)
        industry = (job.industry or "").lower().strip()
        if not preferred or not industry:
            return 60
        return 100 if _overlaps(industry, preferred) else 40

    def company_score(self, job: Job) -> int:
        # 0 means unrated
        return job.company_rating or 70
