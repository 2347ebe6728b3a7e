"""Tests for the weighted profile-to-job matcher."""

import pytest

from jobscout.core.schemas import Job, MatchCategory, Profile
from jobscout.pipeline.matcher import WEIGHTS, JobMatcher, match_category, round_half_up


def _profile(**overrides: object) -> Profile:
    defaults: dict[str, object] = {"user_id": 1}
    defaults.update(overrides)
    return Profile(**defaults)  # type: ignore[arg-type]


def _job(**overrides: object) -> Job:
    defaults: dict[str, object] = {"id": 1, "title": "Frontend Developer", "company": "Acme"}
    defaults.update(overrides)
    return Job(**defaults)  # type: ignore[arg-type]


@pytest.fixture()
def matcher() -> JobMatcher:
    return JobMatcher()


# ---------------------------------------------------------------------------
# Total and category
# ---------------------------------------------------------------------------
class TestTotal:
    def test_weights_sum_to_one(self) -> None:
        assert sum(WEIGHTS.values()) == pytest.approx(1.0)

    def test_javascript_react_scenario(self, matcher: JobMatcher) -> None:
        profile = _profile(skills=["JavaScript", "React"])
        job = _job(required_skills=["javascript", "react", "typescript"])
        score = matcher.match(profile, job)
        assert score.skill_score == 67
        assert score.experience_score == 70
        assert score.location_score == 50
        assert score.salary_score == 70
        assert score.industry_score == 60
        assert score.company_score == 70
        # 20.1 + 14 + 7.5 + 10.5 + 6 + 7
        assert score.total_score == 65
        assert score.match_category == MatchCategory.FAIR

    def test_total_is_rounded_weighted_sum(self, matcher: JobMatcher) -> None:
        profile = _profile(
            skills=["python", "sql"],
            years_of_experience=6,
            preferred_locations=["Helsinki"],
            preferred_industries=["fintech"],
            salary_min=5000,
            salary_max=7000,
        )
        job = _job(
            required_skills=["Python", "Kubernetes"],
            experience_required=4,
            location="Helsinki, Finland",
            industry="Fintech",
            salary_min=6000,
            salary_max=8000,
            company_rating=80,
        )
        s = matcher.match(profile, job)
        expected = (
            0.30 * s.skill_score
            + 0.20 * s.experience_score
            + 0.15 * s.location_score
            + 0.15 * s.salary_score
            + 0.10 * s.industry_score
            + 0.10 * s.company_score
        )
        assert s.total_score == round_half_up(expected)
        assert 0 <= s.total_score <= 100

    def test_half_rounds_up(self, matcher: JobMatcher) -> None:
        # 15 + 14 + 7.5 + 10.5 + 6 + 7.5 = 60.5
        score = matcher.match(_profile(), _job(company_rating=75))
        assert score.total_score == 61

    def test_empty_inputs_are_neutral(self, matcher: JobMatcher) -> None:
        score = matcher.match(_profile(), _job())
        assert score.skill_score == 50
        assert score.total_score == 60
        assert score.match_category == MatchCategory.FAIR

    @pytest.mark.parametrize(
        ("total", "category"),
        [
            (100, MatchCategory.PERFECT),
            (90, MatchCategory.PERFECT),
            (89, MatchCategory.GOOD),
            (70, MatchCategory.GOOD),
            (69, MatchCategory.FAIR),
            (50, MatchCategory.FAIR),
            (49, MatchCategory.POSSIBLE),
            (30, MatchCategory.POSSIBLE),
            (29, MatchCategory.WEAK),
            (0, MatchCategory.WEAK),
        ],
    )
    def test_category_thresholds(self, total: int, category: MatchCategory) -> None:
        assert match_category(total) == category


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------
class TestSkillScore:
    def test_no_profile_skills(self, matcher: JobMatcher) -> None:
        assert matcher.skill_score(_profile(), _job(required_skills=["python"])) == 50

    def test_no_skill_data_on_job(self, matcher: JobMatcher) -> None:
        assert matcher.skill_score(_profile(skills=["python"]), _job()) == 50

    def test_explicitly_no_requirements(self, matcher: JobMatcher) -> None:
        assert matcher.skill_score(_profile(skills=["python"]), _job(required_skills=[])) == 70

    def test_substring_either_direction(self, matcher: JobMatcher) -> None:
        profile = _profile(skills=["React Native", "sql"])
        job = _job(required_skills=["react", "PostgreSQL"])
        assert matcher.skill_score(profile, job) == 100

    def test_all_missing(self, matcher: JobMatcher) -> None:
        profile = _profile(skills=["cobol"])
        assert matcher.skill_score(profile, _job(required_skills=["go", "rust"])) == 0

    def test_json_encoded_lists_are_decoded(self, matcher: JobMatcher) -> None:
        profile = _profile(skills='["python"]')
        job = _job(required_skills='["python", "go"]')
        assert matcher.skill_score(profile, job) == 50

    def test_malformed_json_lists_become_empty(self, matcher: JobMatcher) -> None:
        profile = _profile(skills="not json")
        assert profile.skills == []
        assert matcher.skill_score(profile, _job(required_skills=["go"])) == 50


class TestExperienceScore:
    @pytest.mark.parametrize(
        ("years", "required", "expected"),
        [
            (5, 3, 100),
            (3, 3, 100),
            (8, 3, 90),
            (10, 3, 80),
            (2, 3, 80),
            (1, 3, 60),
            (1, 5, 40),
            (0, 3, 70),
            (None, 3, 70),
            (5, None, 70),
        ],
    )
    def test_bands(
        self, matcher: JobMatcher, years: int | None, required: int | None, expected: int
    ) -> None:
        profile = _profile(years_of_experience=years)
        job = _job(experience_required=required)
        assert matcher.experience_score(profile, job) == expected


class TestLocationScore:
    def test_remote_to_remote(self, matcher: JobMatcher) -> None:
        assert matcher.location_score(_profile(remote_preference="remote"), _job(remote_type="remote")) == 100

    def test_hybrid_accepts_remote(self, matcher: JobMatcher) -> None:
        assert matcher.location_score(_profile(remote_preference="hybrid"), _job(remote_type="remote")) == 90

    def test_on_site_to_on_site(self, matcher: JobMatcher) -> None:
        assert matcher.location_score(_profile(remote_preference="on-site"), _job(remote_type="on-site")) == 100

    def test_falls_through_to_geography(self, matcher: JobMatcher) -> None:
        profile = _profile(remote_preference="remote", preferred_locations=["Helsinki"])
        assert matcher.location_score(profile, _job(remote_type="on-site", location="Helsinki")) == 90
        assert matcher.location_score(profile, _job(remote_type="on-site", location="Oulu")) == 30

    def test_missing_location_data(self, matcher: JobMatcher) -> None:
        assert matcher.location_score(_profile(preferred_locations=["Helsinki"]), _job()) == 50
        assert matcher.location_score(_profile(), _job(location="Helsinki")) == 50

    def test_invalid_remote_preference_is_ignored(self) -> None:
        assert _profile(remote_preference="sometimes").remote_preference is None


class TestSalaryScore:
    def test_missing(self, matcher: JobMatcher) -> None:
        assert matcher.salary_score(_profile(salary_min=4000), _job()) == 70
        assert matcher.salary_score(_profile(), _job(salary_min=4000)) == 70

    def test_partial_overlap(self, matcher: JobMatcher) -> None:
        profile = _profile(salary_min=4000, salary_max=6000)
        assert matcher.salary_score(profile, _job(salary_min=5000, salary_max=7000)) == 50

    def test_default_max_multipliers(self, matcher: JobMatcher) -> None:
        # profile 4000-6000, job 5000-6000
        assert matcher.salary_score(_profile(salary_min=4000), _job(salary_min=5000)) == 50

    def test_job_above_range(self, matcher: JobMatcher) -> None:
        profile = _profile(salary_min=4000, salary_max=5000)
        assert matcher.salary_score(profile, _job(salary_min=7000, salary_max=8000)) == 100

    def test_job_below_range(self, matcher: JobMatcher) -> None:
        profile = _profile(salary_min=5000, salary_max=6000)
        assert matcher.salary_score(profile, _job(salary_min=3000, salary_max=4000)) == 80

    def test_far_below_floors_at_zero(self, matcher: JobMatcher) -> None:
        profile = _profile(salary_min=10000, salary_max=12000)
        assert matcher.salary_score(profile, _job(salary_min=100, salary_max=200)) == 2
        profile = _profile(salary_min=1000, salary_max=1200)
        assert matcher.salary_score(profile, _job(salary_min=1, salary_max=1)) == 0

    def test_zero_width_profile_range(self, matcher: JobMatcher) -> None:
        profile = _profile(salary_min=5000, salary_max=5000)
        assert matcher.salary_score(profile, _job(salary_min=4000, salary_max=6000)) == 100


class TestIndustryAndCompany:
    def test_industry(self, matcher: JobMatcher) -> None:
        profile = _profile(preferred_industries=["Software"])
        assert matcher.industry_score(profile, _job()) == 60
        assert matcher.industry_score(profile, _job(industry="software development")) == 100
        assert matcher.industry_score(profile, _job(industry="retail")) == 40

    def test_company_rating(self, matcher: JobMatcher) -> None:
        assert matcher.company_score(_job()) == 70
        assert matcher.company_score(_job(company_rating=85)) == 85
        assert matcher.company_score(_job(company_rating=0)) == 70
