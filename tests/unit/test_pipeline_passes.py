"""Tests for the batch passes with an in-memory news source and a mocked datastore."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

from jobscout.core.schemas import (
    ClassifiedEvent,
    Company,
    Event,
    EventType,
    Job,
    Profile,
    RawNewsItem,
)
from jobscout.pipeline.company_scorer import CompanyScorer
from jobscout.pipeline.matcher import JobMatcher
from jobscout.pipeline.orchestrator import run_match_pass, run_news_pass, run_scoring_pass
from jobscout.signals.classifier import EventClassifier
from jobscout.signals.news import NewsSource


class _ListSource(NewsSource):
    def __init__(self, items: list[RawNewsItem]) -> None:
        self.items = items
        self.days_back: int | None = None

    async def fetch(self, days_back: int) -> list[RawNewsItem]:
        self.days_back = days_back
        return self.items


def _news(headline: str) -> RawNewsItem:
    return RawNewsItem(headline=headline, published_at=datetime(2024, 5, 1))


def _store() -> MagicMock:
    store = MagicMock()
    store.get_or_create_company = AsyncMock(
        side_effect=lambda name: Company(id=len(name), name=name)
    )
    store.create_event = AsyncMock()
    store.get_profile_by_user_id = AsyncMock(return_value=None)
    store.get_active_companies = AsyncMock(return_value=[])
    store.get_events_by_company_id = AsyncMock(return_value=[])
    store.get_jobs_by_company_id = AsyncMock(return_value=[])
    store.upsert_company_score = AsyncMock()
    store.get_jobs = AsyncMock(return_value=[])
    store.upsert_job_match = AsyncMock()
    return store


# ---------------------------------------------------------------------------
# News pass
# ---------------------------------------------------------------------------
class TestNewsPass:
    async def test_counts(self) -> None:
        source = _ListSource(
            [
                _news("Nokia aloittaa yt-neuvottelut"),
                _news("Wolt rekrytoi 50 kehittäjää"),
                _news("Sää on kaunis"),
                _news("irtisanomiset jatkuvat"),
            ]
        )
        store = _store()
        result = await run_news_pass(source, EventClassifier(None), store, days_back=7)

        assert source.days_back == 7
        assert result.fetched == 4
        assert result.relevant == 3
        assert result.classified == 2
        assert result.discarded == 1
        assert result.created == 2
        assert result.failed == 0
        names = [c.args[0] for c in store.get_or_create_company.await_args_list]
        assert names == ["Nokia", "Wolt"]

    async def test_item_failure_is_isolated(self) -> None:
        store = _store()
        store.create_event = AsyncMock(side_effect=[RuntimeError("locked"), None])
        source = _ListSource([_news("Nokia irtisanoo"), _news("Kone ostaa yrityksen")])
        result = await run_news_pass(source, EventClassifier(None), store)
        assert result.failed == 1
        assert result.created == 1
        assert result.classified == 2

    async def test_event_carries_classification(self) -> None:
        store = _store()
        source = _ListSource([_news("Nokia irtisanoo")])
        await run_news_pass(source, EventClassifier(None), store)
        company_id, event = store.create_event.await_args.args
        assert company_id == len("Nokia")
        assert isinstance(event, ClassifiedEvent)
        assert event.event_type == EventType.YT_LAYOFF


# ---------------------------------------------------------------------------
# Scoring pass
# ---------------------------------------------------------------------------
class TestScoringPass:
    async def test_scores_each_active_company(self) -> None:
        store = _store()
        store.get_active_companies = AsyncMock(
            return_value=[Company(id=1, name="Wolt"), Company(id=2, name="Kone")]
        )
        store.get_events_by_company_id = AsyncMock(
            return_value=[Event(id=1, company_id=1, event_type=EventType.FUNDING, impact_strength=5)]
        )
        result = await run_scoring_pass(store, CompanyScorer(), days_back=10)

        assert (result.processed, result.scored, result.failed) == (2, 2, 0)
        store.get_active_companies.assert_awaited_once_with(10)
        store.get_profile_by_user_id.assert_not_awaited()
        scores = [c.args[0] for c in store.upsert_company_score.await_args_list]
        assert [s.company_id for s in scores] == [1, 2]
        assert all(s.combined_score == 45 and s.user_id == 0 for s in scores)

    async def test_user_profile_is_used(self) -> None:
        store = _store()
        store.get_profile_by_user_id = AsyncMock(
            return_value=Profile(user_id=7, target_functions=["it"])
        )
        store.get_active_companies = AsyncMock(return_value=[Company(id=1, name="Wolt")])
        store.get_events_by_company_id = AsyncMock(
            return_value=[
                Event(
                    id=1,
                    company_id=1,
                    event_type=EventType.FUNDING,
                    impact_strength=5,
                    function_focus=["it"],
                )
            ]
        )
        await run_scoring_pass(store, CompanyScorer(), user_id=7)
        score = store.upsert_company_score.await_args.args[0]
        assert score.user_id == 7
        assert score.profile_match_score == 15
        assert score.combined_score == 30

    async def test_company_failure_is_isolated(self) -> None:
        store = _store()
        store.get_active_companies = AsyncMock(
            return_value=[Company(id=1, name="Wolt"), Company(id=2, name="Kone")]
        )
        store.get_jobs_by_company_id = AsyncMock(side_effect=[RuntimeError("boom"), []])
        result = await run_scoring_pass(store, CompanyScorer())
        assert (result.processed, result.scored, result.failed) == (2, 1, 1)


# ---------------------------------------------------------------------------
# Match pass
# ---------------------------------------------------------------------------
class TestMatchPass:
    async def test_without_profile_does_nothing(self) -> None:
        store = _store()
        result = await run_match_pass(store, JobMatcher(), user_id=7)
        assert result.processed == 0
        store.get_jobs.assert_not_awaited()

    async def test_matches_jobs(self) -> None:
        store = _store()
        store.get_profile_by_user_id = AsyncMock(return_value=Profile(user_id=7))
        store.get_jobs = AsyncMock(
            return_value=[Job(id=1, title="A"), Job(id=2, title="B"), Job(title="no id")]
        )
        result = await run_match_pass(store, JobMatcher(), user_id=7, limit=50)
        assert (result.processed, result.matched, result.failed) == (3, 2, 1)
        store.get_jobs.assert_awaited_once_with(50)
        user_id, job_id, score = store.upsert_job_match.await_args_list[0].args
        assert (user_id, job_id) == (7, 1)
        assert score.total_score == 60
