"""Batch passes: news to events, active companies to scores, jobs to matches.

Data flow:
  1. NewsSource.fetch → relevance filter → EventClassifier → events
  2. Active companies → CompanyScorer → company_scores (upsert)
  3. Stored jobs → JobMatcher → job_matches (upsert)

Each pass isolates per-item failures and reports aggregate counts.
"""

import logging

from pydantic import BaseModel

from jobscout.core.config import PipelineConfig
from jobscout.core.store import Datastore
from jobscout.pipeline.company_scorer import CompanyScorer, format_company_report
from jobscout.pipeline.matcher import JobMatcher
from jobscout.signals.classifier import EventClassifier
from jobscout.signals.news import NewsSource, filter_relevant

logger = logging.getLogger(__name__)


class NewsPassResult(BaseModel):
    fetched: int = 0
    relevant: int = 0
    classified: int = 0
    discarded: int = 0
    created: int = 0
    failed: int = 0


class ScoringPassResult(BaseModel):
    processed: int = 0
    scored: int = 0
    failed: int = 0


class MatchPassResult(BaseModel):
    processed: int = 0
    matched: int = 0
    failed: int = 0


class PipelineResult(BaseModel):
    """Outcome of a news pass followed by a scoring pass."""

    news: NewsPassResult
    scoring: ScoringPassResult


async def run_news_pass(
    source: NewsSource,
    classifier: EventClassifier,
    store: Datastore,
    days_back: int = 14,
) -> NewsPassResult:
    """Fetch, filter and classify news, persisting one event per attributed item."""
    result = NewsPassResult()

    news = await source.fetch(days_back)
    result.fetched = len(news)
    relevant = filter_relevant(news)
    result.relevant = len(relevant)

    for item in relevant:
        try:
            event = await classifier.classify(item)
            if event is None:
                result.discarded += 1
                continue
            result.classified += 1
            company = await store.get_or_create_company(event.company_name)
            await store.create_event(company.id, event)
            result.created += 1
        except Exception:
            logger.exception("Failed to process news item '%s'", item.headline[:80])
            result.failed += 1

    logger.info(
        "News pass: %d fetched, %d relevant, %d classified, %d created, %d failed",
        result.fetched,
        result.relevant,
        result.classified,
        result.created,
        result.failed,
    )
    return result


async def run_scoring_pass(
    store: Datastore,
    scorer: CompanyScorer,
    user_id: int = 0,
    days_back: int = 30,
    config: PipelineConfig | None = None,
) -> ScoringPassResult:
    """Recompute company scores for every company with recent events.

    ``user_id`` 0 scores on talent need alone.
    """
    config = config or PipelineConfig()
    result = ScoringPassResult()

    profile = await store.get_profile_by_user_id(user_id) if user_id else None
    companies = await store.get_active_companies(days_back)

    for company in companies:
        result.processed += 1
        try:
            events = await store.get_events_by_company_id(company.id, config.events_per_company)
            jobs = await store.get_jobs_by_company_id(company.id, config.jobs_per_company)
            score = scorer.score(company, events, jobs, profile, user_id)
            await store.upsert_company_score(score)
            result.scored += 1
        except Exception:
            logger.exception("Failed to score company '%s'", company.name)
            result.failed += 1

    logger.info(
        "Scoring pass: %d processed, %d scored, %d failed",
        result.processed,
        result.scored,
        result.failed,
    )
    return result


async def run_match_pass(
    store: Datastore,
    matcher: JobMatcher,
    user_id: int,
    limit: int = 200,
) -> MatchPassResult:
    """Score stored jobs against the user's profile and upsert the matches."""
    result = MatchPassResult()

    profile = await store.get_profile_by_user_id(user_id)
    if profile is None:
        logger.info("No profile for user %d, skipping match pass", user_id)
        return result

    for job in await store.get_jobs(limit):
        result.processed += 1
        if job.id is None:
            result.failed += 1
            continue
        try:
            score = matcher.match(profile, job)
            await store.upsert_job_match(user_id, job.id, score)
            result.matched += 1
        except Exception:
            logger.exception("Failed to match job '%s'", job.title)
            result.failed += 1

    logger.info(
        "Match pass: %d processed, %d matched, %d failed",
        result.processed,
        result.matched,
        result.failed,
    )
    return result


async def run_full_pipeline(
    source: NewsSource,
    classifier: EventClassifier,
    store: Datastore,
    scorer: CompanyScorer,
    user_id: int = 0,
    config: PipelineConfig | None = None,
) -> PipelineResult:
    """Run the news pass and then the scoring pass."""
    config = config or PipelineConfig()
    logger.info("Starting full pipeline")
    news = await run_news_pass(source, classifier, store, config.news_days_back)
    scoring = await run_scoring_pass(store, scorer, user_id, config.score_days_back, config)
    logger.info("Pipeline complete")
    return PipelineResult(news=news, scoring=scoring)


async def build_company_reports(store: Datastore, user_id: int, limit: int = 20) -> list[str]:
    """Plain-text reports for the user's top scored companies."""
    reports: list[str] = []
    for ranked in await store.get_top_company_scores(user_id, limit):
        events = await store.get_events_by_company_id(ranked.company.id, 5)
        jobs = await store.get_jobs_by_company_id(ranked.company.id, 10)
        reports.append(format_company_report(ranked, events, jobs))
    return reports
