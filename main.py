"""CLI entry point for the JobScout signal engine."""

import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from jobscout.agents.context import ContextAssembler, format_context
from jobscout.agents.orchestrator import AgentOrchestrator, ChatRequest, ConversationNotFoundError
from jobscout.agents.tools import ToolRegistry
from jobscout.core.config import Settings
from jobscout.core.db import SQLiteStore
from jobscout.core.schemas import AgentType, Job, Profile
from jobscout.documents.extractor import extract_attachment_text
from jobscout.llm import get_provider
from jobscout.pipeline.company_scorer import CompanyScorer
from jobscout.pipeline.matcher import JobMatcher
from jobscout.pipeline.orchestrator import (
    build_company_reports,
    run_full_pipeline,
    run_match_pass,
    run_news_pass,
    run_scoring_pass,
)
from jobscout.profile.analyzer import build_cv_analyzer, merge_cv_profile
from jobscout.signals.classifier import build_classifier
from jobscout.signals.news import JsonFileNewsSource

logger = logging.getLogger(__name__)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML file (default: built-in defaults)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def _add_user(parser: argparse.ArgumentParser, required: bool = True) -> None:
    parser.add_argument(
        "--user-id",
        type=int,
        required=required,
        default=0,
        help="User whose profile and scores to use",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="JobScout - company hiring signals, job matching and career assistants",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    classify_parser = subparsers.add_parser(
        "classify", help="Classify news items from a JSON file into company events"
    )
    classify_parser.add_argument("--news", required=True, help="Path to news JSON file")
    classify_parser.add_argument("--days-back", type=int, default=None, help="News window")
    _add_common(classify_parser)

    score_parser = subparsers.add_parser("score", help="Recompute company scores")
    _add_user(score_parser, required=False)
    score_parser.add_argument("--days-back", type=int, default=None, help="Event window")
    _add_common(score_parser)

    match_parser = subparsers.add_parser("match", help="Score stored jobs against a profile")
    _add_user(match_parser)
    _add_common(match_parser)

    pipeline_parser = subparsers.add_parser("pipeline", help="Classify news, then score")
    pipeline_parser.add_argument("--news", required=True, help="Path to news JSON file")
    _add_user(pipeline_parser, required=False)
    _add_common(pipeline_parser)

    companies_parser = subparsers.add_parser("companies", help="Show top scored companies")
    _add_user(companies_parser, required=False)
    companies_parser.add_argument("--limit", type=int, default=10, help="Companies to show")
    _add_common(companies_parser)

    events_parser = subparsers.add_parser("events", help="Show recent company events")
    events_parser.add_argument("--days-back", type=int, default=30, help="Event window")
    events_parser.add_argument("--limit", type=int, default=50, help="Events to show")
    _add_common(events_parser)

    context_parser = subparsers.add_parser("context", help="Print the agent context for a user")
    _add_user(context_parser)
    _add_common(context_parser)

    import_jobs_parser = subparsers.add_parser("import-jobs", help="Load jobs from a JSON file")
    import_jobs_parser.add_argument("--jobs", required=True, help="Path to jobs JSON file")
    _add_common(import_jobs_parser)

    profile_parser = subparsers.add_parser(
        "load-profile", help="Load a profile from YAML or extract it from a CV"
    )
    source_group = profile_parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument("--profile", help="Path to profile YAML")
    source_group.add_argument("--cv", help="Path to a .pdf/.txt/.md CV analyzed by the LLM")
    _add_user(profile_parser)
    _add_common(profile_parser)

    chat_parser = subparsers.add_parser("chat", help="Send one message to an assistant")
    _add_user(chat_parser)
    chat_parser.add_argument(
        "--agent",
        default=AgentType.CAREER_COACH.value,
        choices=[a.value for a in AgentType],
        help="Assistant persona (default: career_coach)",
    )
    chat_parser.add_argument("--message", required=True, help="Message text")
    chat_parser.add_argument("--conversation-id", type=int, default=None)
    chat_parser.add_argument("--attach", default=None, help="Attach a .pdf/.txt/.md file")
    _add_common(chat_parser)

    conversations_parser = subparsers.add_parser(
        "conversations", help="List or delete a user's conversations"
    )
    _add_user(conversations_parser)
    conversations_parser.add_argument("--delete", type=int, default=None, metavar="ID")
    _add_common(conversations_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str | None) -> Settings:
    return Settings.from_yaml(path) if path else Settings()


async def cmd_classify(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    classifier = build_classifier(settings.classifier)
    days_back = args.days_back or settings.pipeline.news_days_back
    result = await run_news_pass(JsonFileNewsSource(args.news), classifier, store, days_back)
    print(
        f"News: {result.fetched} fetched, {result.relevant} relevant, "
        f"{result.classified} classified, {result.discarded} discarded, "
        f"{result.created} events created, {result.failed} failed"
    )


async def cmd_score(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    days_back = args.days_back or settings.pipeline.score_days_back
    result = await run_scoring_pass(
        store, CompanyScorer(), args.user_id, days_back, settings.pipeline
    )
    print(f"Scores: {result.processed} companies, {result.scored} scored, {result.failed} failed")


async def cmd_match(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    result = await run_match_pass(
        store, JobMatcher(), args.user_id, settings.pipeline.match_job_limit
    )
    print(f"Matches: {result.processed} jobs, {result.matched} matched, {result.failed} failed")
    for match in await store.get_matches_by_user_id(args.user_id, 10):
        print(
            f"  {match.score.total_score:3d}  {match.score.match_category.value:<8}  "
            f"{match.job.title} @ {match.job.company}"
        )


async def cmd_pipeline(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    result = await run_full_pipeline(
        JsonFileNewsSource(args.news),
        build_classifier(settings.classifier),
        store,
        CompanyScorer(),
        args.user_id,
        settings.pipeline,
    )
    print(
        f"Pipeline complete: {result.news.fetched} news fetched, "
        f"{result.news.created} events created, {result.scoring.scored} scores calculated"
    )


async def cmd_companies(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    reports = await build_company_reports(store, args.user_id, args.limit)
    if not reports:
        print("No company scores yet. Run: python main.py pipeline --news FILE")
    for report in reports:
        print(report)


async def cmd_events(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    events = await store.get_recent_events(args.days_back, args.limit)
    print(f"Events in the last {args.days_back} days: {len(events)}")
    for event in events:
        print(
            f"  {event.published_at:%Y-%m-%d}  {event.event_type.value:<17}  "
            f"{event.company_name}: {event.headline}"
        )


async def cmd_context(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    context = await ContextAssembler(store, settings.context).build(args.user_id)
    print(format_context(context))


async def cmd_import_jobs(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    path = Path(args.jobs)
    if not path.exists():
        msg = f"Jobs file not found: {path}"
        raise FileNotFoundError(msg)
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        msg = f"Jobs file must contain a JSON array: {path}"
        raise ValueError(msg)

    imported = 0
    for entry in raw:
        try:
            job = Job.model_validate(entry)
        except ValidationError as e:
            logger.warning("Skipping invalid job entry: %s", e.errors()[0]["msg"])
            continue
        await store.upsert_job(job)
        imported += 1
    print(f"Imported {imported} of {len(raw)} jobs from {path}")


async def cmd_load_profile(
    args: argparse.Namespace, settings: Settings, store: SQLiteStore
) -> None:
    if args.cv:
        await _load_profile_from_cv(args, settings, store)
        return

    path = Path(args.profile)
    if not path.exists():
        msg = f"Profile file not found: {path}"
        raise FileNotFoundError(msg)
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    profile = Profile.model_validate({**raw, "user_id": args.user_id})
    await store.upsert_profile(profile)
    print(f"Profile for user {args.user_id} saved ({len(profile.skills)} skills)")


async def _load_profile_from_cv(
    args: argparse.Namespace, settings: Settings, store: SQLiteStore
) -> None:
    path = Path(args.cv)
    if not path.exists():
        msg = f"CV file not found: {path}"
        raise FileNotFoundError(msg)
    cv_text = extract_attachment_text(
        path.name, base64.b64encode(path.read_bytes()).decode("ascii")
    )
    parsed = await build_cv_analyzer(settings.cv).analyze(cv_text, args.user_id)
    existing = await store.get_profile_by_user_id(args.user_id)
    profile = await store.upsert_profile(merge_cv_profile(existing, parsed))
    print(
        f"Profile for user {args.user_id} updated from CV "
        f"({len(profile.skills)} skills, {len(profile.work_history)} positions)"
    )


async def cmd_chat(args: argparse.Namespace, settings: Settings, store: SQLiteStore) -> None:
    file_name = file_base64 = None
    if args.attach:
        attachment = Path(args.attach)
        if not attachment.exists():
            msg = f"Attachment not found: {attachment}"
            raise FileNotFoundError(msg)
        file_name = attachment.name
        file_base64 = base64.b64encode(attachment.read_bytes()).decode("ascii")

    orchestrator = AgentOrchestrator(
        store,
        get_provider(settings.agent.provider),
        ToolRegistry(store),
        ContextAssembler(store, settings.context),
        settings.agent,
    )
    request = ChatRequest(
        message=args.message,
        agent_type=AgentType(args.agent),
        conversation_id=args.conversation_id,
        file_name=file_name,
        file_base64=file_base64,
    )
    response = await orchestrator.chat(request, args.user_id)

    print(f"[conversation {response.conversation_id}]\n")
    print(response.message.content)
    if response.message.tool_calls:
        print(f"\nTools used: {', '.join(c.name for c in response.message.tool_calls)}")
    print("\nYou could ask next:")
    for follow_up in response.suggested_follow_ups:
        print(f"  - {follow_up}")


async def cmd_conversations(
    args: argparse.Namespace, settings: Settings, store: SQLiteStore
) -> None:
    orchestrator = AgentOrchestrator(
        store,
        get_provider(settings.agent.provider),
        ToolRegistry(store),
        ContextAssembler(store, settings.context),
        settings.agent,
    )
    if args.delete is not None:
        await orchestrator.delete_conversation(args.delete, args.user_id)
        print(f"Deleted conversation {args.delete}")
        return
    for conversation in await orchestrator.list_conversations(args.user_id):
        print(
            f"  {conversation.id:4d}  {conversation.agent_type.value:<15}  "
            f"{conversation.updated_at:%Y-%m-%d %H:%M}  {conversation.title}"
        )


COMMANDS = {
    "classify": cmd_classify,
    "score": cmd_score,
    "match": cmd_match,
    "pipeline": cmd_pipeline,
    "companies": cmd_companies,
    "events": cmd_events,
    "context": cmd_context,
    "import-jobs": cmd_import_jobs,
    "load-profile": cmd_load_profile,
    "chat": cmd_chat,
    "conversations": cmd_conversations,
}


async def run(args: argparse.Namespace, settings: Settings) -> None:
    store = SQLiteStore.open(settings.database.path)
    try:
        await COMMANDS[args.command](args, settings, store)
    finally:
        store.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(run(args, settings))
    except ConversationNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (FileNotFoundError, ImportError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
