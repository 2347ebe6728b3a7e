"""SQLite datastore for companies, events, jobs, profiles, scores and conversations.

List-valued fields are stored as JSON text and decoded only here.
"""

import json
import logging
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

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
from jobscout.core.store import Datastore

logger = logging.getLogger(__name__)

_COMPANIES_TABLE = """
CREATE TABLE IF NOT EXISTS companies (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT    NOT NULL,
    name_key        TEXT    NOT NULL UNIQUE,
    industry        TEXT,
    website         TEXT,
    description     TEXT,
    employee_count  INTEGER,
    headquarters    TEXT,
    created_at      TEXT    NOT NULL
);
"""

_EVENTS_TABLE = """
CREATE TABLE IF NOT EXISTS events (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    company_id      INTEGER NOT NULL REFERENCES companies(id),
    event_type      TEXT    NOT NULL,
    headline        TEXT    NOT NULL DEFAULT '',
    summary         TEXT    NOT NULL DEFAULT '',
    source_url      TEXT    NOT NULL DEFAULT '',
    impact_strength INTEGER,
    function_focus  TEXT    NOT NULL DEFAULT '[]',
    affected_count  INTEGER,
    confidence      REAL    NOT NULL DEFAULT 0.0,
    published_at    TEXT    NOT NULL,
    created_at      TEXT    NOT NULL
);
"""

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id         TEXT    NOT NULL,
    source              TEXT    NOT NULL DEFAULT '',
    title               TEXT    NOT NULL,
    company             TEXT    NOT NULL DEFAULT '',
    company_id          INTEGER REFERENCES companies(id),
    description         TEXT    NOT NULL DEFAULT '',
    location            TEXT,
    salary_min          INTEGER,
    salary_max          INTEGER,
    employment_type     TEXT,
    remote_type         TEXT,
    industry            TEXT,
    required_skills     TEXT,
    experience_required INTEGER,
    function_type       TEXT,
    seniority_level     TEXT,
    posted_at           TEXT,
    expires_at          TEXT,
    url                 TEXT    NOT NULL DEFAULT '',
    company_rating      INTEGER,
    UNIQUE(source, external_id)
);
"""

_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id              INTEGER PRIMARY KEY,
    current_title        TEXT,
    years_of_experience  INTEGER,
    skills               TEXT NOT NULL DEFAULT '[]',
    languages            TEXT NOT NULL DEFAULT '[]',
    certifications       TEXT NOT NULL DEFAULT '[]',
    degree               TEXT,
    field                TEXT,
    preferred_job_titles TEXT NOT NULL DEFAULT '[]',
    preferred_industries TEXT NOT NULL DEFAULT '[]',
    preferred_locations  TEXT NOT NULL DEFAULT '[]',
    employment_types     TEXT NOT NULL DEFAULT '[]',
    salary_min           INTEGER,
    salary_max           INTEGER,
    remote_preference    TEXT,
    work_history         TEXT NOT NULL DEFAULT '[]',
    target_functions     TEXT NOT NULL DEFAULT '[]'
);
"""

_SAVED_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS saved_jobs (
    user_id   INTEGER NOT NULL,
    job_id    INTEGER NOT NULL REFERENCES jobs(id),
    saved_at  TEXT    NOT NULL,
    PRIMARY KEY (user_id, job_id)
);
"""

_JOB_MATCHES_TABLE = """
CREATE TABLE IF NOT EXISTS job_matches (
    user_id          INTEGER NOT NULL,
    job_id           INTEGER NOT NULL REFERENCES jobs(id),
    total_score      INTEGER NOT NULL,
    skill_score      INTEGER NOT NULL,
    experience_score INTEGER NOT NULL,
    location_score   INTEGER NOT NULL,
    salary_score     INTEGER NOT NULL,
    industry_score   INTEGER NOT NULL,
    company_score    INTEGER NOT NULL,
    match_category   TEXT    NOT NULL,
    calculated_at    TEXT    NOT NULL,
    PRIMARY KEY (user_id, job_id)
);
"""

# user_id 0 stands for "no user": NULL would defeat the composite key.
_COMPANY_SCORES_TABLE = """
CREATE TABLE IF NOT EXISTS company_scores (
    company_id          INTEGER NOT NULL REFERENCES companies(id),
    user_id             INTEGER NOT NULL DEFAULT 0,
    talent_need_score   REAL    NOT NULL,
    profile_match_score REAL    NOT NULL,
    combined_score      REAL    NOT NULL,
    reasons             TEXT    NOT NULL DEFAULT '[]',
    calculated_at       TEXT    NOT NULL,
    PRIMARY KEY (company_id, user_id)
);
"""

_CONVERSATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS conversations (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER NOT NULL,
    agent_type  TEXT    NOT NULL,
    title       TEXT    NOT NULL DEFAULT '',
    created_at  TEXT    NOT NULL,
    updated_at  TEXT    NOT NULL
);
"""

_MESSAGES_TABLE = """
CREATE TABLE IF NOT EXISTS messages (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    conversation_id  INTEGER NOT NULL REFERENCES conversations(id),
    role             TEXT    NOT NULL,
    content          TEXT    NOT NULL DEFAULT '',
    tool_calls       TEXT,
    tool_results     TEXT,
    created_at       TEXT    NOT NULL
);
"""

_TABLES = (
    _COMPANIES_TABLE,
    _EVENTS_TABLE,
    _JOBS_TABLE,
    _PROFILES_TABLE,
    _SAVED_JOBS_TABLE,
    _JOB_MATCHES_TABLE,
    _COMPANY_SCORES_TABLE,
    _CONVERSATIONS_TABLE,
    _MESSAGES_TABLE,
)

_JOB_COLUMNS = (
    "external_id", "source", "title", "company", "company_id", "description",
    "location", "salary_min", "salary_max", "employment_type", "remote_type",
    "industry", "required_skills", "experience_required", "function_type",
    "seniority_level", "posted_at", "expires_at", "url", "company_rating",
)

_PROFILE_COLUMNS = (
    "user_id", "current_title", "years_of_experience", "skills", "languages",
    "certifications", "degree", "field", "preferred_job_titles",
    "preferred_industries", "preferred_locations", "employment_types",
    "salary_min", "salary_max", "remote_preference", "work_history",
    "target_functions",
)

_PROFILE_LIST_COLUMNS = {
    "skills", "languages", "certifications", "preferred_job_titles",
    "preferred_industries", "preferred_locations", "employment_types",
    "work_history", "target_functions",
}

_MATCH_COLUMNS = (
    "total_score", "skill_score", "experience_score", "location_score",
    "salary_score", "industry_score", "company_score", "match_category",
)


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    if str(path) != ":memory:":
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    for ddl in _TABLES:
        conn.execute(ddl)
    conn.commit()
    return conn


def encode_list(items: list[Any] | None) -> str | None:
    """JSON-encode a list column. None stays NULL."""
    if items is None:
        return None
    return json.dumps(items, ensure_ascii=False)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _decode_records(raw: str | None) -> list[dict[str, Any]] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable tool record column: %.60s", raw)
        return None
    return parsed if isinstance(parsed, list) else None


class SQLiteStore(Datastore):
    """Datastore backed by a single SQLite connection.

    Usage::

        store = SQLiteStore(init_db("data/jobscout.db"))
        company = await store.get_or_create_company("Nokia")
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @classmethod
    def open(cls, path: str | Path) -> "SQLiteStore":
        return cls(init_db(path))

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Companies and events
    # ------------------------------------------------------------------

    async def get_or_create_company(self, name: str) -> Company:
        return self._get_or_create_company(name)

    def _get_or_create_company(self, name: str, industry: str | None = None) -> Company:
        name = name.strip()
        key = name.lower()
        row = self._conn.execute(
            "SELECT * FROM companies WHERE name_key = ?", (key,)
        ).fetchone()
        if row is not None:
            if industry and not row["industry"]:
                self._conn.execute(
                    "UPDATE companies SET industry = ? WHERE id = ?", (industry, row["id"])
                )
                self._conn.commit()
                return Company.model_validate({**dict(row), "industry": industry})
            return Company.model_validate(dict(row))

        created_at = datetime.now()
        cursor = self._conn.execute(
            "INSERT INTO companies (name, name_key, industry, created_at) VALUES (?, ?, ?, ?)",
            (name, key, industry, created_at.isoformat()),
        )
        self._conn.commit()
        logger.debug("Created company '%s'", name)
        return Company(
            id=cursor.lastrowid or 0, name=name, industry=industry, created_at=created_at
        )

    async def get_company_by_id(self, company_id: int) -> Company | None:
        row = self._conn.execute(
            "SELECT * FROM companies WHERE id = ?", (company_id,)
        ).fetchone()
        return Company.model_validate(dict(row)) if row is not None else None

    async def get_company_by_name(self, name: str) -> Company | None:
        row = self._conn.execute(
            "SELECT * FROM companies WHERE name_key = ?", (name.strip().lower(),)
        ).fetchone()
        return Company.model_validate(dict(row)) if row is not None else None

    async def get_active_companies(self, days_back: int) -> list[Company]:
        cutoff = (datetime.now() - timedelta(days=days_back)).isoformat()
        rows = self._conn.execute(
            """
            SELECT DISTINCT c.* FROM companies c
            JOIN events e ON e.company_id = c.id
            WHERE e.published_at >= ?
            ORDER BY c.name
            """,
            (cutoff,),
        ).fetchall()
        return [Company.model_validate(dict(r)) for r in rows]

    async def create_event(self, company_id: int, event: ClassifiedEvent) -> Event:
        created_at = datetime.now()
        cursor = self._conn.execute(
            """
            INSERT INTO events
                (company_id, event_type, headline, summary, source_url, impact_strength,
                 function_focus, affected_count, confidence, published_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                company_id,
                event.event_type.value,
                event.headline,
                event.summary,
                event.source_url,
                event.impact_strength,
                encode_list(event.function_focus),
                event.affected_count,
                event.confidence,
                event.published_at.isoformat(),
                created_at.isoformat(),
            ),
        )
        self._conn.commit()
        return Event(
            id=cursor.lastrowid or 0,
            company_id=company_id,
            event_type=event.event_type,
            headline=event.headline,
            summary=event.summary,
            source_url=event.source_url,
            impact_strength=event.impact_strength,
            function_focus=list(event.function_focus),
            affected_count=event.affected_count,
            confidence=event.confidence,
            published_at=event.published_at,
            created_at=created_at,
        )

    async def get_events_by_company_id(self, company_id: int, limit: int) -> list[Event]:
        rows = self._conn.execute(
            """
            SELECT * FROM events WHERE company_id = ?
            ORDER BY published_at DESC, id DESC
            LIMIT ?
            """,
            (company_id, limit),
        ).fetchall()
        return [Event.model_validate(dict(r)) for r in rows]

    async def get_recent_events(self, days_back: int, limit: int) -> list[Event]:
        cutoff = (datetime.now() - timedelta(days=days_back)).isoformat()
        rows = self._conn.execute(
            """
            SELECT e.*, c.name AS company_name FROM events e
            JOIN companies c ON c.id = e.company_id
            WHERE e.published_at >= ?
            ORDER BY e.published_at DESC, e.id DESC
            LIMIT ?
            """,
            (cutoff, limit),
        ).fetchall()
        return [Event.model_validate(dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    async def upsert_job(self, job: Job) -> Job:
        company_id = job.company_id
        if company_id is None and job.company.strip():
            company_id = self._get_or_create_company(job.company, job.industry).id

        external_id = job.external_id or job.url or f"{job.company}:{job.title}"
        values: dict[str, Any] = job.model_dump(include=set(_JOB_COLUMNS))
        values.update(
            external_id=external_id,
            company_id=company_id,
            required_skills=encode_list(job.required_skills),
            posted_at=_iso(job.posted_at),
            expires_at=_iso(job.expires_at),
        )

        columns = ", ".join(_JOB_COLUMNS)
        placeholders = ", ".join("?" for _ in _JOB_COLUMNS)
        updates = ", ".join(
            f"{c} = excluded.{c}" for c in _JOB_COLUMNS if c not in ("source", "external_id")
        )
        self._conn.execute(
            f"""
            INSERT INTO jobs ({columns}) VALUES ({placeholders})
            ON CONFLICT(source, external_id) DO UPDATE SET {updates}
            """,
            tuple(values[c] for c in _JOB_COLUMNS),
        )
        self._conn.commit()
        row = self._conn.execute(
            "SELECT * FROM jobs WHERE source = ? AND external_id = ?",
            (job.source, external_id),
        ).fetchone()
        return Job.model_validate(dict(row))

    async def get_job_by_id(self, job_id: int) -> Job | None:
        row = self._conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return Job.model_validate(dict(row)) if row is not None else None

    async def get_jobs(self, limit: int, offset: int = 0) -> list[Job]:
        rows = self._conn.execute(
            "SELECT * FROM jobs ORDER BY posted_at DESC, id DESC LIMIT ? OFFSET ?",
            (limit, offset),
        ).fetchall()
        return [Job.model_validate(dict(r)) for r in rows]

    async def get_jobs_by_company_id(self, company_id: int, limit: int) -> list[Job]:
        rows = self._conn.execute(
            "SELECT * FROM jobs WHERE company_id = ? ORDER BY posted_at DESC, id DESC LIMIT ?",
            (company_id, limit),
        ).fetchall()
        return [Job.model_validate(dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Profiles, saved jobs, matches
    # ------------------------------------------------------------------

    async def upsert_profile(self, profile: Profile) -> Profile:
        values: dict[str, Any] = profile.model_dump(mode="json")
        row_values = tuple(
            encode_list(values[c]) if c in _PROFILE_LIST_COLUMNS else values[c]
            for c in _PROFILE_COLUMNS
        )
        columns = ", ".join(_PROFILE_COLUMNS)
        placeholders = ", ".join("?" for _ in _PROFILE_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _PROFILE_COLUMNS if c != "user_id")
        self._conn.execute(
            f"""
            INSERT INTO profiles ({columns}) VALUES ({placeholders})
            ON CONFLICT(user_id) DO UPDATE SET {updates}
            """,
            row_values,
        )
        self._conn.commit()
        return profile

    async def get_profile_by_user_id(self, user_id: int) -> Profile | None:
        row = self._conn.execute(
            "SELECT * FROM profiles WHERE user_id = ?", (user_id,)
        ).fetchone()
        return Profile.model_validate(dict(row)) if row is not None else None

    async def save_job(self, user_id: int, job_id: int) -> None:
        self._conn.execute(
            """
            INSERT INTO saved_jobs (user_id, job_id, saved_at) VALUES (?, ?, ?)
            ON CONFLICT(user_id, job_id) DO NOTHING
            """,
            (user_id, job_id, datetime.now().isoformat()),
        )
        self._conn.commit()

    async def unsave_job(self, user_id: int, job_id: int) -> None:
        self._conn.execute(
            "DELETE FROM saved_jobs WHERE user_id = ? AND job_id = ?", (user_id, job_id)
        )
        self._conn.commit()

    async def get_saved_jobs_by_user_id(self, user_id: int) -> list[Job]:
        rows = self._conn.execute(
            """
            SELECT j.* FROM saved_jobs s
            JOIN jobs j ON j.id = s.job_id
            WHERE s.user_id = ?
            ORDER BY s.saved_at DESC
            """,
            (user_id,),
        ).fetchall()
        return [Job.model_validate(dict(r)) for r in rows]

    async def upsert_job_match(self, user_id: int, job_id: int, score: MatchScore) -> None:
        values = score.model_dump(mode="json")
        columns = ", ".join(_MATCH_COLUMNS)
        placeholders = ", ".join("?" for _ in _MATCH_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in (*_MATCH_COLUMNS, "calculated_at"))
        self._conn.execute(
            f"""
            INSERT INTO job_matches (user_id, job_id, {columns}, calculated_at)
            VALUES (?, ?, {placeholders}, ?)
            ON CONFLICT(user_id, job_id) DO UPDATE SET {updates}
            """,
            (user_id, job_id, *(values[c] for c in _MATCH_COLUMNS), datetime.now().isoformat()),
        )
        self._conn.commit()

    async def get_matches_by_user_id(self, user_id: int, limit: int) -> list[JobMatch]:
        match_columns = ", ".join(f"m.{c}" for c in _MATCH_COLUMNS)
        rows = self._conn.execute(
            f"""
            SELECT {match_columns}, j.* FROM job_matches m
            JOIN jobs j ON j.id = m.job_id
            WHERE m.user_id = ?
            ORDER BY m.total_score DESC, j.id
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()
        matches: list[JobMatch] = []
        for r in rows:
            data = dict(r)
            matches.append(
                JobMatch(
                    user_id=user_id,
                    job=Job.model_validate(data),
                    score=MatchScore.model_validate({c: data[c] for c in _MATCH_COLUMNS}),
                )
            )
        return matches

    # ------------------------------------------------------------------
    # Company scores
    # ------------------------------------------------------------------

    async def upsert_company_score(self, score: CompanyScore) -> CompanyScore:
        self._conn.execute(
            """
            INSERT INTO company_scores
                (company_id, user_id, talent_need_score, profile_match_score,
                 combined_score, reasons, calculated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(company_id, user_id)
            DO UPDATE SET
                talent_need_score = excluded.talent_need_score,
                profile_match_score = excluded.profile_match_score,
                combined_score = excluded.combined_score,
                reasons = excluded.reasons,
                calculated_at = excluded.calculated_at
            """,
            (
                score.company_id,
                score.user_id,
                score.talent_need_score,
                score.profile_match_score,
                score.combined_score,
                encode_list(score.reasons),
                score.calculated_at.isoformat(),
            ),
        )
        self._conn.commit()
        return score

    async def get_top_company_scores(self, user_id: int, limit: int) -> list[RankedCompany]:
        rows = self._conn.execute(
            """
            SELECT
                c.id, c.name, c.industry, c.website, c.description,
                c.employee_count, c.headquarters, c.created_at,
                s.user_id, s.talent_need_score, s.profile_match_score,
                s.combined_score, s.reasons, s.calculated_at,
                (SELECT COUNT(*) FROM jobs j WHERE j.company_id = c.id) AS open_positions
            FROM company_scores s
            JOIN companies c ON c.id = s.company_id
            WHERE s.user_id = ?
            ORDER BY s.combined_score DESC, c.name
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()
        ranked: list[RankedCompany] = []
        for r in rows:
            data = dict(r)
            ranked.append(
                RankedCompany(
                    company=Company.model_validate(data),
                    score=CompanyScore.model_validate({**data, "company_id": data["id"]}),
                    open_positions=data["open_positions"],
                )
            )
        return ranked

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def create_conversation(
        self, user_id: int, agent_type: AgentType, title: str
    ) -> Conversation:
        now = datetime.now()
        cursor = self._conn.execute(
            """
            INSERT INTO conversations (user_id, agent_type, title, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, agent_type.value, title, now.isoformat(), now.isoformat()),
        )
        self._conn.commit()
        return Conversation(
            id=cursor.lastrowid or 0,
            user_id=user_id,
            agent_type=agent_type,
            title=title,
            created_at=now,
            updated_at=now,
        )

    async def get_conversation(self, conversation_id: int) -> Conversation | None:
        row = self._conn.execute(
            "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
        ).fetchone()
        return Conversation.model_validate(dict(row)) if row is not None else None

    async def get_conversations_by_user_id(
        self, user_id: int, limit: int
    ) -> list[Conversation]:
        rows = self._conn.execute(
            """
            SELECT * FROM conversations WHERE user_id = ?
            ORDER BY updated_at DESC, id DESC
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()
        return [Conversation.model_validate(dict(r)) for r in rows]

    async def delete_conversation(self, conversation_id: int) -> None:
        self._conn.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))
        self._conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        self._conn.commit()

    async def create_message(
        self,
        conversation_id: int,
        role: MessageRole,
        content: str,
        tool_calls: list[ToolCall] | None = None,
        tool_results: list[ToolResult] | None = None,
    ) -> Message:
        now = datetime.now()
        calls_json = (
            json.dumps([c.model_dump(mode="json") for c in tool_calls]) if tool_calls else None
        )
        results_json = (
            json.dumps([r.model_dump(mode="json") for r in tool_results]) if tool_results else None
        )
        cursor = self._conn.execute(
            """
            INSERT INTO messages
                (conversation_id, role, content, tool_calls, tool_results, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (conversation_id, role.value, content, calls_json, results_json, now.isoformat()),
        )
        self._conn.execute(
            "UPDATE conversations SET updated_at = ? WHERE id = ?",
            (now.isoformat(), conversation_id),
        )
        self._conn.commit()
        return Message(
            id=cursor.lastrowid or 0,
            conversation_id=conversation_id,
            role=role,
            content=content,
            tool_calls=tool_calls or None,
            tool_results=tool_results or None,
            created_at=now,
        )

    async def get_messages_by_conversation_id(
        self, conversation_id: int, limit: int
    ) -> list[Message]:
        rows = self._conn.execute(
            """
            SELECT * FROM (
                SELECT * FROM messages WHERE conversation_id = ?
                ORDER BY id DESC LIMIT ?
            ) ORDER BY id ASC
            """,
            (conversation_id, limit),
        ).fetchall()
        messages: list[Message] = []
        for r in rows:
            data = dict(r)
            data["tool_calls"] = _decode_records(data["tool_calls"])
            data["tool_results"] = _decode_records(data["tool_results"])
            messages.append(Message.model_validate(data))
        return messages
