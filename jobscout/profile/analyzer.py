"""LLM-based CV analysis that turns resume text into profile fields."""

import logging
import math
from typing import Any

from jobscout.core.config import CVConfig
from jobscout.core.schemas import Profile, WorkHistoryEntry
from jobscout.llm import get_provider
from jobscout.llm.base import LLMProvider, parse_json_reply

logger = logging.getLogger(__name__)

# Profile fields a CV can supply; everything else is a user preference.
CV_FIELDS = (
    "current_title",
    "years_of_experience",
    "skills",
    "languages",
    "certifications",
    "degree",
    "field",
    "work_history",
)

_CV_SYSTEM_PROMPT = (
    "You are a CV/resume parser. Extract structured profile data from the CV "
    "text and return valid JSON only."
)

_CV_PROMPT = """Extract the candidate's profile from the CV below.

ANSWER ONLY WITH JSON:
{{
    "current_title": "current or most recent job title, or null",
    "years_of_experience": total years of professional experience as a number, or null,
    "skills": ["technical and professional skills"],
    "languages": ["spoken languages"],
    "certifications": ["professional certifications"],
    "degree": "highest degree (e.g. Bachelor's, Master's, PhD), or null",
    "field": "field of study, or null",
    "work_history": [{{"title": "job title", "company": "employer", "duration": "e.g. 2019-2023"}}]
}}

Use null or an empty list for anything the CV does not state.

CV TEXT:
{cv_text}"""


def build_cv_prompt(cv_text: str, max_chars: int = 10000) -> str:
    return _CV_PROMPT.format(cv_text=cv_text[:max_chars])


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _years(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return int(value)


def _work_history(value: Any) -> list[WorkHistoryEntry]:
    if not isinstance(value, list):
        return []
    entries: list[WorkHistoryEntry] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        title = _text(item.get("title")) or ""
        company = _text(item.get("company")) or ""
        if not title and not company:
            continue
        entries.append(
            WorkHistoryEntry(
                title=title, company=company, duration=_text(item.get("duration")) or ""
            )
        )
    return entries


def parse_cv_reply(raw_text: str, user_id: int) -> Profile:
    """Parse the model's reply into a Profile holding only CV fields.

    Values of the wrong type are dropped to their empty defaults.

    Raises:
        ValueError: If the reply is not a JSON object.
    """
    data = parse_json_reply(raw_text)
    if not isinstance(data, dict):
        msg = "CV analysis reply is not a JSON object"
        raise ValueError(msg)

    return Profile(
        user_id=user_id,
        current_title=_text(data.get("current_title")),
        years_of_experience=_years(data.get("years_of_experience")),
        skills=_strings(data.get("skills")),
        languages=_strings(data.get("languages")),
        certifications=_strings(data.get("certifications")),
        degree=_text(data.get("degree")),
        field=_text(data.get("field")),
        work_history=_work_history(data.get("work_history")),
    )


def merge_cv_profile(existing: Profile | None, parsed: Profile) -> Profile:
    """Overlay CV-derived fields on a stored profile, keeping its preferences.

    Fields the CV left empty never clear stored values.
    """
    if existing is None:
        return parsed
    update = {
        name: getattr(parsed, name)
        for name in CV_FIELDS
        if getattr(parsed, name) not in (None, [])
    }
    return existing.model_copy(update=update)


class CVAnalyzer:
    """Sends CV text to an LLM and returns the extracted profile fields.

    Usage::

        analyzer = build_cv_analyzer(settings.cv)
        profile = await analyzer.analyze(cv_text, user_id=7)
    """

    def __init__(self, provider: LLMProvider, config: CVConfig | None = None) -> None:
        self.provider = provider
        self.config = config or CVConfig()

    async def analyze(self, cv_text: str, user_id: int) -> Profile:
        """Extract profile fields from CV text.

        Raises:
            ValueError: If the text is too short, the provider has no
                credential, or the reply is not a JSON object.
        """
        text = cv_text.strip()
        if len(text) < self.config.min_chars:
            msg = "Could not extract enough text from the CV"
            raise ValueError(msg)

        logger.info(
            "Sending CV to %s (%d chars)...",
            self.provider.provider_id,
            min(len(text), self.config.max_chars),
        )
        raw = await self.provider.complete(
            build_cv_prompt(text, self.config.max_chars),
            model=self.config.model,
            system=_CV_SYSTEM_PROMPT,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        profile = parse_cv_reply(raw, user_id)
        logger.info(
            "CV analysis found %d skills and %d positions",
            len(profile.skills),
            len(profile.work_history),
        )
        return profile


def build_cv_analyzer(config: CVConfig) -> CVAnalyzer:
    return CVAnalyzer(get_provider(config.provider), config)
