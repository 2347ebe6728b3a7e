"""LLM-backed classification of news items into company signal events.

Falls back to the keyword rules in ``jobscout.signals.rules`` whenever the
model is unavailable or its reply cannot be used.
"""

import logging
import math
from typing import Any

from jobscout.core.config import ClassifierConfig
from jobscout.core.schemas import BUSINESS_FUNCTIONS, ClassifiedEvent, EventType, RawNewsItem
from jobscout.llm import get_provider
from jobscout.llm.base import LLMProvider, parse_json_reply
from jobscout.signals.rules import classify_by_rules

logger = logging.getLogger(__name__)

MAX_FUNCTIONS = 3
SUMMARY_MAX_CHARS = 500

_CLASSIFIER_SYSTEM_PROMPT = (
    "You are an analyst of Finnish business news. Always answer with valid JSON."
)

_CLASSIFICATION_PROMPT = """Analyze the following news item and return its details as JSON.

NEWS ITEM:
Headline: {headline}
Content: {summary}

TASK:
1. Identify the company name (if mentioned)
2. Classify the event type
3. Estimate the impact strength (1-5)
4. Identify which business functions are affected most
5. If a head count is mentioned (e.g. people to be laid off), extract it

EVENT TYPES:
- yt_layoff: change negotiations leading to layoffs
- yt_restructure: change negotiations without significant layoffs
- funding: funding round or investment
- new_unit: new unit, office or market
- expansion: growth, recruiting, expansion
- acquisition: merger or acquisition
- strategy_change: change of strategy
- leadership_change: change in leadership
- other: other relevant event

FUNCTIONS (choose the 1-3 most relevant):
- marketing, sales, it, hr, finance, operations, production, rd, management, other

IMPACT STRENGTH (1-5):
1 = Small, 2 = Moderate, 3 = Significant, 4 = Large, 5 = Very large

ANSWER ONLY WITH JSON:
{{
    "company_name": "Company name or null",
    "event_type": "type",
    "impact_strength": 1-5,
    "function_focus": ["list"],
    "affected_count": number or null,
    "confidence": 0.0-1.0,
    "summary": "Short summary"
}}"""


def build_prompt(item: RawNewsItem, summary_chars: int = 1500) -> str:
    return _CLASSIFICATION_PROMPT.format(
        headline=item.headline, summary=item.summary[:summary_chars]
    )


def _to_int(value: Any) -> int | None:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _to_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _normalize_functions(raw: Any) -> list[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return ["other"]
    functions: list[str] = []
    for entry in raw:
        name = str(entry).strip().lower()
        if name in BUSINESS_FUNCTIONS and name not in functions:
            functions.append(name)
    return functions[:MAX_FUNCTIONS] or ["other"]


def parse_classification(data: dict[str, Any], item: RawNewsItem) -> ClassifiedEvent | None:
    """Validate and clamp a model reply into a ClassifiedEvent.

    Returns None when the reply names no company.
    """
    company_name = data.get("company_name")
    if company_name is None:
        return None
    company_name = str(company_name).strip()
    if not company_name or company_name.lower() == "null":
        return None

    try:
        event_type = EventType(str(data.get("event_type") or "other").strip().lower())
    except ValueError:
        event_type = EventType.OTHER

    impact = _to_int(data.get("impact_strength")) or 3
    confidence = _to_float(data.get("confidence"))
    if confidence is None:
        confidence = 0.8

    return ClassifiedEvent(
        company_name=company_name,
        event_type=event_type,
        impact_strength=max(1, min(5, impact)),
        function_focus=_normalize_functions(data.get("function_focus")),
        affected_count=_to_int(data.get("affected_count")),
        confidence=max(0.0, min(1.0, confidence)),
        summary=str(data.get("summary") or "")[:SUMMARY_MAX_CHARS],
        headline=item.headline,
        source_url=item.url,
        published_at=item.published_at,
    )


class EventClassifier:
    """Turns raw news items into classified company events.

    Usage::

        classifier = EventClassifier(get_provider("openai"), settings.classifier)
        events = await classifier.classify_batch(items)
    """

    def __init__(
        self, provider: LLMProvider | None, config: ClassifierConfig | None = None
    ) -> None:
        self.provider = provider
        self.config = config or ClassifierConfig()

    def _llm_available(self) -> bool:
        return (
            self.config.enabled
            and self.provider is not None
            and self.provider.is_configured()
        )

    async def classify(self, item: RawNewsItem) -> ClassifiedEvent | None:
        """Classify one news item. None means no company could be attributed."""
        provider = self.provider
        if provider is None or not self._llm_available():
            logger.debug("No LLM configured, using rule-based classification")
            return classify_by_rules(item)

        try:
            raw = await provider.complete(
                build_prompt(item, self.config.summary_chars),
                model=self.config.model,
                system=_CLASSIFIER_SYSTEM_PROMPT,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
            data = parse_json_reply(raw)
        except Exception:
            logger.warning(
                "LLM classification failed for '%s', using rules",
                item.headline[:80],
                exc_info=True,
            )
            return classify_by_rules(item)

        if not isinstance(data, dict):
            logger.warning("LLM reply for '%s' is not a JSON object, using rules", item.headline[:80])
            return classify_by_rules(item)

        try:
            return parse_classification(data, item)
        except Exception:
            logger.warning(
                "Unusable LLM reply for '%s', using rules", item.headline[:80], exc_info=True
            )
            return classify_by_rules(item)

    async def classify_batch(self, items: list[RawNewsItem]) -> list[ClassifiedEvent]:
        """Classify items one after another, dropping those without a company."""
        results: list[ClassifiedEvent] = []
        for item in items:
            event = await self.classify(item)
            if event is not None:
                results.append(event)
        return results


def build_classifier(config: ClassifierConfig) -> EventClassifier:
    """Create a classifier from settings; rules only when the LLM is disabled."""
    provider = get_provider(config.provider) if config.enabled else None
    return EventClassifier(provider, config)
