"""Deterministic keyword classifier used when no LLM is available."""

from jobscout.core.schemas import ClassifiedEvent, EventType, RawNewsItem

RULE_CONFIDENCE = 0.6
RULE_SUMMARY_CHARS = 200

_STRIP_CHARS = ',:;.!?()[]"\''
_STRIP_TABLE = str.maketrans("", "", _STRIP_CHARS)

STOPWORDS = frozenset(
    {
        "suomi",
        "suomen",
        "helsinki",
        "tampere",
        "turku",
        "oulu",
        "uusi",
        "uudet",
        "tänään",
        "ensi",
        "viime",
        "yle",
        "hs",
        "euro",
        "euroa",
        "miljoonaa",
        "miljardia",
        "prosenttia",
        "the",
        "a",
        "an",
        "new",
        "breaking",
        "update",
    }
)

# Checked in order; the first group with a keyword hit decides the type.
KEYWORD_RULES: tuple[tuple[EventType, tuple[str, ...], int, list[str]], ...] = (
    (
        EventType.YT_LAYOFF,
        ("yt-neuvo", "irtisano", "lomautta", "vähent", "layoff", "laid off",
         "job cuts", "redundanc"),
        4,
        ["hr", "management"],
    ),
    (
        EventType.FUNDING,
        ("rahoitus", "sijoitus", "miljoonaa euroa", "funding", "investment",
         "venture capital"),
        3,
        ["management", "finance"],
    ),
    (
        EventType.ACQUISITION,
        ("ostaa", "hankkii", "yrityskauppa", "acquire", "acquisition", "buys"),
        4,
        ["management"],
    ),
    (
        EventType.LEADERSHIP_CHANGE,
        ("toimitusjohtaja", "nimitetty", "nimitys", "ceo", "appointed", "appoints",
         "chief executive"),
        3,
        ["management"],
    ),
    (
        EventType.EXPANSION,
        ("rekrytoi", "palkkaa", "avaa", "laajenta", "hiring", "recruit", "expands",
         "expansion", "opens new"),
        2,
        ["hr"],
    ),
)


def extract_company_name(headline: str) -> str | None:
    """Pick the first capitalized, non-stopword token of the headline."""
    for word in headline.split():
        clean = word.translate(_STRIP_TABLE)
        if len(clean) < 2:
            continue
        if clean[0].isupper() and clean.lower() not in STOPWORDS:
            return clean
    return None


def classify_by_rules(item: RawNewsItem) -> ClassifiedEvent | None:
    """Classify a news item with keyword rules.

    Returns None when no company name can be extracted from the headline.
    """
    company_name = extract_company_name(item.headline)
    if company_name is None:
        return None

    text = f"{item.headline} {item.summary}".lower()
    event_type, impact, functions = EventType.OTHER, 3, ["other"]
    for rule_type, keywords, rule_impact, rule_functions in KEYWORD_RULES:
        if any(kw in text for kw in keywords):
            event_type, impact, functions = rule_type, rule_impact, rule_functions
            break

    return ClassifiedEvent(
        company_name=company_name,
        event_type=event_type,
        impact_strength=impact,
        function_focus=list(functions),
        affected_count=None,
        confidence=RULE_CONFIDENCE,
        summary=item.summary[:RULE_SUMMARY_CHARS],
        headline=item.headline,
        source_url=item.url,
        published_at=item.published_at,
    )
