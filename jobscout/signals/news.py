"""News sources and keyword relevance filters.

Fetching from live feeds is left to callers; a source only has to return
RawNewsItem objects for a time window.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from jobscout.core.schemas import RawNewsItem

logger = logging.getLogger(__name__)

LAYOFF_KEYWORDS = (
    "yt-neuvottelu",
    "yt-neuvottelut",
    "yhteistoimintaneuvottelu",
    "irtisano",
    "irtisanominen",
    "lomauttaa",
    "lomautus",
    "henkilöstövähennys",
    "vähentää työpaikkoja",
    "supistaa",
    "saneeraus",
    "säästöohjelma",
    "layoff",
    "laid off",
    "job cuts",
    "redundanc",
    "restructuring",
)

GROWTH_KEYWORDS = (
    "rahoituskierros",
    "sijoitus",
    "investointi",
    "kasvurahoitus",
    "listautuminen",
    "ipo",
    "yrityskauppa",
    "ostaa",
    "hankkii",
    "laajentaa",
    "avaa uuden",
    "perustaa",
    "kasvattaa",
    "rekrytoi",
    "palkkaa",
    "uusi toimitusjohtaja",
    "nimitetty",
    "nimitys",
    "funding round",
    "raises",
    "investment",
    "acquires",
    "acquisition",
    "expands",
    "expansion",
    "hiring",
    "appointed",
    "new ceo",
)


def _text(item: RawNewsItem) -> str:
    return f"{item.headline} {item.summary}".lower()


def is_layoff_news(item: RawNewsItem) -> bool:
    """True if the item mentions layoffs or restructuring negotiations."""
    text = _text(item)
    return any(kw in text for kw in LAYOFF_KEYWORDS)


def is_growth_news(item: RawNewsItem) -> bool:
    """True if the item mentions funding, acquisitions, expansion or hiring."""
    text = _text(item)
    return any(kw in text for kw in GROWTH_KEYWORDS)


def filter_relevant(items: list[RawNewsItem]) -> list[RawNewsItem]:
    relevant = [item for item in items if is_layoff_news(item) or is_growth_news(item)]
    logger.info("Found %d relevant news out of %d", len(relevant), len(items))
    return relevant


def _within_window(published_at: datetime, days_back: int) -> bool:
    now = datetime.now(published_at.tzinfo) if published_at.tzinfo else datetime.now()
    return published_at >= now - timedelta(days=days_back)


class NewsSource(ABC):
    """Base class for anything that yields raw news items."""

    @abstractmethod
    async def fetch(self, days_back: int) -> list[RawNewsItem]:
        """Return items published within the last ``days_back`` days."""


class JsonFileNewsSource(NewsSource):
    """Reads raw news items from a JSON array on disk.

    Each element needs at least a ``headline``; invalid elements are skipped.
    """

    def __init__(self, path: str | Path, source_name: str = "file") -> None:
        self.path = Path(path)
        self.source_name = source_name

    async def fetch(self, days_back: int) -> list[RawNewsItem]:
        if not self.path.exists():
            msg = f"News file not found: {self.path}"
            raise FileNotFoundError(msg)

        raw = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            msg = f"News file must contain a JSON array: {self.path}"
            raise ValueError(msg)

        items: list[RawNewsItem] = []
        for entry in raw:
            if not isinstance(entry, dict):
                continue
            try:
                item = RawNewsItem.model_validate({"source": self.source_name, **entry})
            except ValidationError as e:
                logger.warning("Skipping invalid news entry: %s", e.errors()[0]["msg"])
                continue
            if _within_window(item.published_at, days_back):
                items.append(item)

        logger.info("Read %d news items from %s", len(items), self.path)
        return items
