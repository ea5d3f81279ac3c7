"""Current-day school statuses scraped from a TV station's closings page."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional

from bs4 import BeautifulSoup

from school_delay.cache import StatusCache
from school_delay.config import StatusSourceConfig, app_config
from school_delay.http_client import HttpFetcher
from school_delay.logging import get_logger
from school_delay.models import STATUS_OPEN, SchoolStatus
from school_delay.schools import SchoolMeta, all_schools

logger = get_logger(__name__)

UNKNOWN = "unknown"
UNAVAILABLE = "unavailable"

# Characters of page text inspected around a school's name.
CONTEXT_BEFORE = 50
CONTEXT_AFTER = 200


def page_text(html: str) -> str:
    soup = BeautifulSoup(html, "lxml")
    return " ".join(soup.get_text(" ").split()).lower()


def classify_context(context: str) -> Optional[str]:
    if "closed" in context or "closure" in context:
        return "closed"
    if "2 hour" in context or "2-hour" in context or "two hour" in context:
        return "2-hour delay"
    if "delay" in context:
        return "delayed"
    if "early dismissal" in context:
        return "early dismissal"
    if "flexible instruction" in context:
        return "flexible instruction"
    return None


def parse_school_status(school: SchoolMeta, text: Optional[str]) -> str:
    """Raw status for ``school`` from lowercase page text; ``unknown`` when not listed."""
    if not text:
        return UNKNOWN
    for pattern in school.patterns:
        index = text.find(pattern)
        if index == -1:
            continue
        context = text[max(0, index - CONTEXT_BEFORE) : index + CONTEXT_AFTER]
        status = classify_context(context)
        if status:
            return status
    return UNKNOWN


class SchoolStatusService:
    """Looks up every school's status, caching the whole result for a few minutes."""

    def __init__(
        self,
        *,
        fetcher: Optional[HttpFetcher] = None,
        schools: Optional[Iterable[SchoolMeta]] = None,
        source: Optional[StatusSourceConfig] = None,
        cache: Optional[StatusCache[Dict[str, SchoolStatus]]] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.source = source or app_config.status_source
        self.fetcher = fetcher or HttpFetcher(max_attempts=1)
        self.schools = list(schools) if schools is not None else all_schools()
        self.cache = cache or StatusCache(ttl=self.source.cache_ttl_seconds)
        self._now = now

    def _fetch_page(self) -> Optional[str]:
        try:
            return self.fetcher.fetch_text(self.source.url)
        except Exception as exc:
            logger.warning("school_status.fetch_failed", url=self.source.url, error=str(exc))
            return None

    def get_school_statuses(self) -> Dict[str, SchoolStatus]:
        cached = self.cache.get()
        if cached is not None:
            logger.info("school_status.cache_hit", age=self.cache.age())
            return cached

        html = self._fetch_page()
        text = page_text(html) if html else None
        checked = self._now().isoformat()

        statuses: Dict[str, SchoolStatus] = {}
        for school in self.schools:
            status = parse_school_status(school, text)
            # A school missing from a page we did fetch is running normally.
            if status == UNKNOWN and text is not None:
                status = STATUS_OPEN
            statuses[school.code] = SchoolStatus(
                status=status,
                source=self.source.name if text is not None else UNAVAILABLE,
                last_checked=checked,
            )

        self.cache.set(statuses)
        logger.info(
            "school_status.refreshed",
            source=self.source.name,
            available=text is not None,
            disrupted=sum(1 for s in statuses.values() if s.status not in (STATUS_OPEN, UNKNOWN)),
        )
        return statuses
