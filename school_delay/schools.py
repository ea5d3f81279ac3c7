from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from school_delay.config import SchoolSettings, app_config


@dataclass(frozen=True)
class SchoolMeta:
    """A district on the roster.

    ``historical_name`` is the name used in historical records and the
    prediction log; ``patterns`` are the lowercase names it is listed under on
    closings pages.
    """

    code: str
    name: str
    short_name: str
    historical_name: str
    website: Optional[str] = None
    patterns: Sequence[str] = field(default_factory=tuple)


def all_schools(settings: Optional[Iterable[SchoolSettings]] = None) -> List[SchoolMeta]:
    configured = app_config.schools if settings is None else settings
    return [
        SchoolMeta(
            code=school.code,
            name=school.name,
            short_name=school.short_name,
            historical_name=school.historical_name,
            website=school.website,
            patterns=tuple(pattern.lower() for pattern in school.patterns),
        )
        for school in configured
    ]
