from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from school_delay.logging import get_logger
from school_delay.models import Alert, CurrentConditions, Forecast, SchoolStatus
from school_delay.services.noaa import NoaaClient
from school_delay.services.school_status import SchoolStatusService

logger = get_logger(__name__)


@dataclass
class FeedError:
    type: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "message": self.message}


@dataclass
class FeedSnapshot:
    """Everything fetched upstream for one prediction; failed pieces are None/empty."""

    current: Optional[CurrentConditions] = None
    forecast: Optional[Forecast] = None
    hourly: Optional[Forecast] = None
    alerts: List[Alert] = field(default_factory=list)
    statuses: Dict[str, SchoolStatus] = field(default_factory=dict)
    errors: List[FeedError] = field(default_factory=list)

    @property
    def has_weather(self) -> bool:
        return self.current is not None or self.forecast is not None


def gather_inputs(
    noaa: NoaaClient,
    status_service: SchoolStatusService,
    *,
    include_hourly: bool = True,
) -> FeedSnapshot:
    """Fetch all upstream resources concurrently and wait for every one of them.

    A failing fetch is logged and recorded as a soft error; its slot falls
    back to the default so scoring can still proceed on what arrived.
    """
    tasks: Dict[str, Tuple[str, Callable[[], Any], Any]] = {
        "current": ("weather_fetch", noaa.get_current_conditions, None),
        "forecast": ("forecast_fetch", noaa.get_forecast, None),
        "alerts": ("alerts_fetch", noaa.get_alerts, []),
        "statuses": ("school_status_fetch", status_service.get_school_statuses, {}),
    }
    if include_hourly:
        tasks["hourly"] = ("hourly_fetch", noaa.get_hourly_forecast, None)

    snapshot = FeedSnapshot()
    with ThreadPoolExecutor(max_workers=len(tasks)) as pool:
        futures = {name: pool.submit(fetch) for name, (_, fetch, _) in tasks.items()}
        for name, future in futures.items():
            error_type, _, default = tasks[name]
            try:
                value = future.result()
            except Exception as exc:
                logger.warning("feeds.fetch_failed", feed=name, error=str(exc))
                snapshot.errors.append(FeedError(type=error_type, message=str(exc)))
                value = default
            setattr(snapshot, name, value)
    return snapshot
