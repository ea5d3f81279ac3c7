from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from school_delay.config import LocationConfig, app_config
from school_delay.exceptions import UpstreamError
from school_delay.http_client import HttpFetcher
from school_delay.logging import get_logger
from school_delay.models import Alert, CurrentConditions, Forecast
from school_delay.normalization import DEFAULT_NORMALIZER, NoaaNormalizer

logger = get_logger(__name__)

NOAA_BASE_URL = "https://api.weather.gov"
HOURLY_PERIODS = 48


class NoaaClient:
    """Minimal api.weather.gov client for one configured location.

    Grid-point metadata is looked up once and reused for the forecast,
    hourly forecast and observation-station endpoints.
    """

    def __init__(
        self,
        *,
        fetcher: Optional[HttpFetcher] = None,
        location: Optional[LocationConfig] = None,
        normalizer: NoaaNormalizer = DEFAULT_NORMALIZER,
        base_url: str = NOAA_BASE_URL,
    ) -> None:
        self.fetcher = fetcher or HttpFetcher()
        self.location = location or app_config.location
        self.normalizer = normalizer
        self.base_url = base_url.rstrip("/")
        self._grid_point: Optional[Dict[str, Any]] = None

    def _grid(self) -> Mapping[str, Any]:
        if self._grid_point is None:
            url = f"{self.base_url}/points/{self.location.latitude},{self.location.longitude}"
            data = self.fetcher.fetch_json(url)
            self._grid_point = data.get("properties") or {}
        return self._grid_point

    def _grid_url(self, key: str) -> str:
        url = self._grid().get(key)
        if not url:
            raise UpstreamError(f"Grid point response has no {key!r} link")
        return url

    def get_current_conditions(self) -> CurrentConditions:
        stations = self.fetcher.fetch_json(self._grid_url("observationStations"))
        features = stations.get("features") or []
        if not features:
            raise UpstreamError("No observation stations found")
        station = features[0].get("properties") or {}
        station_id = station.get("stationIdentifier")
        observation = self.fetcher.fetch_json(f"{self.base_url}/stations/{station_id}/observations/latest")
        conditions = self.normalizer.observation(
            observation, station=station.get("name"), location=self.location.name
        )
        logger.info("noaa.observation", station=station_id, temperature_f=conditions.temperature_f)
        return conditions

    def get_forecast(self) -> Forecast:
        payload = self.fetcher.fetch_json(self._grid_url("forecast"))
        forecast = self.normalizer.forecast(payload, location=self.location.name)
        logger.info("noaa.forecast", periods=len(forecast.periods))
        return forecast

    def get_hourly_forecast(self) -> Forecast:
        payload = self.fetcher.fetch_json(self._grid_url("forecastHourly"))
        return self.normalizer.forecast(payload, location=self.location.name, limit=HOURLY_PERIODS)

    def get_alerts(self) -> List[Alert]:
        params = {"zone": ",".join(self.location.alert_zones)} if self.location.alert_zones else None
        payload = self.fetcher.fetch_json(f"{self.base_url}/alerts/active", params=params)
        alerts = self.normalizer.alerts(payload, counties=self.location.alert_counties)
        logger.info("noaa.alerts", count=len(alerts))
        return alerts
