from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .models import Alert, CurrentConditions, Forecast, ForecastPeriod
from .rounding import round_half_up

Converter = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMapping:
    """Describes how to pull and transform a raw NOAA value into a model field.

    ``source`` is a dotted path into the payload; NOAA wraps measured values as
    ``{"value": ..., "unitCode": ...}`` so paths usually end in ``.value``.
    """

    source: str
    converter: Optional[Converter] = None

    def extract(self, payload: Mapping[str, Any]) -> Any:
        value: Any = payload
        for part in self.source.split("."):
            if not isinstance(value, Mapping):
                return None
            value = value.get(part)
        if self.converter and value is not None:
            value = self.converter(value)
        return value


def _c_to_f(value: Any) -> Optional[int]:
    if value is None:
        return None
    return round_half_up(float(value) * 9 / 5 + 32)


def _kph_to_mph(value: Any) -> Optional[int]:
    if value is None:
        return None
    return round_half_up(float(value) * 0.621371)


OBSERVATION_MAPPING: Dict[str, FieldMapping] = {
    "temperature_f": FieldMapping("temperature.value", converter=_c_to_f),
    "wind_speed_mph": FieldMapping("windSpeed.value", converter=_kph_to_mph),
    "wind_direction": FieldMapping("windDirection.value"),
    "description": FieldMapping("textDescription"),
    "timestamp": FieldMapping("timestamp"),
    "humidity": FieldMapping("relativeHumidity.value"),
    "dewpoint_f": FieldMapping("dewpoint.value", converter=_c_to_f),
    "visibility_m": FieldMapping("visibility.value"),
    "pressure_pa": FieldMapping("barometricPressure.value"),
}

PERIOD_MAPPING: Dict[str, FieldMapping] = {
    "name": FieldMapping("name"),
    "start_time": FieldMapping("startTime"),
    "end_time": FieldMapping("endTime"),
    "temperature": FieldMapping("temperature"),
    "temperature_unit": FieldMapping("temperatureUnit"),
    "wind_speed": FieldMapping("windSpeed"),
    "wind_direction": FieldMapping("windDirection"),
    "short_forecast": FieldMapping("shortForecast"),
    "detailed_forecast": FieldMapping("detailedForecast"),
    "is_daytime": FieldMapping("isDaytime"),
    "precipitation_chance": FieldMapping("probabilityOfPrecipitation.value"),
}

ALERT_MAPPING: Dict[str, FieldMapping] = {
    "id": FieldMapping("id"),
    "event": FieldMapping("event"),
    "severity": FieldMapping("severity"),
    "certainty": FieldMapping("certainty"),
    "urgency": FieldMapping("urgency"),
    "headline": FieldMapping("headline"),
    "description": FieldMapping("description"),
    "instruction": FieldMapping("instruction"),
    "onset": FieldMapping("onset"),
    "expires": FieldMapping("expires"),
    "areas": FieldMapping("areaDesc"),
}


def _resolve(mapping: Mapping[str, FieldMapping], payload: Mapping[str, Any]) -> Dict[str, Any]:
    values = {name: spec.extract(payload) for name, spec in mapping.items()}
    return {name: value for name, value in values.items() if value is not None}


class NoaaNormalizer:
    """Turns api.weather.gov GeoJSON payloads into model objects."""

    def __init__(
        self,
        *,
        observation: Mapping[str, FieldMapping] = OBSERVATION_MAPPING,
        period: Mapping[str, FieldMapping] = PERIOD_MAPPING,
        alert: Mapping[str, FieldMapping] = ALERT_MAPPING,
    ) -> None:
        self._observation = observation
        self._period = period
        self._alert = alert

    def observation(
        self, payload: Mapping[str, Any], *, station: Optional[str] = None, location: Optional[str] = None
    ) -> CurrentConditions:
        props = payload.get("properties") or {}
        return CurrentConditions(station=station, location=location, **_resolve(self._observation, props))

    def forecast(
        self, payload: Mapping[str, Any], *, location: Optional[str] = None, limit: Optional[int] = None
    ) -> Forecast:
        props = payload.get("properties") or {}
        raw_periods: Iterable[Mapping[str, Any]] = props.get("periods") or []
        periods: List[ForecastPeriod] = [
            ForecastPeriod(**_resolve(self._period, period)) for period in raw_periods
        ]
        if limit is not None:
            periods = periods[:limit]
        return Forecast(periods=periods, location=location, updated=props.get("updated"))

    def alerts(self, payload: Mapping[str, Any], *, counties: Iterable[str] = ()) -> List[Alert]:
        wanted = [county.lower() for county in counties]
        alerts: List[Alert] = []
        for feature in payload.get("features") or []:
            props = feature.get("properties") or {}
            areas = (props.get("areaDesc") or "").lower()
            if wanted and not any(county in areas for county in wanted):
                continue
            alerts.append(Alert(**_resolve(self._alert, props)))
        return alerts


DEFAULT_NORMALIZER = NoaaNormalizer()
