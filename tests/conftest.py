from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

from school_delay.config import LocationConfig
from school_delay.http_client import HttpFetcher
from school_delay.services.noaa import NoaaClient

FIXTURES = Path(__file__).parent / "fixtures"

LOCATION = LocationConfig(
    name="Indiana County, PA",
    latitude=40.6215,
    longitude=-79.1525,
    alert_zones=["PAZ021", "PAZ020"],
    alert_counties=["indiana"],
)

NOAA_ROUTES = {
    "/points/40.6215,-79.1525": "noaa_points.json",
    "/gridpoints/PBZ/102,88/stations": "noaa_stations.json",
    "/stations/KIDI/observations/latest": "noaa_observation.json",
    "/gridpoints/PBZ/102,88/forecast": "noaa_forecast.json",
    "/gridpoints/PBZ/102,88/forecast/hourly": "noaa_forecast.json",
    "/alerts/active": "noaa_alerts.json",
}


def load_fixture(name: str) -> Any:
    return json.loads((FIXTURES / name).read_text())


def noaa_handler(requests: List[httpx.Request], overrides: Dict[str, int] | None = None) -> Callable:
    overrides = overrides or {}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        path = request.url.path
        if path in overrides:
            return httpx.Response(overrides[path])
        name = NOAA_ROUTES.get(path)
        if name is None:
            return httpx.Response(404)
        return httpx.Response(200, json=load_fixture(name))

    return handler


def make_noaa_client(requests: List[httpx.Request], overrides: Dict[str, int] | None = None) -> NoaaClient:
    client = httpx.Client(transport=httpx.MockTransport(noaa_handler(requests, overrides)))
    fetcher = HttpFetcher(client, max_attempts=2, sleep=lambda _: None)
    return NoaaClient(fetcher=fetcher, location=LOCATION)


@pytest.fixture
def noaa_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def noaa_client(noaa_requests: List[httpx.Request]) -> NoaaClient:
    return make_noaa_client(noaa_requests)


@pytest.fixture
def noaa_client_factory(noaa_requests: List[httpx.Request]) -> Callable[..., NoaaClient]:
    def factory(overrides: Dict[str, int] | None = None) -> NoaaClient:
        return make_noaa_client(noaa_requests, overrides)

    return factory


@pytest.fixture
def fixture_json() -> Callable[[str], Any]:
    return load_fixture


@pytest.fixture
def location() -> LocationConfig:
    return LOCATION
