from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml
from dotenv import load_dotenv

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config" / "defaults.yaml"
load_dotenv()

ENV_PREFIX = "SCHOOLDELAY_"


def _bool_from_env(value: str | None) -> Optional[bool]:
    if value is None:
        return None
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return None


def _merge_dicts(base: Dict, overrides: Mapping) -> Dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            merged[key] = _merge_dicts(base[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> Dict:
    if not path.exists():
        return {}
    return yaml.safe_load(path.read_text()) or {}


@dataclass
class SchedulerConfig:
    cron: str = "0 7 * * 1-5"
    enabled: bool = True


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = True


@dataclass
class StorageConfig:
    db_path: str = "data/school_delay.db"
    history_seed_path: Optional[str] = None


@dataclass
class StatusSourceConfig:
    url: str = "https://www.wtae.com/weather/closings"
    name: str = "WTAE"
    cache_ttl_seconds: float = 300.0


@dataclass
class LocationConfig:
    key: str = "indiana"
    name: str = "Indiana County, PA"
    latitude: float = 40.6215
    longitude: float = -79.1525
    alert_zones: List[str] = field(default_factory=list)
    alert_counties: List[str] = field(default_factory=list)


@dataclass
class SchoolSettings:
    code: str
    name: str
    short_name: str
    historical_name: str
    website: Optional[str] = None
    patterns: List[str] = field(default_factory=list)


@dataclass
class NonWeatherClosure:
    """A date on which one, several, or ``all`` schools closed for non-weather reasons."""

    date: str
    reason: str = ""
    schools: Any = "all"

    def applies_to(self, date: str, school: str) -> bool:
        if self.date != date:
            return False
        if self.schools == "all":
            return True
        if isinstance(self.schools, (list, tuple)):
            return school in self.schools
        return self.schools == school


@dataclass
class ApiConfig:
    log_api_key: Optional[str] = None


@dataclass
class AppConfig:
    location: LocationConfig = field(default_factory=LocationConfig)
    schools: Sequence[SchoolSettings] = field(default_factory=list)
    status_source: StatusSourceConfig = field(default_factory=StatusSourceConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    scoring: Dict[str, float] = field(default_factory=dict)
    non_weather_closures: Sequence[NonWeatherClosure] = field(default_factory=list)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


def load_config(*, config_path: str | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    env = dict(env or os.environ)
    data = _load_yaml(_DEFAULT_CONFIG_PATH)

    explicit_path = config_path or env.get(f"{ENV_PREFIX}CONFIG_PATH")
    if explicit_path:
        data = _merge_dicts(data, _load_yaml(Path(explicit_path)))

    scheduler_data = dict(data.get("scheduler") or {})
    cron_override = env.get(f"{ENV_PREFIX}SCHEDULER_CRON")
    if cron_override:
        scheduler_data["cron"] = cron_override
    enabled_override = _bool_from_env(env.get(f"{ENV_PREFIX}SCHEDULER_ENABLED"))
    if enabled_override is not None:
        scheduler_data["enabled"] = enabled_override

    logging_data = dict(data.get("logging") or {})
    level_override = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if level_override:
        logging_data["level"] = level_override
    json_override = _bool_from_env(env.get(f"{ENV_PREFIX}LOG_JSON"))
    if json_override is not None:
        logging_data["json"] = json_override

    storage_data = dict(data.get("storage") or {})
    db_override = env.get(f"{ENV_PREFIX}DB_PATH")
    if db_override:
        storage_data["db_path"] = db_override
    seed_override = env.get(f"{ENV_PREFIX}HISTORY_SEED_PATH")
    if seed_override:
        storage_data["history_seed_path"] = seed_override

    api_data = dict(data.get("api") or {})
    key_override = env.get(f"{ENV_PREFIX}LOG_API_KEY")
    if key_override:
        api_data["log_api_key"] = key_override

    scoring_data: Dict[str, float] = dict(data.get("scoring") or {})
    prefix = f"{ENV_PREFIX}SCORING_"
    for key, value in env.items():
        if key.startswith(prefix):
            field_name = key.removeprefix(prefix).lower()
            try:
                scoring_data[field_name] = float(value)
            except ValueError:
                continue

    schools = [SchoolSettings(**school) for school in data.get("schools") or []]
    closures = [NonWeatherClosure(**closure) for closure in data.get("non_weather_closures") or []]

    return AppConfig(
        location=LocationConfig(**(data.get("location") or {})),
        schools=schools,
        status_source=StatusSourceConfig(**(data.get("status_source") or {})),
        storage=StorageConfig(**storage_data),
        scoring=scoring_data,
        non_weather_closures=closures,
        scheduler=SchedulerConfig(**scheduler_data) if scheduler_data else SchedulerConfig(),
        logging=LoggingConfig(**logging_data) if logging_data else LoggingConfig(),
        api=ApiConfig(**api_data),
    )


app_config = load_config()
