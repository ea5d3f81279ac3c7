from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from school_delay.config import app_config
from school_delay.logging import get_logger, setup_logging
from school_delay.services.daily_log import DailyWeatherLog
from school_delay.services.feeds import FeedSnapshot, gather_inputs
from school_delay.services.noaa import NoaaClient
from school_delay.services.predictor import PredictionEngine
from school_delay.services.school_status import SchoolStatusService
from school_delay.services.scoring import ScoringConfig
from school_delay.services.tracking import AccuracyTracker
from school_delay.services.weekly import WeeklyOutlook, tomorrow_signal
from school_delay.scheduler import build_scheduler
from school_delay.storage import SqliteHistoricalStore, SqlitePredictionLog, import_history

setup_logging(app_config.logging)
logger = get_logger(__name__)

app = FastAPI(title="School Delay API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class FactorPayload(BaseModel):
    factor: str
    impact: int


class SchoolPayload(BaseModel):
    code: str
    name: str
    short_name: str
    website: Optional[str] = None
    delay_probability: int
    closure_probability: int
    risk_tier: str
    historical_matches: int
    current_status: str
    status_source: str
    last_checked: Optional[str] = None


class AccuracyPayload(BaseModel):
    total: int
    correct: int
    accuracy: int
    status: str
    streak: int = 0
    pending_count: int = 0
    total_resolved: int = 0
    last_resolved_date: Optional[str] = None
    live_count: int = 0
    backtest_count: int = 0
    live_accuracy: Optional[int] = None
    backtest_accuracy: Optional[int] = None


class DelayResponse(BaseModel):
    location: str
    timestamp: datetime
    probability: int
    delay_probability: int
    closure_probability: int
    status: str
    recommendation: str
    factors: List[FactorPayload]
    historical_match: Optional[Dict[str, Any]] = None
    tomorrow_historical_match: Optional[Dict[str, Any]] = None
    prediction_accuracy: AccuracyPayload
    weather: Dict[str, Any]
    schools: List[SchoolPayload]
    errors: List[Dict[str, str]] = []
    disclaimer: str


class LogRequest(BaseModel):
    force_log: bool = False
    dry_run: bool = False


class LogResponse(BaseModel):
    success: bool = True
    mode: str
    message: str
    date: str
    logged: List[Dict[str, Any]]
    skipped: List[Dict[str, str]]
    errors: List[Dict[str, str]]
    predictions: Optional[Dict[str, int]] = None
    summary: Dict[str, Any]


class SeedResponse(BaseModel):
    seeded: int
    correct: int
    incorrect: int
    skipped: int
    accuracy: Optional[int] = None


scoring_config = ScoringConfig.from_sources(config_data=app_config.scoring)
history = SqliteHistoricalStore(app_config.storage.db_path)
prediction_log = SqlitePredictionLog(app_config.storage.db_path)

noaa = NoaaClient()
status_service = SchoolStatusService()
engine = PredictionEngine(history, config=scoring_config)
tracker = AccuracyTracker(prediction_log, config=scoring_config)
daily_log = DailyWeatherLog(engine, tracker, noaa, status_service)
weekly = WeeklyOutlook(engine)


def get_prediction_accuracy() -> Dict[str, Any]:
    return tracker.accuracy_report().to_dict()


def require_log_key(
    x_api_key: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
) -> None:
    """Reject writes that lack the configured key; open when no key is configured."""
    expected = app_config.api.log_api_key
    if not expected:
        return
    provided = x_api_key
    if not provided and authorization and authorization.startswith("Bearer "):
        provided = authorization[len("Bearer "):]
    if provided != expected:
        logger.warning("api.unauthorized")
        raise HTTPException(status_code=401, detail="Unauthorized. Provide valid API key.")


def _weather_summary(snapshot: FeedSnapshot) -> Dict[str, Any]:
    current = snapshot.current
    forecast = snapshot.forecast
    return {
        "current": (
            {
                "temperature": current.temperature_f,
                "conditions": current.description,
                "wind": current.wind_speed_mph,
            }
            if current
            else None
        ),
        "forecast": (
            [
                {"name": period.name, "forecast": period.short_forecast, "temp": period.temperature}
                for period in forecast.periods[:2]
            ]
            if forecast
            else None
        ),
    }


@app.get("/schools/delay", response_model=DelayResponse)
def get_school_delay() -> DelayResponse:
    snapshot = gather_inputs(noaa, status_service)
    prediction = engine.calculate_delay_probability(
        snapshot.current, snapshot.forecast, snapshot.hourly, snapshot.alerts
    )
    schools = engine.predict_schools(prediction, snapshot.statuses)

    tomorrow_match = None
    signal = tomorrow_signal(snapshot.forecast, date.today() + timedelta(days=1))
    if signal is not None:
        match = engine.match_for_signal(signal)
        tomorrow_match = match.to_dict() if match else None

    payload = prediction.to_dict()
    logger.info("api.delay", probability=prediction.probability, errors=len(snapshot.errors))
    return DelayResponse(
        location=app_config.location.name,
        timestamp=datetime.now(timezone.utc),
        probability=prediction.probability,
        delay_probability=prediction.delay_probability,
        closure_probability=prediction.closure_probability,
        status=prediction.status,
        recommendation=prediction.recommendation,
        factors=[FactorPayload(**factor) for factor in payload["factors"]],
        historical_match=payload["historical_match"],
        tomorrow_historical_match=tomorrow_match,
        prediction_accuracy=AccuracyPayload(**get_prediction_accuracy()),
        weather=_weather_summary(snapshot),
        schools=[SchoolPayload(**school.to_dict()) for school in schools],
        errors=[error.to_dict() for error in snapshot.errors],
        disclaimer=prediction.disclaimer,
    )


@app.get("/predictions/accuracy", response_model=AccuracyPayload)
def prediction_accuracy() -> AccuracyPayload:
    return AccuracyPayload(**get_prediction_accuracy())


@app.get("/log-weather", response_model=LogResponse)
def preview_log() -> LogResponse:
    result = daily_log.preview()
    return LogResponse(
        mode="preview",
        message="This is a preview. Use POST request to actually log data.",
        **result.to_dict(),
    )


@app.post("/log-weather", response_model=LogResponse, dependencies=[Depends(require_log_key)])
def log_weather(request: Optional[LogRequest] = None) -> LogResponse:
    request = request or LogRequest()
    result = daily_log.log_weather_data(force_log=request.force_log, dry_run=request.dry_run)
    if result.logged:
        message = f"Successfully logged {len(result.logged)} record(s)"
    else:
        message = "No records to log (schools are open or already logged today)"
    return LogResponse(mode="dry-run" if request.dry_run else "log", message=message, **result.to_dict())


@app.post("/predictions/seed", response_model=SeedResponse, dependencies=[Depends(require_log_key)])
def seed_predictions() -> SeedResponse:
    result = tracker.seed_from_history(history.all())
    return SeedResponse(**result.to_dict())


@app.get("/forecast/weekly")
def weekly_forecast() -> Dict[str, Any]:
    try:
        forecast = noaa.get_forecast()
    except Exception as exc:
        logger.error("api.weekly_forecast_failed", error=str(exc))
        raise HTTPException(status_code=502, detail="Forecast unavailable") from exc
    try:
        alerts = noaa.get_alerts()
    except Exception as exc:
        logger.warning("api.weekly_alerts_failed", error=str(exc))
        alerts = []
    return weekly.generate(forecast, alerts, today=date.today())


def run_daily_log() -> None:
    result = daily_log.log_weather_data()
    logger.info("scheduler.daily_log", recorded=len(result.logged), errors=len(result.errors))


_scheduler = build_scheduler(run_daily_log, app_config.scheduler)


@app.on_event("startup")
async def _seed_history() -> None:
    seed_path = app_config.storage.history_seed_path
    if seed_path and Path(seed_path).exists():
        import_history(history, seed_path)
    elif seed_path:
        logger.warning("history.seed_missing", path=seed_path)


@app.on_event("startup")
async def _start_scheduler() -> None:
    if _scheduler and not _scheduler.running:
        logger.info("scheduler.start")
        _scheduler.start()


@app.on_event("shutdown")
async def _stop_scheduler() -> None:
    if _scheduler and _scheduler.running:
        logger.info("scheduler.stop")
        _scheduler.shutdown()
