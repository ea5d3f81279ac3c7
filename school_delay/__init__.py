"""School delay and closure predictions for Indiana County, PA."""

from .models import HistoricalRecord, Prediction, PredictionLogEntry
from .normalization import DEFAULT_NORMALIZER, NoaaNormalizer
from .storage import (
    InMemoryHistoricalStore,
    InMemoryPredictionLog,
    SqliteHistoricalStore,
    SqlitePredictionLog,
)

__all__ = [
    "DEFAULT_NORMALIZER",
    "HistoricalRecord",
    "InMemoryHistoricalStore",
    "InMemoryPredictionLog",
    "NoaaNormalizer",
    "Prediction",
    "PredictionLogEntry",
    "SqliteHistoricalStore",
    "SqlitePredictionLog",
]
