from __future__ import annotations

import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Generic, Hashable, Iterable, List, Optional, Tuple, TypeVar

from .exceptions import ImmutableRecordError
from .logging import get_logger
from .models import HistoricalRecord, PredictionLogEntry

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

DEFAULT_DB_PATH = Path("data/school_delay.db")


class Repository(ABC, Generic[K, T]):
    """Key-indexed record store.

    ``append`` never overwrites: writing an existing key is a no-op that
    returns False. ``all`` returns items in insertion order.
    """

    @abstractmethod
    def append(self, item: T) -> bool:
        ...

    @abstractmethod
    def find_by_key(self, key: K) -> Optional[T]:
        ...

    @abstractmethod
    def update_by_key(self, key: K, item: T) -> bool:
        ...

    @abstractmethod
    def all(self) -> List[T]:
        ...

    def extend(self, items: Iterable[T]) -> int:
        return sum(1 for item in items if self.append(item))

    def __len__(self) -> int:
        return len(self.all())


class InMemoryRepository(Repository[K, T]):
    def __init__(self, key: Callable[[T], K], items: Iterable[T] = ()) -> None:
        self._key = key
        self._items: Dict[K, T] = {}
        self.extend(items)

    def append(self, item: T) -> bool:
        key = self._key(item)
        if key in self._items:
            return False
        self._items[key] = item
        return True

    def find_by_key(self, key: K) -> Optional[T]:
        return self._items.get(key)

    def update_by_key(self, key: K, item: T) -> bool:
        if key not in self._items:
            return False
        self._items[key] = item
        return True

    def all(self) -> List[T]:
        return list(self._items.values())


HistoricalKey = Tuple[str, str]
LogKey = Tuple[str, str]


class InMemoryHistoricalStore(InMemoryRepository[HistoricalKey, HistoricalRecord]):
    def __init__(self, records: Iterable[HistoricalRecord] = ()) -> None:
        super().__init__(key=lambda record: record.key, items=records)

    def update_by_key(self, key: HistoricalKey, item: HistoricalRecord) -> bool:
        raise ImmutableRecordError(f"Historical record {key} cannot be rewritten")


class InMemoryPredictionLog(InMemoryRepository[LogKey, PredictionLogEntry]):
    def __init__(self, entries: Iterable[PredictionLogEntry] = ()) -> None:
        super().__init__(key=lambda entry: entry.key, items=entries)


class _SqliteRepository:
    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS historical_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    school TEXT NOT NULL,
                    date TEXT NOT NULL,
                    status TEXT NOT NULL,
                    temperature REAL NOT NULL,
                    feels_like REAL NOT NULL,
                    snowfall REAL NOT NULL DEFAULT 0,
                    type TEXT NOT NULL DEFAULT '',
                    UNIQUE (school, date)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS prediction_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date TEXT NOT NULL,
                    school TEXT NOT NULL,
                    delay_probability INTEGER NOT NULL,
                    closure_probability INTEGER NOT NULL,
                    predicted_disruption INTEGER NOT NULL,
                    actual_status TEXT,
                    correct INTEGER,
                    source TEXT NOT NULL DEFAULT 'live',
                    UNIQUE (date, school)
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_prediction_log_date ON prediction_log(date)"
            )


class SqliteHistoricalStore(_SqliteRepository, Repository[HistoricalKey, HistoricalRecord]):
    """Append-only store of past school days backed by SQLite."""

    _COLUMNS = "school, date, status, temperature, feels_like, snowfall, type"

    def append(self, item: HistoricalRecord) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                f"INSERT OR IGNORE INTO historical_records ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    item.school,
                    item.date,
                    item.status,
                    item.temperature,
                    item.feels_like,
                    item.snowfall,
                    item.type,
                ),
            )
        return cursor.rowcount == 1

    def find_by_key(self, key: HistoricalKey) -> Optional[HistoricalRecord]:
        school, date = key
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM historical_records WHERE school = ? AND date = ?",
                (school, date),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def update_by_key(self, key: HistoricalKey, item: HistoricalRecord) -> bool:
        raise ImmutableRecordError(f"Historical record {key} cannot be rewritten")

    def all(self) -> List[HistoricalRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {self._COLUMNS} FROM historical_records ORDER BY id"
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: sqlite3.Row | tuple) -> HistoricalRecord:
        school, date, status, temperature, feels_like, snowfall, weather_type = row
        return HistoricalRecord(
            school=school,
            date=date,
            status=status,
            temperature=temperature,
            feels_like=feels_like,
            snowfall=snowfall,
            type=weather_type,
        )


class SqlitePredictionLog(_SqliteRepository, Repository[LogKey, PredictionLogEntry]):
    """Prediction log backed by SQLite; rows are only ever inserted or resolved."""

    _COLUMNS = (
        "date, school, delay_probability, closure_probability, predicted_disruption,"
        " actual_status, correct, source"
    )

    def append(self, item: PredictionLogEntry) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                f"INSERT OR IGNORE INTO prediction_log ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    item.date,
                    item.school,
                    item.delay_probability,
                    item.closure_probability,
                    1 if item.predicted_disruption else 0,
                    item.actual_status,
                    None if item.correct is None else (1 if item.correct else 0),
                    item.source,
                ),
            )
        return cursor.rowcount == 1

    def find_by_key(self, key: LogKey) -> Optional[PredictionLogEntry]:
        date, school = key
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM prediction_log WHERE date = ? AND school = ?",
                (date, school),
            ).fetchone()
        return self._row_to_entry(row) if row else None

    def update_by_key(self, key: LogKey, item: PredictionLogEntry) -> bool:
        date, school = key
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE prediction_log
                SET actual_status = ?, correct = ?
                WHERE date = ? AND school = ?
                """,
                (
                    item.actual_status,
                    None if item.correct is None else (1 if item.correct else 0),
                    date,
                    school,
                ),
            )
        return cursor.rowcount == 1

    def all(self) -> List[PredictionLogEntry]:
        with self._connect() as conn:
            rows = conn.execute(f"SELECT {self._COLUMNS} FROM prediction_log ORDER BY id").fetchall()
        return [self._row_to_entry(row) for row in rows]

    @staticmethod
    def _row_to_entry(row: sqlite3.Row | tuple) -> PredictionLogEntry:
        (
            date,
            school,
            delay_probability,
            closure_probability,
            predicted_disruption,
            actual_status,
            correct,
            source,
        ) = row
        return PredictionLogEntry(
            date=date,
            school=school,
            delay_probability=delay_probability,
            closure_probability=closure_probability,
            predicted_disruption=bool(predicted_disruption),
            actual_status=actual_status,
            correct=bool(correct) if correct is not None else None,
            source=source,
        )


def load_records_json(path: Path | str) -> List[HistoricalRecord]:
    """Read a JSON array of historical records (e.g. an exported ``historicalData.json``).

    Statuses are normalized; entries with an unrecognized status are skipped.
    """
    data = json.loads(Path(path).read_text())
    records: List[HistoricalRecord] = []
    for item in data:
        try:
            records.append(HistoricalRecord.from_dict(item))
        except ValueError as exc:
            logger.warning("history.import_skip", school=item.get("school"), date=item.get("date"), error=str(exc))
    return records


def import_history(repository: Repository[HistoricalKey, HistoricalRecord], path: Path | str) -> int:
    """Append records from a JSON export; existing keys are left untouched."""
    added = repository.extend(load_records_json(path))
    logger.info("history.imported", path=str(path), added=added)
    return added
