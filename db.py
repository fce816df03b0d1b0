import json
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from typing import List, Optional, Tuple

from pydantic import ValidationError

from models import WorkoutRecord, parse_workouts, serialize_workouts

logger = logging.getLogger(__name__)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "storage": """CREATE TABLE storage (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );""",
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, sql in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql)

    def _ensure_table(self, conn: sqlite3.Connection, table: str, sql: str) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def get_value(self, key: str) -> Optional[str]:
        rows = self.fetch_all("SELECT value FROM storage WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    def set_value(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO storage (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )


class WorkoutRepository(BaseRepository):
    """Workout store keeping the whole collection in one serialized value.

    Every write replaces the full collection. Mutations are serialized by a
    process-wide lock since the load-modify-save cycle assumes a single
    writer.
    """

    STORAGE_KEY = "gymProgress"
    _write_lock = threading.RLock()

    def __init__(self, db_path: str = "workout.db", storage_key: str | None = None) -> None:
        super().__init__(db_path)
        self.storage_key = storage_key or self.STORAGE_KEY

    def _read_payload(self) -> list:
        raw = self.get_value(self.storage_key)
        if not raw:
            return []
        parsed = json.loads(raw)
        if isinstance(parsed, list):
            logger.warning("Loaded legacy bare-array workout data")
            return parsed
        if isinstance(parsed, dict):
            workouts = parsed.get("workouts")
            if workouts is None:
                return []
            if not isinstance(workouts, list):
                logger.warning(
                    "Ignoring workouts of unexpected type %s", type(workouts).__name__
                )
                return []
            return workouts
        logger.warning("Ignoring workout data of unexpected type %s", type(parsed).__name__)
        return []

    def load_all(self) -> List[WorkoutRecord]:
        """Return all stored workouts, or an empty list if storage is unreadable."""
        try:
            return parse_workouts(self._read_payload())
        except (sqlite3.Error, ValueError, ValidationError):
            logger.exception("Error loading workouts from %s", self._db_path)
            return []

    def save_all(self, workouts: List[WorkoutRecord]) -> None:
        payload = json.dumps(serialize_workouts(workouts))
        try:
            self.set_value(self.storage_key, payload)
        except sqlite3.Error:
            logger.exception("Error saving workouts to %s", self._db_path)
            raise

    def append(self, record: WorkoutRecord) -> WorkoutRecord:
        """Persist ``record`` and return it with an id assigned."""
        with self._write_lock:
            workouts = self.load_all()
            if record.id is None:
                record = record.model_copy(update={"id": str(uuid.uuid4())})
            elif any(w.id == record.id for w in workouts):
                raise ValueError(f"workout id {record.id} already exists")
            workouts.append(record)
            self.save_all(workouts)
        logger.info("Added workout %s dated %s", record.id, record.date.isoformat())
        return record

    def delete_by_id(self, workout_id: str) -> None:
        with self._write_lock:
            workouts = self.load_all()
            remaining = [w for w in workouts if w.id != workout_id]
            if len(remaining) == len(workouts):
                return
            self.save_all(remaining)
        logger.info("Deleted workout %s", workout_id)

    def fetch(self, workout_id: str) -> Optional[WorkoutRecord]:
        for workout in self.load_all():
            if workout.id == workout_id:
                return workout
        return None
