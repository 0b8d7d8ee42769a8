import sqlite3
import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from config import YamlConfig, STORAGE_PREFIX
from errors import PersistenceError
from session_models import ActiveSession, HistoryRecord, PendingSelection
from settings_schema import SettingsSchema, validate_settings
from tools import WorkoutTools

logger = logging.getLogger(__name__)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "kv_store": (
            """CREATE TABLE kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
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
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;")
        conn.execute(f"DROP TABLE {table}_old;")


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


class KeyValueRepository(BaseRepository):
    """JSON values addressed by string key, without isolation across keys."""

    def get_raw(self, key: str) -> Optional[str]:
        rows = self.fetch_all("SELECT value FROM kv_store WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    def get_json(self, key: str, default: Any = None) -> Any:
        try:
            raw = self.get_raw(key)
        except sqlite3.Error as e:
            logger.error("Failed to read %s: %s", key, e)
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt JSON stored under %s: %s", key, e)
            return default

    def set_json(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"value for {key} is not JSON serializable: {e}")
        self.set_raw(key, payload)

    def set_raw(self, key: str, payload: str) -> None:
        try:
            self.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                (key, payload),
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.execute("DELETE FROM kv_store WHERE key = ?;", (key,))
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to remove {key}: {e}") from e

    def keys(self) -> List[str]:
        return [r[0] for r in self.fetch_all("SELECT key FROM kv_store ORDER BY key;")]


class HistoryRepository:
    """Completed workouts stored as one mapping of record key to record."""

    HISTORY_KEY = f"{STORAGE_PREFIX}workout_history"

    def __init__(self, store: KeyValueRepository) -> None:
        self.store = store

    def _raw_history(self) -> dict:
        data = self.store.get_json(self.HISTORY_KEY, {})
        if not isinstance(data, dict):
            logger.warning("Ignoring workout history that is not an object")
            return {}
        return data

    def fetch_all(self) -> Dict[str, HistoryRecord]:
        """Return all records keyed by record key, in storage order."""
        records: Dict[str, HistoryRecord] = {}
        for key, value in self._raw_history().items():
            try:
                records[key] = HistoryRecord.model_validate(value)
            except ValidationError as e:
                logger.warning("Skipping malformed history record %s: %s", key, e)
        return records

    def fetch_sorted(self, descending: bool = True) -> List[Tuple[str, HistoryRecord]]:
        items = list(self.fetch_all().items())
        items.sort(
            key=lambda kv: WorkoutTools.parse_timestamp(kv[1].completed_at),
            reverse=descending,
        )
        return items

    def save(self, record: HistoryRecord) -> str:
        """Store ``record``, replacing any record for the same week, day and date."""
        key = WorkoutTools.record_key(record.week, record.day_type, record.completed_at)
        history = self._raw_history()
        history[key] = record.to_json_dict()
        self.store.set_json(self.HISTORY_KEY, history)
        return key

    def last_performance(self, exercise_name: str) -> Optional[List[dict]]:
        """Return the sets of the most recent workout containing ``exercise_name``."""
        for _key, record in self.fetch_sorted(descending=True):
            exercise = record.find_exercise(exercise_name)
            if exercise is not None:
                return [s.model_dump() for s in exercise.sets]
        return None

    def count(self) -> int:
        return len(self._raw_history())

    def export_json(self) -> str:
        return json.dumps(self._raw_history(), indent=2)

    def import_json(self, text: str, replace: bool = False) -> int:
        """Load exported history, replacing or merging by key. Returns record count."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid data format: {e}")
        if not isinstance(data, dict):
            raise ValueError("Invalid data format: expected an object")
        for key, value in data.items():
            try:
                HistoryRecord.model_validate(value)
            except ValidationError as e:
                raise ValueError(f"Invalid record {key}: {e}")
        history = {} if replace else self._raw_history()
        history.update(data)
        self.store.set_json(self.HISTORY_KEY, history)
        return len(history)

    def clear_all(self) -> None:
        self.store.remove(self.HISTORY_KEY)


class ActiveSessionRepository:
    """Snapshot of the in-progress workout and the pending workout selection."""

    SESSION_KEY = f"{STORAGE_PREFIX}active_workout_state"
    PENDING_KEY = f"{STORAGE_PREFIX}active_workout"

    def __init__(self, store: KeyValueRepository) -> None:
        self.store = store

    def load(self) -> Optional[ActiveSession]:
        data = self.store.get_json(self.SESSION_KEY)
        if data is None:
            return None
        try:
            return ActiveSession.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring malformed active workout state: %s", e)
            return None

    def save(self, session: ActiveSession) -> None:
        self.store.set_json(self.SESSION_KEY, session.to_json_dict())

    def clear(self) -> None:
        self.store.remove(self.SESSION_KEY)

    def load_pending(self) -> Optional[PendingSelection]:
        data = self.store.get_json(self.PENDING_KEY)
        if data is None:
            return None
        try:
            return PendingSelection.model_validate(data)
        except ValidationError as e:
            logger.warning("Ignoring malformed pending workout selection: %s", e)
            return None

    def save_pending(self, selection: PendingSelection) -> None:
        self.store.set_json(self.PENDING_KEY, selection.to_json_dict())

    def clear_pending(self) -> None:
        self.store.remove(self.PENDING_KEY)


class AppStateRepository:
    """Program-progress cursor and the selected UI tab."""

    CURRENT_WEEK_KEY = f"{STORAGE_PREFIX}current_week"
    ACTIVE_TAB_KEY = "minmax-active-tab"

    def __init__(self, store: KeyValueRepository) -> None:
        self.store = store

    def get_current_week(self) -> int:
        value = self.store.get_json(self.CURRENT_WEEK_KEY)
        try:
            return int(value) if value is not None else 1
        except (TypeError, ValueError):
            return 1

    def set_current_week(self, week: int) -> None:
        if week < 1:
            raise ValueError("week must be positive")
        self.store.set_json(self.CURRENT_WEEK_KEY, int(week))

    def get_active_tab(self) -> str:
        value = self.store.get_json(self.ACTIVE_TAB_KEY)
        return value if isinstance(value, str) and value else "program"

    def set_active_tab(self, tab: str) -> None:
        self.store.set_json(self.ACTIVE_TAB_KEY, tab)


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._init_settings()
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _init_settings(self) -> None:
        defaults = SettingsSchema().model_dump()
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, str(value)),
                )

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, float | str] = {}
        for k, v in rows:
            try:
                result[k] = float(v)
            except ValueError:
                result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_float(self, key: str, default: float) -> float:
        try:
            return float(self.get_text(key, str(default)))
        except ValueError:
            return default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        candidate = self._raw_all_settings()
        candidate[key] = value
        validate_settings(candidate)
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_float(self, key: str, value: float) -> None:
        self.set_text(key, str(value))

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))
