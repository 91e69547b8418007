from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterator

from loguru import logger

from .models import DayDraft, DayEntry, UserProfile, as_day, normalize_score
from .photos import encode_photo_payload
from .tags import canonical_mood, normalize_tags

ChangeListener = Callable[[str, "date | None"], None]

PROFILE_CREATED = "profile_created"
ENTRY_SAVED = "entry_saved"
ENTRIES_DELETED = "entries_deleted"

_ENTRY_COLUMNS = """
    day, quality_score, mood_score, energy_score, progress_score, mood,
    activities, morning_plan, evening_reflection, photo_data, created_at, updated_at
"""


class StorageError(RuntimeError):
    pass


class ProfileExistsError(StorageError):
    pass


class LifeGridDatabase:
    def __init__(self, db_file: Path):
        self._db_file = Path(db_file)
        self._db_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._listeners: list[ChangeListener] = []
        self._init_schema()

    @property
    def path(self) -> Path:
        return self._db_file

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_file, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Commit on success; roll back every pending change on failure."""
        with self._lock, self._connection() as conn:
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                logger.warning("Rolled back {}: {}", action, exc)
                raise StorageError(f"Could not {action}: {exc}") from exc
            except BaseException:
                conn.rollback()
                raise

    def _init_schema(self) -> None:
        with self._transaction("initialize schema") as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS user_profile (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    birth_date TEXT NOT NULL,
                    country TEXT NOT NULL DEFAULT '',
                    gender TEXT NOT NULL DEFAULT '',
                    is_smoker INTEGER NOT NULL DEFAULT 0,
                    has_chronic_condition INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS day_entries (
                    day TEXT PRIMARY KEY,
                    quality_score INTEGER NOT NULL DEFAULT 5,
                    mood_score INTEGER NOT NULL DEFAULT 5,
                    energy_score INTEGER NOT NULL DEFAULT 5,
                    progress_score INTEGER NOT NULL DEFAULT 5,
                    mood TEXT NOT NULL DEFAULT 'Good',
                    activities TEXT NOT NULL DEFAULT '',
                    morning_plan TEXT NOT NULL DEFAULT '',
                    evening_reflection TEXT NOT NULL DEFAULT '',
                    photo_data BLOB,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS app_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register ``listener(event, day)``; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, day: date | None = None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, day)
            except Exception:  # noqa: BLE001
                logger.exception("Change listener failed for {}", event)

    def get_profile(self) -> UserProfile | None:
        with self._lock, self._connection() as conn:
            row = conn.execute(
                """
                SELECT birth_date, country, gender, is_smoker, has_chronic_condition, created_at
                FROM user_profile
                WHERE id = 1
                """
            ).fetchone()
        if row is None:
            return None
        return UserProfile(
            birth_date=date.fromisoformat(str(row["birth_date"])),
            country=str(row["country"]),
            gender=str(row["gender"]),
            is_smoker=bool(row["is_smoker"]),
            has_chronic_condition=bool(row["has_chronic_condition"]),
            created_at=_parse_timestamp(row["created_at"]),
        )

    def create_profile(
        self,
        birth_date: date,
        country: str,
        gender: str,
        is_smoker: bool = False,
        has_chronic_condition: bool = False,
    ) -> UserProfile:
        now = _now()
        with self._transaction("create profile") as conn:
            existing = conn.execute("SELECT 1 FROM user_profile WHERE id = 1").fetchone()
            if existing is not None:
                raise ProfileExistsError("A profile already exists.")
            conn.execute(
                """
                INSERT INTO user_profile(
                    id, birth_date, country, gender, is_smoker, has_chronic_condition, created_at
                )
                VALUES (1, ?, ?, ?, ?, ?, ?)
                """,
                (
                    as_day(birth_date).isoformat(),
                    (country or "").strip(),
                    (gender or "").strip(),
                    int(bool(is_smoker)),
                    int(bool(has_chronic_condition)),
                    now.isoformat(),
                ),
            )
        logger.info("Created profile (country={}, gender={})", country, gender)
        self._notify(PROFILE_CREATED)
        return UserProfile(
            birth_date=as_day(birth_date),
            country=(country or "").strip(),
            gender=(gender or "").strip(),
            is_smoker=bool(is_smoker),
            has_chronic_condition=bool(has_chronic_condition),
            created_at=now,
        )

    def get_entry(self, day: date | datetime) -> DayEntry | None:
        with self._lock, self._connection() as conn:
            row = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM day_entries WHERE day = ?",
                (as_day(day).isoformat(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    def list_entries(
        self,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
        descending: bool = False,
    ) -> list[DayEntry]:
        clauses: list[str] = []
        params: list[str] = []
        if start is not None:
            clauses.append("day >= ?")
            params.append(as_day(start).isoformat())
        if end is not None:
            clauses.append("day <= ?")
            params.append(as_day(end).isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order = "DESC" if descending else "ASC"
        with self._lock, self._connection() as conn:
            rows = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM day_entries {where} ORDER BY day {order}",
                params,
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def count_entries(self) -> int:
        with self._lock, self._connection() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM day_entries").fetchone()
        return int(row["total"])

    def upsert_entry(self, day: date | datetime, draft: DayDraft) -> DayEntry:
        day = as_day(day)
        now = _now().isoformat()
        photo_data = encode_photo_payload(draft.photos, draft.thumbnail_index)
        with self._transaction(f"save entry for {day.isoformat()}") as conn:
            conn.execute(
                """
                INSERT INTO day_entries(
                    day, quality_score, mood_score, energy_score, progress_score, mood,
                    activities, morning_plan, evening_reflection, photo_data, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(day) DO UPDATE SET
                    quality_score = excluded.quality_score,
                    mood_score = excluded.mood_score,
                    energy_score = excluded.energy_score,
                    progress_score = excluded.progress_score,
                    mood = excluded.mood,
                    activities = excluded.activities,
                    morning_plan = excluded.morning_plan,
                    evening_reflection = excluded.evening_reflection,
                    photo_data = excluded.photo_data,
                    updated_at = excluded.updated_at
                """,
                (
                    day.isoformat(),
                    normalize_score(draft.quality_score),
                    normalize_score(draft.mood_score),
                    normalize_score(draft.energy_score),
                    normalize_score(draft.progress_score),
                    canonical_mood(draft.mood),
                    normalize_tags(draft.activities),
                    draft.morning_plan or "",
                    draft.evening_reflection or "",
                    photo_data,
                    now,
                    now,
                ),
            )
            row = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM day_entries WHERE day = ?",
                (day.isoformat(),),
            ).fetchone()
        self._notify(ENTRY_SAVED, day)
        return self._row_to_entry(row)

    def save_day(self, day: date | datetime, draft: DayDraft) -> DayEntry | None:
        """Auto-save from the day editor.

        A day that has never been saved is only written once the draft holds
        something other than defaults.
        """
        if self.get_entry(day) is None and not draft.has_meaningful_content():
            return None
        return self.upsert_entry(day, draft)

    def delete_all_entries(self) -> int:
        with self._transaction("delete all entries") as conn:
            cursor = conn.execute("DELETE FROM day_entries")
            removed = int(cursor.rowcount)
        logger.info("Deleted {} day entries", removed)
        self._notify(ENTRIES_DELETED)
        return removed

    def get_setting(self, key: str, default: str | None = None) -> str | None:
        with self._lock, self._connection() as conn:
            row = conn.execute(
                "SELECT value FROM app_settings WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return default
        return str(row["value"])

    def get_setting_int(self, key: str, default: int) -> int:
        value = self.get_setting(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def set_setting(self, key: str, value: str) -> None:
        with self._transaction(f"save setting {key}") as conn:
            conn.execute(
                """
                INSERT INTO app_settings(key, value)
                VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> DayEntry:
        photo_data = row["photo_data"]
        return DayEntry(
            day=date.fromisoformat(str(row["day"])),
            quality_score=normalize_score(row["quality_score"]),
            mood_score=normalize_score(row["mood_score"]),
            energy_score=normalize_score(row["energy_score"]),
            progress_score=normalize_score(row["progress_score"]),
            mood=canonical_mood(row["mood"]),
            activities=str(row["activities"]),
            morning_plan=str(row["morning_plan"]),
            evening_reflection=str(row["evening_reflection"]),
            photo_data=bytes(photo_data) if photo_data is not None else None,
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


def _now() -> datetime:
    return datetime.now().astimezone()


def _parse_timestamp(value: object) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return _now()
