from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
import sqlite3
from typing import Iterator

from .config import default_db_path
from .errors import StorageError

logger = logging.getLogger(__name__)

VALID_PHASES = ("focus", "short_break", "long_break")

PHASE_COLUMNS = (
    "id, user_id, session_template_id, duration_minutes, phase, current_cycle, target_cycles, "
    "completed, paused, start_time, end_time, created_at, notes, session_group_id, "
    "sentiment_label, sentiment_score, analyzed_at"
)

SCHEDULE_SELECT = """
    SELECT
        ss.id, ss.user_id, ss.session_id, ss.title, ss.start_datetime, ss.duration_min,
        ss.completed, ss.created_at,
        s.name AS session_name,
        s.focus_duration,
        s.break_duration,
        s.description AS session_description
    FROM scheduled_sessions ss
    LEFT JOIN sessions s ON ss.session_id = s.id AND s.user_id = ss.user_id
"""

COMPLETED_RUNS_SQL = """
WITH grouped AS (
    SELECT
        ts.session_group_id AS group_id,
        MIN(ts.id) AS rep_id,
        MAX(COALESCE(ts.end_time, ts.start_time, ts.created_at)) AS rep_date,
        SUM(CASE WHEN ts.phase = 'focus' THEN ts.duration_minutes ELSE 0 END) AS total_focus_min,
        SUM(CASE WHEN ts.phase = 'focus' THEN 1 ELSE 0 END) AS focus_blocks,
        MAX(ts.target_cycles) AS target_cycles,
        MAX(ts.analyzed_at) AS analyzed_at,
        (SELECT t2.sentiment_label
           FROM timer_sessions t2
          WHERE t2.user_id = ts.user_id
            AND t2.session_group_id = ts.session_group_id
            AND t2.sentiment_label IS NOT NULL
          ORDER BY t2.analyzed_at DESC, t2.id DESC
          LIMIT 1) AS sentiment_label,
        (SELECT t2.sentiment_score
           FROM timer_sessions t2
          WHERE t2.user_id = ts.user_id
            AND t2.session_group_id = ts.session_group_id
            AND t2.sentiment_label IS NOT NULL
          ORDER BY t2.analyzed_at DESC, t2.id DESC
          LIMIT 1) AS sentiment_score,
        MAX(ts.session_template_id) AS template_id
    FROM timer_sessions ts
    WHERE ts.user_id = ?
      AND ts.completed = 1
      AND ts.session_group_id IS NOT NULL
    GROUP BY ts.user_id, ts.session_group_id
    HAVING focus_blocks >= target_cycles
),
legacy AS (
    SELECT
        NULL AS group_id,
        ts.id AS rep_id,
        COALESCE(ts.end_time, ts.start_time, ts.created_at) AS rep_date,
        ts.duration_minutes AS total_focus_min,
        1 AS focus_blocks,
        ts.target_cycles AS target_cycles,
        ts.analyzed_at AS analyzed_at,
        ts.sentiment_label AS sentiment_label,
        ts.sentiment_score AS sentiment_score,
        ts.session_template_id AS template_id
    FROM timer_sessions ts
    WHERE ts.user_id = ?
      AND ts.completed = 1
      AND ts.session_group_id IS NULL
      AND ts.phase = 'focus'
)
SELECT * FROM grouped
UNION ALL
SELECT * FROM legacy
ORDER BY rep_date DESC, rep_id DESC
LIMIT ?
"""


def to_utc_text(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def from_utc_text(text: str | None) -> datetime | None:
    if not text:
        return None
    value = datetime.fromisoformat(str(text).strip().replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimerPhaseRow:
    id: int
    user_id: str
    session_template_id: int | None
    duration_minutes: float
    phase: str
    current_cycle: int
    target_cycles: int
    completed: bool
    paused: bool
    start_time: datetime
    end_time: datetime | None
    created_at: datetime
    notes: str | None
    session_group_id: str | None
    sentiment_label: str | None
    sentiment_score: float | None
    analyzed_at: datetime | None


@dataclass(frozen=True)
class SessionTemplate:
    id: int
    user_id: str
    name: str
    focus_duration: float
    break_duration: float
    description: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TemplateSummary:
    id: int
    name: str
    focus_duration: float
    break_duration: float
    description: str | None


@dataclass(frozen=True)
class ScheduledSession:
    id: int
    user_id: str
    session_id: int | None
    title: str | None
    start_datetime: datetime
    duration_min: float
    completed: bool
    created_at: datetime | None
    session: TemplateSummary | None


@dataclass(frozen=True)
class CompletedRun:
    group_id: str | None
    representative_id: int
    representative_date: datetime | None
    total_focus_minutes: float
    focus_block_count: int
    target_cycles: int
    template_id: int | None
    sentiment_label: str | None
    sentiment_score: float | None
    analyzed_at: datetime | None


@dataclass(frozen=True)
class NewPhase:
    user_id: str
    session_template_id: int | None
    duration_minutes: float
    phase: str
    current_cycle: int
    target_cycles: int
    session_group_id: str | None
    started_at: datetime


class PomoflowDB:
    def __init__(self, db_path: Path | None = None, journal_mode: str | None = None) -> None:
        self.db_path = Path(db_path or default_db_path())
        raw_mode = (journal_mode or "MEMORY").strip()
        self.journal_mode = raw_mode.upper() if raw_mode else "MEMORY"
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        self._apply_journal_mode(conn)
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _apply_journal_mode(self, conn: sqlite3.Connection) -> None:
        try:
            conn.execute(f"PRAGMA journal_mode={self.journal_mode}")
        except sqlite3.OperationalError:
            conn.execute("PRAGMA journal_mode=MEMORY")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection whose work commits as one unit or not at all."""
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open database {self.db_path}: {exc}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(str(exc)) from exc
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    focus_duration INTEGER NOT NULL CHECK (focus_duration >= 1),
                    break_duration INTEGER NOT NULL CHECK (break_duration >= 1),
                    description TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS timer_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    session_template_id INTEGER,
                    duration_minutes INTEGER NOT NULL,
                    phase TEXT NOT NULL CHECK (phase IN ('focus', 'short_break', 'long_break')),
                    current_cycle INTEGER NOT NULL DEFAULT 0,
                    target_cycles INTEGER NOT NULL DEFAULT 4,
                    completed INTEGER NOT NULL DEFAULT 0 CHECK (completed IN (0, 1)),
                    paused INTEGER NOT NULL DEFAULT 0 CHECK (paused IN (0, 1)),
                    start_time TEXT,
                    end_time TEXT,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (session_template_id) REFERENCES sessions(id)
                );

                CREATE TABLE IF NOT EXISTS scheduled_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    session_id INTEGER,
                    title TEXT,
                    start_datetime TEXT NOT NULL,
                    duration_min INTEGER NOT NULL DEFAULT 25,
                    created_at TEXT,
                    FOREIGN KEY (session_id) REFERENCES sessions(id)
                );

                CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);
                CREATE INDEX IF NOT EXISTS idx_timer_sessions_user_id ON timer_sessions(user_id);
                CREATE INDEX IF NOT EXISTS idx_timer_sessions_completed ON timer_sessions(completed);
                CREATE INDEX IF NOT EXISTS idx_scheduled_sessions_user_id ON scheduled_sessions(user_id);
                CREATE INDEX IF NOT EXISTS idx_scheduled_sessions_datetime ON scheduled_sessions(start_datetime);
                """
            )
            # Columns added after the first release; existing files are upgraded in place.
            self._ensure_column(conn, "scheduled_sessions", "completed", "INTEGER DEFAULT 0")
            self._ensure_column(conn, "timer_sessions", "notes", "TEXT")
            self._ensure_column(conn, "timer_sessions", "sentiment_label", "TEXT")
            self._ensure_column(conn, "timer_sessions", "sentiment_score", "REAL")
            self._ensure_column(conn, "timer_sessions", "analyzed_at", "TEXT")
            self._ensure_column(conn, "timer_sessions", "session_group_id", "TEXT")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_timer_sessions_group ON timer_sessions(session_group_id)"
            )

    @staticmethod
    def _ensure_column(conn: sqlite3.Connection, table: str, column: str, decl: str) -> None:
        existing = {str(row["name"]) for row in conn.execute(f"PRAGMA table_info({table})")}
        if column not in existing:
            logger.info("migrating %s: adding column %s", table, column)
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {decl}")

    # ---- session templates ------------------------------------------------

    def insert_template(
        self,
        user_id: str,
        name: str,
        focus_duration: float,
        break_duration: float,
        description: str | None,
        created_at: datetime,
    ) -> SessionTemplate:
        stamp = to_utc_text(created_at)
        with self.transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO sessions (user_id, name, focus_duration, break_duration, description, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, name, focus_duration, break_duration, description, stamp, stamp),
            )
            row = self._fetch_template(conn, int(cur.lastrowid), user_id)
        if row is None:
            raise StorageError("inserted template could not be read back")
        return row

    def get_template(self, template_id: int, user_id: str) -> SessionTemplate | None:
        with self.transaction() as conn:
            return self._fetch_template(conn, template_id, user_id)

    def list_templates(self, user_id: str) -> list[SessionTemplate]:
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM sessions WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [_row_to_template(row) for row in rows]

    def update_template(
        self,
        template_id: int,
        user_id: str,
        name: str,
        focus_duration: float,
        break_duration: float,
        description: str | None,
        updated_at: datetime,
    ) -> SessionTemplate | None:
        with self.transaction() as conn:
            cur = conn.execute(
                """
                UPDATE sessions
                SET name = ?, focus_duration = ?, break_duration = ?, description = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                (name, focus_duration, break_duration, description, to_utc_text(updated_at), template_id, user_id),
            )
            if cur.rowcount == 0:
                return None
            return self._fetch_template(conn, template_id, user_id)

    def delete_template_cascade(self, template_id: int, user_id: str) -> tuple[bool, int, int]:
        """Delete a template and the timer/schedule rows that reference it.

        Returns ``(deleted, timer_rows_removed, schedule_rows_removed)``. Everything
        runs inside one transaction, so a failure leaves no orphans behind.
        """
        with self.transaction() as conn:
            owned = conn.execute(
                "SELECT 1 FROM sessions WHERE id = ? AND user_id = ?", (template_id, user_id)
            ).fetchone()
            if owned is None:
                return False, 0, 0
            timers = conn.execute(
                "DELETE FROM timer_sessions WHERE session_template_id = ? AND user_id = ?",
                (template_id, user_id),
            ).rowcount
            schedules = conn.execute(
                "DELETE FROM scheduled_sessions WHERE session_id = ? AND user_id = ?",
                (template_id, user_id),
            ).rowcount
            conn.execute("DELETE FROM sessions WHERE id = ? AND user_id = ?", (template_id, user_id))
        return True, int(timers), int(schedules)

    def template_name(self, template_id: int | None, user_id: str) -> str | None:
        if not template_id:
            return None
        template = self.get_template(template_id, user_id)
        return template.name if template else None

    @staticmethod
    def _fetch_template(conn: sqlite3.Connection, template_id: int, user_id: str) -> SessionTemplate | None:
        row = conn.execute(
            "SELECT * FROM sessions WHERE id = ? AND user_id = ?", (template_id, user_id)
        ).fetchone()
        return _row_to_template(row) if row else None

    # ---- timer phases -----------------------------------------------------

    def find_active_phase(self, user_id: str) -> TimerPhaseRow | None:
        with self.transaction() as conn:
            row = conn.execute(
                f"""
                SELECT {PHASE_COLUMNS} FROM timer_sessions
                WHERE user_id = ? AND completed = 0
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        return _row_to_phase(row) if row else None

    def count_active_phases(self, user_id: str) -> int:
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS c FROM timer_sessions WHERE user_id = ? AND completed = 0",
                (user_id,),
            ).fetchone()
        return int(row["c"])

    def get_phase(self, phase_id: int, user_id: str) -> TimerPhaseRow | None:
        with self.transaction() as conn:
            return self._fetch_phase(conn, phase_id, user_id)

    def insert_phase(self, new: NewPhase) -> TimerPhaseRow:
        with self.transaction() as conn:
            phase_id = self._insert_phase(conn, new)
            row = self._fetch_phase(conn, phase_id, new.user_id)
        if row is None:
            raise StorageError("inserted timer phase could not be read back")
        return row

    def set_paused(self, phase_id: int, user_id: str, paused: bool) -> TimerPhaseRow | None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE timer_sessions SET paused = ? WHERE id = ? AND user_id = ?",
                (1 if paused else 0, phase_id, user_id),
            )
            return self._fetch_phase(conn, phase_id, user_id)

    def mark_completed(self, phase_id: int, user_id: str, ended_at: datetime) -> TimerPhaseRow | None:
        with self.transaction() as conn:
            self._mark_completed(conn, phase_id, user_id, ended_at)
            return self._fetch_phase(conn, phase_id, user_id)

    def complete_and_insert(
        self,
        phase_id: int,
        user_id: str,
        ended_at: datetime,
        next_phase: NewPhase | None,
    ) -> tuple[TimerPhaseRow | None, TimerPhaseRow | None]:
        with self.transaction() as conn:
            self._mark_completed(conn, phase_id, user_id, ended_at)
            completed = self._fetch_phase(conn, phase_id, user_id)
            started = None
            if next_phase is not None:
                next_id = self._insert_phase(conn, next_phase)
                started = self._fetch_phase(conn, next_id, user_id)
        return completed, started

    def update_notes(self, phase_id: int, user_id: str, notes: str | None) -> TimerPhaseRow | None:
        with self.transaction() as conn:
            conn.execute(
                "UPDATE timer_sessions SET notes = ? WHERE id = ? AND user_id = ?",
                (notes, phase_id, user_id),
            )
            return self._fetch_phase(conn, phase_id, user_id)

    def list_history(self, user_id: str, limit: int) -> list[TimerPhaseRow]:
        with self.transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT {PHASE_COLUMNS} FROM timer_sessions
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [_row_to_phase(row) for row in rows]

    @staticmethod
    def _insert_phase(conn: sqlite3.Connection, new: NewPhase) -> int:
        stamp = to_utc_text(new.started_at)
        cur = conn.execute(
            """
            INSERT INTO timer_sessions (
                user_id,
                session_template_id,
                duration_minutes,
                phase,
                current_cycle,
                target_cycles,
                completed,
                paused,
                start_time,
                created_at,
                session_group_id
            )
            VALUES (?, ?, ?, ?, ?, ?, 0, 0, ?, ?, ?)
            """,
            (
                new.user_id,
                new.session_template_id,
                new.duration_minutes,
                new.phase,
                new.current_cycle,
                new.target_cycles,
                stamp,
                stamp,
                new.session_group_id,
            ),
        )
        return int(cur.lastrowid)

    @staticmethod
    def _mark_completed(conn: sqlite3.Connection, phase_id: int, user_id: str, ended_at: datetime) -> None:
        conn.execute(
            """
            UPDATE timer_sessions
            SET completed = 1, paused = 0, end_time = ?
            WHERE id = ? AND user_id = ?
            """,
            (to_utc_text(ended_at), phase_id, user_id),
        )

    @staticmethod
    def _fetch_phase(conn: sqlite3.Connection, phase_id: int, user_id: str) -> TimerPhaseRow | None:
        row = conn.execute(
            f"SELECT {PHASE_COLUMNS} FROM timer_sessions WHERE id = ? AND user_id = ?",
            (phase_id, user_id),
        ).fetchone()
        return _row_to_phase(row) if row else None

    # ---- completed runs and sentiment --------------------------------------

    def list_completed_runs(self, user_id: str, limit: int = 300) -> list[CompletedRun]:
        with self.transaction() as conn:
            rows = conn.execute(COMPLETED_RUNS_SQL, (user_id, user_id, limit)).fetchall()

        runs: list[CompletedRun] = []
        for row in rows:
            score = row["sentiment_score"]
            runs.append(
                CompletedRun(
                    group_id=row["group_id"],
                    representative_id=int(row["rep_id"]),
                    representative_date=from_utc_text(row["rep_date"]),
                    total_focus_minutes=row["total_focus_min"] or 0,
                    focus_block_count=int(row["focus_blocks"] or 0),
                    target_cycles=int(row["target_cycles"] or 0),
                    template_id=row["template_id"],
                    sentiment_label=row["sentiment_label"],
                    sentiment_score=float(score) if score is not None else None,
                    analyzed_at=from_utc_text(row["analyzed_at"]),
                )
            )
        return runs

    def representative_id(self, user_id: str, group_id: str | None) -> int | None:
        if not group_id:
            return None
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT MIN(id) AS rep_id FROM timer_sessions WHERE user_id = ? AND session_group_id = ?",
                (user_id, group_id),
            ).fetchone()
        if row is None or row["rep_id"] is None:
            return None
        return int(row["rep_id"])

    def update_sentiment(
        self,
        phase_id: int,
        user_id: str,
        analyzed_at: datetime,
        label: str | None,
        score: float | None,
    ) -> TimerPhaseRow | None:
        with self.transaction() as conn:
            conn.execute(
                """
                UPDATE timer_sessions
                SET analyzed_at = ?, sentiment_label = ?, sentiment_score = ?
                WHERE id = ? AND user_id = ?
                """,
                (to_utc_text(analyzed_at), label, score, phase_id, user_id),
            )
            return self._fetch_phase(conn, phase_id, user_id)

    def sentiment_counts(self, user_id: str) -> dict[str, int]:
        with self.transaction() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    COALESCE(SUM(CASE WHEN completed = 1 THEN 1 ELSE 0 END), 0) AS completed,
                    COALESCE(SUM(CASE WHEN sentiment_label IS NOT NULL THEN 1 ELSE 0 END), 0) AS analyzed,
                    COALESCE(SUM(CASE WHEN upper(sentiment_label) = 'POSITIVE' THEN 1 ELSE 0 END), 0) AS positive,
                    COALESCE(SUM(CASE WHEN upper(sentiment_label) = 'NEUTRAL' THEN 1 ELSE 0 END), 0) AS neutral,
                    COALESCE(SUM(CASE WHEN upper(sentiment_label) = 'NEGATIVE' THEN 1 ELSE 0 END), 0) AS negative
                FROM timer_sessions
                WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()
        return {key: int(row[key]) for key in row.keys()}

    # ---- scheduled sessions -------------------------------------------------

    def list_scheduled(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[ScheduledSession]:
        clauses = ["ss.user_id = ?"]
        params: list[object] = [user_id]
        if start is not None:
            clauses.append("ss.start_datetime >= ?")
            params.append(to_utc_text(start))
        if end is not None:
            clauses.append("ss.start_datetime <= ?")
            params.append(to_utc_text(end))

        query = f"{SCHEDULE_SELECT} WHERE {' AND '.join(clauses)} ORDER BY ss.start_datetime ASC, ss.id ASC"
        with self.transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_scheduled(row) for row in rows]

    def insert_scheduled(
        self,
        user_id: str,
        session_id: int | None,
        title: str | None,
        start_datetime: datetime,
        duration_min: float,
        created_at: datetime,
    ) -> ScheduledSession:
        with self.transaction() as conn:
            cur = conn.execute(
                """
                INSERT INTO scheduled_sessions (user_id, session_id, title, start_datetime, duration_min, completed, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)
                """,
                (user_id, session_id, title, to_utc_text(start_datetime), duration_min, to_utc_text(created_at)),
            )
            row = self._fetch_scheduled(conn, int(cur.lastrowid), user_id)
        if row is None:
            raise StorageError("inserted scheduled session could not be read back")
        return row

    def get_scheduled(self, scheduled_id: int, user_id: str) -> ScheduledSession | None:
        with self.transaction() as conn:
            return self._fetch_scheduled(conn, scheduled_id, user_id)

    def update_scheduled(
        self,
        scheduled_id: int,
        user_id: str,
        session_id: int | None,
        title: str | None,
        start_datetime: datetime,
        duration_min: float,
        completed: bool,
    ) -> ScheduledSession | None:
        with self.transaction() as conn:
            cur = conn.execute(
                """
                UPDATE scheduled_sessions
                SET session_id = ?, title = ?, start_datetime = ?, duration_min = ?, completed = ?
                WHERE id = ? AND user_id = ?
                """,
                (
                    session_id,
                    title,
                    to_utc_text(start_datetime),
                    duration_min,
                    1 if completed else 0,
                    scheduled_id,
                    user_id,
                ),
            )
            if cur.rowcount == 0:
                return None
            return self._fetch_scheduled(conn, scheduled_id, user_id)

    def delete_scheduled(self, scheduled_id: int, user_id: str) -> bool:
        with self.transaction() as conn:
            cur = conn.execute(
                "DELETE FROM scheduled_sessions WHERE id = ? AND user_id = ?",
                (scheduled_id, user_id),
            )
        return cur.rowcount > 0

    @staticmethod
    def _fetch_scheduled(conn: sqlite3.Connection, scheduled_id: int, user_id: str) -> ScheduledSession | None:
        row = conn.execute(
            f"{SCHEDULE_SELECT} WHERE ss.id = ? AND ss.user_id = ?", (scheduled_id, user_id)
        ).fetchone()
        return _row_to_scheduled(row) if row else None

    # ---- dashboard aggregates ----------------------------------------------

    def completed_days(self, user_id: str) -> list[str]:
        with self.transaction() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT substr(created_at, 1, 10) AS day
                FROM timer_sessions
                WHERE user_id = ? AND completed = 1
                ORDER BY day ASC
                """,
                (user_id,),
            ).fetchall()
        return [str(row["day"]) for row in rows]

    def focus_totals_since(self, user_id: str, since: datetime) -> tuple[int, float, float]:
        with self.transaction() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS sessions_completed,
                    COALESCE(SUM(duration_minutes), 0) AS total_minutes,
                    COALESCE(AVG(duration_minutes), 0) AS average_minutes
                FROM timer_sessions
                WHERE user_id = ? AND completed = 1 AND phase = 'focus' AND created_at >= ?
                """,
                (user_id, to_utc_text(since)),
            ).fetchone()
        return int(row["sessions_completed"]), row["total_minutes"], float(row["average_minutes"])


def _row_to_phase(row: sqlite3.Row) -> TimerPhaseRow:
    score = row["sentiment_score"]
    return TimerPhaseRow(
        id=int(row["id"]),
        user_id=str(row["user_id"]),
        session_template_id=row["session_template_id"],
        duration_minutes=row["duration_minutes"],
        phase=str(row["phase"]),
        current_cycle=int(row["current_cycle"] or 0),
        target_cycles=int(row["target_cycles"] or 0),
        completed=bool(row["completed"]),
        paused=bool(row["paused"]),
        start_time=from_utc_text(row["start_time"] or row["created_at"]),
        end_time=from_utc_text(row["end_time"]),
        created_at=from_utc_text(row["created_at"]),
        notes=row["notes"],
        session_group_id=row["session_group_id"],
        sentiment_label=row["sentiment_label"],
        sentiment_score=float(score) if score is not None else None,
        analyzed_at=from_utc_text(row["analyzed_at"]),
    )


def _row_to_template(row: sqlite3.Row) -> SessionTemplate:
    return SessionTemplate(
        id=int(row["id"]),
        user_id=str(row["user_id"]),
        name=str(row["name"]),
        focus_duration=row["focus_duration"],
        break_duration=row["break_duration"],
        description=row["description"],
        created_at=from_utc_text(row["created_at"]),
        updated_at=from_utc_text(row["updated_at"] or row["created_at"]),
    )


def _row_to_scheduled(row: sqlite3.Row) -> ScheduledSession:
    session = None
    if row["session_id"] is not None and row["session_name"] is not None:
        session = TemplateSummary(
            id=int(row["session_id"]),
            name=str(row["session_name"]),
            focus_duration=row["focus_duration"],
            break_duration=row["break_duration"],
            description=row["session_description"],
        )
    return ScheduledSession(
        id=int(row["id"]),
        user_id=str(row["user_id"]),
        session_id=row["session_id"],
        title=row["title"],
        start_datetime=from_utc_text(row["start_datetime"]),
        duration_min=row["duration_min"],
        completed=bool(row["completed"]),
        created_at=from_utc_text(row["created_at"]),
        session=session,
    )
