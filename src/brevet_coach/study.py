"""Lessons, study sessions, settings and progress reset."""
from datetime import date, datetime
from typing import Optional

from loguru import logger

from brevet_coach.db import get_connection
from brevet_coach.models import Lesson, Settings
from brevet_coach.scheduler import LessonNotFound, record_outcome

# Focus ratings at or above this count as a successful review
FOCUS_SUCCESS_THRESHOLD = 3
MIN_FOCUS_RATING = 1
MAX_FOCUS_RATING = 5

SETTING_DEFAULTS = {
    "exam_date": None,
    "daily_minutes_goal": "60",
    "pomodoro_work": "25",
    "pomodoro_break": "5",
    "onboarding_complete": "0",
}


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_settings(db_path: str) -> Settings:
    values = {key: get_setting(db_path, key, default) for key, default in SETTING_DEFAULTS.items()}
    return Settings(
        exam_date=values["exam_date"] or None,
        daily_minutes_goal=int(values["daily_minutes_goal"]),
        pomodoro_work=int(values["pomodoro_work"]),
        pomodoro_break=int(values["pomodoro_break"]),
        onboarding_complete=values["onboarding_complete"] == "1",
    )


def update_settings(db_path: str, **fields) -> Settings:
    """Persist any subset of the Settings fields."""
    unknown = set(fields) - set(SETTING_DEFAULTS)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
    for key, value in fields.items():
        if isinstance(value, bool):
            value = "1" if value else "0"
        elif isinstance(value, date):
            value = value.isoformat()
        set_setting(db_path, key, "" if value is None else str(value))
    return get_settings(db_path)


def days_until_exam(db_path: str, today: Optional[date] = None) -> int | None:
    exam_date = get_settings(db_path).exam_date
    if not exam_date:
        return None
    today = today or date.today()
    return (date.fromisoformat(exam_date) - today).days


def _lesson_from_row(row) -> Lesson:
    return Lesson(
        id=row["id"],
        subject_id=row["subject_id"],
        title=row["title"],
        summary=row["summary"],
        importance_points=row["importance_points"],
        common_mistakes=row["common_mistakes"],
        completed=bool(row["is_completed"]),
    )


def get_lessons(db_path: str, subject_id: Optional[int] = None) -> list[Lesson]:
    conn = get_connection(db_path)
    if subject_id is not None:
        rows = conn.execute("SELECT * FROM lessons WHERE subject_id = ? ORDER BY id", (subject_id,)).fetchall()
    else:
        rows = conn.execute("SELECT * FROM lessons ORDER BY id").fetchall()
    conn.close()
    return [_lesson_from_row(r) for r in rows]


def get_lesson(db_path: str, lesson_id: int) -> dict | None:
    """A lesson joined with its subject name and color."""
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT l.*, s.name as subject_name, s.color as subject_color
        FROM lessons l
        JOIN subjects s ON l.subject_id = s.id
        WHERE l.id = ?""",
        (lesson_id,),
    ).fetchone()
    conn.close()
    return dict(row) if row else None


def mark_lesson_complete(db_path: str, lesson_id: int, today: Optional[date] = None):
    """Mark a lesson studied and record it as a successful review."""
    today = today or date.today()
    conn = get_connection(db_path)
    cur = conn.execute("UPDATE lessons SET is_completed = 1 WHERE id = ?", (lesson_id,))
    if cur.rowcount == 0:
        conn.close()
        raise LessonNotFound(lesson_id)
    conn.commit()
    conn.close()
    return record_outcome(db_path, lesson_id, success=True, today=today)


def _local_naive(value: datetime) -> datetime:
    """Aware timestamps are stored as naive local time, like every other row."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def save_study_session(
    db_path: str,
    subject_id: int,
    lesson_id: Optional[int],
    start_time: datetime,
    end_time: datetime,
    focus_rating: int = 3,
    notes: str = "",
) -> int:
    """Store a finished focus session and feed its outcome to the scheduler.

    Returns the new session id.
    """
    start_time = _local_naive(start_time)
    end_time = _local_naive(end_time)
    if not MIN_FOCUS_RATING <= focus_rating <= MAX_FOCUS_RATING:
        raise ValueError(f"focus_rating must be between {MIN_FOCUS_RATING} and {MAX_FOCUS_RATING}")
    if end_time < start_time:
        raise ValueError("end_time is before start_time")
    duration = int((end_time - start_time).total_seconds() // 60)

    conn = get_connection(db_path)
    if lesson_id is not None and conn.execute("SELECT 1 FROM lessons WHERE id = ?", (lesson_id,)).fetchone() is None:
        conn.close()
        raise LessonNotFound(lesson_id)
    cur = conn.execute(
        """INSERT INTO study_sessions
        (subject_id, lesson_id, start_time, end_time, duration_minutes, focus_rating, notes)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (subject_id, lesson_id, start_time.isoformat(), end_time.isoformat(), duration, focus_rating, notes),
    )
    session_id = cur.lastrowid
    conn.commit()
    conn.close()

    if lesson_id is not None:
        record_outcome(
            db_path, lesson_id,
            success=focus_rating >= FOCUS_SUCCESS_THRESHOLD,
            today=end_time.date(),
        )
    return session_id


def get_all_study_sessions(db_path: str) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM study_sessions ORDER BY start_time DESC").fetchall()
    conn.close()
    return [dict(r) for r in rows]


def reset_all_progress(db_path: str) -> None:
    """Clear all attempts, sessions and review schedules. Content is kept."""
    conn = get_connection(db_path)
    conn.execute("DELETE FROM attempts")
    conn.execute("DELETE FROM study_sessions")
    conn.execute("DELETE FROM review_queue")
    conn.execute("UPDATE lessons SET is_completed = 0")
    conn.commit()
    conn.close()
    logger.info("All study progress reset")
