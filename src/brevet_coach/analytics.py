"""Per-lesson aggregates and study statistics."""
from datetime import date, datetime, timedelta
from typing import Optional

from brevet_coach.db import get_connection


def get_accuracy_label(accuracy: float) -> str:
    if accuracy >= 80:
        return "MASTERED"
    elif accuracy >= 60:
        return "OK"
    elif accuracy >= 40:
        return "SHAKY"
    return "WEAK"


def get_accuracy_color(accuracy: float) -> str:
    if accuracy >= 80:
        return "green"
    elif accuracy >= 60:
        return "yellow"
    elif accuracy >= 40:
        return "dark_orange"
    return "red"


def get_lesson_accuracy(db_path: str, since: Optional[date] = None) -> dict[int, float]:
    """Rounded percentage of correct attempts per lesson.

    Lessons without attempts (in the window, when ``since`` is given) are
    absent from the result; the ranking applies its own default for them.
    """
    query = """SELECT e.lesson_id,
            ROUND(SUM(CASE WHEN a.is_correct = 1 THEN 1 ELSE 0 END) * 100.0 / COUNT(*)) as accuracy
        FROM attempts a
        JOIN exercises e ON a.exercise_id = e.id"""
    params: tuple = ()
    if since is not None:
        query += " WHERE DATE(a.created_at) >= DATE(?)"
        params = (since.isoformat(),)
    query += " GROUP BY e.lesson_id"
    conn = get_connection(db_path)
    rows = conn.execute(query, params).fetchall()
    conn.close()
    return {r["lesson_id"]: r["accuracy"] for r in rows}


def get_last_studied(db_path: str) -> dict[int, datetime]:
    """Start time of the most recent study session for each lesson."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT lesson_id, MAX(start_time) as last_studied
        FROM study_sessions
        WHERE lesson_id IS NOT NULL
        GROUP BY lesson_id"""
    ).fetchall()
    conn.close()
    return {r["lesson_id"]: datetime.fromisoformat(r["last_studied"]) for r in rows}


def get_subject_progress(db_path: str) -> list[dict]:
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT s.id as subject_id, s.name as subject_name, s.color as subject_color,
            COUNT(l.id) as total_lessons,
            COALESCE(SUM(CASE WHEN l.is_completed = 1 THEN 1 ELSE 0 END), 0) as completed_lessons
        FROM subjects s
        LEFT JOIN lessons l ON s.id = l.subject_id
        GROUP BY s.id
        ORDER BY s.id"""
    ).fetchall()
    conn.close()
    results = []
    for r in rows:
        total = r["total_lessons"]
        pct = round(r["completed_lessons"] * 100 / total) if total else 0
        results.append({**dict(r), "progress_percent": pct})
    return results


def get_daily_study_stats(db_path: str, as_of: date, days: int = 7) -> list[dict]:
    """Minutes studied per calendar day over the last ``days`` days."""
    start = as_of - timedelta(days=days)
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT DATE(start_time) as date, SUM(duration_minutes) as total_minutes
        FROM study_sessions
        WHERE DATE(start_time) >= DATE(?) AND DATE(start_time) <= DATE(?)
        GROUP BY DATE(start_time)
        ORDER BY date ASC""",
        (start.isoformat(), as_of.isoformat()),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_accuracy_stats(db_path: str, as_of: date, days: int = 7) -> list[dict]:
    """Correct/wrong attempt counts and accuracy per calendar day."""
    start = as_of - timedelta(days=days)
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT DATE(created_at) as date,
            SUM(CASE WHEN is_correct = 1 THEN 1 ELSE 0 END) as correct,
            SUM(CASE WHEN is_correct = 0 THEN 1 ELSE 0 END) as wrong,
            ROUND(SUM(CASE WHEN is_correct = 1 THEN 1 ELSE 0 END) * 100.0 / COUNT(*)) as accuracy
        FROM attempts
        WHERE DATE(created_at) >= DATE(?) AND DATE(created_at) <= DATE(?)
        GROUP BY DATE(created_at)
        ORDER BY date ASC""",
        (start.isoformat(), as_of.isoformat()),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_today_study_minutes(db_path: str, as_of: date) -> int:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT COALESCE(SUM(duration_minutes), 0) as total FROM study_sessions WHERE DATE(start_time) = DATE(?)",
        (as_of.isoformat(),),
    ).fetchone()
    conn.close()
    return row["total"]


def get_study_stats(db_path: str) -> dict:
    conn = get_connection(db_path)
    sessions = conn.execute("SELECT COUNT(*) FROM study_sessions").fetchone()[0]
    minutes = conn.execute("SELECT COALESCE(SUM(duration_minutes), 0) FROM study_sessions").fetchone()[0]
    attempts = conn.execute("SELECT COUNT(*) FROM attempts").fetchone()[0]
    completed = conn.execute("SELECT COUNT(*) FROM lessons WHERE is_completed = 1").fetchone()[0]
    total = conn.execute("SELECT COUNT(*) FROM lessons").fetchone()[0]
    avg_row = conn.execute("SELECT AVG(is_correct) * 100 as avg FROM attempts").fetchone()
    avg_accuracy = round(avg_row["avg"], 1) if avg_row["avg"] is not None else 0.0
    conn.close()
    return {
        "sessions_completed": sessions,
        "minutes_studied": minutes,
        "attempts": attempts,
        "avg_accuracy": avg_accuracy,
        "lessons_completed": completed,
        "lessons_total": total,
    }
