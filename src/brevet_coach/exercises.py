"""Exercise retrieval and attempt recording."""
import json
from datetime import datetime
from typing import Optional

from brevet_coach.db import get_connection


def get_options(exercise) -> list[str]:
    return json.loads(exercise["options_json"])


def get_exercises(db_path: str, lesson_id: Optional[int] = None, difficulty: Optional[int] = None) -> list:
    query = "SELECT * FROM exercises"
    conditions = []
    params = []
    if lesson_id is not None:
        conditions.append("lesson_id = ?")
        params.append(lesson_id)
    if difficulty is not None:
        conditions.append("difficulty = ?")
        params.append(difficulty)
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += " ORDER BY id"
    conn = get_connection(db_path)
    exercises = conn.execute(query, params).fetchall()
    conn.close()
    return exercises


def get_random_exercises(db_path: str, count: int = 10, subject_id: Optional[int] = None) -> list:
    conn = get_connection(db_path)
    if subject_id is not None:
        exercises = conn.execute(
            """SELECT e.* FROM exercises e
            JOIN lessons l ON e.lesson_id = l.id
            WHERE l.subject_id = ?
            ORDER BY RANDOM() LIMIT ?""",
            (subject_id, count),
        ).fetchall()
    else:
        exercises = conn.execute(
            "SELECT * FROM exercises ORDER BY RANDOM() LIMIT ?", (count,)
        ).fetchall()
    conn.close()
    return exercises


def record_attempt(
    db_path: str,
    exercise_id: int,
    chosen_index: int,
    time_spent_seconds: int = 0,
    answered_at: Optional[datetime] = None,
) -> bool:
    """Append an attempt and return whether it was correct."""
    conn = get_connection(db_path)
    exercise = conn.execute(
        "SELECT correct_index FROM exercises WHERE id = ?", (exercise_id,)
    ).fetchone()
    if exercise is None:
        conn.close()
        raise LookupError(f"Exercise {exercise_id} does not exist")
    is_correct = chosen_index == exercise["correct_index"]
    answered_at = answered_at or datetime.now()
    conn.execute(
        """INSERT INTO attempts (exercise_id, chosen_index, is_correct, time_spent_seconds, created_at)
        VALUES (?, ?, ?, ?, ?)""",
        (exercise_id, chosen_index, int(is_correct), time_spent_seconds, answered_at.isoformat()),
    )
    conn.commit()
    conn.close()
    return is_correct
