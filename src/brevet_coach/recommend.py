"""Weak lesson identification and priority ranking."""
from datetime import date, datetime, time
from typing import Iterable, Mapping, Optional, Union

from loguru import logger

from brevet_coach.analytics import get_last_studied, get_lesson_accuracy
from brevet_coach.db import get_connection
from brevet_coach.models import Lesson, RankedLesson

# Scoring policy. Inaccuracy dominates, staleness accrues per day, and a
# never-finished lesson gets a flat bump over mastered-but-stale ones.
INACCURACY_WEIGHT = 2
STALENESS_WEIGHT = 0.5
INCOMPLETE_BONUS = 50
DEFAULT_ACCURACY = 100
NEVER_STUDIED_DAYS = 999

SECONDS_PER_DAY = 86400


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def days_since(last_studied: Optional[Union[date, datetime]], as_of: Union[date, datetime]) -> float:
    """Days elapsed from ``last_studied`` to ``as_of``.

    Plain dates count from midnight, so timestamps give fractional days.
    Never-studied lessons get ``NEVER_STUDIED_DAYS``.
    """
    if last_studied is None:
        return NEVER_STUDIED_DAYS
    delta = _as_datetime(as_of) - _as_datetime(last_studied)
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def priority_score(accuracy: float, days_elapsed: float, completed: bool) -> float:
    incomplete_bonus = 0 if completed else INCOMPLETE_BONUS
    return (
        (100 - accuracy) * INACCURACY_WEIGHT
        + days_elapsed * STALENESS_WEIGHT
        + incomplete_bonus
    )


def rank(
    lessons: Iterable[Lesson],
    accuracy_by_lesson: Mapping[int, float],
    last_studied_by_lesson: Mapping[int, Union[date, datetime]],
    as_of: Union[date, datetime],
    limit: int,
) -> list[RankedLesson]:
    """Rank lessons by priority, highest first, ties by ascending lesson id.

    Missing aggregates fall back to 100% accuracy and never studied.
    """
    if limit <= 0:
        return []
    ranked = []
    for lesson in lessons:
        accuracy = accuracy_by_lesson.get(lesson.id)
        if accuracy is None:
            accuracy = DEFAULT_ACCURACY
        score = priority_score(
            accuracy=accuracy,
            days_elapsed=days_since(last_studied_by_lesson.get(lesson.id), as_of),
            completed=lesson.completed,
        )
        ranked.append(RankedLesson(lesson_id=lesson.id, priority_score=score))
    ranked.sort(key=lambda r: (-r.priority_score, r.lesson_id))
    return ranked[:limit]


def get_recommended_lessons(db_path: str, as_of: date, limit: int = 3) -> list[dict]:
    """The ``limit`` weakest lessons with subject detail and score breakdown."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT l.id, l.subject_id, l.title, l.is_completed,
            s.name as subject_name, s.color as subject_color
        FROM lessons l
        LEFT JOIN subjects s ON l.subject_id = s.id
        ORDER BY l.id"""
    ).fetchall()
    conn.close()

    details = {r["id"]: r for r in rows}
    lessons = [
        Lesson(id=r["id"], subject_id=r["subject_id"], title=r["title"], completed=bool(r["is_completed"]))
        for r in rows
    ]
    accuracy = get_lesson_accuracy(db_path)
    last_studied = get_last_studied(db_path)
    ranked = rank(lessons, accuracy, last_studied, as_of, limit)
    logger.debug(f"Ranked {len(lessons)} lessons, top {len(ranked)}: {[r.lesson_id for r in ranked]}")

    return [
        {
            "lesson_id": r.lesson_id,
            "lesson_title": details[r.lesson_id]["title"],
            "subject_name": details[r.lesson_id]["subject_name"],
            "subject_color": details[r.lesson_id]["subject_color"],
            "accuracy": accuracy.get(r.lesson_id, DEFAULT_ACCURACY),
            "last_studied": last_studied.get(r.lesson_id),
            "days_since_review": days_since(last_studied.get(r.lesson_id), as_of),
            "priority_score": r.priority_score,
        }
        for r in ranked
    ]
