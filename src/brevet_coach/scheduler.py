"""Per-lesson review scheduling with SM-2 style intervals.

Every lesson that has been completed or studied owns one row in
``review_queue``. Outcomes update that row in place; the due list is read
from it. Callers pass the date explicitly so nothing here reads the clock.
"""
from datetime import date, datetime, timedelta
from typing import Optional

from loguru import logger

from brevet_coach.db import get_connection
from brevet_coach.models import InvalidReviewState, ReviewState
from brevet_coach.sm2 import DEFAULT_EASE, INITIAL_INTERVAL, sm2_update


class LessonNotFound(LookupError):
    """Raised when an outcome refers to a lesson the lesson store doesn't know."""

    def __init__(self, lesson_id: int):
        super().__init__(f"Lesson {lesson_id} does not exist")
        self.lesson_id = lesson_id


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def _row_to_state(row) -> ReviewState:
    try:
        state = ReviewState(
            lesson_id=row["lesson_id"],
            next_review_date=date.fromisoformat(row["next_review_date"]),
            interval_days=int(row["interval_days"]),
            ease_factor=float(row["ease_factor"]),
            last_result=bool(row["last_result"]),
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Unreadable review state for lesson {row['lesson_id']}: {e}")
        raise InvalidReviewState(f"lesson {row['lesson_id']}: {e}") from e
    try:
        return state.validate()
    except InvalidReviewState as e:
        logger.warning(f"Corrupt review state: {e}")
        raise


def get_review_state(db_path: str, lesson_id: int) -> Optional[ReviewState]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM review_queue WHERE lesson_id = ?", (lesson_id,)).fetchone()
    conn.close()
    return _row_to_state(row) if row else None


def record_outcome(db_path: str, lesson_id: int, success: bool, today: date) -> ReviewState:
    """Apply one review outcome to a lesson's schedule and persist it.

    The first outcome for a lesson creates its state (interval 1, ease 2.5,
    due tomorrow). Later outcomes grow the interval by the ease factor on
    success, or drop it back to 1 day and lower the ease on failure.

    The read and the upsert run inside a single ``BEGIN IMMEDIATE``
    transaction so concurrent outcomes for the same lesson cannot lose an
    update. Storage errors roll back and propagate unchanged.

    Raises:
        LessonNotFound: ``lesson_id`` is not in the lessons table.
        InvalidReviewState: the stored row fails validation.
    """
    today = _as_date(today)
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        if conn.execute("SELECT 1 FROM lessons WHERE id = ?", (lesson_id,)).fetchone() is None:
            raise LessonNotFound(lesson_id)

        row = conn.execute(
            "SELECT * FROM review_queue WHERE lesson_id = ?", (lesson_id,)
        ).fetchone()
        if row is None:
            interval, ease = INITIAL_INTERVAL, DEFAULT_EASE
        else:
            current = _row_to_state(row)
            updated = sm2_update(
                success=success,
                ease_factor=current.ease_factor,
                interval=current.interval_days,
            )
            interval, ease = updated["interval"], updated["ease_factor"]

        state = ReviewState(
            lesson_id=lesson_id,
            next_review_date=today + timedelta(days=interval),
            interval_days=interval,
            ease_factor=ease,
            last_result=bool(success),
        )
        conn.execute(
            """INSERT INTO review_queue
            (lesson_id, next_review_date, interval_days, ease_factor, last_result)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(lesson_id) DO UPDATE SET
                next_review_date=excluded.next_review_date,
                interval_days=excluded.interval_days,
                ease_factor=excluded.ease_factor,
                last_result=excluded.last_result""",
            (
                lesson_id,
                state.next_review_date.isoformat(),
                state.interval_days,
                state.ease_factor,
                int(state.last_result),
            ),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    logger.debug(
        f"Lesson {lesson_id} {'passed' if success else 'lapsed'}: "
        f"interval={state.interval_days}d ease={state.ease_factor} next={state.next_review_date}"
    )
    return state


def due_lessons(db_path: str, as_of: date) -> list[int]:
    """Lesson ids due on or before ``as_of``, earliest first, ties by id."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT lesson_id FROM review_queue
        WHERE next_review_date <= ?
        ORDER BY next_review_date ASC, lesson_id ASC""",
        (_as_date(as_of).isoformat(),),
    ).fetchall()
    conn.close()
    return [r["lesson_id"] for r in rows]


def get_lessons_for_review(db_path: str, as_of: date) -> list[dict]:
    """Due lessons joined with lesson and subject detail, in due-list order."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT l.*, s.name as subject_name, s.color as subject_color,
            r.next_review_date, r.interval_days, r.ease_factor, r.last_result
        FROM review_queue r
        JOIN lessons l ON r.lesson_id = l.id
        JOIN subjects s ON l.subject_id = s.id
        WHERE r.next_review_date <= ?
        ORDER BY r.next_review_date ASC, r.lesson_id ASC""",
        (_as_date(as_of).isoformat(),),
    ).fetchall()
    conn.close()
    return [dict(r) for r in rows]
