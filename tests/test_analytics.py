# tests/test_analytics.py
from datetime import date, datetime

from brevet_coach.analytics import (
    get_accuracy_color, get_accuracy_label, get_accuracy_stats, get_daily_study_stats,
    get_last_studied, get_lesson_accuracy, get_study_stats, get_subject_progress,
    get_today_study_minutes,
)
from brevet_coach.exercises import get_exercises, record_attempt
from brevet_coach.study import mark_lesson_complete, save_study_session

AS_OF = date(2025, 3, 11)


def _answer(db_path, exercise, correct, when=None):
    chosen = exercise["correct_index"] if correct else (exercise["correct_index"] + 1) % 4
    record_attempt(db_path, exercise["id"], chosen, answered_at=when)


def test_accuracy_label():
    assert get_accuracy_label(90) == "MASTERED"
    assert get_accuracy_label(65) == "OK"
    assert get_accuracy_label(45) == "SHAKY"
    assert get_accuracy_label(10) == "WEAK"


def test_accuracy_color():
    assert get_accuracy_color(80) == "green"
    assert get_accuracy_color(0) == "red"


def test_lesson_accuracy_empty(seeded_db):
    assert get_lesson_accuracy(seeded_db) == {}


def test_lesson_accuracy_per_lesson(seeded_db):
    first, second = get_exercises(seeded_db, lesson_id=1)
    _answer(seeded_db, first, correct=True)
    _answer(seeded_db, second, correct=False)
    _answer(seeded_db, first, correct=True)
    (fractions,) = get_exercises(seeded_db, lesson_id=3)
    _answer(seeded_db, fractions, correct=True)
    accuracy = get_lesson_accuracy(seeded_db)
    assert accuracy == {1: 67.0, 3: 100.0}


def test_lesson_accuracy_since(seeded_db):
    (ex,) = get_exercises(seeded_db, lesson_id=3)
    _answer(seeded_db, ex, correct=False, when=datetime(2025, 1, 5, 10, 0))
    _answer(seeded_db, ex, correct=True, when=datetime(2025, 3, 10, 10, 0))
    assert get_lesson_accuracy(seeded_db) == {3: 50.0}
    assert get_lesson_accuracy(seeded_db, since=date(2025, 3, 1)) == {3: 100.0}


def test_last_studied_takes_latest_session(seeded_db):
    save_study_session(seeded_db, 1, 2, datetime(2025, 3, 1, 9, 0), datetime(2025, 3, 1, 9, 25))
    save_study_session(seeded_db, 1, 2, datetime(2025, 3, 8, 14, 0), datetime(2025, 3, 8, 14, 50))
    save_study_session(seeded_db, 1, None, datetime(2025, 3, 9, 14, 0), datetime(2025, 3, 9, 14, 50))
    assert get_last_studied(seeded_db) == {2: datetime(2025, 3, 8, 14, 0)}


def test_subject_progress(seeded_db):
    mark_lesson_complete(seeded_db, 1, today=AS_OF)
    progress = {p["subject_name"]: p for p in get_subject_progress(seeded_db)}
    assert len(progress) == 5
    maths = progress["Mathematics"]
    assert maths["total_lessons"] == 3
    assert maths["completed_lessons"] == 1
    assert maths["progress_percent"] == 33
    assert progress["French"]["progress_percent"] == 0


def test_daily_study_stats(seeded_db):
    save_study_session(seeded_db, 1, 1, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 9, 25))
    save_study_session(seeded_db, 1, 2, datetime(2025, 3, 10, 16, 0), datetime(2025, 3, 10, 16, 45))
    save_study_session(seeded_db, 2, 4, datetime(2025, 3, 11, 8, 0), datetime(2025, 3, 11, 8, 30))
    save_study_session(seeded_db, 2, 4, datetime(2025, 2, 1, 8, 0), datetime(2025, 2, 1, 8, 30))
    stats = get_daily_study_stats(seeded_db, AS_OF)
    assert stats == [
        {"date": "2025-03-10", "total_minutes": 70},
        {"date": "2025-03-11", "total_minutes": 30},
    ]
    assert get_today_study_minutes(seeded_db, AS_OF) == 30
    assert get_today_study_minutes(seeded_db, date(2025, 3, 12)) == 0


def test_accuracy_stats(seeded_db):
    first, second = get_exercises(seeded_db, lesson_id=2)
    _answer(seeded_db, first, correct=True, when=datetime(2025, 3, 10, 10, 0))
    _answer(seeded_db, second, correct=False, when=datetime(2025, 3, 10, 10, 5))
    _answer(seeded_db, second, correct=True, when=datetime(2025, 3, 11, 7, 0))
    stats = get_accuracy_stats(seeded_db, AS_OF)
    assert stats == [
        {"date": "2025-03-10", "correct": 1, "wrong": 1, "accuracy": 50.0},
        {"date": "2025-03-11", "correct": 1, "wrong": 0, "accuracy": 100.0},
    ]


def test_study_stats(seeded_db):
    stats = get_study_stats(seeded_db)
    assert stats["sessions_completed"] == 0
    assert stats["avg_accuracy"] == 0.0
    assert stats["lessons_total"] == 10

    save_study_session(seeded_db, 1, 1, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 9, 25))
    (ex,) = get_exercises(seeded_db, lesson_id=3)
    _answer(seeded_db, ex, correct=True)
    _answer(seeded_db, ex, correct=False)
    mark_lesson_complete(seeded_db, 3, today=AS_OF)
    stats = get_study_stats(seeded_db)
    assert stats["sessions_completed"] == 1
    assert stats["minutes_studied"] == 25
    assert stats["attempts"] == 2
    assert stats["avg_accuracy"] == 50.0
    assert stats["lessons_completed"] == 1
