# tests/test_scheduler.py
import random
import sqlite3
from datetime import date, datetime, timedelta

import pytest

from brevet_coach.db import get_connection
from brevet_coach.models import InvalidReviewState
from brevet_coach.scheduler import (
    LessonNotFound, due_lessons, get_lessons_for_review, get_review_state, record_outcome,
)

TODAY = date(2025, 3, 1)


def test_first_outcome_creates_default_state(seeded_db):
    state = record_outcome(seeded_db, 1, success=True, today=TODAY)
    assert state.interval_days == 1
    assert state.ease_factor == 2.5
    assert state.next_review_date == TODAY + timedelta(days=1)
    assert state.last_result is True
    assert get_review_state(seeded_db, 1) == state


def test_first_outcome_failure_still_uses_defaults(seeded_db):
    state = record_outcome(seeded_db, 1, success=False, today=TODAY)
    assert state.interval_days == 1
    assert state.ease_factor == 2.5
    assert state.next_review_date == date(2025, 3, 2)
    assert state.last_result is False


def test_two_successes(seeded_db):
    record_outcome(seeded_db, 1, success=True, today=TODAY)
    state = record_outcome(seeded_db, 1, success=True, today=date(2025, 3, 2))
    assert state.interval_days == 3
    assert state.ease_factor == 2.5
    assert state.next_review_date == date(2025, 3, 5)


def test_success_then_failure(seeded_db):
    record_outcome(seeded_db, 1, success=True, today=TODAY)
    record_outcome(seeded_db, 1, success=True, today=TODAY)
    state = record_outcome(seeded_db, 1, success=False, today=TODAY)
    assert state.interval_days == 1
    assert state.ease_factor == 2.3
    assert state.last_result is False
    assert state.next_review_date == TODAY + timedelta(days=1)


def test_failure_resets_grown_interval(seeded_db):
    for _ in range(4):
        state = record_outcome(seeded_db, 2, success=True, today=TODAY)
    assert state.interval_days > 1
    state = record_outcome(seeded_db, 2, success=False, today=TODAY)
    assert state.interval_days == 1


def test_success_grows_interval_from_any_state(seeded_db):
    record_outcome(seeded_db, 3, success=True, today=TODAY)
    record_outcome(seeded_db, 3, success=False, today=TODAY)  # ease 2.3
    before = get_review_state(seeded_db, 3)
    after = record_outcome(seeded_db, 3, success=True, today=TODAY)
    assert after.interval_days == round(before.interval_days * before.ease_factor)
    assert after.ease_factor == min(2.5, round(before.ease_factor + 0.1, 2))


def test_ease_stays_in_bounds_for_random_sequences(seeded_db):
    rng = random.Random(1234)
    day = TODAY
    for _ in range(120):
        lesson_id = rng.randint(1, 4)
        state = record_outcome(seeded_db, lesson_id, success=rng.random() < 0.5, today=day)
        assert 1.3 <= state.ease_factor <= 2.5
        assert state.interval_days >= 1
        day += timedelta(days=rng.randint(0, 3))


def test_repeated_failures_floor_ease(seeded_db):
    for _ in range(10):
        state = record_outcome(seeded_db, 1, success=False, today=TODAY)
    assert state.ease_factor == 1.3


def test_one_state_per_lesson(seeded_db):
    for _ in range(5):
        record_outcome(seeded_db, 1, success=True, today=TODAY)
    conn = get_connection(seeded_db)
    count = conn.execute("SELECT COUNT(*) FROM review_queue WHERE lesson_id = 1").fetchone()[0]
    conn.close()
    assert count == 1


def test_unknown_lesson_raises_and_creates_nothing(seeded_db):
    with pytest.raises(LessonNotFound) as exc:
        record_outcome(seeded_db, 999, success=True, today=TODAY)
    assert exc.value.lesson_id == 999
    assert get_review_state(seeded_db, 999) is None


def test_corrupt_state_is_rejected_and_left_untouched(seeded_db):
    record_outcome(seeded_db, 1, success=True, today=TODAY)
    conn = get_connection(seeded_db)
    conn.execute("UPDATE review_queue SET ease_factor = 4.0 WHERE lesson_id = 1")
    conn.commit()
    conn.close()
    with pytest.raises(InvalidReviewState):
        record_outcome(seeded_db, 1, success=True, today=TODAY)
    conn = get_connection(seeded_db)
    row = conn.execute("SELECT * FROM review_queue WHERE lesson_id = 1").fetchone()
    conn.close()
    assert row["ease_factor"] == 4.0
    assert row["interval_days"] == 1


def test_unparseable_date_is_invalid_state(seeded_db):
    record_outcome(seeded_db, 1, success=True, today=TODAY)
    conn = get_connection(seeded_db)
    conn.execute("UPDATE review_queue SET next_review_date = 'soon' WHERE lesson_id = 1")
    conn.commit()
    conn.close()
    with pytest.raises(InvalidReviewState):
        get_review_state(seeded_db, 1)


def test_datetime_today_is_truncated_to_date(seeded_db):
    state = record_outcome(seeded_db, 1, success=True, today=datetime(2025, 3, 1, 22, 30))
    assert state.next_review_date == date(2025, 3, 2)
    assert due_lessons(seeded_db, date(2025, 3, 2)) == [1]


def test_due_lessons_ordering(seeded_db):
    record_outcome(seeded_db, 3, success=True, today=TODAY)                        # due 03-02
    record_outcome(seeded_db, 1, success=True, today=TODAY + timedelta(days=1))    # due 03-03
    record_outcome(seeded_db, 2, success=True, today=TODAY)                        # due 03-02
    assert due_lessons(seeded_db, TODAY) == []
    assert due_lessons(seeded_db, date(2025, 3, 2)) == [2, 3]
    assert due_lessons(seeded_db, date(2025, 3, 3)) == [2, 3, 1]


def test_due_lessons_monotonic_over_time(seeded_db):
    rng = random.Random(7)
    for lesson_id in range(1, 11):
        for _ in range(rng.randint(1, 4)):
            record_outcome(seeded_db, lesson_id, success=rng.random() < 0.7,
                           today=TODAY + timedelta(days=rng.randint(0, 10)))
    previous = set()
    for offset in range(0, 60):
        current = set(due_lessons(seeded_db, TODAY + timedelta(days=offset)))
        assert previous <= current
        previous = current


def test_due_lessons_is_a_fresh_snapshot(seeded_db):
    record_outcome(seeded_db, 1, success=True, today=TODAY)
    as_of = date(2025, 3, 2)
    assert due_lessons(seeded_db, as_of) == [1]
    record_outcome(seeded_db, 1, success=True, today=as_of)  # now due 03-05
    assert due_lessons(seeded_db, as_of) == []


def test_get_lessons_for_review_joins_detail(seeded_db):
    record_outcome(seeded_db, 4, success=True, today=TODAY)
    record_outcome(seeded_db, 1, success=True, today=TODAY)
    due = get_lessons_for_review(seeded_db, date(2025, 3, 2))
    assert [d["id"] for d in due] == [1, 4]
    assert due[0]["title"] == "Linear equations"
    assert due[0]["subject_name"] == "Mathematics"
    assert due[1]["subject_name"] == "Physics and Chemistry"
    assert due[0]["interval_days"] == 1
    assert due[0]["next_review_date"] == "2025-03-02"


def test_get_lessons_for_review_matches_due_lessons(seeded_db):
    for lesson_id in (5, 2, 8):
        record_outcome(seeded_db, lesson_id, success=True, today=TODAY)
    as_of = date(2025, 3, 10)
    assert [d["id"] for d in get_lessons_for_review(seeded_db, as_of)] == due_lessons(seeded_db, as_of)


def test_concurrent_outcomes_do_not_lose_updates(seeded_db):
    """Five concurrent successes must chain 1 -> 3 -> 8 -> 20 -> 50."""
    from concurrent.futures import ThreadPoolExecutor

    with ThreadPoolExecutor(max_workers=5) as pool:
        futures = [pool.submit(record_outcome, seeded_db, 6, True, TODAY) for _ in range(5)]
        for f in futures:
            f.result()
    state = get_review_state(seeded_db, 6)
    assert state.interval_days == 50
    assert state.ease_factor == 2.5


def test_failed_update_propagates_and_keeps_previous_state(seeded_db):
    before = record_outcome(seeded_db, 1, success=True, today=TODAY)
    conn = get_connection(seeded_db)
    conn.execute(
        """CREATE TRIGGER block_review_update BEFORE UPDATE ON review_queue
        BEGIN SELECT RAISE(ABORT, 'disk full'); END"""
    )
    conn.commit()
    conn.close()

    with pytest.raises(sqlite3.Error, match="disk full"):
        record_outcome(seeded_db, 1, success=True, today=date(2025, 3, 2))

    after = get_review_state(seeded_db, 1)
    assert after == before
    assert (after.interval_days, after.ease_factor, after.next_review_date) == (1, 2.5, date(2025, 3, 2))


def test_failed_insert_leaves_no_state_and_releases_lock(seeded_db):
    conn = get_connection(seeded_db)
    conn.execute(
        """CREATE TRIGGER block_review_insert BEFORE INSERT ON review_queue
        BEGIN SELECT RAISE(ABORT, 'disk full'); END"""
    )
    conn.commit()
    conn.close()

    with pytest.raises(sqlite3.Error):
        record_outcome(seeded_db, 2, success=True, today=TODAY)
    assert get_review_state(seeded_db, 2) is None

    conn = get_connection(seeded_db)
    conn.execute("DROP TRIGGER block_review_insert")
    conn.commit()
    conn.close()
    assert record_outcome(seeded_db, 2, success=True, today=TODAY).interval_days == 1
