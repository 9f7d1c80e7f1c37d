"""Seed the database with subjects, lessons and exercises."""
import json
from pathlib import Path

from loguru import logger

from brevet_coach.db import get_connection

CONTENT_DIR = Path(__file__).parent / "content"


def _load_seed() -> dict:
    return json.loads((CONTENT_DIR / "seed.json").read_text(encoding="utf-8"))


def is_seeded(db_path: str) -> bool:
    """Check whether the database has already been seeded with subjects."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM subjects").fetchone()[0]
    conn.close()
    return count > 0


def seed_subjects(db_path: str) -> None:
    data = _load_seed()
    conn = get_connection(db_path)
    for subject in data["subjects"]:
        conn.execute(
            "INSERT OR IGNORE INTO subjects (name, color) VALUES (?, ?)",
            (subject["name"], subject["color"]),
        )
    conn.commit()
    conn.close()


def seed_lessons(db_path: str) -> None:
    """Insert lessons, resolving each one's subject by name."""
    data = _load_seed()
    conn = get_connection(db_path)
    for lesson in data["lessons"]:
        row = conn.execute("SELECT id FROM subjects WHERE name = ?", (lesson["subject"],)).fetchone()
        if row is None:
            logger.warning(f"Skipping lesson {lesson['title']!r}: unknown subject {lesson['subject']!r}")
            continue
        conn.execute(
            """INSERT INTO lessons (subject_id, title, summary, importance_points, common_mistakes)
            VALUES (?, ?, ?, ?, ?)""",
            (row["id"], lesson["title"], lesson["summary"], lesson["importance_points"], lesson["common_mistakes"]),
        )
    conn.commit()
    conn.close()


def seed_exercises(db_path: str) -> None:
    data = _load_seed()
    conn = get_connection(db_path)
    for ex in data["exercises"]:
        row = conn.execute("SELECT id FROM lessons WHERE title = ?", (ex["lesson"],)).fetchone()
        if row is None:
            logger.warning(f"Skipping exercise: unknown lesson {ex['lesson']!r}")
            continue
        conn.execute(
            """INSERT INTO exercises
            (lesson_id, difficulty, question, options_json, correct_index, explanation)
            VALUES (?, ?, ?, ?, ?, ?)""",
            (row["id"], ex["difficulty"], ex["question"], json.dumps(ex["options"]), ex["correct_index"], ex["explanation"]),
        )
    conn.commit()
    conn.close()


def seed_all(db_path: str) -> None:
    """Run all seed functions in order."""
    if is_seeded(db_path):
        return
    seed_subjects(db_path)
    seed_lessons(db_path)
    seed_exercises(db_path)
    logger.info(f"Seeded study content into {db_path}")
