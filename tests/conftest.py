import pytest

from brevet_coach.db import init_db
from brevet_coach.seed import seed_all


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_coach.db")
    return db_path


@pytest.fixture
def seeded_db(tmp_db):
    """A temporary database with schema and seed content loaded."""
    init_db(tmp_db)
    seed_all(tmp_db)
    return tmp_db
