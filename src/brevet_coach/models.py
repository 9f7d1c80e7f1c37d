"""Data classes for the study-planning domain model."""
from dataclasses import dataclass
from datetime import date
from typing import Optional

MIN_EASE = 1.3
MAX_EASE = 2.5


class InvalidReviewState(ValueError):
    """A persisted review record holds values the update rule can never produce."""


@dataclass
class Subject:
    id: int
    name: str
    color: str = "#3498DB"


@dataclass
class Lesson:
    id: int
    subject_id: int
    title: str
    summary: str = ""
    importance_points: str = ""
    common_mistakes: str = ""
    completed: bool = False


@dataclass
class Exercise:
    id: int
    lesson_id: int
    question: str
    options_json: str
    correct_index: int
    difficulty: int = 1
    explanation: str = ""


@dataclass
class Attempt:
    id: int
    exercise_id: int
    chosen_index: int
    is_correct: bool
    created_at: str
    time_spent_seconds: int = 0


@dataclass
class StudySession:
    id: int
    subject_id: int
    start_time: str
    end_time: str
    duration_minutes: int
    lesson_id: Optional[int] = None
    focus_rating: int = 3
    notes: str = ""


@dataclass
class ReviewState:
    lesson_id: int
    next_review_date: date
    interval_days: int = 1
    ease_factor: float = MAX_EASE
    last_result: bool = False

    def validate(self) -> "ReviewState":
        if self.interval_days < 1:
            raise InvalidReviewState(
                f"lesson {self.lesson_id}: interval_days={self.interval_days} is below 1"
            )
        if not MIN_EASE <= self.ease_factor <= MAX_EASE:
            raise InvalidReviewState(
                f"lesson {self.lesson_id}: ease_factor={self.ease_factor} outside [{MIN_EASE}, {MAX_EASE}]"
            )
        return self


@dataclass(frozen=True)
class RankedLesson:
    lesson_id: int
    priority_score: float


@dataclass
class Settings:
    exam_date: Optional[str] = None
    daily_minutes_goal: int = 60
    pomodoro_work: int = 25
    pomodoro_break: int = 5
    onboarding_complete: bool = False
