"""SM-2 style review interval update."""
import math

from brevet_coach.models import MAX_EASE, MIN_EASE

DEFAULT_EASE = MAX_EASE
INITIAL_INTERVAL = 1
EASE_BONUS = 0.1
EASE_PENALTY = 0.2


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def sm2_update(success: bool, ease_factor: float, interval: int) -> dict:
    """Calculate next review parameters from a pass/fail outcome.

    Args:
        success: Whether the review was successful
        ease_factor: Current ease factor (1.3 - 2.5)
        interval: Current interval in days

    Returns:
        Dict with updated interval and ease_factor.
    """
    if success:
        new_interval = round_half_up(interval * ease_factor)
        new_ef = round(ease_factor + EASE_BONUS, 2)
    else:
        # Lapse: back to tomorrow regardless of prior mastery
        new_interval = INITIAL_INTERVAL
        new_ef = round(ease_factor - EASE_PENALTY, 2)

    new_ef = min(MAX_EASE, max(MIN_EASE, new_ef))

    return {
        "interval": max(INITIAL_INTERVAL, new_interval),
        "ease_factor": new_ef,
    }
