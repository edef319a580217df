"""SM-2 spaced repetition, error-card variant."""

MIN_EASE_FACTOR = 1.3
FAILURE_EASE_PENALTY = 0.2


def sm2_update(
    quality: int,
    reviews: int,
    ease_factor: float,
    interval: int,
) -> dict:
    """Calculate next review parameters.

    Differs from textbook SM-2 in its interval ladder (1, 3, then
    interval * ease factor) and in docking the ease factor on failure.

    Args:
        quality: Rating 0-5 (0=complete blackout, 5=perfect); clamped
        reviews: Number of consecutive successful reviews
        ease_factor: Current ease factor (minimum 1.3)
        interval: Current interval in days; anything below 1 is a new card

    Returns:
        Dict with updated interval, reviews, ease_factor.
    """
    quality = min(5, max(0, quality))
    interval = max(0, interval)

    if quality < 3:
        # Failure: relearn from tomorrow
        return {
            "interval": 1,
            "reviews": 0,
            "ease_factor": max(MIN_EASE_FACTOR, ease_factor - FAILURE_EASE_PENALTY),
        }

    if interval == 0:
        new_interval = 1
    elif interval == 1:
        new_interval = 3
    else:
        new_interval = round(interval * ease_factor)

    new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    return {
        "interval": new_interval,
        "reviews": reviews + 1,
        "ease_factor": max(MIN_EASE_FACTOR, new_ef),
    }
