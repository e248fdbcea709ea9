from scholar_rewards.config import settings

FEEDBACK_MESSAGES = {
    "perfect": "Perfect score! You're a superstar!",
    "excellent": "Amazing work! You really know your stuff!",
    "great": "Great job! Keep up the excellent work!",
    "good": "Good effort! You passed!",
    "close": "You're getting there! A little more practice and you'll nail it!",
    "keep_trying": "Keep trying! Practice makes perfect!",
}


def calculate_rewards(
    correct_count: int,
    meets_threshold: bool,
    xp_per_correct: int | None = None,
    coin_per_correct: int | None = None,
) -> tuple[int, int]:
    """Return (xp, coins) for an attempt. A failing attempt earns nothing."""
    if not meets_threshold:
        return 0, 0
    if xp_per_correct is None:
        xp_per_correct = settings.BASE_XP_PER_CORRECT
    if coin_per_correct is None:
        coin_per_correct = settings.BASE_COIN_PER_CORRECT
    return correct_count * xp_per_correct, correct_count * coin_per_correct


def feedback_message(percentage: int, threshold: int | None = None) -> str:
    """Pick an encouragement line for a score from an ordered threshold table."""
    if threshold is None:
        threshold = settings.PASSING_SCORE

    table = (
        (100, "perfect"),
        (90, "excellent"),
        (80, "great"),
        (threshold, "good"),
        (50, "close"),
    )
    for minimum, key in table:
        if percentage >= minimum:
            return FEEDBACK_MESSAGES[key]
    return FEEDBACK_MESSAGES["keep_trying"]
