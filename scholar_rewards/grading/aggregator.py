"""Folds per-question results into a score and pass/fail decision."""
import logging
from typing import Sequence

from scholar_rewards.core.exceptions import RequestValidationError
from scholar_rewards.grading.models import GradeResult, Question, QuestionResult

logger = logging.getLogger(__name__)


def percentage_of(correct: int, total: int) -> int:
    """correct/total as a whole percentage, rounding halves up."""
    return (200 * correct + total) // (2 * total)


def aggregate(
    questions: Sequence[Question],
    results: Sequence[QuestionResult],
    passing_score: int,
) -> GradeResult:
    """
    Build a GradeResult (without rewards) from graded questions.

    Args:
        questions: Questions in request order
        results: One result per question, same order
        passing_score: Minimum percentage that meets the threshold

    Raises:
        RequestValidationError: No questions, or results don't line up
    """
    total = len(questions)
    if total == 0:
        raise RequestValidationError("Cannot grade an assignment with no questions")
    if len(results) != total:
        raise RequestValidationError(
            f"Expected {total} question results, got {len(results)}"
        )

    correct = 0
    incorrect_tags: list[str] = []

    for question, result in zip(questions, results):
        if result.is_correct:
            correct += 1
        elif question.skill_tag and question.skill_tag not in incorrect_tags:
            incorrect_tags.append(question.skill_tag)

    percentage = percentage_of(correct, total)

    return GradeResult(
        score=correct,
        total_questions=total,
        percentage=percentage,
        meets_threshold=percentage >= passing_score,
        incorrect_skill_tags=incorrect_tags,
        question_results=list(results),
    )
