"""Grade-assignment entry point."""
import asyncio
import logging
from typing import Any, Dict, Optional

import aiosqlite

from scholar_rewards.config import settings
from scholar_rewards.core.exceptions import RequestValidationError, ScholarRewardsError, StorageError
from scholar_rewards.database import crud
from scholar_rewards.grading.aggregator import aggregate
from scholar_rewards.grading.grader import Judge, grade_question
from scholar_rewards.grading.models import GradeResult
from scholar_rewards.grading.rewards import calculate_rewards, feedback_message
from scholar_rewards.handlers.responses import error_response, internal_error_response
from scholar_rewards.handlers.schemas import GradeRequest, parse_request
from scholar_rewards.llm.judge import judge_short_answer
from scholar_rewards.mastery.tracker import MasteryTracker
from scholar_rewards.rewards.ledger import RewardLedger
from scholar_rewards.rewards.models import AwardResult, ClaimType
from scholar_rewards.sync.notifier import OutcomeNotifier, get_notifier

logger = logging.getLogger(__name__)


async def grade_assignment(
    payload: Dict[str, Any],
    judge: Optional[Judge] = judge_short_answer,
    ledger: Optional[RewardLedger] = None,
    tracker: Optional[MasteryTracker] = None,
    notifier: Optional[OutcomeNotifier] = None,
) -> GradeResult:
    """
    Grade a submission and apply its side effects.

    Order: grade every question, aggregate, compute rewards, then in one
    transaction update mastery, credit the ledger and record the attempt
    (each at most once per attempt), then schedule the partner sync.

    Raises:
        RequestValidationError: Malformed request
        StorageError: Database failure while applying side effects
    """
    request = parse_request(GradeRequest, payload)
    ledger = ledger or RewardLedger()
    tracker = tracker or MasteryTracker()
    notifier = notifier or get_notifier()

    questions = [q.to_question() for q in request.questions]
    submitted = {a.question_id: a.answer for a in request.answers}

    logger.info(
        "Grading assignment %s for student %s (%d questions)",
        request.assignment_id, request.student_id, len(questions),
    )

    results = await asyncio.gather(
        *(grade_question(q, submitted.get(q.id, ""), judge) for q in questions)
    )

    grade = aggregate(questions, results, settings.PASSING_SCORE)
    grade.xp_earned, grade.coins_earned = calculate_rewards(grade.score, grade.meets_threshold)
    grade.feedback = feedback_message(grade.percentage)

    reference = request.attempt_id or request.assignment_id
    category = request.mastery_category()

    async def extend_streak(conn, _reference_id):
        await crud.increment_streak(conn, request.student_id)

    # Mastery, credit and attempt outcome commit together or not at all
    try:
        async with ledger.db.transaction() as conn:
            if category:
                grade.mastery_unlocked = await tracker.apply(
                    conn, request.student_id, category,
                    grade.total_questions, grade.score, event_ref=reference,
                )

            award = None
            if grade.xp_earned or grade.coins_earned:
                award = await ledger.credit(
                    conn,
                    request.student_id,
                    ClaimType.ASSIGNMENT,
                    reference,
                    grade.xp_earned,
                    grade.coins_earned,
                    f"Assignment completed: {grade.percentage}%",
                    on_credit=extend_streak,
                )

            if request.attempt_id:
                await _record_attempt(conn, ledger, request, grade, award)
    except aiosqlite.Error as e:
        raise StorageError(f"Could not record grading outcome: {e}") from e

    if award is not None and award.already_claimed:
        # Regrade of an attempt that was already paid out
        grade.xp_earned = award.xp_awarded
        grade.coins_earned = award.coins_awarded

    notifier.notify_graded(
        request.student_id, request.assignment_id, request.attempt_id, grade.to_dict()
    )

    logger.info(
        "Graded assignment %s: %d/%d (%d%%), passed=%s",
        request.assignment_id, grade.score, grade.total_questions,
        grade.percentage, grade.meets_threshold,
    )
    return grade


async def _record_attempt(
    conn: aiosqlite.Connection,
    ledger: RewardLedger,
    request: GradeRequest,
    grade: GradeResult,
    award: Optional[AwardResult],
) -> None:
    """Store the outcome on the attempt; a paid attempt keeps its paid score and amounts."""
    paid = await ledger.find_claim(
        conn, request.student_id, ClaimType.ASSIGNMENT, request.attempt_id
    )
    if paid is not None and (award is None or award.already_claimed):
        score, xp, coins = None, paid.xp_amount, paid.coin_amount
    else:
        score, xp, coins = grade.percentage, grade.xp_earned, grade.coins_earned

    recorded = await crud.record_attempt_outcome(
        conn, request.attempt_id, request.student_id, score, xp, coins
    )
    if not recorded:
        logger.warning(
            "Attempt %s not found for student %s; outcome not recorded",
            request.attempt_id, request.student_id,
        )


async def handle_grade_request(
    payload: Dict[str, Any],
    judge: Optional[Judge] = judge_short_answer,
    ledger: Optional[RewardLedger] = None,
    tracker: Optional[MasteryTracker] = None,
    notifier: Optional[OutcomeNotifier] = None,
) -> Dict[str, Any]:
    """Grade a request and return the result dict or an error envelope."""
    try:
        grade = await grade_assignment(payload, judge, ledger, tracker, notifier)
    except RequestValidationError as e:
        logger.warning("Rejected grade request: %s", e)
        return error_response(e)
    except ScholarRewardsError as e:
        logger.error("Grade request failed: %s", e)
        return error_response(e)
    except Exception:
        logger.exception("Unexpected error while grading")
        return internal_error_response()

    return grade.to_dict()
