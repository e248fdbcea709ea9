"""Per-question grading against canonical answer keys."""
import json
import logging
from typing import Any, Awaitable, Callable, Optional, assert_never

from scholar_rewards.core.exceptions import JudgeUnavailableError
from scholar_rewards.grading.models import (
    DragOrderKey,
    FillBlankKey,
    MatchingKey,
    MultipleChoiceKey,
    Question,
    QuestionResult,
    ShortAnswerKey,
)
from scholar_rewards.llm.judge import judge_short_answer
from scholar_rewards.llm.parser import Judgement

logger = logging.getLogger(__name__)

Judge = Callable[[str, tuple[str, ...], str], Awaitable[Judgement]]


async def grade_question(
    question: Question,
    submitted: str,
    judge: Optional[Judge] = judge_short_answer,
) -> QuestionResult:
    """
    Grade one answer. Never raises on malformed input: anything that
    cannot be parsed for the question's type is simply incorrect.

    Args:
        question: Question with its answer key
        submitted: Raw submitted answer (JSON text for structured types)
        judge: Short-answer judge; None grades short answers by exact match only
    """
    key = question.answer_key
    feedback = None

    if isinstance(key, MultipleChoiceKey):
        is_correct = submitted == key.option
    elif isinstance(key, ShortAnswerKey):
        is_correct, feedback = await _grade_short_answer(question.prompt, key, submitted, judge)
    elif isinstance(key, DragOrderKey):
        is_correct = check_drag_order(submitted, key)
    elif isinstance(key, MatchingKey):
        is_correct = check_matching(submitted, key)
    elif isinstance(key, FillBlankKey):
        is_correct = check_fill_blank(submitted, key)
    else:
        assert_never(key)

    return QuestionResult(
        question_id=question.id,
        is_correct=is_correct,
        canonical_answer=canonical_answer_display(key),
        submitted_answer=submitted,
        feedback=feedback,
    )


def canonical_answer_display(key) -> str:
    """String form of the correct answer, for showing to the student."""
    if isinstance(key, MultipleChoiceKey):
        return key.option
    if isinstance(key, ShortAnswerKey):
        return key.variants[0]
    if isinstance(key, DragOrderKey):
        return json.dumps(list(key.sequence), ensure_ascii=False)
    if isinstance(key, MatchingKey):
        return json.dumps(
            [{"left": p.left, "right": p.right} for p in key.pairs], ensure_ascii=False
        )
    if isinstance(key, FillBlankKey):
        return json.dumps(list(key.blanks), ensure_ascii=False)
    assert_never(key)


# ============================================================================
# STRUCTURED TYPES
# ============================================================================

def check_drag_order(submitted: str, key: DragOrderKey) -> bool:
    """Correct only if every item is at its canonical position."""
    parsed = _parse_json(submitted)
    if not isinstance(parsed, list):
        return False
    if len(parsed) != len(key.sequence):
        return False
    return all(item == expected for item, expected in zip(parsed, key.sequence))


def check_matching(submitted: str, key: MatchingKey) -> bool:
    """Correct only if the mapping has exactly the canonical pairs."""
    parsed = _parse_json(submitted)
    if not isinstance(parsed, dict):
        return False
    for pair in key.pairs:
        if parsed.get(pair.left) != pair.right:
            return False
    return len(parsed) == len(key.pairs)


def check_fill_blank(submitted: str, key: FillBlankKey) -> bool:
    """Correct if each blank matches, ignoring case and surrounding whitespace."""
    parsed = _parse_json(submitted)
    if not isinstance(parsed, list):
        return False
    if len(parsed) != len(key.blanks):
        return False
    for fill, expected in zip(parsed, key.blanks):
        if isinstance(fill, bool) or not isinstance(fill, (str, int, float)):
            return False
        if _normalize(str(fill)) != _normalize(expected):
            return False
    return True


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None


def _normalize(text: str) -> str:
    return text.strip().lower()


# ============================================================================
# SHORT ANSWER
# ============================================================================

def short_answer_fallback(key: ShortAnswerKey, submitted: str) -> bool:
    """Deterministic grading used whenever the judge cannot answer."""
    normalized = _normalize(submitted)
    return any(normalized == _normalize(variant) for variant in key.variants)


async def _grade_short_answer(
    prompt: str,
    key: ShortAnswerKey,
    submitted: str,
    judge: Optional[Judge],
) -> tuple[bool, str]:
    if judge is not None and submitted.strip():
        try:
            judgement = await judge(prompt, key.variants, submitted)
            return judgement.is_correct, judgement.feedback
        except JudgeUnavailableError as e:
            logger.warning("Short-answer judge degraded, using exact match: %s", e)
        except Exception:
            # Grading must complete whatever the judge does
            logger.exception("Short-answer judge failed, using exact match")

    is_correct = short_answer_fallback(key, submitted)
    return is_correct, "Correct!" if is_correct else "Not quite right."
