"""Shared fixtures for grading and reward tests."""
import pytest

from scholar_rewards.core import database
from scholar_rewards.grading.models import (
    DragOrderKey,
    FillBlankKey,
    MatchingKey,
    MatchingPair,
    MultipleChoiceKey,
    Question,
    ShortAnswerKey,
)
from scholar_rewards.llm.parser import Judgement
from scholar_rewards.sync.notifier import OutcomeNotifier


@pytest.fixture
async def db(tmp_path):
    """Fresh on-disk database installed as the global instance."""
    instance = await database.init_database(str(tmp_path / "rewards.db"))
    database.db = instance
    yield instance
    await instance.close()
    database.db = None


@pytest.fixture
def disabled_notifier():
    """Notifier with no webhook: notify_graded is a no-op."""
    return OutcomeNotifier(webhook_url="")


@pytest.fixture
def sample_questions():
    """One question of every type, all tagged with a skill."""
    return [
        Question(
            id="q1",
            prompt="2 + 2 = ?",
            answer_key=MultipleChoiceKey(option="4"),
            skill_tag="addition",
        ),
        Question(
            id="q2",
            prompt="Capital of France?",
            answer_key=ShortAnswerKey(variants=("Paris", "paris, france")),
            skill_tag="geography",
        ),
        Question(
            id="q3",
            prompt="Order the numbers",
            answer_key=DragOrderKey(sequence=("1", "2", "3")),
            skill_tag="ordering",
        ),
        Question(
            id="q4",
            prompt="Match the capitals",
            answer_key=MatchingKey(pairs=(
                MatchingPair(left="France", right="Paris"),
                MatchingPair(left="Spain", right="Madrid"),
            )),
            skill_tag="geography",
        ),
        Question(
            id="q5",
            prompt="The ___ is hot and the ___ is cold",
            answer_key=FillBlankKey(blanks=("sun", "moon")),
            skill_tag="vocabulary",
        ),
    ]


def _make_judge(is_correct=True, feedback="Nice work!"):
    """Async judge stub that always returns the same verdict."""
    calls = []

    async def judge(prompt, variants, submitted):
        calls.append((prompt, variants, submitted))
        return Judgement(is_correct=is_correct, feedback=feedback)

    judge.calls = calls
    return judge


def _mc_question_payload(qid, correct="A", skill_tag=None, exam_category=None):
    """Client-side multiple choice question dict."""
    payload = {
        "id": qid,
        "prompt": f"Question {qid}",
        "question_type": "multiple_choice",
        "answer_key": correct,
        "options": ["A", "B", "C", "D"],
    }
    if skill_tag:
        payload["skill_tag"] = skill_tag
    if exam_category:
        payload["exam_category"] = exam_category
    return payload


def _grade_payload(correct_count, total, **extra):
    """Grade request with `total` multiple choice questions, `correct_count` answered right."""
    questions = [_mc_question_payload(f"q{i}", skill_tag=f"skill-{i}") for i in range(total)]
    answers = [
        {"question_id": f"q{i}", "answer": "A" if i < correct_count else "B"}
        for i in range(total)
    ]
    payload = {
        "student_id": "student-1",
        "assignment_id": "assignment-1",
        "questions": questions,
        "answers": answers,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def make_judge():
    return _make_judge


@pytest.fixture
def mc_question():
    return _mc_question_payload


@pytest.fixture
def grade_payload():
    return _grade_payload
